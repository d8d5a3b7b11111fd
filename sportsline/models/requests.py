# ==============================================================================
# TIPOS DE PETICIÓN - Entradas explícitas validadas en el borde
# ==============================================================================
# Cada operación del núcleo recibe un tipo concreto en lugar de un dict
# arbitrario. from_dict() valida y lanza ValidationError con TODOS los
# problemas encontrados.
# ==============================================================================

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sportsline.config import (
    NOTES_MAX_LENGTH,
    PAGINATION_DEFAULT_LIMIT,
    PAGINATION_DEFAULT_PAGE,
    PAGINATION_MAX_LIMIT,
)
from sportsline.errors import ValidationError
from sportsline.models.entities import OrderStatus, parse_iso


def _as_int(value: Any) -> Optional[int]:
    """Convierte a int estricto (rechaza bool, float no entero y texto)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip('-').isdigit():
        return int(value.strip())
    return None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_positive_int(value: Any) -> bool:
    return _is_int(value) and value >= 1


@dataclass(frozen=True)
class OrderLineRequest:
    """Par (producto, cantidad) solicitado."""
    product_id: int
    quantity: int


@dataclass
class CreateOrderRequest:
    """
    Petición de creación de pedido.

    Attributes:
        customer_id: Cliente que compra
        lines: Lista NO vacía de líneas solicitadas
        notes: Observaciones opcionales (máx. 500 caracteres)
    """
    customer_id: int
    lines: List[OrderLineRequest]
    notes: Optional[str] = None

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        errors = []
        if not _is_positive_int(self.customer_id):
            errors.append('customer_id debe ser un entero positivo')
        if not self.lines:
            errors.append('El pedido debe tener al menos un producto')
        for idx, line in enumerate(self.lines or []):
            if not _is_positive_int(line.product_id):
                errors.append(f'Línea {idx + 1}: product_id inválido')
            if not _is_positive_int(line.quantity):
                errors.append(f'Línea {idx + 1}: la cantidad debe ser un entero >= 1')
        if self.notes is not None:
            if not isinstance(self.notes, str):
                errors.append('notes debe ser texto')
            elif len(self.notes) > NOTES_MAX_LENGTH:
                errors.append(f'notes no puede superar {NOTES_MAX_LENGTH} caracteres')
        if errors:
            raise ValidationError('Petición de pedido inválida', errors)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CreateOrderRequest':
        """
        Construye la petición desde un payload JSON.

        Acepta las claves en español del cliente web ("clienteId", "productos",
        "productoId", "cantidad", "observaciones") o snake_case.
        """
        if not isinstance(data, dict):
            raise ValidationError('El cuerpo de la petición debe ser un objeto')

        raw_customer = data.get('customer_id', data.get('clienteId'))
        raw_lines = data.get('lines', data.get('productos'))
        notes = data.get('notes', data.get('observaciones'))

        if not isinstance(raw_lines, list):
            raise ValidationError('El pedido debe tener al menos un producto')

        errors = []
        customer_id = _as_int(raw_customer)
        if customer_id is None:
            errors.append('customer_id debe ser un entero positivo')

        lines = []
        for idx, item in enumerate(raw_lines):
            if not isinstance(item, dict):
                errors.append(f'Línea {idx + 1}: formato inválido')
                continue
            pid = _as_int(item.get('product_id', item.get('productoId')))
            qty = _as_int(item.get('quantity', item.get('cantidad')))
            if pid is None:
                errors.append(f'Línea {idx + 1}: product_id inválido')
                continue
            if qty is None:
                errors.append(f'Línea {idx + 1}: la cantidad debe ser un entero >= 1')
                continue
            lines.append(OrderLineRequest(product_id=pid, quantity=qty))

        if errors:
            raise ValidationError('Petición de pedido inválida', errors)

        return cls(customer_id=customer_id, lines=lines, notes=notes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'customer_id': self.customer_id,
            'lines': [
                {'product_id': l.product_id, 'quantity': l.quantity}
                for l in self.lines
            ],
            'notes': self.notes,
        }


@dataclass
class OrderFilters:
    """
    Filtros de búsqueda y paginación de pedidos.

    date_from/date_to son timestamps ISO (inclusive).
    """
    customer_id: Optional[int] = None
    user_id: Optional[int] = None
    status: Optional[OrderStatus] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    product_id: Optional[int] = None
    page: int = PAGINATION_DEFAULT_PAGE
    limit: int = PAGINATION_DEFAULT_LIMIT
    errors: List[str] = field(default_factory=list, repr=False)

    def __post_init__(self):
        errors = list(self.errors)
        self.errors = []
        for name in ('customer_id', 'user_id', 'product_id'):
            value = getattr(self, name)
            if value is not None and not _is_positive_int(value):
                errors.append(f'{name} debe ser un entero positivo')
        if self.status is not None and not isinstance(self.status, OrderStatus):
            try:
                self.status = OrderStatus(self.status)
            except ValueError:
                errors.append(f'Estado desconocido: {self.status}')
        if not _is_int(self.page):
            errors.append('page debe ser entero')
        elif self.page < 1:
            errors.append('page debe ser mayor que 0')
        if not _is_int(self.limit):
            errors.append('limit debe ser entero')
        elif self.limit < 1 or self.limit > PAGINATION_MAX_LIMIT:
            errors.append(f'limit debe estar entre 1 y {PAGINATION_MAX_LIMIT}')
        start = parse_iso(self.date_from) if self.date_from else None
        end = parse_iso(self.date_to) if self.date_to else None
        if self.date_from and start is None:
            errors.append('date_from no es una fecha válida')
        if self.date_to and end is None:
            errors.append('date_to no es una fecha válida')
        if start and end and start > end:
            errors.append('date_from debe ser anterior a date_to')
        if errors:
            raise ValidationError('Filtros inválidos', errors)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OrderFilters':
        """Construye filtros desde query params (valores texto o int)."""
        data = data or {}
        errors = []

        def read_int(*keys) -> Optional[int]:
            for key in keys:
                if data.get(key) not in (None, ''):
                    value = _as_int(data[key])
                    if value is None:
                        errors.append(f'{keys[0]} debe ser entero')
                    return value
            return None

        status = None
        raw_status = data.get('status', data.get('estado'))
        if raw_status:
            try:
                status = OrderStatus(raw_status)
            except ValueError:
                errors.append(f'Estado desconocido: {raw_status}')

        page = read_int('page')
        limit = read_int('limit')
        return cls(
            customer_id=read_int('customer_id', 'clienteId'),
            user_id=read_int('user_id', 'usuarioId'),
            status=status,
            date_from=data.get('date_from', data.get('fechaInicio')) or None,
            date_to=data.get('date_to', data.get('fechaFin')) or None,
            product_id=read_int('product_id', 'productoId'),
            page=page if page is not None else PAGINATION_DEFAULT_PAGE,
            limit=limit if limit is not None else PAGINATION_DEFAULT_LIMIT,
            errors=errors,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'customer_id': self.customer_id,
            'user_id': self.user_id,
            'status': self.status.value if self.status else None,
            'date_from': self.date_from,
            'date_to': self.date_to,
            'product_id': self.product_id,
        }
        return {k: v for k, v in data.items() if v is not None}

# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un concepto del negocio.
# Diseñadas para ser independientes del mecanismo de persistencia.
# Los montos se manejan como Decimal con 2 decimales y se persisten
# como texto ("299.98") para no perder precisión en JSON.
# ==============================================================================

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, List, Optional


CENT = Decimal('0.01')


def to_money(value: Any) -> Decimal:
    """
    Convierte un valor a Decimal con precisión de centavos.

    Los float se convierten vía str() para no arrastrar error binario.

    Raises:
        ValueError: Si el valor no es numérico
    """
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value))
        except (InvalidOperation, TypeError):
            raise ValueError(f'Monto inválido: {value!r}')
    if not amount.is_finite():
        raise ValueError(f'Monto inválido: {value!r}')
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def utc_now_iso() -> str:
    """Timestamp ISO-8601 en UTC."""
    return datetime.now(timezone.utc).isoformat()


def parse_iso(ts: str) -> Optional[datetime]:
    """Parsea un timestamp ISO (acepta sufijo Z). Retorna None si no puede."""
    if not ts:
        return None
    try:
        dt = datetime.fromisoformat(ts.replace('Z', '+00:00'))
    except (ValueError, TypeError, AttributeError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# ==============================================================================
# ENUMERACIONES - Estados y tipos válidos
# ==============================================================================

class UserRole(str, Enum):
    """Roles de usuario disponibles en el sistema."""
    ADMIN = 'admin'
    VENDEDOR = 'vendedor'


class DocumentType(str, Enum):
    """Tipos de documento de identidad de clientes."""
    CEDULA = 'cedula'
    PASAPORTE = 'pasaporte'
    NIT = 'nit'


class OrderStatus(str, Enum):
    """Estados posibles de un pedido."""
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    SHIPPED = 'shipped'
    DELIVERED = 'delivered'
    CANCELLED = 'cancelled'

    @property
    def is_terminal(self) -> bool:
        return not ORDER_STATUS_TRANSITIONS[self]

    def can_transition_to(self, new_status: 'OrderStatus') -> bool:
        """Verifica si la máquina de estados permite pasar a new_status."""
        return new_status in ORDER_STATUS_TRANSITIONS[self]


# Tabla de transiciones: estado actual → estados siguientes permitidos
ORDER_STATUS_TRANSITIONS = {
    OrderStatus.PENDING: frozenset([OrderStatus.CONFIRMED, OrderStatus.CANCELLED]),
    OrderStatus.CONFIRMED: frozenset([OrderStatus.SHIPPED, OrderStatus.CANCELLED]),
    OrderStatus.SHIPPED: frozenset([OrderStatus.DELIVERED]),
    OrderStatus.DELIVERED: frozenset(),   # terminal
    OrderStatus.CANCELLED: frozenset(),   # terminal
}


class AuditType(str, Enum):
    """Tipos de eventos de auditoría."""
    PEDIDO = 'PEDIDO'
    STOCK = 'STOCK'
    CIFRADO = 'CIFRADO'
    USUARIO = 'USUARIO'
    SISTEMA = 'SISTEMA'


# ==============================================================================
# ENTIDADES DE USUARIO
# ==============================================================================

@dataclass
class User:
    """
    Usuario del sistema (personal de la tienda).

    Attributes:
        id: Identificador numérico
        name: Nombre completo
        email: Email único, usado para iniciar sesión
        password_hash: Hash werkzeug de la contraseña (nunca texto plano)
        role: Rol que define sus permisos
        active: Solo usuarios activos pueden iniciar sesión
    """
    id: int
    name: str
    email: str
    password_hash: str
    role: UserRole = UserRole.VENDEDOR
    active: bool = True
    created_at: str = ''
    updated_at: str = ''

    def __post_init__(self):
        if not self.created_at:
            self.created_at = utc_now_iso()
        if not self.updated_at:
            self.updated_at = self.created_at

    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def to_public_dict(self) -> Dict[str, Any]:
        """Datos seguros para exponer (sin hash de contraseña)."""
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role': self.role.value,
            'active': self.active,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        data = self.to_public_dict()
        data['password'] = self.password_hash
        data['created_at'] = self.created_at
        data['updated_at'] = self.updated_at
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        """Crea instancia desde diccionario."""
        try:
            role = UserRole(data.get('role', 'vendedor'))
        except ValueError:
            role = UserRole.VENDEDOR
        return cls(
            id=int(data['id']),
            name=data.get('name', ''),
            email=data.get('email', ''),
            password_hash=data.get('password', ''),
            role=role,
            active=bool(data.get('active', True)),
            created_at=data.get('created_at', ''),
            updated_at=data.get('updated_at', ''),
        )


# ==============================================================================
# ENTIDADES DE CLIENTE Y PRODUCTO
# ==============================================================================

@dataclass
class Customer:
    """
    Cliente de la tienda. Debe estar activo para aceptar pedidos nuevos.
    """
    id: int
    name: str
    email: str
    document: str
    document_type: DocumentType = DocumentType.CEDULA
    phone: Optional[str] = None
    address: Optional[str] = None
    active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'document': self.document,
            'document_type': self.document_type.value,
            'phone': self.phone,
            'address': self.address,
            'active': self.active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Customer':
        """Crea instancia desde diccionario."""
        try:
            document_type = DocumentType(data.get('document_type', 'cedula'))
        except ValueError:
            document_type = DocumentType.CEDULA
        return cls(
            id=int(data['id']),
            name=data.get('name', ''),
            email=data.get('email', ''),
            document=data.get('document', ''),
            document_type=document_type,
            phone=data.get('phone'),
            address=data.get('address'),
            active=bool(data.get('active', True)),
        )


@dataclass
class Product:
    """
    Producto del catálogo.

    Attributes:
        id: Identificador numérico
        code: Código único (ej: "BAL-001")
        name: Nombre del producto
        price: Precio de venta actual (Decimal)
        stock: Unidades disponibles
        category: Categoría del catálogo
        active: Solo productos activos pueden pedirse
    """
    id: int
    code: str
    name: str
    price: Decimal
    stock: int = 0
    category: str = ''
    description: Optional[str] = None
    active: bool = True

    def __post_init__(self):
        self.price = to_money(self.price)

    def is_low_stock(self, threshold: int = 10) -> bool:
        return self.stock <= threshold

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'id': self.id,
            'code': self.code,
            'name': self.name,
            'description': self.description,
            'price': str(self.price),
            'stock': self.stock,
            'category': self.category,
            'active': self.active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Product':
        """Crea instancia desde diccionario."""
        return cls(
            id=int(data['id']),
            code=data.get('code', ''),
            name=data.get('name', ''),
            price=data.get('price', '0'),
            stock=int(data.get('stock', 0)),
            category=data.get('category', ''),
            description=data.get('description'),
            active=bool(data.get('active', True)),
        )


# ==============================================================================
# ENTIDADES DE PEDIDO
# ==============================================================================

@dataclass
class OrderLine:
    """
    Línea de un pedido.

    El precio unitario es una foto del precio del producto al momento
    del pedido, no una referencia viva.

    Attributes:
        product_id: ID del producto
        quantity: Cantidad pedida (>= 1)
        unit_price: Precio unitario capturado
        subtotal: quantity * unit_price
    """
    product_id: int
    quantity: int
    unit_price: Decimal
    subtotal: Optional[Decimal] = None

    def __post_init__(self):
        self.unit_price = to_money(self.unit_price)
        if self.subtotal is None:
            self.subtotal = to_money(self.unit_price * self.quantity)
        else:
            self.subtotal = to_money(self.subtotal)

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'product_id': self.product_id,
            'quantity': self.quantity,
            'unit_price': str(self.unit_price),
            'subtotal': str(self.subtotal),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OrderLine':
        """Crea instancia desde diccionario."""
        return cls(
            product_id=int(data['product_id']),
            quantity=int(data['quantity']),
            unit_price=data.get('unit_price', '0'),
            subtotal=data.get('subtotal'),
        )


@dataclass
class Order:
    """
    Pedido de un cliente, registrado por un usuario de la tienda.

    Invariante: total == suma de subtotales de las líneas al crearse.
    """
    id: int
    customer_id: int
    user_id: int
    total: Decimal
    status: OrderStatus = OrderStatus.PENDING
    notes: Optional[str] = None
    lines: List[OrderLine] = field(default_factory=list)
    placed_at: str = ''
    created_at: str = ''
    updated_at: str = ''

    def __post_init__(self):
        self.total = to_money(self.total)
        if not self.placed_at:
            self.placed_at = utc_now_iso()
        if not self.created_at:
            self.created_at = self.placed_at
        if not self.updated_at:
            self.updated_at = self.created_at

    def lines_total(self) -> Decimal:
        """Suma de subtotales de las líneas."""
        return to_money(sum((line.subtotal for line in self.lines), Decimal('0')))

    def to_dict(self, include_lines: bool = True) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        data = {
            'id': self.id,
            'customer_id': self.customer_id,
            'user_id': self.user_id,
            'placed_at': self.placed_at,
            'total': str(self.total),
            'status': self.status.value,
            'notes': self.notes,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }
        if include_lines:
            data['lines'] = [line.to_dict() for line in self.lines]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Order':
        """Crea instancia desde diccionario."""
        return cls(
            id=int(data['id']),
            customer_id=int(data['customer_id']),
            user_id=int(data['user_id']),
            total=data.get('total', '0'),
            status=OrderStatus(data.get('status', 'pending')),
            notes=data.get('notes'),
            lines=[OrderLine.from_dict(l) for l in data.get('lines', [])],
            placed_at=data.get('placed_at', ''),
            created_at=data.get('created_at', ''),
            updated_at=data.get('updated_at', ''),
        )


# ==============================================================================
# ENTIDADES DE CIFRADO
# ==============================================================================

@dataclass(frozen=True)
class EncryptedEnvelope:
    """
    Sobre de cifrado híbrido para transporte.

    Attributes:
        encrypted_data: Texto cifrado AES-256-GCM (hex)
        encrypted_key: Llave AES envuelta con RSA-OAEP (hex)
        iv: Vector de inicialización (hex)
        tag: Tag de autenticación GCM (hex)
    """
    encrypted_data: str
    encrypted_key: str
    iv: str
    tag: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'encryptedData': self.encrypted_data,
            'encryptedKey': self.encrypted_key,
            'iv': self.iv,
            'tag': self.tag,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EncryptedEnvelope':
        """Acepta claves camelCase (transporte) o snake_case."""
        return cls(
            encrypted_data=data.get('encryptedData', data.get('encrypted_data', '')),
            encrypted_key=data.get('encryptedKey', data.get('encrypted_key', '')),
            iv=data.get('iv', ''),
            tag=data.get('tag', ''),
        )


@dataclass
class EncryptedOrderData:
    """Campos sensibles de un pedido, cada uno en su propio sobre."""
    order_id: int
    encrypted_notes: Optional[EncryptedEnvelope] = None
    encrypted_lines: Optional[EncryptedEnvelope] = None
    encrypted_metadata: Optional[EncryptedEnvelope] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'orderId': self.order_id}
        if self.encrypted_notes is not None:
            data['encryptedNotes'] = self.encrypted_notes.to_dict()
        if self.encrypted_lines is not None:
            data['encryptedLines'] = self.encrypted_lines.to_dict()
        if self.encrypted_metadata is not None:
            data['encryptedMetadata'] = self.encrypted_metadata.to_dict()
        return data


# ==============================================================================
# ENTIDADES DE AUDITORÍA
# ==============================================================================

@dataclass
class AuditLog:
    """
    Registro de auditoría.

    Attributes:
        type: Tipo de evento (PEDIDO, STOCK, CIFRADO, etc.)
        user: Usuario que realizó la acción
        message: Mensaje descriptivo humanizado
        timestamp: Fecha y hora del evento
        related_id: ID relacionado (pedido, producto, etc.)
        details: Detalles adicionales
    """
    type: str
    user: str
    message: str
    timestamp: str = ''
    related_id: str = ''
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'type': self.type,
            'user': self.user,
            'message': self.message,
            'timestamp': self.timestamp,
            'related_id': self.related_id,
            'details': self.details
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuditLog':
        """Crea instancia desde diccionario."""
        return cls(
            type=data.get('type', ''),
            user=data.get('user', ''),
            message=data.get('message', ''),
            timestamp=data.get('timestamp', ''),
            related_id=data.get('related_id', ''),
            details=data.get('details', {})
        )

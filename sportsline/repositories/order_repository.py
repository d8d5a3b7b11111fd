# ==============================================================================
# REPOSITORIO DE PEDIDOS
# ==============================================================================
# Encapsula todo el acceso a pedidos.json
# Cada pedido se guarda con sus líneas embebidas: {id: {..., "lines": [...]}}
# ==============================================================================

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sportsline.errors import NotFound
from sportsline.models import (
    Order,
    OrderFilters,
    OrderLine,
    OrderStatus,
    parse_iso,
    to_money,
    utc_now_iso,
)

from .base import DictRepository

logger = logging.getLogger(__name__)


class OrderRepository(DictRepository):
    """
    Repositorio de pedidos.

    Formato de datos en pedidos.json:
    {
        "1": {
            "id": 1, "customer_id": 1, "user_id": 1,
            "placed_at": "2024-01-01T10:00:00+00:00",
            "total": "299.98", "status": "pending", "notes": null,
            "lines": [{"product_id": 1, "quantity": 2,
                       "unit_price": "89.99", "subtotal": "179.98"}]
        }
    }
    """

    file_name = 'pedidos.json'

    def _load_orders(self) -> List[Order]:
        return [Order.from_dict(o) for o in self.get_all().values()]

    @staticmethod
    def _newest_first(orders: List[Order]) -> List[Order]:
        return sorted(orders, key=lambda o: (o.placed_at, o.id), reverse=True)

    # =========================================================================
    # ESCRITURA
    # =========================================================================

    def create_with_lines(
        self,
        customer_id: int,
        user_id: int,
        lines: List[OrderLine],
        total: Decimal,
        notes: Optional[str] = None,
    ) -> Order:
        """
        Persiste un pedido nuevo en estado pending junto con sus líneas.

        Args:
            customer_id: Cliente que compra
            user_id: Usuario que registra el pedido
            lines: Líneas con precio ya capturado
            total: Suma de subtotales
            notes: Observaciones

        Returns:
            Pedido creado con su ID asignado
        """
        with self._file_lock:
            order = Order(
                id=self.next_id(),
                customer_id=customer_id,
                user_id=user_id,
                total=total,
                status=OrderStatus.PENDING,
                notes=notes,
                lines=list(lines),
            )
            self.update(order.id, order.to_dict())
        return order

    def update_status(self, order_id: int, status: OrderStatus) -> Order:
        """
        Cambia el estado de un pedido (sin validar la transición).

        Raises:
            NotFound: Si el pedido no existe
        """
        with self._file_lock:
            order = self.get(order_id)
            if order is None:
                raise NotFound('Pedido', order_id)
            order.status = status
            order.updated_at = utc_now_iso()
            self.update(order.id, order.to_dict())
        return order

    # =========================================================================
    # LECTURA
    # =========================================================================

    def get(self, order_id: int, include_lines: bool = True) -> Optional[Order]:
        """
        Obtiene un pedido por su ID.

        Args:
            order_id: ID del pedido
            include_lines: Si False, el pedido se retorna sin líneas

        Returns:
            Order o None
        """
        data = self.get_by_id(order_id)
        if not data:
            return None
        order = Order.from_dict(data)
        if not include_lines:
            order.lines = []
        return order

    def find(self, filters: OrderFilters) -> Tuple[List[Order], int]:
        """
        Busca pedidos aplicando filtros y paginación.

        Returns:
            (pedidos de la página solicitada, total de coincidencias)
        """
        start = parse_iso(filters.date_from) if filters.date_from else None
        end = parse_iso(filters.date_to) if filters.date_to else None

        def matches(order: Order) -> bool:
            if filters.customer_id is not None and order.customer_id != filters.customer_id:
                return False
            if filters.user_id is not None and order.user_id != filters.user_id:
                return False
            if filters.status is not None and order.status != filters.status:
                return False
            if filters.product_id is not None and not any(
                line.product_id == filters.product_id for line in order.lines
            ):
                return False
            if start or end:
                placed = parse_iso(order.placed_at)
                if placed is None:
                    return False
                if start and placed < start:
                    return False
                if end and placed > end:
                    return False
            return True

        matched = self._newest_first([o for o in self._load_orders() if matches(o)])
        offset = (filters.page - 1) * filters.limit
        return matched[offset:offset + filters.limit], len(matched)

    def find_by_customer(self, customer_id: int) -> List[Order]:
        return self._newest_first(
            [o for o in self._load_orders() if o.customer_id == customer_id]
        )

    def find_by_product(self, product_id: int) -> List[Order]:
        return self._newest_first([
            o for o in self._load_orders()
            if any(line.product_id == product_id for line in o.lines)
        ])

    def find_by_date_range(self, date_from: str, date_to: str) -> List[Order]:
        """Pedidos con placed_at dentro de [date_from, date_to]."""
        start, end = parse_iso(date_from), parse_iso(date_to)
        result = []
        for order in self._load_orders():
            placed = parse_iso(order.placed_at)
            if placed is not None and start <= placed <= end:
                result.append(order)
        return self._newest_first(result)

    def find_by_status(self, status: OrderStatus, page: int = 1, limit: int = 10) -> Tuple[List[Order], int]:
        """
        Pedidos en un estado, paginados.

        Returns:
            (pedidos de la página solicitada, total en ese estado)
        """
        matched = self._newest_first([o for o in self._load_orders() if o.status == status])
        offset = (page - 1) * limit
        return matched[offset:offset + limit], len(matched)

    def find_recent(self, since_iso: str, limit: int = 10) -> List[Order]:
        """Los `limit` pedidos más nuevos con placed_at >= since_iso."""
        since = parse_iso(since_iso)
        recent = []
        for order in self._load_orders():
            placed = parse_iso(order.placed_at)
            if placed is not None and placed >= since:
                recent.append(order)
        return self._newest_first(recent)[:limit]

    # =========================================================================
    # AGREGADOS PARA ESTADÍSTICAS
    # =========================================================================

    def count_orders(self) -> int:
        return len(self.get_all())

    def count_by_status(self) -> Dict[str, int]:
        """Cantidad de pedidos por estado (todos los estados presentes, incluso en 0)."""
        counts = {status.value: 0 for status in OrderStatus}
        for data in self.get_all().values():
            status = data.get('status', OrderStatus.PENDING.value)
            counts[status] = counts.get(status, 0) + 1
        return counts

    def sum_totals(self) -> Decimal:
        return to_money(sum(
            (to_money(o.get('total', '0')) for o in self.get_all().values()),
            Decimal('0')
        ))

    def count_since(self, since_iso: str) -> int:
        """Pedidos con placed_at >= since_iso."""
        since = parse_iso(since_iso)
        count = 0
        for data in self.get_all().values():
            placed = parse_iso(data.get('placed_at', ''))
            if placed is not None and placed >= since:
                count += 1
        return count

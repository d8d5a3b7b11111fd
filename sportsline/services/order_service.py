# ==============================================================================
# SERVICIO DE PEDIDOS
# ==============================================================================
# Centraliza toda la lógica de negocio de pedidos:
# - Creación con validación de stock y descuento automático
# - Máquina de estados (pending → confirmed → shipped → delivered)
# - Cancelación con devolución de stock
# - Consultas, filtros y estadísticas
#
# Crear y cancelar corren dentro de UNA unidad de trabajo: si cualquier
# paso falla, pedidos y stock quedan exactamente como estaban.
# ==============================================================================

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from sportsline.errors import (
    InsufficientStock,
    InvalidState,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from sportsline.models import (
    CreateOrderRequest,
    Order,
    OrderFilters,
    OrderLine,
    OrderStatus,
    parse_iso,
    to_money,
)
from sportsline.performance_logger import profile_function
from sportsline.repositories.interfaces import (
    ICustomerRepository,
    IOrderRepository,
    IProductRepository,
    IUserRepository,
    UnitOfWorkFactory,
)
from sportsline.repositories.unit_of_work import JsonUnitOfWork
from sportsline.services.audit_service import AuditService
from sportsline.services.base_service import BaseService


class OrderService(BaseService):
    """
    Servicio de pedidos.

    Responsabilidades:
    - Crear pedidos descontando stock (todo o nada)
    - Validar y aplicar cambios de estado
    - Cancelar pedidos devolviendo el stock
    - Listados paginados y estadísticas
    """

    def __init__(
        self,
        order_repo: IOrderRepository,
        product_repo: IProductRepository,
        customer_repo: ICustomerRepository,
        user_repo: IUserRepository,
        audit_service: AuditService = None,
        unit_of_work: Optional[UnitOfWorkFactory] = None,
        timeout: Optional[float] = None
    ):
        """
        Inicializa el servicio de pedidos.

        Args:
            order_repo: Repositorio de pedidos
            product_repo: Repositorio de productos
            customer_repo: Repositorio de clientes
            user_repo: Repositorio de usuarios
            audit_service: Servicio de auditoría (opcional)
            unit_of_work: Fábrica de unidades de trabajo; por defecto una
                JsonUnitOfWork sobre pedidos y productos
            timeout: Segundos máximos para las estadísticas
        """
        super().__init__(timeout)
        self.order_repo = order_repo
        self.product_repo = product_repo
        self.customer_repo = customer_repo
        self.user_repo = user_repo
        self.audit_service = audit_service
        self._unit_of_work = unit_of_work or (
            lambda: JsonUnitOfWork(self.order_repo, self.product_repo)
        )

    # =========================================================================
    # CREACIÓN
    # =========================================================================

    @profile_function(name='Crear pedido')
    def create_order(self, request: CreateOrderRequest, user_id: int) -> Order:
        """
        Crea un pedido validando cliente, usuario, productos y stock.

        Args:
            request: Petición validada (cliente, líneas, observaciones)
            user_id: Usuario que registra el pedido

        Returns:
            Pedido creado en estado pending

        Raises:
            NotFound: Cliente, usuario o producto inexistente (o producto inactivo)
            InvalidState: Cliente inactivo
            InsufficientStock: Alguna línea supera el stock disponible
        """
        self.logger.info(
            'Creando pedido para cliente %s (usuario %s)', request.customer_id, user_id
        )

        customer = self.customer_repo.get(request.customer_id)
        if customer is None:
            self.logger.warning('Cliente %s no encontrado', request.customer_id)
            raise NotFound('Cliente', request.customer_id)
        if not customer.active:
            raise InvalidState(f'El cliente {customer.name} está inactivo')

        if self.user_repo.get(user_id) is None:
            self.logger.warning('Usuario %s no encontrado', user_id)
            raise NotFound('Usuario', user_id)

        with self._unit_of_work():
            # Cantidad total por producto, en el orden en que aparecen
            requested: Dict[int, int] = {}
            for line in request.lines:
                requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity

            products = self.product_repo.find_by_ids(list(requested))
            for product_id in requested:
                product = products.get(product_id)
                if product is None or not product.active:
                    self.logger.warning('Producto %s no encontrado o inactivo', product_id)
                    raise NotFound('Producto', product_id)

            shortages = []
            for product_id, quantity in requested.items():
                product = products[product_id]
                if product.stock < quantity:
                    shortages.append({
                        'product_id': product_id,
                        'product_name': product.name,
                        'available': product.stock,
                        'requested': quantity,
                    })
            if shortages:
                first = shortages[0]
                self.logger.warning(
                    'Stock insuficiente en %d producto(s) para cliente %s',
                    len(shortages), request.customer_id
                )
                raise InsufficientStock(
                    first['product_name'], first['available'], first['requested'],
                    shortages=shortages
                )

            # Precio capturado al momento del pedido
            lines = [
                OrderLine(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price=products[line.product_id].price,
                )
                for line in request.lines
            ]
            total = to_money(sum((line.subtotal for line in lines), Decimal('0')))

            order = self.order_repo.create_with_lines(
                customer_id=request.customer_id,
                user_id=user_id,
                lines=lines,
                total=total,
                notes=request.notes,
            )
            for product_id, quantity in requested.items():
                self.product_repo.adjust_stock(product_id, -quantity)

        self.logger.info('Pedido %s creado. Total: %s', order.id, order.total)

        if self.audit_service:
            self.audit_service.log_order_created(
                user_id, order.id, str(order.total), len(order.lines), order.customer_id
            )
            self.audit_service.log_stock_reserved(user_id, order.id, [
                {
                    'product_id': pid,
                    'name': products[pid].name,
                    'quantity': qty,
                }
                for pid, qty in requested.items()
            ])

        return order

    # =========================================================================
    # CAMBIOS DE ESTADO
    # =========================================================================

    @staticmethod
    def _parse_status(status: Union[str, OrderStatus]) -> OrderStatus:
        if isinstance(status, OrderStatus):
            return status
        try:
            return OrderStatus(status)
        except ValueError:
            raise ValidationError(
                f'Estado desconocido: {status}',
                [f"status debe ser uno de: {', '.join(s.value for s in OrderStatus)}"]
            )

    @profile_function(name='Cambiar estado pedido')
    def update_status(
        self,
        order_id: int,
        new_status: Union[str, OrderStatus],
        user_id: Optional[int] = None
    ) -> Order:
        """
        Cambia el estado de un pedido según la máquina de estados.

        Un cambio a cancelled se delega en cancel_order() para devolver
        el stock.

        Raises:
            ValidationError: Estado desconocido
            NotFound: Pedido inexistente
            InvalidTransition: La transición no está permitida
        """
        status = self._parse_status(new_status)

        with self._unit_of_work():
            order = self.order_repo.get(order_id, include_lines=False)
            if order is None:
                self.logger.warning('Pedido %s no encontrado', order_id)
                raise NotFound('Pedido', order_id)

            current = order.status
            if not current.can_transition_to(status):
                self.logger.warning(
                    'Transición inválida en pedido %s: %s → %s',
                    order_id, current.value, status.value
                )
                raise InvalidTransition(current.value, status.value)

            if status == OrderStatus.CANCELLED:
                return self.cancel_order(order_id, user_id)

            updated = self.order_repo.update_status(order_id, status)

        self.logger.info('Pedido %s: %s → %s', order_id, current.value, status.value)
        if self.audit_service:
            self.audit_service.log_order_status_change(
                user_id, order_id, current.value, status.value
            )
        return updated

    @profile_function(name='Cancelar pedido')
    def cancel_order(self, order_id: int, user_id: Optional[int] = None) -> Order:
        """
        Cancela un pedido y devuelve el stock de cada línea.

        Raises:
            NotFound: Pedido (o alguno de sus productos) inexistente
            InvalidState: El pedido ya está cancelado o fue entregado
        """
        self.logger.info('Cancelando pedido %s', order_id)

        with self._unit_of_work():
            order = self.order_repo.get(order_id)
            if order is None:
                self.logger.warning('Pedido %s no encontrado', order_id)
                raise NotFound('Pedido', order_id)
            if order.status == OrderStatus.CANCELLED:
                raise InvalidState('El pedido ya está cancelado')
            if order.status == OrderStatus.DELIVERED:
                raise InvalidState('No se puede cancelar un pedido entregado')

            previous = order.status
            for line in order.lines:
                self.product_repo.adjust_stock(line.product_id, line.quantity)
            cancelled = self.order_repo.update_status(order_id, OrderStatus.CANCELLED)

        self.logger.info('Pedido %s cancelado y stock devuelto', order_id)
        if self.audit_service:
            self.audit_service.log_order_cancelled(user_id, order_id, previous.value)
            self.audit_service.log_stock_released(user_id, order_id)
        return cancelled

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_order(self, order_id: int) -> Order:
        """
        Obtiene un pedido con sus líneas.

        Raises:
            NotFound: Si no existe
        """
        order = self.order_repo.get(order_id)
        if order is None:
            self.logger.warning('Pedido %s no encontrado', order_id)
            raise NotFound('Pedido', order_id)
        return order

    @profile_function(name='Listar pedidos')
    def list_orders(self, filters: Union[OrderFilters, Dict[str, Any], None] = None) -> Dict[str, Any]:
        """
        Lista pedidos filtrados y paginados (más recientes primero).

        Args:
            filters: OrderFilters o dict de query params

        Returns:
            {'orders': [Order], 'pagination': {page, limit, total,
             total_pages, has_next, has_prev}}
        """
        if not isinstance(filters, OrderFilters):
            filters = OrderFilters.from_dict(filters or {})

        orders, total = self.order_repo.find(filters)
        return self._paginated(orders, total, filters.page, filters.limit)

    def get_orders_by_status(
        self,
        status: Union[str, OrderStatus],
        page: int = 1,
        limit: int = 10
    ) -> Dict[str, Any]:
        """
        Pedidos en un estado, paginados (más recientes primero).

        Raises:
            ValidationError: Estado desconocido o paginación inválida
        """
        filters = OrderFilters(status=self._parse_status(status), page=page, limit=limit)
        orders, total = self.order_repo.find_by_status(filters.status, filters.page, filters.limit)
        return self._paginated(orders, total, filters.page, filters.limit)

    def get_recent_orders(self, limit: int = 10, days: int = 30) -> List[Order]:
        """Los pedidos más nuevos de los últimos `days` días."""
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError('limit debe ser un entero positivo')
        since = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()
        return self.order_repo.find_recent(since, limit)

    @staticmethod
    def _paginated(orders: List[Order], total: int, page: int, limit: int) -> Dict[str, Any]:
        total_pages = (total + limit - 1) // limit if total else 0
        return {
            'orders': orders,
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'total_pages': total_pages,
                'has_next': page < total_pages,
                'has_prev': page > 1,
            },
        }

    def get_orders_by_customer(self, customer_id: int) -> List[Order]:
        if self.customer_repo.get(customer_id) is None:
            raise NotFound('Cliente', customer_id)
        return self.order_repo.find_by_customer(customer_id)

    def get_orders_by_product(self, product_id: int) -> List[Order]:
        if self.product_repo.get(product_id) is None:
            raise NotFound('Producto', product_id)
        return self.order_repo.find_by_product(product_id)

    def get_orders_by_date_range(self, date_from: str, date_to: str) -> List[Order]:
        """
        Pedidos realizados entre dos fechas ISO (inclusive).

        Raises:
            ValidationError: Fechas inválidas o date_from posterior a date_to
        """
        start, end = parse_iso(date_from), parse_iso(date_to)
        errors = []
        if start is None:
            errors.append('date_from no es una fecha válida')
        if end is None:
            errors.append('date_to no es una fecha válida')
        if start and end and start > end:
            errors.append('date_from debe ser anterior a date_to')
        if errors:
            raise ValidationError('Rango de fechas inválido', errors)
        return self.order_repo.find_by_date_range(date_from, date_to)

    @profile_function(name='Estadísticas de pedidos')
    def get_statistics(self) -> Dict[str, Any]:
        """
        Calcula estadísticas globales de pedidos.

        Los agregados son lecturas independientes y corren en paralelo,
        cada uno con el tiempo máximo configurado.

        Returns:
            {total_orders, orders_by_status, total_sales, average_order,
             orders_last_month}

        Raises:
            Unavailable: Si algún agregado supera el tiempo máximo
        """
        since = (datetime.now(timezone.utc) - timedelta(days=30)).isoformat()
        results = self._run_parallel('Estadísticas de pedidos', {
            'total_orders': self.order_repo.count_orders,
            'orders_by_status': self.order_repo.count_by_status,
            'total_sales': self.order_repo.sum_totals,
            'orders_last_month': lambda: self.order_repo.count_since(since),
        })

        total_orders = results['total_orders']
        total_sales = results['total_sales']
        average = to_money(total_sales / total_orders) if total_orders else to_money(0)

        self.logger.info('Estadísticas de pedidos calculadas (%d pedidos)', total_orders)
        return {
            'total_orders': total_orders,
            'orders_by_status': results['orders_by_status'],
            'total_sales': total_sales,
            'average_order': average,
            'orders_last_month': results['orders_last_month'],
        }

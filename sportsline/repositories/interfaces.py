# ==============================================================================
# INTERFACES DE REPOSITORIOS
# ==============================================================================
#
# Contratos que deben cumplir los repositorios. Los servicios dependen de
# estas interfaces, NO de las implementaciones JSON concretas:
#
# 1. INDEPENDENCIA DE ALMACENAMIENTO
#    - Cambiar JSON → base de datos solo requiere nuevas implementaciones
#      y cambiar la instanciación en app_container.py
#
# 2. TESTING
#    - Fácil crear dobles en memoria que implementen estas interfaces
#
# Todas las operaciones trabajan con entidades de sportsline.models,
# nunca con dicts crudos.
#
# ==============================================================================

from decimal import Decimal
from typing import Any, Callable, ContextManager, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from sportsline.models import (
    Customer,
    Order,
    OrderFilters,
    OrderLine,
    OrderStatus,
    Product,
    User,
)


@runtime_checkable
class IProductRepository(Protocol):
    """Catálogo de productos y su stock."""

    def get(self, product_id: int) -> Optional[Product]:
        ...

    def find_by_ids(self, product_ids: List[int]) -> Dict[int, Product]:
        ...

    def create(self, product: Product) -> Product:
        ...

    def adjust_stock(self, product_id: int, delta: int) -> Product:
        """Suma delta al stock; lanza InsufficientStock si quedaría negativo."""
        ...

    def update_stock(self, product_id: int, quantity: int, operation: str = 'set') -> Product:
        ...

    def find_low_stock(self, threshold: int = 10) -> List[Product]:
        ...

    def get_categories(self) -> List[str]:
        ...

    def find_by_category(self, category: str, active_only: bool = True) -> List[Product]:
        ...

    def get_statistics(self, threshold: int = 10) -> Dict[str, Any]:
        ...


@runtime_checkable
class ICustomerRepository(Protocol):
    """Clientes de la tienda."""

    def get(self, customer_id: int) -> Optional[Customer]:
        ...

    def create(self, customer: Customer) -> Customer:
        ...

    def find_by_email(self, email: str) -> Optional[Customer]:
        ...

    def get_statistics(self) -> Dict[str, Any]:
        ...


@runtime_checkable
class IUserRepository(Protocol):
    """Usuarios del sistema (personal)."""

    def get(self, user_id: int) -> Optional[User]:
        ...

    def get_by_email(self, email: str) -> Optional[User]:
        ...

    def create(self, user: User) -> User:
        ...

    def save(self, user: User) -> User:
        ...


@runtime_checkable
class IOrderRepository(Protocol):
    """Pedidos con sus líneas."""

    def create_with_lines(
        self,
        customer_id: int,
        user_id: int,
        lines: List[OrderLine],
        total: Decimal,
        notes: Optional[str] = None,
    ) -> Order:
        ...

    def get(self, order_id: int, include_lines: bool = True) -> Optional[Order]:
        ...

    def update_status(self, order_id: int, status: OrderStatus) -> Order:
        ...

    def find(self, filters: OrderFilters) -> Tuple[List[Order], int]:
        """Retorna (página de pedidos, total que coincide con los filtros)."""
        ...

    def find_by_customer(self, customer_id: int) -> List[Order]:
        ...

    def find_by_product(self, product_id: int) -> List[Order]:
        ...

    def find_by_date_range(self, date_from: str, date_to: str) -> List[Order]:
        ...

    def find_by_status(self, status: OrderStatus, page: int = 1, limit: int = 10) -> Tuple[List[Order], int]:
        ...

    def find_recent(self, since_iso: str, limit: int = 10) -> List[Order]:
        ...

    def count_orders(self) -> int:
        ...

    def count_by_status(self) -> Dict[str, int]:
        ...

    def sum_totals(self) -> Decimal:
        ...

    def count_since(self, since_iso: str) -> int:
        ...


@runtime_checkable
class IAuditRepository(Protocol):
    """Log de auditoría."""

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str = '',
        details: Dict[str, Any] = None,
    ) -> None:
        ...

    def load(self) -> List[Dict[str, Any]]:
        ...


# Fábrica de unidades de trabajo: cada llamada retorna un context manager
# que aplica todo o nada sobre los repositorios involucrados.
UnitOfWorkFactory = Callable[[], ContextManager[Any]]

__all__ = [
    'IProductRepository',
    'ICustomerRepository',
    'IUserRepository',
    'IOrderRepository',
    'IAuditRepository',
    'UnitOfWorkFactory',
]

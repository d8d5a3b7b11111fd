# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# Esta capa encapsula todo el acceso a la persistencia (actualmente JSON).
# Las interfaces (métodos públicos) permanecen iguales si cambia el motor.
#
# ESTRUCTURA:
# ├── interfaces.py           → Protocolos (contratos de persistencia)
# ├── base.py                 → Clases base JSON (DictRepository, ListRepository)
# ├── unit_of_work.py         → Todo o nada sobre varios archivos
# ├── product_repository.py   → Acceso a productos.json
# ├── customer_repository.py  → Acceso a clientes.json
# ├── user_repository.py      → Acceso a usuarios.json
# ├── order_repository.py     → Acceso a pedidos.json
# └── audit_repository.py     → Acceso a audit.json
# ==============================================================================

# Interfaces
from .interfaces import (
    IProductRepository,
    ICustomerRepository,
    IUserRepository,
    IOrderRepository,
    IAuditRepository,
    UnitOfWorkFactory,
)

# Implementaciones concretas (JSON)
from .base import BaseRepository, DictRepository, ListRepository
from .unit_of_work import JsonUnitOfWork
from .product_repository import ProductRepository
from .customer_repository import CustomerRepository
from .user_repository import UserRepository
from .order_repository import OrderRepository
from .audit_repository import AuditRepository

__all__ = [
    # Interfaces
    'IProductRepository',
    'ICustomerRepository',
    'IUserRepository',
    'IOrderRepository',
    'IAuditRepository',
    'UnitOfWorkFactory',

    # Clases base
    'BaseRepository',
    'DictRepository',
    'ListRepository',
    'JsonUnitOfWork',

    # Implementaciones JSON
    'ProductRepository',
    'CustomerRepository',
    'UserRepository',
    'OrderRepository',
    'AuditRepository',
]

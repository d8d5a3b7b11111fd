# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Entidades del dominio (dataclasses) y tipos de petición validados.
# Independientes del mecanismo de persistencia.
# ==============================================================================

from .entities import (
    # Utilidades de montos y fechas
    to_money,
    utc_now_iso,
    parse_iso,

    # Usuarios
    User,
    UserRole,

    # Clientes y productos
    Customer,
    DocumentType,
    Product,

    # Pedidos
    Order,
    OrderLine,
    OrderStatus,
    ORDER_STATUS_TRANSITIONS,

    # Cifrado
    EncryptedEnvelope,
    EncryptedOrderData,

    # Auditoría
    AuditLog,
    AuditType,
)
from .requests import CreateOrderRequest, OrderLineRequest, OrderFilters

__all__ = [
    'to_money',
    'utc_now_iso',
    'parse_iso',

    'User',
    'UserRole',

    'Customer',
    'DocumentType',
    'Product',

    'Order',
    'OrderLine',
    'OrderStatus',
    'ORDER_STATUS_TRANSITIONS',

    'EncryptedEnvelope',
    'EncryptedOrderData',

    'AuditLog',
    'AuditType',

    'CreateOrderRequest',
    'OrderLineRequest',
    'OrderFilters',
]

# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio
# ==============================================================================
# Los servicios dependen de las interfaces de repositorios, nunca de
# archivos JSON directamente.
#
# ESTRUCTURA:
# ├── base_service.py               → Tiempo máximo y ejecución en paralelo
# ├── audit_service.py              → Registro de auditoría
# ├── order_service.py              → Pedidos (crear, estados, cancelar, consultas)
# ├── inventory_service.py          → Stock manual y alertas
# ├── hybrid_encryption_service.py  → Sobre AES-256-GCM + RSA-OAEP
# ├── order_encryption_service.py   → Cifrado de datos de pedidos
# ├── token_service.py              → JWT de acceso/renovación
# └── auth_service.py               → Registro, login y credenciales
# ==============================================================================

from .base_service import BaseService
from .audit_service import AuditService
from .order_service import OrderService
from .inventory_service import InventoryService
from .hybrid_encryption_service import HybridEncryptionService, load_or_generate_key_pair
from .order_encryption_service import OrderEncryptionService
from .token_service import TokenService
from .auth_service import AuthService

__all__ = [
    'BaseService',
    'AuditService',
    'OrderService',
    'InventoryService',
    'HybridEncryptionService',
    'load_or_generate_key_pair',
    'OrderEncryptionService',
    'TokenService',
    'AuthService',
]

# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Punto único para obtener repositorios y servicios. Facilita:
#   - Inyección de dependencias
#   - Testing (cada test puede usar su propio data_dir)
#   - Cambiar de persistencia sin tocar servicios
#
# ═══════════════════════════════════════════════════════════════════════════════
# CAMBIAR A UNA BASE DE DATOS
# ═══════════════════════════════════════════════════════════════════════════════
#
# 1. Crear repositorios que implementen las interfaces de
#    repositories/interfaces.py (IOrderRepository, IProductRepository, ...)
# 2. Instanciarlos en las propiedades de este archivo
# 3. Pasar a OrderService una fábrica de unidades de trabajo que abra una
#    transacción de la base de datos en lugar de JsonUnitOfWork
#
# Los servicios NO cambian: dependen de interfaces, no de implementaciones.
# ==============================================================================

from typing import Optional

from sportsline.config import Settings

# ═══════════════════════════════════════════════════════════════════════════════
# REPOSITORIOS - Capa de persistencia (JSON)
# ═══════════════════════════════════════════════════════════════════════════════
from sportsline.repositories import (
    AuditRepository,
    CustomerRepository,
    JsonUnitOfWork,
    OrderRepository,
    ProductRepository,
    UserRepository,
)

# ═══════════════════════════════════════════════════════════════════════════════
# SERVICIOS - Capa de lógica de negocio
# ═══════════════════════════════════════════════════════════════════════════════
from sportsline.services import (
    AuditService,
    AuthService,
    HybridEncryptionService,
    InventoryService,
    OrderEncryptionService,
    OrderService,
    TokenService,
    load_or_generate_key_pair,
)


class AppContainer:
    """
    Contenedor de dependencias de la aplicación.

    Cada repositorio y servicio se crea la primera vez que se pide y
    después se reutiliza.

    Uso:
        container = AppContainer(Settings.from_env())
        order_service = container.order_service
    """

    _instance: Optional['AppContainer'] = None

    def __init__(self, settings: Settings = None):
        """
        Args:
            settings: Configuración (por defecto Settings.from_env())
        """
        self.settings = settings or Settings.from_env()
        self.reset()

    # =========================================================================
    # REPOSITORIOS
    # =========================================================================

    @property
    def product_repo(self) -> ProductRepository:
        if self._product_repo is None:
            self._product_repo = ProductRepository(self.settings.data_dir)
        return self._product_repo

    @property
    def customer_repo(self) -> CustomerRepository:
        if self._customer_repo is None:
            self._customer_repo = CustomerRepository(self.settings.data_dir)
        return self._customer_repo

    @property
    def user_repo(self) -> UserRepository:
        if self._user_repo is None:
            self._user_repo = UserRepository(self.settings.data_dir)
        return self._user_repo

    @property
    def order_repo(self) -> OrderRepository:
        if self._order_repo is None:
            self._order_repo = OrderRepository(self.settings.data_dir)
        return self._order_repo

    @property
    def audit_repo(self) -> AuditRepository:
        if self._audit_repo is None:
            self._audit_repo = AuditRepository(self.settings.data_dir)
        return self._audit_repo

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def audit_service(self) -> AuditService:
        """Servicio de auditoría (singleton)."""
        if self._audit_service is None:
            self._audit_service = AuditService(self.audit_repo)
        return self._audit_service

    @property
    def inventory_service(self) -> InventoryService:
        """Servicio de inventario (singleton)."""
        if self._inventory_service is None:
            self._inventory_service = InventoryService(self.product_repo, self.audit_service)
        return self._inventory_service

    @property
    def order_service(self) -> OrderService:
        """Servicio de pedidos (singleton)."""
        if self._order_service is None:
            self._order_service = OrderService(
                self.order_repo,
                self.product_repo,
                self.customer_repo,
                self.user_repo,
                self.audit_service,
                unit_of_work=lambda: JsonUnitOfWork(self.order_repo, self.product_repo),
                timeout=self.settings.operation_timeout,
            )
        return self._order_service

    @property
    def encryption_service(self) -> HybridEncryptionService:
        """Servicio de cifrado híbrido (singleton)."""
        if self._encryption_service is None:
            self._encryption_service = HybridEncryptionService(self.settings.operation_timeout)
        return self._encryption_service

    @property
    def order_encryption_service(self) -> OrderEncryptionService:
        """Cifrado de pedidos con el par de llaves de la aplicación (singleton)."""
        if self._order_encryption_service is None:
            public_pem, private_pem = load_or_generate_key_pair(
                self.encryption_service,
                self.settings.rsa_public_key,
                self.settings.rsa_private_key,
            )
            self._order_encryption_service = OrderEncryptionService(
                self.encryption_service, public_pem, private_pem, self.audit_service
            )
        return self._order_encryption_service

    @property
    def token_service(self) -> TokenService:
        if self._token_service is None:
            self._token_service = TokenService(
                self.settings.jwt_secret,
                self.settings.jwt_expires_in,
                self.settings.jwt_refresh_expires_in,
            )
        return self._token_service

    @property
    def auth_service(self) -> AuthService:
        """Servicio de autenticación (singleton)."""
        if self._auth_service is None:
            self._auth_service = AuthService(self.user_repo, self.token_service, self.audit_service)
        return self._auth_service

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def reset(self) -> None:
        """
        Reinicia todas las instancias.
        Útil para testing o para recargar datos.
        """
        self._product_repo = None
        self._customer_repo = None
        self._user_repo = None
        self._order_repo = None
        self._audit_repo = None

        self._audit_service = None
        self._inventory_service = None
        self._order_service = None
        self._encryption_service = None
        self._order_encryption_service = None
        self._token_service = None
        self._auth_service = None

    @classmethod
    def get_instance(cls, settings: Settings = None) -> 'AppContainer':
        """
        Obtiene la instancia global del contenedor.

        Args:
            settings: Configuración (solo se usa en la primera llamada)
        """
        if cls._instance is None:
            cls._instance = cls(settings)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Elimina la instancia global (útil para tests)."""
        if cls._instance is not None:
            cls._instance.reset()
            cls._instance = None


def get_container(settings: Settings = None) -> AppContainer:
    """Obtiene el contenedor de dependencias global."""
    return AppContainer.get_instance(settings)

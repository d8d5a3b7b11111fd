# ==============================================================================
# SERVICIO DE INVENTARIO
# ==============================================================================
# Operaciones manuales sobre el stock de productos.
# El descuento/devolución por pedidos lo hace OrderService.
# ==============================================================================

from typing import Any, Dict, List, Optional

from sportsline.config import LOW_STOCK_THRESHOLD
from sportsline.errors import NotFound, ValidationError
from sportsline.models import Product
from sportsline.repositories.interfaces import IProductRepository
from sportsline.services.audit_service import AuditService
from sportsline.services.base_service import BaseService


class InventoryService(BaseService):
    """
    Servicio para gestión de inventario.

    Responsabilidades:
    - Consulta de productos
    - Entradas, salidas y reemplazo manual de stock
    - Alertas de stock bajo
    """

    def __init__(
        self,
        product_repo: IProductRepository,
        audit_service: AuditService = None
    ):
        """
        Inicializa el servicio de inventario.

        Args:
            product_repo: Repositorio de productos
            audit_service: Servicio de auditoría (opcional)
        """
        super().__init__()
        self.product_repo = product_repo
        self.audit_service = audit_service

    def get_product(self, product_id: int) -> Product:
        """
        Raises:
            NotFound: Si el producto no existe
        """
        product = self.product_repo.get(product_id)
        if product is None:
            raise NotFound('Producto', product_id)
        return product

    def create_product(self, product: Product) -> Product:
        created = self.product_repo.create(product)
        self.logger.info('Producto creado: %s (%s)', created.name, created.code)
        return created

    def update_stock(
        self,
        product_id: int,
        quantity: int,
        operation: str = 'set',
        user_id: Optional[int] = None
    ) -> Product:
        """
        Actualiza el stock de un producto.

        Args:
            product_id: ID del producto
            quantity: Cantidad (>= 0)
            operation: 'add', 'subtract' (sin bajar de 0) o 'set'
            user_id: Usuario que realiza el cambio

        Returns:
            Producto actualizado

        Raises:
            NotFound: Si el producto no existe
            ValidationError: Operación o cantidad inválida
        """
        product = self.product_repo.update_stock(product_id, quantity, operation)
        self.logger.info(
            'Stock de producto %s actualizado (%s %d) → %d',
            product_id, operation, quantity, product.stock
        )
        if self.audit_service:
            self.audit_service.log_stock_update(
                user_id, product.id, product.name, operation, quantity, product.stock
            )
        return product

    def get_low_stock_products(self, threshold: int = LOW_STOCK_THRESHOLD) -> List[Product]:
        """Productos activos con stock <= threshold."""
        products = self.product_repo.find_low_stock(threshold)
        if products:
            self.logger.warning('%d producto(s) con stock bajo', len(products))
        return products

    # =========================================================================
    # CATÁLOGO
    # =========================================================================

    def get_categories(self) -> List[str]:
        return self.product_repo.get_categories()

    def get_products_by_category(self, category: str) -> List[Product]:
        """Productos activos de una categoría, por nombre."""
        if not isinstance(category, str) or not category.strip():
            raise ValidationError('La categoría es obligatoria')
        return self.product_repo.find_by_category(category.strip())

    def get_statistics(self) -> Dict[str, Any]:
        """
        Estadísticas del catálogo.

        Returns:
            {total, active, inactive, low_stock, categories, total_value}
        """
        stats = self.product_repo.get_statistics(LOW_STOCK_THRESHOLD)
        self.logger.info(
            'Estadísticas de inventario calculadas (%d productos, %d con stock bajo)',
            stats['total'], stats['low_stock']
        )
        return stats

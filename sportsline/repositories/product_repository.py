# ==============================================================================
# REPOSITORIO DE PRODUCTOS
# ==============================================================================
# Encapsula todo el acceso a productos.json
# Los productos se almacenan como diccionario: {id: {datos}}
# ==============================================================================

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sportsline.config import LOW_STOCK_THRESHOLD
from sportsline.errors import InsufficientStock, NotFound, ValidationError
from sportsline.models import Product, to_money

from .base import DictRepository

logger = logging.getLogger(__name__)

# Etiqueta de los productos sin categoría en las estadísticas
UNCATEGORIZED = 'Sin categoría'


class ProductRepository(DictRepository):
    """
    Repositorio del catálogo de productos.

    Formato de datos en productos.json:
    {
        "1": {"id": 1, "code": "BAL-001", "name": "Balón", "price": "89.99",
              "stock": 50, "category": "futbol", "active": true}
    }
    """

    file_name = 'productos.json'

    # Operaciones aceptadas por update_stock()
    STOCK_OPERATIONS = ('add', 'subtract', 'set')

    def get(self, product_id: int) -> Optional[Product]:
        """
        Obtiene un producto por su ID.

        Returns:
            Product o None si no existe
        """
        data = self.get_by_id(product_id)
        return Product.from_dict(data) if data else None

    def find_by_ids(self, product_ids: List[int]) -> Dict[int, Product]:
        """Obtiene varios productos de una sola lectura. Omite los inexistentes."""
        all_data = self.get_all()
        result = {}
        for pid in product_ids:
            data = all_data.get(str(pid))
            if data:
                result[pid] = Product.from_dict(data)
        return result

    def list_products(self, active_only: bool = False) -> List[Product]:
        products = [Product.from_dict(p) for p in self.get_all().values()]
        if active_only:
            products = [p for p in products if p.active]
        return sorted(products, key=lambda p: p.id)

    def code_exists(self, code: str) -> bool:
        return any(p.get('code') == code for p in self.get_all().values())

    def create(self, product: Product) -> Product:
        """
        Crea un producto asignándole el siguiente ID si no trae uno.

        Raises:
            ValidationError: Si el código ya existe
        """
        with self._file_lock:
            if self.code_exists(product.code):
                raise ValidationError(f'El código {product.code} ya existe')
            if not product.id:
                product.id = self.next_id()
            self.update(product.id, product.to_dict())
        return product

    def save(self, product: Product) -> Product:
        self.update(product.id, product.to_dict())
        return product

    # =========================================================================
    # STOCK
    # =========================================================================

    def adjust_stock(self, product_id: int, delta: int) -> Product:
        """
        Suma delta (positivo o negativo) al stock del producto.

        Args:
            product_id: ID del producto
            delta: Unidades a sumar; negativo para descontar

        Returns:
            Producto actualizado

        Raises:
            NotFound: Si el producto no existe
            InsufficientStock: Si el stock resultante sería negativo
        """
        with self._file_lock:
            product = self.get(product_id)
            if product is None:
                raise NotFound('Producto', product_id)
            new_stock = product.stock + delta
            if new_stock < 0:
                raise InsufficientStock(product.name, product.stock, -delta)
            product.stock = new_stock
            self.save(product)
        logger.debug('Stock de producto %s ajustado en %+d → %d', product_id, delta, new_stock)
        return product

    def update_stock(self, product_id: int, quantity: int, operation: str = 'set') -> Product:
        """
        Actualización manual de stock.

        Args:
            product_id: ID del producto
            quantity: Cantidad (>= 0)
            operation: 'add' suma, 'subtract' resta (sin bajar de 0), 'set' reemplaza

        Raises:
            NotFound: Si el producto no existe
            ValidationError: Si la operación o la cantidad son inválidas
        """
        if operation not in self.STOCK_OPERATIONS:
            raise ValidationError(f'Operación de stock desconocida: {operation}')
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
            raise ValidationError('La cantidad debe ser un entero >= 0')

        with self._file_lock:
            product = self.get(product_id)
            if product is None:
                raise NotFound('Producto', product_id)
            if operation == 'add':
                product.stock += quantity
            elif operation == 'subtract':
                product.stock = max(0, product.stock - quantity)
            else:
                product.stock = quantity
            self.save(product)
        return product

    def find_low_stock(self, threshold: int = LOW_STOCK_THRESHOLD) -> List[Product]:
        """Productos activos con stock <= threshold, menor stock primero."""
        low = [
            p for p in self.list_products(active_only=True)
            if p.is_low_stock(threshold)
        ]
        return sorted(low, key=lambda p: (p.stock, p.id))

    # =========================================================================
    # CATEGORÍAS Y ESTADÍSTICAS
    # =========================================================================

    def get_categories(self) -> List[str]:
        """Categorías de productos activos, sin repetir y ordenadas."""
        return sorted({p.category for p in self.list_products(active_only=True) if p.category})

    def find_by_category(self, category: str, active_only: bool = True) -> List[Product]:
        """Productos de una categoría, ordenados por nombre."""
        products = [p for p in self.list_products(active_only) if p.category == category]
        return sorted(products, key=lambda p: (p.name, p.id))

    def get_statistics(self, threshold: int = LOW_STOCK_THRESHOLD) -> Dict[str, Any]:
        """
        Resumen del catálogo.

        Returns:
            {total, active, inactive, low_stock, categories, total_value}
            categories cuenta productos activos por categoría; total_value
            es la suma de precio * stock de los activos.
        """
        products = self.list_products()
        active = [p for p in products if p.active]

        categories: Dict[str, int] = {}
        for product in active:
            name = product.category or UNCATEGORIZED
            categories[name] = categories.get(name, 0) + 1

        total_value = to_money(sum((p.price * p.stock for p in active), Decimal('0')))
        return {
            'total': len(products),
            'active': len(active),
            'inactive': len(products) - len(active),
            'low_stock': sum(1 for p in active if p.is_low_stock(threshold)),
            'categories': categories,
            'total_value': total_value,
        }

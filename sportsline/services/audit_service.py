# ==============================================================================
# SERVICIO DE AUDITORÍA
# ==============================================================================
# Centraliza toda la lógica de registro de auditoría.
# Formatea mensajes humanizados y categoriza eventos.
# ==============================================================================

from typing import Any, Dict, List

from sportsline.models import AuditType
from sportsline.repositories.interfaces import IAuditRepository


class AuditService:
    """
    Servicio para registro y consulta de auditoría.

    Centraliza:
    - Registro de eventos con mensajes humanizados
    - Categorización de eventos (PEDIDO, STOCK, CIFRADO, USUARIO, SISTEMA)
    - Consulta de logs

    Todo movimiento de stock deja un log de STOCK.
    """

    def __init__(self, audit_repo: IAuditRepository):
        """
        Inicializa el servicio de auditoría.

        Args:
            audit_repo: Repositorio de auditoría
        """
        self.audit_repo = audit_repo

    # =========================================================================
    # REGISTRO DE EVENTOS
    # =========================================================================

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str = '',
        details: Dict[str, Any] = None
    ) -> None:
        """
        Registra un evento de auditoría genérico.

        Args:
            log_type: Tipo de evento (PEDIDO, STOCK, CIFRADO, etc.)
            user: Usuario que realizó la acción
            message: Mensaje descriptivo humanizado
            related_id: ID relacionado (pedido, producto, etc.)
            details: Detalles adicionales
        """
        if isinstance(log_type, AuditType):
            log_type = log_type.value
        self.audit_repo.log(log_type, str(user) if user is not None else '', message, str(related_id), details)

    def log_order_created(
        self,
        user: str,
        order_id: int,
        total: str,
        lines_count: int,
        customer_id: int
    ) -> None:
        """
        Registra la creación de un pedido.

        Args:
            user: Usuario que creó el pedido
            order_id: ID del pedido
            total: Total del pedido (texto decimal)
            lines_count: Cantidad de líneas
            customer_id: Cliente del pedido
        """
        message = f"Pedido {order_id} creado por {user} - Total: $ {total} - {lines_count} productos"
        self.log(
            AuditType.PEDIDO,
            user,
            message,
            order_id,
            {'total': total, 'lines_count': lines_count, 'customer_id': customer_id}
        )

    def log_order_status_change(
        self,
        user: str,
        order_id: int,
        old_status: str,
        new_status: str
    ) -> None:
        """Registra un cambio de estado de pedido."""
        message = f"Pedido {order_id}: {old_status} → {new_status} por {user}"
        self.log(
            AuditType.PEDIDO,
            user,
            message,
            order_id,
            {'from': old_status, 'to': new_status}
        )

    def log_order_cancelled(self, user: str, order_id: int, previous_status: str) -> None:
        message = f"Pedido {order_id} cancelado por {user} (estado previo: {previous_status})"
        self.log(
            AuditType.PEDIDO,
            user,
            message,
            order_id,
            {'from': previous_status, 'to': 'cancelled'}
        )

    def log_stock_reserved(self, user: str, order_id: int, items: List[Dict[str, Any]]) -> None:
        """
        Registra el descuento de stock por un pedido.

        Args:
            user: Usuario
            order_id: ID del pedido
            items: [{'product_id', 'name', 'quantity'}]
        """
        items_desc = ", ".join([f"{i.get('quantity')}x {i.get('name', '')}" for i in items[:3]])
        if len(items) > 3:
            items_desc += f" (+{len(items)-3} más)"

        message = f"Stock descontado para pedido {order_id}: {items_desc}"
        self.log(AuditType.STOCK, user, message, order_id, {'items': items})

    def log_stock_released(self, user: str, order_id: int, reason: str = 'cancelación') -> None:
        """Registra devolución de stock (por cancelación u otra razón)."""
        message = f"Stock devuelto del pedido {order_id} por {reason}"
        self.log(AuditType.STOCK, user, message, order_id, {'reason': reason})

    def log_stock_update(
        self,
        user: str,
        product_id: int,
        product_name: str,
        operation: str,
        quantity: int,
        new_stock: int
    ) -> None:
        """Registra una actualización manual de stock."""
        message = (
            f"Stock de {product_name}: {operation} {quantity} - "
            f"Nuevo stock: {new_stock} - Por {user}"
        )
        self.log(
            AuditType.STOCK,
            user,
            message,
            f"producto-{product_id}",
            {'operation': operation, 'quantity': quantity, 'new_stock': new_stock}
        )

    def log_encryption(self, audit_entry: Dict[str, Any]) -> None:
        """
        Registra una operación de cifrado.

        Args:
            audit_entry: Entrada generada por OrderEncryptionService
        """
        message = f"Operación de cifrado '{audit_entry.get('operation')}' sobre pedido {audit_entry.get('orderId')}"
        self.log(
            AuditType.CIFRADO,
            audit_entry.get('userId'),
            message,
            audit_entry.get('orderId', ''),
            audit_entry
        )

    def log_user_registered(self, user_id: int, email: str, role: str) -> None:
        message = f"Usuario registrado: {email} ({role})"
        self.log(AuditType.USUARIO, user_id, message, f"usuario-{user_id}", {'email': email, 'role': role})

    def log_user_login(self, user_id: int, email: str) -> None:
        """Registra un inicio de sesión."""
        message = f"Inicio de sesión: {email}"
        self.log(AuditType.USUARIO, user_id, message, f"usuario-{user_id}")

    def log_password_change(self, user_id: int) -> None:
        message = f"Contraseña cambiada para usuario {user_id}"
        self.log(AuditType.USUARIO, user_id, message, f"usuario-{user_id}")

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_logs_by_type(self, log_type: str) -> List[Dict[str, Any]]:
        if isinstance(log_type, AuditType):
            log_type = log_type.value
        return [log for log in self.audit_repo.load() if log.get('type') == log_type]

    def get_order_history(self, order_id: int) -> List[Dict[str, Any]]:
        """Todos los eventos relacionados con un pedido, más recientes primero."""
        return [
            log for log in self.audit_repo.load()
            if log.get('related_id') == str(order_id)
        ]

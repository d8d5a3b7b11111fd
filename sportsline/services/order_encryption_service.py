# ==============================================================================
# SERVICIO DE CIFRADO DE PEDIDOS
# ==============================================================================
# Aplica el sobre híbrido a los datos sensibles de pedidos:
#   - observaciones, líneas y metadatos de un pedido
#   - payloads de creación y actualización
#   - filtros de búsqueda y estadísticas
#
# Todas las operaciones usan el par de llaves de la aplicación.
# ==============================================================================

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from sportsline.errors import DecryptionError, SportslineError, ValidationError
from sportsline.models import EncryptedEnvelope, EncryptedOrderData, Order, utc_now_iso
from sportsline.services.audit_service import AuditService
from sportsline.services.hybrid_encryption_service import EnvelopeLike, HybridEncryptionService


def _money_as_text(value: Any) -> Any:
    """Convierte los Decimal (también anidados) a texto para serializar a JSON."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _money_as_text(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_money_as_text(v) for v in value]
    return value


class OrderEncryptionService:
    """
    Cifrado de datos de pedidos con el par de llaves de la aplicación.

    Uso:
        service = OrderEncryptionService(hybrid, public_pem, private_pem)
        encrypted = service.encrypt_order_data(order)
        plain = service.decrypt_order_data(encrypted)
    """

    def __init__(
        self,
        encryption_service: HybridEncryptionService,
        public_pem: str,
        private_pem: str,
        audit_service: AuditService = None
    ):
        """
        Args:
            encryption_service: Primitivas de cifrado híbrido
            public_pem: Llave pública RSA de la aplicación
            private_pem: Llave privada RSA de la aplicación
            audit_service: Servicio de auditoría (opcional)
        """
        self.encryption_service = encryption_service
        self.public_pem = public_pem
        self.private_pem = private_pem
        self.audit_service = audit_service
        self.logger = logging.getLogger(__name__)

    def _seal(self, payload: Any) -> EncryptedEnvelope:
        return self.encryption_service.encrypt(payload, self.public_pem)

    def _open_json(self, envelope: EnvelopeLike) -> Any:
        return self.encryption_service.decrypt_json(envelope, self.private_pem)

    def _seal_with_timestamp(self, data: Dict[str, Any], what: str) -> EncryptedEnvelope:
        if not isinstance(data, dict):
            raise ValidationError(f'Los datos de {what} deben ser un objeto')
        self.logger.info('Cifrando %s', what)
        envelope = self._seal({**data, 'timestamp': utc_now_iso()})
        self.logger.info('%s cifrado(s) correctamente', what.capitalize())
        return envelope

    def _open_object(self, envelope: EnvelopeLike, what: str) -> Dict[str, Any]:
        self.logger.info('Descifrando %s', what)
        data = self._open_json(envelope)
        if not isinstance(data, dict):
            raise DecryptionError(f'Los datos de {what} descifrados no son un objeto')
        return data

    # =========================================================================
    # DATOS DE PEDIDO
    # =========================================================================

    def encrypt_order_data(self, order: Order) -> EncryptedOrderData:
        """
        Cifra observaciones, líneas y metadatos de un pedido, cada uno en
        su propio sobre.

        Observaciones y líneas solo se cifran si existen; los metadatos
        siempre.
        """
        self.logger.info('Cifrando datos del pedido %s', order.id)
        try:
            encrypted = EncryptedOrderData(order_id=order.id)
            if order.notes:
                encrypted.encrypted_notes = self._seal(order.notes)
            if order.lines:
                encrypted.encrypted_lines = self._seal([line.to_dict() for line in order.lines])
            encrypted.encrypted_metadata = self._seal({
                'customer_id': order.customer_id,
                'user_id': order.user_id,
                'total': str(order.total),
                'status': order.status.value,
                'placed_at': order.placed_at,
                'created_at': order.created_at,
                'updated_at': order.updated_at,
            })
        except SportslineError:
            self.logger.exception('Error cifrando datos del pedido %s', order.id)
            raise
        self.logger.info('Datos del pedido %s cifrados correctamente', order.id)
        return encrypted

    def decrypt_order_data(self, data: EncryptedOrderData) -> Dict[str, Any]:
        """
        Descifra los sobres presentes de un pedido.

        Returns:
            {'order_id', 'notes'?, 'lines'?, 'metadata'?}

        Raises:
            DecryptionError: Si algún sobre no abre
        """
        self.logger.info('Descifrando datos del pedido %s', data.order_id)
        result: Dict[str, Any] = {'order_id': data.order_id}
        try:
            if data.encrypted_notes is not None:
                result['notes'] = self.encryption_service.decrypt(
                    data.encrypted_notes, self.private_pem
                )
            if data.encrypted_lines is not None:
                result['lines'] = self._open_json(data.encrypted_lines)
            if data.encrypted_metadata is not None:
                result['metadata'] = self._open_json(data.encrypted_metadata)
        except DecryptionError:
            self.logger.error('Error descifrando datos del pedido %s', data.order_id)
            raise
        self.logger.info('Datos del pedido %s descifrados correctamente', data.order_id)
        return result

    # =========================================================================
    # PAYLOADS (creación, actualización, filtros, estadísticas)
    # =========================================================================

    def encrypt_creation_data(self, data: Dict[str, Any]) -> EncryptedEnvelope:
        return self._seal_with_timestamp(data, 'datos de creación')

    def decrypt_creation_data(self, envelope: EnvelopeLike) -> Dict[str, Any]:
        return self._open_object(envelope, 'datos de creación')

    def encrypt_update_data(self, data: Dict[str, Any]) -> EncryptedEnvelope:
        return self._seal_with_timestamp(data, 'datos de actualización')

    def decrypt_update_data(self, envelope: EnvelopeLike) -> Dict[str, Any]:
        return self._open_object(envelope, 'datos de actualización')

    def encrypt_search_filters(self, filters: Dict[str, Any]) -> EncryptedEnvelope:
        return self._seal_with_timestamp(filters, 'filtros de búsqueda')

    def decrypt_search_filters(self, envelope: EnvelopeLike) -> Dict[str, Any]:
        return self._open_object(envelope, 'filtros de búsqueda')

    def encrypt_statistics(self, stats: Dict[str, Any]) -> EncryptedEnvelope:
        """Cifra estadísticas. Los Decimal viajan como texto."""
        if not isinstance(stats, dict):
            raise ValidationError('Los datos de estadísticas deben ser un objeto')
        return self._seal_with_timestamp(_money_as_text(stats), 'estadísticas')

    def decrypt_statistics(self, envelope: EnvelopeLike) -> Dict[str, Any]:
        return self._open_object(envelope, 'estadísticas')

    # =========================================================================
    # AUDITORÍA E INTEGRIDAD
    # =========================================================================

    def generate_encryption_audit_log(
        self,
        operation: str,
        order_id: int,
        user_id: int
    ) -> EncryptedEnvelope:
        """
        Genera un registro cifrado de una operación de cifrado.

        Si hay AuditService, el registro también queda en el log de auditoría.

        Returns:
            Sobre con {operation, orderId, userId, timestamp, action}
        """
        entry = {
            'operation': operation,
            'orderId': order_id,
            'userId': user_id,
            'timestamp': utc_now_iso(),
            'action': 'encryption_operation',
        }
        envelope = self._seal(entry)
        if self.audit_service:
            self.audit_service.log_encryption(entry)
        self.logger.info(
            'Registro de auditoría de cifrado generado (%s, pedido %s, usuario %s)',
            operation, order_id, user_id
        )
        return envelope

    def verify_encryption_integrity(
        self,
        envelope: EnvelopeLike,
        expected_hash: Optional[str] = None
    ) -> bool:
        """
        Verifica que un sobre abre con la llave de la aplicación.

        Args:
            envelope: Sobre a verificar
            expected_hash: SHA-256 hex esperado del texto plano (opcional)

        Returns:
            True si el tag GCM verifica y, si se da expected_hash, el hash
            del texto plano coincide. Nunca lanza por entradas inválidas.
        """
        try:
            plaintext = self.encryption_service.decrypt(envelope, self.private_pem)
        except (DecryptionError, ValidationError) as e:
            self.logger.warning('Verificación de integridad fallida: %s', e.message)
            return False

        if expected_hash is None:
            return True
        is_valid = self.encryption_service.hash_data(plaintext) == str(expected_hash).lower()
        self.logger.info('Integridad de cifrado verificada: %s', is_valid)
        return is_valid

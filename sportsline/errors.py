# ==============================================================================
# ERRORES DEL DOMINIO - Taxonomía de fallos tipados
# ==============================================================================
# Todos los servicios lanzan subclases de SportslineError.
# La capa HTTP (middlewares.register_error_handlers) las traduce a códigos
# de estado y al sobre JSON {"success": false, "message": ..., "error": ...}.
# ==============================================================================

from typing import Any, Dict, List, Optional


class SportslineError(Exception):
    """Excepción base de la aplicación."""

    code = 'error'
    status_code = 500
    retryable = False

    def __init__(self, message: str = ''):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """Convierte el error al sobre de respuesta."""
        return {
            'success': False,
            'message': self.message,
            'error': self.code,
        }


class NotFound(SportslineError):
    """Cliente, producto, usuario o pedido inexistente."""

    code = 'not_found'
    status_code = 404

    def __init__(self, resource: str, resource_id: Any = None):
        self.resource = resource
        self.resource_id = resource_id
        if resource_id is None:
            message = f'{resource} no encontrado'
        else:
            message = f'{resource} {resource_id} no encontrado'
        super().__init__(message)


class InvalidState(SportslineError):
    """La entidad existe pero su estado no admite la operación."""

    code = 'invalid_state'
    status_code = 409


class InsufficientStock(SportslineError):
    """
    La cantidad solicitada supera el stock disponible.

    Los atributos product_name/available/requested describen la primera
    línea que falla; shortages contiene todas las líneas con faltante.
    """

    code = 'insufficient_stock'
    status_code = 409

    def __init__(
        self,
        product_name: str,
        available: int,
        requested: int,
        shortages: Optional[List[Dict[str, Any]]] = None
    ):
        self.product_name = product_name
        self.available = available
        self.requested = requested
        self.shortages = shortages or [{
            'product_name': product_name,
            'available': available,
            'requested': requested,
        }]
        super().__init__(
            f'Stock insuficiente para {product_name}. '
            f'Disponible: {available}, Solicitado: {requested}'
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['shortages'] = self.shortages
        return data


class InvalidTransition(SportslineError):
    """Cambio de estado de pedido no permitido por la máquina de estados."""

    code = 'invalid_transition'
    status_code = 409

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(
            f'Transición de estado inválida: "{current}" → "{requested}"'
        )


class DecryptionError(SportslineError):
    """Llave privada incorrecta, sobre corrupto o tag GCM inválido."""

    code = 'decryption_error'
    status_code = 400


class ValidationError(SportslineError):
    """Entrada mal formada."""

    code = 'validation_error'
    status_code = 400

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or [message]

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['errors'] = self.errors
        return data


class AuthenticationError(SportslineError):
    """Token ausente, inválido o expirado."""

    code = 'unauthorized'
    status_code = 401


class PermissionDenied(SportslineError):
    """El usuario autenticado no tiene el rol requerido."""

    code = 'forbidden'
    status_code = 403


class RateLimitExceeded(SportslineError):
    """Demasiadas peticiones en la ventana actual."""

    code = 'rate_limited'
    status_code = 429

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__('Demasiadas peticiones, intenta más tarde')

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['retryAfter'] = self.retry_after
        return data


class Unavailable(SportslineError):
    """Una operación de persistencia o criptografía excedió su tiempo límite."""

    code = 'unavailable'
    status_code = 503
    retryable = True


__all__ = [
    'SportslineError',
    'NotFound',
    'InvalidState',
    'InsufficientStock',
    'InvalidTransition',
    'DecryptionError',
    'ValidationError',
    'AuthenticationError',
    'PermissionDenied',
    'RateLimitExceeded',
    'Unavailable',
]

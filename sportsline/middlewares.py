# ==============================================================================
# MIDDLEWARES FLASK - Autenticación, roles, rate limit, headers y errores
# ==============================================================================
# Decoradores para rutas:
#   @token_required              → exige "Authorization: Bearer <access token>"
#   @roles_required('admin')     → exige uno de los roles indicados
#
# Hooks de aplicación (registrados por create_app):
#   init_rate_limiter(app, ...)  → límite de peticiones por IP
#   init_security_headers(app)   → headers de seguridad en cada respuesta
#   register_error_handlers(app) → errores de dominio → JSON + status HTTP
# ==============================================================================

import logging
import threading
import time
from functools import wraps
from typing import Dict, Tuple

from flask import current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException

from sportsline.errors import (
    AuthenticationError,
    PermissionDenied,
    RateLimitExceeded,
    SportslineError,
)
from sportsline.services.token_service import TOKEN_TYPE_ACCESS

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'sportsline'


def _container():
    return current_app.extensions[EXTENSION_KEY]


# ═══════════════════════════════════════════════════════════════════════════════
# AUTENTICACIÓN Y ROLES
# ═══════════════════════════════════════════════════════════════════════════════

def _bearer_token() -> str:
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        raise AuthenticationError('Token de acceso requerido')
    return token.strip()


def token_required(f):
    """
    Exige un access token válido de un usuario activo.
    Deja el usuario en g.current_user = {id, email, role}.
    """
    @wraps(f)
    def wrapper(*args, **kwargs):
        container = _container()
        claims = container.token_service.verify_token(_bearer_token())
        if claims.get('type') != TOKEN_TYPE_ACCESS:
            raise AuthenticationError('Tipo de token inválido')

        user = container.auth_service.get_user_by_id(claims.get('id'))
        if user is None or not user.active:
            logger.warning('Token de usuario inexistente o inactivo: %s', claims.get('id'))
            raise AuthenticationError('Usuario no encontrado o inactivo')

        g.current_user = {'id': user.id, 'email': user.email, 'role': user.role.value}
        return f(*args, **kwargs)
    return wrapper


def roles_required(*roles):
    """
    Exige que el usuario autenticado tenga uno de los roles indicados.
    Debe ir DESPUÉS de @token_required.
    """
    allowed = {getattr(r, 'value', r) for r in roles}

    def deco(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            current_user = g.get('current_user')
            if not current_user:
                raise AuthenticationError('Autenticación requerida')
            if current_user['role'] not in allowed:
                logger.warning(
                    'Acceso denegado a %s para rol %s', request.path, current_user['role']
                )
                raise PermissionDenied('Permiso denegado')
            return f(*args, **kwargs)
        return wrapper
    return deco


# ═══════════════════════════════════════════════════════════════════════════════
# RATE LIMITING
# ═══════════════════════════════════════════════════════════════════════════════

class TTLCounterStore:
    """
    Contadores con expiración, por clave.

    Cada clave vive hasta reset_at; al expirar se reinicia en el
    siguiente hit.
    """

    def __init__(self):
        self._counters: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()

    def hit(self, key: str, window: float) -> Tuple[int, float]:
        """
        Incrementa el contador de key.

        Returns:
            (cuenta actual, momento de reinicio en epoch)
        """
        now = time.time()
        with self._lock:
            count, reset_at = self._counters.get(key, (0, 0.0))
            if reset_at <= now:
                count, reset_at = 0, now + window
            count += 1
            self._counters[key] = (count, reset_at)
            return count, reset_at

    def purge_expired(self) -> int:
        """Elimina claves expiradas. Retorna cuántas se eliminaron."""
        now = time.time()
        with self._lock:
            expired = [k for k, (_, reset_at) in self._counters.items() if reset_at <= now]
            for key in expired:
                del self._counters[key]
            return len(expired)

    def __len__(self) -> int:
        return len(self._counters)


class RateLimiter:
    """Límite de peticiones por cliente en una ventana fija."""

    # Por encima de esta cantidad de claves se purgan las expiradas
    MAX_TRACKED_KEYS = 10000

    def __init__(self, store: TTLCounterStore, max_requests: int = 100, window: int = 15 * 60):
        self.store = store
        self.max_requests = max_requests
        self.window = window

    def check(self, key: str) -> Tuple[int, float]:
        """
        Registra una petición de key.

        Returns:
            (peticiones restantes, reset_at)

        Raises:
            RateLimitExceeded: Si se superó el máximo en la ventana
        """
        if len(self.store) > self.MAX_TRACKED_KEYS:
            self.store.purge_expired()
        count, reset_at = self.store.hit(key, self.window)
        if count > self.max_requests:
            retry_after = max(1, int(reset_at - time.time() + 0.999))
            logger.warning('Rate limit excedido para %s', key)
            raise RateLimitExceeded(retry_after)
        return self.max_requests - count, reset_at


def init_rate_limiter(app, max_requests: int, window: int) -> RateLimiter:
    """
    Registra el rate limiter en la app. Su estado vive en la instancia
    de la app, no en el proceso.
    """
    limiter = RateLimiter(TTLCounterStore(), max_requests, window)
    app.extensions['sportsline_rate_limiter'] = limiter

    @app.before_request
    def _apply_rate_limit():
        key = request.remote_addr or 'unknown'
        remaining, reset_at = limiter.check(key)
        g.rate_limit = (remaining, reset_at)

    @app.after_request
    def _rate_limit_headers(response):
        if 'rate_limit' in g:
            remaining, reset_at = g.rate_limit
            response.headers['X-RateLimit-Limit'] = str(limiter.max_requests)
            response.headers['X-RateLimit-Remaining'] = str(remaining)
            response.headers['X-RateLimit-Reset'] = str(int(reset_at))
        return response

    return limiter


# ═══════════════════════════════════════════════════════════════════════════════
# HEADERS DE SEGURIDAD
# ═══════════════════════════════════════════════════════════════════════════════

def init_security_headers(app):
    @app.after_request
    def set_security_headers(response):
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['Referrer-Policy'] = 'no-referrer-when-downgrade'
        response.headers['Permissions-Policy'] = 'geolocation=(), microphone=()'
        # NOTA: HSTS solo en producción con HTTPS real
        if request.is_secure:
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response


# ═══════════════════════════════════════════════════════════════════════════════
# MANEJO DE ERRORES
# ═══════════════════════════════════════════════════════════════════════════════

def register_error_handlers(app):
    """
    Traduce excepciones a respuestas JSON:
        {"success": false, "message": ..., "error": <código>}
    """

    @app.errorhandler(SportslineError)
    def _handle_domain_error(error: SportslineError):
        if error.status_code >= 500:
            logger.error('%s: %s', type(error).__name__, error.message)
        response = jsonify(error.to_dict())
        response.status_code = error.status_code
        if isinstance(error, RateLimitExceeded):
            response.headers['Retry-After'] = str(error.retry_after)
        return response

    @app.errorhandler(HTTPException)
    def _handle_http_error(error: HTTPException):
        response = jsonify({
            'success': False,
            'message': error.description,
            'error': (error.name or 'error').lower().replace(' ', '_'),
        })
        response.status_code = error.code or 500
        return response

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        logger.exception('Error no controlado en %s %s', request.method, request.path)
        response = jsonify({
            'success': False,
            'message': 'Error interno del servidor',
            'error': 'internal_error',
        })
        response.status_code = 500
        return response

# ==============================================================================
# CONFIGURACIÓN - Valores por defecto y variables de entorno
# ==============================================================================
# Cada valor tiene un default razonable para desarrollo y puede
# sobrescribirse con una variable de entorno.
#
# EN PRODUCCIÓN definir al menos:
#   JWT_SECRET, RSA_PUBLIC_KEY, RSA_PRIVATE_KEY, SPORTSLINE_DATA_DIR
# ==============================================================================

import os
from dataclasses import dataclass
from typing import Mapping, Optional


# ═══════════════════════════════════════════════════════════════════════════
# CONSTANTES DE LA APLICACIÓN
# ═══════════════════════════════════════════════════════════════════════════

APP_NAME = 'sportsline-api'
JWT_ISSUER = 'sportsline-api'
JWT_AUDIENCE = 'sportsline-client'
JWT_ALGORITHM = 'HS256'

# Datos autenticados (AAD) fijos para AES-GCM: identifican a la aplicación,
# no a un mensaje concreto.
ENCRYPTION_AAD = b'sportsline-api'
AES_KEY_LENGTH = 32   # 256 bits
AES_IV_LENGTH = 16    # 128 bits
AES_TAG_LENGTH = 16   # 128 bits
RSA_KEY_SIZE = 2048
RSA_PUBLIC_EXPONENT = 65537

SECURE_RANDOM_MIN = 8
SECURE_RANDOM_MAX = 256

NOTES_MAX_LENGTH = 500
PASSWORD_MIN_LENGTH = 6
PAGINATION_DEFAULT_PAGE = 1
PAGINATION_DEFAULT_LIMIT = 10
PAGINATION_MAX_LIMIT = 100
LOW_STOCK_THRESHOLD = 10

DEFAULT_DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data')


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f'{name} debe ser un entero, recibido: {raw!r}')


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == '':
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f'{name} debe ser un número, recibido: {raw!r}')


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw == '':
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class Settings:
    """
    Configuración resuelta de la aplicación.

    Attributes:
        data_dir: Carpeta de los archivos JSON (productos, pedidos, etc.)
        jwt_secret: Secreto HMAC para firmar tokens
        jwt_expires_in: Vida del access token en segundos
        jwt_refresh_expires_in: Vida del refresh token en segundos
        rsa_public_key: Llave pública PEM de la aplicación (opcional)
        rsa_private_key: Llave privada PEM de la aplicación (opcional)
        rate_limit_max: Peticiones permitidas por ventana y cliente
        rate_limit_window: Duración de la ventana en segundos
        operation_timeout: Límite en segundos para cripto y agregados
        profiling: Activa performance_logger
        log_level: Nivel del logger raíz
    """
    data_dir: str = DEFAULT_DATA_DIR
    jwt_secret: str = 'your-secret-key'
    jwt_expires_in: int = 3600
    jwt_refresh_expires_in: int = 7 * 24 * 3600
    rsa_public_key: Optional[str] = None
    rsa_private_key: Optional[str] = None
    rate_limit_max: int = 100
    rate_limit_window: int = 15 * 60
    operation_timeout: float = 10.0
    profiling: bool = False
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'Settings':
        """
        Construye la configuración desde variables de entorno.

        Args:
            env: Mapeo de variables (por defecto os.environ)

        Returns:
            Instancia de Settings
        """
        env = os.environ if env is None else env
        return cls(
            data_dir=env.get('SPORTSLINE_DATA_DIR') or DEFAULT_DATA_DIR,
            jwt_secret=env.get('JWT_SECRET') or 'your-secret-key',
            jwt_expires_in=_env_int(env, 'JWT_EXPIRES_IN', 3600),
            jwt_refresh_expires_in=_env_int(env, 'JWT_REFRESH_EXPIRES_IN', 7 * 24 * 3600),
            rsa_public_key=env.get('RSA_PUBLIC_KEY') or None,
            rsa_private_key=env.get('RSA_PRIVATE_KEY') or None,
            rate_limit_max=_env_int(env, 'SPORTSLINE_RATE_LIMIT_MAX', 100),
            rate_limit_window=_env_int(env, 'SPORTSLINE_RATE_LIMIT_WINDOW', 15 * 60),
            operation_timeout=_env_float(env, 'SPORTSLINE_OPERATION_TIMEOUT', 10.0),
            profiling=_env_bool(env, 'SPORTSLINE_PROFILING', False),
            log_level=(env.get('SPORTSLINE_LOG_LEVEL') or 'INFO').upper(),
        )

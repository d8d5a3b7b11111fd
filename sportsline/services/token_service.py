# ==============================================================================
# SERVICIO DE TOKENS - JWT de acceso y de renovación
# ==============================================================================
# Tokens HS256 firmados con JWT_SECRET.
#   iss = "sportsline-api", aud = "sportsline-client"
#   type = "access" (1 hora) | "refresh" (7 días)
# ==============================================================================

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import jwt

from sportsline.config import JWT_ALGORITHM, JWT_AUDIENCE, JWT_ISSUER
from sportsline.errors import AuthenticationError

logger = logging.getLogger(__name__)

TOKEN_TYPE_ACCESS = 'access'
TOKEN_TYPE_REFRESH = 'refresh'


class TokenService:
    """
    Emisión y verificación de JWT.

    El payload de usuario es {id, email, role}; el servicio agrega
    type, iat, exp, iss y aud.
    """

    def __init__(self, secret: str, expires_in: int = 3600, refresh_expires_in: int = 7 * 24 * 3600):
        """
        Args:
            secret: Secreto HMAC
            expires_in: Vida del access token (segundos)
            refresh_expires_in: Vida del refresh token (segundos)
        """
        self.secret = secret
        self.expires_in = expires_in
        self.refresh_expires_in = refresh_expires_in

    def _sign(self, user_payload: Dict[str, Any], token_type: str, lifetime: int) -> str:
        now = int(time.time())
        claims = {
            'id': user_payload['id'],
            'email': user_payload['email'],
            'role': user_payload['role'],
            'type': token_type,
            'iat': now,
            'exp': now + lifetime,
            'iss': JWT_ISSUER,
            'aud': JWT_AUDIENCE,
        }
        return jwt.encode(claims, self.secret, algorithm=JWT_ALGORITHM)

    def generate_access_token(self, user_payload: Dict[str, Any]) -> str:
        return self._sign(user_payload, TOKEN_TYPE_ACCESS, self.expires_in)

    def generate_refresh_token(self, user_payload: Dict[str, Any]) -> str:
        return self._sign(user_payload, TOKEN_TYPE_REFRESH, self.refresh_expires_in)

    def generate_token_pair(self, user_payload: Dict[str, Any]) -> Dict[str, str]:
        """
        Returns:
            {'access_token': ..., 'refresh_token': ...}
        """
        return {
            'access_token': self.generate_access_token(user_payload),
            'refresh_token': self.generate_refresh_token(user_payload),
        }

    def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Verifica firma, expiración, emisor y audiencia.

        Returns:
            Claims del token

        Raises:
            AuthenticationError: Token inválido o expirado
        """
        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=[JWT_ALGORITHM],
                issuer=JWT_ISSUER,
                audience=JWT_AUDIENCE,
            )
        except jwt.ExpiredSignatureError:
            logger.warning('Token expirado')
            raise AuthenticationError('Token expirado')
        except jwt.InvalidTokenError as e:
            logger.warning('Token inválido: %s', e)
            raise AuthenticationError('Token inválido')

    def decode_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Decodifica SIN verificar la firma. Retorna None si no es un JWT."""
        try:
            return jwt.decode(token, options={'verify_signature': False})
        except jwt.InvalidTokenError:
            return None

    def is_token_expired(self, token: str) -> bool:
        """True si el token no tiene exp legible o ya expiró."""
        decoded = self.decode_token(token)
        if not decoded or 'exp' not in decoded:
            return True
        return decoded['exp'] < time.time()

    def get_token_expiration(self, token: str) -> Optional[datetime]:
        decoded = self.decode_token(token)
        if not decoded or 'exp' not in decoded:
            return None
        return datetime.fromtimestamp(decoded['exp'], tz=timezone.utc)

# ==============================================================================
# SERVICIO DE AUTENTICACIÓN
# ==============================================================================
# Registro, login y gestión de credenciales del personal de la tienda.
#
# - Contraseñas hasheadas con werkzeug (nunca texto plano)
# - Solo usuarios activos pueden iniciar sesión o renovar tokens
# - Toda la validación está AQUÍ, no en rutas
# ==============================================================================

import re
from typing import Any, Dict, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from sportsline.config import PASSWORD_MIN_LENGTH
from sportsline.errors import AuthenticationError, ValidationError
from sportsline.models import User, UserRole
from sportsline.repositories.interfaces import IUserRepository
from sportsline.services.audit_service import AuditService
from sportsline.services.base_service import BaseService
from sportsline.services.token_service import TOKEN_TYPE_REFRESH, TokenService

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


class AuthService(BaseService):
    """
    Servicio de autenticación.

    Responsabilidades:
    - Registro de usuarios (rol por defecto: vendedor)
    - Login con emisión de par de tokens
    - Renovación del access token
    - Actualización de datos y cambio de contraseña
    """

    # Campos que update_user() acepta
    UPDATABLE_FIELDS = frozenset(['name', 'email', 'role', 'active', 'password'])

    def __init__(
        self,
        user_repo: IUserRepository,
        token_service: TokenService,
        audit_service: AuditService = None
    ):
        super().__init__()
        self.user_repo = user_repo
        self.token_service = token_service
        self.audit_service = audit_service

    # =========================================================================
    # VALIDACIONES
    # =========================================================================

    @staticmethod
    def _parse_role(role: Any) -> Optional[UserRole]:
        try:
            return UserRole(role)
        except ValueError:
            return None

    @staticmethod
    def _password_error(password: Any) -> Optional[str]:
        if not isinstance(password, str) or len(password) < PASSWORD_MIN_LENGTH:
            return f'La contraseña debe tener al menos {PASSWORD_MIN_LENGTH} caracteres'
        return None

    # =========================================================================
    # REGISTRO Y LOGIN
    # =========================================================================

    def register(
        self,
        name: str,
        email: str,
        password: str,
        role: str = UserRole.VENDEDOR.value
    ) -> User:
        """
        Registra un nuevo usuario.

        Args:
            name: Nombre completo
            email: Email (único)
            password: Contraseña en texto plano (mín. 6 caracteres)
            role: 'admin' o 'vendedor'

        Returns:
            Usuario creado

        Raises:
            ValidationError: Datos inválidos o email ya registrado
        """
        errors = []
        if not isinstance(name, str) or not name.strip():
            errors.append('El nombre es requerido')
        if not isinstance(email, str) or not EMAIL_RE.match(email.strip()):
            errors.append('Email inválido')
        password_error = self._password_error(password)
        if password_error:
            errors.append(password_error)
        parsed_role = self._parse_role(role)
        if parsed_role is None:
            errors.append(f'Rol inválido: {role}')
        if errors:
            raise ValidationError('Datos de registro inválidos', errors)

        user = self.user_repo.create(User(
            id=0,
            name=name.strip(),
            email=email.strip().lower(),
            password_hash=generate_password_hash(password),
            role=parsed_role,
        ))
        self.logger.info('Usuario registrado: %s', user.email)
        if self.audit_service:
            self.audit_service.log_user_registered(user.id, user.email, user.role.value)
        return user

    def login(self, email: str, password: str) -> Optional[Dict[str, Any]]:
        """
        Autentica un usuario activo.

        Returns:
            {'user': datos públicos, 'access_token', 'refresh_token'},
            o None si las credenciales no son válidas
        """
        user = self.user_repo.get_by_email(email)
        if user is None or not user.active:
            self.logger.warning('Login fallido: usuario %s no encontrado o inactivo', email)
            return None
        if not check_password_hash(user.password_hash, password or ''):
            self.logger.warning('Login fallido: contraseña incorrecta para %s', email)
            return None

        tokens = self.token_service.generate_token_pair(
            {'id': user.id, 'email': user.email, 'role': user.role.value}
        )
        self.logger.info('Usuario inició sesión: %s', user.email)
        if self.audit_service:
            self.audit_service.log_user_login(user.id, user.email)
        return {'user': user.to_public_dict(), **tokens}

    def refresh_access_token(self, refresh_token: str) -> Optional[Dict[str, str]]:
        """
        Emite un access token nuevo a partir de un refresh token.

        Returns:
            {'access_token': ...}, o None si el usuario ya no existe o
            está inactivo

        Raises:
            AuthenticationError: Token inválido, expirado o que no es de renovación
        """
        claims = self.token_service.verify_token(refresh_token)
        if claims.get('type') != TOKEN_TYPE_REFRESH:
            raise AuthenticationError('Tipo de token inválido')

        user = self.user_repo.get(claims.get('id'))
        if user is None or not user.active:
            self.logger.warning('Renovación rechazada para usuario %s', claims.get('id'))
            return None

        access_token = self.token_service.generate_access_token(
            {'id': user.id, 'email': user.email, 'role': user.role.value}
        )
        self.logger.info('Access token renovado para %s', user.email)
        return {'access_token': access_token}

    # =========================================================================
    # GESTIÓN DE USUARIOS
    # =========================================================================

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        return self.user_repo.get(user_id)

    def update_user(self, user_id: int, updates: Dict[str, Any]) -> Optional[User]:
        """
        Actualiza datos de un usuario. Una contraseña nueva se hashea.

        Returns:
            Usuario actualizado o None si no existe

        Raises:
            ValidationError: Campos desconocidos o valores inválidos
        """
        unknown = set(updates) - self.UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                'Campos no actualizables', [f'Campo no permitido: {f}' for f in sorted(unknown)]
            )

        user = self.user_repo.get(user_id)
        if user is None:
            return None

        errors = []
        if 'name' in updates:
            if not isinstance(updates['name'], str) or not updates['name'].strip():
                errors.append('El nombre es requerido')
            else:
                user.name = updates['name'].strip()
        if 'email' in updates:
            email = updates['email']
            if not isinstance(email, str) or not EMAIL_RE.match(email.strip()):
                errors.append('Email inválido')
            else:
                email = email.strip().lower()
                other = self.user_repo.get_by_email(email)
                if other is not None and other.id != user.id:
                    errors.append('El email ya está registrado')
                user.email = email
        if 'role' in updates:
            role = self._parse_role(updates['role'])
            if role is None:
                errors.append(f"Rol inválido: {updates['role']}")
            else:
                user.role = role
        if 'active' in updates:
            user.active = bool(updates['active'])
        if 'password' in updates:
            password_error = self._password_error(updates['password'])
            if password_error:
                errors.append(password_error)
            else:
                user.password_hash = generate_password_hash(updates['password'])
        if errors:
            raise ValidationError('Datos de usuario inválidos', errors)

        self.user_repo.save(user)
        self.logger.info('Usuario %s actualizado', user.id)
        return user

    def change_password(self, user_id: int, current_password: str, new_password: str) -> bool:
        """
        Cambia la contraseña verificando la actual.

        Returns:
            True si se cambió; False si el usuario no existe o la
            contraseña actual no coincide

        Raises:
            ValidationError: La nueva contraseña es demasiado corta
        """
        password_error = self._password_error(new_password)
        if password_error:
            raise ValidationError(password_error)

        user = self.user_repo.get(user_id)
        if user is None:
            return False
        if not check_password_hash(user.password_hash, current_password or ''):
            self.logger.warning('Cambio de contraseña rechazado para usuario %s', user_id)
            return False

        user.password_hash = generate_password_hash(new_password)
        self.user_repo.save(user)
        self.logger.info('Contraseña cambiada para usuario %s', user_id)
        if self.audit_service:
            self.audit_service.log_password_change(user_id)
        return True

# ==============================================================================
# REPOSITORIO DE USUARIOS
# ==============================================================================
# Encapsula todo el acceso a usuarios.json
# Los usuarios se almacenan como diccionario: {id: {name, email, password, role}}
# ==============================================================================

from typing import List, Optional

from sportsline.errors import ValidationError
from sportsline.models import User, utc_now_iso

from .base import DictRepository


class UserRepository(DictRepository):
    """
    Repositorio para gestión de usuarios.

    Formato de datos en usuarios.json:
    {
        "1": {"id": 1, "name": "Admin", "email": "admin@sportsline.com",
              "password": "hashed_pwd", "role": "admin", "active": true}
    }
    """

    file_name = 'usuarios.json'

    def get(self, user_id: int) -> Optional[User]:
        """
        Obtiene un usuario por su ID.

        Returns:
            User o None
        """
        data = self.get_by_id(user_id)
        return User.from_dict(data) if data else None

    def get_by_email(self, email: str) -> Optional[User]:
        """
        Obtiene un usuario por email (sin distinguir mayúsculas).

        Args:
            email: Email del usuario

        Returns:
            User o None
        """
        wanted = (email or '').strip().lower()
        for data in self.get_all().values():
            if data.get('email', '').lower() == wanted:
                return User.from_dict(data)
        return None

    def email_exists(self, email: str) -> bool:
        return self.get_by_email(email) is not None

    def create(self, user: User) -> User:
        """
        Crea un nuevo usuario asignándole el siguiente ID.

        Raises:
            ValidationError: Si el email ya está registrado
        """
        with self._file_lock:
            if self.email_exists(user.email):
                raise ValidationError('El email ya está registrado')
            user.id = self.next_id()
            self.update(user.id, user.to_dict())
        return user

    def save(self, user: User) -> User:
        """Persiste los cambios de un usuario existente."""
        user.updated_at = utc_now_iso()
        self.update(user.id, user.to_dict())
        return user

    def get_users_by_role(self, role: str) -> List[User]:
        return [
            User.from_dict(data) for data in self.get_all().values()
            if data.get('role') == role
        ]

"""
Administración de usuarios fuera de la API HTTP.

Lo usan solo los scripts de operación (scripts/seed_users.py); ningún
endpoint expone estas operaciones.
"""
from dataclasses import dataclass
from typing import List, Optional

from app.core.exceptions import ValidationException
from app.core.security import hash_password
from app.models.user import User, UserRole
from app.services.auth_service import normalize_email
from app.services.base import BaseService


@dataclass(frozen=True)
class DemoUser:
    email: str
    password: str
    name: str
    role: UserRole


DEMO_USERS: List[DemoUser] = [
    DemoUser("maria@cliente.com", "123456", "María López", UserRole.CLIENTE),
    DemoUser("juan@cliente.com", "123456", "Juan Pérez", UserRole.CLIENTE),
    DemoUser("abogada@estudio.com", "secreto", "Dra. Urribarri", UserRole.ABOGADO),
]


class UserAdminService(BaseService):
    """Alta idempotente de usuarios demo y reseteo de contraseñas."""

    def _get(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def create_if_missing(self, email: str, password: str, name: str, role: UserRole) -> bool:
        """
        Crea el usuario si no existe.

        Un usuario existente no se toca: nombre, rol y password quedan como
        estaban (puede tener una contraseña real fijada con set_password).

        Returns:
            True si se creó, False si ya existía
        """
        existing = self._get(email)
        if existing is not None:
            self._log_info("User already present", action="user_skipped", user_email=existing.email)
            return False

        user = User(
            email=normalize_email(email),
            name=name,
            role=UserRole(role).value,
            password_hash=hash_password(password),
        )
        self.db.add(user)
        self._log_info("User seeded", action="user_created", user_email=user.email, role=user.role)
        return True

    def seed_demo_users(self, users: Optional[List[DemoUser]] = None) -> int:
        """Alta de los usuarios demo que falten. Devuelve cuántos se crearon."""
        with self._transaction("seed_demo_users"):
            created = [
                self.create_if_missing(u.email, u.password, u.name, u.role)
                for u in (users or DEMO_USERS)
            ]
            self.db.flush()
        return sum(created)

    def set_password(self, email: str, password: str) -> None:
        """
        Fija la contraseña de un usuario existente (p. ej. auto-provisionado).

        Raises:
            ValidationException: Si el usuario no existe o el password está vacío
        """
        if not password:
            raise ValidationException("Password requerido", field="password")

        user = self._get(email)
        if user is None:
            raise ValidationException(f"Usuario inexistente: {normalize_email(email)}", field="email")

        with self._transaction("set_password"):
            user.password_hash = hash_password(password)

        self._log_info("Password reset", action="password_reset", user_email=user.email)

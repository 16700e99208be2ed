"""
Servicio de autenticación (login por email y contraseña).
"""
from typing import Any, Optional, Tuple

from sqlalchemy import func

from app.core.exceptions import InvalidCredentialsException, ValidationException
from app.core.security import create_access_token, verify_password
from app.models.user import User
from app.services.base import BaseService


def normalize_email(email: Optional[str]) -> str:
    return str(email or "").strip().lower()


class AuthService(BaseService):
    """Login y búsqueda de usuarios por email."""

    def find_user_by_email(self, email: str) -> Optional[User]:
        """Búsqueda case-insensitive (el email se guarda en minúsculas)."""
        return (
            self.db.query(User)
            .filter(func.lower(User.email) == normalize_email(email))
            .first()
        )

    def login(self, email: Optional[str], password: Optional[str]) -> Tuple[str, dict[str, Any]]:
        """
        Autentica un usuario y emite su token de acceso.

        Args:
            email: Email (cualquier capitalización)
            password: Password en texto plano

        Returns:
            (access_token, perfil público del usuario)

        Raises:
            ValidationException: Falta email o password
            InvalidCredentialsException: Email inexistente o password incorrecto
        """
        if not email or not password:
            raise ValidationException("Email y contraseña requeridos")

        user = self.find_user_by_email(email)
        if not user:
            self._log_warning("Login with unknown email", action="auth_failed")
            raise InvalidCredentialsException()

        if not verify_password(password, user.password_hash):
            self._log_warning("Login with wrong password", action="auth_failed", user_email=user.email)
            raise InvalidCredentialsException()

        token = create_access_token(email=user.email, name=user.name, role=user.role)
        self._log_info("User authenticated", action="auth_success", user_email=user.email, role=user.role)
        return token, user.to_public_dict()

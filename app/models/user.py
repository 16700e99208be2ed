"""
Modelo de Usuario para autenticación y autorización.
"""
import uuid
from enum import Enum

from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func

from app.core.database import Base


class UserRole(str, Enum):
    """Roles de usuario."""

    CLIENTE = "cliente"
    ABOGADO = "abogado"


class User(Base):
    """
    Usuario del sistema (cliente o abogado).

    Tabla: users

    El email se guarda siempre en minúsculas: es la clave de búsqueda
    case-insensitive y la FK de los reclamos.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False, default=UserRole.CLIENTE.value)
    password_hash = Column(String(255), nullable=False)
    telefono = Column(String(64), nullable=True)
    dni = Column(String(32), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def to_public_dict(self) -> dict:
        """Perfil público (sin hash ni datos personales)."""
        return {"name": self.name, "email": self.email, "role": self.role}

    def __repr__(self):
        return f"<User(email={self.email}, role={self.role})>"

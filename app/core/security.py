"""
Sistema de seguridad de la API de reclamos.

Incluye:
- Hashing de contraseñas (bcrypt)
- Emisión y validación de tokens JWT
- Dependencies de autenticación/autorización para FastAPI
- Regla de acceso a reclamos (dueño o abogado)
- Rate limiting
"""
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings
from app.core.exceptions import (
    ForbiddenException,
    InvalidTokenException,
    TokenExpiredException,
    UnauthenticatedException,
)
from app.core.logger import get_logger
from app.models.user import UserRole

logger = get_logger()


# =========================================================
# CONFIGURACIÓN DE SEGURIDAD
# =========================================================

# Context para hashing de passwords
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token security. auto_error=False: el 401 lo genera
# get_current_user con el formato de error de la API.
security = HTTPBearer(auto_error=False)


def get_client_key(request: Request) -> str:
    """
    Clave de rate limiting por cliente.

    Detrás de un proxy (Render, Vercel) la IP real es la que agregó el
    último proxy de confianza: se cuentan TRUSTED_PROXY_HOPS saltos desde
    la derecha de X-Forwarded-For. Los saltos a la izquierda los escribe
    el cliente y no se usan.
    """
    if settings.trust_proxy:
        forwarded = request.headers.get("x-forwarded-for", "")
        hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
        if hops:
            return hops[-min(settings.trusted_proxy_hops, len(hops))]
    return get_remote_address(request)


def current_rate_limit() -> str:
    """Límite vigente, leído de settings en cada request."""
    return settings.rate_limit_string


limiter = Limiter(
    key_func=get_client_key,
    enabled=settings.rate_limit_enabled,
    storage_uri="memory://",
)

# Un único cupo por cliente compartido por todos los endpoints
api_rate_limit = limiter.shared_limit(current_rate_limit, scope="api")


# =========================================================
# IDENTIDAD
# =========================================================


class TokenIdentity(BaseModel):
    """Claims de identidad embebidos en el token."""

    sub: str
    email: str
    name: str = ""
    role: UserRole

    @property
    def is_abogado(self) -> bool:
        return self.role == UserRole.ABOGADO


# =========================================================
# GESTIÓN DE PASSWORDS
# =========================================================


def hash_password(password: str) -> str:
    """Hashea un password con bcrypt (salt incluido en el hash)."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verifica un password contra su hash.

    Un hash corrupto o de esquema desconocido cuenta como no coincidente.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def generate_temporary_password(length: int = 8) -> str:
    """Password aleatorio para usuarios auto-provisionados."""
    return secrets.token_urlsafe(length)[:length]


# =========================================================
# JWT - CREACIÓN Y VALIDACIÓN
# =========================================================


def create_access_token(
    email: str, name: str, role: str, expires_delta: Optional[timedelta] = None
) -> str:
    """
    Crea un token JWT de acceso.

    Args:
        email: Email del usuario (también va como 'sub')
        name: Nombre visible
        role: Rol del usuario
        expires_delta: Tiempo de expiración custom

    Returns:
        Token JWT codificado
    """
    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_access_token_expire_minutes)

    to_encode = {
        "sub": email,
        "email": email,
        "name": name,
        "role": role,
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any]:
    """
    Decodifica y valida un token JWT.

    Raises:
        InvalidTokenException: Si el token es inválido
        TokenExpiredException: Si el token expiró
    """
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])

    except jwt.ExpiredSignatureError:
        logger.warning("Expired token", action="token_expired")
        raise TokenExpiredException()

    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token", action="token_invalid", error_message=str(e))
        raise InvalidTokenException(reason=str(e))


def identity_from_token(token: str) -> TokenIdentity:
    """Decodifica el token y valida que traiga los claims de identidad."""
    payload = decode_token(token)
    try:
        return TokenIdentity(**payload)
    except ValidationError:
        logger.warning("Token without identity claims", action="token_invalid")
        raise InvalidTokenException(reason="claims de identidad incompletos")


# =========================================================
# DEPENDENCIES PARA FASTAPI
# =========================================================


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> TokenIdentity:
    """
    Obtiene la identidad autenticada desde 'Authorization: Bearer <token>'.

    Raises:
        UnauthenticatedException: Sin header, header mal formado o token inválido
    """
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedException()
    return identity_from_token(credentials.credentials)


def resolve_optional_identity(token: Optional[str]) -> Optional[TokenIdentity]:
    """
    Identidad opcional: intenta decodificar y, ante cualquier fallo del
    token, continúa como anónimo (None).
    """
    if not token:
        return None
    try:
        return identity_from_token(token)
    except UnauthenticatedException:
        logger.warning(
            "Ignoring invalid token on public endpoint", action="optional_identity_ignored"
        )
        return None


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[TokenIdentity]:
    """Variante de get_current_user para endpoints públicos."""
    return resolve_optional_identity(credentials.credentials if credentials else None)


def require_role(*roles: UserRole):
    """
    Dependency factory para requerir uno de los roles indicados.

    Uso:
        @router.patch("/{id}", dependencies=[Depends(require_role(UserRole.ABOGADO))])
    """
    allowed = {UserRole(r) for r in roles}

    async def role_checker(current_user: TokenIdentity = Depends(get_current_user)) -> TokenIdentity:
        if current_user.role not in allowed:
            logger.warning(
                "Insufficient role",
                action="role_denied",
                user_email=current_user.email,
                user_role=current_user.role.value,
                required_roles=sorted(r.value for r in allowed),
            )
            raise ForbiddenException()
        return current_user

    return role_checker


# =========================================================
# REGLA DE ACCESO A RECLAMOS
# =========================================================


def can_access_claim(identity: TokenIdentity, owner_email: str) -> bool:
    """
    Verifica si una identidad puede ver/operar un reclamo.

    Reglas:
    - Abogado: acceso a todo
    - Dueño (email igual, sin distinguir mayúsculas): acceso
    - Otro: sin acceso
    """
    if identity.is_abogado:
        return True
    return identity.email.lower() == (owner_email or "").lower()

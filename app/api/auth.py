"""
Endpoint de login.

Intercambia email + password por un token JWT de acceso (2 horas).
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import api_rate_limit
from app.services.auth_service import AuthService


router = APIRouter(tags=["auth"])


class LoginRequest(BaseModel):
    """Credenciales. Opcionales en el esquema: la ausencia se responde con 400 propio."""

    email: Optional[str] = None
    password: Optional[str] = None


class PublicUser(BaseModel):
    name: str
    email: str
    role: str


class LoginResponse(BaseModel):
    accessToken: str
    user: PublicUser


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Login con email y contraseña",
    responses={
        400: {"description": "Email o contraseña ausentes"},
        401: {"description": "Credenciales inválidas"},
    },
)
@api_rate_limit
def login(
    request: Request,
    payload: LoginRequest,
    db: Session = Depends(get_db),
) -> LoginResponse:
    """
    Autentica al usuario y devuelve el token de acceso.

    El email no distingue mayúsculas/minúsculas.
    """
    token, user = AuthService(db).login(payload.email, payload.password)
    return LoginResponse(accessToken=token, user=PublicUser(**user))

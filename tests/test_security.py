"""
Tests del sistema de seguridad (passwords, JWT, dependencies, acceso).
"""
from datetime import timedelta

import jwt
import pytest
from starlette.requests import Request

from app.core.config import settings
from app.core.exceptions import InvalidTokenException, TokenExpiredException, UnauthenticatedException
from app.core.security import (
    TokenIdentity,
    can_access_claim,
    create_access_token,
    decode_token,
    generate_temporary_password,
    get_client_key,
    hash_password,
    identity_from_token,
    resolve_optional_identity,
    verify_password,
)
from app.models.user import UserRole


def _request(headers=None, client=("10.0.0.9", 1234)):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


# =========================================================
# PASSWORDS
# =========================================================


def test_password_hashing():
    """Test: Hash y verificación de passwords."""
    hashed = hash_password("test_password_123")

    assert hashed != "test_password_123"
    assert verify_password("test_password_123", hashed)
    assert not verify_password("wrong_password", hashed)


def test_verify_password_with_corrupt_hash():
    """Test: Hash corrupto cuenta como no coincidente."""
    assert not verify_password("123456", "no-es-un-hash")


def test_temporary_password():
    """Test: Password temporal aleatorio de 8 caracteres."""
    first = generate_temporary_password()
    second = generate_temporary_password()

    assert len(first) == 8
    assert first != second


# =========================================================
# JWT
# =========================================================


def test_decode_valid_token():
    """Test: Decodificar token válido."""
    token = create_access_token("maria@cliente.com", "María", "cliente")
    identity = identity_from_token(token)

    assert identity.email == "maria@cliente.com"
    assert identity.sub == "maria@cliente.com"
    assert identity.role == UserRole.CLIENTE
    assert not identity.is_abogado


def test_decode_expired_token():
    """Test: Token expirado → TokenExpiredException."""
    token = create_access_token("maria@cliente.com", "María", "cliente", expires_delta=timedelta(seconds=-1))

    with pytest.raises(TokenExpiredException):
        decode_token(token)


def test_decode_token_wrong_signature():
    """Test: Firma con otra clave → InvalidTokenException."""
    token = jwt.encode({"sub": "x@y.com", "email": "x@y.com", "role": "abogado"}, "otra-clave", algorithm="HS256")

    with pytest.raises(InvalidTokenException):
        decode_token(token)


def test_token_without_role_is_invalid():
    """Test: Token sin claims de identidad → InvalidTokenException."""
    token = jwt.encode({"sub": "x@y.com"}, settings.jwt_secret, algorithm="HS256")

    with pytest.raises(InvalidTokenException):
        identity_from_token(token)


def test_invalid_token_is_unauthenticated():
    """Test: Los errores de token son 401."""
    assert issubclass(InvalidTokenException, UnauthenticatedException)
    assert issubclass(TokenExpiredException, UnauthenticatedException)


def test_optional_identity_ignores_bad_tokens():
    """Test: Identidad opcional → None ante cualquier fallo."""
    expired = create_access_token("a@b.com", "A", "cliente", expires_delta=timedelta(seconds=-1))

    assert resolve_optional_identity(None) is None
    assert resolve_optional_identity("basura") is None
    assert resolve_optional_identity(expired) is None

    valid = create_access_token("a@b.com", "A", "cliente")
    assert resolve_optional_identity(valid).email == "a@b.com"


# =========================================================
# ACCESO A RECLAMOS
# =========================================================


def test_can_access_claim_rules():
    """Test: Dueño (sin distinguir mayúsculas) o abogado."""
    cliente = TokenIdentity(sub="m@c.com", email="M@C.com", role="cliente")
    abogado = TokenIdentity(sub="a@e.com", email="a@e.com", role="abogado")

    assert can_access_claim(cliente, "m@c.com")
    assert not can_access_claim(cliente, "otro@c.com")
    assert can_access_claim(abogado, "otro@c.com")


# =========================================================
# HTTP
# =========================================================


def test_missing_authorization_header(client):
    """Test: Sin header → 401 con WWW-Authenticate."""
    resp = client.get("/reclamos")

    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"
    assert resp.json()["error_code"] == "UNAUTHENTICATED"


def test_malformed_authorization_header(client):
    """Test: Header sin esquema Bearer → 401."""
    resp = client.get("/reclamos", headers={"Authorization": "Token abc"})
    assert resp.status_code == 401


def test_invalid_bearer_token(client):
    """Test: Bearer con token inválido → 401 sin detalle interno."""
    resp = client.get("/reclamos", headers={"Authorization": "Bearer abc.def.ghi"})

    assert resp.status_code == 401
    assert resp.json() == {"message": "Token inválido o expirado", "error_code": "INVALID_TOKEN"}


# =========================================================
# RATE LIMIT KEY
# =========================================================


def test_client_key_uses_hop_added_by_trusted_proxy(monkeypatch):
    """Test: Detrás de proxy, la clave es el salto agregado por el proxy (el último)."""
    monkeypatch.setattr(settings, "trust_proxy", True)
    monkeypatch.setattr(settings, "trusted_proxy_hops", 1)

    keys = {
        get_client_key(_request({"X-Forwarded-For": f"6.6.6.{i}, 198.51.100.4"}))
        for i in range(3)
    }

    assert keys == {"198.51.100.4"}


def test_client_key_with_two_trusted_proxies(monkeypatch):
    """Test: Con dos proxies de confianza se toma el penúltimo salto."""
    monkeypatch.setattr(settings, "trust_proxy", True)
    monkeypatch.setattr(settings, "trusted_proxy_hops", 2)
    request = _request({"X-Forwarded-For": "6.6.6.6, 203.0.113.7, 10.0.0.1"})

    assert get_client_key(request) == "203.0.113.7"


def test_client_key_with_fewer_hops_than_proxies(monkeypatch):
    """Test: Menos saltos que proxies configurados → el primero disponible."""
    monkeypatch.setattr(settings, "trust_proxy", True)
    monkeypatch.setattr(settings, "trusted_proxy_hops", 3)
    request = _request({"X-Forwarded-For": "203.0.113.7"})

    assert get_client_key(request) == "203.0.113.7"


def test_client_key_without_proxy(monkeypatch):
    """Test: Sin confiar en el proxy, la clave es la IP del peer."""
    monkeypatch.setattr(settings, "trust_proxy", False)
    request = _request({"X-Forwarded-For": "203.0.113.7"})

    assert get_client_key(request) == "10.0.0.9"

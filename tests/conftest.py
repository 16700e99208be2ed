"""Fixtures pytest de la API de reclamos."""
import os
import tempfile

# Configuración de test ANTES de importar la app (settings es un singleton)
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "development"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_FILE_ENABLED"] = "false"
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="reclamos-uploads-")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.core.database import Base, get_engine, get_session_factory  # noqa: E402
from app.core.security import create_access_token, hash_password  # noqa: E402
from app.main import app  # noqa: E402
from app.models.user import User, UserRole  # noqa: E402


PDF_BYTES = b"%PDF-1.4\n%test\n"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


@pytest.fixture(autouse=True)
def fresh_schema():
    """Esquema limpio por test (SQLite en memoria compartida)."""
    engine = get_engine()
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture
def db_session():
    session = get_session_factory()()
    yield session
    session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user(db_session):
    """Factory: crea un usuario y devuelve (user, token)."""

    def _make(email, password="123456", name="Usuario Test", role=UserRole.CLIENTE):
        user = User(
            email=email.lower(),
            name=name,
            role=UserRole(role).value,
            password_hash=hash_password(password),
        )
        db_session.add(user)
        db_session.commit()
        token = create_access_token(email=user.email, name=user.name, role=user.role)
        return user, token

    return _make


@pytest.fixture
def maria(make_user):
    return make_user("maria@cliente.com", name="María López")


@pytest.fixture
def juan(make_user):
    return make_user("juan@cliente.com", name="Juan Pérez")


@pytest.fixture
def abogada(make_user):
    return make_user("abogada@estudio.com", password="secreto", name="Dra. Urribarri", role=UserRole.ABOGADO)


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def claim_form(**overrides):
    form = {
        "nombre": "María López",
        "dni": "12345678",
        "telefono": "+54 11 5555-0000",
        "email": "maria@cliente.com",
        "entidad": "Banco Ejemplo",
        "descripcion": "Cobro indebido de comisiones",
    }
    form.update(overrides)
    return form


@pytest.fixture
def submit_claim(client):
    """Factory: POST /reclamos y devuelve el id creado."""

    def _submit(token=None, files=None, **overrides):
        headers = auth(token) if token else {}
        resp = client.post("/reclamos", data=claim_form(**overrides), files=files, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["id"]

    return _submit

"""
Tests de administración de usuarios (seed y reseteo de password).
"""
import pytest

from app.core.exceptions import ValidationException
from app.core.security import verify_password
from app.models.user import User
from app.services.user_admin import DEMO_USERS, UserAdminService


def test_seed_demo_users_is_idempotent(db_session):
    """Test: Seed dos veces no duplica usuarios."""
    service = UserAdminService(db_session)

    assert service.seed_demo_users() == 3
    assert service.seed_demo_users() == 0
    assert db_session.query(User).count() == len(DEMO_USERS)

    abogada = db_session.query(User).filter(User.email == "abogada@estudio.com").one()
    assert abogada.role == "abogado"
    assert verify_password("secreto", abogada.password_hash)


def test_reseed_keeps_existing_users_untouched(db_session):
    """Test: Un re-seed no pisa password, nombre ni rol de usuarios existentes."""
    service = UserAdminService(db_session)
    service.seed_demo_users()
    service.set_password("abogada@estudio.com", "clave-real-segura")

    abogada = db_session.query(User).filter(User.email == "abogada@estudio.com").one()
    abogada.name = "Dra. Renombrada"
    db_session.commit()

    assert service.seed_demo_users() == 0

    db_session.refresh(abogada)
    assert verify_password("clave-real-segura", abogada.password_hash)
    assert not verify_password("secreto", abogada.password_hash)
    assert abogada.name == "Dra. Renombrada"
    assert abogada.role == "abogado"


def test_seed_creates_only_missing_users(db_session, make_user):
    """Test: Con un usuario ya registrado, el seed crea solo los que faltan."""
    make_user("maria@cliente.com", password="propia", name="María Propia")

    assert UserAdminService(db_session).seed_demo_users() == 2

    user = db_session.query(User).filter(User.email == "maria@cliente.com").one()
    assert user.name == "María Propia"
    assert verify_password("propia", user.password_hash)
    assert db_session.query(User).count() == len(DEMO_USERS)


def test_seeded_users_can_login(client, db_session):
    """Test: Los usuarios demo pueden hacer login."""
    UserAdminService(db_session).seed_demo_users()

    resp = client.post("/login", json={"email": "juan@cliente.com", "password": "123456"})

    assert resp.status_code == 200
    assert resp.json()["user"]["name"] == "Juan Pérez"


def test_set_password(db_session, maria):
    """Test: Resetear password de un usuario existente."""
    UserAdminService(db_session).set_password("MARIA@cliente.com", "nueva")

    user = db_session.query(User).filter(User.email == "maria@cliente.com").one()
    assert verify_password("nueva", user.password_hash)


def test_set_password_unknown_user(db_session):
    """Test: Usuario inexistente → ValidationException."""
    with pytest.raises(ValidationException):
        UserAdminService(db_session).set_password("nadie@mail.com", "x")

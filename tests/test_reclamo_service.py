"""
Tests unitarios del servicio de reclamos (código, transacciones, helpers).
"""
import re

import pytest

from app.core.exceptions import InternalException, ValidationException
from app.core.security import TokenIdentity
from app.models.reclamo import Reclamo
from app.models.reclamo_summary import ReclamoPatchRequest
from app.models.user import User
from app.services import reclamo_service as reclamo_module
from app.services.reclamo_service import (
    ReclamoService,
    ReclamoSubmission,
    parse_fecha,
    parse_limit,
)

ABOGADA = TokenIdentity(sub="abogada@estudio.com", email="abogada@estudio.com", role="abogado")


def _submission(**overrides):
    data = dict(
        nombre="María López",
        dni="12345678",
        telefono="555-0000",
        email="maria@cliente.com",
        entidad="Banco Ejemplo",
        descripcion="Cobro indebido",
    )
    data.update(overrides)
    return ReclamoSubmission(**data)


def test_generate_claim_code_format(db_session):
    """Test: Código PL-<año>-<4 dígitos>."""
    codigo = ReclamoService(db_session).generate_claim_code(2026)
    assert re.fullmatch(r"PL-2026-\d{4}", codigo)


def test_generate_claim_code_retries_on_collision(db_session, monkeypatch):
    """Test: Si el código existe se reintenta con otro."""
    service = ReclamoService(db_session)
    service.submit_claim(_submission())
    taken = db_session.query(Reclamo).one().codigo
    taken_number = int(taken.rsplit("-", 1)[1])

    values = iter([taken_number, (taken_number + 1) % 10000])
    monkeypatch.setattr(reclamo_module.secrets, "randbelow", lambda n: next(values))

    codigo = service.generate_claim_code(int(taken.split("-")[1]))
    assert codigo != taken
    assert codigo.endswith(f"{(taken_number + 1) % 10000:04d}")


def test_generate_claim_code_exhausted(db_session, monkeypatch):
    """Test: Se agotan los intentos → InternalException."""
    service = ReclamoService(db_session)
    service.submit_claim(_submission())
    taken = db_session.query(Reclamo).one().codigo
    year, number = taken.split("-")[1:]

    monkeypatch.setattr(reclamo_module.secrets, "randbelow", lambda n: int(number))

    with pytest.raises(InternalException):
        service.generate_claim_code(int(year))


def test_submit_claim_retries_when_code_taken_at_insert(db_session, monkeypatch):
    """Test: Código libre al generarlo pero tomado al insertar → se reintenta."""
    service = ReclamoService(db_session)
    service.submit_claim(_submission())
    taken = db_session.query(Reclamo).one().codigo

    codes = iter([taken, "PL-2000-0001"])
    monkeypatch.setattr(ReclamoService, "generate_claim_code", lambda self, year=None: next(codes))

    claim_id = service.submit_claim(_submission(email="otro@mail.com"))

    assert db_session.get(Reclamo, claim_id).codigo == "PL-2000-0001"
    assert db_session.query(Reclamo).count() == 2
    assert db_session.query(User).filter(User.email == "otro@mail.com").count() == 1


def test_submit_claim_gives_up_after_repeated_conflicts(db_session, monkeypatch):
    """Test: Conflicto en todos los intentos → InternalException sin escribir nada."""
    service = ReclamoService(db_session)
    service.submit_claim(_submission())
    taken = db_session.query(Reclamo).one().codigo

    monkeypatch.setattr(ReclamoService, "generate_claim_code", lambda self, year=None: taken)

    with pytest.raises(InternalException):
        service.submit_claim(_submission(email="otro@mail.com"))

    assert db_session.query(Reclamo).count() == 1
    assert db_session.query(User).filter(User.email == "otro@mail.com").count() == 0


def test_submit_claim_reuses_user_created_concurrently(db_session, monkeypatch, maria):
    """Test: Si otra alta crea el usuario entre la búsqueda y el insert, se usa ese."""
    real_find_user = ReclamoService._find_user
    lookups = []

    def find_user_after_other_insert(self, email):
        lookups.append(email)
        if len(lookups) == 1:
            return None
        return real_find_user(self, email)

    monkeypatch.setattr(ReclamoService, "_find_user", find_user_after_other_insert)

    claim_id = ReclamoService(db_session).submit_claim(_submission())

    assert db_session.get(Reclamo, claim_id).owner_email == "maria@cliente.com"
    assert db_session.query(User).filter(User.email == "maria@cliente.com").count() == 1
    assert len(lookups) == 2


def test_submit_claim_validates_before_writing(db_session):
    """Test: Campos faltantes listados y sin escrituras."""
    with pytest.raises(ValidationException) as exc_info:
        ReclamoService(db_session).submit_claim(_submission(dni="", telefono=None))

    assert exc_info.value.details["missing"] == ["dni", "telefono"]
    assert db_session.query(Reclamo).count() == 0


def test_update_claim_rolls_back_on_failure(db_session, monkeypatch):
    """Test: Un fallo a mitad del PATCH no deja cambios parciales."""
    service = ReclamoService(db_session)
    claim_id = service.submit_claim(_submission())

    def failing_flush(*args, **kwargs):
        raise RuntimeError("disk full")

    patch = ReclamoPatchRequest(estado="Cerrado", mensaje={"texto": "Cierre"})
    monkeypatch.setattr(db_session, "flush", failing_flush)

    with pytest.raises(InternalException):
        service.update_claim(ABOGADA, claim_id, patch)

    monkeypatch.undo()
    db_session.expire_all()
    reclamo = db_session.get(Reclamo, claim_id)
    assert reclamo.estado == "Recibido"
    assert len(reclamo.mensajes) == 1


def test_update_claim_rejects_null_required_fields(db_session):
    """Test: estado/entidad/tipo no pueden quedar vacíos."""
    service = ReclamoService(db_session)
    claim_id = service.submit_claim(_submission())

    with pytest.raises(ValidationException):
        service.update_claim(ABOGADA, claim_id, ReclamoPatchRequest(estado=None))


def test_update_claim_only_present_fields(db_session):
    """Test: Campos ausentes no se tocan; monto puede volver a null."""
    service = ReclamoService(db_session)
    claim_id = service.submit_claim(_submission())
    service.update_claim(ABOGADA, claim_id, ReclamoPatchRequest(monto=1000))

    service.update_claim(ABOGADA, claim_id, ReclamoPatchRequest.model_validate({"monto": None}))

    reclamo = db_session.get(Reclamo, claim_id)
    assert reclamo.monto is None
    assert reclamo.entidad == "Banco Ejemplo"


def test_parse_limit():
    """Test: Solo números positivos."""
    assert parse_limit("5") == 5
    assert parse_limit("2.7") == 2
    assert parse_limit("0") is None
    assert parse_limit("-3") is None
    assert parse_limit("abc") is None
    assert parse_limit(None) is None


def test_parse_fecha():
    """Test: Fecha ISO a datetime UTC."""
    assert parse_fecha("2026-09-30", "f").isoformat() == "2026-09-30T00:00:00+00:00"
    assert parse_fecha("", "f") is None
    with pytest.raises(ValidationException):
        parse_fecha("30/09/2026", "f")

"""
Tests del formulario de consultas (POST /consultas).
"""
from app.models.consulta import Consulta


def _payload(**overrides):
    payload = {
        "nombre": "Laura",
        "email": "laura@mail.com",
        "mensaje": "Quisiera asesoramiento",
        "consentimiento": True,
    }
    payload.update(overrides)
    return payload


def test_create_consulta(client, db_session):
    """Test: Consulta completa → 201 con id."""
    resp = client.post("/consultas", json=_payload())

    assert resp.status_code == 201
    consulta = db_session.get(Consulta, resp.json()["id"])
    assert consulta.nombre == "Laura"
    assert consulta.consentimiento is True


def test_consulta_requires_consent(client, db_session):
    """Test: Sin consentimiento → 400."""
    resp = client.post("/consultas", json=_payload(consentimiento=False))

    assert resp.status_code == 400
    assert resp.json()["message"] == "Datos incompletos"
    assert db_session.query(Consulta).count() == 0


def test_consulta_missing_fields(client):
    """Test: Falta cualquier campo → 400."""
    for field in ("nombre", "email", "mensaje", "consentimiento"):
        payload = _payload()
        payload.pop(field)
        assert client.post("/consultas", json=payload).status_code == 400, field


def test_consulta_malformed_json(client):
    """Test: JSON inválido → 400 (no 422)."""
    resp = client.post("/consultas", content=b"{no-json", headers={"Content-Type": "application/json"})

    assert resp.status_code == 400
    assert resp.json()["error_code"] == "VALIDATION_ERROR"

import pytest
from pydantic import ValidationError

from app.core.config import DEFAULT_JWT_SECRET, Settings


@pytest.mark.smoke
def test_settings_load_smoke():
    from app.core.config import settings

    # Debe poder importarse y tener los campos básicos.
    assert settings is not None
    assert settings.database_url == "sqlite://"
    assert settings.rate_limit_enabled is False


@pytest.mark.smoke
def test_defaults():
    s = Settings(_env_file=None, database_url="sqlite://")

    assert s.port == 4000
    assert s.jwt_access_token_expire_minutes == 120
    assert s.max_upload_size_bytes == 10 * 1024 * 1024
    assert s.allowed_mime_types == frozenset({"application/pdf", "image/jpeg", "image/png"})
    assert s.rate_limit_string == "200 per 60 second"
    assert s.claim_sla_days == 7


def test_cors_origins_are_normalized():
    s = Settings(_env_file=None, cors_origin="https://app.example.com/, http://localhost:5173 ,")

    assert s.cors_origins == ["https://app.example.com", "http://localhost:5173"]


def test_postgres_url_is_normalized():
    s = Settings(_env_file=None, database_url="postgres://u:p@host:5432/db")

    assert s.database_url == "postgresql+psycopg2://u:p@host:5432/db"


def test_unsupported_database_url():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, database_url="mysql://u:p@host/db")


def test_default_jwt_secret_refused_in_production():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, environment="production", jwt_secret=DEFAULT_JWT_SECRET)

    s = Settings(_env_file=None, environment="production", jwt_secret="s3cr3t-largo")
    assert s.is_production


def test_uploads_url_prefix_normalized():
    assert Settings(_env_file=None, uploads_url_prefix="files/").uploads_url_prefix == "/files"

"""
Sistema de configuración con Pydantic Settings.

Centraliza toda la configuración de la API de reclamos:
- Validación automática de tipos
- Valores por defecto seguros para desarrollo
- Separación por entornos (dev/staging/prod)
"""
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "dev-secret"


class Settings(BaseSettings):
    """
    Configuración global de la API de reclamos.

    Todas las variables se pueden sobrescribir con variables de entorno.
    """

    # =========================================================
    # ENTORNO Y DEPLOYMENT
    # =========================================================

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Entorno de ejecución"
    )

    debug: bool = Field(default=False, description="Modo debug (solo para development)")

    app_name: str = Field(default="Reclamos API")

    app_version: str = Field(default="1.0.0")

    port: int = Field(default=4000, ge=1, le=65535, description="Puerto de escucha HTTP")

    # =========================================================
    # DATABASE
    # =========================================================

    database_url: str = Field(
        default="sqlite:///./runtime/reclamos.db",
        description="URL de conexión a base de datos",
    )

    db_echo: bool = Field(default=False, description="Loguear SQL emitido por SQLAlchemy")

    auto_create_tables: bool = Field(
        default=True,
        description="Crear tablas al arrancar (solo desarrollo; en producción usar Alembic)",
    )

    # =========================================================
    # SEGURIDAD
    # =========================================================

    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET, description="Clave secreta para JWT")

    jwt_algorithm: str = Field(default="HS256")

    jwt_access_token_expire_minutes: int = Field(default=120, ge=1, le=1440)

    cors_origin: str = Field(
        default="",
        description="Orígenes permitidos separados por coma",
    )

    cors_origin_regex: str = Field(
        default=r"https?://[A-Za-z0-9.-]+\.vercel\.app(:\d+)?",
        description="Regex adicional de orígenes permitidos (previews de Vercel)",
    )

    trust_proxy: bool = Field(
        default=True, description="Tomar la IP del cliente de X-Forwarded-For"
    )

    trusted_proxy_hops: int = Field(
        default=1, ge=1, le=10, description="Proxies de confianza delante de la API"
    )

    rate_limit_enabled: bool = Field(default=True, description="Habilitar rate limiting")

    rate_limit_requests: int = Field(
        default=200, ge=1, le=100000, description="Requests máximos por ventana"
    )

    rate_limit_window_seconds: int = Field(default=60, ge=1, description="Ventana de rate limit")

    # =========================================================
    # ARCHIVOS ADJUNTOS
    # =========================================================

    uploads_dir: Path = Field(
        default=Path("uploads"), description="Directorio local de adjuntos (efímero)"
    )

    uploads_url_prefix: str = Field(default="/uploads", description="Ruta pública de adjuntos")

    max_upload_size_mb: int = Field(default=10, ge=1, le=100)

    allowed_upload_mime_types: str = Field(
        default="application/pdf,image/jpeg,image/png",
        description="Tipos MIME aceptados, separados por coma",
    )

    # =========================================================
    # REGLAS DE NEGOCIO
    # =========================================================

    claim_sla_days: int = Field(default=7, ge=0, description="Días hasta el vencimiento SLA")

    claim_code_max_attempts: int = Field(
        default=20, ge=1, description="Intentos para generar un código de reclamo único"
    )

    # =========================================================
    # OBSERVABILIDAD
    # =========================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    logs_dir: Path = Field(default=Path("runtime/logs"), description="Directorio de logs")

    log_file_enabled: bool = Field(default=True, description="Escribir logs también a archivo")

    # =========================================================
    # VALIDACIONES CUSTOM
    # =========================================================

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        """Valida formato de URL de base de datos."""
        if v.startswith("postgres://"):
            v = v.replace("postgres://", "postgresql+psycopg2://", 1)
        if not v.startswith(("sqlite://", "postgresql://", "postgresql+psycopg2://")):
            raise ValueError(
                "database_url debe empezar con sqlite://, postgresql:// o postgresql+psycopg2://"
            )
        return v

    @field_validator("jwt_secret")
    @classmethod
    def validate_jwt_secret(cls, v, info: ValidationInfo):
        """El secreto JWT por defecto no se acepta en producción."""
        if info.data.get("environment") == "production" and v == DEFAULT_JWT_SECRET:
            raise ValueError("JWT_SECRET debe ser cambiada en producción")
        return v

    @field_validator("debug")
    @classmethod
    def validate_debug(cls, v, info: ValidationInfo):
        """Debug debe estar deshabilitado en producción."""
        if info.data.get("environment") == "production" and v:
            raise ValueError("DEBUG debe estar deshabilitado en producción")
        return v

    @field_validator("uploads_url_prefix")
    @classmethod
    def validate_uploads_url_prefix(cls, v):
        return "/" + v.strip("/")

    # =========================================================
    # PROPIEDADES COMPUTADAS
    # =========================================================

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def uses_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def cors_origins(self) -> List[str]:
        """Orígenes de CORS_ORIGIN normalizados (sin barra final)."""
        return [
            origin.strip().rstrip("/")
            for origin in self.cors_origin.split(",")
            if origin.strip()
        ]

    @property
    def allowed_mime_types(self) -> frozenset:
        return frozenset(
            mime.strip().lower()
            for mime in self.allowed_upload_mime_types.split(",")
            if mime.strip()
        )

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def rate_limit_string(self) -> str:
        """Límite en la notación de slowapi (ej: '200 per 60 second')."""
        return f"{self.rate_limit_requests} per {self.rate_limit_window_seconds} second"

    # =========================================================
    # CONFIGURACIÓN DE PYDANTIC
    # =========================================================

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_assignment=True,
        extra="ignore",
    )


# =========================================================
# INSTANCIA GLOBAL (SINGLETON)
# =========================================================

_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Obtiene la instancia global de configuración (singleton).

    Returns:
        Settings: Configuración global validada
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


# Atajo para importación
settings = get_settings()


def reload_settings() -> Settings:
    """
    Recarga la configuración (útil para tests).

    Returns:
        Settings: Nueva instancia de configuración
    """
    global _settings
    _settings = None
    return get_settings()


def print_config() -> None:
    """Imprime configuración actual (sin secrets)."""
    config = get_settings()

    print("\n" + "=" * 60)
    print("RECLAMOS API - CONFIGURACIÓN")
    print("=" * 60)
    print(f"Environment:     {config.environment}")
    print(f"Debug:           {config.debug}")
    print(f"Version:         {config.app_version}")
    print(f"Port:            {config.port}")
    print(f"Database:        {config.database_url.split('/')[-1]}")  # Solo nombre
    print(f"CORS origins:    {', '.join(config.cors_origins) or '-'}")
    print(f"Rate Limiting:   {config.rate_limit_enabled} ({config.rate_limit_string})")
    print(f"Uploads:         {config.uploads_dir} -> {config.uploads_url_prefix}")
    print(f"Log Level:       {config.log_level}")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    print_config()

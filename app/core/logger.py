"""
Logging estructurado de la API de reclamos.

Una línea JSON por evento (stdout y, opcionalmente, archivo). Los campos
fijos son timestamp, level, message, logger, action y claim_id; el resto
llega como extra.

Datos personales: las claves sensibles (password, dni, texto...) se
reemplazan por "***" antes de serializar, vengan de donde vengan.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

REDACTED = "***"

SENSITIVE_KEYS = frozenset(
    {
        "password",
        "password_hash",
        "temporary_password",
        "token",
        "access_token",
        "authorization",
        "dni",
        "telefono",
        "texto",
        "descripcion",
        "mensaje",
    }
)


def redact(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: (REDACTED if k.lower() in SENSITIVE_KEYS else v) for k, v in data.items()}


class JsonLineFormatter(logging.Formatter):
    """Serializa cada record como un objeto JSON en una sola línea."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }
        entry.update(redact(getattr(record, "fields", {})))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class StructuredLogger:
    """
    Logger con contexto.

    bind() devuelve un logger hijo que agrega campos fijos a cada línea
    (por ejemplo el servicio o el reclamo en curso).
    """

    def __init__(
        self,
        name: str,
        log_file: Optional[Path] = None,
        level: str = "INFO",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.logger = logging.getLogger(name)
        self.context = dict(context or {})
        if context is not None:
            # Hijo de bind(): comparte handlers con el padre
            return

        self.logger.setLevel(getattr(logging, level, logging.INFO))
        self.logger.propagate = False
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        handlers = [logging.StreamHandler(sys.stdout)]
        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

        for handler in handlers:
            handler.setFormatter(JsonLineFormatter())
            self.logger.addHandler(handler)

    def bind(self, **context) -> "StructuredLogger":
        return StructuredLogger(self.logger.name, context={**self.context, **context})

    def debug(self, message: str, claim_id: Optional[str] = None, action: Optional[str] = None, **extra):
        self._emit(logging.DEBUG, message, claim_id, action, extra)

    def info(self, message: str, claim_id: Optional[str] = None, action: Optional[str] = None, **extra):
        self._emit(logging.INFO, message, claim_id, action, extra)

    def warning(self, message: str, claim_id: Optional[str] = None, action: Optional[str] = None, **extra):
        self._emit(logging.WARNING, message, claim_id, action, extra)

    def error(
        self,
        message: str,
        claim_id: Optional[str] = None,
        action: Optional[str] = None,
        error: Optional[Exception] = None,
        **extra,
    ):
        """ERROR con tipo y mensaje de la excepción (sin traceback)."""
        if error is not None:
            extra.update(error_type=type(error).__name__, error_message=str(error))
        self._emit(logging.ERROR, message, claim_id, action, extra)

    def _emit(self, level: int, message: str, claim_id, action, extra: Dict[str, Any]):
        if not self.logger.isEnabledFor(level):
            return
        fields = {**self.context, "action": action, "claim_id": claim_id, **extra}
        fields = {k: v for k, v in fields.items() if v is not None}
        self.logger.log(level, message, extra={"fields": fields})


_app_logger: Optional[StructuredLogger] = None


def get_logger() -> StructuredLogger:
    """
    Logger de la aplicación (singleton "reclamos.api").

    Nivel y archivo salen de la configuración (LOG_LEVEL, LOGS_DIR,
    LOG_FILE_ENABLED).
    """
    global _app_logger

    if _app_logger is None:
        from app.core.config import settings

        log_file = settings.logs_dir / "reclamos_api.log" if settings.log_file_enabled else None
        _app_logger = StructuredLogger("reclamos.api", log_file, level=settings.log_level)

    return _app_logger

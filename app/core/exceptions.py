"""
Sistema de excepciones estandarizado para la API de reclamos.

Todas las excepciones del dominio heredan de ReclamosException y siguen
un formato consistente con:
- Código de error único
- Mensaje descriptivo (en castellano, apto para mostrar al usuario)
- Código HTTP asociado
- Detalles adicionales (dict)

Los handlers registrados con register_exception_handlers() convierten
cualquier excepción en una respuesta JSON {"message": ..., "error_code": ...}.
"""
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.logger import get_logger


class ReclamosException(Exception):
    """
    Excepción base de la API de reclamos.

    Todas las excepciones custom deben heredar de esta clase.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        """
        Inicializa una excepción del dominio.

        Args:
            code: Código único del error (ej: "CLAIM_NOT_FOUND")
            message: Mensaje descriptivo para humanos
            details: Detalles adicionales (dict)
            status_code: Código HTTP (por defecto el de la clase)
            original_error: Excepción original si es un wrap
        """
        self.code = code
        self.message = message
        self.details = details or {}
        self.original_error = original_error
        if status_code is not None:
            self.status_code = status_code

        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convierte la excepción a diccionario para la respuesta HTTP.

        Nunca incluye el error original: ese detalle queda solo en los logs.
        """
        result: Dict[str, Any] = {"message": self.message, "error_code": self.code}
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            base += f" | Details: {self.details}"
        return base


# =========================================================
# 400 - VALIDACIÓN
# =========================================================


class ValidationException(ReclamosException):
    """Datos de entrada faltantes o inválidos."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Datos incompletos", field: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        super().__init__(code="VALIDATION_ERROR", message=message, details=details, **kwargs)


# =========================================================
# 401 - AUTENTICACIÓN
# =========================================================


class UnauthenticatedException(ReclamosException):
    """Falta autenticación válida."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "No autenticado", code: str = "UNAUTHENTICATED", **kwargs):
        super().__init__(code=code, message=message, **kwargs)


class InvalidTokenException(UnauthenticatedException):
    """Token JWT inválido (firma, formato o claims)."""

    def __init__(self, reason: str = "Token inválido", **kwargs):
        super().__init__(message="Token inválido o expirado", code="INVALID_TOKEN", **kwargs)
        self.reason = reason


class TokenExpiredException(UnauthenticatedException):
    """Token JWT expirado."""

    def __init__(self, **kwargs):
        super().__init__(message="Token inválido o expirado", code="TOKEN_EXPIRED", **kwargs)


class InvalidCredentialsException(UnauthenticatedException):
    """Email inexistente o contraseña incorrecta."""

    def __init__(self, **kwargs):
        super().__init__(message="Credenciales inválidas", code="INVALID_CREDENTIALS", **kwargs)


# =========================================================
# 403 - AUTORIZACIÓN
# =========================================================


class ForbiddenException(ReclamosException):
    """Rol o propiedad del reclamo insuficiente."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Sin permisos", **kwargs):
        super().__init__(code="FORBIDDEN", message=message, **kwargs)


# =========================================================
# 404 - NO ENCONTRADO
# =========================================================


class ClaimNotFoundException(ReclamosException):
    """Reclamo no encontrado en base de datos."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, claim_id: str, **kwargs):
        super().__init__(
            code="CLAIM_NOT_FOUND",
            message="No encontrado",
            details={"claim_id": claim_id},
            **kwargs,
        )


# =========================================================
# 500 - ERROR INTERNO
# =========================================================


class InternalException(ReclamosException):
    """Fallo inesperado. El mensaje al cliente es siempre genérico."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, context: str, original_error: Optional[Exception] = None, **kwargs):
        super().__init__(
            code="INTERNAL_ERROR",
            message="Error interno",
            original_error=original_error,
            **kwargs,
        )
        self.context = context


# =========================================================
# HANDLERS HTTP
# =========================================================


def _json_error(status_code: int, message: str, code: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"message": message, "error_code": code},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Registra los handlers que traducen excepciones a respuestas JSON."""
    logger = get_logger()

    @app.exception_handler(ReclamosException)
    async def handle_reclamos_exception(request: Request, exc: ReclamosException):
        if exc.status_code >= 500:
            logger.error(
                f"Error interno en {request.method} {request.url.path}",
                action="request_failed",
                error=exc.original_error or exc,
            )
        headers = None
        if exc.status_code == status.HTTP_401_UNAUTHORIZED:
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        fields = [".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()]
        logger.warning(
            "Request inválido",
            action="request_invalid",
            path=request.url.path,
            fields=fields,
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "message": "Datos inválidos",
                "error_code": "VALIDATION_ERROR",
                "details": {"fields": fields},
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            return _json_error(exc.status_code, "Ruta no encontrada", "NOT_FOUND")
        message = exc.detail if isinstance(exc.detail, str) else "Error"
        return _json_error(exc.status_code, message, "HTTP_ERROR", headers=exc.headers)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.error(
            f"Error inesperado en {request.method} {request.url.path}",
            action="request_unexpected_error",
            error=exc,
        )
        return _json_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Error interno", "INTERNAL_ERROR"
        )

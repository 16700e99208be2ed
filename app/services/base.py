"""
Servicio base: sesión de BD, logger con contexto y unidad de trabajo.

Los servicios de dominio heredan de BaseService y hacen sus escrituras
dentro de self._transaction(...): commit al salir del bloque, rollback y
error de dominio si algo falla.
"""
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple, Type

from sqlalchemy.orm import Session

from app.core.exceptions import InternalException, ReclamosException
from app.core.logger import StructuredLogger, get_logger


class BaseService:
    """Clase base para todos los servicios."""

    def __init__(self, db: Session, logger: Optional[StructuredLogger] = None):
        """
        Args:
            db: Sesión de base de datos (una por request)
            logger: Logger estructurado (por defecto el de la aplicación)
        """
        self.db = db
        self.logger = (logger or get_logger()).bind(service=type(self).__name__)

    def _log_info(self, message: str, **fields):
        self.logger.info(message, **fields)

    def _log_warning(self, message: str, **fields):
        self.logger.warning(message, **fields)

    def _log_error(self, message: str, error: Optional[Exception] = None, **fields):
        self.logger.error(message, error=error, **fields)

    @contextmanager
    def _transaction(
        self,
        operation: str,
        claim_id: Optional[str] = None,
        reraise: Tuple[Type[Exception], ...] = (),
    ) -> Iterator[None]:
        """
        Unidad de trabajo.

        Args:
            operation: Nombre de la operación (logs y errores)
            claim_id: Reclamo afectado, si lo hay
            reraise: Excepciones que, tras el rollback, se propagan tal cual
                para que el llamador decida (p. ej. reintentar)

        Raises:
            ReclamosException: La original si ya era de dominio; si no,
                InternalException (mensaje genérico, detalle solo en logs)
        """
        try:
            yield
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            if reraise and isinstance(e, reraise):
                raise
            raise self._to_domain_error(e, operation, claim_id) from e

    def _to_domain_error(
        self, error: Exception, operation: str, claim_id: Optional[str] = None
    ) -> ReclamosException:
        if isinstance(error, ReclamosException):
            return error

        self._log_error(
            f"{operation} failed, transaction rolled back",
            error=error,
            claim_id=claim_id,
            action=f"{operation}_failed",
        )
        return InternalException(context=operation, original_error=error)

"""
Recepción de archivos subidos por multipart.

Filtra por tipo MIME y tamaño; los rechazados se descartan (no se guardan
ni se registran) y quedan en el log. Los aceptados se guardan vía
AttachmentStorage.
"""
from __future__ import annotations

from typing import Iterable, List, Optional

from fastapi import UploadFile

from app.core.config import settings
from app.core.logger import StructuredLogger, get_logger
from app.services.storage import AttachmentStorage, StoredFile


class FileIntake:
    """Valida y persiste adjuntos de un request."""

    def __init__(
        self,
        storage: AttachmentStorage,
        allowed_mime_types: Optional[Iterable[str]] = None,
        max_size_bytes: Optional[int] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.storage = storage
        self.allowed_mime_types = frozenset(
            m.lower() for m in (allowed_mime_types or settings.allowed_mime_types)
        )
        self.max_size_bytes = max_size_bytes or settings.max_upload_size_bytes
        self.logger = logger or get_logger()

    def is_allowed_type(self, mimetype: Optional[str]) -> bool:
        return (mimetype or "").split(";")[0].strip().lower() in self.allowed_mime_types

    def accept(self, uploads: Optional[List[UploadFile]], claim_id: Optional[str] = None) -> List[StoredFile]:
        """
        Guarda los archivos válidos y devuelve sus referencias.

        Args:
            uploads: Archivos del request (puede ser None o vacío)
            claim_id: Reclamo destino, solo para logging

        Returns:
            Lista de StoredFile en el mismo orden de subida (sin los rechazados)
        """
        stored: List[StoredFile] = []
        for upload in uploads or []:
            original_name = upload.filename or "archivo"
            mimetype = (upload.content_type or "").split(";")[0].strip().lower()

            if not self.is_allowed_type(mimetype):
                self.logger.warning(
                    "Attachment rejected: mimetype not allowed",
                    claim_id=claim_id,
                    action="attachment_rejected",
                    reason="mimetype",
                    mimetype=mimetype,
                )
                continue

            # Se lee un byte de más para detectar archivos sobre el límite
            data = upload.file.read(self.max_size_bytes + 1)
            if len(data) > self.max_size_bytes:
                self.logger.warning(
                    "Attachment rejected: file too large",
                    claim_id=claim_id,
                    action="attachment_rejected",
                    reason="size",
                    max_size_bytes=self.max_size_bytes,
                )
                continue

            try:
                stored.append(self.storage.save(data, original_name, mimetype))
            except OSError:
                self.discard(stored)
                raise

        return stored

    def discard(self, stored: Iterable[StoredFile]) -> None:
        """Compensación: borra archivos guardados cuyo registro en BD falló."""
        for item in stored:
            try:
                self.storage.delete(item.filename)
            except OSError as e:
                self.logger.error(
                    "Could not remove orphan attachment",
                    action="attachment_cleanup_failed",
                    error=e,
                    filename=item.filename,
                )

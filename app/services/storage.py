"""
Almacenamiento de archivos adjuntos.

El resto del sistema solo conoce AttachmentStorage (guardar bytes y obtener
una referencia recuperable). LocalDiskStorage escribe en un directorio local
servido como estático; en despliegues sin disco persistente es efímero, por
lo que puede sustituirse por un almacenamiento de objetos sin tocar la
lógica de reclamos.
"""
from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from app.core.config import settings


@dataclass(frozen=True)
class StoredFile:
    """Referencia a un archivo ya persistido."""

    filename: str
    originalname: str
    mimetype: str
    url: str
    size: int


def build_stored_filename(original_name: str) -> str:
    """Nombre único generado por el servidor: <uuid4 hex><extensión original>."""
    ext = Path(original_name or "").suffix.lower()
    return f"{uuid.uuid4().hex}{ext}"


class AttachmentStorage(ABC):
    """Contrato mínimo de almacenamiento de adjuntos."""

    @abstractmethod
    def save(self, data: bytes, original_name: str, mimetype: str) -> StoredFile:
        """Persiste los bytes y devuelve la referencia pública."""

    @abstractmethod
    def delete(self, filename: str) -> None:
        """Elimina un archivo guardado (no falla si no existe)."""


class LocalDiskStorage(AttachmentStorage):
    """Adjuntos en disco local, expuestos bajo url_prefix."""

    def __init__(self, base_dir: Path, url_prefix: str = "/uploads"):
        self.base_dir = Path(base_dir)
        self.url_prefix = "/" + url_prefix.strip("/")
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def save(self, data: bytes, original_name: str, mimetype: str) -> StoredFile:
        filename = build_stored_filename(original_name)
        (self.base_dir / filename).write_bytes(data)
        return StoredFile(
            filename=filename,
            originalname=original_name,
            mimetype=mimetype,
            url=f"{self.url_prefix}/{filename}",
            size=len(data),
        )

    def delete(self, filename: str) -> None:
        (self.base_dir / filename).unlink(missing_ok=True)

    def path_for(self, filename: str) -> Path:
        return self.base_dir / filename


_storage: Optional[AttachmentStorage] = None


def get_storage() -> AttachmentStorage:
    """Storage configurado (singleton). Usable como dependency de FastAPI."""
    global _storage

    if _storage is None:
        _storage = LocalDiskStorage(settings.uploads_dir, settings.uploads_url_prefix)

    return _storage

"""
Modelo del reclamo y sus sub-colecciones (timeline, mensajes, archivos).

El reclamo es el contenedor de todo. Las sub-colecciones son append-only:
no existen endpoints para editarlas ni borrarlas.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> str:
    return str(uuid.uuid4())


# =========================================================
# CATÁLOGOS
# =========================================================

ESTADO_INICIAL = "Recibido"
TIPO_INICIAL = "Ordinario"
HITO_INICIAL = "Reclamo iniciado por el cliente"


class TimelineTipo(str, Enum):
    """Severidad/categoría de un hito."""

    OK = "ok"
    WARN = "warn"
    INFO = "info"


class MensajeAutor(str, Enum):
    """Etiqueta de autor visible en el hilo de mensajes."""

    CLIENTE = "Cliente"
    ESTUDIO = "Estudio"


# =========================================================
# RECLAMO
# =========================================================


class Reclamo(Base):
    """Reclamo de un cliente contra una entidad."""

    __tablename__ = "reclamos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)

    codigo: Mapped[str] = mapped_column(
        String(32), unique=True, nullable=False, comment="Número visible: PL-<año>-<4 dígitos>"
    )

    owner_email: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("users.email"),
        nullable=False,
        index=True,
    )

    entidad: Mapped[str] = mapped_column(String(255), nullable=False)
    monto: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    estado: Mapped[str] = mapped_column(String(64), nullable=False, default=ESTADO_INICIAL)
    tipo: Mapped[str] = mapped_column(String(64), nullable=False, default=TIPO_INICIAL)

    descripcion: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    fecha_incidente: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )
    sla_due: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    timeline: Mapped[List["ReclamoTimeline"]] = relationship(
        back_populates="reclamo",
        cascade="all, delete-orphan",
        order_by="ReclamoTimeline.fecha",
    )
    mensajes: Mapped[List["ReclamoMensaje"]] = relationship(
        back_populates="reclamo",
        cascade="all, delete-orphan",
        order_by="ReclamoMensaje.creado_en",
    )
    archivos: Mapped[List["ReclamoArchivo"]] = relationship(
        back_populates="reclamo",
        cascade="all, delete-orphan",
    )

    def touch(self) -> None:
        """Marca el reclamo como modificado."""
        self.updated_at = utcnow()

    def __repr__(self) -> str:
        return f"<Reclamo(codigo={self.codigo}, estado={self.estado})>"


# =========================================================
# SUB-COLECCIONES
# =========================================================


class ReclamoTimeline(Base):
    """Hito fechado del reclamo."""

    __tablename__ = "reclamo_timeline"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    reclamo_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("reclamos.id", ondelete="CASCADE"), nullable=False
    )
    fecha: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    hito: Mapped[str] = mapped_column(Text, nullable=False)
    tipo: Mapped[str] = mapped_column(String(16), nullable=False, default=TimelineTipo.INFO.value)

    reclamo: Mapped[Reclamo] = relationship(back_populates="timeline")

    __table_args__ = (Index("ix_reclamo_timeline_reclamo_fecha", "reclamo_id", "fecha"),)


class ReclamoMensaje(Base):
    """Mensaje del hilo cliente/estudio."""

    __tablename__ = "reclamo_mensajes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    reclamo_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("reclamos.id", ondelete="CASCADE"), nullable=False
    )
    autor: Mapped[str] = mapped_column(String(16), nullable=False)
    texto: Mapped[str] = mapped_column(Text, nullable=False)
    creado_en: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    reclamo: Mapped[Reclamo] = relationship(back_populates="mensajes")

    __table_args__ = (Index("ix_reclamo_mensajes_reclamo_creado", "reclamo_id", "creado_en"),)


class ReclamoArchivo(Base):
    """Archivo adjunto registrado contra un reclamo."""

    __tablename__ = "reclamo_archivos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    reclamo_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("reclamos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    filename: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    originalname: Mapped[str] = mapped_column(String(255), nullable=False)
    mimetype: Mapped[str] = mapped_column(String(128), nullable=False)
    url: Mapped[str] = mapped_column(String(512), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)

    reclamo: Mapped[Reclamo] = relationship(back_populates="archivos")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "filename": self.filename,
            "originalname": self.originalname,
            "mimetype": self.mimetype,
            "url": self.url,
            "size": self.size,
        }

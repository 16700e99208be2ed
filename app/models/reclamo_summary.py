"""
Contratos de la API de reclamos (request/response).

Modelos Pydantic de vista: no tocan la base de datos. Los nombres de campo
son snake_case en Python y camelCase en el JSON (alias), que es lo que
consume el frontend.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite devuelve datetimes naive: se interpretan como UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =========================================================
# RESPUESTAS
# =========================================================


class ClienteRef(CamelModel):
    email: str
    nombre: str = ""


class ReclamoHeader(CamelModel):
    """
    Cabecera de reclamo para listados.

    No incluye timeline/mensajes/archivos; cliente.nombre va vacío
    (se completa en el detalle).
    """

    id: str
    codigo: str
    cliente: ClienteRef
    entidad: str
    monto: Optional[float] = None
    estado: str
    tipo: str
    created_at: datetime
    updated_at: datetime
    sla_due: Optional[datetime] = None


class TimelineItemOut(CamelModel):
    fecha: str = Field(..., description="YYYY-MM-DD")
    hito: str
    tipo: str = "info"


class MensajeOut(CamelModel):
    de: str
    texto: str
    fecha: str = Field(..., description="YYYY-MM-DD HH:mm (UTC)")


class ArchivoOut(CamelModel):
    id: str
    filename: str
    originalname: str
    mimetype: str
    url: str
    size: int


class ReclamoDetail(ReclamoHeader):
    """Reclamo completo con sus sub-colecciones ordenadas."""

    timeline: List[TimelineItemOut] = []
    mensajes: List[MensajeOut] = []
    archivos: List[ArchivoOut] = []


class CreatedResponse(BaseModel):
    id: str


class CountResponse(BaseModel):
    count: int


class OkResponse(BaseModel):
    ok: bool = True


# =========================================================
# REQUESTS
# =========================================================


class ConsultaRequest(BaseModel):
    """
    Formulario de contacto.

    Todos los campos son opcionales a nivel de esquema: la obligatoriedad
    la valida el servicio para responder 400 con un mensaje propio.
    """

    nombre: Optional[str] = None
    email: Optional[str] = None
    mensaje: Optional[str] = None
    consentimiento: Optional[Any] = None


class TimelineItemIn(CamelModel):
    hito: Optional[str] = None
    fecha: Optional[Union[datetime, date]] = None
    tipo: Optional[str] = None


class MensajeIn(CamelModel):
    texto: Optional[str] = None


class ReclamoPatchRequest(CamelModel):
    """
    PATCH de reclamo (solo abogado).

    Solo los campos presentes en el payload se aplican; cualquier campo
    fuera de la lista se ignora.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    estado: Optional[str] = None
    monto: Optional[float] = None
    entidad: Optional[str] = None
    tipo: Optional[str] = None
    sla_due: Optional[Union[datetime, date]] = None
    timeline_item: Optional[TimelineItemIn] = None
    mensaje: Optional[MensajeIn] = None


class MensajeRequest(BaseModel):
    texto: Optional[str] = None

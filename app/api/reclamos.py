"""
Endpoints autenticados sobre reclamos existentes.

Acceso: el cliente dueño o cualquier abogado. La modificación de campos
del reclamo (PATCH) es exclusiva del rol abogado.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import TokenIdentity, api_rate_limit, get_current_user, require_role
from app.models.reclamo_summary import (
    CountResponse,
    MensajeRequest,
    OkResponse,
    ReclamoDetail,
    ReclamoHeader,
    ReclamoPatchRequest,
)
from app.models.user import UserRole
from app.services.reclamo_service import ReclamoService


router = APIRouter(
    prefix="/reclamos",
    tags=["reclamos"],
)

_AUTH_RESPONSES = {
    401: {"description": "No autenticado"},
    403: {"description": "Sin permisos sobre el reclamo"},
    404: {"description": "Reclamo no encontrado"},
}


@router.get(
    "",
    response_model=List[ReclamoHeader],
    response_model_by_alias=True,
    summary="Listar reclamos",
    description=(
        "Cabeceras de reclamos ordenadas por última actualización. "
        "Un cliente ve solo los suyos; un abogado ve todos salvo `mine=true`."
    ),
    responses={401: {"description": "No autenticado"}},
)
@api_rate_limit
def list_reclamos(
    request: Request,
    mine: Optional[str] = Query(None, description="'true' para ver solo los propios"),
    limit: Optional[str] = Query(None, description="Máximo de filas (número positivo)"),
    identity: TokenIdentity = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[ReclamoHeader]:
    return ReclamoService(db).list_claims(identity, mine=mine, limit=limit)


@router.get(
    "/{reclamo_id}",
    response_model=ReclamoDetail,
    response_model_by_alias=True,
    summary="Detalle de reclamo",
    responses=_AUTH_RESPONSES,
)
@api_rate_limit
def get_reclamo(
    request: Request,
    reclamo_id: str,
    identity: TokenIdentity = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReclamoDetail:
    """Reclamo con timeline, mensajes y adjuntos en orden cronológico."""
    return ReclamoService(db).get_claim_detail(identity, reclamo_id)


@router.patch(
    "/{reclamo_id}",
    response_model=OkResponse,
    summary="Actualizar reclamo (abogado)",
    description=(
        "Actualiza estado, monto, entidad, tipo y slaDue. Opcionalmente agrega "
        "un hito (`timelineItem`) y un mensaje del estudio (`mensaje`). "
        "Todo se aplica en una única transacción."
    ),
    responses={400: {"description": "Payload inválido"}, **_AUTH_RESPONSES},
)
@api_rate_limit
def patch_reclamo(
    request: Request,
    reclamo_id: str,
    payload: ReclamoPatchRequest,
    identity: TokenIdentity = Depends(require_role(UserRole.ABOGADO)),
    db: Session = Depends(get_db),
) -> OkResponse:
    ReclamoService(db).update_claim(identity, reclamo_id, payload)
    return OkResponse()


@router.post(
    "/{reclamo_id}/archivos",
    response_model=CountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Adjuntar archivos",
    responses=_AUTH_RESPONSES,
)
@api_rate_limit
def upload_archivos(
    request: Request,
    reclamo_id: str,
    archivos: Optional[List[UploadFile]] = File(None),
    identity: TokenIdentity = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CountResponse:
    count = ReclamoService(db).add_attachments(identity, reclamo_id, archivos)
    return CountResponse(count=count)


@router.post(
    "/{reclamo_id}/mensajes",
    response_model=OkResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enviar mensaje",
    responses={400: {"description": "Texto requerido"}, **_AUTH_RESPONSES},
)
@api_rate_limit
def post_mensaje(
    request: Request,
    reclamo_id: str,
    payload: Optional[MensajeRequest] = None,
    identity: TokenIdentity = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> OkResponse:
    """El autor se deduce del rol: abogado → 'Estudio', cliente → 'Cliente'."""
    ReclamoService(db).post_message(identity, reclamo_id, payload.texto if payload else None)
    return OkResponse()

"""
Endpoints públicos (sin autenticación obligatoria).

- GET  /health     → liveness
- POST /consultas  → formulario de contacto
- POST /reclamos   → alta de reclamo (multipart, adjuntos en 'archivos')
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import TokenIdentity, api_rate_limit, get_optional_user
from app.models.reclamo_summary import ConsultaRequest, CreatedResponse, OkResponse
from app.services.consulta_service import ConsultaService
from app.services.reclamo_service import ReclamoService, ReclamoSubmission


router = APIRouter(tags=["public"])


@router.get("/health", response_model=OkResponse, summary="Liveness")
@api_rate_limit
def health(
    request: Request,
) -> OkResponse:
    return OkResponse()


@router.post(
    "/consultas",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enviar consulta",
    responses={400: {"description": "Datos incompletos o sin consentimiento"}},
)
@api_rate_limit
def create_consulta(
    request: Request,
    payload: ConsultaRequest,
    db: Session = Depends(get_db),
) -> CreatedResponse:
    consulta_id = ConsultaService(db).submit_inquiry(payload)
    return CreatedResponse(id=consulta_id)


@router.post(
    "/reclamos",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Iniciar reclamo",
    description=(
        "Alta pública de un reclamo. Si llega un token válido, el reclamo "
        "queda a nombre de ese usuario; si no, se usa (o se crea) el usuario "
        "del email del formulario. Los adjuntos van en el campo 'archivos'."
    ),
    responses={400: {"description": "Faltan campos obligatorios o fecha inválida"}},
)
@api_rate_limit
def create_reclamo(
    request: Request,
    nombre: Optional[str] = Form(None),
    dni: Optional[str] = Form(None),
    telefono: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    entidad: Optional[str] = Form(None),
    fechaIncidente: Optional[str] = Form(None),
    descripcion: Optional[str] = Form(None),
    archivos: Optional[List[UploadFile]] = File(None),
    identity: Optional[TokenIdentity] = Depends(get_optional_user),
    db: Session = Depends(get_db),
) -> CreatedResponse:
    """
    Crea el reclamo con su hito inicial, el mensaje del cliente y los adjuntos.

    Todo en una única transacción.
    """
    form = ReclamoSubmission(
        nombre=nombre,
        dni=dni,
        telefono=telefono,
        email=email,
        entidad=entidad,
        descripcion=descripcion,
        fecha_incidente=fechaIncidente,
    )
    reclamo_id = ReclamoService(db).submit_claim(form, archivos, identity=identity)
    return CreatedResponse(id=reclamo_id)

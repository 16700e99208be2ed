"""
Servicio de reclamos.

Encapsula toda la lógica de negocio de reclamos:
- Alta pública (con auto-provisión del usuario dueño)
- Listado y detalle con control de acceso (dueño o abogado)
- Actualización por el estudio (campos permitidos + hito + mensaje)
- Adjuntos y mensajes sobre reclamos existentes

Cada operación de escritura es una única transacción: o se aplica todo
o no se aplica nada. Toda escritura sobre una sub-colección actualiza
updated_at del reclamo.
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Union

from fastapi import UploadFile
from pydantic import TypeAdapter, ValidationError
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    ClaimNotFoundException,
    ForbiddenException,
    InternalException,
    ValidationException,
)
from app.core.logger import StructuredLogger
from app.core.security import (
    TokenIdentity,
    can_access_claim,
    generate_temporary_password,
    hash_password,
)
from app.models.reclamo import (
    ESTADO_INICIAL,
    HITO_INICIAL,
    TIPO_INICIAL,
    MensajeAutor,
    Reclamo,
    ReclamoArchivo,
    ReclamoMensaje,
    ReclamoTimeline,
    TimelineTipo,
    utcnow,
)
from app.models.reclamo_summary import (
    ArchivoOut,
    ClienteRef,
    MensajeOut,
    ReclamoDetail,
    ReclamoHeader,
    ReclamoPatchRequest,
    TimelineItemOut,
    ensure_utc,
)
from app.models.user import User, UserRole
from app.services.auth_service import normalize_email
from app.services.base import BaseService
from app.services.file_intake import FileIntake
from app.services.storage import StoredFile, get_storage

REQUIRED_CLAIM_FIELDS = ("nombre", "dni", "telefono", "email", "entidad", "descripcion")
PATCHABLE_FIELDS = ("estado", "monto", "entidad", "tipo", "sla_due")
NON_NULLABLE_PATCH_FIELDS = ("estado", "entidad", "tipo")
SUBMIT_CONFLICT_ATTEMPTS = 3

_FECHA_ADAPTER = TypeAdapter(Union[datetime, date])


def to_utc_datetime(value: Union[datetime, date, None]) -> Optional[datetime]:
    """Normaliza fecha o fecha-hora a datetime UTC (las fechas a medianoche)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def parse_fecha(value: Optional[str], field: str) -> Optional[datetime]:
    """Parsea una fecha ISO (YYYY-MM-DD o fecha-hora) recibida como texto."""
    if value is None or not str(value).strip():
        return None
    try:
        return to_utc_datetime(_FECHA_ADAPTER.validate_python(str(value).strip()))
    except ValidationError:
        raise ValidationException(f"Fecha inválida: {field}", field=field)


def parse_limit(limit: Optional[str]) -> Optional[int]:
    """Límite de listado: solo se aplica si es un número positivo."""
    if limit is None:
        return None
    try:
        value = int(float(limit))
    except (TypeError, ValueError, OverflowError):
        return None
    return value if value > 0 else None


def format_fecha(value: Optional[datetime]) -> str:
    return ensure_utc(value).strftime("%Y-%m-%d") if value else ""


def format_fecha_hora(value: Optional[datetime]) -> str:
    return ensure_utc(value).strftime("%Y-%m-%d %H:%M") if value else ""


@dataclass
class ReclamoSubmission:
    """Campos del formulario público de reclamo (multipart)."""

    nombre: Optional[str] = None
    dni: Optional[str] = None
    telefono: Optional[str] = None
    email: Optional[str] = None
    entidad: Optional[str] = None
    descripcion: Optional[str] = None
    fecha_incidente: Optional[str] = None

    def missing_fields(self) -> List[str]:
        return [f for f in REQUIRED_CLAIM_FIELDS if not str(getattr(self, f) or "").strip()]


class ReclamoService(BaseService):
    """Servicio de reclamos."""

    def __init__(
        self,
        db: Session,
        intake: Optional[FileIntake] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        super().__init__(db=db, logger=logger)
        self.intake = intake or FileIntake(get_storage(), logger=self.logger)

    # =========================================================
    # ACCESO
    # =========================================================

    def get_claim_or_raise(self, claim_id: str) -> Reclamo:
        """
        Raises:
            ClaimNotFoundException: Si no existe
        """
        reclamo = self.db.get(Reclamo, claim_id)
        if reclamo is None:
            raise ClaimNotFoundException(claim_id)
        return reclamo

    def get_accessible_claim(self, identity: TokenIdentity, claim_id: str) -> Reclamo:
        """
        Reclamo visible para la identidad (dueño o abogado).

        Raises:
            ClaimNotFoundException: Si no existe
            ForbiddenException: Si no es dueño ni abogado
        """
        reclamo = self.get_claim_or_raise(claim_id)
        if not can_access_claim(identity, reclamo.owner_email):
            self._log_warning(
                "Claim access denied",
                claim_id=claim_id,
                action="claim_access_denied",
                user_email=identity.email,
            )
            raise ForbiddenException()
        return reclamo

    # =========================================================
    # CÓDIGO DE RECLAMO
    # =========================================================

    def generate_claim_code(self, year: Optional[int] = None) -> str:
        """
        Genera PL-<año>-<4 dígitos> que no exista todavía.

        La columna es UNIQUE; aquí se evita la colisión reintentando.

        Raises:
            InternalException: Si se agotan los intentos
        """
        year = year or utcnow().year
        for _ in range(settings.claim_code_max_attempts):
            codigo = f"PL-{year}-{secrets.randbelow(10000):04d}"
            taken = self.db.query(Reclamo.id).filter(Reclamo.codigo == codigo).first()
            if not taken:
                return codigo
        self._log_error("Claim code space exhausted", action="claim_code_exhausted", year=year)
        raise InternalException(context="generate_claim_code")

    # =========================================================
    # ALTA PÚBLICA
    # =========================================================

    def submit_claim(
        self,
        form: ReclamoSubmission,
        uploads: Optional[List[UploadFile]] = None,
        identity: Optional[TokenIdentity] = None,
    ) -> str:
        """
        Crea un reclamo desde el formulario público.

        Args:
            form: Campos del formulario
            uploads: Archivos adjuntos (opcional)
            identity: Identidad opcional (token válido); su email manda
                sobre el del formulario

        Returns:
            ID del reclamo creado

        Raises:
            ValidationException: Si falta algún campo obligatorio
        """
        missing = form.missing_fields()
        if missing:
            self._log_warning("Claim submission incomplete", action="claim_invalid", missing=missing)
            raise ValidationException("Faltan campos obligatorios", details={"missing": missing})

        fecha_incidente = parse_fecha(form.fecha_incidente, "fechaIncidente")
        stored = self.intake.accept(uploads)

        try:
            reclamo = self._insert_claim(form, identity, fecha_incidente, stored)
        except Exception:
            self.intake.discard(stored)
            raise

        self._log_info(
            "Claim created",
            claim_id=reclamo.id,
            action="claim_created",
            codigo=reclamo.codigo,
            owner_email=reclamo.owner_email,
            attachments=len(stored),
            authenticated=identity is not None,
        )
        return reclamo.id

    def _insert_claim(
        self,
        form: ReclamoSubmission,
        identity: Optional[TokenIdentity],
        fecha_incidente: Optional[datetime],
        stored: List[StoredFile],
    ) -> Reclamo:
        """
        Inserta reclamo, hito, mensaje y adjuntos en una transacción.

        Un choque con una restricción UNIQUE (código tomado o usuario creado
        por un alta concurrente) deshace la transacción y se reintenta desde
        cero: el dueño se vuelve a buscar y el código se regenera.
        """
        for attempt in range(1, SUBMIT_CONFLICT_ATTEMPTS + 1):
            try:
                with self._transaction("submit_claim", reraise=(IntegrityError,)):
                    owner = self._resolve_owner(form, identity)
                    now = utcnow()
                    reclamo = Reclamo(
                        codigo=self.generate_claim_code(now.year),
                        owner_email=owner.email,
                        entidad=form.entidad.strip(),
                        monto=None,
                        estado=ESTADO_INICIAL,
                        tipo=TIPO_INICIAL,
                        descripcion=form.descripcion,
                        fecha_incidente=fecha_incidente,
                        created_at=now,
                        updated_at=now,
                        sla_due=now + timedelta(days=settings.claim_sla_days),
                    )
                    reclamo.timeline.append(
                        ReclamoTimeline(fecha=now, hito=HITO_INICIAL, tipo=TimelineTipo.OK.value)
                    )
                    reclamo.mensajes.append(
                        ReclamoMensaje(
                            autor=MensajeAutor.CLIENTE.value, texto=form.descripcion, creado_en=now
                        )
                    )
                    reclamo.archivos.extend(self._attachments_from(stored))
                    self.db.add(reclamo)
                    self.db.flush()
                return reclamo
            except IntegrityError as e:
                if attempt == SUBMIT_CONFLICT_ATTEMPTS:
                    raise self._to_domain_error(e, "submit_claim") from e
                self._log_warning(
                    "Unique conflict on claim insert, retrying",
                    action="claim_insert_conflict",
                    attempt=attempt,
                )

    def _resolve_owner(self, form: ReclamoSubmission, identity: Optional[TokenIdentity]) -> User:
        """Usuario dueño: el del token si existe, si no el del formulario (o uno nuevo)."""
        if identity is not None:
            user = self._find_user(identity.email)
            if user is not None:
                return user

        email = normalize_email(form.email)
        user = self._find_user(email)
        if user is not None:
            return user

        user = User(
            email=email,
            name=form.nombre.strip(),
            role=UserRole.CLIENTE.value,
            password_hash=hash_password(generate_temporary_password()),
            telefono=form.telefono,
            dni=form.dni,
        )
        self.db.add(user)
        self.db.flush()
        self._log_info("User auto-provisioned", action="user_autoprovisioned", user_email=email)
        return user

    def _find_user(self, email: str) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(func.lower(User.email) == normalize_email(email))
            .first()
        )

    @staticmethod
    def _attachments_from(stored: List[StoredFile]) -> List[ReclamoArchivo]:
        return [
            ReclamoArchivo(
                filename=f.filename,
                originalname=f.originalname,
                mimetype=f.mimetype,
                url=f.url,
                size=f.size,
            )
            for f in stored
        ]

    # =========================================================
    # LECTURA
    # =========================================================

    def list_claims(
        self,
        identity: TokenIdentity,
        mine: Optional[str] = None,
        limit: Optional[str] = None,
    ) -> List[ReclamoHeader]:
        """
        Lista cabeceras de reclamos, más recientes primero.

        Un cliente solo ve los suyos; un abogado ve todos salvo que pida mine=true.
        """
        query = self.db.query(Reclamo)
        only_mine = str(mine).lower() == "true"
        if only_mine or not identity.is_abogado:
            query = query.filter(func.lower(Reclamo.owner_email) == identity.email.lower())

        query = query.order_by(Reclamo.updated_at.desc(), Reclamo.created_at.desc())

        take = parse_limit(limit)
        if take:
            query = query.limit(take)

        return [self._build_header(r) for r in query.all()]

    def get_claim_detail(self, identity: TokenIdentity, claim_id: str) -> ReclamoDetail:
        """
        Detalle completo de un reclamo.

        Raises:
            ClaimNotFoundException, ForbiddenException
        """
        reclamo = self.get_accessible_claim(identity, claim_id)
        owner = self._find_user(reclamo.owner_email)
        header = self._build_header(reclamo, owner_name=owner.name if owner else "")

        timeline = (
            self.db.query(ReclamoTimeline)
            .filter(ReclamoTimeline.reclamo_id == claim_id)
            .order_by(ReclamoTimeline.fecha.asc())
            .all()
        )
        mensajes = (
            self.db.query(ReclamoMensaje)
            .filter(ReclamoMensaje.reclamo_id == claim_id)
            .order_by(ReclamoMensaje.creado_en.asc())
            .all()
        )
        archivos = (
            self.db.query(ReclamoArchivo)
            .filter(ReclamoArchivo.reclamo_id == claim_id)
            .all()
        )

        return ReclamoDetail(
            **header.model_dump(),
            timeline=[
                TimelineItemOut(fecha=format_fecha(t.fecha), hito=t.hito, tipo=t.tipo or "info")
                for t in timeline
            ],
            mensajes=[
                MensajeOut(de=m.autor, texto=m.texto, fecha=format_fecha_hora(m.creado_en))
                for m in mensajes
            ],
            archivos=[ArchivoOut(**a.to_dict()) for a in archivos],
        )

    @staticmethod
    def _build_header(reclamo: Reclamo, owner_name: str = "") -> ReclamoHeader:
        return ReclamoHeader(
            id=reclamo.id,
            codigo=reclamo.codigo,
            cliente=ClienteRef(email=reclamo.owner_email, nombre=owner_name),
            entidad=reclamo.entidad,
            monto=reclamo.monto,
            estado=reclamo.estado,
            tipo=reclamo.tipo,
            created_at=ensure_utc(reclamo.created_at),
            updated_at=ensure_utc(reclamo.updated_at),
            sla_due=ensure_utc(reclamo.sla_due),
        )

    # =========================================================
    # ESCRITURA (ESTUDIO)
    # =========================================================

    def update_claim(
        self, identity: TokenIdentity, claim_id: str, patch: ReclamoPatchRequest
    ) -> Reclamo:
        """
        Aplica un PATCH del estudio en una sola transacción.

        - Solo campos permitidos y presentes en el payload
        - updated_at siempre se actualiza
        - timelineItem.hito -> nuevo hito (fecha por defecto ahora, tipo 'info')
        - mensaje.texto -> nuevo mensaje autor 'Estudio'

        Raises:
            ClaimNotFoundException: Si no existe
            ValidationException: Valores nulos en campos obligatorios o tipo de hito inválido
        """
        reclamo = self.get_claim_or_raise(claim_id)

        changes = {}
        for field in PATCHABLE_FIELDS:
            if field not in patch.model_fields_set:
                continue
            value = getattr(patch, field)
            if field == "sla_due":
                value = to_utc_datetime(value)
            elif field in NON_NULLABLE_PATCH_FIELDS and not str(value or "").strip():
                raise ValidationException(f"Valor inválido para {field}", field=field)
            changes[field] = value

        new_hito = None
        if patch.timeline_item and patch.timeline_item.hito:
            tipo = (patch.timeline_item.tipo or TimelineTipo.INFO.value).strip().lower()
            if tipo not in {t.value for t in TimelineTipo}:
                raise ValidationException("Tipo de hito inválido", field="timelineItem.tipo")
            new_hito = (patch.timeline_item.hito, to_utc_datetime(patch.timeline_item.fecha), tipo)

        new_texto = patch.mensaje.texto if patch.mensaje and patch.mensaje.texto else None

        with self._transaction("update_claim", claim_id):
            now = utcnow()
            for field, value in changes.items():
                setattr(reclamo, field, value)
            reclamo.updated_at = now

            if new_hito:
                hito, fecha, tipo = new_hito
                reclamo.timeline.append(ReclamoTimeline(fecha=fecha or now, hito=hito, tipo=tipo))

            if new_texto:
                reclamo.mensajes.append(
                    ReclamoMensaje(autor=MensajeAutor.ESTUDIO.value, texto=new_texto, creado_en=now)
                )
            self.db.flush()

        self._log_info(
            "Claim updated",
            claim_id=claim_id,
            action="claim_updated",
            user_email=identity.email,
            fields=sorted(changes),
            timeline_added=bool(new_hito),
            message_added=bool(new_texto),
        )
        return reclamo

    # =========================================================
    # SUB-RECURSOS (DUEÑO O ABOGADO)
    # =========================================================

    def add_attachments(
        self, identity: TokenIdentity, claim_id: str, uploads: Optional[List[UploadFile]]
    ) -> int:
        """
        Registra adjuntos en un reclamo existente.

        Returns:
            Cantidad de archivos aceptados
        """
        reclamo = self.get_accessible_claim(identity, claim_id)

        stored = self.intake.accept(uploads, claim_id=claim_id)
        if not stored:
            return 0

        try:
            with self._transaction("add_attachments", claim_id):
                reclamo.archivos.extend(self._attachments_from(stored))
                reclamo.touch()
                self.db.flush()
        except Exception:
            self.intake.discard(stored)
            raise

        self._log_info(
            "Attachments added",
            claim_id=claim_id,
            action="attachments_added",
            user_email=identity.email,
            count=len(stored),
        )
        return len(stored)

    def post_message(self, identity: TokenIdentity, claim_id: str, texto: Optional[str]) -> None:
        """
        Agrega un mensaje al hilo. Autor según rol: abogado -> 'Estudio', resto -> 'Cliente'.

        Raises:
            ClaimNotFoundException, ForbiddenException, ValidationException
        """
        reclamo = self.get_accessible_claim(identity, claim_id)

        if not texto or not texto.strip():
            raise ValidationException("Texto requerido", field="texto")

        autor = MensajeAutor.ESTUDIO if identity.is_abogado else MensajeAutor.CLIENTE

        with self._transaction("post_message", claim_id):
            now = utcnow()
            reclamo.mensajes.append(ReclamoMensaje(autor=autor.value, texto=texto, creado_en=now))
            reclamo.updated_at = now
            self.db.flush()

        self._log_info(
            "Message posted",
            claim_id=claim_id,
            action="message_posted",
            autor=autor.value,
        )

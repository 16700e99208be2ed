"""
Servicio de consultas públicas (formulario de contacto).
"""
from app.core.exceptions import ValidationException
from app.models.consulta import Consulta
from app.models.reclamo_summary import ConsultaRequest
from app.services.base import BaseService


class ConsultaService(BaseService):

    def submit_inquiry(self, payload: ConsultaRequest) -> str:
        """
        Registra una consulta.

        Raises:
            ValidationException: Si falta algún campo o no hay consentimiento
        """
        if not payload.nombre or not payload.email or not payload.mensaje or not payload.consentimiento:
            raise ValidationException("Datos incompletos")

        consulta = Consulta(
            nombre=payload.nombre,
            email=payload.email.strip(),
            mensaje=payload.mensaje,
            consentimiento=bool(payload.consentimiento),
        )
        with self._transaction("submit_inquiry"):
            self.db.add(consulta)
            self.db.flush()

        self._log_info("Inquiry received", action="inquiry_created", consulta_id=consulta.id)
        return consulta.id

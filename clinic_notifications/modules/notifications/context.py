"""
Variable context: the normalized bag of data a message is rendered from.

Each section (patient, appointment, form, clinic) is either built whole from
an existing record or left as None. Every field inside a section is optional
and renders as an empty string when missing.
"""
import uuid
import logging
from datetime import datetime
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_notifications.core.config import settings
from clinic_notifications.modules.appointments.repository import AppointmentRepository
from clinic_notifications.modules.clinics.repository import ClinicRepository
from clinic_notifications.modules.forms.repository import FormRepository
from clinic_notifications.modules.patients.repository import PatientRepository

log = logging.getLogger("notifications.context")

class PatientVars(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    birth_date: str | None = None  # ISO date

class AppointmentVars(BaseModel):
    scheduled_at: datetime | None = None
    doctor_name: str | None = None
    type_name: str | None = None
    procedure_name: str | None = None
    status: str | None = None
    location: str | None = None
    recommendations: str | None = None
    requires_fasting: bool = False
    special_instructions: str | None = None
    preparation_notes: str | None = None

class FormVars(BaseModel):
    link: str | None = None
    name: str | None = None
    due_at: datetime | None = None

class ClinicVars(BaseModel):
    name: str | None = None
    phone: str | None = None
    address: str | None = None

class VariableContext(BaseModel):
    patient: PatientVars | None = None
    appointment: AppointmentVars | None = None
    form: FormVars | None = None
    clinic: ClinicVars | None = None

    def snapshot(self) -> dict:
        return self.model_dump(mode="json")

def form_link(identifier: str | None) -> str | None:
    if not identifier:
        return None
    path = f"/f/{identifier}"
    return f"{settings.APP_BASE_URL}{path}" if settings.APP_BASE_URL else path

def patient_from_metadata(metadata: dict) -> PatientVars:
    """Public-form submitters have no patient record; their answers stand in for one."""
    birth = metadata.get("birth_date")
    return PatientVars(
        name=metadata.get("name") or None,
        email=metadata.get("email") or None,
        phone=metadata.get("phone") or None,
        birth_date=str(birth) if birth else None,
    )

class VariableContextBuilder:
    def __init__(self, session: AsyncSession):
        self.patients = PatientRepository(session)
        self.appointments = AppointmentRepository(session)
        self.forms = FormRepository(session)
        self.clinics = ClinicRepository(session)

    async def build(self,
                    clinic_id: uuid.UUID,
                    *,
                    patient_id: uuid.UUID | None = None,
                    appointment_id: uuid.UUID | None = None,
                    form_instance_id: uuid.UUID | None = None,
                    public_metadata: dict | None = None) -> VariableContext:
        ctx = VariableContext()

        if patient_id:
            p = await self.patients.get(clinic_id, patient_id)
            if p:
                ctx.patient = PatientVars(
                    name=p.legal_name or None,
                    email=p.primary_email or None,
                    phone=p.primary_phone or None,
                    birth_date=p.birth_date.isoformat() if p.birth_date else None,
                )
        elif public_metadata:
            ctx.patient = patient_from_metadata(public_metadata)

        if appointment_id:
            appt, doctor, appt_type, procedure = await self.appointments.get_with_details(clinic_id, appointment_id)
            if appt:
                ctx.appointment = AppointmentVars(
                    scheduled_at=appt.scheduled_at,
                    doctor_name=doctor.name if doctor else None,
                    type_name=appt_type.name if appt_type else None,
                    procedure_name=procedure.name if procedure else None,
                    status=appt.status,
                    location=appt.location_name,
                    recommendations=appt.recommendations or None,
                    requires_fasting=bool(appt.requires_fasting),
                    special_instructions=appt.special_instructions or None,
                    preparation_notes=appt.preparation_notes or None,
                )

        if form_instance_id:
            instance, template = await self.forms.get_with_template(clinic_id, form_instance_id)
        elif appointment_id:
            instance, template = await self.forms.first_pending_for_appointment(clinic_id, appointment_id)
        else:
            instance, template = None, None
        if instance:
            # a completed form is named but its link is no longer advertised
            link = None if instance.status == "completed" else form_link(instance.slug or instance.link_token)
            ctx.form = FormVars(link=link, name=template.name if template else None, due_at=instance.due_at)

        clinic = await self.clinics.get(clinic_id)
        if clinic:
            ctx.clinic = ClinicVars(name=clinic.name, phone=clinic.phone, address=clinic.address)

        log.debug(
            "context built: clinic=%s sections=%s",
            clinic_id, [k for k, v in ctx if v is not None],
        )
        return ctx

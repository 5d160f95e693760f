import uuid
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from clinic_notifications.modules.appointments.models import Appointment, AppointmentType, Procedure
from clinic_notifications.modules.directory.models import Practitioner

class AppointmentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_with_details(self, clinic_id: uuid.UUID, appt_id: uuid.UUID):
        """
        Returns (appointment, doctor, appointment_type, procedure); joined rows may be None.
        """
        q = (
            select(Appointment, Practitioner, AppointmentType, Procedure)
            .outerjoin(Practitioner, Appointment.doctor_id == Practitioner.id)
            .outerjoin(AppointmentType, Appointment.appointment_type_id == AppointmentType.id)
            .outerjoin(Procedure, Appointment.procedure_id == Procedure.id)
            .where(
                Appointment.id == appt_id,
                Appointment.clinic_id == clinic_id,
                Appointment.deleted_at.is_(None),
            )
        )
        res = await self.session.execute(q)
        row = res.first()
        if row is None:
            return None, None, None, None
        return row[0], row[1], row[2], row[3]

import uuid
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from clinic_notifications.modules.forms.models import FormInstance, FormTemplate

class FormRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_with_template(self, clinic_id: uuid.UUID, instance_id: uuid.UUID):
        q = (
            select(FormInstance, FormTemplate)
            .outerjoin(FormTemplate, FormInstance.form_template_id == FormTemplate.id)
            .where(
                FormInstance.id == instance_id,
                FormInstance.clinic_id == clinic_id,
                FormInstance.deleted_at.is_(None),
            )
        )
        row = (await self.session.execute(q)).first()
        return (row[0], row[1]) if row else (None, None)

    async def first_pending_for_appointment(self, clinic_id: uuid.UUID, appointment_id: uuid.UUID):
        # Oldest non-completed form only; completed ones are never advertised again
        q = (
            select(FormInstance, FormTemplate)
            .outerjoin(FormTemplate, FormInstance.form_template_id == FormTemplate.id)
            .where(
                FormInstance.clinic_id == clinic_id,
                FormInstance.appointment_id == appointment_id,
                FormInstance.status != "completed",
                FormInstance.deleted_at.is_(None),
            )
            .order_by(FormInstance.created_at.asc())
            .limit(1)
        )
        row = (await self.session.execute(q)).first()
        return (row[0], row[1]) if row else (None, None)

import uuid
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from clinic_notifications.modules.clinics.models import Clinic, ClinicIntegration

EMAIL_INTEGRATION = "email_google"
WHATSAPP_INTEGRATION = "whatsapp_meta"

class ClinicRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, clinic_id: uuid.UUID) -> Clinic | None:
        q = select(Clinic).where(Clinic.id == clinic_id, Clinic.deleted_at.is_(None))
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

class IntegrationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_connected(self, clinic_id: uuid.UUID, integration_type: str) -> ClinicIntegration | None:
        q = select(ClinicIntegration).where(
            ClinicIntegration.clinic_id == clinic_id,
            ClinicIntegration.integration_type == integration_type,
            ClinicIntegration.status == "connected",
            ClinicIntegration.deleted_at.is_(None),
        )
        res = await self.session.execute(q)
        return res.scalars().first()

    async def mark_error(self, clinic_id: uuid.UUID, integration_type: str, message: str) -> None:
        obj = await self.get_connected(clinic_id, integration_type)
        if not obj:
            return
        obj.status = "error"
        obj.error_message = message[:500]
        await self.session.flush()

import uuid
from typing import Sequence
from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession
from clinic_notifications.modules.notifications.models import (
    ChannelSetting, MessageTemplate, PendingMessage, SystemMessageTemplate,
)

class ChannelSettingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, clinic_id: uuid.UUID, event_code: str, channel: str) -> ChannelSetting | None:
        q = select(ChannelSetting).where(
            ChannelSetting.clinic_id == clinic_id,
            ChannelSetting.event_code == event_code,
            ChannelSetting.channel == channel,
            ChannelSetting.deleted_at.is_(None),
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def list_for_event(self, clinic_id: uuid.UUID, event_code: str) -> Sequence[ChannelSetting]:
        q = select(ChannelSetting).where(
            ChannelSetting.clinic_id == clinic_id,
            ChannelSetting.event_code == event_code,
            ChannelSetting.deleted_at.is_(None),
        )
        res = await self.session.execute(q)
        return res.scalars().all()

class TemplateRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_custom(self, clinic_id: uuid.UUID, template_id: uuid.UUID) -> MessageTemplate | None:
        q = select(MessageTemplate).where(
            MessageTemplate.id == template_id,
            MessageTemplate.clinic_id == clinic_id,
            MessageTemplate.deleted_at.is_(None),
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def get_system(self, event_code: str, channel: str) -> SystemMessageTemplate | None:
        q = select(SystemMessageTemplate).where(
            SystemMessageTemplate.event_code == event_code,
            SystemMessageTemplate.channel == channel,
            SystemMessageTemplate.deleted_at.is_(None),
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def list_system(self) -> Sequence[SystemMessageTemplate]:
        res = await self.session.execute(select(SystemMessageTemplate).where(SystemMessageTemplate.deleted_at.is_(None)))
        return res.scalars().all()

    async def create_custom(self, clinic_id: uuid.UUID, **data) -> MessageTemplate:
        obj = MessageTemplate(clinic_id=clinic_id, **data)
        self.session.add(obj)
        await self.session.flush()
        return obj

class PendingMessageRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, clinic_id: uuid.UUID, **data) -> PendingMessage:
        obj = PendingMessage(clinic_id=clinic_id, status="pending", **data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, clinic_id: uuid.UUID, pending_id: uuid.UUID) -> PendingMessage | None:
        q = select(PendingMessage).where(
            PendingMessage.id == pending_id,
            PendingMessage.clinic_id == clinic_id,
            PendingMessage.deleted_at.is_(None),
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def list(self, clinic_id: uuid.UUID, *, status: str | None = "pending", limit: int = 50) -> Sequence[PendingMessage]:
        q = select(PendingMessage).where(
            PendingMessage.clinic_id == clinic_id,
            PendingMessage.deleted_at.is_(None),
        )
        if status:
            q = q.where(PendingMessage.status == status)
        res = await self.session.execute(q.order_by(desc(PendingMessage.created_at)).limit(limit))
        return res.scalars().all()

    async def set_status(self, obj: PendingMessage, status: str) -> PendingMessage:
        obj.status = status
        obj.version = (obj.version or 1) + 1
        await self.session.flush()
        return obj

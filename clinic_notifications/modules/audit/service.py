import uuid
import logging
from typing import Sequence
from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession
from clinic_notifications.modules.audit.models import MessageLogEntry

log = logging.getLogger("notifications.audit")

class MessageLogService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(self,
                     clinic_id: uuid.UUID,
                     *,
                     channel: str,
                     event_code: str,
                     template_id: uuid.UUID | None,
                     patient_id: uuid.UUID | None = None,
                     appointment_id: uuid.UUID | None = None,
                     delivery_id: str | None = None,
                     meta: dict | None = None) -> MessageLogEntry:
        entry = MessageLogEntry(
            clinic_id=clinic_id,
            patient_id=patient_id,
            appointment_id=appointment_id,
            channel=channel,
            type=event_code,
            template_id=template_id,
            delivery_id=delivery_id,
            meta=meta or {},
        )
        self.session.add(entry)
        await self.session.flush()
        log.info("message log: clinic=%s channel=%s type=%s delivery_id=%s", clinic_id, channel, event_code, delivery_id)
        return entry

    async def list(self, clinic_id: uuid.UUID, *, channel: str | None = None, event_code: str | None = None, limit: int = 50) -> Sequence[MessageLogEntry]:
        q = select(MessageLogEntry).where(
            MessageLogEntry.clinic_id == clinic_id,
            MessageLogEntry.deleted_at.is_(None),
        )
        if channel:
            q = q.where(MessageLogEntry.channel == channel)
        if event_code:
            q = q.where(MessageLogEntry.type == event_code)
        res = await self.session.execute(q.order_by(desc(MessageLogEntry.sent_at)).limit(limit))
        return res.scalars().all()

import uuid
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from clinic_notifications.modules.events.models import EventTimeline

class EventTimelineRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, clinic_id: uuid.UUID, event_id: uuid.UUID) -> EventTimeline | None:
        q = select(EventTimeline).where(
            EventTimeline.id == event_id,
            EventTimeline.clinic_id == clinic_id,
            EventTimeline.deleted_at.is_(None),
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def first_pending_for_form(self, form_instance_id: uuid.UUID) -> EventTimeline | None:
        q = (
            select(EventTimeline)
            .where(
                EventTimeline.form_instance_id == form_instance_id,
                EventTimeline.status == "pending",
                EventTimeline.deleted_at.is_(None),
            )
            .order_by(EventTimeline.created_at.asc())
            .limit(1)
        )
        res = await self.session.execute(q)
        return res.scalars().first()

    async def mark_channel_sent(self, obj: EventTimeline, channel: str, *, processed: bool) -> None:
        # JSON columns are replaced, never mutated in place, so the change is tracked
        sent = list(obj.sent_channels or [])
        if channel not in sent:
            sent.append(channel)
        obj.sent_channels = sent
        if processed:
            obj.status = "processed"
        await self.session.flush()

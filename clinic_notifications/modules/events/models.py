import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import TIMESTAMP, String, JSON, ForeignKey
from clinic_notifications.core.base import Base, TimestampedTenantMixin, utcnow

class EventTimeline(Base, TimestampedTenantMixin):
    event_code: Mapped[str] = mapped_column(String(64), index=True)
    patient_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("patient.id"), nullable=True)
    appointment_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("appointment.id"), nullable=True)
    form_instance_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("forminstance.id"), nullable=True)
    # Submitter data for public forms with no patient record: {"name","email","phone","birth_date"}
    public_metadata: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    channels: Mapped[list | None] = mapped_column(JSON, nullable=True)  # channels this event targets
    sent_channels: Mapped[list | None] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="pending")  # pending | processed

    occurred_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utcnow)

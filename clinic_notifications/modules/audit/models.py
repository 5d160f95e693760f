import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, TIMESTAMP, ForeignKey, JSON
from clinic_notifications.core.base import Base, TimestampedTenantMixin, utcnow

class MessageLogEntry(Base, TimestampedTenantMixin):
    # Append-only: one row per completed send, never updated or deleted
    patient_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("patient.id"), nullable=True)
    appointment_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("appointment.id"), nullable=True)
    channel: Mapped[str] = mapped_column(String(16))  # email | whatsapp
    type: Mapped[str] = mapped_column(String(64))  # event code that triggered the send
    template_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    delivery_id: Mapped[str | None] = mapped_column(String(200), nullable=True)  # provider message id
    meta: Mapped[dict | None] = mapped_column(JSON, nullable=True)  # {"subject", "template_source", "delivery_mode"}
    sent_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utcnow)

import uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, JSON, Boolean, ForeignKey, UniqueConstraint
from clinic_notifications.core.base import Base, TimestampedMixin, TimestampedTenantMixin

class MessageTemplate(Base, TimestampedTenantMixin):
    """Clinic-authored template; wins over the system default when a setting references it."""
    event_code: Mapped[str] = mapped_column(String(64))
    channel: Mapped[str] = mapped_column(String(16))  # email | whatsapp
    name: Mapped[str] = mapped_column(String(120))
    subject: Mapped[str | None] = mapped_column(String(200), nullable=True)
    body: Mapped[str] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    # Overrides the approved-template phrase used outside the WhatsApp session window
    whatsapp_meta_phrase: Mapped[str | None] = mapped_column(String(512), nullable=True)

class SystemMessageTemplate(Base, TimestampedMixin):
    __table_args__ = (UniqueConstraint("event_code", "channel", name="uq_system_template_event_channel"),)
    event_code: Mapped[str] = mapped_column(String(64))
    channel: Mapped[str] = mapped_column(String(16))
    name: Mapped[str] = mapped_column(String(120))
    subject: Mapped[str | None] = mapped_column(String(200), nullable=True)
    body: Mapped[str] = mapped_column(Text)

class ChannelSetting(Base, TimestampedTenantMixin):
    __table_args__ = (UniqueConstraint("clinic_id", "event_code", "channel", name="uq_channel_setting"),)
    event_code: Mapped[str] = mapped_column(String(64))
    channel: Mapped[str] = mapped_column(String(16))
    enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    send_mode: Mapped[str] = mapped_column(String(16), default="manual")  # automatic | manual
    template_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("messagetemplate.id"), nullable=True)

class PendingMessage(Base, TimestampedTenantMixin):
    patient_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("patient.id"), nullable=True)
    appointment_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("appointment.id"), nullable=True)
    event_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("eventtimeline.id"), nullable=True)
    event_code: Mapped[str] = mapped_column(String(64))
    channel: Mapped[str] = mapped_column(String(16))
    template_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)  # custom or system template id
    template_source: Mapped[str] = mapped_column(String(16))  # custom | system
    processed_subject: Mapped[str | None] = mapped_column(Text, nullable=True)
    processed_body: Mapped[str] = mapped_column(Text)
    variables: Mapped[dict] = mapped_column(JSON)  # context snapshot used for rendering
    meta_phrase: Mapped[str | None] = mapped_column(String(512), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="pending")  # pending | sent | dismissed

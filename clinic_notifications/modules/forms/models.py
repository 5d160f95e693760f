import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, TIMESTAMP, ForeignKey
from clinic_notifications.core.base import Base, TimestampedTenantMixin

class FormTemplate(Base, TimestampedTenantMixin):
    name: Mapped[str] = mapped_column(String(160))

class FormInstance(Base, TimestampedTenantMixin):
    form_template_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("formtemplate.id"), nullable=True)
    appointment_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("appointment.id"), nullable=True)
    patient_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("patient.id"), nullable=True)
    link_token: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    slug: Mapped[str | None] = mapped_column(String(120), nullable=True)  # preferred over link_token in links
    status: Mapped[str] = mapped_column(String(16), default="pending")  # pending | completed
    due_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, TIMESTAMP, ForeignKey, Text, Boolean
from clinic_notifications.core.base import Base, TimestampedTenantMixin

class AppointmentType(Base, TimestampedTenantMixin):
    name: Mapped[str] = mapped_column(String(120))

class Procedure(Base, TimestampedTenantMixin):
    name: Mapped[str] = mapped_column(String(160))

class Appointment(Base, TimestampedTenantMixin):
    patient_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("patient.id"), nullable=True)
    doctor_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("practitioner.id"), nullable=True)
    appointment_type_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("appointmenttype.id"), nullable=True)
    procedure_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("procedure.id"), nullable=True)

    status: Mapped[str] = mapped_column(String(24), default="scheduled")  # scheduled, confirmed, canceled, no_show, completed
    scheduled_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    location_name: Mapped[str | None] = mapped_column(String(120), nullable=True)

    # Preparation instructions surfaced in reminders
    recommendations: Mapped[str | None] = mapped_column(Text, nullable=True)
    requires_fasting: Mapped[bool] = mapped_column(Boolean, default=False)
    special_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    preparation_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

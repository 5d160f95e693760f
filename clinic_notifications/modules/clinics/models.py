from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, JSON
from clinic_notifications.core.base import Base, TimestampedMixin, TimestampedTenantMixin

class Clinic(Base, TimestampedMixin):
    name: Mapped[str] = mapped_column(String(200))
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    # Email branding fragments; may contain the same placeholders as message bodies
    email_header: Mapped[str | None] = mapped_column(Text, nullable=True)
    email_footer: Mapped[str | None] = mapped_column(Text, nullable=True)

class ClinicIntegration(Base, TimestampedTenantMixin):
    integration_type: Mapped[str] = mapped_column(String(32))  # email_google | whatsapp_meta
    status: Mapped[str] = mapped_column(String(16), default="connected")  # connected | disconnected | error
    credentials: Mapped[dict | None] = mapped_column(JSON, nullable=True)  # {"access_token": ...}
    meta: Mapped[dict | None] = mapped_column(JSON, nullable=True)  # {"email": ...} | {"phone_number_id": ..., "waba_id": ...}
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

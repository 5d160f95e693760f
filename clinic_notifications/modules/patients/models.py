from datetime import date
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Date
from clinic_notifications.core.base import Base, TimestampedTenantMixin

class Patient(Base, TimestampedTenantMixin):
    legal_name: Mapped[str] = mapped_column(String(200))
    primary_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    primary_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)

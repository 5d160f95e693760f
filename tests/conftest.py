import uuid
from datetime import datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from clinic_notifications.core.base import Base
import clinic_notifications.models  # noqa: F401
from clinic_notifications.modules.appointments.models import Appointment, AppointmentType, Procedure
from clinic_notifications.modules.clinics.models import Clinic, ClinicIntegration
from clinic_notifications.modules.directory.models import Practitioner
from clinic_notifications.modules.events.models import EventTimeline
from clinic_notifications.modules.forms.models import FormInstance, FormTemplate
from clinic_notifications.modules.notifications.models import ChannelSetting, MessageTemplate, SystemMessageTemplate
from clinic_notifications.modules.patients.models import Patient
from clinic_notifications.platform.ports.channel_sender import IntegrationStatus, SendResult

# ============================================================================
# DATABASE
# ============================================================================

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()

@pytest.fixture
async def session(engine):
    maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with maker() as s:
        yield s

# ============================================================================
# DATA
# ============================================================================

class Factory:
    """Creates rows with sensible defaults; every method flushes so ids are usable."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, obj):
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def clinic(self, **kw) -> Clinic:
        data = dict(name="Clínica Vida", phone="(62) 3333-4444", address="Rua das Flores, 100")
        data.update(kw)
        return await self.add(Clinic(**data))

    async def integration(self, clinic: Clinic, integration_type: str, **kw) -> ClinicIntegration:
        data = dict(clinic_id=clinic.id, integration_type=integration_type, status="connected",
                    credentials={"access_token": "tok-123"}, meta={})
        data.update(kw)
        return await self.add(ClinicIntegration(**data))

    async def patient(self, clinic: Clinic, **kw) -> Patient:
        data = dict(clinic_id=clinic.id, legal_name="Maria Silva",
                    primary_email="maria.silva@example.com", primary_phone="5562996915034")
        data.update(kw)
        return await self.add(Patient(**data))

    async def doctor(self, clinic: Clinic, name: str = "Dr. João Pereira") -> Practitioner:
        return await self.add(Practitioner(clinic_id=clinic.id, name=name))

    async def appointment(self, clinic: Clinic, patient: Patient | None = None, **kw) -> Appointment:
        data = dict(clinic_id=clinic.id, patient_id=patient.id if patient else None,
                    scheduled_at=datetime(2025, 3, 10, 14, 30))
        data.update(kw)
        return await self.add(Appointment(**data))

    async def appointment_type(self, clinic: Clinic, name: str = "Primeira consulta") -> AppointmentType:
        return await self.add(AppointmentType(clinic_id=clinic.id, name=name))

    async def procedure(self, clinic: Clinic, name: str = "Ultrassonografia") -> Procedure:
        return await self.add(Procedure(clinic_id=clinic.id, name=name))

    async def form_template(self, clinic: Clinic, name: str = "Anamnese") -> FormTemplate:
        return await self.add(FormTemplate(clinic_id=clinic.id, name=name))

    async def form(self, clinic: Clinic, template: FormTemplate | None = None, **kw) -> FormInstance:
        data = dict(clinic_id=clinic.id, form_template_id=template.id if template else None,
                    link_token=uuid.uuid4().hex, status="pending")
        data.update(kw)
        return await self.add(FormInstance(**data))

    async def setting(self, clinic: Clinic, event_code: str, channel: str, **kw) -> ChannelSetting:
        data = dict(clinic_id=clinic.id, event_code=event_code, channel=channel, enabled=True, send_mode="automatic")
        data.update(kw)
        return await self.add(ChannelSetting(**data))

    async def system_template(self, event_code: str, channel: str, body: str, subject: str | None = None, **kw) -> SystemMessageTemplate:
        return await self.add(SystemMessageTemplate(
            event_code=event_code, channel=channel, name=kw.pop("name", f"{event_code} ({channel})"),
            subject=subject, body=body, **kw,
        ))

    async def custom_template(self, clinic: Clinic, event_code: str, channel: str, body: str, subject: str | None = None, **kw) -> MessageTemplate:
        data = dict(clinic_id=clinic.id, event_code=event_code, channel=channel, name="Modelo da clínica",
                    subject=subject, body=body, is_active=True)
        data.update(kw)
        return await self.add(MessageTemplate(**data))

    async def event(self, clinic: Clinic, event_code: str, **kw) -> EventTimeline:
        data = dict(clinic_id=clinic.id, event_code=event_code, status="pending", sent_channels=[])
        data.update(kw)
        return await self.add(EventTimeline(**data))

@pytest.fixture
def factory(session):
    return Factory(session)

# ============================================================================
# SENDERS
# ============================================================================

class FakeEmailSender:
    def __init__(self, connected: bool = True, result: SendResult | None = None):
        self.connected = connected
        self.result = result
        self.sent: list[dict] = []

    async def check_connection(self, clinic_id):
        return IntegrationStatus(connected=self.connected, detail=None if self.connected else "email integration not connected")

    async def send(self, clinic_id, to, subject, html_body):
        self.sent.append({"clinic_id": clinic_id, "to": to, "subject": subject, "body": html_body})
        return self.result or SendResult(success=True, message_id=f"email-{len(self.sent)}")

class FakeChatSender:
    def __init__(self, connected: bool = True, result: SendResult | None = None):
        self.connected = connected
        self.result = result
        self.sent: list[dict] = []

    async def check_connection(self, clinic_id):
        return IntegrationStatus(connected=self.connected, detail=None if self.connected else "whatsapp integration not connected")

    async def send(self, clinic_id, to, body, event_code, context, meta_phrase=None):
        self.sent.append({"clinic_id": clinic_id, "to": to, "body": body, "event_code": event_code, "meta_phrase": meta_phrase})
        return self.result or SendResult(success=True, message_id=f"wamid.{len(self.sent)}", delivery_mode="text")

@pytest.fixture
def email_sender():
    return FakeEmailSender()

@pytest.fixture
def chat_sender():
    return FakeChatSender()

import uuid
from datetime import datetime, date
from pydantic import BaseModel, Field

from clinic_notifications.modules.notifications.constants import Channel, ErrorKind, EventCode

class PublicMetadata(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    birth_date: date | str | None = None

class NotificationEvent(BaseModel):
    # timeline rows may carry codes written by older releases; the dispatcher rejects those
    event_code: str
    clinic_id: uuid.UUID
    patient_id: uuid.UUID | None = None
    appointment_id: uuid.UUID | None = None
    form_instance_id: uuid.UUID | None = None
    public_metadata: PublicMetadata | None = None
    # timeline row this dispatch belongs to, if any
    event_id: uuid.UUID | None = None

class DispatchRequest(BaseModel):
    event_code: EventCode
    channel: Channel
    patient_id: uuid.UUID | None = None
    appointment_id: uuid.UUID | None = None
    form_instance_id: uuid.UUID | None = None
    public_metadata: PublicMetadata | None = None
    force_immediate: bool = False

class SendEventRequest(BaseModel):
    channels: list[Channel] = Field(..., min_length=1)
    force_immediate: bool = True

class DispatchResult(BaseModel):
    success: bool
    channel: Channel | None = None
    delivery_id: str | None = None
    pending_id: uuid.UUID | None = None
    error_kind: ErrorKind | None = None
    message: str | None = None

class EventSendResult(BaseModel):
    event_id: uuid.UUID
    status: str
    sent_channels: list[str]
    results: list[DispatchResult]

class PreviewItem(BaseModel):
    channel: Channel
    subject: str | None = None
    body: str = ""
    template_name: str | None = None
    error_kind: ErrorKind | None = None

class PendingOut(BaseModel):
    id: uuid.UUID
    clinic_id: uuid.UUID
    patient_id: uuid.UUID | None
    appointment_id: uuid.UUID | None
    event_id: uuid.UUID | None
    event_code: str
    channel: str
    template_source: str
    processed_subject: str | None
    processed_body: str
    status: str
    created_at: datetime
    class Config: from_attributes = True

class LogOut(BaseModel):
    id: uuid.UUID
    clinic_id: uuid.UUID
    patient_id: uuid.UUID | None
    appointment_id: uuid.UUID | None
    channel: str
    type: str
    template_id: uuid.UUID | None
    delivery_id: str | None
    meta: dict | None
    sent_at: datetime
    class Config: from_attributes = True

class TemplateCreate(BaseModel):
    event_code: EventCode
    channel: Channel
    name: str = Field(..., max_length=120)
    subject: str | None = Field(None, max_length=200)
    body: str
    is_active: bool = True
    whatsapp_meta_phrase: str | None = Field(None, max_length=512)

class TemplateOut(TemplateCreate):
    id: uuid.UUID
    clinic_id: uuid.UUID
    class Config: from_attributes = True

class ValidateRequest(BaseModel):
    text: str

class ValidateResult(BaseModel):
    valid: bool
    variables: list[str]
    missing: list[str]

import uuid
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from clinic_notifications.modules.notifications.constants import ErrorKind
from clinic_notifications.modules.notifications.context import VariableContext

@dataclass(frozen=True)
class SendResult:
    success: bool
    message_id: str | None = None
    error_kind: ErrorKind | None = None
    error: str | None = None
    # "text" or "template" for chat deliveries
    delivery_mode: str | None = None

@dataclass(frozen=True)
class IntegrationStatus:
    connected: bool
    detail: str | None = None

@runtime_checkable
class EmailSenderPort(Protocol):
    async def check_connection(self, clinic_id: uuid.UUID) -> IntegrationStatus: ...
    async def send(self, clinic_id: uuid.UUID, to: str, subject: str, html_body: str) -> SendResult: ...

@runtime_checkable
class ChatSenderPort(Protocol):
    async def check_connection(self, clinic_id: uuid.UUID) -> IntegrationStatus: ...
    async def send(self,
                   clinic_id: uuid.UUID,
                   to: str,
                   body: str,
                   event_code: str,
                   context: VariableContext,
                   meta_phrase: str | None = None) -> SendResult: ...

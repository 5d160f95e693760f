import uuid
import logging
from clinic_notifications.modules.notifications.constants import MISSING_RECIPIENT_CONTACT
from clinic_notifications.modules.notifications.context import VariableContext
from clinic_notifications.platform.adapters.whatsapp_cloud import normalize_phone
from clinic_notifications.platform.ports.channel_sender import IntegrationStatus, SendResult

log = logging.getLogger("sender.console")

class ConsoleChatSender:
    async def check_connection(self, clinic_id: uuid.UUID) -> IntegrationStatus:
        return IntegrationStatus(connected=True, detail="console")

    async def send(self,
                   clinic_id: uuid.UUID,
                   to: str,
                   body: str,
                   event_code: str,
                   context: VariableContext,
                   meta_phrase: str | None = None) -> SendResult:
        phone = normalize_phone(to)
        if not phone:
            return SendResult(success=False, error_kind=MISSING_RECIPIENT_CONTACT, error="recipient phone is empty")
        message_id = f"console-{uuid.uuid4().hex[:12]}"
        log.info("[whatsapp] clinic=%s to=%s event=%s id=%s\n%s", clinic_id, phone, event_code, message_id, body)
        return SendResult(success=True, message_id=message_id, delivery_mode="text")

import uuid
import logging
from clinic_notifications.modules.notifications.constants import MISSING_RECIPIENT_CONTACT, SEND_FAILURE
from clinic_notifications.platform.ports.channel_sender import IntegrationStatus, SendResult

log = logging.getLogger("sender.console")

class ConsoleEmailSender:
    """Local development: logs the message instead of delivering it."""
    async def check_connection(self, clinic_id: uuid.UUID) -> IntegrationStatus:
        return IntegrationStatus(connected=True, detail="console")

    async def send(self, clinic_id: uuid.UUID, to: str, subject: str, html_body: str) -> SendResult:
        if not to:
            return SendResult(success=False, error_kind=MISSING_RECIPIENT_CONTACT, error="recipient email is empty")
        if not subject:
            return SendResult(success=False, error_kind=SEND_FAILURE, error="subject is required")
        message_id = f"console-{uuid.uuid4().hex[:12]}"
        log.info("[email] clinic=%s to=%s subject=%r id=%s\n%s", clinic_id, to, subject, message_id, html_body)
        return SendResult(success=True, message_id=message_id)

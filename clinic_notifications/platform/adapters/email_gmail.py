import re
import uuid
import base64
import logging
from email.message import EmailMessage
import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_notifications.core.config import settings
from clinic_notifications.modules.clinics.repository import IntegrationRepository, EMAIL_INTEGRATION
from clinic_notifications.modules.notifications.constants import INTEGRATION_NOT_CONNECTED, MISSING_RECIPIENT_CONTACT, SEND_FAILURE
from clinic_notifications.platform.ports.channel_sender import IntegrationStatus, SendResult

log = logging.getLogger("sender.gmail")

TAG_RE = re.compile(r"<[^>]+>")

def html_to_text(html: str) -> str:
    text = re.sub(r"<br\s*/?>", "\n", html, flags=re.I)
    return TAG_RE.sub("", text).strip()

def build_raw_message(sender: str, to: str, subject: str, html_body: str) -> str:
    msg = EmailMessage()
    msg["To"] = to
    msg["From"] = sender
    msg["Subject"] = subject
    msg.set_content(html_to_text(html_body))
    msg.add_alternative(html_body, subtype="html")
    return base64.urlsafe_b64encode(msg.as_bytes()).decode("ascii").rstrip("=")

def _json(resp: httpx.Response) -> dict:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}

class GmailEmailSender:
    """Sends through the Gmail REST API with the clinic's stored OAuth access token."""
    def __init__(self, session: AsyncSession, client: httpx.AsyncClient | None = None):
        self.integrations = IntegrationRepository(session)
        self.client = client

    async def check_connection(self, clinic_id: uuid.UUID) -> IntegrationStatus:
        integration = await self.integrations.get_connected(clinic_id, EMAIL_INTEGRATION)
        if not integration:
            return IntegrationStatus(connected=False, detail="email integration not connected")
        return IntegrationStatus(connected=True, detail=(integration.meta or {}).get("email"))

    async def send(self, clinic_id: uuid.UUID, to: str, subject: str, html_body: str) -> SendResult:
        if not to:
            return SendResult(success=False, error_kind=MISSING_RECIPIENT_CONTACT, error="recipient email is empty")
        if not subject:
            return SendResult(success=False, error_kind=SEND_FAILURE, error="subject is required")

        integration = await self.integrations.get_connected(clinic_id, EMAIL_INTEGRATION)
        if not integration:
            return SendResult(success=False, error_kind=INTEGRATION_NOT_CONNECTED, error="email integration not connected")
        sender = (integration.meta or {}).get("email")
        token = (integration.credentials or {}).get("access_token")
        if not sender or not token:
            return SendResult(success=False, error_kind=SEND_FAILURE, error="sender address or access token missing")

        url = f"{settings.GMAIL_API_BASE_URL}/gmail/v1/users/me/messages/send"
        payload = {"raw": build_raw_message(sender, to, subject, html_body)}
        headers = {"Authorization": f"Bearer {token}"}
        try:
            if self.client is not None:
                resp = await self.client.post(url, json=payload, headers=headers, timeout=settings.PROVIDER_TIMEOUT_SECONDS)
            else:
                async with httpx.AsyncClient(timeout=settings.PROVIDER_TIMEOUT_SECONDS) as client:
                    resp = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            log.error("gmail request failed: clinic=%s error=%s", clinic_id, e)
            return SendResult(success=False, error_kind=SEND_FAILURE, error=str(e) or e.__class__.__name__)

        data = _json(resp)
        if resp.status_code >= 400:
            message = (data.get("error") or {}).get("message") or f"gmail returned {resp.status_code}"
            log.warning("gmail rejected message: clinic=%s status=%s error=%s", clinic_id, resp.status_code, message)
            return SendResult(success=False, error_kind=SEND_FAILURE, error=message)

        log.info("email sent: clinic=%s id=%s", clinic_id, data.get("id"))
        return SendResult(success=True, message_id=data.get("id"))

import re
import uuid
import logging
import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_notifications.core.config import settings
from clinic_notifications.modules.clinics.repository import IntegrationRepository, WHATSAPP_INTEGRATION
from clinic_notifications.modules.notifications.constants import INTEGRATION_NOT_CONNECTED, MISSING_RECIPIENT_CONTACT, SEND_FAILURE
from clinic_notifications.modules.notifications.context import VariableContext
from clinic_notifications.modules.notifications.meta_templates import MetaTemplateMapper, default_mapper
from clinic_notifications.platform.ports.channel_sender import IntegrationStatus, SendResult

log = logging.getLogger("sender.whatsapp")

# Graph API codes meaning the customer-service window is closed
SESSION_WINDOW_CLOSED = {131047, 470}
TOKEN_EXPIRED = 190

def normalize_phone(raw: str | None) -> str:
    """Digits only; Brazilian mobiles missing the leading 9 are repaired."""
    digits = re.sub(r"\D", "", raw or "")
    if len(digits) == 12 and digits.startswith("55"):
        return digits[:4] + "9" + digits[4:]
    if len(digits) == 11 and digits.startswith("55"):
        # area code 55 without the country code
        return "55" + digits
    return digits

class GraphError(Exception):
    def __init__(self, status: int, message: str, code: int | None = None, type_: str | None = None):
        super().__init__(message)
        self.status = status
        self.code = code
        self.type = type_

class WhatsAppCloudSender:
    def __init__(self, session: AsyncSession, mapper: MetaTemplateMapper = default_mapper, client: httpx.AsyncClient | None = None):
        self.integrations = IntegrationRepository(session)
        self.mapper = mapper
        self.client = client

    async def check_connection(self, clinic_id: uuid.UUID) -> IntegrationStatus:
        integration = await self.integrations.get_connected(clinic_id, WHATSAPP_INTEGRATION)
        if not integration:
            return IntegrationStatus(connected=False, detail="whatsapp integration not connected")
        return IntegrationStatus(connected=True, detail=(integration.meta or {}).get("phone_number_id"))

    async def _post(self, url: str, token: str, payload: dict) -> dict:
        headers = {"Authorization": f"Bearer {token}"}
        if self.client is not None:
            resp = await self.client.post(url, json=payload, headers=headers, timeout=settings.PROVIDER_TIMEOUT_SECONDS)
        else:
            async with httpx.AsyncClient(timeout=settings.PROVIDER_TIMEOUT_SECONDS) as client:
                resp = await client.post(url, json=payload, headers=headers)
        try:
            data = resp.json()
        except ValueError:
            data = {}
        if resp.status_code >= 400:
            err = data.get("error") or {}
            raise GraphError(resp.status_code, err.get("message") or f"graph api returned {resp.status_code}", err.get("code"), err.get("type"))
        return data

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

        integration = await self.integrations.get_connected(clinic_id, WHATSAPP_INTEGRATION)
        if not integration:
            return SendResult(success=False, error_kind=INTEGRATION_NOT_CONNECTED, error="whatsapp integration not connected")
        phone_number_id = (integration.meta or {}).get("phone_number_id")
        token = (integration.credentials or {}).get("access_token")
        if not phone_number_id or not token:
            return SendResult(success=False, error_kind=SEND_FAILURE, error="phone_number_id or access token missing")

        url = f"{settings.META_GRAPH_API_BASE_URL}/{settings.META_GRAPH_API_VERSION}/{phone_number_id}/messages"
        text_payload = {"messaging_product": "whatsapp", "to": phone, "type": "text", "text": {"body": body}}
        try:
            try:
                data = await self._post(url, token, text_payload)
                mode = "text"
            except GraphError as e:
                if e.code not in SESSION_WINDOW_CLOSED:
                    raise
                mapped = self.mapper.get_params(event_code, context, meta_phrase)
                if mapped is None:
                    log.warning("session window closed and no approved template for event=%s clinic=%s", event_code, clinic_id)
                    return SendResult(success=False, error_kind=SEND_FAILURE, error=f"session window closed; no approved template for {event_code}")
                log.info("session window closed; sending template %s to clinic=%s event=%s", mapped.template, clinic_id, event_code)
                template_payload = {
                    "messaging_product": "whatsapp",
                    "to": phone,
                    "type": "template",
                    "template": {
                        "name": mapped.template,
                        "language": {"code": settings.WHATSAPP_TEMPLATE_LANGUAGE},
                        "components": [
                            {"type": "body", "parameters": [{"type": "text", "text": p} for p in mapped.params]},
                        ],
                    },
                }
                data = await self._post(url, token, template_payload)
                mode = "template"
        except GraphError as e:
            log.warning("graph api error: clinic=%s status=%s code=%s message=%s", clinic_id, e.status, e.code, e)
            if e.code == TOKEN_EXPIRED or e.type == "OAuthException":
                await self.integrations.mark_error(clinic_id, WHATSAPP_INTEGRATION, "access token expired or invalid")
            return SendResult(success=False, error_kind=SEND_FAILURE, error=str(e))
        except httpx.HTTPError as e:
            log.error("graph api request failed: clinic=%s error=%s", clinic_id, e)
            return SendResult(success=False, error_kind=SEND_FAILURE, error=str(e) or e.__class__.__name__)

        messages = data.get("messages") or [{}]
        message_id = messages[0].get("id")
        log.info("whatsapp sent: clinic=%s mode=%s id=%s", clinic_id, mode, message_id)
        return SendResult(success=True, message_id=message_id, delivery_mode=mode)

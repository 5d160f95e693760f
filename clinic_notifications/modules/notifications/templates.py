import uuid
import logging
from dataclasses import dataclass
from typing import Literal
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_notifications.modules.clinics.repository import ClinicRepository
from clinic_notifications.modules.notifications.constants import EMAIL
from clinic_notifications.modules.notifications.context import VariableContext
from clinic_notifications.modules.notifications.repository import TemplateRepository
from clinic_notifications.modules.notifications.variables import render

log = logging.getLogger("notifications.templates")

@dataclass(frozen=True)
class ResolvedTemplate:
    id: uuid.UUID
    name: str
    source: Literal["custom", "system"]
    subject: str | None
    body: str
    meta_phrase: str | None = None

@dataclass(frozen=True)
class RenderedMessage:
    subject: str | None
    body: str

class TemplateResolver:
    """
    Picks the template for (clinic, event, channel):
    the referenced clinic template when it is active and owned by the clinic,
    else the system default, else nothing.
    """
    def __init__(self, session: AsyncSession):
        self.templates = TemplateRepository(session)
        self.clinics = ClinicRepository(session)

    async def resolve(self,
                      clinic_id: uuid.UUID,
                      event_code: str,
                      channel: str,
                      override_template_id: uuid.UUID | None = None) -> ResolvedTemplate | None:
        if override_template_id:
            custom = await self.templates.get_custom(clinic_id, override_template_id)
            if custom and custom.is_active:
                return ResolvedTemplate(
                    id=custom.id, name=custom.name, source="custom",
                    subject=custom.subject, body=custom.body,
                    meta_phrase=custom.whatsapp_meta_phrase or None,
                )
            log.info("custom template %s unusable for clinic=%s; falling back to system default", override_template_id, clinic_id)

        system = await self.templates.get_system(event_code, channel)
        if system:
            return ResolvedTemplate(id=system.id, name=system.name, source="system", subject=system.subject, body=system.body)
        return None

    async def render_message(self,
                             resolved: ResolvedTemplate,
                             context: VariableContext,
                             channel: str,
                             clinic_id: uuid.UUID) -> RenderedMessage:
        body = render(resolved.body, context)
        if channel != EMAIL:
            return RenderedMessage(subject=None, body=body)

        subject = render(resolved.subject, context)
        clinic = await self.clinics.get(clinic_id)
        if clinic:
            header = render(clinic.email_header, context)
            footer = render(clinic.email_footer, context)
            body = "\n".join(part for part in (header, body, footer) if part)
        return RenderedMessage(subject=subject, body=body)

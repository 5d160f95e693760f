import uuid
import logging
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_notifications.modules.audit.models import MessageLogEntry
from clinic_notifications.modules.audit.service import MessageLogService
from clinic_notifications.modules.events.models import EventTimeline
from clinic_notifications.modules.events.repository import EventTimelineRepository
from clinic_notifications.modules.notifications.constants import (
    AUTOMATIC, CHANNELS, EMAIL, EVENT_CODES, MANUAL, PUBLIC_FORM_COMPLETED,
    CONFIGURATION_ERROR, INTEGRATION_NOT_CONNECTED, MISSING_RECIPIENT_CONTACT, TEMPLATE_NOT_FOUND,
)
from clinic_notifications.modules.notifications.context import VariableContext, VariableContextBuilder
from clinic_notifications.modules.notifications.models import MessageTemplate, PendingMessage
from clinic_notifications.modules.notifications.repository import (
    ChannelSettingRepository, PendingMessageRepository, TemplateRepository,
)
from clinic_notifications.modules.notifications.schemas import (
    DispatchResult, EventSendResult, NotificationEvent, PreviewItem, PublicMetadata, TemplateCreate,
)
from clinic_notifications.modules.notifications.templates import RenderedMessage, ResolvedTemplate, TemplateResolver
from clinic_notifications.modules.notifications.variables import validate_variables
from clinic_notifications.platform.ports.channel_sender import ChatSenderPort, EmailSenderPort, SendResult
from clinic_notifications.platform.provider_registry import ProviderRegistry

log = logging.getLogger("notifications.dispatch")

class UnknownVariablesError(ValueError):
    def __init__(self, missing: list[str]):
        super().__init__(f"unknown variables: {', '.join(missing)}")
        self.missing = missing

def _failure(channel: str, kind: str | None, message: str | None) -> DispatchResult:
    return DispatchResult(success=False, channel=channel, error_kind=kind, message=message)

def is_public_submission(event_code: str, patient_id: uuid.UUID | None) -> bool:
    return event_code == PUBLIC_FORM_COMPLETED and patient_id is None

def event_from_row(row: EventTimeline) -> NotificationEvent:
    return NotificationEvent(
        event_code=row.event_code,
        clinic_id=row.clinic_id,
        patient_id=row.patient_id,
        appointment_id=row.appointment_id,
        form_instance_id=row.form_instance_id,
        public_metadata=PublicMetadata(**row.public_metadata) if row.public_metadata else None,
        event_id=row.id,
    )

class DispatchService:
    """
    Turns one event into one delivered message per channel, or a pending
    message awaiting review when the clinic sends that event manually.
    """
    def __init__(self,
                 session: AsyncSession,
                 email_sender: EmailSenderPort | None = None,
                 chat_sender: ChatSenderPort | None = None):
        self.session = session
        self.channel_settings = ChannelSettingRepository(session)
        self.resolver = TemplateResolver(session)
        self.contexts = VariableContextBuilder(session)
        self.pending = PendingMessageRepository(session)
        self.events = EventTimelineRepository(session)
        self.audit = MessageLogService(session)
        self.email_sender = email_sender or ProviderRegistry.email_sender(session)
        self.chat_sender = chat_sender or ProviderRegistry.chat_sender(session)

    def _sender(self, channel: str) -> EmailSenderPort | ChatSenderPort:
        return self.email_sender if channel == EMAIL else self.chat_sender

    async def _build_context(self, event: NotificationEvent) -> VariableContext:
        metadata = event.public_metadata.model_dump(mode="json") if event.public_metadata else None
        return await self.contexts.build(
            event.clinic_id,
            patient_id=event.patient_id,
            appointment_id=event.appointment_id,
            form_instance_id=event.form_instance_id,
            public_metadata=metadata,
        )

    async def _render(self,
                      event: NotificationEvent,
                      channel: str,
                      template_id: uuid.UUID | None) -> tuple[ResolvedTemplate | None, VariableContext | None, RenderedMessage | None]:
        # shared by dispatch and preview so both see the same text
        resolved = await self.resolver.resolve(event.clinic_id, event.event_code, channel, template_id)
        if resolved is None:
            return None, None, None
        context = await self._build_context(event)
        rendered = await self.resolver.render_message(resolved, context, channel, event.clinic_id)
        return resolved, context, rendered

    async def _deliver(self,
                       clinic_id: uuid.UUID,
                       channel: str,
                       event_code: str,
                       context: VariableContext,
                       rendered: RenderedMessage,
                       meta_phrase: str | None) -> SendResult:
        patient = context.patient
        recipient = (patient.email if channel == EMAIL else patient.phone) if patient else None
        if not recipient:
            return SendResult(success=False, error_kind=MISSING_RECIPIENT_CONTACT, error=f"recipient has no {channel} contact")
        if channel == EMAIL:
            return await self.email_sender.send(clinic_id, recipient, rendered.subject or "", rendered.body)
        return await self.chat_sender.send(clinic_id, recipient, rendered.body, event_code, context, meta_phrase)

    async def _mark_sent(self,
                         event_id: uuid.UUID | None,
                         clinic_id: uuid.UUID,
                         channel: str,
                         targets: Sequence[str] | None = None) -> None:
        if not event_id:
            return
        row = await self.events.get(clinic_id, event_id)
        if not row:
            return
        sent = set(row.sent_channels or []) | {channel}
        wanted = set(targets or row.channels or [channel])
        # public submissions stay pending: someone still has to register the submitter
        processed = not is_public_submission(row.event_code, row.patient_id) and wanted <= sent
        await self.events.mark_channel_sent(row, channel, processed=processed)

    async def _dispatch(self,
                        event: NotificationEvent,
                        channel: str,
                        force_immediate: bool,
                        targets: Sequence[str] | None) -> DispatchResult:
        clinic_id = event.clinic_id
        if event.event_code not in EVENT_CODES:
            log.warning("not dispatching unsupported event %s for clinic=%s", event.event_code, clinic_id)
            return _failure(channel, CONFIGURATION_ERROR, f"{event.event_code} is not a supported event")

        setting = await self.channel_settings.get(clinic_id, event.event_code, channel)
        if not setting or not setting.enabled:
            log.info("not dispatching %s/%s for clinic=%s: channel disabled", event.event_code, channel, clinic_id)
            return _failure(channel, CONFIGURATION_ERROR, f"{event.event_code} is not enabled for {channel}")

        status = await self._sender(channel).check_connection(clinic_id)
        if not status.connected:
            log.warning("integration for %s not connected: clinic=%s detail=%s", channel, clinic_id, status.detail)
            return _failure(channel, INTEGRATION_NOT_CONNECTED, status.detail or f"{channel} integration not connected")

        resolved, context, rendered = await self._render(event, channel, setting.template_id)
        if resolved is None:
            log.warning("no template for %s/%s clinic=%s", event.event_code, channel, clinic_id)
            return _failure(channel, TEMPLATE_NOT_FOUND, f"no template for {event.event_code} on {channel}")

        if setting.send_mode == MANUAL and not force_immediate:
            pending = await self.pending.create(
                clinic_id,
                patient_id=event.patient_id,
                appointment_id=event.appointment_id,
                event_id=event.event_id,
                event_code=event.event_code,
                channel=channel,
                template_id=resolved.id,
                template_source=resolved.source,
                processed_subject=rendered.subject,
                processed_body=rendered.body,
                variables=context.snapshot(),
                meta_phrase=resolved.meta_phrase,
            )
            log.info("pending message %s created for %s/%s clinic=%s", pending.id, event.event_code, channel, clinic_id)
            return DispatchResult(success=True, channel=channel, pending_id=pending.id)

        result = await self._deliver(clinic_id, channel, event.event_code, context, rendered, resolved.meta_phrase)
        if not result.success:
            log.warning("dispatch %s/%s failed for clinic=%s: %s %s", event.event_code, channel, clinic_id, result.error_kind, result.error)
            return _failure(channel, result.error_kind, result.error)

        await self.audit.record(
            clinic_id,
            channel=channel,
            event_code=event.event_code,
            template_id=resolved.id,
            patient_id=event.patient_id,
            appointment_id=event.appointment_id,
            delivery_id=result.message_id,
            meta={"subject": rendered.subject, "template_source": resolved.source, "delivery_mode": result.delivery_mode},
        )
        await self._mark_sent(event.event_id, clinic_id, channel, targets)
        return DispatchResult(success=True, channel=channel, delivery_id=result.message_id)

    async def dispatch(self, event: NotificationEvent, channel: str, force_immediate: bool = False) -> DispatchResult:
        result = await self._dispatch(event, channel, force_immediate, None)
        await self.session.commit()
        return result

    async def dispatch_event(self,
                             event_id: uuid.UUID,
                             clinic_id: uuid.UUID,
                             channels: Sequence[str],
                             force_immediate: bool = False) -> EventSendResult | None:
        row = await self.events.get(clinic_id, event_id)
        if not row:
            return None
        event = event_from_row(row)
        targets = row.channels or list(channels)
        results: list[DispatchResult] = []
        for channel in channels:
            res = await self._dispatch(event, channel, force_immediate, targets)
            results.append(res)
            # a missing contact only affects its own channel
            if not res.success and res.error_kind != MISSING_RECIPIENT_CONTACT:
                break
        await self.session.commit()
        await self.session.refresh(row)
        return EventSendResult(event_id=row.id, status=row.status, sent_channels=list(row.sent_channels or []), results=results)

    async def run_auto_send(self, event_id: uuid.UUID, clinic_id: uuid.UUID) -> EventSendResult | None:
        row = await self.events.get(clinic_id, event_id)
        if not row:
            return None
        rows = await self.channel_settings.list_for_event(clinic_id, row.event_code)
        auto = {s.channel for s in rows if s.enabled and s.send_mode == AUTOMATIC}
        channels = [c for c in CHANNELS if c in auto]
        if not channels:
            log.debug("no automatic channels for %s clinic=%s", row.event_code, clinic_id)
            return EventSendResult(event_id=row.id, status=row.status, sent_channels=list(row.sent_channels or []), results=[])
        return await self.dispatch_event(event_id, clinic_id, channels)

    async def process_public_form(self, form_instance_id: uuid.UUID) -> EventSendResult | None:
        row = await self.events.first_pending_for_form(form_instance_id)
        if not row:
            return None
        return await self.run_auto_send(row.id, row.clinic_id)

    async def get_preview(self, event_id: uuid.UUID, clinic_id: uuid.UUID) -> list[PreviewItem] | None:
        row = await self.events.get(clinic_id, event_id)
        if not row:
            return None
        event = event_from_row(row)
        items: list[PreviewItem] = []
        for channel in row.channels or CHANNELS:
            setting = await self.channel_settings.get(clinic_id, row.event_code, channel)
            resolved, _, rendered = await self._render(event, channel, setting.template_id if setting else None)
            if resolved is None:
                items.append(PreviewItem(channel=channel, error_kind=TEMPLATE_NOT_FOUND))
                continue
            items.append(PreviewItem(channel=channel, subject=rendered.subject, body=rendered.body, template_name=resolved.name))
        return items

    async def approve_pending(self, pending_id: uuid.UUID, clinic_id: uuid.UUID) -> DispatchResult | None:
        msg = await self.pending.get(clinic_id, pending_id)
        if not msg:
            return None
        if msg.status != "pending":
            return _failure(msg.channel, CONFIGURATION_ERROR, f"pending message is already {msg.status}")

        status = await self._sender(msg.channel).check_connection(clinic_id)
        if not status.connected:
            return _failure(msg.channel, INTEGRATION_NOT_CONNECTED, status.detail or f"{msg.channel} integration not connected")

        context = VariableContext.model_validate(msg.variables or {})
        rendered = RenderedMessage(subject=msg.processed_subject, body=msg.processed_body)
        result = await self._deliver(clinic_id, msg.channel, msg.event_code, context, rendered, msg.meta_phrase)
        if not result.success:
            await self.session.commit()
            return _failure(msg.channel, result.error_kind, result.error)

        await self.audit.record(
            clinic_id,
            channel=msg.channel,
            event_code=msg.event_code,
            template_id=msg.template_id,
            patient_id=msg.patient_id,
            appointment_id=msg.appointment_id,
            delivery_id=result.message_id,
            meta={"subject": msg.processed_subject, "template_source": msg.template_source,
                  "delivery_mode": result.delivery_mode, "pending_id": str(msg.id)},
        )
        await self.pending.set_status(msg, "sent")
        await self._mark_sent(msg.event_id, clinic_id, msg.channel)
        await self.session.commit()
        log.info("pending message %s approved and sent: clinic=%s", msg.id, clinic_id)
        return DispatchResult(success=True, channel=msg.channel, delivery_id=result.message_id, pending_id=msg.id)

    async def dismiss_pending(self, pending_id: uuid.UUID, clinic_id: uuid.UUID) -> PendingMessage | None:
        msg = await self.pending.get(clinic_id, pending_id)
        if not msg:
            return None
        if msg.status == "pending":
            await self.pending.set_status(msg, "dismissed")
            await self.session.commit()
            log.info("pending message %s dismissed: clinic=%s", msg.id, clinic_id)
        return msg

class NotificationsService:
    def __init__(self, s: AsyncSession):
        self.s = s
        self.templates = TemplateRepository(s)
        self.pending = PendingMessageRepository(s)
        self.audit = MessageLogService(s)

    async def create_template(self, clinic_id: uuid.UUID, payload: TemplateCreate) -> MessageTemplate:
        # clinic-authored text must only use known placeholders
        check = validate_variables("\n".join(filter(None, [payload.subject, payload.body, payload.whatsapp_meta_phrase])))
        if not check.valid:
            raise UnknownVariablesError(check.missing)
        t = await self.templates.create_custom(clinic_id, **payload.model_dump())
        await self.s.commit()
        return t

    async def list_pending(self, clinic_id: uuid.UUID, *, status: str | None = "pending", limit: int = 50) -> Sequence[PendingMessage]:
        return await self.pending.list(clinic_id, status=status, limit=limit)

    async def list_log(self, clinic_id: uuid.UUID, *, channel: str | None = None, event_code: str | None = None, limit: int = 50) -> Sequence[MessageLogEntry]:
        return await self.audit.list(clinic_id, channel=channel, event_code=event_code, limit=limit)

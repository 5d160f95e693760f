import uuid
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from clinic_notifications.core.db import get_session
from clinic_notifications.core.security import NOTIFY_READ, NOTIFY_WRITE, get_principal, require_scopes, Principal
from clinic_notifications.modules.notifications.constants import Channel
from clinic_notifications.modules.notifications.schemas import (
    DispatchRequest, DispatchResult, EventSendResult, LogOut, NotificationEvent, PendingOut, PreviewItem,
    SendEventRequest, TemplateCreate, TemplateOut, ValidateRequest, ValidateResult,
)
from clinic_notifications.modules.notifications.service import DispatchService, NotificationsService, UnknownVariablesError
from clinic_notifications.modules.notifications.variables import extract_variables, validate_variables

router = APIRouter()
def dispatcher(s: AsyncSession = Depends(get_session)) -> DispatchService: return DispatchService(s)
def svc(s: AsyncSession = Depends(get_session)) -> NotificationsService: return NotificationsService(s)

@router.post("/notifications/dispatch", response_model=DispatchResult, dependencies=[Depends(require_scopes(NOTIFY_WRITE))])
async def dispatch(payload: DispatchRequest, principal: Principal = Depends(get_principal), service: DispatchService = Depends(dispatcher)):
    event = NotificationEvent(clinic_id=principal.clinic_id, **payload.model_dump(exclude={"channel", "force_immediate"}))
    return await service.dispatch(event, payload.channel, force_immediate=payload.force_immediate)

@router.post("/notifications/events/{event_id}/send", response_model=EventSendResult, dependencies=[Depends(require_scopes(NOTIFY_WRITE))])
async def send_event(event_id: uuid.UUID, payload: SendEventRequest, principal: Principal = Depends(get_principal), service: DispatchService = Depends(dispatcher)):
    res = await service.dispatch_event(event_id, principal.clinic_id, payload.channels, force_immediate=payload.force_immediate)
    if res is None: raise HTTPException(404, "Event not found")
    return res

@router.post("/notifications/events/{event_id}/auto-send", response_model=EventSendResult, dependencies=[Depends(require_scopes(NOTIFY_WRITE))])
async def auto_send_event(event_id: uuid.UUID, principal: Principal = Depends(get_principal), service: DispatchService = Depends(dispatcher)):
    res = await service.run_auto_send(event_id, principal.clinic_id)
    if res is None: raise HTTPException(404, "Event not found")
    return res

@router.get("/notifications/events/{event_id}/preview", response_model=list[PreviewItem], dependencies=[Depends(require_scopes(NOTIFY_READ))])
async def preview_event(event_id: uuid.UUID, principal: Principal = Depends(get_principal), service: DispatchService = Depends(dispatcher)):
    items = await service.get_preview(event_id, principal.clinic_id)
    if items is None: raise HTTPException(404, "Event not found")
    return items

@router.post("/notifications/public-forms/{form_instance_id}/process", response_model=EventSendResult)
async def process_public_form(form_instance_id: uuid.UUID, service: DispatchService = Depends(dispatcher)):
    # called by the public form page after submission; no staff principal involved
    res = await service.process_public_form(form_instance_id)
    if res is None: raise HTTPException(404, "No pending event for this form")
    return res

@router.get("/notifications/pending", response_model=list[PendingOut], dependencies=[Depends(require_scopes(NOTIFY_READ))])
async def list_pending(status: str | None = Query("pending"), limit: int = Query(50, ge=1, le=200),
                       principal: Principal = Depends(get_principal), service: NotificationsService = Depends(svc)):
    return await service.list_pending(principal.clinic_id, status=status, limit=limit)

@router.post("/notifications/pending/{pending_id}/approve", response_model=DispatchResult, dependencies=[Depends(require_scopes(NOTIFY_WRITE))])
async def approve_pending(pending_id: uuid.UUID, principal: Principal = Depends(get_principal), service: DispatchService = Depends(dispatcher)):
    res = await service.approve_pending(pending_id, principal.clinic_id)
    if res is None: raise HTTPException(404, "Pending message not found")
    return res

@router.post("/notifications/pending/{pending_id}/dismiss", response_model=PendingOut, dependencies=[Depends(require_scopes(NOTIFY_WRITE))])
async def dismiss_pending(pending_id: uuid.UUID, principal: Principal = Depends(get_principal), service: DispatchService = Depends(dispatcher)):
    msg = await service.dismiss_pending(pending_id, principal.clinic_id)
    if msg is None: raise HTTPException(404, "Pending message not found")
    return msg

@router.get("/notifications/log", response_model=list[LogOut], dependencies=[Depends(require_scopes(NOTIFY_READ))])
async def message_log(channel: Channel | None = None, event_code: str | None = None, limit: int = Query(50, ge=1, le=200),
                      principal: Principal = Depends(get_principal), service: NotificationsService = Depends(svc)):
    return await service.list_log(principal.clinic_id, channel=channel, event_code=event_code, limit=limit)

@router.post("/notifications/templates", response_model=TemplateOut, dependencies=[Depends(require_scopes(NOTIFY_WRITE))])
async def create_template(payload: TemplateCreate, principal: Principal = Depends(get_principal), service: NotificationsService = Depends(svc)):
    try:
        return await service.create_template(principal.clinic_id, payload)
    except UnknownVariablesError as e:
        raise HTTPException(422, {"message": "Unknown variables", "missing": e.missing})

@router.post("/notifications/templates/validate", response_model=ValidateResult, dependencies=[Depends(require_scopes(NOTIFY_READ))])
async def validate_template(payload: ValidateRequest):
    check = validate_variables(payload.text)
    return ValidateResult(valid=check.valid, variables=extract_variables(payload.text), missing=check.missing)

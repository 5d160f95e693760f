import base64
import uuid
import json
from datetime import datetime

import httpx
import pytest

from clinic_notifications.core.config import settings
from clinic_notifications.modules.clinics.repository import EMAIL_INTEGRATION, WHATSAPP_INTEGRATION
from clinic_notifications.modules.notifications.context import (
    AppointmentVars, ClinicVars, PatientVars, VariableContext,
)
from clinic_notifications.platform.adapters.email_console import ConsoleEmailSender
from clinic_notifications.platform.adapters.email_gmail import GmailEmailSender, html_to_text
from clinic_notifications.platform.adapters.whatsapp_cloud import WhatsAppCloudSender, normalize_phone
from clinic_notifications.platform.adapters.whatsapp_console import ConsoleChatSender
from clinic_notifications.platform.ports.channel_sender import ChatSenderPort, EmailSenderPort

def client_for(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))

@pytest.fixture
def ctx():
    return VariableContext(
        patient=PatientVars(name="Maria Silva"),
        appointment=AppointmentVars(scheduled_at=datetime(2025, 3, 10, 14, 30), doctor_name="Dr. João Pereira"),
        clinic=ClinicVars(name="Clínica Vida"),
    )

def test_adapters_implement_ports(session):
    assert isinstance(GmailEmailSender(session), EmailSenderPort)
    assert isinstance(ConsoleEmailSender(), EmailSenderPort)
    assert isinstance(WhatsAppCloudSender(session), ChatSenderPort)
    assert isinstance(ConsoleChatSender(), ChatSenderPort)

@pytest.mark.parametrize("raw,expected", [
    ("556296915034", "5562996915034"),
    ("+55 (62) 99691-5034", "5562996915034"),
    ("55999990000", "5555999990000"),
    ("11999990000", "11999990000"),
    ("", ""),
    (None, ""),
])
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected

def test_html_to_text():
    assert html_to_text("<p>Olá<br>Maria</p>") == "Olá\nMaria"

# ============================================================================
# GMAIL
# ============================================================================

async def test_gmail_sends_raw_message(session, factory):
    clinic = await factory.clinic()
    await factory.integration(clinic, EMAIL_INTEGRATION, meta={"email": "contato@clinicavida.com.br"})
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "18c0ffee", "threadId": "18c0ffee"})

    sender = GmailEmailSender(session, client=client_for(handler))
    res = await sender.send(clinic.id, "maria@example.com", "Consulta confirmada", "<p>Olá Maria</p>")

    assert res.success and res.message_id == "18c0ffee"
    req = seen[0]
    assert str(req.url) == f"{settings.GMAIL_API_BASE_URL}/gmail/v1/users/me/messages/send"
    assert req.headers["Authorization"] == "Bearer tok-123"
    raw = json.loads(req.content)["raw"]
    mime = base64.urlsafe_b64decode(raw + "=" * (-len(raw) % 4)).decode("utf-8")
    assert "To: maria@example.com" in mime
    assert "From: contato@clinicavida.com.br" in mime
    assert "Subject: Consulta confirmada" in mime
    assert "text/html" in mime

async def test_gmail_without_integration(session, factory):
    clinic = await factory.clinic()
    sender = GmailEmailSender(session, client=client_for(lambda r: httpx.Response(500)))
    assert not (await sender.check_connection(clinic.id)).connected
    res = await sender.send(clinic.id, "maria@example.com", "Assunto", "Corpo")
    assert res.error_kind == "integration_not_connected"

async def test_gmail_requires_subject_and_recipient(session, factory):
    clinic = await factory.clinic()
    await factory.integration(clinic, EMAIL_INTEGRATION, meta={"email": "contato@clinicavida.com.br"})
    sender = GmailEmailSender(session, client=client_for(lambda r: httpx.Response(200, json={"id": "x"})))
    assert (await sender.send(clinic.id, "", "Assunto", "Corpo")).error_kind == "missing_recipient_contact"
    assert (await sender.send(clinic.id, "maria@example.com", "", "Corpo")).error_kind == "send_failure"

async def test_gmail_provider_error(session, factory):
    clinic = await factory.clinic()
    await factory.integration(clinic, EMAIL_INTEGRATION, meta={"email": "contato@clinicavida.com.br"})
    handler = lambda r: httpx.Response(401, json={"error": {"code": 401, "message": "Invalid Credentials"}})
    res = await GmailEmailSender(session, client=client_for(handler)).send(clinic.id, "maria@example.com", "S", "B")
    assert res.error_kind == "send_failure"
    assert res.error == "Invalid Credentials"

async def test_gmail_network_error(session, factory):
    clinic = await factory.clinic()
    await factory.integration(clinic, EMAIL_INTEGRATION, meta={"email": "contato@clinicavida.com.br"})

    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    res = await GmailEmailSender(session, client=client_for(handler)).send(clinic.id, "maria@example.com", "S", "B")
    assert res.error_kind == "send_failure"
    assert "connection refused" in res.error

# ============================================================================
# WHATSAPP
# ============================================================================

@pytest.fixture
async def wa_clinic(factory):
    clinic = await factory.clinic()
    await factory.integration(clinic, WHATSAPP_INTEGRATION, meta={"phone_number_id": "10987654321"})
    return clinic

async def test_whatsapp_free_text(session, wa_clinic, ctx):
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"messages": [{"id": "wamid.ABC"}]})

    sender = WhatsAppCloudSender(session, client=client_for(handler))
    res = await sender.send(wa_clinic.id, "556296915034", "Olá Maria", "appointment_created", ctx)

    assert res.success
    assert res.message_id == "wamid.ABC"
    assert res.delivery_mode == "text"
    assert seen == [{"messaging_product": "whatsapp", "to": "5562996915034", "type": "text", "text": {"body": "Olá Maria"}}]

async def test_whatsapp_posts_to_graph_endpoint(session, wa_clinic, ctx):
    urls = []

    def handler(request):
        urls.append((str(request.url), request.headers["Authorization"]))
        return httpx.Response(200, json={"messages": [{"id": "wamid.1"}]})

    await WhatsAppCloudSender(session, client=client_for(handler)).send(wa_clinic.id, "5562996915034", "x", "appointment_created", ctx)
    assert urls == [(
        f"{settings.META_GRAPH_API_BASE_URL}/{settings.META_GRAPH_API_VERSION}/10987654321/messages",
        "Bearer tok-123",
    )]

async def test_whatsapp_falls_back_to_template_outside_window(session, wa_clinic, ctx):
    seen = []

    def handler(request):
        body = json.loads(request.content)
        seen.append(body)
        if body["type"] == "text":
            return httpx.Response(400, json={"error": {"code": 131047, "message": "Re-engagement message"}})
        return httpx.Response(200, json={"messages": [{"id": "wamid.TPL"}]})

    sender = WhatsAppCloudSender(session, client=client_for(handler))
    res = await sender.send(wa_clinic.id, "5562996915034", "Olá", "appointment_created", ctx, meta_phrase=None)

    assert res.success
    assert res.delivery_mode == "template"
    template = seen[1]["template"]
    assert template["name"] == "session_appointment"
    assert template["language"] == {"code": "pt_BR"}
    assert [p["text"] for p in template["components"][0]["parameters"]] == [
        "Maria Silva",
        "Confirmamos o agendamento da sua consulta. Data e hora: 10/03/2025, 14:30. Médico(a): Dr. João Pereira.",
        "Clínica Vida",
    ]

async def test_whatsapp_template_uses_custom_phrase(session, wa_clinic, ctx):
    seen = []

    def handler(request):
        body = json.loads(request.content)
        seen.append(body)
        if body["type"] == "text":
            return httpx.Response(400, json={"error": {"code": 470, "message": "Message failed to send because more than 24 hours have passed"}})
        return httpx.Response(200, json={"messages": [{"id": "wamid.TPL"}]})

    await WhatsAppCloudSender(session, client=client_for(handler)).send(
        wa_clinic.id, "5562996915034", "Olá", "appointment_canceled", ctx, meta_phrase="Consulta cancelada pelo médico.",
    )
    assert seen[1]["template"]["components"][0]["parameters"][1]["text"] == "Consulta cancelada pelo médico."

async def test_whatsapp_unmapped_event_cannot_fall_back(session, wa_clinic, ctx):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(400, json={"error": {"code": 131047, "message": "Re-engagement message"}})

    res = await WhatsAppCloudSender(session, client=client_for(handler)).send(wa_clinic.id, "5562996915034", "x", "birthday_greeting", ctx)
    assert res.error_kind == "send_failure"
    assert len(calls) == 1

async def test_whatsapp_expired_token_marks_integration(session, factory, wa_clinic, ctx):
    handler = lambda r: httpx.Response(401, json={"error": {"code": 190, "type": "OAuthException", "message": "Error validating access token"}})
    sender = WhatsAppCloudSender(session, client=client_for(handler))
    res = await sender.send(wa_clinic.id, "5562996915034", "x", "appointment_created", ctx)

    assert res.error_kind == "send_failure"
    assert res.error == "Error validating access token"
    assert not (await sender.check_connection(wa_clinic.id)).connected

async def test_whatsapp_other_errors_do_not_fall_back(session, wa_clinic, ctx):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(400, json={"error": {"code": 100, "message": "Invalid parameter"}})

    res = await WhatsAppCloudSender(session, client=client_for(handler)).send(wa_clinic.id, "5562996915034", "x", "appointment_created", ctx)
    assert res.error == "Invalid parameter"
    assert len(calls) == 1

async def test_whatsapp_empty_phone(session, wa_clinic, ctx):
    res = await WhatsAppCloudSender(session).send(wa_clinic.id, "() -", "x", "appointment_created", ctx)
    assert res.error_kind == "missing_recipient_contact"

async def test_whatsapp_missing_phone_number_id(session, factory, ctx):
    clinic = await factory.clinic()
    await factory.integration(clinic, WHATSAPP_INTEGRATION, meta={})
    res = await WhatsAppCloudSender(session).send(clinic.id, "5562996915034", "x", "appointment_created", ctx)
    assert res.error_kind == "send_failure"

async def test_console_senders():
    res = await ConsoleEmailSender().send(uuid.uuid4(), "maria@example.com", "Assunto", "<p>Corpo</p>")
    assert res.success and res.message_id.startswith("console-")
    res = await ConsoleChatSender().send(uuid.uuid4(), "", "x", "appointment_created", VariableContext())
    assert res.error_kind == "missing_recipient_contact"

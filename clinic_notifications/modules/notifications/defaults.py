"""
System default templates: one per (event_code, channel).

Email bodies are HTML, WhatsApp bodies are plain text; both use the same
placeholder tokens clinic templates use.
"""
import logging
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_notifications.modules.notifications.constants import EMAIL, WHATSAPP, EVENT_CODES
from clinic_notifications.modules.notifications.models import SystemMessageTemplate
from clinic_notifications.modules.notifications.repository import TemplateRepository

log = logging.getLogger("notifications.defaults")

_APPOINTMENT_LINE = "Data e hora: {{data_hora_consulta}}\nMédico(a): {{nome_medico}}\nLocal: {{local_consulta}}"
_FORM_LINE = "{{instrucao_formulario}}"

# event_code -> (name, email subject, message, extra block)
_DEFAULTS: dict[str, tuple[str, str, str, str]] = {
    "appointment_created": ("Consulta agendada", "Consulta agendada - {{nome_clinica}}",
                            "Sua consulta foi agendada.", _APPOINTMENT_LINE + "\n\n{{preparo_completo}}"),
    "appointment_rescheduled": ("Consulta remarcada", "Consulta remarcada - {{nome_clinica}}",
                                "Sua consulta foi remarcada.", _APPOINTMENT_LINE),
    "appointment_confirmed": ("Consulta confirmada", "Consulta confirmada - {{nome_clinica}}",
                              "Recebemos sua confirmação. Sua consulta está agendada.", _APPOINTMENT_LINE),
    "appointment_not_confirmed": ("Consulta não confirmada", "Confirme sua consulta - {{nome_clinica}}",
                                  "Sua consulta ainda não foi confirmada. Por favor, confirme sua presença.", _APPOINTMENT_LINE),
    "appointment_reminder_30d": ("Lembrete 30 dias", "Lembrete de consulta - {{nome_clinica}}",
                                 "Lembramos que você tem consulta agendada em 30 dias.", _APPOINTMENT_LINE),
    "appointment_reminder_15d": ("Lembrete 15 dias", "Lembrete de consulta - {{nome_clinica}}",
                                 "Lembramos que sua consulta está agendada em 15 dias.", _APPOINTMENT_LINE),
    "appointment_reminder_7d": ("Lembrete 7 dias", "Lembrete de consulta - {{nome_clinica}}",
                                "Lembramos que sua consulta é na próxima semana.", _APPOINTMENT_LINE + "\n\n{{preparo_completo}}"),
    "appointment_reminder_48h": ("Lembrete 48 horas", "Sua consulta é em 48 horas - {{nome_clinica}}",
                                 "Sua consulta está agendada para daqui a 48 horas.", _APPOINTMENT_LINE + "\n\n{{preparo_completo}}"),
    "appointment_reminder_24h": ("Lembrete 24 horas", "Sua consulta é amanhã - {{nome_clinica}}",
                                 "Lembramos que sua consulta é amanhã.", _APPOINTMENT_LINE + "\n\n{{preparo_completo}}"),
    "appointment_reminder_2h": ("Lembrete 2 horas", "Sua consulta é em 2 horas - {{nome_clinica}}",
                                "Sua consulta é em 2 horas.", _APPOINTMENT_LINE),
    "return_appointment_reminder": ("Lembrete de retorno", "Consulta de retorno - {{nome_clinica}}",
                                    "Lembramos que você tem consulta de retorno agendada.", _APPOINTMENT_LINE),
    "appointment_marked_as_return": ("Consulta marcada como retorno", "Consulta de retorno - {{nome_clinica}}",
                                     "Sua consulta foi marcada como retorno.", _APPOINTMENT_LINE),
    "form_linked": ("Formulário vinculado", "Formulário pré-consulta - {{nome_clinica}}",
                    "Precisamos que você preencha o formulário {{nome_formulario}} antes da sua consulta.", _FORM_LINE),
    "form_link_sent": ("Link do formulário", "Link do formulário - {{nome_clinica}}",
                       "Enviamos o link do formulário {{nome_formulario}}.", _FORM_LINE),
    "form_reminder": ("Lembrete de formulário", "Lembrete: formulário pendente - {{nome_clinica}}",
                      "Você ainda precisa preencher o formulário {{nome_formulario}} até {{prazo_formulario}}.", _FORM_LINE),
    "form_incomplete": ("Formulário incompleto", "Formulário incompleto - {{nome_clinica}}",
                        "O formulário {{nome_formulario}} não foi preenchido completamente.", _FORM_LINE),
    "appointment_canceled": ("Consulta cancelada", "Consulta cancelada - {{nome_clinica}}",
                             "Sua consulta de {{data_hora_consulta}} foi cancelada. Para reagendar, entre em contato: {{telefone_clinica}}.", ""),
    "appointment_no_show": ("Falta registrada", "Sentimos sua falta - {{nome_clinica}}",
                            "Registramos que você não pôde comparecer à consulta. Para reagendar, entre em contato: {{telefone_clinica}}.", ""),
    "appointment_completed": ("Consulta realizada", "Obrigado pela visita - {{nome_clinica}}",
                              "Obrigado por comparecer à consulta. Foi um prazer atendê-lo(a).", ""),
    "form_completed": ("Formulário preenchido", "Formulário recebido - {{nome_clinica}}",
                       "Muito obrigado por preencher o formulário {{nome_formulario}}. Recebemos suas informações.", ""),
    "patient_form_completed": ("Formulário do paciente preenchido", "Formulário recebido - {{nome_clinica}}",
                               "Muito obrigado por preencher o formulário {{nome_formulario}}. Recebemos suas informações.", ""),
    "public_form_completed": ("Formulário público preenchido", "Recebemos seu contato - {{nome_clinica}}",
                              "Obrigado por entrar em contato. Recebemos suas informações e em breve entraremos em contato.", ""),
    "patient_registered": ("Paciente cadastrado", "Bem-vindo(a) - {{nome_clinica}}",
                           "Você foi cadastrado(a) em nosso sistema e em breve poderá agendar sua primeira consulta.", ""),
}

def _whatsapp_body(message: str, extra: str) -> str:
    parts = ["Olá, {{nome_paciente}}!", message]
    if extra:
        parts.append(extra)
    parts.append("{{nome_clinica}}")
    return "\n\n".join(parts)

def _email_body(message: str, extra: str) -> str:
    details, sep, _ = extra.partition("\n\n{{preparo_completo}}")
    html = ["<p>Olá, {{nome_paciente}}!</p>", f"<p>{message}</p>"]
    if details:
        html.append("<p>" + details.replace("\n", "<br>") + "</p>")
    if sep:
        # the styled block renders empty when there is nothing to prepare
        html.append("{{preparo_completo_html}}")
    html.append("<p>Atenciosamente,<br>{{nome_clinica}}<br>{{telefone_clinica}}</p>")
    return "\n".join(html)

def system_templates() -> list[dict]:
    rows = []
    for code in EVENT_CODES:
        name, subject, message, extra = _DEFAULTS[code]
        rows.append(dict(event_code=code, channel=EMAIL, name=name, subject=subject, body=_email_body(message, extra)))
        rows.append(dict(event_code=code, channel=WHATSAPP, name=name, subject=None, body=_whatsapp_body(message, extra)))
    return rows

SYSTEM_TEMPLATES = system_templates()

async def seed_system_templates(session: AsyncSession) -> int:
    """Insert missing defaults; existing rows are left as edited. Returns the number inserted."""
    repo = TemplateRepository(session)
    existing = {(t.event_code, t.channel) for t in await repo.list_system()}
    created = 0
    for row in SYSTEM_TEMPLATES:
        if (row["event_code"], row["channel"]) in existing:
            continue
        session.add(SystemMessageTemplate(**row))
        created += 1
    await session.commit()
    log.info("system templates seeded: created=%d existing=%d", created, len(existing))
    return created

"""
Approved WhatsApp templates used once the 24-hour session window is closed.

Three generic templates cover every event; each takes three body parameters:
the recipient name, one composed sentence, and the clinic name.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal, Mapping

from clinic_notifications.modules.notifications.context import VariableContext
from clinic_notifications.modules.notifications.variables import to_display_time

MetaTemplateName = Literal["session_appointment", "session_form", "session_notice"]

APPOINTMENT = "session_appointment"
FORM = "session_form"
NOTICE = "session_notice"

PARAM_MAX = 256
DEFAULT_RECIPIENT = "Paciente"
FORM_FALLBACK = "Acesse o link enviado anteriormente."

@dataclass(frozen=True)
class MetaTemplateConfig:
    template: MetaTemplateName
    phrase: str

@dataclass(frozen=True)
class MetaTemplateParams:
    template: MetaTemplateName
    params: list[str]

DEFAULT_META_TEMPLATES: Mapping[str, MetaTemplateConfig] = MappingProxyType({
    "appointment_created": MetaTemplateConfig(APPOINTMENT, "Confirmamos o agendamento da sua consulta."),
    "appointment_rescheduled": MetaTemplateConfig(APPOINTMENT, "Informamos que sua consulta foi remarcada."),
    "appointment_confirmed": MetaTemplateConfig(APPOINTMENT, "Recebemos sua confirmação. Sua consulta está agendada."),
    "appointment_not_confirmed": MetaTemplateConfig(
        APPOINTMENT, "Sua consulta ainda não foi confirmada. Por favor, confirme sua presença ou entre em contato."
    ),
    "appointment_reminder_30d": MetaTemplateConfig(APPOINTMENT, "Lembramos que você tem consulta agendada em 30 dias."),
    "appointment_reminder_15d": MetaTemplateConfig(APPOINTMENT, "Lembramos que sua consulta está agendada em 15 dias."),
    "appointment_reminder_7d": MetaTemplateConfig(APPOINTMENT, "Lembramos que sua consulta é na próxima semana."),
    "appointment_reminder_48h": MetaTemplateConfig(APPOINTMENT, "Sua consulta está agendada para daqui a 48 horas."),
    "appointment_reminder_24h": MetaTemplateConfig(APPOINTMENT, "Lembramos que sua consulta é amanhã."),
    "appointment_reminder_2h": MetaTemplateConfig(APPOINTMENT, "Sua consulta é em 2 horas."),
    "return_appointment_reminder": MetaTemplateConfig(APPOINTMENT, "Lembramos que você tem consulta de retorno agendada."),
    "appointment_marked_as_return": MetaTemplateConfig(APPOINTMENT, "Informamos que sua consulta foi marcada como retorno."),
    "form_linked": MetaTemplateConfig(FORM, "Precisamos que você preencha um formulário antes da sua consulta."),
    "form_link_sent": MetaTemplateConfig(FORM, "Enviamos o link para que você preencha o formulário antes da sua consulta."),
    "form_reminder": MetaTemplateConfig(FORM, "Lembramos que você ainda precisa preencher o formulário vinculado à sua consulta."),
    "form_incomplete": MetaTemplateConfig(FORM, "O formulário não foi preenchido completamente. Por favor, complete todos os campos."),
    "appointment_canceled": MetaTemplateConfig(
        NOTICE, "Informamos que sua consulta foi cancelada. Para reagendar, entre em contato conosco."
    ),
    "appointment_no_show": MetaTemplateConfig(
        NOTICE, "Registramos que você não pôde comparecer à consulta. Para reagendar, entre em contato conosco."
    ),
    "appointment_completed": MetaTemplateConfig(NOTICE, "Obrigado por comparecer à consulta. Foi um prazer atendê-lo(a)."),
    "form_completed": MetaTemplateConfig(NOTICE, "Muito obrigado por preencher o formulário. Recebemos suas informações."),
    "patient_form_completed": MetaTemplateConfig(NOTICE, "Muito obrigado por preencher o formulário. Recebemos suas informações."),
    "public_form_completed": MetaTemplateConfig(
        NOTICE, "Obrigado por entrar em contato. Recebemos suas informações e em breve entraremos em contato."
    ),
    "patient_registered": MetaTemplateConfig(
        NOTICE,
        "Bem-vindo à nossa clínica. Você foi cadastrado em nosso sistema e em breve poderá agendar sua primeira consulta.",
    ),
})

def _cap(value: str) -> str:
    return value[:PARAM_MAX]

class MetaTemplateMapper:
    def __init__(self, table: Mapping[str, MetaTemplateConfig] = DEFAULT_META_TEMPLATES):
        self.table = MappingProxyType(dict(table))

    def get(self, event_code: str) -> MetaTemplateConfig | None:
        return self.table.get(event_code)

    def get_params(self, event_code: str, context: VariableContext, custom_phrase: str | None = None) -> MetaTemplateParams | None:
        config = self.table.get(event_code)
        if config is None:
            return None
        phrase = (custom_phrase or "").strip() or config.phrase

        name = (context.patient.name if context.patient else None) or DEFAULT_RECIPIENT
        clinic = (context.clinic.name if context.clinic else None) or ""

        if config.template == APPOINTMENT:
            appt = context.appointment
            when = to_display_time(appt.scheduled_at).strftime("%d/%m/%Y, %H:%M") if appt and appt.scheduled_at else ""
            doctor = (appt.doctor_name if appt else None) or ""
            if when and doctor:
                sentence = f"{phrase} Data e hora: {when}. Médico(a): {doctor}."
            elif when:
                sentence = f"{phrase} Data e hora: {when}."
            else:
                sentence = phrase
        elif config.template == FORM:
            link = context.form.link if context.form else None
            sentence = f"Para preencher antes da consulta, acesse: {link}" if link else (phrase or FORM_FALLBACK)
        else:
            sentence = phrase

        return MetaTemplateParams(template=config.template, params=[_cap(name), _cap(sentence), _cap(clinic)])

default_mapper = MetaTemplateMapper()

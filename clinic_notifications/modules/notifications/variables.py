"""
Placeholder substitution for message templates.

Placeholders look like ``{{nome_paciente}}``. Rendering is lenient: a known
token whose data is missing becomes an empty string, and an unknown token is
left in the output untouched. Strict checks belong to template authoring
(see ``validate_variables``).

Dates follow the pt-BR convention: ``DD/MM/YYYY``, ``HH:MM`` (24h) and
``DD/MM/YYYY às HH:MM``.
"""
import re
from datetime import date, datetime
from typing import Callable, NamedTuple
from zoneinfo import ZoneInfo

from clinic_notifications.core.config import settings
from clinic_notifications.modules.notifications.context import VariableContext

TOKEN_RE = re.compile(r"\{\{(\w+)\}\}")

FASTING_NOTICE = "⚠️ Comparecer em jejum de 8 horas."
RECOMMENDATIONS_LABEL = "📋 Recomendações:"
SPECIAL_INSTRUCTIONS_LABEL = "📝 Instruções especiais:"
PREPARATION_NOTES_LABEL = "📌 Notas de preparo:"

def to_display_time(value: datetime) -> datetime:
    # naive values are already wall-clock time for the clinic
    if value.tzinfo is None:
        return value
    return value.astimezone(ZoneInfo(settings.DISPLAY_TIMEZONE))

def format_date(value: datetime | date | str | None) -> str:
    if value is None or value == "":
        return ""
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value[:10])
        except ValueError:
            return value
    if isinstance(value, datetime):
        value = to_display_time(value)
    return value.strftime("%d/%m/%Y")

def format_time(value: datetime | None) -> str:
    if value is None:
        return ""
    return to_display_time(value).strftime("%H:%M")

def format_datetime(value: datetime | None) -> str:
    if value is None:
        return ""
    return f"{format_date(value)} às {format_time(value)}"

def preparation_text(ctx: VariableContext) -> str:
    appt = ctx.appointment
    if appt is None:
        return ""
    parts: list[str] = []
    if appt.requires_fasting:
        parts.append(FASTING_NOTICE)
    if appt.recommendations:
        parts.append(f"{RECOMMENDATIONS_LABEL}\n{appt.recommendations}")
    if appt.special_instructions:
        parts.append(f"{SPECIAL_INSTRUCTIONS_LABEL}\n{appt.special_instructions}")
    if appt.preparation_notes:
        parts.append(f"{PREPARATION_NOTES_LABEL}\n{appt.preparation_notes}")
    return "\n\n".join(parts)

def preparation_html(ctx: VariableContext) -> str:
    text = preparation_text(ctx)
    if not text:
        return ""
    inner = text.replace("\n", "<br>")
    return (
        '<div style="background-color: #f0f9ff; border-left: 4px solid #0ea5e9; padding: 12px; margin: 16px 0;">\n'
        '  <h3 style="margin-top: 0; color: #0369a1;">Instruções de Preparo:</h3>\n'
        f'  <div style="white-space: pre-wrap; font-family: inherit; margin: 0; color: #0c4a6e;">{inner}</div>\n'
        "</div>"
    )

def form_instruction(ctx: VariableContext) -> str:
    if ctx.form and ctx.form.link:
        return f"Para preencher o formulário, acesse: {ctx.form.link}"
    return ""

def _fasting(ctx: VariableContext) -> str:
    if ctx.appointment is None:
        return ""
    return "Sim" if ctx.appointment.requires_fasting else "Não"

def _patient(field: str) -> Callable[[VariableContext], str]:
    return lambda ctx: (getattr(ctx.patient, field) or "") if ctx.patient else ""

def _appointment(field: str) -> Callable[[VariableContext], str]:
    return lambda ctx: (getattr(ctx.appointment, field) or "") if ctx.appointment else ""

def _form(field: str) -> Callable[[VariableContext], str]:
    return lambda ctx: (getattr(ctx.form, field) or "") if ctx.form else ""

def _clinic(field: str) -> Callable[[VariableContext], str]:
    return lambda ctx: (getattr(ctx.clinic, field) or "") if ctx.clinic else ""

def _scheduled(fmt: Callable[[datetime | None], str]) -> Callable[[VariableContext], str]:
    return lambda ctx: fmt(ctx.appointment.scheduled_at) if ctx.appointment else ""

VARIABLE_REGISTRY: dict[str, Callable[[VariableContext], str]] = {
    # patient
    "{{nome_paciente}}": _patient("name"),
    "{{email_paciente}}": _patient("email"),
    "{{telefone_paciente}}": _patient("phone"),
    "{{data_nascimento}}": lambda ctx: format_date(ctx.patient.birth_date) if ctx.patient else "",
    # appointment
    "{{data_consulta}}": _scheduled(format_date),
    "{{hora_consulta}}": _scheduled(format_time),
    "{{data_hora_consulta}}": _scheduled(format_datetime),
    "{{nome_medico}}": _appointment("doctor_name"),
    "{{tipo_consulta}}": _appointment("type_name"),
    "{{nome_procedimento}}": _appointment("procedure_name"),
    "{{status_consulta}}": _appointment("status"),
    "{{local_consulta}}": _appointment("location"),
    # preparation
    "{{recomendacoes}}": _appointment("recommendations"),
    "{{precisa_jejum}}": _fasting,
    "{{instrucoes_especiais}}": _appointment("special_instructions"),
    "{{notas_preparo}}": _appointment("preparation_notes"),
    "{{preparo_completo}}": preparation_text,
    "{{preparo_completo_html}}": preparation_html,
    # form
    "{{link_formulario}}": _form("link"),
    "{{nome_formulario}}": _form("name"),
    "{{prazo_formulario}}": lambda ctx: format_date(ctx.form.due_at) if ctx.form else "",
    "{{instrucao_formulario}}": form_instruction,
    # clinic
    "{{nome_clinica}}": _clinic("name"),
    "{{telefone_clinica}}": _clinic("phone"),
    "{{endereco_clinica}}": _clinic("address"),
}

KNOWN_TOKENS = tuple(VARIABLE_REGISTRY)

class VariableValidation(NamedTuple):
    valid: bool
    missing: list[str]

def render(template: str | None, context: VariableContext) -> str:
    """Replace every known token; unknown tokens pass through verbatim."""
    if not template:
        return ""
    def _sub(match: re.Match) -> str:
        extractor = VARIABLE_REGISTRY.get(match.group(0))
        return extractor(context) if extractor else match.group(0)
    return TOKEN_RE.sub(_sub, template)

def extract_variables(text: str | None) -> list[str]:
    """Unique tokens in first-seen order."""
    seen: list[str] = []
    for match in TOKEN_RE.finditer(text or ""):
        if match.group(0) not in seen:
            seen.append(match.group(0))
    return seen

def validate_variables(text: str | None, known: tuple[str, ...] | list[str] = KNOWN_TOKENS) -> VariableValidation:
    missing = [t for t in extract_variables(text) if t not in known]
    return VariableValidation(valid=not missing, missing=missing)

import uuid

from clinic_notifications.modules.notifications.context import ClinicVars, PatientVars, VariableContext
from clinic_notifications.modules.notifications.templates import TemplateResolver

async def test_active_custom_template_wins_over_system_default(session, factory):
    clinic = await factory.clinic()
    system = await factory.system_template("appointment_created", "email", "Padrão", subject="Assunto padrão")
    custom = await factory.custom_template(clinic, "appointment_created", "email", "Personalizado", subject="Assunto",
                                           whatsapp_meta_phrase="Frase própria")

    resolved = await TemplateResolver(session).resolve(clinic.id, "appointment_created", "email", custom.id)
    assert resolved.id == custom.id
    assert resolved.source == "custom"
    assert resolved.body == "Personalizado"
    assert resolved.meta_phrase == "Frase própria"
    assert resolved.id != system.id

async def test_inactive_custom_template_falls_back(session, factory):
    clinic = await factory.clinic()
    system = await factory.system_template("appointment_created", "whatsapp", "Padrão")
    custom = await factory.custom_template(clinic, "appointment_created", "whatsapp", "Desativado", is_active=False)

    resolved = await TemplateResolver(session).resolve(clinic.id, "appointment_created", "whatsapp", custom.id)
    assert resolved.id == system.id
    assert resolved.source == "system"

async def test_custom_template_of_another_clinic_is_ignored(session, factory):
    clinic = await factory.clinic()
    other = await factory.clinic(name="Outra")
    await factory.system_template("form_linked", "email", "Padrão", subject="S")
    foreign = await factory.custom_template(other, "form_linked", "email", "Alheio", subject="S")

    resolved = await TemplateResolver(session).resolve(clinic.id, "form_linked", "email", foreign.id)
    assert resolved.source == "system"

async def test_system_default_without_override(session, factory):
    clinic = await factory.clinic()
    system = await factory.system_template("appointment_canceled", "email", "Cancelada", subject="S")
    resolved = await TemplateResolver(session).resolve(clinic.id, "appointment_canceled", "email")
    assert resolved.id == system.id

async def test_nothing_to_resolve(session, factory):
    clinic = await factory.clinic()
    await factory.system_template("appointment_canceled", "email", "Cancelada", subject="S")
    resolver = TemplateResolver(session)
    assert await resolver.resolve(clinic.id, "appointment_canceled", "whatsapp") is None
    assert await resolver.resolve(clinic.id, "appointment_canceled", "whatsapp", uuid.uuid4()) is None

async def test_email_gets_clinic_header_and_footer(session, factory):
    clinic = await factory.clinic(email_header="<h1>{{nome_clinica}}</h1>", email_footer="<p>{{telefone_clinica}}</p>")
    await factory.system_template("patient_registered", "email", "<p>Olá {{nome_paciente}}</p>", subject="Bem-vindo(a), {{nome_paciente}}")
    ctx = VariableContext(patient=PatientVars(name="Maria Silva"), clinic=ClinicVars(name="Clínica Vida", phone="(62) 3333-4444"))

    resolver = TemplateResolver(session)
    resolved = await resolver.resolve(clinic.id, "patient_registered", "email")
    msg = await resolver.render_message(resolved, ctx, "email", clinic.id)

    assert msg.subject == "Bem-vindo(a), Maria Silva"
    assert msg.body == "<h1>Clínica Vida</h1>\n<p>Olá Maria Silva</p>\n<p>(62) 3333-4444</p>"

async def test_empty_header_is_skipped(session, factory):
    clinic = await factory.clinic(email_footer="Rodapé")
    await factory.system_template("patient_registered", "email", "Corpo", subject="S")
    resolver = TemplateResolver(session)
    resolved = await resolver.resolve(clinic.id, "patient_registered", "email")
    msg = await resolver.render_message(resolved, VariableContext(), "email", clinic.id)
    assert msg.body == "Corpo\nRodapé"

async def test_header_never_applies_to_chat(session, factory):
    clinic = await factory.clinic(email_header="CABEÇALHO", email_footer="RODAPÉ")
    await factory.system_template("patient_registered", "whatsapp", "Olá {{nome_paciente}}")
    resolver = TemplateResolver(session)
    resolved = await resolver.resolve(clinic.id, "patient_registered", "whatsapp")
    msg = await resolver.render_message(resolved, VariableContext(patient=PatientVars(name="Ana")), "whatsapp", clinic.id)
    assert msg.subject is None
    assert msg.body == "Olá Ana"

from typing import Literal, get_args

EMAIL = "email"
WHATSAPP = "whatsapp"
CHANNELS = (EMAIL, WHATSAPP)

AUTOMATIC = "automatic"
MANUAL = "manual"

PUBLIC_FORM_COMPLETED = "public_form_completed"

# Every event code the dispatcher accepts; each one has a system default
# template per channel and an approved WhatsApp template mapping.
EventCode = Literal[
    "appointment_created",
    "appointment_rescheduled",
    "appointment_confirmed",
    "appointment_not_confirmed",
    "appointment_reminder_30d",
    "appointment_reminder_15d",
    "appointment_reminder_7d",
    "appointment_reminder_48h",
    "appointment_reminder_24h",
    "appointment_reminder_2h",
    "return_appointment_reminder",
    "appointment_marked_as_return",
    "form_linked",
    "form_link_sent",
    "form_reminder",
    "form_incomplete",
    "appointment_canceled",
    "appointment_no_show",
    "appointment_completed",
    "form_completed",
    "patient_form_completed",
    "public_form_completed",
    "patient_registered",
]
EVENT_CODES: tuple[str, ...] = get_args(EventCode)

Channel = Literal["email", "whatsapp"]
SendMode = Literal["automatic", "manual"]

ErrorKind = Literal[
    "configuration_error",
    "integration_not_connected",
    "template_not_found",
    "missing_recipient_contact",
    "render_error",
    "send_failure",
]
CONFIGURATION_ERROR: ErrorKind = "configuration_error"
INTEGRATION_NOT_CONNECTED: ErrorKind = "integration_not_connected"
TEMPLATE_NOT_FOUND: ErrorKind = "template_not_found"
MISSING_RECIPIENT_CONTACT: ErrorKind = "missing_recipient_contact"
RENDER_ERROR: ErrorKind = "render_error"
SEND_FAILURE: ErrorKind = "send_failure"

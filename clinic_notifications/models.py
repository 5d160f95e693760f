"""Imports every model module so Base.metadata knows all tables."""
from clinic_notifications.modules.clinics.models import Clinic, ClinicIntegration  # noqa: F401
from clinic_notifications.modules.patients.models import Patient  # noqa: F401
from clinic_notifications.modules.directory.models import Practitioner  # noqa: F401
from clinic_notifications.modules.appointments.models import Appointment, AppointmentType, Procedure  # noqa: F401
from clinic_notifications.modules.forms.models import FormInstance, FormTemplate  # noqa: F401
from clinic_notifications.modules.events.models import EventTimeline  # noqa: F401
from clinic_notifications.modules.notifications.models import (  # noqa: F401
    ChannelSetting, MessageTemplate, PendingMessage, SystemMessageTemplate,
)
from clinic_notifications.modules.audit.models import MessageLogEntry  # noqa: F401

from sqlalchemy.ext.asyncio import AsyncSession
from clinic_notifications.core.config import settings
from clinic_notifications.modules.notifications.meta_templates import default_mapper
from clinic_notifications.platform.ports.channel_sender import EmailSenderPort, ChatSenderPort
from clinic_notifications.platform.adapters.email_gmail import GmailEmailSender
from clinic_notifications.platform.adapters.email_console import ConsoleEmailSender
from clinic_notifications.platform.adapters.whatsapp_cloud import WhatsAppCloudSender
from clinic_notifications.platform.adapters.whatsapp_console import ConsoleChatSender

class ProviderRegistry:
    # Senders read clinic integrations, so they are built per session rather than cached

    @classmethod
    def email_sender(cls, session: AsyncSession) -> EmailSenderPort:
        if settings.EMAIL_PROVIDER == "gmail":
            return GmailEmailSender(session)
        return ConsoleEmailSender()

    @classmethod
    def chat_sender(cls, session: AsyncSession) -> ChatSenderPort:
        if settings.WHATSAPP_PROVIDER == "meta":
            return WhatsAppCloudSender(session, mapper=default_mapper)
        return ConsoleChatSender()

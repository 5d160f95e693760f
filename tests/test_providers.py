import pytest

from clinic_notifications.core.config import Settings, settings
from clinic_notifications.platform.adapters.email_console import ConsoleEmailSender
from clinic_notifications.platform.adapters.email_gmail import GmailEmailSender
from clinic_notifications.platform.adapters.whatsapp_cloud import WhatsAppCloudSender
from clinic_notifications.platform.adapters.whatsapp_console import ConsoleChatSender
from clinic_notifications.platform.provider_registry import ProviderRegistry

@pytest.fixture(autouse=True)
def no_provider_env(monkeypatch):
    monkeypatch.delenv("EMAIL_PROVIDER", raising=False)
    monkeypatch.delenv("WHATSAPP_PROVIDER", raising=False)

@pytest.mark.parametrize("env,email,chat", [
    ("local", "console", "console"),
    ("dev", "gmail", "meta"),
    ("prod", "gmail", "meta"),
])
def test_provider_defaults_follow_env(env, email, chat):
    s = Settings(_env_file=None, ENV=env)
    assert (s.EMAIL_PROVIDER, s.WHATSAPP_PROVIDER) == (email, chat)

def test_explicit_provider_wins():
    s = Settings(_env_file=None, ENV="prod", EMAIL_PROVIDER="console")
    assert s.EMAIL_PROVIDER == "console"
    assert s.WHATSAPP_PROVIDER == "meta"

async def test_registry_builds_real_senders(session, monkeypatch):
    monkeypatch.setattr(settings, "EMAIL_PROVIDER", "gmail")
    monkeypatch.setattr(settings, "WHATSAPP_PROVIDER", "meta")
    assert isinstance(ProviderRegistry.email_sender(session), GmailEmailSender)
    assert isinstance(ProviderRegistry.chat_sender(session), WhatsAppCloudSender)

async def test_registry_builds_console_senders(session, monkeypatch):
    monkeypatch.setattr(settings, "EMAIL_PROVIDER", "console")
    monkeypatch.setattr(settings, "WHATSAPP_PROVIDER", "console")
    assert isinstance(ProviderRegistry.email_sender(session), ConsoleEmailSender)
    assert isinstance(ProviderRegistry.chat_sender(session), ConsoleChatSender)

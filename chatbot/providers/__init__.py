from __future__ import annotations

from chatbot.providers.base import ChatProvider
from config.settings import ConfigurationError, Settings


def build_provider(settings: Settings) -> ChatProvider:
    """Create the provider adapter selected by ``CHAT_PROVIDER``.

    SDK modules are imported on demand.
    """
    settings.validate()
    if settings.chat_provider == "gemini":
        from chatbot.providers.gemini_provider import GeminiProvider

        return GeminiProvider(settings)
    if settings.chat_provider == "openai":
        from chatbot.providers.openai_provider import OpenAIProvider

        return OpenAIProvider(settings)
    raise ConfigurationError(f"Unknown CHAT_PROVIDER {settings.chat_provider!r}")


__all__ = ["ChatProvider", "build_provider"]

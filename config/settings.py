from __future__ import annotations

import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv


load_dotenv()


PROVIDER_KEY_VARS = {
    "gemini": "GOOGLE_API_KEY",
    "openai": "OPENAI_API_KEY",
}

PROVIDER_KEY_ATTRS = {
    "gemini": "google_api_key",
    "openai": "openai_api_key",
}


class ConfigurationError(RuntimeError):
    """Raised when the process cannot start with the current environment."""


def _optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


class Settings:
    """Application settings loaded from environment variables.

    Keep all credentials and config centralized here. Values are read when
    the object is created, so a fresh ``Settings()`` sees the current env.
    """

    def __init__(self) -> None:
        self.app_env: str = os.getenv("APP_ENV", "development")
        self.chat_provider: str = os.getenv("CHAT_PROVIDER", "gemini").strip().lower()

        self.google_api_key: Optional[str] = os.getenv("GOOGLE_API_KEY") or None
        self.gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")

        self.openai_api_key: Optional[str] = os.getenv("OPENAI_API_KEY") or None
        self.openai_model: str = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo")
        self.openai_tts_model: str = os.getenv("OPENAI_TTS_MODEL", "tts-1")
        self.openai_tts_voice: str = os.getenv("OPENAI_TTS_VOICE", "alloy")
        self.openai_transcribe_model: str = os.getenv("OPENAI_TRANSCRIBE_MODEL", "whisper-1")

        self.temperature: Optional[float] = _optional_float("MODEL_TEMPERATURE")
        self.top_p: Optional[float] = _optional_float("MODEL_TOP_P")

        self.cors_allow_origins: List[str] = [
            origin.strip()
            for origin in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")
            if origin.strip()
        ]
        self.host: str = os.getenv("HOST", "0.0.0.0")
        self.port: int = _int("PORT", 3000)
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def api_key_env_var(self) -> str:
        try:
            return PROVIDER_KEY_VARS[self.chat_provider]
        except KeyError:
            raise ConfigurationError(
                f"Unknown CHAT_PROVIDER {self.chat_provider!r}; "
                f"expected one of: {', '.join(sorted(PROVIDER_KEY_VARS))}"
            ) from None

    @property
    def api_key(self) -> Optional[str]:
        attr = PROVIDER_KEY_ATTRS.get(self.chat_provider)
        return getattr(self, attr) if attr else None

    def validate(self) -> None:
        env_var = self.api_key_env_var
        if not self.api_key:
            raise ConfigurationError(
                f"{env_var} is not set. "
                f"Create a .env file with the line: {env_var}=YOUR_KEY_HERE"
            )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

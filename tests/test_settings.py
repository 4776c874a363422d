import pytest

import app.main as main
from chatbot.providers import build_provider
from config.settings import ConfigurationError, Settings


ENV_VARS = (
    "CHAT_PROVIDER",
    "GOOGLE_API_KEY",
    "OPENAI_API_KEY",
    "PORT",
    "MODEL_TEMPERATURE",
    "MODEL_TOP_P",
    "CORS_ALLOW_ORIGINS",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = Settings()

    assert settings.chat_provider == "gemini"
    assert settings.api_key_env_var == "GOOGLE_API_KEY"
    assert settings.port == 3000
    assert settings.temperature is None
    assert settings.cors_allow_origins == ["*"]


def test_port_and_sampling_overrides(clean_env):
    clean_env.setenv("PORT", "8080")
    clean_env.setenv("MODEL_TEMPERATURE", "0.3")
    clean_env.setenv("CORS_ALLOW_ORIGINS", "http://localhost:5173, https://chat.example.com")

    settings = Settings()

    assert settings.port == 8080
    assert settings.temperature == 0.3
    assert settings.cors_allow_origins == ["http://localhost:5173", "https://chat.example.com"]


def test_invalid_numbers_are_configuration_errors(clean_env):
    clean_env.setenv("MODEL_TOP_P", "high")
    with pytest.raises(ConfigurationError):
        Settings()

    clean_env.delenv("MODEL_TOP_P")
    clean_env.setenv("PORT", "http")
    with pytest.raises(ConfigurationError):
        Settings()


def test_missing_gemini_key_fails_validation(clean_env):
    with pytest.raises(ConfigurationError, match="GOOGLE_API_KEY"):
        Settings().validate()


def test_openai_provider_requires_openai_key(clean_env):
    clean_env.setenv("CHAT_PROVIDER", "OpenAI")
    clean_env.setenv("GOOGLE_API_KEY", "not-the-right-one")

    settings = Settings()

    assert settings.api_key_env_var == "OPENAI_API_KEY"
    with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
        settings.validate()

    clean_env.setenv("OPENAI_API_KEY", "sk-test")
    Settings().validate()


def test_unknown_provider_is_rejected(clean_env):
    clean_env.setenv("CHAT_PROVIDER", "claude")

    with pytest.raises(ConfigurationError, match="Unknown CHAT_PROVIDER"):
        Settings().validate()


def test_build_provider_refuses_missing_key(clean_env):
    with pytest.raises(ConfigurationError):
        build_provider(Settings())


def test_run_exits_non_zero_without_key(clean_env):
    clean_env.setattr(main, "get_settings", Settings)

    def fail_if_started(*args, **kwargs):
        raise AssertionError("server must not start without an API key")

    clean_env.setattr(main.uvicorn, "run", fail_if_started)

    with pytest.raises(SystemExit) as exc_info:
        main.run()

    assert exc_info.value.code == 1


def test_api_key_follows_provider(clean_env):
    clean_env.setenv("GOOGLE_API_KEY", "google-key")
    clean_env.setenv("OPENAI_API_KEY", "openai-key")

    assert Settings().api_key == "google-key"

    clean_env.setenv("CHAT_PROVIDER", "openai")
    assert Settings().api_key == "openai-key"

    clean_env.setenv("CHAT_PROVIDER", "claude")
    assert Settings().api_key is None

from pathlib import Path
from typing import Any, List

import pytest
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage

from app.main import create_app
from chatbot.core.errors import ErrorKind, UpstreamError, classify_status
from chatbot.providers.base import ChatProvider
from chatbot.service import ChatService
from config.settings import Settings


def upstream(status: int) -> UpstreamError:
    return UpstreamError(f"upstream returned {status}", kind=classify_status(status), status=status)


def _next(outcomes: List[Any]):
    outcome = outcomes.pop(0)
    if isinstance(outcome, BaseException):
        raise outcome
    return outcome


class RecordingSleep:
    """Stands in for asyncio.sleep and remembers every delay."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeProvider(ChatProvider):
    name = "fake"

    def __init__(self, replies=None, speech=None, transcripts=None):
        self.replies = list(replies or [])
        self.speech = list(speech or [])
        self.transcripts = list(transcripts or [])
        self.messages = []
        self.speech_inputs = []
        self.transcribed = []

    def classify_error(self, exc: Exception) -> UpstreamError:
        return UpstreamError(str(exc), kind=ErrorKind.OTHER)

    async def generate_reply(self, messages):
        self.messages.append(messages)
        return self.reply_text(AIMessage(content=_next(self.replies)))

    async def synthesize_speech(self, text):
        self.speech_inputs.append(text)
        return _next(self.speech)

    async def transcribe(self, path, mime_type):
        file = Path(path)
        self.transcribed.append(
            {
                "path": path,
                "mime_type": mime_type,
                "existed": file.exists(),
                "data": file.read_bytes() if file.exists() else None,
            }
        )
        return _next(self.transcripts)


@pytest.fixture
def sleeps():
    return RecordingSleep()


@pytest.fixture
def settings(monkeypatch):
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "*")
    return Settings()


@pytest.fixture
def make_client(settings, sleeps):
    """Build a TestClient around a FakeProvider with recorded sleeps."""

    def factory(provider: FakeProvider) -> TestClient:
        service = ChatService(provider, sleep=sleeps)
        return TestClient(create_app(service=service, settings=settings))

    return factory

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, List

from langchain_core.messages import BaseMessage

from chatbot.core.errors import EmptyResponseError, UpstreamError
from chatbot.core.history import extract_reply_text


class ChatProvider(ABC):
    """Boundary adapter around one AI provider SDK.

    Every SDK call is made inside ``translating_errors`` so that callers only
    ever see ``UpstreamError`` with a classified kind.
    """

    name: str = "provider"

    @abstractmethod
    def classify_error(self, exc: Exception) -> UpstreamError:
        ...

    @abstractmethod
    async def generate_reply(self, messages: List[BaseMessage]) -> str:
        ...

    @abstractmethod
    async def synthesize_speech(self, text: str) -> bytes:
        ...

    @abstractmethod
    async def transcribe(self, path: str, mime_type: str) -> str:
        ...

    @contextmanager
    def translating_errors(self) -> Iterator[None]:
        try:
            yield
        except UpstreamError:
            raise
        except Exception as exc:
            raise self.classify_error(exc) from exc

    @staticmethod
    def reply_text(message: BaseMessage) -> str:
        text = extract_reply_text(getattr(message, "content", None))
        if not text.strip():
            raise EmptyResponseError()
        return text

from __future__ import annotations

import asyncio
import base64
from pathlib import Path
from typing import Any, Dict, List, Optional

from langchain_core.messages import BaseMessage, HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from chatbot.core.errors import (
    UnsupportedOperationError,
    UpstreamError,
    classify_message,
    classify_status,
)
from chatbot.providers.base import ChatProvider
from config.settings import Settings


TRANSCRIBE_INSTRUCTION = (
    "Transcribe the speech in this audio verbatim. "
    "Reply with the transcript only, without any commentary."
)


def _status_code(exc: Exception) -> Optional[int]:
    for attr in ("status_code", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return int(value)
    return None


def error_from_gemini_exception(exc: Exception) -> UpstreamError:
    """Tag a Gemini SDK failure with its kind.

    google-api-core and google-genai errors carry an HTTP ``code``; wrapped
    LangChain errors often only keep the text, so those are matched on the
    "429"/"503" substrings.
    """
    status = _status_code(exc)
    if status is not None:
        kind = classify_status(status)
    else:
        kind = classify_message(str(exc))
    return UpstreamError(str(exc) or type(exc).__name__, kind=kind, status=status)


class GeminiProvider(ChatProvider):
    name = "gemini"

    def __init__(self, settings: Settings, llm: Optional[ChatGoogleGenerativeAI] = None) -> None:
        if llm is None:
            kwargs: Dict[str, Any] = {
                "model": settings.gemini_model,
                "google_api_key": settings.google_api_key,
                # one attempt per call; backoff lives in execute_with_retry
                "max_retries": 1,
            }
            if settings.temperature is not None:
                kwargs["temperature"] = settings.temperature
            if settings.top_p is not None:
                kwargs["top_p"] = settings.top_p
            llm = ChatGoogleGenerativeAI(**kwargs)
        self._llm = llm

    def classify_error(self, exc: Exception) -> UpstreamError:
        return error_from_gemini_exception(exc)

    async def generate_reply(self, messages: List[BaseMessage]) -> str:
        with self.translating_errors():
            result = await self._llm.ainvoke(messages)
        return self.reply_text(result)

    async def synthesize_speech(self, text: str) -> bytes:
        raise UnsupportedOperationError(
            "Speech synthesis is not available with the gemini provider; set CHAT_PROVIDER=openai"
        )

    async def transcribe(self, path: str, mime_type: str) -> str:
        raw = await asyncio.to_thread(Path(path).read_bytes)
        encoded = base64.b64encode(raw).decode("utf-8")
        message = HumanMessage(
            content=[
                {"type": "text", "text": TRANSCRIBE_INSTRUCTION},
                {"type": "media", "mime_type": mime_type, "data": encoded},
            ]
        )
        with self.translating_errors():
            result = await self._llm.ainvoke([message])
        return self.reply_text(result).strip()

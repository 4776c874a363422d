from __future__ import annotations

from typing import Any, Dict, List, Optional

import openai
from langchain_core.messages import BaseMessage
from langchain_openai import ChatOpenAI

from chatbot.core.errors import EmptyResponseError, ErrorKind, UpstreamError, classify_status
from chatbot.providers.base import ChatProvider
from config.settings import Settings


def error_from_openai_exception(exc: Exception) -> UpstreamError:
    """Tag an OpenAI SDK failure with its kind.

    Only ``APIStatusError`` carries an HTTP status; connection errors,
    timeouts and anything else are terminal.
    """
    if isinstance(exc, openai.APIStatusError):
        return UpstreamError(
            getattr(exc, "message", None) or str(exc),
            kind=classify_status(exc.status_code),
            status=exc.status_code,
        )
    return UpstreamError(str(exc) or type(exc).__name__, kind=ErrorKind.OTHER)


class OpenAIProvider(ChatProvider):
    name = "openai"

    def __init__(
        self,
        settings: Settings,
        llm: Optional[ChatOpenAI] = None,
        client: Optional[openai.AsyncOpenAI] = None,
    ) -> None:
        self._settings = settings
        if llm is None:
            kwargs: Dict[str, Any] = {
                "model": settings.openai_model,
                "api_key": settings.openai_api_key,
                # SDK retries off; backoff lives in execute_with_retry
                "max_retries": 0,
            }
            if settings.temperature is not None:
                kwargs["temperature"] = settings.temperature
            if settings.top_p is not None:
                kwargs["top_p"] = settings.top_p
            llm = ChatOpenAI(**kwargs)
        if client is None:
            client = openai.AsyncOpenAI(api_key=settings.openai_api_key, max_retries=0)
        self._llm = llm
        self._client = client

    def classify_error(self, exc: Exception) -> UpstreamError:
        return error_from_openai_exception(exc)

    async def generate_reply(self, messages: List[BaseMessage]) -> str:
        with self.translating_errors():
            result = await self._llm.ainvoke(messages)
        return self.reply_text(result)

    async def synthesize_speech(self, text: str) -> bytes:
        with self.translating_errors():
            response = await self._client.audio.speech.create(
                model=self._settings.openai_tts_model,
                voice=self._settings.openai_tts_voice,
                input=text,
                response_format="mp3",
            )
        return response.content

    async def transcribe(self, path: str, mime_type: str) -> str:
        with self.translating_errors():
            with open(path, "rb") as audio_file:
                result = await self._client.audio.transcriptions.create(
                    model=self._settings.openai_transcribe_model,
                    file=audio_file,
                )
        text = getattr(result, "text", None)
        if text is None:
            raise EmptyResponseError("The transcription response has no text field.")
        return text

from __future__ import annotations

import asyncio
import logging
import tempfile
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from chatbot.core.errors import EmptyResponseError
from chatbot.core.history import to_lc_messages
from chatbot.core.retry import DEFAULT_RETRY_POLICY, RetryPolicy, Sleep, execute_with_retry
from chatbot.providers.base import ChatProvider


logger = logging.getLogger(__name__)

DEFAULT_AUDIO_SUFFIX = ".webm"
DEFAULT_AUDIO_MIME_TYPE = "audio/webm"


class ChatService:
    """Runs each provider call through the retry executor.

    Holds no per-request state; one instance is shared by all requests.
    """

    def __init__(
        self,
        provider: ChatProvider,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.provider = provider
        self.retry_policy = retry_policy
        self._sleep = sleep

    async def _call(self, operation):
        return await execute_with_retry(operation, self.retry_policy, sleep=self._sleep)

    async def get_bot_response(self, history: Iterable[Mapping[str, Any]], new_message: str) -> str:
        messages = to_lc_messages(history, new_message)

        async def reply() -> str:
            return await self.provider.generate_reply(messages)

        return await self._call(reply)

    async def generate_speech(self, text: str) -> bytes:
        async def synthesize() -> bytes:
            audio = await self.provider.synthesize_speech(text)
            if not audio:
                raise EmptyResponseError("The speech synthesis returned no audio.")
            return audio

        return await self._call(synthesize)

    async def transcribe_audio(
        self,
        data: bytes,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> str:
        suffix = Path(filename or "").suffix or DEFAULT_AUDIO_SUFFIX
        mime_type = content_type if content_type and content_type.startswith("audio/") else DEFAULT_AUDIO_MIME_TYPE

        # the directory and the upload inside it are removed on every exit path
        with tempfile.TemporaryDirectory(prefix="chatbot-audio-") as workdir:
            path = str(Path(workdir) / f"upload{suffix}")
            await asyncio.to_thread(Path(path).write_bytes, data)
            logger.debug("Audio upload stored at %s (%d bytes)", path, len(data))

            async def transcribe() -> str:
                return await self.provider.transcribe(path, mime_type)

            return await self._call(transcribe)

from __future__ import annotations

import logging
import sys
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from chatbot.core.errors import (
    ApiError,
    ErrorKind,
    InvalidRequest,
    QuotaExceeded,
    UpstreamError,
    UpstreamFailure,
)
from chatbot.providers import build_provider
from chatbot.service import ChatService
from config.settings import ConfigurationError, Settings, get_settings


logger = logging.getLogger("chatbot")


class MessagePart(BaseModel):
    text: str = ""


class ChatTurn(BaseModel):
    role: str = Field(..., description="'user' or 'model'")
    parts: List[MessagePart] = Field(default_factory=list)


class ChatRequest(BaseModel):
    history: Optional[List[ChatTurn]] = Field(
        default_factory=list,
        description="Full conversation so far (frontend-managed)",
    )
    newMessage: Optional[str] = Field(None, description="User's latest message")
    prompt: Optional[str] = Field(None, description="Single-shot prompt without history")


class SpeechRequest(BaseModel):
    text: Optional[str] = None


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format="[%(asctime)s] %(levelname)s - %(message)s")


def _log_upstream_failure(action: str, exc: UpstreamError, subject: str) -> None:
    logger.error(
        "%s failed after all attempts: kind=%s status=%s input=%r detail=%s",
        action,
        exc.kind.value,
        exc.status,
        subject,
        exc.message,
        exc_info=exc,
    )


def create_app(service: Optional[ChatService] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application.

    When ``service`` is omitted the provider is built from ``settings``, which
    raises ``ConfigurationError`` if its API key is missing.
    """
    settings = settings or get_settings()
    if service is None:
        service = ChatService(build_provider(settings))

    app = FastAPI(title="Chatbot Backend", version="1.0.0")
    app.state.chat_service = service

    if settings.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_allow_origins,
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("Rejected malformed request to %s: %s", request.url.path, exc.errors())
        error = InvalidRequest("The request body is malformed.")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s: %s", request.url.path, exc)
        error = UpstreamFailure()
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.post("/send-msg")
    async def send_msg(req: ChatRequest):
        message = req.newMessage if req.newMessage is not None else req.prompt
        if not message or not message.strip():
            raise InvalidRequest('The "newMessage" field is required and must be a non-empty text.')

        history = [turn.model_dump() for turn in (req.history or [])]
        logger.info(
            "Incoming chat: provider=%s history_turns=%s message_len=%s",
            service.provider.name,
            len(history),
            len(message),
        )
        try:
            msg = await service.get_bot_response(history, message)
        except UpstreamError as exc:
            _log_upstream_failure("Chat request", exc, message)
            if exc.kind is ErrorKind.RATE_LIMITED:
                raise QuotaExceeded() from exc
            raise UpstreamFailure() from exc
        except Exception as exc:
            logger.exception("Chat processing failed for input %r: %s", message, exc)
            raise UpstreamFailure() from exc

        logger.info("Model responded: %s chars", len(msg))
        return {"msg": msg}

    @app.post("/generate-speech")
    async def generate_speech(req: SpeechRequest):
        if not req.text or not req.text.strip():
            raise InvalidRequest('The "text" field is required.')

        logger.info("Incoming speech synthesis: text_len=%s", len(req.text))
        try:
            audio = await service.generate_speech(req.text)
        except UpstreamError as exc:
            _log_upstream_failure("Speech synthesis", exc, req.text)
            raise UpstreamFailure() from exc
        except Exception as exc:
            logger.exception("Speech synthesis failed: %s", exc)
            raise UpstreamFailure() from exc

        return Response(content=audio, media_type="audio/mpeg")

    @app.post("/transcribe-audio")
    async def transcribe_audio(audio: Optional[UploadFile] = File(None)):
        if audio is None:
            raise InvalidRequest("No audio file was sent.")
        data = await audio.read()
        if not data:
            raise InvalidRequest("No audio file was sent.")

        logger.info(
            "Incoming transcription: filename=%s content_type=%s bytes=%s",
            audio.filename,
            audio.content_type,
            len(data),
        )
        try:
            transcript = await service.transcribe_audio(data, audio.filename, audio.content_type)
        except UpstreamError as exc:
            _log_upstream_failure("Transcription", exc, audio.filename or "<upload>")
            raise UpstreamFailure() from exc
        except Exception as exc:
            logger.exception("Transcription failed for %s: %s", audio.filename or "<upload>", exc)
            raise UpstreamFailure() from exc

        return {"transcript": transcript}

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


def run() -> None:
    try:
        settings = get_settings()
        configure_logging(settings.log_level)
        app = create_app(settings=settings)
    except ConfigurationError as exc:
        configure_logging()
        logger.critical("Cannot start: %s", exc)
        sys.exit(1)

    logger.info("Chat server (%s) listening on port %s", settings.chat_provider, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()

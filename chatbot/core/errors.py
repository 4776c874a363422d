from __future__ import annotations

import enum
from typing import Any, Dict, Optional


QUOTA_EXCEEDED_MESSAGE = (
    "API usage limit reached. Check your plan with the AI provider or try again later."
)
TECHNICAL_DIFFICULTIES_MESSAGE = (
    "The assistant is having technical difficulties. Please try again later."
)


class ErrorKind(str, enum.Enum):
    RATE_LIMITED = "rate_limited"
    SERVER_OVERLOAD = "server_overload"
    OTHER = "other"

    @property
    def retryable(self) -> bool:
        return self is not ErrorKind.OTHER


def classify_status(status: Optional[int]) -> ErrorKind:
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if status is not None and 500 <= status < 600:
        return ErrorKind.SERVER_OVERLOAD
    return ErrorKind.OTHER


def classify_message(message: str) -> ErrorKind:
    """Classify an error from its free text when no status is attached.

    Any message that merely contains the digits matches, e.g. a request id
    ending in "5031" counts as an overload.
    """
    text = message or ""
    if "429" in text:
        return ErrorKind.RATE_LIMITED
    if "503" in text:
        return ErrorKind.SERVER_OVERLOAD
    return ErrorKind.OTHER


class UpstreamError(Exception):
    """Failure of a call to the AI provider, tagged with its kind."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.OTHER,
        status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status = status

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value}, status={self.status}, message={self.message!r})"


class EmptyResponseError(UpstreamError):
    def __init__(self, message: str = "The AI response is empty or malformed.") -> None:
        super().__init__(message, kind=ErrorKind.OTHER)


class UnsupportedOperationError(UpstreamError):
    def __init__(self, message: str) -> None:
        super().__init__(message, kind=ErrorKind.OTHER)


class ApiError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Optional[Dict[str, Any]] = None):
        Exception.__init__(self, message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload

    def to_dict(self) -> Dict[str, Any]:
        rv = dict(self.payload or ())
        rv["error"] = self.message
        return rv

    def __str__(self) -> str:
        return str(self.to_dict())


class InvalidRequest(ApiError):
    status_code = 400


class QuotaExceeded(ApiError):
    status_code = 429

    def __init__(self, message: str = QUOTA_EXCEEDED_MESSAGE):
        super().__init__(message)


class UpstreamFailure(ApiError):
    status_code = 500

    def __init__(self, message: str = TECHNICAL_DIFFICULTIES_MESSAGE):
        super().__init__(message)

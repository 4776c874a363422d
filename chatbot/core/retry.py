from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from chatbot.core.errors import UpstreamError


logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    initial_delay: float = 1.0
    backoff_multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must not be negative")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be at least 1")


DEFAULT_RETRY_POLICY = RetryPolicy()


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, UpstreamError) and exc.retryable


def _log_retry(policy: RetryPolicy) -> Callable[[RetryCallState], None]:
    def before_sleep(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        logger.warning(
            "Upstream call failed with %s (status=%s, attempt %d/%d). Retrying in %.1fs...",
            getattr(getattr(exc, "kind", None), "value", "unknown"),
            getattr(exc, "status", None),
            state.attempt_number,
            policy.max_attempts,
            state.next_action.sleep if state.next_action else 0.0,
        )

    return before_sleep


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Run ``operation`` with exponential backoff on retryable upstream errors.

    Only ``UpstreamError`` instances whose kind is retryable are attempted
    again. Anything else, and the last failure once ``policy.max_attempts``
    is reached, is re-raised unchanged. Delays run ``initial_delay``,
    ``initial_delay * multiplier`` and so on; no sleep follows the final
    attempt. A new engine is built per call so no state is shared.
    """

    async def attempt() -> T:
        return await operation()

    retrying = AsyncRetrying(
        sleep=sleep,
        retry=retry_if_exception(_is_retryable),
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_exponential(
            multiplier=policy.initial_delay,
            exp_base=policy.backoff_multiplier,
        ),
        before_sleep=_log_retry(policy),
        reraise=True,
    )
    return await retrying(attempt)

"""
Retry policy (v2).

Purpose:
- Wrap one asynchronous remote call with bounded retries
- Exponential backoff with jitter between attempts
- Consult the error classifier to short-circuit non-retryable failures

Timers and randomness are injectable so tests run without sleeping.
"""
from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from observability.logger import log_event
from orchestrator.enums.service import Stage
from orchestrator.errors import ClassifiedError, classify

from spec import (
    PIPELINE_INITIAL_DELAY_MS_DEFAULT,
    PIPELINE_MAX_RETRIES_DEFAULT,
    RETRY_JITTER_LOW,
    RETRY_JITTER_SPAN,
)


T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]
RandFn = Callable[[], float]
RetryObserver = Callable[["RetryAttempt"], None]


# =============================================================================
# Retry record
# =============================================================================

@dataclass(frozen=True)
class RetryAttempt:
    """
    Ephemeral record of one failed attempt that will be retried.

    Used only for observability; never persisted.

    attempt:
        1-based number of the attempt that just failed.
    delay_ms:
        Backoff applied before the next attempt.
    error:
        Classified failure of the attempt.
    """
    attempt: int
    delay_ms: float
    error: ClassifiedError


# =============================================================================
# Delay calculation
# =============================================================================

def backoff_delay_ms(
    attempt: int,
    initial_delay_ms: float,
    *,
    rand: RandFn = random.random,
) -> float:
    """
    Delay before the attempt following `attempt` (1-based).

    initial * 2^(attempt-1) * jitter, jitter in [0.5, 1.0).
    """
    if attempt < 1:
        return 0.0
    base = initial_delay_ms * (2 ** (attempt - 1))
    return base * (RETRY_JITTER_LOW + RETRY_JITTER_SPAN * rand())


# =============================================================================
# Policy
# =============================================================================

async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int = PIPELINE_MAX_RETRIES_DEFAULT,
    initial_delay_ms: float = PIPELINE_INITIAL_DELAY_MS_DEFAULT,
    stage: Stage | None = None,
    sleep: SleepFn = asyncio.sleep,
    rand: RandFn = random.random,
    on_retry: RetryObserver | None = None,
) -> T:
    """
    Invoke `operation` until it succeeds or retries are exhausted.

    Args:
        operation:
            Zero-argument coroutine factory. Called once per attempt.
        max_retries:
            Total attempt budget (an always-failing retryable operation
            is invoked exactly this many times).
        initial_delay_ms:
            Backoff base for the first retry.
        stage:
            Optional label used for logging.

    Returns:
        The first successful result.

    Raises:
        ClassifiedError of the final failure (non-retryable kind, or the
        last attempt), chained to the raw exception.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    attempt = 1
    while True:
        try:
            return await operation()
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # pylint: disable=broad-exception-caught
            error = classify(exc)

            if not error.retryable or attempt >= max_retries:
                log_event({
                    "ts_ms": _now_ms(),
                    "event_type": "RETRY_GIVE_UP",
                    "stage": stage.value if stage else None,
                    "attempt": attempt,
                    "kind": error.kind.value,
                    "retryable": error.retryable,
                    "message": error.message,
                })
                if error is exc:
                    raise
                raise error from exc

            delay_ms = backoff_delay_ms(attempt, initial_delay_ms, rand=rand)
            record = RetryAttempt(attempt=attempt, delay_ms=delay_ms, error=error)

            log_event({
                "ts_ms": _now_ms(),
                "event_type": "RETRY_SCHEDULED",
                "stage": stage.value if stage else None,
                "attempt": attempt,
                "delay_ms": round(delay_ms, 3),
                "kind": error.kind.value,
                "message": error.message,
            })
            if on_retry is not None:
                on_retry(record)

            await sleep(delay_ms / 1000.0)
            attempt += 1


def _now_ms() -> int:
    return int(time.time() * 1000)

"""
Error classification (v1).

Purpose:
- Normalize any raw failure (provider SDK, transport, HTTP) into a
  ClassifiedError with a stable kind and retry eligibility
- Keep the retry policy and endpoints free of provider-specific checks

This module contains NO I/O, NO timers, NO state.
"""

from __future__ import annotations

import asyncio
import errno
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

import httpx
import openai

from orchestrator.enums.error_kind import ErrorKind


# =============================================================================
# ClassifiedError
# =============================================================================

class ClassifiedError(Exception):
    """
    A normalized failure with a stable kind and retry eligibility.

    Immutable after construction: attributes are exposed read-only.
    Raised by the retry policy, the pipeline, and client controllers.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self._kind = kind
        self._message = message
        self._details: Mapping[str, Any] = MappingProxyType(dict(details or {}))

    @property
    def kind(self) -> ErrorKind:
        return self._kind

    @property
    def message(self) -> str:
        return self._message

    @property
    def retryable(self) -> bool:
        """Derived from kind; never stored separately."""
        return self._kind.retryable

    @property
    def details(self) -> Mapping[str, Any]:
        return self._details

    def to_payload(self) -> dict[str, Any]:
        """Wire shape of a failure response: {error, type, details?}."""
        payload: dict[str, Any] = {
            "error": self._message,
            "type": self._kind.value,
        }
        if self._details:
            payload["details"] = dict(self._details)
        return payload

    def __repr__(self) -> str:
        return f"ClassifiedError(kind={self._kind.value}, message={self._message!r})"


# =============================================================================
# Signals
# =============================================================================

_NETWORK_ERRNOS: frozenset[int] = frozenset({
    errno.ECONNRESET,
    errno.ETIMEDOUT,
    errno.ECONNREFUSED,
})

_NETWORK_CODES: frozenset[str] = frozenset({
    "ECONNRESET",
    "ETIMEDOUT",
    "ECONNREFUSED",
})

_NETWORK_EXCEPTIONS: tuple[type[BaseException], ...] = (
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
    httpx.TransportError,
    openai.APIConnectionError,  # includes APITimeoutError
)

_NETWORK_PHRASES: tuple[str, ...] = (
    "connection reset",
    "timed out",
    "timeout",
    "connection refused",
)

_AUTH_PHRASES: tuple[str, ...] = (
    "credential",
    "auth",
    "api key",
    "api_key",
)

_SUBSCRIPTION_PHRASES: tuple[str, ...] = (
    "quota",
    "billing",
)

_MODEL_PHRASES: tuple[str, ...] = (
    "model not found",
    "model_not_found",
    "does not exist",
    "unavailable model",
    "model is unavailable",
    "model is not available",
    "unsupported model",
)


def extract_status_code(exc: BaseException) -> int | None:
    """
    Find an HTTP status code on a raw failure.

    Looks at `status_code` (openai.APIStatusError, ad-hoc errors) and then
    `response.status_code` (httpx.HTTPStatusError).
    """
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status

    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return status

    return None


def _is_network_failure(exc: BaseException, message: str) -> bool:
    if isinstance(exc, _NETWORK_EXCEPTIONS):
        return True

    err_no = getattr(exc, "errno", None)
    if isinstance(err_no, int) and err_no in _NETWORK_ERRNOS:
        return True

    code = getattr(exc, "code", None)
    if isinstance(code, str) and code.upper() in _NETWORK_CODES:
        return True

    return any(phrase in message for phrase in _NETWORK_PHRASES)


def _diagnostics(exc: BaseException, status: int | None) -> dict[str, Any]:
    details: dict[str, Any] = {"exception": type(exc).__name__}
    if status is not None:
        details["status_code"] = status
    code = getattr(exc, "code", None)
    if isinstance(code, (str, int)):
        details["code"] = code
    return details


# =============================================================================
# Classifier
# =============================================================================

def classify(exc: BaseException) -> ClassifiedError:
    """
    Deterministic, stateless mapping from a raw failure to a ClassifiedError.

    Precedence (first match wins):
    1. Already classified -> returned unchanged
    2. HTTP 401 -> AUTH, 429 -> RATE_LIMIT, 5xx -> SERVICE
    3. Transport reset / timeout / refused -> NETWORK
    4. Message mentions credential/auth -> AUTH
    5. Message mentions quota/billing -> SUBSCRIPTION
    6. Message mentions an unavailable model -> MODEL
    7. Otherwise -> UNKNOWN

    Status codes outrank message text so that a 5xx whose body happens to
    mention "auth" is still retried.
    """
    if isinstance(exc, ClassifiedError):
        return exc

    raw_message = str(exc) or type(exc).__name__
    message = raw_message.lower()
    status = extract_status_code(exc)
    details = _diagnostics(exc, status)

    kind: ErrorKind
    if status == 401:
        kind = ErrorKind.AUTH
    elif status == 429:
        kind = ErrorKind.RATE_LIMIT
    elif status is not None and 500 <= status <= 599:
        kind = ErrorKind.SERVICE
    elif _is_network_failure(exc, message):
        kind = ErrorKind.NETWORK
    elif any(phrase in message for phrase in _AUTH_PHRASES):
        kind = ErrorKind.AUTH
    elif any(phrase in message for phrase in _SUBSCRIPTION_PHRASES):
        kind = ErrorKind.SUBSCRIPTION
    elif "model" in message and any(phrase in message for phrase in _MODEL_PHRASES):
        kind = ErrorKind.MODEL
    else:
        kind = ErrorKind.UNKNOWN

    return ClassifiedError(kind, raw_message, details=details)


# =============================================================================
# User-facing messages
# =============================================================================

_USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.AUTH: "The bear can't reach its brain: the API key was rejected.",
    ErrorKind.NETWORK: "Network trouble. Please check your connection and try again.",
    ErrorKind.RATE_LIMIT: "The bear is a little overwhelmed. Please wait a moment and try again.",
    ErrorKind.SERVICE: "The voice service is having problems right now. Please try again later.",
    ErrorKind.SUBSCRIPTION: "The voice service quota has been used up.",
    ErrorKind.MODEL: "The configured AI model is not available.",
    ErrorKind.VALIDATION: "No audio was recorded. Please hold the button and speak.",
    ErrorKind.CONFIG: "The voice service is not configured.",
    ErrorKind.UNKNOWN: "Something went wrong. Please try again.",
}


def user_message(error: ClassifiedError) -> str:
    """Alert-level message for the UI collaborator."""
    return _USER_MESSAGES.get(error.kind, _USER_MESSAGES[ErrorKind.UNKNOWN])


MICROPHONE_DENIED_MESSAGE: str = "Please allow microphone access to talk to the bear."

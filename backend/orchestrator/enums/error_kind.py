"""
Error kind enumeration.

A fixed taxonomy of failure kinds, each with a stable retry eligibility.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Normalized failure kind. Value is the wire `type` of error responses."""

    AUTH = "AUTH"
    NETWORK = "NETWORK"
    RATE_LIMIT = "RATE_LIMIT"
    SERVICE = "SERVICE"
    SUBSCRIPTION = "SUBSCRIPTION"
    MODEL = "MODEL"
    VALIDATION = "VALIDATION"
    CONFIG = "CONFIG"
    UNKNOWN = "UNKNOWN"

    @property
    def retryable(self) -> bool:
        """True if a failure of this kind may succeed on a later attempt."""
        return self in _RETRYABLE


_RETRYABLE: frozenset[ErrorKind] = frozenset({
    ErrorKind.NETWORK,
    ErrorKind.RATE_LIMIT,
    ErrorKind.SERVICE,
    ErrorKind.UNKNOWN,
})

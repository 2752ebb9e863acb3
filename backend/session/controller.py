"""
Voice controller contract.

Both transports implement this interface; a factory picks one from
configuration. A controller owns at most one session at a time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum

from observability.logger import log_event
from orchestrator.errors import ClassifiedError
from session.collaborator import VoiceUICollaborator


class VoiceController(ABC):
    """Start/stop a voice session on behalf of a UI collaborator."""

    def __init__(self, collaborator: VoiceUICollaborator | None = None) -> None:
        self._collaborator = collaborator or VoiceUICollaborator()

    @property
    @abstractmethod
    def state(self) -> Enum:
        raise NotImplementedError

    @property
    @abstractmethod
    def is_active(self) -> bool:
        """True while toggle() would stop rather than start."""
        raise NotImplementedError

    @abstractmethod
    async def start(self) -> bool:
        """
        Begin a session. Returns False (and does nothing) unless idle.

        Failures are alerted to the collaborator, then re-raised.
        """
        raise NotImplementedError

    @abstractmethod
    async def stop(self) -> None:
        """End the active session. No-op when there is nothing to stop."""
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """Release every resource and return to idle. Idempotent."""
        raise NotImplementedError

    async def toggle(self) -> None:
        """
        UI entry point: stop if active, else start.

        Failures have already been alerted by start()/stop(); they are
        logged here and not re-raised so the UI control stays usable.
        """
        try:
            if self.is_active:
                await self.stop()
            else:
                await self.start()
        except (PermissionError, ClassifiedError) as exc:
            log_event({
                "event_type": "TOGGLE_FAILED",
                "controller": type(self).__name__,
                "state": self.state.value,
                "exception": type(exc).__name__,
                "kind": exc.kind.value if isinstance(exc, ClassifiedError) else None,
            })

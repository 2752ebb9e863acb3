"""
Voice session container (record-and-upload path).

- Owns the exclusively acquired capture handle
- Accumulates audio chunks in arrival order
- Owned and mutated by RecordingSessionController
- NOT a state machine
- Never persisted
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from uuid import uuid4

from audio.capture import CaptureHandle
from orchestrator.enums.state import RecordingState


def new_session_id() -> str:
    return f"sess_{uuid4().hex[:12]}"


# ---------------------------------------------------------------------
# VoiceSession
# ---------------------------------------------------------------------


@dataclass
class VoiceSession:
    """Mutable runtime container for a single recording."""

    # ------------------------------------------------------------------
    # Identity / lifecycle
    # ------------------------------------------------------------------

    session_id: str = field(default_factory=new_session_id)
    created_at: float = field(default_factory=time.time)
    state: RecordingState = RecordingState.IDLE

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    capture: CaptureHandle | None = None
    accumulated_audio: list[bytes] = field(default_factory=list)

    # ------------------------------------------------------------------
    # Audio buffer
    # ------------------------------------------------------------------

    def append_chunk(self, chunk: bytes) -> None:
        """Capture callback target. Empty chunks are dropped."""
        if chunk:
            self.accumulated_audio.append(chunk)

    @property
    def captured_bytes(self) -> int:
        return sum(len(chunk) for chunk in self.accumulated_audio)

    def flush(self) -> bytes:
        """Join and clear the accumulated chunks."""
        payload = b"".join(self.accumulated_audio)
        self.accumulated_audio.clear()
        return payload

    # ------------------------------------------------------------------
    # Device
    # ------------------------------------------------------------------

    def release_capture(self) -> None:
        """Stop the capture handle, if any. Idempotent."""
        capture, self.capture = self.capture, None
        if capture is not None:
            capture.stop()

    def log_context(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "captured_bytes": self.captured_bytes,
        }

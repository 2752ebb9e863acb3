"""
Microphone capture primitives.

Pure data containers only.
No behavior, no device access, no timing logic.
"""

from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class CaptureFormat:
    """
    PCM layout produced by a capture handle.

    sample_rate_hz:
        Samples per second per channel.

    channels:
        Interleaved channel count.

    timeslice_ms:
        Duration of each chunk delivered to the session buffer.
    """
    sample_rate_hz: int
    channels: int
    timeslice_ms: int

    @property
    def samples_per_chunk(self) -> int:
        """Frames (per channel) in one time slice."""
        return (self.sample_rate_hz * self.timeslice_ms) // 1000

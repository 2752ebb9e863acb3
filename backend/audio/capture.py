"""
Microphone capture.

Responsibilities:
- Acquire exclusive access to the input device
- Deliver raw PCM16 chunks at a fixed time slice
- Release the device on stop (idempotent)

Threading:
- PortAudio invokes the stream callback on its own thread; chunks are
  marshalled onto the asyncio loop with call_soon_threadsafe so that
  session buffers are only ever touched from the loop.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable

from audio.frames import CaptureFormat
from observability.logger import log_event

from spec import (
    CAPTURE_CHANNELS,
    CAPTURE_SAMPLE_RATE_HZ,
    RECORDING_TIMESLICE_MS,
)


def load_sounddevice() -> Any:
    """
    Import sounddevice on first device access.

    PortAudio is loaded at import time; deferring it keeps modules that
    only need the ABCs importable on machines without an audio stack.
    """
    import sounddevice as sd  # pylint: disable=import-outside-toplevel

    return sd


ChunkCallback = Callable[[bytes], None]


class CaptureHandle(ABC):
    """
    Exclusive handle on an acquired input device.

    Contract:
    - start() begins delivering chunks to `on_chunk` on the event loop.
    - stop() releases the device; safe to call repeatedly.
    - track_count is 0 once released.
    """

    @property
    @abstractmethod
    def format(self) -> CaptureFormat:
        raise NotImplementedError

    @property
    @abstractmethod
    def track_count(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def start(self, on_chunk: ChunkCallback) -> None:
        raise NotImplementedError

    @abstractmethod
    def stop(self) -> None:
        raise NotImplementedError


class Microphone(ABC):
    """Factory for capture handles."""

    @abstractmethod
    async def acquire(self) -> CaptureHandle:
        """
        Request microphone access.

        Raises:
            PermissionError if access is denied or no device is usable.
        """
        raise NotImplementedError


# ---------------------------------------------------------------------
# sounddevice implementation
# ---------------------------------------------------------------------

class SoundDeviceCapture(CaptureHandle):
    """PCM16 capture backed by a PortAudio raw input stream."""

    def __init__(self, capture_format: CaptureFormat, *, device: int | str | None = None) -> None:
        self._format = capture_format
        self._loop: asyncio.AbstractEventLoop | None = None
        self._on_chunk: ChunkCallback | None = None
        self._stream: Any | None = load_sounddevice().RawInputStream(
            samplerate=capture_format.sample_rate_hz,
            channels=capture_format.channels,
            dtype="int16",
            blocksize=capture_format.samples_per_chunk,
            device=device,
            callback=self._callback,
        )

    @property
    def format(self) -> CaptureFormat:
        return self._format

    @property
    def track_count(self) -> int:
        return 1 if self._stream is not None else 0

    def start(self, on_chunk: ChunkCallback) -> None:
        if self._stream is None:
            raise RuntimeError("capture handle already released")
        self._loop = asyncio.get_running_loop()
        self._on_chunk = on_chunk
        self._stream.start()

    def stop(self) -> None:
        stream, self._stream = self._stream, None
        self._on_chunk = None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()

    # Called on the PortAudio thread
    def _callback(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        del frames, time_info
        if status:
            log_event({"event_type": "CAPTURE_STATUS", "status": str(status)})

        loop, on_chunk = self._loop, self._on_chunk
        if loop is None or on_chunk is None:
            return

        chunk = bytes(indata)
        try:
            loop.call_soon_threadsafe(on_chunk, chunk)
        except RuntimeError:
            # Loop already closed; capture is being torn down
            pass


class SoundDeviceMicrophone(Microphone):
    """Default input device via sounddevice."""

    def __init__(
        self,
        *,
        sample_rate_hz: int = CAPTURE_SAMPLE_RATE_HZ,
        channels: int = CAPTURE_CHANNELS,
        timeslice_ms: int = RECORDING_TIMESLICE_MS,
        device: int | str | None = None,
    ) -> None:
        self._format = CaptureFormat(
            sample_rate_hz=sample_rate_hz,
            channels=channels,
            timeslice_ms=timeslice_ms,
        )
        self._device = device

    async def acquire(self) -> CaptureHandle:
        return await asyncio.to_thread(self._open)

    def _open(self) -> CaptureHandle:
        try:
            sd = load_sounddevice()
        except OSError as exc:
            raise PermissionError(f"No audio backend: {exc}") from exc

        try:
            return SoundDeviceCapture(self._format, device=self._device)
        except (sd.PortAudioError, ValueError) as exc:
            raise PermissionError(f"Microphone unavailable: {exc}") from exc

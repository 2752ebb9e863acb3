"""
WebRTC media endpoints (client side).

- MicrophoneTrackSource: local microphone as aiortc tracks
- RemoteAudioSink: single destination for the provider's audio track

Remote frames are pulled on the event loop and written to PortAudio
from a worker thread; the blocking write never runs on the loop.
"""

from __future__ import annotations

import asyncio
import sys
from abc import ABC, abstractmethod
from typing import Any

import numpy as np
from aiortc.contrib.media import MediaPlayer
from aiortc.mediastreams import MediaStreamError, MediaStreamTrack
from av.error import FFmpegError

from audio.capture import load_sounddevice
from observability.logger import log_event


class MicrophoneTrackSource(ABC):
    """Opens the local microphone for a peer connection."""

    @abstractmethod
    async def open(self) -> list[MediaStreamTrack]:
        """
        Return the audio track(s) to send.

        Raises:
            PermissionError if the device cannot be opened.
        """
        raise NotImplementedError


class RemoteAudioSink(ABC):
    """Plays one remote track at a time."""

    @abstractmethod
    def attach(self, track: MediaStreamTrack) -> None:
        """Route `track` to the output, replacing any attached track."""
        raise NotImplementedError

    @abstractmethod
    def detach(self) -> None:
        """Stop playing. The output is released once any in-flight write returns. Idempotent."""
        raise NotImplementedError


# ---------------------------------------------------------------------
# Microphone via FFmpeg capture devices
# ---------------------------------------------------------------------

def default_capture_device() -> tuple[str, str]:
    """(device, FFmpeg input format) for the platform's default microphone."""
    if sys.platform == "darwin":
        return ":0", "avfoundation"
    if sys.platform.startswith("win"):
        return "audio=Microphone", "dshow"
    return "default", "pulse"


class MediaPlayerMicrophone(MicrophoneTrackSource):
    def __init__(self, *, device: str | None = None, input_format: str | None = None) -> None:
        default_device, default_format = default_capture_device()
        self._device = device or default_device
        self._format = input_format or default_format

    async def open(self) -> list[MediaStreamTrack]:
        try:
            player = await asyncio.to_thread(MediaPlayer, self._device, format=self._format)
        except (FFmpegError, OSError, ValueError) as exc:
            raise PermissionError(f"Microphone unavailable: {exc}") from exc

        if player.audio is None:
            raise PermissionError(f"No audio stream on capture device {self._device!r}")
        return [player.audio]


# ---------------------------------------------------------------------
# Remote audio via sounddevice
# ---------------------------------------------------------------------

class SoundDeviceRemoteSink(RemoteAudioSink):
    """
    Writes decoded remote frames (packed s16) to the default output.

    Each attached track gets its own pump task and output stream. The pump
    closes its stream itself, and only after any in-flight write returns.
    """

    def __init__(self, *, device: int | str | None = None) -> None:
        self._device = device
        self._task: asyncio.Task[None] | None = None

    def attach(self, track: MediaStreamTrack) -> None:
        self.detach()
        self._task = asyncio.get_running_loop().create_task(self._pump(track))

    def detach(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def _pump(self, track: MediaStreamTrack) -> None:
        stream: Any | None = None
        write: asyncio.Future[None] | None = None
        try:
            while True:
                frame = await track.recv()
                channels = len(frame.layout.channels)
                pcm = np.ascontiguousarray(frame.to_ndarray(), dtype=np.int16)
                if stream is None:
                    stream = self._open_stream(frame.sample_rate, channels)
                write = asyncio.ensure_future(asyncio.to_thread(stream.write, pcm.tobytes()))
                # The worker thread outlives a cancel of this task
                await asyncio.shield(write)
        except MediaStreamError:
            log_event({"event_type": "REMOTE_TRACK_ENDED", "kind": track.kind})
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "REMOTE_AUDIO_FAILED",
                "exception": type(exc).__name__,
                "error": str(exc),
            })
        finally:
            if write is not None and not write.done():
                await asyncio.wait([write])
            if stream is not None:
                _close_stream(stream)

    def _open_stream(self, sample_rate: int, channels: int) -> Any:
        sd = load_sounddevice()
        stream = sd.RawOutputStream(
            samplerate=sample_rate,
            channels=channels,
            dtype="int16",
            device=self._device,
        )
        stream.start()
        return stream


def _close_stream(stream: Any) -> None:
    try:
        stream.abort()
    finally:
        stream.close()

"""
Reply audio playback.

One sink per controller. play() replaces whatever is currently
playing and returns immediately (fire-and-forget).
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable

import numpy as np
from audio.capture import load_sounddevice
from audio.pcm import decode_audio


class PlaybackSink(ABC):
    """Single playback destination."""

    @abstractmethod
    def play(self, audio: bytes, *, on_finished: Callable[[], None] | None = None) -> None:
        """
        Decode `audio` and start playing it, replacing any current source.

        Raises:
            ValueError if the payload cannot be decoded.
        """
        raise NotImplementedError

    @abstractmethod
    def stop(self) -> None:
        """Stop and detach the current source. Idempotent."""
        raise NotImplementedError


class SoundDevicePlaybackSink(PlaybackSink):
    """Plays decoded audio on the default output device."""

    def __init__(self, *, device: int | str | None = None) -> None:
        self._device = device
        self._stream: Any | None = None

    def play(self, audio: bytes, *, on_finished: Callable[[], None] | None = None) -> None:
        samples, sample_rate = decode_audio(audio)
        if samples.ndim == 1:
            samples = samples.reshape(-1, 1)
        samples = np.ascontiguousarray(samples, dtype=np.float32)

        self.stop()

        sd = load_sounddevice()
        loop = asyncio.get_running_loop()
        position = 0

        def _callback(outdata: Any, frames: int, time_info: Any, status: Any) -> None:
            nonlocal position
            del time_info, status
            chunk = samples[position:position + frames]
            outdata[:len(chunk)] = chunk
            position += len(chunk)
            if len(chunk) < frames:
                outdata[len(chunk):] = 0
                raise sd.CallbackStop()

        def _finished() -> None:
            if on_finished is None:
                return
            try:
                loop.call_soon_threadsafe(on_finished)
            except RuntimeError:
                # Loop closed before playback drained
                pass

        stream = sd.OutputStream(
            samplerate=sample_rate,
            channels=samples.shape[1],
            dtype="float32",
            device=self._device,
            callback=_callback,
            finished_callback=_finished,
        )
        self._stream = stream
        stream.start()

    def stop(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.abort()
        finally:
            stream.close()

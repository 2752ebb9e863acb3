# pylint: disable=missing-module-docstring,missing-function-docstring,missing-class-docstring
"""Shared in-memory fakes for the unit tests."""

from __future__ import annotations

from typing import Any, Callable

from adapters.asr.base import Transcriber
from adapters.llm.base import ReplyGenerator
from adapters.tts.base import SpeechSynthesizer
from audio.capture import CaptureHandle, ChunkCallback, Microphone
from audio.frames import CaptureFormat
from audio.playback import PlaybackSink
from session.collaborator import VoiceUICollaborator


VALID_KEY = "sk-test-0123456789abcdefghij"


class StatusError(Exception):
    def __init__(self, status_code: int, message: str = "") -> None:
        super().__init__(message or f"HTTP {status_code}")
        self.status_code = status_code


# ---------------------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------------------

class FakeTranscriber(Transcriber):
    def __init__(self, text: str = "hello bear", errors: list[Exception] | None = None) -> None:
        self.text = text
        self.errors = list(errors or [])
        self.calls: list[tuple[bytes, str]] = []

    async def transcribe(self, *, audio: bytes, mime_type: str) -> str:
        self.calls.append((audio, mime_type))
        if self.errors:
            raise self.errors.pop(0)
        return self.text


class FakeGenerator(ReplyGenerator):
    def __init__(self, reply: str = "Let's play!", errors: list[Exception] | None = None) -> None:
        self.reply = reply
        self.errors = list(errors or [])
        self.calls: list[tuple[str, str]] = []

    async def generate(self, *, system_prompt: str, user_text: str) -> str:
        self.calls.append((system_prompt, user_text))
        if self.errors:
            raise self.errors.pop(0)
        return self.reply


class FakeSynthesizer(SpeechSynthesizer):
    def __init__(self, audio: bytes = b"RIFFfake", errors: list[Exception] | None = None) -> None:
        self.audio = audio
        self.errors = list(errors or [])
        self.calls: list[str] = []

    @property
    def mime_type(self) -> str:
        return "audio/wav"

    async def synthesize(self, *, text: str) -> bytes:
        self.calls.append(text)
        if self.errors:
            raise self.errors.pop(0)
        return self.audio


async def no_sleep(_: float) -> None:
    return None


# ---------------------------------------------------------------------
# Client devices
# ---------------------------------------------------------------------

class FakeCapture(CaptureHandle):
    def __init__(self, chunks: list[bytes] | None = None) -> None:
        self.chunks = list(chunks or [])
        self.stop_calls = 0
        self.released = False
        self._format = CaptureFormat(sample_rate_hz=16_000, channels=1, timeslice_ms=250)

    @property
    def format(self) -> CaptureFormat:
        return self._format

    @property
    def track_count(self) -> int:
        return 0 if self.released else 1

    def start(self, on_chunk: ChunkCallback) -> None:
        for chunk in self.chunks:
            on_chunk(chunk)

    def stop(self) -> None:
        self.stop_calls += 1
        self.released = True


class FakeMicrophone(Microphone):
    def __init__(self, chunks: list[bytes] | None = None, deny: bool = False) -> None:
        self.chunks = chunks
        self.deny = deny
        self.handles: list[FakeCapture] = []

    async def acquire(self) -> CaptureHandle:
        if self.deny:
            raise PermissionError("denied")
        handle = FakeCapture(self.chunks)
        self.handles.append(handle)
        return handle


class FakePlayer(PlaybackSink):
    def __init__(self) -> None:
        self.played: list[bytes] = []
        self.stop_calls = 0
        self.on_finished: Callable[[], None] | None = None

    def play(self, audio: bytes, *, on_finished: Callable[[], None] | None = None) -> None:
        self.played.append(audio)
        self.on_finished = on_finished

    def stop(self) -> None:
        self.stop_calls += 1


class RecordingCollaborator(VoiceUICollaborator):
    def __init__(self) -> None:
        self.actions: list[str] = []
        self.listening: list[bool] = []
        self.speaking: list[bool] = []
        self.alerts: list[str] = []

    def on_bear_action(self, action: str) -> None:
        self.actions.append(action)

    def on_listening_changed(self, listening: bool) -> None:
        self.listening.append(listening)

    def on_speaking_changed(self, speaking: bool) -> None:
        self.speaking.append(speaking)

    def on_alert(self, message: str) -> None:
        self.alerts.append(message)


def capture_logs(monkeypatch: Any, *modules: Any) -> list[dict[str, Any]]:
    """Route log_event of each module into one list."""
    emitted: list[dict[str, Any]] = []
    for module in modules:
        monkeypatch.setattr(module, "log_event", emitted.append)
    return emitted

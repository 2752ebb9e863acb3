# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import base64
import io
from typing import Any

import pytest
import soundfile as sf

import session.controller as controller_mod
import session.recording as recording_mod
from orchestrator.enums.error_kind import ErrorKind
from orchestrator.enums.state import RecordingState
from orchestrator.errors import ClassifiedError, MICROPHONE_DENIED_MESSAGE
from orchestrator.pipeline import PipelineResult
from session.api_client import VoiceApiClient
from session.recording import RecordingSessionController

from fakes import FakeMicrophone, FakePlayer, RecordingCollaborator, capture_logs


PCM_CHUNKS = [b"\x01\x00" * 160, b"\x02\x00" * 160]


class FakeApi:
    def __init__(self, result: PipelineResult | None = None, error: Exception | None = None) -> None:
        self.result = result or PipelineResult(audio=b"RIFFreply", text="Let's play!")
        self.error = error
        self.payloads: list[dict[str, Any]] = []
        self.gate: asyncio.Event | None = None
        self.entered: asyncio.Event | None = None

    build_pipeline_payload = staticmethod(VoiceApiClient.build_pipeline_payload)

    async def send_pipeline(self, payload: dict[str, Any]) -> PipelineResult:
        self.payloads.append(payload)
        if self.entered is not None:
            self.entered.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture(autouse=True)
def logs(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    return capture_logs(monkeypatch, recording_mod, controller_mod)


def _controller(
    *,
    microphone: FakeMicrophone | None = None,
    api: FakeApi | None = None,
    player: FakePlayer | None = None,
    collaborator: RecordingCollaborator | None = None,
) -> RecordingSessionController:
    return RecordingSessionController(
        microphone=microphone or FakeMicrophone(PCM_CHUNKS),
        api_client=api or FakeApi(),  # type: ignore[arg-type]
        player=player or FakePlayer(),
        collaborator=collaborator,
    )


def test_toggle_twice_uploads_plays_and_releases_device() -> None:
    microphone = FakeMicrophone(PCM_CHUNKS)
    api = FakeApi()
    player = FakePlayer()
    ui = RecordingCollaborator()
    controller = _controller(microphone=microphone, api=api, player=player, collaborator=ui)

    async def scenario() -> None:
        await controller.toggle()
        assert controller.state is RecordingState.RECORDING
        await controller.toggle()

    asyncio.run(scenario())

    assert controller.state is RecordingState.IDLE
    assert microphone.handles[0].track_count == 0
    assert player.played == [b"RIFFreply"]
    assert ui.actions == ["play"]
    assert ui.listening == [True, False]
    assert ui.speaking == [True]
    assert ui.alerts == []

    payload = api.payloads[0]
    assert payload["mimeType"] == "audio/wav"
    samples, rate = sf.read(io.BytesIO(base64.b64decode(payload["audioData"])), dtype="int16")
    assert rate == 16_000
    assert len(samples) == 320


def test_playback_finish_clears_speaking() -> None:
    player = FakePlayer()
    ui = RecordingCollaborator()
    controller = _controller(player=player, collaborator=ui)

    async def scenario() -> None:
        await controller.start()
        await controller.stop()

    asyncio.run(scenario())
    assert player.on_finished is not None
    player.on_finished()
    assert ui.speaking == [True, False]


def test_zero_bytes_is_validation_without_network_call() -> None:
    api = FakeApi()
    ui = RecordingCollaborator()
    microphone = FakeMicrophone([])
    controller = _controller(microphone=microphone, api=api, collaborator=ui)

    async def scenario() -> None:
        await controller.start()
        await controller.stop()

    with pytest.raises(ClassifiedError) as info:
        asyncio.run(scenario())

    assert info.value.kind is ErrorKind.VALIDATION
    assert api.payloads == []
    assert controller.state is RecordingState.IDLE
    assert len(ui.alerts) == 1
    assert microphone.handles[0].track_count == 0


def test_permission_denied_alerts_and_returns_to_idle() -> None:
    ui = RecordingCollaborator()
    controller = _controller(microphone=FakeMicrophone(deny=True), collaborator=ui)

    with pytest.raises(PermissionError):
        asyncio.run(controller.start())

    assert controller.state is RecordingState.IDLE
    assert ui.alerts == [MICROPHONE_DENIED_MESSAGE]
    assert ui.listening == []


def test_toggle_swallows_already_alerted_failures(logs: list[dict[str, Any]]) -> None:
    ui = RecordingCollaborator()
    controller = _controller(microphone=FakeMicrophone(deny=True), collaborator=ui)

    asyncio.run(controller.toggle())

    assert controller.state is RecordingState.IDLE
    assert len(ui.alerts) == 1
    assert any(e["event_type"] == "TOGGLE_FAILED" for e in logs)


def test_server_failure_alerts_and_reraises() -> None:
    ui = RecordingCollaborator()
    player = FakePlayer()
    api = FakeApi(error=ClassifiedError(ErrorKind.RATE_LIMIT, "slow down"))
    controller = _controller(api=api, player=player, collaborator=ui)

    async def scenario() -> None:
        await controller.start()
        await controller.stop()

    with pytest.raises(ClassifiedError) as info:
        asyncio.run(scenario())

    assert info.value.kind is ErrorKind.RATE_LIMIT
    assert controller.state is RecordingState.IDLE
    assert len(ui.alerts) == 1
    assert player.played == []


def test_response_after_close_is_discarded(logs: list[dict[str, Any]]) -> None:
    api = FakeApi(result=PipelineResult(audio=b"RIFFlate", text="Let's eat!"))
    player = FakePlayer()
    ui = RecordingCollaborator()
    controller = _controller(api=api, player=player, collaborator=ui)

    async def scenario() -> None:
        api.gate = asyncio.Event()
        api.entered = asyncio.Event()

        await controller.start()
        stop_task = asyncio.create_task(controller.stop())
        await api.entered.wait()
        assert controller.state is RecordingState.AWAITING_RESULT

        await controller.close()
        api.gate.set()
        await stop_task

    asyncio.run(scenario())

    assert player.played == []
    assert ui.actions == []
    assert controller.state is RecordingState.IDLE
    assert any(e["event_type"] == "RESPONSE_DISCARDED_STALE" for e in logs)


def test_start_while_busy_is_rejected() -> None:
    microphone = FakeMicrophone(PCM_CHUNKS)
    controller = _controller(microphone=microphone)

    async def scenario() -> tuple[bool, bool]:
        first = await controller.start()
        second = await controller.start()
        return first, second

    assert asyncio.run(scenario()) == (True, False)
    assert len(microphone.handles) == 1


def test_close_is_idempotent_and_releases_device() -> None:
    microphone = FakeMicrophone(PCM_CHUNKS)
    player = FakePlayer()
    controller = _controller(microphone=microphone, player=player)

    async def scenario() -> None:
        await controller.start()
        await controller.close()
        await controller.close()

    asyncio.run(scenario())

    assert controller.state is RecordingState.IDLE
    assert microphone.handles[0].stop_calls == 1
    assert player.stop_calls == 2


def test_stop_when_idle_is_a_no_op() -> None:
    api = FakeApi()
    controller = _controller(api=api)
    asyncio.run(controller.stop())
    assert api.payloads == []
    assert controller.state is RecordingState.IDLE


class BrokenOutputPlayer(FakePlayer):
    def play(self, audio: bytes, *, on_finished: Any = None) -> None:
        raise RuntimeError("Error opening OutputStream: Invalid device")


class FlakyMicrophone(FakeMicrophone):
    """Raises `error` on the first acquire, then behaves."""

    def __init__(self, error: Exception) -> None:
        super().__init__(PCM_CHUNKS)
        self.error: Exception | None = error

    async def acquire(self) -> Any:
        if self.error is not None:
            error, self.error = self.error, None
            raise error
        return await super().acquire()


def test_playback_device_error_alerts_and_returns_to_idle(logs: list[dict[str, Any]]) -> None:
    microphone = FakeMicrophone(PCM_CHUNKS)
    ui = RecordingCollaborator()
    controller = _controller(microphone=microphone, player=BrokenOutputPlayer(), collaborator=ui)

    async def scenario() -> bool:
        await controller.toggle()
        await controller.toggle()
        return await controller.start()

    restarted = asyncio.run(scenario())

    assert ui.speaking == [True, False]
    assert ui.alerts == ["Something went wrong. Please try again."]
    assert ui.actions == []
    assert restarted is True
    assert controller.state is RecordingState.RECORDING

    failed = [e for e in logs if e["event_type"] == "RECORDING_FAILED"]
    assert failed[0]["kind"] == "UNKNOWN"
    assert failed[0]["state"] == "PLAYING"
    assert any(e["event_type"] == "TOGGLE_FAILED" for e in logs)


def test_undecodable_reply_from_sink_returns_to_idle() -> None:
    class RejectingPlayer(FakePlayer):
        def play(self, audio: bytes, *, on_finished: Any = None) -> None:
            raise ValueError("undecodable audio payload")

    ui = RecordingCollaborator()
    controller = _controller(player=RejectingPlayer(), collaborator=ui)

    async def scenario() -> None:
        await controller.start()
        await controller.stop()

    with pytest.raises(ClassifiedError) as info:
        asyncio.run(scenario())

    assert info.value.kind is ErrorKind.UNKNOWN
    assert info.value.details["exception"] == "ValueError"
    assert controller.state is RecordingState.IDLE
    assert controller.session is None
    assert len(ui.alerts) == 1


def test_microphone_os_error_alerts_and_returns_to_idle() -> None:
    microphone = FlakyMicrophone(OSError("Error querying device -1"))
    ui = RecordingCollaborator()
    controller = _controller(microphone=microphone, collaborator=ui)

    with pytest.raises(ClassifiedError) as info:
        asyncio.run(controller.start())

    assert isinstance(info.value.__cause__, OSError)
    assert controller.state is RecordingState.IDLE
    assert controller.session is None
    assert len(ui.alerts) == 1

    assert asyncio.run(controller.start()) is True
    assert controller.state is RecordingState.RECORDING


def test_encoding_failure_during_stop_returns_to_idle(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_encode(*_: Any, **__: Any) -> bytes:
        raise RuntimeError("Error opening <_io.BytesIO>: Format not recognised")

    monkeypatch.setattr(recording_mod, "encode_wav", broken_encode)
    microphone = FakeMicrophone(PCM_CHUNKS)
    api = FakeApi()
    ui = RecordingCollaborator()
    controller = _controller(microphone=microphone, api=api, collaborator=ui)

    async def scenario() -> None:
        await controller.toggle()
        await controller.toggle()

    asyncio.run(scenario())

    assert api.payloads == []
    assert controller.state is RecordingState.IDLE
    assert microphone.handles[0].track_count == 0
    assert len(ui.alerts) == 1


def test_session_state_follows_controller() -> None:
    controller = _controller()

    asyncio.run(controller.start())

    assert controller.session is not None
    assert controller.session.state is RecordingState.RECORDING
    assert controller.session.log_context()["state"] == "RECORDING"

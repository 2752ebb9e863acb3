# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
from typing import Any

import pytest

import orchestrator.pipeline as pipeline_mod
import orchestrator.retry as retry_mod
from observability import metrics
from orchestrator.enums.error_kind import ErrorKind
from orchestrator.errors import ClassifiedError
from orchestrator.pipeline import PipelineRequest, VoicePipeline

from fakes import (
    VALID_KEY,
    FakeGenerator,
    FakeSynthesizer,
    FakeTranscriber,
    StatusError,
    capture_logs,
    no_sleep,
)
from spec import FALLBACK_REPLY


@pytest.fixture(autouse=True)
def logs(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    return capture_logs(monkeypatch, pipeline_mod, retry_mod, metrics)


def _pipeline(
    *,
    api_key: str | None = VALID_KEY,
    transcriber: FakeTranscriber | None = None,
    generator: FakeGenerator | None = None,
    synthesizer: FakeSynthesizer | None = None,
) -> VoicePipeline:
    return VoicePipeline(
        api_key=api_key,
        transcriber=transcriber or FakeTranscriber(),
        generator=generator or FakeGenerator(),
        synthesizer=synthesizer or FakeSynthesizer(),
        max_retries=3,
        initial_delay_ms=1,
        sleep=no_sleep,
    )


def test_run_returns_audio_and_text() -> None:
    transcriber = FakeTranscriber("can we play?")
    generator = FakeGenerator("Yes! Let's play!")
    synthesizer = FakeSynthesizer(b"RIFFreply")

    result = asyncio.run(_pipeline(
        transcriber=transcriber,
        generator=generator,
        synthesizer=synthesizer,
    ).run(PipelineRequest(audio=b"\x01\x02", mime_type="audio/wav")))

    assert result.audio == b"RIFFreply"
    assert result.text == "Yes! Let's play!"
    assert result.transcript == "can we play?"
    assert transcriber.calls == [(b"\x01\x02", "audio/wav")]
    assert generator.calls[0][1] == "can we play?"
    assert synthesizer.calls == ["Yes! Let's play!"]


def test_empty_audio_fails_validation_without_provider_calls() -> None:
    transcriber = FakeTranscriber()

    with pytest.raises(ClassifiedError) as info:
        asyncio.run(_pipeline(transcriber=transcriber).run(
            PipelineRequest(audio=b"", mime_type="audio/wav")
        ))

    assert info.value.kind is ErrorKind.VALIDATION
    assert not info.value.retryable
    assert transcriber.calls == []


def test_silence_yields_fallback_reply_and_skips_generation() -> None:
    generator = FakeGenerator()
    synthesizer = FakeSynthesizer()

    result = asyncio.run(_pipeline(
        transcriber=FakeTranscriber("   "),
        generator=generator,
        synthesizer=synthesizer,
    ).run(PipelineRequest(audio=b"\x00\x00", mime_type="audio/wav")))

    assert result.text == FALLBACK_REPLY
    assert generator.calls == []
    assert synthesizer.calls == [FALLBACK_REPLY]


def test_empty_completion_yields_fallback_reply() -> None:
    result = asyncio.run(_pipeline(generator=FakeGenerator("")).run(
        PipelineRequest(audio=b"\x00\x01", mime_type="audio/wav")
    ))
    assert result.text == FALLBACK_REPLY


@pytest.mark.parametrize("api_key", [None, "", "not-a-key-at-all-really", "sk-short", "sk-has space 0123456789"])
def test_bad_credential_fails_config_before_any_call(api_key: str | None) -> None:
    transcriber = FakeTranscriber()

    with pytest.raises(ClassifiedError) as info:
        asyncio.run(_pipeline(api_key=api_key, transcriber=transcriber).run(
            PipelineRequest(audio=b"\x01", mime_type="audio/wav")
        ))

    assert info.value.kind is ErrorKind.CONFIG
    assert transcriber.calls == []


def test_transient_stage_failure_is_retried() -> None:
    synthesizer = FakeSynthesizer(errors=[StatusError(503)])

    result = asyncio.run(_pipeline(synthesizer=synthesizer).run(
        PipelineRequest(audio=b"\x01", mime_type="audio/wav")
    ))

    assert len(synthesizer.calls) == 2
    assert result.audio == b"RIFFfake"


def test_first_failing_stage_error_is_raised() -> None:
    generator = FakeGenerator(errors=[StatusError(401, "Incorrect API key")])
    synthesizer = FakeSynthesizer()

    with pytest.raises(ClassifiedError) as info:
        asyncio.run(_pipeline(generator=generator, synthesizer=synthesizer).run(
            PipelineRequest(audio=b"\x01", mime_type="audio/wav")
        ))

    assert info.value.kind is ErrorKind.AUTH
    assert len(generator.calls) == 1
    assert synthesizer.calls == []


def test_exhausted_retries_surface_last_classification() -> None:
    transcriber = FakeTranscriber(errors=[ConnectionResetError("reset")] * 3)

    with pytest.raises(ClassifiedError) as info:
        asyncio.run(_pipeline(transcriber=transcriber).run(
            PipelineRequest(audio=b"\x01", mime_type="audio/wav")
        ))

    assert info.value.kind is ErrorKind.NETWORK
    assert len(transcriber.calls) == 3


def test_stage_durations_are_emitted(logs: list[dict[str, Any]]) -> None:
    asyncio.run(_pipeline().run(PipelineRequest(audio=b"\x01", mime_type="audio/wav")))

    timers = [e for e in logs if e["event_type"] == "METRIC_TIMER"]
    assert [t["stage"] for t in timers] == ["TRANSCRIBE", "GENERATE", "SYNTHESIZE"]
    assert all(t["ok"] for t in timers)


def test_reply_uses_generate_stage() -> None:
    generator = FakeGenerator("I love food!")
    reply = asyncio.run(_pipeline(generator=generator).reply("are you hungry?"))
    assert reply == "I love food!"
    assert generator.calls[0][1] == "are you hungry?"

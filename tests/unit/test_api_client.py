# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import base64
import json
from typing import Any

import httpx
import pytest

import session.api_client as api_mod
from orchestrator.enums.error_kind import ErrorKind
from orchestrator.errors import ClassifiedError
from session.api_client import VoiceApiClient

from fakes import capture_logs


@pytest.fixture(autouse=True)
def logs(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    return capture_logs(monkeypatch, api_mod)


def _client(handler) -> VoiceApiClient:
    return VoiceApiClient(
        "http://bear.local/",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def test_build_pipeline_payload_is_camel_case_base64() -> None:
    payload = VoiceApiClient.build_pipeline_payload(b"\x00\x01", "audio/wav")
    assert payload == {"audioData": "AAE=", "mimeType": "audio/wav"}


def test_run_pipeline_decodes_reply() -> None:
    seen: list[dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/voice-pipeline"
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={
            "audioResponse": base64.b64encode(b"RIFF").decode("ascii"),
            "textResponse": "Let's play!",
        })

    result = asyncio.run(_client(handler).run_pipeline(b"\x05\x06"))

    assert result.audio == b"RIFF"
    assert result.text == "Let's play!"
    assert seen[0]["mimeType"] == "audio/wav"


def test_pipeline_error_keeps_server_kind() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "quota exceeded", "type": "SUBSCRIPTION"})

    with pytest.raises(ClassifiedError) as info:
        asyncio.run(_client(handler).run_pipeline(b"\x01"))

    assert info.value.kind is ErrorKind.SUBSCRIPTION
    assert info.value.message == "quota exceeded"


def test_realtime_error_kind_comes_from_details_prefix() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "bad key", "details": "AUTH: RealtimeSignalingError"})

    with pytest.raises(ClassifiedError) as info:
        asyncio.run(_client(handler).create_realtime_session("v=0"))

    assert info.value.kind is ErrorKind.AUTH


def test_non_json_error_is_classified_by_status() -> None:
    with pytest.raises(ClassifiedError) as info:
        asyncio.run(_client(lambda r: httpx.Response(502, text="Bad Gateway")).run_pipeline(b"\x01"))
    assert info.value.kind is ErrorKind.SERVICE


def test_transport_failure_is_network() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ClassifiedError) as info:
        asyncio.run(_client(handler).run_pipeline(b"\x01"))

    assert info.value.kind is ErrorKind.NETWORK
    assert info.value.retryable


def test_create_realtime_session_returns_answer() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body == {"offer": {"type": "offer", "sdp": "v=0 local"}}
        return httpx.Response(200, json={
            "answer": {"type": "answer", "sdp": "v=0 remote"},
            "sessionId": "rtc_1",
        })

    answer = asyncio.run(_client(handler).create_realtime_session("v=0 local"))

    assert answer.sdp == "v=0 remote"
    assert answer.session_id == "rtc_1"


def test_malformed_success_body_is_unknown() -> None:
    with pytest.raises(ClassifiedError) as info:
        asyncio.run(_client(lambda r: httpx.Response(200, json={"nope": 1})).run_pipeline(b"\x01"))
    assert info.value.kind is ErrorKind.UNKNOWN

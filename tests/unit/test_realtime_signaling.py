# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio

import httpx
import pytest

from adapters.realtime.signaling import RealtimeSignaling, RealtimeSignalingError
from orchestrator.enums.error_kind import ErrorKind
from orchestrator.errors import classify

from fakes import VALID_KEY


ANSWER_SDP = "v=0\r\no=- 42 2 IN IP4 0.0.0.0\r\ns=-\r\n"


def _signaling(handler) -> RealtimeSignaling:
    return RealtimeSignaling(
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        api_key=VALID_KEY,
        base_url="https://api.example.com/v1/",
        model="gpt-4o-realtime-preview",
    )


def test_exchange_posts_sdp_and_reads_location() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            201,
            text=ANSWER_SDP,
            headers={"Location": "/v1/realtime/calls/rtc_provider123"},
        )

    answer = asyncio.run(_signaling(handler).exchange("v=0\r\noffer"))

    assert answer.sdp == ANSWER_SDP
    assert answer.session_id == "rtc_provider123"

    request = seen[0]
    assert request.url.path == "/v1/realtime"
    assert request.url.params["model"] == "gpt-4o-realtime-preview"
    assert request.headers["content-type"] == "application/sdp"
    assert request.headers["authorization"] == f"Bearer {VALID_KEY}"
    assert request.content == b"v=0\r\noffer"


def test_missing_location_generates_session_id() -> None:
    answer = asyncio.run(_signaling(lambda r: httpx.Response(200, text=ANSWER_SDP)).exchange("v=0"))
    assert answer.session_id.startswith("rtc_")


def test_provider_error_carries_status_and_message() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"message": "Incorrect API key provided"}})

    with pytest.raises(RealtimeSignalingError) as info:
        asyncio.run(_signaling(handler).exchange("v=0"))

    assert info.value.status_code == 401
    assert "Incorrect API key" in str(info.value)
    assert classify(info.value).kind is ErrorKind.AUTH


def test_non_sdp_body_is_rejected() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>gateway</html>")

    with pytest.raises(RealtimeSignalingError):
        asyncio.run(_signaling(handler).exchange("v=0"))


def test_transport_failure_classifies_as_network() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(httpx.ConnectError) as info:
        asyncio.run(_signaling(handler).exchange("v=0"))

    assert classify(info.value).kind is ErrorKind.NETWORK

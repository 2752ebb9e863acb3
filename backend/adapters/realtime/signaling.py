"""
Realtime signaling relay (server side).

Role in the system:
- Receives the browser/client SDP offer from /realtime-session.
- Relays it to the provider's realtime endpoint (SDP over HTTP).
- Returns the provider's SDP answer and session identifier.

Architectural constraints:
- One HTTP exchange per call; retries are owned by the caller.
- The httpx client is injected and shared process-wide.
- Never fabricates an SDP answer.
"""
from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4

import httpx

from spec import REALTIME_SESSION_ID_PREFIX, REALTIME_SIGNALING_TIMEOUT_S


@dataclass(frozen=True)
class SignalingAnswer:
    """SDP answer plus provider-assigned session id."""
    sdp: str
    session_id: str


class RealtimeSignalingError(Exception):
    """Provider rejected the offer; carries the HTTP status for classification."""

    def __init__(self, message: str, *, status_code: int, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RealtimeSignaling:
    """OpenAI Realtime SDP exchange."""

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        api_key: str,
        base_url: str,
        model: str,
    ) -> None:
        self._http = http_client
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._model = model

    async def exchange(self, offer_sdp: str) -> SignalingAnswer:
        """
        POST the offer SDP and return the answer.

        Raises:
            RealtimeSignalingError on non-2xx responses.
            httpx.TransportError on network failures.
        """
        response = await self._http.post(
            f"{self._base_url}/realtime",
            params={"model": self._model},
            content=offer_sdp.encode("utf-8"),
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/sdp",
            },
            timeout=REALTIME_SIGNALING_TIMEOUT_S,
        )

        body = response.text
        if response.is_error:
            raise RealtimeSignalingError(
                f"Realtime API error: {_error_message(response)}",
                status_code=response.status_code,
                body=body[:500],
            )

        if not body.strip().startswith("v="):
            # HTML error pages and JSON bodies are not SDP
            raise RealtimeSignalingError(
                "Invalid API response format: expected an SDP answer",
                status_code=response.status_code,
                body=body[:500],
            )

        return SignalingAnswer(
            sdp=body,
            session_id=_session_id_from(response),
        )


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return f"HTTP {response.status_code}"


def _session_id_from(response: httpx.Response) -> str:
    """
    Provider call id is the last path segment of the Location header.

    Falls back to a locally generated id when the provider omits it.
    """
    location = response.headers.get("location", "")
    segment = location.rstrip("/").rsplit("/", 1)[-1] if location else ""
    if segment:
        return segment
    return f"{REALTIME_SESSION_ID_PREFIX}{uuid4().hex[:16]}"

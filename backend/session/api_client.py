"""HTTP client for the voice server endpoints (client side)."""

from __future__ import annotations

import base64
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from adapters.realtime.signaling import SignalingAnswer
from observability.logger import log_event
from orchestrator.enums.error_kind import ErrorKind
from orchestrator.errors import ClassifiedError, classify
from orchestrator.pipeline import PipelineResult
from server.schemas import (
    RealtimeSessionRequest,
    RealtimeSessionResponse,
    SessionDescription,
    VoicePipelineRequest,
    VoicePipelineResponse,
)

from spec import (
    CLIENT_HTTP_TIMEOUT_S,
    REALTIME_SESSION_PATH,
    RECORDING_UPLOAD_MIME_TYPE,
    VOICE_PIPELINE_PATH,
    VOICE_SERVER_URL_DEFAULT,
)


class VoiceApiClient:
    """
    Talks to /voice-pipeline and /realtime-session.

    Every failure surfaces as a ClassifiedError: server error bodies keep
    the kind the server assigned, transport failures are classified here.
    """

    def __init__(
        self,
        base_url: str = VOICE_SERVER_URL_DEFAULT,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = CLIENT_HTTP_TIMEOUT_S,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    # ------------------------------------------------------------------
    # /voice-pipeline
    # ------------------------------------------------------------------

    @staticmethod
    def build_pipeline_payload(
        audio: bytes,
        mime_type: str = RECORDING_UPLOAD_MIME_TYPE,
    ) -> Dict[str, Any]:
        body = VoicePipelineRequest(
            audio_data=base64.b64encode(audio).decode("ascii"),
            mime_type=mime_type,
        )
        return body.model_dump(by_alias=True)

    async def send_pipeline(self, payload: Dict[str, Any]) -> PipelineResult:
        """POST a prepared payload and decode the reply."""
        data = await self._post_json(VOICE_PIPELINE_PATH, payload)

        try:
            response = VoicePipelineResponse.model_validate(data)
            audio = base64.b64decode(response.audio_response, validate=True)
        except (ValidationError, ValueError) as exc:
            raise ClassifiedError(
                ErrorKind.UNKNOWN,
                "Invalid response from voice server",
            ) from exc

        return PipelineResult(audio=audio, text=response.text_response)

    async def run_pipeline(
        self,
        audio: bytes,
        mime_type: str = RECORDING_UPLOAD_MIME_TYPE,
    ) -> PipelineResult:
        return await self.send_pipeline(self.build_pipeline_payload(audio, mime_type))

    # ------------------------------------------------------------------
    # /realtime-session
    # ------------------------------------------------------------------

    async def create_realtime_session(self, offer_sdp: str) -> SignalingAnswer:
        """Exchange the local offer for the provider's answer."""
        body = RealtimeSessionRequest(offer=SessionDescription(type="offer", sdp=offer_sdp))
        data = await self._post_json(REALTIME_SESSION_PATH, body.model_dump(by_alias=True))

        try:
            response = RealtimeSessionResponse.model_validate(data)
        except ValidationError as exc:
            raise ClassifiedError(
                ErrorKind.UNKNOWN,
                "Invalid response from realtime session endpoint",
            ) from exc

        return SignalingAnswer(sdp=response.answer.sdp, session_id=response.session_id)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _post_json(self, path: str, payload: Dict[str, Any]) -> Any:
        try:
            resp = await self._client.post(self._url(path), json=payload)
        except httpx.HTTPError as exc:
            error = classify(exc)
            log_event({
                "event_type": "API_REQUEST_FAILED",
                "path": path,
                "kind": error.kind.value,
                "exception": type(exc).__name__,
            })
            raise error from exc

        if resp.is_error:
            error = _error_from_response(resp)
            log_event({
                "event_type": "API_REQUEST_FAILED",
                "path": path,
                "status": resp.status_code,
                "kind": error.kind.value,
            })
            raise error

        try:
            return resp.json()
        except ValueError as exc:
            raise ClassifiedError(
                ErrorKind.UNKNOWN,
                f"Invalid response: {exc}",
            ) from exc


def _error_from_response(resp: httpx.Response) -> ClassifiedError:
    """
    Rebuild the server's classification from an error body.

    /voice-pipeline sends {"error", "type", "details"?};
    /realtime-session sends {"error", "details": "KIND: ExceptionName"}.
    Anything else is classified by status code.
    """
    try:
        data = resp.json()
    except ValueError:
        data = None

    if not isinstance(data, dict):
        return classify(httpx.HTTPStatusError(
            f"HTTP {resp.status_code}",
            request=resp.request,
            response=resp,
        ))

    message = str(data.get("error") or f"HTTP {resp.status_code}")
    details = data.get("details")

    kind = _kind_from(data.get("type"))
    if kind is None and isinstance(details, str):
        kind = _kind_from(details.split(":", 1)[0].strip())

    if kind is None:
        fallback = classify(httpx.HTTPStatusError(message, request=resp.request, response=resp))
        kind = fallback.kind

    return ClassifiedError(
        kind,
        message,
        details=details if isinstance(details, dict) else {"status": resp.status_code},
    )


def _kind_from(value: Any) -> Optional[ErrorKind]:
    if not isinstance(value, str):
        return None
    try:
        return ErrorKind(value)
    except ValueError:
        return None

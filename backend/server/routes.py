"""
Route registration for the voice API.

Responsibilities:
- Define HTTP endpoints
- Translate wire JSON <-> pipeline / signaling calls
- Pull dependencies from app.state
- Never let an unclassified exception escape: every failure is
  classified and returned as structured JSON
"""

from __future__ import annotations

import base64
import binascii
from typing import Any, TypeVar

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from adapters.realtime.signaling import RealtimeSignaling
from config import AppConfig
from observability.logger import log_event
from orchestrator.enums.error_kind import ErrorKind
from orchestrator.enums.service import Stage
from orchestrator.errors import ClassifiedError, classify
from orchestrator.pipeline import PipelineRequest, VoicePipeline
from orchestrator.retry import with_retry

from server.schemas import (
    ChatRequest,
    ChatResponse,
    RealtimeSessionRequest,
    RealtimeSessionResponse,
    SessionDescription,
    VoicePipelineRequest,
    VoicePipelineResponse,
)


M = TypeVar("M", bound=BaseModel)


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""
    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    @app.post("/voice-pipeline")
    async def voice_pipeline(request: Request) -> JSONResponse: # pyright: ignore[reportUnusedFunction]
        pipeline: VoicePipeline = app.state.pipeline

        try:
            body = await _parse_body(request, VoicePipelineRequest)
            audio = _decode_audio(body.audio_data)

            result = await pipeline.run(
                PipelineRequest(audio=audio, mime_type=body.mime_type)
            )

            response = VoicePipelineResponse(
                audio_response=base64.b64encode(result.audio).decode("ascii"),
                text_response=result.text,
            )
            return JSONResponse(response.model_dump(by_alias=True))

        except Exception as exc:  # pylint: disable=broad-exception-caught
            error = classify(exc)
            log_event({
                "event_type": "VOICE_PIPELINE_FAILED",
                "kind": error.kind.value,
                "exception": type(exc).__name__,
                "message": error.message,
            })
            return JSONResponse(error.to_payload(), status_code=500)

    @app.post("/realtime-session")
    async def realtime_session(request: Request) -> JSONResponse: # pyright: ignore[reportUnusedFunction]
        config: AppConfig = app.state.config
        signaling: RealtimeSignaling = app.state.signaling

        try:
            config.require_openai_key()

            body = await _parse_body(request, RealtimeSessionRequest)
            if body.offer.type != "offer":
                raise ClassifiedError(
                    ErrorKind.VALIDATION,
                    "Session description must be an offer",
                )

            answer = await with_retry(
                lambda: signaling.exchange(body.offer.sdp),
                max_retries=config.pipeline_max_retries,
                initial_delay_ms=config.pipeline_initial_delay_ms,
                stage=Stage.SIGNALING,
            )

            log_event({
                "event_type": "REALTIME_SESSION_CREATED",
                "session_id": answer.session_id,
            })
            response = RealtimeSessionResponse(
                answer=SessionDescription(type="answer", sdp=answer.sdp),
                session_id=answer.session_id,
            )
            return JSONResponse(response.model_dump(by_alias=True))

        except Exception as exc:  # pylint: disable=broad-exception-caught
            error = classify(exc)
            raw_name = _raw_exception_name(exc, error)
            log_event({
                "event_type": "REALTIME_SESSION_FAILED",
                "kind": error.kind.value,
                "exception": raw_name,
                "message": error.message,
            })
            return JSONResponse(
                {
                    "error": error.message or "Failed to initialize voice chat session",
                    "details": f"{error.kind.value}: {raw_name}",
                },
                status_code=500,
            )

    @app.post("/chat")
    async def chat(request: Request) -> JSONResponse: # pyright: ignore[reportUnusedFunction]
        pipeline: VoicePipeline = app.state.pipeline

        try:
            body = await _parse_body(request, ChatRequest)
        except ClassifiedError:
            return JSONResponse({"error": "Message is required"}, status_code=400)

        if not body.message.strip():
            return JSONResponse({"error": "Message is required"}, status_code=400)

        try:
            reply = await pipeline.reply(body.message)
            return JSONResponse(ChatResponse(reply=reply).model_dump())

        except Exception as exc:  # pylint: disable=broad-exception-caught
            error = classify(exc)
            log_event({
                "event_type": "CHAT_FAILED",
                "kind": error.kind.value,
                "message": error.message,
            })
            return JSONResponse(error.to_payload(), status_code=500)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _raw_exception_name(exc: BaseException, error: ClassifiedError) -> str:
    """Name of the provider failure behind `error`, not of the retry wrapper."""
    name = error.details.get("exception")
    if isinstance(name, str):
        return name
    return type(exc.__cause__ or exc).__name__


async def _parse_body(request: Request, model: type[M]) -> M:
    """
    Parse and validate the JSON body.

    Raises:
        ClassifiedError(VALIDATION) on malformed JSON or schema mismatch.
    """
    try:
        raw: Any = await request.json()
    except ValueError as exc:
        raise ClassifiedError(
            ErrorKind.VALIDATION,
            f"Malformed JSON body: {exc}",
        ) from exc

    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise ClassifiedError(
            ErrorKind.VALIDATION,
            "Invalid request body",
            details={"errors": [
                {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
                for err in exc.errors()
            ]},
        ) from exc


def _decode_audio(audio_b64: str) -> bytes:
    try:
        return base64.b64decode(audio_b64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ClassifiedError(
            ErrorKind.VALIDATION,
            "audioData is not valid base64",
        ) from exc


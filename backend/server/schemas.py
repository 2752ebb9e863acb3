"""
Wire schemas for the HTTP endpoints.

Field names on the wire are camelCase; Python attributes are snake_case.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ------------------------------------------------------------------
# /voice-pipeline
# ------------------------------------------------------------------

class VoicePipelineRequest(_WireModel):
    audio_data: str = Field(alias="audioData", min_length=1)
    mime_type: str = Field(alias="mimeType", min_length=1)


class VoicePipelineResponse(_WireModel):
    audio_response: str = Field(alias="audioResponse")
    text_response: str = Field(alias="textResponse")


# ------------------------------------------------------------------
# /realtime-session
# ------------------------------------------------------------------

class SessionDescription(_WireModel):
    type: Literal["offer", "answer"]
    sdp: str = Field(min_length=1)


class RealtimeSessionRequest(_WireModel):
    offer: SessionDescription


class RealtimeSessionResponse(_WireModel):
    answer: SessionDescription
    session_id: str = Field(alias="sessionId")


# ------------------------------------------------------------------
# /chat
# ------------------------------------------------------------------

class ChatRequest(_WireModel):
    message: str = ""


class ChatResponse(_WireModel):
    reply: str

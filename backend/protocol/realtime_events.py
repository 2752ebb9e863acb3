# backend/protocol/realtime_events.py
"""
Data-channel event helpers for the realtime transport.

Inbound (provider -> client), one JSON object per message:
    {"type": "<event type>", ...event fields}

Outbound (client -> provider):
    {"type": "session.update", "session": {"instructions": ..., "tools": [...]}}

Usage example:

    event = parse_event(message)
    action = decode_bear_action(event)
    if action is not None:
        collaborator.on_bear_action(action)
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from spec import BEAR_ACTION_TOOL_NAME, BEAR_ACTIONS


class RealtimeEventType(str, Enum):
    """Event types the client reacts to. Anything else is ignored."""

    SESSION_CREATED = "session.created"
    SESSION_UPDATE = "session.update"
    SPEECH_STARTED = "input_audio_buffer.speech_started"
    SPEECH_STOPPED = "input_audio_buffer.speech_stopped"
    FUNCTION_CALL_ARGUMENTS_DELTA = "response.function_call_arguments.delta"
    FUNCTION_CALL_ARGUMENTS_DONE = "response.function_call_arguments.done"
    ERROR = "error"


class RealtimeProtocolError(ValueError):
    """Message is not a JSON object with a string `type`."""


@dataclass(frozen=True)
class RealtimeEvent:
    """
    Parsed inbound event.

    type:
        Raw event type string (kept even when unknown).

    payload:
        The full decoded object, including `type`.
    """
    type: str
    payload: Mapping[str, Any] = field(default_factory=dict)

    @property
    def known_type(self) -> Optional[RealtimeEventType]:
        try:
            return RealtimeEventType(self.type)
        except ValueError:
            return None


def parse_event(data: str | bytes) -> RealtimeEvent:
    """
    Decode one data-channel message.

    Raises:
        RealtimeProtocolError on malformed JSON or a missing type.
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise RealtimeProtocolError(f"message is not utf-8: {exc}") from exc

    try:
        decoded = json.loads(data)
    except json.JSONDecodeError as exc:
        raise RealtimeProtocolError(f"malformed JSON: {exc.msg}") from exc

    if not isinstance(decoded, dict):
        raise RealtimeProtocolError("event must be a JSON object")

    event_type = decoded.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise RealtimeProtocolError("event is missing a string 'type'")

    return RealtimeEvent(type=event_type, payload=decoded)


def decode_bear_action(event: RealtimeEvent) -> Optional[str]:
    """
    Extract a bear action from a function-call event.

    Two shapes are accepted:
    - delta: {"delta": {"name": "bear_action", "arguments": "{\"action\": ...}"}}
    - done:  {"name": "bear_action", "arguments": "{\"action\": ...}"}

    Returns None for other events, other functions, arguments that are not
    (yet) valid JSON, and actions outside the known set.
    """
    kind = event.known_type
    if kind is RealtimeEventType.FUNCTION_CALL_ARGUMENTS_DELTA:
        call = event.payload.get("delta")
    elif kind is RealtimeEventType.FUNCTION_CALL_ARGUMENTS_DONE:
        call = event.payload
    else:
        return None

    if not isinstance(call, Mapping) or call.get("name") != BEAR_ACTION_TOOL_NAME:
        return None

    arguments = call.get("arguments")
    if isinstance(arguments, str):
        try:
            arguments = json.loads(arguments)
        except json.JSONDecodeError:
            # Partial delta
            return None

    if not isinstance(arguments, Mapping):
        return None

    action = arguments.get("action")
    if action not in BEAR_ACTIONS:
        return None
    return action


def build_session_update(instructions: str, tools: Sequence[Mapping[str, Any]] = ()) -> str:
    """Serialize the one-shot session.update sent when the channel opens."""
    session: dict[str, Any] = {"instructions": instructions}
    if tools:
        session["tools"] = [dict(tool) for tool in tools]
        session["tool_choice"] = "auto"

    return json.dumps(
        {"type": RealtimeEventType.SESSION_UPDATE.value, "session": session},
        separators=(",", ":"),
    )

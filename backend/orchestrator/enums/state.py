"""
Authoritative controller state enumerations.

Rules:
- These enums define ONLY the control-plane states.
- No behavior, no helper methods, no side effects.
- Transitions are defined exclusively by the controllers.
"""

from __future__ import annotations

from enum import Enum


class RecordingState(str, Enum):
    """
    States of the record-and-upload controller.

    Happy path:
        IDLE -> REQUESTING_PERMISSION -> RECORDING -> UPLOADING
             -> AWAITING_RESULT -> PLAYING -> IDLE

    Any unrecoverable failure:
        <any> -> ERROR -> IDLE
    """

    IDLE = "IDLE"
    REQUESTING_PERMISSION = "REQUESTING_PERMISSION"
    RECORDING = "RECORDING"
    UPLOADING = "UPLOADING"
    AWAITING_RESULT = "AWAITING_RESULT"
    PLAYING = "PLAYING"
    ERROR = "ERROR"


class PeerState(str, Enum):
    """
    States of the WebRTC negotiation controller.

    IDLE -> CONNECTING -> CONNECTED -> IDLE
    <any> -> ERROR -> IDLE
    """

    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    ERROR = "ERROR"

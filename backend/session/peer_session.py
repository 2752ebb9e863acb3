"""
Peer session container (WebRTC path).

Holds every resource a negotiation acquires so teardown can release
them in one place. Owned and mutated by WebRTCNegotiationController.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from orchestrator.enums.state import PeerState
from session.voice_session import new_session_id


@dataclass
class PeerSession:
    """Mutable runtime container for a single negotiated connection."""

    local_id: str = field(default_factory=new_session_id)
    created_at: float = field(default_factory=time.time)
    state: PeerState = PeerState.IDLE

    peer_connection: Any = None  # Type: aiortc.RTCPeerConnection in practice
    data_channel: Any = None  # Type: aiortc.RTCDataChannel
    transceiver: Any = None
    local_tracks: list[Any] = field(default_factory=list)
    audio_sink: Any = None  # Type: audio.rtc_media.RemoteAudioSink

    # Assigned by the provider once signaling succeeds
    session_id: str | None = None

    # Background tasks tied to this session (sink pumps, deferred sends)
    tasks: set[Any] = field(default_factory=set)

    def log_context(self) -> dict[str, Any]:
        return {
            "local_id": self.local_id,
            "session_id": self.session_id,
            "state": self.state.value,
        }

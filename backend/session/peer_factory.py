"""aiortc peer connection construction."""

from __future__ import annotations

from aiortc import (
    RTCConfiguration,
    RTCIceServer,
    RTCPeerConnection,
    RTCSessionDescription,
)

from spec import STUN_SERVERS


class PeerConnectionFactory:
    """Builds peer connections against a fixed STUN server list."""

    def __init__(self, stun_servers: tuple[str, ...] = STUN_SERVERS) -> None:
        self._stun_servers = stun_servers

    def create(self) -> RTCPeerConnection:
        configuration = RTCConfiguration(
            iceServers=[RTCIceServer(urls=list(self._stun_servers))],
        )
        return RTCPeerConnection(configuration=configuration)

    @staticmethod
    def answer(sdp: str) -> RTCSessionDescription:
        return RTCSessionDescription(sdp=sdp, type="answer")

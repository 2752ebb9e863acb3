"""
Controller factory.

Selects the transport from configuration and wires the concrete
device, HTTP and peer-connection collaborators.
"""

from __future__ import annotations

from audio.capture import SoundDeviceMicrophone
from audio.playback import SoundDevicePlaybackSink
from audio.rtc_media import MediaPlayerMicrophone, SoundDeviceRemoteSink
from config import AppConfig, Transport
from session.api_client import VoiceApiClient
from session.collaborator import VoiceUICollaborator
from session.controller import VoiceController
from session.peer_factory import PeerConnectionFactory
from session.recording import RecordingSessionController
from session.webrtc import WebRTCNegotiationController


def build_controller(
    config: AppConfig,
    *,
    collaborator: VoiceUICollaborator | None = None,
    api_client: VoiceApiClient | None = None,
) -> VoiceController:
    """Build the controller named by config.voice_transport. Devices open lazily."""
    api_client = api_client or VoiceApiClient(config.voice_server_url)

    if config.voice_transport is Transport.WEBRTC:
        return WebRTCNegotiationController(
            api_client=api_client,
            media_source=MediaPlayerMicrophone(),
            audio_sink=SoundDeviceRemoteSink(),
            peer_factory=PeerConnectionFactory(),
            collaborator=collaborator,
        )

    return RecordingSessionController(
        microphone=SoundDeviceMicrophone(),
        api_client=api_client,
        player=SoundDevicePlaybackSink(),
        collaborator=collaborator,
    )

"""
WebRTC negotiation controller (client side).

Responsibilities:
- Build the peer connection, data channel and audio transceiver
- Run offer -> ICE gathering -> /realtime-session -> answer
- Configure the provider session once the data channel opens
- Route data-channel events (bear actions, speech activity) to the UI
- Tear everything down idempotently, one isolated step at a time

Ordering guarantees:
- ICE gathering completion is awaited via icegatheringstatechange,
  never a timer
- A negotiation superseded by stop()/close() never touches the new state
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, TYPE_CHECKING

from adapters.llm.prompts import REALTIME_INSTRUCTIONS, bear_action_tool
from observability.logger import log_event
from orchestrator.enums.error_kind import ErrorKind
from orchestrator.enums.state import PeerState
from orchestrator.errors import (
    MICROPHONE_DENIED_MESSAGE,
    ClassifiedError,
    classify,
    user_message,
)
from protocol.realtime_events import (
    RealtimeEventType,
    RealtimeProtocolError,
    build_session_update,
    decode_bear_action,
    parse_event,
)
from session.api_client import VoiceApiClient
from session.collaborator import VoiceUICollaborator
from session.controller import VoiceController
from session.peer_session import PeerSession

from spec import DATA_CHANNEL_LABEL

if TYPE_CHECKING:
    from audio.rtc_media import MicrophoneTrackSource, RemoteAudioSink
    from session.peer_factory import PeerConnectionFactory


_LOGGED_EVENTS: frozenset[RealtimeEventType] = frozenset({
    RealtimeEventType.SESSION_CREATED,
    RealtimeEventType.SPEECH_STARTED,
    RealtimeEventType.SPEECH_STOPPED,
    RealtimeEventType.ERROR,
})


class NegotiationSuperseded(Exception):
    """The session was stopped or replaced while negotiation was in flight."""


class WebRTCNegotiationController(VoiceController):
    """Direct real-time audio with the provider, signaled through the server."""

    def __init__(
        self,
        *,
        api_client: VoiceApiClient,
        media_source: MicrophoneTrackSource,
        audio_sink: RemoteAudioSink,
        peer_factory: PeerConnectionFactory,
        collaborator: VoiceUICollaborator | None = None,
        instructions: str = REALTIME_INSTRUCTIONS,
        tools: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(collaborator)
        self._api = api_client
        self._media = media_source
        self._sink = audio_sink
        self._factory = peer_factory
        self._instructions = instructions
        self._tools = tools if tools is not None else [bear_action_tool()]

        self._state = PeerState.IDLE
        self._peer: PeerSession | None = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> PeerState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state in (PeerState.CONNECTING, PeerState.CONNECTED)

    @property
    def peer(self) -> PeerSession | None:
        return self._peer

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    async def start(self) -> bool:
        if self._state is not PeerState.IDLE:
            log_event({
                "event_type": "PEER_START_REJECTED",
                "state": self._state.value,
            })
            return False

        peer = PeerSession()
        self._peer = peer
        self._transition(PeerState.CONNECTING)

        try:
            await self._negotiate(peer)

        except NegotiationSuperseded:
            log_event({"event_type": "NEGOTIATION_SUPERSEDED", **peer.log_context()})
            await self._teardown(peer)
            return False

        except PermissionError as exc:
            if self._peer is not peer:
                await self._teardown(peer)
                return False
            log_event({
                "event_type": "MICROPHONE_DENIED",
                "local_id": peer.local_id,
                "error": str(exc),
            })
            self._collaborator.on_alert(MICROPHONE_DENIED_MESSAGE)
            await self._fail(peer)
            raise

        except Exception as exc:  # pylint: disable=broad-exception-caught
            error = classify(exc)
            if self._peer is not peer:
                await self._teardown(peer)
                return False
            log_event({
                "event_type": "NEGOTIATION_FAILED",
                "kind": error.kind.value,
                "message": error.message,
                **peer.log_context(),
            })
            self._collaborator.on_alert(user_message(error))
            await self._fail(peer)
            if error is exc:
                raise
            raise error from exc

        self._transition(PeerState.CONNECTED)
        self._collaborator.on_listening_changed(True)
        return True

    async def _negotiate(self, peer: PeerSession) -> None:
        pc = self._factory.create()
        peer.peer_connection = pc

        channel = pc.createDataChannel(DATA_CHANNEL_LABEL, ordered=True)
        peer.data_channel = channel
        channel.on("open", lambda: self._on_channel_open(peer))
        channel.on("message", lambda message: self._on_message(peer, message))

        pc.on("track", lambda track: self._on_track(peer, track))
        pc.on("connectionstatechange", lambda: self._on_connection_state(peer))

        peer.transceiver = pc.addTransceiver("audio", direction="sendrecv")
        tracks = await self._media.open()
        peer.local_tracks = list(tracks)
        self._check_current(peer)
        for track in peer.local_tracks:
            pc.addTrack(track)

        offer = await pc.createOffer()
        await pc.setLocalDescription(offer)
        await wait_for_ice_gathering(pc)
        self._check_current(peer)

        answer = await self._api.create_realtime_session(pc.localDescription.sdp)
        self._check_current(peer)

        await pc.setRemoteDescription(self._factory.answer(answer.sdp))
        peer.session_id = answer.session_id

        log_event({"event_type": "NEGOTIATION_COMPLETE", **peer.log_context()})

    # ------------------------------------------------------------------
    # Stop / close
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        peer, self._peer = self._peer, None
        if peer is None:
            return

        await self._teardown(peer)
        self._collaborator.on_speaking_changed(False)
        self._collaborator.on_listening_changed(False)
        if self._state is not PeerState.IDLE:
            self._transition(PeerState.IDLE)

    async def close(self) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Peer / channel handlers
    # ------------------------------------------------------------------

    def _on_channel_open(self, peer: PeerSession) -> None:
        if self._peer is not peer or peer.data_channel is None:
            return
        peer.data_channel.send(build_session_update(self._instructions, self._tools))
        log_event({"event_type": "SESSION_UPDATE_SENT", **peer.log_context()})

    def _on_message(self, peer: PeerSession, message: str | bytes) -> None:
        if self._peer is not peer:
            return

        try:
            event = parse_event(message)
        except RealtimeProtocolError as exc:
            log_event({
                "event_type": "DATA_CHANNEL_MALFORMED",
                "error": str(exc),
                **peer.log_context(),
            })
            return

        kind = event.known_type
        if kind in _LOGGED_EVENTS:
            log_event({
                "event_type": "REALTIME_EVENT",
                "type": event.type,
                "error": event.payload.get("error") if kind is RealtimeEventType.ERROR else None,
                **peer.log_context(),
            })

        if kind is RealtimeEventType.SPEECH_STARTED:
            self._collaborator.on_speaking_changed(True)
        elif kind is RealtimeEventType.SPEECH_STOPPED:
            self._collaborator.on_speaking_changed(False)

        action = decode_bear_action(event)
        if action is not None:
            log_event({
                "event_type": "BEAR_ACTION_RECEIVED",
                "action": action,
                **peer.log_context(),
            })
            self._collaborator.on_bear_action(action)

    def _on_track(self, peer: PeerSession, track: Any) -> None:
        if self._peer is not peer or track.kind != "audio":
            return
        peer.audio_sink = self._sink
        self._sink.attach(track)
        log_event({"event_type": "REMOTE_TRACK_ATTACHED", **peer.log_context()})

    def _on_connection_state(self, peer: PeerSession) -> None:
        if self._peer is not peer or peer.peer_connection is None:
            return

        connection_state = peer.peer_connection.connectionState
        log_event({
            "event_type": "PEER_CONNECTION_STATE",
            "connection_state": connection_state,
            **peer.log_context(),
        })

        if connection_state == "failed" and self._state is PeerState.CONNECTED:
            task = asyncio.get_running_loop().create_task(self._on_connection_lost(peer))
            peer.tasks.add(task)
            task.add_done_callback(peer.tasks.discard)

    async def _on_connection_lost(self, peer: PeerSession) -> None:
        if self._peer is not peer:
            return
        error = ClassifiedError(ErrorKind.NETWORK, "Peer connection failed")
        self._collaborator.on_alert(user_message(error))
        await self._fail(peer)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _check_current(self, peer: PeerSession) -> None:
        if self._peer is not peer:
            raise NegotiationSuperseded(peer.local_id)

    async def _fail(self, peer: PeerSession) -> None:
        self._transition(PeerState.ERROR)
        self._peer = None
        await self._teardown(peer)
        self._collaborator.on_speaking_changed(False)
        self._collaborator.on_listening_changed(False)
        self._transition(PeerState.IDLE)

    async def _teardown(self, peer: PeerSession) -> None:
        """Release every resource of `peer`. Each step runs even if another fails."""
        tracks, peer.local_tracks = peer.local_tracks, []
        for track in tracks:
            _isolated(peer, "stop_track", track.stop)

        channel, peer.data_channel = peer.data_channel, None
        if channel is not None:
            _isolated(peer, "close_channel", channel.close)

        pc, peer.peer_connection = peer.peer_connection, None
        if pc is not None:
            try:
                await pc.close()
            except Exception as exc:  # pylint: disable=broad-exception-caught
                _log_teardown_error(peer, "close_peer_connection", exc)

        sink, peer.audio_sink = peer.audio_sink, None
        if sink is not None:
            _isolated(peer, "detach_sink", sink.detach)

        current = asyncio.current_task()
        for task in list(peer.tasks):
            if task is not current:
                task.cancel()
        peer.tasks.clear()
        peer.transceiver = None

    def _transition(self, new_state: PeerState) -> None:
        old_state, self._state = self._state, new_state
        if self._peer is not None:
            self._peer.state = new_state
        log_event({
            "event_type": "PEER_STATE",
            "from": old_state.value,
            "to": new_state.value,
            "local_id": self._peer.local_id if self._peer else None,
        })


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

async def wait_for_ice_gathering(pc: Any) -> None:
    """Resolve once pc.iceGatheringState is "complete"."""
    if pc.iceGatheringState == "complete":
        return

    done = asyncio.Event()

    def _check() -> None:
        if pc.iceGatheringState == "complete":
            done.set()

    pc.on("icegatheringstatechange", _check)
    try:
        await done.wait()
    finally:
        pc.remove_listener("icegatheringstatechange", _check)


def _isolated(peer: PeerSession, step: str, fn: Callable[[], Any]) -> None:
    try:
        fn()
    except Exception as exc:  # pylint: disable=broad-exception-caught
        _log_teardown_error(peer, step, exc)


def _log_teardown_error(peer: PeerSession, step: str, exc: Exception) -> None:
    log_event({
        "event_type": "TEARDOWN_STEP_FAILED",
        "step": step,
        "exception": type(exc).__name__,
        "error": str(exc),
        **peer.log_context(),
    })

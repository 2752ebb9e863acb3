"""
Record-and-upload controller (client side).

Responsibilities:
- Own the single VoiceSession and its microphone handle
- Drive IDLE -> REQUESTING_PERMISSION -> RECORDING -> UPLOADING
  -> AWAITING_RESULT -> PLAYING -> IDLE
- Upload the captured WAV, play the reply, infer a bear action
- Release the device on every exit path

NOT responsible for:
- Transcription, generation or synthesis (server side)
- Retrying (the server retries each stage)
- Rendering (the collaborator does that)
"""

from __future__ import annotations

from observability.logger import log_event
from orchestrator.enums.error_kind import ErrorKind
from orchestrator.enums.state import RecordingState
from orchestrator.errors import (
    MICROPHONE_DENIED_MESSAGE,
    ClassifiedError,
    classify,
    user_message,
)

from audio.capture import Microphone
from audio.pcm import encode_wav
from audio.playback import PlaybackSink
from session.api_client import VoiceApiClient
from session.bear_actions import infer_bear_action
from session.collaborator import VoiceUICollaborator
from session.controller import VoiceController
from session.voice_session import VoiceSession

from spec import (
    CAPTURE_CHANNELS,
    CAPTURE_SAMPLE_RATE_HZ,
    RECORDING_UPLOAD_MIME_TYPE,
)


class RecordingSessionController(VoiceController):
    """One recording at a time; stale responses are discarded by session identity."""

    def __init__(
        self,
        *,
        microphone: Microphone,
        api_client: VoiceApiClient,
        player: PlaybackSink,
        collaborator: VoiceUICollaborator | None = None,
        mime_type: str = RECORDING_UPLOAD_MIME_TYPE,
    ) -> None:
        super().__init__(collaborator)
        self._microphone = microphone
        self._api = api_client
        self._player = player
        self._mime_type = mime_type

        self._state = RecordingState.IDLE
        self._session: VoiceSession | None = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> RecordingState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is RecordingState.RECORDING

    @property
    def session(self) -> VoiceSession | None:
        return self._session

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    async def start(self) -> bool:
        if self._state is not RecordingState.IDLE:
            log_event({
                "event_type": "RECORDING_START_REJECTED",
                "state": self._state.value,
            })
            return False

        session = VoiceSession()
        self._session = session
        self._transition(RecordingState.REQUESTING_PERMISSION)

        try:
            capture = await self._microphone.acquire()
        except PermissionError as exc:
            log_event({
                "event_type": "MICROPHONE_DENIED",
                "session_id": session.session_id,
                "error": str(exc),
            })
            self._collaborator.on_alert(MICROPHONE_DENIED_MESSAGE)
            if self._session is session:
                self._session = None
                self._transition(RecordingState.IDLE)
            raise
        except Exception as exc:  # pylint: disable=broad-exception-caught
            error = classify(exc)
            if self._session is session:
                self._fail(session, error)
            if error is exc:
                raise
            raise error from exc

        if self._session is not session:
            # Closed while the permission request was pending
            capture.stop()
            log_event({
                "event_type": "CAPTURE_DISCARDED_STALE",
                "session_id": session.session_id,
            })
            return False

        session.capture = capture
        try:
            capture.start(session.append_chunk)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            error = classify(exc)
            self._fail(session, error)
            raise error from exc

        self._transition(RecordingState.RECORDING)
        self._collaborator.on_listening_changed(True)
        return True

    # ------------------------------------------------------------------
    # Stop
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        session = self._session
        if session is None or self._state is not RecordingState.RECORDING:
            log_event({
                "event_type": "RECORDING_STOP_IGNORED",
                "state": self._state.value,
            })
            return

        capture = session.capture
        sample_rate = capture.format.sample_rate_hz if capture else CAPTURE_SAMPLE_RATE_HZ
        channels = capture.format.channels if capture else CAPTURE_CHANNELS

        session.release_capture()
        self._collaborator.on_listening_changed(False)
        pcm = session.flush()

        log_event({
            "event_type": "RECORDING_STOPPED",
            "session_id": session.session_id,
            "captured_bytes": len(pcm),
        })

        try:
            if not pcm:
                raise ClassifiedError(
                    ErrorKind.VALIDATION,
                    "No audio was captured",
                    details={"session_id": session.session_id},
                )

            self._transition(RecordingState.UPLOADING)
            payload = self._api.build_pipeline_payload(
                encode_wav(pcm, sample_rate=sample_rate, channels=channels),
                self._mime_type,
            )

            self._transition(RecordingState.AWAITING_RESULT)
            result = await self._api.send_pipeline(payload)

        except Exception as exc:  # pylint: disable=broad-exception-caught
            error = classify(exc)
            if self._session is not session:
                self._log_stale(session, "failure")
                return
            self._fail(session, error)
            if error is exc:
                raise
            raise error from exc

        if self._session is not session:
            self._log_stale(session, "result")
            return

        self._play(session, result.audio)

        action = infer_bear_action(result.text)
        if action is not None:
            log_event({
                "event_type": "BEAR_ACTION_INFERRED",
                "session_id": session.session_id,
                "action": action,
            })
            self._collaborator.on_bear_action(action)

        self._session = None
        self._transition(RecordingState.IDLE)

    # ------------------------------------------------------------------
    # Close
    # ------------------------------------------------------------------

    async def close(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            was_recording = session.capture is not None
            session.release_capture()
            session.flush()
            if was_recording:
                self._collaborator.on_listening_changed(False)

        self._player.stop()

        if self._state is not RecordingState.IDLE:
            self._transition(RecordingState.IDLE)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _play(self, session: VoiceSession, audio: bytes) -> None:
        self._transition(RecordingState.PLAYING)
        self._collaborator.on_speaking_changed(True)
        try:
            self._player.play(
                audio,
                on_finished=lambda: self._collaborator.on_speaking_changed(False),
            )
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self._collaborator.on_speaking_changed(False)
            error = ClassifiedError(
                ErrorKind.UNKNOWN,
                f"Reply audio could not be played: {exc}",
                details={"exception": type(exc).__name__},
            )
            self._fail(session, error)
            raise error from exc

    def _fail(self, session: VoiceSession, error: ClassifiedError) -> None:
        session.release_capture()
        log_event({
            "event_type": "RECORDING_FAILED",
            "kind": error.kind.value,
            "message": error.message,
            **session.log_context(),
        })
        self._collaborator.on_alert(user_message(error))
        self._transition(RecordingState.ERROR)
        self._session = None
        self._transition(RecordingState.IDLE)

    def _transition(self, new_state: RecordingState) -> None:
        old_state, self._state = self._state, new_state
        if self._session is not None:
            self._session.state = new_state
        log_event({
            "event_type": "RECORDING_STATE",
            "from": old_state.value,
            "to": new_state.value,
            "session_id": self._session.session_id if self._session else None,
        })

    def _log_stale(self, session: VoiceSession, what: str) -> None:
        log_event({
            "event_type": "RESPONSE_DISCARDED_STALE",
            "session_id": session.session_id,
            "discarded": what,
        })

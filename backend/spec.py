"""
SPEC-AS-CONSTANTS
-----------------
Single source of truth for behavioral constants of the voice core.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final, Tuple

# =============================================================================
# Microphone capture (record-and-upload path)
# =============================================================================

CAPTURE_SAMPLE_RATE_HZ: Final[int] = 16_000
CAPTURE_CHANNELS: Final[int] = 1

# Chunks are delivered to the session buffer at this fixed time slice
RECORDING_TIMESLICE_MS: Final[int] = 250

RECORDING_UPLOAD_MIME_TYPE: Final[str] = "audio/wav"

# MIME type -> file extension handed to the transcription provider
AUDIO_MIME_EXTENSIONS: Final[dict[str, str]] = {
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/wave": "wav",
    "audio/webm": "webm",
    "audio/ogg": "ogg",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/mp4": "m4a",
    "audio/m4a": "m4a",
    "audio/flac": "flac",
}

# =============================================================================
# Pipeline retry policy
# =============================================================================

PIPELINE_MAX_RETRIES_DEFAULT: Final[int] = 3
PIPELINE_INITIAL_DELAY_MS_DEFAULT: Final[int] = 500

# Jitter factor range applied on top of exponential growth: [low, low + span)
RETRY_JITTER_LOW: Final[float] = 0.5
RETRY_JITTER_SPAN: Final[float] = 0.5

# =============================================================================
# Pipeline stages
# =============================================================================

TRANSCRIBE_MODEL_DEFAULT: Final[str] = "whisper-1"
LLM_MODEL_DEFAULT: Final[str] = "gpt-4o-mini"
TTS_MODEL_DEFAULT: Final[str] = "tts-1"
TTS_VOICE_DEFAULT: Final[str] = "alloy"
TTS_RESPONSE_FORMAT: Final[str] = "wav"
TTS_RESPONSE_MIME_TYPE: Final[str] = "audio/wav"

LLM_MAX_TOKENS: Final[int] = 100
LLM_TEMPERATURE: Final[float] = 0.8

FALLBACK_REPLY: Final[str] = "I didn't quite catch that. Could you say it again?"

# =============================================================================
# Provider credential
# =============================================================================

OPENAI_API_KEY_PREFIX: Final[str] = "sk-"
OPENAI_API_KEY_MIN_LEN: Final[int] = 20

OPENAI_BASE_URL_DEFAULT: Final[str] = "https://api.openai.com/v1"

# =============================================================================
# WebRTC negotiation
# =============================================================================

STUN_SERVERS: Final[Tuple[str, ...]] = (
    "stun:stun.l.google.com:19302",
    "stun:stun1.l.google.com:19302",
    "stun:stun2.l.google.com:19302",
    "stun:stun3.l.google.com:19302",
    "stun:stun4.l.google.com:19302",
)

DATA_CHANNEL_LABEL: Final[str] = "events"

REALTIME_MODEL_DEFAULT: Final[str] = "gpt-4o-realtime-preview"
REALTIME_SIGNALING_TIMEOUT_S: Final[float] = 20.0
REALTIME_SESSION_ID_PREFIX: Final[str] = "rtc_"

BEAR_ACTION_TOOL_NAME: Final[str] = "bear_action"

# =============================================================================
# Bear actions
# =============================================================================

BEAR_ACTIONS: Final[Tuple[str, ...]] = ("feed", "play", "bathroom")

# Keyword heuristic over free-text replies: (action, keywords), first match wins
BEAR_ACTION_KEYWORDS: Final[Tuple[Tuple[str, Tuple[str, ...]], ...]] = (
    ("play", ("play",)),
    ("feed", ("eat", "food")),
    ("bathroom", ("bathroom", "potty")),
)

# =============================================================================
# Client HTTP
# =============================================================================

VOICE_SERVER_URL_DEFAULT: Final[str] = "http://localhost:8000"
CLIENT_HTTP_TIMEOUT_S: Final[float] = 60.0

VOICE_PIPELINE_PATH: Final[str] = "/voice-pipeline"
REALTIME_SESSION_PATH: Final[str] = "/realtime-session"

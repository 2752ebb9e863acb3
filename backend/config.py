"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object
- Validate the provider credential before any network call

Non-responsibilities:
- No orchestration logic
- No protocol constants
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum

from orchestrator.enums.error_kind import ErrorKind
from orchestrator.errors import ClassifiedError

from spec import (
    LLM_MODEL_DEFAULT,
    OPENAI_API_KEY_MIN_LEN,
    OPENAI_API_KEY_PREFIX,
    OPENAI_BASE_URL_DEFAULT,
    PIPELINE_INITIAL_DELAY_MS_DEFAULT,
    PIPELINE_MAX_RETRIES_DEFAULT,
    REALTIME_MODEL_DEFAULT,
    TRANSCRIBE_MODEL_DEFAULT,
    TTS_MODEL_DEFAULT,
    TTS_VOICE_DEFAULT,
    VOICE_SERVER_URL_DEFAULT,
)


class Transport(str, Enum):
    """Client-side voice transport strategy."""

    RECORDING = "recording"
    WEBRTC = "webrtc"


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to app factory, pipeline and client controllers.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str = "dev"
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Provider
    # ------------------------------------------------------------------

    openai_api_key: str | None = None
    openai_base_url: str = OPENAI_BASE_URL_DEFAULT

    # ------------------------------------------------------------------
    # Pipeline stages
    # ------------------------------------------------------------------

    transcribe_model: str = TRANSCRIBE_MODEL_DEFAULT
    llm_model: str = LLM_MODEL_DEFAULT
    tts_model: str = TTS_MODEL_DEFAULT
    tts_voice: str = TTS_VOICE_DEFAULT
    realtime_model: str = REALTIME_MODEL_DEFAULT

    pipeline_max_retries: int = PIPELINE_MAX_RETRIES_DEFAULT
    pipeline_initial_delay_ms: int = PIPELINE_INITIAL_DELAY_MS_DEFAULT

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool = True

    # ------------------------------------------------------------------
    # Client
    # ------------------------------------------------------------------

    voice_transport: Transport = Transport.RECORDING
    voice_server_url: str = VOICE_SERVER_URL_DEFAULT

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        The credential is NOT validated here; see require_openai_key().

        Raises:
            ValueError if a numeric or enum variable is malformed.
        """
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),

            openai_api_key=os.environ.get("OPENAI_API_KEY"),
            openai_base_url=os.environ.get("OPENAI_BASE_URL", OPENAI_BASE_URL_DEFAULT),

            transcribe_model=os.environ.get("TRANSCRIBE_MODEL", TRANSCRIBE_MODEL_DEFAULT),
            llm_model=os.environ.get("LLM_MODEL", LLM_MODEL_DEFAULT),
            tts_model=os.environ.get("TTS_MODEL", TTS_MODEL_DEFAULT),
            tts_voice=os.environ.get("TTS_VOICE", TTS_VOICE_DEFAULT),
            realtime_model=os.environ.get("REALTIME_MODEL", REALTIME_MODEL_DEFAULT),

            pipeline_max_retries=int(
                os.environ.get("PIPELINE_MAX_RETRIES", PIPELINE_MAX_RETRIES_DEFAULT)
            ),
            pipeline_initial_delay_ms=int(
                os.environ.get("PIPELINE_INITIAL_DELAY_MS", PIPELINE_INITIAL_DELAY_MS_DEFAULT)
            ),

            enable_json_logs=os.environ.get("ENABLE_JSON_LOGS", "1") == "1",

            voice_transport=Transport(os.environ.get("VOICE_TRANSPORT", "recording").lower()),
            voice_server_url=os.environ.get("VOICE_SERVER_URL", VOICE_SERVER_URL_DEFAULT),
        )

    # ------------------------------------------------------------------
    # Credential validation
    # ------------------------------------------------------------------

    def require_openai_key(self) -> str:
        """
        Return the provider credential or raise a CONFIG ClassifiedError.

        Never touches the network.
        """
        return validate_openai_key(self.openai_api_key)


def validate_openai_key(api_key: str | None) -> str:
    """
    Check that the credential is present and well-formed.

    Raises:
        ClassifiedError(CONFIG) if absent or malformed.
    """
    if not api_key:
        raise ClassifiedError(
            ErrorKind.CONFIG,
            "OPENAI_API_KEY is not configured in environment variables",
        )

    if (
        not api_key.startswith(OPENAI_API_KEY_PREFIX)
        or len(api_key) < OPENAI_API_KEY_MIN_LEN
        or any(ch.isspace() for ch in api_key)
    ):
        raise ClassifiedError(
            ErrorKind.CONFIG,
            "OPENAI_API_KEY is malformed",
            details={"prefix": api_key[:3], "length": len(api_key)},
        )

    return api_key

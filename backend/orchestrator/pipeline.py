"""
AI pipeline orchestrator (server side).

Responsibilities:
- Validate the provider credential before any stage runs
- Run transcribe -> generate -> synthesize in sequence
- Wrap each stage individually with the retry policy
- Fail with the classified error of the first stage that gives up

Non-responsibilities:
- No HTTP parsing or base64 (routes own the wire format)
- No vendor calls (adapters own those)
- No cross-request state
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from adapters.asr.base import Transcriber
from adapters.llm.base import ReplyGenerator
from adapters.llm.prompts import BEAR_PERSONA_PROMPT
from adapters.tts.base import SpeechSynthesizer
from config import validate_openai_key
from observability.logger import log_event
from observability.metrics import timed
from orchestrator.enums.error_kind import ErrorKind
from orchestrator.enums.service import Stage
from orchestrator.errors import ClassifiedError
from orchestrator.retry import RandFn, RetryObserver, SleepFn, with_retry

from spec import (
    FALLBACK_REPLY,
    PIPELINE_INITIAL_DELAY_MS_DEFAULT,
    PIPELINE_MAX_RETRIES_DEFAULT,
)


T = TypeVar("T")


# =============================================================================
# Value objects
# =============================================================================

@dataclass(frozen=True)
class PipelineRequest:
    """Raw audio plus its MIME type. Single-use."""
    audio: bytes
    mime_type: str


@dataclass(frozen=True)
class PipelineResult:
    """
    Synthesized reply audio plus the generated text. Single-use.

    transcript and audio_mime_type are diagnostic extras; the wire
    response carries only audio and text.
    """
    audio: bytes
    text: str
    transcript: str = ""
    audio_mime_type: str = ""


# =============================================================================
# Orchestrator
# =============================================================================

class VoicePipeline:
    """
    Transcribe -> generate -> synthesize against an external provider.

    All collaborators are injected; the orchestrator holds no mutable
    state and may serve concurrent requests.
    """

    def __init__(
        self,
        *,
        api_key: str | None,
        transcriber: Transcriber,
        generator: ReplyGenerator,
        synthesizer: SpeechSynthesizer,
        system_prompt: str = BEAR_PERSONA_PROMPT,
        max_retries: int = PIPELINE_MAX_RETRIES_DEFAULT,
        initial_delay_ms: float = PIPELINE_INITIAL_DELAY_MS_DEFAULT,
        sleep: SleepFn = asyncio.sleep,
        rand: RandFn = random.random,
        on_retry: RetryObserver | None = None,
    ) -> None:
        self._api_key = api_key
        self._transcriber = transcriber
        self._generator = generator
        self._synthesizer = synthesizer
        self._system_prompt = system_prompt
        self._max_retries = max_retries
        self._initial_delay_ms = initial_delay_ms
        self._sleep = sleep
        self._rand = rand
        self._on_retry = on_retry

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self, request: PipelineRequest) -> PipelineResult:
        """
        Produce synthesized reply audio and reply text for `request`.

        Raises:
            ClassifiedError(CONFIG) if the credential is absent/malformed.
            ClassifiedError(VALIDATION) if the audio payload is empty.
            ClassifiedError of the first stage that exhausts retries.
        """
        validate_openai_key(self._api_key)

        transcript = await self.transcribe(request.audio, request.mime_type)
        text = await self.generate(transcript)
        audio = await self.synthesize(text)

        log_event({
            "event_type": "PIPELINE_COMPLETE",
            "transcript_chars": len(transcript),
            "reply_chars": len(text),
            "audio_bytes": len(audio),
        })

        return PipelineResult(
            audio=audio,
            text=text,
            transcript=transcript,
            audio_mime_type=self._synthesizer.mime_type,
        )

    async def reply(self, message: str) -> str:
        """
        Text-only generation with the same persona and retry policy.

        Used by the /chat endpoint.
        """
        validate_openai_key(self._api_key)
        return await self.generate(message)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def transcribe(self, audio: bytes, mime_type: str) -> str:
        """Stage 1. Fails fast, without retry, on an empty payload."""
        if not audio:
            raise ClassifiedError(
                ErrorKind.VALIDATION,
                "Audio payload is empty",
                details={"stage": Stage.TRANSCRIBE.value},
            )

        return await self._run_stage(
            Stage.TRANSCRIBE,
            lambda: self._transcriber.transcribe(audio=audio, mime_type=mime_type),
        )

    async def generate(self, user_text: str) -> str:
        """
        Stage 2. Empty input (silence) or an empty completion yields the
        fallback reply instead of failing.
        """
        cleaned = user_text.strip()
        if not cleaned:
            log_event({
                "event_type": "PIPELINE_EMPTY_TRANSCRIPT",
                "stage": Stage.GENERATE.value,
                "decision": "fallback_reply",
            })
            return FALLBACK_REPLY

        reply = await self._run_stage(
            Stage.GENERATE,
            lambda: self._generator.generate(
                system_prompt=self._system_prompt,
                user_text=cleaned,
            ),
        )
        return reply or FALLBACK_REPLY

    async def synthesize(self, text: str) -> bytes:
        """Stage 3."""
        return await self._run_stage(
            Stage.SYNTHESIZE,
            lambda: self._synthesizer.synthesize(text=text),
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _run_stage(
        self,
        stage: Stage,
        operation: Callable[[], Awaitable[T]],
    ) -> T:
        with timed("pipeline_stage", stage=stage.value):
            return await with_retry(
                operation,
                max_retries=self._max_retries,
                initial_delay_ms=self._initial_delay_ms,
                stage=stage,
                sleep=self._sleep,
                rand=self._rand,
                on_retry=self._on_retry,
            )

"""
OpenAI speech synthesis adapter.

Role in the system:
- Receives the full reply text.
- Performs one `audio.speech` call.
- Returns the encoded audio (WAV) for the client to decode and play.

Architectural constraints:
- No retries, chunking, or playback.
- Client is injected; never constructed here.
"""
from __future__ import annotations

from typing import Any

from adapters.tts.base import SpeechSynthesizer

from spec import (
    TTS_MODEL_DEFAULT,
    TTS_RESPONSE_FORMAT,
    TTS_RESPONSE_MIME_TYPE,
    TTS_VOICE_DEFAULT,
)


class OpenAISpeechSynthesizer(SpeechSynthesizer):
    """Text-to-speech via the OpenAI API."""

    def __init__(
        self,
        *,
        client: Any,  # Type: openai.AsyncOpenAI
        model: str = TTS_MODEL_DEFAULT,
        voice: str = TTS_VOICE_DEFAULT,
    ) -> None:
        self._client = client
        self._model = model
        self._voice = voice

    @property
    def mime_type(self) -> str:
        return TTS_RESPONSE_MIME_TYPE

    async def synthesize(self, *, text: str) -> bytes:
        response = await self._client.audio.speech.create(
            model=self._model,
            voice=self._voice,
            input=text,
            response_format=TTS_RESPONSE_FORMAT,
        )
        audio = response.content
        if not audio:
            raise RuntimeError("speech synthesis returned no audio")
        return audio

"""
OpenAI transcription adapter.

Role in the system:
- Receives one complete audio payload (already validated non-empty).
- Performs exactly one `audio.transcriptions` call.
- Returns recognized text.

Architectural constraints:
- No retries or classification (pipeline-owned).
- Client is injected; never constructed here.
"""
from __future__ import annotations

from typing import Any

from adapters.asr.base import Transcriber

from spec import AUDIO_MIME_EXTENSIONS, TRANSCRIBE_MODEL_DEFAULT


class OpenAITranscriber(Transcriber):
    """Whisper transcription via the OpenAI API."""

    def __init__(
        self,
        *,
        client: Any,  # Type: openai.AsyncOpenAI
        model: str = TRANSCRIBE_MODEL_DEFAULT,
    ) -> None:
        self._client = client
        self._model = model

    async def transcribe(self, *, audio: bytes, mime_type: str) -> str:
        filename = f"speech.{self._extension(mime_type)}"

        result = await self._client.audio.transcriptions.create(
            model=self._model,
            file=(filename, audio, mime_type),
        )

        return (getattr(result, "text", "") or "").strip()

    @staticmethod
    def _extension(mime_type: str) -> str:
        """
        Map a MIME type (parameters ignored) to the file extension the
        provider uses to sniff the container.
        """
        base = mime_type.split(";", 1)[0].strip().lower()
        return AUDIO_MIME_EXTENSIONS.get(base, "wav")

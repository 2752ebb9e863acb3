"""
Speech synthesis adapter contract.

Purpose:
- Define the interface for one-shot text-to-speech.
- Keep retries and classification OUT of the adapter.

Rules:
- This file contains NO logic.
- No retries.
- No playback; the adapter returns encoded audio bytes only.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class SpeechSynthesizer(ABC):
    """
    Abstract interface for a non-streaming TTS adapter.

    text -> vendor -> encoded audio (container format given by mime_type).
    """

    @property
    @abstractmethod
    def mime_type(self) -> str:
        """MIME type of the bytes returned by synthesize()."""
        raise NotImplementedError

    @abstractmethod
    async def synthesize(self, *, text: str) -> bytes:
        """
        Synthesize `text` into a complete audio payload.

        Contract:
        - Returns non-empty audio bytes on success.
        - Raises the vendor's raw exception on failure.
        - Must NOT retry internally.
        """
        raise NotImplementedError

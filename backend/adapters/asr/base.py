"""
Transcription adapter contract.

Purpose:
- Define the interface for one-shot speech-to-text.
- Keep retries, classification, and timing OUT of the adapter.

Rules:
- This file contains NO logic.
- No retries.
- No knowledge of generation, synthesis, or HTTP endpoints.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class Transcriber(ABC):
    """
    Abstract base class for transcription adapters.

    The adapter is a *dumb pipe*: audio bytes -> vendor -> text.
    """

    @abstractmethod
    async def transcribe(self, *, audio: bytes, mime_type: str) -> str:
        """
        Transcribe a complete audio payload.

        Contract:
        - Returns the recognized text. Empty string is a legitimate
          result (e.g. silence).
        - Raises the vendor's raw exception on failure; the caller
          classifies it.
        - Must NOT retry internally.
        """
        raise NotImplementedError

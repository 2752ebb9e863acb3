"""
Reply generation adapter contract.

Purpose:
- Define the interface for one-shot text generation.
- Keep retries, fallback replies, and classification OUT of the adapter.

Rules:
- This file contains NO logic.
- No retries.
- No knowledge of transcription, synthesis, or HTTP endpoints.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ReplyGenerator(ABC):
    """
    Abstract base class for text generation adapters.

    input text + persona instruction -> vendor -> first candidate text.
    """

    @abstractmethod
    async def generate(self, *, system_prompt: str, user_text: str) -> str:
        """
        Generate a reply to `user_text`.

        Contract:
        - Returns the first candidate's text, or "" if the provider
          returned no usable candidate.
        - Raises the vendor's raw exception on failure.
        - Must NOT retry internally.
        """
        raise NotImplementedError

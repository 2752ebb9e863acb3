"""OpenAI chat-completions reply generator"""
from __future__ import annotations

from typing import Any

from adapters.llm.base import ReplyGenerator

from spec import LLM_MAX_TOKENS, LLM_MODEL_DEFAULT, LLM_TEMPERATURE


class OpenAIReplyGenerator(ReplyGenerator):
    """
    Concrete one-shot reply generator.

    Adapter is responsible ONLY for:
    - Talking to the chat completions API
    - Extracting the first candidate's text
    Adapter does NOT:
    - Retry
    - Substitute fallback replies
    """

    def __init__(
        self,
        *,
        client: Any,  # Type: openai.AsyncOpenAI
        model: str = LLM_MODEL_DEFAULT,
        max_tokens: int = LLM_MAX_TOKENS,
        temperature: float = LLM_TEMPERATURE,
    ) -> None:
        self._client = client
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def generate(self, *, system_prompt: str, user_text: str) -> str:
        completion = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_text},
            ],
            max_tokens=self._max_tokens,
            temperature=self._temperature,
        )
        return self._first_candidate(completion)

    @staticmethod
    def _first_candidate(completion: Any) -> str:
        """
        Extract the first choice's message text (OpenAI format).
        """
        try:
            content = completion.choices[0].message.content
        except (AttributeError, IndexError, TypeError):
            return ""
        return (content or "").strip()

"""OpenAI completion adapter.

Implements the core CompletionPort with the async OpenAI client.
"""

from __future__ import annotations

from openai import AsyncOpenAI


class OpenAICompletionBackend:
    """Completion backend that calls the chat completions endpoint."""

    def __init__(self, client: AsyncOpenAI, model: str) -> None:
        self._client = client
        self._model = model

    async def complete(self, system_prompt: str, user_prompt: str, max_tokens: int) -> str:
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            max_tokens=max_tokens,
        )
        if not response.choices:
            raise RuntimeError("OpenAI response has no choices")
        content = response.choices[0].message.content
        if not content:
            raise RuntimeError("OpenAI response has no content")
        return content.strip()

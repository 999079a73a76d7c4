from __future__ import annotations

from typing import Optional

from openai import AsyncOpenAI


class OpenAIProvider:
    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: float = 30.0,
        temperature: float = 0.3,
        max_output_tokens: int = 2000,
    ):
        key = (api_key or "").strip()
        if not key:
            raise RuntimeError("OPENAI_API_KEY is missing")

        self._model = model
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        # A failed call falls back to rule-based scoring; never retried.
        self._client = AsyncOpenAI(
            api_key=key,
            base_url=(base_url or None),
            timeout=timeout_s,
            max_retries=0,
        )

    async def complete_json(self, *, system_prompt: str, user_prompt: str) -> str:
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self._temperature,
            response_format={"type": "json_object"},
            max_tokens=self._max_output_tokens,
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def aclose(self) -> None:
        await self._client.close()

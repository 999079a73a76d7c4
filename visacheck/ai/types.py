from __future__ import annotations

from typing import Protocol


class AIClient(Protocol):
    """Outbound text-understanding service used as the evaluation oracle."""

    async def complete_json(self, *, system_prompt: str, user_prompt: str) -> str: ...

from __future__ import annotations

import logging

try:
    from openai import OpenAI as _OpenAI
except ImportError:
    _OpenAI = None  # type: ignore[assignment,misc]

from difflens_core.providers.base import BaseReviewer

logger = logging.getLogger(__name__)


class OpenAIReviewer(BaseReviewer):
    PROVIDER = "openai"
    MODEL = "gpt-4o"
    TEMPERATURE = 0.2

    def __init__(self, api_key: str | None, model: str | None = None):
        if _OpenAI is None:
            raise ImportError(
                "The 'openai' package is required for this provider. Install it with: pip install 'difflens[openai]'"
            )
        if model:
            self.MODEL = model
        self.api_key = api_key
        self.client = _OpenAI(api_key=api_key) if api_key else None

    def is_available(self) -> bool:
        if not self.api_key:
            logger.warning("OPENAI_API_KEY is not set")
            return False
        return True

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.MODEL,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        choice = response.choices[0]
        if choice.finish_reason == "length":
            logger.warning("%s stopped at %d tokens; the review may be cut short", self.MODEL, self.MAX_TOKENS)
        return choice.message.content or ""

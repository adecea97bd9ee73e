from __future__ import annotations

import logging

from difflens_core.providers.base import BaseReviewer

logger = logging.getLogger(__name__)


class AnthropicReviewer(BaseReviewer):
    PROVIDER = "anthropic"
    MODEL = "claude-sonnet-4-20250514"
    TEMPERATURE = 0.3

    def __init__(self, api_key: str | None, model: str | None = None):
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. "
                "Install it with: pip install 'difflens[anthropic]'"
            )
        if model:
            self.MODEL = model
        self.api_key = api_key
        self.client = Anthropic(api_key=api_key) if api_key else None

    def is_available(self) -> bool:
        if not self.api_key:
            logger.warning("ANTHROPIC_API_KEY is not set")
            return False
        return True

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        response = self.client.messages.create(
            model=self.MODEL,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        if response.stop_reason == "max_tokens":
            logger.warning("%s stopped at %d tokens; the review may be cut short", self.MODEL, self.MAX_TOKENS)
        return "".join(block.text for block in response.content if block.type == "text").strip()

from __future__ import annotations

import logging

from difflens_core.providers.base import BaseReviewer

logger = logging.getLogger(__name__)


class OllamaReviewer(BaseReviewer):
    """Self-hosted models through an Ollama server, local or remote."""

    PROVIDER = "ollama"
    MODEL = "llama3:8b"
    TEMPERATURE = 0.7

    def __init__(self, endpoint: str = "http://localhost:11434", model: str | None = None):
        try:
            from ollama import Client
        except ImportError:
            raise ImportError(
                "The 'ollama' package is required for this provider. Install it with: pip install 'difflens[ollama]'"
            )
        if model:
            self.MODEL = model
        self.endpoint = endpoint
        self.client = Client(host=endpoint)

    def is_available(self) -> bool:
        try:
            self.client.list()
        except Exception as e:
            logger.warning("Ollama at %s is not reachable: %s", self.endpoint, e)
            return False
        return True

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        response = self.client.chat(
            model=self.MODEL,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            options={"temperature": self.TEMPERATURE, "num_predict": self.MAX_TOKENS},
        )
        return response["message"]["content"]

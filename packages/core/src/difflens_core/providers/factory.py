from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from difflens_core.config import LLMConfig
    from difflens_core.providers.base import BaseReviewer


def get_reviewer(llm_config: LLMConfig) -> BaseReviewer:
    provider = llm_config.provider
    if provider == "anthropic":
        from difflens_core.providers.anthropic import AnthropicReviewer

        return AnthropicReviewer(api_key=llm_config.api_key, model=llm_config.model or None)
    if provider == "openai":
        from difflens_core.providers.openai import OpenAIReviewer

        return OpenAIReviewer(api_key=llm_config.api_key, model=llm_config.model or None)
    if provider == "ollama":
        from difflens_core.providers.ollama import OllamaReviewer

        return OllamaReviewer(endpoint=llm_config.endpoint, model=llm_config.model or None)
    raise ValueError(f"Unknown model provider: {provider!r}. Choose 'anthropic', 'openai' or 'ollama'.")

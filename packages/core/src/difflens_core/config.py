import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from difflens_store.errors import InvalidInputError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict = {
    "store": "sqlite",  # memory | sqlite
    "store_path": ".difflens.db",
    "review_store": "same",  # same | gist | none
    "gist_id": None,
    "blob_store": "local",  # local | s3
    "blob_root": ".difflens/blobs",
    "s3_bucket": None,
    "s3_prefix": "",
    "s3_region": None,
    "s3_endpoint_url": None,
    "max_workers": 4,
    "proximity_window": 2,
    "parallel_passes": False,
    "exclude": [],  # fnmatch patterns or directory names skipped by folder analysis
    "llm": {"provider": "ollama", "model": None, "endpoint": None},
}

OLLAMA_LOCAL_ENDPOINT = "http://localhost:11434"
OLLAMA_DEFAULT_MODEL = "llama3:8b"

_INT_KEYS = ("max_workers", "proximity_window")


def load_config(config_path: str = ".difflens.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .difflens.yml in the current directory
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG, "exclude": list(DEFAULT_CONFIG["exclude"]), "llm": dict(DEFAULT_CONFIG["llm"])}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            try:
                file_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise InvalidInputError(f"Invalid configuration file: {e}", {"path": str(path)}) from e
        if not isinstance(file_config, dict):
            raise InvalidInputError("Configuration file must contain a mapping", {"path": str(path)})
        llm = file_config.pop("llm", None) or {}
        config.update(file_config)
        config["llm"].update(llm)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    for key in _INT_KEYS:
        try:
            config[key] = int(config[key])
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"{key} must be an integer", {"value": str(config[key])}) from e
    if config["max_workers"] < 1:
        raise InvalidInputError("max_workers must be at least 1")

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

    return config


@dataclass(frozen=True)
class LLMConfig:
    provider: str
    model: str
    endpoint: Optional[str] = None
    api_key: Optional[str] = None


def resolve_llm_config(config: dict) -> LLMConfig:
    """
    Resolve the AI reviewer settings once per process.

    For Ollama, LLM_TYPE picks between the local server and a remote
    ("cloud") one; DIFFLENS_ENV=production defaults to cloud. A cloud server
    has no built-in address: it comes from LLM_ENDPOINT or llm.endpoint, and
    the endpoint stays None until one is set. LLM_ENDPOINT and LLM_MODEL
    override the config file.
    """
    llm = config.get("llm") or {}
    provider = (llm.get("provider") or "ollama").lower()

    if provider == "ollama":
        is_production = os.environ.get("DIFFLENS_ENV") == "production"
        llm_type = os.environ.get("LLM_TYPE") or ("cloud" if is_production else "local")
        default_endpoint = None if llm_type == "cloud" else OLLAMA_LOCAL_ENDPOINT
        resolved = LLMConfig(
            provider=provider,
            model=os.environ.get("LLM_MODEL") or llm.get("model") or OLLAMA_DEFAULT_MODEL,
            endpoint=os.environ.get("LLM_ENDPOINT") or llm.get("endpoint") or default_endpoint,
        )
        if resolved.endpoint is None:
            logger.debug("LLM_TYPE=cloud but no Ollama endpoint is set")
        else:
            logger.info("Using %s Ollama model %s at %s", llm_type, resolved.model, resolved.endpoint)
        return resolved

    api_keys = {"anthropic": config.get("anthropic_api_key"), "openai": config.get("openai_api_key")}
    return LLMConfig(
        provider=provider,
        model=os.environ.get("LLM_MODEL") or llm.get("model") or "",
        endpoint=llm.get("endpoint"),
        api_key=api_keys.get(provider),
    )

"""Backend configuration loading.

The backend configuration is read once, at startup, from either:

  LLM_CONFIG_PATH   JSON file holding the stored configuration
                    (same keys as BackendConfig, including "altconfigs")

or, when no file is given, from individual variables:

  LLM_BACKEND       "OpenAI" | "OpenAI-compatible API" | "Local Ollama" | "Local llama.cpp"
  LLM_MODEL         chat model
  LLM_EMBED_MODEL   embedding model
  LLM_ENDPOINT      chat completions endpoint
  LLM_EMBED_ENDPOINT
  LLM_API_KEY
  LLM_BEARER_AUTH
  LLAMA_DIR         llama.cpp directory
  LLAMA_MODEL_PATH  model file for llama.cpp
  LLM_ALTCONFIGS    JSON list of {name, model, endpoint, api_key, bearer_auth}

Anything invalid (unknown backend, missing required field, duplicate
alternate names, unreadable file) is a ConfigError.
"""

import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from llmgen.llm.errors import ConfigError
from llmgen.schemas.config import BackendConfig
from llmgen.utils.logging import log, get_logger

MODULE = "config"
logger = get_logger()

ENV_FIELDS = {
    "backend": "LLM_BACKEND",
    "model": "LLM_MODEL",
    "embed_model": "LLM_EMBED_MODEL",
    "endpoint": "LLM_ENDPOINT",
    "embed_endpoint": "LLM_EMBED_ENDPOINT",
    "api_key": "LLM_API_KEY",
    "bearer_auth": "LLM_BEARER_AUTH",
    "llama_dir": "LLAMA_DIR",
    "model_path": "LLAMA_MODEL_PATH",
}


def parse_backend_config(data: Mapping[str, Any]) -> BackendConfig:
    """Validate stored configuration into a BackendConfig."""
    try:
        config = BackendConfig.model_validate(dict(data))
    except ValidationError as e:
        raise ConfigError(
            "Invalid backend configuration",
            detail={"errors": [err["msg"] for err in e.errors()]},
        ) from e

    log.info(logger, MODULE, "config_loaded", "Backend configuration loaded",
             backend=config.backend.value, model=config.model,
             altconfigs=len(config.altconfigs))
    return config


def _from_env(environ: Mapping[str, str]) -> dict[str, Any]:
    data: dict[str, Any] = {
        field: environ[var] for field, var in ENV_FIELDS.items() if environ.get(var)
    }
    raw_alts = environ.get("LLM_ALTCONFIGS")
    if raw_alts:
        try:
            data["altconfigs"] = json.loads(raw_alts)
        except json.JSONDecodeError as e:
            raise ConfigError("LLM_ALTCONFIGS is not valid JSON", detail={"error": str(e)}) from e
    return data


def _from_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(
            f"Could not read backend configuration from {path}",
            detail={"error": str(e)},
        ) from e
    if not isinstance(data, dict):
        raise ConfigError(f"Backend configuration in {path} must be a JSON object")
    return data


def load_backend_config(environ: Optional[Mapping[str, str]] = None) -> BackendConfig:
    """Load the backend configuration from a JSON file or the environment."""
    environ = os.environ if environ is None else environ

    path = environ.get("LLM_CONFIG_PATH")
    if path:
        log.debug(logger, MODULE, "config_file", "Reading backend configuration file", path=path)
        data = _from_file(Path(path))
    else:
        data = _from_env(environ)

    if not data.get("backend"):
        raise ConfigError("No backend configured (set LLM_BACKEND or LLM_CONFIG_PATH)")
    return parse_backend_config(data)

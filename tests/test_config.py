"""Tests for backend configuration loading and validation."""

import json

import pytest
from pydantic import ValidationError

from llmgen.config import load_backend_config, parse_backend_config
from llmgen.llm import ConfigError
from llmgen.schemas import BackendConfig, BackendKind


def test_openai_requires_api_key():
    with pytest.raises(ValidationError):
        BackendConfig(backend="OpenAI", model="gpt-4o-mini")


def test_llama_cpp_requires_paths():
    with pytest.raises(ValidationError):
        BackendConfig(backend="Local llama.cpp", llama_dir="/opt/llama.cpp")


def test_unknown_backend():
    with pytest.raises(ValidationError):
        BackendConfig(backend="Mainframe")


def test_duplicate_alternate_names():
    with pytest.raises(ValidationError):
        BackendConfig(
            backend="OpenAI-compatible API",
            altconfigs=[{"name": "a"}, {"name": "a", "model": "m"}],
        )


def test_blank_strings_are_unset():
    config = BackendConfig(backend="Local Ollama", model="", endpoint="  ", altconfigs=None)
    assert config.model is None
    assert config.endpoint is None
    assert config.altconfigs == ()


def test_config_is_immutable(openai_config):
    with pytest.raises(ValidationError):
        openai_config.model = "other"


def test_parse_wraps_validation_errors():
    with pytest.raises(ConfigError):
        parse_backend_config({"backend": "OpenAI"})


def test_load_from_environment():
    config = load_backend_config({
        "LLM_BACKEND": "OpenAI-compatible API",
        "LLM_MODEL": "llama3",
        "LLM_ENDPOINT": "http://localhost:8080/v1/chat/completions",
        "LLM_ALTCONFIGS": json.dumps([{"name": "big", "model": "llama3-70b"}]),
    })
    assert config.backend == BackendKind.OPENAI_COMPATIBLE
    assert config.model == "llama3"
    assert config.altconfigs[0].name == "big"


def test_load_from_file(tmp_path):
    path = tmp_path / "llm.json"
    path.write_text(json.dumps({"backend": "Local Ollama", "model": "llama3", "embed_model": "nomic-embed-text"}))
    config = load_backend_config({"LLM_CONFIG_PATH": str(path), "LLM_BACKEND": "OpenAI"})
    assert config.backend == BackendKind.OLLAMA
    assert config.embed_model == "nomic-embed-text"


def test_load_without_backend():
    with pytest.raises(ConfigError):
        load_backend_config({})


def test_load_bad_altconfigs_json():
    with pytest.raises(ConfigError):
        load_backend_config({"LLM_BACKEND": "Local Ollama", "LLM_ALTCONFIGS": "[oops"})


def test_load_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_backend_config({"LLM_CONFIG_PATH": str(tmp_path / "nope.json")})

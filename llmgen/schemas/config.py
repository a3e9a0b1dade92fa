"""Pydantic schemas for backend configuration.

BackendConfig is loaded once from configuration storage and is read-only
for the rest of the process. Per-backend required fields are checked here,
at load time, so an invocation never has to ask "is this config usable?".

EffectiveConfig is what one invocation actually uses, after a named
alternate (if any) has been layered over the base. See llm/resolver.py.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# BACKEND KINDS
# =============================================================================

class BackendKind(str, Enum):
    """The closed set of inference backends.

    Values are the strings stored in configuration.
    """
    OPENAI = "OpenAI"
    OPENAI_COMPATIBLE = "OpenAI-compatible API"
    OLLAMA = "Local Ollama"
    LLAMA_CPP = "Local llama.cpp"


# Fields each backend cannot run without
REQUIRED_FIELDS: dict[BackendKind, tuple[str, ...]] = {
    BackendKind.OPENAI: ("api_key", "model"),
    BackendKind.OPENAI_COMPATIBLE: (),
    BackendKind.OLLAMA: (),
    BackendKind.LLAMA_CPP: ("llama_dir", "model_path"),
}


def _blank_to_none(v):
    """Configuration forms store unset text fields as ""."""
    if isinstance(v, str) and not v.strip():
        return None
    return v


# =============================================================================
# STORED CONFIGURATION
# =============================================================================

class AlternateConfig(BaseModel):
    """A named override bundle. Unset fields fall back to the base config."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="", description="Name offered as a selectable override")
    model: Optional[str] = None
    endpoint: Optional[str] = None
    api_key: Optional[str] = None
    bearer_auth: Optional[str] = None

    @field_validator("model", "endpoint", "api_key", "bearer_auth", mode="before")
    @classmethod
    def blank_is_unset(cls, v):
        return _blank_to_none(v)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return (v or "").strip()


class BackendConfig(BaseModel):
    """Base invocation configuration for the whole application."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    backend: BackendKind = Field(..., description="Inference backend")
    model: Optional[str] = Field(default=None, description="Chat model identifier")
    embed_model: Optional[str] = Field(default=None, description="Embedding model identifier")
    endpoint: Optional[str] = Field(default=None, description="Chat completions endpoint")
    embed_endpoint: Optional[str] = Field(default=None, description="Embedding endpoint")
    api_key: Optional[str] = Field(default=None, description="API key / credential")
    bearer_auth: Optional[str] = Field(default=None, description="Bearer token for the Authorization header")
    llama_dir: Optional[str] = Field(default=None, description="llama.cpp directory (local process only)")
    model_path: Optional[str] = Field(default=None, description="Model file path (local process only)")
    altconfigs: tuple[AlternateConfig, ...] = Field(
        default=(),
        description="Named alternate configurations",
    )

    @field_validator(
        "model", "embed_model", "endpoint", "embed_endpoint",
        "api_key", "bearer_auth", "llama_dir", "model_path",
        mode="before",
    )
    @classmethod
    def blank_is_unset(cls, v):
        return _blank_to_none(v)

    @field_validator("altconfigs", mode="before")
    @classmethod
    def none_is_empty(cls, v):
        return () if v is None else v

    @model_validator(mode="after")
    def check_backend_requirements(self) -> "BackendConfig":
        missing = [f for f in REQUIRED_FIELDS[self.backend] if getattr(self, f) is None]
        if missing:
            raise ValueError(
                f"{self.backend.value} backend requires: {', '.join(missing)}"
            )

        names = [alt.name for alt in self.altconfigs if alt.name]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate alternate configuration names: {', '.join(duplicates)}")
        return self


# =============================================================================
# PER-CALL CONFIGURATION
# =============================================================================

class EffectiveConfig(BaseModel):
    """Connection parameters for one invocation. Never persisted."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    backend: BackendKind
    model: Optional[str] = None
    endpoint: Optional[str] = None
    api_key: Optional[str] = None
    bearer: Optional[str] = None
    # Carried through for the local-process transport
    llama_dir: Optional[str] = None
    model_path: Optional[str] = None
    override_name: Optional[str] = None

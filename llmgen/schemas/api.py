"""Pydantic schemas for API requests/responses."""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from llmgen.schemas.actions import GenerateActionConfig, GenerateJSONActionConfig


class GenerateRequest(GenerateActionConfig):
    """Workflow-mode text generation: action config plus the context."""
    context: dict[str, Any] = Field(default_factory=dict, description="Workflow context variables")
    user: Optional[dict[str, Any]] = Field(None, description="Acting user, exposed to templates as 'user'")


class GenerateJSONRequest(GenerateJSONActionConfig):
    """Workflow-mode structured generation: action config plus the context."""
    context: dict[str, Any] = Field(default_factory=dict, description="Workflow context variables")
    user: Optional[dict[str, Any]] = Field(None, description="Acting user, exposed to templates as 'user'")


class EmbeddingRequest(BaseModel):
    prompt: str = Field(..., description="Text to embed")
    model: Optional[str] = Field(None, description="Override the configured embedding model")

    @field_validator("prompt")
    @classmethod
    def prompt_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Prompt must not be empty")
        return v


class EmbeddingResponse(BaseModel):
    vector: list[float]


class OverridesResponse(BaseModel):
    """Alternate configuration names a caller may select."""
    options: list[str]


class ErrorResponse(BaseModel):
    error: str
    detail: str

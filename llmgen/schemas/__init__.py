"""Pydantic schemas for structured data validation.

This package contains:
- config.py: Backend configuration (stored) and effective (per-call) config
- generation.py: Messages, structured-output fields, request/response shapes
- actions.py: Caller declarations and stored host action configuration
- api.py: Request/response schemas for the REST API
"""

from llmgen.schemas.config import (
    BackendKind,
    AlternateConfig,
    BackendConfig,
    EffectiveConfig,
)

from llmgen.schemas.generation import (
    Message,
    ConversationHistory,
    FieldType,
    FieldSpec,
    Multiplicity,
    ForcedSchema,
    GenerationRequest,
    FunctionCall,
    ToolCall,
    BackendResponse,
    GenerationResult,
)

from llmgen.schemas.actions import (
    FORMULA_SOURCE,
    Mode,
    PromptSpec,
    HistorySpec,
    SchemaSpec,
    GenerateActionConfig,
    GenerateJSONActionConfig,
)

from llmgen.schemas.api import (
    GenerateRequest,
    GenerateJSONRequest,
    EmbeddingRequest,
    EmbeddingResponse,
    OverridesResponse,
    ErrorResponse,
)

__all__ = [
    # Config
    "BackendKind",
    "AlternateConfig",
    "BackendConfig",
    "EffectiveConfig",
    # Generation
    "Message",
    "ConversationHistory",
    "FieldType",
    "FieldSpec",
    "Multiplicity",
    "ForcedSchema",
    "GenerationRequest",
    "FunctionCall",
    "ToolCall",
    "BackendResponse",
    "GenerationResult",
    # Actions
    "FORMULA_SOURCE",
    "Mode",
    "PromptSpec",
    "HistorySpec",
    "SchemaSpec",
    "GenerateActionConfig",
    "GenerateJSONActionConfig",
    # API
    "GenerateRequest",
    "GenerateJSONRequest",
    "EmbeddingRequest",
    "EmbeddingResponse",
    "OverridesResponse",
    "ErrorResponse",
]

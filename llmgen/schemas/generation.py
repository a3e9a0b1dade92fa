"""Pydantic schemas for a single generation call.

Request side:  Message, FieldSpec, ForcedSchema, GenerationRequest
Response side: BackendResponse (what the transport hands back) and
               GenerationResult (what the extractor made of it)

Messages are frozen: history is passed by copy in and by copy out, and
nothing in this package edits a message after it is created.
"""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from llmgen.schemas.config import EffectiveConfig


# =============================================================================
# CONVERSATION
# =============================================================================

Role = Literal["user", "assistant"]


class Message(BaseModel):
    """One role-tagged entry of a conversation.

    Content is text for free-form turns. For structured turns the assistant
    content is the structured answer itself (an object or a list).
    """

    model_config = ConfigDict(frozen=True)

    role: Role
    content: Any


ConversationHistory = list[Message]


# =============================================================================
# STRUCTURED OUTPUT DECLARATION
# =============================================================================

class FieldType(str, Enum):
    """Primitive JSON schema types a structured field can take."""
    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"


class Multiplicity(str, Enum):
    SINGLE = "single"
    ARRAY = "array"


class FieldSpec(BaseModel):
    """One property of the structured output object."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Property name, unique within a call")
    description: Optional[str] = Field(default=None, description="What the model should put here")
    type: str = Field(..., description="Primitive JSON schema type, checked when the schema is built")

    @field_validator("description", mode="before")
    @classmethod
    def blank_description(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("type", mode="before")
    @classmethod
    def type_value(cls, v):
        return v.value if isinstance(v, FieldType) else v


class ForcedSchema(BaseModel):
    """A tool definition plus the directive that forces the model to call it."""

    model_config = ConfigDict(frozen=True)

    tool: dict[str, Any]
    tool_choice: dict[str, Any]

    @property
    def function_name(self) -> str:
        return self.tool["function"]["name"]

    @property
    def parameters(self) -> dict[str, Any]:
        return self.tool["function"]["parameters"]


class GenerationRequest(BaseModel):
    """Everything a transport needs for one exchange. Built fresh per call."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    history: tuple[Message, ...] = ()
    config: EffectiveConfig
    forced_schema: Optional[ForcedSchema] = None
    multiplicity: Multiplicity = Multiplicity.SINGLE


# =============================================================================
# BACKEND RESPONSE
# =============================================================================

class FunctionCall(BaseModel):
    name: str
    arguments: str = Field(default="", description="JSON-encoded argument object, as emitted")


class ToolCall(BaseModel):
    function: FunctionCall


class BackendResponse(BaseModel):
    """Generic completion response: text content and/or tool calls."""

    content: Optional[str] = None
    tool_calls: list[ToolCall] = Field(default_factory=list)


class GenerationResult(BaseModel):
    """Interpreted backend result: text or a structured value."""

    text: Optional[str] = None
    structured: Optional[Any] = None

    @property
    def answer(self) -> Any:
        return self.structured if self.text is None else self.text

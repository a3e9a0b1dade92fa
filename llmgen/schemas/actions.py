"""Pydantic schemas for what a caller declares about one invocation.

Two layers live here:

  PromptSpec / HistorySpec / SchemaSpec
      The orchestrator's inputs: where the prompt comes from, where the
      history lives, and what structured shape to produce.

  GenerateActionConfig / GenerateJSONActionConfig
      The stored configuration of the two host actions (llm_generate and
      llm_generate_json). Keys match what the host persists, so a stored
      action config validates straight into these models.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from llmgen.schemas.generation import FieldSpec, Multiplicity

Mode = Literal["workflow", "row"]

# Special prompt_field value: evaluate prompt_formula instead of reading a field
FORMULA_SOURCE = "Formula"


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


# =============================================================================
# ORCHESTRATOR INPUTS
# =============================================================================

class PromptSpec(BaseModel):
    """Where the prompt text comes from."""

    model_config = ConfigDict(frozen=True)

    prompt_template: Optional[str] = Field(
        default=None,
        description="Template interpolated against the context (workflow) or row",
    )
    prompt_field: Optional[str] = Field(
        default=None,
        description=f"Row field holding the prompt, or '{FORMULA_SOURCE}'",
    )
    prompt_formula: Optional[str] = Field(
        default=None,
        description=f"Formula evaluated when prompt_field is '{FORMULA_SOURCE}'",
    )

    @field_validator("prompt_template", "prompt_field", "prompt_formula", mode="before")
    @classmethod
    def blank_is_unset(cls, v):
        return _blank_to_none(v)


class HistorySpec(BaseModel):
    """Where the conversation history is stored. No field → single-turn call."""

    model_config = ConfigDict(frozen=True)

    field: Optional[str] = None

    @field_validator("field", mode="before")
    @classmethod
    def blank_is_unset(cls, v):
        return _blank_to_none(v)

    @property
    def enabled(self) -> bool:
        return self.field is not None


class SchemaSpec(BaseModel):
    """Declared structured output."""

    model_config = ConfigDict(frozen=True)

    fields: tuple[FieldSpec, ...]
    multiplicity: Multiplicity = Multiplicity.SINGLE
    output_name: str
    description: Optional[str] = None


# =============================================================================
# HOST ACTION CONFIGURATION
# =============================================================================

class GenerateActionConfig(BaseModel):
    """Stored configuration of the llm_generate action."""

    prompt_template: Optional[str] = None
    prompt_field: Optional[str] = None
    prompt_formula: Optional[str] = None
    answer_field: str = Field(..., min_length=1, description="Field/variable receiving the answer")
    chat_history_field: Optional[str] = None
    override_config: Optional[str] = None

    @field_validator(
        "prompt_template", "prompt_field", "prompt_formula",
        "chat_history_field", "override_config",
        mode="before",
    )
    @classmethod
    def blank_is_unset(cls, v):
        return _blank_to_none(v)

    def prompt_spec(self, mode: Mode = "workflow") -> PromptSpec:
        """Row mode reads the prompt from a field or formula, never the template."""
        return PromptSpec(
            prompt_template=self.prompt_template if mode == "workflow" else None,
            prompt_field=self.prompt_field,
            prompt_formula=self.prompt_formula,
        )

    def history_spec(self) -> HistorySpec:
        return HistorySpec(field=self.chat_history_field)


class GenerateJSONActionConfig(GenerateActionConfig):
    """Stored configuration of the llm_generate_json action.

    The answer field doubles as the forced function's name and the single
    top-level key of its arguments.
    """

    fields: list[FieldSpec] = Field(default_factory=list)
    multiple: bool = Field(
        default=False,
        description="True to generate an array of objects, False for a single object",
    )
    gen_description: Optional[str] = Field(
        default=None,
        description="Short description of what to generate",
    )

    @field_validator("gen_description", mode="before")
    @classmethod
    def blank_description(cls, v):
        return _blank_to_none(v)

    @field_validator("fields", mode="before")
    @classmethod
    def none_is_empty(cls, v):
        return [] if v is None else v

    def prompt_spec(self, mode: Mode = "workflow") -> PromptSpec:
        """The template is interpolated against the row in row mode too."""
        return PromptSpec(
            prompt_template=self.prompt_template,
            prompt_field=self.prompt_field,
            prompt_formula=self.prompt_formula,
        )

    def schema_spec(self) -> SchemaSpec:
        return SchemaSpec(
            fields=tuple(self.fields),
            multiplicity=Multiplicity.ARRAY if self.multiple else Multiplicity.SINGLE,
            output_name=self.answer_field,
            description=self.gen_description,
        )

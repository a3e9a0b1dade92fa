"""Forced-function schema synthesis for structured generation.

The caller declares a flat list of typed fields. We wrap them in an
OpenAI-style function definition whose single argument is named after the
output field, and force the model to call it:

  fields = [title: string, score: integer], output_name = "result"

  single →  {"result": {"title": ..., "score": ...}}
  array  →  {"result": [{"title": ..., "score": ...}, ...]}

Forcing the call (tool_choice names the function) is what turns a
free-text model into one that answers with parseable arguments.
"""

from typing import Any, Optional, Sequence

from llmgen.llm.errors import SchemaError
from llmgen.schemas.generation import FieldSpec, FieldType, ForcedSchema, Multiplicity

SUPPORTED_TYPES = frozenset(t.value for t in FieldType)


def _field_schema(field: FieldSpec) -> dict[str, Any]:
    prop: dict[str, Any] = {"type": field.type}
    if field.description:
        prop["description"] = field.description
    return prop


def _validate(fields: Sequence[FieldSpec], output_name: str) -> None:
    if not output_name or not output_name.strip():
        raise SchemaError("Output name must not be empty")
    if not fields:
        raise SchemaError("At least one field is required", detail={"output_name": output_name})

    seen: set[str] = set()
    for field in fields:
        if not field.name or not field.name.strip():
            raise SchemaError("Field names must not be empty", detail={"output_name": output_name})
        if field.type not in SUPPORTED_TYPES:
            raise SchemaError(
                f"Unsupported type '{field.type}' for field '{field.name}'",
                detail={"field": field.name, "type": field.type},
            )
        if field.name in seen:
            raise SchemaError(f"Duplicate field name '{field.name}'", detail={"field": field.name})
        seen.add(field.name)


def build(
    fields: Sequence[FieldSpec],
    multiplicity: Multiplicity,
    output_name: str,
    description: Optional[str] = None,
) -> ForcedSchema:
    """Build the forced tool definition for a structured call.

    Args:
        fields: Declared fields, in order. Order is kept in the schema.
        multiplicity: SINGLE for one object, ARRAY for a list of objects.
        output_name: Function name and the single top-level argument key.
        description: Optional function description shown to the model.

    Raises:
        SchemaError: empty field list, empty or duplicate names, an unsupported
            field type, or an empty output name.
    """
    _validate(fields, output_name)

    item = {
        "type": "object",
        "properties": {f.name: _field_schema(f) for f in fields},
        "required": [f.name for f in fields],
    }
    value = {"type": "array", "items": item} if multiplicity == Multiplicity.ARRAY else item

    function: dict[str, Any] = {
        "name": output_name,
        "parameters": {
            "type": "object",
            "properties": {output_name: value},
            "required": [output_name],
        },
    }
    if description:
        function["description"] = description

    return ForcedSchema(
        tool={"type": "function", "function": function},
        tool_choice={"type": "function", "function": {"name": output_name}},
    )

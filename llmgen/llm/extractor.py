"""Backend response interpretation.

Free-form calls want the text content. Structured calls forced the model
to call one function, so we want that call's arguments:

  tool_calls = [{"function": {"name": "result",
                              "arguments": "{\"result\": {\"title\": \"Hi\"}}"}}]
  extract_structured(raw, "result")  →  {"title": "Hi"}

Values under the output key are returned as-is. Coercing individual field
values to their declared types is the storage layer's job.
"""

import json
from typing import Any

from llmgen.llm.errors import (
    BackendResponseError,
    MalformedArgumentsError,
    ToolCallAmbiguousError,
    ToolCallMissingError,
)
from llmgen.schemas.generation import BackendResponse
from llmgen.utils.logging import log, get_logger

MODULE = "extractor"
logger = get_logger()

# How much of a bad payload to keep on the exception/log line
RAW_PREVIEW_CHARS = 500


def extract_text(raw: BackendResponse) -> str:
    """Return the textual content of a free-form response.

    Raises:
        BackendResponseError: the response has no (or only blank) content.
    """
    if raw.content is None or not raw.content.strip():
        raise BackendResponseError(
            "Backend returned no text content",
            detail={"tool_calls": len(raw.tool_calls)},
        )
    return raw.content


def extract_structured(raw: BackendResponse, output_name: str, *, strict: bool = False) -> Any:
    """Return the value the model passed under `output_name`.

    Args:
        raw: The backend response.
        output_name: The forced function's name and argument key.
        strict: Raise on multiple tool calls instead of taking the first
            matching one.

    Raises:
        ToolCallMissingError: no tool call, or none for `output_name`.
        ToolCallAmbiguousError: more than one tool call and strict=True.
        MalformedArgumentsError: arguments aren't a JSON object whose only
            key is `output_name`.
    """
    calls = raw.tool_calls
    if not calls:
        raise ToolCallMissingError(
            f"Backend returned no tool call for '{output_name}'",
            detail={"output_name": output_name, "has_content": raw.content is not None},
            raw_output=(raw.content or "")[:RAW_PREVIEW_CHARS],
        )

    if len(calls) > 1:
        names = [c.function.name for c in calls]
        if strict:
            raise ToolCallAmbiguousError(
                f"Backend returned {len(calls)} tool calls for '{output_name}'",
                detail={"output_name": output_name, "names": names},
            )
        log.warning(logger, MODULE, "tool_call_ambiguous",
                    "Multiple tool calls returned, using the first match",
                    output_name=output_name, count=len(calls), names=names)

    call = next((c for c in calls if c.function.name == output_name), None)
    if call is None:
        raise ToolCallMissingError(
            f"No tool call named '{output_name}'",
            detail={"output_name": output_name, "names": [c.function.name for c in calls]},
        )

    arguments = call.function.arguments
    try:
        parsed = json.loads(arguments)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedArgumentsError(
            f"Tool call arguments for '{output_name}' are not valid JSON",
            detail={"output_name": output_name, "error": str(e)},
            raw_output=(arguments or "")[:RAW_PREVIEW_CHARS],
        ) from e

    if not isinstance(parsed, dict) or list(parsed) != [output_name]:
        keys = list(parsed) if isinstance(parsed, dict) else None
        raise MalformedArgumentsError(
            f"Tool call arguments must have the single key '{output_name}'",
            detail={"output_name": output_name, "keys": keys, "type": type(parsed).__name__},
            raw_output=arguments[:RAW_PREVIEW_CHARS],
        )

    return parsed[output_name]

"""Prompt text selection.

Where the prompt comes from depends on the caller's mode:

  workflow → prompt_template interpolated against the context variables
  row      → prompt_field == "Formula": prompt_formula evaluated against
             the row and acting user
             otherwise: the literal value of row[prompt_field]

Template interpolation and formula evaluation belong to the host. This
module only decides which source applies and rejects empty results. A
small `{{ name }}` interpolator is provided for hosts (like the HTTP API)
that have no template engine of their own.
"""

import re
from typing import Any, Callable, Mapping, Optional

from llmgen.llm.errors import PromptSourceError
from llmgen.schemas.actions import FORMULA_SOURCE, PromptSpec
from llmgen.utils.logging import log, get_logger

MODULE = "prompt"
logger = get_logger()

# (template, row/context, user) -> text
Interpolator = Callable[[str, Mapping[str, Any], Optional[Mapping[str, Any]]], str]
# (formula, row, user) -> value
Evaluator = Callable[[str, Mapping[str, Any], Optional[Mapping[str, Any]]], Any]

# {{ name }}, {{ row.title }}, {{user.email}}
PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][\w]*(?:\.[A-Za-z_]\w*)*)\s*\}\}")


def _lookup(path: str, scope: Mapping[str, Any]) -> Any:
    value: Any = scope
    for part in path.split("."):
        if isinstance(value, Mapping) and part in value:
            value = value[part]
        else:
            return None
    return value


def interpolate_template(
    template: str,
    context: Mapping[str, Any],
    user: Optional[Mapping[str, Any]] = None,
) -> str:
    """Replace {{ dotted.names }} with values from the context.

    `user` is reachable as {{ user.<field> }}. Unknown names render as "".
    Non-string values are rendered with str().
    """
    scope = dict(context)
    if user is not None:
        scope.setdefault("user", user)

    def _sub(match: re.Match) -> str:
        value = _lookup(match.group(1), scope)
        return "" if value is None else str(value)

    return PLACEHOLDER_PATTERN.sub(_sub, template)


def _require_text(value: Any, source: str) -> str:
    if value is None:
        raise PromptSourceError(f"Prompt source '{source}' produced no text", detail={"source": source})
    text = value if isinstance(value, str) else str(value)
    if not text.strip():
        raise PromptSourceError(f"Prompt source '{source}' produced empty text", detail={"source": source})
    return text


def obtain(
    mode: str,
    spec: PromptSpec,
    row: Mapping[str, Any],
    user: Optional[Mapping[str, Any]] = None,
    *,
    interpolate: Optional[Interpolator] = None,
    evaluate: Optional[Evaluator] = None,
) -> str:
    """Get the prompt text for one call.

    Args:
        mode: "workflow" or "row".
        spec: The caller's declared prompt source.
        row: The row (row mode) or context variables (workflow mode).
        user: The acting user, passed through to interpolation/evaluation.
        interpolate: Host template engine. Defaults to interpolate_template.
        evaluate: Host formula evaluator. Required for formula prompts.

    Raises:
        PromptSourceError: no source is configured for the mode, or the
            selected source yields no text.
    """
    interpolate = interpolate or interpolate_template

    if mode == "workflow":
        if spec.prompt_template is None:
            raise PromptSourceError("Workflow prompts require a prompt template")
        text = _require_text(interpolate(spec.prompt_template, row, user), "template")

    elif mode == "row":
        if spec.prompt_template is not None:
            text = _require_text(interpolate(spec.prompt_template, row, user), "template")
        elif spec.prompt_field == FORMULA_SOURCE:
            if not spec.prompt_formula:
                raise PromptSourceError("Formula prompt selected but no formula configured")
            if evaluate is None:
                raise PromptSourceError("Formula prompt selected but no formula evaluator available")
            text = _require_text(evaluate(spec.prompt_formula, row, user), "formula")
        elif spec.prompt_field:
            text = _require_text(row.get(spec.prompt_field), f"field:{spec.prompt_field}")
        else:
            raise PromptSourceError("Row prompts require a prompt field or template")

    else:
        raise PromptSourceError(f"Unknown mode '{mode}'", detail={"mode": mode})

    log.debug(logger, MODULE, "prompt_obtained", "Prompt text obtained",
              mode=mode, prompt_length=len(text))
    return text

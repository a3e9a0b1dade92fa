"""Invocation orchestration.

One call, one pass:

  1. RESOLVE:  base config + optional override → EffectiveConfig
  2. PROMPT:   template / field / formula → prompt text
  3. HISTORY:  read prior turns (only if a history field is configured)
  4. SCHEMA:   build the forced function (structured calls only)
  5. EXCHANGE: one request to the backend transport
  6. EXTRACT:  text content, or the forced tool call's arguments
  7. THREAD:   append this turn to the history copy
  8. UPDATE:   {answer_field: answer, history_field: history}

Steps 1–4 can only fail on configuration or data. Step 5 is the single
point of suspension and the only place that touches the network or a
process. Any failure aborts the call: the caller gets a complete Update or
an exception, never half of one. Nothing is retried here.
"""

import time
from typing import Any, Mapping, Optional, Sequence

from pydantic import ValidationError

from llmgen.llm.client import CompletionTransport, get_transport
from llmgen.llm.errors import ConfigError, LLMGenError, SchemaError
from llmgen.llm.extractor import extract_structured, extract_text
from llmgen.llm.history import dump_history, load_history, thread
from llmgen.llm.prompt_source import Evaluator, Interpolator, obtain
from llmgen.llm.resolver import resolve
from llmgen.llm.schema_builder import build
from llmgen.schemas.actions import HistorySpec, PromptSpec, SchemaSpec
from llmgen.schemas.config import BackendConfig
from llmgen.schemas.generation import (
    FieldSpec,
    GenerationRequest,
    GenerationResult,
    Multiplicity,
)
from llmgen.utils.logging import log, get_logger

MODULE = "orchestrator"
logger = get_logger()

Update = dict[str, Any]


async def invoke(
    config: BackendConfig,
    mode: str,
    prompt_spec: PromptSpec,
    history_spec: Optional[HistorySpec] = None,
    schema_spec: Optional[SchemaSpec] = None,
    *,
    answer_field: Optional[str] = None,
    row: Optional[Mapping[str, Any]] = None,
    user: Optional[Mapping[str, Any]] = None,
    override_name: Optional[str] = None,
    transport: Optional[CompletionTransport] = None,
    interpolate: Optional[Interpolator] = None,
    evaluate: Optional[Evaluator] = None,
    strict_tool_calls: bool = False,
) -> Update:
    """Run one generation and return the storage update.

    Args:
        config: Application backend configuration.
        mode: "workflow" (row holds context variables) or "row".
        prompt_spec: Where the prompt comes from.
        history_spec: Where the conversation history lives, if anywhere.
        schema_spec: Declared structured output. None for free-form text.
        answer_field: Key for the answer in the Update. Defaults to the
            schema's output name for structured calls.
        row: Row values or workflow context.
        user: Acting user, for interpolation/formulas.
        override_name: Alternate configuration to use for this call.
        transport: Completion transport. Chosen from the backend kind if None.
        interpolate: Host template engine.
        evaluate: Host formula evaluator.
        strict_tool_calls: Fail instead of warn on multiple tool calls.

    Returns:
        {answer_field: answer} plus {history_field: [...]} when history is
        configured.

    Raises:
        LLMGenError subclasses, see llm/errors.py. Errors raised by an
        injected transport propagate unchanged.
    """
    row = row or {}
    history_spec = history_spec or HistorySpec()
    if schema_spec is None and not answer_field:
        raise ConfigError("An answer field is required for text generation")
    answer_field = answer_field or schema_spec.output_name

    structured = schema_spec is not None
    _t0 = time.monotonic()

    try:
        effective = resolve(config, override_name)
        log.info(logger, MODULE, "invoke_start", "Invoking backend",
                 backend=effective.backend.value, model=effective.model,
                 override=effective.override_name, mode=mode,
                 structured=structured, history=history_spec.enabled)

        prompt = obtain(mode, prompt_spec, row, user, interpolate=interpolate, evaluate=evaluate)
        history = load_history(row, history_spec.field) if history_spec.enabled else []

        forced = None
        multiplicity = Multiplicity.SINGLE
        if structured:
            multiplicity = schema_spec.multiplicity
            forced = build(
                schema_spec.fields, multiplicity,
                schema_spec.output_name, schema_spec.description,
            )

        request = GenerationRequest(
            prompt=prompt,
            history=tuple(history),
            config=effective,
            forced_schema=forced,
            multiplicity=multiplicity,
        )
        raw = await (transport or get_transport(effective)).complete(request)

        if structured:
            result = GenerationResult(structured=extract_structured(
                raw, schema_spec.output_name, strict=strict_tool_calls,
            ))
        else:
            result = GenerationResult(text=extract_text(raw))

    except LLMGenError as e:
        log.error(logger, MODULE, "invoke_failed", "Invocation failed",
                  error=str(e), error_type=type(e).__name__,
                  mode=mode, structured=structured,
                  latency_ms=int((time.monotonic() - _t0) * 1000))
        raise

    update: Update = {answer_field: result.answer}
    if history_spec.enabled:
        update[history_spec.field] = dump_history(thread(history, prompt, result.answer))

    log.info(logger, MODULE, "invoke_done", "Invocation complete",
             backend=effective.backend.value, model=effective.model,
             mode=mode, structured=structured, answer_field=answer_field,
             history_length=len(update[history_spec.field]) if history_spec.enabled else None,
             latency_ms=int((time.monotonic() - _t0) * 1000))
    return update


async def generate_text(
    config: BackendConfig,
    mode: str,
    prompt_spec: PromptSpec,
    history_spec: Optional[HistorySpec] = None,
    override_name: Optional[str] = None,
    *,
    answer_field: str,
    **kwargs,
) -> Update:
    """Free-form generation. See invoke() for keyword arguments."""
    return await invoke(
        config, mode, prompt_spec, history_spec,
        answer_field=answer_field, override_name=override_name, **kwargs,
    )


async def generate_structured(
    config: BackendConfig,
    mode: str,
    prompt_spec: PromptSpec,
    field_specs: Sequence[FieldSpec],
    multiplicity: Multiplicity,
    output_name: str,
    description: Optional[str] = None,
    history_spec: Optional[HistorySpec] = None,
    override_name: Optional[str] = None,
    **kwargs,
) -> Update:
    """Structured generation. The answer is keyed by output_name."""
    try:
        schema_spec = SchemaSpec(
            fields=tuple(field_specs),
            multiplicity=multiplicity,
            output_name=output_name,
            description=description,
        )
    except ValidationError as e:
        raise SchemaError(
            "Invalid field declaration",
            detail={"errors": [err["msg"] for err in e.errors()]},
        ) from e
    return await invoke(
        config, mode, prompt_spec, history_spec, schema_spec,
        override_name=override_name, **kwargs,
    )

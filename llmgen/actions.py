"""Host-facing actions.

The host stores an action configuration (see schemas/actions.py) and runs
it either against a table row or inside a workflow:

  llm_generate       Generate text with AI based on a text prompt
  llm_generate_json  Generate JSON with AI based on a text prompt and a
                     declared list of fields

In workflow mode the action returns the update for the host to merge into
its context. In row mode the update is also written back to the row
through the host's RowStore, in a single update_row call, and only after
the whole invocation succeeded.

Plain functions for formula/expression use:

  llm_generate_function   prompt (+ optional prior chat) → text
  llm_embedding_function  prompt → vector
"""

from typing import Any, Mapping, Optional, Protocol, Union

from pydantic import ValidationError

from llmgen.llm.client import CompletionTransport, get_embedding, get_transport
from llmgen.llm.errors import ConfigError
from llmgen.llm.extractor import extract_text
from llmgen.llm.history import load_history
from llmgen.llm.orchestrator import Update, generate_text, invoke
from llmgen.llm.prompt_source import Evaluator, Interpolator
from llmgen.llm.resolver import resolve
from llmgen.schemas.actions import GenerateActionConfig, GenerateJSONActionConfig
from llmgen.schemas.config import BackendConfig
from llmgen.schemas.generation import GenerationRequest
from llmgen.utils.logging import log, get_logger

MODULE = "actions"
logger = get_logger()


class RowStore(Protocol):
    """The host's table, as far as these actions need it."""

    pk_name: str

    async def update_row(self, update: Mapping[str, Any], pk: Any) -> None:
        ...


def _validate_action(model, configuration):
    if isinstance(configuration, model):
        return configuration
    try:
        return model.model_validate(dict(configuration))
    except ValidationError as e:
        raise ConfigError(
            "Invalid action configuration",
            detail={"errors": [err["msg"] for err in e.errors()]},
        ) from e


def _row_key(mode: str, row: Mapping[str, Any], table: Optional[RowStore]) -> Any:
    """Primary key of the row to write back to. None in workflow mode."""
    if mode != "row":
        return None
    if table is None:
        raise ConfigError("Row mode requires a table to write the answer to")
    pk = row.get(table.pk_name)
    if pk is None:
        raise ConfigError(
            f"Row has no value for primary key '{table.pk_name}'",
            detail={"pk_name": table.pk_name},
        )
    return pk


async def _write_back(mode: str, update: Update, pk: Any, table: Optional[RowStore]) -> Update:
    if mode != "row":
        return update
    await table.update_row(update, pk)
    log.debug(logger, MODULE, "row_updated", "Row updated with generated answer",
              pk=pk, fields=list(update))
    return update


async def run_llm_generate(
    config: BackendConfig,
    configuration: Union[GenerateActionConfig, Mapping[str, Any]],
    *,
    mode: str,
    row: Mapping[str, Any],
    user: Optional[Mapping[str, Any]] = None,
    table: Optional[RowStore] = None,
    transport: Optional[CompletionTransport] = None,
    interpolate: Optional[Interpolator] = None,
    evaluate: Optional[Evaluator] = None,
) -> Update:
    """Run the llm_generate action."""
    action = _validate_action(GenerateActionConfig, configuration)
    pk = _row_key(mode, row, table)
    update = await generate_text(
        config, mode,
        action.prompt_spec(mode),
        action.history_spec(),
        action.override_config,
        answer_field=action.answer_field,
        row=row,
        user=user,
        transport=transport,
        interpolate=interpolate,
        evaluate=evaluate,
    )
    return await _write_back(mode, update, pk, table)


async def run_llm_generate_json(
    config: BackendConfig,
    configuration: Union[GenerateJSONActionConfig, Mapping[str, Any]],
    *,
    mode: str,
    row: Mapping[str, Any],
    user: Optional[Mapping[str, Any]] = None,
    table: Optional[RowStore] = None,
    transport: Optional[CompletionTransport] = None,
    interpolate: Optional[Interpolator] = None,
    evaluate: Optional[Evaluator] = None,
) -> Update:
    """Run the llm_generate_json action.

    `multiple` selects an array of objects instead of a single object.
    """
    action = _validate_action(GenerateJSONActionConfig, configuration)
    pk = _row_key(mode, row, table)
    update = await invoke(
        config, mode,
        action.prompt_spec(mode),
        action.history_spec(),
        action.schema_spec(),
        override_name=action.override_config,
        row=row,
        user=user,
        transport=transport,
        interpolate=interpolate,
        evaluate=evaluate,
    )
    return await _write_back(mode, update, pk, table)


# =============================================================================
# FUNCTIONS
# =============================================================================

async def llm_generate_function(
    config: BackendConfig,
    prompt: str,
    *,
    chat: Optional[list[Mapping[str, Any]]] = None,
    override_name: Optional[str] = None,
    transport: Optional[CompletionTransport] = None,
) -> str:
    """Generate text for a prompt. `chat` is optional prior history."""
    effective = resolve(config, override_name)
    request = GenerationRequest(
        prompt=prompt,
        history=tuple(load_history({"chat": chat}, "chat")),
        config=effective,
    )
    raw = await (transport or get_transport(effective)).complete(request)
    return extract_text(raw)


async def llm_embedding_function(config: BackendConfig, prompt: str, **opts) -> list[float]:
    """Get a vector embedding. opts: model, endpoint, api_key."""
    return await get_embedding(config, prompt, **opts)

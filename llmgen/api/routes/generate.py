"""Generation endpoints.

These run the host actions in workflow mode: the request carries the
action configuration plus the context variables, and the response is the
update the caller merges back into its context (answer, and history when
a history variable is configured).

  POST /generate        → llm_generate
  POST /generate/json   → llm_generate_json
  POST /embedding       → vector for a prompt
  GET  /config/overrides → selectable alternate configuration names
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Request

from llmgen.actions import run_llm_generate, run_llm_generate_json
from llmgen.config import load_backend_config
from llmgen.llm.client import CompletionTransport, get_embedding
from llmgen.llm.resolver import override_options
from llmgen.schemas import (
    BackendConfig,
    EmbeddingRequest,
    EmbeddingResponse,
    GenerateJSONRequest,
    GenerateRequest,
    OverridesResponse,
)
from llmgen.utils.logging import log, get_logger

MODULE = "api.generate"
logger = get_logger()

router = APIRouter()


def get_backend_config(request: Request) -> BackendConfig:
    """Backend config from app state, loaded from the environment on first use."""
    config = getattr(request.app.state, "backend_config", None)
    if config is None:
        config = load_backend_config()
        request.app.state.backend_config = config
    return config


def get_transport_override(request: Request) -> Optional[CompletionTransport]:
    """Injected transport, if any. None selects one per backend kind."""
    return getattr(request.app.state, "transport", None)


@router.post("/generate")
async def generate(
    body: GenerateRequest,
    config: BackendConfig = Depends(get_backend_config),
    transport: Optional[CompletionTransport] = Depends(get_transport_override),
) -> dict[str, Any]:
    log.info(logger, MODULE, "generate_start", "Text generation requested",
             answer_field=body.answer_field, history=body.chat_history_field,
             override=body.override_config)
    return await run_llm_generate(
        config,
        body,
        mode="workflow",
        row=body.context,
        user=body.user,
        transport=transport,
    )


@router.post("/generate/json")
async def generate_json(
    body: GenerateJSONRequest,
    config: BackendConfig = Depends(get_backend_config),
    transport: Optional[CompletionTransport] = Depends(get_transport_override),
) -> dict[str, Any]:
    log.info(logger, MODULE, "generate_json_start", "Structured generation requested",
             answer_field=body.answer_field, fields=len(body.fields),
             multiple=body.multiple, override=body.override_config)
    return await run_llm_generate_json(
        config,
        body,
        mode="workflow",
        row=body.context,
        user=body.user,
        transport=transport,
    )


@router.post("/embedding", response_model=EmbeddingResponse)
async def embedding(
    body: EmbeddingRequest,
    config: BackendConfig = Depends(get_backend_config),
):
    vector = await get_embedding(config, body.prompt, model=body.model)
    return EmbeddingResponse(vector=vector)


@router.get("/config/overrides", response_model=OverridesResponse)
async def overrides(config: BackendConfig = Depends(get_backend_config)):
    return OverridesResponse(options=override_options(config))

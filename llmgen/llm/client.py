"""Completion and embedding transports.

The orchestrator talks to every backend through one small contract:

  await transport.complete(GenerationRequest) -> BackendResponse

  ChatTransport      → OpenAI, OpenAI-compatible API, Local Ollama
                       (LangChain's ChatOpenAI; Ollama is reached through
                       its OpenAI-compatible /v1 surface)
  LlamaCppTransport  → Local llama.cpp (runs ./main in llama_dir)

A fresh client is built per call, so concurrent invocations never share
client state. No retries: any failure of the exchange is raised as
TransportError with the library's exception chained.

Embeddings go through get_embedding() with the same backend split.

Tunables (environment):
  LLM_TEMPERATURE  default 0.1
  LLM_MAX_TOKENS   default 2048
  LLM_TIMEOUT      seconds, default 120
  OLLAMA_URL       default http://localhost:11434
"""

import asyncio
import json
import os
import time
from typing import Any, Optional, Protocol

import httpx
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from langchain_openai import ChatOpenAI, OpenAIEmbeddings

from llmgen.llm.errors import ConfigError, LLMGenError, TransportError
from llmgen.llm.parser import JSONExtractionError, extract_json
from llmgen.schemas.config import BackendConfig, BackendKind, EffectiveConfig
from llmgen.schemas.generation import (
    BackendResponse,
    FunctionCall,
    GenerationRequest,
    Message,
    ToolCall,
)
from llmgen.utils.logging import log, get_logger

MODULE = "client"
logger = get_logger()

TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.1"))
MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "2048"))
TIMEOUT = float(os.getenv("LLM_TIMEOUT", "120"))
OLLAMA_URL = os.getenv("OLLAMA_URL", "http://localhost:11434")

DEFAULT_EMBED_MODEL = "text-embedding-3-small"

# Endpoints are configured as full URLs; the OpenAI client wants the base
CHAT_SUFFIX = "/chat/completions"
EMBED_SUFFIX = "/embeddings"


class CompletionTransport(Protocol):
    """Anything that can run one completion exchange."""

    async def complete(self, request: GenerationRequest) -> BackendResponse:
        ...


def _base_url(endpoint: Optional[str], suffix: str) -> Optional[str]:
    if not endpoint:
        return None
    endpoint = endpoint.rstrip("/")
    if endpoint.endswith(suffix):
        endpoint = endpoint[: -len(suffix)]
    return endpoint


def _auth_headers(bearer: Optional[str]) -> Optional[dict[str, str]]:
    return {"Authorization": f"Bearer {bearer}"} if bearer else None


def _content_text(content: Any) -> str:
    """History content as text. Structured answers are sent back as JSON."""
    return content if isinstance(content, str) else json.dumps(content)


# =============================================================================
# CHAT (OpenAI, OpenAI-compatible, Ollama)
# =============================================================================

def get_chat_client(config: EffectiveConfig) -> ChatOpenAI:
    """Build a ChatOpenAI client for one call."""
    if config.backend == BackendKind.OLLAMA:
        base_url = _base_url(config.endpoint, CHAT_SUFFIX) or f"{OLLAMA_URL}/v1"
    else:
        base_url = _base_url(config.endpoint, CHAT_SUFFIX)

    kwargs: dict[str, Any] = dict(
        api_key=config.api_key or "not-needed",
        temperature=TEMPERATURE,
        max_tokens=MAX_TOKENS,
        timeout=TIMEOUT,
        max_retries=0,
    )
    if config.model:
        kwargs["model"] = config.model
    if base_url:
        kwargs["base_url"] = base_url
    headers = _auth_headers(config.bearer)
    if headers:
        kwargs["default_headers"] = headers

    log.debug(logger, MODULE, "chat_client_init", "Chat client created",
              backend=config.backend.value, base_url=base_url, model=config.model)
    return ChatOpenAI(**kwargs)


def to_langchain_messages(history: tuple[Message, ...], prompt: str) -> list[BaseMessage]:
    messages: list[BaseMessage] = []
    for message in history:
        text = _content_text(message.content)
        if message.role == "user":
            messages.append(HumanMessage(content=text))
        else:
            messages.append(AIMessage(content=text))
    messages.append(HumanMessage(content=prompt))
    return messages


def from_ai_message(message: AIMessage) -> BackendResponse:
    """Convert a LangChain AIMessage into the generic response shape.

    The raw OpenAI tool_calls payload is preferred so `arguments` stays the
    exact JSON text the model produced. LangChain's parsed tool calls are
    the fallback (re-encoded), plus any it could not parse.
    """
    content = message.content
    if isinstance(content, list):
        content = "".join(
            part if isinstance(part, str) else part.get("text", "")
            for part in content
        )

    calls: list[ToolCall] = []
    raw_calls = message.additional_kwargs.get("tool_calls") or []
    if raw_calls:
        for raw in raw_calls:
            function = raw.get("function") or {}
            calls.append(ToolCall(function=FunctionCall(
                name=function.get("name", ""),
                arguments=function.get("arguments") or "",
            )))
    else:
        for parsed in message.tool_calls:
            calls.append(ToolCall(function=FunctionCall(
                name=parsed["name"], arguments=json.dumps(parsed["args"]),
            )))
        for invalid in message.invalid_tool_calls:
            calls.append(ToolCall(function=FunctionCall(
                name=invalid.get("name") or "", arguments=invalid.get("args") or "",
            )))

    return BackendResponse(content=content or None, tool_calls=calls)


class ChatTransport:
    """OpenAI-style chat completions through LangChain."""

    async def complete(self, request: GenerationRequest) -> BackendResponse:
        config = request.config
        messages = to_langchain_messages(request.history, request.prompt)

        try:
            runnable = get_chat_client(config)
            if request.forced_schema is not None:
                runnable = runnable.bind_tools(
                    [request.forced_schema.tool],
                    tool_choice=request.forced_schema.tool_choice,
                )
            response = await runnable.ainvoke(messages)
        except Exception as e:
            log.error(logger, MODULE, "chat_failed", "Chat request failed",
                      error=str(e), error_type=type(e).__name__,
                      backend=config.backend.value, model=config.model)
            raise TransportError(
                f"{config.backend.value} chat request failed: {e}",
                detail={"error_type": type(e).__name__},
                backend=config.backend.value,
            ) from e

        return from_ai_message(response)


# =============================================================================
# LOCAL PROCESS (llama.cpp)
# =============================================================================

def _flatten_prompt(request: GenerationRequest) -> str:
    """Single text prompt for a raw completion binary.

    Without history the prompt goes through untouched. With history it is
    rendered as a User/Assistant transcript ending on an open Assistant turn.
    """
    prompt = request.prompt
    if request.forced_schema is not None:
        schema = json.dumps(request.forced_schema.parameters)
        prompt = (
            f"{prompt}\n\nRespond only with a JSON object matching this JSON schema, "
            f"with no other text:\n{schema}"
        )

    if not request.history:
        return prompt

    lines = []
    for message in request.history:
        speaker = "User" if message.role == "user" else "Assistant"
        lines.append(f"{speaker}: {_content_text(message.content)}")
    lines.append(f"User: {prompt}")
    lines.append("Assistant:")
    return "\n".join(lines)


class LlamaCppTransport:
    """Runs the llama.cpp `main` binary as a subprocess.

    There is no tool calling here. Forced schemas are emulated: the schema
    goes into the prompt and the JSON object is dug out of stdout, then
    presented as a single tool call so extraction works the same way.
    """

    binary = "./main"

    async def _run(self, config: EffectiveConfig, prompt: str) -> str:
        args = [self.binary, "-m", config.model_path, "-p", prompt,
                "-n", str(MAX_TOKENS), "--temp", str(TEMPERATURE)]
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                cwd=config.llama_dir,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TransportError(
                f"Could not start llama.cpp in {config.llama_dir}: {e}",
                backend=config.backend.value,
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=TIMEOUT)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise TransportError(
                f"llama.cpp did not finish within {TIMEOUT:.0f}s",
                backend=config.backend.value,
            ) from e

        if proc.returncode != 0:
            raise TransportError(
                f"llama.cpp exited with status {proc.returncode}",
                detail={"stderr": stderr.decode(errors="replace")[-500:]},
                backend=config.backend.value,
            )

        output = stdout.decode(errors="replace")
        # main echoes the prompt before the completion
        if output.startswith(prompt):
            output = output[len(prompt):]
        return output.strip()

    async def complete(self, request: GenerationRequest) -> BackendResponse:
        prompt = _flatten_prompt(request)
        output = await self._run(request.config, prompt)

        if request.forced_schema is None:
            return BackendResponse(content=output)

        name = request.forced_schema.function_name
        try:
            parsed = extract_json(output)
        except JSONExtractionError:
            log.warning(logger, MODULE, "llama_json_failed",
                        "No JSON found in llama.cpp output",
                        output_length=len(output), function=name)
            return BackendResponse(content=output)

        if not (isinstance(parsed, dict) and list(parsed) == [name]):
            parsed = {name: parsed}
        return BackendResponse(tool_calls=[
            ToolCall(function=FunctionCall(name=name, arguments=json.dumps(parsed))),
        ])


def get_transport(config: EffectiveConfig) -> CompletionTransport:
    """Pick the transport for a backend kind."""
    if config.backend == BackendKind.LLAMA_CPP:
        return LlamaCppTransport()
    return ChatTransport()


# =============================================================================
# EMBEDDINGS
# =============================================================================

async def _ollama_embedding(endpoint: str, model: Optional[str], prompt: str) -> list[float]:
    async with httpx.AsyncClient() as client:
        resp = await client.post(
            endpoint,
            json={"model": model, "prompt": prompt},
            timeout=TIMEOUT,
        )
        resp.raise_for_status()
        data = resp.json()
    if "embedding" not in data:
        raise TransportError("Ollama response has no 'embedding'", backend=BackendKind.OLLAMA.value)
    return data["embedding"]


async def get_embedding(
    config: BackendConfig,
    prompt: str,
    *,
    model: Optional[str] = None,
    endpoint: Optional[str] = None,
    api_key: Optional[str] = None,
) -> list[float]:
    """Embed a text with the configured backend.

    Keyword arguments override the configured embedding model, endpoint
    and key for this call.

    Raises:
        ConfigError: the backend has no embedding support (llama.cpp).
        TransportError: the embedding request failed.
    """
    backend = config.backend
    model = model or config.embed_model
    endpoint = endpoint or config.embed_endpoint
    api_key = api_key or config.api_key

    if backend == BackendKind.LLAMA_CPP:
        raise ConfigError("Embeddings are not supported by the llama.cpp backend")

    _t0 = time.monotonic()
    try:
        if backend == BackendKind.OLLAMA:
            vector = await _ollama_embedding(endpoint or f"{OLLAMA_URL}/api/embeddings", model, prompt)
        else:
            kwargs: dict[str, Any] = dict(
                model=model or DEFAULT_EMBED_MODEL,
                api_key=api_key or "not-needed",
                max_retries=0,
                timeout=TIMEOUT,
            )
            base_url = _base_url(endpoint, EMBED_SUFFIX)
            if base_url:
                kwargs["base_url"] = base_url
            if backend == BackendKind.OPENAI_COMPATIBLE:
                # Non-OpenAI servers want raw text, not tiktoken ids
                kwargs["check_embedding_ctx_length"] = False
                headers = _auth_headers(config.bearer_auth)
                if headers:
                    kwargs["default_headers"] = headers
            vector = await OpenAIEmbeddings(**kwargs).aembed_query(prompt)
    except LLMGenError:
        raise
    except Exception as e:
        log.error(logger, MODULE, "embedding_failed", "Embedding request failed",
                  error=str(e), error_type=type(e).__name__, backend=backend.value, model=model)
        raise TransportError(
            f"{backend.value} embedding request failed: {e}",
            detail={"error_type": type(e).__name__},
            backend=backend.value,
        ) from e

    log.debug(logger, MODULE, "embedding_done", "Embedding computed",
              backend=backend.value, model=model, dimensions=len(vector),
              latency_ms=int((time.monotonic() - _t0) * 1000))
    return vector

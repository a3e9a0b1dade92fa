"""LLM invocation package.

This package turns a caller's declaration (prompt source, optional history,
optional structured fields) into one backend call and an update payload:

  from llmgen.llm import generate_text, generate_structured

  update = await generate_text(
      config, "row",
      PromptSpec(prompt_field="body"),
      HistorySpec(field="hist"),
      answer_field="summary",
      row=row,
  )
  # {"summary": "...", "hist": [{"role": "user", ...}, {"role": "assistant", ...}]}

Architecture:
  resolver.py       → base config + named override → effective config
  prompt_source.py  → which prompt source applies (template / field / formula)
  history.py        → read and extend the conversation history
  schema_builder.py → forced-function schema for structured output
  client.py         → completion/embedding transports per backend kind
  parser.py         → JSON extraction from raw text (non-tool backends)
  extractor.py      → text content or tool-call arguments from a response
  orchestrator.py   → composes the above, one pass per call
  errors.py         → error taxonomy
"""

from llmgen.llm.errors import (
    LLMGenError,
    ConfigError,
    PromptSourceError,
    HistoryError,
    SchemaError,
    BackendResponseError,
    ToolCallMissingError,
    ToolCallAmbiguousError,
    MalformedArgumentsError,
    TransportError,
)

from llmgen.llm.resolver import resolve, override_options
from llmgen.llm.prompt_source import obtain, interpolate_template
from llmgen.llm.history import load_history, thread, dump_history
from llmgen.llm.schema_builder import build as build_schema
from llmgen.llm.extractor import extract_text, extract_structured

from llmgen.llm.client import (
    CompletionTransport,
    ChatTransport,
    LlamaCppTransport,
    get_transport,
    get_embedding,
)

from llmgen.llm.orchestrator import (
    Update,
    invoke,
    generate_text,
    generate_structured,
)

__all__ = [
    # Errors
    "LLMGenError",
    "ConfigError",
    "PromptSourceError",
    "HistoryError",
    "SchemaError",
    "BackendResponseError",
    "ToolCallMissingError",
    "ToolCallAmbiguousError",
    "MalformedArgumentsError",
    "TransportError",
    # Components
    "resolve",
    "override_options",
    "obtain",
    "interpolate_template",
    "load_history",
    "thread",
    "dump_history",
    "build_schema",
    "extract_text",
    "extract_structured",
    # Transport
    "CompletionTransport",
    "ChatTransport",
    "LlamaCppTransport",
    "get_transport",
    "get_embedding",
    # Orchestration
    "Update",
    "invoke",
    "generate_text",
    "generate_structured",
]

"""
Structured Logging

Every log line is a JSON object with consistent, queryable fields:
module, action, and whatever context the call site attaches
(backend, model, latency_ms, answer_field, ...).

LOKI / JQ QUERIES
=================
# All errors
{project="llmgen"} | json | level="ERROR"

# Every invocation that failed, with its error class
{project="llmgen"} | json | module="orchestrator" action="invoke_failed"

# Latency per backend kind
{project="llmgen"} | json | action="invoke_done" | line_format "{{.backend}} {{.latency_ms}}"

# Structured calls where the model returned more than one tool call
{project="llmgen"} | json | action="tool_call_ambiguous"

USAGE
=====
from llmgen.utils.logging import log, get_logger, configure_logging

logger = get_logger()
log.info(logger, "orchestrator", "invoke_start", "Invoking backend",
         backend="OpenAI", mode="row", structured=True)

log.error(logger, "client", "transport_failed", "Chat request failed",
          error=str(e), error_type=type(e).__name__)

Prompt text and credentials are never logged. Log lengths, not bodies.

ACTION NAMING
=============
  *_start     - beginning of an operation
  *_done      - successful completion
  *_failed    - error/failure
  *_skipped   - intentionally skipped
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional


class StructuredFormatter(logging.Formatter):
    """JSON formatter. Falls back to a pretty single-line format for dev."""

    def __init__(self, pretty: bool = False):
        super().__init__()
        self.pretty = pretty

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        ts = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"

        # Structured log (emitted via StructuredLogger)
        if getattr(record, "_structured", False):
            data = {
                "ts": ts,
                "level": record.levelname,
                "module": record._module,
                "action": record._action,
                "msg": msg,
            }
            for key, value in record._extra.items():
                if value is not None:
                    data[key] = value

            if self.pretty:
                return self._pretty(data)
            return json.dumps(data, default=str, separators=(",", ":"))

        # Third-party log (httpx, openai, uvicorn) - wrap so it stays parseable
        if self.pretty:
            return msg
        return json.dumps(
            {
                "ts": ts,
                "level": record.levelname,
                "module": record.name,
                "action": "log",
                "msg": msg,
            },
            default=str,
            separators=(",", ":"),
        )

    def _pretty(self, data: dict) -> str:
        """Human-readable format for development."""
        ts = data["ts"][11:23]
        lvl = data["level"][0]
        mod = data["module"].upper()[:12].ljust(12)

        skip = {"ts", "level", "module", "action", "msg"}
        ctx = " ".join(f"{k}={v}" for k, v in data.items() if k not in skip)

        return f"{ts} {lvl} [{mod}] {data['action']}: {data['msg']}" + (f" | {ctx}" if ctx else "")


class StructuredLogger:
    """
    Centralized structured logging.

    All methods take a stdlib logger, a module name, an action name, a
    message and arbitrary context fields. None-valued context is dropped.
    """

    def _log(
        self,
        logger: logging.Logger,
        level: int,
        module: str,
        action: str,
        msg: str,
        **kwargs,
    ) -> None:
        extra = {
            "_structured": True,
            "_module": module,
            "_action": action,
            "_extra": {k: v for k, v in kwargs.items() if v is not None},
        }
        logger.log(level, msg, extra=extra)

    def info(self, logger: logging.Logger, module: str, action: str, msg: str, **kwargs) -> None:
        self._log(logger, logging.INFO, module, action, msg, **kwargs)

    def warning(self, logger: logging.Logger, module: str, action: str, msg: str, **kwargs) -> None:
        self._log(logger, logging.WARNING, module, action, msg, **kwargs)

    def error(
        self,
        logger: logging.Logger,
        module: str,
        action: str,
        msg: str,
        error: Optional[str] = None,
        error_type: Optional[str] = None,
        **kwargs,
    ) -> None:
        self._log(
            logger, logging.ERROR, module, action, msg,
            error=error, error_type=error_type, **kwargs,
        )

    def debug(self, logger: logging.Logger, module: str, action: str, msg: str, **kwargs) -> None:
        self._log(logger, logging.DEBUG, module, action, msg, **kwargs)


# Singleton instance - import this everywhere
log = StructuredLogger()

_logger: Optional[logging.Logger] = None


def get_logger() -> logging.Logger:
    """Get the shared project logger."""
    global _logger
    if _logger is None:
        _logger = logging.getLogger("llmgen")
    return _logger


def configure_logging() -> None:
    """Configure the root logger with the structured formatter. Call once at startup.

    Reads from environment:
      LOG_FORMAT: "json" (default) or "pretty" (for development)
      LOG_LEVEL: "INFO" (default), "DEBUG", "WARNING", "ERROR"
    """
    pretty = os.environ.get("LOG_FORMAT", "json") == "pretty"
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter(pretty=pretty))

    logging.basicConfig(
        level=level,
        handlers=[handler],
        force=True,
    )

    # LangChain and the OpenAI SDK are extremely chatty at DEBUG
    logging.getLogger("langchain").setLevel(logging.WARNING)
    logging.getLogger("langchain_core").setLevel(logging.WARNING)
    logging.getLogger("langchain_openai").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)

    # HTTP clients
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("asyncio").setLevel(logging.WARNING)

"""Error taxonomy for LLM invocations.

Every failure of an invocation surfaces as exactly one of these. Callers
(and the HTTP layer) branch on the class, so the class name is part of the
contract:

  ConfigError              → unknown override, invalid backend config
  PromptSourceError        → no prompt text could be obtained
  HistoryError             → stored chat history is unreadable
  SchemaError              → malformed structured-output field declaration
  BackendResponseError     → backend returned something we can't interpret
    ToolCallMissingError     → no tool call for the forced function
    ToolCallAmbiguousError   → more than one tool call returned
    MalformedArgumentsError  → tool call arguments aren't the declared shape
  TransportError           → network/auth/rate-limit/process failure

Nothing in this package retries or recovers locally.
"""

from typing import Any, Optional


class LLMGenError(Exception):
    """Base class for all invocation errors."""

    def __init__(self, message: str, detail: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.detail = detail or {}


class ConfigError(LLMGenError):
    """Backend configuration is invalid or an override name is unknown."""


class PromptSourceError(LLMGenError):
    """The selected prompt source produced no text."""


class HistoryError(LLMGenError):
    """Stored chat history could not be read as a list of messages."""


class SchemaError(LLMGenError):
    """Structured-output field declaration is malformed."""


class BackendResponseError(LLMGenError):
    """The backend returned a response this layer cannot interpret."""

    def __init__(
        self,
        message: str,
        detail: Optional[dict[str, Any]] = None,
        raw_output: Optional[str] = None,
    ):
        super().__init__(message, detail)
        self.raw_output = raw_output


class ToolCallMissingError(BackendResponseError):
    """A forced function was requested but no matching tool call came back."""


class ToolCallAmbiguousError(BackendResponseError):
    """More than one tool call came back for a single forced function."""


class MalformedArgumentsError(BackendResponseError):
    """Tool call arguments are not valid JSON keyed by the output name."""


class TransportError(LLMGenError):
    """The exchange with the backend itself failed."""

    def __init__(
        self,
        message: str,
        detail: Optional[dict[str, Any]] = None,
        backend: Optional[str] = None,
    ):
        super().__init__(message, detail)
        self.backend = backend

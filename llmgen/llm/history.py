"""Conversation history threading.

History lives in the caller's storage (a row field or a workflow context
variable). Each call reads it once, appends one user/assistant turn, and
hands the extended copy back for the caller to persist:

  existing = load_history(row, "chat")          # [] if unset
  updated  = thread(existing, prompt, answer)   # existing + [user, assistant]

Threading is not idempotent: call it once per logical turn. When the caller
configures no history field none of this runs.
"""

import json
from typing import Any, Mapping, Sequence

from pydantic import ValidationError

from llmgen.llm.errors import HistoryError
from llmgen.schemas.generation import Message


def load_history(source: Mapping[str, Any], history_field: str) -> list[Message]:
    """Read prior history from a row or context.

    Missing, None or empty values mean a fresh conversation. A JSON string
    (history stored in a text column) is decoded first.

    Raises:
        HistoryError: the stored value is not a list of {role, content}.
    """
    raw = source.get(history_field)
    if not raw:
        return []

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise HistoryError(
                f"History field '{history_field}' is not valid JSON",
                detail={"field": history_field, "error": str(e)},
            ) from e

    if not isinstance(raw, list):
        raise HistoryError(
            f"History field '{history_field}' must hold a list of messages",
            detail={"field": history_field, "type": type(raw).__name__},
        )

    try:
        return [m if isinstance(m, Message) else Message.model_validate(m) for m in raw]
    except ValidationError as e:
        raise HistoryError(
            f"History field '{history_field}' contains an invalid message",
            detail={"field": history_field, "error": str(e)},
        ) from e


def thread(existing: Sequence[Message], user_text: str, assistant_content: Any) -> list[Message]:
    """Return a new history: existing + one user turn + one assistant turn.

    The input sequence is never modified.
    """
    return [
        *existing,
        Message(role="user", content=user_text),
        Message(role="assistant", content=assistant_content),
    ]


def dump_history(history: Sequence[Message]) -> list[dict[str, Any]]:
    """Plain dicts, ready for the caller's storage."""
    return [m.model_dump() for m in history]

"""JSON extraction from raw model text.

Backends without tool calling (the local llama.cpp process) are asked to
answer with a JSON object instead. Their text output may carry the object
inside a markdown fence, behind <think> tags, or between chatty preamble
and sign-off. This module digs the object out.
"""

import json
import re
from typing import Any, Optional

from llmgen.utils.logging import log, get_logger

MODULE = "parser"
logger = get_logger()

THINK_PATTERN = re.compile(r"<think>.*?</think>", re.DOTALL)
CODE_BLOCK_PATTERN = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL | re.IGNORECASE)


class JSONExtractionError(Exception):
    """Raised when no JSON value can be recovered from model output."""

    def __init__(self, message: str, raw_output: str):
        super().__init__(message)
        self.raw_output = raw_output


def extract_json(raw: str) -> Any:
    """Extract the first JSON object or array from model output.

    Tried in order:
      1. the whole (think-stripped) text
      2. the first ```json fenced block
      3. the first balanced {...} or [...] span

    Raises:
        JSONExtractionError: nothing parseable was found.
    """
    text = THINK_PATTERN.sub("", raw).strip()
    if text != raw.strip():
        log.debug(logger, MODULE, "stripped_think", "Stripped <think> block from output")

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    fenced = CODE_BLOCK_PATTERN.search(text)
    if fenced:
        try:
            return json.loads(fenced.group(1).strip())
        except json.JSONDecodeError:
            pass

    # Whichever bracket opens first wins
    starts = []
    for open_char, close_char in (("{", "}"), ("[", "]")):
        idx = text.find(open_char)
        if idx != -1:
            starts.append((idx, open_char, close_char))

    for start, open_char, close_char in sorted(starts):
        candidate = _extract_balanced(text[start:], open_char, close_char)
        if candidate:
            try:
                return json.loads(candidate)
            except json.JSONDecodeError:
                continue

    raise JSONExtractionError(
        f"Could not extract valid JSON from model output ({len(raw)} chars)",
        raw_output=raw,
    )


def _extract_balanced(text: str, open_char: str, close_char: str) -> Optional[str]:
    """Return the bracket expression at the start of text, or None if unbalanced.

    Brackets inside JSON strings are ignored.
    """
    if not text or text[0] != open_char:
        return None

    depth = 0
    in_string = False
    escape_next = False

    for i, char in enumerate(text):
        if escape_next:
            escape_next = False
            continue
        if char == "\\" and in_string:
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if char == open_char:
            depth += 1
        elif char == close_char:
            depth -= 1
            if depth == 0:
                return text[:i + 1]

    return None

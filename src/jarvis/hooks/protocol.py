"""JSON helpers for the host hook channel.

Hooks receive loosely structured event text on stdin and answer with a
single JSON object on stdout. This module covers both directions:

- extract_field() pulls one string value out of event text and never raises.
- escape_for_json(), build_decision() and build_context() produce output
  that is always valid JSON, whatever bytes the input contains.
"""

from __future__ import annotations

import json
import re
from typing import Any

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def extract_field(text: str | bytes | None, field_name: str) -> str | None:
    """Extract the first string value stored under ``field_name``.

    Well-formed JSON is parsed and searched depth-first in document order.
    Anything else (partial events, log lines, plain text) is scanned for a
    ``"field_name": "value"`` pair instead. The fallback scan stops at the
    first double quote, so a value containing an escaped quote is cut short
    there.

    Args:
        text: Event text. Bytes are decoded as UTF-8 with replacement.
        field_name: The key to look for.

    Returns:
        The unescaped value, or None if no string value was found.
    """
    if not text or not field_name:
        return None

    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    elif not isinstance(text, str):
        return None

    try:
        document = json.loads(text)
    except (ValueError, RecursionError):
        return _scan_field(text, field_name)

    try:
        return _find_in_document(document, field_name)
    except RecursionError:
        return None


def _find_in_document(node: Any, field_name: str) -> str | None:
    """Depth-first search of a parsed JSON document in document order."""
    if isinstance(node, dict):
        for key, value in node.items():
            if key == field_name and isinstance(value, str):
                return value
            found = _find_in_document(value, field_name)
            if found is not None:
                return found
    elif isinstance(node, list):
        for item in node:
            found = _find_in_document(item, field_name)
            if found is not None:
                return found
    return None


def _scan_field(text: str, field_name: str) -> str | None:
    """Regex scan for a quoted key followed by a quoted string value."""
    pattern = re.compile(r'"' + re.escape(field_name) + r'"\s*:\s*"([^"]*)"')
    match = pattern.search(text)
    if match is None:
        return None
    return _unescape(match.group(1))


def _unescape(value: str) -> str:
    """Undo the escapes produced by escape_for_json.

    Unknown escape sequences are kept as written.
    """
    if "\\" not in value:
        return value
    try:
        return json.loads(f'"{value}"')
    except ValueError:
        return value


def escape_for_json(value: str) -> str:
    """Escape a string for embedding inside a JSON string literal.

    Backslash, double quote, newline, carriage return and tab are escaped.
    Every other character passes through unchanged.
    """
    return "".join(_ESCAPES.get(char, char) for char in value)


def _dumps(data: dict[str, Any]) -> str:
    # ensure_ascii=False leaves non-ASCII text as-is; control characters
    # are still escaped so the result always parses
    return json.dumps(data, ensure_ascii=False, separators=(", ", ": "))


def build_decision(kind: str, reason: str) -> str:
    """Build a single-line control decision, e.g. ``{"decision": "block", ...}``.

    Args:
        kind: The decision keyword understood by the host ("block", "approve").
        reason: Human readable explanation shown by the host.
    """
    return _dumps({"decision": kind, "reason": reason})


def build_context(text: str, event_name: str | None = None) -> str:
    """Build a context-injection object for the host.

    Args:
        text: Arbitrary text to add to the agent's context.
        event_name: Optional hook event name (e.g. "SessionStart").
    """
    output: dict[str, Any] = {}
    if event_name:
        output["hookEventName"] = event_name
    output["additionalContext"] = text
    return _dumps({"hookSpecificOutput": output})

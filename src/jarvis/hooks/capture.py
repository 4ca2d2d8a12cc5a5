"""PostToolUse and PreCompact hooks that feed the daily collector's logs.

Receives host hook events via stdin and appends to the upstream logs:

    Skill tool           -> learning/skills-log.json   {"date", "timestamp", "skill"}
    Edit on known paths  -> patterns/matches.log       date,timestamp,pattern
    large tool exchanges -> learning/context-usage.log timestamp,tokens,tool_execution
    PreCompact           -> learning/context-usage.log timestamp,tokens,compaction

Usage (in .claude/settings.json):
    {
      "hooks": {
        "PostToolUse": [{"hooks": [{"type": "command",
                                    "command": "python -m jarvis hook capture"}]}],
        "PreCompact": [{"hooks": [{"type": "command",
                                   "command": "python -m jarvis hook compact"}]}]
      }
    }

The hooks only append to logs. The daily record itself is rebuilt by
``jarvis metrics collect``.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jarvis.hooks.protocol import extract_field

if TYPE_CHECKING:
    from jarvis.config import Config

logger = logging.getLogger(__name__)

# Rough estimate: ~4 characters per token
CHARS_PER_TOKEN = 4
MIN_LOGGED_TOKENS = 100

# (pattern name, path regex) checked for Edit operations
EDIT_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("test_file_modification", re.compile(r"\.(test|spec)\.(ts|js|tsx|jsx)$")),
    ("test_file_modification", re.compile(r"(^|/)test_[^/]*\.py$")),
    ("component_modification", re.compile(r"components/.*\.(tsx|jsx)$")),
    ("hook_modification", re.compile(r"hooks/.*\.(ts|js)$")),
)

_FAILED_RE = re.compile(r'"success"\s*:\s*false|"is_error"\s*:\s*true')


def read_stdin() -> str:
    """Read the raw hook event from stdin."""
    try:
        return sys.stdin.read()
    except (OSError, ValueError):
        return ""


def _parse(text: str) -> dict[str, Any] | None:
    try:
        data = json.loads(text)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def detect_failure(event_text: str) -> bool:
    """Whether the hook event reports a failed tool execution."""
    event = _parse(event_text)
    if event is None:
        return bool(_FAILED_RE.search(event_text))

    if event.get("success") is False:
        return True

    response = event.get("tool_response")
    if response is None:
        response = event.get("tool_output")
    if isinstance(response, dict):
        if "error" in response:
            return True
        if response.get("success") is False or str(response.get("success")).lower() == "false":
            return True
        if response.get("is_error"):
            return True
    return False


def match_patterns(file_path: str) -> list[str]:
    """Names of the edit patterns a file path matches (each at most once)."""
    names: list[str] = []
    for name, pattern in EDIT_PATTERNS:
        if name not in names and pattern.search(file_path):
            names.append(name)
    return names


def _payload_text(event: dict[str, Any] | None, event_text: str, key: str) -> str:
    """Text of a payload field, for size estimates."""
    if event is not None:
        value = event.get(key)
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        return json.dumps(value)
    return extract_field(event_text, key) or ""


def estimate_tokens(event_text: str) -> int:
    """Estimate tokens exchanged by a tool call from its input and output size."""
    event = _parse(event_text)
    tool_input = _payload_text(event, event_text, "tool_input")
    tool_output = _payload_text(event, event_text, "tool_response") or _payload_text(
        event, event_text, "tool_output"
    )
    return (len(tool_input) + len(tool_output)) // CHARS_PER_TOKEN


def _append(path: Path, line: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write(line + "\n")


def log_skill(config: Config, skill: str, now: datetime) -> None:
    """Append a skill invocation to the skill log."""
    entry = {
        "date": now.date().isoformat(),
        "timestamp": now.isoformat(timespec="seconds"),
        "skill": skill,
    }
    _append(config.paths.skills_log_path, json.dumps(entry))


def log_pattern(config: Config, pattern: str, now: datetime) -> None:
    """Append a pattern match to the pattern log."""
    _append(
        config.paths.patterns_log_path,
        f"{now.date().isoformat()},{now.isoformat(timespec='seconds')},{pattern}",
    )


def log_context(config: Config, tokens: int, event_type: str, now: datetime) -> None:
    """Append a token usage entry to the context log."""
    _append(
        config.paths.context_log_path,
        f"{now.isoformat(timespec='seconds')},{tokens},{event_type}",
    )


def capture(event_text: str, config: Config, now: datetime | None = None) -> list[str]:
    """Record the signals carried by one PostToolUse event.

    Args:
        event_text: Raw event from the host.
        config: Loaded configuration (log locations).
        now: Event time. Defaults to the current local time.

    Returns:
        Short descriptions of what was logged, for diagnostics.
    """
    if not event_text.strip():
        return []

    tool_name = extract_field(event_text, "tool_name")
    if not tool_name:
        logger.debug("Event without tool_name ignored")
        return []

    if detect_failure(event_text):
        logger.debug("Skipping failed %s execution", tool_name)
        return []

    if now is None:
        now = datetime.now()

    actions: list[str] = []

    if tool_name == "Skill":
        skill = extract_field(event_text, "skill") or extract_field(event_text, "command")
        if skill:
            log_skill(config, skill, now)
            actions.append(f"skill:{skill}")

    if tool_name == "Edit":
        file_path = extract_field(event_text, "file_path")
        if file_path:
            for pattern in match_patterns(file_path):
                log_pattern(config, pattern, now)
                actions.append(f"pattern:{pattern}")

    tokens = estimate_tokens(event_text)
    if tokens > MIN_LOGGED_TOKENS:
        log_context(config, tokens, "tool_execution", now)
        actions.append(f"tokens:{tokens}")

    if actions:
        logger.debug("Captured %s from %s", ", ".join(actions), tool_name)
    return actions


def capture_compaction(
    event_text: str, config: Config, now: datetime | None = None
) -> int:
    """Record a context compaction from a PreCompact event.

    Returns:
        The token count logged with the compaction (0 when the event has none).
    """
    if now is None:
        now = datetime.now()

    tokens = 0
    event = _parse(event_text) if event_text.strip() else None
    if event is not None:
        for key in ("tokens", "token_count"):
            value = event.get(key)
            if isinstance(value, int) and not isinstance(value, bool) and value > 0:
                tokens = value
                break

    log_context(config, tokens, "compaction", now)
    logger.info("Logged compaction (%d tokens)", tokens)
    return tokens


def main(config: Config, compaction: bool = False, environ: dict[str, str] | None = None) -> int:
    """Hook entry point. Always returns 0 so the host is never blocked.

    Args:
        config: Loaded configuration.
        compaction: Handle a PreCompact event instead of PostToolUse.
        environ: Environment checked for JARVIS_SKIP_METRICS=1.
    """
    if environ is not None and environ.get("JARVIS_SKIP_METRICS") == "1":
        logger.debug("Metrics capture skipped (JARVIS_SKIP_METRICS=1)")
        return 0

    event_text = read_stdin()
    try:
        if compaction:
            capture_compaction(event_text, config)
        else:
            capture(event_text, config)
    except OSError as e:
        logger.error("Could not write metrics log: %s", e)
    return 0

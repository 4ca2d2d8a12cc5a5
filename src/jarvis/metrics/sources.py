"""Signal sources for the daily collector.

Each reader answers for a single calendar day and returns None when its
source is missing or unreadable. The collector turns None into zero/empty
values and records the source as missing. Readers never raise.

Sources:
    git log                 -> commits, merge commits, feature-like subjects
    coverage reports        -> test coverage percentage
    learning/skills-log.json -> skills invoked (one JSON object per line)
    patterns/matches.log    -> pattern matches ("date,timestamp,name")
    learning/context-usage.log -> tokens and compactions
                               ("timestamp,tokens,event_type")
"""

from __future__ import annotations

import json
import logging
import re
import subprocess
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Any

from jarvis.hooks.protocol import extract_field

logger = logging.getLogger(__name__)

GIT_TIMEOUT = 10
COVERAGE_TIMEOUT = 30


@dataclass
class GitSignals:
    """Version-control signals for one day."""

    commits: int = 0
    merges: int = 0
    features: int = 0


@dataclass
class ContextUsage:
    """Context-window signals for one day."""

    tokens_used: int = 0
    compactions: int = 0


def _run(cmd: list[str], cwd: Path, timeout: int) -> str | None:
    """Run a command and return stdout, or None on any failure."""
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning("Could not run %s: %s", cmd[0], e)
        return None

    if result.returncode != 0:
        logger.debug(
            "%s exited with %d: %s", " ".join(cmd), result.returncode, result.stderr.strip()
        )
        return None

    return result.stdout


def _git_subjects(repo: Path, day: date, merges_only: bool = False) -> list[str] | None:
    """Commit subjects made during the given local calendar day."""
    cmd = [
        "git",
        "log",
        f"--since={day.isoformat()} 00:00:00",
        f"--until={(day + timedelta(days=1)).isoformat()} 00:00:00",
        "--format=%s",
    ]
    if merges_only:
        cmd.append("--merges")

    output = _run(cmd, repo, GIT_TIMEOUT)
    if output is None:
        return None
    return [line for line in output.splitlines() if line.strip()]


def read_git_signals(
    repo: Path, day: date, feature_keywords: list[str]
) -> GitSignals | None:
    """Count commits, merges and feature-like commits for a day.

    Args:
        repo: Working directory inside the repository.
        day: The calendar day to count.
        feature_keywords: Case-insensitive keywords matched anywhere in a
            commit subject.

    Returns:
        GitSignals, or None if repo is not a git repository.
    """
    subjects = _git_subjects(repo, day)
    if subjects is None:
        return None

    merges = _git_subjects(repo, day, merges_only=True)

    features = 0
    if feature_keywords:
        pattern = re.compile(
            "|".join(re.escape(k) for k in feature_keywords), re.IGNORECASE
        )
        features = sum(1 for subject in subjects if pattern.search(subject))

    return GitSignals(
        commits=len(subjects),
        merges=len(merges) if merges is not None else 0,
        features=features,
    )


def _find_number(node: Any, key: str) -> float | None:
    """First numeric value stored under key, depth-first in document order."""
    if isinstance(node, dict):
        value = node.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        for child in node.values():
            found = _find_number(child, key)
            if found is not None:
                return found
    elif isinstance(node, list):
        for child in node:
            found = _find_number(child, key)
            if found is not None:
                return found
    return None


def _coverage_from_json(path: Path) -> float | None:
    """Read a JSON coverage report.

    Understands istanbul's coverage-summary.json (total.lines.pct) and
    coverage.py's coverage.json (totals.percent_covered). Other layouts
    fall back to the first "pct" value in the document.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Could not read coverage report %s: %s", path, e)
        return None

    if isinstance(data, dict):
        total = data.get("total")
        if isinstance(total, dict) and isinstance(total.get("lines"), dict):
            pct = total["lines"].get("pct")
            if isinstance(pct, (int, float)):
                return float(pct)

        totals = data.get("totals")
        if isinstance(totals, dict):
            percent = totals.get("percent_covered")
            if isinstance(percent, (int, float)):
                return float(percent)

    return _find_number(data, "pct")


def _coverage_from_tool(repo: Path) -> float | None:
    """Read the TOTAL line of ``coverage report``."""
    output = _run(["coverage", "report"], repo, COVERAGE_TIMEOUT)
    if output is None:
        return None

    for line in output.splitlines():
        if line.startswith("TOTAL"):
            parts = line.split()
            try:
                return float(parts[-1].rstrip("%"))
            except (IndexError, ValueError):
                return None
    return None


def read_coverage(repo: Path, sources: list[str]) -> float | None:
    """Read test coverage from the first available report.

    Args:
        repo: Project directory the report paths are relative to.
        sources: Report paths in priority order. A ``.coverage`` data file
            is read through the ``coverage report`` command.

    Returns:
        Coverage percentage clamped to 0-100, or None if no report yielded
        a value.
    """
    for source in sources:
        path = repo / source
        if not path.exists():
            continue

        if path.name == ".coverage":
            value = _coverage_from_tool(repo)
        else:
            value = _coverage_from_json(path)

        if value is not None:
            logger.debug("Coverage %.1f%% from %s", value, path)
            return min(max(value, 0.0), 100.0)

    return None


def _read_lines(path: Path) -> list[str] | None:
    if not path.is_file():
        return None
    try:
        return path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError as e:
        logger.warning("Could not read %s: %s", path, e)
        return None


def read_skills(log_path: Path, day: date) -> set[str] | None:
    """Unique skill names logged for a day.

    Each line of the log is a JSON object with "date" and "skill" keys.
    Lines that are not valid JSON are still scanned for the two fields.
    """
    lines = _read_lines(log_path)
    if lines is None:
        return None

    today = day.isoformat()
    skills: set[str] = set()
    for line in lines:
        if extract_field(line, "date") != today:
            continue
        skill = extract_field(line, "skill")
        if skill:
            skills.add(skill)
    return skills


def read_pattern_matches(log_path: Path, day: date) -> int | None:
    """Count pattern-match lines ("date,timestamp,name") logged for a day."""
    lines = _read_lines(log_path)
    if lines is None:
        return None

    today = day.isoformat()
    return sum(1 for line in lines if line.split(",", 1)[0].strip() == today)


def read_context_usage(log_path: Path, day: date) -> ContextUsage | None:
    """Sum token usage and count compactions logged for a day.

    Lines are "timestamp,tokens,event_type". A line belongs to the day when
    its timestamp column contains the ISO date anywhere, so timestamps with
    a prefix or another layout still match. Lines whose token column is not
    an integer still count towards compactions.
    """
    lines = _read_lines(log_path)
    if lines is None:
        return None

    today = day.isoformat()
    usage = ContextUsage()
    for line in lines:
        parts = [part.strip() for part in line.split(",")]
        if today not in parts[0]:
            continue

        if len(parts) > 1:
            try:
                usage.tokens_used += max(int(parts[1]), 0)
            except ValueError:
                logger.debug("Ignoring token count %r in %s", parts[1], log_path)

        if len(parts) > 2 and "compaction" in parts[2].lower():
            usage.compactions += 1

    return usage

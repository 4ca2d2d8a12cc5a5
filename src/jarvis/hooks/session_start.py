"""SessionStart hook that reminds the agent of this week's recommendations.

Prints a context-injection object on stdout:

    {"hookSpecificOutput": {"hookEventName": "SessionStart",
                            "additionalContext": "..."}}

Nothing is printed when no daily records exist for the current period.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from jarvis.hooks.protocol import build_context
from jarvis.metrics.aggregator import WeeklyAggregator, WeeklySummary
from jarvis.metrics.record import DailyRecordStore

if TYPE_CHECKING:
    from jarvis.config import Config

logger = logging.getLogger(__name__)


def format_digest(summary: WeeklySummary) -> str:
    """Short plain-text digest of a summary for the agent's context."""
    lines = [
        f"Development metrics {summary.start.isoformat()} to {summary.end.isoformat()} "
        f"({summary.days_count} day(s) tracked):",
        f"- Commits/day: {summary.average('commits')}",
        f"- Test coverage: {summary.average('test_coverage')}%",
        f"- Tokens/day: {summary.average('tokens_used')}",
        f"- Skills used: {len(summary.skills)}",
        "Recommendations:",
    ]
    lines += [f"- {item}" for item in summary.recommendations]
    return "\n".join(lines)


def session_context(config: Config) -> str | None:
    """Build the SessionStart output, or None when there is nothing to report."""
    store = DailyRecordStore(config.paths.daily_path)
    summary = WeeklyAggregator(store, config.thresholds).summarize()
    if summary.days_count == 0:
        return None
    return build_context(format_digest(summary), "SessionStart")


def main(config: Config) -> int:
    """Hook entry point. Always returns 0 so the session is never blocked."""
    try:
        output = session_context(config)
    except (OSError, ValueError) as e:
        logger.error("Could not read daily records: %s", e)
        return 0

    if output:
        print(output)
    return 0

"""Daily metrics collector.

Builds today's DailyMetricRecord from the signal sources and writes it to
the record store.

Usage:
    python -m jarvis metrics collect

Every run recomputes the measured fields from scratch and replaces the
stored values, so running twice with no new activity writes the same
record. Two fields are entered by hand and carried over from the stored
record (review_score_avg, bugs_found); skills_invoked is the union of the
stored and the freshly observed names.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING

from jarvis.metrics import sources
from jarvis.metrics.record import DailyMetricRecord, DailyRecordStore

if TYPE_CHECKING:
    from jarvis.config import Config

logger = logging.getLogger(__name__)


@dataclass
class CollectedSignals:
    """Fresh observations for one day, before merging.

    Attributes:
        features_completed: Feature-like commits.
        commits: Commits.
        prs_merged: Merge commits.
        test_coverage: Coverage percentage.
        skills_invoked: Skill names observed in the skill log.
        patterns_matched: Pattern-match log entries.
        tokens_used: Summed token usage.
        compactions: Compaction log entries.
        missing_sources: Sources that yielded nothing.
    """

    features_completed: int = 0
    commits: int = 0
    prs_merged: int = 0
    test_coverage: float = 0.0
    skills_invoked: set[str] = field(default_factory=set)
    patterns_matched: int = 0
    tokens_used: int = 0
    compactions: int = 0
    missing_sources: list[str] = field(default_factory=list)


class DailyCollector:
    """Collects one day's signals and persists them as a DailyMetricRecord."""

    def __init__(
        self,
        config: Config,
        repo_path: Path | None = None,
        store: DailyRecordStore | None = None,
    ):
        """Initialize the collector.

        Args:
            config: Loaded configuration (paths and collector settings).
            repo_path: Project directory for git and coverage signals.
                Defaults to the current working directory.
            store: Record store. Defaults to the configured daily directory.
        """
        self.config = config
        self.repo_path = Path(repo_path) if repo_path is not None else Path.cwd()
        self.store = store or DailyRecordStore(config.paths.daily_path)

    def gather(self, day: date) -> CollectedSignals:
        """Read every signal source for a day.

        A missing source leaves its fields at zero and is listed in
        missing_sources.
        """
        signals = CollectedSignals()
        paths = self.config.paths

        git = sources.read_git_signals(
            self.repo_path, day, self.config.collector.feature_keywords
        )
        if git is None:
            signals.missing_sources.append("git")
        else:
            signals.commits = git.commits
            signals.prs_merged = git.merges
            signals.features_completed = git.features

        coverage = sources.read_coverage(
            self.repo_path, self.config.collector.coverage_sources
        )
        if coverage is None:
            signals.missing_sources.append("coverage")
        else:
            signals.test_coverage = coverage

        skills = sources.read_skills(paths.skills_log_path, day)
        if skills is None:
            signals.missing_sources.append("skills")
        else:
            signals.skills_invoked = skills

        patterns = sources.read_pattern_matches(paths.patterns_log_path, day)
        if patterns is None:
            signals.missing_sources.append("patterns")
        else:
            signals.patterns_matched = patterns

        context = sources.read_context_usage(paths.context_log_path, day)
        if context is None:
            signals.missing_sources.append("context")
        else:
            signals.tokens_used = context.tokens_used
            signals.compactions = context.compactions

        if signals.missing_sources:
            logger.info(
                "Sources unavailable for %s: %s", day, ", ".join(signals.missing_sources)
            )
        return signals

    @staticmethod
    def merge(
        day: date, signals: CollectedSignals, existing: DailyMetricRecord | None
    ) -> DailyMetricRecord:
        """Combine fresh signals with the stored record for the same day.

        Measured fields come from signals; curated fields come from the
        stored record; skills are the union of both.
        """
        record = DailyMetricRecord(
            date=day,
            features_completed=signals.features_completed,
            commits=signals.commits,
            prs_merged=signals.prs_merged,
            test_coverage=signals.test_coverage,
            skills_invoked=set(signals.skills_invoked),
            patterns_matched=signals.patterns_matched,
            tokens_used=signals.tokens_used,
            compactions=signals.compactions,
            missing_sources=sorted(signals.missing_sources),
        )

        if existing is not None:
            record.review_score_avg = existing.review_score_avg
            record.bugs_found = existing.bugs_found
            record.skills_invoked |= existing.skills_invoked

        return record

    def collect(self, day: date | None = None) -> DailyMetricRecord:
        """Collect, merge and store the record for a day.

        Args:
            day: Day to collect. Defaults to today in local time.

        Returns:
            The record as written.

        Raises:
            RecordStoreError: If the record could not be written.
        """
        if day is None:
            day = date.today()

        logger.info("Collecting metrics for %s", day)
        signals = self.gather(day)
        existing = self.store.load_or_none(day)
        record = self.merge(day, signals, existing)
        self.store.save(record)
        return record


def format_daily_summary(record: DailyMetricRecord) -> str:
    """Format a record as the console summary printed after collection."""
    skills = ", ".join(sorted(record.skills_invoked)) or "none"
    lines = [
        "=== Daily Metrics Summary ===",
        "Productivity:",
        f"  - Features completed: {record.features_completed}",
        f"  - Commits: {record.commits}",
        f"  - PRs merged: {record.prs_merged}",
        "",
        "Quality:",
        f"  - Test coverage: {record.test_coverage:g}%",
        f"  - Review score avg: {record.review_score_avg:g}",
        f"  - Bugs found: {record.bugs_found}",
        "",
        "Learning:",
        f"  - Skills invoked: {skills}",
        f"  - Patterns matched: {record.patterns_matched}",
        "",
        "Context:",
        f"  - Tokens used: {record.tokens_used:,}",
        f"  - Compactions: {record.compactions}",
    ]
    if record.missing_sources:
        lines.append("")
        lines.append(f"Unavailable sources: {', '.join(sorted(record.missing_sources))}")
    return "\n".join(lines)

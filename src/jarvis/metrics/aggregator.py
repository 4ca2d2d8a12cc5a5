"""Weekly aggregation of daily metric records.

Usage:
    from jarvis.metrics import aggregator

    summary = aggregator.summarize(store, start, end, config.thresholds)
    summary.recommendations   # ordered list of suggestion strings

Only days that have a record count towards days_count; missing days are
left out of every sum rather than counted as zero. Records are read, never
written.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any

from jarvis.metrics.record import NUMERIC_FIELDS, DailyRecordStore

if TYPE_CHECKING:
    from jarvis.config import ThresholdsConfig

FIELD_NAMES = tuple(name for _, name in NUMERIC_FIELDS)

# Averages rounded to whole numbers; everything else gets one decimal
INTEGER_AVERAGES = frozenset({"tokens_used"})

RECOMMEND_COMMITS = "Consider breaking work into smaller, more frequent commits"
RECOMMEND_COVERAGE = "Focus on improving test coverage this week"
RECOMMEND_CONTEXT = "Consider using more targeted context to reduce token usage"
RECOMMEND_SKILLS = "Explore additional skills to enhance productivity"
ACKNOWLEDGE = "Great week! Keep up the good work"


class Trend(Enum):
    """Direction of a metric between two periods."""

    INCREASE = "increase"
    DECREASE = "decrease"
    UNCHANGED = "unchanged"

    @property
    def symbol(self) -> str:
        return {"increase": "^", "decrease": "v", "unchanged": "="}[self.value]


def trend(current: float, previous: float) -> Trend:
    """Compare a metric's current value with the previous period's."""
    if current > previous:
        return Trend.INCREASE
    if current < previous:
        return Trend.DECREASE
    return Trend.UNCHANGED


def round_half_up(value: float, places: int = 1) -> float:
    """Round half away from zero to the given number of decimal places."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _average(total: float, days: int, name: str) -> float | int:
    if days == 0:
        return 0
    if name in INTEGER_AVERAGES:
        return int(round_half_up(total / days, 0))
    return round_half_up(total / days, 1)


@dataclass
class WeeklySummary:
    """Totals, averages and recommendations for a date range.

    Attributes:
        start: First day of the period.
        end: Last day of the period (inclusive).
        days_count: Number of days in the period that had a record.
        totals: Sum of each numeric field over recorded days.
        averages: totals / days_count, rounded (0 when days_count is 0).
        skills: Union of skills invoked over the period.
        coverage_missing_days: Recorded days whose coverage was unavailable.
        recommendations: Suggestions in rule order.
        generated_at: When the summary was computed.
        previous: Summary of the preceding period, when trends were requested.
    """

    start: date
    end: date
    days_count: int = 0
    totals: dict[str, float] = field(default_factory=dict)
    averages: dict[str, float] = field(default_factory=dict)
    skills: set[str] = field(default_factory=set)
    coverage_missing_days: int = 0
    recommendations: list[str] = field(default_factory=list)
    generated_at: datetime = field(default_factory=datetime.now)
    previous: WeeklySummary | None = None

    def total(self, name: str) -> float:
        return self.totals.get(name, 0)

    def average(self, name: str) -> float:
        return self.averages.get(name, 0)

    def top_skills(self, cap: int = 10) -> list[str]:
        """Alphabetically sorted skills, truncated to the first ``cap``."""
        return sorted(self.skills)[:cap]

    def trend_of(self, name: str, use_average: bool = False) -> Trend | None:
        """Trend of a field against the previous period, if one was computed."""
        if self.previous is None:
            return None
        if use_average:
            return trend(self.average(name), self.previous.average(name))
        return trend(self.total(name), self.previous.total(name))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: dict[str, Any] = {
            "period": {"start": self.start.isoformat(), "end": self.end.isoformat()},
            "days_count": self.days_count,
            "totals": dict(self.totals),
            "averages": dict(self.averages),
            "skills": sorted(self.skills),
            "coverage_missing_days": self.coverage_missing_days,
            "recommendations": list(self.recommendations),
            "generated_at": self.generated_at.isoformat(timespec="seconds"),
        }
        if self.previous is not None:
            data["previous"] = self.previous.to_dict()
        return data

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=2)


def recommend(
    averages: dict[str, float], unique_skills: int, thresholds: ThresholdsConfig
) -> list[str]:
    """Apply the recommendation rules in order to unrounded averages.

    Every matching rule contributes its suggestion. When none match, a
    single acknowledgement is returned instead.
    """
    recommendations = []

    if averages.get("commits", 0) < thresholds.min_avg_commits:
        recommendations.append(RECOMMEND_COMMITS)

    if averages.get("test_coverage", 0) < thresholds.min_avg_coverage:
        recommendations.append(RECOMMEND_COVERAGE)

    if averages.get("tokens_used", 0) > thresholds.max_avg_tokens:
        recommendations.append(RECOMMEND_CONTEXT)

    if unique_skills < thresholds.min_unique_skills:
        recommendations.append(RECOMMEND_SKILLS)

    if not recommendations:
        recommendations.append(ACKNOWLEDGE)

    return recommendations


class WeeklyAggregator:
    """Aggregates daily records over a closed date range."""

    def __init__(self, store: DailyRecordStore, thresholds: ThresholdsConfig):
        """Initialize the aggregator.

        Args:
            store: Record store to read from.
            thresholds: Recommendation thresholds and the default window.
        """
        self.store = store
        self.thresholds = thresholds

    def default_period(self, today: date | None = None) -> tuple[date, date]:
        """The window_days days ending today, inclusive."""
        if today is None:
            today = date.today()
        return today - timedelta(days=self.thresholds.window_days - 1), today

    def summarize(
        self,
        start: date | None = None,
        end: date | None = None,
        compare: bool = False,
    ) -> WeeklySummary:
        """Compute the summary for [start, end].

        Args:
            start: First day. Defaults to the start of the default period.
            end: Last day, inclusive. Defaults to today.
            compare: Also summarize the preceding period of equal length so
                the report can show trends.

        Raises:
            ValueError: If start is after end.
        """
        default_start, default_end = self.default_period(end)
        if end is None:
            end = default_end
        if start is None:
            start = default_start
        if start > end:
            raise ValueError(f"Period start {start} is after end {end}")

        summary = self._aggregate(start, end)

        if compare:
            length = end - start + timedelta(days=1)
            summary.previous = self._aggregate(start - length, start - timedelta(days=1))

        return summary

    def _aggregate(self, start: date, end: date) -> WeeklySummary:
        summary = WeeklySummary(start=start, end=end)
        totals: dict[str, float] = {name: 0 for name in FIELD_NAMES}

        for record in self.store.iter_range(start, end):
            summary.days_count += 1
            for name in FIELD_NAMES:
                totals[name] += record.get(name)
            summary.skills |= record.skills_invoked
            if "coverage" in record.missing_sources:
                summary.coverage_missing_days += 1

        # Float sums pick up binary noise (60.1 + 80.2 ...)
        summary.totals = {
            name: round_half_up(value, 2) if isinstance(value, float) else value
            for name, value in totals.items()
        }
        summary.averages = {
            name: _average(totals[name], summary.days_count, name) for name in FIELD_NAMES
        }
        # Rules compare true averages; rounding is for display only
        exact = {
            name: totals[name] / summary.days_count if summary.days_count else 0
            for name in FIELD_NAMES
        }
        summary.recommendations = recommend(exact, len(summary.skills), self.thresholds)
        return summary


def summarize(
    store: DailyRecordStore,
    start: date | None,
    end: date | None,
    thresholds: ThresholdsConfig,
    compare: bool = False,
) -> WeeklySummary:
    """Convenience function to compute a summary.

    Args:
        store: Record store to read from.
        start: First day, or None for the default period.
        end: Last day inclusive, or None for today.
        thresholds: Recommendation thresholds.
        compare: Also compute the preceding period for trends.

    Returns:
        WeeklySummary for the period.
    """
    return WeeklyAggregator(store, thresholds).summarize(start, end, compare=compare)

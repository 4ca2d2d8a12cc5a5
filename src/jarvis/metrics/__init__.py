"""Daily metrics collection and weekly aggregation for jarvis.

Architecture:
    git log / coverage reports / hook logs
            |
            v
    DailyCollector (collector module)
            |
            v
    metrics/daily/YYYY-MM-DD.json   (one record per day)
            |
            v (on-demand)
    WeeklyAggregator (aggregator module)
            |
            v
    metrics/weekly-summary-YYYY-MM-DD.md
"""

from jarvis.metrics.record import (
    DailyMetricRecord,
    DailyRecordStore,
    RecordParseError,
    RecordStoreError,
)
from jarvis.metrics.collector import CollectedSignals, DailyCollector
from jarvis.metrics.aggregator import (
    Trend,
    WeeklyAggregator,
    WeeklySummary,
    recommend,
    summarize,
    trend,
)

__all__ = [
    # Records
    "DailyMetricRecord",
    "DailyRecordStore",
    "RecordParseError",
    "RecordStoreError",
    # Collection
    "CollectedSignals",
    "DailyCollector",
    # Aggregation
    "Trend",
    "WeeklyAggregator",
    "WeeklySummary",
    "recommend",
    "summarize",
    "trend",
]

"""CLI commands for metrics.

This module provides the command handlers for the metrics subcommands:
- collect: Build or refresh today's daily record
- weekly: Generate the weekly summary report
- show: Print one day's record
"""

from __future__ import annotations

import sys
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING

from jarvis.metrics.record import DailyRecordStore, RecordParseError

if TYPE_CHECKING:
    import argparse

    from jarvis.config import Config


def parse_date(value: str | None) -> date | None:
    """Parse an optional YYYY-MM-DD argument.

    Raises:
        ValueError: If the value is not an ISO date.
    """
    if not value:
        return None
    return date.fromisoformat(value)


def cmd_metrics_collect(args: argparse.Namespace, config: Config) -> int:
    """Handle 'metrics collect' command - build today's record."""
    from jarvis.metrics.collector import DailyCollector, format_daily_summary
    from jarvis.metrics.record import RecordStoreError

    try:
        day = parse_date(getattr(args, "date", None))
    except ValueError as e:
        print(f"Error: Invalid date: {e}", file=sys.stderr)
        return 1

    repo = getattr(args, "repo", None)
    collector = DailyCollector(config, repo_path=Path(repo) if repo else None)

    day = day or date.today()
    print(f"Collecting metrics for {day.isoformat()}...")

    try:
        record = collector.collect(day)
    except RecordStoreError as e:
        print(f"Error saving metrics: {e}", file=sys.stderr)
        return 1

    print(f"Metrics saved to {collector.store.path_for(record.date)}")
    print()
    print(format_daily_summary(record))
    return 0


def cmd_metrics_weekly(args: argparse.Namespace, config: Config) -> int:
    """Handle 'metrics weekly' command - generate the weekly report."""
    from jarvis.metrics.aggregator import WeeklyAggregator
    from jarvis.metrics.report import render_report, report_path, write_report

    try:
        start = parse_date(getattr(args, "start", None))
        end = parse_date(getattr(args, "end", None))
    except ValueError as e:
        print(f"Error: Invalid date: {e}", file=sys.stderr)
        return 1

    store = DailyRecordStore(config.paths.daily_path)
    aggregator = WeeklyAggregator(store, config.thresholds)

    try:
        summary = aggregator.summarize(
            start, end, compare=getattr(args, "compare", False)
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error reading daily records: {e}", file=sys.stderr)
        return 1

    report = render_report(summary, skills_cap=config.thresholds.skills_display_cap)

    if not getattr(args, "no_write", False):
        output = getattr(args, "output", None)
        if output:
            path = Path(output)
        else:
            path = report_path(
                config.paths.metrics_path, summary.generated_at.date().isoformat()
            )
        try:
            write_report(report, path)
        except OSError as e:
            print(f"Error writing report: {e}", file=sys.stderr)
            return 1
        print(f"Weekly summary saved to {path}", file=sys.stderr)

    print(report, end="")
    return 0


def cmd_metrics_show(args: argparse.Namespace, config: Config) -> int:
    """Handle 'metrics show' command - print one day's record."""
    try:
        day = parse_date(getattr(args, "date", None)) or date.today()
    except ValueError as e:
        print(f"Error: Invalid date: {e}", file=sys.stderr)
        return 1

    store = DailyRecordStore(config.paths.daily_path)
    try:
        record = store.load(day)
    except RecordParseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error reading daily record: {e}", file=sys.stderr)
        return 1

    if record is None:
        print(f"No metrics recorded for {day.isoformat()}", file=sys.stderr)
        return 1

    print(record.to_json(), end="")
    return 0

"""Tests for the daily metrics collector."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from unittest.mock import patch

import pytest

from jarvis.config import Config, PathsConfig
from jarvis.metrics.collector import (
    CollectedSignals,
    DailyCollector,
    format_daily_summary,
)
from jarvis.metrics.record import DailyMetricRecord, DailyRecordStore
from jarvis.metrics.sources import GitSignals

DAY = date(2026, 1, 5)


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Config rooted in a temporary directory."""
    return Config(paths=PathsConfig(root=tmp_path / "jarvis"))


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    path = tmp_path / "repo"
    path.mkdir()
    return path


def write_logs(config: Config) -> None:
    """Write skill, pattern and context logs with entries for DAY."""
    paths = config.paths
    paths.skills_log_path.parent.mkdir(parents=True, exist_ok=True)
    paths.skills_log_path.write_text(
        '{"date": "2026-01-05", "timestamp": "2026-01-05T09:00:00", "skill": "b"}\n'
        '{"date": "2026-01-05", "timestamp": "2026-01-05T10:00:00", "skill": "c"}\n'
    )
    paths.patterns_log_path.parent.mkdir(parents=True, exist_ok=True)
    paths.patterns_log_path.write_text("2026-01-05,2026-01-05T09:00:00,hook_modification\n")
    paths.context_log_path.write_text(
        "2026-01-05T09:00:00,4000,tool_execution\n2026-01-05T12:00:00,0,compaction\n"
    )


def patch_git(signals: GitSignals | None):
    return patch("jarvis.metrics.sources.read_git_signals", return_value=signals)


class TestGather:
    """Tests for DailyCollector.gather."""

    def test_all_sources_missing(self, config: Config, repo: Path):
        """Test that missing sources default to zero and are listed."""
        collector = DailyCollector(config, repo_path=repo)
        with patch_git(None):
            signals = collector.gather(DAY)

        assert signals == CollectedSignals(
            missing_sources=["git", "coverage", "skills", "patterns", "context"]
        )

    def test_all_sources_present(self, config: Config, repo: Path):
        write_logs(config)
        (repo / "coverage.json").write_text(json.dumps({"totals": {"percent_covered": 82.0}}))

        collector = DailyCollector(config, repo_path=repo)
        with patch_git(GitSignals(commits=6, merges=1, features=2)):
            signals = collector.gather(DAY)

        assert signals.commits == 6
        assert signals.prs_merged == 1
        assert signals.features_completed == 2
        assert signals.test_coverage == 82.0
        assert signals.skills_invoked == {"b", "c"}
        assert signals.patterns_matched == 1
        assert signals.tokens_used == 4000
        assert signals.compactions == 1
        assert signals.missing_sources == []


class TestMerge:
    """Tests for DailyCollector.merge."""

    def test_no_existing_record(self):
        signals = CollectedSignals(commits=3, skills_invoked={"x"})
        record = DailyCollector.merge(DAY, signals, None)

        assert record.commits == 3
        assert record.skills_invoked == {"x"}
        assert record.review_score_avg == 0.0
        assert record.bugs_found == 0

    def test_curated_fields_carried_over(self):
        existing = DailyMetricRecord(
            date=DAY, commits=10, review_score_avg=7.5, bugs_found=3, tokens_used=999
        )
        signals = CollectedSignals(commits=4, tokens_used=100)

        record = DailyCollector.merge(DAY, signals, existing)

        assert record.review_score_avg == 7.5
        assert record.bugs_found == 3
        # Measured fields are replaced, not accumulated
        assert record.commits == 4
        assert record.tokens_used == 100

    def test_skills_union(self):
        existing = DailyMetricRecord(date=DAY, skills_invoked={"a", "b"})
        signals = CollectedSignals(skills_invoked={"b", "c"})

        record = DailyCollector.merge(DAY, signals, existing)

        assert record.skills_invoked == {"a", "b", "c"}

    def test_merge_does_not_mutate_inputs(self):
        existing = DailyMetricRecord(date=DAY, skills_invoked={"a"})
        signals = CollectedSignals(skills_invoked={"b"})

        DailyCollector.merge(DAY, signals, existing)

        assert existing.skills_invoked == {"a"}
        assert signals.skills_invoked == {"b"}


class TestCollect:
    """Tests for DailyCollector.collect."""

    def test_writes_record(self, config: Config, repo: Path):
        write_logs(config)
        collector = DailyCollector(config, repo_path=repo)

        with patch_git(GitSignals(commits=2, merges=0, features=1)):
            record = collector.collect(DAY)

        path = config.paths.daily_path / "2026-01-05.json"
        assert path.exists()
        data = json.loads(path.read_text())
        assert data["productivity"]["commits"] == 2
        assert data["learning"]["skills_invoked"] == ["b", "c"]
        assert data["missing_sources"] == ["coverage"]
        assert record.commits == 2

    def test_idempotent(self, config: Config, repo: Path):
        """Test collecting twice with unchanged sources yields the same file."""
        write_logs(config)
        collector = DailyCollector(config, repo_path=repo)
        path = config.paths.daily_path / "2026-01-05.json"

        with patch_git(GitSignals(commits=5, merges=1, features=2)):
            first = collector.collect(DAY)
            first_text = path.read_text()
            second = collector.collect(DAY)

        assert first == second
        assert path.read_text() == first_text
        assert second.tokens_used == 4000

    def test_preserves_manual_edits_across_runs(self, config: Config, repo: Path):
        collector = DailyCollector(config, repo_path=repo)
        store = DailyRecordStore(config.paths.daily_path)

        with patch_git(GitSignals(commits=1)):
            collector.collect(DAY)

        # Reviewer fills in the curated fields by hand
        path = store.path_for(DAY)
        data = json.loads(path.read_text())
        data["quality"]["review_score_avg"] = 9.0
        data["quality"]["bugs_found"] = 4
        data["learning"]["skills_invoked"] = ["a", "b"]
        path.write_text(json.dumps(data))

        write_logs(config)
        with patch_git(GitSignals(commits=3)):
            collector.collect(DAY)
            record = collector.collect(DAY)

        assert record.review_score_avg == 9.0
        assert record.bugs_found == 4
        assert record.commits == 3
        assert record.skills_invoked == {"a", "b", "c"}

    def test_corrupt_existing_record_is_replaced(self, config: Config, repo: Path):
        store = DailyRecordStore(config.paths.daily_path)
        config.paths.daily_path.mkdir(parents=True)
        store.path_for(DAY).write_text("{corrupt")

        collector = DailyCollector(config, repo_path=repo)
        with patch_git(GitSignals(commits=2)):
            record = collector.collect(DAY)

        assert store.load(DAY) == record

    def test_undecodable_existing_record_is_replaced(self, config: Config, repo: Path):
        store = DailyRecordStore(config.paths.daily_path)
        config.paths.daily_path.mkdir(parents=True)
        store.path_for(DAY).write_bytes(b'{"date": "\xff\xfe"}')

        collector = DailyCollector(config, repo_path=repo)
        with patch_git(GitSignals(commits=1)):
            record = collector.collect(DAY)

        assert record.commits == 1
        assert store.load(DAY) == record

    def test_defaults_to_today(self, config: Config, repo: Path):
        collector = DailyCollector(config, repo_path=repo)
        with patch_git(None):
            record = collector.collect()

        assert record.date == date.today()


class TestFormatDailySummary:
    """Tests for format_daily_summary."""

    def test_includes_all_sections(self):
        record = DailyMetricRecord(
            date=DAY,
            commits=4,
            test_coverage=80.5,
            skills_invoked={"tdd"},
            tokens_used=12345,
            missing_sources=["git"],
        )
        text = format_daily_summary(record)

        assert "=== Daily Metrics Summary ===" in text
        assert "  - Commits: 4" in text
        assert "  - Test coverage: 80.5%" in text
        assert "  - Skills invoked: tdd" in text
        assert "  - Tokens used: 12,345" in text
        assert "Unavailable sources: git" in text

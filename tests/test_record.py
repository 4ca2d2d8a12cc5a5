"""Tests for daily metric records and the record store."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from unittest.mock import patch

import pytest

from jarvis.metrics.record import (
    DailyMetricRecord,
    DailyRecordStore,
    RecordParseError,
    RecordStoreError,
)


def make_record(day: date = date(2026, 1, 5), **overrides) -> DailyMetricRecord:
    """Create a test record."""
    values = {
        "features_completed": 1,
        "commits": 4,
        "prs_merged": 1,
        "test_coverage": 81.5,
        "review_score_avg": 8.5,
        "bugs_found": 2,
        "skills_invoked": {"tdd", "debugging"},
        "patterns_matched": 3,
        "tokens_used": 12000,
        "compactions": 1,
    }
    values.update(overrides)
    return DailyMetricRecord(date=day, **values)


class TestDailyMetricRecord:
    """Tests for DailyMetricRecord serialization."""

    def test_defaults(self):
        record = DailyMetricRecord(date=date(2026, 1, 5))
        assert record.commits == 0
        assert record.test_coverage == 0.0
        assert record.skills_invoked == set()
        assert record.missing_sources == []

    def test_to_dict_layout(self):
        """Test the nested on-disk layout."""
        data = make_record().to_dict()

        assert data["date"] == "2026-01-05"
        assert data["productivity"] == {
            "features_completed": 1,
            "commits": 4,
            "prs_merged": 1,
        }
        assert data["quality"] == {
            "test_coverage": 81.5,
            "review_score_avg": 8.5,
            "bugs_found": 2,
        }
        assert data["learning"] == {
            "skills_invoked": ["debugging", "tdd"],
            "patterns_matched": 3,
        }
        assert data["context"] == {"tokens_used": 12000, "compactions": 1}
        assert data["missing_sources"] == []

    def test_from_dict_restores_record(self):
        record = make_record(missing_sources=["coverage"])
        restored = DailyMetricRecord.from_dict(json.loads(record.to_json()))
        assert restored == record

    def test_from_dict_legacy_file_without_missing_sources(self):
        """Test records written by the shell collector still load."""
        data = {
            "date": "2026-01-05",
            "productivity": {"features_completed": 0, "commits": 3, "prs_merged": 0},
            "quality": {"test_coverage": 72, "review_score_avg": 0, "bugs_found": 0},
            "learning": {"skills_invoked": [], "patterns_matched": 0},
            "context": {"tokens_used": 0, "compactions": 0},
        }
        record = DailyMetricRecord.from_dict(data)
        assert record.commits == 3
        assert record.test_coverage == 72.0
        assert isinstance(record.test_coverage, float)
        assert record.missing_sources == []

    def test_from_dict_missing_sections_default_to_zero(self):
        record = DailyMetricRecord.from_dict({"date": "2026-01-05"})
        assert record.commits == 0
        assert record.tokens_used == 0

    def test_from_dict_uses_expected_date(self):
        record = DailyMetricRecord.from_dict({}, expected_date=date(2026, 2, 1))
        assert record.date == date(2026, 2, 1)

    @pytest.mark.parametrize(
        "data",
        [
            [],
            "text",
            {"date": "not-a-date"},
            {"date": "2026-01-05", "productivity": {"commits": "many"}},
            {"date": "2026-01-05", "productivity": []},
            {"date": "2026-01-05", "learning": {"skills_invoked": "tdd"}},
            {"date": "2026-01-05", "missing_sources": "git"},
            {"productivity": {}},
        ],
    )
    def test_from_dict_rejects_invalid(self, data):
        with pytest.raises(RecordParseError):
            DailyMetricRecord.from_dict(data)


class TestDailyRecordStore:
    """Tests for DailyRecordStore."""

    def test_path_for(self, tmp_path: Path):
        store = DailyRecordStore(tmp_path)
        assert store.path_for(date(2026, 1, 5)) == tmp_path / "2026-01-05.json"

    def test_save_and_load(self, tmp_path: Path):
        store = DailyRecordStore(tmp_path / "daily")
        record = make_record()

        path = store.save(record)

        assert path == tmp_path / "daily" / "2026-01-05.json"
        assert store.exists(record.date)
        assert store.load(record.date) == record

    def test_save_replaces_existing_file(self, tmp_path: Path):
        store = DailyRecordStore(tmp_path)
        store.save(make_record(commits=1))
        store.save(make_record(commits=9))

        assert store.load(date(2026, 1, 5)).commits == 9
        # No temporary files left behind
        assert [p.name for p in tmp_path.iterdir()] == ["2026-01-05.json"]

    def test_save_failure_raises_and_cleans_up(self, tmp_path: Path):
        store = DailyRecordStore(tmp_path)
        with patch("jarvis.metrics.record.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(RecordStoreError):
                store.save(make_record())

        assert list(tmp_path.iterdir()) == []

    def test_load_missing_returns_none(self, tmp_path: Path):
        store = DailyRecordStore(tmp_path)
        assert store.load(date(2026, 1, 5)) is None

    def test_load_invalid_json_raises(self, tmp_path: Path):
        store = DailyRecordStore(tmp_path)
        store.path_for(date(2026, 1, 5)).write_text("{not json")

        with pytest.raises(RecordParseError):
            store.load(date(2026, 1, 5))

    def test_load_invalid_utf8_raises(self, tmp_path: Path):
        store = DailyRecordStore(tmp_path)
        store.path_for(date(2026, 1, 5)).write_bytes(b'{"date": "\xff\xfe"}')

        with pytest.raises(RecordParseError):
            store.load(date(2026, 1, 5))

    @pytest.mark.parametrize(
        "text",
        [
            '{"quality": {"test_coverage": Infinity}}',
            '{"productivity": {"commits": NaN}}',
            '{"context": {"tokens_used": -Infinity}}',
            '{"quality": {"test_coverage": 1e400}}',
        ],
    )
    def test_load_non_finite_raises(self, tmp_path: Path, text):
        store = DailyRecordStore(tmp_path)
        store.path_for(date(2026, 1, 5)).write_text(text)

        with pytest.raises(RecordParseError):
            store.load(date(2026, 1, 5))

    def test_from_dict_rejects_non_finite(self):
        with pytest.raises(RecordParseError, match="not finite"):
            DailyMetricRecord.from_dict(
                {"date": "2026-01-05", "quality": {"review_score_avg": float("nan")}}
            )

    def test_load_or_none_skips_invalid(self, tmp_path: Path, caplog):
        store = DailyRecordStore(tmp_path)
        store.path_for(date(2026, 1, 5)).write_text('{"date": "2026-01-05", "context": 7}')

        with caplog.at_level("WARNING", logger="jarvis.metrics.record"):
            assert store.load_or_none(date(2026, 1, 5)) is None

        assert "Skipping invalid daily record" in caplog.text

    def test_iter_range_skips_missing_and_invalid_days(self, tmp_path: Path):
        store = DailyRecordStore(tmp_path)
        store.save(make_record(date(2026, 1, 1), commits=1))
        store.save(make_record(date(2026, 1, 3), commits=3))
        store.path_for(date(2026, 1, 4)).write_text("garbage")
        store.save(make_record(date(2026, 1, 9), commits=9))

        records = list(store.iter_range(date(2026, 1, 1), date(2026, 1, 5)))

        assert [r.date for r in records] == [date(2026, 1, 1), date(2026, 1, 3)]

    def test_iter_range_empty_directory(self, tmp_path: Path):
        store = DailyRecordStore(tmp_path / "missing")
        assert list(store.iter_range(date(2026, 1, 1), date(2026, 1, 7))) == []

"""Daily metric records and their on-disk store.

One JSON file per calendar day, named ``YYYY-MM-DD.json``:

    {
      "date": "2026-01-05",
      "productivity": {"features_completed": 1, "commits": 4, "prs_merged": 0},
      "quality": {"test_coverage": 81.5, "review_score_avg": 0, "bugs_found": 0},
      "learning": {"skills_invoked": ["tdd"], "patterns_matched": 2},
      "context": {"tokens_used": 12000, "compactions": 1},
      "missing_sources": ["coverage"]
    }

Writes replace the whole file through a temporary file and ``os.replace``.
Concurrent writers are not coordinated: the last replacement wins.
"""

from __future__ import annotations

import json
import logging
import math
import os
import tempfile
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date, timedelta
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# (section, field) pairs for every numeric field, in report order
NUMERIC_FIELDS: tuple[tuple[str, str], ...] = (
    ("productivity", "features_completed"),
    ("productivity", "commits"),
    ("productivity", "prs_merged"),
    ("quality", "test_coverage"),
    ("quality", "review_score_avg"),
    ("quality", "bugs_found"),
    ("learning", "patterns_matched"),
    ("context", "tokens_used"),
    ("context", "compactions"),
)

FLOAT_FIELDS = frozenset({"test_coverage", "review_score_avg"})

# Fields entered by hand; re-collection must not overwrite them
CURATED_FIELDS = ("review_score_avg", "bugs_found")


class RecordParseError(ValueError):
    """A daily record file exists but does not hold a valid record."""


class RecordStoreError(OSError):
    """The record store could not be written."""


def _reject_constant(name: str) -> float:
    # NaN and Infinity are accepted by json.loads but are not JSON
    raise ValueError(f"non-standard constant {name}")


@dataclass
class DailyMetricRecord:
    """One calendar day's development signals.

    Attributes:
        date: The calendar day this record describes.
        features_completed: Commits today whose subject looks like feature work.
        commits: Commits made since local midnight.
        prs_merged: Merge commits made since local midnight.
        test_coverage: Coverage percentage (0-100).
        review_score_avg: Average review score (0-10), entered manually.
        bugs_found: Bugs found, entered manually.
        skills_invoked: Unique skill names used today.
        patterns_matched: Pattern matches logged today.
        tokens_used: Tokens consumed today.
        compactions: Context compactions today.
        missing_sources: Signal sources that were unavailable at collection
            time. Their fields read as zero but were not measured.
    """

    date: date
    features_completed: int = 0
    commits: int = 0
    prs_merged: int = 0
    test_coverage: float = 0.0
    review_score_avg: float = 0.0
    bugs_found: int = 0
    skills_invoked: set[str] = field(default_factory=set)
    patterns_matched: int = 0
    tokens_used: int = 0
    compactions: int = 0
    missing_sources: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the nested on-disk layout."""
        return {
            "date": self.date.isoformat(),
            "productivity": {
                "features_completed": self.features_completed,
                "commits": self.commits,
                "prs_merged": self.prs_merged,
            },
            "quality": {
                "test_coverage": self.test_coverage,
                "review_score_avg": self.review_score_avg,
                "bugs_found": self.bugs_found,
            },
            "learning": {
                "skills_invoked": sorted(self.skills_invoked),
                "patterns_matched": self.patterns_matched,
            },
            "context": {
                "tokens_used": self.tokens_used,
                "compactions": self.compactions,
            },
            "missing_sources": sorted(self.missing_sources),
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=2) + "\n"

    @classmethod
    def from_dict(cls, data: Any, expected_date: date | None = None) -> DailyMetricRecord:
        """Deserialize from the nested on-disk layout.

        Missing sections and fields default to zero/empty, matching records
        written by older collectors.

        Args:
            data: Parsed JSON document.
            expected_date: Date implied by the file name. Used when the
                document has no "date" key.

        Raises:
            RecordParseError: If the document is not a record.
        """
        if not isinstance(data, dict):
            raise RecordParseError("record is not a JSON object")

        raw_date = data.get("date")
        if raw_date is None:
            if expected_date is None:
                raise RecordParseError("record has no date")
            record_date = expected_date
        else:
            try:
                record_date = date.fromisoformat(str(raw_date))
            except ValueError as e:
                raise RecordParseError(f"invalid date {raw_date!r}") from e

        values: dict[str, Any] = {}
        for section, name in NUMERIC_FIELDS:
            section_data = data.get(section, {})
            if not isinstance(section_data, dict):
                raise RecordParseError(f"section '{section}' is not an object")
            value = section_data.get(name, 0)
            if value is None:
                value = 0
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise RecordParseError(f"{section}.{name} is not a number")
            try:
                finite = math.isfinite(float(value))
            except OverflowError:
                finite = False
            if not finite:
                raise RecordParseError(f"{section}.{name} is not finite")
            if name in FLOAT_FIELDS:
                values[name] = float(value)
            else:
                values[name] = int(value)

        skills = data.get("learning", {}).get("skills_invoked", [])
        if not isinstance(skills, list) or not all(isinstance(s, str) for s in skills):
            raise RecordParseError("learning.skills_invoked is not a list of strings")

        missing = data.get("missing_sources", [])
        if not isinstance(missing, list):
            raise RecordParseError("missing_sources is not a list")

        return cls(
            date=record_date,
            skills_invoked=set(skills),
            missing_sources=[str(m) for m in missing],
            **values,
        )

    def get(self, name: str) -> int | float:
        """Get a numeric field by name."""
        return getattr(self, name)


class DailyRecordStore:
    """Directory of daily record files keyed by ISO date."""

    def __init__(self, daily_dir: Path):
        """Initialize the store.

        Args:
            daily_dir: Directory holding the YYYY-MM-DD.json files.
        """
        self.daily_dir = Path(daily_dir)

    def path_for(self, day: date) -> Path:
        """Get the file path for a given day."""
        return self.daily_dir / f"{day.isoformat()}.json"

    def exists(self, day: date) -> bool:
        return self.path_for(day).is_file()

    def load(self, day: date) -> DailyMetricRecord | None:
        """Load the record for a day.

        Returns:
            The record, or None if no file exists for the day.

        Raises:
            RecordParseError: If the file exists but is not a valid record.
            OSError: If the file exists but cannot be read.
        """
        path = self.path_for(day)
        if not path.is_file():
            return None

        try:
            text = path.read_text(encoding="utf-8")
            data = json.loads(text, parse_constant=_reject_constant)
        except ValueError as e:
            raise RecordParseError(f"{path}: invalid JSON: {e}") from e

        try:
            return DailyMetricRecord.from_dict(data, expected_date=day)
        except RecordParseError as e:
            raise RecordParseError(f"{path}: {e}") from e

    def load_or_none(self, day: date) -> DailyMetricRecord | None:
        """Load the record for a day, treating an unparseable file as absent."""
        try:
            return self.load(day)
        except RecordParseError as e:
            logger.warning("Skipping invalid daily record %s", e)
            return None

    def save(self, record: DailyMetricRecord) -> Path:
        """Atomically replace the file for the record's day.

        Returns:
            Path of the written file.

        Raises:
            RecordStoreError: If the file could not be written.
        """
        path = self.path_for(record.date)
        tmp_name = None
        try:
            self.daily_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{record.date.isoformat()}.", suffix=".tmp", dir=self.daily_dir
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(record.to_json())
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise RecordStoreError(f"Could not write {path}: {e}") from e

        logger.info("Wrote daily record %s", path)
        return path

    def iter_range(self, start: date, end: date) -> Iterator[DailyMetricRecord]:
        """Yield valid records for every day in [start, end] that has one.

        Days without a file are skipped. Files that fail to parse are
        skipped with a warning.
        """
        day = start
        while day <= end:
            record = self.load_or_none(day)
            if record is not None:
                yield record
            day += timedelta(days=1)

"""Configuration parsing for jarvis.

Parses .jarvis/config.toml files for storage paths, logging and the
thresholds used by the weekly recommendation rules.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR"})

DEFAULT_ROOT = Path.home() / ".jarvis"

# Counts, used for slicing and date arithmetic
INTEGER_THRESHOLDS = frozenset({"min_unique_skills", "skills_display_cap", "window_days"})

DEFAULT_FEATURE_KEYWORDS = ["feat", "feature", "add", "implement"]

# Checked in this order; the first source that yields a value wins
DEFAULT_COVERAGE_SOURCES = [
    "coverage/coverage-summary.json",
    "coverage.json",
    ".coverage",
]


@dataclass
class PathsConfig:
    """Locations of the record store and the upstream logs."""

    root: Path = DEFAULT_ROOT
    metrics_dir: Path = Path("metrics")
    daily_dir: Path = Path("metrics/daily")
    skills_log: Path = Path("learning/skills-log.json")
    patterns_log: Path = Path("patterns/matches.log")
    context_log: Path = Path("learning/context-usage.log")
    log_dir: Path = Path("logs")

    def resolve(self, value: Path) -> Path:
        """Resolve a configured path against the root directory."""
        value = Path(value).expanduser()
        if value.is_absolute():
            return value
        return Path(self.root).expanduser() / value

    @property
    def metrics_path(self) -> Path:
        return self.resolve(self.metrics_dir)

    @property
    def daily_path(self) -> Path:
        return self.resolve(self.daily_dir)

    @property
    def skills_log_path(self) -> Path:
        return self.resolve(self.skills_log)

    @property
    def patterns_log_path(self) -> Path:
        return self.resolve(self.patterns_log)

    @property
    def context_log_path(self) -> Path:
        return self.resolve(self.context_log)

    @property
    def log_path(self) -> Path:
        return self.resolve(self.log_dir)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PathsConfig:
        """Create a PathsConfig from the [paths] table.

        Raises:
            ValueError: If a path is not a string.
        """
        for name, value in data.items():
            if not isinstance(value, str):
                raise ValueError(f"Path '{name}' must be a string")
        defaults = cls()
        return cls(
            root=Path(data.get("root", defaults.root)).expanduser(),
            metrics_dir=Path(data.get("metrics_dir", defaults.metrics_dir)),
            daily_dir=Path(data.get("daily_dir", defaults.daily_dir)),
            skills_log=Path(data.get("skills_log", defaults.skills_log)),
            patterns_log=Path(data.get("patterns_log", defaults.patterns_log)),
            context_log=Path(data.get("context_log", defaults.context_log)),
            log_dir=Path(data.get("log_dir", defaults.log_dir)),
        )


@dataclass
class LoggingConfig:
    """Configuration for the log file."""

    level: str = "INFO"
    file: str = "jarvis.log"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LoggingConfig:
        """Create a LoggingConfig from the [logging] table.

        Raises:
            ValueError: If the level is not a known logging level.
        """
        level = str(data.get("level", "INFO")).upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level '{level}'. "
                f"Valid levels are: {', '.join(sorted(VALID_LOG_LEVELS))}"
            )
        return cls(level=level, file=data.get("file", "jarvis.log"))


@dataclass
class ThresholdsConfig:
    """Thresholds for the weekly recommendation rules."""

    min_avg_commits: float = 5
    min_avg_coverage: float = 70
    max_avg_tokens: float = 50000
    min_unique_skills: int = 3
    skills_display_cap: int = 10
    window_days: int = 7

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ThresholdsConfig:
        """Create a ThresholdsConfig from the [thresholds] table.

        Raises:
            ValueError: If any threshold is negative or not a number.
        """
        defaults = cls()
        values: dict[str, Any] = {}
        for name in (
            "min_avg_commits",
            "min_avg_coverage",
            "max_avg_tokens",
            "min_unique_skills",
            "skills_display_cap",
            "window_days",
        ):
            value = data.get(name, getattr(defaults, name))
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"Threshold '{name}' must be a number")
            if name in INTEGER_THRESHOLDS and not isinstance(value, int):
                raise ValueError(f"Threshold '{name}' must be an integer")
            if value < 0:
                raise ValueError(f"Threshold '{name}' must not be negative")
            values[name] = value

        if values["window_days"] < 1:
            raise ValueError("Threshold 'window_days' must be at least 1")

        return cls(**values)


@dataclass
class CollectorConfig:
    """Configuration for the daily collector's signal sources."""

    feature_keywords: list[str] = field(
        default_factory=lambda: list(DEFAULT_FEATURE_KEYWORDS)
    )
    coverage_sources: list[str] = field(
        default_factory=lambda: list(DEFAULT_COVERAGE_SOURCES)
    )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CollectorConfig:
        """Create a CollectorConfig from the [collector] table.

        Raises:
            ValueError: If a list field is not a list of strings.
        """
        keywords = data.get("feature_keywords", DEFAULT_FEATURE_KEYWORDS)
        sources = data.get("coverage_sources", DEFAULT_COVERAGE_SOURCES)

        for name, value in (
            ("feature_keywords", keywords),
            ("coverage_sources", sources),
        ):
            if not isinstance(value, list) or not all(
                isinstance(item, str) for item in value
            ):
                raise ValueError(f"Collector '{name}' must be a list of strings")

        return cls(feature_keywords=list(keywords), coverage_sources=list(sources))


@dataclass
class Config:
    """Main configuration container."""

    version: str = "1"
    paths: PathsConfig = field(default_factory=PathsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    thresholds: ThresholdsConfig = field(default_factory=ThresholdsConfig)
    collector: CollectorConfig = field(default_factory=CollectorConfig)
    config_path: Path | None = None

    @classmethod
    def load(
        cls, path: Path | None = None, environ: dict[str, str] | None = None
    ) -> Config:
        """Load configuration from a file.

        Args:
            path: Path to config file. If None, searches for .jarvis/config.toml
                  in current directory and parents, then in the home directory.
            environ: Environment used for JARVIS_* overrides. Defaults to
                     os.environ.

        Returns:
            Loaded configuration.

        Raises:
            FileNotFoundError: If no config file found.
            ValueError: If config file is invalid.
        """
        if path is None:
            path = cls._find_config()

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "rb") as f:
            try:
                data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ValueError(f"Invalid TOML in {path}: {e}") from e

        config = cls._from_dict(data, path)
        config.apply_env(os.environ if environ is None else environ)
        return config

    @classmethod
    def load_or_default(
        cls, path: Path | None = None, environ: dict[str, str] | None = None
    ) -> Config:
        """Load configuration or return default if not found."""
        try:
            return cls.load(path, environ=environ)
        except FileNotFoundError:
            config = cls()
            config.apply_env(os.environ if environ is None else environ)
            return config

    @classmethod
    def _find_config(cls) -> Path:
        """Find config file by searching current directory and parents."""
        cwd = Path.cwd()
        for parent in [cwd, *cwd.parents]:
            config_path = parent / ".jarvis" / "config.toml"
            if config_path.exists():
                return config_path

        home_config = DEFAULT_ROOT / "config.toml"
        if home_config.exists():
            return home_config

        # Return expected path even if it doesn't exist
        return cwd / ".jarvis" / "config.toml"

    @classmethod
    def _from_dict(cls, data: dict[str, Any], path: Path | None) -> Config:
        """Create a Config from a dictionary."""
        for section in ("jarvis", "paths", "logging", "thresholds", "collector"):
            if not isinstance(data.get(section, {}), dict):
                raise ValueError(f"[{section}] must be a table")

        jarvis_section = data.get("jarvis", {})
        version = str(jarvis_section.get("version", "1"))

        return cls(
            version=version,
            paths=PathsConfig.from_dict(data.get("paths", {})),
            logging=LoggingConfig.from_dict(data.get("logging", {})),
            thresholds=ThresholdsConfig.from_dict(data.get("thresholds", {})),
            collector=CollectorConfig.from_dict(data.get("collector", {})),
            config_path=path,
        )

    def apply_env(self, environ: dict[str, str]) -> None:
        """Apply JARVIS_ROOT, JARVIS_LOG_LEVEL and JARVIS_LOG_DIR overrides.

        Raises:
            ValueError: If JARVIS_LOG_LEVEL is not a known level.
        """
        root = environ.get("JARVIS_ROOT")
        if root:
            self.paths.root = Path(root).expanduser()

        level = environ.get("JARVIS_LOG_LEVEL")
        if level:
            self.logging = LoggingConfig.from_dict(
                {"level": level, "file": self.logging.file}
            )

        log_dir = environ.get("JARVIS_LOG_DIR")
        if log_dir:
            self.paths.log_dir = Path(log_dir).expanduser()

    def get_value(self, key_path: str) -> Any:
        """Get a configuration value by dot-separated path.

        Args:
            key_path: Dot-separated path to value (e.g. "thresholds.window_days").

        Returns:
            The configuration value.

        Raises:
            KeyError: If path is invalid.
        """
        parts = key_path.split(".")
        current: Any = self
        for part in parts:
            if hasattr(current, part):
                current = getattr(current, part)
            elif isinstance(current, dict) and part in current:
                current = current[part]
            else:
                raise KeyError(f"Invalid config path: {key_path}")
        return current

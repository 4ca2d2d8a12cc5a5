"""Jarvis - Development workflow metrics for AI-assisted coding.

Jarvis records per-day development signals (commits, coverage, skill usage,
token consumption) and turns them into weekly summaries with recommendations.
"""

__version__ = "0.1.0"
__author__ = "Jarvis Team"

from jarvis.config import Config, PathsConfig, ThresholdsConfig

__all__ = [
    "Config",
    "PathsConfig",
    "ThresholdsConfig",
]

"""Markdown rendering of weekly summaries."""

from __future__ import annotations

from pathlib import Path

from jarvis.metrics.aggregator import WeeklySummary


def _num(value: float) -> str:
    """Format a number without a trailing .0 on whole values."""
    if isinstance(value, float) and not value.is_integer():
        return f"{value:,.1f}"
    return f"{int(value):,}"


def _avg(value: float) -> str:
    """Format an average, keeping one decimal."""
    if isinstance(value, int):
        return f"{value:,}"
    return f"{value:,.1f}"


def _trend_cell(summary: WeeklySummary, name: str, use_average: bool = False) -> str:
    direction = summary.trend_of(name, use_average=use_average)
    return direction.symbol if direction is not None else ""


def render_report(summary: WeeklySummary, skills_cap: int = 10) -> str:
    """Render a summary as the weekly Markdown report.

    Args:
        summary: The computed summary.
        skills_cap: Maximum number of skills listed (alphabetical, first N).

    Returns:
        The report text, ending with a newline.
    """
    compare = summary.previous is not None
    skills = summary.top_skills(skills_cap)

    def table(header: list[str], rows: list[list[str]]) -> list[str]:
        if compare:
            header = header + ["Trend"]
        out = [
            "| " + " | ".join(header) + " |",
            "|" + "|".join("-" * (len(h) + 2) for h in header) + "|",
        ]
        for row in rows:
            out.append("| " + " | ".join(row) + " |")
        return out

    def row(label: str, name: str, *cells: str, use_average: bool = False) -> list[str]:
        values = [label, *cells]
        if compare:
            values.append(_trend_cell(summary, name, use_average=use_average))
        return values

    lines = [
        "# Weekly Metrics Summary",
        "",
        f"**Period:** {summary.start.isoformat()} to {summary.end.isoformat()}",
        f"**Days Tracked:** {summary.days_count}",
        "",
        "---",
        "",
        "## Productivity",
        "",
    ]
    lines += table(
        ["Metric", "Total", "Daily Average"],
        [
            row(
                "Features Completed",
                "features_completed",
                _num(summary.total("features_completed")),
                _avg(summary.average("features_completed")),
            ),
            row(
                "Commits",
                "commits",
                _num(summary.total("commits")),
                _avg(summary.average("commits")),
            ),
            row(
                "PRs Merged",
                "prs_merged",
                _num(summary.total("prs_merged")),
                _avg(summary.average("prs_merged")),
            ),
        ],
    )

    lines += ["", "---", "", "## Quality", ""]
    lines += table(
        ["Metric", "Value"],
        [
            row(
                "Average Test Coverage",
                "test_coverage",
                f"{_avg(summary.average('test_coverage'))}%",
                use_average=True,
            ),
            row(
                "Average Review Score",
                "review_score_avg",
                f"{_avg(summary.average('review_score_avg'))}/10",
                use_average=True,
            ),
            row("Total Bugs Found", "bugs_found", _num(summary.total("bugs_found"))),
        ],
    )
    if summary.coverage_missing_days:
        lines += [
            "",
            f"_Coverage data unavailable on {summary.coverage_missing_days} "
            f"of {summary.days_count} tracked day(s)._",
        ]

    lines += [
        "",
        "---",
        "",
        "## Learning",
        "",
        f"### Skills Used ({len(summary.skills)} unique)",
    ]
    lines += [f"- {skill}" for skill in skills]
    lines.append("")
    lines += table(
        ["Metric", "Value"],
        [
            row(
                "Patterns Matched",
                "patterns_matched",
                _num(summary.total("patterns_matched")),
            )
        ],
    )

    lines += ["", "---", "", "## Context Usage", ""]
    lines += table(
        ["Metric", "Total", "Daily Average"],
        [
            row(
                "Tokens Used",
                "tokens_used",
                _num(summary.total("tokens_used")),
                _avg(summary.average("tokens_used")),
            ),
            row(
                "Compactions",
                "compactions",
                _num(summary.total("compactions")),
                _avg(summary.average("compactions")),
            ),
        ],
    )

    lines += ["", "---", "", "## Recommendations", ""]
    lines += [f"- {item}" for item in summary.recommendations]

    lines += [
        "",
        "---",
        "",
        f"*Generated on {summary.generated_at.strftime('%Y-%m-%d %H:%M:%S')}*",
    ]
    return "\n".join(lines) + "\n"


def report_path(metrics_dir: Path, generated_on: str) -> Path:
    """Path of the report file for a generation date (YYYY-MM-DD)."""
    return Path(metrics_dir) / f"weekly-summary-{generated_on}.md"


def write_report(text: str, path: Path) -> Path:
    """Write report text to a file, creating parent directories.

    Raises:
        OSError: If the file could not be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path

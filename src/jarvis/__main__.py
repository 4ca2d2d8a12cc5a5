"""CLI entry point for jarvis.

Usage:
    python -m jarvis <command> [options]

Commands:
    metrics collect [--date YYYY-MM-DD] [--repo PATH]
    metrics weekly [--start D] [--end D] [--compare] [--no-write] [--output PATH]
    metrics show [--date YYYY-MM-DD]
    hook capture
    hook compact
    hook session-start
    config validate
    config get <key>
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import NoReturn

from jarvis import __version__
from jarvis.config import Config
from jarvis.log import setup_logging

logger = logging.getLogger("jarvis")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="jarvis",
        description="Development workflow metrics for AI-assisted coding",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--config",
        help="Path to config.toml (default: search .jarvis/config.toml, then ~/.jarvis)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # metrics command
    metrics_parser = subparsers.add_parser("metrics", help="Daily and weekly metrics")
    metrics_subparsers = metrics_parser.add_subparsers(
        dest="metrics_command", help="Metrics subcommands"
    )

    # metrics collect
    collect_parser = metrics_subparsers.add_parser(
        "collect", help="Collect today's metrics into the daily record"
    )
    collect_parser.add_argument(
        "--date",
        help="Day to collect (YYYY-MM-DD, default: today)",
    )
    collect_parser.add_argument(
        "--repo",
        help="Project directory for git and coverage signals (default: cwd)",
    )

    # metrics weekly
    weekly_parser = metrics_subparsers.add_parser(
        "weekly", help="Generate the weekly summary report"
    )
    weekly_parser.add_argument(
        "--start",
        help="First day of the period (default: window_days before --end)",
    )
    weekly_parser.add_argument(
        "--end",
        help="Last day of the period, inclusive (default: today)",
    )
    weekly_parser.add_argument(
        "--compare",
        action="store_true",
        help="Show trends against the preceding period of equal length",
    )
    weekly_parser.add_argument(
        "--no-write",
        action="store_true",
        help="Print the report without saving it",
    )
    weekly_parser.add_argument(
        "--output",
        "-o",
        help="Report file path (default: metrics/weekly-summary-<today>.md)",
    )

    # metrics show
    show_parser = metrics_subparsers.add_parser("show", help="Print one day's record")
    show_parser.add_argument(
        "--date",
        help="Day to show (YYYY-MM-DD, default: today)",
    )

    # hook command
    hook_parser = subparsers.add_parser("hook", help="Host hook entry points")
    hook_parser.add_argument(
        "hook_command",
        choices=["capture", "compact", "session-start"],
        help="Hook to run (event JSON on stdin)",
    )

    # config command
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(
        dest="config_command", help="Config subcommands"
    )

    # config validate
    config_subparsers.add_parser("validate", help="Validate configuration")

    # config get
    get_parser = config_subparsers.add_parser("get", help="Get configuration value")
    get_parser.add_argument("key", help="Configuration key (e.g. thresholds.window_days)")

    return parser


def load_config(args: argparse.Namespace) -> Config:
    """Load configuration for a command and set up logging.

    Raises:
        ValueError: If the config file is invalid.
    """
    path = Path(args.config) if getattr(args, "config", None) else None
    config = Config.load_or_default(path)
    setup_logging(config)
    return config


def cmd_hook(args: argparse.Namespace) -> int:
    """Handle 'hook' command. Hooks never fail the host."""
    try:
        config = load_config(args)
    except (ValueError, OSError):
        return 0

    if args.hook_command == "session-start":
        from jarvis.hooks import session_start

        return session_start.main(config)

    from jarvis.hooks import capture

    return capture.main(
        config,
        compaction=args.hook_command == "compact",
        environ=dict(os.environ),
    )


def cmd_config_get(args: argparse.Namespace) -> int:
    """Handle 'config get' command."""
    try:
        config = load_config(args)
        value = config.get_value(args.key)
        print(value)
        return 0
    except KeyError:
        print(f"Error: Config key not found: {args.key}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error reading config: {e}", file=sys.stderr)
        return 1


def cmd_config_validate(args: argparse.Namespace) -> int:
    """Handle 'config validate' command."""
    path = Path(args.config) if getattr(args, "config", None) else None
    try:
        config = Config.load(path)
        print(f"Configuration valid: {config.config_path}")
        print(f"  Version: {config.version}")
        print(f"  Root: {config.paths.root}")
        print(f"  Daily records: {config.paths.daily_path}")
        print(f"  Log level: {config.logging.level}")
        print(f"  Window: {config.thresholds.window_days} days")
        return 0
    except FileNotFoundError as e:
        print(f"No configuration found: {e}", file=sys.stderr)
        return 0  # Missing config is not an error
    except Exception as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1


def cmd_metrics(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    """Dispatch 'metrics' subcommands."""
    from jarvis.metrics.cli import cmd_metrics_collect, cmd_metrics_show, cmd_metrics_weekly

    handlers = {
        "collect": cmd_metrics_collect,
        "weekly": cmd_metrics_weekly,
        "show": cmd_metrics_show,
    }
    handler = handlers.get(args.metrics_command)
    if handler is None:
        parser.parse_args(["metrics", "--help"])
        return 1

    try:
        config = load_config(args)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    try:
        return handler(args, config)
    except OSError as e:
        logger.error("metrics %s failed: %s", args.metrics_command, e)
        print(f"Error: {e}", file=sys.stderr)
        return 1


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "metrics":
        sys.exit(cmd_metrics(args, parser))
    elif args.command == "hook":
        sys.exit(cmd_hook(args))
    elif args.command == "config":
        if args.config_command == "validate":
            sys.exit(cmd_config_validate(args))
        elif args.config_command == "get":
            sys.exit(cmd_config_get(args))
        else:
            parser.parse_args(["config", "--help"])
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()

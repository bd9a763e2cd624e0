#!/usr/bin/env python3
"""hackview - live terminal dashboard for Claude Code sessions.

Entry point for the CLI application.
"""

import argparse
import logging
import os


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def positive_float(value: str) -> float:
    number = float(value)
    if not number > 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0, got {value}")
    return number


def setup_logging(log_file: str | None, level: str | None):
    """Log to a file only; the dashboard owns the terminal."""
    if not log_file:
        logging.getLogger().addHandler(logging.NullHandler())
        return
    level_name = (level or os.environ.get("HACKVIEW_LOG_LEVEL") or "WARNING").upper()
    logging.basicConfig(
        filename=os.path.expanduser(log_file),
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Watch the most recent Claude Code sessions live",
        prog="hackview",
        epilog="Config file format (~/.hackview.json): "
               '{"dirs": ["~/.claude/projects/-Users-me"], "sessions": 2, "budget": 40}',
    )
    parser.add_argument("--version", "-v", action="store_true", help="Show version")
    parser.add_argument(
        "--dirs", "-d",
        help="Comma-separated list of .claude/projects dirs to watch (default: ~/.claude/projects)",
    )
    parser.add_argument(
        "--sessions", "-s",
        type=positive_int,
        help="Number of session panels to show (default: 2)",
    )
    parser.add_argument("--budget", "-b", type=positive_float, help="Session budget in USD (default: 40)")
    parser.add_argument("--config", "-c", help="Path to config JSON file")
    parser.add_argument("--usage-interval", type=positive_float, help="Seconds between ccusage polls (default: 60)")
    parser.add_argument("--no-usage", action="store_true", help="Do not poll ccusage")
    parser.add_argument(
        "--show-first-fragment",
        action="store_true",
        help="Show streamed messages from their first fragment instead of waiting for the second",
    )
    parser.add_argument("--log-file", help="Write logs to this file")
    parser.add_argument("--log-level", help="Log level (default: WARNING)")
    return parser


def main(argv=None):
    """Main entry point for hackview CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        from . import __version__
        print(f"hackview {__version__}")
        return

    setup_logging(args.log_file, args.log_level)

    from .config import load_config

    config = load_config(
        dirs=args.dirs,
        sessions=args.sessions,
        budget=args.budget,
        config_path=args.config,
        usage_interval=args.usage_interval,
        usage_enabled=not args.no_usage,
        emit_first_fragment=args.show_first_fragment,
    )
    logging.getLogger(__name__).info(
        f"Watching {len(config.dirs)} directories with {config.sessions} session slots"
    )

    from .app import HackviewApp

    HackviewApp(config).run()


if __name__ == "__main__":
    main()

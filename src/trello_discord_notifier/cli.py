"""CLI commands for trello-discord-notifier.

This module provides command-line entry points for:
- Running one poll cycle (fetch, diff, notify, persist)
- Validating configuration
- Dumping configuration (with secrets redacted)
- Showing deprecated environment variables
"""
from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys

import structlog

from trello_discord_notifier.app.jobs.poll_board import poll_board
from trello_discord_notifier.config.env_aliases import _DEPRECATED_ALIASES
from trello_discord_notifier.config.load import load_settings
from trello_discord_notifier.config.redact import redact_settings_dict, scrub_secrets_in_text
from trello_discord_notifier.config.validate import ConfigValidationError
from trello_discord_notifier.observability.logger import configure_logging
from trello_discord_notifier.observability.metrics import write_textfile

log = structlog.get_logger(__name__)


def cmd_run(args: argparse.Namespace) -> int:
    """Run a single poll cycle.

    Exit codes:
        0: Cycle completed (individual notification failures do not count)
        1: Configuration invalid, or the board could not be fetched or processed
    """
    try:
        settings = load_settings(config_path=args.config)
    except ConfigValidationError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    configure_logging(
        log_level=settings.observability.log_level,
        json_logs=settings.observability.json_logs,
        log_format=settings.observability.log_format,
    )

    exit_code = 0
    try:
        asyncio.run(poll_board(settings))
    except Exception as e:
        log.error(
            "poll_board.failed",
            error=scrub_secrets_in_text(f"{e.__class__.__name__}: {e}"),
        )
        exit_code = 1
    finally:
        metrics_path = settings.observability.metrics_textfile
        if metrics_path is not None:
            try:
                write_textfile(metrics_path)
            except OSError:
                log.exception("metrics.textfile_write_failed", path=str(metrics_path))

    return exit_code


def cmd_validate_config(args: argparse.Namespace) -> int:
    """Validate configuration and exit with appropriate code.

    Exit codes:
        0: Configuration is valid
        1: Configuration is invalid
    """
    try:
        settings = load_settings(config_path=args.config)
    except ConfigValidationError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    print("✓ Configuration is valid")
    print(f"  - State file: {settings.state.path}")
    print(f"  - Delay between notifications: {settings.discord.delay_seconds}s")
    print(f"  - Metrics textfile: {settings.observability.metrics_textfile or 'disabled'}")
    return 0


def cmd_dump_config(args: argparse.Namespace) -> int:
    """Dump current configuration as JSON (with secrets redacted)."""
    try:
        settings = load_settings(config_path=args.config)
    except ConfigValidationError as e:
        print(f"✗ Failed to load configuration: {e}", file=sys.stderr)
        return 1

    redacted = redact_settings_dict(settings.model_dump(mode="json"))
    print(json.dumps(redacted, indent=2, default=str))
    return 0


def cmd_show_deprecated(args: argparse.Namespace) -> int:
    """Show deprecated environment variables that are in use."""
    found = []
    for old_name, new_name in _DEPRECATED_ALIASES.items():
        if old_name in os.environ:
            found.append((old_name, new_name, os.environ.get(new_name) is None))

    if not found:
        print("No deprecated environment variables in use.")
        return 0

    print("Deprecated environment variables detected:")
    print()
    for old_name, new_name, needs_migration in found:
        status = "NEEDS MIGRATION" if needs_migration else "has canonical override"
        print(f"  {old_name} → {new_name} ({status})")

    print()
    print("These variables will be removed in a future version.")
    print("Please migrate to the canonical names.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trello-discord-notifier",
        description="Post Trello board changes to a Discord webhook",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML config file (default: CONFIG_PATH or config/config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser(
        "run",
        help="Fetch the board once, post detected changes and save the snapshot",
    )
    run_parser.set_defaults(func=cmd_run)

    validate_parser = subparsers.add_parser(
        "validate-config",
        help="Validate configuration and exit",
    )
    validate_parser.set_defaults(func=cmd_validate_config)

    dump_parser = subparsers.add_parser(
        "dump-config",
        help="Dump configuration as JSON (secrets redacted)",
    )
    dump_parser.set_defaults(func=cmd_dump_config)

    deprecated_parser = subparsers.add_parser(
        "show-deprecated",
        help="Show deprecated environment variables in use",
    )
    deprecated_parser.set_defaults(func=cmd_show_deprecated)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

"""CLI entry point for mailstore."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

from .commands import (
    build_predicate,
    create_folder_cmd,
    expunge_cmd,
    list_folders_cmd,
    list_messages_cmd,
)
from .config import load_config
from .errors import MailStoreError

logger = logging.getLogger("mailstore")


def non_negative_int(value: str) -> int:
    """argparse type for counts that may be zero but not negative."""
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or greater, got {number}")
    return number


def add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add common arguments to a parser."""
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=Path("config.toml"),
        help="Path to configuration file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        description="Browse and maintain a mail account's folders",
    )
    add_common_args(parser)
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    folders_parser = subparsers.add_parser("folders", help="List folders")
    add_common_args(folders_parser)

    list_parser = subparsers.add_parser("list", help="List messages in a folder")
    add_common_args(list_parser)
    list_parser.add_argument("folder", help="Folder to list (e.g., INBOX)")
    list_parser.add_argument("--limit", type=non_negative_int, default=50, help="Show at most N messages (0 for all)")
    list_parser.add_argument("--from", dest="sender", help="Only messages whose sender contains this")
    list_parser.add_argument("--subject", help="Only messages whose subject contains this")
    list_parser.add_argument("--unseen", action="store_true", help="Only unread messages")
    list_parser.add_argument(
        "--since",
        type=date.fromisoformat,
        help="Only messages that arrived on or after this date (YYYY-MM-DD)",
    )

    create_parser = subparsers.add_parser("create", help="Create a folder")
    add_common_args(create_parser)
    create_parser.add_argument("folder", help="Folder path to create")
    create_parser.add_argument(
        "--holds-folders",
        action="store_true",
        help="Create a folder for subfolders only",
    )

    expunge_parser = subparsers.add_parser("expunge", help="Remove deleted messages from a folder")
    add_common_args(expunge_parser)
    expunge_parser.add_argument("folder", help="Folder to expunge")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        config = load_config(args.config)
    except FileNotFoundError:
        print(f"Config file not found: {args.config}", file=sys.stderr)
        return 1

    level = logging.DEBUG if args.verbose else getattr(logging, config.logging.level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        if args.command == "folders":
            list_folders_cmd(config)
        elif args.command == "list":
            predicate = build_predicate(args.sender, args.subject, args.unseen, args.since)
            if list_messages_cmd(config, args.folder, predicate, args.limit) < 0:
                return 1
        elif args.command == "create":
            create_folder_cmd(config, args.folder, args.holds_folders)
        elif args.command == "expunge":
            if expunge_cmd(config, args.folder) < 0:
                return 1
    except MailStoreError as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

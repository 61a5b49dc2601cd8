"""Command line entry point for one-off page syncs.

Usage:
    blocksync check PAGE_ID
    blocksync create --parent-page ID --title TITLE [--url URL] --blocks FILE
    blocksync refresh PAGE_ID --blocks FILE [--title TITLE] [--exclude-media]
    blocksync highlights PAGE_ID --highlights FILE [--sentinel TEXT]
    blocksync search [QUERY] [--type page|data_source]

``--blocks`` files hold a JSON array of Notion block objects.
``--highlights`` files hold a JSON array of ``{"text": ..., "color": ...}``.

Exit codes: 0 on success, 1 when the operation failed, 2 on bad
configuration or unreadable input.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from blocksync.adapters.notion.blocks import build_highlight_blocks
from blocksync.adapters.notion.client import NotionSyncClient
from blocksync.adapters.notion.models import ParentReference
from blocksync.config import AppConfig, load_config
from blocksync.core.logging_utils import generate_correlation_id, setup_json_logging

logger = logging.getLogger(__name__)

__all__ = ["build_parser", "main", "run_command"]

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


class InputFileError(Exception):
    """Raised when an input file cannot be read as a JSON array of objects."""


def _read_json_array(path: str) -> list[Any]:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        msg = f"Cannot read {path}: {exc}"
        raise InputFileError(msg) from exc
    if not isinstance(data, list):
        msg = f"{path} must contain a JSON array"
        raise InputFileError(msg)
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            msg = f"{path}: entry {index} must be a JSON object"
            raise InputFileError(msg)
    return data


def _emit(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    sys.stdout.flush()


async def run_command(args: argparse.Namespace, cfg: AppConfig) -> int:
    """Run one subcommand against the Notion API and print its result as JSON."""
    correlation_id = generate_correlation_id()
    logger.info(
        "cli_command_started",
        extra={"command": args.command, "correlation_id": correlation_id},
    )

    async with NotionSyncClient(cfg.notion) as client:
        orchestrator = client.orchestrator

        if args.command == "check":
            exists = await orchestrator.check_exists(args.page_id)
            _emit({"page_id": args.page_id, "exists": exists})
            return EXIT_OK if exists is not None else EXIT_FAILED

        if args.command == "search":
            search_filter = {"property": "object", "value": args.type} if args.type else None
            result = await orchestrator.search(args.query, filter=search_filter)
        elif args.command == "create":
            parent = (
                ParentReference.page(args.parent_page)
                if args.parent_page
                else ParentReference.collection(args.parent_collection)
            )
            result = await orchestrator.save_page(
                title=args.title,
                page_url=args.url or "",
                parent=parent,
                blocks=_read_json_array(args.blocks),
                site_icon=args.icon,
                exclude_media=args.exclude_media,
            )
        elif args.command == "refresh":
            result = await orchestrator.refresh_all(
                args.page_id,
                _read_json_array(args.blocks),
                title=args.title,
                exclude_media=args.exclude_media,
            )
        else:
            section = build_highlight_blocks(
                _read_json_array(args.highlights),
                title=args.sentinel or cfg.notion.highlight_section_header,
            )
            result = await orchestrator.refresh_section(
                args.page_id, section, sentinel=args.sentinel
            )

    _emit(result.model_dump(exclude_none=True))
    logger.info(
        "cli_command_finished",
        extra={
            "command": args.command,
            "success": result.success,
            "correlation_id": correlation_id,
        },
    )
    return EXIT_OK if result.success else EXIT_FAILED


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blocksync", description="Create and refresh Notion pages from block JSON"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Report whether a page exists")
    check.add_argument("page_id")

    create = subparsers.add_parser("create", help="Create a page from a blocks file")
    parent = create.add_mutually_exclusive_group(required=True)
    parent.add_argument("--parent-page", help="Create the page under this page")
    parent.add_argument("--parent-collection", help="Create the page in this data source")
    create.add_argument("--title", required=True)
    create.add_argument("--url", default=None, help="Value for the page's URL property")
    create.add_argument("--blocks", required=True, help="JSON array of blocks")
    create.add_argument("--icon", default=None, help="External icon URL")
    create.add_argument("--exclude-media", action="store_true")

    refresh = subparsers.add_parser("refresh", help="Replace every block of a page")
    refresh.add_argument("page_id")
    refresh.add_argument("--blocks", required=True, help="JSON array of blocks")
    refresh.add_argument("--title", default=None, help="Also update the page title")
    refresh.add_argument("--exclude-media", action="store_true")

    highlights = subparsers.add_parser(
        "highlights", help="Replace the highlight section of a page"
    )
    highlights.add_argument("page_id")
    highlights.add_argument("--highlights", required=True, help="JSON array of highlights")
    highlights.add_argument("--sentinel", default=None, help="Section heading text")

    search = subparsers.add_parser(
        "search", help="Find pages or data sources to use as parents"
    )
    search.add_argument("query", nargs="?", default=None)
    search.add_argument("--type", choices=["page", "data_source"], default=None)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        cfg = load_config()
    except RuntimeError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    setup_json_logging(
        cfg.runtime.log_level,
        use_loguru=cfg.runtime.use_loguru,
        log_file=cfg.runtime.log_file,
    )

    try:
        return asyncio.run(run_command(args, cfg))
    except InputFileError as exc:
        print(f"Input error: {exc}", file=sys.stderr)
        return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())

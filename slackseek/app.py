"""slackseek command line: run the MCP server or query Slack directly."""

import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import datetime

import certifi

# Fix macOS Python SSL cert issue
os.environ.setdefault("SSL_CERT_FILE", certifi.where())

from rich.console import Console
from rich.table import Table

from .config import Config
from .errors import ConfigError, SlackSeekError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

console = Console()
err_console = Console(stderr=True)


def configure_logging(config: Config) -> None:
    """Send logs to stderr (stdout belongs to MCP JSON-RPC) and optionally a file."""
    log_level = getattr(logging, config.log_level, logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.log_dir:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        log_file = config.log_dir / f"slackseek-{datetime.now():%Y-%m-%d}.log"
        handlers.append(logging.FileHandler(str(log_file)))

    logging.basicConfig(level=log_level, format=LOG_FORMAT, handlers=handlers, force=True)

    # Quiet noisy third-party loggers.
    for noisy in ("slack_sdk", "aiohttp", "mcp", "httpx"):
        logging.getLogger(noisy).setLevel(max(log_level, logging.WARNING))


def _print_search(data: dict) -> None:
    table = Table(title=f"{len(data['messages'])} of {data['total']} result(s)")
    table.add_column("When", no_wrap=True)
    table.add_column("Channel")
    table.add_column("User")
    table.add_column("Text")
    for msg in data["messages"]:
        table.add_row(
            msg.get("timestamp", ""),
            f"#{msg['channelName']}" if msg.get("channelName") else msg.get("channelId", ""),
            msg.get("userName") or msg.get("userId", ""),
            msg.get("text", ""),
        )
    console.print(table)
    if data["hasMore"]:
        console.print("[dim]More results available.[/dim]")


def _print_thread(data: dict) -> None:
    table = Table(title=f"{len(data['replies'])} repl(ies)")
    table.add_column("ts", no_wrap=True)
    table.add_column("User")
    table.add_column("Text")
    table.add_column("Flags")
    rows = ([data["parent"]] if "parent" in data else []) + data["replies"]
    for msg in rows:
        flags = []
        if msg is data.get("parent"):
            flags.append("root")
        if msg.get("isEdited"):
            flags.append("edited")
        if msg.get("isDeleted"):
            flags.append("deleted")
        table.add_row(msg["ts"], msg.get("userName") or msg.get("userId", ""), msg.get("text", ""), ",".join(flags))
    console.print(table)
    if data.get("nextCursor"):
        console.print(f"[dim]Next page: --cursor {data['nextCursor']}[/dim]")


async def _search(args: argparse.Namespace, config: Config) -> dict:
    from .mcp_server import build_services
    from .models import SearchRequest

    services = build_services(config)
    channel_ids = args.channel or config.channel_ids
    result = await services.search.search(
        SearchRequest(
            query=args.query,
            channel_ids=channel_ids or None,
            max_result_count=args.max,
            team_id=config.team_id,
        )
    )
    return result.to_dict()


async def _thread(args: argparse.Namespace, config: Config) -> dict:
    from .mcp_server import build_services
    from .models import ThreadRequest

    services = build_services(config)
    result = await services.threads.thread_replies(
        ThreadRequest(
            channel_id=args.channel_id,
            thread_ts=args.thread_ts,
            limit=args.limit,
            cursor=args.cursor,
            order=args.order,
        )
    )
    return result.to_dict()


def _query_command(args: argparse.Namespace) -> None:
    try:
        config = Config.from_env()
    except ConfigError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)
    configure_logging(config)

    runner = _search if args.command == "search" else _thread
    try:
        data = asyncio.run(runner(args, config))
    except SlackSeekError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    if args.json:
        print(json.dumps(data, ensure_ascii=False, indent=2))
    elif args.command == "search":
        _print_search(data)
    else:
        _print_thread(data)


# ---------------------------------------------------------------------------
# CLI entrypoint
# ---------------------------------------------------------------------------


class _SlackseekParser(argparse.ArgumentParser):
    """ArgumentParser that shows our help instead of argparse's error message."""

    def error(self, message: str) -> None:
        _print_help()
        sys.exit(2)


def _build_parser() -> argparse.ArgumentParser:
    parser = _SlackseekParser(
        prog="slackseek",
        description="slackseek: Slack search and threads for MCP clients",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("run", help="Start the MCP server on stdio (default)")

    se = sub.add_parser("search", help="Search Slack messages")
    se.add_argument("query", help="Slack search query")
    se.add_argument("--channel", action="append", default=None, help="Channel ID to restrict to (repeatable)")
    se.add_argument("--max", type=int, default=None, help="Maximum number of results")
    se.add_argument("--json", action="store_true", help="Print raw JSON")

    th = sub.add_parser("thread", help="Fetch one page of thread replies")
    th.add_argument("channel_id", help="Channel ID (C...)")
    th.add_argument("thread_ts", help="Root message timestamp")
    th.add_argument("--limit", type=int, default=None, help="Page size")
    th.add_argument("--cursor", default=None, help="Cursor from a previous page")
    th.add_argument("--order", choices=["oldest", "newest"], default="oldest")
    th.add_argument("--json", action="store_true", help="Print raw JSON")

    sub.add_parser("help", help="Show this help message")

    return parser


def _print_help() -> None:
    print("""slackseek: Slack search and threads for MCP clients

Usage: slackseek <command> [options]

Commands:
  run              Start the MCP server on stdio
  search           Search Slack messages
  thread           Fetch one page of thread replies
  help             Show this help message

Examples:
  slackseek run                                  Start the MCP server
  slackseek search "deploy" --max 10             Search all channels
  slackseek search "deploy" --channel C012345    Search one channel
  slackseek thread C012345 1700000000.000100     Show a thread

Run 'slackseek <command> --help' for details on a specific command.""")


def main() -> None:
    """Sync entrypoint for the console script."""
    parser = _build_parser()
    args = parser.parse_args()

    if args.command == "run":
        from .mcp_server import main as run_server
        run_server()
    elif args.command in ("search", "thread"):
        _query_command(args)
    else:
        # No command, or 'help'
        _print_help()

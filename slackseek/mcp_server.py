"""slackseek MCP server: exposes Slack search and thread retrieval as tools."""

import json
import logging
import sys
from dataclasses import dataclass

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations
from slack_sdk.web.async_client import AsyncWebClient

from .app import configure_logging
from .config import Config
from .errors import ConfigError, SlackSeekError, ValidationError
from .events import EventLog
from .gateway import SlackGateway, create_client
from .metrics import Metrics
from .models import SearchRequest, ThreadRequest
from .search import SearchResolver
from .threads import ThreadResolver

_SLACK_READ_ANNOTATIONS = ToolAnnotations(
    readOnlyHint=True,
    destructiveHint=False,
    idempotentHint=True,
    openWorldHint=True,
)
_LOCAL_READ_ANNOTATIONS = ToolAnnotations(
    readOnlyHint=True,
    destructiveHint=False,
    idempotentHint=True,
    openWorldHint=False,
)

logger = logging.getLogger(__name__)

mcp = FastMCP("slackseek")


@dataclass
class Services:
    """Everything the tools need, wired once at startup."""

    config: Config
    metrics: Metrics
    events: EventLog
    gateway: SlackGateway
    search: SearchResolver
    threads: ThreadResolver


def build_services(config: Config, client: AsyncWebClient | None = None) -> Services:
    """Composition root: the only place collaborators get default instances."""
    metrics = Metrics()
    events = EventLog(metrics)
    gateway = SlackGateway(client or create_client(config.slack_user_token), events)
    return Services(
        config=config,
        metrics=metrics,
        events=events,
        gateway=gateway,
        search=SearchResolver(gateway, events),
        threads=ThreadResolver(gateway, events),
    )


# Lazy-loaded singletons (avoid import-time side effects).
_config: Config | None = None
_services: Services | None = None


def _get_config() -> Config:
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def _get_services() -> Services:
    global _services
    if _services is None:
        _services = build_services(_get_config())
    return _services


def _to_json(data: dict) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2)


@mcp.tool(annotations=_SLACK_READ_ANNOTATIONS)
async def search_messages(query: str, maxResultCount: int | None = None) -> str:
    """Search messages in the Slack workspace.

    Uses Slack's search syntax. When SLACK_CHANNEL_IDS is configured the
    search is restricted to those channels. Returns JSON with ``messages``,
    ``total`` and ``hasMore``.
    """
    services = _get_services()
    request = SearchRequest(
        query=query,
        channel_ids=services.config.channel_ids or None,
        max_result_count=maxResultCount,
        team_id=services.config.team_id,
    )
    try:
        result = await services.search.search(request)
    except ValidationError as exc:
        return f"Error: {exc}"
    except SlackSeekError as exc:
        logger.error("search_messages failed: %s", exc)
        raise
    return _to_json(result.to_dict())


@mcp.tool(annotations=_SLACK_READ_ANNOTATIONS)
async def get_thread_replies(
    channelId: str,
    threadTs: str,
    limit: int | None = None,
    cursor: str | None = None,
    order: str = "oldest",
) -> str:
    """Fetch one page of replies for a Slack thread.

    ``threadTs`` is the root message timestamp. Only a single page is
    returned; pass the returned ``nextCursor`` back as ``cursor`` to read
    further. ``order`` is ``oldest`` (default) or ``newest``.
    """
    services = _get_services()
    request = ThreadRequest(
        channel_id=channelId,
        thread_ts=threadTs,
        limit=limit,
        cursor=cursor or None,
        order=order or "oldest",
    )
    try:
        result = await services.threads.thread_replies(request)
    except ValidationError as exc:
        return f"Error: {exc}"
    except SlackSeekError as exc:
        logger.error("get_thread_replies failed: %s", exc)
        raise
    return _to_json(result.to_dict())


@mcp.tool(annotations=_LOCAL_READ_ANNOTATIONS)
async def search_stats() -> str:
    """Report request counters, success rate and latency percentiles."""
    return _to_json(_get_services().metrics.stats().to_dict())


def main() -> None:
    """Entry point for the slackseek-mcp console script."""
    try:
        config = _get_config()
    except ConfigError as exc:
        logger.error("slackseek MCP server cannot start: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    configure_logging(config)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()

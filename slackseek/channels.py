"""Channel ID → name resolution for ``in:<name>`` search scoping."""

import asyncio
import logging

from .errors import classify
from .events import EventLog
from .gateway import SlackGateway

logger = logging.getLogger(__name__)


async def resolve_channel_names(
    gateway: SlackGateway,
    channel_ids: list[str],
    events: EventLog,
) -> list[str]:
    """Resolve each ID independently and return the names that succeeded.

    Failed IDs are logged one by one and left out; input order is kept.
    An empty list means nothing resolved and the caller should search
    every channel instead.
    """
    results = await asyncio.gather(
        *(gateway.channel_name(channel_id) for channel_id in channel_ids),
        return_exceptions=True,
    )

    names: list[str] = []
    failed: list[str] = []
    for channel_id, result in zip(channel_ids, results):
        if isinstance(result, BaseException):
            if isinstance(result, asyncio.CancelledError):
                raise result
            failed.append(channel_id)
            events.error(classify(result), f"Could not resolve channel name for {channel_id}")
        else:
            names.append(result)

    if failed and not names:
        logger.warning(
            "None of %d channel(s) resolved (%s); falling back to an all-channel search",
            len(channel_ids), ", ".join(failed),
        )
    return names

"""
Minimalist Redis Pub/Sub publisher for turn results.

Called by the scheduler after every turn when EVENT_STREAM_URL is set.
Fail-silent: a publish error NEVER breaks a turn.

Channel : ledgerquest:turns
Payload : {"t": unix_ts, "a": address, "n": name, "s": status, "x": action?,
           "o": override rule?, "g": gold delta?, "e": error class?}
"""

import json
import logging
import time
from typing import Optional

import redis.asyncio as aioredis

logger = logging.getLogger("events")

CHANNEL = "ledgerquest:turns"

_client: Optional[aioredis.Redis] = None
_client_url: Optional[str] = None


async def _discard(client: Optional[aioredis.Redis]) -> None:
    """Close a client being dropped so its connection pool is released."""
    if client is None:
        return
    try:
        await client.aclose()
    except Exception as exc:
        logger.debug("events: close failed: %s", exc)


async def _get_client(url: str) -> Optional[aioredis.Redis]:
    """Lazy singleton Redis client, re-created when the URL changes or the ping fails."""
    global _client, _client_url
    if _client is not None and _client_url == url:
        try:
            await _client.ping()
            return _client
        except Exception as exc:
            logger.debug("events: cached client failed ping: %s", exc)

    stale, _client, _client_url = _client, None, None
    await _discard(stale)

    c: Optional[aioredis.Redis] = None
    try:
        c = aioredis.from_url(url, decode_responses=True, socket_timeout=2.0)
        await c.ping()
    except Exception as exc:
        logger.debug("events: Redis unavailable: %s", exc)
        await _discard(c)
        return None
    _client, _client_url = c, url
    return _client


async def publish_turn_event(
    url: Optional[str],
    *,
    address: str,
    name: str,
    status: str,
    action: Optional[str] = None,
    override: Optional[str] = None,
    gold_delta: Optional[int] = None,
    error: Optional[str] = None,
) -> bool:
    """Publish one turn summary. Returns True if it was sent; never raises."""
    global _client
    if not url:
        return False
    redis = await _get_client(url)
    if redis is None:
        return False

    payload: dict = {"t": int(time.time()), "a": address, "n": name, "s": status}
    for key, value in (("x", action), ("o", override), ("g", gold_delta), ("e", error)):
        if value is not None:
            payload[key] = value
    try:
        await redis.publish(CHANNEL, json.dumps(payload, separators=(",", ":")))
        return True
    except Exception as exc:
        logger.debug("events: publish failed (resetting client): %s", exc)
        if redis is _client:
            _client = None
        await _discard(redis)
        return False


async def close_event_stream() -> None:
    global _client, _client_url
    client, _client, _client_url = _client, None, None
    await _discard(client)

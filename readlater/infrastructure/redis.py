from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from readlater.domain.exceptions.domain_exceptions import TransientIOError

if TYPE_CHECKING:
    from readlater.config import RedisConfig

logger = logging.getLogger(__name__)

_client: aioredis.Redis | None = None
_lock = asyncio.Lock()


def _build_url(cfg: RedisConfig) -> str:
    if cfg.url:
        return cfg.url
    return f"redis://{cfg.host}:{cfg.port}/{cfg.db}"


def redis_key(prefix: str, *parts: str) -> str:
    """Compose a namespaced Redis key."""
    safe_parts = [part for part in parts if part]
    return ":".join([prefix, *safe_parts])


async def get_redis(cfg: RedisConfig) -> aioredis.Redis:
    """Get or create the shared Redis client.

    The task queue cannot work without Redis, so a failed connection is
    reported as a transient error rather than swallowed.
    """
    global _client

    if _client:
        return _client

    async with _lock:
        if _client:
            return _client

        url = _build_url(cfg)
        client = aioredis.from_url(
            url,
            password=cfg.password,
            socket_timeout=cfg.socket_timeout,
            decode_responses=True,
        )
        try:
            await client.ping()
        except (RedisError, OSError) as exc:
            logger.warning(
                "redis_connection_failed",
                exc_info=True,
                extra={"host": cfg.host, "db": cfg.db},
            )
            await client.aclose()
            msg = f"Redis is unavailable: {exc}"
            raise TransientIOError(msg, details={"host": cfg.host, "db": cfg.db}) from exc

        logger.info("redis_connected", extra={"db": cfg.db, "prefix": cfg.prefix})
        _client = client
        return _client


async def close_redis() -> None:
    """Close shared Redis client if present."""
    global _client
    if _client:
        try:
            await _client.aclose()
            logger.info("redis_closed")
        finally:
            _client = None

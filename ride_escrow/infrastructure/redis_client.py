"""Redis connection pool backing the per-ride transition locks."""

import redis.asyncio as aioredis

from ride_escrow.config import settings

_pool = aioredis.ConnectionPool.from_url(
    settings.redis_url,
    decode_responses=True,
    max_connections=settings.redis_max_connections,
)


async def get_redis() -> aioredis.Redis:
    """Client for ``ride_lock``; connections come from the module pool."""
    return aioredis.Redis(connection_pool=_pool)

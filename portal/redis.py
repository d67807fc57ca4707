"""Redis connection used for moderation event fan-out."""

import redis.asyncio as aioredis

_redis: aioredis.Redis | None = None


def get_redis_optional() -> aioredis.Redis | None:
    return _redis


async def init_redis(url: str) -> aioredis.Redis:
    global _redis
    _redis = aioredis.from_url(url, decode_responses=True)
    await _redis.ping()
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None

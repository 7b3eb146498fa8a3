from typing import Optional
import redis.asyncio as redis
from app.config.settings import Settings, settings as default_settings

_redis: Optional[redis.Redis] = None


def redis_url(settings: Settings) -> str:
    if settings.REDIS_PASSWORD:
        return f"redis://:{settings.REDIS_PASSWORD}@{settings.REDIS_HOST}:{settings.REDIS_PORT}"
    return f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}"


async def get_redis(settings: Settings = default_settings) -> redis.Redis:
    global _redis
    if _redis is None:
        _redis = redis.Redis.from_url(redis_url(settings), decode_responses=False)
    return _redis


async def close_redis():
    global _redis
    if _redis is not None:
        await _redis.close()
        _redis = None

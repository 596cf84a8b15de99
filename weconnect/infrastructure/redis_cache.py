# weconnect/infrastructure/redis_cache.py
import redis.asyncio as aioredis


def build_redis(url: str) -> aioredis.Redis:
    # connections are opened lazily on first command
    return aioredis.from_url(url, decode_responses=True)

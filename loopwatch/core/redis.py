import redis.asyncio as redis
import os

DEFAULT_REDIS_URL = "redis://localhost:6379/0"

redis_conn: redis.Redis | None = None

async def init_redis(url: str | None = None) -> redis.Redis:
    global redis_conn
    if redis_conn is None:
        redis_conn = redis.from_url(
            url or os.getenv("REDIS_URL", DEFAULT_REDIS_URL),
            encoding="utf-8",
            decode_responses=True,
        )
    return redis_conn

async def close_redis():
    global redis_conn
    if redis_conn:
        await redis_conn.aclose()
        redis_conn = None

def get_redis():
    if redis_conn is None:
        raise RuntimeError("Redis not initialized")
    return redis_conn

# ============================================================================
# Redis Connection
# ============================================================================
import json

import redis.asyncio as redis
from app.config import get_settings

settings = get_settings()

redis_client = redis.from_url(
    settings.REDIS_URL,
    encoding="utf-8",
    decode_responses=True
)

class RedisCache:
    """Short-lived JSON cache for read-heavy endpoints"""

    def __init__(self, client: redis.Redis, prefix: str = "rewards"):
        self.client = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def get_json(self, key: str):
        data = await self.client.get(self._key(key))
        return json.loads(data) if data else None

    async def set_json(self, key: str, value, ttl: int = 60) -> None:
        await self.client.setex(self._key(key), ttl, json.dumps(value, default=str))

cache = RedisCache(redis_client)

def get_cache() -> RedisCache:
    return cache

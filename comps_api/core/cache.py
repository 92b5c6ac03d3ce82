import threading

import redis
from cachetools import TTLCache

from .config import settings

# In-process store for local dev and single-worker deployments.
_local_cache = TTLCache(maxsize=4096, ttl=settings.CACHE_TTL_SECONDS)
_local_lock = threading.Lock()

_redis_client: "redis.Redis | None" = None

def redis_client() -> "redis.Redis":
    """Shared Redis connection (lazy, one pool per process)."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis_client

class Cache:
    """
    Thin abstraction over Redis/in-memory so swapping is one flag away.
    """
    def __init__(self, use_redis: bool | None = None):
        self.backend = None
        if settings.USE_REDIS if use_redis is None else use_redis:
            self.backend = redis_client()

    def incr(self, key: str, ttl: int) -> int:
        """Atomically bump an integer key; the first bump sets its expiry."""
        if self.backend:
            pipe = self.backend.pipeline()
            # SET NX seeds the key with its expiry; plain INCR keeps that TTL
            pipe.set(key, 0, ex=ttl, nx=True)
            pipe.incr(key)
            _, count = pipe.execute()
            return int(count)
        with _local_lock:
            count = int(_local_cache.get(key) or 0) + 1
            _local_cache[key] = count
            return count

cache = Cache()

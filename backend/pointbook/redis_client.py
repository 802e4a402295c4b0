from redis import Redis

from .config import settings

# Connection is lazy: nothing is opened until the first command
redis_client = Redis.from_url(
    settings.redis_url,
    decode_responses=True,
    socket_timeout=2.0,
)


# Dependency for FastAPI; None disables the slot cache
def get_redis() -> Redis | None:
    if not settings.slots_cache_enabled:
        return None
    return redis_client

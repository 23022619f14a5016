import json

from loguru import logger
from redis.asyncio import Redis

from app.schemas import GigFilters
from app.settings import REDIS_URL

_redis: Redis | None = None
GIGS_TTL = 60  # 1 minute
GIGS_KEY_PREFIX = "gigs:"


def get_redis() -> Redis:
    global _redis
    if _redis is None:
        _redis = Redis.from_url(REDIS_URL, decode_responses=True)
    return _redis


def _gigs_key(filters: GigFilters, today: str) -> str:
    status = filters.status.value if filters.status else "any"
    scope = "all" if filters.show_past else today
    return f"{GIGS_KEY_PREFIX}{scope}:{status}"


async def get_gigs_cache(filters: GigFilters, today: str) -> list | None:
    try:
        data = await get_redis().get(_gigs_key(filters, today))
        return json.loads(data) if data else None
    except Exception:
        logger.warning("Redis get failed, skipping gigs cache", exc_info=True)
        return None


async def set_gigs_cache(filters: GigFilters, today: str, gigs: list) -> None:
    try:
        await get_redis().setex(_gigs_key(filters, today), GIGS_TTL, json.dumps(gigs))
    except Exception:
        logger.warning("Redis set failed, skipping gigs cache", exc_info=True)


async def invalidate_gigs_cache() -> None:
    """Drop every cached gig listing; any gig or lineup write changes them."""
    try:
        redis = get_redis()
        keys = [k async for k in redis.scan_iter(match=f"{GIGS_KEY_PREFIX}*")]
        if keys:
            await redis.delete(*keys)
    except Exception:
        logger.warning("Redis invalidate failed for gigs cache", exc_info=True)

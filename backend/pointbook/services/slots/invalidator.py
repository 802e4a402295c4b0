# backend/pointbook/services/slots/invalidator.py
"""
Cache invalidation for the Level 1 day grid.

Triggers:
✓ Schedule override created/replaced/deleted → invalidate that date
✓ Default business hours changed (deploy) → invalidate all dates

Does NOT trigger:
✗ Reservation booked/cancelled/rescheduled (Level 2 calculates on-the-fly)
✗ Course duration changed (Level 2)
"""

import logging
from datetime import date
from redis import Redis
from redis.exceptions import RedisError

from .redis_store import SlotsRedisStore

logger = logging.getLogger(__name__)


def invalidate_day_cache(
    redis: Redis | None,
    dates: list[date] | None = None,
) -> int:
    """
    Invalidate cached grids.

    Args:
        redis: Redis client, or None when caching is disabled
        dates: List of specific dates to invalidate,
               or None to invalidate all cached dates

    Returns:
        Number of deleted cache keys
    """
    if redis is None:
        return 0

    try:
        return SlotsRedisStore(redis).delete_day_slots(dates)
    except RedisError:
        logger.exception(f"Failed to invalidate slot cache for {dates or 'all dates'}")
        return 0

# backend/pointbook/services/slots/redis_store.py
"""
Redis storage for the Level 1 day grid using Sorted Sets.

Key format: slots:day:{date}
Value: Sorted Set where member = "HH:MM", score = start_ts
       (unix timestamp of the slot start).

Query: ZRANGEBYSCORE key {now_ts} +inf → only slots not in the past.
Sentinel: "__empty__" with score=0 marks "calculated, zero slots".
"""

from datetime import date, datetime
from redis import Redis


EMPTY_SENTINEL = "__empty__"


def _decode(member) -> str:
    return member.decode() if isinstance(member, bytes) else member


class SlotsRedisStore:
    """Redis storage wrapper using Sorted Sets for slot data."""

    KEY_PREFIX = "slots:day"

    def __init__(self, redis: Redis):
        self.redis = redis

    def _key(self, dt: date) -> str:
        return f"{self.KEY_PREFIX}:{dt.isoformat()}"

    # ── Write ────────────────────────────────────────────────────────────

    def store_day_slots(
        self,
        dt: date,
        slots: list[tuple[str, float]],
    ) -> None:
        """
        Store calculated slots for a day.

        Args:
            dt: Target date
            slots: List of (time_str, start_ts) pairs.
                   Empty list → sentinel is stored.
        """
        key = self._key(dt)
        pipe = self.redis.pipeline()

        # Remove old data
        pipe.delete(key)

        if slots:
            mapping = {time_str: start_ts for time_str, start_ts in slots}
            pipe.zadd(key, mapping)
            last_start = max(start_ts for _, start_ts in slots)
            # Key lives until the last slot starts + 1 minute buffer
            pipe.expireat(key, int(last_start) + 60)
        else:
            # Empty day: sentinel so EXISTS returns True
            pipe.zadd(key, {EMPTY_SENTINEL: 0})
            end_of_day = datetime.combine(dt, datetime.max.time())
            pipe.expireat(key, int(end_of_day.timestamp()) + 60)

        pipe.execute()

    # ── Read ─────────────────────────────────────────────────────────────

    def get_available_slots(
        self,
        dt: date,
        now: datetime,
    ) -> list[str] | None:
        """
        Get slots that have not started yet.

        Returns:
            Sorted list of "HH:MM" strings, or None on cache miss.
        """
        key = self._key(dt)
        if not self.redis.exists(key):
            return None

        members = self.redis.zrangebyscore(key, now.timestamp(), "+inf")
        return [
            _decode(m)
            for m in members
            if _decode(m) != EMPTY_SENTINEL
        ]

    # ── Delete ───────────────────────────────────────────────────────────

    def delete_day_slots(self, dates: list[date] | None = None) -> int:
        """
        Delete cached slots.

        Args:
            dates: Specific dates, or None to delete every cached day.

        Returns:
            Number of deleted keys.
        """
        if dates:
            keys = [self._key(dt) for dt in dates]
        else:
            keys = self.redis.keys(f"{self.KEY_PREFIX}:*")

        if not keys:
            return 0

        return self.redis.delete(*keys)

"""Per-caller moving-window rate limits keyed by (bucket, caller)."""

import math
import time

from limits import RateLimitItemPerMinute
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

DEFAULT_LIMITS = {
    "rcon": 300,
    "inventory": 500,
    "broadcast": 10,
}


class GatewayRateLimiter:
    """Allow at most ``limits[bucket]`` hits per minute for each caller."""

    def __init__(self, limits, storage=None):
        self.limits = dict(limits)
        self._items = {bucket: RateLimitItemPerMinute(limit) for bucket, limit in self.limits.items()}
        self._limiter = MovingWindowRateLimiter(storage or MemoryStorage())

    def allow(self, bucket, key, cost=1):
        """Record ``cost`` hits and return True, or return False without recording."""
        item = self._items.get(bucket)
        if item is None:
            return True
        return self._limiter.hit(item, bucket, str(key), cost=cost)

    def retry_after(self, bucket, key):
        """Return whole seconds until the oldest hit in the window expires."""
        item = self._items.get(bucket)
        if item is None:
            return 0
        stats = self._limiter.get_window_stats(item, bucket, str(key))
        if stats.remaining >= item.amount:
            return 0
        return max(1, math.ceil(stats.reset_time - time.time()))


def build_rate_limiter(cfg_get_int):
    """Create the limiter from ``RATE_LIMIT_<BUCKET>_PER_MINUTE`` settings."""
    limits = {
        bucket: cfg_get_int(f"RATE_LIMIT_{bucket.upper()}_PER_MINUTE", default, minimum=1)
        for bucket, default in DEFAULT_LIMITS.items()
    }
    return GatewayRateLimiter(limits)

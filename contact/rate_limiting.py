"""
Rate Limiting Utilities for Contact Form

Fixed-window, per-client limiter with a pluggable record store.
The limiter is advisory: concurrent requests from the same client
may race, and lost increments are tolerated.
"""
import logging
import math
import time
from dataclasses import dataclass

from django.core.cache import caches

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = 'unknown'


def get_client_ip(request):
    """
    Get client IP address from proxy headers.

    Clients that cannot be identified share the 'unknown' bucket.
    """
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()

    x_real_ip = request.META.get('HTTP_X_REAL_IP')
    if x_real_ip:
        return x_real_ip

    return UNKNOWN_CLIENT


@dataclass
class RateLimitRecord:
    count: int
    reset_time: float

    def is_expired(self, now):
        return now > self.reset_time


class RateLimitStore:
    """Interface for rate limit record storage."""

    def get(self, key):
        raise NotImplementedError

    def set(self, key, record, ttl):
        """Save ``record``; ``ttl`` is the seconds left in its window."""
        raise NotImplementedError

    def evict_expired(self, now):
        """Remove expired records. Returns number of records removed."""
        raise NotImplementedError

    def clear(self):
        raise NotImplementedError


class InMemoryRateLimitStore(RateLimitStore):
    """Process-local store. Records live until swept."""

    def __init__(self):
        self._records = {}

    def __len__(self):
        return len(self._records)

    def __contains__(self, key):
        return key in self._records

    def get(self, key):
        return self._records.get(key)

    def set(self, key, record, ttl):
        self._records[key] = record

    def evict_expired(self, now):
        expired = [key for key, record in self._records.items() if record.is_expired(now)]
        for key in expired:
            del self._records[key]
        return len(expired)

    def clear(self):
        self._records.clear()


class CacheRateLimitStore(RateLimitStore):
    """
    Store backed by a Django cache alias.

    With Redis behind the cache, limits are shared across workers.
    Each record expires with its window, so sweeping is a no-op.
    """

    KEY_PREFIX = 'contact:ratelimit:'

    def __init__(self, alias='default'):
        self.alias = alias

    @property
    def cache(self):
        return caches[self.alias]

    def _key(self, key):
        return f'{self.KEY_PREFIX}{key}'

    def get(self, key):
        value = self.cache.get(self._key(key))
        if value is None:
            return None
        count, reset_time = value
        return RateLimitRecord(count=count, reset_time=reset_time)

    def set(self, key, record, ttl):
        self.cache.set(self._key(key), (record.count, record.reset_time), timeout=max(1, math.ceil(ttl)))

    def evict_expired(self, now):
        return 0

    def clear(self):
        # django-redis can delete by prefix; other backends are cleared whole
        if hasattr(self.cache, 'delete_pattern'):
            self.cache.delete_pattern(f'{self.KEY_PREFIX}*')
        else:
            self.cache.clear()


class FixedWindowRateLimiter:
    """
    Fixed-window limiter: at most ``max_requests`` per ``window_seconds``,
    the window anchored at a client's first request.

    Every ``sweep_every``-th check also evicts expired records from the
    store, which bounds memory without a background timer. Pass
    ``sweep_every=0`` to only sweep when ``sweep()`` is called.
    """

    def __init__(self, store, max_requests=5, window_seconds=3600,
                 sweep_every=10, clock=time.time):
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.sweep_every = sweep_every
        self.clock = clock
        self._calls = 0

    def is_rate_limited(self, key):
        """
        Count a request for ``key``.

        Returns True if the client is over its limit. Rejected requests
        are not counted.
        """
        self._calls += 1
        if self.sweep_every and self._calls % self.sweep_every == 0:
            self.sweep()

        now = self.clock()
        record = self.store.get(key)

        if record is None or record.is_expired(now):
            # First request or window expired - start new window
            self.store.set(
                key, RateLimitRecord(count=1, reset_time=now + self.window_seconds), self.window_seconds
            )
            return False

        if record.count >= self.max_requests:
            return True

        record.count += 1
        self.store.set(key, record, record.reset_time - now)
        return False

    def retry_after(self, key):
        """Seconds until ``key``'s window resets (0 if no active window)."""
        record = self.store.get(key)
        if record is None:
            return 0
        return max(0, math.ceil(record.reset_time - self.clock()))

    def sweep(self):
        removed = self.store.evict_expired(self.clock())
        if removed:
            logger.debug(f"Evicted {removed} expired contact rate limit records")
        return removed

"""
Tests for contact form rate limiting.
"""
from unittest.mock import patch

import pytest
from django.core.cache import cache
from django.test import RequestFactory

from contact.rate_limiting import (
    CacheRateLimitStore,
    FixedWindowRateLimiter,
    InMemoryRateLimitStore,
    RateLimitRecord,
    get_client_ip,
)


class TestGetClientIp:
    """Test client identity extraction."""

    def test_forwarded_for_first_entry(self):
        request = RequestFactory().post('/', HTTP_X_FORWARDED_FOR=' 203.0.113.7 , 10.0.0.1')
        assert get_client_ip(request) == '203.0.113.7'

    def test_forwarded_for_wins_over_real_ip(self):
        request = RequestFactory().post(
            '/', HTTP_X_FORWARDED_FOR='203.0.113.7', HTTP_X_REAL_IP='198.51.100.2'
        )
        assert get_client_ip(request) == '203.0.113.7'

    def test_real_ip_fallback(self):
        request = RequestFactory().post('/', HTTP_X_REAL_IP='198.51.100.2')
        assert get_client_ip(request) == '198.51.100.2'

    def test_unknown_when_no_proxy_headers(self):
        # REMOTE_ADDR is ignored; unidentified clients share one bucket
        request = RequestFactory().post('/')
        assert get_client_ip(request) == 'unknown'


class TestFixedWindowRateLimiter:
    """Test fixed-window counting."""

    def test_first_five_allowed_sixth_limited(self, rate_limiter):
        results = [rate_limiter.is_rate_limited('1.1.1.1') for _ in range(6)]
        assert results == [False] * 5 + [True]

    def test_rejected_requests_are_not_counted(self, rate_limiter, store):
        for _ in range(8):
            rate_limiter.is_rate_limited('1.1.1.1')
        assert store.get('1.1.1.1').count == 5

    def test_clients_are_independent(self, rate_limiter):
        for _ in range(5):
            rate_limiter.is_rate_limited('1.1.1.1')
        assert rate_limiter.is_rate_limited('1.1.1.1') is True
        assert rate_limiter.is_rate_limited('2.2.2.2') is False

    def test_window_reset_starts_count_at_one(self, rate_limiter, store, clock):
        for _ in range(6):
            rate_limiter.is_rate_limited('1.1.1.1')

        clock.advance(3601)

        assert rate_limiter.is_rate_limited('1.1.1.1') is False
        record = store.get('1.1.1.1')
        assert record.count == 1
        assert record.reset_time == clock() + 3600

    def test_window_still_active_at_reset_time(self, rate_limiter, clock):
        for _ in range(5):
            rate_limiter.is_rate_limited('1.1.1.1')

        clock.advance(3600)

        assert rate_limiter.is_rate_limited('1.1.1.1') is True

    def test_window_anchored_at_first_request(self, rate_limiter, clock):
        rate_limiter.is_rate_limited('1.1.1.1')
        clock.advance(3000)
        for _ in range(4):
            assert rate_limiter.is_rate_limited('1.1.1.1') is False
        assert rate_limiter.is_rate_limited('1.1.1.1') is True

        # 3601s after the first request, not after the last
        clock.advance(601)
        assert rate_limiter.is_rate_limited('1.1.1.1') is False

    def test_retry_after(self, rate_limiter, clock):
        assert rate_limiter.retry_after('1.1.1.1') == 0

        rate_limiter.is_rate_limited('1.1.1.1')
        clock.advance(600)

        assert rate_limiter.retry_after('1.1.1.1') == 3000


class TestSweep:
    """Test eviction of expired records."""

    def test_sweep_evicts_only_expired(self, rate_limiter, store, clock):
        rate_limiter.is_rate_limited('old')
        clock.advance(3000)
        rate_limiter.is_rate_limited('fresh')
        clock.advance(700)

        assert rate_limiter.sweep() == 1
        assert 'old' not in store
        assert 'fresh' in store

    def test_sweep_runs_every_nth_call(self, store, clock):
        limiter = FixedWindowRateLimiter(store, max_requests=5, window_seconds=60, sweep_every=3, clock=clock)
        limiter.is_rate_limited('a')
        clock.advance(61)

        limiter.is_rate_limited('b')
        assert 'a' in store

        # Third call sweeps before counting
        limiter.is_rate_limited('c')
        assert 'a' not in store
        assert len(store) == 2

    def test_sweep_disabled_with_zero(self, rate_limiter, store, clock):
        rate_limiter.is_rate_limited('a')
        clock.advance(3601)
        for i in range(20):
            rate_limiter.is_rate_limited(f'client-{i}')
        assert 'a' in store


class TestInMemoryRateLimitStore:

    def test_set_replaces_record(self):
        store = InMemoryRateLimitStore()
        store.set('k', RateLimitRecord(count=5, reset_time=10), 10)
        store.set('k', RateLimitRecord(count=1, reset_time=20), 20)
        assert store.get('k') == RateLimitRecord(count=1, reset_time=20)

    def test_clear(self):
        store = InMemoryRateLimitStore()
        store.set('k', RateLimitRecord(count=1, reset_time=10), 10)
        store.clear()
        assert len(store) == 0
        assert store.get('k') is None


class TestCacheRateLimitStore:
    """Test the Django cache backed store."""

    @pytest.fixture(autouse=True)
    def clear_cache(self):
        """Clear cache before and after each test to prevent pollution."""
        cache.clear()
        yield
        cache.clear()

    def test_round_trip(self, clock):
        store = CacheRateLimitStore()
        store.set('1.1.1.1', RateLimitRecord(count=2, reset_time=clock() + 100), 100)
        assert store.get('1.1.1.1') == RateLimitRecord(count=2, reset_time=clock() + 100)

    def test_missing_key(self, clock):
        assert CacheRateLimitStore().get('nobody') is None

    def test_limiter_on_cache_store(self, clock):
        limiter = FixedWindowRateLimiter(
            CacheRateLimitStore(), max_requests=5, window_seconds=3600, clock=clock
        )
        results = [limiter.is_rate_limited('1.1.1.1') for _ in range(6)]
        assert results == [False] * 5 + [True]

    def test_sweep_is_noop(self, clock):
        store = CacheRateLimitStore()
        store.set('k', RateLimitRecord(count=1, reset_time=clock() - 10), 1)
        assert store.evict_expired(clock()) == 0

    @patch('contact.rate_limiting.caches')
    def test_ttl_follows_limiter_clock(self, mock_caches, clock):
        # The limiter clock sits far from wall time; TTLs must still match the window
        mock_cache = mock_caches.__getitem__.return_value
        mock_cache.get.return_value = None
        limiter = FixedWindowRateLimiter(
            CacheRateLimitStore(), max_requests=5, window_seconds=3600, clock=clock
        )

        limiter.is_rate_limited('1.1.1.1')

        mock_cache.set.assert_called_once_with(
            'contact:ratelimit:1.1.1.1', (1, clock() + 3600), timeout=3600
        )

    @patch('contact.rate_limiting.caches')
    def test_increment_keeps_remaining_ttl(self, mock_caches, clock):
        mock_cache = mock_caches.__getitem__.return_value
        mock_cache.get.return_value = (1, clock() + 3600)
        limiter = FixedWindowRateLimiter(
            CacheRateLimitStore(), max_requests=5, window_seconds=3600, clock=clock
        )
        clock.advance(600)

        limiter.is_rate_limited('1.1.1.1')

        mock_cache.set.assert_called_once_with(
            'contact:ratelimit:1.1.1.1', (2, clock() + 3000), timeout=3000
        )

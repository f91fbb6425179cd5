"""
Shared pytest fixtures for contact tests.
"""
from unittest.mock import Mock

import pytest
from django.apps import apps
from rest_framework.test import APIClient

from contact.guard import SubmissionGuard
from contact.rate_limiting import FixedWindowRateLimiter, InMemoryRateLimitStore


START_TIME = 1_700_000_000.0


class FakeClock:
    """Controllable replacement for time.time()."""

    def __init__(self, now=START_TIME):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryRateLimitStore()


@pytest.fixture
def rate_limiter(store, clock):
    return FixedWindowRateLimiter(store, max_requests=5, window_seconds=3600, sweep_every=0, clock=clock)


@pytest.fixture
def send_email():
    """Stands in for ResendEmailService.send_email."""
    return Mock(return_value={'id': 'test-message-id'})


@pytest.fixture
def guard(rate_limiter, send_email, clock):
    return SubmissionGuard(
        rate_limiter=rate_limiter,
        send_email=send_email,
        recipient='owner@example.com',
        sender='Contact <onboarding@resend.dev>',
        min_submit_ms=2000,
        clock=clock,
    )


@pytest.fixture
def contact_guard(guard, monkeypatch):
    """Install the test guard on the contact app for endpoint tests."""
    monkeypatch.setattr(apps.get_app_config('contact'), 'guard', guard)
    return guard


@pytest.fixture
def api_client():
    """API client for making requests."""
    return APIClient()


@pytest.fixture
def rendered_at(clock):
    """Form render timestamp (ms) comfortably before now."""
    return str(int(clock() * 1000) - 10_000)

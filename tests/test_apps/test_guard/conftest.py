"""Shared fixtures for guard app tests."""

from datetime import UTC, datetime

import pytest
from django.contrib.auth import get_user_model

from server.apps.audit.logic.audit_log import DatabaseAuditLog
from server.apps.guard.logic.access_guard import AccessGuard, ClientContext
from server.apps.guard.logic.rate_limiting import (
    MemoryCounterStore,
    build_rate_limiter,
)

User = get_user_model()


@pytest.fixture
def user(db):
    """Create test user registered by email.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='alice@example.com',
        password='correct-horse',
        email='alice@example.com',
    )


@pytest.fixture
def client_context():
    """Request origin used by flows under test."""
    return ClientContext(
        source_address='192.0.2.10',
        client_signature='pytest-agent/1.0',
    )


@pytest.fixture
def guard(db):
    """Guard with process-local counters and the database audit log."""
    return AccessGuard(
        limiter=build_rate_limiter(store=MemoryCounterStore()),
        audit_log=DatabaseAuditLog(),
    )


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start):
        """Start the clock at `start`."""
        self.now = start

    def __call__(self):
        """Current fake time."""
        return self.now

    def advance(self, delta):
        """Move the clock forward."""
        self.now += delta


@pytest.fixture
def fake_clock():
    """Clock starting at a fixed aware datetime."""
    return FakeClock(datetime(2025, 1, 1, 12, 0, tzinfo=UTC))

"""Fixed-window rate limiting keyed by (policy, source address).

Counters live in an injected `CounterStore`; nothing here keeps
module-level state.
"""

import logging
import math
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Final, Protocol, final

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from server.apps.guard.exceptions import RateLimitedError
from server.apps.guard.models import RateLimitWindow

logger = logging.getLogger(__name__)

AUTH_POLICY: Final = 'auth'
UPLOAD_POLICY: Final = 'upload'
DOWNLOAD_POLICY: Final = 'download'

# Memory store sweeps ended windows once it tracks this many keys
_MEMORY_PRUNE_THRESHOLD: Final = 10000


@final
@dataclass(frozen=True)
class RateLimitPolicy:
    """Ceiling of admitted requests per window."""

    name: str
    max_requests: int


@final
@dataclass(frozen=True)
class WindowState:
    """Counter value after registering one request."""

    hits: int
    resets_at: datetime


class CounterStore(Protocol):
    """Storage for per-key window counters."""

    def hit(
        self,
        policy: str,
        source_address: str,
        now: datetime,
        window: timedelta,
    ) -> WindowState:
        """Register one request and return the updated window."""

    def prune(self, now: datetime, window: timedelta) -> int:
        """Drop windows that ended before `now`; return how many."""


@final
class DatabaseCounterStore:
    """Counter store backed by `RateLimitWindow` rows.

    The row is locked for the read-modify-write, so concurrent workers
    sharing the database never lose a hit.
    """

    def hit(
        self,
        policy: str,
        source_address: str,
        now: datetime,
        window: timedelta,
    ) -> WindowState:
        """Register one request.

        Args:
            policy: Policy name.
            source_address: Client address.
            now: Current time.
            window: Window length.

        Returns:
            Hits in the current window and when it resets.
        """
        with transaction.atomic():
            counter, _ = RateLimitWindow.objects.select_for_update().get_or_create(
                policy=policy,
                source_address=source_address,
                defaults={'window_started_at': now, 'hits': 0},
            )
            if now >= counter.window_started_at + window:
                counter.window_started_at = now
                counter.hits = 0
            counter.hits += 1
            counter.save(update_fields=['window_started_at', 'hits'])

        return WindowState(
            hits=counter.hits,
            resets_at=counter.window_started_at + window,
        )

    def prune(self, now: datetime, window: timedelta) -> int:
        """Delete rows whose window has ended.

        Args:
            now: Current time.
            window: Window length.

        Returns:
            Number of rows deleted.
        """
        deleted, _ = RateLimitWindow.objects.filter(
            window_started_at__lte=now - window,
        ).delete()
        return deleted


@final
class MemoryCounterStore:
    """Process-local counter store for single-worker deployments."""

    def __init__(self) -> None:
        """Initialize empty counters."""
        self._lock = threading.Lock()
        self._windows: dict[tuple[str, str], tuple[datetime, int]] = {}

    def hit(
        self,
        policy: str,
        source_address: str,
        now: datetime,
        window: timedelta,
    ) -> WindowState:
        """Register one request (see `DatabaseCounterStore.hit`)."""
        key = (policy, source_address)
        with self._lock:
            started_at, hits = self._windows.get(key, (now, 0))
            if now >= started_at + window:
                started_at, hits = now, 0
            hits += 1
            self._windows[key] = (started_at, hits)
            if len(self._windows) > _MEMORY_PRUNE_THRESHOLD:
                self._prune_locked(now, window)

        return WindowState(hits=hits, resets_at=started_at + window)

    def prune(self, now: datetime, window: timedelta) -> int:
        """Drop ended windows (see `DatabaseCounterStore.prune`)."""
        with self._lock:
            return self._prune_locked(now, window)

    def _prune_locked(self, now: datetime, window: timedelta) -> int:
        ended = [
            key
            for key, (started_at, _) in self._windows.items()
            if now >= started_at + window
        ]
        for key in ended:
            del self._windows[key]
        return len(ended)


def get_window_seconds() -> int:
    """Get the window length shared by all policies.

    Returns:
        Window in seconds from settings or default of 900 (15 min).
    """
    return getattr(settings, 'RATE_LIMIT_WINDOW_SECONDS', 900)


def build_policies() -> dict[str, RateLimitPolicy]:
    """Build the auth, upload and download policies from settings.

    Downloads get the configured ceiling, uploads half of it and
    logins a small fixed ceiling.

    Returns:
        Policies keyed by name.
    """
    download_max = getattr(settings, 'RATE_LIMIT_MAX_REQUESTS', 100)
    auth_max = getattr(settings, 'AUTH_RATE_LIMIT_MAX', 5)
    return {
        AUTH_POLICY: RateLimitPolicy(AUTH_POLICY, auth_max),
        UPLOAD_POLICY: RateLimitPolicy(UPLOAD_POLICY, download_max // 2),
        DOWNLOAD_POLICY: RateLimitPolicy(DOWNLOAD_POLICY, download_max),
    }


@final
class RateLimiter:
    """Apply named policies against an injected counter store."""

    def __init__(
        self,
        store: CounterStore,
        policies: dict[str, RateLimitPolicy],
        window_seconds: int,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Counter storage.
            policies: Policies keyed by name.
            window_seconds: Shared window length.
            clock: Time source, defaults to `timezone.now`.
        """
        self._store = store
        self._policies = policies
        self._window = timedelta(seconds=window_seconds)
        self._clock = clock

    def check(self, policy_name: str, source_address: str) -> WindowState:
        """Count a request and reject it when over the ceiling.

        Args:
            policy_name: Which policy applies.
            source_address: Client address.

        Returns:
            Window state after counting the request.

        Raises:
            RateLimitedError: If the request exceeds the policy ceiling.
        """
        policy = self._policies[policy_name]
        now = self._now()
        state = self._store.hit(policy.name, source_address, now, self._window)

        if state.hits > policy.max_requests:
            retry_after = max(
                1,
                math.ceil((state.resets_at - now).total_seconds()),
            )
            logger.warning(
                'Rate limit %s exceeded for %s: %d/%d',
                policy.name,
                source_address,
                state.hits,
                policy.max_requests,
            )
            raise RateLimitedError(
                policy_name=policy.name,
                source_address=source_address,
                limit=policy.max_requests,
                retry_after_seconds=retry_after,
            )

        return state

    def prune(self) -> int:
        """Drop counters whose window has ended.

        Returns:
            Number of counters removed.
        """
        return self._store.prune(self._now(), self._window)

    def _now(self) -> datetime:
        if self._clock is None:
            return timezone.now()
        return self._clock()


def build_rate_limiter(
    store: CounterStore | None = None,
    clock: Callable[[], datetime] | None = None,
) -> RateLimiter:
    """Create a limiter configured from settings.

    Args:
        store: Counter storage, defaults to the database store.
        clock: Optional time source.

    Returns:
        RateLimiter instance.
    """
    return RateLimiter(
        store=store or DatabaseCounterStore(),
        policies=build_policies(),
        window_seconds=get_window_seconds(),
        clock=clock,
    )


def prune_rate_limit_windows(store: CounterStore | None = None) -> int:
    """Remove ended windows from the configured store.

    Args:
        store: Counter storage, defaults to the database store.

    Returns:
        Number of counters removed.
    """
    pruned = build_rate_limiter(store=store).prune()
    logger.info('Pruned %d ended rate limit windows', pruned)
    return pruned

"""Per-user request quotas backed by a key-value counter store."""

import logging
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from gateway_api.constants import DAILY_AI_REQUEST_LIMITS, DAILY_QUOTA_WINDOW_SECONDS
from gateway_api.errors import QuotaExceededError
from gateway_api.provider_registry import ProviderDescriptor
from gateway_api.schemas import CallerIdentity

logger = logging.getLogger(__name__)

COUNTER_SWEEP_INTERVAL_SECONDS = 5 * 60


class CounterStore(Protocol):
    def incr(self, key: str, ttl_seconds: int | None = None) -> tuple[int, int | None]:
        """Increment ``key`` and return (new value, seconds until the key expires)."""
        ...


class InMemoryCounterStore:
    """Process-local counters; expiry is set on the first increment, like INCR + EXPIRE.

    Expired keys restart from zero when touched and are evicted by a periodic sweep
    so per-day keys do not accumulate in a warm container.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        sweep_interval_seconds: int = COUNTER_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self._clock = clock
        self._sweep_interval_seconds = sweep_interval_seconds
        self._next_sweep_at = clock() + sweep_interval_seconds
        self._lock = threading.Lock()
        self._counters: dict[str, tuple[int, float | None]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)

    def _sweep(self, now: float) -> None:
        expired = [
            key
            for key, (_, expires_at) in self._counters.items()
            if expires_at is not None and expires_at <= now
        ]
        for key in expired:
            del self._counters[key]
        self._next_sweep_at = now + self._sweep_interval_seconds

    def incr(self, key: str, ttl_seconds: int | None = None) -> tuple[int, int | None]:
        now = self._clock()
        with self._lock:
            if now >= self._next_sweep_at:
                self._sweep(now)
            count, expires_at = self._counters.get(key, (0, None))
            if expires_at is not None and expires_at <= now:
                count, expires_at = 0, None
            count += 1
            if count == 1 and ttl_seconds is not None:
                expires_at = now + ttl_seconds
            self._counters[key] = (count, expires_at)

        remaining = None if expires_at is None else max(0, int(expires_at - now))
        return count, remaining


@dataclass(frozen=True)
class QuotaStatus:
    used: int
    limit: int


class QuotaService:
    def __init__(
        self,
        store: CounterStore,
        daily_limits: Mapping[str, int] = DAILY_AI_REQUEST_LIMITS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._daily_limits = daily_limits
        self._clock = clock

    def consume_daily(self, caller: CallerIdentity, bucket: str = "ai_chat") -> QuotaStatus:
        day = datetime.fromtimestamp(self._clock(), tz=timezone.utc).date().isoformat()
        limit = self._daily_limits.get(caller.tier, self._daily_limits["free"])
        used, ttl = self._store.incr(
            f"{bucket}:{caller.user_id}:{day}", ttl_seconds=DAILY_QUOTA_WINDOW_SECONDS
        )
        if used > limit:
            logger.warning(
                "Daily quota exceeded",
                extra={"user_id": caller.user_id, "tier": caller.tier, "limit": limit},
            )
            raise QuotaExceededError(
                f"Daily AI request limit reached ({limit}). "
                "Upgrade your plan for more requests.",
                limit=limit,
                retry_after_ms=(ttl or DAILY_QUOTA_WINDOW_SECONDS) * 1000,
            )
        return QuotaStatus(used=used, limit=limit)

    def record_completion(self, caller: CallerIdentity, bucket: str = "ai_chat") -> int:
        """Bump the lifetime counter; only called once a request has succeeded."""
        total, _ = self._store.incr(f"{bucket}_total:{caller.user_id}")
        return total

    def consume_provider_window(
        self, caller: CallerIdentity, descriptor: ProviderDescriptor
    ) -> None:
        window = descriptor.request_limit_window
        used, ttl = self._store.incr(
            f"ratelimit:{descriptor.id}:{caller.user_id}", ttl_seconds=window.window_seconds
        )
        if used > window.max_requests:
            logger.warning(
                "Provider request window exceeded",
                extra={"user_id": caller.user_id, "provider_id": descriptor.id},
            )
            raise QuotaExceededError(
                f"Rate limit exceeded for {descriptor.display_name or descriptor.id}",
                limit=window.max_requests,
                retry_after_ms=(ttl or window.window_seconds) * 1000,
            )

"""Sliding-window login throttling with temporary lockout.

Per client identity the limiter is *clean* (no record, or its window has
elapsed), *counting* (failures inside the current window) or *locked*
(``lock_until_ms`` in the future). Records live in the durable store so the
limiter works across workers. Updates are read-modify-write without a lock;
concurrent failures from one identity may undercount, which is acceptable.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from linkshelf.core.clock import now_ms
from linkshelf.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

LOGIN_RATE_KEY_PREFIX = "login_rate_v1"
# Extra store lifetime beyond window + lock so stale records self-evict.
RECORD_TTL_SLACK_SECONDS = 60


@dataclass(frozen=True)
class RateLimitRecord:
    """Failure bookkeeping for one client identity."""

    fail_count: int = 0
    window_start_ms: int = 0
    lock_until_ms: int = 0

    def is_locked(self, now: int) -> bool:
        return self.lock_until_ms > now

    def to_json(self) -> str:
        return json.dumps(
            {
                "failCount": self.fail_count,
                "windowStartMs": self.window_start_ms,
                "lockUntilMs": self.lock_until_ms,
            },
            separators=(",", ":"),
        )


def _number_or_zero(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value):
        return 0
    return int(value)


def parse_record(raw: str | None) -> RateLimitRecord | None:
    """Parse a stored record; unreadable records are treated as absent."""
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(parsed, Mapping):
        return None
    return RateLimitRecord(
        fail_count=_number_or_zero(parsed.get("failCount")),
        window_start_ms=_number_or_zero(parsed.get("windowStartMs")),
        lock_until_ms=_number_or_zero(parsed.get("lockUntilMs")),
    )


def client_identity(headers: Mapping[str, str]) -> str:
    """Derive the client identity from trusted proxy headers.

    Returns an empty string when neither header is present.
    """
    connecting_ip = (headers.get("cf-connecting-ip") or "").strip()
    if connecting_ip:
        return connecting_ip
    forwarded = headers.get("x-forwarded-for") or ""
    if forwarded.strip():
        # First hop is the client in a standard proxy chain.
        return forwarded.split(",")[0].strip()
    return ""


def _retry_after_seconds(lock_until_ms: int, now: int) -> int:
    return max(1, math.ceil((lock_until_ms - now) / 1000))


class LoginRateLimiter:
    """Track failed logins per client identity in a `KeyValueStore`."""

    def __init__(
        self,
        store: KeyValueStore | None,
        *,
        window_seconds: int = 60,
        max_fails: int = 8,
        lock_seconds: int = 300,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self.window_seconds = window_seconds
        self.max_fails = max_fails
        self.lock_seconds = lock_seconds
        self._clock = clock

    @property
    def record_ttl_seconds(self) -> int:
        return self.window_seconds + self.lock_seconds + RECORD_TTL_SLACK_SECONDS

    def is_active(self, identity: str) -> bool:
        """Return True when a store exists and the caller has an identity."""
        return self._store is not None and bool(identity)

    @staticmethod
    def key_for(identity: str) -> str:
        return f"{LOGIN_RATE_KEY_PREFIX}:{identity or 'unknown'}"

    def load(self, identity: str) -> RateLimitRecord | None:
        if self._store is None:
            return None
        return parse_record(self._store.get(self.key_for(identity)))

    def check(self, identity: str) -> int | None:
        """Return retry-after seconds if `identity` is locked out, else None."""
        if not self.is_active(identity):
            return None
        record = self.load(identity)
        now = self._clock()
        if record is not None and record.is_locked(now):
            return _retry_after_seconds(record.lock_until_ms, now)
        return None

    def register_failure(self, identity: str) -> int | None:
        """Record a failed attempt.

        Returns:
            Retry-after seconds if this failure triggered a lockout, else None.
        """
        if not self.is_active(identity) or self._store is None:
            return None

        now = self._clock()
        previous = self.load(identity) or RateLimitRecord(window_start_ms=now)
        within_window = (
            previous.window_start_ms > 0
            and now - previous.window_start_ms <= self.window_seconds * 1000
        )
        fail_count = previous.fail_count + 1 if within_window else 1
        window_start = previous.window_start_ms if within_window else now
        lock_until = now + self.lock_seconds * 1000 if fail_count >= self.max_fails else 0

        record = RateLimitRecord(
            fail_count=fail_count,
            window_start_ms=window_start,
            lock_until_ms=lock_until,
        )
        self._store.put(
            self.key_for(identity),
            record.to_json(),
            ttl_seconds=self.record_ttl_seconds,
        )

        if record.is_locked(now):
            logger.warning(
                "Login locked for %s after %d failures (%ds)",
                identity,
                fail_count,
                self.lock_seconds,
            )
            return _retry_after_seconds(lock_until, now)
        return None

    def reset(self, identity: str) -> None:
        """Forget all failures for `identity` after a successful login."""
        if not self.is_active(identity) or self._store is None:
            return
        self._store.delete(self.key_for(identity))

"""
Request Rate Limiting.

Per-caller token bucket guarding the endpoints that call the language model.

INVARIANTS:
- A bucket never holds more than its capacity
- Refill is proportional to elapsed time, floored to whole tokens
- The refill timestamp only advances when at least one token is added,
  so slow trickles of time are not lost
- A bucket idle for a whole window is dropped; a new bucket starts full,
  which is the state the idle one would have refilled to
- State is process-local; multiple instances do not share allowances
"""

import hashlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from threading import Lock

from starlette.requests import Request

from proxyforge.config import settings
from proxyforge.models.failure import RateLimitExceededError

logger = logging.getLogger(__name__)

# Key used when the caller cannot be identified; such callers share one bucket
GLOBAL_CALLER = "global"


@dataclass
class _Bucket:
    tokens: int
    last_refill: float


@dataclass
class TokenBucketLimiter:
    """
    Thread-safe token bucket keyed by caller.

    Each caller starts with a full bucket of ``capacity`` tokens which refills
    at ``capacity`` tokens per ``window_seconds``.
    """

    capacity: int = field(default_factory=lambda: settings.rate_limit_requests)
    window_seconds: float = field(default_factory=lambda: settings.rate_limit_window_seconds)
    clock: Callable[[], float] = time.monotonic

    _buckets: dict[str, _Bucket] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock)
    _last_sweep: float | None = None

    def _refill(self, bucket: _Bucket, now: float) -> None:
        elapsed = now - bucket.last_refill
        if elapsed <= 0:
            return
        refill = int((elapsed / self.window_seconds) * self.capacity)
        if refill > 0:
            bucket.tokens = min(self.capacity, bucket.tokens + refill)
            bucket.last_refill = now

    def _maybe_evict(self, now: float) -> None:
        """Drop idle buckets, at most once per window."""
        if self._last_sweep is None:
            self._last_sweep = now
            return
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        idle = [
            caller
            for caller, bucket in self._buckets.items()
            if now - bucket.last_refill >= self.window_seconds
        ]
        for caller in idle:
            del self._buckets[caller]
        if idle:
            logger.debug("RATE_LIMIT_BUCKETS_EVICTED", extra={"count": len(idle)})

    def allow(self, caller: str) -> bool:
        """Take one token for ``caller``; False when the bucket is empty."""
        with self._lock:
            now = self.clock()
            self._maybe_evict(now)
            bucket = self._buckets.get(caller)
            if bucket is None:
                bucket = _Bucket(tokens=self.capacity, last_refill=now)
                self._buckets[caller] = bucket

            self._refill(bucket, now)

            if bucket.tokens <= 0:
                return False
            bucket.tokens -= 1
            return True

    def remaining(self, caller: str) -> int:
        """Tokens currently available to ``caller``, without taking one."""
        with self._lock:
            bucket = self._buckets.get(caller)
            if bucket is None:
                return self.capacity
            self._refill(bucket, self.clock())
            return bucket.tokens

    def tracked_callers(self) -> int:
        """Number of callers with a live bucket."""
        with self._lock:
            return len(self._buckets)

    def check(self, caller: str) -> None:
        """
        Take one token for ``caller``.

        Raises:
            RateLimitExceededError: If the caller's bucket is empty
        """
        if not self.allow(caller):
            logger.warning(
                "RATE_LIMIT_EXCEEDED",
                extra={"caller_hash": hash_caller(caller), "limit": self.capacity},
            )
            raise RateLimitExceededError(retry_after=self.window_seconds / self.capacity)


def hash_caller(caller: str) -> str:
    """Hash a caller key for privacy-safe logging."""
    return hashlib.sha256(caller.encode()).hexdigest()[:12]


def caller_key(request: Request) -> str:
    """
    Identify the caller of a request.

    Trusts the first ``X-Forwarded-For`` address, then ``X-Real-IP``, then the
    socket peer. Unidentifiable callers share the global bucket.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded and forwarded.split(",")[0].strip():
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return GLOBAL_CALLER


# Singleton limiter instance
_rate_limiter: TokenBucketLimiter | None = None
_rate_limiter_lock = Lock()


def get_rate_limiter() -> TokenBucketLimiter:
    """Get the process-wide limiter instance."""
    global _rate_limiter
    with _rate_limiter_lock:
        if _rate_limiter is None:
            _rate_limiter = TokenBucketLimiter()
        return _rate_limiter


def reset_rate_limiter() -> None:
    """Reset the process-wide limiter (for testing)."""
    global _rate_limiter
    with _rate_limiter_lock:
        _rate_limiter = None

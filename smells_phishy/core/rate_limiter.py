"""
Per-caller rate limiting for the scan pipeline.

Sliding window limiter keyed by caller identifier (client IP). Windows live in
a Redis sorted set when Redis is available, otherwise in process memory.
"""

import time
import uuid
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Optional

from redis.exceptions import RedisError

from smells_phishy.config.logging import get_logger
from smells_phishy.config.settings import Settings, get_settings

logger = get_logger(__name__)

# KEYS[1] window key
# ARGV: window ms, limit, now ms, unique member
SLIDING_WINDOW_SCRIPT = """
local key = KEYS[1]
local window = tonumber(ARGV[1])
local limit = tonumber(ARGV[2])
local current_time = tonumber(ARGV[3])
local member = ARGV[4]

-- Clean old entries outside window
redis.call('ZREMRANGEBYSCORE', key, 0, current_time - window)

local current_requests = redis.call('ZCARD', key)
local allowed = 0
local remaining = 0

if current_requests < limit then
    redis.call('ZADD', key, current_time, member)
    redis.call('PEXPIRE', key, window)
    allowed = 1
    remaining = limit - current_requests - 1
end

local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
local reset_time = oldest[2] and (tonumber(oldest[2]) + window) or (current_time + window)

return {allowed, remaining, reset_time}
"""


@dataclass
class RateLimitResult:
    """Result of rate limit check."""
    success: bool
    remaining: int
    reset: int  # Unix timestamp in milliseconds when a slot frees up

    def retry_after(self, now_ms: Optional[int] = None) -> int:
        """Whole seconds until the next request would be allowed."""
        now_ms = now_ms if now_ms is not None else _now_ms()
        return max(1, -(-(self.reset - now_ms) // 1000))


class RateLimitExceeded(Exception):
    """Raised when a caller has used up its window."""
    def __init__(self, result: RateLimitResult, message: str = "Rate limit exceeded"):
        super().__init__(message)
        self.result = result


def _now_ms() -> int:
    return int(time.time() * 1000)


class InMemoryWindowStore:
    """Sliding windows of request timestamps kept in process memory."""

    def __init__(self):
        self._windows: Dict[str, Deque[int]] = {}

    def hit(self, key: str, limit: int, window_ms: int, now_ms: int) -> RateLimitResult:
        window = self._windows.setdefault(key, deque())
        while window and window[0] <= now_ms - window_ms:
            window.popleft()

        if len(window) >= limit:
            return RateLimitResult(success=False, remaining=0, reset=window[0] + window_ms)

        window.append(now_ms)
        return RateLimitResult(
            success=True,
            remaining=limit - len(window),
            reset=window[0] + window_ms,
        )

    def cleanup(self, window_ms: int, now_ms: int) -> int:
        """Drop windows whose newest entry has expired. Returns how many."""
        expired = [
            key for key, window in self._windows.items()
            if not window or window[-1] <= now_ms - window_ms
        ]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._windows)


class RateLimiter:
    """
    Sliding window rate limiter.

    Uses Redis (atomic Lua script over a sorted set) when a client is given,
    otherwise an in-memory store. Redis errors fail open: the request is
    allowed and the error logged.
    """

    def __init__(self, max_requests: int = 10, window_seconds: int = 3600,
                 redis_client=None, prefix: str = "smells-phishy"):
        self.max_requests = max_requests
        self.window_ms = window_seconds * 1000
        self.redis_client = redis_client
        self.prefix = prefix
        self._memory = InMemoryWindowStore()

    @classmethod
    def from_settings(cls, redis_client=None, settings: Optional[Settings] = None) -> "RateLimiter":
        settings = settings or get_settings()
        return cls(
            max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
            redis_client=redis_client,
            prefix=settings.RATE_LIMIT_PREFIX,
        )

    @property
    def backend(self) -> str:
        return "redis" if self.redis_client is not None else "memory"

    def _key(self, identifier: str) -> str:
        return f"{self.prefix}:ratelimit:{identifier}"

    async def check_rate_limit(self, identifier: str) -> RateLimitResult:
        """Record one request for identifier and report whether it is allowed."""
        now_ms = _now_ms()

        if self.redis_client is None:
            return self._memory.hit(self._key(identifier), self.max_requests, self.window_ms, now_ms)

        try:
            allowed, remaining, reset_time = await self.redis_client.eval(
                SLIDING_WINDOW_SCRIPT,
                1,
                self._key(identifier),
                self.window_ms,
                self.max_requests,
                now_ms,
                f"{now_ms}-{uuid.uuid4().hex}",
            )
        except (RedisError, OSError) as e:
            logger.error("Rate limit check failed, allowing request", error=str(e))
            return RateLimitResult(
                success=True,
                remaining=self.max_requests,
                reset=now_ms + self.window_ms,
            )

        return RateLimitResult(
            success=bool(int(allowed)),
            remaining=int(remaining),
            reset=int(reset_time),
        )

    async def limit(self, identifier: str) -> RateLimitResult:
        """Like check_rate_limit but raises RateLimitExceeded on rejection."""
        result = await self.check_rate_limit(identifier)
        if not result.success:
            logger.info("Rate limit exceeded", backend=self.backend, reset=result.reset)
            raise RateLimitExceeded(result)
        return result

    def cleanup(self) -> int:
        """Clean up expired in-memory windows."""
        removed = self._memory.cleanup(self.window_ms, _now_ms())
        if removed:
            logger.debug("Expired rate limit windows removed", count=removed)
        return removed


_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Get global rate limiter instance."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter.from_settings()
    return _rate_limiter


def set_rate_limiter(limiter: Optional[RateLimiter]) -> None:
    """Replace the global rate limiter (application startup and tests)."""
    global _rate_limiter
    _rate_limiter = limiter


async def check_rate_limit(identifier: str) -> RateLimitResult:
    """Check if an identifier (IP address) is rate limited."""
    return await get_rate_limiter().check_rate_limit(identifier)

"""
In-memory fixed window rate limiting.

Counters live in a ``cachetools.TTLCache`` per Lambda execution environment,
so limits apply per warm container rather than globally.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from aws_lambda_powertools.metrics import MetricUnit
from cachetools import TTLCache

from api_core.errors import RateLimitError
from api_core.middleware.pipeline import Middleware, MiddlewareRequest, response_headers
from api_core.observability import logger, metrics
from api_core.responses import error_response
from api_core.routing.parser import get_source_ip

KeyFunction = Callable[[Dict[str, Any]], str]


@dataclass
class RateLimitResult:
    """Result of rate limit check."""

    allowed: bool
    limit: int
    remaining: int
    reset_time: int
    retry_after: Optional[int] = None

    def to_headers(self) -> Dict[str, str]:
        """Convert to HTTP headers."""
        headers = {
            'X-RateLimit-Limit': str(self.limit),
            'X-RateLimit-Remaining': str(self.remaining),
            'X-RateLimit-Reset': str(self.reset_time),
        }
        if self.retry_after is not None:
            headers['Retry-After'] = str(self.retry_after)
        return headers


def source_ip_key(event: Dict[str, Any]) -> str:
    return get_source_ip(event) or 'anonymous'


class FixedWindowRateLimiter:
    def __init__(
        self,
        requests_per_window: int,
        window_seconds: int,
        max_keys: int = 10000,
        clock: Callable[[], float] = time.time,
    ):
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds
        self.clock = clock
        self._counters: TTLCache = TTLCache(maxsize=max_keys, ttl=window_seconds * 2, timer=clock)

    def check(self, key: str) -> RateLimitResult:
        now = self.clock()
        window_start = int(now // self.window_seconds) * self.window_seconds
        reset_time = window_start + self.window_seconds
        counter_key = f'{key}:{window_start}'

        count = self._counters.get(counter_key, 0)
        if count >= self.requests_per_window:
            return RateLimitResult(
                allowed=False,
                limit=self.requests_per_window,
                remaining=0,
                reset_time=reset_time,
                retry_after=max(1, int(reset_time - now)),
            )

        self._counters[counter_key] = count + 1
        return RateLimitResult(
            allowed=True,
            limit=self.requests_per_window,
            remaining=self.requests_per_window - count - 1,
            reset_time=reset_time,
        )


class RateLimitMiddleware(Middleware):
    """Short-circuits with a 429 envelope once a caller exceeds its window."""

    def __init__(
        self,
        requests_per_window: int = 100,
        window_seconds: int = 60,
        key_function: KeyFunction = source_ip_key,
        limiter: Optional[FixedWindowRateLimiter] = None,
    ):
        self.limiter = limiter or FixedWindowRateLimiter(requests_per_window, window_seconds)
        self.key_function = key_function

    def before(self, request: MiddlewareRequest) -> None:
        key = self.key_function(request.event)
        result = self.limiter.check(key)
        request.internal['rate_limit'] = result

        if result.allowed:
            return

        metrics.add_metric(name='RateLimitExceeded', unit=MetricUnit.Count, value=1)
        logger.warning('Rate limit exceeded', extra={'rate_limit_key': key, 'retry_after': result.retry_after})
        request.response = error_response(
            RateLimitError('Rate limit exceeded', retry_after=result.retry_after),
            headers=result.to_headers(),
        )

    def after(self, request: MiddlewareRequest) -> None:
        result = request.internal.get('rate_limit')
        if result is None or request.response is None:
            return
        headers = response_headers(request)
        for name, value in result.to_headers().items():
            headers.setdefault(name, value)

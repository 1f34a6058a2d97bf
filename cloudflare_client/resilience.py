#
#
#

"""Per-request resilience: attempt timeout, circuit breaker, 429 retries.

Only one kind of failure is recovered locally: a ``429 Too Many Requests``
answer to a read-only request (GET, HEAD, OPTIONS). Mutating requests are
never replayed, and every other failure propagates on first occurrence.

The delay before a retry is taken from the response when possible:

1. ``Retry-After: <seconds>`` is used as is.
2. ``Retry-After: <HTTP-date>`` waits until that instant, unless it is
   already in the past.
3. Otherwise exponential backoff with jitter, capped at ``max_delay``.

A retry whose wait would outlast the ``total_timeout`` budget of the
logical request is not attempted. When ``RateLimit-*`` headers report the
quota running low, the next request waits for the quota window to reset.
"""

import asyncio
import logging
import random
import threading
import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Awaitable, Callable, Optional

import httpx

from .config import CircuitBreakerConfig, RateLimitingConfig
from .exceptions import CircuitOpenError, RateLimitExhausted, RequestTimeout

TOO_MANY_REQUESTS = 429
RETRYABLE_METHODS = frozenset(('GET', 'HEAD', 'OPTIONS'))

Send = Callable[[httpx.Request], Awaitable[httpx.Response]]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RetryContext:
    """State of one logical request across its attempts.

    A fresh context is created for every logical request and dropped once it
    succeeds or fails for good.
    """

    attempt: int = 0
    last_response: Optional[httpx.Response] = None
    delay: Optional[float] = None


def parse_retry_after(value: Optional[str], now: Optional[datetime] = None):
    """Return the wait in seconds a ``Retry-After`` value asks for.

    Returns None when the header is absent, malformed, or names an instant
    that has already passed.
    """
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        return float(value)
    try:
        target = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if target is None:
        return None
    if target.tzinfo is None:
        target = target.replace(tzinfo=timezone.utc)
    remaining = (target - (now or utcnow())).total_seconds()
    if remaining <= 0:
        return None
    return remaining


def backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    rand: Callable[[], float] = random.random,
) -> float:
    delay = base_delay * (2**attempt) + rand() * base_delay
    return min(delay, max_delay)


def resolve_retry_delay(
    response: httpx.Response,
    attempt: int,
    config: RateLimitingConfig,
    now: Optional[datetime] = None,
    rand: Callable[[], float] = random.random,
) -> float:
    server = parse_retry_after(response.headers.get('retry-after'), now)
    if server is not None:
        return server
    return backoff_delay(attempt, config.base_delay, config.max_delay, rand)


def _leading_number(value: str) -> float:
    # '100, 100;w=60' carries the active quota first
    return float(value.split(',')[0].split(';')[0].strip())


@dataclass(frozen=True)
class RateLimitQuota:
    """Quota reported by ``RateLimit-Limit/Remaining/Reset`` headers.

    ``reset`` is in seconds from ``observed_at``, a reading of the
    pipeline's monotonic clock.
    """

    limit: float
    remaining: float
    reset: float
    observed_at: float

    @classmethod
    def from_headers(cls, headers, observed_at: float):
        try:
            limit = _leading_number(headers['ratelimit-limit'])
            remaining = _leading_number(headers['ratelimit-remaining'])
            reset = _leading_number(headers['ratelimit-reset'])
        except (KeyError, ValueError):
            return None
        if limit <= 0 or remaining < 0 or reset < 0:
            return None
        return cls(limit, remaining, reset, observed_at)

    def is_low(self, threshold: float) -> bool:
        return self.remaining / self.limit < threshold

    def wait(self, now: float) -> float:
        return self.reset - (now - self.observed_at)


class CircuitState(str, Enum):
    CLOSED = 'closed'
    OPEN = 'open'
    HALF_OPEN = 'half_open'


class CircuitBreaker:
    """Failure-ratio circuit breaker over a sliding sampling window.

    States:
        CLOSED: Calls pass; outcomes are sampled
        OPEN: Calls are rejected until ``break_duration`` elapses
        HALF_OPEN: A single probe call decides between CLOSED and OPEN
    """

    def __init__(
        self,
        config: CircuitBreakerConfig = None,
        clock: Callable[[], float] = time.monotonic,
        name: str = 'default',
    ):
        self.config = config or CircuitBreakerConfig()
        self.log = logging.getLogger(f'CircuitBreaker[{name}]')
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._samples = deque()
        self._opened_at = None
        self._probe_in_flight = False

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._check_state_transition()
            return self._state

    def _check_state_transition(self):
        if (
            self._state == CircuitState.OPEN
            and self._clock() - self._opened_at >= self.config.break_duration
        ):
            self._state = CircuitState.HALF_OPEN
            self._probe_in_flight = False

    def allow_request(self) -> None:
        with self._lock:
            self._check_state_transition()
            if self._state == CircuitState.CLOSED:
                return
            if (
                self._state == CircuitState.HALF_OPEN
                and not self._probe_in_flight
            ):
                self._probe_in_flight = True
                return
            retry_in = None
            if self._state == CircuitState.OPEN:
                retry_in = self.config.break_duration - (
                    self._clock() - self._opened_at
                )
            raise CircuitOpenError(retry_in)

    def record_success(self) -> None:
        with self._lock:
            if self._state == CircuitState.OPEN:
                return
            if self._state == CircuitState.HALF_OPEN:
                self.log.info('record_success: probe succeeded, closing')
                self._state = CircuitState.CLOSED
                self._samples.clear()
                return
            self._sample(False)

    def record_failure(self) -> None:
        with self._lock:
            # Late outcomes of calls started before the circuit opened
            if self._state == CircuitState.OPEN:
                return
            if self._state == CircuitState.HALF_OPEN:
                self._open()
                return
            self._sample(True)
            failures = sum(1 for _, failed in self._samples if failed)
            total = len(self._samples)
            if (
                total >= self.config.minimum_throughput
                and failures / total >= self.config.failure_ratio
            ):
                self._open()

    def release_probe(self) -> None:
        with self._lock:
            self._probe_in_flight = False

    def _sample(self, failed: bool):
        now = self._clock()
        self._samples.append((now, failed))
        horizon = now - self.config.sampling_duration
        while self._samples and self._samples[0][0] < horizon:
            self._samples.popleft()

    def _open(self):
        self.log.warning(
            '_open: opening circuit for %ss', self.config.break_duration
        )
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
        self._samples.clear()
        self._probe_in_flight = False


def is_transient_failure(response: httpx.Response) -> bool:
    return response.status_code == 408 or response.status_code >= 500


class ResiliencePipeline:
    def __init__(
        self,
        rate_limiting: RateLimitingConfig = None,
        breaker: CircuitBreaker = None,
        timeout: float = 30.0,
        name: str = 'default',
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.rate_limiting = rate_limiting or RateLimitingConfig()
        self._sleep = sleep
        self._clock = clock
        self._quota = None
        self.breaker = breaker or CircuitBreaker(name=name)
        self.timeout = timeout
        self.log = logging.getLogger(f'ResiliencePipeline[{name}]')

    @property
    def quota(self) -> Optional[RateLimitQuota]:
        """The most recent quota reported by the server, if any."""
        return self._quota

    def should_retry(self, request: httpx.Request, response) -> bool:
        return (
            response.status_code == TOO_MANY_REQUESTS
            and request.method.upper() in RETRYABLE_METHODS
            and self.rate_limiting.retries_enabled
        )

    async def send(self, request: httpx.Request, send: Send) -> httpx.Response:
        """Run one logical request, retrying rate-limited reads.

        Raises:
            RateLimitExhausted: Still rate limited after ``max_retries``, or
                the server asked for a wait beyond ``total_timeout``
            CircuitOpenError: The breaker rejected the attempt
            RequestTimeout: An attempt exceeded ``timeout`` or the whole
                request exceeded ``total_timeout``
        """
        total = self.rate_limiting.total_timeout
        deadline = self._clock() + total
        try:
            return await asyncio.wait_for(
                self._send(request, send, deadline), total
            )
        except asyncio.TimeoutError as e:
            self.log.warning(
                'send: %s %s exceeded total timeout of %ss',
                request.method,
                request.url,
                total,
            )
            raise RequestTimeout(request.method, request.url, total) from e

    async def _send(self, request, send, deadline):
        context = RetryContext()
        max_retries = self.rate_limiting.max_retries
        while True:
            await self._throttle(request)
            response = await self._attempt(request, send)
            self._record_quota(response)
            context.last_response = response
            if not self.should_retry(request, response):
                return response
            if context.attempt >= max_retries:
                self.log.warning(
                    'send: %s %s still rate limited after %d attempts',
                    request.method,
                    request.url,
                    context.attempt + 1,
                )
                raise RateLimitExhausted(response, context.attempt + 1)

            context.delay = resolve_retry_delay(
                response, context.attempt, self.rate_limiting
            )
            remaining = deadline - self._clock()
            if context.delay >= remaining:
                self.log.warning(
                    'send: %s %s asked to wait %.2fs, only %.2fs left of '
                    'the request budget',
                    request.method,
                    request.url,
                    context.delay,
                    remaining,
                )
                raise RateLimitExhausted(response, context.attempt + 1)

            context.attempt += 1
            self.log.warning(
                'send: rate limited on %s %s, retry attempt %d/%d in %.2fs',
                request.method,
                request.url,
                context.attempt,
                max_retries,
                context.delay,
            )
            await response.aclose()
            await self._sleep(context.delay)

    async def _throttle(self, request: httpx.Request) -> None:
        quota = self._quota
        if quota is None or not self.rate_limiting.enable_proactive_throttling:
            return
        if not quota.is_low(self.rate_limiting.quota_low_threshold):
            return
        # One wait per reported window; the next response reports afresh
        self._quota = None
        delay = min(quota.wait(self._clock()), self.rate_limiting.max_delay)
        if delay <= 0:
            return
        self.log.warning(
            '_throttle: quota low (%g/%g remaining), delaying %s %s by %.2fs',
            quota.remaining,
            quota.limit,
            request.method,
            request.url,
            delay,
        )
        await self._sleep(delay)

    def _record_quota(self, response: httpx.Response) -> None:
        quota = RateLimitQuota.from_headers(response.headers, self._clock())
        if quota is not None:
            self._quota = quota

    async def _attempt(
        self, request: httpx.Request, send: Send
    ) -> httpx.Response:
        self.breaker.allow_request()
        try:
            response = await asyncio.wait_for(send(request), self.timeout)
        except asyncio.TimeoutError as e:
            self.breaker.record_failure()
            raise RequestTimeout(
                request.method, request.url, self.timeout
            ) from e
        except httpx.TransportError:
            self.breaker.record_failure()
            raise
        except BaseException:
            # Cancellation or an unexpected error must not wedge a half-open
            # breaker waiting on this probe
            self.breaker.release_probe()
            raise

        if is_transient_failure(response):
            self.breaker.record_failure()
        else:
            self.breaker.record_success()
        return response

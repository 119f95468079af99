"""
Retry mechanism for outbound HTTP calls.

``RetryTransport`` wraps any httpx async transport and resends a request when
the response status is retryable or a transport-level exception occurred.
Delays follow exponential back-off unless the server sends a ``Retry-After``
header, in which case that value is honored (up to ``RetryPolicy.max_delay``).
"""

import asyncio
import copy
import email.utils
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import FrozenSet, List, Optional, Protocol, Tuple, Type

import httpx

from .clock import Clock, SYSTEM_CLOCK
from .errors import ConfigurationError
from .logging import get_logger
from .metrics import get_metrics


DEFAULT_MAX_RETRIES = 4
DEFAULT_BACKOFF_FACTOR = 2.0
DEFAULT_INITIAL_INTERVAL = 1.0
DEFAULT_MAX_DELAY = 120.0


@dataclass
class RetryPolicy:
    """Configuration for retry behavior.

    Each HTTP client takes its own copy of the policy, so changing a policy
    after handing it to a client has no effect on that client.
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR
    initial_interval: float = DEFAULT_INITIAL_INTERVAL
    max_delay: float = DEFAULT_MAX_DELAY
    retry_status_codes: FrozenSet[int] = frozenset({503})
    retry_on_exception: bool = True
    retryable_exceptions: Tuple[Type[BaseException], ...] = (Exception,)
    # None retries every method
    retry_methods: Optional[FrozenSet[str]] = None

    def __post_init__(self):
        if self.backoff_factor < 0:
            raise ConfigurationError(
                f"backoff_factor must not be negative, got {self.backoff_factor}.",
                details={"backoff_factor": self.backoff_factor},
            )
        if self.max_retries < 0:
            raise ConfigurationError(
                f"max_retries must not be negative, got {self.max_retries}.",
                details={"max_retries": self.max_retries},
            )
        if self.initial_interval <= 0:
            raise ConfigurationError(
                f"initial_interval must be positive, got {self.initial_interval}.",
                details={"initial_interval": self.initial_interval},
            )
        if self.max_delay < 0:
            raise ConfigurationError(
                f"max_delay must not be negative, got {self.max_delay}.",
                details={"max_delay": self.max_delay},
            )
        self.retry_status_codes = frozenset(self.retry_status_codes)
        if self.retry_methods is not None:
            self.retry_methods = frozenset(method.upper() for method in self.retry_methods)

    @classmethod
    def default(cls) -> "RetryPolicy":
        """Retry HTTP 503 and transport errors up to 4 times (1s, 2s, 4s, 8s)."""
        return cls()

    @classmethod
    def no_backoff(cls) -> "RetryPolicy":
        """Default policy without waiting between attempts. Mostly useful in tests."""
        return cls(backoff_factor=0)

    def copy(self) -> "RetryPolicy":
        return copy.deepcopy(self)

    def backoff_delay(self, retry_number: int) -> float:
        """Delay in seconds before the ``retry_number``-th retry (1-based)."""
        if self.backoff_factor == 0:
            return 0.0
        return self.initial_interval * (self.backoff_factor ** (retry_number - 1))

    def allows_method(self, method: str) -> bool:
        return self.retry_methods is None or method.upper() in self.retry_methods


@dataclass
class RetryState:
    """Per-request retry bookkeeping. Never shared between requests."""

    attempts_made: int = 0
    delays: List[float] = field(default_factory=list)

    @property
    def retries_made(self) -> int:
        return max(0, self.attempts_made - 1)


class Waiter(Protocol):
    async def wait(self, seconds: float) -> None:  # pragma: no cover - protocol definition
        ...


class AsyncioWaiter:
    """Default waiter; the sleep is a cancellation point."""

    async def wait(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


def parse_retry_after(value: Optional[str], now: datetime) -> Optional[float]:
    """Parse a ``Retry-After`` header given as delta-seconds or an HTTP-date.

    Returns the delay in seconds relative to ``now``, or None when the header
    is absent or unparseable.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if value.isdigit():
        return float(int(value))

    try:
        retry_at = email.utils.parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if retry_at is None:
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    return (retry_at - now).total_seconds()


class RetryTransport(httpx.AsyncBaseTransport):
    """Transport decorator that retries failing requests according to a RetryPolicy."""

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport,
        policy: RetryPolicy,
        waiter: Optional[Waiter] = None,
        clock: Optional[Clock] = None,
    ):
        self._transport = transport
        self._policy = policy.copy()
        self._waiter = waiter or AsyncioWaiter()
        self._clock = clock or SYSTEM_CLOCK
        self._metrics = get_metrics()
        self.logger = get_logger("admin_core.retry")

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        state = RetryState()
        method = request.method

        while True:
            state.attempts_made += 1
            started = time.perf_counter()
            try:
                response = await self._transport.handle_async_request(request)
            except self._policy.retryable_exceptions as exc:
                self._metrics.record_http_attempt(method, "exception", time.perf_counter() - started)
                delay = self._delay_after_exception(request, state)
                if delay is None:
                    raise
                self.logger.warning(
                    "HTTP request failed, waiting before next attempt",
                    method=method,
                    url=str(request.url),
                    attempt=state.attempts_made,
                    delay=delay,
                    error=str(exc),
                )
                self._metrics.record_retry("exception")
                await self._wait(delay, state)
                continue

            self._metrics.record_http_attempt(method, str(response.status_code), time.perf_counter() - started)
            delay = self._delay_after_response(request, response, state)
            if delay is None:
                return response

            self.logger.warning(
                "Retryable HTTP response, waiting before next attempt",
                method=method,
                url=str(request.url),
                status_code=response.status_code,
                attempt=state.attempts_made,
                delay=delay,
            )
            self._metrics.record_retry("status")
            await response.aclose()
            await self._wait(delay, state)

    async def aclose(self) -> None:
        await self._transport.aclose()

    def _can_retry(self, request: httpx.Request, state: RetryState) -> bool:
        if not self._policy.allows_method(request.method):
            return False
        if state.retries_made >= self._policy.max_retries:
            self.logger.info(
                "All retry attempts exhausted",
                method=request.method,
                url=str(request.url),
                attempts=state.attempts_made,
            )
            return False
        return True

    def _delay_after_exception(self, request: httpx.Request, state: RetryState) -> Optional[float]:
        if not self._policy.retry_on_exception or not self._can_retry(request, state):
            return None
        return self._bounded(self._policy.backoff_delay(state.attempts_made))

    def _delay_after_response(
        self, request: httpx.Request, response: httpx.Response, state: RetryState
    ) -> Optional[float]:
        if response.status_code not in self._policy.retry_status_codes:
            return None
        if not self._can_retry(request, state):
            return None

        retry_after = parse_retry_after(response.headers.get("Retry-After"), self._clock.now())
        if retry_after is not None and retry_after > 0:
            if retry_after > self._policy.max_delay:
                self.logger.warning(
                    "Retry-After exceeds maximum delay, not retrying",
                    retry_after=retry_after,
                    max_delay=self._policy.max_delay,
                )
                return None
            return retry_after

        return self._bounded(self._policy.backoff_delay(state.attempts_made))

    def _bounded(self, delay: float) -> Optional[float]:
        if delay > self._policy.max_delay:
            return None
        return delay

    async def _wait(self, delay: float, state: RetryState) -> None:
        state.delays.append(delay)
        await self._waiter.wait(delay)

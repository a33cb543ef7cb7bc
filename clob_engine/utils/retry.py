"""
Retry logic with exponential backoff and circuit breaker.

Only idempotent reads go through a retrying strategy. Order submission is
executed once: a retried POST could place the same order twice.
"""

import random
import time
import threading
from typing import Callable, TypeVar, Optional
import logging

from ..exceptions import (
    ClobError,
    APIError,
    NetworkError,
    RateLimitError,
    CircuitBreakerError
)

logger = logging.getLogger(__name__)

T = TypeVar('T')


def is_transient(exception: Exception) -> bool:
    """True for failures worth retrying: 5xx, timeouts, 429 and dropped connections."""
    if isinstance(exception, APIError) and exception.status_code is not None:
        # 4xx means the request itself is wrong
        return exception.status_code >= 500
    return isinstance(exception, (NetworkError, ConnectionError))


CLOSED = "CLOSED"
OPEN = "OPEN"
HALF_OPEN = "HALF_OPEN"


class CircuitBreaker:
    """
    Circuit breaker that stops hammering a venue that keeps failing.

    States: CLOSED (normal), OPEN (failing), HALF_OPEN (testing recovery).
    Only transport failures count; a rejected order or a validation error
    says nothing about venue health.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        timeout: float = 60.0,
        name: str = "default"
    ):
        """
        Initialize circuit breaker.

        Args:
            failure_threshold: Consecutive failures before opening
            timeout: Seconds before a trial request is let through
            name: Name used in log lines
        """
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.name = name

        self._failures = 0
        self._opened_at: Optional[float] = None
        self._state = CLOSED
        self._lock = threading.Lock()

    def _before_call(self) -> None:
        with self._lock:
            if self._state != OPEN:
                return
            if self._opened_at is not None and time.monotonic() - self._opened_at >= self.timeout:
                logger.info(f"Circuit breaker {self.name}: OPEN -> HALF_OPEN")
                self._state = HALF_OPEN
                return
        raise CircuitBreakerError(f"Circuit breaker {self.name} is OPEN")

    def record_success(self) -> None:
        with self._lock:
            if self._state == HALF_OPEN:
                logger.info(f"Circuit breaker {self.name}: HALF_OPEN -> CLOSED")
            self._state = CLOSED
            self._failures = 0
            self._opened_at = None

    def record_failure(self) -> None:
        with self._lock:
            self._failures += 1

            if self._state == HALF_OPEN or self._failures >= self.failure_threshold:
                if self._state != OPEN:
                    logger.warning(
                        f"Circuit breaker {self.name}: {self._state} -> OPEN "
                        f"({self._failures} failures)"
                    )
                self._state = OPEN
                self._opened_at = time.monotonic()

    def call(self, func: Callable[..., T], *args, **kwargs) -> T:
        """
        Call function with circuit breaker protection.

        Raises:
            CircuitBreakerError: If circuit is open
        """
        self._before_call()

        try:
            result = func(*args, **kwargs)
        except (NetworkError, ConnectionError) as e:
            if is_transient(e):
                self.record_failure()
            raise

        self.record_success()
        return result

    def reset(self) -> None:
        """Reset circuit breaker to closed state."""
        with self._lock:
            self._failures = 0
            self._opened_at = None
            self._state = CLOSED
            logger.info(f"Circuit breaker {self.name}: RESET -> CLOSED")

    @property
    def state(self) -> str:
        """Get current state."""
        return self._state

    @property
    def failures(self) -> int:
        """Get failure count."""
        return self._failures


class RetryStrategy:
    """
    Retry strategy with exponential backoff and jitter.

    Retries transport failures only: 5xx, timeouts, rate limits and
    connection errors. Validation, authentication and 4xx replies are raised
    on the first attempt.
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
        circuit_breaker: Optional[CircuitBreaker] = None
    ):
        """
        Initialize retry strategy.

        Args:
            max_retries: Maximum retry attempts
            base_delay: Initial delay in seconds
            max_delay: Maximum delay in seconds
            exponential_base: Backoff multiplier
            jitter: Add random jitter to delays
            circuit_breaker: Optional circuit breaker
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.circuit_breaker = circuit_breaker

    def _calculate_delay(self, attempt: int, exception: Optional[Exception] = None) -> float:
        """Calculate delay for attempt with exponential backoff + jitter."""
        if isinstance(exception, RateLimitError) and exception.retry_after:
            return min(exception.retry_after, self.max_delay)

        delay = min(
            self.base_delay * (self.exponential_base ** attempt),
            self.max_delay
        )

        if self.jitter:
            # ±25%
            jitter_amount = delay * 0.25
            delay += random.uniform(-jitter_amount, jitter_amount)

        return max(0, delay)

    def _should_retry(self, exception: Exception, attempt: int) -> bool:
        """Determine if exception should trigger retry."""
        if attempt >= self.max_retries:
            return False

        return is_transient(exception)

    def execute(self, func: Callable[..., T], *args, **kwargs) -> T:
        """
        Execute function with retry logic.

        Args:
            func: Function to execute
            *args: Positional arguments
            **kwargs: Keyword arguments

        Returns:
            Function result

        Raises:
            Last exception if all retries exhausted
        """
        name = getattr(func, "__name__", repr(func))
        last_exception: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            try:
                if self.circuit_breaker:
                    return self.circuit_breaker.call(func, *args, **kwargs)
                return func(*args, **kwargs)

            except (ClobError, ConnectionError) as e:
                last_exception = e
                if not self._should_retry(e, attempt):
                    raise

            delay = self._calculate_delay(attempt, last_exception)
            logger.warning(
                f"Retry {attempt + 1}/{self.max_retries} for {name} "
                f"after {type(last_exception).__name__}. Waiting {delay:.2f}s"
            )
            time.sleep(delay)

        # Loop always returns or raises; the last attempt fails _should_retry
        raise ClobError(f"Retry logic error in {name}")

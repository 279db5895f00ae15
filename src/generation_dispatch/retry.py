"""Exponential-backoff retry loop shared by the structured generation operations."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from time import perf_counter
from typing import Awaitable, Callable, Optional

from .errors import ConfigError, ProviderError, RetriesExhausted
from .metrics import GenerationEvent, LoggingMetricsCollector, MetricsCollector
from .models import Failure, GenerationOutcome

LOGGER = logging.getLogger("generation_dispatch.retry")

BASE_DELAY = 1.5

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """How many attempts an operation gets; ``max_attempts=None`` retries forever."""

    max_attempts: Optional[int] = None
    base_delay: float = BASE_DELAY

    def __post_init__(self) -> None:
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ConfigError("max_attempts must be >= 1 or None")
        if self.base_delay < 0:
            raise ConfigError("base_delay must be >= 0")

    @property
    def bounded(self) -> bool:
        return self.max_attempts is not None

    @classmethod
    def bounded_to(cls, max_attempts: int, base_delay: float = BASE_DELAY) -> "RetryPolicy":
        return cls(max_attempts=max_attempts, base_delay=base_delay)

    @classmethod
    def unbounded(cls, base_delay: float = BASE_DELAY) -> "RetryPolicy":
        return cls(max_attempts=None, base_delay=base_delay)

    def new_state(self) -> "RetryState":
        return RetryState(attempt=0, delay=self.base_delay, max_attempts=self.max_attempts)


@dataclass
class RetryState:
    """Mutable counters owned by one in-flight operation."""

    attempt: int
    delay: float
    max_attempts: Optional[int]

    @property
    def delay_ms(self) -> int:
        return int(round(self.delay * 1000))

    @property
    def exhausted(self) -> bool:
        return self.max_attempts is not None and self.attempt >= self.max_attempts

    def advance(self) -> float:
        """Return the delay to wait now and double it for the next failure."""
        current = self.delay
        self.delay = current * 2
        return current


async def run_with_retry(
    operation: Callable[[], Awaitable[str]],
    extract: Callable[[str], GenerationOutcome],
    policy: RetryPolicy,
    *,
    name: str,
    provider_id: str,
    model_class: str,
    sleep: SleepFn = asyncio.sleep,
    metrics: Optional[MetricsCollector] = None,
) -> GenerationOutcome:
    """Call ``operation`` until ``extract`` accepts its text.

    Extraction misses and retryable provider errors are retried with a delay
    that doubles each time. Configuration errors and non-retryable provider
    errors propagate on the first occurrence. A bounded policy raises
    :class:`RetriesExhausted` once its attempts are spent.
    """
    metrics = metrics or LoggingMetricsCollector()
    state = policy.new_state()
    start = perf_counter()
    last_error: Optional[BaseException] = None

    def _record(status: str, error_code: Optional[str] = None) -> None:
        metrics.record(
            GenerationEvent(
                operation=name,
                provider=provider_id,
                model_class=model_class,
                status=status,
                attempts=state.attempt,
                duration_ms=(perf_counter() - start) * 1000,
                error_code=error_code,
            )
        )

    while True:
        try:
            text = await operation()
        except asyncio.CancelledError:
            state.attempt += 1
            _record("cancelled")
            raise
        except ProviderError as exc:
            state.attempt += 1
            if not exc.retryable:
                LOGGER.error(
                    "%s failed with non-retryable provider error %s (provider=%s model_class=%s attempt=%s)",
                    name,
                    exc.code,
                    provider_id,
                    model_class,
                    state.attempt,
                )
                _record("error", exc.code)
                raise
            last_error = exc
            reason = exc.code
        except ConfigError as exc:
            state.attempt += 1
            _record("error", type(exc).__name__)
            raise
        else:
            state.attempt += 1
            outcome = extract(text)
            if not isinstance(outcome, Failure):
                _record("success")
                return outcome
            last_error = None
            reason = outcome.kind.value

        if state.exhausted:
            LOGGER.error(
                "%s exhausted after %s attempts (provider=%s model_class=%s last=%s)",
                name,
                state.attempt,
                provider_id,
                model_class,
                reason,
            )
            _record("exhausted", reason)
            raise RetriesExhausted(name, state.attempt, last_error)

        delay = state.advance()
        LOGGER.warning(
            "%s attempt %s%s failed (%s) for provider=%s model_class=%s; retrying in %sms",
            name,
            state.attempt,
            f"/{state.max_attempts}" if state.max_attempts is not None else "",
            reason,
            provider_id,
            model_class,
            int(round(delay * 1000)),
        )
        try:
            await sleep(delay)
        except asyncio.CancelledError:
            _record("cancelled")
            raise

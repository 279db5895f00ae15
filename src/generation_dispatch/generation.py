"""Public generation operations: text, booleans, arrays and structured objects."""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from time import perf_counter
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .dispatcher import GenerationDispatcher
from .errors import ConfigError, ProviderError
from .extraction import ExtractionKind, extract
from .metrics import GenerationEvent, LoggingMetricsCollector, MetricsCollector
from .models import (
    NO_MATCH,
    GenerationOutcome,
    GenerationRequest,
    ResponseDecision,
    StructuredObject,
)
from .retry import BASE_DELAY, RetryPolicy, SleepFn, run_with_retry

LOGGER = logging.getLogger("generation_dispatch.generation")

STRUCTURED_MAX_ATTEMPTS = 5

ModelT = TypeVar("ModelT", bound=BaseModel)


def _validated(shape: Optional[Type[BaseModel]], text: str) -> GenerationOutcome:
    outcome = extract(text, ExtractionKind.JSON_OBJECT)
    if shape is None or not isinstance(outcome, StructuredObject):
        return outcome
    try:
        return StructuredObject(shape.model_validate(outcome.value), shape.__name__)
    except ValidationError as exc:
        LOGGER.debug("Response did not match %s: %s", shape.__name__, exc.error_count())
        return NO_MATCH


def _unique(values: List[str]) -> List[str]:
    seen: Dict[str, None] = {}
    for value in values:
        seen.setdefault(value, None)
    return list(seen)


class Generator:
    """Run the generation operations against a :class:`GenerationDispatcher`.

    Free text is a single attempt. Structured objects get a bounded number of
    attempts. Booleans, arrays and respond decisions retry until they succeed,
    because their callers have no sensible fallback.
    """

    def __init__(
        self,
        dispatcher: GenerationDispatcher,
        *,
        metrics: Optional[MetricsCollector] = None,
        base_delay: float = BASE_DELAY,
        structured_max_attempts: int = STRUCTURED_MAX_ATTEMPTS,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._dispatcher = dispatcher
        self._metrics = metrics or LoggingMetricsCollector()
        self._sleep = sleep
        self.structured_policy = RetryPolicy.bounded_to(structured_max_attempts, base_delay)
        self.unbounded_policy = RetryPolicy.unbounded(base_delay)

    @property
    def dispatcher(self) -> GenerationDispatcher:
        return self._dispatcher

    async def _retry(
        self,
        name: str,
        request: GenerationRequest,
        provider_id: str,
        extractor,
        policy: RetryPolicy,
    ) -> GenerationOutcome:
        # Resolve up front so an unknown provider fails before any attempt.
        profile = self._dispatcher.registry.resolve(provider_id)
        return await run_with_retry(
            partial(self._dispatcher.dispatch, request, provider_id),
            extractor,
            policy,
            name=name,
            provider_id=profile.provider_id,
            model_class=request.model_class.value,
            sleep=self._sleep,
            metrics=self._metrics,
        )

    async def generate_text(self, request: GenerationRequest, provider_id: str) -> str:
        """Single attempt; the raw text is returned even when empty."""
        profile = self._dispatcher.registry.resolve(provider_id)
        start = perf_counter()
        status, error_code = "error", None
        try:
            outcome = extract(await self._dispatcher.dispatch(request, provider_id), ExtractionKind.TEXT)
            status = "success"
            return outcome.text
        except asyncio.CancelledError:
            status = "cancelled"
            raise
        except ProviderError as exc:
            LOGGER.error(
                "generate_text failed for provider=%s model_class=%s: %s (retryable=%s)",
                profile.provider_id,
                request.model_class.value,
                exc.code,
                exc.retryable,
            )
            error_code = exc.code
            raise
        except ConfigError as exc:
            error_code = type(exc).__name__
            raise
        finally:
            self._metrics.record(
                GenerationEvent(
                    operation="generate_text",
                    provider=profile.provider_id,
                    model_class=request.model_class.value,
                    status=status,
                    attempts=1,
                    duration_ms=(perf_counter() - start) * 1000,
                    error_code=error_code,
                )
            )

    async def generate_structured_object(
        self,
        request: GenerationRequest,
        provider_id: str,
        expected_shape: Optional[Type[BaseModel]] = None,
    ) -> Any:
        """JSON object from free text, validated against ``expected_shape`` when given.

        Raises ``RetriesExhausted`` after ``structured_max_attempts`` misses.
        """
        outcome = await self._retry(
            "generate_structured_object",
            request,
            provider_id,
            partial(_validated, expected_shape),
            self.structured_policy,
        )
        return outcome.value

    async def generate_object(self, request: GenerationRequest, provider_id: str) -> Dict[str, Any]:
        outcome = await self._retry(
            "generate_object",
            request,
            provider_id,
            partial(extract, kind=ExtractionKind.JSON_OBJECT),
            self.unbounded_policy,
        )
        return outcome.value

    async def generate_object_array(self, request: GenerationRequest, provider_id: str) -> List[Any]:
        outcome = await self._retry(
            "generate_object_array",
            request,
            provider_id,
            partial(extract, kind=ExtractionKind.JSON_ARRAY),
            self.unbounded_policy,
        )
        return outcome.value

    async def generate_string_array(self, request: GenerationRequest, provider_id: str) -> List[str]:
        outcome = await self._retry(
            "generate_string_array",
            request,
            provider_id,
            partial(extract, kind=ExtractionKind.STRING_ARRAY),
            self.unbounded_policy,
        )
        return list(outcome.values)

    async def generate_boolean(self, request: GenerationRequest, provider_id: str) -> bool:
        """Yes/no answer; generation stops at the first newline."""
        profile = self._dispatcher.registry.resolve(provider_id)
        base = request.stop_sequences if request.stop_sequences is not None else profile.default_stop
        request = request.with_stop(_unique(list(base) + ["\n"]))
        outcome = await self._retry(
            "generate_boolean",
            request,
            provider_id,
            partial(extract, kind=ExtractionKind.BOOLEAN),
            self.unbounded_policy,
        )
        return outcome.value

    async def generate_should_respond(self, request: GenerationRequest, provider_id: str) -> ResponseDecision:
        outcome = await self._retry(
            "generate_should_respond",
            request,
            provider_id,
            lambda text: extract(text.strip(), ExtractionKind.SHOULD_RESPOND),
            self.unbounded_policy,
        )
        return outcome.value

    async def generate_object_native(
        self,
        request: GenerationRequest,
        provider_id: str,
        shape: Type[ModelT],
    ) -> ModelT:
        """Schema-constrained decoding done by the backend itself.

        Raises ``UnsupportedCapability`` for backends without native support;
        callers then fall back to :meth:`generate_structured_object`.
        """
        profile = self._dispatcher.registry.resolve(provider_id)
        start = perf_counter()
        status, error_code = "error", None
        try:
            value = await self._dispatcher.dispatch_structured(
                request,
                provider_id,
                shape.model_json_schema(),
                shape.__name__,
            )
            result = shape.model_validate(value)
            status = "success"
            return result
        except asyncio.CancelledError:
            status = "cancelled"
            raise
        except ValidationError:
            error_code = "validation_error"
            raise
        except ProviderError as exc:
            error_code = exc.code
            raise
        except ConfigError as exc:
            error_code = type(exc).__name__
            raise
        finally:
            self._metrics.record(
                GenerationEvent(
                    operation="generate_object_native",
                    provider=profile.provider_id,
                    model_class=request.model_class.value,
                    status=status,
                    attempts=1,
                    duration_ms=(perf_counter() - start) * 1000,
                    error_code=error_code,
                )
            )

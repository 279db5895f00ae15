"""Provider abstractions for LLM integrations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Tuple

from ..errors import ProviderError

RETRYABLE_STATUS = frozenset({408, 409, 429})


@dataclass(frozen=True)
class CompletionCall:
    """Normalized request passed to provider adapters.

    Every sampling field is resolved by the dispatcher from the provider
    profile; adapters forward them as-is.
    """

    model: str
    prompt: str
    temperature: float
    max_tokens: int
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    stop: Tuple[str, ...] = field(default_factory=tuple)
    system: Optional[str] = None


def is_retryable_status(status: Optional[int]) -> bool:
    if status is None:
        return False
    return status in RETRYABLE_STATUS or status >= 500


def status_error(provider: str, status: int, body: str, *, details: Optional[Dict[str, Any]] = None) -> ProviderError:
    merged = {"status_code": status}
    merged.update(details or {})
    return ProviderError(
        code=f"{provider}_http_{status}",
        message=body[:500] or f"{provider} returned HTTP {status}",
        retryable=is_retryable_status(status),
        details=merged,
    )


class BaseProvider(Protocol):
    """Protocol describing provider behaviour."""

    name: str
    supports_structured: bool

    async def invoke(self, call: CompletionCall) -> str:
        """Produce raw model text for the given call."""

    async def invoke_structured(self, call: CompletionCall, schema: Dict[str, Any], schema_name: str) -> Any:
        """Produce a value constrained to ``schema`` by the backend itself."""

    async def aclose(self) -> None:  # pragma: no cover - optional hook
        """Optional async cleanup hook."""

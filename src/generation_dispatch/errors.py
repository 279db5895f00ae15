"""Error taxonomy for the generation dispatch layer."""

from __future__ import annotations

from typing import Any, Dict, Optional


class GenerationError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(GenerationError, ValueError):
    """Raised when configuration values are invalid or missing.

    Subclasses are fatal: the retry engine never retries them.
    """


class UnknownProvider(ConfigError):
    def __init__(self, provider_id: str):
        super().__init__(f"Unknown provider: {provider_id}")
        self.provider_id = provider_id


class UnsupportedModelClass(ConfigError):
    def __init__(self, model_class: object, provider_id: Optional[str] = None):
        where = f" for provider {provider_id}" if provider_id else ""
        super().__init__(f"Unsupported model class: {model_class}{where}")
        self.model_class = model_class
        self.provider_id = provider_id


class UnsupportedCapability(ConfigError):
    def __init__(self, provider_id: str, capability: str):
        super().__init__(f"Provider {provider_id} does not support {capability}")
        self.provider_id = provider_id
        self.capability = capability


class InvalidBudget(ConfigError):
    def __init__(self, max_tokens: int):
        super().__init__(f"max_tokens must be positive, got {max_tokens}")
        self.max_tokens = max_tokens


class ProviderError(GenerationError):
    """Standard error raised by provider adapters."""

    def __init__(self, code: str, message: str, retryable: bool = False, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.retryable = retryable
        self.details = details or {}


class RetriesExhausted(GenerationError):
    """A bounded operation failed on every allowed attempt."""

    def __init__(self, operation: str, attempts: int, last_error: Optional[BaseException] = None):
        super().__init__(f"{operation} failed after {attempts} attempts")
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error

    @property
    def outcome(self):
        from .models import Failure, FailureKind

        return Failure(FailureKind.RETRIES_EXHAUSTED)

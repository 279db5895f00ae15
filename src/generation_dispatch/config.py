"""Configuration utilities for the generation dispatch layer."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigError
from .models import ModelClass
from .registry import DEFAULT_PROFILES, ProviderRegistry

# Load secrets from home directory first, then fall back to local lookups.
load_dotenv(Path.home() / ".env", override=False)
load_dotenv(override=False)

ENV_PREFIX = "GEN_"
_API_KEY_SUFFIX = "_API_KEY"


def _optional(value: Optional[str]) -> Optional[str]:
    if value is None or value.strip() == "":
        return None
    return value.strip()


def _collect_api_keys(env: Mapping[str, str]) -> Dict[str, str]:
    keys: Dict[str, str] = {}
    for name, value in env.items():
        if not (name.startswith(ENV_PREFIX) and name.endswith(_API_KEY_SUFFIX)):
            continue
        provider = name[len(ENV_PREFIX) : -len(_API_KEY_SUFFIX)].lower()
        if provider and _optional(value):
            keys[provider] = value.strip()
    return keys


@dataclass(frozen=True)
class DispatchConfig:
    """Settings resolved once at process start."""

    provider: str
    api_key: Optional[str]
    endpoint_override: Optional[str]
    system_prompt: Optional[str]
    retry_base_delay: float
    structured_max_attempts: int
    request_timeout: float
    metrics_backend: str
    metrics_port: Optional[int]
    log_level: str
    model_overrides: Dict[ModelClass, str] = field(default_factory=dict)
    provider_api_keys: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "DispatchConfig":
        """Build configuration from environment variables."""
        env = env or os.environ

        provider = (env.get("GEN_PROVIDER") or "openai").strip().lower()
        metrics_backend = env.get("GEN_METRICS_BACKEND", "logging").strip().lower()
        log_level = env.get("GEN_LOG_LEVEL", "INFO").strip().upper()

        try:
            retry_base_delay = float(env.get("GEN_RETRY_BASE_DELAY", "1.5"))
            structured_max_attempts = int(env.get("GEN_STRUCTURED_MAX_ATTEMPTS", "5"))
            request_timeout = float(env.get("GEN_REQUEST_TIMEOUT", "60.0"))
            metrics_port_raw = _optional(env.get("GEN_METRICS_PORT"))
            metrics_port = int(metrics_port_raw) if metrics_port_raw else None
        except ValueError as exc:
            raise ConfigError(f"Invalid numeric configuration: {exc}") from exc

        if retry_base_delay < 0:
            raise ConfigError("GEN_RETRY_BASE_DELAY must be >= 0")
        if structured_max_attempts < 1:
            raise ConfigError("GEN_STRUCTURED_MAX_ATTEMPTS must be >= 1")
        if request_timeout <= 0:
            raise ConfigError("GEN_REQUEST_TIMEOUT must be > 0")
        if metrics_backend not in {"logging", "prometheus"}:
            raise ConfigError("GEN_METRICS_BACKEND must be 'logging' or 'prometheus'")
        if metrics_port is not None and metrics_port < 0:
            raise ConfigError("GEN_METRICS_PORT must be >= 0 when provided")

        model_overrides: Dict[ModelClass, str] = {}
        for model_class in ModelClass:
            value = _optional(env.get(f"GEN_MODEL_{model_class.name}"))
            if value:
                model_overrides[model_class] = value

        return cls(
            provider=provider,
            api_key=_optional(env.get("GEN_API_KEY")),
            endpoint_override=_optional(env.get("GEN_ENDPOINT_OVERRIDE")),
            system_prompt=_optional(env.get("GEN_SYSTEM_PROMPT")),
            retry_base_delay=retry_base_delay,
            structured_max_attempts=structured_max_attempts,
            request_timeout=request_timeout,
            metrics_backend=metrics_backend,
            metrics_port=metrics_port,
            log_level=log_level,
            model_overrides=model_overrides,
            provider_api_keys=_collect_api_keys(env),
        )

    def api_key_for(self, provider_id: str) -> Optional[str]:
        return self.provider_api_keys.get(provider_id.lower()) or self.api_key

    def build_registry(self, profiles=DEFAULT_PROFILES) -> ProviderRegistry:
        """Registry of ``profiles`` with the overrides applied to the active provider."""
        registry = ProviderRegistry(profiles)
        active = registry.resolve(self.provider)
        if not (self.endpoint_override or self.model_overrides):
            return registry

        overridden = active.with_overrides(
            endpoint=self.endpoint_override,
            models=self.model_overrides,
        )
        rebuilt = []
        for profile in registry:
            rebuilt.append(overridden if profile is active else profile)
        return ProviderRegistry(rebuilt)


"""Wire configuration, registry, adapters and metrics into a ready Generator."""

from __future__ import annotations

import asyncio
import logging
from typing import Mapping, Optional

from .config import DispatchConfig
from .dispatcher import GenerationDispatcher
from .errors import ConfigError
from .generation import Generator
from .metrics import LoggingMetricsCollector, MetricsCollector, PrometheusMetricsCollector
from .providers.anthropic import AnthropicProvider
from .providers.base import BaseProvider
from .providers.ollama import OllamaProvider
from .providers.openai import OpenAIChatProvider
from .registry import ProviderProfile, ProviderRegistry
from .retry import SleepFn

LOGGER = logging.getLogger("generation_dispatch.runtime")


def _level_for(name: str) -> int:
    level = getattr(logging, name.upper(), logging.INFO)
    if isinstance(level, int):
        return level
    return logging.INFO


def create_provider(profile: ProviderProfile, config: DispatchConfig) -> BaseProvider:
    """Instantiate the adapter for ``profile.family``."""
    family = profile.family
    if family == "openai":
        return OpenAIChatProvider(
            api_key=config.api_key_for(profile.provider_id),
            base_url=profile.endpoint,
            timeout=config.request_timeout,
            name=profile.provider_id,
        )
    if family == "anthropic":
        return AnthropicProvider(
            api_key=config.api_key_for(profile.provider_id),
            base_url=profile.endpoint,
            timeout=config.request_timeout,
            name=profile.provider_id,
        )
    if family == "ollama":
        return OllamaProvider(
            base_url=profile.endpoint,
            timeout=config.request_timeout,
            name=profile.provider_id,
        )
    raise ConfigError(f"Unsupported adapter family: {family}")


def create_metrics_collector(config: DispatchConfig) -> MetricsCollector:
    if config.metrics_backend == "prometheus":
        return PrometheusMetricsCollector(port=config.metrics_port)
    return LoggingMetricsCollector()


class GenerationRuntime:
    """Own the dispatcher and its adapters for the lifetime of the process."""

    def __init__(
        self,
        *,
        config: DispatchConfig,
        registry: Optional[ProviderRegistry] = None,
        adapters: Optional[Mapping[str, BaseProvider]] = None,
        metrics: Optional[MetricsCollector] = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.config = config
        logging.getLogger("generation_dispatch").setLevel(_level_for(config.log_level))

        self.registry = registry or config.build_registry()
        # Fail at startup rather than on the first request.
        self.registry.resolve(config.provider)

        self.metrics = metrics or create_metrics_collector(config)
        self.dispatcher = GenerationDispatcher(
            self.registry,
            adapters=adapters,
            adapter_factory=lambda profile: create_provider(profile, config),
            default_system_prompt=config.system_prompt,
        )
        self.generator = Generator(
            self.dispatcher,
            metrics=self.metrics,
            base_delay=config.retry_base_delay,
            structured_max_attempts=config.structured_max_attempts,
            sleep=sleep,
        )
        LOGGER.info(
            "Generation runtime ready with provider=%s (%s providers registered)",
            config.provider,
            len(self.registry),
        )

    @property
    def provider_id(self) -> str:
        return self.config.provider

    async def aclose(self) -> None:
        await self.dispatcher.aclose()

    async def __aenter__(self) -> "GenerationRuntime":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

"""Route generation requests to the adapter of the selected provider."""

from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .errors import ConfigError, UnsupportedCapability
from .models import GenerationRequest
from .providers.base import BaseProvider, CompletionCall
from .registry import ProviderProfile, ProviderRegistry
from .tokens import trim_tokens

LOGGER = logging.getLogger("generation_dispatch.dispatcher")

AdapterFactory = Callable[[ProviderProfile], BaseProvider]


class GenerationDispatcher:
    """Budget, resolve and invoke; the only component doing network I/O."""

    def __init__(
        self,
        registry: ProviderRegistry,
        *,
        adapters: Optional[Mapping[str, BaseProvider]] = None,
        adapter_factory: Optional[AdapterFactory] = None,
        default_system_prompt: Optional[str] = None,
    ) -> None:
        self.registry = registry
        self._adapters: Dict[str, BaseProvider] = {key.lower(): value for key, value in (adapters or {}).items()}
        self._adapter_factory = adapter_factory
        self._default_system_prompt = default_system_prompt

    def _adapter_for(self, profile: ProviderProfile) -> BaseProvider:
        key = profile.provider_id.lower()
        adapter = self._adapters.get(key)
        if adapter is None:
            if self._adapter_factory is None:
                raise ConfigError(f"No adapter configured for provider {profile.provider_id}")
            adapter = self._adapter_factory(profile)
            self._adapters[key] = adapter
        return adapter

    def prepare(self, request: GenerationRequest, provider_id: str) -> Tuple[ProviderProfile, CompletionCall]:
        """Resolve profile and model, trim the context and build the adapter call."""
        profile = self.registry.resolve(provider_id)
        model = profile.model_for(request.model_class)

        LOGGER.debug(
            "Trimming context to max length of %s tokens for provider=%s",
            profile.max_input_tokens,
            profile.provider_id,
        )
        context = trim_tokens(request.context, profile.max_input_tokens, profile.tokenizer)
        if context and context is not request.context:
            request = request.with_context(context)

        stop = request.stop_sequences if request.stop_sequences is not None else profile.default_stop
        call = CompletionCall(
            model=model,
            prompt=request.context,
            temperature=profile.temperature,
            max_tokens=profile.max_output_tokens,
            frequency_penalty=profile.frequency_penalty,
            presence_penalty=profile.presence_penalty,
            stop=tuple(stop),
            system=request.system_prompt or self._default_system_prompt,
        )
        return profile, call

    async def dispatch(self, request: GenerationRequest, provider_id: str) -> str:
        """Return the raw provider text for ``request``, verbatim."""
        profile, call = self.prepare(request, provider_id)
        adapter = self._adapter_for(profile)

        LOGGER.info(
            "Generating text with provider=%s model_class=%s model=%s",
            profile.provider_id,
            request.model_class.value,
            call.model,
        )
        start = perf_counter()
        text = await adapter.invoke(call)
        LOGGER.debug(
            "Received %s characters from provider=%s in %.1fms",
            len(text),
            profile.provider_id,
            (perf_counter() - start) * 1000,
        )
        return text

    async def dispatch_structured(
        self,
        request: GenerationRequest,
        provider_id: str,
        schema: Dict[str, Any],
        schema_name: str,
    ) -> Any:
        """Return a value decoded by the backend under ``schema``."""
        profile, call = self.prepare(request, provider_id)
        adapter = self._adapter_for(profile)
        if not getattr(adapter, "supports_structured", False):
            raise UnsupportedCapability(profile.provider_id, "structured generation")

        LOGGER.info(
            "Generating %s object with provider=%s model=%s",
            schema_name,
            profile.provider_id,
            call.model,
        )
        start = perf_counter()
        value = await adapter.invoke_structured(call, schema, schema_name)
        LOGGER.debug(
            "Received structured output from provider=%s in %.1fms",
            profile.provider_id,
            (perf_counter() - start) * 1000,
        )
        return value

    async def aclose(self) -> None:
        for adapter in list(self._adapters.values()):
            try:
                await adapter.aclose()
            except Exception:  # pragma: no cover - provider cleanup best-effort
                LOGGER.debug("Provider cleanup failed", exc_info=True)
        self._adapters.clear()

"""Static provider profiles and the read-only registry that serves them."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple, Union

from .errors import ConfigError, UnknownProvider, UnsupportedModelClass
from .models import ModelClass
from .tokens import DEFAULT_TOKENIZER, Tokenizer

ADAPTER_FAMILIES = ("openai", "anthropic", "ollama")


def _freeze_models(models: Mapping[Union[str, ModelClass], str]) -> Mapping[ModelClass, str]:
    return MappingProxyType({ModelClass.parse(key): value for key, value in models.items() if value})


@dataclass(frozen=True)
class ProviderProfile:
    """Capabilities and sampling settings of one backend."""

    provider_id: str
    family: str
    endpoint: str
    model_by_class: Mapping[ModelClass, str]
    max_input_tokens: int
    max_output_tokens: int
    temperature: float
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    default_stop: Tuple[str, ...] = field(default_factory=tuple)
    tokenizer: Union[str, Tokenizer] = DEFAULT_TOKENIZER

    def __post_init__(self) -> None:
        if self.family not in ADAPTER_FAMILIES:
            raise ConfigError(f"Unknown adapter family '{self.family}' for provider {self.provider_id}")
        if self.max_input_tokens < 1 or self.max_output_tokens < 1:
            raise ConfigError(f"Token limits for provider {self.provider_id} must be >= 1")
        object.__setattr__(self, "model_by_class", _freeze_models(self.model_by_class))
        object.__setattr__(self, "default_stop", tuple(self.default_stop))

    def model_for(self, model_class: Union[str, ModelClass]) -> str:
        model_class = ModelClass.parse(model_class)
        model = self.model_by_class.get(model_class)
        if not model:
            raise UnsupportedModelClass(model_class.value, self.provider_id)
        return model

    def with_overrides(
        self,
        *,
        endpoint: Optional[str] = None,
        models: Optional[Mapping[Union[str, ModelClass], str]] = None,
    ) -> "ProviderProfile":
        merged: Dict[ModelClass, str] = dict(self.model_by_class)
        for key, value in (models or {}).items():
            if value:
                merged[ModelClass.parse(key)] = value
        return replace(self, endpoint=endpoint or self.endpoint, model_by_class=merged)


class ProviderRegistry:
    """Read-only mapping from provider id to :class:`ProviderProfile`."""

    def __init__(self, profiles: Iterable[ProviderProfile]):
        table: Dict[str, ProviderProfile] = {}
        for profile in profiles:
            key = profile.provider_id.lower()
            if key in table:
                raise ConfigError(f"Duplicate provider profile: {profile.provider_id}")
            table[key] = profile
        self._profiles = MappingProxyType(table)

    def resolve(self, provider_id: str) -> ProviderProfile:
        try:
            return self._profiles[str(provider_id).strip().lower()]
        except KeyError:
            raise UnknownProvider(provider_id) from None

    def provider_ids(self) -> Tuple[str, ...]:
        return tuple(self._profiles)

    def __contains__(self, provider_id: object) -> bool:
        return isinstance(provider_id, str) and provider_id.strip().lower() in self._profiles

    def __iter__(self) -> Iterator[ProviderProfile]:
        return iter(self._profiles.values())

    def __len__(self) -> int:
        return len(self._profiles)


def _openai_compatible(
    provider_id: str,
    endpoint: str,
    small: str,
    medium: str,
    large: str,
    *,
    image: Optional[str] = None,
    max_input_tokens: int = 128000,
    max_output_tokens: int = 8192,
    temperature: float = 0.6,
    frequency_penalty: float = 0.0,
    presence_penalty: float = 0.0,
) -> ProviderProfile:
    return ProviderProfile(
        provider_id=provider_id,
        family="openai",
        endpoint=endpoint,
        model_by_class={
            ModelClass.SMALL: small,
            ModelClass.MEDIUM: medium,
            ModelClass.LARGE: large,
            ModelClass.IMAGE: image or "",
        },
        max_input_tokens=max_input_tokens,
        max_output_tokens=max_output_tokens,
        temperature=temperature,
        frequency_penalty=frequency_penalty,
        presence_penalty=presence_penalty,
    )


DEFAULT_PROFILES: Tuple[ProviderProfile, ...] = (
    _openai_compatible(
        "openai",
        "https://api.openai.com/v1",
        "gpt-4o-mini",
        "gpt-4o",
        "gpt-4o",
        image="dall-e-3",
    ),
    ProviderProfile(
        provider_id="anthropic",
        family="anthropic",
        endpoint="https://api.anthropic.com/v1",
        model_by_class={
            ModelClass.SMALL: "claude-3-haiku-20240307",
            ModelClass.MEDIUM: "claude-3-5-sonnet-20241022",
            ModelClass.LARGE: "claude-3-5-sonnet-20241022",
        },
        max_input_tokens=200000,
        max_output_tokens=4096,
        temperature=0.7,
    ),
    _openai_compatible(
        "grok",
        "https://api.x.ai/v1",
        "grok-beta",
        "grok-beta",
        "grok-beta",
        temperature=0.7,
    ),
    _openai_compatible(
        "groq",
        "https://api.groq.com/openai/v1",
        "llama-3.1-8b-instant",
        "llama-3.3-70b-versatile",
        "llama-3.2-90b-vision-preview",
        max_output_tokens=8000,
        temperature=0.7,
    ),
    _openai_compatible(
        "google",
        "https://generativelanguage.googleapis.com/v1beta/openai",
        "gemini-1.5-flash-latest",
        "gemini-1.5-flash-latest",
        "gemini-1.5-pro-latest",
        temperature=0.7,
    ),
    _openai_compatible(
        "openrouter",
        "https://openrouter.ai/api/v1",
        "nousresearch/hermes-3-llama-3.1-405b",
        "nousresearch/hermes-3-llama-3.1-405b",
        "nousresearch/hermes-3-llama-3.1-405b",
        temperature=0.7,
    ),
    _openai_compatible(
        "together",
        "https://api.together.ai/v1",
        "meta-llama/Llama-3.2-3B-Instruct-Turbo",
        "meta-llama/Meta-Llama-3.1-70B-Instruct-Turbo",
        "meta-llama/Meta-Llama-3.1-405B-Instruct-Turbo",
        temperature=0.7,
    ),
    _openai_compatible(
        "redpill",
        "https://api.red-pill.ai/v1",
        "gpt-4o-mini",
        "gpt-4o",
        "gpt-4o",
        temperature=0.7,
    ),
    _openai_compatible(
        "heurist",
        "https://llm-gateway.heurist.xyz",
        "meta-llama/llama-3-70b-instruct",
        "meta-llama/llama-3-70b-instruct",
        "meta-llama/llama-3.1-405b-instruct",
        temperature=0.7,
    ),
    _openai_compatible(
        "galadriel",
        "https://api.galadriel.com/v1",
        "llama3.1:70b",
        "llama3.1:70b",
        "llama3.1:405b",
        temperature=0.8,
        frequency_penalty=0.5,
        presence_penalty=0.5,
    ),
    ProviderProfile(
        provider_id="ollama",
        family="ollama",
        endpoint="http://localhost:11434",
        model_by_class={
            ModelClass.SMALL: "llama3.2",
            ModelClass.MEDIUM: "hermes3",
            ModelClass.LARGE: "hermes3:70b",
        },
        max_input_tokens=128000,
        max_output_tokens=8192,
        temperature=0.7,
    ),
)


def default_registry() -> ProviderRegistry:
    return ProviderRegistry(DEFAULT_PROFILES)

"""Generation dispatch - provider-agnostic LLM text and structured output generation."""

from .config import DispatchConfig  # noqa: F401
from .dispatcher import GenerationDispatcher  # noqa: F401
from .errors import (  # noqa: F401
    ConfigError,
    GenerationError,
    InvalidBudget,
    ProviderError,
    RetriesExhausted,
    UnknownProvider,
    UnsupportedCapability,
    UnsupportedModelClass,
)
from .generation import Generator  # noqa: F401
from .models import GenerationRequest, ModelClass, ResponseDecision  # noqa: F401
from .runtime import GenerationRuntime  # noqa: F401

__all__ = [
    "ConfigError",
    "DispatchConfig",
    "GenerationDispatcher",
    "GenerationError",
    "GenerationRequest",
    "GenerationRuntime",
    "Generator",
    "InvalidBudget",
    "ModelClass",
    "ProviderError",
    "ResponseDecision",
    "RetriesExhausted",
    "UnknownProvider",
    "UnsupportedCapability",
    "UnsupportedModelClass",
    "__version__",
]

__version__ = "0.1.0"

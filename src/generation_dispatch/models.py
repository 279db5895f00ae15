"""Value objects shared across the dispatch layer."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional, Sequence, Tuple, Union

from .errors import UnsupportedModelClass


class ModelClass(str, Enum):
    """Capability tier, mapped per provider to a concrete model name."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    IMAGE = "image"

    @classmethod
    def parse(cls, value: Union[str, "ModelClass"]) -> "ModelClass":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise UnsupportedModelClass(value) from exc


@dataclass(frozen=True)
class GenerationRequest:
    """Provider-agnostic generation request, created per call site."""

    context: str
    model_class: ModelClass = ModelClass.SMALL
    stop_sequences: Optional[Tuple[str, ...]] = None
    system_prompt: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.context, str) or self.context == "":
            raise ValueError("GenerationRequest.context must be a non-empty string")
        object.__setattr__(self, "model_class", ModelClass.parse(self.model_class))
        if self.stop_sequences is not None:
            object.__setattr__(self, "stop_sequences", tuple(self.stop_sequences))

    def with_context(self, context: str) -> "GenerationRequest":
        return replace(self, context=context)

    def with_stop(self, stop: Sequence[str]) -> "GenerationRequest":
        return replace(self, stop_sequences=tuple(stop))


class ResponseDecision(str, Enum):
    RESPOND = "RESPOND"
    IGNORE = "IGNORE"
    STOP = "STOP"


class FailureKind(str, Enum):
    NO_MATCH = "no_match"
    RETRIES_EXHAUSTED = "retries_exhausted"


@dataclass(frozen=True)
class Text:
    text: str
    ok = True


@dataclass(frozen=True)
class StructuredObject:
    value: Any
    schema_name: Optional[str] = None
    ok = True


@dataclass(frozen=True)
class Boolean:
    value: bool
    ok = True


@dataclass(frozen=True)
class StringArray:
    values: Tuple[str, ...] = field(default_factory=tuple)
    ok = True


@dataclass(frozen=True)
class Decision:
    value: ResponseDecision
    ok = True


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    ok = False


NO_MATCH = Failure(FailureKind.NO_MATCH)

GenerationOutcome = Union[Text, StructuredObject, Boolean, StringArray, Decision, Failure]

"""Shared test fixtures for the generation dispatch layer."""

import sys
from pathlib import Path

import pytest

# Ensure the source directory is importable without installing the package.
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from generation_dispatch.errors import ProviderError  # noqa: E402
from generation_dispatch.models import ModelClass  # noqa: E402
from generation_dispatch.registry import ProviderProfile, ProviderRegistry  # noqa: E402


class WordTokenizer:
    """One token per whitespace-separated word; decode joins with spaces."""

    def __init__(self):
        self.calls = 0
        self._vocab = {}
        self._words = []

    def encode(self, text):
        self.calls += 1
        ids = []
        for word in text.split():
            if word not in self._vocab:
                self._vocab[word] = len(self._words)
                self._words.append(word)
            ids.append(self._vocab[word])
        return ids

    def decode(self, tokens):
        return " ".join(self._words[token] for token in tokens)


class ScriptedProvider:
    """Adapter stub replaying a list of responses; exceptions are raised."""

    name = "stub"

    def __init__(self, responses=None, *, supports_structured=True, structured=None):
        self._responses = list(responses or [])
        self.supports_structured = supports_structured
        self._structured = structured
        self.calls = []
        self.structured_calls = []
        self.closed = False

    def _next(self):
        if not self._responses:
            raise AssertionError("ScriptedProvider ran out of responses")
        item = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(item, BaseException):
            raise item
        return item

    async def invoke(self, call):
        self.calls.append(call)
        return self._next()

    async def invoke_structured(self, call, schema, schema_name):
        self.structured_calls.append((call, schema, schema_name))
        return self._structured

    async def aclose(self):
        self.closed = True


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class RecorderMetrics:
    def __init__(self):
        self.events = []

    def record(self, event):
        self.events.append(event)


def transient(code="rate_limited"):
    return ProviderError(code=code, message="try again", retryable=True)


def make_profile(**overrides):
    base = dict(
        provider_id="stub",
        family="openai",
        endpoint="https://stub.example/v1",
        model_by_class={
            ModelClass.SMALL: "stub-small",
            ModelClass.MEDIUM: "stub-medium",
            ModelClass.LARGE: "stub-large",
        },
        max_input_tokens=1000,
        max_output_tokens=256,
        temperature=0.3,
        frequency_penalty=0.1,
        presence_penalty=0.2,
        default_stop=("</s>",),
        tokenizer=WordTokenizer(),
    )
    base.update(overrides)
    return ProviderProfile(**base)


@pytest.fixture
def profile():
    return make_profile()


@pytest.fixture
def registry(profile):
    return ProviderRegistry([profile])


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def metrics():
    return RecorderMetrics()

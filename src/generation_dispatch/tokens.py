"""Token budgeting for prompt contexts."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import List, Protocol, Sequence, Union

import tiktoken

from .errors import InvalidBudget

LOGGER = logging.getLogger("generation_dispatch.tokens")

DEFAULT_TOKENIZER = "o200k_base"
BYTES_PER_TOKEN = 4


class Tokenizer(Protocol):
    def encode(self, text: str) -> List[int]:
        ...

    def decode(self, tokens: Sequence[int]) -> str:
        ...


@lru_cache(maxsize=16)
def _load_encoding(name: str) -> tiktoken.Encoding:
    try:
        return tiktoken.get_encoding(name)
    except ValueError:
        return tiktoken.encoding_for_model(name)


def _encode(tokenizer: Union[str, Tokenizer], text: str) -> List[int]:
    if isinstance(tokenizer, str):
        return _load_encoding(tokenizer).encode(text, disallowed_special=())
    return list(tokenizer.encode(text))


def _decode(tokenizer: Union[str, Tokenizer], tokens: Sequence[int]) -> str:
    if isinstance(tokenizer, str):
        return _load_encoding(tokenizer).decode(list(tokens))
    return tokenizer.decode(tokens)


def estimate_trim(context: str, max_tokens: int) -> str:
    """Keep roughly the last ``max_tokens`` tokens at four UTF-8 bytes each."""
    raw = context.encode("utf-8")
    budget = max_tokens * BYTES_PER_TOKEN
    if len(raw) <= budget:
        return context
    return raw[-budget:].decode("utf-8", errors="ignore")


def trim_tokens(
    context: str,
    max_tokens: int,
    tokenizer: Union[str, Tokenizer] = DEFAULT_TOKENIZER,
) -> str:
    """Truncate ``context`` to ``max_tokens`` tokens, keeping the most recent ones.

    Contexts already within budget are returned unchanged. Tokenizer failures
    never propagate; the byte estimate in :func:`estimate_trim` is used instead.
    """
    if not context:
        return ""
    if max_tokens <= 0:
        raise InvalidBudget(max_tokens)

    try:
        tokens = _encode(tokenizer, context)
        if len(tokens) <= max_tokens:
            return context
        return _decode(tokenizer, tokens[-max_tokens:])
    except Exception as exc:
        LOGGER.warning("Tokenization failed (%s); falling back to byte estimate", exc)
        return estimate_trim(context, max_tokens)


def split_chunks(
    content: str,
    chunk_size: int = 512,
    bleed: int = 20,
    tokenizer: Union[str, Tokenizer] = DEFAULT_TOKENIZER,
) -> List[str]:
    """Split ``content`` into windows of ``chunk_size`` tokens overlapping by ``bleed``."""
    if chunk_size <= 0:
        raise InvalidBudget(chunk_size)
    if bleed < 0 or bleed >= chunk_size:
        raise ValueError("bleed must be >= 0 and smaller than chunk_size")
    if not content:
        return []

    tokens = _encode(tokenizer, content)
    step = chunk_size - bleed
    chunks: List[str] = []
    for start in range(0, len(tokens), step):
        window = tokens[start : start + chunk_size]
        chunks.append(_decode(tokenizer, window))
        if start + chunk_size >= len(tokens):
            break
    return chunks

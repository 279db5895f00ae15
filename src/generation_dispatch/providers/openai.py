"""OpenAI-compatible chat completions adapter."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from openai import (
    APIConnectionError,
    APIError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    RateLimitError,
)

from ..errors import ProviderError
from .base import BaseProvider, CompletionCall, is_retryable_status


def _build_messages(call: CompletionCall) -> List[Dict[str, str]]:
    messages: List[Dict[str, str]] = []
    if call.system:
        messages.append({"role": "system", "content": call.system})
    messages.append({"role": "user", "content": call.prompt})
    return messages


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, (RateLimitError, APIConnectionError, APITimeoutError)):
        return True
    if isinstance(exc, APIStatusError):
        return is_retryable_status(exc.status_code)
    return False


class OpenAIChatProvider(BaseProvider):
    """Adapter for any backend speaking the OpenAI Chat Completions API."""

    supports_structured = True

    def __init__(
        self,
        api_key: Optional[str],
        *,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        name: str = "openai",
    ):
        self.name = name
        # The SDK refuses a missing key; local gateways accept any placeholder.
        self._client = AsyncOpenAI(api_key=api_key or "unused", base_url=base_url, timeout=timeout)

    def _options(self, call: CompletionCall) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "model": call.model,
            "messages": _build_messages(call),
            "temperature": call.temperature,
            "max_tokens": call.max_tokens,
            "frequency_penalty": call.frequency_penalty,
            "presence_penalty": call.presence_penalty,
        }
        if call.stop:
            options["stop"] = list(call.stop)
        return options

    async def _create(self, **options: Any):
        try:
            return await self._client.chat.completions.create(**options)
        except APIError as exc:
            status = getattr(exc, "status_code", None) or getattr(exc, "status", None)
            raise ProviderError(
                code=getattr(exc, "code", None) or f"{self.name}_error",
                message=str(exc),
                retryable=_is_retryable(exc) or is_retryable_status(status),
                details={"status_code": status},
            ) from exc
        except Exception as exc:  # pragma: no cover - network library edge cases
            raise ProviderError(
                code=f"{self.name}_error",
                message=str(exc),
                retryable=_is_retryable(exc),
            ) from exc

    async def invoke(self, call: CompletionCall) -> str:
        response = await self._create(**self._options(call))
        if not response.choices:
            return ""
        return getattr(response.choices[0].message, "content", "") or ""

    async def invoke_structured(self, call: CompletionCall, schema: Dict[str, Any], schema_name: str) -> Any:
        options = self._options(call)
        options["response_format"] = {
            "type": "json_schema",
            "json_schema": {"name": schema_name, "schema": schema},
        }
        response = await self._create(**options)
        content = ""
        if response.choices:
            content = getattr(response.choices[0].message, "content", "") or ""
        try:
            return json.loads(content)
        except ValueError as exc:
            raise ProviderError(
                code="invalid_structured_output",
                message=f"{self.name} returned non-JSON structured output",
                retryable=True,
                details={"content": content[:200]},
            ) from exc

    async def aclose(self) -> None:
        await self._client.close()

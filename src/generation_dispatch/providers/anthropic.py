"""Anthropic Messages API adapter."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from ..errors import ProviderError, UnsupportedCapability
from .base import BaseProvider, CompletionCall, status_error

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(BaseProvider):
    """Adapter for the Anthropic Messages API.

    The API has no frequency/presence penalties and no schema-constrained
    decoding, so calls needing either fail with ``UnsupportedCapability``.
    """

    supports_structured = False

    def __init__(
        self,
        api_key: Optional[str],
        *,
        base_url: str = "https://api.anthropic.com/v1",
        timeout: float = 60.0,
        name: str = "anthropic",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.name = name
        headers = {
            "x-api-key": api_key or "",
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
        )

    def _payload(self, call: CompletionCall) -> Dict[str, Any]:
        if call.frequency_penalty or call.presence_penalty:
            raise UnsupportedCapability(self.name, "frequency/presence penalties")
        payload: Dict[str, Any] = {
            "model": call.model,
            "max_tokens": call.max_tokens,
            "temperature": call.temperature,
            "messages": [{"role": "user", "content": call.prompt}],
        }
        if call.system:
            payload["system"] = call.system
        if call.stop:
            payload["stop_sequences"] = list(call.stop)
        return payload

    async def invoke(self, call: CompletionCall) -> str:
        payload = self._payload(call)
        try:
            response = await self._client.post("/messages", json=payload)
        except httpx.TimeoutException as exc:
            raise ProviderError(code="anthropic_timeout", message=str(exc), retryable=True) from exc
        except httpx.TransportError as exc:
            raise ProviderError(code="anthropic_connection", message=str(exc), retryable=True) from exc

        if response.status_code >= 400:
            raise status_error(self.name, response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(
                code="anthropic_invalid_body",
                message="Anthropic returned a non-JSON body",
                retryable=True,
            ) from exc

        content = data.get("content") or []
        return "".join(
            item.get("text", "")
            for item in content
            if isinstance(item, dict) and item.get("type") == "text"
        )

    async def invoke_structured(self, call: CompletionCall, schema: Dict[str, Any], schema_name: str) -> Any:
        raise UnsupportedCapability(self.name, "structured generation")

    async def aclose(self) -> None:
        await self._client.aclose()

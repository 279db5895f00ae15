"""Ollama native API adapter."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

import httpx

from ..errors import ProviderError
from .base import BaseProvider, CompletionCall, status_error


class OllamaProvider(BaseProvider):
    """Adapter for a local or remote Ollama server (``/api/generate``)."""

    supports_structured = True

    def __init__(
        self,
        *,
        base_url: str = "http://localhost:11434",
        timeout: float = 60.0,
        name: str = "ollama",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.name = name
        self._client = client or httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout)

    def _payload(self, call: CompletionCall) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "temperature": call.temperature,
            "num_predict": call.max_tokens,
            "frequency_penalty": call.frequency_penalty,
            "presence_penalty": call.presence_penalty,
        }
        if call.stop:
            options["stop"] = list(call.stop)
        payload: Dict[str, Any] = {
            "model": call.model,
            "prompt": call.prompt,
            "stream": False,
            "options": options,
        }
        if call.system:
            payload["system"] = call.system
        return payload

    async def _generate(self, payload: Dict[str, Any]) -> str:
        try:
            response = await self._client.post("/api/generate", json=payload)
        except httpx.TimeoutException as exc:
            raise ProviderError(code="ollama_timeout", message=str(exc), retryable=True) from exc
        except httpx.TransportError as exc:
            raise ProviderError(code="ollama_connection", message=str(exc), retryable=True) from exc

        if response.status_code >= 400:
            raise status_error(self.name, response.status_code, response.text)
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(
                code="ollama_invalid_body",
                message="Ollama returned a non-JSON body",
                retryable=True,
            ) from exc
        return data.get("response") or ""

    async def invoke(self, call: CompletionCall) -> str:
        return await self._generate(self._payload(call))

    async def invoke_structured(self, call: CompletionCall, schema: Dict[str, Any], schema_name: str) -> Any:
        payload = self._payload(call)
        payload["format"] = schema
        content = await self._generate(payload)
        try:
            return json.loads(content)
        except ValueError as exc:
            raise ProviderError(
                code="invalid_structured_output",
                message=f"Ollama returned non-JSON output for {schema_name}",
                retryable=True,
                details={"content": content[:200]},
            ) from exc

    async def aclose(self) -> None:
        await self._client.aclose()

"""OpenAICompatibleProvider — chat completions over plain HTTP.

Posts to ``{api_base}/chat/completions`` with bearer auth. Transport errors
and non-2xx statuses are raised as :class:`ModelCallError`; nothing is
retried here.
"""

import json
import time
from typing import Any

import httpx
from loguru import logger

from hybrid_router.config import ModelConfig
from hybrid_router.errors import ConfigurationError, ModelCallError
from hybrid_router.models import LLMProvider, LLMResponse

DEFAULT_TIMEOUT_S = 60.0


class OpenAICompatibleProvider(LLMProvider):
    """Single-endpoint provider for OpenAI-compatible APIs (OpenRouter etc.)."""

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
        extra_headers: dict[str, str] | None = None,
    ):
        if not api_base:
            raise ConfigurationError("Completion endpoint (api_base) is not configured")
        super().__init__(api_key=api_key, api_base=api_base.rstrip("/"))
        self.timeout = timeout
        self._transport = transport          # injected in tests
        self._extra_headers = extra_headers or {}

    @classmethod
    def from_config(cls, config: ModelConfig, **kwargs: Any) -> "OpenAICompatibleProvider":
        return cls(api_key=config.api_key, api_base=config.require_endpoint(), **kwargs)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", **self._extra_headers}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 2000,
        temperature: float = 0.7,
        response_format: dict[str, Any] | None = None,
    ) -> LLMResponse:
        if not model:
            raise ConfigurationError("No model given for chat completion")

        payload: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if response_format:
            payload["response_format"] = response_format

        url = f"{self.api_base}/chat/completions"
        t0 = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(url, json=payload, headers=self._headers())
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            elapsed_ms = int((time.monotonic() - t0) * 1000)
            logger.warning(f"Completion call to {model} failed ({elapsed_ms}ms): HTTP {e.response.status_code}")
            raise ModelCallError(
                f"API error calling {model}",
                status_code=e.response.status_code,
                body=e.response.text,
            ) from e
        except httpx.RequestError as e:
            elapsed_ms = int((time.monotonic() - t0) * 1000)
            logger.warning(f"Completion call to {model} failed ({elapsed_ms}ms): {e!r}")
            raise ModelCallError(f"Transport error calling {model}: {e!r}") from e
        except ValueError as e:
            raise ModelCallError(f"Completion endpoint returned non-JSON body for {model}") from e

        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices:
            raise ModelCallError(f"No response received from model {model}", body=str(data)[:500])

        choice = choices[0]
        if not isinstance(choice, dict):
            raise ModelCallError(f"Malformed choice in response from model {model}", body=str(data)[:500])
        message = choice.get("message")
        if not isinstance(message, dict):
            message = {}

        response = LLMResponse(
            content=_text_content(message.get("content")),
            finish_reason=choice.get("finish_reason") or "stop",
            usage=data.get("usage") if isinstance(data.get("usage"), dict) else {},
            model_used=data.get("model") or model,
        )
        elapsed_ms = int((time.monotonic() - t0) * 1000)
        logger.debug(
            f"{self.name}: completion from {response.model_used} in {elapsed_ms}ms "
            f"(finish={response.finish_reason}, usage={response.usage})"
        )
        return response


def _text_content(content: Any) -> str | None:
    """Message content as text; structured content is kept as its JSON form."""
    if content is None or isinstance(content, str):
        return content
    return json.dumps(content)

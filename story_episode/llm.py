"""Text-generation client for live episodes.

generation.py only needs an async callable:

    async def __call__(self, stage: str, prompt: str) -> str: ...

`stage` is "opening" for the first scene of a live episode and "scene" for
every later one. HttpLLM logs it; test doubles use it to script replies.
"""

from __future__ import annotations

import logging
from typing import Any, Literal, NamedTuple, Protocol

import httpx

from story_episode.config import Settings

logger = logging.getLogger(__name__)

ProviderFormat = Literal["koboldcpp", "openai"]


class LLM(Protocol):
    async def __call__(self, stage: str, prompt: str) -> str: ...


class LLMError(RuntimeError):
    """The generation backend could not be reached or answered badly."""


class _Wire(NamedTuple):
    path: str
    length_key: str
    results_key: str
    sends_model: bool


_WIRES: dict[str, _Wire] = {
    "koboldcpp": _Wire("/api/v1/generate", "max_length", "results", False),
    "openai": _Wire("/v1/completions", "max_tokens", "choices", True),
}


class HttpLLM:
    """Completion client for KoboldCpp or an OpenAI-compatible server.

    One httpx.AsyncClient is kept for the life of the object so consecutive
    turns reuse the connection. Call aclose() when done; the app does this on
    shutdown.
    """

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        provider_format: ProviderFormat = "koboldcpp",
        model: str = "",
        max_length: int = 300,
        temperature: float = 0.8,
        timeout: float = 60.0,
    ) -> None:
        if provider_format not in _WIRES:
            raise LLMError(f"Unknown provider format {provider_format!r}")
        self.base_url = provider_url.rstrip("/")
        self.provider_format = provider_format
        self.model = model
        self.max_length = max_length
        self.temperature = temperature
        self.timeout = timeout

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.AsyncClient(base_url=self.base_url, headers=headers,
                                         timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> HttpLLM:
        if not settings.llm_url:
            raise LLMError("No generation backend configured (STORY_LLM_URL is empty)")
        return cls(
            provider_url=settings.llm_url,
            api_key=settings.llm_api_key,
            provider_format=settings.llm_format,
            model=settings.llm_model,
        )

    @property
    def _wire(self) -> _Wire:
        return _WIRES[self.provider_format]

    def request_body(self, prompt: str) -> dict[str, Any]:
        wire = self._wire
        body: dict[str, Any] = {
            "prompt": prompt,
            wire.length_key: self.max_length,
            "temperature": self.temperature,
        }
        if wire.sends_model and self.model:
            body["model"] = self.model
        return body

    def completion_text(self, data: Any) -> str:
        items = data.get(self._wire.results_key) if isinstance(data, dict) else None
        if not items or not isinstance(items[0], dict) or "text" not in items[0]:
            raise LLMError(f"Unexpected response format from {self.provider_format} backend")
        return items[0]["text"]

    async def __call__(self, stage: str, prompt: str) -> str:
        path = self._wire.path
        logger.debug("llm call stage=%s path=%s prompt_len=%d", stage, path, len(prompt))
        try:
            resp = await self._client.post(path, json=self.request_body(prompt))
            resp.raise_for_status()
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to generation backend at {self.base_url}") from e
        except httpx.TimeoutException as e:
            raise LLMError(f"Generation backend timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise LLMError(f"Generation backend returned HTTP {e.response.status_code}") from e

        text = self.completion_text(resp.json())
        logger.debug("llm response stage=%s len=%d", stage, len(text))
        return text

    async def aclose(self) -> None:
        await self._client.aclose()

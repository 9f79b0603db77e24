"""Async wrapper around OpenAI-compatible chat completion endpoints.

Configuration comes from :class:`~site_mapper.config.MapperConfig`, whose
defaults read the environment:

- LLM_API_KEY / OPENAI_API_KEY
- LLM_BASE_URL (any OpenAI-compatible endpoint)

Usage:
    client = LLMClient.from_config(config)
    text = await client.complete_json([
        {"role": "system", "content": "Answer in JSON."},
        {"role": "user", "content": "..."},
    ])
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from site_mapper.config import MapperConfig
from site_mapper.errors import JudgmentCallFailure
from site_mapper.logger import get_logger

__all__ = ["LLMClient"]

log = get_logger("llm")


class LLMClient:
    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: str = "gpt-4o",
        temperature: float = 0.7,
        timeout: float = 30.0,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        # created on first use so that a missing key fails one call, not the import
        self._client = client

    @classmethod
    def from_config(cls, config: MapperConfig) -> LLMClient:
        return cls(
            api_key=config.llm_api_key,
            base_url=config.llm_base_url,
            model=config.llm_model,
            temperature=config.llm_temperature,
            timeout=config.llm_timeout,
        )

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise JudgmentCallFailure("Missing LLM API key. Set LLM_API_KEY or OPENAI_API_KEY.")
            kwargs: Dict[str, Any] = {"api_key": self.api_key, "timeout": self.timeout, "max_retries": 1}
            if self.base_url:
                kwargs["base_url"] = self.base_url
            self._client = AsyncOpenAI(**kwargs)
        return self._client

    async def complete_json(
        self,
        messages: List[Dict[str, Any]],
        *,
        max_tokens: int = 1500,
        temperature: Optional[float] = None,
    ) -> str:
        """Run a chat completion constrained to a JSON object and return its raw text."""
        client = self._get_client()
        try:
            resp = await client.chat.completions.create(
                model=self.model,
                messages=messages,  # type: ignore[arg-type]
                temperature=self.temperature if temperature is None else temperature,
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
            )
        except OpenAIError as exc:
            raise JudgmentCallFailure(f"LLM request failed: {exc}") from exc
        text = (resp.choices[0].message.content or "").strip() if resp.choices else ""
        usage = getattr(resp, "usage", None)
        if usage is not None:
            log.debug("LLM %s used %s tokens", self.model, getattr(usage, "total_tokens", "?"))
        if not text:
            raise JudgmentCallFailure("LLM returned an empty completion")
        return text

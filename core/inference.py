"""
LLM inference — Pydantic object initialized from model_id.

Architecture:
    BaseInference    — prompt normalization + async invoke pipeline
    OpenAIInference  — OpenAI Responses API client (serves all OpenAI-compatible providers)
    get_implementation(model_id) — canonical factory (cached per provider/model)

The blocking SDK call runs in a worker thread so the event loop keeps
animating other sessions while a classification is in flight.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any

from openai import OpenAI
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from .logging_core import log_debug, log_info
from .responses import BaseResponse

_DEFAULT_MODEL_ID = "openai/gpt-4o-mini"
_DEFAULT_LMS_URL = "http://127.0.0.1:1234/v1"


def _first_non_empty(*values: str | None) -> str | None:
    for value in values:
        if value and value.strip():
            return value.strip()
    return None


def _provider_settings(provider: str) -> tuple[str | None, str | None]:
    key = provider.strip().lower().replace("-", "_")
    env = key.upper()

    base_url: str | None = None
    api_key: str | None = None

    if key == "openai":
        api_key = _first_non_empty(os.getenv("OPENAI_API_KEY"))
    elif key in {"lms", "lmstudio", "lm_studio"}:
        base_url = _first_non_empty(os.getenv("LMS_PROVIDER_URL", _DEFAULT_LMS_URL), os.getenv("LMS_BASE_URL"))
        api_key = _first_non_empty(os.getenv("LMS_API_KEY"), os.getenv("LM_STUDIO_API_KEY"), "lm-studio")

    base_url = _first_non_empty(os.getenv(f"{env}_BASE_URL"), os.getenv(f"{env}_PROVIDER_URL"), base_url)
    api_key = _first_non_empty(os.getenv(f"{env}_API_KEY"), api_key)
    if key != "openai" and not api_key:
        api_key = key
    return base_url, api_key


class BaseInference(BaseModel):
    """Base inference model with shared normalization + invoke flow."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    provider: str
    model: str
    base_url: str | None = None
    api_key: str | None = None
    temperature: float = Field(default_factory=lambda: float(os.getenv("CLASSIFIER_TEMPERATURE", "0.2")))
    max_output_tokens: int = 1_024

    @staticmethod
    def normalize_model_identifier(model_id: str | None) -> tuple[str, str]:
        raw = (model_id or os.getenv("MODEL_ID", _DEFAULT_MODEL_ID)).strip()
        if "/" in raw:
            provider, model = raw.split("/", 1)
            return provider.strip().lower(), model.strip()
        return "openai", raw

    @staticmethod
    def normalize(prompt: str) -> list[dict]:
        return [{"role": "user", "content": [{"type": "input_text", "text": prompt}]}]

    def _infer(self, input_payload: list[dict], model: str, instructions: str | None) -> str:
        raise NotImplementedError("Subclasses must implement _infer")

    async def invoke(
        self,
        prompt: str,
        *,
        instructions: str | None = None,
        response_model: type | None = None,
    ) -> Any:
        """Send one prompt and return raw text, or ``response_model.from_raw(text)``.

        Transport and parse failures propagate to the caller.
        """
        input_payload = self.normalize(prompt)
        log_debug(__name__, "[%s] invoking model=%s prompt_chars=%d", self.provider, self.model, len(prompt))

        def _call() -> Any:
            text = self._infer(input_payload, self.model, instructions)
            log_debug(__name__, "Raw model output (%d chars): %s", len(text), text[:2000])
            if response_model and isinstance(response_model, type) and issubclass(response_model, BaseResponse):
                return response_model.from_raw(text)
            return text

        return await asyncio.to_thread(_call)


class OpenAIInference(BaseInference):
    """OpenAI Responses API client for OpenAI-compatible providers."""

    _client: OpenAI = PrivateAttr()

    def model_post_init(self, __context: Any) -> None:
        kwargs: dict[str, Any] = {}
        if self.base_url:
            kwargs["base_url"] = self.base_url
        if self.api_key:
            kwargs["api_key"] = self.api_key
        self._client = OpenAI(**kwargs)
        log_info(__name__, "OpenAIInference initialized (provider=%s, base_url=%s)", self.provider, self.base_url or "default")

    @staticmethod
    def _extract_text(response: Any) -> str:
        output_text = getattr(response, "output_text", None)
        if isinstance(output_text, str) and output_text.strip():
            return output_text

        parts: list[str] = []
        for item in getattr(response, "output", []) or []:
            for content in getattr(item, "content", []) or []:
                text = getattr(content, "text", None)
                if isinstance(text, str):
                    parts.append(text)
        return "\n".join(parts).strip()

    def _infer(self, input_payload: list[dict], model: str, instructions: str | None) -> str:
        request: dict[str, Any] = {
            "model": model,
            "input": input_payload,
            "temperature": self.temperature,
        }
        if instructions:
            request["instructions"] = instructions
        if self.max_output_tokens > 0:
            request["max_output_tokens"] = self.max_output_tokens
        response = self._client.responses.create(**request)
        return self._extract_text(response)


# Cache per provider/model identifier
_IMPLEMENTATIONS: dict[str, BaseInference] = {}


def get_implementation(model_id: str | None = None) -> BaseInference:
    """Canonical factory — cached per provider/model pair."""
    provider, model = BaseInference.normalize_model_identifier(model_id)
    key = f"{provider}/{model}"
    if (existing := _IMPLEMENTATIONS.get(key)) is not None:
        return existing

    base_url, api_key = _provider_settings(provider)
    impl = OpenAIInference(provider=provider, model=model, base_url=base_url, api_key=api_key)
    _IMPLEMENTATIONS[key] = impl
    return impl

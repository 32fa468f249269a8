"""
Async LLM client utilities for OpenAI-compatible chat completion APIs
(OpenAI, Azure OpenAI, Groq).
"""

import logging
import time
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

import openai

from utils.logs import JsonlLogWriter

GROQ_BASE_URL = "https://api.groq.com/openai/v1"

logger = logging.getLogger(__name__)


class LLMCompletionClient:
    """
    Async generic wrapper for LLM chat completion endpoints.
    Accepts an async callable (OpenAI-compatible completion endpoint), error type, and an optional default_model.
    If model is not specified in completion/generate, self.default_model is used.
    When a network log writer is given, every call is recorded as one JSON line.
    """

    def __init__(
        self,
        completion_callable,
        error_type,
        default_model: str = None,
        endpoint: str = "",
        network_log: Optional[JsonlLogWriter] = None,
    ):
        self.completion_callable = completion_callable
        self.error_type = error_type
        self.default_model = default_model
        self.endpoint = endpoint
        self.network_log = network_log

    async def completion(
        self, messages: List[Dict[str, Any]], model: str = None, **kwargs
    ) -> Dict[str, Any]:
        """
        Run a chat completion. If model is not provided, uses self.default_model.
        """
        model_to_use = model or self.default_model
        if not model_to_use:
            raise ValueError("No model specified and no default_model set.")

        start = time.monotonic()
        try:
            response = await self.completion_callable(
                model=model_to_use, messages=messages, **kwargs
            )
        except self.error_type as e:
            self._record(model_to_use, messages, start, error=str(e))
            raise RuntimeError(f"LLM API error: {e}")

        result = response.model_dump()
        self._record(model_to_use, messages, start, response=result)
        return result

    async def generate(self, prompt: str, model: str = None, **kwargs) -> str:
        """
        Send a single user prompt and return the reply text ('' when the reply is empty).
        """
        response = await self.completion(
            [{"role": "user", "content": prompt}], model=model, **kwargs
        )
        return self.response_text(response)

    @staticmethod
    def response_text(response: Dict[str, Any]) -> str:
        choices = response.get("choices") or []
        if not choices:
            return ""
        return (choices[0].get("message") or {}).get("content") or ""

    def _record(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        start: float,
        response: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ):
        if self.network_log is None:
            return
        entry = {
            "id": f"net_{uuid.uuid4().hex[:12]}",
            "timestamp": datetime.now().isoformat(),
            "endpoint": self.endpoint,
            "method": "POST",
            "model": model,
            "duration_ms": round((time.monotonic() - start) * 1000, 2),
            "request_size": sum(len(str(m.get("content") or "")) for m in messages),
            "success": error is None,
        }
        if response is not None:
            entry["response_size"] = len(self.response_text(response))
            entry["usage"] = response.get("usage")
        if error is not None:
            entry["error"] = error
        self.network_log.write(entry)


class OpenAIClient(LLMCompletionClient):
    """
    Async OpenAI client for chat completion APIs.
    Optionally set a default_model for all completions.
    The base_url parameter can point at any OpenAI-compatible endpoint (Azure OpenAI, Groq).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        default_model: str = None,
        network_log: Optional[JsonlLogWriter] = None,
    ):
        self.async_client = openai.AsyncClient(api_key=api_key, base_url=base_url)
        super().__init__(
            self.async_client.chat.completions.create,
            openai.OpenAIError,
            default_model=default_model,
            endpoint=base_url,
            network_log=network_log,
        )

    @classmethod
    def from_settings(
        cls, settings, network_log: Optional[JsonlLogWriter] = None
    ) -> "OpenAIClient":
        """
        Build from ``config.types.GenerationSettings``.

        Raises:
            ValueError: If no API key is configured
        """
        if not settings.api_key:
            raise ValueError(
                "No LLM API key configured. Set GROQ_API_KEY, OPENAI_API_KEY "
                "or AGENTFLOW_LLM_API_KEY."
            )
        return cls(
            api_key=settings.api_key,
            base_url=settings.base_url,
            default_model=settings.model,
            network_log=network_log,
        )

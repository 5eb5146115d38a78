"""Ollama chat integration for derived place text (facts, tips, recommendations).

Prompt construction lives with the callers; this client only transports.
"""

import asyncio
import logging

from wayvora.config import settings
from wayvora.integrations.errors import UpstreamError, UpstreamResponseError
from wayvora.integrations.http import request_json

logger = logging.getLogger(__name__)

SERVICE = "Ollama"
RETRY_PAUSE_SECONDS = 0.5


class OllamaClient:
    """Async client for a local Ollama server."""

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
    ):
        self.base_url = (base_url or settings.ollama_base_url).rstrip("/")
        self.model = model or settings.ollama_model
        self.timeout = timeout if timeout is not None else settings.ollama_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.ollama_max_retries

    async def chat(self, prompt: str, system: str | None = None) -> str:
        """Single-turn chat completion. Returns the assistant text."""
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        body = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "options": {"temperature": 0.7, "top_p": 0.9, "num_predict": 1024},
        }

        max_attempts = self.max_retries + 1
        last_error: UpstreamError | None = None
        for attempt in range(1, max_attempts + 1):
            try:
                data = await request_json(
                    SERVICE, "POST", f"{self.base_url}/api/chat",
                    timeout=self.timeout, json=body,
                )
            except UpstreamError as e:
                last_error = e
                logger.warning(
                    "Ollama error | model=%s | attempt=%d/%d | %s",
                    self.model, attempt, max_attempts, str(e)[:200],
                )
                if attempt < max_attempts:
                    await asyncio.sleep(RETRY_PAUSE_SECONDS)
                continue

            if not isinstance(data, dict):
                raise UpstreamResponseError(SERVICE, "chat response is not an object")
            message = data.get("message") or {}
            return message.get("content") or data.get("response") or ""

        raise last_error or UpstreamError(SERVICE, "request failed after retries")

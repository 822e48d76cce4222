from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from .fallback import first_success
from ..core.errors import ExternalServiceError

logger = logging.getLogger("pdfbuddy.llm")


class LLMClient:
    """Thin async client for the Gemini `generateContent` endpoint."""

    def __init__(
        self,
        api_key: Optional[str],
        models: Sequence[str],
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.models = list(models)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def generate(self, model: str, prompt: str, temperature: float = 0.2) -> str:
        """
        Run one prompt against one model and return the text of the first
        candidate, e.g. from:
        {
            "candidates": [{"content": {"parts": [{"text": "..."}]}}]
        }
        """
        if not self.api_key:
            raise ExternalServiceError("Gemini API key is not configured.")

        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": temperature},
        }

        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            resp = await client.post(
                f"{self.base_url}/models/{model}:generateContent",
                json=payload,
                headers={"x-goog-api-key": self.api_key},
            )
        resp.raise_for_status()
        return self._extract_text(resp.json())

    async def generate_with_fallback(self, prompt: str) -> str:
        """
        Try each configured model in order; the first response wins.

        Raises
        ------
        ExternalServiceError
            When every model fails.
        """
        result = await first_success(
            [(model, self._bind(model, prompt)) for model in self.models]
        )
        logger.info("Successfully used model: %s", result.name)
        return result.value

    async def probe_models(self, prompt: str = 'Say "Hello"') -> List[Dict[str, Any]]:
        """Try models in order, stopping at the first that answers."""
        results: List[Dict[str, Any]] = []
        for model in self.models:
            try:
                text = await self.generate(model, prompt)
            except Exception as exc:
                results.append({"model": model, "status": "failed", "error": str(exc)})
                continue
            results.append({"model": model, "status": "working", "response": text})
            break
        return results

    def _bind(self, model: str, prompt: str):
        async def call() -> str:
            return await self.generate(model, prompt)

        return call

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> str:
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ExternalServiceError("Model response contained no candidates.") from exc

        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
        if not text.strip():
            raise ExternalServiceError("Model response was empty.")
        return text

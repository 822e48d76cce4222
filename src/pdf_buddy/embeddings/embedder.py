"""
Embedding Client

This module implements the embedding client used by the ingestion worker.
It calls the Google Generative Language `embedContent` endpoint and is
responsible for:

- One request per text (the caller controls pacing)
- Network and transport error isolation
- Strict response validation

The class holds no per-request state and is safe to reuse across jobs.
"""

from __future__ import annotations

from typing import List, Optional
import logging
import httpx

from ..core.errors import EmbeddingError

logger = logging.getLogger("pdfbuddy.embedder")


class Embedder:
    """
    Asynchronous embedding generator for single text inputs.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "text-embedding-004",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize an Embedder.

        Parameters
        ----------
        api_key : Optional[str]
            Gemini API key. Calls fail with EmbeddingError when missing.

        model : str
            Embedding model identifier (without the `models/` prefix).

        base_url : str
            Base URL of the Generative Language API.

        timeout : float
            HTTP timeout for each request.

        transport : Optional[httpx.AsyncBaseTransport]
            Custom transport, used by tests to stub the remote service.
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:embedContent"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> List[float]:
        """
        Generate the embedding vector for one text.

        Raises
        ------
        EmbeddingError
            If the request fails or the response is malformed.
        """
        if not self.api_key:
            raise EmbeddingError("Embedding API key is not configured.")

        payload = {
            "model": f"models/{self.model}",
            "content": {"parts": [{"text": text}]},
        }
        headers = {"x-goog-api-key": self.api_key}

        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            try:
                response = await client.post(
                    self.endpoint,
                    json=payload,
                    headers=headers,
                )
                response.raise_for_status()
            except httpx.HTTPError as exc:
                logger.error(
                    "Embedding request failed (%s): text length=%d, error=%s",
                    type(exc).__name__,
                    len(text),
                    str(exc),
                )
                raise EmbeddingError(
                    f"Embedding generation failed: {type(exc).__name__}"
                ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise EmbeddingError("Embedding response is not valid JSON.") from exc

        return self._extract_embedding(data)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_embedding(data: dict) -> List[float]:
        """
        Parse and validate embedding output format.

        Gemini returns:
            { "embedding": { "values": [...] } }
        """
        if not isinstance(data, dict) or "embedding" not in data:
            raise EmbeddingError("Embedding response missing 'embedding' field.")

        record = data["embedding"]
        if not isinstance(record, dict) or "values" not in record:
            raise EmbeddingError(f"Malformed embedding record: {record!r}")

        values = record["values"]
        if not isinstance(values, list) or not values or not all(
            isinstance(x, (float, int)) for x in values
        ):
            raise EmbeddingError("Invalid embedding vector: must be a non-empty float list.")

        return [float(x) for x in values]

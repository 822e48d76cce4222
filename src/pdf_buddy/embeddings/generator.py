"""
Best-effort embedding of the leading chunks of a document.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Sequence

from .embedder import Embedder
from ..core.errors import EmbeddingError
from ..ingestion.chunking import Chunk
from ..storage.models import ChunkEmbedding

logger = logging.getLogger("pdfbuddy.embeddings")


async def generate_chunk_embeddings(
    chunks: Sequence[Chunk],
    embedder: Embedder,
    job_id: str,
    max_chunks: int = 10,
    min_chars: int = 20,
    delay_seconds: float = 0.1,
) -> List[ChunkEmbedding]:
    """
    Embed at most the first `max_chunks` chunks, one call at a time.

    Chunks shorter than `min_chars` are skipped. A chunk whose embedding call
    fails is logged and skipped. Returns the successful embeddings in
    processing order; an empty list is a valid result.
    """
    to_process = list(chunks[:max_chunks])
    results: List[ChunkEmbedding] = []

    for chunk in to_process:
        if len(chunk.text) < min_chars:
            continue

        try:
            vector = await embedder.embed(chunk.text)
        except EmbeddingError as exc:
            logger.warning("Error embedding chunk %d: %s", chunk.index, exc.message)
            continue
        except Exception as exc:
            logger.warning("Error embedding chunk %d: %s", chunk.index, exc)
            continue

        results.append(
            ChunkEmbedding(
                id=f"{job_id}_{chunk.index}",
                content=chunk.text,
                embedding=vector,
                chunk_index=chunk.index,
                page_ref=chunk.page_ref,
            )
        )

        if len(results) % 3 == 0:
            logger.info("  Generated %d/%d embeddings", len(results), len(to_process))

        if delay_seconds > 0:
            await asyncio.sleep(delay_seconds)

    return results

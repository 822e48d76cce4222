"""
Ingest local PDF files without going through the HTTP upload.

Usage:
    python scripts/ingest_pdfs.py path/to/a.pdf path/to/b.pdf
"""
import asyncio
import os
import sys
from datetime import datetime, timezone

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from dotenv import load_dotenv
load_dotenv()

from pdf_buddy.config import Settings
from pdf_buddy.core.errors import FatalIngestionError
from pdf_buddy.embeddings.embedder import Embedder
from pdf_buddy.ingestion.pipeline import IngestionJob, IngestionPipeline, PipelineOptions
from pdf_buddy.storage.store import DocumentStore


async def main(paths):
    settings = Settings()
    api_key = settings.gemini_api_key.get_secret_value() if settings.gemini_api_key else None

    print("Initializing pipeline...")
    store = DocumentStore(settings.storage_path)
    store.ensure_root()
    embedder = Embedder(
        api_key,
        model=settings.embedding_model,
        base_url=settings.gemini_base_url,
        timeout=settings.http_timeout,
    )
    pipeline = IngestionPipeline(
        store,
        embedder,
        PipelineOptions(
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            max_chunks=settings.max_chunks,
            max_embedded_chunks=settings.max_embedded_chunks,
            min_embed_chars=settings.min_embed_chars,
            embedding_delay_seconds=settings.embedding_delay_seconds,
        ),
    )

    failures = 0
    for i, path in enumerate(paths, start=1):
        print(f"Processing ({i}/{len(paths)}): {path}")
        job = IngestionJob(
            job_id=f"cli{i}",
            filename=os.path.basename(path),
            path=path,
            uploaded_at=datetime.now(timezone.utc).isoformat(),
        )
        try:
            result = await pipeline.run(job)
        except FatalIngestionError as e:
            failures += 1
            print(f"  Failed: {e}")
            continue
        print(
            f"  Saved {result.document_id}: {result.text_length} chars, "
            f"{result.chunks} chunks, {result.embeddings} embeddings"
        )

    print("Done!" if not failures else f"Done with {failures} failure(s).")
    return 1 if failures else 0


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(2)
    sys.exit(asyncio.run(main(sys.argv[1:])))

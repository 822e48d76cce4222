"""
Document Store

Filesystem-backed storage for ingested PDFs. Each document lives in its own
directory under the storage root:

    <root>/<document id>/
        original.pdf
        extracted_text.txt
        chunks.json
        chunks_with_embeddings.json   (only when embeddings exist)
        metadata.json                 (written last)

Failed ingestion jobs are recorded under `<root>/error_<name>_<ms>/error.json`
and are never listed as documents.

Every ingestion job writes to a fresh directory, so no locking is needed
between the worker and concurrent readers. Readers treat a directory without
metadata.json as not yet visible.
"""

from __future__ import annotations

import json
import logging
import re
import time
from pathlib import Path
from typing import List, Optional, Sequence

from .models import ChunkEmbedding, DocumentMetadata, DocumentSummary, ErrorRecord
from ..core.errors import DocumentNotFoundError

logger = logging.getLogger("pdfbuddy.storage")


ORIGINAL_FILE = "original.pdf"
TEXT_FILE = "extracted_text.txt"
CHUNKS_FILE = "chunks.json"
EMBEDDINGS_FILE = "chunks_with_embeddings.json"
METADATA_FILE = "metadata.json"
ERROR_FILE = "error.json"

ERROR_PREFIX = "error_"
TRUNCATION_SUFFIX = "... (truncated)"

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def sanitize_name(name: str, limit: int = 100) -> str:
    """Replace every character outside [A-Za-z0-9.-] with '_' and cap length."""
    return _UNSAFE_CHARS.sub("_", name)[:limit]


def now_millis() -> int:
    return time.time_ns() // 1_000_000


class DocumentStore:
    """
    Read/write access to the per-document directory tree.

    Parameters
    ----------
    root : Path | str
        Storage root directory. Created on demand.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def ensure_root(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def new_document_id(
        self,
        file_name: str,
        job_id: str,
        timestamp_ms: Optional[int] = None,
    ) -> str:
        ts = timestamp_ms if timestamp_ms is not None else now_millis()
        name = sanitize_name(file_name)
        # error_ names belong to failure records
        if name.startswith(ERROR_PREFIX):
            name = f"doc_{name}"
        return f"{name}_{job_id}_{ts}"

    def document_path(self, document_id: str) -> Path:
        return self.root / document_id

    def _resolve(self, document_id: str) -> Path:
        """
        Map an id to its directory, rejecting anything that is not a plain
        child of the root (path separators, dot entries, error records).
        """
        if (
            not document_id
            or "/" in document_id
            or "\\" in document_id
            or document_id in (".", "..")
            or document_id.startswith(ERROR_PREFIX)
        ):
            raise DocumentNotFoundError(document_id)

        path = self.root / document_id
        if not path.is_dir():
            raise DocumentNotFoundError(document_id)
        return path

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save_document(
        self,
        document_id: str,
        *,
        original_bytes: bytes,
        extracted_text: str,
        chunks: Sequence[str],
        chunk_embeddings: Sequence[ChunkEmbedding],
        metadata: DocumentMetadata,
    ) -> Path:
        """
        Persist every artifact of a document. metadata.json is written last
        so listings never pick up a half-written directory.
        """
        path = self.document_path(document_id)
        path.mkdir(parents=True, exist_ok=True)
        logger.info("Saving document files to %s", path)

        (path / ORIGINAL_FILE).write_bytes(original_bytes)
        (path / TEXT_FILE).write_text(extracted_text, encoding="utf-8")
        (path / CHUNKS_FILE).write_text(
            json.dumps(list(chunks), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )

        if chunk_embeddings:
            payload = [c.model_dump(by_alias=True) for c in chunk_embeddings]
            (path / EMBEDDINGS_FILE).write_text(
                json.dumps(payload, indent=2, ensure_ascii=False),
                encoding="utf-8",
            )

        (path / METADATA_FILE).write_text(metadata.to_json(), encoding="utf-8")
        return path

    def save_error(self, record: ErrorRecord) -> Path:
        """Write an error record into its own `error_`-prefixed directory."""
        name = f"{ERROR_PREFIX}{sanitize_name(record.file_name)}_{now_millis()}"
        path = self.root / name
        path.mkdir(parents=True, exist_ok=True)
        (path / ERROR_FILE).write_text(record.to_json(), encoding="utf-8")
        return path

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_documents(self) -> List[DocumentSummary]:
        """
        Return every complete document, most recently saved first.

        Directories that are error records, or whose metadata is missing or
        unreadable, are skipped.
        """
        if not self.root.is_dir():
            return []

        summaries: List[DocumentSummary] = []
        for entry in self.root.iterdir():
            if not entry.is_dir() or entry.name.startswith(ERROR_PREFIX):
                continue
            try:
                metadata = self._read_metadata(entry)
            except (OSError, ValueError) as exc:
                logger.info("Skipping %s: %s", entry.name, exc)
                continue

            summaries.append(
                DocumentSummary(
                    id=entry.name,
                    name=metadata.display_name,
                    original_name=metadata.display_name,
                    saved_at=metadata.saved_at,
                    file_size=metadata.file_size,
                    text_length=metadata.text_length,
                    chunks=metadata.chunks_count,
                    embeddings=metadata.embeddings_generated,
                    extraction_success=metadata.extraction_success,
                    path=str(entry),
                )
            )

        summaries.sort(key=lambda s: s.saved_at, reverse=True)
        return summaries

    def exists(self, document_id: str) -> bool:
        try:
            self._resolve(document_id)
        except DocumentNotFoundError:
            return False
        return True

    def get_metadata(self, document_id: str) -> DocumentMetadata:
        path = self._resolve(document_id)
        try:
            return self._read_metadata(path)
        except (OSError, ValueError) as exc:
            logger.error("Error reading metadata for %s: %s", document_id, exc)
            raise DocumentNotFoundError(document_id) from exc

    def get_content(
        self,
        document_id: str,
        max_length: int = 4000,
    ) -> Optional[str]:
        """
        Return the extracted text, cut to max_length characters with a
        truncation suffix. Returns None when the text cannot be read.
        """
        try:
            path = self._resolve(document_id)
            text = (path / TEXT_FILE).read_text(encoding="utf-8")
        except (DocumentNotFoundError, OSError) as exc:
            logger.error("Error reading content for %s: %s", document_id, exc)
            return None

        if len(text) > max_length:
            return text[:max_length] + TRUNCATION_SUFFIX
        return text

    def get_chunks(self, document_id: str) -> List[str]:
        path = self._resolve(document_id)
        try:
            return json.loads((path / CHUNKS_FILE).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error("Error reading chunks for %s: %s", document_id, exc)
            return []

    def get_chunk_embeddings(self, document_id: str) -> List[ChunkEmbedding]:
        path = self._resolve(document_id) / EMBEDDINGS_FILE
        if not path.is_file():
            return []
        try:
            records = json.loads(path.read_text(encoding="utf-8"))
            return [ChunkEmbedding.model_validate(r) for r in records]
        except (OSError, ValueError) as exc:
            logger.error("Error reading embeddings for %s: %s", document_id, exc)
            return []

    def list_files(self, document_id: str) -> List[str]:
        path = self._resolve(document_id)
        return sorted(p.name for p in path.iterdir())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _read_metadata(path: Path) -> DocumentMetadata:
        raw = (path / METADATA_FILE).read_text(encoding="utf-8")
        return DocumentMetadata.model_validate_json(raw)

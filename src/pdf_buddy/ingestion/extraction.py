"""Extract page-tagged plain text from PDF bytes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

import fitz

from ..core.errors import ExtractionError
from ..core.pages import page_marker

logger = logging.getLogger("pdfbuddy.extraction")

FALLBACK_MARKER = "[PDF Extraction Failed - Using Fallback]"
FALLBACK_SCAN_BYTES = 10_000
FALLBACK_MAX_LINES = 50
FALLBACK_MIN_CHARS = 100
_STRUCTURAL_TOKENS = ("%PDF", "xref")


@dataclass(frozen=True)
class ExtractionResult:
    text: str
    # False when the text came from the raw-bytes fallback rather than the parser.
    succeeded: bool


def normalize_page_text(text: str) -> str:
    parts = [line.strip() for line in text.splitlines() if line.strip()]
    return " ".join(parts)


def extract_pages(data: bytes, name: str) -> str:
    """
    Parse the PDF with PyMuPDF and return all pages as one string.

    Each page is preceded by a `[Page n]` line and pages are separated by a
    blank line. A page that fails to extract is replaced by a
    `[Page n] - Extraction failed` marker.

    Raises
    ------
    ExtractionError
        If the document cannot be opened or no text is produced at all.
    """
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise ExtractionError(f"Could not open PDF: {exc}") from exc

    parts: List[str] = []
    with doc:
        total = doc.page_count
        logger.info("PDF %s has %d pages", name, total)

        for index in range(total):
            number = index + 1
            try:
                page_text = normalize_page_text(doc[index].get_text("text"))
                parts.append(f"{page_marker(number)}\n{page_text}\n\n")
            except Exception as exc:
                logger.warning("Error extracting page %d of %s: %s", number, name, exc)
                parts.append(f"{page_marker(number)} - Extraction failed\n\n")

            if number % 5 == 0 or number == total:
                logger.info("  Extracted page %d/%d", number, total)

    text = "".join(parts).strip()
    if not text:
        raise ExtractionError("No text could be extracted from PDF")
    return text


def fallback_extract(data: bytes) -> str:
    """
    Recover readable lines directly from the first bytes of the file.

    Raises
    ------
    ExtractionError
        If fewer than FALLBACK_MIN_CHARS characters survive filtering.
    """
    head = data[:FALLBACK_SCAN_BYTES].decode("utf-8", errors="replace")
    lines = [
        line
        for line in head.split("\n")
        if line.strip() and not any(tok in line for tok in _STRUCTURAL_TOKENS)
    ]
    recovered = "\n".join(lines[:FALLBACK_MAX_LINES])

    if len(recovered) <= FALLBACK_MIN_CHARS:
        raise ExtractionError("Fallback extraction recovered no usable text")
    return f"{FALLBACK_MARKER}\n{recovered}"


def extract_pdf_text(data: bytes, name: str) -> ExtractionResult:
    """
    Extract text from a PDF, falling back to raw-byte recovery when the
    parser fails.

    Raises
    ------
    ExtractionError
        When both the parser and the fallback fail. Callers are expected to
        substitute placeholder text.
    """
    logger.info("Starting text extraction for: %s", name)
    try:
        text = extract_pages(data, name)
    except ExtractionError as exc:
        logger.error("PDF extraction failed for %s: %s", name, exc)
        try:
            text = fallback_extract(data)
        except ExtractionError:
            logger.info("Fallback extraction also failed for %s", name)
            raise ExtractionError(f"PDF text extraction failed: {exc.message}") from exc

        logger.info("Using fallback text extraction (%d chars)", len(text))
        return ExtractionResult(text=text, succeeded=False)

    logger.info("Extracted %d characters from %s", len(text), name)
    return ExtractionResult(text=text, succeeded=True)

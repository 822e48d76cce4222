"""Helpers for the `[Page N]` markers embedded in extracted text."""

from __future__ import annotations

import re
from typing import Optional

PAGE_MARKER_PATTERN = re.compile(r"\[Page (\d+)\]")


def page_marker(page_number: int) -> str:
    return f"[Page {page_number}]"


def parse_page_ref(text: str) -> Optional[int]:
    """Return the page number of the first `[Page N]` marker in text, if any."""
    match = PAGE_MARKER_PATTERN.search(text)
    return int(match.group(1)) if match else None

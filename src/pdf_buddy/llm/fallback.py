"""
Ordered fallback over candidate coroutines.

Candidates are tried in order; the first one that succeeds wins. When every
candidate fails, their errors are aggregated into one AllCandidatesFailedError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, List, Sequence, Tuple, TypeVar

from ..core.errors import ExternalServiceError

logger = logging.getLogger("pdfbuddy.fallback")

T = TypeVar("T")

Candidate = Tuple[str, Callable[[], Awaitable[T]]]


class AllCandidatesFailedError(ExternalServiceError):
    """Raised when no candidate succeeded. `errors` keeps (name, exception) pairs."""

    def __init__(self, errors: List[Tuple[str, Exception]]) -> None:
        if errors:
            detail = "; ".join(f"{name}: {exc}" for name, exc in errors)
            message = f"All candidates failed ({detail})"
        else:
            message = "No candidates to try"
        super().__init__(message)
        self.errors = errors


@dataclass(frozen=True)
class Success(Generic[T]):
    name: str
    value: T


async def first_success(candidates: Sequence[Candidate]) -> Success:
    errors: List[Tuple[str, Exception]] = []

    for name, call in candidates:
        try:
            value = await call()
        except Exception as exc:
            logger.info("Candidate %s failed, trying next: %s", name, exc)
            errors.append((name, exc))
            continue
        return Success(name, value)

    raise AllCandidatesFailedError(errors)

from .client import LLMClient
from .fallback import AllCandidatesFailedError, first_success

__all__ = ["LLMClient", "AllCandidatesFailedError", "first_success"]

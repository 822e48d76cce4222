"""Embedding generation for document chunks."""

from .embedder import Embedder
from .generator import generate_chunk_embeddings

__all__ = ["Embedder", "generate_chunk_embeddings"]

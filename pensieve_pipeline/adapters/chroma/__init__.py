"""ChromaDB adapter for recording and transcript search."""

from .search import ChromaSearchIndex

__all__ = ["ChromaSearchIndex"]

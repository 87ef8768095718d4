"""Ollama adapter for transcript summarization."""

from .summarizer import OllamaSummarizer

__all__ = ["OllamaSummarizer"]

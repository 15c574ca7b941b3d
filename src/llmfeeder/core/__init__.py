"""Core service for llmfeeder."""

from .service import LLMFeeder

__all__ = ["LLMFeeder"]

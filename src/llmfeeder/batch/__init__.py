"""Batch processing of multiple documents."""

from .orchestrator import MERGE_SEPARATOR, BatchOrchestrator

__all__ = ["BatchOrchestrator", "MERGE_SEPARATOR"]

"""Batch conversion of several documents."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Callable, Union

from ..archive import ArchiveBundle, Archiver
from ..core.service import LLMFeeder
from ..errors import AllDocumentsFailed, classify_exception
from ..models.config import ConversionSettings
from ..models.events import ConversionEvent, EventType
from ..models.results import BatchResultSet, BatchSummary, ConversionResult
from ..pipeline.base import EventEmitter
from ..snapshot import PageSnapshot, load_snapshot

logger = logging.getLogger(__name__)

MERGE_SEPARATOR = "\n\n---\n\n"

# A snapshot, or a source string handed to the loader
DocumentSource = Union[PageSnapshot, str]
SnapshotLoader = Callable[[str], PageSnapshot]


class BatchOrchestrator:
    """
    Converts several documents one after another and combines the results.

    Documents are processed strictly in order, never concurrently. A
    document that fails (including one that cannot be loaded) is recorded
    as a failed result and the batch moves on.

    Example:
        orchestrator = BatchOrchestrator(LLMFeeder(InMemoryBridge()))
        results = await orchestrator.process_many(["a.html", "b.html"], settings)
        print(orchestrator.summary(results).message)   # "2 tabs"
        merged = orchestrator.merge(results)
    """

    def __init__(
        self,
        feeder: LLMFeeder,
        loader: SnapshotLoader | None = None,
        archiver: Archiver | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            feeder: Service that converts single documents
            loader: Turns a source string into a snapshot (file path or URL
                by default); runs in a worker thread
            archiver: Archive builder (uses default if None)
        """
        self._feeder = feeder
        self._loader = loader or load_snapshot
        self._archiver = archiver or Archiver()

    @property
    def archiver(self) -> Archiver:
        return self._archiver

    async def process_many(
        self,
        documents: Sequence[DocumentSource],
        settings: ConversionSettings | None = None,
        emit: EventEmitter | None = None,
    ) -> BatchResultSet:
        """
        Convert each document in order.

        Args:
            documents: Snapshots or source strings
            settings: Settings applied to every document
            emit: Optional callback for progress events

        Returns:
            BatchResultSet with one result per document, in input order
        """
        results = BatchResultSet()
        total = len(documents)
        logger.info(f"Converting {total} documents")

        for index, document in enumerate(documents, start=1):
            source = document.url if isinstance(document, PageSnapshot) else document
            if emit:
                emit(ConversionEvent(type=EventType.DOCUMENT_STARTED, url=source, current=index, total=total))

            result = await self._process_one(document, settings)
            results.results.append(result)

            if emit:
                if result.success:
                    emit(
                        ConversionEvent(
                            type=EventType.DOCUMENT_COMPLETED,
                            url=source,
                            current=index,
                            total=total,
                        )
                    )
                else:
                    emit(
                        ConversionEvent(
                            type=EventType.DOCUMENT_FAILED,
                            url=source,
                            error=result.details or result.error_message,
                            current=index,
                            total=total,
                        )
                    )

        summary = results.summary
        logger.info(f"Batch complete: {summary.message}")
        if emit:
            emit(ConversionEvent(type=EventType.BATCH_COMPLETED, message=summary.message, total=total))
        return results

    async def _process_one(
        self,
        document: DocumentSource,
        settings: ConversionSettings | None,
    ) -> ConversionResult:
        if isinstance(document, PageSnapshot):
            snapshot = document
        else:
            try:
                snapshot = await asyncio.to_thread(self._loader, document)
            except Exception as e:
                error = classify_exception(e)
                logger.error(f"Failed to load {document}: {e}")
                return ConversionResult.failed(error.kind, error.details, title=document, url=document)
        return await self._feeder.convert(snapshot, settings)

    def merge(self, results: BatchResultSet) -> str:
        """
        Join the Markdown of every successful document.

        Raises:
            AllDocumentsFailed: If no document succeeded
        """
        successful = results.successful
        if not successful:
            raise AllDocumentsFailed()
        return MERGE_SEPARATOR.join(result.markdown or "" for result in successful)

    def archive(self, results: BatchResultSet, emit: EventEmitter | None = None) -> ArchiveBundle:
        """
        Package every successful document as ``{title}.md`` in a ZIP archive.

        Raises:
            AllDocumentsFailed: If no document succeeded
        """
        bundle = self._archiver.build(results.results)
        if emit:
            emit(ConversionEvent(type=EventType.ARCHIVE_CREATED, message=bundle.filename))
        return bundle

    @staticmethod
    def summary(results: BatchResultSet) -> BatchSummary:
        """Success/failure counts and a short message such as ``2 tabs (1 failed)``."""
        return results.summary

"""Base classes for the conversion pipeline architecture."""

from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, runtime_checkable

from bs4 import Tag

from ..errors import LLMFeederError, classify_exception
from ..models.config import ConversionSettings
from ..models.events import ConversionEvent, EventType
from ..models.results import ArticleMetadata, ConversionResult, ConversionWarning
from ..snapshot import PageSnapshot

# Type alias for event emitter function
EventEmitter = Callable[[ConversionEvent], None]


@dataclass
class ConversionContext:
    """
    Context object passed through pipeline steps.

    Contains all state for converting a single document, accumulated
    as it moves through the pipeline.

    Attributes:
        snapshot: The document being converted (never modified)
        settings: Settings for this run
        node: Working content subtree, owned by this run
        metadata: Article metadata from the extractor, if any
        from_readability: True if ``node`` is a readability result
        markdown: Converted (and later post-processed) Markdown
        warnings: Non-fatal degradations collected along the way
        error: Failure that stopped the pipeline
    """

    snapshot: PageSnapshot
    settings: ConversionSettings

    # Content (accumulated through pipeline)
    node: Optional[Tag] = None
    metadata: Optional[ArticleMetadata] = None
    from_readability: bool = False
    markdown: Optional[str] = None
    token_count: Optional[int] = None
    warnings: list[ConversionWarning] = field(default_factory=list)

    # Status
    error: Optional[LLMFeederError] = None

    @property
    def url(self) -> str:
        return self.snapshot.url

    def to_result(self) -> ConversionResult:
        """Collapse the context into a ConversionResult."""
        title = self.snapshot.document_title
        if self.error is not None:
            return ConversionResult.failed(self.error.kind, self.error.details, title=title, url=self.url)
        return ConversionResult.ok(
            self.markdown or "",
            token_count=self.token_count,
            warnings=tuple(self.warnings),
            title=title,
            url=self.url,
            metadata=self.metadata,
        )


@runtime_checkable
class ConversionStep(Protocol):
    """
    Protocol for pipeline steps.

    Each step receives a ConversionContext, processes it, and returns
    the (possibly modified) context.

    Error Handling Contract:
    - For failures: raise an exception (preferably an LLMFeederError)
    - The pipeline catches it, records it in ctx.error and stops
    - Degradations that should not fail the run go into ctx.warnings

    Example implementation:
        class WordCountStep:
            name = "word_count"

            async def execute(
                self,
                ctx: ConversionContext,
                emit: Optional[EventEmitter] = None
            ) -> ConversionContext:
                logger.debug(f"{len(ctx.markdown.split())} words")
                return ctx
    """

    name: str

    async def execute(
        self,
        ctx: ConversionContext,
        emit: Optional[EventEmitter] = None,
    ) -> ConversionContext:
        """
        Execute this pipeline step.

        Args:
            ctx: The conversion context with accumulated state
            emit: Optional callback to emit events

        Returns:
            The (possibly modified) context
        """
        ...


@dataclass
class ConversionPipeline:
    """
    Pipeline for converting a single document through multiple steps.

    Steps are executed in order. If a step raises an exception, the
    error is classified, captured in ctx.error and processing stops.
    Cancellation (e.g. from an enclosing timeout) is not caught.

    Example:
        pipeline = ConversionPipeline(steps=[
            ExtractStep(extractor),
            StitchStep(stitcher),
            SanitizeStep(sanitizer),
            ConvertStep(converter),
            FinalizeStep(post_processor, estimator),
        ])

        ctx = await pipeline.execute(snapshot, settings, emit=log_event)
        if ctx.error:
            logger.error(f"Failed: {ctx.error.details}")
    """

    steps: list[ConversionStep]

    async def execute(
        self,
        snapshot: PageSnapshot,
        settings: ConversionSettings,
        emit: Optional[EventEmitter] = None,
    ) -> ConversionContext:
        """
        Execute the pipeline for a document.

        Args:
            snapshot: The document to convert
            settings: Settings for this run
            emit: Optional callback for emitting events

        Returns:
            ConversionContext with final state (check error for status)
        """
        ctx = ConversionContext(snapshot=snapshot, settings=settings)

        if emit:
            emit(ConversionEvent(type=EventType.CONVERSION_STARTED, url=snapshot.url))

        for step in self.steps:
            try:
                ctx = await step.execute(ctx, emit)
            except Exception as e:
                ctx.error = classify_exception(e)

                # Emit failure event
                if emit:
                    emit(
                        ConversionEvent(
                            type=EventType.CONVERSION_FAILED,
                            url=snapshot.url,
                            error=f"{step.name}: {ctx.error.details}",
                        )
                    )
                break

        return ctx

    def add_step(self, step: ConversionStep) -> "ConversionPipeline":
        """
        Add a step to the pipeline (fluent API).

        Args:
            step: The step to add

        Returns:
            Self for chaining
        """
        self.steps.append(step)
        return self

"""Tests for batch conversion, merging and archiving."""

import re
import zipfile
from datetime import datetime, timezone
from io import BytesIO

import pytest
from llmfeeder.archive import Archiver
from llmfeeder.batch import MERGE_SEPARATOR, BatchOrchestrator
from llmfeeder.bridge import InMemoryBridge
from llmfeeder.core.service import LLMFeeder
from llmfeeder.errors import AllDocumentsFailed, ErrorKind
from llmfeeder.models.config import ContentScope, ConversionSettings
from llmfeeder.models.events import EventType
from llmfeeder.models.results import BatchResultSet, BatchSummary, ConversionResult
from llmfeeder.naming import UniqueNamer, export_filename, sanitize_filename
from llmfeeder.snapshot import PageSnapshot

FULL_PAGE = ConversionSettings(content_scope=ContentScope.FULL_PAGE)


def page(title: str, body: str, url: str = "https://example.com/") -> PageSnapshot:
    return PageSnapshot(
        html=f"<html><head><title>{title}</title></head><body>{body}</body></html>",
        url=url,
        context_id=f"{url}#{title}",
    )


def make_orchestrator(**kwargs) -> BatchOrchestrator:
    return BatchOrchestrator(LLMFeeder(InMemoryBridge()), **kwargs)


class TestProcessMany:
    """Tests for sequential batch conversion."""

    @pytest.mark.asyncio
    async def test_failure_does_not_abort_batch(self):
        """Test that a failed document is recorded and the batch continues."""
        orchestrator = make_orchestrator()
        documents = [page("One", "<p>First</p>"), page("Two", ""), page("Three", "<p>Third</p>")]
        events = []

        results = await orchestrator.process_many(documents, FULL_PAGE, emit=events.append)

        assert [r.success for r in results] == [True, False, True]
        assert results.results[1].error == ErrorKind.NO_CONTENT
        assert orchestrator.summary(results).message == "2 tabs (1 failed)"

        types = [e.type for e in events]
        assert types.count(EventType.DOCUMENT_STARTED) == 3
        assert types.count(EventType.DOCUMENT_FAILED) == 1
        assert types[-1] == EventType.BATCH_COMPLETED

    @pytest.mark.asyncio
    async def test_merge_skips_failures(self):
        """Test that the merged output joins only successful documents."""
        orchestrator = make_orchestrator()
        documents = [page("One", "<p>First</p>"), page("Two", ""), page("Three", "<p>Third</p>")]

        merged = orchestrator.merge(await orchestrator.process_many(documents, FULL_PAGE))

        assert merged == "First" + MERGE_SEPARATOR + "Third"
        assert merged.count("---") == 1

    @pytest.mark.asyncio
    async def test_loads_sources_with_loader(self, tmp_path):
        """Test that string sources go through the loader."""
        html_file = tmp_path / "doc.html"
        html_file.write_text("<html><body><p>From disk</p></body></html>", encoding="utf-8")
        orchestrator = make_orchestrator()

        results = await orchestrator.process_many([str(html_file)], FULL_PAGE)

        assert results.results[0].success is True
        assert results.results[0].markdown == "From disk"

    @pytest.mark.asyncio
    async def test_missing_source_fails_alone(self, tmp_path):
        """Test that an unloadable source becomes a failed result."""
        missing = str(tmp_path / "missing.html")
        orchestrator = make_orchestrator()

        results = await orchestrator.process_many([missing, page("Ok", "<p>Fine</p>")], FULL_PAGE)

        failed = results.results[0]
        assert failed.success is False
        assert failed.url == missing
        assert "missing.html" in failed.details
        assert results.results[1].success is True

    @pytest.mark.asyncio
    async def test_custom_loader(self):
        """Test a caller-supplied loader."""
        loaded = []

        def loader(source: str) -> PageSnapshot:
            loaded.append(source)
            return page(source, "<p>Loaded</p>", url=f"https://example.com/{source}")

        orchestrator = make_orchestrator(loader=loader)
        results = await orchestrator.process_many(["a", "b"], FULL_PAGE)

        assert loaded == ["a", "b"]
        assert results.summary.success_count == 2

    def test_merge_all_failed(self):
        """Test that merging with no successes raises."""
        results = BatchResultSet([ConversionResult.failed(ErrorKind.NO_CONTENT)])
        with pytest.raises(AllDocumentsFailed) as exc_info:
            make_orchestrator().merge(results)
        assert exc_info.value.user_message == "No tabs were successfully converted."


class TestBatchSummary:
    """Tests for batch summaries."""

    def test_singular(self):
        """Test the singular wording."""
        assert BatchSummary(success_count=1, fail_count=0).message == "1 tab"

    def test_plural_with_failures(self):
        """Test plural wording with failures."""
        summary = BatchSummary(success_count=3, fail_count=2)
        assert summary.message == "3 tabs (2 failed)"
        assert summary.to_dict() == {"message": "3 tabs (2 failed)", "successCount": 3, "failCount": 2}


class TestArchive:
    """Tests for ZIP archives."""

    def test_collisions_and_naming(self):
        """Test that duplicate titles are numbered and failures are skipped."""
        results = [
            ConversionResult.ok("one", title="Same"),
            ConversionResult.failed(ErrorKind.GENERAL, title="Broken"),
            ConversionResult.ok("two", title="Same"),
            ConversionResult.ok("three", title="a/b: c?"),
        ]
        date = datetime(2024, 3, 15, tzinfo=timezone.utc)

        bundle = Archiver().build(results, date=date)

        assert bundle.filename == "llmfeeder-export-2024-03-15-3tabs.zip"
        assert bundle.file_count == 3
        assert bundle.names() == ["Same.md", "Same_1.md", "ab_c.md"]
        with zipfile.ZipFile(BytesIO(bundle.data)) as zf:
            assert zf.read("Same_1.md").decode("utf-8") == "two"

    def test_default_date_name(self):
        """Test the archive name pattern with today's date."""
        bundle = Archiver().build([ConversionResult.ok("x", title="X")])
        assert re.fullmatch(r"llmfeeder-export-\d{4}-\d{2}-\d{2}-1tabs\.zip", bundle.filename)

    def test_all_failed(self):
        """Test that an archive with no successes raises."""
        with pytest.raises(AllDocumentsFailed):
            Archiver().build([ConversionResult.failed(ErrorKind.TIMEOUT)])

    def test_write(self, tmp_path):
        """Test writing the archive to a directory."""
        archiver = Archiver()
        bundle = archiver.build([ConversionResult.ok("x", title="X")])

        path = archiver.write(bundle, tmp_path / "out")

        assert path.parent == tmp_path / "out"
        assert path.read_bytes() == bundle.data

    @pytest.mark.asyncio
    async def test_orchestrator_archive_event(self):
        """Test that archiving emits an event with the archive name."""
        orchestrator = make_orchestrator()
        results = await orchestrator.process_many([page("Doc", "<p>Text</p>")], FULL_PAGE)
        events = []

        bundle = orchestrator.archive(results, emit=events.append)

        assert bundle.names() == ["Doc.md"]
        assert events[0].type == EventType.ARCHIVE_CREATED
        assert events[0].message == bundle.filename


class TestNaming:
    """Tests for filename generation."""

    def test_sanitize_filename(self):
        """Test removal of unsafe characters and whitespace handling."""
        assert sanitize_filename('My: "Great" Page?') == "My_Great_Page"
        assert sanitize_filename("v1.2 release notes") == "v1_2_release_notes"

    def test_long_title_truncated(self):
        """Test that names are cut to 100 characters."""
        assert len(sanitize_filename("word " * 60)) <= 100

    def test_empty_title(self):
        """Test the fallback for titles with nothing usable."""
        assert sanitize_filename("???") == "untitled"

    def test_unique_namer(self):
        """Test collision suffixes."""
        namer = UniqueNamer()
        assert [namer.filename("Page") for _ in range(3)] == ["Page.md", "Page_1.md", "Page_2.md"]

    def test_export_filename(self):
        """Test the single-page download name."""
        assert export_filename("Hello World") == "Hello_World.md"
        assert export_filename("") == "llmfeeder.md"
        assert export_filename(None) == "llmfeeder.md"

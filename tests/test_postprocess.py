"""Tests for Markdown post-processing."""

from llmfeeder.conversion.postprocess import PostProcessor, format_metadata, normalize_markdown
from llmfeeder.models.config import ConversionSettings
from llmfeeder.models.results import ArticleMetadata, ConversionWarning, WarningType

URL = "https://blog.example.com/posts/1"

METADATA = ArticleMetadata(
    title="Article Title",
    author="Jane Doe",
    site_name="Example Blog",
    published_time="2024-03-15",
    excerpt="Short summary.",
)


class TestNormalizeMarkdown:
    """Tests for whitespace normalization."""

    def test_collapses_blank_lines(self):
        """Test that 3+ newlines collapse to one blank line."""
        assert normalize_markdown("a\n\n\n\nb") == "a\n\nb"

    def test_blank_line_before_heading(self):
        """Test that a heading directly after text gets a blank line."""
        assert normalize_markdown("Some text\n## Heading") == "Some text\n\n## Heading"

    def test_bullets_rejoined(self):
        """Test that consecutive bullets are not separated by blank lines."""
        assert normalize_markdown("- one\n\n- two\n\n- three") == "- one\n- two\n- three"

    def test_code_fence_left_alone(self):
        """Test that comments and blank lines inside code fences are kept."""
        code = "```python\nx = 1\n# comment\n\n\n\ny = 2\n```"
        assert normalize_markdown(code) == code

    def test_text_around_code_fence_normalized(self):
        """Test that text outside a fence is still normalized."""
        raw = "Intro\n## Usage\n\n\n\n```sh\n- a\n\n- b\n```\n\n\n\nDone"
        expected = "Intro\n\n## Usage\n\n```sh\n- a\n\n- b\n```\n\nDone"
        assert normalize_markdown(raw) == expected

    def test_idempotent(self):
        """Test that normalizing twice changes nothing."""
        raw = "Intro\n# Title\n\n\n\n- a\n\n- b\ntext\n### Sub\n\n\n"
        once = normalize_markdown(raw)
        assert normalize_markdown(once) == once


class TestFormatMetadata:
    """Tests for metadata template rendering."""

    def test_all_placeholders(self):
        """Test that every known placeholder is substituted."""
        template = "{title}|{url}|{date}|{author}|{siteName}|{excerpt}"
        rendered = format_metadata(template, METADATA, URL)
        assert rendered == f"Article Title|{URL}|2024-03-15|Jane Doe|Example Blog|Short summary."

    def test_repeated_and_unknown_placeholders(self):
        """Test global replacement and that unknown placeholders are kept."""
        rendered = format_metadata("{title} / {title} {unknown}", METADATA, URL)
        assert rendered == "Article Title / Article Title {unknown}"

    def test_fallbacks_without_metadata(self):
        """Test page title and hostname fallbacks."""
        rendered = format_metadata("{title} {siteName} [{author}]", None, URL, page_title="Page")
        assert rendered == "Page blog.example.com []"

    def test_untitled_fallback(self):
        """Test the Untitled fallback when no title is known."""
        assert format_metadata("{title}", None, URL) == "Untitled"

    def test_default_template(self):
        """Test the default template."""
        rendered = format_metadata(ConversionSettings().metadata_format, METADATA, URL)
        assert rendered == f"---\nSource: [Article Title]({URL})"


class TestPostProcessor:
    """Tests for PostProcessor."""

    def test_title_prepended(self):
        """Test that the page title is prepended as H1."""
        settings = ConversionSettings(include_title=True)
        result = PostProcessor().process("Body", settings, None, URL, page_title="  My Page ")
        assert result == "# My Page\n\nBody"

    def test_empty_title_not_prepended(self):
        """Test that an empty title adds nothing."""
        settings = ConversionSettings(include_title=True)
        assert PostProcessor().process("Body", settings, None, URL, page_title="   ") == "Body"

    def test_title_off_by_default(self):
        """Test that titles are not added by default."""
        assert PostProcessor().process("Body", ConversionSettings(), None, URL, page_title="T") == "Body"

    def test_metadata_appended(self):
        """Test that the metadata block is appended after a blank line."""
        settings = ConversionSettings(include_metadata=True, metadata_format="Source: {url}")
        result = PostProcessor().process("Body", settings, METADATA, URL)
        assert result == f"Body\n\nSource: {URL}"

    def test_iframe_note_appended(self):
        """Test that a cross-origin iframe warning renders as a note."""
        warning = ConversionWarning(type=WarningType.CROSS_ORIGIN_IFRAME, count=2)
        result = PostProcessor().process("Body", ConversionSettings(), None, URL, warnings=[warning])

        assert result.startswith("Body\n\n---\n> **Note:** This page contains 2 cross-origin iframe(s)")
        assert "Links to these iframes have been preserved where possible." in result

    def test_other_warnings_add_no_note(self):
        """Test that non-iframe warnings are not rendered."""
        warning = ConversionWarning(type=WarningType.LARGE_CONTENT, message="big")
        result = PostProcessor().process("Body", ConversionSettings(), None, URL, warnings=[warning])
        assert result == "Body"

    def test_note_precedes_metadata(self):
        """Test ordering of the iframe note and the metadata block."""
        settings = ConversionSettings(include_metadata=True)
        warning = ConversionWarning(type=WarningType.CROSS_ORIGIN_IFRAME, count=1)
        result = PostProcessor().process("Body", settings, METADATA, URL, warnings=[warning])

        assert result.index("**Note:**") < result.index("Source: [Article Title]")

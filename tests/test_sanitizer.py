"""Tests for HTML sanitization."""

from llmfeeder.conversion.extractor import fragment_container
from llmfeeder.conversion.sanitizer import HtmlSanitizer
from llmfeeder.models.config import ConversionSettings

BASE_URL = "https://example.com/docs/page"


class TestHtmlSanitizer:
    """Tests for HtmlSanitizer."""

    def test_removes_unwanted_elements(self):
        """Test that navigation, footers, ads and scripts are removed."""
        node = fragment_container(
            """<nav>Menu</nav>
            <p>Keep me</p>
            <div class="ads">Buy now</div>
            <div class="sidebar">Links</div>
            <div class="comments">First!</div>
            <footer>Footer</footer>
            <script>track()</script>
            <noscript>Enable JS</noscript>"""
        )
        HtmlSanitizer().clean(node, ConversionSettings(), BASE_URL)

        text = node.get_text()
        assert "Keep me" in text
        for removed in ("Menu", "Buy now", "Links", "First!", "Footer", "track()", "Enable JS"):
            assert removed not in text

    def test_nested_removals_do_not_fail(self):
        """Test removing elements whose ancestor was already removed."""
        node = fragment_container(
            '<footer><nav><div class="ads"><script>x()</script></div></nav></footer><p>Body</p>'
        )
        HtmlSanitizer().clean(node, ConversionSettings(), BASE_URL)

        assert node.find("footer") is None
        assert node.find("nav") is None
        assert "Body" in node.get_text()

    def test_images_kept_by_default(self):
        """Test that images survive when images are included."""
        node = fragment_container('<p>Text <img src="a.png" alt="A"></p>')
        HtmlSanitizer().clean(node, ConversionSettings(), BASE_URL)

        assert node.find("img") is not None

    def test_images_removed_when_excluded(self):
        """Test that img, picture and svg are removed when images are excluded."""
        node = fragment_container(
            '<p>Text <img src="a.png"></p><picture><source srcset="b.webp"></picture><svg></svg>'
        )
        HtmlSanitizer().clean(node, ConversionSettings(include_images=False), BASE_URL)

        assert node.find("img") is None
        assert node.find("picture") is None
        assert node.find("svg") is None
        assert "Text" in node.get_text()

    def test_iframes_removed_unless_deferred(self):
        """Test iframe removal and deferral."""
        html = '<p>Text</p><iframe src="https://other.example/embed"></iframe>'

        node = fragment_container(html)
        HtmlSanitizer().clean(node, ConversionSettings(), BASE_URL)
        assert node.find("iframe") is None

        node = fragment_container(html)
        HtmlSanitizer().clean(node, ConversionSettings(), BASE_URL, defer_iframes=True)
        assert node.find("iframe") is not None

    def test_removes_empty_paragraphs_and_divs(self):
        """Test that empty p/div elements are removed."""
        node = fragment_container('<p></p><div>  </div><div><img src="x.png"></div><p>Full</p>')
        HtmlSanitizer().clean(node, ConversionSettings(), BASE_URL)

        # The div holding an image has a child element and stays
        assert len(node.find_all("div")) == 1
        assert len(node.find_all("p")) == 1

    def test_urls_made_absolute(self):
        """Test that relative links and image sources are resolved."""
        node = fragment_container(
            '<p><a href="../guide">Guide</a> <a href="#top">Top</a> <img src="/img/logo.png"></p>'
        )
        HtmlSanitizer().clean(node, ConversionSettings(), BASE_URL)

        links = [a["href"] for a in node.find_all("a")]
        assert links == ["https://example.com/guide", "https://example.com/docs/page#top"]
        assert node.find("img")["src"] == "https://example.com/img/logo.png"

    def test_bad_url_left_alone(self):
        """Test that an unresolvable URL does not stop sanitization."""
        node = fragment_container('<p><a href="http://[invalid">Bad</a> <a href="ok">Ok</a></p>')
        HtmlSanitizer().clean(node, ConversionSettings(), BASE_URL)

        links = [a["href"] for a in node.find_all("a")]
        assert links[0] == "http://[invalid"
        assert links[1] == "https://example.com/docs/ok"

    def test_extra_selectors(self):
        """Test that custom selectors extend the defaults."""
        node = fragment_container('<div class="cookie-banner">Cookies</div><p>Content</p>')
        HtmlSanitizer(remove_selectors=[".cookie-banner"]).clean(node, ConversionSettings(), BASE_URL)

        assert "Cookies" not in node.get_text()

import unittest
from pathlib import Path

from chapter_scraper.config import ExtractionConfig
from chapter_scraper.extractor import ContentExtractor, InvalidSelectorError, SelectorNotFoundError

FIXTURES = Path(__file__).resolve().parent / "fixtures"


def _extractor(selector: str = ".content-inner", skip: int = 0, patterns: tuple[str, ...] = ()) -> ContentExtractor:
    return ContentExtractor(ExtractionConfig(selector=selector, skip_leading_nodes=skip, filter_patterns=patterns))


class ContentExtractorTestCase(unittest.TestCase):
    def test_filter_pattern_drops_tracking_snippet(self) -> None:
        html = (
            '<div class="content-inner"><p>window.pubfuturetag.push(1)</p>'
            "<p>Real text</p></div>"
        )
        extractor = _extractor(patterns=("window.pubfuturetag",))

        self.assertEqual(extractor.extract(html), "Real text")

    def test_sample_chapter_matches_golden_output(self) -> None:
        html = (FIXTURES / "chapter_sample.html").read_text(encoding="utf-8")
        expected = (FIXTURES / "chapter_sample.txt").read_text(encoding="utf-8").rstrip("\n")
        extractor = ContentExtractor(ExtractionConfig())

        first = extractor.extract(html)
        second = ContentExtractor(ExtractionConfig()).extract(html)

        self.assertEqual(first, expected)
        self.assertEqual(first.encode("utf-8"), second.encode("utf-8"))

    def test_leading_nodes_are_skipped_regardless_of_content(self) -> None:
        html = '<div id="chapter"><p>Real sentence one.</p><p>Real sentence two.</p><p>Kept.</p></div>'

        self.assertEqual(_extractor("#chapter", skip=2).extract(html), "Kept.")
        self.assertEqual(_extractor("#chapter", skip=3).extract(html), "")
        self.assertEqual(_extractor("#chapter", skip=10).extract(html), "")

    def test_skip_counts_whitespace_nodes(self) -> None:
        html = '<div id="chapter">\n<p>first</p>\n<p>second</p></div>'

        # nodes: "\n", "first", "\n", "second"
        self.assertEqual(_extractor("#chapter", skip=2).extract(html), "second")

    def test_filtered_only_node_yields_empty_text(self) -> None:
        html = '<div class="content-inner"><p>  window.pubfuturetag = []  </p></div>'

        self.assertEqual(_extractor(patterns=("window.pubfuturetag",)).extract(html), "")

    def test_node_equal_to_pattern_is_dropped(self) -> None:
        html = '<div class="content-inner"><p>Advertisement</p><p>Story</p></div>'

        self.assertEqual(_extractor(patterns=("Advertisement", "Subscribe")).extract(html), "Story")

    def test_nodes_are_trimmed_and_empty_nodes_removed(self) -> None:
        html = '<div class="content-inner">\n  <p>  one  </p>\n\n<p></p><p>two <b>three</b></p>\n</div>'

        self.assertEqual(_extractor().extract(html), "one\ntwo\nthree")

    def test_first_matching_element_is_used(self) -> None:
        html = (
            '<div class="content-inner"><p>first block</p></div>'
            '<div class="content-inner"><p>second block</p></div>'
        )

        self.assertEqual(_extractor().extract(html), "first block")

    def test_comments_are_not_text_nodes(self) -> None:
        html = '<div class="content-inner"><!-- note --><p>visible</p></div>'

        self.assertEqual(_extractor(skip=1).extract(html), "")
        self.assertEqual(_extractor(skip=0).extract(html), "visible")

    def test_script_text_is_exposed_to_filters(self) -> None:
        html = '<div class="content-inner"><script>document.write("x")</script><p>Body</p></div>'

        self.assertEqual(_extractor().extract(html), 'document.write("x")\nBody')
        self.assertEqual(_extractor(patterns=("document.",)).extract(html), "Body")

    def test_missing_selector_raises(self) -> None:
        with self.assertRaises(SelectorNotFoundError):
            _extractor().extract("<html><body><p>No content here</p></body></html>")

    def test_invalid_selector_raises(self) -> None:
        with self.assertRaises(InvalidSelectorError):
            _extractor("div[").extract('<div class="content-inner">x</div>')


if __name__ == "__main__":
    unittest.main()

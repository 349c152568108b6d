"""Selector-based text extraction for chapter pages."""

from __future__ import annotations

from typing import Iterator

import soupsieve
from bs4 import BeautifulSoup, Tag
from bs4.element import Comment, Declaration, Doctype, NavigableString, ProcessingInstruction

from .config import ExtractionConfig

_NON_TEXT_NODES = (Comment, Declaration, Doctype, ProcessingInstruction)


class ExtractionError(RuntimeError):
    """Raised when a page cannot be turned into chapter text."""

    reason = "extraction_error"


class SelectorNotFoundError(ExtractionError):
    reason = "selector_not_found"


class InvalidSelectorError(ExtractionError):
    reason = "invalid_selector"


def iter_text_nodes(element: Tag) -> Iterator[str]:
    """Yield every descendant text node of ``element`` in document order.

    Script and style bodies count as text here; comments and markup
    declarations do not.
    """

    for node in element.descendants:
        if isinstance(node, NavigableString) and not isinstance(node, _NON_TEXT_NODES):
            yield str(node)


class ContentExtractor:
    """Extract cleaned text from the first element matching a CSS selector.

    Output depends only on the HTML and the ``ExtractionConfig``, so the same
    page always produces byte-identical text.
    """

    def __init__(self, config: ExtractionConfig) -> None:
        self._config = config
        self._filter_patterns = tuple(pattern for pattern in config.filter_patterns if pattern)

    def extract(self, html: str) -> str:
        soup = BeautifulSoup(html, "html.parser")
        try:
            element = soup.select_one(self._config.selector)
        except soupsieve.SelectorSyntaxError as exc:
            raise InvalidSelectorError(f"Invalid CSS selector {self._config.selector!r}: {exc}") from exc
        if element is None:
            raise SelectorNotFoundError(f"No element matches selector {self._config.selector!r}")

        lines: list[str] = []
        for index, node in enumerate(iter_text_nodes(element)):
            if index < self._config.skip_leading_nodes:
                continue
            text = node.strip()
            if not text or self._is_filtered(text):
                continue
            lines.append(text)
        return "\n".join(lines)

    def _is_filtered(self, text: str) -> bool:
        return text.startswith(self._filter_patterns)

"""
Document query capability.

The classifier and blocking detection only need to find elements matching a
selector and read their text. A static parsed document and a snapshot taken
from a live browser page both provide that, so the classifier can be tested
without a browser.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Comment
from bs4.element import Tag


def _collapse(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


@dataclass(frozen=True)
class ElementView:
    """
    Tag name, visible text and attributes of one matched element.

    `nested` is set when an ancestor matched the same selector.
    """

    tag: str
    text: str
    attrs: dict[str, str] = field(default_factory=dict)
    nested: bool = False

    def attr(self, name: str) -> str:
        return self.attrs.get(name, "") or ""

    @property
    def locator_hint(self) -> str:
        """Short CSS-ish description used in findings."""
        hint = self.tag
        if self.attr("id"):
            hint += f"#{self.attr('id')}"
        elif self.attr("class"):
            hint += "." + ".".join(self.attr("class").split()[:2])
        return hint


class DocumentQuery(ABC):
    """
    Abstract interface over a settled document.
    """

    @abstractmethod
    def select(self, selector: str) -> list[ElementView]:
        """
        Find elements matching a CSS selector, in document order.

        Args:
            selector: CSS selector (comma-separated groups allowed)

        Returns:
            List of ElementView, each element at most once
        """
        pass

    @property
    @abstractmethod
    def title(self) -> str:
        pass

    @property
    @abstractmethod
    def body_text(self) -> str:
        pass

    @property
    @abstractmethod
    def body_is_empty(self) -> bool:
        """True when there is no body, or it has neither child elements nor text."""
        pass


class SoupDocument(DocumentQuery):
    """
    Static document parsed with BeautifulSoup.

    Scripts, styles and comments are removed so element text matches what a
    reader would see.
    """

    IGNORED_TAGS = ["script", "style", "noscript", "template"]

    def __init__(self, markup: str):
        """
        Parse markup.

        Args:
            markup: HTML string to parse
        """
        self.soup = BeautifulSoup(markup or "", "lxml")

        for tag in self.soup.find_all(self.IGNORED_TAGS):
            tag.decompose()

        for comment in self.soup.find_all(string=lambda text: isinstance(text, Comment)):
            comment.extract()

    def select(self, selector: str) -> list[ElementView]:
        elements = self.soup.select(selector)
        matched = {id(element) for element in elements}
        return [
            self._view(element, any(id(parent) in matched for parent in element.parents))
            for element in elements
        ]

    @property
    def title(self) -> str:
        if self.soup.title is None:
            return ""
        return _collapse(self.soup.title.get_text())

    @property
    def body_text(self) -> str:
        if self.soup.body is None:
            return ""
        return _collapse(self.soup.body.get_text(" "))

    @property
    def body_is_empty(self) -> bool:
        body = self.soup.body
        if body is None:
            return True
        has_children = any(isinstance(child, Tag) for child in body.children)
        return not has_children and not self.body_text

    @staticmethod
    def _view(element: Tag, nested: bool = False) -> ElementView:
        attrs = {}
        for name, value in element.attrs.items():
            attrs[name] = " ".join(value) if isinstance(value, list) else str(value)
        return ElementView(
            tag=element.name, text=_collapse(element.get_text(" ")), attrs=attrs, nested=nested
        )


class SnapshotDocument(DocumentQuery):
    """
    Document captured from a live page.

    Selections are collected up front (one browser round trip) for a known set
    of selectors; querying any other selector is a programming error.
    """

    def __init__(
        self,
        title: str,
        body_text: str,
        body_is_empty: bool,
        selections: dict[str, list[ElementView]] | None = None,
    ):
        self._title = _collapse(title)
        self._body_text = _collapse(body_text)
        self._body_is_empty = body_is_empty
        self._selections = selections or {}

    def select(self, selector: str) -> list[ElementView]:
        if selector not in self._selections:
            raise KeyError(f"Selector was not captured in this snapshot: {selector}")
        return list(self._selections[selector])

    @property
    def title(self) -> str:
        return self._title

    @property
    def body_text(self) -> str:
        return self._body_text

    @property
    def body_is_empty(self) -> bool:
        return self._body_is_empty

# rulescraper/selection.py
"""
Thin query layer over BeautifulSoup used by the rule evaluator.

A ``Selection`` is an ordered set of element handles. Queries never mutate
the parsed tree, so ``clone`` only copies the handle list.
"""
import logging
import re
from typing import Iterator, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

logger = logging.getLogger(__name__)

DEFAULT_PARSER = "lxml"


class Selection:
    def __init__(self, nodes: Optional[Sequence[Tag]] = None):
        self._nodes: List[Tag] = list(nodes or [])

    def __len__(self):
        return len(self._nodes)

    def __iter__(self) -> Iterator["Selection"]:
        for node in self._nodes:
            yield Selection([node])

    def __bool__(self):
        return bool(self._nodes)

    @property
    def nodes(self) -> List[Tag]:
        return list(self._nodes)

    def query(self, selector: str) -> "Selection":
        """Descendants of every node matching the CSS selector, in document order, de-duplicated."""
        if not self._nodes or not selector:
            return Selection()
        matched: List[Tag] = []
        seen = set()
        for node in self._nodes:
            try:
                found = node.select(selector)
            except (SelectorSyntaxError, ValueError) as e:
                logger.warning(f"Invalid selector '{selector}': {e}")
                return Selection()
            for el in found:
                if id(el) not in seen:
                    seen.add(id(el))
                    matched.append(el)
        return Selection(matched)

    def first(self) -> "Selection":
        return Selection(self._nodes[:1])

    def attr(self, name: str) -> Tuple[str, bool]:
        """Attribute of the first node; multi-valued attributes (class, rel) are space-joined."""
        if not self._nodes:
            return "", False
        value = self._nodes[0].get(name)
        if value is None:
            return "", False
        if isinstance(value, list):
            return " ".join(value), True
        return str(value), True

    def text(self) -> str:
        """Concatenated text of all nodes, surrounding whitespace stripped."""
        return "".join(node.get_text() for node in self._nodes).strip()

    def clone(self) -> "Selection":
        return Selection(self._nodes)


class Document:
    """A parsed page together with the URL it was loaded from."""

    def __init__(self, markup, url: str = "", parser: str = DEFAULT_PARSER):
        self.url = url
        self.soup = markup if isinstance(markup, BeautifulSoup) else BeautifulSoup(markup, parser)

    @property
    def selection(self) -> Selection:
        return Selection([self.soup])

    @property
    def title(self) -> str:
        title_tag = self.soup.find('title')
        if title_tag and title_tag.string:
            return re.sub(r'\s+', ' ', title_tag.string).strip()
        return ""


#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/extensions/heading_anchors.py
"""Give every heading a unique ``id`` derived from its text."""

from __future__ import annotations

import re
from typing import Any, Iterator

from mdcompose.capabilities import DocumentProcessor
from mdcompose.plugins.extension import BaseExtension

_MARKUP = re.compile(r"<[^>]+>|[*`~\[\]()!#]")
_NON_WORD = re.compile(r"[^\w\s-]")
_SEPARATORS = re.compile(r"[\s_-]+")

_HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})


def slugify(text: str, separator: str = "-") -> str:
    """Turn heading text into an anchor slug.

    Examples
    --------
        >>> slugify("Hello, *World*!")
        'hello-world'

    """
    text = _MARKUP.sub("", text)
    text = _NON_WORD.sub("", text.lower()).strip()
    return _SEPARATORS.sub(separator, text).strip(separator)


def _iter_heading_tokens(tokens: list[dict[str, Any]]) -> Iterator[dict[str, Any]]:
    for token in tokens:
        if token.get("type") == "heading":
            yield token
        children = token.get("children")
        if isinstance(children, list):
            yield from _iter_heading_tokens(children)


class HeadingAnchors(BaseExtension, DocumentProcessor):
    """Document processor that adds ``id`` attributes to headings.

    Works on mistune token lists and on Python-Markdown element trees.
    Headings that already carry an id are left alone; duplicate slugs get
    ``-1``, ``-2`` ... suffixes.
    """

    @classmethod
    def default_settings(cls) -> dict[str, Any]:
        return {"anchor_prefix": "", "anchor_separator": "-"}

    def _unique(self, text: str, seen: dict[str, int]) -> str:
        separator = self.get_setting("anchor_separator", "-")
        slug = f"{self.get_setting('anchor_prefix', '')}{slugify(text, separator) or 'section'}"
        count = seen.get(slug, 0)
        seen[slug] = count + 1
        return slug if count == 0 else f"{slug}{separator}{count}"

    def process_document(self, document: Any) -> None:
        seen: dict[str, int] = {}
        if isinstance(document, list):
            for token in _iter_heading_tokens(document):
                attrs = token.setdefault("attrs", {})
                if not attrs.get("id"):
                    attrs["id"] = self._unique(str(token.get("text") or ""), seen)
            return

        for element in document.iter():
            if element.tag in _HEADING_TAGS and not element.get("id"):
                element.set("id", self._unique("".join(element.itertext()), seen))


PLUGIN_MANIFEST = {
    "id": "heading-anchors",
    "label": "Heading anchors",
    "description": "Adds unique id attributes to headings so they can be linked to.",
    "class": HeadingAnchors,
    "parsers": ["mistune", "python-markdown"],
}

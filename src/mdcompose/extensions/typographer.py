#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/extensions/typographer.py
"""Smart punctuation for text runs: dashes, ellipses and curly quotes."""

from __future__ import annotations

import re
from typing import Any, Optional

from mdcompose.capabilities import InlineProcessor
from mdcompose.plugins.extension import BaseExtension

_OPENING_DOUBLE = re.compile(r'(^|[\s(\[{\u2014\u2013])"')
_OPENING_SINGLE = re.compile(r"(^|[\s(\[{\u2014\u2013])'")


def smarten(text: str, quotes: bool = True) -> str:
    """Apply typographic replacements to plain text.

    Examples
    --------
        >>> smarten('"Wait..." -- she said')
        '\u201cWait\u2026\u201d \u2013 she said'

    """
    text = text.replace("---", "\u2014").replace("--", "\u2013").replace("...", "\u2026")
    if quotes:
        text = _OPENING_DOUBLE.sub("\\1\u201c", text).replace('"', "\u201d")
        text = _OPENING_SINGLE.sub("\\1\u2018", text).replace("'", "\u2019")
    return text


class Typographer(BaseExtension, InlineProcessor):
    """Inline processor rewriting ``text`` tokens; code spans are left alone."""

    default_enabled = False

    @classmethod
    def default_settings(cls) -> dict[str, Any]:
        return {"smart_quotes": True}

    def process_inline(self, tokens: list[dict[str, Any]]) -> Optional[list[dict[str, Any]]]:
        quotes = bool(self.get_setting("smart_quotes", True))
        for token in tokens:
            if token.get("type") == "text" and isinstance(token.get("raw"), str):
                token["raw"] = smarten(token["raw"], quotes)
            children = token.get("children")
            if isinstance(children, list):
                self.process_inline(children)
        return None


PLUGIN_MANIFEST = {
    "id": "typographer",
    "label": "Typographer",
    "description": "Converts straight quotes, double hyphens and triple dots into typographic characters.",
    "class": Typographer,
    "parsers": ["mistune"],
}

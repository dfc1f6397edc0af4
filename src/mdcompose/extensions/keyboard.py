#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/extensions/keyboard.py
"""Keyboard shortcuts: ``[[Ctrl+C]]`` renders as ``<kbd>Ctrl</kbd>+<kbd>C</kbd>``."""

from __future__ import annotations

import html
import re
from typing import Any

from mdcompose.capabilities import InlineParser, InlineRenderer
from mdcompose.plugins.extension import BaseExtension


class Keyboard(BaseExtension, InlineParser, InlineRenderer):
    inline_type = "kbd"
    inline_pattern = r"\[\[(?P<kbd_keys>[^\[\]\n]+)\]\]"

    def parse_inline(self, match: re.Match) -> dict[str, Any]:
        return {"type": self.inline_type, "raw": match.group("kbd_keys")}

    def render_inline(self, text: str, **attrs: Any) -> str:
        keys = [key.strip() for key in text.split("+")]
        return "+".join(f"<kbd>{html.escape(key)}</kbd>" for key in keys if key)


PLUGIN_MANIFEST = {
    "id": "keyboard",
    "label": "Keyboard keys",
    "description": "Renders [[Ctrl+C]] as keyboard key markup.",
    "class": Keyboard,
    "parsers": ["mistune"],
}

#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/extensions/admonitions.py
"""Fenced admonition blocks::

    ::: warning Mind the gap
    Trains may arrive *late*.
    :::

"""

from __future__ import annotations

import html
import re
from typing import Any

from mdcompose.capabilities import BlockParser, BlockRenderer
from mdcompose.plugins.extension import BaseExtension


class Admonitions(BaseExtension, BlockParser, BlockRenderer):
    """Parses ``:::kind [title]`` fences and renders them as ``<div class="admonition">``."""

    block_type = "admonition"
    block_pattern = (
        r"^(?P<admonition_fence>:{3,})[ \t]*(?P<admonition_kind>[A-Za-z][\w-]*)"
        r"(?:[ \t]+(?P<admonition_title>[^\n]*?))?[ \t]*\n"
        r"(?P<admonition_body>[\s\S]*?)^(?P=admonition_fence)[ \t]*$"
    )

    @classmethod
    def default_settings(cls) -> dict[str, Any]:
        return {"admonition_kinds": ["note", "tip", "info", "warning", "danger"]}

    def parse_block(self, match: re.Match) -> dict[str, Any]:
        kind = match.group("admonition_kind").lower()
        allowed = self.get_setting("admonition_kinds") or []
        if allowed and kind not in allowed:
            kind = "note"
        title = (match.group("admonition_title") or "").strip() or kind.capitalize()
        return {
            "type": self.block_type,
            "text": match.group("admonition_body").strip(),
            "attrs": {"kind": kind, "title": title},
        }

    def render_block(self, text: str, kind: str = "note", title: str = "", **attrs: Any) -> str:
        body = f"<p>{text}</p>\n" if text else ""
        return (
            f'<div class="admonition admonition-{kind}">\n'
            f'<p class="admonition-title">{html.escape(title)}</p>\n'
            f"{body}</div>\n"
        )


PLUGIN_MANIFEST = {
    "id": "admonitions",
    "label": "Admonitions",
    "description": "Note, tip and warning boxes fenced with ':::'.",
    "class": Admonitions,
    "parsers": ["mistune"],
}

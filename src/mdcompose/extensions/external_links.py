#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/extensions/external_links.py
"""Open links to other hosts in a new tab with ``rel="noopener noreferrer"``."""

from __future__ import annotations

import html
from typing import Any, Optional
from urllib.parse import urlparse

from mdcompose.capabilities import InlineRenderer
from mdcompose.plugins.extension import BaseExtension


class ExternalLinks(BaseExtension, InlineRenderer):
    """Renderer for ``link`` nodes that marks links to external hosts."""

    inline_type = "link"
    default_enabled = False

    @classmethod
    def default_settings(cls) -> dict[str, Any]:
        return {"internal_hosts": [], "open_in_new_tab": True}

    def is_external(self, url: str) -> bool:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            return False
        internal = {host.lower() for host in self.get_setting("internal_hosts", [])}
        return parsed.hostname.lower() not in internal

    def render_inline(self, text: str, url: str = "", title: Optional[str] = None, **attrs: Any) -> str:
        # mistune escapes link destinations and titles while parsing
        parts = [f'<a href="{url}"']
        if title:
            parts.append(f' title="{title}"')
        if self.is_external(html.unescape(url)):
            if self.get_setting("open_in_new_tab", True):
                parts.append(' target="_blank"')
            parts.append(' rel="noopener noreferrer"')
        parts.append(f">{text}</a>")
        return "".join(parts)


PLUGIN_MANIFEST = {
    "id": "external-links",
    "label": "External links",
    "description": "Adds target and rel attributes to links pointing at other hosts.",
    "class": ExternalLinks,
    "parsers": ["mistune"],
}

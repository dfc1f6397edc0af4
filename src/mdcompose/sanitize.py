#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/sanitize.py
"""Administrative HTML allowlist applied to every conversion result.

Backends and extensions may emit arbitrary HTML (raw HTML blocks pass
through most Markdown engines untouched), so the conversion facade runs a
final bleach pass that keeps the tags an administrator could author by
hand and drops scripts, event handlers, inline styles and unsafe URL
protocols.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

import bleach

from mdcompose.constants import ADMIN_ALLOWED_PROTOCOLS, ADMIN_ALLOWED_TAGS, ADMIN_FORBIDDEN_ATTRIBUTES

logger = logging.getLogger(__name__)


def _is_event_handler_attribute(attr_name: str) -> bool:
    """Check if attribute name is a JavaScript event handler.

    Parameters
    ----------
    attr_name : str
        Attribute name to check

    Returns
    -------
    bool
        True if attribute is an event handler

    """
    attr_name_lower = attr_name.lower()

    if not (attr_name_lower.startswith("on") and len(attr_name_lower) > 2):
        return False

    # onclick, onload, onerror are handlers; one-time, on_click are not
    event_part = attr_name_lower[2:]
    return event_part[0].isalpha() and event_part.replace("_", "").isalpha() and "-" not in attr_name_lower


def _filter_attributes(tag: str, name: str, value: str) -> bool:
    """Attribute filter passed to bleach: everything except handlers and styles."""
    if name.lower() in ADMIN_FORBIDDEN_ATTRIBUTES:
        return False
    return not _is_event_handler_attribute(name)


def sanitize_admin_html(
    html: str,
    allowed_tags: Optional[Iterable[str]] = None,
    allowed_protocols: Optional[Iterable[str]] = None,
) -> str:
    """Filter HTML against the administrative tag allowlist.

    Disallowed tags are removed while their text content is kept;
    comments are dropped. URL attributes (``href``, ``src``) are checked
    against the allowed protocols.

    Parameters
    ----------
    html : str
        HTML produced by a backend
    allowed_tags : iterable of str, optional
        Override for the tag allowlist
    allowed_protocols : iterable of str, optional
        Override for the URL protocol allowlist

    Returns
    -------
    str
        Sanitized HTML (not trimmed)

    Examples
    --------
        >>> sanitize_admin_html('<p onclick="x()">Hi<script>alert(1)</script></p>')
        '<p>Hialert(1)</p>'

    """
    if not html:
        return ""

    cleaned = bleach.clean(
        html,
        tags=set(allowed_tags if allowed_tags is not None else ADMIN_ALLOWED_TAGS),
        attributes=_filter_attributes,
        protocols=set(allowed_protocols if allowed_protocols is not None else ADMIN_ALLOWED_PROTOCOLS),
        strip=True,
        strip_comments=True,
    )
    if len(cleaned) != len(html):
        logger.debug(f"Sanitizer changed output length from {len(html)} to {len(cleaned)}")
    return cleaned

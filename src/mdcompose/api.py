#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/api.py
"""Public conversion API.

:func:`convert` is the single operation hosts need once they hold a
composed environment. :func:`to_html` wires the default registries for
one-off conversions.

Examples
--------
    >>> from mdcompose import to_html
    >>> to_html("*hello*")
    '<p><em>hello</em></p>'

"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional

from mdcompose.sanitize import sanitize_admin_html

if TYPE_CHECKING:
    from mdcompose.environment import ConversionEnvironment
    from mdcompose.plugins.parser import BaseParser
    from mdcompose.registry import ParserRegistry

logger = logging.getLogger(__name__)


def convert(text: str, environment: ConversionEnvironment) -> str:
    """Convert Markdown to sanitized HTML with a composed environment.

    Stateless with respect to ``environment``; safe to call repeatedly and
    concurrently. Exceptions raised by the backend propagate unchanged.

    Parameters
    ----------
    text : str
        Markdown source
    environment : ConversionEnvironment
        Environment from :func:`compose`

    Returns
    -------
    str
        HTML filtered through the administrative allowlist, trimmed.
        Empty or whitespace-only input returns ``""`` without running the backend.

    """
    if not text or not text.strip():
        return ""
    html = environment.render(text)
    return sanitize_admin_html(html).strip()


def compose(parser: BaseParser, extensions: Optional[Iterable[Any]] = None) -> ConversionEnvironment:
    """Compose ``parser`` with ``extensions`` (default: its enabled extensions)."""
    return parser.composer.compose(parser, extensions)


def to_html(
    text: str,
    parser: Optional[str] = None,
    configuration: Optional[Mapping[str, Any]] = None,
    registry: Optional[ParserRegistry] = None,
) -> str:
    """Convert Markdown with a parser from the default registries.

    Parameters
    ----------
    text : str
        Markdown source
    parser : str, optional
        Parser id; the first installed parser when omitted
    configuration : Mapping, optional
        Parser configuration overrides, including an ``extensions`` mapping
    registry : ParserRegistry, optional
        Registry to use instead of the default wiring

    """
    if registry is None:
        from mdcompose.registry import default_parser_registry

        registry = default_parser_registry()
    parser_id = parser or registry.first_installed_plugin_id()
    instance = registry.create_instance(parser_id, configuration)
    return instance.parse(text)

#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/plugins/missing.py
"""Fallback plugins returned for unknown or broken plugin ids."""

from __future__ import annotations

import html
import re

from mdcompose.constants import FALLBACK_PLUGIN_ID
from mdcompose.environment import Converter, ConversionEnvironment
from mdcompose.plugin_metadata import Literal, PluginDefinition
from mdcompose.plugins.extension import BaseExtension
from mdcompose.plugins.parser import BaseParser

_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")


def _escape_paragraphs(text: str) -> str:
    paragraphs = [p.strip() for p in _PARAGRAPH_SPLIT.split(text) if p.strip()]
    return "\n".join(f"<p>{html.escape(p)}</p>" for p in paragraphs)


class MissingParser(BaseParser):
    """Parser used when the requested one does not exist.

    Escapes the text into plain paragraphs so callers always get safe
    output. Extensions are never attached.
    """

    supported_capabilities = frozenset()

    def get_extensions(self, include_disabled: bool = False) -> list:
        return []

    def build_converter(self, environment: ConversionEnvironment) -> Converter:
        return _escape_paragraphs


class MissingExtension(BaseExtension):
    """Extension used when the requested one does not exist; attaches nothing."""

    default_enabled = False

    def is_compatible(self, parser_id: str) -> bool:
        return False


def fallback_definition(family: str, plugin_class: type) -> PluginDefinition:
    """Build the always-present sentinel definition for ``family``."""
    return PluginDefinition(
        id=FALLBACK_PLUGIN_ID,
        family=family,
        label=f"Missing/broken {family}",
        description="Fallback used when a requested plugin does not exist.",
        installed=Literal(False),
        version=Literal(None),
        ui=False,
        plugin_class=plugin_class,
    )

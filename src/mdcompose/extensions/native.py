#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/extensions/native.py
"""Extensions that wrap a backend's own syntax plugins.

Each of these declares one library per backend. A library is tied to a
backend through a ``parser:<id>`` requirement, and the extension only
counts as compatible with a parser when one of its installed libraries
targets that parser. For example, strikethrough is usable with mistune out
of the box but needs ``pymdown-extensions`` under Python-Markdown.
"""

from __future__ import annotations

import logging
from typing import Optional

from mdcompose.capabilities import Capability, EnvironmentAware
from mdcompose.environment import ConversionEnvironment
from mdcompose.logging_utils import sanitize_for_log
from mdcompose.plugin_metadata import LibraryRequirement
from mdcompose.plugins.extension import BaseExtension
from mdcompose.utils.packages import import_object

logger = logging.getLogger(__name__)


class NativeExtension(BaseExtension, EnvironmentAware):
    """Register the backend-native plugin matching the active parser."""

    def library_for(self, parser_id: str) -> Optional[LibraryRequirement]:
        """First installed library whose parser requirement matches ``parser_id``."""
        for library in self.definition.libraries:
            if not library.installed or not library.object:
                continue
            targets = {r.id for r in library.requirements if r.type == "parser"}
            if not targets or parser_id in targets:
                return library
        return None

    def is_compatible(self, parser_id: str) -> bool:
        return super().is_compatible(parser_id) and self.library_for(parser_id) is not None

    def set_environment(self, environment: ConversionEnvironment) -> None:
        library = self.library_for(environment.parser_id)
        if library is None:
            environment.diagnose(
                self.plugin_id,
                Capability.ENVIRONMENT_AWARE.value,
                f"no installed library supports parser '{environment.parser_id}'",
            )
            return
        logger.debug(f"Extension '{self.plugin_id}' uses library '{sanitize_for_log(library.id)}'")
        environment.add_extension(import_object(library.object))


def _library(library_id: str, label: str, obj: str, package: str, parser: str, **extra: object) -> dict:
    return {
        "id": library_id,
        "label": label,
        "object": obj,
        "package": package,
        "requirements": [f"parser:{parser}"],
        **extra,
    }


PLUGIN_MANIFEST = [
    {
        "id": "tables",
        "label": "Tables",
        "description": "GitHub-style pipe tables.",
        "class": NativeExtension,
        "parsers": ["mistune", "python-markdown"],
        "libraries": [
            _library("mistune-table", "mistune table plugin", "mistune.plugins.table.table", "mistune", "mistune"),
            _library(
                "markdown-tables",
                "Python-Markdown tables",
                "markdown.extensions.tables.TableExtension",
                "Markdown",
                "python-markdown",
            ),
        ],
    },
    {
        "id": "footnotes",
        "label": "Footnotes",
        "description": "Footnote references and definitions.",
        "class": NativeExtension,
        "parsers": ["mistune", "python-markdown"],
        "libraries": [
            _library(
                "mistune-footnotes",
                "mistune footnotes plugin",
                "mistune.plugins.footnotes.footnotes",
                "mistune",
                "mistune",
            ),
            _library(
                "markdown-footnotes",
                "Python-Markdown footnotes",
                "markdown.extensions.footnotes.FootnoteExtension",
                "Markdown",
                "python-markdown",
            ),
        ],
    },
    {
        "id": "strikethrough",
        "label": "Strikethrough",
        "description": "~~Deleted~~ text.",
        "class": NativeExtension,
        "parsers": ["mistune", "python-markdown"],
        "libraries": [
            _library(
                "mistune-strikethrough",
                "mistune strikethrough plugin",
                "mistune.plugins.formatting.strikethrough",
                "mistune",
                "mistune",
            ),
            _library(
                "pymdownx-tilde",
                "PyMdown Tilde",
                "pymdownx.tilde.DeleteSubExtension",
                "pymdown-extensions",
                "python-markdown",
                url="https://facelessuser.github.io/pymdown-extensions/extensions/tilde/",
            ),
        ],
    },
    {
        "id": "definition-lists",
        "label": "Definition lists",
        "description": "Terms followed by ': definition' lines.",
        "class": NativeExtension,
        "parsers": ["mistune", "python-markdown"],
        "libraries": [
            _library("mistune-def-list", "mistune def_list plugin", "mistune.plugins.def_list.def_list", "mistune", "mistune"),
            _library(
                "markdown-def-list",
                "Python-Markdown definition lists",
                "markdown.extensions.def_list.DefListExtension",
                "Markdown",
                "python-markdown",
            ),
        ],
    },
    {
        "id": "attributes",
        "label": "Attributes",
        "description": "Attach {: #id .class } attribute lists to elements.",
        "class": NativeExtension,
        "parsers": ["python-markdown"],
        "libraries": [
            _library(
                "markdown-attr-list",
                "Python-Markdown attribute lists",
                "markdown.extensions.attr_list.AttrListExtension",
                "Markdown",
                "python-markdown",
            ),
        ],
    },
]

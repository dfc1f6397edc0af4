#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/parsers/python_markdown.py
"""Python-Markdown backend (optional, ``pip install "mdcompose[python-markdown]"``).

Python-Markdown has no per-node renderer registry, so this backend only
honors environment-aware extensions (which register native
Python-Markdown extensions), settings and document processors, which run
as tree processors on the ElementTree document. Other roles are skipped
by the composer with a diagnostic.

``markdown.Markdown`` instances are not thread-safe; the converter builds
a fresh instance for every call.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from mdcompose.capabilities import Capability
from mdcompose.constants import DEPS_PYTHON_MARKDOWN
from mdcompose.plugins.parser import BaseParser
from mdcompose.utils.decorators import requires_dependencies
from mdcompose.utils.packages import get_package_version

if TYPE_CHECKING:
    from mdcompose.environment import Converter, ConversionEnvironment
    from mdcompose.plugin_metadata import PluginDefinition

logger = logging.getLogger(__name__)

# Tree processors run after inline processing (20) and before prettify (10)
_PROCESSOR_PRIORITY = 15


class PythonMarkdownParser(BaseParser):
    """Parser backed by Python-Markdown.

    Settings
    --------
    extensions : list of str
        Extra Python-Markdown extensions by name (e.g. ``"toc"``)
    extension_configs : dict
        Per-extension configuration, keyed by extension name
    output_format : str
        ``"html"`` or ``"xhtml"``

    """

    supported_capabilities = frozenset(
        {Capability.SETTINGS_BEARING, Capability.ENVIRONMENT_AWARE, Capability.DOCUMENT_PROCESSOR}
    )

    @classmethod
    def default_settings(cls) -> dict[str, Any]:
        return {"extensions": [], "extension_configs": {}, "output_format": "html"}

    @classmethod
    def version(cls, definition: PluginDefinition) -> Optional[str]:
        return get_package_version("Markdown")

    @requires_dependencies("python-markdown", DEPS_PYTHON_MARKDOWN)
    def build_converter(self, environment: ConversionEnvironment) -> Converter:
        import markdown
        from markdown.treeprocessors import Treeprocessor

        config = environment.config
        named = [str(name) for name in config.get("extensions") or []]
        native = list(environment.native_extensions)
        extension_configs = dict(config.get("extension_configs") or {})
        output_format = str(config.get("output_format") or "html")
        processors = list(environment.document_processors)

        class DocumentProcessorAdapter(Treeprocessor):
            def __init__(self, md: Any, processor: Any):
                super().__init__(md)
                self.processor = processor

            def run(self, root: Any) -> None:
                self.processor.process_document(root)

        def convert(text: str) -> str:
            # Classes are instantiated per call; extensions such as footnotes keep state
            extensions = named + [item() if isinstance(item, type) else item for item in native]
            md = markdown.Markdown(
                extensions=extensions,
                extension_configs=extension_configs,
                output_format=output_format,
            )
            for index, processor in enumerate(processors):
                md.treeprocessors.register(
                    DocumentProcessorAdapter(md, processor),
                    f"mdcompose_document_{index}",
                    _PROCESSOR_PRIORITY - index * 0.01,
                )
            return md.convert(text)

        logger.debug(f"python-markdown converter: {len(named) + len(native)} extension(s)")
        return convert


PLUGIN_MANIFEST = {
    "id": "python-markdown",
    "label": "Python-Markdown",
    "description": "The reference Python implementation of John Gruber's Markdown.",
    "url": "https://python-markdown.github.io",
    "weight": 0,
    "class": PythonMarkdownParser,
    "libraries": [
        {
            "id": "markdown",
            "label": "Python-Markdown",
            "object": "markdown.Markdown",
            "package": "Markdown",
            "url": "https://python-markdown.github.io",
            "install_command": 'pip install "mdcompose[python-markdown]"',
        }
    ],
}

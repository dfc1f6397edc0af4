#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/parsers/mistune_parser.py
"""Mistune backend, the default parser.

The composed environment maps onto mistune's extension points:

- native extensions are mistune plugins applied to the ``Markdown`` instance
- block and inline parsers become grammar rules (``md.block.register`` /
  ``md.inline.register``, inline rules ahead of links)
- block and inline renderers override the HTML renderer per node type
- document processors run as before-render hooks on the token list
- inline processors run over each inline token stream

"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Optional

from mdcompose.constants import DEFAULT_PARSER_ID, DEPS_MISTUNE
from mdcompose.plugins.parser import BaseParser
from mdcompose.utils.decorators import requires_dependencies
from mdcompose.utils.packages import get_package_version

if TYPE_CHECKING:
    from mdcompose.environment import Converter, ConversionEnvironment
    from mdcompose.plugin_metadata import PluginDefinition

logger = logging.getLogger(__name__)


def _block_rule(extension: Any) -> Callable:
    def parse(block: Any, m: Any, state: Any) -> int:
        state.append_token(extension.parse_block(m))
        return m.end() + 1

    return parse


def _inline_rule(extension: Any) -> Callable:
    def parse(inline: Any, m: Any, state: Any) -> int:
        state.append_token(extension.parse_inline(m))
        return m.end()

    return parse


def _document_hook(processor: Any) -> Callable:
    def hook(md: Any, state: Any) -> None:
        processor.process_document(state.tokens)

    return hook


class MistuneParser(BaseParser):
    """CommonMark-style parser backed by mistune 3.

    Settings
    --------
    escape : bool
        Escape raw HTML instead of passing it to the sanitizer
    hard_wrap : bool
        Treat single newlines as line breaks
    plugins : list of str
        Extra builtin mistune plugins to enable by name

    """

    @classmethod
    def default_settings(cls) -> dict[str, Any]:
        return {"escape": False, "hard_wrap": False, "plugins": []}

    @classmethod
    def version(cls, definition: PluginDefinition) -> Optional[str]:
        return get_package_version("mistune")

    @requires_dependencies(DEFAULT_PARSER_ID, DEPS_MISTUNE)
    def build_converter(self, environment: ConversionEnvironment) -> Converter:
        import mistune
        from mistune.plugins import import_plugin

        config = environment.config
        block_renderers = dict(environment.block_renderers)
        inline_renderers = dict(environment.inline_renderers)
        inline_processors = list(environment.inline_processors)

        class EnvironmentRenderer(mistune.HTMLRenderer):
            """HTML renderer that consults extension renderers first."""

            def render_token(self, token: dict[str, Any], state: Any) -> str:
                node_type = token["type"]
                renderer = block_renderers.get(node_type) or inline_renderers.get(node_type)
                if renderer is None:
                    return super().render_token(token, state)
                if "raw" in token:
                    text = token["raw"]
                elif "children" in token:
                    text = self.render_tokens(token["children"], state)
                else:
                    text = ""
                attrs = token.get("attrs") or {}
                if node_type in block_renderers:
                    return renderer.render_block(text, **attrs)
                return renderer.render_inline(text, **attrs)

        class EnvironmentInlineParser(mistune.InlineParser):
            """Inline parser that runs inline processors over every token stream."""

            def __call__(self, s: str, env: Any) -> list[dict[str, Any]]:
                tokens = super().__call__(s, env)
                for processor in inline_processors:
                    result = processor.process_inline(tokens)
                    if result is not None:
                        tokens = result
                return tokens

        plugins: list[Any] = [import_plugin(name) for name in config.get("plugins") or []]
        plugins.extend(environment.native_extensions)

        md = mistune.Markdown(
            renderer=EnvironmentRenderer(escape=bool(config.get("escape", False))),
            block=mistune.BlockParser(),
            inline=EnvironmentInlineParser(hard_wrap=bool(config.get("hard_wrap", False))),
            plugins=plugins,
        )

        for extension in environment.block_parsers:
            md.block.register(extension.block_type, extension.block_pattern, _block_rule(extension))
        for extension in environment.inline_parsers:
            md.inline.register(extension.inline_type, extension.inline_pattern, _inline_rule(extension), before="link")
        for processor in environment.document_processors:
            md.before_render_hooks.append(_document_hook(processor))

        logger.debug(
            f"mistune converter: {len(plugins)} plugin(s), {len(environment.block_parsers)} block rule(s), "
            f"{len(environment.inline_parsers)} inline rule(s)"
        )
        return md


PLUGIN_MANIFEST = {
    "id": DEFAULT_PARSER_ID,
    "label": "Mistune",
    "description": "Fast CommonMark-style Markdown parser with a plugin system.",
    "url": "https://github.com/lepture/mistune",
    "weight": -10,
    "preferred": True,
    "class": MistuneParser,
    "libraries": [
        {
            "id": "mistune",
            "label": "mistune",
            "object": "mistune.Markdown",
            "package": "mistune",
            "url": "https://mistune.lepture.com",
        }
    ],
}

#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/environment.py
"""The conversion environment: one parser plus its attached extensions, by pipeline stage.

An environment is built once per distinct (parser, extensions, settings)
combination by :class:`mdcompose.composer.EnvironmentComposer`, frozen,
and then shared by every conversion with that combination. It holds no
per-document state; the backend converter it lazily builds must be safe
to call concurrently.
"""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, Optional

from mdcompose.capabilities import (
    BlockParser,
    BlockRenderer,
    Capability,
    DocumentProcessor,
    InlineParser,
    InlineProcessor,
    InlineRenderer,
)
from mdcompose.logging_utils import sanitize_for_log
from mdcompose.overlay import nested_merge

if TYPE_CHECKING:
    from mdcompose.plugins.parser import BaseParser

logger = logging.getLogger(__name__)

Converter = Callable[[str], str]


@dataclass(frozen=True)
class Diagnostic:
    """A problem recorded while composing an environment.

    Parameters
    ----------
    extension_id : str
        Extension the problem concerns
    capability : str
        Role involved, or "" when not role-specific
    message : str
        Human-readable description

    """

    extension_id: str
    capability: str
    message: str

    def __str__(self) -> str:
        role = f" [{self.capability}]" if self.capability else ""
        return f"{self.extension_id}{role}: {self.message}"


class FrozenEnvironmentError(RuntimeError):
    """Raised when a registration method is called on a frozen environment."""


class ConversionEnvironment:
    """Registration surface and container for one composed pipeline.

    Parameters
    ----------
    parser : BaseParser
        Active parser instance; builds the backend converter
    config : Mapping, optional
        Initial global configuration (the parser's own settings)
    supported_capabilities : iterable of Capability, optional
        Roles the backend can honor; all roles when omitted

    Attributes
    ----------
    config : dict
        Global configuration after all settings fragments were merged
    extensions : list
        Extensions attached to this environment, in attachment order
    native_extensions : list
        Backend-native extensions registered by environment-aware extensions
    block_parsers, inline_parsers : list
        Grammar rules, in registration order
    block_renderers, inline_renderers : dict
        Node type to renderer; one renderer per node type
    document_processors, inline_processors : list
        Processors, in registration order
    diagnostics : list of Diagnostic
        Problems recorded during composition

    """

    def __init__(
        self,
        parser: BaseParser,
        config: Optional[Mapping[str, Any]] = None,
        supported_capabilities: Optional[Iterable[Capability]] = None,
    ):
        self.parser = parser
        self.config: dict[str, Any] = dict(config or {})
        self.supported_capabilities = frozenset(
            supported_capabilities if supported_capabilities is not None else Capability
        )
        self.extensions: list[Any] = []
        self.native_extensions: list[Any] = []
        self.block_parsers: list[BlockParser] = []
        self.block_renderers: dict[str, BlockRenderer] = {}
        self.inline_parsers: list[InlineParser] = []
        self.inline_renderers: dict[str, InlineRenderer] = {}
        self.document_processors: list[DocumentProcessor] = []
        self.inline_processors: list[InlineProcessor] = []
        self.diagnostics: list[Diagnostic] = []
        self._frozen = False
        self._converter: Optional[Converter] = None
        self._converter_lock = threading.Lock()

    @property
    def parser_id(self) -> str:
        """Identifier of the active parser."""
        return self.parser.plugin_id

    @property
    def frozen(self) -> bool:
        """Whether registration is closed."""
        return self._frozen

    def _check_open(self) -> None:
        if self._frozen:
            raise FrozenEnvironmentError(f"Environment for parser '{self.parser_id}' is frozen")

    def supports(self, capability: Capability) -> bool:
        """Whether the active backend honors ``capability``."""
        return capability in self.supported_capabilities

    def diagnose(self, extension_id: str, capability: str, message: str) -> Diagnostic:
        """Record a composition problem and log it as a warning."""
        diagnostic = Diagnostic(extension_id, capability, message)
        self.diagnostics.append(diagnostic)
        logger.warning(f"Parser '{self.parser_id}': {sanitize_for_log(diagnostic)}")
        return diagnostic

    # -- registration ----------------------------------------------------------------

    def merge_config(self, fragment: Mapping[str, Any]) -> None:
        """Deep-merge a settings fragment; later fragments win on conflicts."""
        self._check_open()
        self.config = nested_merge(self.config, fragment)

    def add_extension(self, extension: Any) -> None:
        """Register a backend-native extension (mistune plugin, Python-Markdown extension)."""
        self._check_open()
        self.native_extensions.append(extension)

    def attach(self, extension: Any) -> None:
        """Record a plugin extension as attached to this environment."""
        self._check_open()
        self.extensions.append(extension)

    def add_block_parser(self, parser: BlockParser) -> None:
        self._check_open()
        self.block_parsers.append(parser)

    def add_block_renderer(self, node_type: str, renderer: BlockRenderer) -> None:
        """Register the renderer for a block node type; replaces any earlier one."""
        self._check_open()
        self._register_renderer(self.block_renderers, node_type, renderer, Capability.BLOCK_RENDERER)

    def add_inline_parser(self, parser: InlineParser) -> None:
        self._check_open()
        self.inline_parsers.append(parser)

    def add_inline_renderer(self, node_type: str, renderer: InlineRenderer) -> None:
        """Register the renderer for an inline node type; replaces any earlier one."""
        self._check_open()
        self._register_renderer(self.inline_renderers, node_type, renderer, Capability.INLINE_RENDERER)

    def add_document_processor(self, processor: DocumentProcessor) -> None:
        self._check_open()
        self.document_processors.append(processor)

    def add_inline_processor(self, processor: InlineProcessor) -> None:
        self._check_open()
        self.inline_processors.append(processor)

    def _register_renderer(self, registry: dict[str, Any], node_type: str, renderer: Any, role: Capability) -> None:
        previous = registry.get(node_type)
        if previous is not None and previous is not renderer:
            self.diagnose(
                _plugin_id(renderer),
                role.value,
                f"overrides the '{node_type}' renderer registered by '{_plugin_id(previous)}'",
            )
        registry[node_type] = renderer

    # -- lifecycle -------------------------------------------------------------------

    _REGISTRATIONS = (
        "native_extensions",
        "block_parsers",
        "block_renderers",
        "inline_parsers",
        "inline_renderers",
        "document_processors",
        "inline_processors",
    )

    def snapshot(self) -> dict[str, Any]:
        """Capture config and registrations so a failed attachment can be undone."""
        state: dict[str, Any] = {name: copy.copy(getattr(self, name)) for name in self._REGISTRATIONS}
        state["config"] = copy.deepcopy(self.config)
        return state

    def restore(self, state: Mapping[str, Any]) -> None:
        """Roll config and registrations back to ``state``; diagnostics are kept."""
        self._check_open()
        for name, value in state.items():
            setattr(self, name, value)

    def freeze(self) -> ConversionEnvironment:
        """Close registration; the environment is read-only afterwards."""
        self._frozen = True
        return self

    def get_converter(self) -> Converter:
        """Return the backend converter, building it on first use."""
        if self._converter is None:
            with self._converter_lock:
                if self._converter is None:
                    logger.debug(f"Building converter for parser '{self.parser_id}'")
                    self._converter = self.parser.build_converter(self)
        return self._converter

    def render(self, text: str) -> str:
        """Run the backend on ``text`` without sanitization."""
        return self.get_converter()(text)

    def summary(self) -> dict[str, Any]:
        """Describe the composed pipeline; used by the CLI and in tests."""
        return {
            "parser": self.parser_id,
            "extensions": [_plugin_id(extension) for extension in self.extensions],
            "native_extensions": [_plugin_id(extension) for extension in self.native_extensions],
            "block_parsers": [parser.block_type for parser in self.block_parsers],
            "block_renderers": {key: _plugin_id(value) for key, value in self.block_renderers.items()},
            "inline_parsers": [parser.inline_type for parser in self.inline_parsers],
            "inline_renderers": {key: _plugin_id(value) for key, value in self.inline_renderers.items()},
            "document_processors": [_plugin_id(processor) for processor in self.document_processors],
            "inline_processors": [_plugin_id(processor) for processor in self.inline_processors],
            "diagnostics": [str(diagnostic) for diagnostic in self.diagnostics],
        }


def _plugin_id(obj: Any) -> str:
    if isinstance(obj, str):
        return obj
    return str(getattr(obj, "plugin_id", None) or getattr(obj, "__name__", None) or type(obj).__name__)

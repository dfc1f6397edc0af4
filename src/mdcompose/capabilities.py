#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/capabilities.py
"""Capability roles an extension can fulfil during environment composition.

Each role is a marker ABC. An extension declares roles either by
subclassing the markers or by listing them in a ``capabilities``
attribute; one object may take on several roles. Declarations are checked
against the runtime object by :func:`verify_capability` before anything
is attached, so an extension that claims a role it cannot play is
rejected on its own without affecting the rest of the composition.

Renderer signatures
-------------------
Block and inline renderers are called as ``render_*(text, **attrs)`` where
``text`` is the already rendered children of the node (or its raw content
for leaf nodes) and ``attrs`` are the node attributes the backend exposes,
for example ``level`` for headings or ``url``/``title`` for links.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional

from mdcompose.exceptions import ExtensionContractViolation

if TYPE_CHECKING:
    from mdcompose.environment import ConversionEnvironment


class Capability(str, Enum):
    """Pipeline roles, in the order the composer attaches them."""

    SETTINGS_BEARING = "settings-bearing"
    ENVIRONMENT_AWARE = "environment-aware"
    DOCUMENT_PROCESSOR = "document-processor"
    INLINE_PROCESSOR = "inline-processor"
    BLOCK_PARSER = "block-parser"
    BLOCK_RENDERER = "block-renderer"
    INLINE_PARSER = "inline-parser"
    INLINE_RENDERER = "inline-renderer"


BLOCK_CAPABILITIES = frozenset({Capability.BLOCK_PARSER, Capability.BLOCK_RENDERER})
INLINE_CAPABILITIES = frozenset({Capability.INLINE_PARSER, Capability.INLINE_RENDERER})


class EnvironmentAware(ABC):
    """Receives the environment before anything else is attached."""

    @abstractmethod
    def set_environment(self, environment: ConversionEnvironment) -> None:
        """Register arbitrary sub-extensions on ``environment``."""


class SettingsBearing(ABC):
    """Contributes a settings fragment to the environment configuration."""

    @abstractmethod
    def get_settings(self) -> dict[str, Any]:
        """Return the settings fragment to merge."""


class BlockParser(ABC):
    """Registers a block-level grammar rule.

    ``block_pattern`` is a regular expression matched at the start of a
    line (compiled with ``re.MULTILINE``). Named groups must be unique
    across all extensions, so prefix them with the node type. Positional
    backreferences are not allowed; use ``(?P=name)``.
    """

    block_type: str = ""
    block_pattern: str = ""

    @abstractmethod
    def parse_block(self, match: re.Match) -> dict[str, Any]:
        """Turn a match into a node: ``{"type": ..., "text" or "raw": ..., "attrs": {...}}``."""


class BlockRenderer(ABC):
    """Renders one block node type; the last renderer registered for a type wins."""

    block_type: str = ""

    @abstractmethod
    def render_block(self, text: str, **attrs: Any) -> str:
        """Return HTML for one block node."""


class InlineParser(ABC):
    """Registers an inline-level grammar rule matched before links."""

    inline_type: str = ""
    inline_pattern: str = ""

    @abstractmethod
    def parse_inline(self, match: re.Match) -> dict[str, Any]:
        """Turn a match into an inline node: ``{"type": ..., "raw": ..., "attrs": {...}}``."""


class InlineRenderer(ABC):
    """Renders one inline node type; the last renderer registered for a type wins."""

    inline_type: str = ""

    @abstractmethod
    def render_inline(self, text: str, **attrs: Any) -> str:
        """Return HTML for one inline node."""


class DocumentProcessor(ABC):
    """Runs once per parsed document before rendering.

    The document is the backend's native tree: a list of token mappings
    for mistune, the root ``xml.etree.ElementTree.Element`` for
    Python-Markdown. Processors mutate it in place.
    """

    @abstractmethod
    def process_document(self, document: Any) -> None:
        """Mutate the parsed document."""


class InlineProcessor(ABC):
    """Runs over every inline token stream, in registration order."""

    @abstractmethod
    def process_inline(self, tokens: list[dict[str, Any]]) -> Optional[list[dict[str, Any]]]:
        """Mutate ``tokens`` in place or return a replacement list."""


MARKERS: dict[Capability, type] = {
    Capability.SETTINGS_BEARING: SettingsBearing,
    Capability.ENVIRONMENT_AWARE: EnvironmentAware,
    Capability.DOCUMENT_PROCESSOR: DocumentProcessor,
    Capability.INLINE_PROCESSOR: InlineProcessor,
    Capability.BLOCK_PARSER: BlockParser,
    Capability.BLOCK_RENDERER: BlockRenderer,
    Capability.INLINE_PARSER: InlineParser,
    Capability.INLINE_RENDERER: InlineRenderer,
}

# Members each role must provide: callables first, then non-empty string attributes
_CONTRACTS: dict[Capability, tuple[tuple[str, ...], tuple[str, ...]]] = {
    Capability.SETTINGS_BEARING: (("get_settings",), ()),
    Capability.ENVIRONMENT_AWARE: (("set_environment",), ()),
    Capability.DOCUMENT_PROCESSOR: (("process_document",), ()),
    Capability.INLINE_PROCESSOR: (("process_inline",), ()),
    Capability.BLOCK_PARSER: (("parse_block",), ("block_type", "block_pattern")),
    Capability.BLOCK_RENDERER: (("render_block",), ("block_type",)),
    Capability.INLINE_PARSER: (("parse_inline",), ("inline_type", "inline_pattern")),
    Capability.INLINE_RENDERER: (("render_inline",), ("inline_type",)),
}


def _extension_id(obj: Any) -> str:
    return str(getattr(obj, "plugin_id", None) or type(obj).__name__)


def _coerce(value: Any, obj: Any) -> Capability:
    if isinstance(value, Capability):
        return value
    if isinstance(value, type):
        for capability, marker in MARKERS.items():
            if value is marker:
                return capability
    try:
        return Capability(str(value))
    except ValueError as e:
        raise ExtensionContractViolation(_extension_id(obj), str(value), "unknown capability") from e


def declared_capabilities(obj: Any) -> frozenset[Capability]:
    """Return every role ``obj`` declares, via marker classes or ``capabilities``.

    Raises
    ------
    ExtensionContractViolation
        If ``capabilities`` names an unknown role

    """
    declared = {capability for capability, marker in MARKERS.items() if isinstance(obj, marker)}
    explicit: Iterable[Any] = getattr(obj, "capabilities", None) or ()
    if isinstance(explicit, (str, Capability)):
        explicit = (explicit,)
    declared.update(_coerce(value, obj) for value in explicit)
    return frozenset(declared)


def verify_capability(obj: Any, capability: Capability) -> None:
    """Check that ``obj`` actually fulfils ``capability``.

    Raises
    ------
    ExtensionContractViolation
        If a required method is missing or not callable, a required
        attribute is empty, or a grammar pattern does not compile

    """
    methods, attributes = _CONTRACTS[capability]
    extension_id = _extension_id(obj)

    for name in methods:
        if not callable(getattr(obj, name, None)):
            raise ExtensionContractViolation(extension_id, capability.value, f"'{name}' is not callable")

    for name in attributes:
        value = getattr(obj, name, None)
        if not isinstance(value, str) or not value:
            raise ExtensionContractViolation(extension_id, capability.value, f"'{name}' must be a non-empty string")

    pattern_name = {Capability.BLOCK_PARSER: "block_pattern", Capability.INLINE_PARSER: "inline_pattern"}.get(
        capability
    )
    if pattern_name:
        pattern = getattr(obj, pattern_name)
        try:
            compiled = re.compile(pattern, re.MULTILINE)
        except re.error as e:
            raise ExtensionContractViolation(extension_id, capability.value, f"invalid pattern: {e}") from e
        if re.search(r"\\[1-9]", pattern) and compiled.groups:
            raise ExtensionContractViolation(
                extension_id, capability.value, "positional backreferences are not supported, use (?P=name)"
            )

    if capability is Capability.SETTINGS_BEARING:
        settings = obj.get_settings()
        if not isinstance(settings, Mapping):
            raise ExtensionContractViolation(extension_id, capability.value, "get_settings() must return a mapping")

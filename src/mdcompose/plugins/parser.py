#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/plugins/parser.py
"""Base class for parser backends."""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Mapping, Optional

from mdcompose.api import convert
from mdcompose.capabilities import Capability
from mdcompose.plugins.base import InstallablePlugin, SettingsMixin

if TYPE_CHECKING:
    from mdcompose.composer import EnvironmentComposer
    from mdcompose.environment import Converter, ConversionEnvironment
    from mdcompose.plugin_metadata import PluginDefinition
    from mdcompose.plugins.extension import BaseExtension
    from mdcompose.registry import PluginRegistry

logger = logging.getLogger(__name__)


class BaseParser(SettingsMixin, InstallablePlugin):
    """A Markdown backend that turns text into HTML inside a composed environment.

    The parser configuration may carry an ``extensions`` mapping of
    extension id to extension configuration overrides.

    Parameters
    ----------
    configuration : Mapping, optional
        Host overrides for this parser
    plugin_id : str, optional
        Identifier; defaults to the definition id
    definition : PluginDefinition
        Fully resolved definition
    extension_registry : PluginRegistry, optional
        Registry the parser draws its extensions from
    composer : EnvironmentComposer, optional
        Composer used by :meth:`get_environment`

    """

    # Roles this backend can honor; subclasses narrow it
    supported_capabilities: frozenset[Capability] = frozenset(Capability)

    def __init__(
        self,
        configuration: Optional[Mapping[str, Any]] = None,
        plugin_id: Optional[str] = None,
        definition: Optional[PluginDefinition] = None,
        extension_registry: Optional[PluginRegistry] = None,
        composer: Optional[EnvironmentComposer] = None,
    ):
        super().__init__(configuration, plugin_id, definition)
        self.extension_registry = extension_registry
        self._composer = composer

    @property
    def composer(self) -> EnvironmentComposer:
        if self._composer is None:
            from mdcompose.composer import EnvironmentComposer

            self._composer = EnvironmentComposer()
        return self._composer

    def get_extension_configuration(self) -> dict[str, Any]:
        return dict(self.configuration.get("extensions") or {})

    def get_extensions(self, include_disabled: bool = False) -> list[BaseExtension]:
        """Return installed extensions compatible with this parser, in registry order.

        Parameters
        ----------
        include_disabled : bool, default False
            Include extensions whose ``enabled`` flag is off

        """
        if self.extension_registry is None:
            return []
        extensions = []
        for extension in self.extension_registry.installed(self.get_extension_configuration()).values():
            if not extension.is_compatible(self.plugin_id):
                continue
            if not include_disabled and not extension.is_enabled():
                continue
            extensions.append(extension)
        return extensions

    def get_environment(self) -> ConversionEnvironment:
        """Compose (or fetch the cached) environment for the enabled extensions."""
        return self.composer.compose(self, self.get_extensions())

    def parse(self, text: str, locale: Optional[str] = None) -> str:
        """Convert Markdown to sanitized HTML.

        Parameters
        ----------
        text : str
            Markdown source
        locale : str, optional
            Language of the text; passed through to backends that localize
            their output (none of the bundled ones do)

        """
        if locale:
            logger.debug(f"Parsing with parser '{self.plugin_id}' for locale '{locale}'")
        return convert(text, self.get_environment())

    @abstractmethod
    def build_converter(self, environment: ConversionEnvironment) -> Converter:
        """Build a callable that renders Markdown to HTML for ``environment``.

        The callable is shared across threads and must not keep
        per-document state between calls.
        """

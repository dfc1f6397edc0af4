#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/plugins/base.py
"""Base classes shared by parser and extension plugin instances."""

from __future__ import annotations

import copy
import logging
from typing import Any, Mapping, Optional

from mdcompose.capabilities import SettingsBearing
from mdcompose.exceptions import InvalidDefinitionError
from mdcompose.overlay import default_configuration, effective_configuration, overrides_of, sort_configuration
from mdcompose.plugin_metadata import LibraryRequirement, PluginDefinition
from mdcompose.resolver import default_installed, default_version

logger = logging.getLogger(__name__)


class InstallablePlugin:
    """A plugin instance built from one resolved definition and its effective configuration.

    Instances are created per request by a registry and never shared
    between concurrent conversions.

    Parameters
    ----------
    configuration : Mapping, optional
        Host overrides laid on top of the default configuration
    plugin_id : str, optional
        Identifier; defaults to the definition id
    definition : PluginDefinition
        Fully resolved definition

    Raises
    ------
    InvalidDefinitionError
        If the definition still carries deferred ``installed``/``version`` values

    """

    def __init__(
        self,
        configuration: Optional[Mapping[str, Any]] = None,
        plugin_id: Optional[str] = None,
        definition: Optional[PluginDefinition] = None,
    ):
        if definition is None:
            raise InvalidDefinitionError(plugin_id, message=f"Plugin '{plugin_id}' was instantiated without a definition")
        if not definition.is_resolved:
            raise InvalidDefinitionError(
                definition.id,
                message=f"Plugin '{definition.id}' must be resolved before it is instantiated",
            )
        self.plugin_id = plugin_id or definition.id
        self.definition = definition
        self._default_configuration = default_configuration(definition, type(self))
        self.configuration = effective_configuration(self._default_configuration, configuration)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(plugin_id={self.plugin_id!r})"

    # -- resolution hooks ------------------------------------------------------------

    @classmethod
    def installed(cls, definition: PluginDefinition) -> bool:
        """Installed check used when the manifest does not declare one."""
        return default_installed(definition)

    @classmethod
    def version(cls, definition: PluginDefinition) -> Optional[str]:
        """Version accessor used when the manifest does not declare one."""
        return default_version(definition)

    # -- definition accessors --------------------------------------------------------

    def get_label(self, version: bool = True) -> str:
        """Return the label, optionally suffixed with the version: ``"Mistune (3.0.2)"``."""
        label = self.definition.get_label()
        plugin_version = self.get_version()
        if version and plugin_version:
            return f"{label} ({plugin_version})"
        return label

    def get_description(self) -> str:
        return self.definition.description

    def get_version(self) -> Optional[str]:
        return self.definition.get_version()

    def get_weight(self) -> int:
        return int(self.configuration.get("weight", self.definition.weight))

    def get_url(self) -> str:
        """Project URL of the installed library, else of the plugin."""
        library = self.get_installed_library()
        if library is not None and library.url:
            return library.url
        return self.definition.url

    def is_installed(self) -> bool:
        return self.definition.is_installed()

    def is_preferred(self) -> bool:
        return self.definition.preferred

    def get_installed_library(self) -> Optional[LibraryRequirement]:
        return self.definition.get_installed_library()

    def get_preferred_library(self) -> Optional[LibraryRequirement]:
        return self.definition.get_preferred_library()

    def is_preferred_library_installed(self) -> bool:
        return self.definition.is_preferred_library_installed()

    def has_multiple_libraries(self) -> bool:
        return self.definition.has_multiple_libraries()

    def get_available_installs(self) -> list[PluginDefinition]:
        return self.definition.get_available_installs()

    def show_in_ui(self) -> bool:
        return self.definition.ui

    # -- configuration ---------------------------------------------------------------

    def default_configuration(self) -> dict[str, Any]:
        return copy.deepcopy(self._default_configuration)

    def get_configuration(self) -> dict[str, Any]:
        """Return a copy of the effective configuration."""
        return copy.deepcopy(self.configuration)

    def get_configuration_overrides(self) -> dict[str, Any]:
        """Return only the entries that deviate from the default configuration."""
        return overrides_of(self.configuration, self._default_configuration)

    def get_dependencies(self) -> dict[str, list[str]]:
        """Distributions this configuration depends on (the installed library's package)."""
        library = self.get_installed_library()
        packages = []
        if library is not None and library.package:
            packages.append(library.package)
            packages.extend(r.id for r in library.requirements if r.type == "package" and r.id not in packages)
        return {"packages": packages} if packages else {}

    def get_sorted_configuration(self) -> dict[str, Any]:
        """Return the configuration a host would persist, in serialization order."""
        configuration = self.get_configuration()
        dependencies = self.get_dependencies()
        if dependencies:
            configuration["dependencies"] = dependencies
        return sort_configuration(configuration)


class SettingsMixin(SettingsBearing):
    """Settings accessors for plugins that carry a ``settings`` mapping."""

    configuration: dict[str, Any]
    _default_configuration: dict[str, Any]

    @classmethod
    def default_settings(cls) -> dict[str, Any]:
        """Base settings shared by every plugin of this class."""
        return {}

    def get_setting(self, name: str, default: Any = None) -> Any:
        return self.configuration.get("settings", {}).get(name, default)

    def get_settings(self) -> dict[str, Any]:
        return copy.deepcopy(self.configuration.get("settings", {}))

    def get_setting_overrides(self) -> dict[str, Any]:
        return overrides_of(self.configuration.get("settings", {}), self._default_configuration.get("settings", {}))


class EnabledMixin:
    """Adds an ``enabled`` flag to the configuration."""

    configuration: dict[str, Any]

    default_enabled: bool = True

    @classmethod
    def enabled_by_default(cls, definition: PluginDefinition) -> bool:
        """Default-enabled policy of the plugin class."""
        return cls.default_enabled

    def is_enabled(self) -> bool:
        return bool(self.configuration.get("enabled", False))

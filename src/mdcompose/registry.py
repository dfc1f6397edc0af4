#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/registry.py
"""Plugin registries for parser backends and extensions.

This module implements the discovery side of mdcompose:

- Manifest sources supply raw plugin records (builtin modules exposing
  ``PLUGIN_MANIFEST``, entry points of installed packages, manifest files)
- Registries dedupe records by id (last source wins), validate and resolve
  them one by one, and order them by weight and normalized label
- Unknown ids fall back to the ``_broken`` sentinel unless a strict
  lookup is requested

Discovered definitions are cached in an injected :class:`~mdcompose.cache.Cache`
keyed by the fingerprints of all sources, and invalidated wholesale.
"""

from __future__ import annotations

import hashlib
import importlib
import importlib.metadata
import logging
import re
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Protocol, Union

from mdcompose.cache import Cache
from mdcompose.composer import EnvironmentComposer
from mdcompose.config import read_structured_file
from mdcompose.constants import (
    EXTENSION_ENTRY_POINT_GROUP,
    FALLBACK_PLUGIN_ID,
    MANIFEST_ATTRIBUTE,
    PARSER_ENTRY_POINT_GROUP,
    PluginFamily,
)
from mdcompose.exceptions import ConfigurationError, InvalidDefinitionError, UnknownPluginError
from mdcompose.logging_utils import sanitize_for_log
from mdcompose.overlay import canonical_key
from mdcompose.plugin_metadata import PluginDefinition
from mdcompose.plugins.base import InstallablePlugin
from mdcompose.plugins.extension import BaseExtension
from mdcompose.plugins.missing import MissingExtension, MissingParser, fallback_definition
from mdcompose.plugins.parser import BaseParser
from mdcompose.resolver import InstallableResolver, check_requirements
from mdcompose.utils.packages import import_object

logger = logging.getLogger(__name__)

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]")

RawRecord = Union[Mapping[str, Any], PluginDefinition]


def normalize_label(label: str) -> str:
    """Lower-case ``label`` and strip every non-alphanumeric character."""
    return _NON_ALPHANUMERIC.sub("", label.lower())


def sort_key(definition: PluginDefinition) -> tuple[int, str, str]:
    """Ordering key: weight, normalized label, then id for full determinism."""
    return (definition.weight, normalize_label(definition.get_label()), definition.id)


def _records_from(value: Any) -> list[RawRecord]:
    """Accept a single manifest, a definition, or a list of either."""
    if isinstance(value, (Mapping, PluginDefinition)):
        return [value]
    if isinstance(value, (list, tuple)):
        return list(value)
    raise TypeError(f"expected a manifest mapping or a list of manifests, got {type(value).__name__}")


# =============================================================================
# Manifest sources
# =============================================================================


class ManifestSource(Protocol):
    """Supplies raw plugin records and a fingerprint that changes with them."""

    def manifests(self) -> Iterable[RawRecord]: ...

    def fingerprint(self) -> str: ...


class StaticManifestSource:
    """Records given directly, mostly for hosts and tests.

    Parameters
    ----------
    records : iterable
        Manifest mappings or PluginDefinition objects

    """

    def __init__(self, records: Iterable[RawRecord]):
        self._records = list(records)

    def manifests(self) -> list[RawRecord]:
        return list(self._records)

    def fingerprint(self) -> str:
        digest = hashlib.sha256(canonical_key(self._records).encode("utf-8")).hexdigest()
        return f"static:{digest[:16]}"


class ModuleManifestSource:
    """Scan a package for modules exposing ``PLUGIN_MANIFEST``.

    Modules whose import fails because of a missing optional dependency are
    skipped at DEBUG level; other import errors are logged as warnings.

    Parameters
    ----------
    package : str
        Dotted package name, e.g. ``"mdcompose.parsers"``

    """

    def __init__(self, package: str):
        self.package = package

    def _module_names(self) -> list[str]:
        try:
            # nosemgrep: python.lang.security.audit.non-literal-import.non-literal-import
            package = importlib.import_module(self.package)
        except ImportError as e:
            logger.warning(f"Failed to import plugin package {self.package}: {e}")
            return []
        if package.__file__ is None:
            logger.warning(f"Package {self.package} has no __file__ attribute")
            return []
        package_path = Path(package.__file__).parent
        return sorted(p.stem for p in package_path.glob("*.py") if not p.stem.startswith("_"))

    def manifests(self) -> list[RawRecord]:
        records: list[RawRecord] = []
        for module_name in self._module_names():
            module_path = f"{self.package}.{module_name}"
            try:
                # nosemgrep: python.lang.security.audit.non-literal-import.non-literal-import
                module = importlib.import_module(module_path)
            except ImportError as e:
                logger.debug(f"Could not load plugin module {module_path}: {e}")
                continue
            except Exception as e:
                logger.warning(f"Error loading plugin module {module_path}: {e}")
                continue
            manifest = getattr(module, MANIFEST_ATTRIBUTE, None)
            if manifest is None:
                continue
            try:
                records.extend(_records_from(manifest))
            except TypeError as e:
                logger.warning(f"Ignoring {MANIFEST_ATTRIBUTE} of {module_path}: {e}")
        return records

    def fingerprint(self) -> str:
        return f"module:{self.package}:{','.join(self._module_names())}"


class EntryPointManifestSource:
    """Discover third-party plugins registered under an entry point group.

    Each entry point must load a manifest mapping, a PluginDefinition, or a
    list of either.

    Parameters
    ----------
    group : str
        Entry point group, e.g. ``"mdcompose.parsers"``

    """

    def __init__(self, group: str):
        self.group = group

    def _entry_points(self) -> list[importlib.metadata.EntryPoint]:
        try:
            return sorted(importlib.metadata.entry_points(group=self.group), key=lambda ep: ep.name)
        except Exception as e:
            logger.debug(f"No plugins found or error discovering plugins: {e}")
            return []

    def manifests(self) -> list[RawRecord]:
        records: list[RawRecord] = []
        for entry_point in self._entry_points():
            dist_name = entry_point.dist.name if entry_point.dist else "unknown"
            try:
                loaded = entry_point.load()
                records.extend(_records_from(loaded))
                logger.info(f"Loaded plugin manifest '{entry_point.name}' from package '{dist_name}'")
            except Exception as e:
                logger.warning(f"Failed to load plugin '{entry_point.name}' from '{dist_name}': {e}")
        return records

    def fingerprint(self) -> str:
        parts = []
        for entry_point in self._entry_points():
            dist = entry_point.dist
            parts.append(f"{entry_point.name}={entry_point.value}@{dist.version if dist else '?'}")
        return f"entry_points:{self.group}:{';'.join(parts)}"


class FileManifestSource:
    """Read plugin records from a TOML, YAML or JSON manifest file.

    The file holds one list per section, for example::

        [[parsers]]
        id = "commonmark"
        class = "my_pkg.parsers.CommonMarkParser"

        [[extensions]]
        id = "emoji"
        class = "my_pkg.extensions.Emoji"

    A ``plugins`` list is read when the requested section is absent.

    Parameters
    ----------
    path : Path or str
        Manifest file
    section : str
        List to read, ``"parsers"`` or ``"extensions"``

    """

    def __init__(self, path: Union[Path, str], section: str = "plugins"):
        self.path = Path(path)
        self.section = section

    def manifests(self) -> list[RawRecord]:
        try:
            data = read_structured_file(self.path)
        except ConfigurationError as e:
            logger.warning(f"Skipping manifest file: {e}")
            return []
        records = data.get(self.section, data.get("plugins", []))
        if not isinstance(records, list):
            logger.warning(f"Manifest file {self.path}: '{self.section}' must be a list")
            return []
        return records

    def fingerprint(self) -> str:
        try:
            mtime = self.path.stat().st_mtime_ns
        except OSError:
            mtime = 0
        return f"file:{self.path}:{self.section}:{mtime}"


# =============================================================================
# Registries
# =============================================================================


class PluginRegistry:
    """Discover, resolve, order and instantiate the plugins of one family.

    Parameters
    ----------
    family : str
        "parser" or "extension"
    sources : iterable of ManifestSource, optional
        Sources in priority order; later sources override earlier ones by id
    resolver : InstallableResolver, optional
        Resolver for installed/version declarations; shares ``cache`` by default
    cache : Cache, optional
        Cache for discovered definitions
    base_class : type
        Class every plugin class must derive from
    default_class : type, optional
        Class used when a manifest names none
    fallback_class : type
        Class instantiated for the ``_broken`` sentinel

    """

    def __init__(
        self,
        family: PluginFamily,
        sources: Optional[Iterable[ManifestSource]] = None,
        resolver: Optional[InstallableResolver] = None,
        cache: Optional[Cache] = None,
        base_class: type = InstallablePlugin,
        default_class: Optional[type] = None,
        fallback_class: type = MissingExtension,
    ):
        self.family = family
        self._sources: list[ManifestSource] = list(sources or [])
        self._cache = cache if cache is not None else Cache()
        self._resolver = resolver if resolver is not None else InstallableResolver(self._cache)
        self._base_class = base_class
        self._default_class = default_class
        self._fallback_class = fallback_class
        self._fallback_definition = fallback_definition(family, fallback_class)
        # Registries of other families, consulted for plugin requirements
        self.peers: dict[str, PluginRegistry] = {}

    @property
    def cache(self) -> Cache:
        return self._cache

    @property
    def sources(self) -> list[ManifestSource]:
        return list(self._sources)

    def register_source(self, source: ManifestSource) -> None:
        """Add a source with the highest priority and invalidate discovery."""
        self._sources.append(source)
        self.invalidate()

    def invalidate(self) -> None:
        """Drop every cached definition (and dependent cached state)."""
        self._cache.invalidate_all()
        if self._resolver.cache is not self._cache:
            self._resolver.cache.invalidate_all()

    # -- discovery -------------------------------------------------------------------

    def _cache_key(self) -> tuple:
        return ("definitions", self.family, tuple(source.fingerprint() for source in self._sources))

    def discover(self) -> dict[str, PluginDefinition]:
        """Return every valid definition by id, ordered, with the sentinel last."""
        return self._cache.get_or_build(self._cache_key(), self._discover)

    def _gather(self) -> dict[str, RawRecord]:
        raw: dict[str, RawRecord] = {}
        for source in self._sources:
            try:
                records = list(source.manifests())
            except Exception as e:
                logger.warning(f"Failed to read plugin source {type(source).__name__}: {e}")
                continue
            for record in records:
                plugin_id = record.id if isinstance(record, PluginDefinition) else (
                    record.get("id") if isinstance(record, Mapping) else None
                )
                if not isinstance(plugin_id, str) or not plugin_id.strip():
                    logger.warning(f"Ignoring {self.family} manifest without an id: {sanitize_for_log(record)}")
                    continue
                plugin_id = plugin_id.strip()
                if plugin_id == FALLBACK_PLUGIN_ID:
                    logger.warning(f"Ignoring {self.family} manifest using the reserved id '{FALLBACK_PLUGIN_ID}'")
                    continue
                if plugin_id in raw:
                    logger.debug(f"{self.family.capitalize()} '{sanitize_for_log(plugin_id)}' overridden by a later source")
                raw[plugin_id] = record
        return raw

    def _discover(self) -> dict[str, PluginDefinition]:
        definitions = []
        for plugin_id, record in self._gather().items():
            try:
                definition = PluginDefinition.from_manifest(record, self.family)
                definitions.append(self._resolver.resolve(definition, self.load_class(definition)))
            except (InvalidDefinitionError, TypeError, ValueError) as e:
                logger.warning(f"Excluding {self.family} '{sanitize_for_log(plugin_id)}': {sanitize_for_log(e)}")

        definitions.sort(key=sort_key)
        discovered = {definition.id: definition for definition in definitions}
        discovered[FALLBACK_PLUGIN_ID] = self._fallback_definition
        logger.debug(f"Discovered {len(definitions)} {self.family} plugin(s)")
        return discovered

    def load_class(self, definition: PluginDefinition) -> type:
        """Return the plugin class of ``definition``.

        Raises
        ------
        InvalidDefinitionError
            If the class cannot be imported, is missing, or does not derive
            from the registry's base class

        """
        spec = definition.plugin_class
        if spec is None:
            if self._default_class is None:
                raise InvalidDefinitionError(definition.id, "class", f"Plugin '{definition.id}' does not name a class")
            return self._default_class
        if isinstance(spec, type):
            plugin_class = spec
        else:
            try:
                plugin_class = import_object(str(spec))
            except (ImportError, AttributeError) as e:
                raise InvalidDefinitionError(
                    definition.id, "class", f"Could not load class '{spec}' for plugin '{definition.id}': {e}", e
                ) from e
        if not isinstance(plugin_class, type) or not issubclass(plugin_class, self._base_class):
            raise InvalidDefinitionError(
                definition.id,
                "class",
                f"Plugin '{definition.id}': class '{spec}' must derive from {self._base_class.__name__}",
            )
        return plugin_class

    # -- lookup ----------------------------------------------------------------------

    def get(self, plugin_id: str, strict: bool = False) -> PluginDefinition:
        """Return the definition for ``plugin_id``.

        Parameters
        ----------
        plugin_id : str
            Identifier to look up
        strict : bool, default False
            Raise instead of returning the fallback sentinel

        Raises
        ------
        UnknownPluginError
            If ``strict`` and the id is unknown

        """
        definitions = self.discover()
        definition = definitions.get(plugin_id)
        if definition is not None:
            return definition
        if strict:
            raise UnknownPluginError(plugin_id, self.family, [i for i in definitions if i != FALLBACK_PLUGIN_ID])
        logger.debug(f"Unknown {self.family} '{sanitize_for_log(plugin_id)}', using fallback")
        return definitions[FALLBACK_PLUGIN_ID]

    def has(self, plugin_id: str) -> bool:
        return plugin_id in self.discover()

    def list(self, include_unavailable: bool = False) -> list[PluginDefinition]:
        """Return definitions in deterministic order, never including the sentinel."""
        return [
            definition
            for definition in self.discover().values()
            if definition.id != FALLBACK_PLUGIN_ID and (include_unavailable or definition.is_installed())
        ]

    def get_definitions(self, include_broken: bool = True) -> dict[str, PluginDefinition]:
        definitions = dict(self.discover())
        if not include_broken:
            definitions.pop(FALLBACK_PLUGIN_ID, None)
        return definitions

    def installed_definitions(self) -> dict[str, PluginDefinition]:
        return {definition.id: definition for definition in self.list()}

    def first_installed_plugin_id(self) -> str:
        """Id of the first installed plugin in order, or the sentinel id when none is."""
        installed = self.list()
        return installed[0].id if installed else FALLBACK_PLUGIN_ID

    def labels(self, installed: bool = True, version: bool = True) -> dict[str, str]:
        """Map ids to display labels, e.g. ``{"mistune": "Mistune (3.0.2)"}``."""
        labels = {}
        for definition in self.list(include_unavailable=not installed):
            label = definition.get_label()
            plugin_version = definition.get_version()
            labels[definition.id] = f"{label} ({plugin_version})" if version and plugin_version else label
        return labels

    def unmet_requirements(self, plugin_id: str) -> dict[str, list[str]]:
        """Unmet sub-requirements per library of ``plugin_id``."""
        definition = self.get(plugin_id)
        unmet = {}
        for library in definition.libraries:
            missing = check_requirements(library, self._lookup_requirement)
            if missing:
                unmet[library.id] = missing
        return unmet

    def _lookup_requirement(self, family: str, plugin_id: str) -> Optional[PluginDefinition]:
        registry = self if family == self.family else self.peers.get(family)
        if registry is None:
            return None
        definition = registry.discover().get(plugin_id)
        return None if definition is None or definition.id == FALLBACK_PLUGIN_ID else definition

    # -- instances -------------------------------------------------------------------

    def create_instance(
        self,
        plugin_id: str,
        configuration: Optional[Mapping[str, Any]] = None,
        strict: bool = False,
    ) -> Any:
        """Instantiate a plugin; unknown ids give the fallback instance unless ``strict``."""
        definition = self.get(plugin_id, strict=strict)
        if definition.id == FALLBACK_PLUGIN_ID:
            plugin_class = self._fallback_class
        else:
            plugin_class = self.load_class(definition)
        return self._instantiate(plugin_class, definition, configuration)

    def _instantiate(self, plugin_class: type, definition: PluginDefinition, configuration: Any) -> Any:
        return plugin_class(configuration=configuration, plugin_id=definition.id, definition=definition)

    def installed(self, configuration: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
        """Instances of every installed plugin, ordered; ``configuration`` maps id to overrides."""
        configuration = configuration or {}
        return {
            definition.id: self.create_instance(definition.id, configuration.get(definition.id))
            for definition in self.list()
        }

    def all(self, configuration: Optional[Mapping[str, Any]] = None, include_broken: bool = False) -> dict[str, Any]:
        """Instances of every plugin, installed or not, ordered."""
        configuration = configuration or {}
        return {
            plugin_id: self.create_instance(plugin_id, configuration.get(plugin_id))
            for plugin_id in self.get_definitions(include_broken=include_broken)
        }


class ParserRegistry(PluginRegistry):
    """Registry of parser backends; parser instances receive the extension registry and composer.

    Parameters
    ----------
    sources : iterable of ManifestSource, optional
        Parser manifest sources
    extension_registry : PluginRegistry, optional
        Registry parsers draw extensions from
    composer : EnvironmentComposer, optional
        Composer shared by all parser instances
    resolver : InstallableResolver, optional
        Resolver for installed/version declarations
    cache : Cache, optional
        Cache for discovered definitions and composed environments

    """

    def __init__(
        self,
        sources: Optional[Iterable[ManifestSource]] = None,
        extension_registry: Optional[PluginRegistry] = None,
        composer: Optional[EnvironmentComposer] = None,
        resolver: Optional[InstallableResolver] = None,
        cache: Optional[Cache] = None,
    ):
        super().__init__(
            "parser",
            sources,
            resolver=resolver,
            cache=cache,
            base_class=BaseParser,
            fallback_class=MissingParser,
        )
        self.extension_registry = extension_registry
        if extension_registry is not None:
            self.peers["extension"] = extension_registry
            extension_registry.peers["parser"] = self
        self.composer = composer if composer is not None else EnvironmentComposer(self.cache)

    def invalidate(self) -> None:
        super().invalidate()
        if self.composer.cache is not self.cache:
            self.composer.invalidate()
        if self.extension_registry is not None and self.extension_registry.cache is not self.cache:
            self.extension_registry.invalidate()

    def _instantiate(self, plugin_class: type, definition: PluginDefinition, configuration: Any) -> Any:
        return plugin_class(
            configuration=configuration,
            plugin_id=definition.id,
            definition=definition,
            extension_registry=self.extension_registry,
            composer=self.composer,
        )


def extension_registry(
    sources: Optional[Iterable[ManifestSource]] = None,
    resolver: Optional[InstallableResolver] = None,
    cache: Optional[Cache] = None,
) -> PluginRegistry:
    """Create a registry for extensions."""
    return PluginRegistry(
        "extension",
        sources,
        resolver=resolver,
        cache=cache,
        base_class=BaseExtension,
        default_class=BaseExtension,
        fallback_class=MissingExtension,
    )


def default_parser_registry(
    manifests: Iterable[Union[Path, str]] = (),
    cache: Optional[Cache] = None,
) -> ParserRegistry:
    """Wire the default registries.

    Sources, lowest priority first: builtin modules, entry points, then the
    given manifest files.

    Parameters
    ----------
    manifests : iterable of path
        Extra manifest files with ``parsers``/``extensions`` lists
    cache : Cache, optional
        Shared cache for definitions and environments

    """
    cache = cache if cache is not None else Cache()
    manifests = list(manifests)
    extensions = extension_registry(
        [
            ModuleManifestSource("mdcompose.extensions"),
            EntryPointManifestSource(EXTENSION_ENTRY_POINT_GROUP),
            *(FileManifestSource(path, "extensions") for path in manifests),
        ],
        cache=cache,
    )
    return ParserRegistry(
        [
            ModuleManifestSource("mdcompose.parsers"),
            EntryPointManifestSource(PARSER_ENTRY_POINT_GROUP),
            *(FileManifestSource(path, "parsers") for path in manifests),
        ],
        extension_registry=extensions,
        cache=cache,
    )

"""Plugin definition metadata for the mdcompose plugin registries.

This module defines the immutable records that describe one pluggable
capability (a parser backend or an extension): identity, the libraries
that can back it, and its installation state and version. Installation
state and version start out as deferred references taken verbatim from a
manifest and are materialized once by :mod:`mdcompose.resolver`.

Manifest format
---------------
A manifest is a plain mapping. Builtin plugin modules expose it as
``PLUGIN_MANIFEST``; third-party packages expose it through the
``mdcompose.parsers``/``mdcompose.extensions`` entry point groups::

    PLUGIN_MANIFEST = {
        "id": "tables",
        "label": "Tables",
        "class": "mdcompose.extensions.native.NativeExtension",
        "parsers": ["mistune", "python-markdown"],
        "libraries": [
            {"id": "mistune-table", "object": "mistune.plugins.table.table", "package": "mistune"},
            {"id": "markdown-tables", "object": "markdown.extensions.tables.TableExtension", "package": "Markdown"},
        ],
    }

Unknown keys are ignored for forward compatibility.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping, Optional, Union

from mdcompose.constants import MANIFEST_FIELDS, PluginFamily
from mdcompose.exceptions import InvalidDefinitionError, describe


# =============================================================================
# Deferred values
# =============================================================================


@dataclass(frozen=True)
class Unresolved:
    """The manifest did not declare a value; the plugin class decides."""


@dataclass(frozen=True)
class Literal:
    """A value that needs no further resolution."""

    value: Any


@dataclass(frozen=True)
class ClassRef:
    """An ``installed`` declaration naming a class whose existence is checked."""

    path: str


@dataclass(frozen=True)
class ConstantRef:
    """A dotted name: a module constant, a zero-argument callable or a literal version."""

    name: str


@dataclass(frozen=True)
class QualifiedRef:
    """A ``package.Class::ATTRIBUTE`` reference to a class constant or property."""

    owner: str
    attribute: str


@dataclass(frozen=True)
class CallableRef:
    """A callable invoked with no arguments."""

    target: Callable[[], Any]


Deferred = Union[Unresolved, Literal, ClassRef, ConstantRef, QualifiedRef, CallableRef]

UNRESOLVED = Unresolved()


def parse_installed(raw: Any, plugin_id: Optional[str] = None) -> Deferred:
    """Turn a manifest ``installed`` value into a deferred reference.

    Raises
    ------
    InvalidDefinitionError
        If the value is neither unset, a boolean nor a class name

    """
    if raw is None or isinstance(raw, Unresolved):
        return UNRESOLVED
    if isinstance(raw, (Literal, ClassRef)):
        return raw
    if isinstance(raw, bool):
        return Literal(raw)
    if isinstance(raw, str) and raw.strip():
        return ClassRef(raw.strip())
    raise InvalidDefinitionError(
        plugin_id,
        "installed",
        f"Plugin '{plugin_id}': 'installed' must either be a class name that is checked for existence "
        f"or a boolean, got {describe(raw)}. Override the plugin class's installed() hook for complex checks.",
    )


def parse_version(raw: Any, plugin_id: Optional[str] = None) -> Deferred:
    """Turn a manifest ``version`` value into a deferred reference.

    Raises
    ------
    InvalidDefinitionError
        If the value has an unsupported type

    """
    if raw is None or isinstance(raw, Unresolved):
        return UNRESOLVED
    if isinstance(raw, (Literal, ConstantRef, QualifiedRef, CallableRef)):
        return raw
    if isinstance(raw, str) and raw.strip():
        value = raw.strip()
        if "::" in value:
            owner, _, attribute = value.partition("::")
            return QualifiedRef(owner.lstrip("\\"), attribute)
        return ConstantRef(value)
    if callable(raw):
        return CallableRef(raw)
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return Literal(str(raw))
    raise InvalidDefinitionError(
        plugin_id,
        "version",
        f"Plugin '{plugin_id}': 'version' must be a constant, a 'Class::ATTRIBUTE' reference or a callable, "
        f"got {describe(raw)}.",
    )


def is_resolved(value: Deferred) -> bool:
    """Return True when ``value`` is a materialized literal."""
    return isinstance(value, Literal)


def list_field(value: Any, plugin_id: Optional[str], name: str, allow_str: bool = False) -> tuple:
    """Return a manifest list field as a tuple, rejecting scalars and mappings."""
    if value is None:
        return ()
    if allow_str and isinstance(value, str):
        return (value,)
    if not isinstance(value, (list, tuple, set, frozenset)):
        raise InvalidDefinitionError(
            plugin_id, name, f"Plugin '{plugin_id}': '{name}' must be a list, got {describe(value)}"
        )
    return tuple(value)


# =============================================================================
# Requirements and libraries
# =============================================================================


@dataclass(frozen=True)
class Requirement:
    """A sub-requirement that must also be present for a library to work.

    Parameters
    ----------
    type : str
        "parser" or "extension" for other plugins, "package" for a Python
        distribution
    id : str
        Plugin identifier or distribution name
    constraints : dict
        Constraint name to value, e.g. ``{"version": ">=3.0"}``

    """

    type: str
    id: str
    constraints: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_manifest(cls, record: Union[str, Mapping[str, Any]], plugin_id: Optional[str] = None) -> Requirement:
        """Build a requirement from ``"type:id"`` shorthand or a mapping."""
        if isinstance(record, str):
            req_type, _, req_id = record.partition(":")
            if not req_id:
                req_type, req_id = "package", req_type
            return cls(type=req_type.strip(), id=req_id.strip())
        if not isinstance(record, Mapping) or not record.get("id"):
            raise InvalidDefinitionError(plugin_id, "requirements", f"Plugin '{plugin_id}': malformed requirement")
        constraints = record.get("constraints") or {}
        if not isinstance(constraints, Mapping):
            raise InvalidDefinitionError(
                plugin_id, "requirements", f"Plugin '{plugin_id}': requirement constraints must be a mapping"
            )
        return cls(type=str(record.get("type", "package")), id=str(record["id"]), constraints=dict(constraints))

    def describe(self) -> str:
        """Return a short human-readable description."""
        if not self.constraints:
            return self.id
        constraints = []
        for name, value in self.constraints.items():
            if value:
                constraints.append(f"{name}: {', '.join(value) if isinstance(value, (list, tuple)) else value}")
            else:
                constraints.append(name)
        return f"{self.id} {', '.join(constraints)}"


@dataclass(frozen=True)
class LibraryRequirement:
    """One concrete library that can back a plugin.

    Parameters
    ----------
    id : str
        Library identifier
    label : str
        Display label
    object : str, optional
        Dotted path to the class or callable whose existence means the
        library is installed
    package : str, optional
        Python distribution that ships the library; used for the install
        command and as a version fallback
    preferred : bool
        Whether this is the recommended library among alternatives
    ui : bool
        Whether to surface the library in listings
    requirements : tuple of Requirement
        Sub-requirements that must also be present
    install_command : str
        Display-only install command
    url : str
        Project URL
    version : Deferred
        Library version declaration, resolved like a plugin version
    installed : bool or None
        Materialized by the resolver; ``None`` until resolved

    """

    id: str
    label: str = ""
    object: Optional[str] = None
    package: Optional[str] = None
    preferred: bool = False
    ui: bool = True
    requirements: tuple[Requirement, ...] = ()
    install_command: str = ""
    url: str = ""
    version: Deferred = UNRESOLVED
    installed: Optional[bool] = None

    @classmethod
    def from_manifest(cls, record: Union[str, Mapping[str, Any]], plugin_id: Optional[str] = None) -> LibraryRequirement:
        """Build a library from a manifest mapping or a bare object path."""
        if isinstance(record, str):
            return cls(id=record, object=record)
        if not isinstance(record, Mapping) or not record.get("id"):
            raise InvalidDefinitionError(plugin_id, "libraries", f"Plugin '{plugin_id}': library entries need an 'id'")
        return cls(
            id=str(record["id"]),
            label=str(record.get("label") or ""),
            object=record.get("object"),
            package=record.get("package"),
            preferred=bool(record.get("preferred", False)),
            ui=bool(record.get("ui", True)),
            requirements=tuple(
                Requirement.from_manifest(r, plugin_id)
                for r in list_field(record.get("requirements"), plugin_id, "requirements", allow_str=True)
            ),
            install_command=str(record.get("install_command") or record.get("installCommand") or ""),
            url=str(record.get("url") or ""),
            version=parse_version(record.get("version"), plugin_id),
        )

    def get_label(self) -> str:
        """Return the display label, falling back to the identifier."""
        return self.label or self.id

    def get_version(self) -> Optional[str]:
        """Return the resolved version, if any."""
        return self.version.value if isinstance(self.version, Literal) else None

    def get_install_command(self) -> str:
        """Return the display-only install command for this library."""
        if self.install_command:
            return self.install_command
        if self.package:
            return f"pip install {self.package}"
        return ""


# =============================================================================
# Plugin definitions
# =============================================================================


@dataclass(frozen=True)
class PluginDefinition:
    """Immutable metadata describing one parser backend or extension.

    Parameters
    ----------
    id : str
        Unique key within the plugin family
    family : str
        "parser" or "extension"
    label, description, url : str
        Display metadata
    weight : int
        Primary ordering key (ascending)
    libraries : tuple of LibraryRequirement
        Alternative libraries that can back this plugin, in declared order
    installed : Deferred
        Installation state; a ``Literal`` bool once resolved
    version : Deferred
        Version; a ``Literal`` once resolved (value may be None)
    settings : dict
        Definition-specific default settings
    parsers : frozenset of str
        Parser ids this extension is compatible with (empty = all)
    ui : bool
        Whether to surface the plugin in listings
    preferred : bool
        Whether the plugin is the recommended one of its family
    deprecated, experimental : str
        Optional notices
    plugin_class : str or type
        Class instantiated for this plugin
    installed_library_id : str, optional
        Identifier of the first installed library, set by the resolver

    """

    id: str
    family: str = "parser"
    label: str = ""
    description: str = ""
    url: str = ""
    weight: int = 0
    libraries: tuple[LibraryRequirement, ...] = ()
    installed: Deferred = UNRESOLVED
    version: Deferred = UNRESOLVED
    settings: dict[str, Any] = field(default_factory=dict)
    parsers: frozenset[str] = frozenset()
    ui: bool = True
    preferred: bool = False
    deprecated: str = ""
    experimental: str = ""
    plugin_class: Union[str, type, None] = None
    installed_library_id: Optional[str] = None

    @classmethod
    def from_manifest(cls, record: Any, family: PluginFamily) -> PluginDefinition:
        """Validate a raw manifest record and build a definition from it.

        Parameters
        ----------
        record : Mapping or PluginDefinition
            Raw manifest record; unknown keys are ignored
        family : str
            Plugin family the record belongs to

        Returns
        -------
        PluginDefinition
            Unresolved definition

        Raises
        ------
        InvalidDefinitionError
            If the record has no id, malformed fields or several preferred libraries

        """
        if isinstance(record, PluginDefinition):
            return record if record.family == family else replace(record, family=family)
        if not isinstance(record, Mapping):
            raise InvalidDefinitionError(None, message=f"Plugin manifest must be a mapping, got {describe(record)}")

        plugin_id = record.get("id")
        if not isinstance(plugin_id, str) or not plugin_id.strip():
            raise InvalidDefinitionError(None, "id", "Plugin manifest is missing a non-empty 'id'")
        plugin_id = plugin_id.strip()

        data = {key: value for key, value in record.items() if key in MANIFEST_FIELDS}

        try:
            weight = int(data.get("weight") or 0)
        except (TypeError, ValueError) as e:
            raise InvalidDefinitionError(plugin_id, "weight", f"Plugin '{plugin_id}': 'weight' must be an integer") from e

        settings = data.get("settings") or {}
        if not isinstance(settings, Mapping):
            raise InvalidDefinitionError(plugin_id, "settings", f"Plugin '{plugin_id}': 'settings' must be a mapping")

        parsers = list_field(data.get("parsers"), plugin_id, "parsers", allow_str=True)
        libraries = [
            LibraryRequirement.from_manifest(lib, plugin_id)
            for lib in list_field(data.get("libraries"), plugin_id, "libraries", allow_str=True)
        ]
        preferred = [lib for lib in libraries if lib.preferred]
        if len(preferred) > 1:
            raise InvalidDefinitionError(
                plugin_id,
                "libraries",
                f"Plugin '{plugin_id}': only one library may be preferred, "
                f"got {', '.join(lib.id for lib in preferred)}",
            )
        if libraries and not preferred:
            libraries[0] = replace(libraries[0], preferred=True)

        return cls(
            id=plugin_id,
            family=family,
            label=str(data.get("label") or ""),
            description=str(data.get("description") or ""),
            url=str(data.get("url") or ""),
            weight=weight,
            libraries=tuple(libraries),
            installed=parse_installed(data.get("installed"), plugin_id),
            version=parse_version(data.get("version"), plugin_id),
            settings=copy.deepcopy(dict(settings)),
            parsers=frozenset(str(p) for p in parsers),
            ui=bool(data.get("ui", True)),
            preferred=bool(data.get("preferred", False)),
            deprecated=str(data.get("deprecated") or ""),
            experimental=str(data.get("experimental") or ""),
            plugin_class=data.get("class"),
        )

    @property
    def is_resolved(self) -> bool:
        """Whether ``installed`` and ``version`` are fully materialized."""
        return is_resolved(self.installed) and is_resolved(self.version)

    def get_label(self) -> str:
        """Return the display label, falling back to the identifier."""
        return self.label or self.id

    def is_installed(self) -> bool:
        """Return the resolved installation state (False while unresolved)."""
        return bool(self.installed.value) if isinstance(self.installed, Literal) else False

    def get_version(self) -> Optional[str]:
        """Return the resolved version, if any."""
        if isinstance(self.version, Literal) and self.version.value is not None:
            return str(self.version.value)
        return None

    def get_library(self, library_id: Optional[str]) -> Optional[LibraryRequirement]:
        """Return the declared library with the given id."""
        for library in self.libraries:
            if library.id == library_id:
                return library
        return None

    def get_installed_library(self) -> Optional[LibraryRequirement]:
        """Return the first installed library in declared order."""
        return self.get_library(self.installed_library_id)

    def get_preferred_library(self) -> Optional[LibraryRequirement]:
        """Return the preferred library (the first declared when none is flagged)."""
        for library in self.libraries:
            if library.preferred:
                return library
        return self.libraries[0] if self.libraries else None

    def is_preferred_library_installed(self) -> bool:
        """Whether the optimal library, not just some library, is installed."""
        preferred = self.get_preferred_library()
        if preferred is None:
            return self.is_installed()
        return bool(preferred.installed)

    def has_multiple_libraries(self) -> bool:
        """Whether alternative libraries are declared."""
        return len(self.libraries) > 1

    def is_compatible_with(self, parser_id: str) -> bool:
        """Whether an extension supports the given parser (empty set = all)."""
        return not self.parsers or parser_id in self.parsers

    def get_available_installs(self) -> list[PluginDefinition]:
        """Return one single-library definition per declared library.

        Each copy carries the library's own installation state and version,
        which lets listings show every alternative side by side.
        """
        installs = []
        for library in self.libraries:
            installs.append(
                replace(
                    self,
                    label=library.label or self.label,
                    url=library.url or self.url,
                    libraries=(library,),
                    installed=Literal(bool(library.installed)),
                    version=library.version if isinstance(library.version, Literal) else Literal(None),
                    installed_library_id=library.id if library.installed else None,
                )
            )
        return installs

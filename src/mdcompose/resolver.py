#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/resolver.py
"""Materialize the deferred ``installed``/``version`` declarations of plugin definitions.

A definition coming out of a manifest may say "installed if this class
exists" or "version is this constant". The resolver turns those references
into literal values exactly once per (family, id), determines which of the
declared libraries is actually installed, and leaves the preferred library
flag untouched so callers can tell "usable" apart from "optimal".
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Optional

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from mdcompose.cache import Cache
from mdcompose.exceptions import InvalidDefinitionError, describe
from mdcompose.logging_utils import sanitize_for_log
from mdcompose.plugin_metadata import (
    CallableRef,
    ClassRef,
    ConstantRef,
    Deferred,
    LibraryRequirement,
    Literal,
    PluginDefinition,
    QualifiedRef,
    Requirement,
    Unresolved,
)
from mdcompose.utils.packages import (
    check_version_requirement,
    get_package_version,
    import_object,
    is_missing,
    is_version_string,
    lookup_attribute,
    object_exists,
)

logger = logging.getLogger(__name__)

DefinitionLookup = Callable[[str, str], Optional[PluginDefinition]]


def class_exists(path: Optional[str]) -> bool:
    """Report whether ``path`` names an importable class, callable or module.

    Never raises; an empty path counts as missing.
    """
    if not path:
        return False
    return object_exists(path)


def default_installed(definition: PluginDefinition) -> bool:
    """Default installed check: any declared library is installed, or no library is needed."""
    if not definition.libraries:
        return True
    return any(library.installed for library in definition.libraries)


def default_version(definition: PluginDefinition) -> Optional[str]:
    """Default version accessor: the version of the installed library, if any."""
    library = definition.get_installed_library()
    if library is None:
        return None
    return library.get_version()


def _normalize_version(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return str(value)
    raise TypeError(f"version must be a string or number, got {describe(value)}")


def resolve_version(reference: Deferred, plugin_id: str) -> Optional[str]:
    """Resolve a non-``Unresolved`` version reference to a literal.

    ``ConstantRef`` names are tried as (a) a module-level constant, then (b)
    a zero-argument callable at that dotted path, then (c) accepted as a
    literal PEP 440 version string.

    Raises
    ------
    InvalidDefinitionError
        If nothing resolves

    """
    try:
        if isinstance(reference, Literal):
            return _normalize_version(reference.value)

        if isinstance(reference, CallableRef):
            return _normalize_version(reference.target())

        if isinstance(reference, QualifiedRef):
            owner = import_object(reference.owner)
            value = getattr(owner, reference.attribute)
            if isinstance(value, property):
                value = getattr(owner(), reference.attribute)
            elif callable(value) and not isinstance(value, type):
                value = value()
            return _normalize_version(value)

        if isinstance(reference, ConstantRef):
            target = lookup_attribute(reference.name)
            if not is_missing(target):
                if callable(target) and not isinstance(target, type):
                    return _normalize_version(target())
                return _normalize_version(target)
            if is_version_string(reference.name):
                return reference.name
            raise LookupError(f"'{reference.name}' is neither a constant, a callable nor a version string")
    except InvalidDefinitionError:
        raise
    except Exception as e:
        raise InvalidDefinitionError(
            plugin_id,
            "version",
            f"Plugin '{plugin_id}': unable to resolve version declaration {reference!r}: {e}",
            original_error=e,
        ) from e

    raise InvalidDefinitionError(plugin_id, "version", f"Plugin '{plugin_id}': unsupported version {reference!r}")


def resolve_library(library: LibraryRequirement, plugin_id: str) -> LibraryRequirement:
    """Determine whether a library is installed and which version it provides."""
    if library.object:
        installed = class_exists(library.object)
    elif library.package:
        installed = get_package_version(library.package) is not None
    else:
        installed = True

    if isinstance(library.version, Unresolved):
        version = get_package_version(library.package) if (installed and library.package) else None
    elif installed:
        version = resolve_version(library.version, plugin_id)
    else:
        version = None

    return replace(library, installed=installed, version=Literal(version))


class InstallableResolver:
    """Resolve plugin definitions once and cache the outcome per (family, id).

    Parameters
    ----------
    cache : Cache, optional
        Cache that holds resolved definitions; a private cache is created
        when omitted

    """

    def __init__(self, cache: Optional[Cache] = None):
        self._cache = cache if cache is not None else Cache()

    @property
    def cache(self) -> Cache:
        """Cache holding resolved definitions."""
        return self._cache

    def resolve(self, definition: PluginDefinition, plugin_class: Optional[type] = None) -> PluginDefinition:
        """Return ``definition`` with installed, version and libraries materialized.

        Parameters
        ----------
        definition : PluginDefinition
            Definition to resolve; already resolved definitions are returned as cached
        plugin_class : type, optional
            Plugin class providing ``installed(definition)`` and
            ``version(definition)`` hooks for unset declarations

        Returns
        -------
        PluginDefinition
            Fully resolved definition

        Raises
        ------
        InvalidDefinitionError
            If an ``installed``/``version`` declaration cannot be resolved

        """
        # The declaration is part of the key so an edited manifest is resolved again
        key = ("resolved", definition.family, definition.id, repr(definition))
        return self._cache.get_or_build(key, lambda: self._resolve(definition, plugin_class))

    def _resolve(self, definition: PluginDefinition, plugin_class: Optional[type]) -> PluginDefinition:
        libraries = tuple(resolve_library(library, definition.id) for library in definition.libraries)
        installed_library = next((library for library in libraries if library.installed), None)
        resolved = replace(
            definition,
            libraries=libraries,
            installed_library_id=installed_library.id if installed_library else None,
        )

        installed = self._resolve_installed(resolved, plugin_class)
        resolved = replace(resolved, installed=Literal(installed))
        version = self._resolve_version(resolved, plugin_class)
        resolved = replace(resolved, version=Literal(version))

        logger.debug(
            f"Resolved {definition.family} '{sanitize_for_log(definition.id)}': "
            f"installed={installed}, version={version}, library={resolved.installed_library_id}"
        )
        return resolved

    def _resolve_installed(self, definition: PluginDefinition, plugin_class: Optional[type]) -> bool:
        installed = definition.installed
        if isinstance(installed, Literal):
            return bool(installed.value)
        if isinstance(installed, ClassRef):
            return class_exists(installed.path)

        try:
            if plugin_class is not None and hasattr(plugin_class, "installed"):
                return bool(plugin_class.installed(definition))
            return default_installed(definition)
        except Exception as e:
            raise InvalidDefinitionError(definition.id, "installed", original_error=e) from e

    def _resolve_version(self, definition: PluginDefinition, plugin_class: Optional[type]) -> Optional[str]:
        if not isinstance(definition.version, Unresolved):
            return resolve_version(definition.version, definition.id)

        try:
            if plugin_class is not None and hasattr(plugin_class, "version"):
                return _normalize_version(plugin_class.version(definition))
            return default_version(definition)
        except Exception as e:
            raise InvalidDefinitionError(definition.id, "version", original_error=e) from e


def check_requirements(library: LibraryRequirement, lookup: Optional[DefinitionLookup] = None) -> list[str]:
    """Report the unmet sub-requirements of a library.

    Parameters
    ----------
    library : LibraryRequirement
        Library whose requirements are checked
    lookup : callable, optional
        ``lookup(type, id)`` returning a resolved definition for plugin
        requirements; plugin requirements are reported unmet without it

    Returns
    -------
    list of str
        Human-readable descriptions of unmet requirements; empty when all are met

    """
    unmet = []
    for requirement in library.requirements:
        if not _requirement_met(requirement, lookup):
            unmet.append(requirement.describe())
    return unmet


def _requirement_met(requirement: Requirement, lookup: Optional[DefinitionLookup]) -> bool:
    spec = str(requirement.constraints.get("version") or "")

    if requirement.type == "package":
        meets, _installed = check_version_requirement(requirement.id, spec)
        return meets

    if lookup is None:
        return False
    definition = lookup(requirement.type, requirement.id)
    if definition is None or not definition.is_installed():
        return False
    if not spec:
        return True

    installed_version = definition.get_version()
    if installed_version is None:
        return False
    try:
        return Version(installed_version) in SpecifierSet(spec)
    except (InvalidSpecifier, InvalidVersion):
        logger.warning(f"Cannot compare version '{installed_version}' against '{spec}' for '{requirement.id}'")
        return False

"""Utility functions for checking installed packages and importable objects."""

#  Copyright (c) 2025 Tom Villani, Ph.D.

# src/mdcompose/utils/packages.py
from __future__ import annotations

import importlib
import logging
from importlib import metadata
from typing import Any, Optional, Tuple

from packaging import version
from packaging.specifiers import InvalidSpecifier, SpecifierSet

logger = logging.getLogger(__name__)

_MISSING = object()


def get_package_version(package_name: str) -> Optional[str]:
    """Get the installed version of a distribution.

    Parameters
    ----------
    package_name : str
        Distribution name as used by pip (e.g., "Markdown", not "markdown")

    Returns
    -------
    str or None
        Version string if package installed, None otherwise

    """
    try:
        return metadata.version(package_name)
    except metadata.PackageNotFoundError:
        return None


def check_version_requirement(package_name: str, version_spec: str) -> Tuple[bool, Optional[str]]:
    """Check if installed package meets version requirement.

    Parameters
    ----------
    package_name : str
        Name of the package
    version_spec : str
        Version specification (e.g., ">=3.0.0")

    Returns
    -------
    tuple
        (meets_requirement, installed_version)

    """
    installed_version = get_package_version(package_name)
    if not installed_version:
        return False, None
    if not version_spec:
        return True, installed_version

    try:
        spec = SpecifierSet(version_spec)
    except InvalidSpecifier:
        logger.warning(f"Invalid version specifier '{version_spec}' for package '{package_name}'")
        return False, installed_version
    return version.parse(installed_version) in spec, installed_version


def is_version_string(value: str) -> bool:
    """Return True when ``value`` parses as a PEP 440 version."""
    try:
        version.Version(value)
    except version.InvalidVersion:
        return False
    return True


def import_object(path: str) -> Any:
    """Import a module or a module attribute from a dotted path.

    ``"pkg.module"`` returns the module; ``"pkg.module.Attr"`` returns the
    attribute when ``pkg.module.Attr`` is not itself importable as a module.
    Nested attributes (``"pkg.module.Class.ATTR"``) are walked from the
    longest importable module prefix.

    Parameters
    ----------
    path : str
        Dotted import path, optionally with a leading backslash or dot

    Returns
    -------
    Any
        The imported object

    Raises
    ------
    ImportError
        If no prefix of the path can be imported
    AttributeError
        If an attribute along the path does not exist

    """
    cleaned = path.strip().lstrip("\\").replace("\\", ".").strip(".")
    if not cleaned:
        raise ImportError(f"Empty import path: {path!r}")

    parts = cleaned.split(".")
    for index in range(len(parts), 0, -1):
        module_name = ".".join(parts[:index])
        try:
            # nosemgrep: python.lang.security.audit.non-literal-import.non-literal-import
            obj = importlib.import_module(module_name)
        except ImportError:
            continue
        for attribute in parts[index:]:
            obj = getattr(obj, attribute)
        return obj

    raise ImportError(f"Cannot import '{cleaned}'")


def object_exists(path: str) -> bool:
    """Check whether a dotted path names an importable module, class or attribute.

    Parameters
    ----------
    path : str
        Dotted import path (e.g., "mistune.Markdown")

    Returns
    -------
    bool
        True if the object can be imported

    """
    try:
        import_object(path)
    except (ImportError, AttributeError, ValueError):
        return False
    return True


def lookup_attribute(path: str) -> Any:
    """Return the object at ``path`` or a sentinel when it does not exist."""
    try:
        return import_object(path)
    except (ImportError, AttributeError, ValueError):
        return _MISSING


def is_missing(value: Any) -> bool:
    """Return True for the sentinel returned by :func:`lookup_attribute`."""
    return value is _MISSING

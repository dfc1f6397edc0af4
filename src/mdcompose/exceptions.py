#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Custom exceptions for the mdcompose library.

This module defines specialized exception classes for the error conditions
that can occur while discovering plugins, composing conversion environments
and loading Markdown sources.

Exception Hierarchy
-------------------
- MdComposeError (base exception)

  - InvalidDefinitionError (malformed plugin manifest)

  - UnknownPluginError (strict lookup of a missing plugin id)

  - ExtensionContractViolation (extension does not fulfil a declared role)

  - SourceUnavailableError (file/URL loading boundary)
    - MarkdownFileNotFoundError
    - MarkdownUrlNotFoundError

  - ConfigurationError (unreadable host configuration)

  - DependencyError (missing/incompatible packages)

"""

from __future__ import annotations

from typing import Any, Iterable


class MdComposeError(Exception):
    """Base exception class for all mdcompose-specific errors.

    Parameters
    ----------
    message : str
        Human-readable description of the error
    original_error : Exception, optional
        The original exception that caused this error, if applicable

    Attributes
    ----------
    message : str
        The error message
    original_error : Exception or None
        The wrapped original exception, if any

    """

    def __init__(self, message: str, original_error: Exception | None = None):
        """Initialize the error with a message and optional original exception."""
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class InvalidDefinitionError(MdComposeError):
    """Exception raised when a plugin manifest cannot be turned into a definition.

    Raised for manifests without an identifier, with more than one preferred
    library, or whose ``installed``/``version`` declaration cannot be
    resolved. Discovery catches it per definition and excludes only the
    offending plugin.

    Parameters
    ----------
    plugin_id : str or None
        Identifier of the offending plugin, if known
    field : str, optional
        Manifest field that failed validation (e.g., "version")
    message : str, optional
        Custom error message
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(
        self,
        plugin_id: str | None,
        field: str | None = None,
        message: str | None = None,
        original_error: Exception | None = None,
    ):
        """Initialize the invalid definition error."""
        if message is None:
            message = f"Invalid plugin definition '{plugin_id}'"
            if field:
                message += f": unresolvable '{field}' declaration"
        super().__init__(message, original_error=original_error)
        self.plugin_id = plugin_id
        self.field = field


class UnknownPluginError(MdComposeError):
    """Exception raised when a strict lookup finds no plugin with the given id.

    Non-strict lookups never raise this; they return the fallback sentinel.

    Parameters
    ----------
    plugin_id : str
        The identifier that was requested
    family : str
        Plugin family that was searched ("parser" or "extension")
    available : iterable of str, optional
        Identifiers that are registered in the family

    """

    def __init__(self, plugin_id: str, family: str, available: Iterable[str] | None = None):
        """Initialize the unknown plugin error."""
        self.plugin_id = plugin_id
        self.family = family
        self.available = sorted(available or [])
        message = f"Unknown {family} plugin: '{plugin_id}'"
        if self.available:
            message += f". Available: {', '.join(self.available)}"
        super().__init__(message)


class ExtensionContractViolation(MdComposeError):
    """Exception raised when an extension claims a capability it does not implement.

    Parameters
    ----------
    extension_id : str
        Identifier of the offending extension
    capability : str
        The capability role that is not fulfilled
    message : str, optional
        Details about the missing contract

    """

    def __init__(self, extension_id: str, capability: str, message: str | None = None):
        """Initialize the contract violation."""
        self.extension_id = extension_id
        self.capability = capability
        detail = f": {message}" if message else ""
        super().__init__(f"Extension '{extension_id}' declares '{capability}' but does not fulfil it{detail}")


class SourceUnavailableError(MdComposeError):
    """Base exception for Markdown sources that cannot be loaded.

    Parameters
    ----------
    source : str
        Path or URL that could not be loaded
    message : str, optional
        Custom error message

    """

    def __init__(self, source: str, message: str | None = None, original_error: Exception | None = None):
        """Initialize the source error."""
        self.source = source
        super().__init__(message or f"Markdown source does not exist: {source}", original_error=original_error)


class MarkdownFileNotFoundError(SourceUnavailableError):
    """Exception raised when a Markdown file does not exist."""

    def __init__(self, source: str):
        """Initialize with the missing file path."""
        super().__init__(source, f"Markdown file does not exist: {source}")


class MarkdownUrlNotFoundError(SourceUnavailableError):
    """Exception raised when a Markdown URL cannot be fetched.

    Parameters
    ----------
    source : str
        The URL that was requested
    status_code : int, optional
        HTTP status code of the failed response

    """

    def __init__(self, source: str, status_code: int | None = None, original_error: Exception | None = None):
        """Initialize with the failing URL and status code."""
        self.status_code = status_code
        message = f"Markdown URL does not exist: {source}"
        if status_code is not None:
            message += f" (HTTP {status_code})"
        super().__init__(source, message, original_error=original_error)


class ConfigurationError(MdComposeError):
    """Exception raised when a host configuration file is missing or malformed.

    Parameters
    ----------
    message : str
        Description of the configuration problem
    config_path : str, optional
        Path of the configuration file involved

    """

    def __init__(self, message: str, config_path: str | None = None, original_error: Exception | None = None):
        """Initialize the configuration error."""
        super().__init__(message, original_error=original_error)
        self.config_path = config_path


class DependencyError(MdComposeError):
    """Exception raised when a backend library is missing or has the wrong version.

    Parameters
    ----------
    plugin_id : str
        Name of the parser or extension that needs the packages
    missing_packages : list of tuple
        Missing packages as (install_name, version_spec) tuples
    version_mismatches : list of tuple, optional
        (install_name, required_spec, installed_version) tuples
    original_import_error : ImportError, optional
        The first import error encountered

    """

    def __init__(
        self,
        plugin_id: str,
        missing_packages: list[tuple[str, str]],
        version_mismatches: list[tuple[str, str, str]] | None = None,
        original_import_error: ImportError | None = None,
    ):
        """Initialize the dependency error with an install hint."""
        self.plugin_id = plugin_id
        self.missing_packages = missing_packages
        self.version_mismatches = version_mismatches or []
        self.original_import_error = original_import_error

        parts = [f"Plugin '{plugin_id}' requires additional packages."]
        if missing_packages:
            parts.append("Missing: " + ", ".join(f"{name}{spec}" for name, spec in missing_packages))
        if self.version_mismatches:
            parts.append(
                "Version mismatches: "
                + ", ".join(f"{name} (requires {spec}, found {found})" for name, spec, found in self.version_mismatches)
            )
        packages = [f"{name}{spec}" for name, spec in missing_packages]
        packages += [f"{name}{spec}" for name, spec, _ in self.version_mismatches]
        if packages:
            parts.append("Install with: pip install " + " ".join(f'"{pkg}"' for pkg in packages))
        super().__init__(" ".join(parts), original_error=original_import_error)


def describe(value: Any) -> str:
    """Return a short type description used in validation messages."""
    return type(value).__name__

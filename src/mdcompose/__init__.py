"""mdcompose - pluggable Markdown conversion with composable extensions.

mdcompose discovers Markdown parser backends and extensions from manifests,
resolves which of them are installed, and composes a parser with its
enabled extensions into a reusable conversion environment. Extensions take
on pipeline roles (block and inline grammar rules, renderers, document and
inline processors, settings) by subclassing capability markers.

Output is always filtered through an administrative HTML allowlist.

Examples
--------
One-off conversion with the default registries:

    >>> from mdcompose import to_html
    >>> to_html("Hello *world*")
    '<p>Hello <em>world</em></p>'

Compose once, convert many times:

    >>> from mdcompose import compose, convert, default_parser_registry
    >>> parser = default_parser_registry().create_instance("mistune")
    >>> environment = compose(parser)
    >>> convert("# Title", environment)
    '<h1 id="title">Title</h1>'

A host service with configuration, file and URL loading:

    >>> from mdcompose import Markdown
    >>> service = Markdown.create()
    >>> service.load_path("README.md").html  # doctest: +SKIP

"""

#  Copyright (c) 2025 Tom Villani, Ph.D.

__version__ = "1.0.0"

from mdcompose.api import compose, convert, to_html
from mdcompose.cache import Cache
from mdcompose.capabilities import (
    BlockParser,
    BlockRenderer,
    Capability,
    DocumentProcessor,
    EnvironmentAware,
    InlineParser,
    InlineProcessor,
    InlineRenderer,
    SettingsBearing,
)
from mdcompose.composer import EnvironmentComposer
from mdcompose.environment import ConversionEnvironment, Diagnostic
from mdcompose.exceptions import (
    ConfigurationError,
    DependencyError,
    ExtensionContractViolation,
    InvalidDefinitionError,
    MarkdownFileNotFoundError,
    MarkdownUrlNotFoundError,
    MdComposeError,
    SourceUnavailableError,
    UnknownPluginError,
)
from mdcompose.markdown import Markdown, ParsedMarkdown
from mdcompose.plugin_metadata import LibraryRequirement, PluginDefinition, Requirement
from mdcompose.plugins import BaseExtension, BaseParser
from mdcompose.registry import (
    EntryPointManifestSource,
    FileManifestSource,
    ModuleManifestSource,
    ParserRegistry,
    PluginRegistry,
    StaticManifestSource,
    default_parser_registry,
    extension_registry,
)
from mdcompose.resolver import InstallableResolver
from mdcompose.sanitize import sanitize_admin_html

__all__ = [
    "__version__",
    # Conversion
    "compose",
    "convert",
    "to_html",
    "sanitize_admin_html",
    "Markdown",
    "ParsedMarkdown",
    # Registries
    "PluginRegistry",
    "ParserRegistry",
    "default_parser_registry",
    "extension_registry",
    "StaticManifestSource",
    "ModuleManifestSource",
    "EntryPointManifestSource",
    "FileManifestSource",
    "InstallableResolver",
    "Cache",
    # Definitions
    "PluginDefinition",
    "LibraryRequirement",
    "Requirement",
    # Plugins and capabilities
    "BaseParser",
    "BaseExtension",
    "Capability",
    "EnvironmentAware",
    "SettingsBearing",
    "BlockParser",
    "BlockRenderer",
    "InlineParser",
    "InlineRenderer",
    "DocumentProcessor",
    "InlineProcessor",
    "EnvironmentComposer",
    "ConversionEnvironment",
    "Diagnostic",
    # Exceptions
    "MdComposeError",
    "InvalidDefinitionError",
    "UnknownPluginError",
    "ExtensionContractViolation",
    "SourceUnavailableError",
    "MarkdownFileNotFoundError",
    "MarkdownUrlNotFoundError",
    "ConfigurationError",
    "DependencyError",
]

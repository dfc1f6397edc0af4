#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Constants and default values for the mdcompose library.

Constants are organized by category:
1. Type Definitions
2. Plugin Discovery
3. Configuration
4. Sanitization
"""

from __future__ import annotations

from typing import Literal

# =============================================================================
# Type Definitions
# =============================================================================

PluginFamily = Literal["parser", "extension"]
RequirementType = Literal["parser", "extension", "package"]

# =============================================================================
# Plugin Discovery
# =============================================================================

# Reserved identifier of the fallback plugin in every family
FALLBACK_PLUGIN_ID = "_broken"

PARSER_ENTRY_POINT_GROUP = "mdcompose.parsers"
EXTENSION_ENTRY_POINT_GROUP = "mdcompose.extensions"

# Module-level attribute that builtin plugin modules expose
MANIFEST_ATTRIBUTE = "PLUGIN_MANIFEST"

# Manifest keys understood by PluginDefinition.from_manifest; others are ignored
MANIFEST_FIELDS = frozenset(
    {
        "id",
        "label",
        "description",
        "url",
        "weight",
        "libraries",
        "installed",
        "version",
        "settings",
        "parsers",
        "ui",
        "preferred",
        "deprecated",
        "experimental",
        "class",
    }
)

DEFAULT_PARSER_ID = "mistune"

# =============================================================================
# Configuration
# =============================================================================

CONFIG_ENV_VAR = "MDCOMPOSE_CONFIG"
CONFIG_FILENAMES = [".mdcompose.toml", ".mdcompose.yaml", ".mdcompose.yml", ".mdcompose.json"]
PYPROJECT_TOOL_SECTION = "mdcompose"

# Serialization order of top-level configuration keys; unlisted keys weigh 0
CONFIGURATION_SORT_ORDER = {
    "dependencies": -100,
    "id": -50,
    "weight": -30,
}
ENABLED_SORT_WEIGHT = -20
SETTINGS_SORT_WEIGHT = -10

# =============================================================================
# Sanitization
# =============================================================================

# Tags permitted in converted output (administrative allowlist)
ADMIN_ALLOWED_TAGS = frozenset(
    {
        "a",
        "abbr",
        "acronym",
        "address",
        "article",
        "aside",
        "b",
        "bdi",
        "bdo",
        "big",
        "blockquote",
        "br",
        "caption",
        "cite",
        "code",
        "col",
        "colgroup",
        "command",
        "dd",
        "del",
        "details",
        "dfn",
        "div",
        "dl",
        "dt",
        "em",
        "figcaption",
        "figure",
        "footer",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "header",
        "hgroup",
        "hr",
        "i",
        "img",
        "ins",
        "kbd",
        "li",
        "mark",
        "menu",
        "meter",
        "nav",
        "ol",
        "output",
        "p",
        "pre",
        "progress",
        "q",
        "rp",
        "rt",
        "ruby",
        "s",
        "samp",
        "section",
        "small",
        "span",
        "strong",
        "sub",
        "summary",
        "sup",
        "table",
        "tbody",
        "td",
        "tfoot",
        "th",
        "thead",
        "time",
        "tr",
        "tt",
        "u",
        "ul",
        "var",
        "wbr",
    }
)

ADMIN_ALLOWED_PROTOCOLS = frozenset({"http", "https", "ftp", "mailto", "tel", "irc", "news", "sftp", "ssh", "webcal"})

# Attribute names never allowed, regardless of tag
ADMIN_FORBIDDEN_ATTRIBUTES = frozenset({"style"})

# =============================================================================
# Backend Dependencies
# =============================================================================

# (install_name, import_name, version_spec) tuples for requires_dependencies
DEPS_MISTUNE = [("mistune", "mistune", ">=3.0.0")]
DEPS_PYTHON_MARKDOWN = [("Markdown", "markdown", ">=3.4")]

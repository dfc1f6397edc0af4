"""Plugin instance classes for parsers and extensions."""

from mdcompose.plugins.base import EnabledMixin, InstallablePlugin, SettingsMixin
from mdcompose.plugins.extension import BaseExtension
from mdcompose.plugins.missing import MissingExtension, MissingParser, fallback_definition
from mdcompose.plugins.parser import BaseParser

__all__ = [
    "BaseExtension",
    "BaseParser",
    "EnabledMixin",
    "InstallablePlugin",
    "MissingExtension",
    "MissingParser",
    "SettingsMixin",
    "fallback_definition",
]

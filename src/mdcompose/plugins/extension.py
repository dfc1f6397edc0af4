#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/plugins/extension.py
"""Base class for extension plugins."""

from __future__ import annotations

from mdcompose.plugins.base import EnabledMixin, InstallablePlugin, SettingsMixin


class BaseExtension(EnabledMixin, SettingsMixin, InstallablePlugin):
    """An extension that adds syntax or rendering to compatible parsers.

    Subclasses take on pipeline roles by also subclassing the markers in
    :mod:`mdcompose.capabilities`. Every extension is settings-bearing; an
    extension with no settings contributes an empty fragment.
    """

    @property
    def parsers(self) -> frozenset[str]:
        """Parser ids this extension supports; empty means all."""
        return self.definition.parsers

    def is_compatible(self, parser_id: str) -> bool:
        return self.definition.is_compatible_with(parser_id)

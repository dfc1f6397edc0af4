#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Unit tests for plugin instances and the fallback plugins."""

import pytest
from sample_plugins import SampleParser

from mdcompose.constants import FALLBACK_PLUGIN_ID
from mdcompose.exceptions import InvalidDefinitionError
from mdcompose.plugin_metadata import LibraryRequirement, Literal, PluginDefinition, Requirement
from mdcompose.plugins.base import InstallablePlugin
from mdcompose.plugins.extension import BaseExtension
from mdcompose.plugins.missing import MissingExtension, MissingParser, fallback_definition


def resolved(**fields):
    fields.setdefault("id", "demo")
    fields.setdefault("installed", Literal(True))
    fields.setdefault("version", Literal("1.5"))
    return PluginDefinition(**fields)


class Tuned(BaseExtension):
    @classmethod
    def default_settings(cls):
        return {"level": 1, "nested": {"a": 1, "b": 2}}


@pytest.mark.unit
class TestInstallablePlugin:
    """Tests for InstallablePlugin."""

    def test_requires_definition(self):
        with pytest.raises(InvalidDefinitionError):
            InstallablePlugin(plugin_id="demo")

    def test_requires_resolved_definition(self):
        with pytest.raises(InvalidDefinitionError, match="must be resolved"):
            InstallablePlugin(definition=PluginDefinition(id="demo"))

    def test_label_with_version(self):
        plugin = InstallablePlugin(definition=resolved(label="Demo"))
        assert plugin.get_label() == "Demo (1.5)"
        assert plugin.get_label(version=False) == "Demo"
        assert InstallablePlugin(definition=resolved(version=Literal(None))).get_label() == "demo"

    def test_accessors(self):
        plugin = InstallablePlugin(definition=resolved(description="d", url="https://demo.example", weight=3))
        assert plugin.plugin_id == "demo"
        assert plugin.get_description() == "d"
        assert plugin.get_url() == "https://demo.example"
        assert plugin.get_weight() == 3
        assert plugin.is_installed()
        assert repr(plugin) == "InstallablePlugin(plugin_id='demo')"

    def test_weight_override(self):
        plugin = InstallablePlugin({"weight": 7}, definition=resolved(weight=3))
        assert plugin.get_weight() == 7
        assert plugin.get_configuration_overrides() == {"weight": 7}

    def test_installed_library_url(self):
        library = LibraryRequirement(id="lib", installed=True, version=Literal("2"), url="https://lib.example")
        plugin = InstallablePlugin(
            definition=resolved(url="https://demo.example", libraries=(library,), installed_library_id="lib")
        )
        assert plugin.get_url() == "https://lib.example"

    def test_dependencies(self):
        library = LibraryRequirement(
            id="lib",
            installed=True,
            version=Literal("2"),
            package="Markdown",
            requirements=(Requirement("package", "pymdown-extensions"), Requirement("parser", "mistune")),
        )
        plugin = InstallablePlugin(definition=resolved(libraries=(library,), installed_library_id="lib"))
        assert plugin.get_dependencies() == {"packages": ["Markdown", "pymdown-extensions"]}
        sorted_configuration = plugin.get_sorted_configuration()
        assert list(sorted_configuration)[0] == "dependencies"

    def test_no_dependencies(self):
        plugin = InstallablePlugin(definition=resolved())
        assert plugin.get_dependencies() == {}
        assert "dependencies" not in plugin.get_sorted_configuration()


@pytest.mark.unit
class TestExtensionConfiguration:
    """Tests for settings and enabled flags on extensions."""

    def test_defaults(self):
        extension = Tuned(definition=resolved())
        assert extension.is_enabled()
        assert extension.get_settings() == {"level": 1, "nested": {"a": 1, "b": 2}}
        assert extension.get_configuration_overrides() == {}

    def test_host_overrides(self):
        extension = Tuned({"enabled": False, "settings": {"nested": {"b": 3}}}, definition=resolved())
        assert not extension.is_enabled()
        assert extension.get_setting("nested") == {"a": 1, "b": 3}
        assert extension.get_setting_overrides() == {"nested": {"b": 3}}
        assert extension.get_configuration_overrides() == {"enabled": False, "settings": {"nested": {"b": 3}}}

    def test_null_override_restores_default(self):
        extension = Tuned({"settings": {"level": None}}, definition=resolved())
        assert extension.get_setting("level") == 1

    def test_configuration_copies_are_independent(self):
        extension = Tuned(definition=resolved())
        extension.get_settings()["level"] = 99
        extension.get_configuration()["settings"]["level"] = 99
        assert extension.get_setting("level") == 1

    def test_compatibility(self):
        extension = Tuned(definition=resolved(parsers=frozenset({"mistune"})))
        assert extension.parsers == frozenset({"mistune"})
        assert extension.is_compatible("mistune")
        assert not extension.is_compatible("python-markdown")


@pytest.mark.unit
class TestFallbackPlugins:
    """Tests for the plugins behind the ``_broken`` sentinel."""

    def test_fallback_definition(self):
        definition = fallback_definition("parser", MissingParser)
        assert definition.id == FALLBACK_PLUGIN_ID
        assert definition.is_resolved
        assert not definition.is_installed()
        assert not definition.ui

    def test_missing_parser_escapes_paragraphs(self, sample_registry):
        parser = sample_registry.create_instance("does-not-exist")
        assert isinstance(parser, MissingParser)
        assert parser.get_extensions() == []
        assert parser.parse("**a** <b>\n\n\n  second  ") == "<p>**a** &lt;b&gt;</p>\n<p>second</p>"

    def test_missing_extension_attaches_nothing(self, sample_registry):
        extension = sample_registry.extension_registry.create_instance("does-not-exist")
        assert isinstance(extension, MissingExtension)
        assert not extension.is_enabled()
        assert not extension.is_compatible("sample")

    def test_parser_extensions_are_filtered(self, make_registry):
        registry = make_registry(
            extensions=[
                {"id": "on", "installed": True},
                {"id": "off", "installed": True, "class": Tuned},
                {"id": "elsewhere", "installed": True, "parsers": ["other"]},
                {"id": "absent", "installed": False},
            ]
        )
        parser = registry.create_instance("sample", {"extensions": {"off": {"enabled": False}}})
        assert isinstance(parser, SampleParser)
        assert [e.plugin_id for e in parser.get_extensions()] == ["on"]
        assert [e.plugin_id for e in parser.get_extensions(include_disabled=True)] == ["off", "on"]

#  Copyright (c) 2025 Tom Villani, Ph.D.
"""End-to-end conversions through the optional Python-Markdown backend."""

import pytest

from mdcompose import to_html
from mdcompose.registry import default_parser_registry

pytest.importorskip("markdown")


@pytest.fixture(scope="module")
def registry():
    return default_parser_registry()


def render(registry, text, configuration=None):
    return to_html(text, "python-markdown", configuration, registry=registry)


@pytest.mark.integration
class TestPythonMarkdownBackend:
    """Python-Markdown with the extensions it supports."""

    def test_installed(self, registry):
        definition = registry.get("python-markdown")
        assert definition.is_installed()
        assert definition.get_version()

    def test_emphasis(self, registry):
        assert render(registry, "*hello*") == "<p><em>hello</em></p>"

    def test_heading_anchors_run_on_the_tree(self, registry):
        html = render(registry, "# Intro\n\n## Intro")
        assert '<h1 id="intro">Intro</h1>' in html
        assert '<h2 id="intro-1">Intro</h2>' in html

    def test_tables(self, registry):
        html = render(registry, "| a | b |\n|---|---|\n| 1 | 2 |\n")
        assert "<table>" in html
        assert "<td>2</td>" in html

    def test_attribute_lists(self, registry):
        assert render(registry, "# Title {: #custom }") == '<h1 id="custom">Title</h1>'

    def test_mistune_only_syntax_is_left_alone(self, registry):
        assert "<kbd>" not in render(registry, "Press [[Ctrl+C]]")

    def test_named_extensions_setting(self, registry):
        html = render(registry, "Term\n: Definition", {"settings": {"extensions": ["def_list"]}})
        assert "<dl>" in html

    def test_footnotes_do_not_leak_between_calls(self, registry):
        text = "Text[^n]\n\n[^n]: Note."
        assert render(registry, text) == render(registry, text)

    def test_composition(self, registry):
        summary = registry.create_instance("python-markdown").get_environment().summary()
        assert "heading-anchors" in summary["extensions"]
        assert "attributes" in summary["extensions"]
        assert "keyboard" not in summary["extensions"]
        assert summary["document_processors"] == ["heading-anchors"]
        assert summary["diagnostics"] == []

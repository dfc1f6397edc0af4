#  Copyright (c) 2025 Tom Villani, Ph.D.
"""End-to-end conversions through the default registries and the mistune backend."""

import pytest

from mdcompose import to_html
from mdcompose.registry import default_parser_registry

pytest.importorskip("mistune")


@pytest.fixture(scope="module")
def registry():
    return default_parser_registry()


def render(registry, text, **extensions):
    configuration = {"extensions": {name: {"enabled": enabled} for name, enabled in extensions.items()}}
    return to_html(text, "mistune", configuration, registry=registry)


@pytest.mark.integration
class TestCoreMarkdown:
    """Plain Markdown through the default pipeline."""

    def test_emphasis(self, registry):
        assert to_html("*hello*", registry=registry) == "<p><em>hello</em></p>"

    def test_blank(self, registry):
        assert to_html("  \n ", registry=registry) == ""

    def test_raw_html_is_sanitized(self, registry):
        html = render(registry, '<script>alert(1)</script>\n\n<p onclick="x()">ok</p>')
        assert "<script" not in html
        assert "onclick" not in html
        assert "ok" in html

    def test_escape_setting(self, registry):
        html = to_html("<b>x</b>", "mistune", {"settings": {"escape": True}}, registry=registry)
        assert html == "<p>&lt;b&gt;x&lt;/b&gt;</p>"


@pytest.mark.integration
class TestBundledExtensions:
    """Extensions enabled by default."""

    def test_heading_anchors(self, registry):
        html = render(registry, "# Intro\n\n## Intro\n\ntext")
        assert '<h1 id="intro">Intro</h1>' in html
        assert '<h2 id="intro-1">Intro</h2>' in html

    def test_tables(self, registry):
        html = render(registry, "| a | b |\n|---|---|\n| 1 | 2 |\n")
        assert "<table>" in html
        assert "<th>a</th>" in html
        assert "<td>2</td>" in html

    def test_strikethrough(self, registry):
        assert render(registry, "~~gone~~") == "<p><del>gone</del></p>"

    def test_footnotes(self, registry):
        html = render(registry, "Text[^1]\n\n[^1]: The note.\n")
        assert 'href="#fn-1"' in html
        assert "The note." in html

    def test_admonitions(self, registry):
        html = render(registry, "::: warning Careful\nHot *stuff*.\n:::\n\nAfter.")
        assert '<div class="admonition admonition-warning">' in html
        assert '<p class="admonition-title">Careful</p>' in html
        assert "<p>Hot <em>stuff</em>.</p>" in html
        assert html.endswith("<p>After.</p>")

    def test_keyboard(self, registry):
        assert render(registry, "Press [[Ctrl+C]] now") == "<p>Press <kbd>Ctrl</kbd>+<kbd>C</kbd> now</p>"

    def test_links_still_work_next_to_keyboard(self, registry):
        assert render(registry, "[site](/home)") == '<p><a href="/home">site</a></p>'

    def test_disabling_an_extension(self, registry):
        assert "<kbd>" not in render(registry, "Press [[Ctrl+C]]", keyboard=False)


@pytest.mark.integration
class TestOptInExtensions:
    """Extensions that are disabled until the host enables them."""

    def test_typographer(self, registry):
        assert "“" not in render(registry, '"Hi" -- there...')
        assert render(registry, '"Hi" -- there...', typographer=True) == "<p>“Hi” – there…</p>"

    def test_typographer_skips_code(self, registry):
        assert "<code>--</code>" in render(registry, "`--` and --", typographer=True)

    def test_external_links(self, registry):
        html = render(registry, "[out](https://other.org) and [in](/home)", **{"external-links": True})
        assert 'target="_blank"' in html
        assert 'rel="noopener noreferrer"' in html
        assert html.count("target=") == 1
        assert ">out</a>" in html and ">in</a>" in html


@pytest.mark.integration
class TestComposition:
    """The composed mistune environment."""

    def test_summary(self, registry):
        parser = registry.create_instance("mistune")
        summary = parser.get_environment().summary()
        assert summary["parser"] == "mistune"
        assert {"tables", "footnotes", "strikethrough", "heading-anchors", "admonitions", "keyboard"} <= set(
            summary["extensions"]
        )
        assert "typographer" not in summary["extensions"]
        assert "attributes" not in summary["extensions"]
        assert summary["block_parsers"] == ["admonition"]
        assert summary["inline_parsers"] == ["kbd"]
        assert summary["diagnostics"] == []

    def test_environment_is_shared(self, registry):
        first = registry.create_instance("mistune").get_environment()
        second = registry.create_instance("mistune").get_environment()
        assert first is second

#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Unit tests for the public conversion API."""

import pytest
from sample_plugins import BOLD_STARS, SAMPLE_PARSER, SampleParser

from mdcompose.api import compose, convert, to_html
from mdcompose.capabilities import BlockParser, BlockRenderer
from mdcompose.plugins.extension import BaseExtension
from mdcompose.plugins.parser import BaseParser


class Dangerous(BaseExtension, BlockParser, BlockRenderer):
    """Renders markup an author should never get through."""

    block_type = "danger"
    block_pattern = r"!!(?P<danger_text>.+?)!!"

    def parse_block(self, match):
        return {"type": self.block_type, "text": match.group("danger_text")}

    def render_block(self, text, **attrs):
        return f'<p onclick="steal()" style="color: red">{text}<script>alert(1)</script></p>'


class FailingParser(BaseParser):
    def build_converter(self, environment):
        def convert(text):
            raise ValueError("backend failure")

        return convert


@pytest.mark.unit
class TestConvert:
    """Tests for convert()."""

    def test_extension_syntax(self, sample_parser):
        assert convert("**hi**", compose(sample_parser)) == "<strong>hi</strong>"

    @pytest.mark.parametrize("text", ["", "   ", "\n\t\n"])
    def test_blank_input_skips_backend(self, sample_parser, text):
        assert convert(text, compose(sample_parser)) == ""
        assert SampleParser.renders == []

    def test_output_is_trimmed(self, sample_parser):
        assert convert("  plain text  \n", compose(sample_parser)) == "plain text"

    def test_incompatible_extension_does_not_apply(self, make_registry):
        registry = make_registry(extensions=[dict(BOLD_STARS, parsers=["other"])])
        assert registry.create_instance("sample").parse("**hi**") == "**hi**"

    def test_output_is_sanitized(self, make_registry):
        registry = make_registry(extensions=[{"id": "dangerous", "class": Dangerous}])
        html = registry.create_instance("sample").parse("!!hi!!")
        assert html.startswith("<p>hi")
        assert "<script" not in html
        assert "onclick" not in html
        assert "style" not in html

    def test_backend_errors_propagate(self, make_registry):
        registry = make_registry(parsers=[dict(SAMPLE_PARSER, **{"class": FailingParser})])
        environment = compose(registry.create_instance("sample"))
        with pytest.raises(ValueError, match="backend failure"):
            convert("text", environment)

    def test_repeated_calls_agree(self, sample_parser):
        environment = compose(sample_parser)
        assert {convert("**x**", environment) for _ in range(5)} == {"<strong>x</strong>"}


@pytest.mark.unit
class TestToHtml:
    """Tests for to_html() with an explicit registry."""

    def test_first_installed_parser(self, sample_registry):
        assert to_html("**hi**", registry=sample_registry) == "<strong>hi</strong>"

    def test_configuration_is_passed(self, sample_registry):
        configuration = {"extensions": {"bold-stars": {"enabled": False}}}
        assert to_html("**hi**", "sample", configuration, registry=sample_registry) == "**hi**"

    def test_unknown_parser_escapes(self, sample_registry):
        assert to_html("<b>hi</b>\n\nthere", "nope", registry=sample_registry) == (
            "<p>&lt;b&gt;hi&lt;/b&gt;</p>\n<p>there</p>"
        )

    def test_parse_with_locale(self, sample_parser):
        assert sample_parser.parse("**hi**", locale="de") == "<strong>hi</strong>"

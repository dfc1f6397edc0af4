"""Unit tests for capability declaration and verification."""

import pytest

from mdcompose.capabilities import (
    BlockParser,
    BlockRenderer,
    Capability,
    DocumentProcessor,
    InlineParser,
    SettingsBearing,
    declared_capabilities,
    verify_capability,
)
from mdcompose.exceptions import ExtensionContractViolation


class Processor(DocumentProcessor):
    def process_document(self, document):
        pass


class Rule(BlockParser, BlockRenderer):
    block_type = "rule"
    block_pattern = r"-{3,}$"

    def parse_block(self, match):
        return {"type": self.block_type}

    def render_block(self, text, **attrs):
        return "<hr>"


class Listed:
    """Declares its roles by name only."""

    plugin_id = "listed"
    capabilities = ["inline-processor", DocumentProcessor]

    def process_inline(self, tokens):
        return tokens

    def process_document(self, document):
        pass


def block_rule(pattern, block_type="demo"):
    class Demo(BlockParser):
        def parse_block(self, match):
            return {"type": block_type}

    Demo.block_type = block_type
    Demo.block_pattern = pattern
    return Demo()


@pytest.mark.unit
class TestDeclaredCapabilities:
    """Tests for declared_capabilities."""

    def test_markers(self):
        assert declared_capabilities(Processor()) == {Capability.DOCUMENT_PROCESSOR}
        assert declared_capabilities(Rule()) == {Capability.BLOCK_PARSER, Capability.BLOCK_RENDERER}

    def test_explicit_names_and_marker_classes(self):
        assert declared_capabilities(Listed()) == {Capability.INLINE_PROCESSOR, Capability.DOCUMENT_PROCESSOR}

    def test_single_string(self):
        class Single:
            capabilities = "block-renderer"

        assert declared_capabilities(Single()) == {Capability.BLOCK_RENDERER}

    def test_nothing_declared(self):
        assert declared_capabilities(object()) == frozenset()

    def test_unknown_capability(self):
        class Confused:
            plugin_id = "confused"
            capabilities = ["teleport"]

        with pytest.raises(ExtensionContractViolation) as exc_info:
            declared_capabilities(Confused())
        assert exc_info.value.extension_id == "confused"
        assert exc_info.value.capability == "teleport"

    def test_attachment_order(self):
        assert list(Capability)[:2] == [Capability.SETTINGS_BEARING, Capability.ENVIRONMENT_AWARE]


@pytest.mark.unit
class TestVerifyCapability:
    """Tests for verify_capability."""

    def test_valid_roles(self):
        verify_capability(Rule(), Capability.BLOCK_PARSER)
        verify_capability(Rule(), Capability.BLOCK_RENDERER)
        verify_capability(Listed(), Capability.INLINE_PROCESSOR)

    def test_missing_method(self):
        class Liar:
            capabilities = ["document-processor"]
            process_document = "not a method"

        with pytest.raises(ExtensionContractViolation) as exc_info:
            verify_capability(Liar(), Capability.DOCUMENT_PROCESSOR)
        assert "process_document" in str(exc_info.value)
        assert "Liar" in str(exc_info.value)

    def test_empty_pattern(self):
        with pytest.raises(ExtensionContractViolation, match="block_pattern"):
            verify_capability(block_rule(""), Capability.BLOCK_PARSER)

    def test_empty_type(self):
        with pytest.raises(ExtensionContractViolation, match="block_type"):
            verify_capability(block_rule("x+", block_type=""), Capability.BLOCK_PARSER)

    def test_invalid_pattern(self):
        with pytest.raises(ExtensionContractViolation, match="invalid pattern"):
            verify_capability(block_rule("(unclosed"), Capability.BLOCK_PARSER)

    def test_positional_backreference(self):
        with pytest.raises(ExtensionContractViolation, match="backreferences"):
            verify_capability(block_rule(r"(a)\1"), Capability.BLOCK_PARSER)

    def test_named_backreference(self):
        verify_capability(block_rule(r"(?P<demo_fence>`{3,})(?P=demo_fence)"), Capability.BLOCK_PARSER)

    def test_inline_pattern_checked(self):
        class Broken(InlineParser):
            inline_type = "broken"
            inline_pattern = "[a-"

            def parse_inline(self, match):
                return {"type": "broken"}

        with pytest.raises(ExtensionContractViolation) as exc_info:
            verify_capability(Broken(), Capability.INLINE_PARSER)
        assert exc_info.value.capability == "inline-parser"

    def test_settings_must_be_mapping(self):
        class BadSettings(SettingsBearing):
            def get_settings(self):
                return ["not", "a", "mapping"]

        with pytest.raises(ExtensionContractViolation, match="mapping"):
            verify_capability(BadSettings(), Capability.SETTINGS_BEARING)

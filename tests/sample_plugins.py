"""Small plugins shared by the test suite.

``sample`` is a toy backend that understands nothing but the block rules
of its extensions and escapes everything else. ``bold-stars`` teaches it
``**text**``.
"""

import html
import re

from mdcompose.capabilities import BlockParser, BlockRenderer, DocumentProcessor, InlineParser, InlineRenderer
from mdcompose.plugins.extension import BaseExtension
from mdcompose.plugins.parser import BaseParser


class SampleParser(BaseParser):
    """Toy backend; records every text it renders in ``renders``."""

    renders: list = []

    def build_converter(self, environment):
        rules = [(re.compile(rule.block_pattern, re.MULTILINE), rule) for rule in environment.block_parsers]

        def convert(text):
            SampleParser.renders.append(text)
            source = text.strip()
            for pattern, rule in rules:
                match = pattern.fullmatch(source)
                if match is None:
                    continue
                token = rule.parse_block(match)
                renderer = environment.block_renderers.get(token["type"])
                if renderer is not None:
                    return renderer.render_block(token.get("text", ""), **token.get("attrs", {}))
            document = [source]
            for processor in environment.document_processors:
                processor.process_document(document)
            return html.escape(document[0])

        return convert


class BoldStars(BaseExtension, BlockParser, BlockRenderer):
    block_type = "bold"
    block_pattern = r"\*\*(?P<bold_text>.+?)\*\*"

    def parse_block(self, match):
        return {"type": self.block_type, "text": match.group("bold_text")}

    def render_block(self, text, **attrs):
        return f"<strong>{text}</strong>"


class LoudBold(BaseExtension, BlockRenderer):
    """Second renderer for ``bold`` nodes, used to exercise overrides."""

    block_type = "bold"

    def render_block(self, text, **attrs):
        return f"<strong>{text.upper()}</strong>"


class Shouting(BaseExtension, DocumentProcessor):
    """Upper-cases the whole document."""

    @classmethod
    def default_settings(cls):
        return {"shout_suffix": "!"}

    def process_document(self, document):
        document[0] = document[0].upper() + self.get_setting("shout_suffix", "")


class Hybrid(BaseExtension, BlockParser, BlockRenderer, InlineParser, InlineRenderer):
    """Declares block and inline roles at once."""

    block_type = "hybrid"
    block_pattern = r"%%(?P<hybrid_text>.+?)%%"
    inline_type = "hybrid"
    inline_pattern = r"%(?P<hybrid_inline>[^%]+)%"

    def parse_block(self, match):
        return {"type": self.block_type, "text": match.group("hybrid_text")}

    def render_block(self, text, **attrs):
        return f"<mark>{text}</mark>"

    def parse_inline(self, match):
        return {"type": self.inline_type, "raw": match.group("hybrid_inline")}

    def render_inline(self, text, **attrs):
        return f"<mark>{text}</mark>"


class Pretender(BaseExtension):
    """Claims to parse blocks but provides neither a pattern nor a method."""

    capabilities = ["block-parser"]
    block_type = "pretend"


class Exploding(BaseExtension, DocumentProcessor):
    """Fails while being attached."""

    def get_settings(self):
        raise RuntimeError("settings are on fire")

    def process_document(self, document):
        pass


SAMPLE_PARSER = {
    "id": "sample",
    "label": "Sample",
    "installed": True,
    "version": "1.0",
    "class": SampleParser,
}

BOLD_STARS = {
    "id": "bold-stars",
    "label": "Bold stars",
    "installed": True,
    "class": BoldStars,
    "parsers": ["sample"],
}

SHOUTING = {
    "id": "shouting",
    "label": "Shouting",
    "class": Shouting,
    "parsers": ["sample"],
}

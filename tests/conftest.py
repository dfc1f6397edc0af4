"""Pytest configuration and shared fixtures for the mdcompose test suite.

Registries built here only see the records handed to them through
:class:`~mdcompose.registry.StaticManifestSource`, and each gets its own
cache, so tests never depend on what happens to be installed.
"""

from pathlib import Path

import pytest
from sample_plugins import BOLD_STARS, SAMPLE_PARSER, SampleParser

from mdcompose.cache import Cache
from mdcompose.registry import ParserRegistry, StaticManifestSource, extension_registry

# Configure Hypothesis for property-based testing
try:
    import os

    from hypothesis import Verbosity, settings

    settings.register_profile("ci", max_examples=200, verbosity=Verbosity.verbose)
    settings.register_profile("dev", max_examples=50)
    settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))
except ImportError:
    # Hypothesis not installed, property tests will be skipped
    pass


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests - fast, isolated component tests")
    config.addinivalue_line("markers", "integration: Integration tests - real backends end to end")
    config.addinivalue_line("markers", "cli: Tests related to command-line interface")


class FakeClock:
    """Manually advanced clock for cache expiry tests."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _reset_sample_renders():
    SampleParser.renders.clear()
    yield
    SampleParser.renders.clear()


@pytest.fixture
def make_registry():
    """Factory for a parser registry wired to an extension registry.

    Parameters of the returned callable
    -----------------------------------
    parsers : sequence of manifest records
    extensions : sequence of manifest records
    cache : Cache, optional

    """

    def factory(parsers=(SAMPLE_PARSER,), extensions=(BOLD_STARS,), cache=None) -> ParserRegistry:
        cache = cache if cache is not None else Cache()
        extensions_registry = extension_registry([StaticManifestSource(extensions)], cache=cache)
        return ParserRegistry([StaticManifestSource(parsers)], extension_registry=extensions_registry, cache=cache)

    return factory


@pytest.fixture
def sample_registry(make_registry) -> ParserRegistry:
    return make_registry()


@pytest.fixture
def sample_parser(sample_registry):
    return sample_registry.create_instance("sample")


@pytest.fixture
def markdown_file(tmp_path: Path) -> Path:
    path = tmp_path / "doc.md"
    path.write_text("# Title\n\nSome *text*.\n", encoding="utf-8")
    return path


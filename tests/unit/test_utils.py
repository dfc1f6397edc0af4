#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Unit tests for the logging helpers and dependency decorators."""

import logging

import pytest

from mdcompose.exceptions import DependencyError
from mdcompose.logging_utils import configure_logging, resolve_level, sanitize_for_log
from mdcompose.utils.decorators import debug_timer, find_dependency_problems, requires_dependencies


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.unit
class TestLoggingUtils:
    """Tests for sanitize_for_log and configure_logging."""

    def test_sanitize_for_log(self):
        assert sanitize_for_log("evil\nINFO: forged\r") == "evil\\nINFO: forged\\r"
        assert sanitize_for_log(42) == "42"

    @pytest.mark.parametrize(
        "level, expected",
        [(logging.DEBUG, logging.DEBUG), ("warning", logging.WARNING), ("ERROR", logging.ERROR), ("bogus", logging.INFO)],
    )
    def test_resolve_level(self, level, expected):
        assert resolve_level(level) == expected

    def test_plain_console_handler(self, restore_root_logger):
        root = configure_logging("debug")
        assert root is restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert root.handlers[0].formatter._fmt == "%(levelname)s: %(message)s"

    def test_trace_mode_and_log_file(self, restore_root_logger, tmp_path):
        log_file = tmp_path / "mdcompose.log"
        root = configure_logging(logging.INFO, log_file=str(log_file), trace_mode=True)
        assert len(root.handlers) == 2
        assert "%(name)s" in root.handlers[0].formatter._fmt
        logging.getLogger("mdcompose.test").warning("written")
        for handler in root.handlers:
            handler.flush()
        content = log_file.read_text(encoding="utf-8")
        assert "Logging to file" in content
        assert "[mdcompose.test] written" in content

    def test_unwritable_log_file(self, restore_root_logger, tmp_path):
        root = configure_logging("INFO", log_file=str(tmp_path / "missing" / "x.log"))
        assert len(root.handlers) == 1


@pytest.mark.unit
class TestDependencyDecorators:
    """Tests for requires_dependencies and debug_timer."""

    def test_satisfied(self):
        @requires_dependencies("demo", [("packaging", "packaging", ">=1.0")])
        def build():
            return "built"

        assert build() == "built"

    def test_missing_package(self):
        @requires_dependencies("demo", [("no-such-dist-xyz", "no_such_module_xyz", ">=1.0")])
        def build():
            return "built"

        with pytest.raises(DependencyError) as exc_info:
            build()
        error = exc_info.value
        assert error.plugin_id == "demo"
        assert error.missing_packages == [("no-such-dist-xyz", ">=1.0")]
        assert isinstance(error.original_import_error, ImportError)
        assert 'pip install "no-such-dist-xyz>=1.0"' in str(error)

    def test_version_mismatch(self):
        missing, mismatches, error = find_dependency_problems([("packaging", "packaging", ">=9999")])
        assert missing == []
        assert error is None
        assert mismatches[0][:2] == ("packaging", ">=9999")

    def test_debug_timer(self, caplog):
        logger = logging.getLogger("mdcompose.timing")
        with caplog.at_level(logging.DEBUG, logger="mdcompose.timing"):
            with debug_timer(logger, "Composing"):
                pass
        assert any(record.getMessage().startswith("Composing took ") for record in caplog.records)

    def test_debug_timer_silent_above_debug(self, caplog):
        logger = logging.getLogger("mdcompose.timing")
        with caplog.at_level(logging.INFO, logger="mdcompose.timing"):
            with debug_timer(logger, "Composing"):
                pass
        assert caplog.records == []

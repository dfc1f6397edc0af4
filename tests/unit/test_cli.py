#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Unit tests for the command-line interface."""

import argparse
import io
import json
import logging

import pytest

from mdcompose.cli import (
    EXIT_FILE_ERROR,
    EXIT_SUCCESS,
    EXIT_VALIDATION_ERROR,
    check_rich_available,
    collect_plugin_rows,
    create_parser,
    format_plugins_text,
    main,
    should_use_rich_output,
)

PLUGIN_MANIFEST = {
    "parsers": [
        {"id": "sample", "label": "Sample", "class": "sample_plugins.SampleParser", "installed": True, "version": "1.0"}
    ],
    "extensions": [
        {"id": "bold-stars", "class": "sample_plugins.BoldStars", "installed": True, "parsers": ["sample"]},
        {
            "id": "needs-lib",
            "label": "Needs a library",
            "parsers": ["sample"],
            "libraries": [{"id": "ghost", "object": "no_such_package_xyz.Ghost", "package": "ghost-lib"}],
        },
    ],
}


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """main() reconfigures the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def config_file(tmp_path):
    (tmp_path / "plugins.json").write_text(json.dumps(PLUGIN_MANIFEST), encoding="utf-8")
    path = tmp_path / "mdcompose.toml"
    path.write_text('default_parser = "sample"\nmanifests = ["plugins.json"]\n', encoding="utf-8")
    return path


@pytest.mark.cli
class TestArgumentParsing:
    """Tests for create_parser."""

    def test_convert_defaults(self):
        args = create_parser().parse_args(["convert"])
        assert args.input == "-"
        assert args.parser_id is None
        assert args.log_level == "WARNING"

    def test_plugins_options(self):
        args = create_parser().parse_args(["plugins", "--family", "extensions", "--all", "--json"])
        assert args.family == "extensions"
        assert args.all and args.json

    def test_json_and_rich_are_exclusive(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["plugins", "--json", "--rich"])

    def test_no_command(self, capsys):
        assert main([]) == EXIT_VALIDATION_ERROR
        assert "usage" in capsys.readouterr().out


@pytest.mark.cli
class TestConvertCommand:
    """Tests for `mdcompose convert`."""

    def test_file_to_output(self, tmp_path, config_file):
        source = tmp_path / "doc.md"
        source.write_text("**hi**", encoding="utf-8")
        output = tmp_path / "doc.html"
        assert main(["convert", str(source), "--config", str(config_file), "-o", str(output)]) == EXIT_SUCCESS
        assert output.read_text(encoding="utf-8") == "<strong>hi</strong>\n"

    def test_stdin_to_stdout(self, config_file, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO("**from stdin**"))
        assert main(["convert", "-", "--config", str(config_file)]) == EXIT_SUCCESS
        assert capsys.readouterr().out == "<strong>from stdin</strong>\n"

    def test_explicit_parser(self, tmp_path, config_file, capsys):
        source = tmp_path / "doc.md"
        source.write_text("**hi**", encoding="utf-8")
        assert main(["convert", str(source), "--parser", "nope", "--config", str(config_file)]) == EXIT_SUCCESS
        assert capsys.readouterr().out == "<p>**hi**</p>\n"

    def test_missing_file(self, tmp_path, config_file, capsys):
        assert main(["convert", str(tmp_path / "missing.md"), "--config", str(config_file)]) == EXIT_FILE_ERROR
        assert "missing.md" in capsys.readouterr().err

    def test_missing_file_with_parser(self, tmp_path, config_file):
        args = ["convert", str(tmp_path / "missing.md"), "--parser", "sample", "--config", str(config_file)]
        assert main(args) == EXIT_FILE_ERROR

    def test_missing_config(self, tmp_path, capsys):
        assert main(["convert", "--config", str(tmp_path / "nope.toml")]) == EXIT_VALIDATION_ERROR
        assert "does not exist" in capsys.readouterr().err


@pytest.mark.cli
class TestPluginsCommand:
    """Tests for `mdcompose plugins`."""

    def test_json(self, config_file, capsys):
        assert main(["plugins", "--json", "--config", str(config_file)]) == EXIT_SUCCESS
        data = json.loads(capsys.readouterr().out)
        assert data["family"] == "parsers"
        sample = next(row for row in data["plugins"] if row["id"] == "sample")
        assert sample["version"] == "1.0"
        assert sample["installed"] is True

    def test_extensions_text(self, config_file, capsys):
        assert main(["plugins", "--family", "extensions", "--all", "--config", str(config_file)]) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "bold-stars" in out
        assert "Needs a library [not installed]" in out
        assert "Install with: pip install ghost-lib" in out

    def test_uninstalled_are_hidden_by_default(self, config_file, capsys):
        main(["plugins", "--family", "extensions", "--json", "--config", str(config_file)])
        ids = [row["id"] for row in json.loads(capsys.readouterr().out)["plugins"]]
        assert "bold-stars" in ids
        assert "needs-lib" not in ids


@pytest.mark.cli
class TestOutputHelpers:
    """Tests for listing helpers."""

    def test_rich_requires_flag(self):
        assert not should_use_rich_output(argparse.Namespace(rich=False, force_rich=True))

    def test_rich_requires_tty(self):
        assert not should_use_rich_output(argparse.Namespace(rich=True, force_rich=False), io.StringIO())

    def test_forced_rich(self):
        assert should_use_rich_output(argparse.Namespace(rich=True, force_rich=True)) == check_rich_available()

    def test_empty_listing(self):
        assert format_plugins_text([]) == "No plugins found."

    def test_rows_from_registry(self, make_registry):
        registry = make_registry(
            extensions=[
                {"id": "plain", "label": "Plain", "installed": True, "version": "2.0"},
                {
                    "id": "picky",
                    "installed": True,
                    "parsers": ["sample"],
                    "libraries": [{"id": "glue", "requirements": ["parser:sample", "parser:other"]}],
                },
            ]
        )
        rows = {row["id"]: row for row in collect_plugin_rows(registry.extension_registry)}
        assert rows["plain"]["label"] == "Plain"
        assert rows["plain"]["version"] == "2.0"
        assert rows["plain"]["preferred_library"] is None
        assert rows["picky"]["parsers"] == ["sample"]
        assert rows["picky"]["unmet_requirements"] == {"glue": ["other"]}
        text = format_plugins_text([rows["plain"], rows["picky"]])
        assert "Plain (2.0) [installed]" in text
        assert "glue: other" in text

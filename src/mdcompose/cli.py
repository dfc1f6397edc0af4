#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/cli.py
"""Command-line interface for mdcompose.

Examples
--------
Convert a file with the default parser::

    $ mdcompose convert README.md

Convert stdin with a specific parser and write to a file::

    $ cat notes.md | mdcompose convert - --parser python-markdown --output notes.html

List installed extensions as a table::

    $ mdcompose plugins --family extensions --rich

Include plugins whose libraries are missing::

    $ mdcompose plugins --all --json

"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional, TextIO

from mdcompose.exceptions import ConfigurationError, DependencyError, MdComposeError, SourceUnavailableError
from mdcompose.logging_utils import configure_logging
from mdcompose.markdown import Markdown
from mdcompose.registry import PluginRegistry

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_DEPENDENCY_ERROR = 2
EXIT_VALIDATION_ERROR = 3
EXIT_FILE_ERROR = 4


def check_rich_available() -> bool:
    try:
        import rich  # noqa: F401
    except ImportError:
        return False
    return True


def should_use_rich_output(args: argparse.Namespace, stream: Optional[TextIO] = None) -> bool:
    """Use rich tables when ``--rich`` is set, rich is installed, and the stream is a TTY."""
    if not getattr(args, "rich", False) or not check_rich_available():
        return False
    if getattr(args, "force_rich", False):
        return True
    isatty = getattr(stream or sys.stdout, "isatty", None)
    return bool(callable(isatty) and isatty())


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mdcompose", description="Convert Markdown with composable parser plugins")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: WARNING)",
    )
    parser.add_argument("--log-file", help="Also write log output to this file")
    parser.add_argument("--trace", action="store_true", help="Verbose logging with timestamps and logger names")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    convert_parser = subparsers.add_parser("convert", help="Convert Markdown to HTML")
    convert_parser.add_argument("input", nargs="?", default="-", help="Markdown file, or '-' for stdin")
    convert_parser.add_argument("--parser", dest="parser_id", help="Parser id (default: configured or first installed)")
    convert_parser.add_argument("--output", "-o", help="Write HTML to this file instead of stdout")
    convert_parser.add_argument("--config", help="Configuration file (default: discovered from the working directory)")

    plugins_parser = subparsers.add_parser("plugins", help="List parser or extension plugins")
    plugins_parser.add_argument("--family", choices=["parsers", "extensions"], default="parsers")
    plugins_parser.add_argument("--all", action="store_true", help="Include plugins that are not installed")
    plugins_parser.add_argument("--config", help="Configuration file (default: discovered from the working directory)")
    output_group = plugins_parser.add_mutually_exclusive_group()
    output_group.add_argument("--json", action="store_true", help="Output results as JSON")
    output_group.add_argument("--rich", action="store_true", help="Use rich table formatting")
    plugins_parser.add_argument("--force-rich", action="store_true", help=argparse.SUPPRESS)

    return parser


# =============================================================================
# convert
# =============================================================================


def run_convert(args: argparse.Namespace, service: Markdown) -> int:
    if args.input == "-":
        parsed = service.parse(sys.stdin.read(), parser=args.parser_id)
    elif args.parser_id:
        path = Path(args.input)
        if not path.is_file():
            print(f"Error: File not found: {args.input}", file=sys.stderr)
            return EXIT_FILE_ERROR
        parsed = service.parse(path.read_text(encoding="utf-8"), parser=args.parser_id)
    else:
        parsed = service.load_path(args.input)

    if args.output:
        Path(args.output).write_text(parsed.html + "\n", encoding="utf-8")
        logger.info(f"Wrote {args.output}")
    else:
        print(parsed.html)
    return EXIT_SUCCESS


# =============================================================================
# plugins
# =============================================================================


def collect_plugin_rows(registry: PluginRegistry, include_unavailable: bool = False) -> list[dict[str, Any]]:
    """Describe each plugin of ``registry`` for listing."""
    rows = []
    for definition in registry.list(include_unavailable=include_unavailable):
        preferred = definition.get_preferred_library()
        row: dict[str, Any] = {
            "id": definition.id,
            "label": definition.get_label(),
            "version": definition.get_version(),
            "installed": definition.is_installed(),
            "weight": definition.weight,
            "preferred_library": preferred.id if preferred else None,
            "preferred_library_installed": definition.is_preferred_library_installed() if preferred else None,
        }
        if definition.parsers:
            row["parsers"] = sorted(definition.parsers)
        unmet = registry.unmet_requirements(definition.id)
        if unmet:
            row["unmet_requirements"] = unmet
        if not definition.is_installed() and preferred is not None:
            row["install_command"] = preferred.get_install_command()
        rows.append(row)
    return rows


def print_plugins_rich(family: str, rows: list[dict[str, Any]]) -> None:
    from rich.console import Console
    from rich.table import Table

    console = Console()
    table = Table(title=f"mdcompose {family}")
    table.add_column("Id", style="cyan", no_wrap=True)
    table.add_column("Label", style="white")
    table.add_column("Version", style="magenta")
    table.add_column("Status", style="white")
    table.add_column("Preferred library", style="yellow")

    for row in rows:
        status = "[green]OK[/green]" if row["installed"] else "[red]MISSING[/red]"
        if row.get("unmet_requirements"):
            status += " [yellow](unmet requirements)[/yellow]"
        if row["preferred_library"] is None:
            preferred = "[dim]-[/dim]"
        elif row["preferred_library_installed"]:
            preferred = f"{row['preferred_library']} [green]OK[/green]"
        else:
            preferred = f"{row['preferred_library']} [red]MISSING[/red]"
        table.add_row(row["id"], row["label"], row["version"] or "-", status, preferred)

    console.print(table)


def format_plugins_text(rows: list[dict[str, Any]]) -> str:
    if not rows:
        return "No plugins found."
    lines = []
    for row in rows:
        label = f"{row['label']} ({row['version']})" if row["version"] else row["label"]
        status = "installed" if row["installed"] else "not installed"
        lines.append(f"{row['id']:<20} {label} [{status}]")
        for library_id, problems in row.get("unmet_requirements", {}).items():
            for problem in problems:
                lines.append(f"{'':<20}   {library_id}: {problem}")
        if "install_command" in row:
            lines.append(f"{'':<20}   Install with: {row['install_command']}")
    return "\n".join(lines)


def run_plugins(args: argparse.Namespace, service: Markdown) -> int:
    if args.family == "parsers":
        registry = service.parser_registry
    else:
        registry = service.parser_registry.extension_registry
    if registry is None:
        print("Error: no extension registry is configured", file=sys.stderr)
        return EXIT_ERROR

    rows = collect_plugin_rows(registry, include_unavailable=args.all)
    if args.json:
        print(json.dumps({"family": args.family, "plugins": rows}, indent=2))
    elif should_use_rich_output(args):
        print_plugins_rich(args.family, rows)
    else:
        print(format_plugins_text(rows))
    return EXIT_SUCCESS


def main(argv: Optional[list[str]] = None) -> int:
    """Execute the mdcompose CLI.

    Parameters
    ----------
    argv : list of str, optional
        Command line arguments; ``sys.argv[1:]`` when omitted

    Returns
    -------
    int
        Exit code

    """
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level, log_file=args.log_file, trace_mode=args.trace)

    if args.command is None:
        parser.print_help()
        return EXIT_VALIDATION_ERROR

    try:
        with Markdown.create(args.config) as service:
            if args.command == "convert":
                return run_convert(args, service)
            return run_plugins(args, service)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR
    except SourceUnavailableError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FILE_ERROR
    except DependencyError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_DEPENDENCY_ERROR
    except MdComposeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())

#  Copyright (c) 2025 Tom Villani, Ph.D.

"""Host configuration discovery and loading.

The host configuration supplies the user overrides consumed by the
configuration overlay: which parser is the default, per-parser and
per-extension settings, extra manifest files and the lifetime of cached
output. mdcompose reads it but never writes it.

A configuration file looks like this (TOML)::

    default_parser = "mistune"
    manifests = ["plugins.yaml"]
    cache_max_age = 3600

    [parsers.mistune.settings]
    escape = false

    [parsers.mistune.extensions.typographer]
    enabled = true

"""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import-not-found,unused-ignore]

import yaml

from mdcompose.constants import CONFIG_ENV_VAR, CONFIG_FILENAMES, PYPROJECT_TOOL_SECTION
from mdcompose.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _read_toml(path: Path) -> Any:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _read_json(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _read_yaml(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


_READERS: Dict[str, Callable[[Path], Any]] = {
    ".toml": _read_toml,
    ".json": _read_json,
    ".yaml": _read_yaml,
    ".yml": _read_yaml,
}


def read_structured_file(path: Union[Path, str]) -> Dict[str, Any]:
    """Read a TOML, JSON or YAML file whose root must be a mapping.

    Parameters
    ----------
    path : Path or str
        File to read; the format follows the extension

    Returns
    -------
    dict
        File contents (an empty YAML file yields an empty dict)

    Raises
    ------
    ConfigurationError
        If the file is missing, has an unknown extension, cannot be parsed,
        or its root is not a mapping

    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Configuration file does not exist: {path}", config_path=str(path))

    reader = _READERS.get(path.suffix.lower())
    if reader is None:
        raise ConfigurationError(
            f"Unsupported config file format: {path.suffix}. Use .json, .toml, or .yaml", config_path=str(path)
        )

    try:
        data = reader(path)
    except (tomllib.TOMLDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Invalid {path.suffix.lstrip('.').upper()} in {path}: {e}", str(path), e) from e
    except OSError as e:
        raise ConfigurationError(f"Error reading config file {path}: {e}", str(path), e) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {path} must contain a mapping at root level, got {type(data).__name__}", str(path)
        )
    return data


def _load_pyproject_section(pyproject_path: Path) -> Dict[str, Any]:
    """Load the ``[tool.mdcompose]`` table from pyproject.toml (empty when absent)."""
    data = read_structured_file(pyproject_path)
    config = data.get("tool", {}).get(PYPROJECT_TOOL_SECTION, {})
    if not isinstance(config, dict):
        raise ConfigurationError(
            f"[tool.{PYPROJECT_TOOL_SECTION}] section in {pyproject_path} must be a table, "
            f"got {type(config).__name__}",
            str(pyproject_path),
        )
    return config


def load_config_file(config_path: Union[Path, str]) -> Dict[str, Any]:
    """Load configuration from a JSON, TOML, YAML or pyproject.toml file.

    Examples
    --------
    >>> config = load_config_file(".mdcompose.toml")
    >>> config.get("default_parser")
    'mistune'

    """
    config_path = Path(config_path)
    if config_path.name.lower() == "pyproject.toml":
        return _load_pyproject_section(config_path)
    return read_structured_file(config_path)


def find_config_in_parents(start_dir: Optional[Path] = None) -> Optional[Path]:
    """Find the nearest configuration file walking up from ``start_dir``.

    In each directory the dedicated files are checked first, then a
    pyproject.toml that has a ``[tool.mdcompose]`` table. Unreadable
    pyproject files are skipped.
    """
    current = (start_dir or Path.cwd()).resolve()

    while True:
        for filename in CONFIG_FILENAMES:
            candidate = current / filename
            if candidate.is_file():
                return candidate

        pyproject_path = current / "pyproject.toml"
        if pyproject_path.is_file():
            try:
                if _load_pyproject_section(pyproject_path):
                    return pyproject_path
            except ConfigurationError as e:
                logger.debug(f"Skipping unreadable {pyproject_path}: {e}")

        if current.parent == current:
            return None
        current = current.parent


def discover_config_file(start_dir: Optional[Path] = None) -> Optional[Path]:
    """Discover a configuration file in the parent chain, then the home directory."""
    found = find_config_in_parents(start_dir)
    if found:
        return found

    home = Path.home()
    for filename in CONFIG_FILENAMES:
        candidate = home / filename
        if candidate.is_file():
            return candidate
    return None


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge two configuration dictionaries; nested dictionaries merge recursively.

    Examples
    --------
    >>> merge_configs({"parsers": {"mistune": {"weight": 1}}}, {"parsers": {"mistune": {"settings": {}}}})
    {'parsers': {'mistune': {'weight': 1, 'settings': {}}}}

    """
    result = base.copy()
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value
    return result


def find_config_path(explicit_path: Optional[str] = None, env_var_path: Optional[str] = None) -> Optional[Path]:
    """Return the configuration file chosen by priority, or None when there is none."""
    if explicit_path:
        return Path(explicit_path)

    env_var_path = env_var_path or os.environ.get(CONFIG_ENV_VAR)
    if env_var_path:
        return Path(env_var_path)

    discovered = discover_config_file()
    if discovered:
        logger.debug(f"Using configuration file {discovered}")
    return discovered


def load_config_with_priority(
    explicit_path: Optional[str] = None, env_var_path: Optional[str] = None
) -> Dict[str, Any]:
    """Load configuration by priority: explicit path, ``MDCOMPOSE_CONFIG``, discovery.

    Parameters
    ----------
    explicit_path : str, optional
        Path given with ``--config``
    env_var_path : str, optional
        Path from the environment; read from ``MDCOMPOSE_CONFIG`` when omitted

    Returns
    -------
    dict
        Loaded configuration, empty when nothing was found

    """
    path = find_config_path(explicit_path, env_var_path)
    return load_config_file(path) if path is not None else {}


@dataclass(frozen=True)
class MarkdownSettings:
    """Typed view of the host configuration.

    Parameters
    ----------
    default_parser : str, optional
        Parser used when none is requested
    parsers : dict
        Parser id to configuration overrides; each may hold an
        ``extensions`` mapping of extension id to overrides
    manifests : list of str
        Extra manifest files to discover plugins from
    cache_max_age : float, optional
        Lifetime of cached parsed documents in seconds
    base_dir : Path, optional
        Directory relative manifest paths are resolved against

    """

    default_parser: Optional[str] = None
    parsers: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    manifests: list[str] = field(default_factory=list)
    cache_max_age: Optional[float] = None
    base_dir: Optional[Path] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> MarkdownSettings:
        """Validate a raw configuration mapping.

        Raises
        ------
        ConfigurationError
            If a known key has the wrong type

        """
        default_parser = data.get("default_parser")
        if default_parser is not None and not isinstance(default_parser, str):
            raise ConfigurationError("'default_parser' must be a string")

        parsers = data.get("parsers") or {}
        if not isinstance(parsers, dict) or not all(isinstance(v, dict) for v in parsers.values()):
            raise ConfigurationError("'parsers' must map parser ids to tables")

        manifests = data.get("manifests") or []
        if isinstance(manifests, str):
            manifests = [manifests]
        if not isinstance(manifests, list):
            raise ConfigurationError("'manifests' must be a list of paths")

        cache_max_age = data.get("cache_max_age")
        if cache_max_age is not None:
            try:
                cache_max_age = float(cache_max_age)
            except (TypeError, ValueError) as e:
                raise ConfigurationError("'cache_max_age' must be a number of seconds", original_error=e) from e

        unknown = set(data) - {"default_parser", "parsers", "manifests", "cache_max_age"}
        if unknown:
            logger.debug(f"Ignoring unknown configuration keys: {', '.join(sorted(unknown))}")

        return cls(
            default_parser=default_parser,
            parsers=parsers,
            manifests=[str(m) for m in manifests],
            cache_max_age=cache_max_age,
            base_dir=base_dir,
        )

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> MarkdownSettings:
        """Load settings by priority; relative manifests resolve next to the chosen file."""
        path = find_config_path(config_path)
        if path is None:
            return cls()
        return cls.from_dict(load_config_file(path), base_dir=path.resolve().parent)

    def parser_configuration(self, parser_id: str) -> Dict[str, Any]:
        """Return the overrides for ``parser_id`` (empty when unconfigured)."""
        return dict(self.parsers.get(parser_id) or {})

    def manifest_paths(self) -> list[Path]:
        """Manifest paths, relative ones resolved against ``base_dir`` (or the cwd)."""
        base = self.base_dir or Path.cwd()
        return [Path(m) if Path(m).is_absolute() else base / m for m in self.manifests]

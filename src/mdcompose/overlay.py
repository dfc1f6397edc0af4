#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/overlay.py
"""Configuration overlay for plugin instances.

A plugin instance's effective configuration is its computed default
configuration with the host's overrides laid on top. Only deviations from
the defaults are ever meant to be persisted, so the module also provides
the inverse operation, :func:`overrides_of`, which computes the minimal
recursive diff. For overrides that contain no ``None`` values::

    overrides_of(effective_configuration(defaults, overrides), defaults) == overrides

holds for every key whose value differs from the default.
"""

from __future__ import annotations

import copy
import json
from typing import Any, Mapping, Optional

from mdcompose.constants import CONFIGURATION_SORT_ORDER, ENABLED_SORT_WEIGHT, SETTINGS_SORT_WEIGHT
from mdcompose.plugin_metadata import PluginDefinition


def nested_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge ``override`` onto ``base``; override wins on conflicts.

    Nested mappings are merged key by key; any other value type (lists
    included) is replaced wholesale. Neither input is mutated.

    Parameters
    ----------
    base : Mapping
        Base mapping
    override : Mapping
        Mapping whose values take precedence

    Returns
    -------
    dict
        New merged mapping

    """
    result = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = nested_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def drop_nulls(overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Remove ``None`` entries at every level; ``None`` means "use the default"."""
    cleaned = {}
    for key, value in overrides.items():
        if value is None:
            continue
        cleaned[key] = drop_nulls(value) if isinstance(value, Mapping) else value
    return cleaned


def default_configuration(definition: PluginDefinition, plugin_class: Optional[type] = None) -> dict[str, Any]:
    """Assemble the default configuration of a plugin instance.

    Parameters
    ----------
    definition : PluginDefinition
        Resolved definition
    plugin_class : type, optional
        Plugin class. ``enabled`` is only added when the class provides
        ``enabled_by_default``; ``settings`` only when it provides
        ``default_settings``.

    Returns
    -------
    dict
        ``id``, ``weight`` and, where supported, ``enabled`` and ``settings``.
        Settings are the class base settings overlaid by the definition's
        own settings (the definition wins).

    """
    configuration: dict[str, Any] = {"id": definition.id, "weight": definition.weight}

    if plugin_class is not None and hasattr(plugin_class, "enabled_by_default"):
        configuration["enabled"] = bool(plugin_class.enabled_by_default(definition))

    if plugin_class is not None and hasattr(plugin_class, "default_settings"):
        configuration["settings"] = nested_merge(plugin_class.default_settings(), definition.settings)
    elif definition.settings:
        configuration["settings"] = copy.deepcopy(definition.settings)

    return configuration


def effective_configuration(defaults: Mapping[str, Any], overrides: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """Lay ``overrides`` on top of ``defaults``.

    ``None`` values in the overrides are dropped first. Remaining values
    win per key; nested mappings (such as ``settings``) are deep-merged
    rather than replaced.
    """
    if not overrides:
        return copy.deepcopy(dict(defaults))
    return nested_merge(defaults, drop_nulls(overrides))


def overrides_of(configuration: Mapping[str, Any], defaults: Mapping[str, Any]) -> dict[str, Any]:
    """Compute the minimal recursive diff of ``configuration`` against ``defaults``.

    Key order never matters. Keys whose nested diff is empty are omitted.

    Parameters
    ----------
    configuration : Mapping
        Effective configuration
    defaults : Mapping
        Default configuration it was derived from

    Returns
    -------
    dict
        Only the entries that deviate from the defaults

    """
    diff: dict[str, Any] = {}
    for key, value in configuration.items():
        if key not in defaults:
            diff[key] = copy.deepcopy(value)
            continue
        default = defaults[key]
        if isinstance(value, Mapping) and isinstance(default, Mapping):
            nested = overrides_of(value, default)
            if nested:
                diff[key] = nested
        elif value != default:
            diff[key] = copy.deepcopy(value)
    return diff


def sort_configuration(configuration: Mapping[str, Any], order: Optional[Mapping[str, int]] = None) -> dict[str, Any]:
    """Return ``configuration`` with keys in serialization order.

    ``dependencies`` (-100), ``id`` (-50), ``weight`` (-30), ``enabled``
    (-20), ``settings`` (-10), then every other key at 0. Ties keep the
    original key order.
    """
    if order is None:
        order = {**CONFIGURATION_SORT_ORDER, "enabled": ENABLED_SORT_WEIGHT, "settings": SETTINGS_SORT_WEIGHT}
    ranked = sorted(enumerate(configuration.items()), key=lambda item: (order.get(item[1][0], 0), item[0]))
    return {key: value for _, (key, value) in ranked}


def _canonical_default(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    return repr(value)


def canonical_key(value: Any) -> str:
    """Deterministic string form of a configuration, independent of key order."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=_canonical_default)

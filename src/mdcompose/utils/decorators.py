#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/utils/decorators.py
"""Decorators and context managers shared by the parser backends.

Backends import their Markdown library only when a converter is built, so
a missing or outdated library surfaces as a :class:`DependencyError` at that
point rather than at discovery time.

"""

from __future__ import annotations

import importlib
import logging
import time
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Iterator, Optional, Sequence

from mdcompose.exceptions import DependencyError
from mdcompose.utils.packages import check_version_requirement

# (install_name, import_name, version_spec)
PackageSpec = tuple[str, str, str]


def find_dependency_problems(
    packages: Sequence[PackageSpec],
) -> tuple[list[tuple[str, str]], list[tuple[str, str, str]], Optional[ImportError]]:
    """Import each package and compare its version with the requirement.

    Returns
    -------
    tuple
        ``(missing, mismatches, first_import_error)``

    """
    missing: list[tuple[str, str]] = []
    mismatches: list[tuple[str, str, str]] = []
    first_error: Optional[ImportError] = None

    for install_name, import_name, version_spec in packages:
        try:
            # nosemgrep: python.lang.security.audit.non-literal-import.non-literal-import
            importlib.import_module(import_name)
        except ImportError as e:
            missing.append((install_name, version_spec))
            first_error = first_error or e
            continue
        if not version_spec:
            continue
        ok, found = check_version_requirement(install_name, version_spec)
        if not ok:
            mismatches.append((install_name, version_spec, found or "unknown"))

    return missing, mismatches, first_error


def requires_dependencies(plugin_id: str, packages: Sequence[PackageSpec]) -> Callable:
    """Fail with a :class:`DependencyError` unless the backend library is usable.

    Parameters
    ----------
    plugin_id : str
        Id of the plugin that needs the packages, used in the error message
    packages : sequence of tuple
        ``(install_name, import_name, version_spec)`` tuples, for example
        ``("Markdown", "markdown", ">=3.4")``. An empty spec accepts any version.

    Examples
    --------
        >>> @requires_dependencies("mistune", [("mistune", "mistune", ">=3.0.0")])
        ... def build_converter(self, environment):
        ...     import mistune

    """

    def decorator(method: Callable) -> Callable:
        @wraps(method)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            missing, mismatches, error = find_dependency_problems(packages)
            if missing or mismatches:
                raise DependencyError(
                    plugin_id,
                    missing_packages=missing,
                    version_mismatches=mismatches,
                    original_import_error=error,
                ) from error
            return method(*args, **kwargs)

        return wrapper

    return decorator


@contextmanager
def debug_timer(logger: logging.Logger, operation: str) -> Iterator[None]:
    """Log how long the block took, only when ``logger`` has DEBUG enabled."""
    if not logger.isEnabledFor(logging.DEBUG):
        yield
        return
    started = time.perf_counter()
    try:
        yield
    finally:
        logger.debug(f"{operation} took {time.perf_counter() - started:.4f}s")

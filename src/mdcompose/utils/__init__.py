"""Utility helpers shared across mdcompose modules."""

#  Copyright (c) 2025 Tom Villani, Ph.D.

from mdcompose.utils.decorators import debug_timer, requires_dependencies
from mdcompose.utils.packages import (
    check_version_requirement,
    get_package_version,
    import_object,
    is_version_string,
    object_exists,
)

__all__ = [
    "check_version_requirement",
    "debug_timer",
    "get_package_version",
    "import_object",
    "is_version_string",
    "object_exists",
    "requires_dependencies",
]

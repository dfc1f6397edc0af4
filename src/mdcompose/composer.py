#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/composer.py
"""Compose a parser and its extensions into one conversion environment.

Each extension is routed to pipeline stages according to the capability
roles it declares. Per extension, in caller order:

1. Skip it when its ``parsers`` set is non-empty and excludes the active
   parser. Nothing is merged or registered.
2. Verify every declared role. A violation records a diagnostic and skips
   the extension entirely.
3. Merge its settings fragment into the environment configuration.
4. Hand the environment to it if it is environment-aware.
5. Attach its document and inline processors.
6. Register its block parser and block renderer. If it declares any block
   role, its inline roles are ignored.
7. Otherwise register its inline parser and inline renderer.

Roles the backend does not support are skipped with a diagnostic.
Composed environments are cached by (parser id, extension ids, effective
configurations).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Optional

from mdcompose.cache import Cache
from mdcompose.capabilities import (
    BLOCK_CAPABILITIES,
    INLINE_CAPABILITIES,
    Capability,
    declared_capabilities,
    verify_capability,
)
from mdcompose.environment import ConversionEnvironment
from mdcompose.exceptions import ExtensionContractViolation
from mdcompose.logging_utils import sanitize_for_log
from mdcompose.overlay import canonical_key
from mdcompose.utils.decorators import debug_timer

if TYPE_CHECKING:
    from mdcompose.plugins.parser import BaseParser

logger = logging.getLogger(__name__)


def _configuration_of(plugin: Any) -> Any:
    get_configuration = getattr(plugin, "get_configuration", None)
    return get_configuration() if callable(get_configuration) else {}


def _is_compatible(extension: Any, parser_id: str) -> bool:
    is_compatible = getattr(extension, "is_compatible", None)
    if callable(is_compatible):
        return bool(is_compatible(parser_id))
    parsers = getattr(extension, "parsers", None) or ()
    return not parsers or parser_id in parsers


class EnvironmentComposer:
    """Build and cache conversion environments.

    Parameters
    ----------
    cache : Cache, optional
        Cache for composed environments; a private cache is created when omitted

    """

    def __init__(self, cache: Optional[Cache] = None):
        self._cache = cache if cache is not None else Cache()

    @property
    def cache(self) -> Cache:
        """Cache holding composed environments."""
        return self._cache

    def cache_key(self, parser: BaseParser, extensions: list[Any]) -> tuple:
        """Key identifying a (parser, ordered extensions, effective settings) combination."""
        return (
            "environment",
            parser.plugin_id,
            tuple(getattr(extension, "plugin_id", type(extension).__name__) for extension in extensions),
            canonical_key([_configuration_of(parser), [_configuration_of(extension) for extension in extensions]]),
        )

    def compose(self, parser: BaseParser, extensions: Optional[Iterable[Any]] = None) -> ConversionEnvironment:
        """Return the environment for ``parser`` with ``extensions`` attached.

        Parameters
        ----------
        parser : BaseParser
            Resolved parser instance
        extensions : iterable, optional
            Extension instances in attachment order; defaults to the
            parser's enabled, compatible extensions

        Returns
        -------
        ConversionEnvironment
            Frozen environment, possibly shared with earlier callers

        """
        ordered = list(parser.get_extensions() if extensions is None else extensions)
        key = self.cache_key(parser, ordered)
        return self._cache.get_or_build(key, lambda: self.build(parser, ordered))

    def build(self, parser: BaseParser, extensions: Iterable[Any]) -> ConversionEnvironment:
        """Compose a fresh environment without consulting the cache."""
        with debug_timer(logger, f"Composing environment ({parser.plugin_id})"):
            settings_getter = getattr(parser, "get_settings", None)
            environment = ConversionEnvironment(
                parser,
                config=settings_getter() if callable(settings_getter) else {},
                supported_capabilities=getattr(parser, "supported_capabilities", None),
            )
            for extension in extensions:
                self._attach(environment, extension)
            return environment.freeze()

    def _attach(self, environment: ConversionEnvironment, extension: Any) -> None:
        extension_id = str(getattr(extension, "plugin_id", None) or type(extension).__name__)

        if not _is_compatible(extension, environment.parser_id):
            logger.debug(
                f"Skipping extension '{sanitize_for_log(extension_id)}': "
                f"not compatible with parser '{environment.parser_id}'"
            )
            return

        try:
            capabilities = declared_capabilities(extension)
            for capability in sorted(capabilities, key=list(Capability).index):
                verify_capability(extension, capability)
        except ExtensionContractViolation as e:
            environment.diagnose(extension_id, e.capability, e.message)
            return
        except Exception as e:
            environment.diagnose(extension_id, "", f"contract check failed: {e!r}")
            logger.debug("Contract check failure details", exc_info=True)
            return

        def wanted(capability: Capability) -> bool:
            if capability not in capabilities:
                return False
            if not environment.supports(capability):
                environment.diagnose(
                    extension_id, capability.value, f"not supported by parser '{environment.parser_id}', skipped"
                )
                return False
            return True

        state = environment.snapshot()
        try:
            if wanted(Capability.SETTINGS_BEARING):
                environment.merge_config(extension.get_settings())

            if wanted(Capability.ENVIRONMENT_AWARE):
                extension.set_environment(environment)

            if wanted(Capability.DOCUMENT_PROCESSOR):
                environment.add_document_processor(extension)

            if wanted(Capability.INLINE_PROCESSOR):
                environment.add_inline_processor(extension)

            if capabilities & BLOCK_CAPABILITIES:
                if wanted(Capability.BLOCK_PARSER):
                    environment.add_block_parser(extension)
                if wanted(Capability.BLOCK_RENDERER):
                    environment.add_block_renderer(extension.block_type, extension)
                if capabilities & INLINE_CAPABILITIES:
                    logger.debug(
                        f"Extension '{sanitize_for_log(extension_id)}' declares block and inline roles; "
                        "attached to the block pipeline only"
                    )
            else:
                if wanted(Capability.INLINE_PARSER):
                    environment.add_inline_parser(extension)
                if wanted(Capability.INLINE_RENDERER):
                    environment.add_inline_renderer(extension.inline_type, extension)
        except Exception as e:
            environment.restore(state)
            environment.diagnose(extension_id, "", f"failed to attach: {e!r}")
            logger.debug("Attachment failure details", exc_info=True)
            return

        environment.attach(extension)
        logger.debug(f"Attached extension '{sanitize_for_log(extension_id)}' ({len(capabilities)} role(s))")

    def invalidate(self) -> None:
        """Drop every composed environment."""
        self._cache.invalidate_all()

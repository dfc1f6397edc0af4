#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/markdown.py
"""Markdown service for hosts: default parser selection, loading and caching of parsed output.

This is the layer a host application talks to. It picks the parser from
the host configuration, converts text through the composed environment,
and optionally loads Markdown from files or URLs and caches the result
with an expiry and invalidation tags.

Examples
--------
    >>> service = Markdown.create()
    >>> service.parse("# Title").html
    '<h1>Title</h1>'

"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

import httpx

from mdcompose.cache import Cache
from mdcompose.config import MarkdownSettings, merge_configs
from mdcompose.constants import FALLBACK_PLUGIN_ID
from mdcompose.exceptions import MarkdownFileNotFoundError, MarkdownUrlNotFoundError
from mdcompose.logging_utils import sanitize_for_log
from mdcompose.plugins.parser import BaseParser
from mdcompose.registry import ParserRegistry, default_parser_registry

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class ParsedMarkdown:
    """The result of one conversion.

    Parameters
    ----------
    markdown : str
        Source text
    html : str
        Sanitized HTML
    id : str
        Cache identifier, empty until saved
    expire : float, optional
        Expiry time on the service clock; None never expires
    cache_tags : frozenset of str
        Tags that invalidate the cached copy
    parser_id : str
        Parser that produced the HTML

    """

    markdown: str
    html: str
    id: str = ""
    expire: Optional[float] = None
    cache_tags: frozenset[str] = field(default_factory=frozenset)
    parser_id: str = ""

    def __str__(self) -> str:
        return self.html

    def is_expired(self, now: float) -> bool:
        return self.expire is not None and now >= self.expire

    def with_cache_tags(self, tags: Iterable[str]) -> ParsedMarkdown:
        return replace(self, cache_tags=self.cache_tags | frozenset(tags))


class Markdown:
    """Entry point for hosts converting Markdown.

    Parameters
    ----------
    parser_registry : ParserRegistry
        Registry parsers are created from
    settings : MarkdownSettings, optional
        Host configuration
    cache : Cache, optional
        Cache for parsed documents; entries expire after
        ``settings.cache_max_age`` seconds
    http_client : httpx.Client, optional
        Client used by :meth:`load_url`; created lazily when omitted

    """

    def __init__(
        self,
        parser_registry: ParserRegistry,
        settings: Optional[MarkdownSettings] = None,
        cache: Optional[Cache] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.parser_registry = parser_registry
        self.settings = settings or MarkdownSettings()
        self.cache = cache if cache is not None else Cache(max_age=self.settings.cache_max_age)
        self._http_client = http_client

    @classmethod
    def create(cls, config_path: Optional[str] = None) -> Markdown:
        """Build a service from the discovered host configuration and the default registries."""
        settings = MarkdownSettings.load(config_path)
        return cls(default_parser_registry(settings.manifest_paths()), settings)

    # -- parsers ---------------------------------------------------------------------

    def _parser_configuration(self, parser_id: str, configuration: Optional[Mapping[str, Any]]) -> dict[str, Any]:
        return merge_configs(self.settings.parser_configuration(parser_id), dict(configuration or {}))

    def get_default_parser(self, configuration: Optional[Mapping[str, Any]] = None) -> BaseParser:
        """Return the configured default parser, else the first installed one."""
        parser_id = self.settings.default_parser
        if parser_id and not self.parser_registry.get(parser_id).is_installed():
            logger.warning(f"Configured default parser '{sanitize_for_log(parser_id)}' is not installed")
            parser_id = None
        if not parser_id:
            parser_id = self.parser_registry.first_installed_plugin_id()
            logger.warning("No default markdown parser set, using first available installed parser")
        return self.parser_registry.create_instance(parser_id, self._parser_configuration(parser_id, configuration))

    def get_parser(
        self, parser_id: Optional[str] = None, configuration: Optional[Mapping[str, Any]] = None
    ) -> BaseParser:
        """Return a parser instance; unknown ids give the fallback parser."""
        if parser_id is None:
            return self.get_default_parser(configuration)
        return self.parser_registry.create_instance(parser_id, self._parser_configuration(parser_id, configuration))

    # -- conversion ------------------------------------------------------------------

    def parse(
        self, markdown: str, language: Optional[str] = None, parser: Optional[Union[str, BaseParser]] = None
    ) -> ParsedMarkdown:
        """Convert ``markdown`` with the given or default parser."""
        if not isinstance(parser, BaseParser):
            parser = self.get_parser(parser)
        if parser.plugin_id == FALLBACK_PLUGIN_ID:
            logger.warning("No markdown parser is installed; output is escaped plain text")
        return ParsedMarkdown(markdown=markdown, html=parser.parse(markdown, language), parser_id=parser.plugin_id)

    # -- caching ---------------------------------------------------------------------

    def load(self, id: str) -> Optional[ParsedMarkdown]:
        """Return a cached document, or None when missing or expired."""
        return self.cache.get(("parsed", id))

    def save(self, id: str, parsed: ParsedMarkdown) -> ParsedMarkdown:
        """Cache ``parsed`` under ``id`` and return it with id and expiry set."""
        max_age = self.settings.cache_max_age
        expire = self.cache.clock() + max_age if max_age is not None else None
        stored = replace(parsed, id=id, expire=expire)
        self.cache.set(("parsed", id), stored, max_age=max_age, tags=stored.cache_tags)
        return stored

    def invalidate_tags(self, tags: Iterable[str]) -> int:
        """Drop cached documents carrying any of ``tags``."""
        return self.cache.invalidate_tags(tags)

    # -- loading ---------------------------------------------------------------------

    def load_path(self, path: Union[str, Path], id: Optional[str] = None, language: Optional[str] = None) -> ParsedMarkdown:
        """Parse a Markdown file, cached until the file changes.

        Raises
        ------
        MarkdownFileNotFoundError
            If the file does not exist

        """
        path = Path(path)
        if not path.is_file():
            raise MarkdownFileNotFoundError(str(path))

        # The modification time busts the cache when the file changes
        resolved = path.resolve()
        id = id or f"path:{resolved}:{path.stat().st_mtime_ns}"
        cached = self.load(id)
        if cached is not None:
            return cached

        text = path.read_text(encoding="utf-8")
        parsed = self.parse(text, language).with_cache_tags({f"markdown:path:{resolved}"})
        return self.save(id, parsed)

    @property
    def http_client(self) -> httpx.Client:
        if self._http_client is None:
            self._http_client = httpx.Client(timeout=DEFAULT_TIMEOUT, follow_redirects=True)
        return self._http_client

    def load_url(self, url: str, id: Optional[str] = None, language: Optional[str] = None) -> ParsedMarkdown:
        """Fetch and parse Markdown from ``url``, cached per URL.

        Raises
        ------
        MarkdownUrlNotFoundError
            If the request fails or the status is outside 200-399

        """
        id = id or f"url:{url}"
        cached = self.load(id)
        if cached is not None:
            return cached

        try:
            response = self.http_client.get(url)
        except httpx.HTTPError as e:
            raise MarkdownUrlNotFoundError(url, original_error=e) from e
        if response.status_code < 200 or response.status_code >= 400:
            raise MarkdownUrlNotFoundError(url, status_code=response.status_code)

        parsed = self.parse(response.text, language).with_cache_tags({f"markdown:url:{url}"})
        return self.save(id, parsed)

    def close(self) -> None:
        if self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    def __enter__(self) -> Markdown:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

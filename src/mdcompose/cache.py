#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdcompose/cache.py
"""Explicit cache service shared by registries, composers and the Markdown service.

The cache is passed to its users through their constructors rather than
living in module globals. It has three properties the rest of the package
relies on:

- reads never take the lock, so a reader is never blocked by another thread
  populating a different key;
- when several callers build the same key concurrently, exactly one result
  is persisted and every caller receives that winner (redundant builds are
  tolerated, not prevented);
- invalidation is wholesale for discovery/composition data, and hooks are
  notified so dependent caches can follow.

Entry expiry uses an injected clock, which keeps time-based behavior
testable.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Iterable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

InvalidationHook = Callable[[Optional[Hashable]], None]

# Marker for "use the cache-wide max_age"
_DEFAULT_AGE: Any = object()


@dataclass(frozen=True)
class _Entry:
    value: Any
    expires: Optional[float] = None
    tags: frozenset[str] = frozenset()

    def is_expired(self, now: float) -> bool:
        return self.expires is not None and now >= self.expires


class Cache:
    """Read-mostly key/value cache with single-winner population.

    Parameters
    ----------
    clock : callable, default time.monotonic
        Returns the current time in seconds; injected for tests
    max_age : float, optional
        Default lifetime of entries in seconds; None means no expiry

    Examples
    --------
        >>> cache = Cache()
        >>> cache.get_or_build("answer", lambda: 42)
        42

    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, max_age: Optional[float] = None):
        self._clock = clock
        self._max_age = max_age
        self._entries: dict[Hashable, _Entry] = {}
        self._lock = threading.Lock()
        self._hooks: list[InvalidationHook] = []

    @property
    def clock(self) -> Callable[[], float]:
        """Clock used for entry expiry."""
        return self._clock

    def _lookup(self, key: Hashable) -> Optional[_Entry]:
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry

    def _expiry(self, max_age: Any) -> Optional[float]:
        age = self._max_age if max_age is _DEFAULT_AGE else max_age
        return None if age is None else self._clock() + age

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the cached value for ``key`` or ``default`` when absent or expired."""
        entry = self._lookup(key)
        return default if entry is None else entry.value

    def __contains__(self, key: Hashable) -> bool:
        return self._lookup(key) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def set(self, key: Hashable, value: T, max_age: Any = _DEFAULT_AGE, tags: Iterable[str] = ()) -> T:
        """Store ``value`` unconditionally and return it.

        Parameters
        ----------
        key : hashable
            Cache key
        value : Any
            Value to store
        max_age : float or None, optional
            Lifetime in seconds; defaults to the cache-wide setting
        tags : iterable of str
            Invalidation tags attached to the entry

        """
        entry = _Entry(value, self._expiry(max_age), frozenset(tags))
        with self._lock:
            self._entries[key] = entry
        return value

    def get_or_build(
        self,
        key: Hashable,
        builder: Callable[[], T],
        max_age: Any = _DEFAULT_AGE,
        tags: Iterable[str] = (),
    ) -> T:
        """Return the cached value or build, persist and return it.

        The builder runs outside the lock. If another caller persisted a
        value for the same key in the meantime, that value wins and the
        freshly built one is discarded.

        Parameters
        ----------
        key : hashable
            Cache key
        builder : callable
            Zero-argument callable producing the value
        max_age : float or None, optional
            Lifetime in seconds; defaults to the cache-wide setting
        tags : iterable of str
            Invalidation tags attached to the entry

        Returns
        -------
        Any
            The authoritative value for ``key``

        """
        entry = self._lookup(key)
        if entry is not None:
            return entry.value

        value = builder()

        with self._lock:
            current = self._entries.get(key)
            if current is not None and not current.is_expired(self._clock()):
                logger.debug(f"Discarding redundant build for cache key {key!r}")
                return current.value
            self._entries[key] = _Entry(value, self._expiry(max_age), frozenset(tags))
        return value

    def invalidate(self, key: Hashable) -> None:
        """Drop a single entry (used for parsed documents, not for discovery data)."""
        with self._lock:
            self._entries.pop(key, None)
        self._notify(key)

    def invalidate_tags(self, tags: Iterable[str]) -> int:
        """Drop every entry carrying any of ``tags`` and return how many were dropped."""
        wanted = set(tags)
        with self._lock:
            doomed = [key for key, entry in self._entries.items() if entry.tags & wanted]
            for key in doomed:
                del self._entries[key]
        for key in doomed:
            self._notify(key)
        return len(doomed)

    def invalidate_all(self) -> None:
        """Drop every entry and notify invalidation hooks with ``None``."""
        with self._lock:
            self._entries = {}
        logger.debug("Cache invalidated")
        self._notify(None)

    def add_invalidation_hook(self, hook: InvalidationHook) -> None:
        """Register a callable notified with the invalidated key (None = everything)."""
        self._hooks.append(hook)

    def _notify(self, key: Optional[Hashable]) -> None:
        for hook in list(self._hooks):
            hook(key)

"""Compiled pattern cache for PatMatch."""

import hashlib
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict

from patmatch.patmatch_pattern import PatMatchCompiledPattern


@dataclass(frozen=True)
class PatMatchCacheInfo:
    """Snapshot of cache statistics."""
    hits: int
    misses: int
    size: int


class PatMatchPatternCache:
    """
    Maps pattern text fingerprints to compiled patterns.

    Entries live as long as the cache and are never evicted; patterns are
    expected to be a bounded set of literals written at call sites.  Entry
    reads do not take the write lock.  Writes are serialized so that each
    distinct pattern text is compiled once and readers only ever see complete
    entries.  Hit and miss counters have their own lock.
    """

    def __init__(self) -> None:
        """Initialize an empty cache."""
        self._entries: Dict[str, PatMatchCompiledPattern] = {}
        self._lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._logger = logging.getLogger("PatMatchPatternCache")

    @staticmethod
    def fingerprint(pattern_text: str) -> str:
        """
        Compute the content fingerprint used as the cache key.

        Args:
            pattern_text: Full pattern-condition text

        Returns:
            SHA-256 hex digest of the UTF-8 encoded text
        """
        return hashlib.sha256(pattern_text.encode("utf-8")).hexdigest()

    def get_or_compile(
        self,
        pattern_text: str,
        compile_func: Callable[[str, str], PatMatchCompiledPattern]
    ) -> PatMatchCompiledPattern:
        """
        Return the cached compiled pattern, compiling it on first use.

        Args:
            pattern_text: Full pattern-condition text
            compile_func: Called with (pattern_text, fingerprint) on a cache miss

        Returns:
            The compiled pattern for pattern_text

        Raises:
            PatMatchInvalidPatternError: If compilation fails (nothing is cached)
        """
        key = self.fingerprint(pattern_text)

        entry = self._entries.get(key)
        if entry is not None:
            self._count_hit()
            return entry

        with self._lock:
            # Another thread may have compiled the same pattern while we waited
            entry = self._entries.get(key)
            if entry is not None:
                self._count_hit()
                return entry

            with self._stats_lock:
                self._misses += 1

            self._logger.debug("Compiling pattern %s: %s", key[:12], pattern_text)
            entry = compile_func(pattern_text, key)
            self._entries[key] = entry
            return entry

    def get(self, pattern_text: str) -> PatMatchCompiledPattern | None:
        """Look up a compiled pattern without compiling it."""
        return self._entries.get(self.fingerprint(pattern_text))

    def info(self) -> PatMatchCacheInfo:
        """Return hit, miss and size counters."""
        with self._stats_lock:
            return PatMatchCacheInfo(self._hits, self._misses, len(self._entries))

    def _count_hit(self) -> None:
        with self._stats_lock:
            self._hits += 1

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, pattern_text: object) -> bool:
        return isinstance(pattern_text, str) and self.fingerprint(pattern_text) in self._entries

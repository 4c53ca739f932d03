"""Read-through cache of interpreted tournaments.

Entries are keyed by tournament id and remember the source file's
modification time. A lookup re-stats the file and reloads whenever the mtime
differs, so a cached answer always matches a fresh load of the current file.
Least-recently-used entries are evicted beyond the configured size; size 0
disables caching entirely.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Callable, Optional

from .config import get_cache_size
from .core.interpreter import interpret
from .core.loader import load_record
from .core.models import InterpretedTournament
from .store import read_record, record_mtime

logger = logging.getLogger(__name__)


def load_interpreted(tournament_id: str) -> InterpretedTournament:
    """Read, parse, and interpret one tournament from the store."""
    return interpret(load_record(tournament_id, read_record(tournament_id)))


class InterpretationCache:
    """LRU map of tournament id -> (mtime_ns, InterpretedTournament)."""

    def __init__(
        self,
        max_entries: int,
        loader: Callable[[str], InterpretedTournament] = load_interpreted,
        mtime: Callable[[str], int] = record_mtime,
    ):
        self.max_entries = max_entries
        self._loader = loader
        self._mtime = mtime
        self._entries: OrderedDict[str, tuple[int, InterpretedTournament]] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, tournament_id: str) -> InterpretedTournament:
        version = self._mtime(tournament_id)
        with self._lock:
            cached = self._entries.get(tournament_id)
            if cached is not None and cached[0] == version:
                self._entries.move_to_end(tournament_id)
                self.hits += 1
                return cached[1]
            self.misses += 1

        # Loading happens outside the lock; concurrent misses may both load.
        interpreted = self._loader(tournament_id)
        if self.max_entries <= 0:
            return interpreted

        with self._lock:
            if cached is not None:
                logger.debug("Tournament %s changed on disk; reloaded", tournament_id)
            self._entries[tournament_id] = (version, interpreted)
            self._entries.move_to_end(tournament_id)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted %s from interpretation cache", evicted)
        return interpreted

    def invalidate(self, tournament_id: Optional[str] = None) -> None:
        with self._lock:
            if tournament_id is None:
                self._entries.clear()
            else:
                self._entries.pop(tournament_id, None)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, tournament_id: str) -> bool:
        return tournament_id in self._entries


_cache: Optional[InterpretationCache] = None


def get_cache() -> InterpretationCache:
    global _cache
    if _cache is None:
        _cache = InterpretationCache(get_cache_size())
        logger.info("Interpretation cache initialized (max %d entries)", _cache.max_entries)
    return _cache


def reset_cache() -> None:
    global _cache
    _cache = None

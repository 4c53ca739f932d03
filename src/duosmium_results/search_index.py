"""Search corpus construction for the two search sources.

corpus: every tournament in the local store is loaded (through the
    interpretation cache) and contributes one tournament entry plus one entry
    per team. Tournaments that fail to load are logged and skipped.
catalog: tournament metadata and the school directory are fetched from the
    external catalog. A fetch failure aborts the search with FetchError.

Either way, the entries are ranked by core.search.rank_entries.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .cache import InterpretationCache, get_cache
from .config import get_catalog_urls, get_search_concurrency, get_search_source
from .core.clients.catalog import fetch_catalog_entries
from .core.errors import NotFoundError, ResultsError, ValidationError
from .core.models import InterpretedTournament
from .core.search import DEFAULT_LIMIT, SearchEntry, SearchHit, normalize_kind, rank_entries
from .store import list_tournament_ids

logger = logging.getLogger(__name__)


def tournament_entries(tournament_id: str, interpreted: InterpretedTournament, kind: str) -> list[SearchEntry]:
    """Search entries for one interpreted tournament and its teams."""
    tournament = interpreted.tournament
    title = tournament.display_title
    entries = []

    if kind in ("tournament", "both"):
        entries.append(SearchEntry(
            kind="tournament",
            id=tournament_id,
            name=title,
            details=f"{len(interpreted.teams)} teams, {len(interpreted.events)} events",
            text=" ".join(p for p in (title, tournament_id, tournament.location) if p).casefold(),
        ))

    if kind in ("team", "both"):
        for team in interpreted.teams:
            location = team.location or ""
            details = " ".join(p for p in (
                f"#{team.number}",
                f"({location})" if location else "",
                f"Rank: {team.rank if team.rank is not None else 'unranked'}",
                f"in {title}",
            ) if p)
            entries.append(SearchEntry(
                kind="team",
                id=f"{tournament_id}:{team.number}",
                name=team.school,
                details=details,
                text=f"{team.school} {location} {team.number} {title}".casefold(),
            ))
    return entries


class SearchIndex:
    """Builds the configured corpus and ranks it against a query."""

    def __init__(self, source: Optional[str] = None, cache: Optional[InterpretationCache] = None):
        self.source = source or get_search_source()
        self._cache = cache

    @property
    def cache(self) -> InterpretationCache:
        return self._cache or get_cache()

    async def search(self, query: str, kind: str = "both", limit: int = DEFAULT_LIMIT) -> list[SearchHit]:
        kind = normalize_kind(kind)
        if self.source == "catalog":
            entries = await self.catalog_entries()
        elif self.source == "corpus":
            entries = await self.corpus_entries(kind)
        else:
            raise ValidationError(f"Unknown search source {self.source!r}")
        hits = rank_entries(entries, query, kind=kind, limit=limit)
        logger.info("Search %r (%s, %s): %d hits from %d entries", query, kind, self.source, len(hits), len(entries))
        return hits

    async def catalog_entries(self) -> list[SearchEntry]:
        tournaments_url, schools_url = get_catalog_urls()
        return await fetch_catalog_entries(tournaments_url, schools_url)

    async def corpus_entries(self, kind: str = "both") -> list[SearchEntry]:
        tournament_ids = await asyncio.to_thread(list_tournament_ids)
        semaphore = asyncio.Semaphore(get_search_concurrency())

        async def load(tournament_id: str) -> list[SearchEntry]:
            async with semaphore:
                try:
                    interpreted = await asyncio.to_thread(self.cache.get, tournament_id)
                except (ResultsError, OSError, ValueError) as exc:
                    if not isinstance(exc, NotFoundError):
                        logger.warning("Skipping tournament %s in search: %s", tournament_id, exc)
                    return []
            return tournament_entries(tournament_id, interpreted, kind)

        batches = await asyncio.gather(*(load(tid) for tid in tournament_ids))
        return [entry for batch in batches for entry in batch]

"""Weighted fuzzy ranking of search entries.

Source-agnostic: entries come from either the external catalog or the local
results corpus, and both are ranked the same way here.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

from pydantic import BaseModel, Field
from rapidfuzz import fuzz

from .errors import ValidationError

logger = logging.getLogger(__name__)

NAME_WEIGHT = 2.0
TEXT_WEIGHT = 1.0
DEFAULT_THRESHOLD = 0.4
DEFAULT_LIMIT = 10

KINDS = ("tournament", "team", "both")

# A "team" filter also covers school-directory entries from the catalog.
KIND_MEMBERS = {
    "tournament": {"tournament"},
    "team": {"team", "school"},
    "both": {"tournament", "team", "school"},
}

KIND_SYNONYMS = {
    "tournaments": "tournament",
    "competition": "tournament",
    "competitions": "tournament",
    "teams": "team",
    "school": "team",
    "schools": "team",
    "all": "both",
    "any": "both",
}

QUERY_SYNONYMS = {
    "team": "school",
    "teams": "school",
    "hs": "high school",
    "ms": "middle school",
    "invite": "invitational",
    "invy": "invitational",
    "regs": "regional",
    "nats": "national",
}


class SearchEntry(BaseModel):
    kind: str = Field(description="tournament, team, or school")
    id: str
    name: str
    details: str = ""
    text: str = Field(description="Lower-cased searchable text")


class SearchHit(BaseModel):
    kind: str
    id: str
    name: str
    details: str = ""
    distance: float = Field(ge=0.0, le=1.0, description="0 = perfect match")


def normalize_query(query: str) -> str:
    """Case-fold, collapse whitespace, and rewrite casual synonyms."""
    tokens = re.split(r"\s+", query.casefold().strip())
    return " ".join(QUERY_SYNONYMS.get(token, token) for token in tokens if token)


def normalize_kind(kind: Optional[str]) -> str:
    canonical = (kind or "both").strip().casefold()
    canonical = KIND_SYNONYMS.get(canonical, canonical)
    if canonical not in KINDS:
        raise ValidationError(f"Unknown search type {kind!r}; expected one of: {', '.join(KINDS)}")
    return canonical


def entry_distance(query: str, entry: SearchEntry) -> float:
    name_similarity = fuzz.WRatio(query, entry.name.casefold()) / 100
    text_similarity = fuzz.partial_ratio(query, entry.text) / 100
    similarity = (NAME_WEIGHT * name_similarity + TEXT_WEIGHT * text_similarity) / (NAME_WEIGHT + TEXT_WEIGHT)
    return round(1.0 - similarity, 4)


def rank_entries(
    entries: Iterable[SearchEntry],
    query: str,
    kind: str = "both",
    limit: int = DEFAULT_LIMIT,
    threshold: float = DEFAULT_THRESHOLD,
) -> list[SearchHit]:
    """Best matches first, dropping anything farther than `threshold`."""
    normalized = normalize_query(query)
    if not normalized:
        raise ValidationError("Search query must not be empty")
    members = KIND_MEMBERS[normalize_kind(kind)]

    hits = []
    considered = 0
    for entry in entries:
        if entry.kind not in members:
            continue
        considered += 1
        distance = entry_distance(normalized, entry)
        if distance <= threshold:
            hits.append(SearchHit(
                kind=entry.kind,
                id=entry.id,
                name=entry.name,
                details=entry.details,
                distance=distance,
            ))

    hits.sort(key=lambda h: (h.distance, h.kind, h.id))
    logger.debug("Query %r matched %d of %d entries", normalized, len(hits), considered)
    if limit > 0:
        hits = hits[:limit]
    return hits

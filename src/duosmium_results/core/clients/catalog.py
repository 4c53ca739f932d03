"""External tournament catalog and school directory client.

The catalog is a JSON list of tournament metadata records:
    {"title", "filename", "location", "division", "year", "official", "keywords"}
The school directory is a CSV with name, city, and state columns.

Both are read-only and fetched fresh for each catalog search. Any failure
raises FetchError; an empty catalog is never substituted for an error.
"""

from __future__ import annotations

import asyncio
import csv
import io
import json
import logging

import httpx

from ..errors import FetchError
from ..search import SearchEntry

logger = logging.getLogger(__name__)

TIMEOUT = httpx.Timeout(30.0, connect=10.0)


async def fetch_catalog_entries(tournaments_url: str, schools_url: str) -> list[SearchEntry]:
    """Fetch both catalog documents concurrently and build search entries."""
    async with httpx.AsyncClient(timeout=TIMEOUT, follow_redirects=True) as client:
        tournaments, schools = await asyncio.gather(
            fetch_tournament_catalog(client, tournaments_url),
            fetch_school_directory(client, schools_url),
        )
    return tournaments + schools


async def fetch_tournament_catalog(client: httpx.AsyncClient, url: str) -> list[SearchEntry]:
    text = await _get_text(client, url, "tournament catalog")
    try:
        records = json.loads(text)
    except ValueError as exc:
        raise FetchError("tournament catalog", f"invalid JSON: {exc}") from exc
    if isinstance(records, dict):
        records = records.get("tournaments", [])
    if not isinstance(records, list):
        raise FetchError("tournament catalog", "expected a list of tournaments")

    entries = []
    for record in records:
        if not isinstance(record, dict) or not record.get("filename"):
            continue
        entries.append(tournament_entry(record))
    logger.info("Fetched %d catalog tournaments", len(entries))
    return entries


async def fetch_school_directory(client: httpx.AsyncClient, url: str) -> list[SearchEntry]:
    text = await _get_text(client, url, "school directory")
    entries = []
    for row in csv.reader(io.StringIO(text)):
        if not row or not row[0].strip():
            continue
        entries.append(school_entry(row))
    # Drop a header row if the directory has one.
    if entries and entries[0].name.casefold() == "name":
        entries = entries[1:]
    logger.info("Fetched %d directory schools", len(entries))
    return entries


def tournament_entry(record: dict) -> SearchEntry:
    filename = str(record["filename"])
    tournament_id = filename[:-5] if filename.endswith(".yaml") else filename
    title = str(record.get("title") or tournament_id)
    keywords = record.get("keywords") or []
    if isinstance(keywords, str):
        keywords = [keywords]

    details = [str(v) for v in (record.get("location"), record.get("year")) if v]
    if record.get("division"):
        details.append(f"Division {record['division']}")
    if record.get("official"):
        details.append("official")

    searchable = [title, filename, record.get("location"), record.get("division"), record.get("year"), *keywords]
    return SearchEntry(
        kind="tournament",
        id=tournament_id,
        name=title,
        details=", ".join(details),
        text=" ".join(str(v) for v in searchable if v).casefold(),
    )


def school_entry(row: list[str]) -> SearchEntry:
    name, city, state = (row + ["", "", ""])[:3]
    name, city, state = name.strip(), city.strip(), state.strip()
    location = ", ".join(p for p in (city, state) if p)
    return SearchEntry(
        kind="school",
        id=f"{name}|{location}" if location else name,
        name=name,
        details=location,
        text=" ".join(p for p in (name, city, state) if p).casefold(),
    )


async def _get_text(client: httpx.AsyncClient, url: str, source: str) -> str:
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning("%s request failed: %s", source, exc)
        raise FetchError(source, str(exc) or type(exc).__name__) from exc
    return response.text

"""Duosmium Results MCP Server.

FastMCP server exposing Science Olympiad tournament results as tools and
resources: rankings, team placements, rosters, and fuzzy search across the
whole results corpus.
Run: duosmium-results-mcp
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP
from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, INVALID_REQUEST, ErrorData, ToolAnnotations
from starlette.requests import Request
from starlette.responses import JSONResponse

from . import __version__
from .cache import get_cache
from .config import get_data_root, get_host, get_log_level, get_port, get_transport
from .core.errors import NotFoundError, ValidationError
from .core.models import Placement, Team
from .core.queries import TournamentQueries
from .core.search import normalize_kind
from .search_index import SearchIndex
from .store import list_tournament_ids, read_record, read_record_text

load_dotenv()

logger = logging.getLogger(__name__)

SERVICE_NAME = "duosmium-results-mcp"
RESULTS_URL = "https://www.duosmium.org/results"
RESOURCE_SCHEME = "duosmium://results"
YAML_MIME = "application/x-yaml"

READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False, idempotentHint=True, openWorldHint=False)


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:
    """Configure logging and check that the results store is configured."""
    logging.basicConfig(level=get_log_level(), format="%(asctime)s %(name)s %(levelname)s %(message)s")
    logger.debug("Serving results from %s", get_data_root())
    yield


mcp = FastMCP(
    "Duosmium Results",
    instructions="Science Olympiad tournament results from Duosmium — rankings, team placements by event, rosters, and fuzzy search across every tournament.",
    lifespan=lifespan,
    host=get_host(),
    port=get_port(),
    stateless_http=True,
    json_response=True,
)


async def _queries(tournament_id: str) -> TournamentQueries:
    interpreted = await asyncio.to_thread(get_cache().get, tournament_id)
    return TournamentQueries(interpreted)


def _not_found(exc: NotFoundError) -> dict:
    return {"found": False, "kind": exc.kind, "summary": str(exc)}


def _tool_error(action: str, exc: Exception) -> McpError:
    if isinstance(exc, ValidationError):
        return McpError(ErrorData(code=INVALID_PARAMS, message=str(exc)))
    logger.error("Failed to %s: %s", action, exc, exc_info=True)
    return McpError(ErrorData(code=INTERNAL_ERROR, message=f"Failed to {action}: {exc}"))


def _team_data(team: Team) -> dict:
    return {
        "number": team.number,
        "school": team.school,
        "school_abbreviation": team.school_abbreviation,
        "suffix": team.suffix,
        "track": team.track,
        "location": team.location,
        "rank": team.rank,
        "tie": team.tie,
        "points": team.points,
        "disqualified": team.disqualified,
        "exhibition": team.exhibition,
    }


def _placement_data(placement: Placement) -> dict:
    return {
        "event": placement.event,
        "place": placement.place,
        "place_text": placement.place_text,
        "tie": placement.tie,
        "points": placement.points,
        "dropped": placement.dropped,
        "exempt": placement.exempt,
        "trial": placement.trial,
        "participated": placement.participated,
        "disqualified": placement.disqualified,
    }


def _rank_text(team: Team) -> str:
    if team.rank is None:
        return "Unranked"
    return f"{team.rank}{' (tie)' if team.tie else ''}"


def _status_text(team: Team) -> str:
    return f" ({', '.join(team.status)})" if team.status else ""


def _placement_text(placement: Placement) -> str:
    tie = " (tie)" if placement.tie else ""
    dropped = " [DROPPED]" if placement.dropped else ""
    exempt = " [EXEMPT]" if placement.exempt else ""
    trial = " [TRIAL]" if placement.trial else ""
    return f"{placement.event}: {placement.place_text}{tie} ({placement.points} points){dropped}{exempt}{trial}"


def _event_text(event: dict) -> str:
    if event["trial"]:
        return f"{event['name']} (trial)"
    if event["trialed"]:
        return f"{event['name']} (trialed)"
    return event["name"]


# ─── Resources ────────────────────────────────────────────────────────────────


@mcp.resource(RESOURCE_SCHEME, mime_type="application/json")
async def available_results() -> dict:
    """Ids of every tournament in the results store."""
    tournament_ids = await asyncio.to_thread(list_tournament_ids)
    return {
        "uri_template": f"{RESOURCE_SCHEME}/{{id}}",
        "tournaments": tournament_ids,
    }


@mcp.resource(f"{RESOURCE_SCHEME}/{{tournament_id}}", mime_type=YAML_MIME)
async def tournament_results(tournament_id: str) -> str:
    """Raw Science Olympiad results YAML for one tournament."""
    try:
        return await asyncio.to_thread(read_record_text, tournament_id)
    except (NotFoundError, ValidationError) as exc:
        raise McpError(ErrorData(code=INVALID_REQUEST, message=f"Resource not found: {tournament_id}")) from exc
    except Exception as exc:
        raise _tool_error("read resource", exc) from exc


# ─── Health ───────────────────────────────────────────────────────────────────


@mcp.custom_route("/health", methods=["GET"])
async def health(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "service": SERVICE_NAME, "version": __version__})


# ─── Tool 1: List Tournaments ────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def list_tournaments() -> dict:
    """List all available tournaments for autocomplete and discovery."""
    try:
        tournament_ids = await asyncio.to_thread(list_tournament_ids)
    except Exception as exc:
        raise _tool_error("list tournaments", exc) from exc
    return {
        "tournaments": tournament_ids,
        "count": len(tournament_ids),
        "summary": f"Available Tournaments ({len(tournament_ids)}):\n" + "\n".join(tournament_ids),
    }


# ─── Tool 2: Tournament Info ─────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def get_tournament_info(tournament_id: str) -> dict:
    """Tournament information including teams and events, for autocomplete.

    Args:
        tournament_id: Tournament ID (e.g., '1989-03-10_sCA_orange_county_regional_b').
    """
    try:
        queries = await _queries(tournament_id)
    except NotFoundError as exc:
        return _not_found(exc)
    except Exception as exc:
        raise _tool_error("get tournament info", exc) from exc

    info = queries.info()
    return {
        "found": True,
        **info,
        "summary": f"Tournament: {info['title']}\n\n"
        f"Teams ({len(info['teams'])}):\n" + "\n".join(info["teams"])
        + f"\n\nEvents ({len(info['events'])}):\n" + "\n".join(_event_text(e) for e in info["events"]),
    }


# ─── Tool 3: Tournament Teams ────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def get_tournament_teams(tournament_id: str) -> dict:
    """Detailed list of all teams in a tournament with numbers, names, locations, and suffixes.

    Args:
        tournament_id: Tournament ID (e.g., '1989-03-10_sCA_orange_county_regional_b').
    """
    try:
        queries = await _queries(tournament_id)
    except NotFoundError as exc:
        return _not_found(exc)
    except Exception as exc:
        raise _tool_error("get tournament teams", exc) from exc

    roster = queries.roster()
    lines = []
    for team in roster:
        parts = [f"#{team.number}", team.school]
        if team.location:
            parts.append(f"({team.location})")
        if team.suffix:
            parts.append(f"- {team.suffix}")
        if team.status:
            parts.append(f"[{', '.join(team.status)}]")
        lines.append(" ".join(parts))

    return {
        "found": True,
        "tournament": queries.title,
        "teams": [_team_data(t) for t in roster],
        "total_teams": len(roster),
        "summary": f"Tournament: {queries.title}\nTotal Teams: {len(roster)}\n\nTeams:\n" + "\n".join(lines),
    }


# ─── Tool 4: Team Placement ──────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def get_team_placement(tournament_id: str, team_id: str, event: Optional[str] = None) -> dict:
    """A team's placement in one event, or its overall tournament ranking if no event is given.

    Args:
        tournament_id: Tournament ID (e.g., '1989-03-10_sCA_orange_county_regional_b').
        team_id: Team number or school name (a partial, case-insensitive name works).
        event: Event name (e.g., 'Bridge Building', 'Mystery Substance'). Omit for overall placement.
    """
    try:
        queries = await _queries(tournament_id)
        team, result = queries.placement(team_id, event)
    except NotFoundError as exc:
        return _not_found(exc)
    except Exception as exc:
        raise _tool_error("get team placement", exc) from exc

    if result is None:
        return {
            "found": True,
            "tournament": queries.title,
            "team": _team_data(team),
            "summary": f"Team: {team.school} (#{team.number})\n"
            f"Overall Rank: {_rank_text(team)}\n"
            f"Total Points: {team.points}\n"
            f"Tournament: {queries.title}\n"
            f"Disqualified: {'Yes' if team.disqualified else 'No'}\n"
            f"Exhibition: {'Yes' if team.exhibition else 'No'}",
        }

    tie = " (tie)" if result.tie else ""
    dropped = "\nDropped: Yes" if result.dropped else ""
    trial = " (trial event, not counted)" if result.trial else ""
    return {
        "found": True,
        "tournament": queries.title,
        "team": _team_data(team),
        "placement": _placement_data(result),
        "summary": f"Team: {team.school} (#{team.number})\n"
        f"Event: {result.event}{trial}\n"
        f"Placement: {result.place_text}{tie}\n"
        f"Points: {result.points}{dropped}\n"
        f"Tournament: {queries.title}",
    }


# ─── Tool 5: Rankings ────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def get_tournament_rankings(tournament_id: str, limit: Optional[int] = None) -> dict:
    """Complete tournament rankings with ties, drops, disqualification, and exhibition status applied.

    Args:
        tournament_id: Tournament ID (e.g., '1989-03-10_sCA_orange_county_regional_b').
        limit: Optional limit on the number of teams to return. Default: all teams.
    """
    try:
        queries = await _queries(tournament_id)
    except NotFoundError as exc:
        return _not_found(exc)
    except Exception as exc:
        raise _tool_error("get tournament rankings", exc) from exc

    teams = queries.rankings(limit)
    lines = [
        f"{team.rank if team.rank is not None else '-'}. {team.school} (#{team.number}) - {team.points} points"
        + f"{' (tie)' if team.tie else ''}{_status_text(team)}"
        for team in teams
    ]
    total = len(queries.interpreted.teams)
    return {
        "found": True,
        "tournament": queries.title,
        "total_teams": total,
        "drops": queries.interpreted.tournament.drops,
        "rankings": [_team_data(t) for t in teams],
        "summary": f"Tournament: {queries.title}\nTotal Teams: {total}\n\nRankings:\n" + "\n".join(lines),
    }


# ─── Tool 6: All Placements ──────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def get_team_all_placements(tournament_id: str, team_id: str) -> dict:
    """Every event placement for one team, including dropped events.

    Args:
        tournament_id: Tournament ID (e.g., '1989-03-10_sCA_orange_county_regional_b').
        team_id: Team number or school name (a partial, case-insensitive name works).
    """
    try:
        queries = await _queries(tournament_id)
        team, placements = queries.all_placements(team_id)
    except NotFoundError as exc:
        return _not_found(exc)
    except Exception as exc:
        raise _tool_error("get team all placements", exc) from exc

    header = f"Team: {team.school} (#{team.number})"
    extra = [p for p in (team.location, team.suffix) if p]
    if extra:
        header += f" ({', '.join(extra)})"
    status = []
    if team.disqualified:
        status.append("Disqualified")
    if team.exhibition:
        status.append("Exhibition")
    status_text = f"\nStatus: {', '.join(status)}" if status else ""

    if placements:
        body = f"Event Placements ({len(placements)}):\n" + "\n".join(_placement_text(p) for p in placements)
    else:
        body = f'No placements found for team "{team.school}" (#{team.number})'

    return {
        "found": True,
        "tournament": queries.title,
        "team": _team_data(team),
        "placements": [_placement_data(p) for p in placements],
        "summary": f"{header}\nOverall Rank: {_rank_text(team)}\nTotal Points: {team.points}{status_text}\n"
        f"Tournament: {queries.title}\n\n{body}",
    }


# ─── Tool 7: Search ──────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def search(query: str, type: str = "both", limit: int = 10) -> dict:
    """Fuzzy search for tournaments and teams across the Duosmium dataset.

    Args:
        query: Search text (e.g., team name, school, location, tournament name).
        type: 'tournament', 'team', or 'both'. Default 'both'.
        limit: Maximum number of results. Default 10.
    """
    try:
        if limit < 1:
            raise ValidationError(f"limit must be at least 1, got {limit}")
        kind = normalize_kind(type)
        index = SearchIndex()
        hits = await index.search(query, kind, limit)
    except Exception as exc:
        raise _tool_error("search", exc) from exc

    if not hits:
        noun = "tournaments or teams" if kind == "both" else f"{kind}s"
        summary = f'No {noun} found matching "{query}"'
    else:
        summary = f'Search results for "{query}" ({len(hits)} found):\n\n' + "\n\n".join(
            f"{hit.kind.upper()}: {hit.id}" for hit in hits
        )
    return {
        "query": query,
        "type": kind,
        "source": index.source,
        "results": [hit.model_dump() for hit in hits],
        "count": len(hits),
        "summary": summary,
    }


# ─── Tool 8: Fetch ───────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def fetch(id: str) -> dict:
    """Retrieve a tournament's full results record as JSON, with its title and Duosmium URL.

    Args:
        id: Tournament Duosmium ID.
    """
    try:
        data = await asyncio.to_thread(read_record, id)
        queries = await _queries(id)
    except NotFoundError as exc:
        return _not_found(exc)
    except Exception as exc:
        raise _tool_error("fetch tournament data", exc) from exc

    info = queries.info()
    return {
        "id": id,
        "title": queries.title,
        "text": json.dumps(data, indent=2, default=str),
        "url": f"{RESULTS_URL}/{id}",
        "metadata": {
            "team_count": info["team_count"],
            "events": info["events"],
            "rankings": [_team_data(t) for t in queries.rankings()],
        },
    }


def main():
    """Entry point for the CLI command."""
    logging.basicConfig(level=get_log_level(), format="%(asctime)s %(name)s %(levelname)s %(message)s")
    transport = get_transport()
    logger.info("Starting %s %s (%s transport)", SERVICE_NAME, __version__, transport)
    if transport != "stdio":
        logger.info("MCP endpoint: http://%s:%d%s, health check: /health", get_host(), get_port(), mcp.settings.streamable_http_path)
    mcp.run(transport=transport)


if __name__ == "__main__":
    main()

"""Record loader: parses a SciolyFF-shaped results document into typed entities.

The input is the nested mapping produced by ``yaml.safe_load`` on one
``data/results/<id>.yaml`` file:

    Tournament: {name, short name, location, level, state, division, year,
                 date, worst placings dropped, exempt placings}
    Events:     [{name, trial, trialed, scoring}]
    Teams:      [{number, school, school abbreviation, suffix, city, state,
                  track, disqualified, exhibition}]
    Placings:   [{event, team, place, participated, disqualified, exempt,
                  unknown, raw: {score, tier, tiebreaker rank}}]
    Penalties:  [{team, points}]            (optional)

Structural problems raise ParseError naming the offending field. Cross
references between sections are checked later by the interpreter.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from .errors import ParseError
from .models import (
    Event,
    Level,
    LoadedRecord,
    Penalty,
    Placing,
    RawScore,
    Team,
    Tournament,
)

logger = logging.getLogger(__name__)

NATIONALS_TITLE = "Science Olympiad National Tournament"

STATE_NAME_EXPANSIONS = {
    "sCA": "SoCal",
    "nCA": "NorCal",
}

TOURNAMENT_FIELDS = {
    "name": "name",
    "short name": "short_name",
    "location": "location",
    "level": "level",
    "state": "state",
    "division": "division",
    "year": "year",
    "date": "date",
    "worst placings dropped": "drops",
    "exempt placings": "exempt_placings",
}

EVENT_FIELDS = {
    "name": "name",
    "trial": "trial",
    "trialed": "trialed",
    "scoring": "scoring",
}

TEAM_FIELDS = {
    "number": "number",
    "school": "school",
    "school abbreviation": "school_abbreviation",
    "suffix": "suffix",
    "city": "city",
    "state": "state",
    "track": "track",
    "disqualified": "disqualified",
    "exhibition": "exhibition",
}

PLACING_FIELDS = {
    "event": "event",
    "team": "team",
    "place": "place",
    "participated": "participated",
    "disqualified": "disqualified",
    "exempt": "exempt",
    "unknown": "unknown",
}

RAW_FIELDS = {
    "score": "score",
    "tier": "tier",
    "tiebreaker rank": "tiebreaker_rank",
}

PENALTY_FIELDS = {
    "team": "team",
    "points": "points",
}


def expand_state_name(state: str) -> str:
    for code, name in STATE_NAME_EXPANSIONS.items():
        state = state.replace(code, name)
    return state


def tournament_title(
    name: Optional[str],
    level: Optional[str],
    state: Optional[str],
    location: Optional[str],
) -> Optional[str]:
    """Explicit name, or a title derived from level and location.

    Returns None for an unnamed tournament whose level has no title format.
    """
    if name:
        return name
    if level == Level.NATIONALS.value:
        return NATIONALS_TITLE
    if level == Level.STATES.value:
        return f"{expand_state_name(state or '')} Science Olympiad State Tournament"
    if level == Level.REGIONALS.value:
        return f"{location} Regional Tournament"
    if level == Level.INVITATIONAL.value:
        return f"{location} Invitational"
    return None


def load_record(tournament_id: str, data: Any) -> LoadedRecord:
    """Parse one raw results document into a LoadedRecord."""
    if not isinstance(data, dict):
        raise ParseError("<root>", "expected a mapping of sections")

    tournament = _parse_tournament(tournament_id, _require(data, "Tournament", dict))
    events = [
        _build(Event, _pick(raw, EVENT_FIELDS, f"Events[{i}]"), f"Events[{i}]")
        for i, raw in enumerate(_section(data, "Events"))
    ]
    teams = [
        _build(Team, _pick(raw, TEAM_FIELDS, f"Teams[{i}]"), f"Teams[{i}]")
        for i, raw in enumerate(_section(data, "Teams"))
    ]
    placings = [_parse_placing(raw, f"Placings[{i}]") for i, raw in enumerate(_section(data, "Placings"))]
    penalties = [
        _build(Penalty, _pick(raw, PENALTY_FIELDS, f"Penalties[{i}]"), f"Penalties[{i}]")
        for i, raw in enumerate(_section(data, "Penalties", required=False))
    ]

    _check_unique((e.name for e in events), "Events", "event name")
    _check_unique((t.number for t in teams), "Teams", "team number")
    _check_unique(((p.team, p.event) for p in placings), "Placings", "team/event pair")
    _check_exempt_limit(placings, tournament.exempt_placings)

    if tournament.level and tournament.level not in {lvl.value for lvl in Level}:
        logger.warning("Tournament %s has unrecognized level %r", tournament_id, tournament.level)

    return LoadedRecord(
        tournament=tournament,
        events=events,
        teams=teams,
        placings=placings,
        penalties=penalties,
    )


def _parse_tournament(tournament_id: str, raw: dict) -> Tournament:
    fields = _pick(raw, TOURNAMENT_FIELDS, "Tournament")
    for key in ("name", "short_name", "location", "level", "state", "division"):
        if fields.get(key) is not None:
            fields[key] = str(fields[key])
    fields["id"] = tournament_id
    fields["title"] = tournament_title(
        fields.get("name"), fields.get("level"), fields.get("state"), fields.get("location")
    )
    return _build(Tournament, fields, "Tournament")


def _parse_placing(raw: Any, path: str) -> Placing:
    fields = _pick(raw, PLACING_FIELDS, path)
    if raw.get("raw") is not None:
        score = _pick(raw["raw"], RAW_FIELDS, f"{path}.raw")
        fields["raw"] = _build(RawScore, score, f"{path}.raw")
    return _build(Placing, fields, path)


def _require(data: dict, key: str, kind: type) -> Any:
    if data.get(key) is None:
        raise ParseError(key, "missing required field")
    value = data[key]
    if not isinstance(value, kind):
        raise ParseError(key, f"expected {kind.__name__}, got {type(value).__name__}")
    return value


def _section(data: dict, key: str, required: bool = True) -> list:
    if not required and data.get(key) is None:
        return []
    return _require(data, key, list)


def _pick(raw: Any, mapping: dict[str, str], path: str) -> dict:
    """Rename the document's spaced keys to model field names, dropping unknown keys."""
    if not isinstance(raw, dict):
        raise ParseError(path, f"expected a mapping, got {type(raw).__name__}")
    return {field: raw[key] for key, field in mapping.items() if key in raw and raw[key] is not None}


def _build(model: type, fields: dict, path: str):
    try:
        return model(**fields)
    except PydanticValidationError as exc:
        error = exc.errors()[0]
        location = ".".join(str(part) for part in error["loc"])
        raise ParseError(f"{path}.{location}" if location else path, error["msg"]) from exc


def _check_exempt_limit(placings: list[Placing], limit: int) -> None:
    counts = Counter(p.team for p in placings if p.exempt)
    for team, count in sorted(counts.items()):
        if count > limit:
            raise ParseError("Placings", f"team {team} has {count} exempt placings, more than the {limit} allowed")


def _check_unique(values, section: str, what: str) -> None:
    seen = set()
    for value in values:
        if value in seen:
            raise ParseError(section, f"duplicate {what} {value!r}")
        seen.add(value)

"""Scoring interpreter. Derives placements, team totals, and overall ranks.

This is where the scoring rules live:

- Event places use standard competition ranking ("1224"): tied entries share
  a place and the next distinct result skips past the whole tie group.
- Points come from the same ranking restricted to competing teams, so
  exhibition and disqualified teams never shift anyone else's points.
- No-shows score C+1 and event disqualifications C+2, where C is the number
  of competing teams. Both are reported with place 0.
- With N worst placings dropped, each team drops the N highest-point
  placements that are neither event DQs nor exempt. Ties at the cutoff drop
  the alphabetically first event name.
- Trial and trialed events are scored and reported but never count toward a
  total or get dropped.
- Overall rank ranks competing teams by total points. Disqualified teams
  follow after every competing team. Exhibition teams are unranked.

Interpretation is all-or-nothing: a dangling team or event reference raises
ConsistencyError before anything is derived.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from itertools import groupby
from typing import Any, Optional, Sequence

from .errors import ConsistencyError
from .models import (
    Event,
    InterpretedTournament,
    LoadedRecord,
    Placement,
    Placing,
    Scoring,
    Team,
)

logger = logging.getLogger(__name__)


def competition_ranks(keys: Sequence[Any]) -> list[tuple[int, bool]]:
    """Standard competition ranking of keys, lower is better.

    Returns (rank, tied) for each key in input order.
    """
    order = sorted(range(len(keys)), key=lambda i: keys[i])
    ranks: list[tuple[int, bool]] = [(0, False)] * len(keys)
    position = 1
    for _, group in groupby(order, key=lambda i: keys[i]):
        members = list(group)
        for i in members:
            ranks[i] = (position, len(members) > 1)
        position += len(members)
    return ranks


def competes(team: Team) -> bool:
    """Whether a team counts toward rankings and other teams' points."""
    return not team.exhibition and not team.disqualified


def ordering_key(placing: Placing, event: Event) -> Optional[tuple]:
    """Comparable key for a placing with a real result, or None for DQ/NS/unknown."""
    if placing.disqualified or not placing.participated or placing.unknown:
        return None
    if placing.place is not None:
        return None if placing.place == 0 else (placing.place,)
    if placing.raw is not None:
        score = -placing.raw.score if event.scoring == Scoring.HIGH else placing.raw.score
        return (placing.raw.tier, score, placing.raw.tiebreaker_rank)
    return None


def interpret(record: LoadedRecord) -> InterpretedTournament:
    """Derive every placement, total, and rank for one tournament."""
    teams_by_number = {t.number: t for t in record.teams}
    events_by_name = {e.name: e for e in record.events}
    _check_references(record, teams_by_number, events_by_name)

    competing_count = sum(1 for t in record.teams if competes(t))

    placings_by_event: dict[str, list[Placing]] = defaultdict(list)
    for placing in record.placings:
        placings_by_event[placing.event].append(placing)

    placements: list[Placement] = []
    for event in record.events:
        placements.extend(
            score_event(event, placings_by_event[event.name], teams_by_number, competing_count)
        )

    placements = apply_drops(placements, record.tournament.drops)

    totals = {t.number: 0 for t in record.teams}
    for placement in placements:
        if placement.counts and not placement.dropped:
            totals[placement.team] += placement.points
    for penalty in record.penalties:
        totals[penalty.team] += penalty.points

    teams = rank_teams(record.teams, totals)

    logger.debug(
        "Interpreted %s: %d teams, %d events, %d placements",
        record.tournament.id, len(teams), len(record.events), len(placements),
    )
    return InterpretedTournament(
        tournament=record.tournament,
        events=record.events,
        teams=teams,
        placements=placements,
        penalties=record.penalties,
    )


def score_event(
    event: Event,
    placings: list[Placing],
    teams_by_number: dict[int, Team],
    competing_count: int,
) -> list[Placement]:
    """Rank one event's placings and assign their points. Input order is kept."""
    keys = [ordering_key(p, event) for p in placings]
    ranked = [i for i, key in enumerate(keys) if key is not None]
    scoring = [i for i in ranked if competes(teams_by_number[placings[i].team])]

    places = dict(zip(ranked, competition_ranks([keys[i] for i in ranked])))
    points = {i: rank for i, (rank, _) in zip(scoring, competition_ranks([keys[i] for i in scoring]))}

    results = []
    for i, placing in enumerate(placings):
        if i in places:
            place, tie = places[i]
            if i not in points:
                # Non-competing teams score where they would have landed among competitors.
                points[i] = 1 + sum(1 for j in scoring if keys[j] < keys[i])
            results.append(Placement(
                event=event.name,
                team=placing.team,
                place=place,
                tie=tie,
                points=points[i],
                exempt=placing.exempt,
                trial=not event.counted,
            ))
            continue

        disqualified = placing.disqualified or (placing.participated and placing.place == 0)
        if disqualified:
            penalty_points = competing_count + 2
        else:
            if placing.participated and not placing.unknown:
                logger.debug("Placing for team %d in %s has no result; scoring as unknown", placing.team, event.name)
            penalty_points = competing_count + 1
        results.append(Placement(
            event=event.name,
            team=placing.team,
            place=0,
            points=penalty_points,
            exempt=placing.exempt,
            trial=not event.counted,
            participated=placing.participated,
            disqualified=disqualified,
        ))
    return results


def apply_drops(placements: list[Placement], drops: int) -> list[Placement]:
    """Mark each team's `drops` worst droppable placements as dropped.

    Droppable means neither an event DQ, exempt, nor in a trial event. Worst
    is highest points; among equal points the lexicographically lowest event
    name drops first.
    """
    if drops <= 0:
        return placements

    candidates: dict[int, list[Placement]] = defaultdict(list)
    for placement in placements:
        if placement.counts and not placement.disqualified:
            candidates[placement.team].append(placement)

    dropped = set()
    for team_placements in candidates.values():
        worst = sorted(team_placements, key=lambda p: (-p.points, p.event))[:drops]
        dropped.update((p.team, p.event) for p in worst)

    return [
        p.model_copy(update={"dropped": True}) if (p.team, p.event) in dropped else p
        for p in placements
    ]


def rank_teams(teams: list[Team], totals: dict[int, int]) -> list[Team]:
    """Assign overall ranks. Team order is preserved."""
    pool = [t for t in teams if competes(t)]
    disqualified = [t for t in teams if t.disqualified and not t.exhibition]

    derived: dict[int, tuple[Optional[int], bool]] = {}
    for team, (rank, tie) in zip(pool, competition_ranks([totals[t.number] for t in pool])):
        derived[team.number] = (rank, tie)
    for team, (rank, tie) in zip(disqualified, competition_ranks([totals[t.number] for t in disqualified])):
        derived[team.number] = (len(pool) + rank, tie)

    ranked = []
    for team in teams:
        rank, tie = derived.get(team.number, (None, False))
        ranked.append(team.model_copy(update={"points": totals[team.number], "rank": rank, "tie": tie}))
    return ranked


def _check_references(
    record: LoadedRecord,
    teams_by_number: dict[int, Team],
    events_by_name: dict[str, Event],
) -> None:
    for placing in record.placings:
        if placing.team not in teams_by_number:
            raise ConsistencyError(f"Placing in {placing.event!r} references undeclared team {placing.team}")
        if placing.event not in events_by_name:
            raise ConsistencyError(f"Placing for team {placing.team} references undeclared event {placing.event!r}")
    for penalty in record.penalties:
        if penalty.team not in teams_by_number:
            raise ConsistencyError(f"Penalty references undeclared team {penalty.team}")

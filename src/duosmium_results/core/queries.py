"""Read-only queries over one interpreted tournament."""

from __future__ import annotations

import logging
from typing import Optional

from .errors import NotFoundError
from .models import Event, InterpretedTournament, Placement, Team

logger = logging.getLogger(__name__)


class TournamentQueries:
    """Team lookup, placements, rankings, roster, and info for one tournament."""

    def __init__(self, interpreted: InterpretedTournament):
        self.interpreted = interpreted
        self._by_number = {t.number: t for t in interpreted.teams}

    @property
    def title(self) -> str:
        return self.interpreted.tournament.display_title

    def resolve_team(self, identifier: str) -> Team:
        """Find a team by number, falling back to a school-name search.

        1. Exact team number (a leading '#' is ignored).
        2. Case-insensitive exact school name, then the first school name
           containing the identifier, both in roster order.

        Substring matching can pick an unintended team when several schools
        share the substring; the first one in the record wins.
        """
        needle = identifier.strip()
        number = needle.lstrip("#").strip()
        if number.isdigit() and int(number) in self._by_number:
            return self._by_number[int(number)]

        folded = needle.casefold()
        if folded:
            for team in self.interpreted.teams:
                if team.school.casefold() == folded:
                    return team

            matches = [t for t in self.interpreted.teams if folded in t.school.casefold()]
            if matches:
                if len(matches) > 1:
                    logger.info(
                        "Team %r matches %d teams in %s; using #%d",
                        identifier, len(matches), self.interpreted.tournament.id, matches[0].number,
                    )
                return matches[0]

        raise NotFoundError(
            "team", identifier,
            f'Team "{identifier}" not found in tournament "{self.interpreted.tournament.id}"',
        )

    def resolve_event(self, name: str) -> Event:
        for event in self.interpreted.events:
            if event.name == name:
                return event
        folded = name.strip().casefold()
        for event in self.interpreted.events:
            if event.name.casefold() == folded:
                return event
        raise NotFoundError(
            "event", name,
            f'Event "{name}" not found in tournament "{self.interpreted.tournament.id}"',
        )

    def placement(self, team_id: str, event: Optional[str] = None) -> tuple[Team, Optional[Placement]]:
        """The resolved team, plus its placement in one event when an event is given."""
        team = self.resolve_team(team_id)
        if not event:
            return team, None

        resolved = self.resolve_event(event)
        for placement in self.interpreted.placements:
            if placement.team == team.number and placement.event == resolved.name:
                return team, placement
        raise NotFoundError(
            "placement", f"{team.number}:{resolved.name}",
            f'No placement found for team "{team.school}" (#{team.number}) in event "{resolved.name}"',
        )

    def rankings(self, limit: Optional[int] = None) -> list[Team]:
        """Ranked teams first, then unranked (exhibition) teams by number."""
        ranked = sorted(
            (t for t in self.interpreted.teams if t.rank is not None),
            key=lambda t: (t.rank, t.number),
        )
        unranked = sorted(
            (t for t in self.interpreted.teams if t.rank is None),
            key=lambda t: t.number,
        )
        teams = ranked + unranked
        if limit is not None and limit > 0:
            teams = teams[:limit]
        return teams

    def roster(self) -> list[Team]:
        return sorted(self.interpreted.teams, key=lambda t: t.number)

    def all_placements(self, team_id: str) -> tuple[Team, list[Placement]]:
        team = self.resolve_team(team_id)
        placements = sorted(self.interpreted.placements_for(team.number), key=lambda p: p.event)
        return team, placements

    def info(self) -> dict:
        return {
            "id": self.interpreted.tournament.id,
            "title": self.title,
            "short_name": self.interpreted.tournament.short_name,
            "team_count": len(self.interpreted.teams),
            "teams": [t.label for t in self.interpreted.teams],
            "events": [
                {"name": e.name, "trial": e.trial, "trialed": e.trialed}
                for e in self.interpreted.events
            ],
        }

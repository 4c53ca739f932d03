"""Pydantic data models for the typed tournament entity set.

The loader builds the raw entities (Tournament, Event, Team, Placing, Penalty)
from a parsed results document. The interpreter derives Placement objects and
fills in each Team's points, rank, and tie flag. Every model is frozen once
built, so interpreted results can be shared between requests.
"""

from __future__ import annotations

import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Level(str, Enum):
    """Tournament levels with a known title format."""

    INVITATIONAL = "Invitational"
    REGIONALS = "Regionals"
    STATES = "States"
    NATIONALS = "Nationals"


class Scoring(str, Enum):
    """Whether a higher or lower raw score wins an event."""

    HIGH = "high"
    LOW = "low"


class Entity(BaseModel):
    model_config = ConfigDict(frozen=True)


class Tournament(Entity):
    """Tournament metadata."""

    id: str
    name: Optional[str] = None
    short_name: Optional[str] = None
    level: Optional[str] = None
    location: Optional[str] = None
    state: Optional[str] = None
    division: Optional[str] = None
    year: Optional[int] = None
    date: Optional[datetime.date] = None
    drops: int = Field(0, ge=0, description="Worst placings dropped per team")
    exempt_placings: int = Field(0, ge=0)
    title: Optional[str] = Field(None, description="Explicit name or title derived from level and location")

    @property
    def display_title(self) -> str:
        return self.title or self.id


class Event(Entity):
    name: str
    trial: bool = False
    trialed: bool = False
    scoring: Scoring = Scoring.HIGH

    @property
    def counted(self) -> bool:
        return not self.trial and not self.trialed


class Team(Entity):
    """A team entry. points, rank, and tie are filled in by the interpreter."""

    number: int
    school: str
    school_abbreviation: Optional[str] = None
    suffix: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    track: Optional[str] = None
    disqualified: bool = False
    exhibition: bool = False
    points: int = 0
    rank: Optional[int] = None
    tie: bool = False

    @property
    def location(self) -> Optional[str]:
        parts = [p for p in (self.city, self.state) if p]
        return ", ".join(parts) if parts else None

    @property
    def label(self) -> str:
        suffix = f" {self.suffix}" if self.suffix else ""
        return f"{self.school}{suffix} (#{self.number})"

    @property
    def status(self) -> list[str]:
        status = []
        if self.disqualified:
            status.append("DQ")
        if self.exhibition:
            status.append("Exhibition")
        return status


class RawScore(Entity):
    score: float
    tier: int = 1
    tiebreaker_rank: int = 1


class Placing(Entity):
    """One raw placing line as recorded."""

    event: str
    team: int
    place: Optional[int] = Field(None, ge=0)
    participated: bool = True
    disqualified: bool = False
    exempt: bool = False
    unknown: bool = False
    raw: Optional[RawScore] = None


class Penalty(Entity):
    team: int
    points: int


class LoadedRecord(Entity):
    """Loader output: the validated but not yet interpreted entity set."""

    tournament: Tournament
    events: list[Event]
    teams: list[Team]
    placings: list[Placing]
    penalties: list[Penalty] = Field(default_factory=list)


class Placement(Entity):
    """Derived outcome of one team in one event.

    place is 0 for a disqualification or no-show.
    """

    event: str
    team: int
    place: int = Field(ge=0)
    tie: bool = False
    points: int
    dropped: bool = False
    exempt: bool = False
    trial: bool = Field(False, description="Event is trial or trialed; never counted or dropped")
    participated: bool = True
    disqualified: bool = False

    @property
    def counts(self) -> bool:
        """Whether this placement is eligible to count toward the team total."""
        return not self.exempt and not self.trial

    @property
    def place_text(self) -> str:
        return "DQ/NS" if self.place == 0 else str(self.place)


class InterpretedTournament(Entity):
    """Interpreter output: teams carry derived points/rank, placements are scored."""

    tournament: Tournament
    events: list[Event]
    teams: list[Team]
    placements: list[Placement]
    penalties: list[Penalty] = Field(default_factory=list)

    def team(self, number: int) -> Optional[Team]:
        return next((t for t in self.teams if t.number == number), None)

    def placements_for(self, team_number: int) -> list[Placement]:
        return [p for p in self.placements if p.team == team_number]

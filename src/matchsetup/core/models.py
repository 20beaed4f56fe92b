from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class SeriesType(str, Enum):
    BO1 = "bo1"
    BO3 = "bo3"
    BO5 = "bo5"

    @classmethod
    def parse(cls, raw: str | SeriesType) -> SeriesType:
        if isinstance(raw, SeriesType):
            return raw
        key = (raw or "").strip().lower()
        try:
            return cls(key)
        except ValueError:
            options = ", ".join(member.value for member in cls)
            raise ValueError(f"Unknown series type '{raw}'. Options: {options}") from None

    @property
    def best_of(self) -> int:
        return int(self.value[2:])

    def __str__(self) -> str:
        return self.value


class StepKind(str, Enum):
    VETO = "veto"
    PICK = "pick"

    @classmethod
    def parse(cls, raw: str | StepKind) -> StepKind:
        if isinstance(raw, StepKind):
            return raw
        return cls((raw or "").strip().lower())


class TeamSlot(str, Enum):
    ONE = "one"
    TWO = "two"

    def other(self) -> TeamSlot:
        return TeamSlot.TWO if self is TeamSlot.ONE else TeamSlot.ONE


class Side(str, Enum):
    CT = "ct"
    T = "t"

    @classmethod
    def parse(cls, raw: str | Side) -> Side:
        if isinstance(raw, Side):
            return raw
        key = (raw or "").strip().lower()
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown side '{raw}'. Options: ct, t") from None

    def complement(self) -> Side:
        return Side.T if self is Side.CT else Side.CT

    @property
    def label(self) -> str:
        return self.value.upper()


class SetupState(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    AWAITING_SIDES = "awaiting_sides"
    COMPLETED = "completed"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in (SetupState.COMPLETED, SetupState.EXPIRED)


@dataclass(frozen=True)
class Team:
    id: str
    name: str
    # External reference (e.g. a chat role id) that may also identify the team.
    role: str | None = None

    def matches(self, actor: str) -> bool:
        return actor == self.id or (self.role is not None and actor == self.role)


@dataclass(frozen=True)
class MapPoolEntry:
    id: str
    name: str


@dataclass(frozen=True)
class StepTemplateEntry:
    kind: StepKind
    actor: TeamSlot


@dataclass(frozen=True)
class StepRecord:
    """A template entry once it has been played."""

    kind: StepKind
    actor: TeamSlot
    map: MapPoolEntry


@dataclass(frozen=True)
class ResolvedMap:
    sequence_position: int
    map: MapPoolEntry
    picked_by: TeamSlot
    start_side_team_one: Side | None = None
    start_side_team_two: Side | None = None

    @property
    def sides_resolved(self) -> bool:
        return self.start_side_team_one is not None and self.start_side_team_two is not None

    @property
    def side_chooser(self) -> TeamSlot:
        return self.picked_by.other()

    def start_side_for(self, slot: TeamSlot) -> Side | None:
        return self.start_side_team_one if slot is TeamSlot.ONE else self.start_side_team_two

    def with_side(self, chooser: TeamSlot, side: Side) -> ResolvedMap:
        other = side.complement()
        if chooser is TeamSlot.ONE:
            return ResolvedMap(self.sequence_position, self.map, self.picked_by, side, other)
        return ResolvedMap(self.sequence_position, self.map, self.picked_by, other, side)


@dataclass(frozen=True)
class MatchConfig:
    """Finalized setup handed to server provisioning."""

    series_id: str
    maps: tuple[ResolvedMap, ...]
    completed_at: datetime
    transcript: tuple[str, ...] = ()

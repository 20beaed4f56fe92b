"""The live veto/pick aggregate for one series.

A :class:`SetupSession` only changes through :meth:`SetupSession.apply_step`,
:meth:`SetupSession.apply_side_choice` and :meth:`SetupSession.expire`.  Each
transition validates first and then applies every field change together, so a
rejected action leaves the session exactly as it was.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Sequence

from ..core.errors import DuplicateMap, InsufficientMapPool, InvalidTeams
from ..core.models import (
    MapPoolEntry,
    MatchConfig,
    ResolvedMap,
    SeriesType,
    SetupState,
    Side,
    StepKind,
    StepRecord,
    StepTemplateEntry,
    Team,
    TeamSlot,
)
from ..core.sequence import generate
from .validator import ensure_mutable, validate_side_choice, validate_step

__all__ = ["SetupSession", "utcnow"]

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SetupSession:
    series_id: str
    team_one: Team
    team_two: Team
    series_type: SeriesType
    template: tuple[StepTemplateEntry, ...]
    pool: tuple[MapPoolEntry, ...]
    created_at: datetime
    deadline: datetime | None = None
    cursor: int = 0
    state: SetupState = SetupState.PENDING
    remaining_pool: dict[str, MapPoolEntry] = field(default_factory=dict)
    resolved_maps: list[ResolvedMap] = field(default_factory=list)
    # Insertion ordered; doubles as an ordered set of map ids.
    pending_side_choices: list[str] = field(default_factory=list)
    history: list[StepRecord] = field(default_factory=list)
    updated_at: datetime | None = None
    completed_at: datetime | None = None
    match_config: MatchConfig | None = field(default=None, compare=False, repr=False)

    @classmethod
    def create(
        cls,
        series_id: str,
        team_one: Team,
        team_two: Team,
        series_type: SeriesType | str,
        map_pool: Sequence[MapPoolEntry],
        *,
        now: datetime | None = None,
        deadline: datetime | None = None,
    ) -> SetupSession:
        series = SeriesType.parse(series_type)
        template = generate(series)
        _check_teams(series_id, team_one, team_two)
        pool = tuple(map_pool)
        seen: set[str] = set()
        for entry in pool:
            if entry.id in seen:
                raise DuplicateMap(f"map '{entry.id}' appears more than once in the pool", series_id=series_id)
            seen.add(entry.id)
        if len(pool) < len(template):
            raise InsufficientMapPool(
                f"a {series.value} setup needs at least {len(template)} maps, got {len(pool)}",
                series_id=series_id,
                required=len(template),
                available=len(pool),
            )
        created = now or utcnow()
        return cls(
            series_id=series_id,
            team_one=team_one,
            team_two=team_two,
            series_type=series,
            template=template,
            pool=pool,
            created_at=created,
            deadline=deadline,
            remaining_pool={entry.id: entry for entry in pool},
            updated_at=created,
        )

    # ------------------------------------------------------------------ views
    @property
    def pool_ids(self) -> frozenset[str]:
        return frozenset(entry.id for entry in self.pool)

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def team(self, slot: TeamSlot) -> Team:
        return self.team_one if slot is TeamSlot.ONE else self.team_two

    def current_step(self) -> StepTemplateEntry | None:
        if self.is_terminal or self.cursor >= len(self.template):
            return None
        return self.template[self.cursor]

    def current_actor(self) -> Team | None:
        step = self.current_step()
        return self.team(step.actor) if step is not None else None

    def remaining_maps(self) -> list[MapPoolEntry]:
        return list(self.remaining_pool.values())

    def side_chooser(self, map_id: str) -> Team | None:
        for resolved in self.resolved_maps:
            if resolved.map.id == map_id and map_id in self.pending_side_choices:
                return self.team(resolved.side_chooser)
        return None

    def is_overdue(self, now: datetime) -> bool:
        return not self.is_terminal and self.deadline is not None and now >= self.deadline

    def copy(self) -> SetupSession:
        return copy.deepcopy(self)

    # ------------------------------------------------------------ transitions
    def apply_step(
        self,
        actor: str,
        map_id: str,
        kind: StepKind | None = None,
        *,
        now: datetime | None = None,
    ) -> SetupSession:
        slot, entry = validate_step(self, actor, map_id, kind)
        chosen = self.remaining_pool.pop(map_id)
        self.history.append(StepRecord(kind=entry.kind, actor=slot, map=chosen))
        if entry.kind is StepKind.PICK:
            self.resolved_maps.append(
                ResolvedMap(sequence_position=len(self.resolved_maps) + 1, map=chosen, picked_by=slot)
            )
            self.pending_side_choices.append(chosen.id)
        self.cursor += 1
        self.updated_at = now or utcnow()
        if self.cursor < len(self.template):
            self.state = SetupState.IN_PROGRESS
        elif self.pending_side_choices:
            self.state = SetupState.AWAITING_SIDES
        else:
            self._complete(self.updated_at)
        logger.debug(
            "Applied %s of %s by team %s",
            entry.kind.value,
            chosen.name,
            slot.value,
            extra={"series_id": self.series_id, "cursor": self.cursor, "state": self.state.value},
        )
        return self

    def apply_side_choice(
        self,
        actor: str,
        map_id: str,
        side: Side | str,
        *,
        now: datetime | None = None,
    ) -> SetupSession:
        slot, index = validate_side_choice(self, actor, map_id)
        chosen_side = Side.parse(side)
        self.resolved_maps[index] = self.resolved_maps[index].with_side(slot, chosen_side)
        self.pending_side_choices.remove(map_id)
        self.updated_at = now or utcnow()
        if self.cursor >= len(self.template) and not self.pending_side_choices:
            self._complete(self.updated_at)
        logger.debug(
            "Team %s starts %s on %s",
            slot.value,
            chosen_side.label,
            map_id,
            extra={"series_id": self.series_id, "state": self.state.value},
        )
        return self

    def expire(self, now: datetime | None = None) -> SetupSession:
        ensure_mutable(self)
        self.state = SetupState.EXPIRED
        self.remaining_pool.clear()
        self.pending_side_choices.clear()
        self.updated_at = now or utcnow()
        return self

    def _complete(self, when: datetime) -> None:
        self.state = SetupState.COMPLETED
        self.completed_at = when

    # ---------------------------------------------------------- serialisation
    def to_dict(self) -> dict[str, Any]:
        return {
            "series_id": self.series_id,
            "team_one": _team_dict(self.team_one),
            "team_two": _team_dict(self.team_two),
            "series_type": self.series_type.value,
            "pool": [_map_dict(entry) for entry in self.pool],
            "created_at": self.created_at.isoformat(),
            "deadline": _iso(self.deadline),
            "cursor": self.cursor,
            "state": self.state.value,
            "remaining_pool": list(self.remaining_pool),
            "resolved_maps": [
                {
                    "sequence_position": resolved.sequence_position,
                    "map": resolved.map.id,
                    "picked_by": resolved.picked_by.value,
                    "start_side_team_one": _enum_value(resolved.start_side_team_one),
                    "start_side_team_two": _enum_value(resolved.start_side_team_two),
                }
                for resolved in self.resolved_maps
            ],
            "pending_side_choices": list(self.pending_side_choices),
            "history": [
                {"kind": record.kind.value, "actor": record.actor.value, "map": record.map.id}
                for record in self.history
            ],
            "updated_at": _iso(self.updated_at),
            "completed_at": _iso(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SetupSession:
        pool = tuple(MapPoolEntry(id=str(item["id"]), name=str(item["name"])) for item in data["pool"])
        by_id = {entry.id: entry for entry in pool}
        series_type = SeriesType.parse(data["series_type"])
        return cls(
            series_id=str(data["series_id"]),
            team_one=_team_from(data["team_one"]),
            team_two=_team_from(data["team_two"]),
            series_type=series_type,
            template=generate(series_type),
            pool=pool,
            created_at=datetime.fromisoformat(data["created_at"]),
            deadline=_parse_iso(data.get("deadline")),
            cursor=int(data["cursor"]),
            state=SetupState(data["state"]),
            remaining_pool={map_id: by_id[map_id] for map_id in data["remaining_pool"]},
            resolved_maps=[
                ResolvedMap(
                    sequence_position=int(item["sequence_position"]),
                    map=by_id[item["map"]],
                    picked_by=TeamSlot(item["picked_by"]),
                    start_side_team_one=_side_from(item.get("start_side_team_one")),
                    start_side_team_two=_side_from(item.get("start_side_team_two")),
                )
                for item in data["resolved_maps"]
            ],
            pending_side_choices=list(data["pending_side_choices"]),
            history=[
                StepRecord(kind=StepKind(item["kind"]), actor=TeamSlot(item["actor"]), map=by_id[item["map"]])
                for item in data["history"]
            ],
            updated_at=_parse_iso(data.get("updated_at")),
            completed_at=_parse_iso(data.get("completed_at")),
        )


def _check_teams(series_id: str, team_one: Team, team_two: Team) -> None:
    refs_one = {team_one.id, team_one.role} - {None}
    refs_two = {team_two.id, team_two.role} - {None}
    if refs_one & refs_two:
        raise InvalidTeams("a setup needs two different teams", series_id=series_id)


def _team_dict(team: Team) -> dict[str, Any]:
    return {"id": team.id, "name": team.name, "role": team.role}


def _team_from(data: dict[str, Any]) -> Team:
    role = data.get("role")
    return Team(id=str(data["id"]), name=str(data["name"]), role=None if role is None else str(role))


def _map_dict(entry: MapPoolEntry) -> dict[str, str]:
    return {"id": entry.id, "name": entry.name}


def _enum_value(value: Side | None) -> str | None:
    return value.value if value is not None else None


def _side_from(raw: str | None) -> Side | None:
    return Side(raw) if raw else None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_iso(raw: str | None) -> datetime | None:
    return datetime.fromisoformat(raw) if raw else None

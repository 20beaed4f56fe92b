from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from ..core.errors import DuplicateMap, UnknownMap, UnknownTeam
from ..core.models import MapPoolEntry, Team

__all__ = ["DEFAULT_MAP_POOL", "JsonMapCatalog", "MapCatalogConfig", "StaticTeamDirectory"]

DEFAULT_MAP_POOL = Path(__file__).with_name("maps") / "active_duty.json"


@dataclass(slots=True)
class MapCatalogConfig:
    """Where the active map pool is read from."""

    resource: Path


class JsonMapCatalog:
    """Active map pool loaded from a JSON document.

    The document is either a list of ``{"id", "name"}`` objects or an object
    with a ``maps`` key holding that list.  Order is preserved.
    """

    def __init__(self, config: MapCatalogConfig | None = None) -> None:
        resource = config.resource if config else DEFAULT_MAP_POOL
        self._config = MapCatalogConfig(resource=resource)
        self._maps = self._load_resource(resource)
        self._by_id = {entry.id: entry for entry in self._maps}

    @staticmethod
    def _load_resource(path: Path) -> tuple[MapPoolEntry, ...]:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
        if isinstance(data, dict):
            data = data.get("maps")
        if not isinstance(data, list):
            raise ValueError(f"Invalid map catalog payload in {path}")
        maps: list[MapPoolEntry] = []
        seen: set[str] = set()
        for item in data:
            if not isinstance(item, dict) or "name" not in item:
                raise ValueError(f"Invalid map entry {item!r} in {path}")
            name = str(item["name"]).strip()
            map_id = str(item.get("id") or name).strip().lower()
            if map_id in seen:
                raise DuplicateMap(f"map '{map_id}' is listed twice in {path}")
            seen.add(map_id)
            maps.append(MapPoolEntry(id=map_id, name=name))
        return tuple(maps)

    @property
    def resource(self) -> Path:
        return self._config.resource

    def active_maps(self) -> list[MapPoolEntry]:
        return list(self._maps)

    def get(self, map_id: str) -> MapPoolEntry:
        try:
            return self._by_id[map_id]
        except KeyError:
            raise UnknownMap(f"map '{map_id}' is not in the active pool", map_id=map_id) from None


class StaticTeamDirectory:
    """In-memory team directory indexed by team id and by series id."""

    def __init__(
        self,
        teams: Iterable[Team] = (),
        series: dict[str, tuple[str, str]] | None = None,
    ) -> None:
        self._teams: dict[str, Team] = {}
        self._series: dict[str, tuple[str, str]] = {}
        for team in teams:
            self.add_team(team)
        for series_id, (team_one, team_two) in (series or {}).items():
            self.schedule(series_id, team_one, team_two)

    def add_team(self, team: Team) -> None:
        self._teams[team.id] = team

    def schedule(self, series_id: str, team_one: str, team_two: str) -> None:
        self._series[series_id] = (team_one, team_two)

    def resolve_team(self, team_id: str) -> Team:
        team = self._teams.get(team_id)
        if team is None:
            raise UnknownTeam(f"team '{team_id}' is not registered", team_id=team_id)
        return team

    def teams_for_series(self, series_id: str) -> tuple[Team, Team]:
        pairing = self._series.get(series_id)
        if pairing is None:
            raise UnknownTeam(f"no teams are scheduled for series '{series_id}'", series_id=series_id)
        return self.resolve_team(pairing[0]), self.resolve_team(pairing[1])

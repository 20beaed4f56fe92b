from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from .models import MapPoolEntry, Team

if TYPE_CHECKING:
    from ..veto.session import SetupSession


class TeamDirectory(Protocol):
    def resolve_team(self, team_id: str) -> Team: ...

    def teams_for_series(self, series_id: str) -> tuple[Team, Team]: ...


class MapCatalog(Protocol):
    def active_maps(self) -> list[MapPoolEntry]: ...


class SessionStore(Protocol):
    def load(self, series_id: str) -> SetupSession | None: ...

    def save(self, session: SetupSession) -> None: ...

    def delete(self, series_id: str) -> None: ...

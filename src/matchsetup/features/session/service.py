from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ...core.config import SetupSettings
from ...core.errors import PersistenceError, SessionNotFound, SetupAlreadyRunning
from ...core.formatting import transcript_lines
from ...core.interfaces import MapCatalog, SessionStore, TeamDirectory
from ...core.models import MapPoolEntry, MatchConfig, ResolvedMap, SeriesType, Side, StepKind, Team
from ...veto.finalizer import finalize
from ...veto.session import SetupSession, utcnow
from ...veto.validator import ensure_mutable
from .concurrency import run_blocking
from .schemas import (
    MapPayload,
    MatchConfigPayload,
    ResolvedMapPayload,
    SessionPayload,
    StepPayload,
    TeamPayload,
)
from .store import InMemorySessionStore

__all__ = [
    "SessionRegistry",
    "match_config_payload",
    "session_payload",
]

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    session: SetupSession
    lock: threading.Lock = field(default_factory=threading.Lock)
    # True while the latest in-memory state has not been saved.
    dirty: bool = False


class SessionRegistry:
    """Owns setup lifecycle independent of the presentation layer.

    Each series gets its own lock, held across validate, apply and the
    snapshot save, so concurrent actions on one series serialise while
    different series never contend.  Callers always receive copies; the live
    session never leaves the registry.
    """

    def __init__(
        self,
        store: SessionStore | None = None,
        *,
        session_ttl: float | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store: SessionStore = store if store is not None else InMemorySessionStore()
        self._ttl = session_ttl
        self._clock = clock
        self._sessions: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: SetupSettings, store: SessionStore | None = None) -> SessionRegistry:
        ttl = settings.session_ttl if settings.deadlines_enabled else None
        return cls(store, session_ttl=ttl)

    @property
    def store(self) -> SessionStore:
        return self._store

    # --------------------------------------------------------------- lifecycle
    def start_setup(
        self,
        series_id: str,
        team_one: Team,
        team_two: Team,
        series_type: SeriesType | str,
        map_pool: Sequence[MapPoolEntry],
        *,
        ttl: float | None = None,
    ) -> SetupSession:
        now = self._clock()
        ttl = self._ttl if ttl is None else ttl
        deadline = now + timedelta(seconds=ttl) if ttl and ttl > 0 else None
        session = SetupSession.create(
            series_id,
            team_one,
            team_two,
            series_type,
            map_pool,
            now=now,
            deadline=deadline,
        )
        with self._lock:
            existing = self._lookup(series_id)
            if existing is not None and not existing.session.is_terminal:
                raise SetupAlreadyRunning(
                    f"a setup for series '{series_id}' is already running",
                    series_id=series_id,
                )
            if existing is not None:
                with existing.lock:
                    unsaved = existing.dirty
                if unsaved:
                    raise SetupAlreadyRunning(
                        f"the previous setup for series '{series_id}' has not been saved; call persist() first",
                        series_id=series_id,
                        state=existing.session.state.value,
                    )
            entry = _Entry(session=session, dirty=True)
            self._sessions[series_id] = entry

        logger.info(
            "Started %s setup: %s vs %s",
            session.series_type.value,
            team_one.name,
            team_two.name,
            extra={"series_id": series_id, "deadline": deadline.isoformat() if deadline else None},
        )
        with entry.lock:
            snapshot = entry.session.copy()
            self._save(entry, snapshot)
        return snapshot

    def start_scheduled_setup(
        self,
        series_id: str,
        series_type: SeriesType | str,
        directory: TeamDirectory,
        catalog: MapCatalog,
        *,
        ttl: float | None = None,
    ) -> SetupSession:
        team_one, team_two = directory.teams_for_series(series_id)
        return self.start_setup(series_id, team_one, team_two, series_type, catalog.active_maps(), ttl=ttl)

    def submit_step(
        self,
        series_id: str,
        actor: str,
        map_id: str,
        kind: StepKind | str | None = None,
    ) -> SetupSession:
        step_kind = StepKind.parse(kind) if kind is not None else None
        return self._transition(
            series_id,
            lambda session, now: session.apply_step(actor, map_id, step_kind, now=now),
        )

    def submit_side_choice(self, series_id: str, actor: str, map_id: str, side: Side | str) -> SetupSession:
        return self._transition(
            series_id,
            lambda session, now: session.apply_side_choice(actor, map_id, side, now=now),
        )

    def finalize(self, series_id: str) -> MatchConfig:
        entry = self._require_entry(series_id)
        with entry.lock:
            return finalize(entry.session)

    def get(self, series_id: str) -> SetupSession:
        entry = self._require_entry(series_id)
        with entry.lock:
            return entry.session.copy()

    def persist(self, series_id: str) -> SetupSession:
        """Retry saving the current snapshot after a :class:`PersistenceError`."""

        entry = self._require_entry(series_id)
        with entry.lock:
            snapshot = entry.session.copy()
            self._save(entry, snapshot)
            return snapshot

    def expire_overdue(self, now: datetime | None = None) -> list[str]:
        moment = now or self._clock()
        with self._lock:
            entries = list(self._sessions.items())
        expired: list[str] = []
        for series_id, entry in entries:
            with entry.lock:
                if not entry.session.is_overdue(moment):
                    continue
                self._expire_locked(entry, moment)
            expired.append(series_id)
        return expired

    def evict(self, series_id: str) -> bool:
        """Drop a terminal, saved session from memory."""

        with self._lock:
            entry = self._sessions.get(series_id)
            if entry is None:
                return False
            with entry.lock:
                if not entry.session.is_terminal or entry.dirty:
                    return False
                del self._sessions[series_id]
        logger.info("Evicted %s setup", entry.session.state.value, extra={"series_id": series_id})
        return True

    def evict_finished(self) -> list[str]:
        with self._lock:
            candidates = list(self._sessions)
        return [series_id for series_id in candidates if self.evict(series_id)]

    def active_series(self) -> list[str]:
        with self._lock:
            return [series_id for series_id, entry in self._sessions.items() if not entry.session.is_terminal]

    # ------------------------------------------------------------------ async
    async def start_setup_async(self, *args, **kwargs) -> SetupSession:
        return await run_blocking(self.start_setup, *args, **kwargs)

    async def submit_step_async(
        self, series_id: str, actor: str, map_id: str, kind: StepKind | str | None = None
    ) -> SetupSession:
        return await run_blocking(self.submit_step, series_id, actor, map_id, kind)

    async def submit_side_choice_async(self, series_id: str, actor: str, map_id: str, side: Side | str) -> SetupSession:
        return await run_blocking(self.submit_side_choice, series_id, actor, map_id, side)

    async def finalize_async(self, series_id: str) -> MatchConfig:
        return await run_blocking(self.finalize, series_id)

    async def get_async(self, series_id: str) -> SetupSession:
        return await run_blocking(self.get, series_id)

    # ---------------------------------------------------------------- helpers
    def _transition(self, series_id: str, apply: Callable[[SetupSession, datetime], SetupSession]) -> SetupSession:
        entry = self._require_entry(series_id)
        with entry.lock:
            session = entry.session
            now = self._clock()
            if session.is_overdue(now):
                self._expire_locked(entry, now)
            ensure_mutable(session)
            apply(session, now)
            entry.dirty = True
            snapshot = session.copy()
            if session.is_terminal:
                logger.info("Setup %s", session.state.value, extra={"series_id": series_id})
            self._save(entry, snapshot)
            return snapshot

    def _expire_locked(self, entry: _Entry, now: datetime) -> None:
        session = entry.session
        session.expire(now)
        entry.dirty = True
        logger.info("Setup expired at step %d", session.cursor, extra={"series_id": session.series_id})
        try:
            self._save(entry, session.copy())
        except PersistenceError:
            # Left dirty; the session cannot be evicted until persist() succeeds.
            return

    def _save(self, entry: _Entry, snapshot: SetupSession) -> None:
        try:
            self._store.save(snapshot)
        except Exception as exc:
            logger.warning(
                "Saving setup snapshot failed: %s",
                exc,
                extra={"series_id": snapshot.series_id},
            )
            raise PersistenceError(snapshot.series_id, snapshot, exc) from exc
        entry.dirty = False

    def _lookup(self, series_id: str) -> _Entry | None:
        # Caller holds self._lock.
        entry = self._sessions.get(series_id)
        if entry is not None:
            return entry
        stored = self._store.load(series_id)
        if stored is None:
            return None
        if stored.series_id != series_id:
            logger.warning(
                "Ignoring stored snapshot for series %r", stored.series_id, extra={"series_id": series_id}
            )
            return None
        entry = _Entry(session=stored)
        self._sessions[series_id] = entry
        return entry

    def _require_entry(self, series_id: str) -> _Entry:
        with self._lock:
            entry = self._lookup(series_id)
        if entry is None:
            raise SessionNotFound(series_id)
        return entry


def _map_payload(entry: MapPoolEntry) -> MapPayload:
    return MapPayload(id=entry.id, name=entry.name)


def _team_payload(team: Team) -> TeamPayload:
    return TeamPayload(id=team.id, name=team.name, role=team.role)


def _resolved_payload(session: SetupSession, resolved: ResolvedMap) -> ResolvedMapPayload:
    return ResolvedMapPayload(
        sequence_position=resolved.sequence_position,
        map=_map_payload(resolved.map),
        picked_by=resolved.picked_by.value,
        picked_by_team=session.team(resolved.picked_by).name,
        start_side_team_one=resolved.start_side_team_one.value if resolved.start_side_team_one else None,
        start_side_team_two=resolved.start_side_team_two.value if resolved.start_side_team_two else None,
    )


def session_payload(session: SetupSession) -> SessionPayload:
    """Read-only view of a session for presentation layers."""

    steps: list[StepPayload] = []
    for index, entry in enumerate(session.template):
        played = session.history[index] if index < len(session.history) else None
        steps.append(
            StepPayload(
                index=index,
                kind=entry.kind.value,
                actor=entry.actor.value,
                team=session.team(entry.actor).name,
                map=_map_payload(played.map) if played else None,
            )
        )
    current = session.current_step()
    actor = session.current_actor()
    return SessionPayload(
        series_id=session.series_id,
        series_type=session.series_type.value,
        state=session.state.value,
        team_one=_team_payload(session.team_one),
        team_two=_team_payload(session.team_two),
        cursor=session.cursor,
        current_kind=current.kind.value if current else None,
        current_actor=_team_payload(actor) if actor else None,
        steps=steps,
        remaining_maps=[_map_payload(entry) for entry in session.remaining_maps()],
        resolved_maps=[_resolved_payload(session, resolved) for resolved in session.resolved_maps],
        pending_side_choices=list(session.pending_side_choices),
        transcript=transcript_lines(session),
        created_at=session.created_at,
        deadline=session.deadline,
        completed_at=session.completed_at,
    )


def match_config_payload(config: MatchConfig, session: SetupSession) -> MatchConfigPayload:
    return MatchConfigPayload(
        series_id=config.series_id,
        maps=[_resolved_payload(session, resolved) for resolved in config.maps],
        completed_at=config.completed_at,
        transcript=list(config.transcript),
    )

"""Legality checks for incoming veto, pick and side actions.

Checks run in a fixed order and stop at the first failure.  Nothing in this
module mutates the session.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..core.errors import (
    InvalidActor,
    MapAlreadyConsumed,
    NotYourTurn,
    SeriesAlreadyCompleted,
    SeriesExpired,
    SideAlreadyChosen,
    UnknownMap,
    WrongStepType,
)
from ..core.models import ResolvedMap, SetupState, StepKind, StepTemplateEntry, TeamSlot

if TYPE_CHECKING:
    from .session import SetupSession

__all__ = ["ensure_mutable", "resolve_actor", "validate_side_choice", "validate_step"]


def ensure_mutable(session: SetupSession) -> None:
    if session.state is SetupState.COMPLETED:
        raise SeriesAlreadyCompleted(
            f"setup for series '{session.series_id}' is already completed",
            series_id=session.series_id,
        )
    if session.state is SetupState.EXPIRED:
        raise SeriesExpired(
            f"setup for series '{session.series_id}' has expired",
            series_id=session.series_id,
        )


def resolve_actor(session: SetupSession, actor: str) -> TeamSlot:
    """Map an external team reference (id or role) onto its slot."""

    key = str(actor).strip()
    matches = [
        slot
        for slot, team in ((TeamSlot.ONE, session.team_one), (TeamSlot.TWO, session.team_two))
        if key and team.matches(key)
    ]
    if len(matches) != 1:
        raise InvalidActor(
            f"'{actor}' is not part of either team in this setup",
            series_id=session.series_id,
            actor=actor,
        )
    return matches[0]


def validate_step(
    session: SetupSession,
    actor: str,
    map_id: str,
    kind: StepKind | None = None,
) -> tuple[TeamSlot, StepTemplateEntry]:
    ensure_mutable(session)
    if session.state is SetupState.AWAITING_SIDES:
        raise WrongStepType(
            "all vetoes and picks are done; waiting for side choices",
            series_id=session.series_id,
        )

    slot = resolve_actor(session, actor)
    entry = session.template[session.cursor]
    if entry.actor is not slot:
        raise NotYourTurn(
            f"it is {session.team(entry.actor).name}'s turn to {entry.kind.value}",
            series_id=session.series_id,
            actor=actor,
        )
    if kind is not None and StepKind.parse(kind) is not entry.kind:
        raise WrongStepType(
            f"this step is a {entry.kind.value}, not a {StepKind.parse(kind).value}",
            series_id=session.series_id,
        )

    if map_id not in session.remaining_pool:
        if map_id in session.pool_ids:
            raise MapAlreadyConsumed(
                f"map '{map_id}' has already been banned or picked",
                series_id=session.series_id,
                map_id=map_id,
            )
        raise UnknownMap(
            f"map '{map_id}' is not in this setup's map pool",
            series_id=session.series_id,
            map_id=map_id,
        )
    return slot, entry


def validate_side_choice(session: SetupSession, actor: str, map_id: str) -> tuple[TeamSlot, int]:
    """Return the chooser's slot and the index of the resolved map to update."""

    ensure_mutable(session)
    slot = resolve_actor(session, actor)

    index = _resolved_index(session.resolved_maps, map_id)
    if index is None:
        raise UnknownMap(
            f"map '{map_id}' has not been picked in this setup",
            series_id=session.series_id,
            map_id=map_id,
        )
    resolved = session.resolved_maps[index]
    if slot is not resolved.side_chooser:
        raise NotYourTurn(
            f"{session.team(resolved.side_chooser).name} chooses the starting side on {resolved.map.name}",
            series_id=session.series_id,
            actor=actor,
        )
    if resolved.sides_resolved or map_id not in session.pending_side_choices:
        raise SideAlreadyChosen(
            f"starting sides for {resolved.map.name} are already set",
            series_id=session.series_id,
            map_id=map_id,
        )
    return slot, index


def _resolved_index(resolved_maps: list[ResolvedMap], map_id: str) -> int | None:
    for idx, resolved in enumerate(resolved_maps):
        if resolved.map.id == map_id:
            return idx
    return None

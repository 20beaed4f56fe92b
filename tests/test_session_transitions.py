from __future__ import annotations

import pytest

from matchsetup.core.errors import (
    DuplicateMap,
    InsufficientMapPool,
    InvalidTeams,
    NotYourTurn,
    SeriesAlreadyCompleted,
    SeriesExpired,
)
from matchsetup.core.models import (
    MapPoolEntry,
    ResolvedMap,
    SeriesType,
    SetupState,
    Side,
    StepKind,
    Team,
    TeamSlot,
)
from matchsetup.core.sequence import pick_count
from matchsetup.veto.session import SetupSession

BO1_SCRIPT = [
    ("bravo", "nuke"),
    ("alpha", "anubis"),
    ("bravo", "vertigo"),
    ("alpha", "overpass"),
    ("bravo", "ancient"),
    ("alpha", "mirage"),
]


def _session(team_one: Team, team_two: Team, pool: list[MapPoolEntry], series: SeriesType) -> SetupSession:
    return SetupSession.create("s-1", team_one, team_two, series, pool)


def _play_all_steps(session: SetupSession) -> None:
    """Drive every template step using the first remaining map."""

    while session.current_step() is not None:
        actor = session.current_actor()
        assert actor is not None
        session.apply_step(actor.id, session.remaining_maps()[0].id)


def test_bo1_end_to_end(team_one, team_two, pool) -> None:
    session = _session(team_one, team_two, pool, SeriesType.BO1)
    assert session.state is SetupState.PENDING

    for actor, map_id in BO1_SCRIPT[:-1]:
        session.apply_step(actor, map_id)
    assert session.state is SetupState.IN_PROGRESS
    assert [entry.id for entry in session.remaining_maps()] == ["mirage", "inferno"]

    session.apply_step("alpha", "mirage", StepKind.PICK)
    assert session.state is SetupState.AWAITING_SIDES
    assert [(r.map.name, r.picked_by) for r in session.resolved_maps] == [("Mirage", TeamSlot.ONE)]
    assert session.pending_side_choices == ["mirage"]

    session.apply_side_choice("bravo", "mirage", "ct")
    assert session.state is SetupState.COMPLETED
    assert session.completed_at is not None
    mirage = session.resolved_maps[0]
    assert mirage.start_side_team_two is Side.CT
    assert mirage.start_side_team_one is Side.T
    assert session.pending_side_choices == []


def test_cursor_and_pool_invariants_hold_through_every_step(team_one, team_two, pool) -> None:
    for series in SeriesType:
        session = _session(team_one, team_two, pool, series)
        previous = session.cursor
        picks_seen = 0
        while session.current_step() is not None:
            step = session.current_step()
            actor = session.team(step.actor)
            session.apply_step(actor.id, session.remaining_maps()[-1].id)
            picks_seen += step.kind is StepKind.PICK
            assert session.cursor == previous + 1
            assert session.cursor <= len(session.template)
            assert len(session.remaining_pool) == len(pool) - session.cursor
            assert len(session.resolved_maps) == picks_seen
            previous = session.cursor
        assert len(session.resolved_maps) == pick_count(series)


def test_completed_sessions_have_complementary_sides(team_one, team_two, pool) -> None:
    session = _session(team_one, team_two, pool, SeriesType.BO5)
    _play_all_steps(session)
    assert session.state is SetupState.AWAITING_SIDES

    for resolved in list(session.resolved_maps):
        chooser = session.team(resolved.side_chooser)
        session.apply_side_choice(chooser.id, resolved.map.id, Side.T)

    assert session.state is SetupState.COMPLETED
    for resolved in session.resolved_maps:
        assert resolved.sides_resolved
        assert resolved.start_side_team_one is resolved.start_side_team_two.complement()
    assert [r.sequence_position for r in session.resolved_maps] == [1, 2, 3, 4, 5]


def test_side_choice_allowed_before_sequence_finishes(team_one, team_two, pool) -> None:
    session = _session(team_one, team_two, pool, SeriesType.BO3)
    session.apply_step("alpha", "nuke")
    session.apply_step("bravo", "vertigo")
    session.apply_step("alpha", "mirage")

    session.apply_side_choice("bravo", "mirage", Side.CT)

    assert session.state is SetupState.IN_PROGRESS
    assert session.pending_side_choices == []
    assert session.resolved_maps[0].start_side_team_one is Side.T


def test_bo3_leaves_one_map_untouched(team_one, team_two, pool) -> None:
    session = _session(team_one, team_two, pool, SeriesType.BO3)
    _play_all_steps(session)
    assert len(session.remaining_pool) == 1
    assert len(session.resolved_maps) == 3


def test_rejected_step_leaves_session_unchanged(team_one, team_two, pool) -> None:
    session = _session(team_one, team_two, pool, SeriesType.BO1)
    before = session.to_dict()
    with pytest.raises(NotYourTurn):
        session.apply_step("alpha", "nuke")
    assert session.to_dict() == before


def test_step_after_completion_is_rejected(team_one, team_two, pool) -> None:
    session = _session(team_one, team_two, pool, SeriesType.BO1)
    for actor, map_id in BO1_SCRIPT:
        session.apply_step(actor, map_id)
    session.apply_side_choice("bravo", "mirage", "t")
    resolved_before = list(session.resolved_maps)

    with pytest.raises(SeriesAlreadyCompleted):
        session.apply_step("alpha", "inferno")
    assert session.resolved_maps == resolved_before


def test_expire_is_terminal(team_one, team_two, pool) -> None:
    session = _session(team_one, team_two, pool, SeriesType.BO3)
    session.apply_step("alpha", "nuke")
    session.expire()

    assert session.state is SetupState.EXPIRED
    assert session.remaining_pool == {}
    with pytest.raises(SeriesExpired):
        session.apply_step("bravo", "mirage")
    with pytest.raises(SeriesExpired):
        session.expire()


def test_terminal_state_wins_over_bad_side_value(team_one, team_two, pool) -> None:
    session = _session(team_one, team_two, pool, SeriesType.BO1)
    for actor, map_id in BO1_SCRIPT:
        session.apply_step(actor, map_id)
    session.apply_side_choice("bravo", "mirage", "ct")
    with pytest.raises(SeriesAlreadyCompleted):
        session.apply_side_choice("bravo", "mirage", "left")

    expired = _session(team_one, team_two, pool, SeriesType.BO1)
    expired.expire()
    with pytest.raises(SeriesExpired):
        expired.apply_side_choice("alpha", "mirage", "left")


def test_create_rejects_small_pool(team_one, team_two, pool) -> None:
    with pytest.raises(InsufficientMapPool) as excinfo:
        SetupSession.create("s-1", team_one, team_two, SeriesType.BO5, pool[:6])
    assert excinfo.value.context["required"] == 7
    # Bo1 and Bo3 only need six maps.
    SetupSession.create("s-1", team_one, team_two, SeriesType.BO3, pool[:6])


def test_create_rejects_duplicate_maps_and_same_team(team_one, team_two, pool) -> None:
    with pytest.raises(DuplicateMap):
        SetupSession.create("s-1", team_one, team_two, SeriesType.BO1, pool + [pool[0]])
    with pytest.raises(InvalidTeams):
        SetupSession.create("s-1", team_one, team_one, SeriesType.BO1, pool)


def test_round_trip_through_dict(team_one, team_two, pool) -> None:
    session = _session(team_one, team_two, pool, SeriesType.BO3)
    session.apply_step("alpha", "nuke")
    session.apply_step("bravo", "vertigo")
    session.apply_step("alpha", "mirage")

    restored = SetupSession.from_dict(session.to_dict())

    assert restored == session
    assert restored.resolved_maps == [ResolvedMap(1, MapPoolEntry("mirage", "Mirage"), TeamSlot.ONE)]
    assert restored.current_actor() == team_two

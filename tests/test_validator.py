from __future__ import annotations

import pytest

from matchsetup.core.errors import (
    AuthorizationError,
    InvalidActor,
    MapAlreadyConsumed,
    NotYourTurn,
    SeriesAlreadyCompleted,
    SideAlreadyChosen,
    UnknownMap,
    WrongStepType,
)
from matchsetup.core.models import SeriesType, Side, StepKind, TeamSlot
from matchsetup.veto.session import SetupSession
from matchsetup.veto.validator import resolve_actor, validate_side_choice, validate_step


@pytest.fixture
def session(team_one, team_two, pool) -> SetupSession:
    return SetupSession.create("s-9", team_one, team_two, SeriesType.BO3, pool)


def test_actor_resolves_by_id_or_role(session) -> None:
    assert resolve_actor(session, "alpha") is TeamSlot.ONE
    assert resolve_actor(session, "role-bravo") is TeamSlot.TWO
    with pytest.raises(InvalidActor):
        resolve_actor(session, "charlie")
    with pytest.raises(InvalidActor):
        resolve_actor(session, "")


def test_checks_run_in_order(session) -> None:
    # Unknown actor wins over every later check.
    with pytest.raises(InvalidActor):
        validate_step(session, "charlie", "does-not-exist", StepKind.PICK)
    # Wrong team wins over wrong kind and unknown map.
    with pytest.raises(NotYourTurn):
        validate_step(session, "bravo", "does-not-exist", StepKind.PICK)
    with pytest.raises(WrongStepType):
        validate_step(session, "alpha", "does-not-exist", StepKind.PICK)
    with pytest.raises(UnknownMap):
        validate_step(session, "alpha", "does-not-exist", StepKind.VETO)


def test_wrong_team_never_advances_cursor(session) -> None:
    for _ in range(3):
        with pytest.raises(NotYourTurn):
            session.apply_step("bravo", "nuke")
    assert session.cursor == 0
    assert "nuke" in session.remaining_pool


def test_map_consumed_once(session) -> None:
    session.apply_step("alpha", "nuke")
    with pytest.raises(MapAlreadyConsumed):
        session.apply_step("bravo", "nuke")
    assert session.cursor == 1


def test_kind_is_optional(session) -> None:
    slot, entry = validate_step(session, "role-alpha", "mirage")
    assert slot is TeamSlot.ONE
    assert entry.kind is StepKind.VETO


def test_step_while_awaiting_sides_is_wrong_step(team_one, team_two, pool) -> None:
    session = SetupSession.create("s-9", team_one, team_two, SeriesType.BO1, pool)
    for actor, map_id in [("bravo", "nuke"), ("alpha", "anubis"), ("bravo", "vertigo"), ("alpha", "overpass"), ("bravo", "ancient"), ("alpha", "mirage")]:
        session.apply_step(actor, map_id)
    with pytest.raises(WrongStepType):
        session.apply_step("bravo", "inferno")


def test_side_choice_rules(session) -> None:
    session.apply_step("alpha", "nuke")
    session.apply_step("bravo", "vertigo")
    session.apply_step("alpha", "mirage")

    with pytest.raises(UnknownMap):
        validate_side_choice(session, "bravo", "nuke")
    with pytest.raises(UnknownMap):
        validate_side_choice(session, "bravo", "inferno")
    with pytest.raises(NotYourTurn):
        validate_side_choice(session, "alpha", "mirage")
    assert isinstance(NotYourTurn("x"), AuthorizationError)

    session.apply_side_choice("bravo", "mirage", Side.CT)
    with pytest.raises(SideAlreadyChosen):
        session.apply_side_choice("bravo", "mirage", Side.T)
    assert session.resolved_maps[0].start_side_team_two is Side.CT


def test_completed_session_rejects_side_choice(team_one, team_two, pool) -> None:
    session = SetupSession.create("s-9", team_one, team_two, SeriesType.BO1, pool)
    for actor, map_id in [("bravo", "nuke"), ("alpha", "anubis"), ("bravo", "vertigo"), ("alpha", "overpass"), ("bravo", "ancient"), ("alpha", "mirage")]:
        session.apply_step(actor, map_id)
    session.apply_side_choice("bravo", "mirage", "ct")
    with pytest.raises(SeriesAlreadyCompleted):
        session.apply_side_choice("bravo", "mirage", "t")


def test_error_payload_shape() -> None:
    exc = MapAlreadyConsumed("map 'nuke' has already been banned or picked", map_id="nuke")
    assert exc.to_dict() == {
        "code": "map_already_consumed",
        "category": "protocol",
        "message": "map 'nuke' has already been banned or picked",
    }
    assert exc.context == {"map_id": "nuke"}

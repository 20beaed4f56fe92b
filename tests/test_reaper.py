from __future__ import annotations

import time

import pytest

from matchsetup.core.models import SeriesType, SetupState
from matchsetup.features.session import SessionReaper, SessionRegistry


def test_run_once_expires_then_evicts(team_one, team_two, pool, clock) -> None:
    registry = SessionRegistry(session_ttl=5, clock=clock)
    registry.start_setup("s-1", team_one, team_two, SeriesType.BO3, pool)
    registry.start_setup("s-2", team_one, team_two, SeriesType.BO3, pool, ttl=0)
    reaper = SessionReaper(registry, interval=1)

    assert reaper.run_once() == ([], [])

    clock.advance(6)
    expired, evicted = reaper.run_once()
    assert expired == ["s-1"]
    assert evicted == ["s-1"]
    assert registry.active_series() == ["s-2"]
    # The expired snapshot is still in the store.
    assert registry.get("s-1").state is SetupState.EXPIRED


def test_background_thread_sweeps(team_one, team_two, pool, clock) -> None:
    registry = SessionRegistry(session_ttl=1, clock=clock)
    registry.start_setup("s-1", team_one, team_two, SeriesType.BO1, pool)
    clock.advance(2)

    reaper = SessionReaper(registry, interval=0.01)
    reaper.start()
    try:
        deadline = time.monotonic() + 2.0
        while registry.active_series() and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        reaper.stop()

    assert not reaper.running
    assert registry.active_series() == []


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        SessionReaper(SessionRegistry(), interval=0)

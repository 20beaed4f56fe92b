from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Ensure "src" is on sys.path for imports in tests
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from matchsetup.core.models import MapPoolEntry, Team  # noqa: E402

MAP_NAMES = ["Mirage", "Inferno", "Nuke", "Overpass", "Ancient", "Anubis", "Vertigo"]


class FakeClock:
    """Manually advanced UTC clock for deadline tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 5, 1, 18, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def pool() -> list[MapPoolEntry]:
    return [MapPoolEntry(id=name.lower(), name=name) for name in MAP_NAMES]


@pytest.fixture
def team_one() -> Team:
    return Team(id="alpha", name="Alpha", role="role-alpha")


@pytest.fixture
def team_two() -> Team:
    return Team(id="bravo", name="Bravo", role="role-bravo")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()

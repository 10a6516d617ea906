import logging

import pytest

from tournament_engine.models import Division, Pitch
from tournament_engine.services.scheduler import Scheduler


@pytest.fixture(autouse=True)
def engine_debug_logging(caplog):
    """Capture engine logs at DEBUG so log assertions see every level."""
    caplog.set_level(logging.DEBUG, logger="tournament_engine")
    yield


@pytest.fixture(name="division")
def division_fixture() -> Division:
    """60-minute matches with a 10-minute break."""
    return Division(id="D1", name="U12", match_duration_minutes=60, break_duration_minutes=10)


@pytest.fixture(name="short_division")
def short_division_fixture() -> Division:
    return Division(id="D2", name="U8", match_duration_minutes=30, break_duration_minutes=5)


@pytest.fixture(name="divisions")
def divisions_fixture(division, short_division) -> dict:
    return {division.id: division, short_division.id: short_division}


@pytest.fixture(name="pitches")
def pitches_fixture() -> list:
    """P1 and P2 at venue V1, P3 at venue V2, P4 closed."""
    return [
        Pitch(id="P1", name="Pitch 1", venue_id="V1"),
        Pitch(id="P2", name="Pitch 2", venue_id="V1"),
        Pitch(id="P3", name="Main Field", venue_id="V2"),
        Pitch(id="P4", name="Closed Field", venue_id="V2", is_available=False),
    ]


@pytest.fixture(name="make_scheduler")
def make_scheduler_fixture(pitches, divisions):
    """Factory: Scheduler over the given matches with the shared pitches and divisions."""

    def _make(matches):
        return Scheduler(matches=matches, pitches=pitches, divisions=divisions.values())

    return _make

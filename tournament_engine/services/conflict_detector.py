"""
Conflict Detector - pure placement legality checks.

Given a proposed placement (pitch + start) and the current set of placed
matches, decide whether the placement is legal:

1. **No pitch overlap**: two matches on the same pitch may not share time
2. **No team overlap**: a team may not play two matches at once

End instants are ALWAYS recomputed from the owning division's match length.
A stored end_time is never trusted, so a changed division setting can never
leave stale ends behind. Intervals are half-open: back-to-back is legal.

Pure functions of their inputs - no mutation, deterministic ordering.
"""

import logging
from datetime import datetime
from typing import Callable, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, field_validator

from tournament_engine import config
from tournament_engine.models.division import Division
from tournament_engine.models.match import Match
from tournament_engine.utils.results import (
    ConflictError,
    ConflictResult,
    EngineStateError,
    PitchConflictError,
    TeamConflictError,
)
from tournament_engine.utils.time_model import TimeWindow, to_utc

logger = logging.getLogger(__name__)

DivisionLookup = Union[Mapping[str, Division], Callable[[str], Division]]


class MatchPlacement(BaseModel):
    """A candidate placement: which match, which teams, where and when."""

    match_id: str
    division_id: str
    home_team_id: Optional[str] = None
    away_team_id: Optional[str] = None
    pitch_id: str
    start_time: datetime

    @field_validator("start_time", mode="before")
    @classmethod
    def _normalize_start(cls, value):
        return to_utc(value)

    @classmethod
    def for_match(cls, match: Match, pitch_id: str, start_time) -> "MatchPlacement":
        return cls(
            match_id=match.id,
            division_id=match.division_id,
            home_team_id=match.home_team_id,
            away_team_id=match.away_team_id,
            pitch_id=pitch_id,
            start_time=start_time,
        )

    def team_ids(self) -> List[str]:
        return [t for t in (self.home_team_id, self.away_team_id) if t is not None]


def resolve_division(division_lookup: DivisionLookup, division_id: str) -> Division:
    """Resolve a division id through a mapping or a callable. Unknown ids fail loudly."""
    if callable(division_lookup) and not isinstance(division_lookup, Mapping):
        division = division_lookup(division_id)
    else:
        division = division_lookup.get(division_id)
    if division is None:
        raise EngineStateError(f"Division {division_id} not found")
    return division


def match_window(match: Match, division_lookup: DivisionLookup) -> Optional[TimeWindow]:
    """[start, start + division duration) for a placed match, None if the match has no start."""
    if match.start_time is None:
        return None
    division = resolve_division(division_lookup, match.division_id)
    return TimeWindow.from_start(match.start_time, division.match_duration_minutes)


def _shared_team(candidate_teams: List[str], other: Match) -> Optional[str]:
    """First candidate team that also plays in *other* (home-home, home-away, away-home, away-away)."""
    other_teams = other.team_ids()
    for team_id in candidate_teams:
        if team_id in other_teams:
            return team_id
    return None


def check_placement(
    candidate: MatchPlacement,
    existing: Iterable[Match],
    division_lookup: DivisionLookup,
    *,
    find_all: Optional[bool] = None,
) -> ConflictResult:
    """
    Check a candidate placement against every other placed match.

    Args:
        candidate: Proposed placement (its match_id is excluded from comparison)
        existing: Current matches; unplaced ones (no pitch or no start) are skipped
        division_lookup: division_id -> Division, mapping or callable
        find_all: Enumerate every conflict instead of stopping at the first.
            Defaults to config.REPORT_ALL_CONFLICTS.

    Returns:
        ConflictResult - ok when empty. For each existing match the pitch
        check runs before the team check; order follows *existing*.
    """
    if find_all is None:
        find_all = config.REPORT_ALL_CONFLICTS

    candidate_division = resolve_division(division_lookup, candidate.division_id)
    candidate_window = TimeWindow.from_start(candidate.start_time, candidate_division.match_duration_minutes)
    candidate_teams = candidate.team_ids()

    conflicts: List[ConflictError] = []

    for other in existing:
        if other.id == candidate.match_id:
            continue
        if other.pitch_id is None or other.start_time is None:
            continue

        other_window = match_window(other, division_lookup)
        if not candidate_window.overlaps(other_window):
            continue

        if other.pitch_id == candidate.pitch_id:
            conflicts.append(
                PitchConflictError(
                    match_id=candidate.match_id,
                    offending_match_id=other.id,
                    pitch_id=candidate.pitch_id,
                    window=other_window,
                    offending_home_team_id=other.home_team_id,
                    offending_away_team_id=other.away_team_id,
                )
            )
            if not find_all:
                break

        shared = _shared_team(candidate_teams, other)
        if shared is not None:
            conflicts.append(
                TeamConflictError(
                    match_id=candidate.match_id,
                    offending_match_id=other.id,
                    team_id=shared,
                    window=other_window,
                    offending_home_team_id=other.home_team_id,
                    offending_away_team_id=other.away_team_id,
                )
            )
            if not find_all:
                break

    if conflicts:
        logger.debug(
            "Placement of match %s on pitch %s at %s rejected: %d conflict(s), first against %s",
            candidate.match_id,
            candidate.pitch_id,
            candidate_window,
            len(conflicts),
            conflicts[0].offending_match_id,
        )
    return ConflictResult(conflicts=conflicts)


def find_schedule_conflicts(matches: Iterable[Match], division_lookup: DivisionLookup) -> List[ConflictError]:
    """
    Audit a whole snapshot for pitch and team double-bookings.

    Each offending pair is reported once (from the later match in input order
    against the earlier one). Useful for hosts importing externally edited
    schedules and for invariant checks.
    """
    placed = [m for m in matches if m.pitch_id is not None and m.start_time is not None]
    conflicts: List[ConflictError] = []
    for index, match in enumerate(placed):
        candidate = MatchPlacement.for_match(match, match.pitch_id, match.start_time)
        result = check_placement(candidate, placed[:index], division_lookup, find_all=True)
        conflicts.extend(result.conflicts)
    return conflicts

"""
Scheduler: placement, batch placement, auto-assignment, move, resize and clear
operations over a match collection.

Every mutation is gated by the conflict detector and is atomic at the
single-match level: a rejected call leaves the collection untouched, an
accepted call writes pitch, venue, start and end together.

Scheduling state per match (orthogonal to the result status):
    UNSCHEDULED --schedule--> SCHEDULED
    SCHEDULED --reschedule--> SCHEDULED
    SCHEDULED --unschedule--> UNSCHEDULED

The scheduler is not thread-safe. Callers sharing one collection between
concurrent actors must serialize mutations per tournament, otherwise two
schedule calls can both observe "no conflict" for the same slot.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, field_validator

from tournament_engine.models.division import AssignmentMode, Division
from tournament_engine.models.match import Match
from tournament_engine.models.venue import Pitch
from tournament_engine.services.conflict_detector import (
    MatchPlacement,
    check_placement,
    match_window,
)
from tournament_engine.utils.results import (
    AutoAssignResult,
    ConflictError,
    EngineStateError,
    PitchUnavailableError,
    ResizeResult,
    ScheduleBatchResult,
    ScheduleResult,
    SlotSuggestion,
)
from tournament_engine.utils.time_model import InstantLike, add_minutes, to_utc

logger = logging.getLogger(__name__)


class MatchScope(BaseModel):
    """Filter for clear_all and auto_assign. Unset fields match everything."""

    division_id: Optional[str] = None
    group_id: Optional[str] = None
    venue_id: Optional[str] = None
    pitch_id: Optional[str] = None

    def contains(self, match: Match) -> bool:
        if self.division_id is not None and match.division_id != self.division_id:
            return False
        if self.group_id is not None and match.group_id != self.group_id:
            return False
        if self.venue_id is not None and match.venue_id != self.venue_id:
            return False
        if self.pitch_id is not None and match.pitch_id != self.pitch_id:
            return False
        return True


class PlacementRequest(BaseModel):
    """One entry of a batch placement."""

    match_id: str
    pitch_id: str
    start_time: datetime

    @field_validator("start_time", mode="before")
    @classmethod
    def _normalize_start(cls, value):
        return to_utc(value)


class Scheduler:
    """
    Owns the current match collection for one tournament.

    Matches are stored by id and replaced wholesale on every accepted
    mutation, so a Match object handed out earlier is never modified in place.
    """

    def __init__(
        self,
        matches: Iterable[Match],
        pitches: Iterable[Pitch],
        divisions: Iterable[Division],
    ):
        self.matches: Dict[str, Match] = {m.id: m for m in matches}
        self.pitches: Dict[str, Pitch] = {p.id: p for p in pitches}
        self.divisions: Dict[str, Division] = {d.id: d for d in divisions}

    # ------------------------------------------------------------------
    # Lookups (unknown ids are programmer errors)
    # ------------------------------------------------------------------

    def get_match(self, match_id: str) -> Match:
        match = self.matches.get(match_id)
        if match is None:
            raise EngineStateError(f"Match {match_id} not found")
        return match

    def get_pitch(self, pitch_id: str) -> Pitch:
        pitch = self.pitches.get(pitch_id)
        if pitch is None:
            raise EngineStateError(f"Pitch {pitch_id} not found")
        return pitch

    def get_division(self, division_id: str) -> Division:
        division = self.divisions.get(division_id)
        if division is None:
            raise EngineStateError(f"Division {division_id} not found")
        return division

    def snapshot(self) -> List[Match]:
        """Current matches in insertion order."""
        return list(self.matches.values())

    # ------------------------------------------------------------------
    # Gated mutations
    # ------------------------------------------------------------------

    def _gate(
        self,
        match: Match,
        pitch_id: str,
        start: InstantLike,
        existing: Iterable[Match],
        find_all: Optional[bool] = None,
    ) -> Tuple[Optional[Match], List[ConflictError]]:
        """
        Run the placement gate against *existing* without writing anything.

        Returns (placed copy, []) when legal, or (None, conflicts) when not.
        """
        pitch = self.get_pitch(pitch_id)
        division = self.get_division(match.division_id)
        start_utc = to_utc(start)

        if not pitch.is_available:
            logger.warning("Match %s rejected: pitch %s is unavailable", match.id, pitch_id)
            return None, [PitchUnavailableError(match_id=match.id, pitch_id=pitch_id)]

        candidate = MatchPlacement.for_match(match, pitch_id, start_utc)
        result = check_placement(candidate, existing, self.divisions, find_all=find_all)
        if not result.ok:
            logger.warning(
                "Match %s rejected on pitch %s at %s: %s",
                match.id,
                pitch_id,
                start_utc.isoformat(),
                result.first.message,
            )
            return None, result.conflicts

        placed = match.model_copy(
            update={
                "pitch_id": pitch.id,
                "venue_id": pitch.venue_id,
                "start_time": start_utc,
                "end_time": add_minutes(start_utc, division.match_duration_minutes),
            }
        )
        return placed, []

    def _place(self, match: Match, pitch_id: str, start: InstantLike) -> ScheduleResult:
        updated, conflicts = self._gate(match, pitch_id, start, self.matches.values())
        if updated is None:
            return ScheduleResult(match=match, conflicts=conflicts)

        self.matches[match.id] = updated
        logger.info(
            "Match %s placed on pitch %s (venue %s) %s-%s",
            match.id,
            updated.pitch_id,
            updated.venue_id,
            updated.start_time.isoformat(),
            updated.end_time.isoformat(),
        )
        return ScheduleResult(match=updated)

    def schedule(self, match_id: str, pitch_id: str, start: InstantLike) -> ScheduleResult:
        """
        Place a match on a pitch at a start instant.

        Resolves pitch -> venue, runs the conflict detector over every other
        match and on success sets pitch, venue, start and the recomputed end.
        Already-placed matches are moved (same gate).
        """
        return self._place(self.get_match(match_id), pitch_id, start)

    def reschedule(
        self,
        match_id: str,
        new_start: InstantLike,
        new_pitch_id: Optional[str] = None,
    ) -> ScheduleResult:
        """
        Move an already-scheduled match. Keeps its pitch unless new_pitch_id is given.

        A pitch in another venue implicitly reassigns the match's venue.
        """
        match = self.get_match(match_id)
        if not match.is_scheduled:
            raise EngineStateError(f"Match {match_id} is not scheduled; use schedule() first")
        return self._place(match, new_pitch_id or match.pitch_id, new_start)

    def schedule_many(self, placements: Iterable[PlacementRequest]) -> ScheduleBatchResult:
        """
        Place a batch of matches all-or-nothing.

        Each entry is checked against the current schedule plus the entries of
        the batch already accepted, so two entries clashing with each other are
        caught. Any conflict rejects the whole batch and nothing is written;
        every conflict found is returned.
        """
        working: Dict[str, Match] = dict(self.matches)
        placed: List[Match] = []
        conflicts: List[ConflictError] = []

        requests = list(placements)
        for request in requests:
            match = working.get(request.match_id)
            if match is None:
                raise EngineStateError(f"Match {request.match_id} not found")
            updated, entry_conflicts = self._gate(
                match, request.pitch_id, request.start_time, working.values(), find_all=True
            )
            if updated is None:
                conflicts.extend(entry_conflicts)
                continue
            working[match.id] = updated
            placed.append(updated)

        if conflicts:
            logger.warning(
                "Batch of %d placement(s) rejected: %d conflict(s)",
                len(requests),
                len(conflicts),
            )
            return ScheduleBatchResult(conflicts=conflicts)

        self.matches.update(working)
        logger.info("Batch placed %d match(es)", len(placed))
        return ScheduleBatchResult(matches=placed)

    def unschedule(self, match_id: str) -> Match:
        """Clear pitch/venue/start/end. Always succeeds."""
        match = self.get_match(match_id)
        updated = match.model_copy(
            update={"pitch_id": None, "venue_id": None, "start_time": None, "end_time": None}
        )
        self.matches[match_id] = updated
        if match.has_placement:
            logger.info("Match %s unscheduled from pitch %s", match_id, match.pitch_id)
        return updated

    def clear_all(self, scope: Optional[MatchScope] = None, *, confirm: bool) -> List[Match]:
        """
        Unschedule every match in scope holding any placement field. Destructive.

        confirm must be True; anything else raises ValueError and changes nothing.
        """
        if confirm is not True:
            raise ValueError("clear_all is destructive and requires confirm=True")
        scope = scope or MatchScope()
        cleared = [
            self.unschedule(m.id)
            for m in list(self.matches.values())
            if m.has_placement and scope.contains(m)
        ]
        logger.info("Cleared %d scheduled match(es) (scope=%s)", len(cleared), scope.model_dump(exclude_none=True))
        return cleared

    def resize(
        self,
        division_id: str,
        match_duration_minutes: int,
        break_duration_minutes: Optional[int] = None,
    ) -> ResizeResult:
        """
        Change a division's match length and recompute every placed match's end.

        All-or-nothing: each placed match of the division is re-checked with the
        new length against the rest of the schedule (itself resized). On any
        conflict nothing changes and the conflicts are returned.
        """
        division = self.get_division(division_id)
        updates = {"match_duration_minutes": match_duration_minutes}
        if break_duration_minutes is not None:
            updates["break_duration_minutes"] = break_duration_minutes
        resized = Division.model_validate({**division.model_dump(), **updates})

        proposed_divisions = {**self.divisions, division_id: resized}
        affected = [m for m in self.matches.values() if m.division_id == division_id and m.is_scheduled]

        conflicts: List[ConflictError] = []
        seen_pairs = set()
        for match in affected:
            candidate = MatchPlacement.for_match(match, match.pitch_id, match.start_time)
            result = check_placement(candidate, self.matches.values(), proposed_divisions, find_all=True)
            for conflict in result.conflicts:
                pair = frozenset((conflict.match_id, conflict.offending_match_id, conflict.kind))
                if pair in seen_pairs:
                    continue
                seen_pairs.add(pair)
                conflicts.append(conflict)

        if conflicts:
            logger.warning(
                "Resize of division %s to %d min rejected: %d conflict(s)",
                division_id,
                match_duration_minutes,
                len(conflicts),
            )
            return ResizeResult(division=division, conflicts=conflicts)

        updated_matches: List[Match] = []
        for match in affected:
            updated = match.model_copy(
                update={"end_time": add_minutes(match.start_time, resized.match_duration_minutes)}
            )
            self.matches[match.id] = updated
            updated_matches.append(updated)
        self.divisions[division_id] = resized
        logger.info(
            "Division %s resized to %d min; %d match end(s) recomputed",
            division_id,
            resized.match_duration_minutes,
            len(updated_matches),
        )
        return ResizeResult(division=resized, updated_matches=updated_matches)

    # ------------------------------------------------------------------
    # Read-only helpers
    # ------------------------------------------------------------------

    def suggest_slot(
        self,
        match_id: str,
        pitch_ids: Iterable[str],
        not_before: InstantLike,
        not_after: Optional[InstantLike] = None,
    ) -> Optional[SlotSuggestion]:
        """
        Earliest legal (start, pitch) for a match. Does not mutate anything.

        Candidate starts are not_before plus the end of every placed match on
        the given pitches (or sharing a team with this match) followed by its
        division's break. Starts later than not_after are ignored. Ties on
        start go to the first available pitch in pitch_ids.
        """
        match = self.get_match(match_id)
        division = self.get_division(match.division_id)
        earliest = to_utc(not_before)
        latest = to_utc(not_after) if not_after is not None else None
        pitch_order = [p for p in pitch_ids if self.get_pitch(p).is_available]

        own_teams = set(match.team_ids())
        candidates = {earliest}
        for other in self.matches.values():
            if other.id == match.id:
                continue
            if other.pitch_id not in pitch_order and not own_teams.intersection(other.team_ids()):
                continue
            window = match_window(other, self.divisions)
            if window is None or other.pitch_id is None:
                continue
            other_division = self.get_division(other.division_id)
            candidates.add(add_minutes(window.end, other_division.break_duration_minutes))

        for start in sorted(c for c in candidates if c >= earliest):
            if latest is not None and start > latest:
                break
            for pitch_id in pitch_order:
                candidate = MatchPlacement.for_match(match, pitch_id, start)
                if check_placement(candidate, self.matches.values(), self.divisions, find_all=False).ok:
                    return SlotSuggestion(
                        match_id=match.id,
                        pitch_id=pitch_id,
                        start_time=start,
                        end_time=add_minutes(start, division.match_duration_minutes),
                    )
        return None

    def auto_assign(
        self,
        scope: Optional[MatchScope],
        pitch_ids: Iterable[str],
        not_before: InstantLike,
    ) -> AutoAssignResult:
        """
        Place every unplaced AUTOMATIC-mode match in scope at its earliest legal slot.

        Matches are taken in collection order; each goes through suggest_slot
        and then the normal placement gate, so later matches see the earlier
        ones and the division break is kept between consecutive slots. Matches
        of MANUAL-mode divisions are never touched.
        """
        scope = scope or MatchScope()
        pitch_order = list(pitch_ids)
        assigned: List[Match] = []
        unplaced: List[str] = []

        for match in list(self.matches.values()):
            if match.is_scheduled or not scope.contains(match):
                continue
            if self.get_division(match.division_id).assignment_mode != AssignmentMode.automatic:
                continue
            suggestion = self.suggest_slot(match.id, pitch_order, not_before)
            if suggestion is None:
                unplaced.append(match.id)
                continue
            result = self._place(match, suggestion.pitch_id, suggestion.start_time)
            assert result.ok, f"suggested slot for match {match.id} was rejected"
            assigned.append(result.match)

        logger.info(
            "Auto-assigned %d match(es), %d left unplaced (scope=%s)",
            len(assigned),
            len(unplaced),
            scope.model_dump(exclude_none=True),
        )
        return AutoAssignResult(assigned=assigned, unplaced_match_ids=unplaced)

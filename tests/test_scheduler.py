"""
Tests for the Scheduler: gated placement, batches, auto-assignment, moves, clears, resize and slot suggestion.
"""

import logging

import pytest

from tournament_engine.models import AssignmentMode, Division
from tournament_engine.services.conflict_detector import find_schedule_conflicts
from tournament_engine.services.scheduler import MatchScope, PlacementRequest, Scheduler
from tournament_engine.utils.results import (
    EngineStateError,
    PitchConflictError,
    PitchUnavailableError,
    TeamConflictError,
)
from tests.factories import at, make_match


class TestSchedule:

    def test_sets_pitch_venue_start_and_end(self, make_scheduler):
        scheduler = make_scheduler([make_match("A", "X", "Y")])
        result = scheduler.schedule("A", "P1", at(10))
        assert result.ok
        match = scheduler.get_match("A")
        assert match.pitch_id == "P1"
        assert match.venue_id == "V1"
        assert match.start_time == at(10)
        assert match.end_time == at(11)
        assert result.match == match

    def test_accepts_iso_string(self, make_scheduler):
        scheduler = make_scheduler([make_match("A", "X", "Y", division_id="D2")])
        result = scheduler.schedule("A", "P3", "2024-01-15T12:00:00+02:00")
        assert result.ok
        assert result.match.start_time == at(10)
        assert result.match.end_time == at(10, 30)
        assert result.match.venue_id == "V2"

    def test_back_to_back_accepted(self, make_scheduler):
        scheduler = make_scheduler([
            make_match("A", "X", "Y", pitch_id="P1", start=at(10)),
            make_match("B", "Z", "W"),
        ])
        assert scheduler.schedule("B", "P1", at(11)).ok

    def test_pitch_overlap_rejected_without_mutation(self, make_scheduler):
        scheduler = make_scheduler([
            make_match("A", "X", "Y", pitch_id="P1", start=at(10)),
            make_match("B", "Z", "W"),
        ])
        before = scheduler.snapshot()
        result = scheduler.schedule("B", "P1", at(10, 59))
        assert not result.ok
        assert isinstance(result.conflicts[0], PitchConflictError)
        assert result.conflicts[0].offending_match_id == "A"
        assert scheduler.snapshot() == before
        assert not scheduler.get_match("B").is_scheduled

    def test_team_overlap_on_other_pitch_rejected(self, make_scheduler):
        scheduler = make_scheduler([
            make_match("A", "X", "Y", pitch_id="P1", start=at(10)),
            make_match("B", "X", "Q"),
        ])
        result = scheduler.schedule("B", "P2", at(10, 30))
        assert not result.ok
        assert isinstance(result.conflicts[0], TeamConflictError)
        assert result.conflicts[0].team_id == "X"

    def test_unavailable_pitch(self, make_scheduler):
        scheduler = make_scheduler([make_match("A", "X", "Y")])
        result = scheduler.schedule("A", "P4", at(10))
        assert not result.ok
        assert isinstance(result.conflicts[0], PitchUnavailableError)
        assert result.conflicts[0].pitch_id == "P4"
        assert not scheduler.get_match("A").is_scheduled

    def test_schedule_moves_already_placed_match(self, make_scheduler):
        scheduler = make_scheduler([make_match("A", "X", "Y", pitch_id="P1", start=at(10))])
        result = scheduler.schedule("A", "P2", at(14))
        assert result.ok
        assert result.match.pitch_id == "P2"
        assert result.match.end_time == at(15)

    def test_unknown_ids_fail_loudly(self, make_scheduler):
        scheduler = make_scheduler([make_match("A", "X", "Y")])
        with pytest.raises(EngineStateError):
            scheduler.schedule("missing", "P1", at(10))
        with pytest.raises(EngineStateError):
            scheduler.schedule("A", "P99", at(10))

    def test_unknown_division_fails_loudly(self, make_scheduler):
        scheduler = make_scheduler([make_match("A", "X", "Y", division_id="D9")])
        with pytest.raises(EngineStateError):
            scheduler.schedule("A", "P1", at(10))

    def test_rejection_is_logged(self, make_scheduler, caplog):
        scheduler = make_scheduler([
            make_match("A", "X", "Y", pitch_id="P1", start=at(10)),
            make_match("B", "Z", "W"),
        ])
        scheduler.schedule("B", "P1", at(10, 30))
        assert any(
            r.levelno == logging.WARNING and "Match B rejected" in r.getMessage()
            for r in caplog.records
        )

    def test_returned_matches_are_not_mutated_later(self, make_scheduler):
        scheduler = make_scheduler([make_match("A", "X", "Y")])
        first = scheduler.schedule("A", "P1", at(10)).match
        scheduler.schedule("A", "P2", at(12))
        assert first.pitch_id == "P1"
        assert first.start_time == at(10)


class TestReschedule:

    def test_keeps_pitch_by_default(self, make_scheduler):
        scheduler = make_scheduler([make_match("A", "X", "Y", pitch_id="P1", start=at(10))])
        result = scheduler.reschedule("A", at(13))
        assert result.ok
        assert result.match.pitch_id == "P1"
        assert result.match.start_time == at(13)
        assert result.match.end_time == at(14)

    def test_overlapping_its_own_old_slot(self, make_scheduler):
        scheduler = make_scheduler([make_match("A", "X", "Y", pitch_id="P1", start=at(10))])
        assert scheduler.reschedule("A", at(10, 30)).ok

    def test_pitch_in_other_venue_reassigns_venue(self, make_scheduler):
        scheduler = make_scheduler([make_match("A", "X", "Y", pitch_id="P1", venue_id="V1", start=at(10))])
        result = scheduler.reschedule("A", at(10), new_pitch_id="P3")
        assert result.ok
        assert result.match.pitch_id == "P3"
        assert result.match.venue_id == "V2"

    def test_conflict_keeps_original_placement(self, make_scheduler):
        scheduler = make_scheduler([
            make_match("A", "X", "Y", pitch_id="P1", start=at(10)),
            make_match("B", "Z", "W", pitch_id="P2", start=at(12)),
        ])
        result = scheduler.reschedule("B", at(10, 30), new_pitch_id="P1")
        assert not result.ok
        match = scheduler.get_match("B")
        assert (match.pitch_id, match.start_time) == ("P2", at(12))

    def test_unscheduled_match_is_programmer_error(self, make_scheduler):
        scheduler = make_scheduler([make_match("A", "X", "Y")])
        with pytest.raises(EngineStateError):
            scheduler.reschedule("A", at(10))


class TestUnschedule:

    def test_clears_placement(self, make_scheduler):
        scheduler = make_scheduler([
            make_match("A", "X", "Y", pitch_id="P1", venue_id="V1", start=at(10), end_time=at(11)),
            make_match("B", "X", "Y", pitch_id="P1", start=at(10)),  # already inconsistent
        ])
        match = scheduler.unschedule("A")
        assert match.pitch_id is None
        assert match.venue_id is None
        assert match.start_time is None
        assert match.end_time is None
        assert scheduler.get_match("A") == match

    def test_unscheduled_match_is_noop(self, make_scheduler):
        scheduler = make_scheduler([make_match("A", "X", "Y")])
        assert not scheduler.unschedule("A").is_scheduled

    def test_slot_is_free_again(self, make_scheduler):
        scheduler = make_scheduler([
            make_match("A", "X", "Y", pitch_id="P1", start=at(10)),
            make_match("B", "Z", "W"),
        ])
        scheduler.unschedule("A")
        assert scheduler.schedule("B", "P1", at(10)).ok


class TestClearAll:

    def _scheduler(self, make_scheduler):
        return make_scheduler([
            make_match("A", "X", "Y", pitch_id="P1", venue_id="V1", start=at(10)),
            make_match("B", "Z", "W", pitch_id="P2", venue_id="V1", start=at(10)),
            make_match("C", "Q", "R", pitch_id="P3", venue_id="V2", start=at(10), division_id="D2"),
            make_match("D", "S", "T"),
        ])

    def test_requires_confirmation(self, make_scheduler):
        scheduler = self._scheduler(make_scheduler)
        before = scheduler.snapshot()
        with pytest.raises(ValueError):
            scheduler.clear_all(confirm=False)
        assert scheduler.snapshot() == before

    def test_truthy_non_bool_is_not_confirmation(self, make_scheduler):
        scheduler = self._scheduler(make_scheduler)
        with pytest.raises(ValueError):
            scheduler.clear_all(confirm="yes")

    def test_clears_everything(self, make_scheduler):
        scheduler = self._scheduler(make_scheduler)
        cleared = scheduler.clear_all(confirm=True)
        assert [m.id for m in cleared] == ["A", "B", "C"]
        assert not any(m.is_scheduled for m in scheduler.snapshot())

    def test_scope_by_pitch(self, make_scheduler):
        scheduler = self._scheduler(make_scheduler)
        cleared = scheduler.clear_all(MatchScope(pitch_id="P1"), confirm=True)
        assert [m.id for m in cleared] == ["A"]
        assert scheduler.get_match("B").is_scheduled

    def test_scope_by_venue_and_division(self, make_scheduler):
        scheduler = self._scheduler(make_scheduler)
        assert [m.id for m in scheduler.clear_all(MatchScope(venue_id="V2"), confirm=True)] == ["C"]
        scheduler = self._scheduler(make_scheduler)
        assert [m.id for m in scheduler.clear_all(MatchScope(division_id="D1"), confirm=True)] == ["A", "B"]

    def test_partial_placement_is_cleared(self, make_scheduler):
        scheduler = make_scheduler([make_match("A", "X", "Y", pitch_id="P1", venue_id="V1")])
        cleared = scheduler.clear_all(confirm=True)
        assert [m.id for m in cleared] == ["A"]
        match = scheduler.get_match("A")
        assert (match.pitch_id, match.venue_id) == (None, None)
        assert not match.has_placement

    def test_stale_end_without_start_is_cleared(self, make_scheduler):
        scheduler = make_scheduler([make_match("A", "X", "Y", end_time=at(11))])
        assert [m.id for m in scheduler.clear_all(confirm=True)] == ["A"]
        assert scheduler.get_match("A").end_time is None

    def test_scope_contains(self):
        scope = MatchScope(group_id="GA")
        assert scope.contains(make_match("A", group_id="GA"))
        assert not scope.contains(make_match("B", group_id="GB"))
        assert MatchScope().contains(make_match("C"))


class TestResize:

    def test_conflict_rolls_back_everything(self, make_scheduler, division):
        scheduler = make_scheduler([
            make_match("A", "X", "Y", pitch_id="P1", start=at(10), end_time=at(11)),
            make_match("B", "Z", "W", pitch_id="P1", start=at(11), end_time=at(12)),
            make_match("C", "Q", "R", pitch_id="P2", start=at(10), end_time=at(11)),
        ])
        before = scheduler.snapshot()
        result = scheduler.resize("D1", 90)
        assert not result.ok
        assert result.division == division
        assert [(c.match_id, c.offending_match_id) for c in result.conflicts] == [("A", "B")]
        assert scheduler.snapshot() == before
        assert scheduler.get_division("D1").match_duration_minutes == 60

    def test_success_recomputes_every_end(self, make_scheduler):
        scheduler = make_scheduler([
            make_match("A", "X", "Y", pitch_id="P1", start=at(10), end_time=at(11)),
            make_match("B", "Z", "W", pitch_id="P1", start=at(11), end_time=at(12)),
            make_match("C", "Q", "R", pitch_id="P2", start=at(10), division_id="D2"),
            make_match("D", "S", "T"),
        ])
        result = scheduler.resize("D1", 45, break_duration_minutes=5)
        assert result.ok
        assert [m.id for m in result.updated_matches] == ["A", "B"]
        assert scheduler.get_match("A").end_time == at(10, 45)
        assert scheduler.get_match("B").end_time == at(11, 45)
        assert scheduler.get_match("C").end_time is None
        division = scheduler.get_division("D1")
        assert (division.match_duration_minutes, division.break_duration_minutes) == (45, 5)

    def test_resize_against_other_division(self, make_scheduler):
        # A 30-minute D2 match on the same pitch right after a D1 match
        scheduler = make_scheduler([
            make_match("A", "X", "Y", pitch_id="P1", start=at(10)),
            make_match("B", "Z", "W", pitch_id="P1", start=at(11), division_id="D2"),
        ])
        result = scheduler.resize("D1", 75)
        assert not result.ok
        assert result.conflicts[0].kind == "PITCH_CONFLICT"

    def test_invalid_duration(self, make_scheduler):
        scheduler = make_scheduler([])
        with pytest.raises(ValueError):
            scheduler.resize("D1", 0)
        with pytest.raises(ValueError):
            scheduler.resize("D1", 60, break_duration_minutes=-1)


class TestSuggestSlot:

    def test_after_existing_match_plus_break(self, make_scheduler):
        scheduler = make_scheduler([
            make_match("A", "X", "Y", pitch_id="P1", start=at(10)),
            make_match("B", "Z", "W"),
        ])
        suggestion = scheduler.suggest_slot("B", ["P1"], at(10))
        assert suggestion.pitch_id == "P1"
        assert suggestion.start_time == at(11, 10)
        assert suggestion.end_time == at(12, 10)

    def test_first_listed_pitch_wins_ties(self, make_scheduler):
        scheduler = make_scheduler([
            make_match("A", "X", "Y", pitch_id="P1", start=at(10)),
            make_match("B", "Z", "W"),
        ])
        suggestion = scheduler.suggest_slot("B", ["P2", "P3"], at(10))
        assert (suggestion.pitch_id, suggestion.start_time) == ("P2", at(10))
        suggestion = scheduler.suggest_slot("B", ["P1", "P3"], at(10))
        assert (suggestion.pitch_id, suggestion.start_time) == ("P3", at(10))

    def test_waits_for_busy_team(self, make_scheduler):
        scheduler = make_scheduler([
            make_match("A", "X", "Y", pitch_id="P1", start=at(10)),
            make_match("B", "X", "W"),
        ])
        suggestion = scheduler.suggest_slot("B", ["P2"], at(10))
        assert (suggestion.pitch_id, suggestion.start_time) == ("P2", at(11, 10))

    def test_unavailable_pitch_skipped(self, make_scheduler):
        scheduler = make_scheduler([make_match("B", "Z", "W")])
        suggestion = scheduler.suggest_slot("B", ["P4", "P2"], at(9))
        assert suggestion.pitch_id == "P2"

    def test_none_before_deadline(self, make_scheduler):
        scheduler = make_scheduler([
            make_match("A", "X", "Y", pitch_id="P1", start=at(10)),
            make_match("B", "Z", "W"),
        ])
        assert scheduler.suggest_slot("B", ["P1"], at(10), not_after=at(11)) is None

    def test_does_not_mutate(self, make_scheduler):
        scheduler = make_scheduler([
            make_match("A", "X", "Y", pitch_id="P1", start=at(10)),
            make_match("B", "Z", "W"),
        ])
        before = scheduler.snapshot()
        suggestion = scheduler.suggest_slot("B", ["P1"], at(10))
        assert scheduler.snapshot() == before
        assert scheduler.schedule("B", suggestion.pitch_id, suggestion.start_time).ok


class TestScheduleMany:

    def test_places_whole_batch(self, make_scheduler):
        scheduler = make_scheduler([
            make_match("A", "X", "Y"),
            make_match("B", "X", "W"),
            make_match("C", "Q", "R", division_id="D2"),
        ])
        result = scheduler.schedule_many([
            PlacementRequest(match_id="A", pitch_id="P1", start_time=at(10)),
            PlacementRequest(match_id="B", pitch_id="P1", start_time=at(11)),
            PlacementRequest(match_id="C", pitch_id="P3", start_time="2024-01-15T10:00:00Z"),
        ])
        assert result.ok
        assert [m.id for m in result.matches] == ["A", "B", "C"]
        assert scheduler.get_match("B").end_time == at(12)
        assert scheduler.get_match("C").venue_id == "V2"

    def test_conflict_with_schedule_writes_nothing(self, make_scheduler):
        scheduler = make_scheduler([
            make_match("A", "X", "Y", pitch_id="P1", start=at(10)),
            make_match("B", "Z", "W"),
            make_match("C", "Q", "R"),
        ])
        before = scheduler.snapshot()
        result = scheduler.schedule_many([
            PlacementRequest(match_id="C", pitch_id="P2", start_time=at(10)),
            PlacementRequest(match_id="B", pitch_id="P1", start_time=at(10, 30)),
        ])
        assert not result.ok
        assert result.matches == []
        assert [(c.match_id, c.offending_match_id) for c in result.conflicts] == [("B", "A")]
        assert scheduler.snapshot() == before

    def test_entries_conflicting_with_each_other(self, make_scheduler):
        scheduler = make_scheduler([
            make_match("A", "X", "Y"),
            make_match("B", "X", "W"),
        ])
        result = scheduler.schedule_many([
            PlacementRequest(match_id="A", pitch_id="P1", start_time=at(10)),
            PlacementRequest(match_id="B", pitch_id="P2", start_time=at(10, 30)),
        ])
        assert not result.ok
        assert [c.kind for c in result.conflicts] == ["TEAM_CONFLICT"]
        assert result.conflicts[0].offending_match_id == "A"
        assert not scheduler.get_match("A").is_scheduled
        assert not scheduler.get_match("B").is_scheduled

    def test_every_conflict_reported(self, make_scheduler):
        scheduler = make_scheduler([
            make_match("A", "X", "Y", pitch_id="P1", start=at(10)),
            make_match("B", "X", "W"),
            make_match("C", "Q", "R"),
        ])
        result = scheduler.schedule_many([
            PlacementRequest(match_id="B", pitch_id="P1", start_time=at(10)),
            PlacementRequest(match_id="C", pitch_id="P4", start_time=at(10)),
        ])
        assert [c.kind for c in result.conflicts] == ["PITCH_CONFLICT", "TEAM_CONFLICT", "PITCH_UNAVAILABLE"]

    def test_unknown_match_fails_loudly(self, make_scheduler):
        scheduler = make_scheduler([])
        with pytest.raises(EngineStateError):
            scheduler.schedule_many([PlacementRequest(match_id="nope", pitch_id="P1", start_time=at(10))])


class TestAutoAssign:

    def _scheduler(self, pitches, matches):
        divisions = [
            Division(id="AUTO", match_duration_minutes=60, break_duration_minutes=10,
                     assignment_mode=AssignmentMode.automatic),
            Division(id="MAN", match_duration_minutes=60, break_duration_minutes=10),
        ]
        return Scheduler(matches=matches, pitches=pitches, divisions=divisions)

    def test_fills_pitches_with_breaks(self, pitches):
        scheduler = self._scheduler(pitches, [
            make_match("A", "T1", "T2", division_id="AUTO"),
            make_match("B", "T3", "T4", division_id="AUTO"),
            make_match("C", "T5", "T6", division_id="AUTO"),
        ])
        result = scheduler.auto_assign(None, ["P1"], at(9))
        assert [(m.id, m.start_time) for m in result.assigned] == [
            ("A", at(9)),
            ("B", at(10, 10)),
            ("C", at(11, 20)),
        ]
        assert result.unplaced_match_ids == []

    def test_spreads_over_pitches(self, pitches):
        scheduler = self._scheduler(pitches, [
            make_match("A", "T1", "T2", division_id="AUTO"),
            make_match("B", "T3", "T4", division_id="AUTO"),
        ])
        result = scheduler.auto_assign(None, ["P1", "P2"], at(9))
        assert [(m.pitch_id, m.start_time) for m in result.assigned] == [("P1", at(9)), ("P2", at(9))]

    def test_manual_mode_left_alone(self, pitches):
        scheduler = self._scheduler(pitches, [
            make_match("A", "T1", "T2", division_id="MAN"),
            make_match("B", "T3", "T4", division_id="AUTO"),
        ])
        result = scheduler.auto_assign(None, ["P1"], at(9))
        assert [m.id for m in result.assigned] == ["B"]
        assert not scheduler.get_match("A").is_scheduled

    def test_placed_matches_and_scope_respected(self, pitches):
        scheduler = self._scheduler(pitches, [
            make_match("A", "T1", "T2", division_id="AUTO", pitch_id="P1", start=at(9)),
            make_match("B", "T1", "T3", division_id="AUTO", group_id="GA"),
            make_match("C", "T4", "T5", division_id="AUTO", group_id="GB"),
        ])
        result = scheduler.auto_assign(MatchScope(group_id="GA"), ["P2"], at(9))
        assert [(m.id, m.start_time) for m in result.assigned] == [("B", at(10, 10))]
        assert scheduler.get_match("A").start_time == at(9)
        assert not scheduler.get_match("C").is_scheduled

    def test_no_usable_pitch(self, pitches):
        scheduler = self._scheduler(pitches, [make_match("A", "T1", "T2", division_id="AUTO")])
        result = scheduler.auto_assign(None, ["P4"], at(9))
        assert result.assigned == []
        assert result.unplaced_match_ids == ["A"]
        assert find_schedule_conflicts(scheduler.snapshot(), scheduler.divisions) == []

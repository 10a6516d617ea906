"""
Advancement: when a placement fixture is finished, fill the downstream bracket slots
that name it as a winner or loser source, and keep fixtures in step with their bracket match.

Only unset slots/participants are ever written here. Concrete ones change only
through the explicit edit operations (override_slot, assign_participants).
"""
import logging
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel

from tournament_engine.models.bracket import BracketMatch, BracketSlot, MatchLoserSource, MatchWinnerSource
from tournament_engine.models.match import Match
from tournament_engine.utils.results import EngineStateError

logger = logging.getLogger(__name__)

SIDES = ("home", "away")


class MatchOutcome(BaseModel):
    winner_team_id: str
    loser_team_id: str


class AdvancementReport(BaseModel):
    matches: List[BracketMatch]
    slots_filled: int = 0


def match_outcome(match: Match) -> Optional[MatchOutcome]:
    """
    Winner and loser of a finished match, or None if undecided.

    Decided by score; a level score falls back to winner_team_id (penalties,
    extra time), which must name one of the two teams.
    """
    if not match.is_finished or not match.has_both_teams:
        return None

    winner: Optional[str] = None
    if match.home_score is not None and match.away_score is not None and match.home_score != match.away_score:
        winner = match.home_team_id if match.home_score > match.away_score else match.away_team_id
    elif match.winner_team_id in (match.home_team_id, match.away_team_id):
        winner = match.winner_team_id

    if winner is None:
        return None
    loser = match.away_team_id if winner == match.home_team_id else match.home_team_id
    return MatchOutcome(winner_team_id=winner, loser_team_id=loser)


def _team_for_source(slot: BracketSlot, outcomes: Dict[str, MatchOutcome]) -> Optional[str]:
    source = slot.source
    if isinstance(source, MatchWinnerSource) and source.match_id in outcomes:
        return outcomes[source.match_id].winner_team_id
    if isinstance(source, MatchLoserSource) and source.match_id in outcomes:
        return outcomes[source.match_id].loser_team_id
    return None


def apply_results(bracket_matches: Iterable[BracketMatch], finished_matches: Iterable[Match]) -> AdvancementReport:
    """
    Fill unresolved winner/loser slots from finished fixtures.

    A fixture counts for the bracket match named by its placement_match_id.
    Idempotent: calling twice gives the same result, and a slot that already
    holds a team is never overwritten.
    """
    outcomes: Dict[str, MatchOutcome] = {}
    for match in finished_matches:
        if match.placement_match_id is None:
            continue
        outcome = match_outcome(match)
        if outcome is not None:
            outcomes[match.placement_match_id] = outcome

    updated: List[BracketMatch] = []
    slots_filled = 0
    for bracket_match in bracket_matches:
        changes = {}
        for side in SIDES:
            slot: BracketSlot = getattr(bracket_match, side)
            if slot.team_id is not None:
                continue
            team_id = _team_for_source(slot, outcomes)
            if team_id is not None:
                changes[side] = slot.model_copy(update={"team_id": team_id})
        if changes:
            slots_filled += len(changes)
            bracket_match = bracket_match.model_copy(update=changes)
        updated.append(bracket_match)

    if slots_filled:
        logger.info("Advancement filled %d bracket slot(s) from %d decided fixture(s)", slots_filled, len(outcomes))
    return AdvancementReport(matches=updated, slots_filled=slots_filled)


def override_slot(bracket_match: BracketMatch, side: str, team_id: Optional[str]) -> BracketMatch:
    """Operator edit: pin a team on one side (None clears the pin). Marks the slot as manually overridden."""
    if side not in SIDES:
        raise ValueError(f"side must be 'home' or 'away', got {side!r}")
    slot: BracketSlot = getattr(bracket_match, side)
    new_slot = slot.model_copy(update={"team_id": team_id, "manual_override": team_id is not None})
    logger.info("Bracket match %s %s slot overridden: %s -> %s", bracket_match.id, side, slot.team_id, team_id)
    return bracket_match.model_copy(update={side: new_slot})


def to_fixture(bracket_match: BracketMatch, division_id: str) -> Match:
    """Create the playable (unplaced) fixture for a bracket match."""
    return Match(
        id=bracket_match.id,
        division_id=division_id,
        home_team_id=bracket_match.home.team_id,
        away_team_id=bracket_match.away.team_id,
        label=f"{bracket_match.bracket_name} {bracket_match.label}",
        round=bracket_match.round.model_copy(),
        placement_match_id=bracket_match.id,
    )


def sync_fixture(match: Match, bracket_match: BracketMatch) -> Match:
    """
    Copy newly resolved bracket teams onto the fixture.

    Only unset participants are filled; a participant that is already set
    stays as it is.
    """
    if match.placement_match_id != bracket_match.id:
        raise EngineStateError(f"Match {match.id} does not play bracket match {bracket_match.id}")

    updates = {}
    if match.home_team_id is None and bracket_match.home.team_id is not None:
        updates["home_team_id"] = bracket_match.home.team_id
    if match.away_team_id is None and bracket_match.away.team_id is not None:
        updates["away_team_id"] = bracket_match.away.team_id
    if not updates:
        return match
    logger.debug("Fixture %s synced from bracket match %s: %s", match.id, bracket_match.id, updates)
    return match.model_copy(update=updates)


def assign_participants(match: Match, home_team_id: Optional[str], away_team_id: Optional[str]) -> Match:
    """Explicit edit of both participants. The only way to change concrete teams on a fixture."""
    if home_team_id is not None and home_team_id == away_team_id:
        raise ValueError(f"Match {match.id}: a team cannot play itself ({home_team_id})")
    logger.info(
        "Match %s participants set: %s vs %s (was %s vs %s)",
        match.id,
        home_team_id,
        away_team_id,
        match.home_team_id,
        match.away_team_id,
    )
    return match.model_copy(update={"home_team_id": home_team_id, "away_team_id": away_team_id})

"""
Bracket Generator - derive single-elimination placement brackets from group standings.

Every bracket is built in bracket-fold seed order:
  entrants = positions (ascending) x groups (input order), seeded by (rank, group order)
  round 1 pairs follow bracket_fold_positions; seeds above the entrant count are byes
  later rounds pair consecutive advancing competitors via MatchWinnerSource

Group-position slots carry a concrete team only once the group is finished.
Regenerating with the previous output never reverts a concrete slot: a slot
whose match id and source are unchanged keeps its team and override flag.

Pure function of its inputs; identical inputs give identical serialized output.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from tournament_engine.models.bracket import (
    BracketMatch,
    BracketSlot,
    GroupPositionSource,
    MatchLoserSource,
    MatchWinnerSource,
    PlacementBracket,
    PlacementTemplate,
)
from tournament_engine.models.match import RoundInfo
from tournament_engine.services.placement_templates import (
    validate_against_group_sizes,
    validate_template,
)
from tournament_engine.services.standings import GroupStanding
from tournament_engine.utils.bracket_seeding import (
    first_round_pairs,
    next_power_of_two,
    ordinal,
    round_label,
)
from tournament_engine.utils.results import (
    BracketGenerationResult,
    InvalidTemplateError,
    UnresolvedDependencyWarning,
)

logger = logging.getLogger(__name__)

THIRD_PLACE_LABEL = "Third Place"


def bracket_match_id(bracket_id: str, round_number: int, match_number: int) -> str:
    return f"{bracket_id}-r{round_number}-m{match_number}"


def third_place_match_id(bracket_id: str) -> str:
    return f"{bracket_id}-third"


def game_label(match_number: int) -> str:
    return f"Game {match_number}"


def _group_position_slot(group: GroupStanding, rank: int) -> BracketSlot:
    return BracketSlot(
        source=GroupPositionSource(group_id=group.group_id, group_name=group.group_name, rank=rank),
        placeholder=f"{ordinal(rank)} {group.group_name}",
    )


def _winner_slot(match: BracketMatch) -> BracketSlot:
    return BracketSlot(
        source=MatchWinnerSource(match_id=match.id, match_number=match.match_number),
        placeholder=f"Winner of {match.label}",
    )


def _loser_slot(match: BracketMatch) -> BracketSlot:
    return BracketSlot(
        source=MatchLoserSource(match_id=match.id, match_number=match.match_number),
        placeholder=f"Loser of {match.label}",
    )


class _BracketBuilder:
    """Builds the matches of one placement bracket and collects its warnings."""

    def __init__(
        self,
        bracket: PlacementBracket,
        standings_by_group: Dict[str, GroupStanding],
        previous_by_id: Dict[str, BracketMatch],
    ):
        self.bracket = bracket
        self.standings_by_group = standings_by_group
        self.previous_by_id = previous_by_id
        self.matches: List[BracketMatch] = []
        self.warnings: List[UnresolvedDependencyWarning] = []

    def _resolve(self, match_id: str, side: str, slot: BracketSlot) -> BracketSlot:
        previous = self.previous_by_id.get(match_id)
        if previous is not None:
            previous_slot = previous.home if side == "home" else previous.away
            if previous_slot.team_id is not None and previous_slot.source == slot.source:
                return previous_slot.model_copy(deep=True)

        source = slot.source
        if not isinstance(source, GroupPositionSource):
            return slot

        standing = self.standings_by_group[source.group_id]
        if standing.is_finished:
            return slot.model_copy(update={"team_id": standing.team_at(source.rank).team_id})

        self.warnings.append(
            UnresolvedDependencyWarning(
                match_id=match_id,
                side=side,
                group_id=source.group_id,
                rank=source.rank,
                placeholder=slot.placeholder,
            )
        )
        return slot

    def _add_match(
        self,
        match_id: str,
        round_info: RoundInfo,
        home: BracketSlot,
        away: BracketSlot,
        is_third_place: bool = False,
    ) -> BracketMatch:
        match_number = len(self.matches) + 1
        match = BracketMatch(
            id=match_id,
            bracket_id=self.bracket.id,
            bracket_name=self.bracket.name,
            round=round_info,
            match_number=match_number,
            label=game_label(match_number),
            is_third_place=is_third_place,
            home=self._resolve(match_id, "home", home),
            away=self._resolve(match_id, "away", away),
        )
        self.matches.append(match)
        return match

    def build(self, groups: Sequence[GroupStanding]) -> List[BracketMatch]:
        entrants: List[BracketSlot] = [
            _group_position_slot(group, rank)
            for rank in sorted(self.bracket.positions)
            for group in groups
        ]
        if len(entrants) < 2:
            return []

        total_rounds = next_power_of_two(len(entrants)).bit_length() - 1

        # Round 1: bracket-fold pairs; a bye seed advances with its own source
        advancing: List[BracketSlot] = []
        position_in_round = 0
        for high, low in first_round_pairs(len(entrants)):
            if low is None:
                advancing.append(entrants[high - 1])
                continue
            position_in_round += 1
            match_number = len(self.matches) + 1
            match = self._add_match(
                bracket_match_id(self.bracket.id, 1, match_number),
                RoundInfo(
                    round_number=1,
                    round_label=round_label(1, total_rounds),
                    position_in_round=position_in_round,
                ),
                entrants[high - 1],
                entrants[low - 1],
            )
            advancing.append(_winner_slot(match))

        for round_number in range(2, total_rounds + 1):
            next_advancing: List[BracketSlot] = []
            for index in range(0, len(advancing), 2):
                match_number = len(self.matches) + 1
                match = self._add_match(
                    bracket_match_id(self.bracket.id, round_number, match_number),
                    RoundInfo(
                        round_number=round_number,
                        round_label=round_label(round_number, total_rounds),
                        position_in_round=index // 2 + 1,
                    ),
                    advancing[index],
                    advancing[index + 1],
                )
                next_advancing.append(_winner_slot(match))
            advancing = next_advancing

        assert len(advancing) == 1, f"bracket {self.bracket.id} did not converge to a single final"

        semi_finals = [m for m in self.matches if m.round.round_number == total_rounds - 1]

        if self.bracket.include_third_place and len(semi_finals) == 2:
            self._add_match(
                third_place_match_id(self.bracket.id),
                RoundInfo(
                    round_number=total_rounds,
                    round_label=THIRD_PLACE_LABEL,
                    position_in_round=2,
                ),
                _loser_slot(semi_finals[0]),
                _loser_slot(semi_finals[1]),
                is_third_place=True,
            )

        return self.matches


def generate(
    group_standings: Sequence[GroupStanding],
    template: PlacementTemplate,
    previous: Optional[Iterable[BracketMatch]] = None,
) -> BracketGenerationResult:
    """
    Generate placement bracket matches for every bracket of a template.

    Args:
        group_standings: Standings per group, in group order (group order is the
            secondary seeding key)
        template: Placement template; validated up front
        previous: Output of an earlier call; concrete slots in it are preserved

    Returns:
        BracketGenerationResult with matches (template bracket order, then
        creation order) and warnings for unresolved group positions. An invalid
        template returns an InvalidTemplateError and no matches.
    """
    errors = validate_template(template)
    if errors:
        logger.debug("Template %s rejected: %s", template.id, "; ".join(errors))
        return BracketGenerationResult(error=InvalidTemplateError(reason="; ".join(errors)))

    size_error = validate_against_group_sizes(
        template, [(g.group_name, len(g.standings)) for g in group_standings]
    )
    if size_error:
        logger.debug("Template %s rejected: %s", template.id, size_error)
        return BracketGenerationResult(error=InvalidTemplateError(reason=size_error))

    standings_by_group = {g.group_id: g for g in group_standings}
    previous_by_id = {m.id: m for m in previous or []}

    result = BracketGenerationResult()
    for bracket in template.brackets:
        builder = _BracketBuilder(bracket, standings_by_group, previous_by_id)
        matches = builder.build(group_standings)
        result.matches.extend(matches)
        result.warnings.extend(builder.warnings)
        logger.debug(
            "Bracket %s (%s): %d match(es), %d unresolved slot(s)",
            bracket.id,
            bracket.name,
            len(matches),
            len(builder.warnings),
        )
    return result

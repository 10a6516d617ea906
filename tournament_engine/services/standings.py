"""
Group standings from finished match results.

Scoring is fixed: 3 points for a win, 1 for a draw, 0 for a loss.

Ordering is a total order built from an ordered chain of pure key functions,
compared lexicographically and descending. The default chain is
points -> goal difference -> goals for. Teams still level after the chain keep
the group's team insertion order (the sort is stable); this is the engine's
defined tie policy. Head-to-head is deliberately not applied.
"""

import logging
from typing import Callable, Dict, Iterable, List, Sequence, Tuple

from pydantic import BaseModel

from tournament_engine.models.group import Group
from tournament_engine.models.match import Match

logger = logging.getLogger(__name__)

POINTS_FOR_WIN = 3
POINTS_FOR_DRAW = 1
POINTS_FOR_LOSS = 0


class TeamStanding(BaseModel):
    team_id: str
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_difference: int = 0
    points: int = 0
    position: int = 0


class GroupStanding(BaseModel):
    group_id: str
    group_name: str
    is_finished: bool
    standings: List[TeamStanding]

    def team_at(self, rank: int) -> TeamStanding:
        return self.standings[rank - 1]


Tiebreaker = Callable[[TeamStanding], int]


def by_points(row: TeamStanding) -> int:
    return row.points


def by_goal_difference(row: TeamStanding) -> int:
    return row.goal_difference


def by_goals_for(row: TeamStanding) -> int:
    return row.goals_for


DEFAULT_TIEBREAKERS: Tuple[Tiebreaker, ...] = (by_points, by_goal_difference, by_goals_for)


def _counts_toward_standings(match: Match, group_id: str) -> bool:
    return (
        match.group_id == group_id
        and match.is_finished
        and match.has_both_teams
        and match.home_score is not None
        and match.away_score is not None
    )


def _apply_result(row: TeamStanding, scored: int, conceded: int) -> None:
    row.played += 1
    row.goals_for += scored
    row.goals_against += conceded
    if scored > conceded:
        row.won += 1
        row.points += POINTS_FOR_WIN
    elif scored < conceded:
        row.lost += 1
        row.points += POINTS_FOR_LOSS
    else:
        row.drawn += 1
        row.points += POINTS_FOR_DRAW
    row.goal_difference = row.goals_for - row.goals_against


def compute(
    group: Group,
    matches: Iterable[Match],
    tiebreakers: Sequence[Tiebreaker] = DEFAULT_TIEBREAKERS,
) -> List[TeamStanding]:
    """
    Ranked standings for a group.

    Only FINISHED matches of this group with both teams and both scores count.
    Teams with no finished match still appear (all zeros). A team appearing in
    a result but not in group.team_ids is a data error and fails loudly.
    """
    rows: Dict[str, TeamStanding] = {team_id: TeamStanding(team_id=team_id) for team_id in group.team_ids}

    for match in matches:
        if not _counts_toward_standings(match, group.id):
            continue
        for team_id in (match.home_team_id, match.away_team_id):
            if team_id not in rows:
                raise ValueError(f"Team {team_id} in match {match.id} is not a member of group {group.id}")
        _apply_result(rows[match.home_team_id], match.home_score, match.away_score)
        _apply_result(rows[match.away_team_id], match.away_score, match.home_score)

    ordered = sorted(
        rows.values(),
        key=lambda row: tuple(key(row) for key in tiebreakers),
        reverse=True,
    )
    # reverse=True keeps stability for equal keys, so insertion order survives ties
    for position, row in enumerate(ordered, start=1):
        row.position = position
    return ordered


def is_finished(group: Group, matches: Iterable[Match]) -> bool:
    """True iff the group has at least one match and every one of them is FINISHED."""
    group_matches = [m for m in matches if m.group_id == group.id]
    return bool(group_matches) and all(m.is_finished for m in group_matches)


def compute_group_standing(
    group: Group,
    matches: Iterable[Match],
    tiebreakers: Sequence[Tiebreaker] = DEFAULT_TIEBREAKERS,
) -> GroupStanding:
    matches = list(matches)
    finished = is_finished(group, matches)
    standing = GroupStanding(
        group_id=group.id,
        group_name=group.name,
        is_finished=finished,
        standings=compute(group, matches, tiebreakers),
    )
    logger.debug(
        "Standings for group %s (%s): finished=%s, order=%s",
        group.id,
        group.name,
        finished,
        [row.team_id for row in standing.standings],
    )
    return standing

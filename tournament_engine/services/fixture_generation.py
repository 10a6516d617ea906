"""
Group fixture generation (round robin).

Every pair of group members meets exactly once. Matches come back unplaced
(no pitch, no start) with status SCHEDULED; placement is the Scheduler's job.
"""

import logging
from typing import List, Optional, Tuple

from tournament_engine.models.group import Group
from tournament_engine.models.match import Match, MatchStatus, RoundInfo

logger = logging.getLogger(__name__)


def round_robin_match_count(team_count: int) -> int:
    """n * (n - 1) / 2 for n teams (0 for fewer than 2)."""
    if team_count < 2:
        return 0
    return team_count * (team_count - 1) // 2


def rr_pairings_by_round(team_count: int) -> List[Tuple[int, int, int, int]]:
    """
    Round-robin pairings. Returns list of (round_index, sequence_in_round, idx_a, idx_b).
    idx_a, idx_b are 0-based group positions, idx_a < idx_b.

    Circle method: fix position 0, rotate the rest. Odd counts get a BYE
    position and whoever draws it sits the round out.
    """
    if team_count < 2:
        return []

    n = team_count
    n2 = n + 1 if n % 2 == 1 else n
    half = n2 // 2
    rounds_count = n2 - 1
    bye_idx = n if n % 2 == 1 else -1

    result: List[Tuple[int, int, int, int]] = []
    positions = list(range(n2))

    for round_num in range(1, rounds_count + 1):
        seq = 0
        for i in range(half):
            a, b = positions[i], positions[n2 - 1 - i]
            if a == bye_idx or b == bye_idx:
                continue
            seq += 1
            result.append((round_num, seq, min(a, b), max(a, b)))
        positions = [positions[0]] + [positions[-1]] + positions[1:-1]

    return result


def generate_group_fixtures(group: Group, *, label_prefix: Optional[str] = None) -> List[Match]:
    """
    Build the full round robin for a group.

    Ids are "<group id>-r<round>-m<n>" and labels "<prefix>-M<n>" with n
    running across the whole group; the prefix defaults to the group name.
    """
    prefix = label_prefix if label_prefix is not None else group.name
    matches: List[Match] = []
    for round_num, seq, idx_a, idx_b in rr_pairings_by_round(len(group.team_ids)):
        number = len(matches) + 1
        matches.append(
            Match(
                id=f"{group.id}-r{round_num}-m{number}",
                division_id=group.division_id,
                group_id=group.id,
                home_team_id=group.team_ids[idx_a],
                away_team_id=group.team_ids[idx_b],
                status=MatchStatus.scheduled,
                label=f"{prefix}-M{number}",
                round=RoundInfo(
                    round_number=round_num,
                    round_label=f"Round {round_num}",
                    position_in_round=seq,
                ),
            )
        )

    assert len(matches) == round_robin_match_count(len(group.team_ids))
    logger.debug("Generated %d fixture(s) for group %s (%s)", len(matches), group.id, group.name)
    return matches

"""
Bracket seeding helpers - power-of-two sizing and bracket-fold seed order.

Bracket-fold order places seeds so that, if chalk holds, seed 1 meets seed 2
in the final and seed 1 meets seed 4 in the semi-final.
"""
from typing import List, Optional, Tuple


def next_power_of_two(n: int) -> int:
    """Smallest power of two >= n (1 for n <= 1)."""
    size = 1
    while size < n:
        size *= 2
    return size


def bracket_fold_positions(n: int) -> List[int]:
    """Standard bracket-fold positions for *n* entries (n a power of two).

    Returns a flat list of seed numbers in bracket position order.
    Consecutive pairs indicate the first-round matchups:
      2-entry -> [1, 2]
      4-entry -> [1, 4, 2, 3]                -> (1v4), (2v3)
      8-entry -> [1, 8, 4, 5, 3, 6, 2, 7]    -> (1v8), (4v5), (3v6), (2v7)
    """
    assert n >= 2 and n & (n - 1) == 0, f"n must be a power of two >= 2, got {n}"
    if n == 2:
        return [1, 2]

    half = bracket_fold_positions(n // 2)

    expanded: List[int] = []
    for s in half:
        expanded.append(s)
        expanded.append(n + 1 - s)

    mid = len(expanded) // 2
    top = expanded[:mid]
    bot = expanded[mid:]
    if len(bot) >= 4:
        bot = bot[:-4] + bot[-2:] + bot[-4:-2]

    return top + bot


def first_round_pairs(entrant_count: int) -> List[Tuple[int, Optional[int]]]:
    """
    Seed pairs for the opening round of a bracket with *entrant_count* entrants.

    Seeds above entrant_count are byes and come back as None, so the
    opposing seed advances without playing. Order follows bracket position.
    """
    if entrant_count < 2:
        return []
    size = next_power_of_two(entrant_count)
    fold = bracket_fold_positions(size)
    pairs: List[Tuple[int, Optional[int]]] = []
    for i in range(0, size, 2):
        a, b = fold[i], fold[i + 1]
        high, low = min(a, b), max(a, b)
        pairs.append((high, low if low <= entrant_count else None))
    return pairs


def round_label(round_number: int, total_rounds: int) -> str:
    """Label a round by its distance from the final."""
    remaining = total_rounds - round_number
    if remaining == 0:
        return "Final"
    if remaining == 1:
        return "Semi-Final"
    if remaining == 2:
        return "Quarter-Final"
    return f"Round {round_number}"


def ordinal(num: int) -> str:
    """1 -> '1st', 2 -> '2nd', 11 -> '11th', 23 -> '23rd'."""
    if 10 <= num % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(num % 10, "th")
    return f"{num}{suffix}"

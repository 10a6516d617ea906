from tournament_engine.models.bracket import (
    BracketMatch,
    BracketSlot,
    GroupPositionSource,
    MatchLoserSource,
    MatchWinnerSource,
    PlacementBracket,
    PlacementTemplate,
    TeamSource,
)
from tournament_engine.models.division import AssignmentMode, Division
from tournament_engine.models.group import Group
from tournament_engine.models.match import Match, MatchStatus, RoundInfo
from tournament_engine.models.team import Team
from tournament_engine.models.venue import Pitch, Venue

__all__ = [
    "Team",
    "Venue",
    "Pitch",
    "Division",
    "AssignmentMode",
    "Group",
    "Match",
    "MatchStatus",
    "RoundInfo",
    "BracketMatch",
    "BracketSlot",
    "GroupPositionSource",
    "MatchWinnerSource",
    "MatchLoserSource",
    "TeamSource",
    "PlacementBracket",
    "PlacementTemplate",
]

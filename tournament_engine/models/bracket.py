from typing import Annotated, List, Literal, Optional, Union

import pydantic
from pydantic import BaseModel
from sqlmodel import Field, SQLModel

from tournament_engine.models.match import RoundInfo


# ---------------------------------------------------------------------------
# Team sources: where a bracket slot's team comes from
# ---------------------------------------------------------------------------


class GroupPositionSource(BaseModel):
    type: Literal["group-position"] = "group-position"
    group_id: str
    group_name: str
    rank: int


class MatchWinnerSource(BaseModel):
    type: Literal["match-winner"] = "match-winner"
    match_id: str
    match_number: int


class MatchLoserSource(BaseModel):
    type: Literal["match-loser"] = "match-loser"
    match_id: str
    match_number: int


TeamSource = Annotated[
    Union[GroupPositionSource, MatchWinnerSource, MatchLoserSource],
    pydantic.Field(discriminator="type"),
]


class BracketSlot(SQLModel):
    """One side of a bracket match: a structural source plus, once known, a concrete team."""

    source: TeamSource
    team_id: Optional[str] = Field(default=None)
    placeholder: str  # "1st Group A", "Winner of Game 1"
    manual_override: bool = Field(default=False)

    @property
    def is_resolved(self) -> bool:
        return self.team_id is not None


class BracketMatch(SQLModel):
    id: str
    bracket_id: str
    bracket_name: str
    round: RoundInfo
    match_number: int
    label: str  # "Game 3"
    is_third_place: bool = Field(default=False)
    home: BracketSlot
    away: BracketSlot

    @property
    def is_resolved(self) -> bool:
        return self.home.is_resolved and self.away.is_resolved


# ---------------------------------------------------------------------------
# Placement templates
# ---------------------------------------------------------------------------


class PlacementBracket(SQLModel):
    id: str
    name: str
    description: str = Field(default="")
    positions: List[int] = Field(default_factory=list)  # group ranks feeding this bracket
    include_third_place: bool = Field(default=False)


class PlacementTemplate(SQLModel):
    id: str
    name: str
    description: str = Field(default="")
    brackets: List[PlacementBracket] = Field(default_factory=list)

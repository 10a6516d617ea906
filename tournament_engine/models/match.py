from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlmodel import Field, SQLModel


class MatchStatus(str, Enum):
    scheduled = "SCHEDULED"
    live = "LIVE"
    finished = "FINISHED"


class RoundInfo(SQLModel):
    """Structured round metadata; round identity is never inferred from display names."""

    round_number: int = Field(ge=1)
    round_label: str
    position_in_round: int = Field(default=1, ge=1)


class Match(SQLModel):
    id: str
    division_id: str
    group_id: Optional[str] = Field(default=None)

    # Participants (nullable - pending assignment)
    home_team_id: Optional[str] = Field(default=None)
    away_team_id: Optional[str] = Field(default=None)

    # Placement fields: written only by the Scheduler
    pitch_id: Optional[str] = Field(default=None)
    venue_id: Optional[str] = Field(default=None)
    start_time: Optional[datetime] = Field(default=None)
    end_time: Optional[datetime] = Field(default=None)  # always start + division duration

    # Result fields: owned by result entry, read by standings/advancement
    status: MatchStatus = Field(default=MatchStatus.scheduled)
    home_score: Optional[int] = Field(default=None, ge=0)
    away_score: Optional[int] = Field(default=None, ge=0)
    winner_team_id: Optional[str] = Field(default=None)  # knockout decider when the score is level

    label: Optional[str] = Field(default=None)
    round: Optional[RoundInfo] = Field(default=None)
    placement_match_id: Optional[str] = Field(default=None)  # BracketMatch.id this fixture plays

    @property
    def is_scheduled(self) -> bool:
        return self.pitch_id is not None and self.start_time is not None

    @property
    def has_placement(self) -> bool:
        """Any placement field set, including partial placements (pitch without a start)."""
        return any(
            value is not None for value in (self.pitch_id, self.venue_id, self.start_time, self.end_time)
        )

    @property
    def is_finished(self) -> bool:
        return self.status == MatchStatus.finished

    def team_ids(self) -> List[str]:
        return [t for t in (self.home_team_id, self.away_team_id) if t is not None]

    @property
    def has_both_teams(self) -> bool:
        return self.home_team_id is not None and self.away_team_id is not None

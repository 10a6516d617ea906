from enum import Enum

from sqlmodel import Field, SQLModel

from tournament_engine import config


class AssignmentMode(str, Enum):
    manual = "MANUAL"
    automatic = "AUTOMATIC"


class Division(SQLModel):
    """Authoritative source for a match's length: end = start + match_duration_minutes."""

    id: str
    name: str = Field(default="")
    match_duration_minutes: int = Field(default=config.DEFAULT_MATCH_DURATION_MINUTES, gt=0)
    break_duration_minutes: int = Field(default=config.DEFAULT_BREAK_DURATION_MINUTES, ge=0)
    # Only AUTOMATIC divisions are picked up by Scheduler.auto_assign
    assignment_mode: AssignmentMode = Field(default=AssignmentMode.manual)

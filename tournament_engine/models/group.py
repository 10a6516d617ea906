from typing import List

from sqlmodel import Field, SQLModel


class Group(SQLModel):
    """Round-robin group. team_ids order is the final tie-break (insertion order)."""

    id: str
    name: str
    division_id: str
    team_ids: List[str] = Field(default_factory=list)

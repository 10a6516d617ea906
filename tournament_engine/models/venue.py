from sqlmodel import Field, SQLModel


class Venue(SQLModel):
    id: str
    name: str


class Pitch(SQLModel):
    """Finest-grained bookable resource. Read-only from the scheduler's point of view."""

    id: str
    name: str
    venue_id: str
    is_available: bool = Field(default=True)

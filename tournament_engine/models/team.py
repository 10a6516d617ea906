from typing import Optional

from sqlmodel import Field, SQLModel


class Team(SQLModel):
    id: str
    name: str
    short_name: Optional[str] = Field(default=None)

    @property
    def display_name(self) -> str:
        return self.short_name or self.name

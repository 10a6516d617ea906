"""
Result and Error Payload Models

Conflicts and validation failures are returned to the caller as these typed
values, never raised. Shared across:
- Conflict detector (placement checks and schedule audits)
- Scheduler (schedule / reschedule / resize outcomes)
- Bracket generator (template validation and unresolved dependencies)

Programmer errors (unknown ids, impossible state transitions) raise
EngineStateError instead.
"""

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from tournament_engine.models.bracket import BracketMatch
from tournament_engine.models.division import Division
from tournament_engine.models.match import Match
from tournament_engine.utils.time_model import TimeWindow


class EngineStateError(RuntimeError):
    """An internal invariant was violated (e.g. a match referencing a non-existent pitch)."""


class PitchConflictError(BaseModel):
    """A requested placement overlaps another match on the same pitch"""

    kind: Literal["PITCH_CONFLICT"] = "PITCH_CONFLICT"
    match_id: str
    offending_match_id: str
    pitch_id: str
    window: TimeWindow
    offending_home_team_id: Optional[str] = None
    offending_away_team_id: Optional[str] = None

    @property
    def message(self) -> str:
        return (
            f"Match {self.match_id} would overlap with match {self.offending_match_id} "
            f"on pitch {self.pitch_id} ({self.window})"
        )


class TeamConflictError(BaseModel):
    """A requested placement double-books a team"""

    kind: Literal["TEAM_CONFLICT"] = "TEAM_CONFLICT"
    match_id: str
    offending_match_id: str
    team_id: str
    window: TimeWindow
    offending_home_team_id: Optional[str] = None
    offending_away_team_id: Optional[str] = None

    @property
    def message(self) -> str:
        return (
            f"Team {self.team_id} is already playing match {self.offending_match_id} "
            f"({self.window})"
        )


class PitchUnavailableError(BaseModel):
    """The target pitch is flagged unavailable"""

    kind: Literal["PITCH_UNAVAILABLE"] = "PITCH_UNAVAILABLE"
    match_id: str
    pitch_id: str

    @property
    def message(self) -> str:
        return f"Pitch {self.pitch_id} is not available for match {self.match_id}"


ConflictError = Annotated[
    Union[PitchConflictError, TeamConflictError, PitchUnavailableError],
    Field(discriminator="kind"),
]


class InvalidTemplateError(BaseModel):
    """Placement template is malformed or targets more positions than there are teams"""

    kind: Literal["INVALID_TEMPLATE"] = "INVALID_TEMPLATE"
    reason: str


class UnresolvedDependencyWarning(BaseModel):
    """A group-position slot stays a placeholder because its group is unfinished"""

    kind: Literal["UNRESOLVED_DEPENDENCY"] = "UNRESOLVED_DEPENDENCY"
    match_id: str
    side: Literal["home", "away"]
    group_id: str
    rank: int
    placeholder: str


# ---------------------------------------------------------------------------
# Result envelopes
# ---------------------------------------------------------------------------


class ConflictResult(BaseModel):
    """Outcome of a placement check. ok is True iff no conflict was found."""

    conflicts: List[ConflictError] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.conflicts

    @property
    def first(self) -> Optional[ConflictError]:
        return self.conflicts[0] if self.conflicts else None


class ScheduleResult(BaseModel):
    """Outcome of schedule/reschedule: the updated match, or the conflicts that rejected it."""

    match: Match
    conflicts: List[ConflictError] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.conflicts


class ResizeResult(BaseModel):
    division: Division
    updated_matches: List[Match] = Field(default_factory=list)
    conflicts: List[ConflictError] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.conflicts


class ScheduleBatchResult(BaseModel):
    """Outcome of a batch placement: every placed match, or every conflict and nothing placed."""

    matches: List[Match] = Field(default_factory=list)
    conflicts: List[ConflictError] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.conflicts


class AutoAssignResult(BaseModel):
    assigned: List[Match] = Field(default_factory=list)
    unplaced_match_ids: List[str] = Field(default_factory=list)


class SlotSuggestion(BaseModel):
    match_id: str
    pitch_id: str
    start_time: datetime
    end_time: datetime


class BracketGenerationResult(BaseModel):
    matches: List[BracketMatch] = Field(default_factory=list)
    warnings: List[UnresolvedDependencyWarning] = Field(default_factory=list)
    error: Optional[InvalidTemplateError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

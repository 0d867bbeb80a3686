"""
Pydantic v2 domain models for resolved teams and players.
Serialized with camelCase aliases; this is the boundary contract handed to callers.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shared.models.enums import (
    ResolutionState,
    RosterStatus,
    SubjectKind,
    TeamKind,
    VerificationLevel,
)


# ── Base ────────────────────────────────────────────────────────────────
class DomainModel(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_wire(self) -> dict[str, Any]:
        """JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class Provenance(DomainModel):
    """Where a record came from. Metadata only; ignored by record equality."""
    source: str
    retrieved_at: datetime
    confidence_score: int = 100
    issues: list[str] = Field(default_factory=list)
    fields: dict[str, str] = Field(default_factory=dict, description="field -> winning source")
    static_fallback_used: bool = False


class RecordModel(DomainModel):
    provenance: Optional[Provenance] = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RecordModel) or type(other) is not type(self):
            return NotImplemented
        return self.model_dump(exclude={"provenance"}) == other.model_dump(exclude={"provenance"})

    __hash__ = None  # type: ignore[assignment]


# ── Records ─────────────────────────────────────────────────────────────
class Achievements(DomainModel):
    world_cup: list[str] = Field(default_factory=list)
    international: list[str] = Field(default_factory=list)
    continental: list[str] = Field(default_factory=list)
    domestic: list[str] = Field(default_factory=list)

    def all(self) -> list[str]:
        return [*self.world_cup, *self.international, *self.continental, *self.domestic]

    def is_empty(self) -> bool:
        return not self.all()


class TeamRecord(RecordModel):
    name: str = ""
    kind: str = Field(default=TeamKind.CLUB.value, alias="type")
    country: str = ""
    stadium: Optional[str] = None
    current_coach: Optional[str] = None
    founded_year: Optional[int] = None
    achievements: Achievements = Field(default_factory=Achievements)
    summary: Optional[str] = None


class PlayerRecord(RecordModel):
    name: str = ""
    current_team: str = ""
    position: str = ""
    age: Optional[int] = None
    nationality: str = ""
    career_goals: Optional[int] = None
    career_assists: Optional[int] = None
    international_appearances: Optional[int] = None
    international_goals: Optional[int] = None
    achievements: list[str] = Field(default_factory=list)
    summary: str = ""


# ── Resolution envelope ─────────────────────────────────────────────────
class Metadata(DomainModel):
    sources_consulted: list[str] = Field(default_factory=list)
    confidence_score: int = 0
    issues: list[str] = Field(default_factory=list)
    season: str = ""
    generated_at: datetime
    verification_level: VerificationLevel = VerificationLevel.LOW
    achievement_counts: dict[str, int] = Field(default_factory=dict)
    static_fallback_used: bool = False
    state: ResolutionState = ResolutionState.RETURNED
    disclaimer: Optional[str] = None
    recommendations: list[str] = Field(default_factory=list)


class ResolutionResult(DomainModel):
    query: str
    kind: SubjectKind
    team: Optional[TeamRecord] = None
    players: list[PlayerRecord] = Field(default_factory=list)
    roster_status: RosterStatus = RosterStatus.NOT_APPLICABLE
    metadata: Metadata
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.metadata.state == ResolutionState.FAILED

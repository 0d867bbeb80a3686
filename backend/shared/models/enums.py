"""Domain enumerations for the FutbolAI resolver."""
from __future__ import annotations

from enum import Enum


class SubjectKind(str, Enum):
    TEAM = "team"
    PLAYER = "player"


class TeamKind(str, Enum):
    CLUB = "club"
    NATIONAL = "national"


class SourceName(str, Enum):
    LICENSED = "football_data"
    ENCYCLOPEDIA = "wikipedia"
    GENERATIVE = "groq"
    STATIC = "static_table"
    COMMUNITY = "thesportsdb"
    KNOWLEDGE_GRAPH = "wikidata"


# Field-level precedence, highest first. The knowledge graph only cross-checks.
SOURCE_PRECEDENCE: tuple[SourceName, ...] = (
    SourceName.LICENSED,
    SourceName.ENCYCLOPEDIA,
    SourceName.GENERATIVE,
    SourceName.STATIC,
    SourceName.COMMUNITY,
)


class ResolutionState(str, Enum):
    IDLE = "idle"
    CLASSIFYING = "classifying"
    FETCHING_SOURCES = "fetching_sources"
    RECONCILING = "reconciling"
    VALIDATING = "validating"
    CACHED = "cached"
    RETURNED = "returned"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ResolutionState.RETURNED, ResolutionState.FAILED)


class RosterStatus(str, Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"  # no adapter had a current roster
    NOT_APPLICABLE = "not_applicable"  # player queries


class VerificationLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_score(cls, score: int) -> "VerificationLevel":
        if score >= 80:
            return cls.HIGH
        if score >= 60:
            return cls.MEDIUM
        return cls.LOW

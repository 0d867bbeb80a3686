"""
Static facts table: a versioned JSON file of long-lived facts (founding year,
stadium, trophy history) for ~15 major clubs and countries, plus the curated
player lists the reconciler filters with.

The table only fills gaps at low precedence and never supplies rosters or coaches.
"""
from __future__ import annotations

import json
import re
from importlib import resources
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from shared.models.enums import SourceName, SubjectKind
from shared.utils.logging import get_logger

from resolver.cache import CacheStore
from resolver.text import fold
from resolver.sources.base import Now, SourceAdapter, SourceFacts, TeamFacts

logger = get_logger(__name__)

DEFAULT_TABLE = "static_facts.json"


class StaticTeamEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    aliases: list[str] = Field(default_factory=list)
    type: str
    country: str
    stadium: Optional[str] = None
    founded_year: Optional[int] = Field(default=None, alias="foundedYear")
    achievements: list[str] = Field(default_factory=list)


class StaticFactsTable(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    version: str
    teams: dict[str, StaticTeamEntry] = Field(default_factory=dict)
    suspicious_surnames: list[str] = Field(default_factory=list, alias="suspiciousSurnames")
    excluded_players: dict[str, list[str]] = Field(default_factory=dict, alias="excludedPlayers")

    @classmethod
    def load(cls, path: Optional[str] = None) -> "StaticFactsTable":
        """Load the bundled table, or an operator-supplied file."""
        if path:
            raw = Path(path).read_text(encoding="utf-8")
        else:
            raw = resources.files("resolver.data").joinpath(DEFAULT_TABLE).read_text(encoding="utf-8")
        table = cls.model_validate(json.loads(raw))
        logger.info("static_table_loaded", version=table.version, teams=len(table.teams))
        return table

    def lookup(self, name: str) -> Optional[tuple[str, StaticTeamEntry]]:
        """Exact key/alias match first, then a key appearing as whole words in the name."""
        q = fold(name)
        for key, entry in self.teams.items():
            if q == fold(key) or q == fold(entry.name) or q in (fold(a) for a in entry.aliases):
                return key, entry
        for key, entry in self.teams.items():
            if re.search(rf"(?<!\w){re.escape(fold(key))}(?!\w)", q):
                return key, entry
        return None

    def excluded_for(self, team_name: str) -> set[str]:
        hit = self.lookup(team_name)
        if hit is None:
            return set()
        return {fold(n) for n in self.excluded_players.get(hit[0], [])}

    def is_suspicious_surname(self, player_name: str) -> bool:
        parts = fold(player_name).split()
        return bool(parts) and parts[-1] in {fold(s) for s in self.suspicious_surnames}


class StaticTableSource(SourceAdapter):
    """Serves StaticFactsTable entries through the adapter contract."""

    def __init__(
        self,
        table: StaticFactsTable,
        cache: CacheStore[SourceFacts],
        now: Optional[Now] = None,
    ) -> None:
        super().__init__(cache, now)
        self._table = table

    @property
    def source_name(self) -> SourceName:
        return SourceName.STATIC

    @property
    def table(self) -> StaticFactsTable:
        return self._table

    async def _fetch(self, name: str, kind: SubjectKind) -> Optional[SourceFacts]:
        if kind != SubjectKind.TEAM:
            return None
        hit = self._table.lookup(name)
        if hit is None:
            return None
        _, entry = hit
        return self._facts(
            team=TeamFacts(
                name=entry.name,
                kind=entry.type,
                country=entry.country,
                stadium=entry.stadium,
                founded_year=entry.founded_year,
                honours=list(entry.achievements),
            )
        )

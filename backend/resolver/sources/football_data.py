"""
Football-Data.org licensed API source.
Team lookup by name, then full squad + coach for the chosen id.
Uses v4 API with X-Auth-Token. Free tier: 10 requests/min.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from shared.config import Settings
from shared.models.enums import SourceName, SubjectKind, TeamKind
from shared.utils.http_client import SourceHTTPClient
from shared.utils.logging import get_logger

from resolver.cache import CacheStore
from resolver.text import fold
from resolver.sources.base import (
    HTTPSourceAdapter,
    Now,
    PlayerFacts,
    SourceFacts,
    TeamFacts,
    age_from_birthdate,
    canonical_position,
)

logger = get_logger(__name__)

NATIONAL_TYPES = ("NATIONAL", "NATIONAL_TEAM")


# ── Raw response types ──────────────────────────────────────────────────
class FDArea(BaseModel):
    name: Optional[str] = None


class FDPerson(BaseModel):
    id: Optional[int] = None
    name: Optional[str] = None
    position: Optional[str] = None
    dateOfBirth: Optional[str] = None
    nationality: Optional[str] = None
    role: Optional[str] = None


class FDTeam(BaseModel):
    id: int
    name: str
    shortName: Optional[str] = None
    tla: Optional[str] = None
    type: Optional[str] = None
    area: Optional[FDArea] = None
    venue: Optional[str] = None
    founded: Optional[int] = None
    coach: Optional[FDPerson] = None
    squad: list[FDPerson] = []


class FDTeamSearch(BaseModel):
    teams: list[FDTeam] = []


def map_position(position: Optional[str]) -> str:
    """Squad members without a position are still players."""
    return canonical_position(position) or "Player"


def pick_team(query: str, teams: list[FDTeam]) -> Optional[FDTeam]:
    """Exact name match first, then a national-team flag, then the first hit."""
    if not teams:
        return None
    q = fold(query)
    for team in teams:
        names = (team.name, team.shortName, team.tla)
        if any(n and fold(n) == q for n in names):
            return team
    for team in teams:
        if (team.type or "").upper() in NATIONAL_TYPES:
            return team
    return teams[0]


def _team_kind(team: FDTeam) -> str:
    if (team.type or "").upper() in NATIONAL_TYPES:
        return TeamKind.NATIONAL.value
    if team.area and team.area.name and fold(team.area.name) == fold(team.name):
        return TeamKind.NATIONAL.value
    return TeamKind.CLUB.value


class FootballDataSource(HTTPSourceAdapter):
    """Football-Data.org v4 API (teams only; it has no player search)."""

    def __init__(
        self,
        settings: Settings,
        cache: CacheStore[SourceFacts],
        timeout_s: float = 5.0,
        now: Optional[Now] = None,
        http: Optional[SourceHTTPClient] = None,
    ) -> None:
        http = http or SourceHTTPClient(
            source_name=SourceName.LICENSED.value,
            base_url=settings.football_data_base_url,
            headers={"X-Auth-Token": settings.football_data_api_key},
            timeout_s=timeout_s,
        )
        super().__init__(http, cache, now)
        if not settings.football_data_api_key:
            self.disable("FA_FOOTBALL_DATA_API_KEY not configured")

    @property
    def source_name(self) -> SourceName:
        return SourceName.LICENSED

    async def _fetch(self, name: str, kind: SubjectKind) -> Optional[SourceFacts]:
        if kind != SubjectKind.TEAM:
            return None

        search = FDTeamSearch.model_validate(
            await self._get_json("/teams", params={"name": name}) or {}
        )
        chosen = pick_team(name, search.teams)
        if chosen is None:
            return None

        detail = FDTeam.model_validate(await self._get_json(f"/teams/{chosen.id}"))
        return self._to_facts(detail)

    def _to_facts(self, team: FDTeam) -> SourceFacts:
        today = self._now().date()
        coach = team.coach.name if team.coach and team.coach.name else None
        players: list[PlayerFacts] = []
        for member in team.squad:
            role = (member.role or "PLAYER").upper()
            if role == "COACH":
                coach = coach or member.name
                continue
            if role != "PLAYER" or not member.name:
                continue
            position = map_position(member.position)
            players.append(
                PlayerFacts(
                    name=member.name,
                    current_team=team.name,
                    position=position,
                    age=age_from_birthdate(member.dateOfBirth, today),
                    nationality=member.nationality,
                    summary=f"{member.name} plays for {team.name} as a {position}.",
                )
            )

        return self._facts(
            team=TeamFacts(
                name=team.name,
                kind=_team_kind(team),
                country=team.area.name if team.area else None,
                stadium=team.venue or None,
                coach=coach,
                founded_year=team.founded,
            ),
            players=players,
        )

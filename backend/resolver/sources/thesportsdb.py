"""
TheSportsDB community source.
Free JSON API (key "3" for testing). Player names collide across leagues, so the
reconciler treats this source as lowest priority and filters its rosters.
"""
from __future__ import annotations

import re
from collections import OrderedDict
from typing import Any, Optional

from pydantic import BaseModel

from shared.config import Settings
from shared.models.enums import SourceName, SubjectKind
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

_SEASON_START = re.compile(r"(\d{4})")


# ── Raw response types ──────────────────────────────────────────────────
class TSDBTeam(BaseModel):
    idTeam: str
    strTeam: str
    strAlternate: Optional[str] = None
    strTeamShort: Optional[str] = None
    strSport: Optional[str] = None
    strLeague: Optional[str] = None
    strCountry: Optional[str] = None
    strStadium: Optional[str] = None
    strManager: Optional[str] = None
    intFormedYear: Optional[str] = None


class TSDBPlayer(BaseModel):
    idPlayer: Optional[str] = None
    strPlayer: Optional[str] = None
    strTeam: Optional[str] = None
    strSport: Optional[str] = None
    strPosition: Optional[str] = None
    strNationality: Optional[str] = None
    dateBorn: Optional[str] = None
    strDescriptionEN: Optional[str] = None


class TSDBHonour(BaseModel):
    strHonour: Optional[str] = None
    strSeason: Optional[str] = None


def _rows(data: Any, key: str) -> list[dict[str, Any]]:
    """TheSportsDB returns {key: null} or a bare string for 'no results'."""
    if not isinstance(data, dict):
        return []
    rows = data.get(key)
    return [r for r in rows if isinstance(r, dict)] if isinstance(rows, list) else []


def _int_or_none(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value else None
    except ValueError:
        return None


def pick_team(query: str, teams: list[TSDBTeam]) -> Optional[TSDBTeam]:
    soccer = [t for t in teams if (t.strSport or "Soccer").lower() == "soccer"]
    if not soccer:
        return None
    q = fold(query)
    for team in soccer:
        alternates = [a.strip() for a in (team.strAlternate or "").split(",")]
        if fold(team.strTeam) == q or any(fold(a) == q for a in alternates if a):
            return team
    return soccer[0]


def group_honours(honours: list[TSDBHonour]) -> list[str]:
    """[('La Liga', '2019-2020'), ...] -> ['La Liga (2 titles): 2020, 2022', ...]."""
    grouped: "OrderedDict[str, list[str]]" = OrderedDict()
    for h in honours:
        if not h.strHonour:
            continue
        name = h.strHonour.strip()
        seasons = grouped.setdefault(name, [])
        if h.strSeason:
            years = _SEASON_START.findall(h.strSeason)
            if years:
                seasons.append(years[-1])
    out: list[str] = []
    for name, years in grouped.items():
        years = sorted(set(years))
        count = max(len(years), 1)
        label = f"{name} ({count} title{'s' if count != 1 else ''})"
        out.append(f"{label}: {', '.join(years)}" if years else label)
    return out


class TheSportsDBSource(HTTPSourceAdapter):
    """Team search, roster, honours and player search."""

    def __init__(
        self,
        settings: Settings,
        cache: CacheStore[SourceFacts],
        timeout_s: float = 5.0,
        now: Optional[Now] = None,
        http: Optional[SourceHTTPClient] = None,
    ) -> None:
        key = settings.thesportsdb_api_key or "3"
        http = http or SourceHTTPClient(
            source_name=SourceName.COMMUNITY.value,
            base_url=f"{settings.thesportsdb_base_url.rstrip('/')}/{key}",
            timeout_s=timeout_s,
        )
        super().__init__(http, cache, now)

    @property
    def source_name(self) -> SourceName:
        return SourceName.COMMUNITY

    async def _fetch(self, name: str, kind: SubjectKind) -> Optional[SourceFacts]:
        if kind == SubjectKind.PLAYER:
            return await self._fetch_player(name)
        return await self._fetch_team(name)

    async def _fetch_team(self, name: str) -> Optional[SourceFacts]:
        data = await self._get_json("/searchteams.php", params={"t": name}, not_found_ok=True)
        teams = [TSDBTeam.model_validate(r) for r in _rows(data, "teams")]
        team = pick_team(name, teams)
        if team is None:
            return None

        detail_rows = _rows(
            await self._get_json("/lookupteam.php", params={"id": team.idTeam}, not_found_ok=True),
            "teams",
        )
        if detail_rows:
            team = TSDBTeam.model_validate(detail_rows[0])

        honours = [
            TSDBHonour.model_validate(r)
            for r in _rows(
                await self._get_json(
                    "/lookuphonors.php", params={"id": team.idTeam}, not_found_ok=True
                ),
                "honours",
            )
        ]
        roster = [
            TSDBPlayer.model_validate(r)
            for r in _rows(
                await self._get_json(
                    "/searchplayers.php", params={"t": team.strTeam}, not_found_ok=True
                ),
                "player",
            )
        ]

        today = self._now().date()
        players = [
            PlayerFacts(
                name=p.strPlayer,
                current_team=p.strTeam or team.strTeam,
                position=canonical_position(p.strPosition),
                nationality=p.strNationality,
                age=age_from_birthdate(p.dateBorn, today),
            )
            for p in roster
            if p.strPlayer and (p.strSport or "Soccer").lower() == "soccer"
        ]
        return self._facts(
            team=TeamFacts(
                name=team.strTeam,
                country=team.strCountry,
                stadium=team.strStadium,
                coach=team.strManager or None,
                founded_year=_int_or_none(team.intFormedYear),
                honours=group_honours(honours),
            ),
            players=players,
        )

    async def _fetch_player(self, name: str) -> Optional[SourceFacts]:
        data = await self._get_json("/searchplayers.php", params={"p": name}, not_found_ok=True)
        candidates = [TSDBPlayer.model_validate(r) for r in _rows(data, "player")]
        candidates = [c for c in candidates if (c.strSport or "Soccer").lower() == "soccer"]
        if not candidates:
            return None
        q = fold(name)
        best = next((c for c in candidates if c.strPlayer and fold(c.strPlayer) == q), candidates[0])
        return self._facts(
            player=PlayerFacts(
                name=best.strPlayer,
                current_team=best.strTeam,
                position=canonical_position(best.strPosition),
                nationality=best.strNationality,
                age=age_from_birthdate(best.dateBorn, self._now().date()),
                summary=(best.strDescriptionEN or "").strip()[:600] or None,
            )
        )

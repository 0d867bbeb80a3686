"""
Wikipedia REST summary source.
Tries progressively looser titles until a non-disambiguation page with a usable
extract or thumbnail turns up; pulls the coach out of the prose when it can.
"""
from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from pydantic import BaseModel

from shared.config import Settings
from shared.models.enums import SourceName, SubjectKind, TeamKind
from shared.utils.http_client import SourceHTTPClient
from shared.utils.logging import get_logger

from resolver.cache import CacheStore
from resolver.classifier import detect_team_kind
from resolver.text import extract_coach
from resolver.sources.base import HTTPSourceAdapter, Now, PlayerFacts, SourceFacts, TeamFacts

logger = get_logger(__name__)

SUMMARY_MAX_CHARS = 600


class WikiThumbnail(BaseModel):
    source: Optional[str] = None


class WikiSummary(BaseModel):
    type: Optional[str] = None
    title: Optional[str] = None
    extract: Optional[str] = None
    thumbnail: Optional[WikiThumbnail] = None

    @property
    def usable(self) -> bool:
        if self.type == "disambiguation":
            return False
        return bool(self.extract or (self.thumbnail and self.thumbnail.source))


def title_variants(name: str, kind: SubjectKind) -> list[str]:
    """exact -> underscores -> '(footballer)' -> first name (players only for the last two).

    A bare country name is tried as its national football team first.
    """
    name = " ".join(name.split())
    variants = [name, name.replace(" ", "_")]
    national = kind == SubjectKind.TEAM and detect_team_kind(name) == TeamKind.NATIONAL.value
    if national and "team" not in name.lower():
        variants.insert(0, f"{name} national football team")
    if kind == SubjectKind.PLAYER:
        variants.append(f"{name.replace(' ', '_')}_(footballer)")
        first = name.split(" ")[0]
        if first and first != name:
            variants.append(first)
    seen: set[str] = set()
    return [v for v in variants if not (v in seen or seen.add(v))]


def _is_given_name(title: str, name: str) -> bool:
    tokens = name.split()
    return len(tokens) > 1 and title == tokens[0]


def _shorten(text: str, limit: int = SUMMARY_MAX_CHARS) -> str:
    if len(text) <= limit:
        return text
    cut = text[:limit].rsplit(". ", 1)[0]
    return cut if cut.endswith(".") else cut + "."


class WikipediaSource(HTTPSourceAdapter):
    """Encyclopedia summaries: historical prose and a best-effort coach."""

    def __init__(
        self,
        settings: Settings,
        cache: CacheStore[SourceFacts],
        timeout_s: float = 5.0,
        now: Optional[Now] = None,
        http: Optional[SourceHTTPClient] = None,
    ) -> None:
        http = http or SourceHTTPClient(
            source_name=SourceName.ENCYCLOPEDIA.value,
            base_url=settings.wikipedia_base_url,
            headers={"User-Agent": settings.user_agent, "Accept": "application/json"},
            timeout_s=timeout_s,
        )
        super().__init__(http, cache, now)

    @property
    def source_name(self) -> SourceName:
        return SourceName.ENCYCLOPEDIA

    async def summary(self, name: str, kind: SubjectKind) -> Optional[tuple[str, WikiSummary]]:
        """First usable page and the title variant that produced it."""
        for title in title_variants(name, kind):
            data = await self._get_json(
                f"/page/summary/{quote(title, safe='')}", not_found_ok=True
            )
            if not data:
                continue
            page = WikiSummary.model_validate(data)
            if not page.usable:
                logger.debug("wikipedia_variant_rejected", title=title, page_type=page.type)
                continue
            # A bare given name usually lands on a name article, not the player
            if _is_given_name(title, name) and "football" not in (page.extract or "").lower():
                logger.debug("wikipedia_variant_rejected", title=title, page_type="given_name")
                continue
            return title, page
        return None

    async def _fetch(self, name: str, kind: SubjectKind) -> Optional[SourceFacts]:
        found = await self.summary(name, kind)
        if found is None:
            return None
        title, page = found
        extract = (page.extract or "").strip()

        if kind == SubjectKind.TEAM:
            return self._facts(
                team=TeamFacts(
                    name=page.title,
                    coach=extract_coach(extract),
                    summary=_shorten(extract) if extract else None,
                )
            )
        return self._facts(
            player=PlayerFacts(
                name=None if _is_given_name(title, name) else page.title,
                summary=_shorten(extract) if extract else None,
            )
        )

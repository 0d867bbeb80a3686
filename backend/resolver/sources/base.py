"""
Canonical raw-facts schema and base source interface.
Every adapter maps its third-party payload into SourceFacts before returning.
"""
from __future__ import annotations

import abc
import time
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional

import httpx
from pydantic import Field

from shared.models.domain import Achievements, DomainModel
from shared.models.enums import SourceName, SubjectKind
from shared.utils.http_client import SourceHTTPClient
from shared.utils.logging import get_logger
from shared.utils.metrics import SOURCE_FETCHES

from resolver.cache import CacheStore, make_key
from resolver.errors import AdapterUnavailable, ConfigurationError

logger = get_logger(__name__)

Now = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def age_from_birthdate(value: Optional[str], today: date) -> Optional[int]:
    """Whole years from an ISO date ('1998-12-20' or '1998-12-20T00:00:00Z')."""
    if not value:
        return None
    try:
        born = date.fromisoformat(value[:10])
    except ValueError:
        return None
    return today.year - born.year - ((today.month, today.day) < (born.month, born.day))


# Provider position labels (after folding '-' and '_' to spaces) -> our vocabulary
POSITION_ALIASES: dict[str, str] = {
    "goalkeeper": "Goalkeeper",
    "keeper": "Goalkeeper",
    "defence": "Defender",
    "defense": "Defender",
    "defender": "Defender",
    "centre back": "Centre Back",
    "center back": "Centre Back",
    "central defender": "Centre Back",
    "left back": "Left Back",
    "left wing back": "Left Back",
    "right back": "Right Back",
    "right wing back": "Right Back",
    "midfield": "Midfielder",
    "midfielder": "Midfielder",
    "defensive midfield": "Defensive Midfielder",
    "defensive midfielder": "Defensive Midfielder",
    "central midfield": "Central Midfielder",
    "central midfielder": "Central Midfielder",
    "centre midfield": "Central Midfielder",
    "attacking midfield": "Attacking Midfielder",
    "attacking midfielder": "Attacking Midfielder",
    "left midfield": "Left Midfielder",
    "left midfielder": "Left Midfielder",
    "right midfield": "Right Midfielder",
    "right midfielder": "Right Midfielder",
    "offence": "Forward",
    "offense": "Forward",
    "attack": "Forward",
    "forward": "Forward",
    "winger": "Winger",
    "left wing": "Left Winger",
    "left winger": "Left Winger",
    "right wing": "Right Winger",
    "right winger": "Right Winger",
    "centre forward": "Centre Forward",
    "center forward": "Centre Forward",
    "striker": "Striker",
    "second striker": "Striker",
}


def canonical_position(label: Optional[str]) -> Optional[str]:
    """Map a provider label ('Centre-Back', 'CENTRAL_MIDFIELD') onto our vocabulary.

    Unknown labels are returned stripped so the validator can still flag them.
    """
    if not label or not label.strip():
        return None
    key = " ".join(label.replace("_", " ").replace("-", " ").lower().split())
    return POSITION_ALIASES.get(key, label.strip())


# ── Raw facts (partial, everything optional) ────────────────────────────
class PlayerFacts(DomainModel):
    name: Optional[str] = None
    current_team: Optional[str] = None
    position: Optional[str] = None
    age: Optional[int] = None
    nationality: Optional[str] = None
    career_goals: Optional[int] = None
    career_assists: Optional[int] = None
    international_appearances: Optional[int] = None
    international_goals: Optional[int] = None
    achievements: list[str] = Field(default_factory=list)
    summary: Optional[str] = None


class TeamFacts(DomainModel):
    name: Optional[str] = None
    kind: Optional[str] = None
    country: Optional[str] = None
    stadium: Optional[str] = None
    coach: Optional[str] = None
    founded_year: Optional[int] = None
    achievements: Achievements = Field(default_factory=Achievements)
    honours: list[str] = Field(default_factory=list, description="Uncategorised honour strings")
    summary: Optional[str] = None


class SourceFacts(DomainModel):
    """What one adapter knows about one subject."""
    source: SourceName
    retrieved_at: datetime
    team: Optional[TeamFacts] = None
    player: Optional[PlayerFacts] = None
    players: list[PlayerFacts] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return self.team is None and self.player is None and not self.players


# ── Adapter contract ────────────────────────────────────────────────────
class SourceAdapter(abc.ABC):
    """
    Base for all data sources.

    fetch() wraps the abstract _fetch() with caching, timing and error handling.
    It never raises: failures become None (Absent), and a ConfigurationError
    disables the adapter for the rest of the process.
    """

    def __init__(self, cache: CacheStore[SourceFacts], now: Optional[Now] = None) -> None:
        self._cache = cache
        self._now = now or utcnow
        self._disabled_reason: Optional[str] = None

    @property
    @abc.abstractmethod
    def source_name(self) -> SourceName:
        ...

    @property
    def enabled(self) -> bool:
        return self._disabled_reason is None

    @property
    def disabled_reason(self) -> Optional[str]:
        return self._disabled_reason

    @property
    def cache(self) -> CacheStore[SourceFacts]:
        return self._cache

    def disable(self, reason: str) -> None:
        if self._disabled_reason is None:
            logger.warning("source_disabled", source=self.source_name.value, reason=reason)
        self._disabled_reason = reason

    async def start(self) -> None:
        """Acquire network resources. No-op for local sources."""

    async def close(self) -> None:
        """Release network resources."""

    async def fetch(
        self, name: str, kind: SubjectKind, refresh: bool = False
    ) -> Optional[SourceFacts]:
        """Raw facts for a subject, or None when unavailable for any reason."""
        source = self.source_name.value
        if not self.enabled:
            SOURCE_FETCHES.labels(source=source, outcome="disabled").inc()
            return None

        key = make_key(name, kind.value)
        if not refresh:
            cached = await self._cache.get(key)
            if cached is not None:
                return cached

        start = time.perf_counter()
        try:
            facts = await self._fetch(name, kind)
        except ConfigurationError as exc:
            self.disable(exc.reason)
            SOURCE_FETCHES.labels(source=source, outcome="disabled").inc()
            return None
        except Exception as exc:
            logger.warning(
                "source_fetch_error",
                source=source,
                subject=name,
                kind=kind.value,
                error_type=type(exc).__name__,
                error=str(exc),
                latency_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            SOURCE_FETCHES.labels(source=source, outcome="error").inc()
            return None

        if facts is None or facts.is_empty():
            logger.debug("source_absent", source=source, subject=name, kind=kind.value)
            SOURCE_FETCHES.labels(source=source, outcome="absent").inc()
            return None

        await self._cache.set(key, facts)
        SOURCE_FETCHES.labels(source=source, outcome="present").inc()
        logger.debug(
            "source_fetch_ok",
            source=source,
            subject=name,
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return facts

    @abc.abstractmethod
    async def _fetch(self, name: str, kind: SubjectKind) -> Optional[SourceFacts]:
        """Source-specific lookup. May raise; fetch() converts errors to None."""
        ...

    def _facts(self, **kwargs: Any) -> SourceFacts:
        return SourceFacts(source=self.source_name, retrieved_at=self._now(), **kwargs)


class HTTPSourceAdapter(SourceAdapter):
    """Adapter backed by a SourceHTTPClient."""

    def __init__(
        self,
        http: SourceHTTPClient,
        cache: CacheStore[SourceFacts],
        now: Optional[Now] = None,
    ) -> None:
        super().__init__(cache, now)
        self._http = http

    async def start(self) -> None:
        await self._http.start()

    async def close(self) -> None:
        await self._http.close()

    async def _get_json(
        self, path: str, params: dict[str, Any] | None = None, not_found_ok: bool = False
    ) -> Any:
        """
        GET and decode JSON. 401/403 raise ConfigurationError; 404 returns None
        when not_found_ok, other failures raise AdapterUnavailable.
        """
        if not self._http.started:
            await self._http.start()
        try:
            resp = await self._http.get(path, params=params)
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status in (401, 403):
                raise ConfigurationError(self.source_name.value, f"credential rejected ({status})") from exc
            if status == 404 and not_found_ok:
                return None
            raise AdapterUnavailable(self.source_name.value, f"HTTP {status} for {path}") from exc
        except httpx.HTTPError as exc:
            raise AdapterUnavailable(self.source_name.value, f"{type(exc).__name__} for {path}") from exc
        try:
            return resp.json()
        except ValueError as exc:
            raise AdapterUnavailable(self.source_name.value, f"invalid JSON from {path}") from exc

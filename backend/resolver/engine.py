"""
Resolution engine: classify -> fetch (concurrent, time-boxed) -> reconcile ->
validate -> cache. resolve() never raises for data or source problems; a total
failure comes back as a structurally valid result with `error` set.
"""
from __future__ import annotations

import asyncio
import time
import uuid
from datetime import datetime
from typing import Callable, Mapping, Optional

from shared.config import Settings, get_settings
from shared.models.domain import (
    Metadata,
    PlayerRecord,
    Provenance,
    ResolutionResult,
    TeamRecord,
)
from shared.models.enums import (
    ResolutionState,
    RosterStatus,
    SourceName,
    SubjectKind,
    VerificationLevel,
)
from shared.utils.logging import get_logger, log_context
from shared.utils.metrics import (
    RESOLUTION_CONFIDENCE,
    RESOLUTION_LATENCY,
    RESOLUTIONS,
    SOURCE_FETCHES,
)

from resolver.achievements import count_by_category
from resolver.batching import run_chunked
from resolver.cache import CacheStore, Clock, make_key, normalize_key
from resolver.classifier import Classification, classify, detect_team_kind
from resolver.config import ResolverSettings, get_resolver_settings
from resolver.errors import NoDataFound
from resolver.reconciliation import ROSTER_SOURCES, MergeOutcome, Reconciler, cross_check_coach
from resolver.sources.base import Now, SourceAdapter, SourceFacts, utcnow
from resolver.sources.football_data import FootballDataSource
from resolver.sources.groq import GroqSource
from resolver.sources.static_table import StaticFactsTable, StaticTableSource
from resolver.sources.thesportsdb import TheSportsDBSource
from resolver.sources.wikidata import WikidataSource
from resolver.sources.wikipedia import WikipediaSource
from resolver.validation import validate_player, validate_team

logger = get_logger(__name__)

ERROR_RECOMMENDATIONS = ["Try again", "Check internet connection", "Verify API key"]
ERROR_DISCLAIMER = "Search failed. Please try again or check your connection."
UNVERIFIED_DISCLAIMER = "Not verified against a licensed source; details may be outdated."


def season_for(moment: datetime) -> str:
    """European season label; a new season starts in July."""
    start = moment.year if moment.month >= 7 else moment.year - 1
    return f"{start}/{start + 1}"


class ResolutionEngine:
    """Top-level entry point. One instance per process (or per test)."""

    def __init__(
        self,
        adapters: Mapping[SourceName, SourceAdapter],
        table: StaticFactsTable,
        settings: Optional[ResolverSettings] = None,
        cache: Optional[CacheStore[ResolutionResult]] = None,
        knowledge_graph: Optional[SourceAdapter] = None,
        now: Optional[Now] = None,
        classifier: Callable[[str], Classification] = classify,
    ) -> None:
        self._settings = settings or get_resolver_settings()
        self._adapters = dict(adapters)
        self._knowledge_graph = knowledge_graph
        self._reconciler = Reconciler(table)
        self._cache: CacheStore[ResolutionResult] = cache if cache is not None else CacheStore(
            "resolution", self._settings.resolution_ttl_s
        )
        self._now = now or utcnow
        self._classify = classifier
        self._timeouts: dict[SourceName, float] = {
            SourceName.GENERATIVE: self._settings.generative_timeout_s,
            SourceName.ENCYCLOPEDIA: self._settings.encyclopedia_timeout_s,
            SourceName.LICENSED: self._settings.licensed_timeout_s,
            SourceName.COMMUNITY: self._settings.community_timeout_s,
            SourceName.STATIC: self._settings.licensed_timeout_s,
            SourceName.KNOWLEDGE_GRAPH: self._settings.knowledge_graph_timeout_s,
        }

    # ── Lifecycle ───────────────────────────────────────────────────────
    def _all_adapters(self) -> list[SourceAdapter]:
        adapters = list(self._adapters.values())
        if self._knowledge_graph is not None:
            adapters.append(self._knowledge_graph)
        return adapters

    def _all_caches(self) -> list[CacheStore]:
        return [self._cache, *(a.cache for a in self._all_adapters())]

    async def start(self) -> None:
        for adapter in self._all_adapters():
            if adapter.enabled:
                await adapter.start()
        for cache in self._all_caches():
            cache.start_sweeper(self._settings.cache_sweep_interval_s)
        logger.info(
            "resolver_started",
            sources=sorted(s.value for s in self.available_sources()),
            disabled={
                s.value: a.disabled_reason for s, a in self._adapters.items() if not a.enabled
            },
        )

    async def aclose(self) -> None:
        for cache in self._all_caches():
            await cache.stop_sweeper()
        for adapter in self._all_adapters():
            await adapter.close()
        logger.info("resolver_stopped")

    async def __aenter__(self) -> "ResolutionEngine":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ── Introspection ───────────────────────────────────────────────────
    def available_sources(self) -> set[SourceName]:
        return {s for s, a in self._adapters.items() if a.enabled}

    def season(self) -> str:
        return self._settings.season or season_for(self._now())

    async def clear_caches(self) -> None:
        for cache in self._all_caches():
            await cache.clear()
        logger.info("caches_cleared")

    def cache_stats(self) -> list[dict[str, int | float | str]]:
        return [c.stats() for c in self._all_caches()]

    # ── Resolution ──────────────────────────────────────────────────────
    async def resolve(self, query: str, bust_cache: bool = False) -> ResolutionResult:
        normalized = normalize_key(query)
        with log_context(query=normalized, resolution_id=uuid.uuid4().hex[:12]):
            start = time.perf_counter()
            kind = SubjectKind.TEAM
            state = self._transition(ResolutionState.IDLE, ResolutionState.CLASSIFYING)
            try:
                if not normalized:
                    raise NoDataFound(query)
                classification = self._classify(query).restrict_to(self.available_sources())
                kind = classification.kind
                logger.info(
                    "query_classified",
                    kind=kind.value,
                    subject=classification.subject,
                    candidates=[a.value for a in classification.candidate_adapters],
                    skip_generative=classification.skip_generative,
                )

                key = make_key(normalized, kind.value)
                if not bust_cache:
                    cached = await self._cache.get(key)
                    if cached is not None:
                        logger.info("resolution_cache_hit")
                        RESOLUTIONS.labels(kind=kind.value, state=ResolutionState.CACHED.value).inc()
                        return cached.model_copy(deep=True)

                state = self._transition(state, ResolutionState.FETCHING_SOURCES)
                results = await self._fetch_wave(
                    classification.candidate_adapters, classification.subject, kind, bust_cache
                )
                if self._needs_fallback(classification, results):
                    logger.info("generative_fallback", adapters=[a.value for a in classification.fallback_adapters])
                    results.update(
                        await self._fetch_wave(
                            classification.fallback_adapters, classification.subject, kind, bust_cache
                        )
                    )
                if all(f is None for f in results.values()):
                    raise NoDataFound(query)

                state = self._transition(state, ResolutionState.RECONCILING)
                outcome = self._reconciler.merge(
                    classification.subject, kind, results, retrieved_at=self._now()
                )
                if outcome.team is None and not outcome.players:
                    raise NoDataFound(query)
                await self._post_merge(outcome, classification, bust_cache)

                state = self._transition(state, ResolutionState.VALIDATING)
                result = self._finalize(query, outcome)

                await self._cache.set(key, result)
                state = self._transition(state, ResolutionState.CACHED)
                self._transition(state, ResolutionState.RETURNED)
                RESOLUTIONS.labels(kind=kind.value, state=ResolutionState.RETURNED.value).inc()
                RESOLUTION_CONFIDENCE.labels(kind=kind.value).observe(result.metadata.confidence_score)
                return result.model_copy(deep=True)

            except NoDataFound as exc:
                self._transition(state, ResolutionState.FAILED)
                return self._failed(query, kind, str(exc))
            except Exception as exc:
                logger.exception("resolution_error", error=str(exc))
                self._transition(state, ResolutionState.FAILED)
                return self._failed(query, kind, f"Resolution failed: {type(exc).__name__}")
            finally:
                RESOLUTION_LATENCY.labels(kind=kind.value).observe(time.perf_counter() - start)

    def _transition(self, current: ResolutionState, nxt: ResolutionState) -> ResolutionState:
        logger.debug("resolution_state", previous=current.value, state=nxt.value)
        return nxt

    async def _fetch_one(
        self, source: SourceName, name: str, kind: SubjectKind, refresh: bool
    ) -> Optional[SourceFacts]:
        adapter = self._adapters.get(source) if source != SourceName.KNOWLEDGE_GRAPH else self._knowledge_graph
        if adapter is None:
            return None
        timeout = self._timeouts.get(source, 5.0)
        try:
            return await asyncio.wait_for(adapter.fetch(name, kind, refresh=refresh), timeout)
        except asyncio.TimeoutError:
            logger.warning("source_timeout", source=source.value, timeout_s=timeout)
            SOURCE_FETCHES.labels(source=source.value, outcome="timeout").inc()
            return None

    async def _fetch_wave(
        self,
        sources: tuple[SourceName, ...],
        name: str,
        kind: SubjectKind,
        refresh: bool,
    ) -> dict[SourceName, Optional[SourceFacts]]:
        """Fan out to independent sources concurrently and join."""
        if not sources:
            return {}
        facts = await asyncio.gather(*(self._fetch_one(s, name, kind, refresh) for s in sources))
        results = dict(zip(sources, facts))
        logger.info(
            "sources_fetched",
            present=[s.value for s, f in results.items() if f is not None],
            absent=[s.value for s, f in results.items() if f is None],
        )
        return results

    def _needs_fallback(
        self, classification: Classification, results: Mapping[SourceName, Optional[SourceFacts]]
    ) -> bool:
        if not self._settings.generative_fallback or not classification.fallback_adapters:
            return False
        present = {s for s, f in results.items() if f is not None}
        if not present - {SourceName.STATIC}:
            return True
        if classification.kind == SubjectKind.TEAM:
            rosters = [results.get(s) for s in ROSTER_SOURCES]
            return not any(f is not None and f.players for f in rosters)
        return False

    async def _post_merge(
        self, outcome: MergeOutcome, classification: Classification, refresh: bool
    ) -> None:
        """Optional steps that only add information: coach cross-check, roster summaries."""
        if (
            self._settings.knowledge_graph_enabled
            and self._knowledge_graph is not None
            and outcome.team is not None
        ):
            reference = await self._fetch_one(
                SourceName.KNOWLEDGE_GRAPH, outcome.team.name, SubjectKind.TEAM, refresh
            )
            outcome.issues.extend(cross_check_coach(outcome.team, reference))

        if (
            self._settings.enrich_roster
            and outcome.roster_status == RosterStatus.AVAILABLE
            and SourceName.ENCYCLOPEDIA in self.available_sources()
        ):
            outcome.players = await self._enrich_roster(outcome.players, refresh)

    async def _enrich_roster(self, players: list[PlayerRecord], refresh: bool) -> list[PlayerRecord]:
        async def enrich(player: PlayerRecord) -> PlayerRecord:
            if not player.summary.startswith(f"{player.name} plays for "):
                return player
            facts = await self._fetch_one(SourceName.ENCYCLOPEDIA, player.name, SubjectKind.PLAYER, refresh)
            if facts is None or facts.player is None or not facts.player.summary:
                return player
            return player.model_copy(update={"summary": facts.player.summary})

        return await run_chunked(
            players,
            enrich,
            chunk_size=self._settings.enrichment_chunk_size,
            chunk_delay_s=self._settings.enrichment_chunk_delay_s,
            stagger_s=self._settings.enrichment_stagger_s,
        )

    def _finalize(self, query: str, outcome: MergeOutcome) -> ResolutionResult:
        now = self._now()
        issues = list(outcome.issues)
        team: Optional[TeamRecord] = outcome.team
        players: list[PlayerRecord] = []

        for player in outcome.players:
            report = validate_player(player)
            prov = player.provenance or Provenance(source="none", retrieved_at=now)
            players.append(
                player.model_copy(
                    update={
                        "provenance": prov.model_copy(
                            update={"confidence_score": report.score, "issues": report.messages}
                        )
                    }
                )
            )

        if outcome.kind == SubjectKind.PLAYER and players:
            primary = players[0].provenance
            score = primary.confidence_score if primary else 0
            issues = [*(primary.issues if primary else []), *issues]
        elif team is not None:
            report = validate_team(team, current_year=now.year)
            score = report.score
            issues = [*report.messages, *issues]
            prov = outcome.provenance or Provenance(source="none", retrieved_at=now)
            team = team.model_copy(
                update={
                    "provenance": prov.model_copy(
                        update={"confidence_score": score, "issues": report.messages}
                    )
                }
            )
        elif players:
            score = round(sum(p.provenance.confidence_score for p in players if p.provenance) / len(players))
        else:
            score = 0

        sources = [s.value for s in outcome.sources_used]
        metadata = Metadata(
            sources_consulted=sources,
            confidence_score=score,
            issues=issues,
            season=self.season(),
            generated_at=now,
            verification_level=VerificationLevel.from_score(score),
            achievement_counts=count_by_category(team.achievements) if team else {},
            static_fallback_used=outcome.static_fallback_used,
            state=ResolutionState.RETURNED,
            disclaimer=None if SourceName.LICENSED.value in sources else UNVERIFIED_DISCLAIMER,
        )
        logger.info(
            "resolution_complete",
            kind=outcome.kind.value,
            sources=sources,
            confidence=score,
            players=len(players),
            roster_status=outcome.roster_status.value,
        )
        return ResolutionResult(
            query=query,
            kind=outcome.kind,
            team=team,
            players=players,
            roster_status=outcome.roster_status,
            metadata=metadata,
        )

    def _failed(self, query: str, kind: SubjectKind, error: str) -> ResolutionResult:
        RESOLUTIONS.labels(kind=kind.value, state=ResolutionState.FAILED.value).inc()
        logger.warning("resolution_failed", kind=kind.value, error=error)
        subject = " ".join(query.split())
        team = None
        roster_status = RosterStatus.NOT_APPLICABLE
        if kind == SubjectKind.TEAM:
            team = TeamRecord(name=subject, kind=detect_team_kind(subject))
            roster_status = RosterStatus.UNAVAILABLE
        return ResolutionResult(
            query=query,
            kind=kind,
            team=team,
            players=[],
            roster_status=roster_status,
            metadata=Metadata(
                confidence_score=0,
                issues=[error],
                season=self.season(),
                generated_at=self._now(),
                state=ResolutionState.FAILED,
                disclaimer=ERROR_DISCLAIMER,
                recommendations=list(ERROR_RECOMMENDATIONS),
            ),
            error=error,
        )


def build_engine(
    settings: Optional[Settings] = None,
    resolver_settings: Optional[ResolverSettings] = None,
    clock: Optional[Clock] = None,
    now: Optional[Now] = None,
) -> ResolutionEngine:
    """Wire every source with its own cache from configuration."""
    settings = settings or get_settings()
    rs = resolver_settings or get_resolver_settings()
    now = now or utcnow
    table = StaticFactsTable.load(rs.static_table_path)
    season = rs.season or season_for(now())

    def cache(name: str, ttl: float) -> CacheStore[SourceFacts]:
        return CacheStore(name, ttl, clock)

    adapters: dict[SourceName, SourceAdapter] = {
        SourceName.LICENSED: FootballDataSource(
            settings, cache("football_data", rs.licensed_ttl_s), rs.licensed_timeout_s, now
        ),
        SourceName.ENCYCLOPEDIA: WikipediaSource(
            settings, cache("wikipedia", rs.encyclopedia_ttl_s), rs.encyclopedia_timeout_s, now
        ),
        SourceName.GENERATIVE: GroqSource(
            settings, cache("groq", rs.generative_ttl_s), season, rs.generative_timeout_s, now
        ),
        SourceName.STATIC: StaticTableSource(table, cache("static_table", rs.static_ttl_s), now),
        SourceName.COMMUNITY: TheSportsDBSource(
            settings, cache("thesportsdb", rs.community_ttl_s), rs.community_timeout_s, now
        ),
    }
    knowledge_graph = None
    if rs.knowledge_graph_enabled:
        knowledge_graph = WikidataSource(
            settings, cache("wikidata", rs.knowledge_graph_ttl_s), rs.knowledge_graph_timeout_s, now
        )
    return ResolutionEngine(
        adapters,
        table,
        settings=rs,
        cache=CacheStore("resolution", rs.resolution_ttl_s, clock),
        knowledge_graph=knowledge_graph,
        now=now,
    )

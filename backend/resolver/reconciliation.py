"""
Reconciliation: merge per-source facts into one record under a fixed precedence.

Scalars: the highest-precedence source with a non-empty value wins
(football_data > wikipedia > groq > static_table > thesportsdb). Achievements are
unioned. Rosters are never mixed: the first source with a non-empty roster wins.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from shared.models.domain import Achievements, PlayerRecord, Provenance, TeamRecord
from shared.models.enums import (
    SOURCE_PRECEDENCE,
    RosterStatus,
    SourceName,
    SubjectKind,
    TeamKind,
)
from shared.utils.logging import get_logger

from resolver import achievements as ach
from resolver.classifier import detect_team_kind
from resolver.text import fold, is_placeholder
from resolver.sources.base import PlayerFacts, SourceFacts, TeamFacts
from resolver.sources.static_table import StaticFactsTable

logger = get_logger(__name__)

NO_ROSTER_ISSUE = "No current roster data available"

# Sources allowed to decide each team field; everything else may fill any field.
TEAM_FIELD_SOURCES: dict[str, tuple[SourceName, ...]] = {
    # Static facts are immutable history; a coach is not.
    "coach": (SourceName.LICENSED, SourceName.ENCYCLOPEDIA, SourceName.GENERATIVE, SourceName.COMMUNITY),
    "summary": (SourceName.ENCYCLOPEDIA, SourceName.GENERATIVE),
}
# The encyclopedia only contributes prose to a player; its page may be a loose title match.
PLAYER_PROSE_ONLY: tuple[SourceName, ...] = (SourceName.ENCYCLOPEDIA,)
ROSTER_SOURCES: tuple[SourceName, ...] = (
    SourceName.LICENSED,
    SourceName.GENERATIVE,
    SourceName.COMMUNITY,
)


@dataclass
class MergeOutcome:
    kind: SubjectKind
    team: Optional[TeamRecord] = None
    players: list[PlayerRecord] = field(default_factory=list)
    roster_status: RosterStatus = RosterStatus.NOT_APPLICABLE
    provenance: Optional[Provenance] = None
    issues: list[str] = field(default_factory=list)
    sources_used: list[SourceName] = field(default_factory=list)

    @property
    def static_fallback_used(self) -> bool:
        return bool(self.provenance and self.provenance.static_fallback_used)


def _empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return is_placeholder(value)
    return False


def _ordered(results: Mapping[SourceName, Optional[SourceFacts]]) -> list[tuple[SourceName, SourceFacts]]:
    ordered = []
    for source in SOURCE_PRECEDENCE:
        facts = results.get(source)
        if facts is not None:
            ordered.append((source, facts))
    return ordered


class Reconciler:
    """Stateless apart from the curated lists in the static table."""

    def __init__(self, table: StaticFactsTable) -> None:
        self._table = table

    def merge(
        self,
        subject_name: str,
        kind: SubjectKind,
        results: Mapping[SourceName, Optional[SourceFacts]],
        retrieved_at: datetime,
    ) -> MergeOutcome:
        ordered = _ordered(results)
        if kind == SubjectKind.PLAYER:
            outcome = self._merge_player(subject_name, ordered, retrieved_at)
        else:
            outcome = self._merge_team(subject_name, ordered, retrieved_at)
        outcome.sources_used = [s for s, _ in ordered]
        return outcome

    # ── Teams ───────────────────────────────────────────────────────────
    def _merge_team(
        self,
        subject_name: str,
        ordered: list[tuple[SourceName, SourceFacts]],
        retrieved_at: datetime,
    ) -> MergeOutcome:
        teams = [(s, f.team) for s, f in ordered if f.team is not None]
        winners: dict[str, str] = {}
        issues: list[str] = []

        def pick(attr: str) -> Any:
            allowed = TEAM_FIELD_SOURCES.get(attr)
            for source, facts in teams:
                if allowed is not None and source not in allowed:
                    continue
                value = getattr(facts, attr)
                if not _empty(value):
                    winners[attr] = source.value
                    logger.info("field_resolved", field=attr, source=source.value)
                    return value
            return None

        outcome = MergeOutcome(kind=SubjectKind.TEAM)
        if teams:
            name = pick("name") or subject_name
            kind_hint = next((t.kind for _, t in teams if t.kind), None)
            team_kind = detect_team_kind(name, kind_hint)
            if kind_hint:
                winners["type"] = next(s.value for s, t in teams if t.kind)
            coach = pick("coach")
            issues.extend(self._coach_disagreements(teams, coach))

            outcome.team = TeamRecord(
                name=name,
                kind=team_kind,
                country=pick("country") or (name if team_kind == TeamKind.NATIONAL.value else ""),
                stadium=pick("stadium"),
                current_coach=coach,
                founded_year=pick("founded_year"),
                achievements=self._merge_achievements(teams, team_kind, winners),
                summary=pick("summary"),
            )
            team_name, team_country = name, outcome.team.country
            national = team_kind == TeamKind.NATIONAL.value
        else:
            team_name, team_country = subject_name, ""
            national = detect_team_kind(subject_name) == TeamKind.NATIONAL.value

        players, roster_source, roster_issues = self._pick_roster(
            ordered, team_name, team_country, national
        )
        issues.extend(roster_issues)
        outcome.players = players
        if roster_source is not None:
            winners["players"] = roster_source.value
            outcome.roster_status = RosterStatus.AVAILABLE
            logger.info("field_resolved", field="players", source=roster_source.value, count=len(players))
        else:
            outcome.roster_status = RosterStatus.UNAVAILABLE
            issues.append(NO_ROSTER_ISSUE)

        static_fields = sorted(
            k for k, v in winners.items() if SourceName.STATIC.value in v.split(",")
        )
        static_used = bool(static_fields)
        if static_used:
            logger.info(
                "static_fallback_used",
                subject=subject_name,
                fields=static_fields,
                table_version=self._table.version,
            )
        outcome.provenance = Provenance(
            source=ordered[0][0].value if ordered else "none",
            retrieved_at=retrieved_at,
            fields=winners,
            static_fallback_used=static_used,
        )
        outcome.issues = issues
        return outcome

    def _merge_achievements(
        self,
        teams: list[tuple[SourceName, TeamFacts]],
        team_kind: str,
        winners: dict[str, str],
    ) -> Achievements:
        parts: list[Achievements] = []
        contributors: list[str] = []
        for source, facts in teams:
            part = ach.union([facts.achievements, ach.categorize(facts.honours, team_kind)])
            if not part.is_empty():
                parts.append(part)
                contributors.append(source.value)
        if contributors:
            winners["achievements"] = ",".join(contributors)
        return ach.enforce_exclusivity(ach.union(parts), team_kind)

    @staticmethod
    def _coach_disagreements(
        teams: list[tuple[SourceName, TeamFacts]], chosen: Optional[str]
    ) -> list[str]:
        if chosen is None:
            return []
        issues = []
        for source, facts in teams:
            if source in (SourceName.STATIC,) or _empty(facts.coach):
                continue
            if fold(facts.coach or "") != fold(chosen):
                issues.append(
                    f"Coach conflict: {source.value} reports '{facts.coach}', using '{chosen}'"
                )
        return issues

    def _pick_roster(
        self,
        ordered: list[tuple[SourceName, SourceFacts]],
        team_name: str,
        team_country: str,
        national: bool,
    ) -> tuple[list[PlayerRecord], Optional[SourceName], list[str]]:
        issues: list[str] = []
        excluded = self._table.excluded_for(team_name)
        for source, facts in ordered:
            if source not in ROSTER_SOURCES or not facts.players:
                continue
            kept: list[PlayerFacts] = []
            seen: set[str] = set()
            for p in facts.players:
                if _empty(p.name):
                    continue
                key = fold(p.name or "")
                if key in seen:
                    continue
                if source == SourceName.GENERATIVE and key in excluded:
                    issues.append(f"Excluded '{p.name}': no longer in the {team_name} squad")
                    continue
                if source == SourceName.COMMUNITY and national:
                    reason = self._suspicious(p, team_name, team_country)
                    if reason:
                        issues.append(f"Suspicious player '{p.name}' from {source.value}: {reason}")
                        logger.warning(
                            "suspicious_player_filtered",
                            player=p.name,
                            team=team_name,
                            source=source.value,
                            reason=reason,
                        )
                        continue
                seen.add(key)
                kept.append(p)
            if kept:
                records = [
                    self._player_record(p, source, facts.retrieved_at, team_name, issues)
                    for p in kept
                ]
                return records, source, issues
        return [], None, issues

    def _suspicious(self, player: PlayerFacts, team_name: str, team_country: str) -> Optional[str]:
        nationality = fold(player.nationality or "")
        expected = {fold(team_country), fold(team_name)} - {""}
        if nationality and expected and nationality not in expected:
            return f"nationality {player.nationality} does not match {team_name}"
        if self._table.is_suspicious_surname(player.name or ""):
            return f"surname belongs to a club-only player list, not {team_name}"
        return None

    # ── Players ─────────────────────────────────────────────────────────
    def _player_record(
        self,
        p: PlayerFacts,
        source: SourceName,
        retrieved_at: datetime,
        team_name: str,
        issues: list[str],
    ) -> PlayerRecord:
        apps, goals = p.international_appearances, p.international_goals
        if apps is not None and goals is not None and goals > apps:
            issues.append(
                f"Dropped international stats for '{p.name}': {goals} goals in {apps} appearances"
            )
            apps = goals = None
        current_team = p.current_team or team_name
        position = p.position or "Player"
        if current_team:
            fallback_summary = f"{p.name} plays for {current_team} as a {position}."
        else:
            fallback_summary = f"{p.name} is a {position}."
        return PlayerRecord(
            name=p.name or "",
            current_team=current_team,
            position=position,
            age=p.age,
            nationality=p.nationality or "",
            career_goals=p.career_goals,
            career_assists=p.career_assists,
            international_appearances=apps,
            international_goals=goals,
            achievements=ach.dedupe(p.achievements),
            summary=p.summary or fallback_summary,
            provenance=Provenance(source=source.value, retrieved_at=retrieved_at),
        )

    def _merge_player(
        self,
        subject_name: str,
        ordered: list[tuple[SourceName, SourceFacts]],
        retrieved_at: datetime,
    ) -> MergeOutcome:
        candidates = [(s, f.player) for s, f in ordered if f.player is not None]
        outcome = MergeOutcome(kind=SubjectKind.PLAYER, roster_status=RosterStatus.NOT_APPLICABLE)
        if not candidates:
            outcome.provenance = Provenance(source="none", retrieved_at=retrieved_at)
            return outcome

        winners: dict[str, str] = {}

        def pick(attr: str) -> Any:
            for source, facts in candidates:
                if source in PLAYER_PROSE_ONLY and attr != "summary":
                    continue
                value = getattr(facts, attr)
                if not _empty(value):
                    winners[attr] = source.value
                    logger.info("field_resolved", field=attr, source=source.value)
                    return value
            return None

        merged = PlayerFacts(
            name=pick("name") or subject_name,
            current_team=pick("current_team"),
            position=pick("position"),
            age=pick("age"),
            nationality=pick("nationality"),
            career_goals=pick("career_goals"),
            career_assists=pick("career_assists"),
            international_appearances=pick("international_appearances"),
            international_goals=pick("international_goals"),
            achievements=[a for _, f in candidates for a in f.achievements],
            summary=pick("summary"),
        )
        issues: list[str] = []
        primary = candidates[0][0]
        outcome.players = [self._player_record(merged, primary, retrieved_at, "", issues)]
        outcome.issues = issues
        outcome.provenance = Provenance(source=primary.value, retrieved_at=retrieved_at, fields=winners)
        return outcome


def cross_check_coach(team: Optional[TeamRecord], reference: Optional[SourceFacts]) -> list[str]:
    """Compare the merged coach with the knowledge graph; report, never override."""
    if team is None or reference is None or reference.team is None:
        return []
    expected = reference.team.coach
    if _empty(expected) or _empty(team.current_coach):
        return []
    if fold(expected or "") != fold(team.current_coach or ""):
        return [
            f"Coach cross-check: {reference.source.value} lists '{expected}', record has '{team.current_coach}'"
        ]
    return []


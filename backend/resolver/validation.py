"""
Plausibility scoring for team and player records.

Each rule subtracts a fixed penalty from 100 (floored at 0). Pure and deterministic:
the current year is a parameter so tests never depend on the wall clock.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional, Union

from shared.models.domain import PlayerRecord, ResolutionResult, TeamRecord
from shared.models.enums import RosterStatus, TeamKind

from resolver.errors import ValidationIssue
from resolver.text import is_placeholder

VALID_POSITIONS = frozenset(
    p.lower()
    for p in (
        "Goalkeeper",
        "Defender",
        "Left Back",
        "Right Back",
        "Centre Back",
        "Center Back",
        "Midfielder",
        "Defensive Midfielder",
        "Central Midfielder",
        "Attacking Midfielder",
        "Left Midfielder",
        "Right Midfielder",
        "Forward",
        "Striker",
        "Winger",
        "Left Winger",
        "Right Winger",
        "Centre Forward",
        "Player",
    )
)

AGE_RANGE = (16, 42)
MAX_CAREER_GOALS = 900
MAX_CAREER_ASSISTS = 300
MAX_INTERNATIONAL_APPS = 200
EARLIEST_FOUNDED = 1850

# Penalties
P_AGE = 15
P_POSITION = 20
P_CAREER_STATS = 25
P_INTERNATIONAL = 20
P_MISSING_NAME = 30
P_MISSING_NATIONALITY = 10
P_MISSING_COACH = 10
P_FOUNDED = 20
P_TEAM_KIND = 20


@dataclass(frozen=True)
class ValidationReport:
    score: int
    issues: tuple[ValidationIssue, ...] = field(default=())

    @property
    def messages(self) -> list[str]:
        return [i.message for i in self.issues]

    @property
    def is_valid(self) -> bool:
        """No blocking issue (warnings allowed)."""
        return not any(not i.warning for i in self.issues)


def _report(issues: list[ValidationIssue]) -> ValidationReport:
    score = max(0, 100 - sum(i.penalty for i in issues))
    return ValidationReport(score=score, issues=tuple(issues))


def validate_player(player: PlayerRecord) -> ValidationReport:
    issues: list[ValidationIssue] = []

    if is_placeholder(player.name):
        issues.append(ValidationIssue("name", "Missing player name", P_MISSING_NAME))

    if player.age is not None and not AGE_RANGE[0] <= player.age <= AGE_RANGE[1]:
        issues.append(ValidationIssue("age", f"Unrealistic age: {player.age}", P_AGE))

    if is_placeholder(player.position):
        issues.append(ValidationIssue("position", "Position is missing", P_POSITION))
    elif player.position.strip().lower() not in VALID_POSITIONS:
        issues.append(
            ValidationIssue("position", f"Invalid position: {player.position}", P_POSITION)
        )

    goals, assists = player.career_goals, player.career_assists
    if (goals is not None and (goals < 0 or goals > MAX_CAREER_GOALS)) or (
        assists is not None and (assists < 0 or assists > MAX_CAREER_ASSISTS)
    ):
        issues.append(
            ValidationIssue(
                "career",
                f"Unrealistic career stats: {goals} goals, {assists} assists",
                P_CAREER_STATS,
            )
        )

    apps, intl_goals = player.international_appearances, player.international_goals
    if apps is not None and (apps < 0 or apps > MAX_INTERNATIONAL_APPS):
        issues.append(
            ValidationIssue("international", f"Unrealistic international caps: {apps}", P_INTERNATIONAL)
        )
    elif apps is not None and intl_goals is not None and intl_goals > apps:
        issues.append(
            ValidationIssue(
                "international",
                f"International goals ({intl_goals}) exceed appearances ({apps})",
                P_INTERNATIONAL,
            )
        )

    if is_placeholder(player.nationality):
        issues.append(ValidationIssue("nationality", "Missing nationality", P_MISSING_NATIONALITY))

    return _report(issues)


def validate_team(team: TeamRecord, current_year: Optional[int] = None) -> ValidationReport:
    year = current_year or datetime.now(timezone.utc).year
    issues: list[ValidationIssue] = []

    if is_placeholder(team.name):
        issues.append(ValidationIssue("name", "Missing team name", P_MISSING_NAME))

    if is_placeholder(team.current_coach):
        issues.append(
            ValidationIssue("current_coach", "Missing coach information", P_MISSING_COACH, warning=True)
        )

    if team.founded_year is not None and not EARLIEST_FOUNDED <= team.founded_year <= year:
        issues.append(
            ValidationIssue("founded_year", f"Invalid founded year: {team.founded_year}", P_FOUNDED)
        )

    if team.kind not in (TeamKind.CLUB.value, TeamKind.NATIONAL.value):
        issues.append(ValidationIssue("type", f"Invalid team type: {team.kind}", P_TEAM_KIND))

    return _report(issues)


def validate(
    record: Union[TeamRecord, PlayerRecord], current_year: Optional[int] = None
) -> ValidationReport:
    if isinstance(record, TeamRecord):
        return validate_team(record, current_year)
    return validate_player(record)


def filter_valid_players(players: Iterable[PlayerRecord], min_score: int = 50) -> list[PlayerRecord]:
    """Players scoring at least min_score. Callers opt in; resolve() never filters."""
    return [p for p in players if validate_player(p).score >= min_score]


def summarize(players: Iterable[PlayerRecord]) -> dict[str, object]:
    """Aggregate quality report for a roster."""
    reports = [validate_player(p) for p in players]
    if not reports:
        return {
            "total": 0,
            "valid": 0,
            "average_score": 0,
            "quality": {"excellent": 0, "good": 0, "fair": 0, "poor": 0},
            "top_issues": [],
        }
    quality = {"excellent": 0, "good": 0, "fair": 0, "poor": 0}
    issue_counts: Counter[str] = Counter()
    for r in reports:
        if r.score >= 90:
            quality["excellent"] += 1
        elif r.score >= 75:
            quality["good"] += 1
        elif r.score >= 50:
            quality["fair"] += 1
        else:
            quality["poor"] += 1
        issue_counts.update(i.field for i in r.issues)
    return {
        "total": len(reports),
        "valid": sum(1 for r in reports if r.is_valid),
        "average_score": round(sum(r.score for r in reports) / len(reports)),
        "quality": quality,
        "top_issues": [name for name, _ in issue_counts.most_common(5)],
    }


def needs_verification(result: ResolutionResult) -> bool:
    """Low confidence, a thin roster or an unknown coach warrant a manual check."""
    if result.metadata.confidence_score < 60:
        return True
    if result.team is not None:
        if result.roster_status != RosterStatus.NOT_APPLICABLE and len(result.players) < 5:
            return True
        if is_placeholder(result.team.current_coach):
            return True
    return False

"""
Unit tests for field-level reconciliation.

Run: pytest backend/tests/test_reconciliation.py -v
"""
from __future__ import annotations

from typing import Optional

import pytest

from shared.models.domain import Achievements, Provenance, TeamRecord
from shared.models.enums import RosterStatus, SourceName, SubjectKind
from resolver.reconciliation import NO_ROSTER_ISSUE, Reconciler, cross_check_coach
from resolver.sources.base import PlayerFacts, SourceFacts, TeamFacts
from resolver.sources.static_table import StaticFactsTable
from tests.fakes import NOW


def facts(
    source: SourceName,
    team: Optional[TeamFacts] = None,
    players: Optional[list[PlayerFacts]] = None,
    player: Optional[PlayerFacts] = None,
) -> SourceFacts:
    return SourceFacts(
        source=source, retrieved_at=NOW, team=team, player=player, players=players or []
    )


def static_facts(table: StaticFactsTable, name: str) -> SourceFacts:
    hit = table.lookup(name)
    assert hit is not None
    entry = hit[1]
    return facts(
        SourceName.STATIC,
        team=TeamFacts(
            name=entry.name,
            kind=entry.type,
            country=entry.country,
            stadium=entry.stadium,
            founded_year=entry.founded_year,
            honours=entry.achievements,
        ),
    )


@pytest.fixture
def reconciler(table: StaticFactsTable) -> Reconciler:
    return Reconciler(table)


# ── Team field precedence ───────────────────────────────────────────────

def test_real_madrid_licensed_plus_static(reconciler: Reconciler, table: StaticFactsTable) -> None:
    results = {
        SourceName.LICENSED: facts(
            SourceName.LICENSED,
            team=TeamFacts(name="Real Madrid", coach="Carlo Ancelotti", founded_year=1902),
        ),
        SourceName.STATIC: static_facts(table, "Real Madrid"),
    }
    out = reconciler.merge("Real Madrid", SubjectKind.TEAM, results, NOW)
    team = out.team
    assert team is not None
    assert team.current_coach == "Carlo Ancelotti"
    assert team.founded_year == 1902
    assert team.stadium == "Santiago Bernabéu"
    assert team.kind == "club"
    assert team.to_wire()["type"] == "club"
    assert out.provenance is not None
    assert out.provenance.fields["coach"] == "football_data"
    assert out.provenance.fields["stadium"] == "static_table"
    assert out.static_fallback_used is True


def test_licensed_coach_beats_generative(reconciler: Reconciler) -> None:
    results = {
        SourceName.LICENSED: facts(SourceName.LICENSED, team=TeamFacts(name="Chelsea", coach="Enzo Maresca")),
        SourceName.GENERATIVE: facts(SourceName.GENERATIVE, team=TeamFacts(name="Chelsea", coach="Mauricio Pochettino")),
    }
    out = reconciler.merge("Chelsea", SubjectKind.TEAM, results, NOW)
    assert out.team is not None
    assert out.team.current_coach == "Enzo Maresca"
    assert any(i.startswith("Coach conflict") for i in out.issues)


def test_encyclopedia_coach_overrides_generative(reconciler: Reconciler) -> None:
    results = {
        SourceName.ENCYCLOPEDIA: facts(SourceName.ENCYCLOPEDIA, team=TeamFacts(name="Arsenal", coach="Mikel Arteta")),
        SourceName.GENERATIVE: facts(SourceName.GENERATIVE, team=TeamFacts(name="Arsenal", coach="Arsène Wenger")),
    }
    out = reconciler.merge("Arsenal", SubjectKind.TEAM, results, NOW)
    assert out.team is not None
    assert out.team.current_coach == "Mikel Arteta"


def test_static_table_never_supplies_coach_or_summary(reconciler: Reconciler) -> None:
    results = {
        SourceName.STATIC: facts(
            SourceName.STATIC,
            team=TeamFacts(name="Liverpool", coach="Old Manager", summary="static prose", stadium="Anfield"),
        ),
    }
    out = reconciler.merge("Liverpool", SubjectKind.TEAM, results, NOW)
    assert out.team is not None
    assert out.team.current_coach is None
    assert out.team.summary in (None, "")
    assert out.team.stadium == "Anfield"


def test_no_static_contribution_is_recorded(reconciler: Reconciler) -> None:
    results = {
        SourceName.LICENSED: facts(SourceName.LICENSED, team=TeamFacts(name="Chelsea", stadium="Stamford Bridge")),
    }
    out = reconciler.merge("Chelsea", SubjectKind.TEAM, results, NOW)
    assert out.static_fallback_used is False


# ── Achievements ────────────────────────────────────────────────────────

def test_achievement_union_suppresses_duplicates(reconciler: Reconciler) -> None:
    ucl = "UEFA Champions League (5 titles)"
    results = {
        SourceName.LICENSED: facts(
            SourceName.LICENSED,
            team=TeamFacts(name="FC Barcelona", achievements=Achievements(continental=[ucl])),
        ),
        SourceName.GENERATIVE: facts(
            SourceName.GENERATIVE,
            team=TeamFacts(
                name="FC Barcelona",
                achievements=Achievements(continental=[ucl], domestic=["La Liga (27 titles)"]),
            ),
        ),
    }
    out = reconciler.merge("Barcelona", SubjectKind.TEAM, results, NOW)
    assert out.team is not None
    assert out.team.achievements.continental == [ucl]
    assert out.team.achievements.domestic == ["La Liga (27 titles)"]


def test_national_team_achievements_are_exclusive(reconciler: Reconciler) -> None:
    results = {
        SourceName.GENERATIVE: facts(
            SourceName.GENERATIVE,
            team=TeamFacts(
                name="Brazil",
                kind="national",
                achievements=Achievements(world_cup=["FIFA World Cup (5 titles)"], domestic=["Copa América (9 titles)"]),
            ),
        ),
    }
    out = reconciler.merge("Brazil", SubjectKind.TEAM, results, NOW)
    assert out.team is not None
    assert out.team.kind == "national"
    assert out.team.achievements.domestic == []
    assert out.team.achievements.international == ["Copa América (9 titles)"]


def test_club_achievements_never_hold_world_cup(reconciler: Reconciler) -> None:
    results = {
        SourceName.GENERATIVE: facts(
            SourceName.GENERATIVE,
            team=TeamFacts(name="Chelsea", achievements=Achievements(world_cup=["FIFA Club World Cup (2 titles)"])),
        ),
    }
    out = reconciler.merge("Chelsea", SubjectKind.TEAM, results, NOW)
    assert out.team is not None
    assert out.team.achievements.world_cup == []


# ── Rosters ─────────────────────────────────────────────────────────────

def test_first_non_empty_roster_wins_without_mixing(reconciler: Reconciler) -> None:
    results = {
        SourceName.LICENSED: facts(SourceName.LICENSED, team=TeamFacts(name="Chelsea"), players=[]),
        SourceName.GENERATIVE: facts(
            SourceName.GENERATIVE, team=TeamFacts(name="Chelsea"), players=[PlayerFacts(name="Cole Palmer")]
        ),
        SourceName.COMMUNITY: facts(
            SourceName.COMMUNITY, team=TeamFacts(name="Chelsea"), players=[PlayerFacts(name="Eden Hazard")]
        ),
    }
    out = reconciler.merge("Chelsea", SubjectKind.TEAM, results, NOW)
    assert [p.name for p in out.players] == ["Cole Palmer"]
    assert out.roster_status == RosterStatus.AVAILABLE
    assert out.players[0].provenance is not None
    assert out.players[0].provenance.source == "groq"


def test_no_roster_sentinel(reconciler: Reconciler) -> None:
    results = {
        SourceName.ENCYCLOPEDIA: facts(SourceName.ENCYCLOPEDIA, team=TeamFacts(name="Obscure FC", summary="A club.")),
    }
    out = reconciler.merge("Obscure FC", SubjectKind.TEAM, results, NOW)
    assert out.players == []
    assert out.roster_status == RosterStatus.UNAVAILABLE
    assert NO_ROSTER_ISSUE in out.issues


def test_suspicious_community_player_excluded_from_national_roster(reconciler: Reconciler) -> None:
    results = {
        SourceName.COMMUNITY: facts(
            SourceName.COMMUNITY,
            team=TeamFacts(name="Argentina", kind="national", country="Argentina"),
            players=[
                PlayerFacts(name="Declan Rice", nationality="England"),
                PlayerFacts(name="Lionel Messi", nationality="Argentina", position="Forward"),
            ],
        ),
    }
    out = reconciler.merge("Argentina", SubjectKind.TEAM, results, NOW)
    assert [p.name for p in out.players] == ["Lionel Messi"]
    assert any("Suspicious player 'Declan Rice'" in i for i in out.issues)


def test_generative_roster_drops_departed_players(reconciler: Reconciler) -> None:
    results = {
        SourceName.GENERATIVE: facts(
            SourceName.GENERATIVE,
            team=TeamFacts(name="FC Barcelona"),
            players=[PlayerFacts(name="Lionel Messi"), PlayerFacts(name="Pedri")],
        ),
    }
    out = reconciler.merge("Barcelona", SubjectKind.TEAM, results, NOW)
    assert [p.name for p in out.players] == ["Pedri"]


def test_impossible_international_stats_are_dropped(reconciler: Reconciler) -> None:
    results = {
        SourceName.GENERATIVE: facts(
            SourceName.GENERATIVE,
            team=TeamFacts(name="Chelsea"),
            players=[PlayerFacts(name="Cole Palmer", international_appearances=5, international_goals=9)],
        ),
    }
    out = reconciler.merge("Chelsea", SubjectKind.TEAM, results, NOW)
    player = out.players[0]
    assert player.international_appearances is None
    assert player.international_goals is None
    assert player.summary == "Cole Palmer plays for Chelsea as a Player."


# ── Players ─────────────────────────────────────────────────────────────

def test_player_fields_merge_by_precedence(reconciler: Reconciler) -> None:
    results = {
        SourceName.ENCYCLOPEDIA: facts(
            SourceName.ENCYCLOPEDIA, player=PlayerFacts(name="Declan Rice", summary="English footballer.")
        ),
        SourceName.COMMUNITY: facts(
            SourceName.COMMUNITY,
            player=PlayerFacts(
                name="Declan Rice",
                current_team="Arsenal",
                position="Midfielder",
                nationality="England",
                summary="community text",
            ),
        ),
    }
    out = reconciler.merge("Declan Rice", SubjectKind.PLAYER, results, NOW)
    assert out.roster_status == RosterStatus.NOT_APPLICABLE
    (player,) = out.players
    assert player.summary == "English footballer."
    assert player.current_team == "Arsenal"
    assert out.provenance is not None
    assert out.provenance.fields["summary"] == "wikipedia"
    assert out.provenance.fields["current_team"] == "thesportsdb"


def test_encyclopedia_title_never_renames_player(reconciler: Reconciler) -> None:
    results = {
        SourceName.ENCYCLOPEDIA: facts(
            SourceName.ENCYCLOPEDIA, player=PlayerFacts(name="Endrick", summary="Endrick is a Brazilian footballer.")
        ),
        SourceName.COMMUNITY: facts(
            SourceName.COMMUNITY,
            player=PlayerFacts(name="Endrick Felipe", current_team="Real Madrid", nationality="Brazil"),
        ),
    }
    (player,) = reconciler.merge("Endrick Felipe", SubjectKind.PLAYER, results, NOW).players
    assert player.name == "Endrick Felipe"
    assert player.summary == "Endrick is a Brazilian footballer."


def test_encyclopedia_alone_falls_back_to_subject_name(reconciler: Reconciler) -> None:
    results = {
        SourceName.ENCYCLOPEDIA: facts(SourceName.ENCYCLOPEDIA, player=PlayerFacts(name="Endrick", summary="Text.")),
    }
    (player,) = reconciler.merge("Endrick Felipe", SubjectKind.PLAYER, results, NOW).players
    assert player.name == "Endrick Felipe"


def test_player_merge_with_no_player_facts(reconciler: Reconciler) -> None:
    out = reconciler.merge("Nobody Here", SubjectKind.PLAYER, {SourceName.COMMUNITY: None}, NOW)
    assert out.players == []


# ── Provenance does not affect equality ─────────────────────────────────

def test_records_equal_regardless_of_provenance(reconciler: Reconciler) -> None:
    results = {
        SourceName.LICENSED: facts(SourceName.LICENSED, team=TeamFacts(name="Chelsea", stadium="Stamford Bridge")),
    }
    a = reconciler.merge("Chelsea", SubjectKind.TEAM, results, NOW).team
    b = TeamRecord(
        name="Chelsea",
        stadium="Stamford Bridge",
        provenance=Provenance(source="groq", retrieved_at=NOW, confidence_score=10),
    )
    assert a == b


# ── Knowledge-graph cross-check ─────────────────────────────────────────

def test_cross_check_reports_disagreement() -> None:
    team = TeamRecord(name="Chelsea", current_coach="Enzo Maresca")
    ref = facts(SourceName.KNOWLEDGE_GRAPH, team=TeamFacts(name="Chelsea F.C.", coach="Someone Else"))
    assert len(cross_check_coach(team, ref)) == 1
    same = facts(SourceName.KNOWLEDGE_GRAPH, team=TeamFacts(name="Chelsea F.C.", coach="enzo maresca"))
    assert cross_check_coach(team, same) == []
    assert cross_check_coach(team, None) == []

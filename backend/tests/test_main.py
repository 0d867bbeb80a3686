"""
Unit tests for the command line entrypoint (engine mocked).

Run: pytest backend/tests/test_main.py -v
"""
from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from shared.models.domain import Metadata, PlayerRecord, ResolutionResult, TeamRecord
from shared.models.enums import ResolutionState, RosterStatus, SubjectKind
from resolver import main as cli
from tests.fakes import NOW


def _result(state: ResolutionState = ResolutionState.RETURNED) -> ResolutionResult:
    return ResolutionResult(
        query="Chelsea squad",
        kind=SubjectKind.TEAM,
        team=TeamRecord(name="Chelsea", current_coach="Enzo Maresca"),
        players=[
            PlayerRecord(name="Cole Palmer", position="Midfielder", nationality="England"),
            PlayerRecord(name="", position="Libero", age=70, career_goals=5000),
        ],
        roster_status=RosterStatus.AVAILABLE,
        metadata=Metadata(confidence_score=90, generated_at=NOW, state=state),
    )


@pytest.fixture
def mock_engine(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    engine = MagicMock()
    engine.resolve = AsyncMock(return_value=_result())
    engine.__aenter__ = AsyncMock(return_value=engine)
    engine.__aexit__ = AsyncMock(return_value=None)
    monkeypatch.setattr(cli, "build_engine", MagicMock(return_value=engine))
    return engine


def test_parse_args_joins_query_words() -> None:
    args = cli.parse_args(["Real", "Madrid", "--bust-cache"])
    assert args.query == ["Real", "Madrid"]
    assert args.bust_cache is True
    assert args.valid_only is False


@pytest.mark.asyncio
async def test_run_prints_camel_case_json(
    mock_engine: MagicMock, capsys: pytest.CaptureFixture[str]
) -> None:
    code = await cli.run(cli.parse_args(["Chelsea", "squad", "--bust-cache", "--indent", "0"]))
    assert code == 0
    mock_engine.resolve.assert_awaited_once_with("Chelsea squad", bust_cache=True)
    payload = json.loads(capsys.readouterr().out)
    assert payload["team"]["currentCoach"] == "Enzo Maresca"
    assert payload["rosterStatus"] == "available"
    assert len(payload["players"]) == 2
    assert payload["needsVerification"] is True


@pytest.mark.asyncio
async def test_valid_only_drops_low_scoring_players(
    mock_engine: MagicMock, capsys: pytest.CaptureFixture[str]
) -> None:
    await cli.run(cli.parse_args(["Chelsea", "--valid-only"]))
    payload = json.loads(capsys.readouterr().out)
    assert [p["name"] for p in payload["players"]] == ["Cole Palmer"]


@pytest.mark.asyncio
async def test_failed_result_exits_non_zero(
    mock_engine: MagicMock, capsys: pytest.CaptureFixture[str]
) -> None:
    mock_engine.resolve.return_value = _result(ResolutionState.FAILED)
    assert await cli.run(cli.parse_args(["Nobody FC"])) == 1


@pytest.mark.asyncio
async def test_logs_never_reach_stdout(
    mock_engine: MagicMock, capsys: pytest.CaptureFixture[str]
) -> None:
    await cli.run(cli.parse_args(["Chelsea", "--valid-only"]))
    out = capsys.readouterr().out
    assert "players_filtered" not in out
    assert json.loads(out)["query"] == "Chelsea squad"

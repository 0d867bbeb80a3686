from __future__ import annotations

import pytest

from shared.utils.logging import setup_logging
from resolver.config import ResolverSettings
from resolver.sources.static_table import StaticFactsTable
from tests.fakes import FakeClock


@pytest.fixture(scope="session", autouse=True)
def _logging() -> None:
    # Logs go to stderr so CLI tests can parse stdout as JSON
    setup_logging("tests")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def table() -> StaticFactsTable:
    return StaticFactsTable.load()


@pytest.fixture
def resolver_settings() -> ResolverSettings:
    return ResolverSettings(
        cache_sweep_interval_s=0,
        season="2025/2026",
        generative_timeout_s=0.2,
        encyclopedia_timeout_s=0.2,
        licensed_timeout_s=0.2,
        community_timeout_s=0.2,
    )

from resolver.sources.base import (
    HTTPSourceAdapter,
    PlayerFacts,
    SourceAdapter,
    SourceFacts,
    TeamFacts,
)
from resolver.sources.football_data import FootballDataSource
from resolver.sources.groq import GroqSource
from resolver.sources.static_table import StaticFactsTable, StaticTableSource
from resolver.sources.thesportsdb import TheSportsDBSource
from resolver.sources.wikidata import WikidataSource
from resolver.sources.wikipedia import WikipediaSource

__all__ = [
    "HTTPSourceAdapter",
    "PlayerFacts",
    "SourceAdapter",
    "SourceFacts",
    "TeamFacts",
    "FootballDataSource",
    "GroqSource",
    "StaticFactsTable",
    "StaticTableSource",
    "TheSportsDBSource",
    "WikidataSource",
    "WikipediaSource",
]

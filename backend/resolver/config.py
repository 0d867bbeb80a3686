"""
Resolver configuration.
Uses FA_RESOLVER_ prefix; credentials and endpoints live in shared.config.Settings.
"""
from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ResolverSettings(BaseSettings):
    """Timeouts, cache TTLs and batching limits for the reconciliation pipeline."""

    model_config = SettingsConfigDict(
        env_prefix="FA_RESOLVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Per-adapter timeouts (seconds). A timeout is treated as Absent.
    generative_timeout_s: float = Field(default=8.0, description="LLM completions are the slowest")
    encyclopedia_timeout_s: float = Field(default=5.0)
    licensed_timeout_s: float = Field(default=5.0)
    community_timeout_s: float = Field(default=5.0)
    knowledge_graph_timeout_s: float = Field(default=5.0)

    # Cache TTLs (seconds)
    resolution_ttl_s: float = Field(default=30 * 60, description="Top-level resolve() cache")
    generative_ttl_s: float = Field(default=30 * 60)
    encyclopedia_ttl_s: float = Field(default=7 * 24 * 3600)
    licensed_ttl_s: float = Field(default=24 * 3600)
    community_ttl_s: float = Field(default=24 * 3600)
    static_ttl_s: float = Field(default=30 * 24 * 3600)
    knowledge_graph_ttl_s: float = Field(default=7 * 24 * 3600)
    cache_sweep_interval_s: float = Field(default=300.0, description="0 disables the periodic sweep")

    # Roster enrichment (per-player encyclopedia summaries)
    enrich_roster: bool = Field(default=False, description="Fetch encyclopedia summaries for roster players")
    enrichment_chunk_size: int = Field(default=5)
    enrichment_chunk_delay_s: float = Field(default=0.3, description="Pause between chunks")
    enrichment_stagger_s: float = Field(default=0.05, description="Offset between task starts inside a chunk")

    # Optional sources / behaviour
    knowledge_graph_enabled: bool = Field(default=False, description="Wikidata coach cross-check")
    generative_fallback: bool = Field(
        default=True,
        description="Ask the generative model when the preferred sources yield nothing usable",
    )
    season: Optional[str] = Field(default=None, description="Override e.g. '2025/2026'; derived from the clock when unset")
    min_player_score: int = Field(default=50, description="Threshold for filter_valid_players")
    static_table_path: Optional[str] = Field(default=None, description="Alternate static facts JSON file")


def get_resolver_settings() -> ResolverSettings:
    """Load resolver settings."""
    return ResolverSettings()

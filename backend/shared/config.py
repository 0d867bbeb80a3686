"""
Central configuration for the FutbolAI resolver.
Uses pydantic-settings for env-based config with validation.
"""
from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Root settings: credentials, endpoints, observability."""

    model_config = SettingsConfigDict(
        env_prefix="FA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── General ──────────────────────────────────────────────
    environment: Environment = Environment.DEV
    debug: bool = False
    log_level: str = "INFO"
    instance_id: str = Field(default="", description="Process identifier bound to every log line")

    # ── Generative model (Groq, OpenAI-compatible) ───────────
    groq_api_key: str = ""
    groq_base_url: str = "https://api.groq.com/openai/v1"
    groq_model_large: str = Field(
        default="llama-3.3-70b-versatile",
        description="Model used for well-known clubs, countries and players",
    )
    groq_model_small: str = Field(
        default="llama-3.1-8b-instant",
        description="Model used for everything else",
    )

    # ── Encyclopedia ─────────────────────────────────────────
    wikipedia_base_url: str = "https://en.wikipedia.org/api/rest_v1"
    wikidata_base_url: str = "https://query.wikidata.org"
    user_agent: str = "FutbolAI/1.0 (football data resolver)"

    # ── Sports APIs ──────────────────────────────────────────
    football_data_api_key: str = ""
    football_data_base_url: str = "https://api.football-data.org/v4"
    thesportsdb_api_key: str = Field(default="3", description="Public test key works for search endpoints")
    thesportsdb_base_url: str = "https://www.thesportsdb.com/api/v1/json"

    # ── Observability ────────────────────────────────────────
    metrics_enabled: bool = True
    metrics_port: int = 9090


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton access to validated settings."""
    return Settings()

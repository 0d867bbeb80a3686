"""
Groq generative model source (OpenAI-compatible chat completions).

One JSON-mode completion per subject. The versioned system prompt is the wire
contract: it names the exact fields parsed below. Output is unverified, so the
reconciler ranks it under the licensed API and the encyclopedia.
"""
from __future__ import annotations

import json
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from shared.config import Settings
from shared.models.domain import Achievements
from shared.models.enums import SourceName, SubjectKind
from shared.utils.http_client import SourceHTTPClient
from shared.utils.logging import get_logger

from resolver.cache import CacheStore
from resolver.classifier import is_major_subject
from resolver.errors import AdapterUnavailable, ConfigurationError
from resolver.sources.base import (
    HTTPSourceAdapter,
    Now,
    PlayerFacts,
    SourceFacts,
    TeamFacts,
    canonical_position,
)

logger = get_logger(__name__)

PROMPT_VERSION = "2025.2"

SYSTEM_PROMPT = """You are a football data expert with verified {season} season knowledge.
ACCURACY IS CRITICAL. Return ONLY valid JSON (no markdown, no explanations) of this exact shape:

{{
  "teams": [{{
    "name": string,
    "type": "club" | "national",
    "country": string,
    "stadium": string | null,
    "currentCoach": string,
    "foundedYear": number | null,
    "majorAchievements": {{
      "worldCup": string[],
      "international": string[],
      "continental": string[],
      "domestic": string[]
    }}
  }}],
  "players": [{{
    "name": string,
    "currentTeam": string,
    "position": string,
    "age": number | null,
    "nationality": string,
    "careerGoals": number | null,
    "careerAssists": number | null,
    "internationalAppearances": number | null,
    "internationalGoals": number | null,
    "majorAchievements": string[],
    "careerSummary": string
  }}]
}}

Rules:
1. Rosters, coaches and clubs must reflect the {season} season. Use null when unsure; never guess.
2. Achievement strings read like "UEFA Champions League (15 titles): 1956, 1957, ...".
3. Club teams: worldCup is always empty; Club World Cup goes in international.
4. National teams: domestic and continental are always empty; World Cup wins go in worldCup,
   every other trophy in international.
5. Player queries return one player and an empty teams array.
6. internationalGoals never exceeds internationalAppearances.
(prompt version {version})"""

USER_PROMPT = 'Provide ACCURATE {season} season information for: "{query}"'


# ── Raw response types (the prompt's shape) ─────────────────────────────
class _Camel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class GenAchievements(_Camel):
    worldCup: list[str] = Field(default_factory=list)
    international: list[str] = Field(default_factory=list)
    continental: list[str] = Field(default_factory=list)
    domestic: list[str] = Field(default_factory=list)


class GenTeam(_Camel):
    name: Optional[str] = None
    type: Optional[str] = None
    country: Optional[str] = None
    stadium: Optional[str] = None
    currentCoach: Optional[str] = None
    foundedYear: Optional[int] = None
    majorAchievements: GenAchievements = Field(default_factory=GenAchievements)


class GenPlayer(_Camel):
    name: Optional[str] = None
    currentTeam: Optional[str] = None
    position: Optional[str] = None
    age: Optional[int] = None
    nationality: Optional[str] = None
    careerGoals: Optional[int] = None
    careerAssists: Optional[int] = None
    internationalAppearances: Optional[int] = None
    internationalGoals: Optional[int] = None
    majorAchievements: list[str] = Field(default_factory=list)
    careerSummary: Optional[str] = None


class GenResponse(_Camel):
    teams: list[GenTeam] = Field(default_factory=list)
    players: list[GenPlayer] = Field(default_factory=list)


def recover_json_object(text: str) -> Optional[dict[str, Any]]:
    """
    Pull the first balanced {...} out of text that is not pure JSON
    (markdown fences, leading prose). Returns None if nothing parses.
    """
    start = text.find("{")
    if start < 0:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                try:
                    value = json.loads(text[start : i + 1])
                except ValueError:
                    return None
                return value if isinstance(value, dict) else None
    return None


def parse_completion(content: str) -> GenResponse:
    """Parse model output, with one brace-matching recovery attempt."""
    try:
        data = json.loads(content)
    except ValueError:
        data = recover_json_object(content)
        if data is None:
            raise AdapterUnavailable(SourceName.GENERATIVE.value, "unparseable completion")
        logger.info("groq_json_recovered", chars=len(content))
    if not isinstance(data, dict):
        raise AdapterUnavailable(SourceName.GENERATIVE.value, "completion is not a JSON object")
    # A bare team or player object instead of the wrapper
    if "teams" not in data and "players" not in data:
        data = {"players": [data]} if "currentTeam" in data else {"teams": [data]}
    try:
        return GenResponse.model_validate(data)
    except ValidationError as exc:
        raise AdapterUnavailable(SourceName.GENERATIVE.value, f"schema mismatch: {exc.error_count()} errors") from exc


def _player_facts(p: GenPlayer) -> PlayerFacts:
    return PlayerFacts(
        name=p.name,
        current_team=p.currentTeam,
        position=canonical_position(p.position),
        age=p.age,
        nationality=p.nationality,
        career_goals=p.careerGoals,
        career_assists=p.careerAssists,
        international_appearances=p.internationalAppearances,
        international_goals=p.internationalGoals,
        achievements=list(p.majorAchievements),
        summary=p.careerSummary,
    )


class GroqSource(HTTPSourceAdapter):
    """LLM completions via Groq's OpenAI-compatible endpoint."""

    def __init__(
        self,
        settings: Settings,
        cache: CacheStore[SourceFacts],
        season: str,
        timeout_s: float = 8.0,
        now: Optional[Now] = None,
        http: Optional[SourceHTTPClient] = None,
    ) -> None:
        http = http or SourceHTTPClient(
            source_name=SourceName.GENERATIVE.value,
            base_url=settings.groq_base_url,
            headers={"Authorization": f"Bearer {settings.groq_api_key}"},
            timeout_s=timeout_s,
        )
        super().__init__(http, cache, now)
        self._settings = settings
        self._season = season
        if not settings.groq_api_key:
            self.disable("FA_GROQ_API_KEY not configured")

    @property
    def source_name(self) -> SourceName:
        return SourceName.GENERATIVE

    @property
    def season(self) -> str:
        return self._season

    def select_model(self, name: str) -> str:
        if is_major_subject(name):
            return self._settings.groq_model_large
        return self._settings.groq_model_small

    def build_request(self, name: str) -> dict[str, Any]:
        model = self.select_model(name)
        return {
            "model": model,
            "messages": [
                {
                    "role": "system",
                    "content": SYSTEM_PROMPT.format(season=self._season, version=PROMPT_VERSION),
                },
                {"role": "user", "content": USER_PROMPT.format(season=self._season, query=name)},
            ],
            "temperature": 0.1,
            "max_tokens": 4000 if model == self._settings.groq_model_large else 5000,
            "response_format": {"type": "json_object"},
        }

    async def _fetch(self, name: str, kind: SubjectKind) -> Optional[SourceFacts]:
        if not self._http.started:
            await self._http.start()
        try:
            resp = await self._http.post_json("/chat/completions", self.build_request(name))
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code in (401, 403):
                raise ConfigurationError(self.source_name.value, "API key rejected") from exc
            raise AdapterUnavailable(self.source_name.value, f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise AdapterUnavailable(self.source_name.value, type(exc).__name__) from exc

        try:
            content = resp.json()["choices"][0]["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise AdapterUnavailable(self.source_name.value, "unexpected completion envelope") from exc

        parsed = parse_completion(content)
        players = [_player_facts(p) for p in parsed.players if p.name]

        if kind == SubjectKind.PLAYER:
            return self._facts(player=players[0]) if players else None

        team = parsed.teams[0] if parsed.teams else None
        team_facts = None
        if team is not None:
            a = team.majorAchievements
            team_facts = TeamFacts(
                name=team.name,
                kind=team.type,
                country=team.country,
                stadium=team.stadium,
                coach=team.currentCoach,
                founded_year=team.foundedYear,
                achievements=Achievements(
                    world_cup=a.worldCup,
                    international=a.international,
                    continental=a.continental,
                    domestic=a.domestic,
                ),
            )
        return self._facts(team=team_facts, players=players)

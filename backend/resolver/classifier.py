"""
Query classification: decide the subject kind and which sources are worth asking.

Rules, first match wins:
  1. known club/country fragment or squad keyword -> team, licensed + encyclopedia first
  2. "First Last" shaped name or profile keyword -> player, encyclopedia first
  3. anything else -> complex query, generative model only
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from shared.models.enums import SourceName, SubjectKind, TeamKind

from resolver.text import fold

KNOWN_CLUBS: tuple[str, ...] = (
    "real madrid",
    "barcelona",
    "barca",
    "atletico madrid",
    "sevilla",
    "manchester city",
    "manchester united",
    "man city",
    "man utd",
    "liverpool",
    "arsenal",
    "chelsea",
    "tottenham",
    "newcastle",
    "aston villa",
    "bayern",
    "dortmund",
    "leverkusen",
    "psg",
    "paris saint-germain",
    "marseille",
    "juventus",
    "ac milan",
    "inter milan",
    "napoli",
    "roma",
    "benfica",
    "porto",
    "ajax",
    "celtic",
    "boca juniors",
    "river plate",
    "flamengo",
    "palmeiras",
)

KNOWN_COUNTRIES: tuple[str, ...] = (
    "argentina", "brazil", "uruguay", "colombia", "chile", "peru", "ecuador",
    "paraguay", "bolivia", "venezuela", "mexico", "usa", "united states", "canada",
    "france", "germany", "spain", "italy", "england", "portugal", "netherlands",
    "belgium", "croatia", "switzerland", "denmark", "sweden", "norway", "poland",
    "serbia", "wales", "scotland", "ireland", "finland", "austria", "hungary",
    "czech republic", "slovakia", "slovenia", "turkey", "greece", "ukraine",
    "morocco", "senegal", "nigeria", "ghana", "egypt", "cameroon", "tunisia",
    "algeria", "japan", "south korea", "australia", "saudi arabia", "iran", "qatar",
)

# Words that only appear in club names ("Obscure FC", "Leeds United").
CLUB_FRAGMENTS = (
    "fc", "cf", "afc", "sc", "ac", "cd", "club", "united", "city", "athletic",
    "sporting", "rovers", "wanderers", "hotspur", "national team",
)

TEAM_KEYWORDS = ("squad", "roster", "lineup", "line-up", "players")
PLAYER_KEYWORDS = ("stats", "profile", "career")

# Trailing words that describe the request rather than the team.
_TEAM_SUFFIX = re.compile(
    r"(?:\s+(?:national\s+(?:football\s+)?team|squad|team|players|roster|lineup|line-up))+$",
    re.IGNORECASE,
)
_PLAYER_SUFFIX = re.compile(r"\s+(?:stats|profile|career)$", re.IGNORECASE)
_TWO_TOKEN_NAME = re.compile(r"^[a-z][a-z'\-]*\s[a-z][a-z'\-]*$")

_NATIONAL_MARKERS = ("national team", "national football team", "seleccion", "selecao")


def _has_phrase(text: str, phrases: Iterable[str]) -> bool:
    return any(re.search(rf"(?<!\w){re.escape(p)}(?!\w)", text) for p in phrases)


@dataclass(frozen=True)
class Classification:
    kind: SubjectKind
    subject: str
    skip_generative: bool
    candidate_adapters: tuple[SourceName, ...]
    fallback_adapters: tuple[SourceName, ...] = field(default=())
    complex_query: bool = False

    def restrict_to(self, available: Iterable[SourceName]) -> "Classification":
        """Drop adapters that are disabled (e.g. missing credentials)."""
        allowed = set(available)
        return replace(
            self,
            candidate_adapters=tuple(a for a in self.candidate_adapters if a in allowed),
            fallback_adapters=tuple(a for a in self.fallback_adapters if a in allowed),
        )


def subject_name(query: str, kind: SubjectKind) -> str:
    """Strip request words ('squad', 'stats') so sources get the bare name."""
    name = " ".join(query.split())
    suffix = _TEAM_SUFFIX if kind == SubjectKind.TEAM else _PLAYER_SUFFIX
    return suffix.sub("", name).strip() or name


def classify(query: str) -> Classification:
    text = fold(query)

    if (
        _has_phrase(text, KNOWN_CLUBS)
        or _has_phrase(text, KNOWN_COUNTRIES)
        or _has_phrase(text, CLUB_FRAGMENTS)
        or _has_phrase(text, TEAM_KEYWORDS)
    ):
        return Classification(
            kind=SubjectKind.TEAM,
            subject=subject_name(query, SubjectKind.TEAM),
            skip_generative=True,
            candidate_adapters=(
                SourceName.LICENSED,
                SourceName.ENCYCLOPEDIA,
                SourceName.STATIC,
                SourceName.COMMUNITY,
            ),
            fallback_adapters=(SourceName.GENERATIVE,),
        )

    if _TWO_TOKEN_NAME.match(text) or _has_phrase(text, PLAYER_KEYWORDS):
        return Classification(
            kind=SubjectKind.PLAYER,
            subject=subject_name(query, SubjectKind.PLAYER),
            skip_generative=True,
            candidate_adapters=(SourceName.ENCYCLOPEDIA, SourceName.COMMUNITY),
            fallback_adapters=(SourceName.GENERATIVE,),
        )

    return Classification(
        kind=SubjectKind.TEAM,
        subject=" ".join(query.split()),
        skip_generative=False,
        candidate_adapters=(SourceName.GENERATIVE,),
        complex_query=True,
    )


def detect_team_kind(name: str, hint: Optional[str] = None) -> str:
    """National if a source says so, or the name is a country; club otherwise."""
    if hint:
        h = fold(hint)
        if h in (TeamKind.NATIONAL.value, "national_team", "national team") or "national" in h:
            return TeamKind.NATIONAL.value
        if h == TeamKind.CLUB.value:
            return TeamKind.CLUB.value
    text = fold(name)
    if any(m in text for m in _NATIONAL_MARKERS):
        return TeamKind.NATIONAL.value
    stripped = re.sub(r"\s+(?:national\s+)?(?:football\s+)?team$", "", text)
    if stripped in KNOWN_COUNTRIES:
        return TeamKind.NATIONAL.value
    return TeamKind.CLUB.value


def is_major_subject(name: str) -> bool:
    """Well-known clubs and countries get the larger generative model."""
    text = fold(name)
    return _has_phrase(text, KNOWN_CLUBS) or _has_phrase(text, KNOWN_COUNTRIES)

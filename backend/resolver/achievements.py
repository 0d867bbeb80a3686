"""
Achievement handling: keyword categorisation, category exclusivity, de-duplicated
union and title counting.
"""
from __future__ import annotations

import re
from typing import Iterable

from shared.models.domain import Achievements
from shared.models.enums import TeamKind

from resolver.text import fold

CATEGORIES = ("world_cup", "international", "continental", "domestic")

CONTINENTAL_KEYWORDS = (
    "champions league",
    "europa league",
    "conference league",
    "european cup",
    "uefa cup",
    "cup winners",
    "libertadores",
    "copa sudamericana",
    "recopa",
    "concacaf champions",
    "afc champions",
    "caf champions",
)
CLUB_INTERNATIONAL_KEYWORDS = (
    "club world cup",
    "intercontinental cup",
    "uefa super cup",
)
_PLACEHOLDER = re.compile(r"^(?:no\s|none\b|n/a\b|unknown\b)")

_TIMES_PREFIX = re.compile(r"^\s*(\d+)\s*[x×]\b", re.IGNORECASE)
_TITLES = re.compile(r"\((\d+)\s+titles?\)", re.IGNORECASE)
_WINS = re.compile(r"\b(\d+)\s+(?:wins|titles|times)\b", re.IGNORECASE)
_YEAR = re.compile(r"\b(?:18|19|20)\d{2}\b")


def _is_placeholder(entry: str) -> bool:
    return bool(_PLACEHOLDER.match(fold(entry)))


def categorize(entries: Iterable[str], kind: str) -> Achievements:
    """Sort a flat list of honours into the four categories for a team kind."""
    result = Achievements()
    national = kind == TeamKind.NATIONAL.value
    for entry in entries:
        entry = (entry or "").strip()
        if not entry or _is_placeholder(entry):
            continue
        key = fold(entry)
        if national:
            if "world cup" in key and "club" not in key:
                result.world_cup.append(entry)
            else:
                result.international.append(entry)
            continue
        if any(k in key for k in CLUB_INTERNATIONAL_KEYWORDS):
            result.international.append(entry)
        elif any(k in key for k in CONTINENTAL_KEYWORDS):
            result.continental.append(entry)
        else:
            result.domestic.append(entry)
    return result


def dedupe(entries: Iterable[str]) -> list[str]:
    """Keep first occurrence; compare by folded text."""
    seen: set[str] = set()
    out: list[str] = []
    for entry in entries:
        key = fold(entry)
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(entry.strip())
    return out


def union(parts: Iterable[Achievements]) -> Achievements:
    """Union per category, earlier parts first, duplicates dropped."""
    merged: dict[str, list[str]] = {c: [] for c in CATEGORIES}
    for part in parts:
        for category in CATEGORIES:
            merged[category].extend(getattr(part, category))
    return Achievements(**{c: dedupe(v) for c, v in merged.items()})


def enforce_exclusivity(achievements: Achievements, kind: str) -> Achievements:
    """
    National teams never carry domestic (or continental club) honours; clubs never
    carry World Cup honours. Misfiled entries move to `international`.
    """
    if kind == TeamKind.NATIONAL.value:
        return Achievements(
            world_cup=dedupe(achievements.world_cup),
            international=dedupe(
                [*achievements.international, *achievements.continental, *achievements.domestic]
            ),
            continental=[],
            domestic=[],
        )
    return Achievements(
        world_cup=[],
        international=dedupe([*achievements.world_cup, *achievements.international]),
        continental=dedupe(achievements.continental),
        domestic=dedupe(achievements.domestic),
    )


def count_titles(entry: str) -> int:
    """
    Number of titles an achievement string represents.

    "5x Ballon d'Or" -> 5, "La Liga (36 titles)" -> 36, "FA Cup: 2006, 2008" -> 2,
    "Copa del Rey 19 wins" -> 19, a bare trophy name -> 1.
    """
    if not entry or _is_placeholder(entry):
        return 0
    for pattern in (_TIMES_PREFIX, _TITLES, _WINS):
        match = pattern.search(entry)
        if match:
            return int(match.group(1))
    years = _YEAR.findall(entry)
    if years:
        return len(years)
    return 1


def count_by_category(achievements: Achievements) -> dict[str, int]:
    return {
        category: sum(count_titles(e) for e in getattr(achievements, category))
        for category in CATEGORIES
    }

"""
Small text utilities: diacritic folding, comparison keys and coach extraction.
"""
from __future__ import annotations

import re
import unicodedata
from typing import Optional

# Capitalised words incl. Latin-1 accented letters, 2-4 words long.
_NAME = r"([A-ZÀ-Þ][a-zß-ÿ]+(?:[\s-]+[A-ZÀ-Þ][a-zß-ÿ]+){1,3})"

# Ordered most to least specific; the first pattern that matches wins.
COACH_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p)
    for p in (
        r"(?i:current\s+(?:head\s+)?coach\s+is)\s+" + _NAME,
        r"(?i:manager\s+is)\s+" + _NAME,
        r"(?i:managed\s+by)\s+" + _NAME,
        r"(?i:head\s+coach)\s+" + _NAME,
        r"(?i:manager)\s+" + _NAME,
        r"(?i:coach)[^.]*?\s" + _NAME,
    )
)

_PLACEHOLDER_NAMES = {"unknown", "n/a", "none", "tbd", "not available"}


def strip_diacritics(text: str) -> str:
    """'Vinícius Júnior' -> 'Vinicius Junior'."""
    decomposed = unicodedata.normalize("NFKD", text)
    folded = "".join(c for c in decomposed if not unicodedata.combining(c))
    # Letters NFKD does not decompose
    return folded.translate(str.maketrans({"ø": "o", "Ø": "O", "ß": "ss", "đ": "d", "ł": "l", "Ł": "L"}))


def fold(text: str) -> str:
    """Comparison key: no diacritics, lower-case, single spaces."""
    return " ".join(strip_diacritics(text or "").casefold().split())


def is_placeholder(value: Optional[str]) -> bool:
    return value is None or fold(value) in _PLACEHOLDER_NAMES or not value.strip()


def extract_coach(text: Optional[str]) -> Optional[str]:
    """
    Best-effort coach name from encyclopedia prose.

    Tries COACH_PATTERNS in order and returns the first captured name with
    trailing punctuation removed, or None. Misses are expected; prose varies.
    """
    if not text:
        return None
    for pattern in COACH_PATTERNS:
        match = pattern.search(text)
        if match:
            name = match.group(1).strip().rstrip(".,;:")
            if name:
                return name
    return None

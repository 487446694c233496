"""Split label text into individual ingredient names."""

from __future__ import annotations

import re

MAX_INGREDIENTS = 20

# Tried in order; the first anchor with a non-empty capture wins
_ANCHOR_PATTERNS = [
    re.compile(r"ingredients[:\s]*(.*?)(?:\.|$|nutritional|contains|allergen)", re.I),
    re.compile(r"contains[:\s]*(.*?)(?:\.|$|nutritional|allergen)", re.I),
]

_DELIMITERS = re.compile(r"[,;]")


def ingredient_section(text: str) -> str:
    """Return the part of the label introduced by an anchor phrase.

    Falls back to the whole text when no anchor is found.
    """
    for pattern in _ANCHOR_PATTERNS:
        m = pattern.search(text)
        if m and m.group(1):
            return m.group(1)
    return text


def split_ingredients(text: str, limit: int = MAX_INGREDIENTS) -> list[str]:
    """Segment label text into at most ``limit`` unique ingredient tokens.

    Tokens of two characters or fewer are treated as OCR noise.
    """
    if not text:
        return []
    tokens: list[str] = []
    seen: set[str] = set()
    for part in _DELIMITERS.split(ingredient_section(text)):
        token = part.strip()
        if len(token) <= 2 or token.lower() in seen:
            continue
        seen.add(token.lower())
        tokens.append(token)
        if len(tokens) >= limit:
            break
    return tokens

"""Ingredient risk database loader and classifier."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Iterable

from ..models import RISK_ORDER, IngredientRecord, RiskCategories, RiskCategory

logger = logging.getLogger(__name__)

DEFAULT_DATA_PATH = Path(__file__).parent / "data" / "ingredients.json"

# Evaluated in order; first match wins
_HIGH_CONCERN_PATTERNS = [
    re.compile(r"trans\s*fat"),
    re.compile(r"partially\s*hydrogenated"),
    re.compile(r"hydrogenated.*oil"),
    re.compile(r"\be\s?102\b|tartrazine"),
    re.compile(r"\be\s?110\b|sunset yellow"),
    re.compile(r"\be\s?122\b|carmoisine"),
    re.compile(r"\be\s?124\b|ponceau"),
    re.compile(r"\be\s?129\b|allura red"),
    re.compile(r"\be\s?211\b|sodium benzoate"),
    re.compile(r"\be\s?223\b|sodium metabisulfite"),
    re.compile(r"\be\s?320\b|\bbha\b"),
    re.compile(r"\be\s?321\b|\bbht\b"),
    re.compile(r"aspartame"),
    re.compile(r"sodium nitrite"),
    re.compile(r"sodium nitrate"),
]

_MODERATE_PATTERNS = [
    re.compile(r"palm\s*oil"),
    re.compile(r"\bmsg\b|monosodium glutamate"),
    re.compile(r"high fructose corn syrup"),
    re.compile(r"corn syrup"),
    re.compile(r"artificial\s*(colou?r|flavou?r|preservative)"),
    re.compile(r"\be\s?\d{3,4}[a-z]?\b"),
    re.compile(r"sodium"),
    re.compile(r"potassium sorbate"),
    re.compile(r"citric acid"),
    re.compile(r"natural flavou?ring"),
]

_FALLBACK_TEXT: dict[RiskCategory, tuple[str, str | None]] = {
    RiskCategory.HIGH_CONCERN: (
        "This ingredient may pose significant health risks and should be "
        "consumed with caution.",
        "Consider avoiding products with this ingredient or consuming them rarely.",
    ),
    RiskCategory.MODERATE: (
        "This ingredient may have some health concerns when consumed regularly.",
        "Consume in moderation as part of a balanced diet.",
    ),
    RiskCategory.SAFE: (
        "This appears to be a generally safe ingredient based on common food "
        "safety guidelines.",
        None,
    ),
}


def normalize_name(name: str) -> str:
    """Lowercase, drop bracketed content and punctuation, collapse spaces."""
    s = name.lower().strip()
    s = re.sub(r"\([^)]*\)", "", s)
    s = re.sub(r"\[[^\]]*\]", "", s)
    s = re.sub(r"[^\w\s]", " ", s)
    s = re.sub(r"\s+", " ", s)
    return s.strip()


def match_pattern(normalized: str) -> RiskCategory:
    """Classify a normalized name by keyword patterns alone."""
    for pattern in _HIGH_CONCERN_PATTERNS:
        if pattern.search(normalized):
            return RiskCategory.HIGH_CONCERN
    for pattern in _MODERATE_PATTERNS:
        if pattern.search(normalized):
            return RiskCategory.MODERATE
    return RiskCategory.SAFE


class IngredientDatabase:
    """Static ingredient knowledge base.

    Usage:
        db = IngredientDatabase()
        db.classify("Partially Hydrogenated Oil")  # RiskCategory.HIGH_CONCERN
        db.describe("palm oil")  # IngredientRecord or None

    A missing or unreadable dataset leaves the table empty; classification
    still works through the keyword patterns.
    """

    def __init__(self, data_path: str | Path | None = None) -> None:
        self._data_path = Path(data_path) if data_path else DEFAULT_DATA_PATH
        self._records: dict[str, IngredientRecord] = {}
        self._load()

    def _load(self) -> None:
        try:
            with open(self._data_path, encoding="utf-8") as f:
                raw = json.load(f)
            entries = raw["ingredients"]
            if not isinstance(entries, dict):
                raise TypeError("'ingredients' must be an object")
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(
                "Failed to load ingredient database %s: %s", self._data_path, e
            )
            return

        for key, entry in entries.items():
            if not isinstance(entry, dict):
                continue
            normalized = normalize_name(key)
            try:
                category = RiskCategory(entry.get("category", "safe"))
            except ValueError:
                category = RiskCategory.SAFE
            self._records[normalized] = IngredientRecord(
                key=normalized,
                name=entry.get("displayName") or key,
                category=category,
                description=entry.get(
                    "description", "No additional information available"
                ),
                warning=entry.get("warning") or None,
                alternatives=tuple(entry.get("alternatives") or ()),
            )
        logger.info("Ingredient database loaded: %d ingredients", len(self._records))

    def __len__(self) -> int:
        return len(self._records)

    def classify(self, name: str) -> RiskCategory:
        """Return the risk category for an ingredient name. Never raises."""
        if not isinstance(name, str) or not name.strip():
            return RiskCategory.SAFE
        normalized = normalize_name(name)
        record = self._records.get(normalized)
        if record is not None:
            return record.category
        return match_pattern(normalized)

    def describe(self, name: str) -> IngredientRecord | None:
        """Return the stored record for an ingredient, if any."""
        if not isinstance(name, str):
            return None
        return self._records.get(normalize_name(name))

    def info(self, name: str) -> IngredientRecord:
        """Like :meth:`describe`, but synthesizes a record for unknown names."""
        record = self.describe(name)
        if record is not None:
            return record
        normalized = normalize_name(name) if isinstance(name, str) else ""
        category = match_pattern(normalized)
        description, warning = _FALLBACK_TEXT[category]
        return IngredientRecord(
            key=normalized,
            name=name if isinstance(name, str) else "",
            category=category,
            description=description,
            warning=warning,
        )

    def categorize(self, names: Iterable[str]) -> RiskCategories:
        """Classify names into a disjoint partition, dropping duplicates."""
        buckets: dict[RiskCategory, list[str]] = {c: [] for c in RiskCategory}
        seen: set[str] = set()
        for name in names:
            if not isinstance(name, str) or not name.strip():
                continue
            name = name.strip()
            if name.lower() in seen:
                continue
            seen.add(name.lower())
            buckets[self.classify(name)].append(name)
        return RiskCategories(
            safe=tuple(buckets[RiskCategory.SAFE]),
            moderate=tuple(buckets[RiskCategory.MODERATE]),
            high_concern=tuple(buckets[RiskCategory.HIGH_CONCERN]),
        )

    def search(self, query: str, limit: int = 10) -> list[IngredientRecord]:
        """Search records by normalized substring, highest risk first."""
        if not query or len(query) < 2:
            return []
        normalized = normalize_name(query)
        results: list[IngredientRecord] = []
        for key, record in self._records.items():
            if normalized in key:
                results.append(record)
                if len(results) >= limit:
                    break
        return sorted(results, key=lambda r: RISK_ORDER.index(r.category))

    def stats(self) -> dict[str, int]:
        counts = {c.value: 0 for c in RiskCategory}
        for record in self._records.values():
            counts[record.category.value] += 1
        return {"total": len(self._records), **counts}

"""Deterministic offline ingredient scoring."""

from __future__ import annotations

import logging
from typing import Iterable

from .ingredients import IngredientDatabase, split_ingredients
from .models import AnalysisReport, IngredientDetail, RiskCategories

logger = logging.getLogger(__name__)

GENERIC_WARNING = (
    "Contains ingredients that may pose health risks when consumed regularly"
)


def clamp_score(value: int) -> int:
    return max(1, min(10, value))


def compute_score(categories: RiskCategories) -> int:
    """-2 per high-concern ingredient, -1 per moderate one, from 10."""
    return clamp_score(
        10 - 2 * len(categories.high_concern) - len(categories.moderate)
    )


def advice_for_score(score: int) -> str:
    if score >= 8:
        return "This product appears to be a healthy choice with mostly natural ingredients."
    if score >= 6:
        return "Consume in moderation. Some ingredients may pose health concerns."
    return "Consider avoiding this product or finding healthier alternatives."


def ingredient_details(
    db: IngredientDatabase, names: Iterable[str]
) -> dict[str, IngredientDetail]:
    details: dict[str, IngredientDetail] = {}
    for name in names:
        info = db.info(name)
        details[name] = IngredientDetail(
            risk=info.category.value, description=info.description
        )
    return details


class OfflineRiskScorer:
    """Rule-based substitute for the AI analysis. Never raises."""

    def __init__(self, db: IngredientDatabase) -> None:
        self._db = db

    def score(self, text: str, *, reason: str | None = None) -> AnalysisReport:
        ingredients = split_ingredients(text or "")
        categories = self._db.categorize(ingredients)
        health_score = compute_score(categories)
        logger.debug(
            "Offline analysis: %d ingredients, score %d", len(ingredients), health_score
        )
        return AnalysisReport(
            health_score=health_score,
            total_ingredients=len(categories.all_names()),
            categories=categories,
            advice=advice_for_score(health_score),
            warnings=tuple(self._warnings(categories.high_concern)),
            details=ingredient_details(self._db, categories.concerns),
            source="offline",
            fallback_reason=reason,
        )

    def _warnings(self, high_concern: Iterable[str]) -> list[str]:
        names = list(high_concern)
        warnings: list[str] = []
        for name in names:
            record = self._db.describe(name)
            if record and record.warning and record.warning not in warnings:
                warnings.append(record.warning)
        if not warnings and names:
            warnings.append(GENERIC_WARNING)
        return warnings

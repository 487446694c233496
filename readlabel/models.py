"""Data models shared across the analysis pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class RiskCategory(str, Enum):
    SAFE = "safe"
    MODERATE = "moderate"
    HIGH_CONCERN = "highConcern"


# Highest risk first
RISK_ORDER = (RiskCategory.HIGH_CONCERN, RiskCategory.MODERATE, RiskCategory.SAFE)


@dataclass(frozen=True)
class IngredientRecord:
    """One entry of the ingredient risk dataset."""

    key: str  # normalized name
    name: str  # display name
    category: RiskCategory
    description: str
    warning: str | None = None
    alternatives: tuple[str, ...] = ()


@dataclass(frozen=True)
class RiskCategories:
    """Disjoint partition of scanned ingredient names by risk."""

    safe: tuple[str, ...] = ()
    moderate: tuple[str, ...] = ()
    high_concern: tuple[str, ...] = ()

    def get(self, category: RiskCategory) -> tuple[str, ...]:
        match category:
            case RiskCategory.SAFE:
                return self.safe
            case RiskCategory.MODERATE:
                return self.moderate
            case RiskCategory.HIGH_CONCERN:
                return self.high_concern

    @property
    def concerns(self) -> tuple[str, ...]:
        """High-concern names followed by moderate names."""
        return self.high_concern + self.moderate

    def all_names(self) -> list[str]:
        return [*self.safe, *self.moderate, *self.high_concern]

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "safe": list(self.safe),
            "moderate": list(self.moderate),
            "highConcern": list(self.high_concern),
        }


@dataclass(frozen=True)
class IngredientDetail:
    risk: str
    description: str


@dataclass(frozen=True)
class AnalysisReport:
    """Health-risk report for one scanned label.

    ``source`` is ``"ai"`` or ``"offline"``; ``fallback_reason`` says why the
    offline scorer produced the report and is ``None`` for AI results.
    """

    health_score: int
    total_ingredients: int
    categories: RiskCategories
    advice: str
    warnings: tuple[str, ...] = ()
    details: Mapping[str, IngredientDetail] = field(default_factory=dict)
    source: str = "offline"
    fallback_reason: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthScore": self.health_score,
            "totalIngredients": self.total_ingredients,
            "categories": self.categories.to_dict(),
            "advice": self.advice,
            "warnings": list(self.warnings),
            "details": {
                name: {"risk": d.risk, "description": d.description}
                for name, d in self.details.items()
            },
            "source": self.source,
        }

    def display(self) -> str:
        """Format the report for terminal display."""
        lines: list[str] = []
        lines.append(f"Health score: {self.health_score}/10  ({self.source})")
        lines.append(f"Ingredients identified: {self.total_ingredients}")
        lines.append("")
        for label, names in (
            ("High concern", self.categories.high_concern),
            ("Moderate", self.categories.moderate),
            ("Safe", self.categories.safe),
        ):
            if names:
                lines.append(f"{label}: {', '.join(names)}")
        lines.append("")
        lines.append(f"Advice: {self.advice}")
        if self.warnings:
            lines.append("")
            lines.append("Warnings:")
            for warning in self.warnings:
                lines.append(f"  - {warning}")
        if self.details:
            lines.append("")
            lines.append("Details:")
            for name, detail in self.details.items():
                lines.append(f"  {name} [{detail.risk}]: {detail.description}")
        return "\n".join(lines)


@dataclass(frozen=True)
class ExtractedText:
    """OCR output for a single scan."""

    raw: str
    clean: str

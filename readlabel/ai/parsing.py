"""Defensive parsing of AI analysis replies.

The reply is untrusted text. :func:`parse_structured` accepts an embedded JSON
object and validates every field; :func:`parse_heuristic` scrapes a score,
advice and warnings from free-form text and classifies the ingredients itself.
Both always produce reports with a score in 1..10 and disjoint categories.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any

from ..ingredients import IngredientDatabase, split_ingredients
from ..models import (
    RISK_ORDER,
    AnalysisReport,
    IngredientDetail,
    RiskCategories,
    RiskCategory,
)
from ..scoring import advice_for_score, clamp_score, ingredient_details

logger = logging.getLogger(__name__)

DEFAULT_SCORE = 5
DEFAULT_ADVICE = "No specific advice available"
DEFAULT_DESCRIPTION = "No additional information available"

_JSON_OBJECT = re.compile(r"\{.*\}", re.S)
_LEADING_INT = re.compile(r"\s*([-+]?\d+)")
_MAX_DIGITS = 9

_SCORE = re.compile(r"(?:health\s*score|score)[:\s]*(\d+(?:\.\d+)?)", re.I)
_ADVICE_PATTERNS = [
    re.compile(r"\badvice\b[:\s]*([^.!?]*[.!?])", re.I),
    re.compile(r"\brecommend(?:s|ed|ation)?\b[:\s]*([^.!?]*[.!?])", re.I),
    re.compile(r"\bconsumption\b[:\s]*([^.!?]*[.!?])", re.I),
]
_WARNING_PATTERNS = [
    re.compile(r"\bwarnings?\b[:\s]*([^.!?]*[.!?])", re.I),
    re.compile(r"\bcaution\b[:\s]*([^.!?]*[.!?])", re.I),
    re.compile(r"\bavoid\b[:\s]*([^.!?]*[.!?])", re.I),
]


def parse_response(
    response_text: str, original_text: str, db: IngredientDatabase
) -> AnalysisReport:
    """Parse an AI reply, preferring the structured payload."""
    report = parse_structured(response_text)
    if report is not None:
        return report
    logger.info("AI reply has no valid JSON payload, parsing it as text")
    return parse_heuristic(response_text, original_text, db)


def parse_structured(response_text: str) -> AnalysisReport | None:
    """Return a validated report from the JSON object embedded in the reply.

    Returns None when there is no object or it does not parse.
    """
    m = _JSON_OBJECT.search(response_text or "")
    if not m:
        return None
    try:
        payload = json.loads(m.group(0))
    except ValueError as e:
        logger.debug("Embedded JSON did not parse: %s", e)
        return None
    if not isinstance(payload, dict):
        return None
    return validate_payload(payload)


def validate_payload(payload: dict[str, Any]) -> AnalysisReport:
    """Clamp and sanitize every field of a decoded AI payload."""
    categories = _validate_categories(payload.get("categories"))

    total = _to_int(payload.get("totalIngredients"), default=0)
    if total <= 0:
        total = len(categories.all_names())

    advice = payload.get("advice")
    if not isinstance(advice, str) or not advice.strip():
        advice = DEFAULT_ADVICE

    return AnalysisReport(
        health_score=clamp_score(_to_int(payload.get("healthScore"), DEFAULT_SCORE)),
        total_ingredients=total,
        categories=categories,
        advice=advice.strip(),
        warnings=tuple(_string_list(payload.get("warnings"))),
        details=_validate_details(payload.get("details")),
        source="ai",
    )


def parse_heuristic(
    response_text: str, original_text: str, db: IngredientDatabase
) -> AnalysisReport:
    """Build a report from free-form reply text plus the original label text."""
    response_text = response_text or ""
    score = extract_score(response_text)

    ingredients = split_ingredients(original_text or "")
    categories = db.categorize(ingredients)

    return AnalysisReport(
        health_score=score,
        total_ingredients=len(categories.all_names()),
        categories=categories,
        advice=extract_advice(response_text) or advice_for_score(score),
        warnings=tuple(extract_warnings(response_text)),
        details=ingredient_details(db, categories.concerns),
        source="ai",
    )


def extract_score(text: str) -> int:
    """Return the first "score" figure in the text, rounded and clamped."""
    m = _SCORE.search(text)
    if not m or len(m.group(1).split(".")[0]) > _MAX_DIGITS:
        return DEFAULT_SCORE
    value = float(m.group(1))
    if not math.isfinite(value):
        return DEFAULT_SCORE
    return clamp_score(int(value + 0.5))


def extract_advice(text: str) -> str | None:
    for pattern in _ADVICE_PATTERNS:
        m = pattern.search(text)
        if m and m.group(1).strip(" .!?"):
            return m.group(1).strip()
    return None


def extract_warnings(text: str) -> list[str]:
    warnings: list[str] = []
    for pattern in _WARNING_PATTERNS:
        for m in pattern.finditer(text):
            warning = m.group(1).strip()
            if warning.strip(" .!?") and warning not in warnings:
                warnings.append(warning)
    return warnings


def _to_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    if isinstance(value, str):
        m = _LEADING_INT.match(value)
        if m and len(m.group(1).lstrip("+-")) <= _MAX_DIGITS:
            return int(m.group(1))
    return default


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v.strip() for v in value if isinstance(v, str) and v.strip()]


def _validate_categories(value: Any) -> RiskCategories:
    if not isinstance(value, dict):
        return RiskCategories()

    # A name listed in several categories keeps the highest risk
    buckets: dict[RiskCategory, list[str]] = {c: [] for c in RiskCategory}
    seen: set[str] = set()
    for category in RISK_ORDER:
        for name in _string_list(value.get(category.value)):
            if name.lower() in seen:
                continue
            seen.add(name.lower())
            buckets[category].append(name)

    return RiskCategories(
        safe=tuple(buckets[RiskCategory.SAFE]),
        moderate=tuple(buckets[RiskCategory.MODERATE]),
        high_concern=tuple(buckets[RiskCategory.HIGH_CONCERN]),
    )


def _validate_details(value: Any) -> dict[str, IngredientDetail]:
    if not isinstance(value, dict):
        return {}
    details: dict[str, IngredientDetail] = {}
    for name, entry in value.items():
        if not isinstance(name, str) or not name.strip() or not isinstance(entry, dict):
            continue
        risk = entry.get("risk")
        description = entry.get("description")
        details[name.strip()] = IngredientDetail(
            risk=risk if isinstance(risk, str) and risk else "moderate",
            description=(
                description
                if isinstance(description, str) and description
                else DEFAULT_DESCRIPTION
            ),
        )
    return details

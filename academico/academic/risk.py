from __future__ import annotations

import math
from typing import Any, Tuple

from academico.services.shared.errors import ValidationError

TIER_LOW = "Bajo"
TIER_MEDIUM = "Medio"
TIER_HIGH = "Alto"
TIER_CRITICAL = "Crítico"

RISK_TIERS: Tuple[str, ...] = (TIER_LOW, TIER_MEDIUM, TIER_HIGH, TIER_CRITICAL)

# Evaluado de arriba hacia abajo; límite inferior cerrado (>=).
RISK_THRESHOLDS: Tuple[Tuple[float, str], ...] = (
    (7.0, TIER_CRITICAL),
    (5.0, TIER_HIGH),
    (3.0, TIER_MEDIUM),
)

RISK_SCORE_MIN = 0.0
RISK_SCORE_MAX = 10.0


def classify_risk(score: float) -> str:
    s = float(score)
    for lower, tier in RISK_THRESHOLDS:
        if s >= lower:
            return tier
    return TIER_LOW


def tier_rank(tier: str) -> int:
    return RISK_TIERS.index(tier)


def validate_risk_score(raw: Any) -> float:
    if isinstance(raw, bool) or raw is None:
        raise ValidationError("El puntaje de riesgo debe ser numérico.")
    try:
        score = float(raw)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("El puntaje de riesgo debe ser numérico.") from None
    if not math.isfinite(score) or not (RISK_SCORE_MIN <= score <= RISK_SCORE_MAX):
        raise ValidationError(
            f"El puntaje de riesgo debe estar entre {RISK_SCORE_MIN:g} y {RISK_SCORE_MAX:g}."
        )
    return score

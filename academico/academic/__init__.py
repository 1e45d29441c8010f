"""Academic domain modules: curricula, weighted average and risk tiers."""

from .curricula import (
    CurriculumPlan,
    CurriculumRegistry,
    get_curriculum_registry,
    load_curricula,
)
from .grade_calculator import (
    WITHDRAWN,
    compute,
    compute_weighted_average,
    normalize_grades,
)
from .risk import RISK_TIERS, classify_risk, tier_rank

__all__ = [
    "CurriculumPlan",
    "CurriculumRegistry",
    "get_curriculum_registry",
    "load_curricula",
    "WITHDRAWN",
    "compute",
    "compute_weighted_average",
    "normalize_grades",
    "RISK_TIERS",
    "classify_risk",
    "tier_rank",
]

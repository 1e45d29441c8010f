from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from academico.services.shared.errors import InvalidGrade, ValidationError
from academico.services.shared.settings import get_engine_settings

from .curricula import CurriculumPlan, CurriculumRegistry, get_curriculum_registry

logger = logging.getLogger(__name__)

WITHDRAWN = -1

COERCION_MISSING = "missing"
COERCION_NON_NUMERIC = "non_numeric"

_MISSING = object()
_OVERFLOW = object()


@dataclass(frozen=True)
class GradeCoercion:
    course: str
    raw: Any
    reason: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "curso": self.course,
            "valor": None if self.raw is None else str(self.raw),
            "motivo": self.reason,
        }


@dataclass(frozen=True)
class NormalizedGrades:
    values: Mapping[str, float]
    coercions: Tuple[GradeCoercion, ...] = ()
    ignored_keys: Tuple[str, ...] = ()

    @property
    def withdrawn(self) -> Tuple[str, ...]:
        return tuple(k for k, v in self.values.items() if v == WITHDRAWN)


@dataclass(frozen=True)
class WeightedAverage:
    curriculum: str
    average: float
    credits_used: int
    credits_possible: int
    grades: Mapping[str, float]
    withdrawn: Tuple[str, ...] = ()
    coercions: Tuple[GradeCoercion, ...] = ()
    ignored_keys: Tuple[str, ...] = ()

    @property
    def all_withdrawn(self) -> bool:
        return self.credits_used == 0

    def as_payload(self) -> Dict[str, Any]:
        return {
            "curriculum": self.curriculum,
            "ponderado": self.average,
            "creditosTotales": self.credits_used,
            "creditosPosibles": self.credits_possible,
            "notas": dict(self.grades),
            "retirados": list(self.withdrawn),
            "coerciones": [c.as_dict() for c in self.coercions],
            "ignorados": list(self.ignored_keys),
        }


def _to_number(raw: Any) -> Any:
    """
    Devuelve float, _MISSING (vacío), _OVERFLOW (entero fuera del rango de float)
    o None (no numérico).
    """
    if raw is None:
        return _MISSING
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float, Decimal)):
        try:
            value = float(raw)
        except OverflowError:
            return _OVERFLOW
    elif isinstance(raw, str):
        text = raw.strip()
        if not text:
            return _MISSING
        try:
            value = float(text.replace(",", "."))
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(value):
        return None
    return value


def normalize_grades(
    plan: CurriculumPlan,
    raw: Mapping[str, Any],
    grade_max: Optional[float] = None,
) -> NormalizedGrades:
    if not isinstance(raw, Mapping):
        raise ValidationError("Las notas deben enviarse como objeto {curso: nota}.")

    limit = float(grade_max) if grade_max is not None else get_engine_settings().grade_max
    values: Dict[str, float] = {}
    coercions: List[GradeCoercion] = []

    for key in plan.course_keys:
        original = raw.get(key)
        number = _to_number(original)

        if number is _MISSING:
            coercions.append(GradeCoercion(course=key, raw=original, reason=COERCION_MISSING))
            number = 0.0
        elif number is None:
            coercions.append(GradeCoercion(course=key, raw=original, reason=COERCION_NON_NUMERIC))
            number = 0.0
        elif number is _OVERFLOW:
            raise InvalidGrade(course=key, value=original, grade_max=limit)
        elif number == WITHDRAWN:
            values[key] = float(WITHDRAWN)
            continue
        elif number < 0 or number > limit:
            raise InvalidGrade(course=key, value=original, grade_max=limit)

        values[key] = number

    ignored = tuple(sorted(str(k) for k in raw.keys() if k not in plan.weights))

    for c in coercions:
        logger.warning(
            "Nota normalizada a 0 curriculum=%s curso=%s motivo=%s valor=%r",
            plan.id,
            c.course,
            c.reason,
            c.raw,
        )
    if ignored:
        logger.info("Cursos ignorados (no pertenecen a la malla) curriculum=%s keys=%s", plan.id, ignored)

    return NormalizedGrades(values=MappingProxyType(values), coercions=tuple(coercions), ignored_keys=ignored)


def round_average(value: Decimal, decimals: int) -> float:
    quantum = Decimal(1).scaleb(-int(decimals))
    return float(value.quantize(quantum, rounding=ROUND_HALF_UP))


def compute_weighted_average(
    plan: CurriculumPlan,
    raw: Mapping[str, Any],
    decimals: Optional[int] = None,
    grade_max: Optional[float] = None,
) -> WeightedAverage:
    places = int(decimals) if decimals is not None else get_engine_settings().average_decimals
    normalized = normalize_grades(plan, raw, grade_max=grade_max)

    total = Decimal(0)
    credits = 0
    for key, weight in plan.weights.items():
        grade = normalized.values[key]
        if grade == WITHDRAWN:
            continue
        total += Decimal(str(grade)) * weight
        credits += weight

    # todos los cursos retirados: resultado definido, no error
    average = round_average(total / credits, places) if credits else 0.0

    return WeightedAverage(
        curriculum=plan.id,
        average=average,
        credits_used=credits,
        credits_possible=plan.total_credits,
        grades=normalized.values,
        withdrawn=normalized.withdrawn,
        coercions=normalized.coercions,
        ignored_keys=normalized.ignored_keys,
    )


def compute(
    curriculum_id: str,
    grades: Mapping[str, Any],
    registry: Optional[CurriculumRegistry] = None,
    decimals: Optional[int] = None,
) -> WeightedAverage:
    reg = registry or get_curriculum_registry()
    plan = reg.get(curriculum_id)
    return compute_weighted_average(plan, grades, decimals=decimals)


def legacy_positional_grades(plan: CurriculumPlan, payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Formulario antiguo: n1..nN siguen el orden de cursos de la malla."""
    out: Dict[str, Any] = {}
    for idx, key in enumerate(plan.course_keys, start=1):
        field_name = f"n{idx}"
        if field_name in payload:
            out[key] = payload[field_name]
    return out


def has_legacy_fields(payload: Mapping[str, Any]) -> bool:
    return any(str(k).startswith("n") and str(k)[1:].isdigit() for k in payload.keys())

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from academico.academic.curricula import CurriculumRegistry, get_curriculum_registry
from academico.academic.grade_calculator import compute_weighted_average
from academico.services.shared.dto import CurriculumPayload, RankingRow
from academico.services.shared.errors import ValidationError
from academico.services.shared.settings import get_engine_settings
from academico.services.shared.utils import fmt_dt
from academico.services.stores import RankingStore

logger = logging.getLogger(__name__)

GENERAL_RANKING = "general"
NAME_MAX_LEN = 120


def _clean_name(name: Any) -> str:
    text = str(name or "").strip()
    if not text:
        raise ValidationError("El nombre es obligatorio.")
    if len(text) > NAME_MAX_LEN:
        raise ValidationError(f"El nombre no puede superar {NAME_MAX_LEN} caracteres.")
    return text


def list_curricula(registry: Optional[CurriculumRegistry] = None) -> List[CurriculumPayload]:
    reg = registry or get_curriculum_registry()
    return [plan.describe() for plan in reg]


def calculate_and_record(
    name: Any,
    curriculum_id: Any,
    grades: Mapping[str, Any],
    user: Any = None,
    *,
    store: Optional[RankingStore] = None,
    registry: Optional[CurriculumRegistry] = None,
) -> Dict[str, Any]:
    """
    Calcula el ponderado y agrega una fila al ranking.

    Los errores de entrada (InvalidCurriculum/InvalidGrade/ValidationError)
    ocurren antes de tocar el almacenamiento; StoreUnavailable sólo aparece
    cuando el resultado válido no pudo guardarse.
    """
    clean_name = _clean_name(name)
    reg = registry or get_curriculum_registry()
    plan = reg.get(curriculum_id)
    result = compute_weighted_average(plan, grades)

    entry = (store or RankingStore()).append(
        {
            "user": user if getattr(user, "is_authenticated", False) else None,
            "name": clean_name,
            "curriculum": plan.id,
            "grades": dict(result.grades),
            "average": result.average,
            "credits_used": result.credits_used,
        }
    )

    logger.info(
        "Ponderado calculado id=%s curriculum=%s ponderado=%s creditos=%s/%s retirados=%s coerciones=%s",
        entry.id,
        plan.id,
        result.average,
        result.credits_used,
        result.credits_possible,
        len(result.withdrawn),
        len(result.coercions),
    )

    payload = result.as_payload()
    payload.update({"id": entry.id, "nombre": clean_name, "mensaje": "¡Cálculo exitoso!"})
    return payload


def resolve_ranking_filter(curriculum: Any, registry: Optional[CurriculumRegistry] = None) -> Optional[str]:
    raw = CurriculumRegistry.normalize_id(curriculum)
    if not raw or raw == GENERAL_RANKING:
        return None
    reg = registry or get_curriculum_registry()
    return reg.get(raw).id


def resolve_limit(limit: Any) -> int:
    page_size = get_engine_settings().ranking_page_size
    if limit is None or limit == "":
        return page_size
    try:
        value = int(limit)
    except (TypeError, ValueError):
        raise ValidationError("El parámetro 'limit' debe ser un entero.") from None
    return max(1, min(value, page_size))


def query_ranking(
    curriculum: Any = None,
    limit: Any = None,
    *,
    store: Optional[RankingStore] = None,
    registry: Optional[CurriculumRegistry] = None,
) -> List[RankingRow]:
    curriculum_filter = resolve_ranking_filter(curriculum, registry=registry)
    rows = (store or RankingStore()).query(curriculum_filter, resolve_limit(limit))
    return [
        {
            "posicion": idx,
            "nombre": row.name,
            "ponderado": row.average,
            "curriculum": row.curriculum,
            "creditosTotales": row.credits_used,
            "fecha": fmt_dt(row.created_at),
        }
        for idx, row in enumerate(rows, start=1)
    ]

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from django.utils import timezone

from academico.academic.risk import classify_risk, validate_risk_score
from academico.models import RiskAssessment
from academico.services.shared.dto import RiskPayload
from academico.services.shared.errors import NotFoundError, ValidationError
from academico.services.stores import KeyValueStore, RiskAssessmentStore

logger = logging.getLogger(__name__)

STUDENT_ID_MAX_LEN = 64


def _clean_student_id(student_id: Any) -> str:
    sid = str(student_id or "").strip()
    if not sid:
        raise ValidationError("student_id es obligatorio.")
    if len(sid) > STUDENT_ID_MAX_LEN:
        raise ValidationError(f"student_id no puede superar {STUDENT_ID_MAX_LEN} caracteres.")
    return sid


def serialize_assessment(obj: RiskAssessment) -> RiskPayload:
    return {
        "student_id": obj.student_id,
        "score": obj.score,
        "tier": obj.tier,
        "evaluated_at": obj.evaluated_at.isoformat(),
        "evaluated_by": obj.evaluated_by.username if obj.evaluated_by_id else None,
    }


def assess_risk(
    student_id: Any,
    score: Any,
    evaluated_by: Any = None,
    at: Optional[datetime] = None,
    *,
    store: Optional[KeyValueStore] = None,
) -> RiskPayload:
    sid = _clean_student_id(student_id)
    value = validate_risk_score(score)
    tier = classify_risk(value)

    obj = (store or RiskAssessmentStore()).put(
        sid,
        {
            "score": value,
            "tier": tier,
            "evaluated_at": at or timezone.now(),
            "evaluated_by": evaluated_by if getattr(evaluated_by, "is_authenticated", False) else None,
        },
    )
    logger.info("Riesgo evaluado student_id=%s score=%s tier=%s", sid, value, tier)
    return serialize_assessment(obj)


def get_assessment(student_id: Any, *, store: Optional[KeyValueStore] = None) -> RiskPayload:
    sid = _clean_student_id(student_id)
    obj = (store or RiskAssessmentStore()).get(sid)
    if obj is None:
        raise NotFoundError(f"No hay evaluación de riesgo para '{sid}'.")
    return serialize_assessment(obj)

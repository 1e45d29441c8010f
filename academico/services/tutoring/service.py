"""Solicitudes de tutoría: creación, listado y transiciones de estado."""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from django.db import transaction
from django.db.models import Q

from academico.academic.curricula import CurriculumRegistry, get_curriculum_registry
from academico.models import TutoringRequest
from academico.services.shared.dto import TutoringPayload
from academico.services.shared.errors import NotFoundError, PermissionDeniedError, ValidationError
from academico.services.shared.utils import fmt_dt
from academico.services.stores import store_guard

logger = logging.getLogger(__name__)

COURSE_MAX_LEN = 120
MESSAGE_MAX_LEN = 2000

ACTION_ACCEPT = "accept"
ACTION_COMPLETE = "complete"
ACTION_CANCEL = "cancel"

# accion -> (estados de origen permitidos, estado destino)
TRANSITIONS: Dict[str, Tuple[FrozenSet[str], str]] = {
    ACTION_ACCEPT: (frozenset({TutoringRequest.STATUS_PENDING}), TutoringRequest.STATUS_ACCEPTED),
    ACTION_COMPLETE: (frozenset({TutoringRequest.STATUS_ACCEPTED}), TutoringRequest.STATUS_COMPLETED),
    ACTION_CANCEL: (
        frozenset({TutoringRequest.STATUS_PENDING, TutoringRequest.STATUS_ACCEPTED}),
        TutoringRequest.STATUS_CANCELLED,
    ),
}

VALID_STATUSES = {code for code, _label in TutoringRequest.STATUS_CHOICES}


def _is_staff(user: Any) -> bool:
    return bool(getattr(user, "is_staff", False) or getattr(user, "is_superuser", False))


def serialize_request(obj: TutoringRequest) -> TutoringPayload:
    return {
        "id": obj.id,
        "student": obj.student.username,
        "tutor": obj.tutor.username if obj.tutor_id else None,
        "course": obj.course,
        "curriculum": obj.curriculum,
        "message": obj.message,
        "status": obj.status,
        "created_at": fmt_dt(obj.created_at),
        "updated_at": fmt_dt(obj.updated_at),
    }


def create_request(
    user: Any,
    course: Any,
    message: Any = "",
    curriculum: Any = "",
    *,
    registry: Optional[CurriculumRegistry] = None,
) -> TutoringPayload:
    course_text = str(course or "").strip()
    if not course_text:
        raise ValidationError("El curso es obligatorio.")
    if len(course_text) > COURSE_MAX_LEN:
        raise ValidationError(f"El curso no puede superar {COURSE_MAX_LEN} caracteres.")

    message_text = str(message or "").strip()
    if len(message_text) > MESSAGE_MAX_LEN:
        raise ValidationError(f"El mensaje no puede superar {MESSAGE_MAX_LEN} caracteres.")

    curriculum_id = ""
    if str(curriculum or "").strip():
        curriculum_id = (registry or get_curriculum_registry()).get(curriculum).id

    with store_guard("tutoring.create"):
        obj = TutoringRequest.objects.create(
            student=user,
            course=course_text,
            curriculum=curriculum_id,
            message=message_text,
        )
    logger.info("Tutoría creada id=%s student=%s course=%s", obj.id, user.username, course_text)
    return serialize_request(obj)


def list_requests(user: Any, status: Optional[str] = None, limit: int = 100) -> List[TutoringPayload]:
    qs = TutoringRequest.objects.select_related("student", "tutor")
    if not _is_staff(user):
        qs = qs.filter(Q(student=user) | Q(tutor=user))
    if status:
        if status not in VALID_STATUSES:
            raise ValidationError(f"Estado inválido: {status!r}")
        qs = qs.filter(status=status)
    with store_guard("tutoring.list"):
        return [serialize_request(obj) for obj in qs.order_by("-created_at")[: max(int(limit), 1)]]


def _check_permission(user: Any, obj: TutoringRequest, action: str) -> None:
    staff = _is_staff(user)
    if action == ACTION_ACCEPT and not staff:
        raise PermissionDeniedError("Sólo un tutor puede aceptar solicitudes.")
    if action == ACTION_COMPLETE and not (staff or obj.tutor_id == user.id):
        raise PermissionDeniedError("Sólo el tutor asignado puede completar la tutoría.")
    if action == ACTION_CANCEL and not (staff or obj.student_id == user.id):
        raise PermissionDeniedError("Sólo el estudiante o un tutor puede cancelar la solicitud.")


def transition(user: Any, request_id: int, action: Any) -> TutoringPayload:
    action_key = str(action or "").strip().lower()
    if action_key not in TRANSITIONS:
        raise ValidationError(f"Acción inválida: {action!r}")

    sources, target = TRANSITIONS[action_key]
    with store_guard("tutoring.transition"), transaction.atomic():
        # bloquea la fila: dos "accept" concurrentes no pueden ganar ambos
        qs = TutoringRequest.objects.select_related("student", "tutor").select_for_update(of=("self",))
        if not _is_staff(user):
            qs = qs.filter(Q(student=user) | Q(tutor=user))
        obj = qs.filter(id=request_id).first()
        if obj is None:
            raise NotFoundError("Solicitud de tutoría no encontrada.")

        _check_permission(user, obj, action_key)

        if obj.status not in sources:
            raise ValidationError(f"No se puede '{action_key}' una solicitud en estado '{obj.status}'.")

        previous = obj.status
        obj.status = target
        update_fields = ["status", "updated_at"]
        if action_key == ACTION_ACCEPT:
            obj.tutor = user
            update_fields.append("tutor")
        obj.save(update_fields=update_fields)

    logger.info(
        "Tutoría id=%s %s -> %s por user=%s",
        obj.id,
        previous,
        target,
        getattr(user, "username", "-"),
    )
    return serialize_request(obj)

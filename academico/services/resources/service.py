from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

from django.core.exceptions import SuspiciousFileOperation
from django.core.files.uploadedfile import UploadedFile
from django.db import transaction
from django.db.models import Q
from django.utils.text import get_valid_filename

from academico.models import LibraryResource
from academico.services.shared.dto import ResourcePayload
from academico.services.shared.errors import NotFoundError, PermissionDeniedError, StoreUnavailable, ValidationError
from academico.services.shared.settings import get_engine_settings
from academico.services.shared.utils import bytes_to_human, clean_text, fmt_dt
from academico.services.stores import store_guard

logger = logging.getLogger(__name__)

TITLE_MAX_LEN = 255
COURSE_MAX_LEN = 120


def _safe_size(obj: LibraryResource) -> int:
    try:
        return int(obj.file.size or 0) if obj.file else 0
    except (OSError, ValueError):
        return 0


def serialize_resource(obj: LibraryResource) -> ResourcePayload:
    return {
        "id": obj.id,
        "title": obj.title,
        "course": obj.course,
        "owner": obj.owner.username,
        "url": obj.file.url if obj.file else "",
        "size_bytes": _safe_size(obj),
        "uploaded_at": fmt_dt(obj.uploaded_at),
    }


def sanitize_filename(name: str) -> str:
    base = os.path.basename(str(name or "").replace("\\", "/"))
    try:
        return get_valid_filename(base)
    except SuspiciousFileOperation:
        return ""


def _discard_files(objs: List[LibraryResource]) -> None:
    for obj in objs:
        if obj.file:
            obj.file.delete(save=False)


def upload_resources(
    user: Any,
    files: List[UploadedFile],
    title: Optional[str] = None,
    course: Any = "",
) -> Dict[str, Any]:
    if not files:
        raise ValidationError("No se envió ningún archivo.")

    cfg = get_engine_settings()
    course_text = clean_text(course, COURSE_MAX_LEN)
    base_title = clean_text(title, TITLE_MAX_LEN)

    accepted: List[UploadedFile] = []
    errors: List[str] = []

    for file_obj in files:
        original = getattr(file_obj, "name", "") or ""
        safe_name = sanitize_filename(original)
        ext = os.path.splitext(safe_name)[1].lower()
        size = getattr(file_obj, "size", 0) or 0

        if not safe_name:
            errors.append(f"{original or '-'} (nombre inválido)")
            continue
        if cfg.resource_allowed_extensions and ext not in cfg.resource_allowed_extensions:
            errors.append(f"{safe_name} (tipo no permitido)")
            continue
        if size > cfg.resource_max_bytes:
            errors.append(
                f"{safe_name} (supera el máximo de {bytes_to_human(cfg.resource_max_bytes)}, "
                f"archivo {bytes_to_human(size)})"
            )
            continue

        file_obj.name = safe_name
        accepted.append(file_obj)

    resource_title = base_title if (base_title and len(files) == 1) else ""
    saved: List[LibraryResource] = []
    try:
        # el lote se guarda completo o no se guarda
        with store_guard("resources.upload"), transaction.atomic():
            for file_obj in accepted:
                saved.append(
                    LibraryResource.objects.create(
                        owner=user,
                        title=resource_title,
                        course=course_text,
                        file=file_obj,
                    )
                )
    except StoreUnavailable:
        _discard_files(saved)
        raise

    created: List[ResourcePayload] = [serialize_resource(obj) for obj in saved]

    logger.info(
        "Recursos subidos user=%s ok=%s error=%s",
        getattr(user, "username", "-"),
        len(created),
        len(errors),
    )

    if created:
        msg = f"Se subieron {len(created)} archivo(s)."
        if errors:
            msg += f" Fallidos: {', '.join(errors)}"
        return {"status": "success", "msg": msg, "resources": created}
    return {"status": "error", "msg": f"No se subió ningún archivo. Detalle: {', '.join(errors)}", "resources": []}


def list_resources(course: Optional[str] = None, query: Optional[str] = None, limit: int = 50) -> List[ResourcePayload]:
    qs = LibraryResource.objects.select_related("owner")
    if course:
        qs = qs.filter(course__iexact=course.strip())
    if query:
        q = query.strip()
        qs = qs.filter(Q(title__icontains=q) | Q(course__icontains=q))
    with store_guard("resources.list"):
        return [serialize_resource(obj) for obj in qs.order_by("-uploaded_at")[: max(int(limit), 1)]]


def delete_resource(user: Any, resource_id: int) -> None:
    with store_guard("resources.lookup"):
        obj = LibraryResource.objects.select_related("owner").filter(id=resource_id).first()
    if obj is None:
        raise NotFoundError("Recurso no encontrado.")
    is_staff = bool(getattr(user, "is_staff", False) or getattr(user, "is_superuser", False))
    if obj.owner_id != user.id and not is_staff:
        raise PermissionDeniedError("Sólo el propietario puede eliminar este recurso.")

    with store_guard("resources.delete"):
        if obj.file:
            obj.file.delete(save=False)
        obj.delete()
    logger.info("Recurso eliminado id=%s por user=%s", resource_id, getattr(user, "username", "-"))

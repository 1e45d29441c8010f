"""
Contratos de persistencia del motor.

El motor sólo conoce `put(key, value)` / `append(entry)`; el motor de base de
datos real (sqlite, Postgres hospedado, ...) es un colaborador intercambiable.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Mapping, Optional, Protocol

from django.db import DatabaseError

from academico.models import RankingEntry, RiskAssessment

from .shared.errors import StoreUnavailable

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def put(self, key: str, value: Mapping[str, Any]) -> Any:
        ...

    def get(self, key: str) -> Optional[Any]:
        ...


@contextmanager
def store_guard(operation: str) -> Iterator[None]:
    try:
        yield
    except DatabaseError as exc:
        logger.error("Store no disponible op=%s err=%r", operation, exc, exc_info=True)
        raise StoreUnavailable(f"No se pudo completar '{operation}' en el almacenamiento.") from exc


class RiskAssessmentStore:
    """Upsert por student_id: la última escritura gana."""

    def put(self, key: str, value: Mapping[str, Any]) -> RiskAssessment:
        with store_guard("risk.put"):
            obj, created = RiskAssessment.objects.update_or_create(student_id=key, defaults=dict(value))
        logger.info("RiskAssessment %s student_id=%s tier=%s", "creado" if created else "actualizado", key, obj.tier)
        return obj

    def get(self, key: str) -> Optional[RiskAssessment]:
        with store_guard("risk.get"):
            return RiskAssessment.objects.filter(student_id=key).first()


class RankingStore:
    """Append-only; una fila por cálculo."""

    def append(self, entry: Mapping[str, Any]) -> RankingEntry:
        with store_guard("ranking.append"):
            return RankingEntry.objects.create(**dict(entry))

    def query(self, curriculum: Optional[str], limit: int) -> List[RankingEntry]:
        with store_guard("ranking.query"):
            qs = RankingEntry.objects.all()
            if curriculum:
                qs = qs.filter(curriculum=curriculum)
            # desempate: el registro más antiguo primero
            return list(qs.order_by("-average", "created_at", "id")[: max(int(limit), 1)])

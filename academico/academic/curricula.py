"""
Mallas curriculares: tabla fija curso -> peso en créditos por programa.

Se cargan una sola vez por proceso desde un YAML y quedan inmutables.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Tuple

import yaml

from academico.services.shared.errors import CurriculumConfigError, InvalidCurriculum
from academico.services.shared.settings import get_engine_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Course:
    key: str
    name: str
    weight: int


@dataclass(frozen=True)
class CurriculumPlan:
    id: str
    name: str
    courses: Tuple[Course, ...]

    @property
    def weights(self) -> Mapping[str, int]:
        return MappingProxyType({c.key: c.weight for c in self.courses})

    @property
    def course_keys(self) -> Tuple[str, ...]:
        return tuple(c.key for c in self.courses)

    @property
    def total_credits(self) -> int:
        return sum(c.weight for c in self.courses)

    def describe(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "nombre": self.name,
            "creditosTotales": self.total_credits,
            "cursos": [{"clave": c.key, "nombre": c.name, "peso": c.weight} for c in self.courses],
        }


@dataclass(frozen=True)
class CurriculumRegistry:
    plans: Mapping[str, CurriculumPlan] = field(default_factory=lambda: MappingProxyType({}))

    @staticmethod
    def normalize_id(curriculum_id: Any) -> str:
        return str(curriculum_id or "").strip().lower()

    def get(self, curriculum_id: Any) -> CurriculumPlan:
        plan = self.plans.get(self.normalize_id(curriculum_id))
        if plan is None:
            raise InvalidCurriculum(curriculum_id)
        return plan

    def ids(self) -> List[str]:
        return list(self.plans.keys())

    def __contains__(self, curriculum_id: Any) -> bool:
        return self.normalize_id(curriculum_id) in self.plans

    def __iter__(self) -> Iterator[CurriculumPlan]:
        return iter(self.plans.values())

    def __len__(self) -> int:
        return len(self.plans)


def _parse_weight(plan_id: str, key: str, raw: Any) -> int:
    # bool es subclase de int; no se acepta como peso.
    if isinstance(raw, bool) or not isinstance(raw, int) or raw <= 0:
        raise CurriculumConfigError(
            f"Peso inválido en malla '{plan_id}', curso '{key}': {raw!r} (debe ser entero positivo)"
        )
    return raw


def _parse_plan(raw: Dict[str, Any]) -> CurriculumPlan:
    plan_id = CurriculumRegistry.normalize_id(raw.get("id"))
    if not plan_id:
        raise CurriculumConfigError("Malla sin 'id'.")

    raw_courses = raw.get("courses") or []
    if not isinstance(raw_courses, list) or not raw_courses:
        raise CurriculumConfigError(f"Malla '{plan_id}' no define cursos.")

    courses: List[Course] = []
    seen: set[str] = set()
    for item in raw_courses:
        if not isinstance(item, dict):
            raise CurriculumConfigError(f"Curso mal formado en malla '{plan_id}': {item!r}")
        key = str(item.get("key") or "").strip()
        if not key:
            raise CurriculumConfigError(f"Curso sin 'key' en malla '{plan_id}'.")
        if key in seen:
            raise CurriculumConfigError(f"Curso duplicado '{key}' en malla '{plan_id}'.")
        seen.add(key)
        courses.append(
            Course(
                key=key,
                name=str(item.get("name") or key),
                weight=_parse_weight(plan_id, key, item.get("weight")),
            )
        )

    return CurriculumPlan(id=plan_id, name=str(raw.get("name") or plan_id), courses=tuple(courses))


def build_registry(data: Any) -> CurriculumRegistry:
    if not isinstance(data, dict) or not isinstance(data.get("curricula"), list):
        raise CurriculumConfigError("El archivo de mallas debe tener una lista 'curricula'.")

    plans: Dict[str, CurriculumPlan] = {}
    for raw in data["curricula"]:
        if not isinstance(raw, dict):
            raise CurriculumConfigError(f"Entrada de malla mal formada: {raw!r}")
        plan = _parse_plan(raw)
        if plan.id in plans:
            raise CurriculumConfigError(f"Malla duplicada: '{plan.id}'.")
        plans[plan.id] = plan

    return CurriculumRegistry(plans=MappingProxyType(plans))


def load_curricula(path: str | Path) -> CurriculumRegistry:
    p = Path(path)
    if not p.is_file():
        raise CurriculumConfigError(f"No se encontró el archivo de mallas: {p}")
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise CurriculumConfigError(f"YAML inválido en {p}: {exc}") from exc
    registry = build_registry(data)
    logger.info("Mallas cargadas file=%s ids=%s", p, registry.ids())
    return registry


@lru_cache(maxsize=4)
def _cached_registry(path: str) -> CurriculumRegistry:
    return load_curricula(path)


def get_curriculum_registry() -> CurriculumRegistry:
    return _cached_registry(get_engine_settings().curricula_file)


def reset_curriculum_registry() -> None:
    _cached_registry.cache_clear()

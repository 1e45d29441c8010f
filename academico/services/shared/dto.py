from __future__ import annotations

from typing import List, Optional, TypedDict


class RankingRow(TypedDict):
    posicion: int
    nombre: str
    ponderado: float
    curriculum: str
    creditosTotales: int
    fecha: str


class RiskPayload(TypedDict):
    student_id: str
    score: float
    tier: str
    evaluated_at: str
    evaluated_by: Optional[str]


class TutoringPayload(TypedDict):
    id: int
    student: str
    tutor: Optional[str]
    course: str
    curriculum: str
    message: str
    status: str
    created_at: str
    updated_at: str


class ResourcePayload(TypedDict):
    id: int
    title: str
    course: str
    owner: str
    url: str
    size_bytes: int
    uploaded_at: str


class CurriculumPayload(TypedDict):
    id: str
    nombre: str
    creditosTotales: int
    cursos: List[dict]

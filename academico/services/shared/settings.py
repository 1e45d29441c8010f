from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from django.conf import settings

SUPPORTED_DECIMALS = (2, 4)


@dataclass(frozen=True)
class EngineSettings:
    curricula_file: str
    average_decimals: int = 4
    grade_max: float = 20.0
    ranking_page_size: int = 50
    default_curriculum: str = "systems"
    resource_max_bytes: int = 10 * 1024 * 1024
    resource_allowed_extensions: Tuple[str, ...] = ()


def get_engine_settings() -> EngineSettings:
    raw = dict(getattr(settings, "PONDERADO", {}) or {})

    decimals = int(raw.get("AVERAGE_DECIMALS", 4) or 4)
    if decimals not in SUPPORTED_DECIMALS:
        decimals = 4

    extensions = tuple(
        ext.lower() if ext.startswith(".") else f".{ext.lower()}"
        for ext in (raw.get("RESOURCE_ALLOWED_EXTENSIONS") or [])
        if ext
    )

    return EngineSettings(
        curricula_file=str(raw.get("CURRICULA_FILE") or ""),
        average_decimals=decimals,
        grade_max=max(float(raw.get("GRADE_MAX", 20) or 20), 1.0),
        ranking_page_size=max(int(raw.get("RANKING_PAGE_SIZE", 50) or 50), 1),
        default_curriculum=str(raw.get("DEFAULT_CURRICULUM") or "systems").strip().lower(),
        resource_max_bytes=max(int(raw.get("RESOURCE_MAX_BYTES", 0) or 0), 1),
        resource_allowed_extensions=extensions,
    )

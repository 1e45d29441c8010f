from __future__ import annotations

from datetime import datetime
from typing import Any, Optional


def bytes_to_human(n: Any) -> str:
    try:
        n = int(n)
    except (TypeError, ValueError):
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    size = float(n)
    for u in units:
        if size < 1024 or u == units[-1]:
            return f"{size:.2f} {u}" if u != "B" else f"{int(size)} {u}"
        size /= 1024
    return f"{int(n)} B"


def fmt_dt(dt: Optional[datetime]) -> str:
    return dt.strftime("%Y-%m-%d %H:%M") if dt else ""


def clean_text(value: Any, max_len: int) -> str:
    text = str(value or "").strip()
    return text[:max_len]

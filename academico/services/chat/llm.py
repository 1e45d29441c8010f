import os
from typing import Any, Dict, List

from langchain_core.messages import HumanMessage
from langchain_openai import ChatOpenAI

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "google/gemini-2.5-flash-lite"
DEFAULT_BACKUP_MODELS = [
    "openai/gpt-5-nano",
    "meta-llama/llama-3.3-70b-instruct:free",
]
DEFAULT_MAX_PROMPT_CHARS = 4000


def _parse_models(raw: str | None) -> List[str]:
    text = (raw or "").replace("\r", "\n").replace(",", "\n")
    return [x.strip() for x in text.split("\n") if x.strip()]


def _env_int(name: str, default: int) -> int:
    try:
        return int(str(os.environ.get(name, default)).strip())
    except (TypeError, ValueError):
        return int(default)


def _env_float(name: str, default: float) -> float:
    try:
        return float(str(os.environ.get(name, default)).strip())
    except (TypeError, ValueError):
        return float(default)


def get_runtime_config() -> Dict[str, Any]:
    backups = _parse_models(os.environ.get("OPENROUTER_BACKUP_MODELS", "")) or list(DEFAULT_BACKUP_MODELS)
    return {
        "api_key": os.environ.get("OPENROUTER_API_KEY", "").strip(),
        "model": os.environ.get("OPENROUTER_MODEL", DEFAULT_MODEL).strip() or DEFAULT_MODEL,
        "backup_models": backups,
        "timeout": _env_int("OPENROUTER_TIMEOUT", 45),
        "max_retries": _env_int("OPENROUTER_MAX_RETRIES", 1),
        "temperature": _env_float("OPENROUTER_TEMPERATURE", 0.2),
        "max_prompt_chars": max(_env_int("CHAT_MAX_PROMPT_CHARS", DEFAULT_MAX_PROMPT_CHARS), 1),
    }


def get_candidate_models(primary_model: str, configured_backup_models: List[str] | None = None) -> List[str]:
    models = [primary_model] + list(configured_backup_models or DEFAULT_BACKUP_MODELS)
    out: List[str] = []
    for m in models:
        name = (m or "").strip()
        if not name or name in out:
            continue
        out.append(name)
    return out


def build_llm(model_name: str, cfg: Dict[str, Any]) -> ChatOpenAI:
    return ChatOpenAI(
        openai_api_key=cfg.get("api_key"),
        openai_api_base=OPENROUTER_BASE_URL,
        model_name=model_name,
        temperature=float(cfg.get("temperature", 0.2)),
        request_timeout=int(cfg.get("timeout", 45)),
        max_retries=int(cfg.get("max_retries", 1)),
        default_headers={
            "HTTP-Referer": "http://localhost:8000",
            "X-Title": "Ponderado",
        },
    )


def invoke_text(llm: Any, prompt: str) -> str:
    out = llm.invoke([HumanMessage(content=prompt)])
    if hasattr(out, "content"):
        return out.content or ""
    return str(out)

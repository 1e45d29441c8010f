from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from academico.services.shared.errors import ExternalDependencyError, ValidationError

from . import llm as llm_client

logger = logging.getLogger(__name__)


def ask(prompt: Any, request_id: str = "-", cfg: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Pasa el prompt tal cual al proveedor; si el modelo principal falla se
    prueban los modelos de respaldo en orden.
    """
    runtime = dict(cfg or llm_client.get_runtime_config())
    text = str(prompt or "").strip()
    if not text:
        raise ValidationError("El mensaje está vacío.")
    max_chars = int(runtime.get("max_prompt_chars") or llm_client.DEFAULT_MAX_PROMPT_CHARS)
    if len(text) > max_chars:
        raise ValidationError(f"El mensaje supera el máximo de {max_chars} caracteres.")
    if not runtime.get("api_key"):
        logger.error("Chat sin OPENROUTER_API_KEY configurada rid=%s", request_id)
        raise ExternalDependencyError("El servicio de chat no está configurado.")

    candidates = llm_client.get_candidate_models(str(runtime.get("model") or ""), runtime.get("backup_models"))
    last_error = ""
    for idx, model_name in enumerate(candidates):
        t0 = time.time()
        try:
            llm = llm_client.build_llm(model_name, runtime)
            answer = str(llm_client.invoke_text(llm, text) or "").strip()
        except Exception as exc:
            # cualquier error del proveedor pasa al siguiente modelo
            last_error = repr(exc)
            logger.warning("Chat modelo falló rid=%s model=%s err=%s", request_id, model_name, last_error)
            continue
        llm_ms = int(max((time.time() - t0) * 1000, 0))
        logger.info(
            "Chat OK rid=%s model=%s fallback=%s len=%s ms=%s",
            request_id,
            model_name,
            idx > 0,
            len(answer),
            llm_ms,
        )
        return {"answer": answer, "model": model_name, "fallback_used": idx > 0, "llm_ms": llm_ms}

    logger.error("Chat sin respuesta rid=%s modelos=%s err=%s", request_id, candidates, last_error)
    raise ExternalDependencyError("Todos los servidores de IA están ocupados. Intenta más tarde.")

import json
import logging
import time
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def run_start(run_id: str, query: str, model: Optional[str] = None, **additional_fields: Any) -> float:
    """
    Emit a structured run_start log and return the start_time (epoch seconds) for duration calculation.
    """
    start_time = time.time()
    payload: Dict[str, Any] = {
        "event": "run_start",
        "run_id": run_id,
        "query": query,
        "model": model,
    }
    if additional_fields:
        payload.update(additional_fields)
    logger.info(json.dumps(payload))
    return start_time


def run_end(run_id: str, start_time: float, status: str, **additional_fields: Any) -> None:
    """
    Emit a structured run_end log with duration_ms.
    """
    payload: Dict[str, Any] = {
        "event": "run_end",
        "run_id": run_id,
        "status": status,
        "duration_ms": int((time.time() - start_time) * 1000),
    }
    if additional_fields:
        payload.update(additional_fields)
    logger.info(json.dumps(payload))


def run_error(run_id: str, start_time: float, error: Optional[str] = None, **additional_fields: Any) -> None:
    """
    Emit a structured run_error log with duration_ms and error message.
    """
    payload: Dict[str, Any] = {
        "event": "run_error",
        "run_id": run_id,
        "duration_ms": int((time.time() - start_time) * 1000),
    }
    if error is not None:
        payload["error"] = error
    if additional_fields:
        payload.update(additional_fields)
    logger.error(json.dumps(payload))

"""Shared helpers for calling agents from pipeline stages."""
from __future__ import annotations

import json
import logging
import threading
from typing import Any

from .config import PipelineConfig
from .errors import ExtractionError, GenerationServiceError, MathGenError
from .extraction import extract
from .llm import Runner as AgentsRunner
from .tools.expression import substitute_math_literals
from .utils import get_final_output

__all__ = [
    "AgentsRunner",
    "invoke_agent",
    "request_slot",
    "to_payload",
]

logger = logging.getLogger(__name__)

_SLOTS: dict[int, threading.BoundedSemaphore] = {}
_SLOTS_LOCK = threading.Lock()


def request_slot(limit: int) -> threading.BoundedSemaphore:
    """Process-wide semaphore bounding concurrent service calls at *limit*."""
    limit = max(1, int(limit))
    with _SLOTS_LOCK:
        sem = _SLOTS.get(limit)
        if sem is None:
            sem = _SLOTS[limit] = threading.BoundedSemaphore(limit)
        return sem


def to_payload(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, default=str)


def invoke_agent(
    agent: Any,
    payload: str,
    *,
    config: PipelineConfig | None = None,
    expect_json: bool = True,
    max_retries: int | None = None,
) -> tuple[Any | None, MathGenError | None]:
    """Run an agent and parse its output.

    Returns ``(value, None)`` on success or ``(None, error)``. Service errors
    are returned at once; unparseable output is re-requested up to
    ``max_retries`` times before an :class:`ExtractionError` is returned.
    """
    config = config or PipelineConfig()
    retries = max_retries if max_retries is not None else config.json_max_retries
    agent_name = getattr(agent, "name", getattr(agent, "__name__", str(agent)))
    attempts = 0
    while True:
        try:
            with request_slot(config.max_concurrent_requests):
                res = AgentsRunner.run_sync(
                    agent,
                    input=payload,
                    timeout=config.request_timeout,
                    model=config.model,
                )
        except GenerationServiceError as exc:
            logger.info("%s failed: %s", agent_name, exc)
            return None, exc
        except Exception as exc:
            logger.info("%s failed: %s", agent_name, exc)
            return None, GenerationServiceError("service", f"{agent_name} failed: {exc}")

        out = get_final_output(res)
        if not out.strip():
            return None, GenerationServiceError("empty", f"{agent_name} returned no text")
        if not expect_json:
            return out, None

        try:
            return extract(substitute_math_literals(out)), None
        except ExtractionError as exc:
            attempts += 1
            logger.info("%s output not parseable (attempt %d/%d)", agent_name, attempts, retries)
            if attempts >= retries:
                return None, ExtractionError(f"{agent_name} failed: {exc}", snippet=exc.snippet)

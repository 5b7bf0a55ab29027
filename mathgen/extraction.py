"""Recover structured records from free-form generation output."""
from __future__ import annotations

import logging
import re
from typing import Any

from .constants import REQUIRED_SLOTS, SLOT_ORDER
from .errors import ExtractionError
from .utils import safe_json, strip_invisible

__all__ = ["extract", "normalize_slot_payload"]

logger = logging.getLogger(__name__)

_SPEC_RE = re.compile(r'"problem_spec"\s*:\s*(\{[^{}]*\})', re.DOTALL)
_HISTORY_RE = re.compile(r'"chat_history"\s*:\s*(\[[^\]]*\])', re.DOTALL)


def _repair_payload(text: str) -> dict[str, Any] | None:
    """Pull ``problem_spec`` and ``chat_history`` out independently.

    Whatever cannot be recovered stays empty and is reported, never guessed.
    """
    spec: dict[str, Any] | None = None
    history: list[Any] | None = None
    m = _SPEC_RE.search(text)
    if m:
        try:
            parsed = safe_json(m.group(1))
            spec = parsed if isinstance(parsed, dict) else None
        except ValueError:
            spec = None
    m = _HISTORY_RE.search(text)
    if m:
        try:
            parsed = safe_json(m.group(1))
            history = parsed if isinstance(parsed, list) else None
        except ValueError:
            history = None
    if spec is None and history is None:
        return None
    unrecovered = [name for name, part in (("problem_spec", spec), ("chat_history", history)) if part is None]
    spec = spec or {}
    return {
        "problem_spec": spec,
        "chat_history": history or [],
        "is_complete": False,
        "missing_slots": [s for s in REQUIRED_SLOTS if spec.get(s) in (None, "")],
        "unrecovered": unrecovered,
    }


def extract(raw_text: str) -> Any:
    """Return the structured record embedded in *raw_text*.

    Tries a fenced block, then the outermost brace span, then the whole text,
    each through strict, JSON5 and repaired parsing; finally falls back to
    recovering the slot payload piecewise. Raises :class:`ExtractionError`
    when nothing can be recovered.
    """
    text = strip_invisible(raw_text or "")
    try:
        return safe_json(text)
    except ValueError as exc:
        repaired = _repair_payload(text)
        if repaired is not None:
            logger.info("recovered partial payload; unrecovered=%s", repaired["unrecovered"])
            return repaired
        raise ExtractionError(str(exc), snippet=text[:300]) from exc


def normalize_slot_payload(record: Any) -> dict[str, Any]:
    """Fill defaults into a slot-filling payload instead of rejecting it.

    Slots given at the top level are accepted as if nested under
    ``problem_spec``.
    """
    if not isinstance(record, dict):
        record = {}
    spec = record.get("problem_spec")
    if not isinstance(spec, dict):
        spec = {k: record[k] for k in SLOT_ORDER if k in record}
    spec = {name: spec.get(name) for name in SLOT_ORDER}
    if spec["details"] is None:
        spec["details"] = ""
    history = record.get("chat_history")
    missing = [s for s in REQUIRED_SLOTS if spec.get(s) in (None, "")]
    return {
        "problem_spec": spec,
        "chat_history": history if isinstance(history, list) else [],
        "is_complete": bool(record.get("is_complete", False)) and not missing,
        "missing_slots": missing,
        "next_question": record.get("next_question") or record.get("question"),
        "unrecovered": list(record.get("unrecovered", [])),
    }

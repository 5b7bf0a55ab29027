"""Scoring of problem drafts.

Cheap deterministic checks run first; only drafts that pass them are sent to
the VerificationAgent.
"""
from __future__ import annotations

import logging
import math
from dataclasses import asdict
from typing import Any

from .agents import VerificationAgent
from .config import PipelineConfig
from .errors import ExtractionError
from .pipeline_helpers import invoke_agent, to_payload
from .pipeline_state import ProblemDraft, ProblemSpecification, VerificationResult

__all__ = ["VerificationScorer", "precheck", "MIN_QUESTION_CHARS", "MIN_EXPLANATION_CHARS"]

logger = logging.getLogger(__name__)

MIN_QUESTION_CHARS = 10
MIN_EXPLANATION_CHARS = 20

_SUBSCORE_KEYS = {
    "accuracy": "math_accuracy",
    "completeness": "solution_completeness",
    "educational_value": "educational_value",
}


def precheck(draft: ProblemDraft) -> list[str]:
    """Return human-readable problems found without consulting a model."""
    issues = [f"{name} is empty" for name in draft.missing_fields()]
    if draft.question.strip() and len(draft.question.strip()) < MIN_QUESTION_CHARS:
        issues.append(f"question is shorter than {MIN_QUESTION_CHARS} characters")
    if draft.explanation.strip() and len(draft.explanation.strip()) < MIN_EXPLANATION_CHARS:
        issues.append(f"explanation is shorter than {MIN_EXPLANATION_CHARS} characters")
    return issues


def _score(value: Any) -> float | None:
    if isinstance(value, dict):
        value = value.get("score")
    if isinstance(value, bool) or value is None:
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(num):
        return None
    return min(100.0, max(0.0, num))


def _verdict(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "pass", "valid"}
    return bool(value)


class VerificationScorer:
    def __init__(self, config: PipelineConfig | None = None) -> None:
        self.config = config or PipelineConfig()

    def from_record(self, record: Any) -> VerificationResult:
        """Turn a verdict record into a :class:`VerificationResult`."""
        if not isinstance(record, dict):
            return VerificationResult(
                is_valid=False,
                feedback=f"verification returned {type(record).__name__}, expected an object",
            )
        subscores = {
            key: _score(record.get(src)) for key, src in _SUBSCORE_KEYS.items()
        }
        overall = _score(record.get("score", record.get("overall_score")))
        if overall is None:
            known = [s for s in subscores.values() if s is not None]
            overall = sum(known) / len(known) if known else 0.0
        suggestions = record.get("suggestions") or []
        if isinstance(suggestions, str):
            suggestions = [suggestions]
        issues = record.get("math_accuracy", {})
        issues = issues.get("issues", []) if isinstance(issues, dict) else []
        feedback = str(record.get("feedback") or "").strip()
        if not feedback and issues:
            feedback = "; ".join(str(i) for i in issues)
        return VerificationResult(
            is_valid=_verdict(record.get("is_valid")) and overall >= self.config.pass_score,
            overall_score=overall,
            subscores={k: (v if v is not None else 0.0) for k, v in subscores.items()},
            feedback=feedback,
            suggestions=[str(s) for s in suggestions],
        )

    def score(self, draft: ProblemDraft, spec: ProblemSpecification | None = None) -> VerificationResult:
        """Verify *draft*; raises only :class:`GenerationServiceError`."""
        issues = precheck(draft)
        if issues:
            logger.info("precheck rejected draft %s: %s", draft.id, issues)
            return VerificationResult(
                is_valid=False,
                feedback="; ".join(issues),
                suggestions=[f"Fix: {i}" for i in issues],
            )

        payload = to_payload(
            {
                "spec": asdict(spec) if spec is not None else {},
                "problem": {
                    "id": draft.id,
                    "question": draft.question,
                    "answer": draft.answer,
                    "explanation": draft.explanation,
                },
            }
        )
        record, err = invoke_agent(VerificationAgent, payload, config=self.config)
        if isinstance(err, ExtractionError):
            logger.warning("verification verdict unparseable: %s", err)
            return VerificationResult(
                is_valid=False,
                feedback=f"verification verdict could not be parsed: {err}",
            )
        if err is not None:
            raise err
        result = self.from_record(record)
        logger.info(
            "verified %s: valid=%s score=%.1f", draft.id, result.is_valid, result.overall_score
        )
        return result

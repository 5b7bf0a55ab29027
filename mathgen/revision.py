"""Revision of drafts that failed verification."""
from __future__ import annotations

import logging

from .agents import RevisionAgent
from .config import PipelineConfig
from .errors import ExtractionError
from .pipeline_helpers import invoke_agent, to_payload
from .pipeline_state import ProblemDraft, VerificationResult
from .tools.markup import object_to_text

__all__ = ["revise"]

logger = logging.getLogger(__name__)

_TEXT_FIELDS = ("question", "answer", "explanation")


def revise(
    draft: ProblemDraft,
    verification: VerificationResult,
    config: PipelineConfig | None = None,
) -> tuple[ProblemDraft, bool]:
    """Return ``(draft, accepted)``.

    A passing verification returns the same draft object untouched. A rejected
    revision also returns *draft* unchanged; an accepted one replaces the three
    text fields together and keeps ``id`` and ``visualization``.
    Service failures propagate as :class:`GenerationServiceError`.
    """
    if verification.is_valid:
        return draft, False

    payload = to_payload(
        {
            "problem": {
                "id": draft.id,
                "question": draft.question,
                "answer": draft.answer,
                "explanation": draft.explanation,
            },
            "feedback": verification.feedback,
            "suggestions": verification.suggestions,
        }
    )
    record, err = invoke_agent(RevisionAgent, payload, config=config)
    if isinstance(err, ExtractionError):
        logger.warning("revision output unusable: %s", err)
        return draft, False
    if err is not None:
        raise err
    if not isinstance(record, dict):
        logger.warning("revision returned %s, rejected", type(record).__name__)
        return draft, False

    values = {}
    for name in _TEXT_FIELDS:
        value = record.get(name)
        if isinstance(value, (dict, list)):
            value = object_to_text(value)
        if not isinstance(value, str) or not value.strip():
            logger.warning("revision rejected: %s missing", name)
            return draft, False
        values[name] = value.strip()

    return (
        ProblemDraft(
            id=draft.id,
            question=values["question"],
            answer=values["answer"],
            explanation=values["explanation"],
            visualization=draft.visualization,
        ),
        True,
    )

"""Stage functions for the generation pipeline.

Each stage takes the state and config, mutates the state and returns it. A
failing stage sets ``state.error``/``state.error_kind`` instead of raising;
the runner decides what happens next.
"""
from __future__ import annotations

import copy
import re
import uuid
from typing import Any

from . import constants as C
from .agents import ProblemGenerationAgent, TexFormatAgent
from .config import PipelineConfig
from .errors import ExtractionError, GenerationServiceError, MathGenError
from .pipeline_helpers import invoke_agent, to_payload
from .pipeline_state import PipelineState, ProblemDraft, ProblemSpecification
from .revision import revise
from .tools.markup import (
    assemble_document,
    escape_tex,
    object_to_text,
    strip_answer_leak,
    strip_code_fence,
    strip_preamble,
)
from .tools.normalize import normalize
from .tools.tikz import emit
from .verification import VerificationScorer

_NUMBERED_RE = re.compile(r"^\s*(?:問\s*[1１]|[（(]\s*[1１]\s*[)）]|[1１]\s*[.．)）])", re.MULTILINE)


def _fail(state: PipelineState, exc: MathGenError) -> PipelineState:
    state.error = str(exc)
    if isinstance(exc, GenerationServiceError):
        state.error_kind = exc.kind
    elif isinstance(exc, ExtractionError):
        state.error_kind = "malformed"
    else:
        state.error_kind = type(exc).__name__
    return state


def _text(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return object_to_text(value).strip()
    return "" if value is None else str(value).strip()


def _merge_problems(items: list[dict[str, Any]]) -> dict[str, Any]:
    if len(items) == 1:
        return items[0]
    merged: dict[str, Any] = {"id": items[0].get("id")}
    for name in ("question", "answer", "explanation"):
        merged[name] = "\n\n".join(
            f"問{i}. {_text(item.get(name))}" for i, item in enumerate(items, 1)
        )
    merged["visualization"] = next(
        (item["visualization"] for item in items if isinstance(item.get("visualization"), dict)),
        None,
    )
    return merged


def build_draft(record: Any, spec: ProblemSpecification) -> ProblemDraft:
    """Shape a generation record into a :class:`ProblemDraft`.

    Raises :class:`ExtractionError` when *record* holds no problem at all.
    """
    if isinstance(record, list):
        items = [item for item in record if isinstance(item, dict)]
        if not items:
            raise ExtractionError("generation returned an empty problem list")
        record = _merge_problems(items)
    if not isinstance(record, dict):
        raise ExtractionError(f"generation returned {type(record).__name__}, expected an object")
    if "problem" in record and isinstance(record["problem"], dict) and "question" not in record:
        record = record["problem"]

    question = _text(record.get("question"))
    if spec.count and spec.count > 1 and question and not _NUMBERED_RE.search(question):
        question = f"{C.MULTI_COUNT_PREFIX.format(count=spec.count)}\n{question}"
    visualization = record.get("visualization")
    return ProblemDraft(
        id=_text(record.get("id")) or f"prob-{uuid.uuid4().hex[:8]}",
        question=question,
        answer=_text(record.get("answer")),
        explanation=_text(record.get("explanation")),
        visualization=visualization if isinstance(visualization, dict) else None,
    )


def _step_draft(state: PipelineState, config: PipelineConfig) -> PipelineState:
    spec = state.spec
    payload = to_payload(
        {
            "difficulty": spec.difficulty,
            "difficulty_label": C.DIFFICULTY_LABELS.get(spec.difficulty or "", spec.difficulty),
            "topic": spec.topic,
            "topic_label": C.TOPIC_LABELS.get(spec.topic or "", spec.topic),
            "format": spec.format,
            "format_label": C.FORMAT_LABELS.get(spec.format or "", spec.format),
            "count": spec.count,
            "details": spec.details,
        }
    )
    out, err = invoke_agent(ProblemGenerationAgent, payload, config=config)
    if err:
        return _fail(state, err)
    try:
        state.draft = build_draft(out, spec)
    except ExtractionError as exc:
        return _fail(state, exc)
    state.verification = None
    return state


def _step_verify(state: PipelineState, config: PipelineConfig) -> PipelineState:
    if state.draft is None:
        return _fail(state, MathGenError("nothing to verify: no draft"))
    try:
        result = VerificationScorer(config).score(state.draft, state.spec)
    except GenerationServiceError as exc:
        return _fail(state, exc)
    state.verification = result
    if state.best_score is None or result.overall_score > state.best_score:
        state.best_score = result.overall_score
        state.best_draft = copy.deepcopy(state.draft)
        state.best_verification = copy.deepcopy(result)
    return state


def _step_revise(state: PipelineState, config: PipelineConfig) -> PipelineState:
    if state.draft is None or state.verification is None:
        return _fail(state, MathGenError("nothing to revise: no verified draft"))
    before = state.draft
    try:
        revised, accepted = revise(before, state.verification, config)
    except GenerationServiceError as exc:
        return _fail(state, exc)
    state.revision_count += 1
    state.revision_history.append(
        {
            "attempt": state.revision_count,
            "accepted": accepted,
            "score": state.verification.overall_score,
            "feedback": state.verification.feedback,
            "from": {"question": before.question, "answer": before.answer},
            "to": {"question": revised.question, "answer": revised.answer},
        }
    )
    state.draft = revised
    return state


def _tex_convert(text: str, config: PipelineConfig) -> str:
    out, err = invoke_agent(TexFormatAgent, text, config=config, expect_json=False)
    if err:
        raise err
    return strip_preamble(strip_code_fence(str(out)))


def _step_format(state: PipelineState, config: PipelineConfig) -> PipelineState:
    if state.draft is None:
        return _fail(state, MathGenError("nothing to format: no draft"))
    draft = state.draft
    question = strip_answer_leak(strip_preamble(draft.question))
    texts = [question, draft.answer, draft.explanation]
    if config.tex_agent:
        try:
            texts = [_tex_convert(t, config) if t else "" for t in texts]
        except MathGenError as exc:
            return _fail(state, exc)
        texts[0] = strip_answer_leak(texts[0])
    else:
        texts = [escape_tex(t) for t in texts]

    figure = emit(normalize(draft.visualization))
    state.figure_script = figure
    state.markup = assemble_document(texts[0], texts[1], texts[2], figure)
    return state

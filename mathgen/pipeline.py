"""Public entry points: conversation, single generation and batches."""
from __future__ import annotations

import copy
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable, Mapping

from . import constants as C
from .config import PipelineConfig
from .errors import GenerationServiceError, ValidationError
from .pipeline_helpers import AgentsRunner
from .pipeline_runner import _Runner
from .pipeline_state import PipelineState, ProblemSpecification, SlotError, Status
from .slot_filling import SlotFillingEngine, validate_slot

__all__ = [
    "AgentsRunner",
    "generate_problem",
    "continue_conversation",
    "run_pipeline",
    "generate_many",
    "spec_from_mapping",
]

logger = logging.getLogger(__name__)


def spec_from_mapping(data: Mapping[str, Any]) -> tuple[ProblemSpecification, list[SlotError]]:
    """Validate a caller-supplied mapping slot by slot.

    Invalid values are left unset and reported; unknown keys are ignored.
    """
    spec = ProblemSpecification()
    errors: list[SlotError] = []
    for name in C.SLOT_ORDER:
        value = data.get(name)
        if value is None or value == "":
            continue
        try:
            setattr(spec, name, validate_slot(name, value))
        except ValidationError as exc:
            errors.append(SlotError(exc.field, exc.message))
    return spec, errors


def _reset_generation(state: PipelineState) -> None:
    state.draft = None
    state.verification = None
    state.revision_count = 0
    state.revision_history = []
    state.best_draft = None
    state.best_verification = None
    state.best_score = None
    state.markup = None
    state.figure_script = None
    state.warnings = []
    state.error = None
    state.error_kind = None
    state.status = Status.COLLECTING_SPEC


def run_pipeline(
    state: PipelineState,
    *,
    config: PipelineConfig | None = None,
    verbose: bool = False,
) -> PipelineState:
    """Run *state* through drafting, verification and formatting.

    Returns a new state; *state* itself is never mutated. A failed state is
    retried from scratch; a finished one is returned as a copy.
    """
    if state.status is Status.DONE:
        return copy.deepcopy(state)
    if state.status is Status.FAILED:
        state = copy.deepcopy(state)
        _reset_generation(state)
    return _Runner(config=config, verbose=verbose).run(state)


def generate_problem(
    spec: ProblemSpecification | Mapping[str, Any],
    *,
    config: PipelineConfig | None = None,
    verbose: bool = False,
) -> PipelineState:
    """Generate one problem document from a complete specification.

    An incomplete or invalid specification yields a state paused in
    ``collecting_spec`` with ``next_question`` set.
    """
    config = config or PipelineConfig()
    state = PipelineState()
    if isinstance(spec, ProblemSpecification):
        state.spec = copy.deepcopy(spec)
    else:
        state.spec, state.validation_errors = spec_from_mapping(spec)
    state.missing_slots = state.spec.missing()
    state.is_complete = state.spec.is_complete()
    if not state.is_complete:
        state.next_question = SlotFillingEngine(config, use_model=False).next_question(state)
        return state
    return run_pipeline(state, config=config, verbose=verbose)


def continue_conversation(
    state: PipelineState | None,
    user_text: str,
    *,
    config: PipelineConfig | None = None,
    use_model: bool | None = None,
    verbose: bool = False,
) -> PipelineState:
    """Feed one user turn; generation starts as soon as the spec is complete."""
    config = config or PipelineConfig()
    if state is None:
        state = PipelineState()
    work = copy.deepcopy(state)
    if work.status is Status.FAILED and not work.spec.is_complete():
        # slot filling failed: resume collecting with the slots kept
        work.status = Status.COLLECTING_SPEC
        work.error = None
        work.error_kind = None
    elif work.status is not Status.COLLECTING_SPEC:
        # a finished request starts a new one in the same conversation
        conversation = work.conversation
        work = PipelineState(conversation=conversation)

    try:
        work = SlotFillingEngine(config, use_model=use_model).step(work, user_text)
    except GenerationServiceError as exc:
        failed = copy.deepcopy(state)
        failed.status = Status.FAILED
        failed.error = str(exc)
        failed.error_kind = exc.kind
        logger.warning("slot filling failed: %s", exc)
        return failed

    if not work.is_complete:
        return work
    return run_pipeline(work, config=config, verbose=verbose)


def generate_many(
    specs: Iterable[ProblemSpecification | Mapping[str, Any]],
    *,
    config: PipelineConfig | None = None,
    max_workers: int | None = None,
    verbose: bool = False,
) -> list[PipelineState]:
    """Run :func:`generate_problem` for each spec in parallel threads.

    Results keep the input order. Outbound calls stay bounded by
    ``config.max_concurrent_requests`` however many workers run.
    """
    config = config or PipelineConfig()
    items = list(specs)
    if not items:
        return []
    workers = max_workers or min(len(items), config.max_concurrent_requests)
    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        return list(
            pool.map(lambda s: generate_problem(s, config=config, verbose=verbose), items)
        )

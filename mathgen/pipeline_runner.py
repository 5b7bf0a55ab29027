"""State-machine runner for the generation pipeline."""
from __future__ import annotations

import copy
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable

from .config import PipelineConfig
from .errors import PipelineExhaustedError
from .pipeline_state import PipelineState, Status
from .pipeline_steps import _step_draft, _step_format, _step_revise, _step_verify

Stage = Callable[[PipelineState, PipelineConfig], PipelineState]
Predicate = Callable[[PipelineState, PipelineConfig], bool]
Action = Callable[[PipelineState, PipelineConfig], None]


# -- transition predicates ---------------------------------------------------

def spec_complete(state: PipelineState, config: PipelineConfig) -> bool:
    return state.spec.is_complete()


def has_draft(state: PipelineState, config: PipelineConfig) -> bool:
    return state.draft is not None


def verified(state: PipelineState, config: PipelineConfig) -> bool:
    return state.verification is not None and state.verification.is_valid


def can_revise(state: PipelineState, config: PipelineConfig) -> bool:
    return not verified(state, config) and state.revision_count < config.max_revisions


def exhausted(state: PipelineState, config: PipelineConfig) -> bool:
    return not verified(state, config) and state.revision_count >= config.max_revisions


def always(state: PipelineState, config: PipelineConfig) -> bool:
    return True


def has_markup(state: PipelineState, config: PipelineConfig) -> bool:
    return state.markup is not None


def restore_best_draft(state: PipelineState, config: PipelineConfig) -> None:
    """Fall back to the best-scoring draft and flag the exhaustion."""
    if state.best_draft is not None:
        state.draft = copy.deepcopy(state.best_draft)
    if state.best_verification is not None:
        state.verification = copy.deepcopy(state.best_verification)
    if PipelineExhaustedError.code not in state.warnings:
        state.warnings.append(PipelineExhaustedError.code)


@dataclass(frozen=True)
class Transition:
    when: Predicate
    target: Status
    action: Action | None = None


@dataclass(slots=True)
class _Graph:
    stages: dict[Status, Stage]
    transitions: dict[Status, list[Transition]] = field(default_factory=dict)


DEFAULT_GRAPH = _Graph(
    stages={
        Status.DRAFTING: _step_draft,
        Status.VERIFYING: _step_verify,
        Status.REVISING: _step_revise,
        Status.FORMATTING: _step_format,
    },
    transitions={
        Status.COLLECTING_SPEC: [Transition(spec_complete, Status.DRAFTING)],
        Status.DRAFTING: [Transition(has_draft, Status.VERIFYING)],
        Status.VERIFYING: [
            Transition(verified, Status.FORMATTING),
            Transition(can_revise, Status.REVISING),
            Transition(exhausted, Status.FORMATTING, restore_best_draft),
        ],
        Status.REVISING: [Transition(always, Status.VERIFYING)],
        Status.FORMATTING: [Transition(has_markup, Status.DONE)],
    },
)

_TERMINAL = (Status.DONE, Status.FAILED)


class _Runner:
    """Drive a :class:`PipelineState` through the graph until it settles.

    Each stage works on a deep copy; its result is committed only when the
    stage reports no error, so a failure returns the last good state.
    """

    def __init__(
        self,
        graph: _Graph = DEFAULT_GRAPH,
        *,
        config: PipelineConfig | None = None,
        verbose: bool = False,
    ) -> None:
        self.graph = graph
        self.config = config or PipelineConfig()
        self.verbose = verbose
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.INFO if verbose else logging.WARNING)

    def _fail(self, data: PipelineState, error: str, kind: str | None) -> PipelineState:
        data.status = Status.FAILED
        data.error = error
        data.error_kind = kind
        self.logger.warning("[mathgen] failed in %s: %s", kind or "pipeline", error)
        return data

    def _advance(self, data: PipelineState) -> Status | None:
        for transition in self.graph.transitions.get(data.status, []):
            if transition.when(data, self.config):
                if transition.action is not None:
                    transition.action(data, self.config)
                return transition.target
        return None

    def run(self, inputs: PipelineState) -> PipelineState:
        data = copy.deepcopy(inputs)
        attempts: Counter[Status] = Counter()
        while data.status not in _TERMINAL:
            stage = self.graph.stages.get(data.status)
            if stage is not None:
                attempts[data.status] += 1
                self.logger.info(
                    "[mathgen] state %s attempt %d", data.status.value, attempts[data.status]
                )
                result = stage(copy.deepcopy(data), self.config)
                if result.error is not None:
                    return self._fail(data, result.error, result.error_kind)
                data = result

            target = self._advance(data)
            if target is None:
                if data.status is Status.COLLECTING_SPEC:
                    # paused: waiting for the user to fill the remaining slots
                    return data
                return self._fail(data, f"no transition out of {data.status.value}", None)
            self.logger.info("[mathgen] %s -> %s", data.status.value, target.value)
            data.status = target

        if PipelineExhaustedError.code in data.warnings:
            self.logger.warning(
                "[mathgen] %s after %d revisions; best score %s",
                PipelineExhaustedError.code,
                data.revision_count,
                data.best_score,
            )
        return data

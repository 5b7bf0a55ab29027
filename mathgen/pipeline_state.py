from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from typing import Any

from .constants import REQUIRED_SLOTS


class Status(str, enum.Enum):
    COLLECTING_SPEC = "collecting_spec"
    DRAFTING = "drafting"
    VERIFYING = "verifying"
    REVISING = "revising"
    FORMATTING = "formatting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ProblemSpecification:
    """Slots describing the requested problem set; ``None`` means unset."""

    topic: str | None = None
    difficulty: str | None = None
    format: str | None = None
    count: int | None = None
    details: str = ""

    def missing(self) -> list[str]:
        return [name for name in REQUIRED_SLOTS if getattr(self, name) is None]

    def is_complete(self) -> bool:
        return not self.missing()


@dataclass
class ConversationTurn:
    role: str
    text: str


@dataclass
class SlotError:
    field: str
    message: str


@dataclass
class ProblemDraft:
    id: str = ""
    question: str = ""
    answer: str = ""
    explanation: str = ""
    visualization: dict[str, Any] | None = None

    def missing_fields(self) -> list[str]:
        return [
            name
            for name in ("id", "question", "answer", "explanation")
            if not str(getattr(self, name) or "").strip()
        ]


@dataclass
class VerificationResult:
    is_valid: bool = False
    overall_score: float = 0.0
    subscores: dict[str, float] = field(
        default_factory=lambda: {
            "accuracy": 0.0,
            "completeness": 0.0,
            "educational_value": 0.0,
        }
    )
    feedback: str = ""
    suggestions: list[str] = field(default_factory=list)


@dataclass
class PipelineState:
    """Typed container for everything one request carries through the pipeline."""

    # Inputs
    spec: ProblemSpecification = field(default_factory=ProblemSpecification)
    conversation: list[ConversationTurn] = field(default_factory=list)

    # Slot filling
    is_complete: bool = False
    next_question: str | None = None
    missing_slots: list[str] = field(default_factory=list)
    validation_errors: list[SlotError] = field(default_factory=list)

    # Generation
    draft: ProblemDraft | None = None
    verification: VerificationResult | None = None
    revision_count: int = 0
    revision_history: list[dict[str, Any]] = field(default_factory=list)
    best_draft: ProblemDraft | None = None
    best_verification: VerificationResult | None = None
    best_score: float | None = None

    # Output
    markup: str | None = None
    figure_script: str | None = None
    status: Status = Status.COLLECTING_SPEC

    # Error handling
    warnings: list[str] = field(default_factory=list)
    error: str | None = None
    error_kind: str | None = None

    def add_turn(self, role: str, text: str) -> None:
        self.conversation.append(ConversationTurn(role=role, text=text))

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["status"] = self.status.value
        return out

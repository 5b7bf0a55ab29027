"""Error taxonomy shared by the generation pipeline and the figure compiler."""
from __future__ import annotations

__all__ = [
    "MathGenError",
    "ExtractionError",
    "ValidationError",
    "GenerationServiceError",
    "RenderingError",
    "PipelineExhaustedError",
]


class MathGenError(Exception):
    """Base class for every error raised by :mod:`mathgen`."""


class ExtractionError(MathGenError):
    """No structured record could be recovered from generation output."""

    def __init__(self, message: str, snippet: str = "") -> None:
        super().__init__(message)
        self.snippet = snippet


class ValidationError(MathGenError):
    """A candidate slot value violated its domain."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class GenerationServiceError(MathGenError):
    """The text-generation service failed, timed out or returned nothing usable.

    ``kind`` is one of ``timeout``, ``auth``, ``empty``, ``malformed`` or
    ``service``.
    """

    KINDS = ("timeout", "auth", "empty", "malformed", "service")

    def __init__(self, kind: str, message: str) -> None:
        if kind not in self.KINDS:
            kind = "service"
        super().__init__(f"{kind}: {message}")
        self.kind = kind


class RenderingError(MathGenError):
    """A visualization could not be compiled into drawing instructions."""


class PipelineExhaustedError(MathGenError):
    """The revision budget ran out before verification passed.

    Never raised to callers; recorded as a warning on the final state.
    """

    code = "max_revisions_reached"

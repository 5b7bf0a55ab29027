"""Figure compiler, expression evaluator and markup helpers."""

from .expression import evaluate, to_number, to_pgfplots, quadratic_coefficients, substitute_math_literals
from .geometry import (
    anchor_for,
    display_range,
    distance,
    linear_regression,
    quadratic_roots,
    quadratic_vertex,
    y_intercept,
)
from .graph import render_preview
from .markup import assemble_document, escape_tex, strip_answer_leak, strip_preamble
from .normalize import normalize
from .tikz import emit

__all__ = [
    "evaluate",
    "to_number",
    "to_pgfplots",
    "quadratic_coefficients",
    "substitute_math_literals",
    "anchor_for",
    "display_range",
    "distance",
    "linear_regression",
    "quadratic_roots",
    "quadratic_vertex",
    "y_intercept",
    "render_preview",
    "assemble_document",
    "escape_tex",
    "strip_answer_leak",
    "strip_preamble",
    "normalize",
    "emit",
]

"""Public package interface for the math problem document generator.

Typical usage
-------------
>>> from mathgen import generate_problem
>>> state = generate_problem({"topic": "functions", "difficulty": "high",
...                           "format": "free-response", "count": 1})
>>> state.markup  # LaTeX document
"""
from importlib.metadata import version as _version  # type: ignore

from .config import PipelineConfig
from .pipeline import continue_conversation, generate_many, generate_problem, run_pipeline
from .pipeline_state import PipelineState, ProblemSpecification, Status

__all__ = [
    "generate_problem",
    "continue_conversation",
    "run_pipeline",
    "generate_many",
    "PipelineConfig",
    "PipelineState",
    "ProblemSpecification",
    "Status",
    "__version__",
]

try:
    __version__ = _version("mathgen")
except Exception:  # pragma: no cover – package not installed yet
    __version__ = "0.0.0"

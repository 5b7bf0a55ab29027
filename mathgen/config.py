"""Runtime configuration for the pipeline."""
from __future__ import annotations

import os
from dataclasses import dataclass

__all__ = ["PipelineConfig", "DEFAULT_MODEL"]

DEFAULT_MODEL = "gpt-4o-mini"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class PipelineConfig:
    """Knobs for one pipeline run.

    ``max_revisions`` bounds the verify/revise loop, ``json_max_retries``
    bounds re-asking a single agent for parseable output, and ``pass_score``
    is the minimum overall verification score accepted as valid.
    """

    max_revisions: int = 2
    json_max_retries: int = 3
    pass_score: int = 60
    request_timeout: float = 60.0
    max_concurrent_requests: int = 4
    model: str | None = None
    tex_agent: bool = False
    use_model_for_slots: bool = True

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Build a config from ``MATHGEN_*`` environment variables."""
        base = cls()
        return cls(
            max_revisions=_env_int("MATHGEN_MAX_REVISIONS", base.max_revisions),
            json_max_retries=_env_int("MATHGEN_JSON_RETRIES", base.json_max_retries),
            pass_score=_env_int("MATHGEN_PASS_SCORE", base.pass_score),
            request_timeout=_env_float("MATHGEN_REQUEST_TIMEOUT", base.request_timeout),
            max_concurrent_requests=_env_int(
                "MATHGEN_MAX_CONCURRENCY", base.max_concurrent_requests
            ),
            model=os.environ.get("MATHGEN_MODEL") or base.model,
            tex_agent=_env_bool("MATHGEN_TEX_AGENT", base.tex_agent),
            use_model_for_slots=_env_bool("MATHGEN_SLOT_MODEL", base.use_model_for_slots),
        )

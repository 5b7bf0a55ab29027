"""Minimal agent + runner over the OpenAI Responses API."""
from __future__ import annotations

from types import SimpleNamespace
from typing import Any, cast

import openai

from .config import DEFAULT_MODEL
from .errors import GenerationServiceError

__all__ = ["Agent", "Runner"]


class Agent:
    def __init__(
        self,
        name: str,
        instructions: str,
        model: str | None = None,
        temperature: float | None = None,
    ) -> None:
        self.name: str = name
        self.instructions: str = instructions
        self.model: str | None = model
        self.temperature: float | None = temperature

    def __repr__(self) -> str:
        return f"Agent(name={self.name!r}, model={self.model!r})"


class Runner:
    """Execute an :class:`Agent` synchronously and return its text output.

    Every failure of the service is raised as
    :class:`~mathgen.errors.GenerationServiceError` with a ``kind`` callers can
    branch on; an empty answer is a failure too. Tests monkeypatch
    :meth:`run_sync`.
    """

    @staticmethod
    def run_sync(
        agent: Any,
        input: Any,
        *,
        timeout: float | None = None,
        model: str | None = None,
    ) -> Any:  # pragma: no cover - exercised via mocks
        """Run *agent* on *input*; the result carries the text in ``final_output``."""
        kwargs: dict[str, Any] = {
            "model": model or getattr(agent, "model", None) or DEFAULT_MODEL,
            "input": cast(
                Any,
                [
                    {"role": "system", "content": getattr(agent, "instructions", "")},
                    {"role": "user", "content": str(input)},
                ],
            ),
        }
        temperature = getattr(agent, "temperature", None)
        if temperature is not None:
            kwargs["temperature"] = temperature

        try:
            client: Any = openai.OpenAI(timeout=timeout) if timeout else openai.OpenAI()
            resp: Any = client.responses.create(**kwargs)
        except openai.APITimeoutError as exc:
            raise GenerationServiceError("timeout", f"{agent.name}: {exc}") from exc
        except (openai.AuthenticationError, openai.PermissionDeniedError) as exc:
            raise GenerationServiceError("auth", f"{agent.name}: {exc}") from exc
        except openai.OpenAIError as exc:
            raise GenerationServiceError("service", f"{agent.name}: {exc}") from exc

        final_output = Runner._extract_output_text(resp)
        if not final_output.strip():
            raise GenerationServiceError("empty", f"{agent.name} returned no text")
        return SimpleNamespace(final_output=final_output)

    @staticmethod
    def _extract_output_text(resp: Any) -> str:
        """Best-effort extraction of textual output from a Responses object.

        Prefers ``resp.output_text``; otherwise walks ``resp.output`` collecting
        nested ``text``/``value``/``content`` strings. Returns ``""`` when no
        text is found.
        """
        consolidated = getattr(resp, "output_text", None)
        if isinstance(consolidated, str) and consolidated.strip():
            return consolidated

        texts: list[str] = []

        def _collect(obj: Any, depth: int = 0) -> None:
            if depth > 5 or obj is None:
                return
            if isinstance(obj, str):
                if obj.strip():
                    texts.append(obj)
                return
            if isinstance(obj, (list, tuple)):
                for it in obj:
                    _collect(it, depth + 1)
                return
            if isinstance(obj, dict):
                for key in ("text", "value", "content"):
                    if key in obj:
                        _collect(obj[key], depth + 1)
                return
            for attr in ("text", "value", "content"):
                val = getattr(obj, attr, None)
                if val is not None:
                    _collect(val, depth + 1)

        _collect(getattr(resp, "output", None))
        return "\n".join(texts).strip()

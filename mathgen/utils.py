"""Internal helpers for agent output and tolerant JSON handling."""
from __future__ import annotations

import json
import re
from typing import Any, Callable

import json5

# ---------------------------------------------------------------------------
# Generic agent output handling
# ---------------------------------------------------------------------------


def get_final_output(res: Any) -> str:  # noqa: ANN401 – generic return
    """Extract the best-guess textual payload from a runner response."""
    for attr in ("final_output", "output", "content"):
        if hasattr(res, attr):
            val = getattr(res, attr)
            if val is not None:
                return str(val)
    return str(res)


# ---------------------------------------------------------------------------
# JSON safety helpers
# ---------------------------------------------------------------------------

_INVISIBLE_RE = re.compile("[\u200b\u200c\u200d\u2060\ufeff]")
_FENCE_RE = re.compile(r"```[a-zA-Z0-9_-]*[ \t]*\n?(.*?)```", re.DOTALL)


def strip_invisible(text: str) -> str:
    return _INVISIBLE_RE.sub("", text)


def _extract_json_block(text: str) -> str:
    """Return the most likely JSON substring from *text*.

    The interior of the first fenced block wins, then the span from the first
    opening brace (or bracket, whichever comes first) to the last matching
    closer, then the whole text.
    """
    fenced = _FENCE_RE.search(text)
    if fenced and fenced.group(1).strip():
        return fenced.group(1).strip()
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if starts:
        start = min(starts)
        closer = "}" if text[start] == "{" else "]"
        end = text.rfind(closer)
        if end > start:
            return text[start : end + 1]
        return text[start:]
    return text


def _closers(text: str) -> str:
    """Return the quote and brackets needed to close *text*, innermost first."""
    stack: list[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append("}" if ch == "{" else "]")
        elif ch in "}]" and stack and stack[-1] == ch:
            stack.pop()
    return ('"' if in_string else "") + "".join(reversed(stack))


def _repair_json(text: str) -> str:
    """Attempt light-weight JSON repairs and return the adjusted string."""
    repaired = text
    # Only single quotes acting as string delimiters; apostrophes inside
    # double-quoted strings are left alone.
    repaired = re.sub(
        r"(?<![\w])'([^'\\]*(?:\\.[^'\\]*)*)'",
        r'"\1"',
        repaired,
    )
    repaired = re.sub(r"(?<![:\"'])//.*?(?=\n|$)", "", repaired)
    repaired = re.sub(r"/\*.*?\*/", "", repaired, flags=re.DOTALL)
    repaired = re.sub(r",\s*$", "", repaired.rstrip())
    repaired += _closers(repaired)
    repaired = re.sub(r",\s*(?=[}\]])", "", repaired)
    repaired = re.sub(r"\\([^\"\\/bfnrtu])", r"\\\\\1", repaired)
    return repaired


def _parsers() -> list[Callable[[str], Any]]:
    return [json.loads, json5.loads]


def safe_json(text: str) -> Any:
    """Best-effort JSON loader with tolerant parsing and repair attempts."""
    text = strip_invisible(text).strip()
    if not text:
        raise ValueError("Agent output was empty")

    original_snippet = text.replace("\n", " ")[:300]
    text = _extract_json_block(text)

    for parser in _parsers():
        try:
            return parser(text)
        except Exception:
            pass

    repaired = _repair_json(text)
    for parser in _parsers():
        try:
            return parser(repaired)
        except Exception:
            pass

    repaired_snippet = repaired.strip().replace("\n", " ")[:300]
    raise ValueError(
        "Agent output was not valid JSON even after repair. "
        f"Original snippet: {original_snippet}... Repaired snippet: {repaired_snippet}..."
    )

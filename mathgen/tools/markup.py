"""Text clean-up and LaTeX document assembly."""
from __future__ import annotations

import re
from typing import Any

from .. import constants as C

__all__ = [
    "object_to_text",
    "strip_code_fence",
    "strip_preamble",
    "strip_answer_leak",
    "escape_tex",
    "assemble_document",
]

_MATH_RE = re.compile(r"(\$\$.*?\$\$|\$[^$]*?\$|\\\(.*?\\\)|\\\[.*?\\\])", re.DOTALL)

_TEX_SPECIALS = {
    "\\": r"\textbackslash{}",
    "&": r"\&",
    "%": r"\%",
    "#": r"\#",
    "_": r"\_",
    "{": r"\{",
    "}": r"\}",
    "~": r"\textasciitilde{}",
    "^": r"\textasciicircum{}",
    "$": r"\$",
}

_UNICODE_MATH = {
    "²": "$^{2}$",
    "³": "$^{3}$",
    "π": r"$\pi$",
    "×": r"$\times$",
    "÷": r"$\div$",
    "≤": r"$\leq$",
    "≦": r"$\leqq$",
    "≥": r"$\geq$",
    "≧": r"$\geqq$",
    "±": r"$\pm$",
    "√": r"$\surd$",
}

_SPECIALS_RE = re.compile("|".join(re.escape(ch) for ch in [*_TEX_SPECIALS, *_UNICODE_MATH]))

_PREAMBLE_PATTERNS = (
    re.compile(r"\\documentclass(\[.*?\])?\{.*?\}"),
    re.compile(r"\\usepackage(\[.*?\])?\{.*?\}"),
    re.compile(r"\\begin\{document\}"),
    re.compile(r"\\end\{document\}"),
    re.compile(r"\\(?:sub)?section\*?\{.*?\}"),
)

# A line that opens an answer or explanation block, e.g. "解答：" or "Answer:".
_ANSWER_LEAK_RE = re.compile(
    r"^[ \t]*[【\[(（]?(?:解答|答え|解説|答|正解|Answer|Solution|Explanation)[】\])）]?[ \t]*[:：]",
    re.MULTILINE | re.IGNORECASE,
)

_PLACEHOLDER_RE = re.compile(r"\{\{(PROBLEM_TEXT|ANSWER_TEXT|EXPLANATION_TEXT|FIGURE_CODE)\}\}")


def object_to_text(obj: Any) -> str:
    """Render a structured answer or explanation as readable text."""
    if isinstance(obj, str):
        return obj
    if isinstance(obj, list):
        return "\n".join(f"{i + 1}. {object_to_text(item)}" for i, item in enumerate(obj))
    if not isinstance(obj, dict):
        return "" if obj is None else str(obj)
    steps = obj.get("steps")
    if isinstance(steps, list):
        return "\n\n".join(f"ステップ{i + 1}: {object_to_text(step)}" for i, step in enumerate(steps))
    process = obj.get("process")
    if isinstance(process, list):
        return "\n\n".join(f"{i + 1}. {object_to_text(item)}" for i, item in enumerate(process))
    parts: list[str] = []
    for key, value in obj.items():
        if isinstance(value, list):
            items = "\n".join(f"  {i + 1}. {object_to_text(item)}" for i, item in enumerate(value))
            parts.append(f"{key}:\n{items}")
        elif isinstance(value, dict):
            parts.append(f"{key}:\n{object_to_text(value)}")
        else:
            parts.append(f"{key}: {value}")
    return "\n\n".join(parts)


def strip_code_fence(text: str) -> str:
    text = re.sub(r"^\s*```[a-zA-Z]*\s*", "", text)
    return re.sub(r"\s*```\s*$", "", text)


def strip_preamble(text: str) -> str:
    """Remove document-level commands so *text* can be embedded in the template."""
    for pattern in _PREAMBLE_PATTERNS:
        text = pattern.sub("", text)
    return text.strip()


def strip_answer_leak(question: str) -> str:
    """Cut the question at the first line that starts an answer or explanation."""
    match = _ANSWER_LEAK_RE.search(question)
    if match is None:
        return question.strip()
    return question[: match.start()].strip()


def _escape_plain(segment: str) -> str:
    def _sub(match: re.Match[str]) -> str:
        ch = match.group(0)
        return _TEX_SPECIALS.get(ch) or _UNICODE_MATH[ch]

    escaped = _SPECIALS_RE.sub(_sub, segment)
    escaped = re.sub(r"[ \t]*\n[ \t]*\n\s*", "\x00", escaped)
    escaped = re.sub(r"[ \t]*\n[ \t]*", r" \\\\\n", escaped)
    return escaped.replace("\x00", "\n\n")


def escape_tex(text: str) -> str:
    """Escape TeX specials outside math mode; ``$...$`` and ``\\(...\\)`` pass through."""
    if not text:
        return ""
    parts = _MATH_RE.split(text.strip())
    out: list[str] = []
    for idx, part in enumerate(parts):
        # split() with one capture group alternates plain/math
        out.append(part if idx % 2 else _escape_plain(part))
    return "".join(out).strip()


def assemble_document(
    problem: str,
    answer: str,
    explanation: str,
    figure: str = "",
    template: str = C.DOCUMENT_TEMPLATE,
) -> str:
    """Fill the template's placeholders in a single pass."""
    values = {
        "PROBLEM_TEXT": problem,
        "ANSWER_TEXT": answer,
        "EXPLANATION_TEXT": explanation,
        "FIGURE_CODE": figure,
    }
    return _PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], template)

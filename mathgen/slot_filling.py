"""Conversational collection of the problem specification.

Each user turn is first mined deterministically (keyword vocabularies, count
patterns, explicit deferral). The SlotFillingAgent is consulted only when a
required slot is still open afterwards, and its candidates pass the same
validation as local ones. The next question is always chosen locally.
"""
from __future__ import annotations

import logging
import re
from dataclasses import asdict
from typing import Any

from . import constants as C
from .agents import SlotFillingAgent
from .config import PipelineConfig
from .errors import GenerationServiceError, ValidationError
from .extraction import normalize_slot_payload
from .pipeline_helpers import invoke_agent, to_payload
from .pipeline_state import PipelineState, ProblemSpecification, SlotError

__all__ = [
    "SlotFillingEngine",
    "match_topic",
    "match_difficulty",
    "match_format",
    "parse_count",
    "kanji_to_int",
    "is_deferral",
    "validate_slot",
]

logger = logging.getLogger(__name__)

_FULLWIDTH = str.maketrans("０１２３４５６７８９．－", "0123456789.-")
_NUMBER = r"[-−]?[0-9０-９]+(?:[.．][0-9０-９]+)?"
# ordinals (1つ目) and object counts (二つの円) are not problem counts
_COUNTER = "|".join(
    rf"{w}(?!の(?!問題))" if w in ("個", "つ") else w for w in C.COUNTING_WORDS
)
_COUNTER = rf"(?:{_COUNTER})(?!目)"
_COUNTER_EN = "|".join(C.COUNTING_WORDS_EN)
_KANJI = "".join([*C.KANJI_DIGITS, *C.KANJI_UNITS])

_COUNT_PATTERNS = (
    re.compile(rf"問題数\s*(?:は|を|:|：)?\s*({_NUMBER})"),
    re.compile(rf"({_NUMBER})\s*(?:{_COUNTER})"),
    re.compile(rf"(?<![\w.])({_NUMBER})\s*(?:{_COUNTER_EN})\b", re.IGNORECASE),
)
_KANJI_COUNT_RE = re.compile(rf"([{_KANJI}]+)\s*(?:{_COUNTER})")
_WORD_COUNT_RE = re.compile(
    rf"\b({'|'.join(C.ENGLISH_NUMBERS)})\s+(?:{_COUNTER_EN})\b", re.IGNORECASE
)
_BARE_NUMBER_RE = re.compile(rf"^\s*({_NUMBER})\s*$")


def _keyword_hits(text: str, table: dict[str, tuple[str, ...]]) -> list[tuple[str, str]]:
    lowered = text.lower()
    hits: list[tuple[str, str]] = []
    for key, keywords in table.items():
        for kw in keywords:
            kw_l = kw.lower()
            if kw_l.isascii():
                if re.search(rf"(?<![a-z]){re.escape(kw_l)}(?![a-z])", lowered):
                    hits.append((kw_l, key))
            elif kw_l in lowered:
                hits.append((kw_l, key))
    return hits


def _match_keyword(text: str, table: dict[str, tuple[str, ...]]) -> str | None:
    hits = _keyword_hits(text, table)
    if not hits:
        return None
    return max(hits, key=lambda hit: len(hit[0]))[1]


def match_topic(text: str) -> str | None:
    return _match_keyword(text, C.TOPIC_KEYWORDS)


def match_difficulty(text: str) -> str | None:
    return _match_keyword(text, C.DIFFICULTY_KEYWORDS)


def match_format(text: str) -> str | None:
    return _match_keyword(text, C.FORMAT_KEYWORDS)


def is_deferral(text: str) -> bool:
    lowered = text.lower()
    for word in C.DEFERRAL_WORDS:
        if word.isascii():
            if re.search(rf"(?<![a-z]){re.escape(word)}(?![a-z])", lowered):
                return True
        elif word in lowered:
            return True
    return False


def kanji_to_int(text: str) -> int:
    """Parse a kanji numeral such as 三, 十 or 十五."""
    total = 0
    num = 0
    for ch in text:
        if ch in C.KANJI_UNITS:
            total += (num or 1) * C.KANJI_UNITS[ch]
            num = 0
        elif ch in C.KANJI_DIGITS:
            num = num * 10 + C.KANJI_DIGITS[ch]
        else:
            raise ValueError(f"not a kanji numeral: {text!r}")
    return total + num


def _to_count(raw: str) -> int | float:
    text = raw.translate(_FULLWIDTH).replace("−", "-")
    value = float(text)
    return int(value) if value.is_integer() and "." not in text else value


def parse_count(text: str) -> tuple[int | float | None, bool]:
    """Return ``(number, explicit)`` for a count stated in *text*.

    The number is returned unvalidated; ``explicit`` is ``False`` when no
    count was found at all.
    """
    for pattern in _COUNT_PATTERNS:
        m = pattern.search(text)
        if m:
            return _to_count(m.group(1)), True
    m = _KANJI_COUNT_RE.search(text)
    if m:
        try:
            return kanji_to_int(m.group(1)), True
        except ValueError:
            pass
    m = _WORD_COUNT_RE.search(text)
    if m:
        return C.ENGLISH_NUMBERS[m.group(1).lower()], True
    m = _BARE_NUMBER_RE.match(text)
    if m:
        return _to_count(m.group(1)), True
    return None, False


def validate_slot(field: str, value: Any) -> Any:
    """Return the canonical value for *field* or raise :class:`ValidationError`."""
    if field == "count":
        if isinstance(value, bool):
            raise ValidationError("count", C.VALIDATION_MESSAGES["count"])
        if isinstance(value, str):
            try:
                value = _to_count(value.strip())
            except ValueError:
                count, found = parse_count(value)
                if not found:
                    raise ValidationError("count", C.VALIDATION_MESSAGES["count"])
                value = count
        if isinstance(value, float):
            if not value.is_integer():
                raise ValidationError("count", C.VALIDATION_MESSAGES["count"])
            value = int(value)
        if not isinstance(value, int) or not C.COUNT_MIN <= value <= C.COUNT_MAX:
            raise ValidationError("count", C.VALIDATION_MESSAGES["count"])
        return value
    if field == "details":
        return "" if value is None else str(value)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field, C.VALIDATION_MESSAGES.get(field, f"invalid {field}"))
    text = value.strip()
    if field == "topic":
        canonical = text if text in C.TOPIC_KEYWORDS else match_topic(text)
    elif field == "difficulty":
        canonical = text if text in C.DIFFICULTIES else match_difficulty(text)
    elif field == "format":
        canonical = text if text in C.FORMATS else match_format(text)
    else:
        raise ValidationError(field, f"unknown slot {field!r}")
    if canonical is None:
        raise ValidationError(field, C.VALIDATION_MESSAGES[field])
    return canonical


class SlotFillingEngine:
    """Advance a :class:`PipelineState` by one user turn."""

    def __init__(self, config: PipelineConfig | None = None, *, use_model: bool | None = None) -> None:
        self.config = config or PipelineConfig()
        self.use_model = self.config.use_model_for_slots if use_model is None else use_model

    # -- local extraction -------------------------------------------------

    def _local_candidates(self, text: str, asked: str | None) -> tuple[dict[str, Any], list[SlotError]]:
        candidates: dict[str, Any] = {}
        errors: list[SlotError] = []
        topic = match_topic(text)
        if topic:
            candidates["topic"] = topic
        difficulty = match_difficulty(text)
        if difficulty:
            candidates["difficulty"] = difficulty
        elif any(kw in text.lower() for kw in C.UNSUPPORTED_DIFFICULTY_KEYWORDS):
            errors.append(SlotError("difficulty", C.VALIDATION_MESSAGES["difficulty"]))
        fmt = match_format(text)
        if fmt:
            candidates["format"] = fmt
        count, explicit = parse_count(text)
        if explicit:
            candidates["count"] = count
        if asked in C.DEFAULTS and asked not in candidates and is_deferral(text):
            candidates[asked] = C.DEFAULTS[asked]
        return candidates, errors

    @staticmethod
    def _merge(spec: ProblemSpecification, candidates: dict[str, Any], errors: list[SlotError], *, overwrite: bool) -> None:
        for field in C.REQUIRED_SLOTS:
            if field not in candidates or candidates[field] in (None, ""):
                continue
            if not overwrite and getattr(spec, field) is not None:
                continue
            try:
                setattr(spec, field, validate_slot(field, candidates[field]))
            except ValidationError as exc:
                if not any(e.field == field for e in errors):
                    errors.append(SlotError(field, exc.message))

    # -- model fallback ---------------------------------------------------

    def _ask_model(self, state: PipelineState) -> dict[str, Any] | None:
        payload = to_payload(
            {
                "chat_history": [{"role": t.role, "content": t.text} for t in state.conversation],
                "problem_spec": asdict(state.spec),
                "missing_slots": state.spec.missing(),
            }
        )
        record, err = invoke_agent(SlotFillingAgent, payload, config=self.config)
        if isinstance(err, GenerationServiceError):
            raise err
        if err is not None:
            logger.warning("slot filling output unusable: %s", err)
            return None
        return normalize_slot_payload(record)

    # -- public -----------------------------------------------------------

    def next_question(self, state: PipelineState) -> str | None:
        missing = state.spec.missing()
        if not missing:
            return None
        prefix = "".join(dict.fromkeys(e.message for e in state.validation_errors))
        return prefix + C.SLOT_QUESTIONS[missing[0]]

    def step(self, state: PipelineState, user_text: str) -> PipelineState:
        """Consume one user turn and decide what to ask next."""
        text = (user_text or "").strip()
        missing_before = state.spec.missing()
        asked = missing_before[0] if missing_before else None

        state.add_turn("user", text)
        if text:
            state.spec.details = f"{state.spec.details} {text}".strip()

        candidates, errors = self._local_candidates(text, asked)
        self._merge(state.spec, candidates, errors, overwrite=True)
        logger.info("slot candidates from turn: %s", candidates)

        if not state.spec.is_complete() and self.use_model:
            record = self._ask_model(state)
            if record is None:
                state.validation_errors = errors
                state.missing_slots = state.spec.missing()
                state.is_complete = False
                state.next_question = C.FALLBACK_QUESTION
                state.add_turn("assistant", C.FALLBACK_QUESTION)
                return state
            self._merge(state.spec, record["problem_spec"], errors, overwrite=False)

        state.validation_errors = errors
        state.missing_slots = state.spec.missing()
        state.is_complete = state.spec.is_complete()
        state.next_question = self.next_question(state)
        state.add_turn("assistant", state.next_question or C.COMPLETE_MESSAGE)
        return state

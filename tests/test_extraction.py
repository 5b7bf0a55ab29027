from __future__ import annotations

import pytest

from mathgen.errors import ExtractionError
from mathgen.extraction import _repair_payload, extract, normalize_slot_payload

RECORD = {"id": "p1", "question": "2+3は？", "answer": "5"}


@pytest.mark.parametrize(
    "raw",
    [
        '{"id": "p1", "question": "2+3は？", "answer": "5"}',
        'Here you go:\n```json\n{"id": "p1", "question": "2+3は？", "answer": "5"}\n```\nThanks!',
        'The problem is {"id": "p1", "question": "2+3は？", "answer": "5"} as requested.',
        "```\n{'id': 'p1', 'question': '2+3は？', 'answer': '5',}\n```",
    ],
)
def test_extract_same_record_from_any_wrapping(raw: str) -> None:
    assert extract(raw) == RECORD


def test_extract_array() -> None:
    assert extract('[{"question": "a"}, {"question": "b"}]') == [
        {"question": "a"},
        {"question": "b"},
    ]


def test_extract_failure_raises_with_snippet() -> None:
    with pytest.raises(ExtractionError) as exc:
        extract("I could not generate anything useful.")
    assert exc.value.snippet.startswith("I could not")


def test_extract_recovers_spec_from_broken_payload() -> None:
    raw = (
        '{"problem_spec": {"topic": "functions", "difficulty": "high"}, '
        '"chat_history": [{"role": "user", "content": "hi"}], '
        '"next_question": "形式は"?? broken'
    )
    out = extract(raw)
    assert out["problem_spec"] == {"topic": "functions", "difficulty": "high"}
    assert out["chat_history"] == [{"role": "user", "content": "hi"}]


def test_repair_payload_reports_unrecovered_parts() -> None:
    out = _repair_payload('"problem_spec": {"topic": "geometry"} ... "chat_history": oops')
    assert out is not None
    assert out["problem_spec"] == {"topic": "geometry"}
    assert out["chat_history"] == []
    assert out["is_complete"] is False
    assert out["missing_slots"] == ["difficulty", "format", "count"]
    assert out["unrecovered"] == ["chat_history"]


def test_repair_payload_nothing_recoverable() -> None:
    assert _repair_payload("no payload here") is None


def test_normalize_slot_payload_fills_defaults() -> None:
    out = normalize_slot_payload({"topic": "geometry", "is_complete": True})
    assert out["problem_spec"] == {
        "topic": "geometry",
        "difficulty": None,
        "format": None,
        "count": None,
        "details": "",
    }
    assert out["is_complete"] is False
    assert out["missing_slots"] == ["difficulty", "format", "count"]
    assert out["chat_history"] == []


def test_normalize_slot_payload_non_dict() -> None:
    out = normalize_slot_payload(["nope"])
    assert out["missing_slots"] == ["topic", "difficulty", "format", "count"]

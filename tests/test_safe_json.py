from __future__ import annotations

import pytest

from mathgen.utils import safe_json, strip_invisible


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("{'count': 3}", {"count": 3}),
        ('{"count": 3,}', {"count": 3}),
        ('{"count": 3', {"count": 3}),
        ("{'count': 3,", {"count": 3}),
        ('{"points": [[0, 0], [1, {"x": 2', {"points": [[0, 0], [1, {"x": 2}]]}),
        ('{"topic": "関数", // 単元\n"count": 2}', {"topic": "関数", "count": 2}),
    ],
)
def test_safe_json_repairs(raw: str, expected: object) -> None:
    assert safe_json(raw) == expected


def test_safe_json_unterminated_string() -> None:
    assert safe_json('{"question": "次の値を求めよ') == {"question": "次の値を求めよ"}


def test_safe_json_keeps_urls_and_apostrophes() -> None:
    assert safe_json('{"src": "https://example.com/x"}') == {"src": "https://example.com/x"}
    assert safe_json("{'text': \"it's a parabola\"}") == {"text": "it's a parabola"}


def test_safe_json_prefers_fenced_block() -> None:
    raw = '以下が問題です。\n```json\n{"id": "p1"}\n```\n補足 {"id": "ignored"}'
    assert safe_json(raw) == {"id": "p1"}


def test_safe_json_bare_array_in_prose() -> None:
    assert safe_json('Here you go: [{"id": "a"}, {"id": "b"}] done') == [{"id": "a"}, {"id": "b"}]


def test_safe_json_invisible_characters() -> None:
    assert safe_json("\ufeff{\"a\": 1\u200b}") == {"a": 1}
    assert strip_invisible("a\u200db\u2060") == "ab"


def test_safe_json_error_message() -> None:
    with pytest.raises(ValueError) as exc:
        safe_json("no structure here")
    assert "Original snippet: no structure here" in str(exc.value)


def test_safe_json_empty() -> None:
    with pytest.raises(ValueError):
        safe_json("   ")

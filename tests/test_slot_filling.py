from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest

import mathgen.pipeline as pipeline
from mathgen import constants as C
from mathgen.config import PipelineConfig
from mathgen.errors import GenerationServiceError, ValidationError
from mathgen.pipeline_state import PipelineState
from mathgen.slot_filling import (
    SlotFillingEngine,
    is_deferral,
    kanji_to_int,
    match_difficulty,
    match_topic,
    parse_count,
    validate_slot,
)


def _engine(**kwargs: Any) -> SlotFillingEngine:
    return SlotFillingEngine(PipelineConfig(), use_model=False, **kwargs)


def test_high_school_functions_asks_for_format() -> None:
    state = _engine().step(PipelineState(), "高校生向けの関数の問題")
    assert state.spec.difficulty == "high"
    assert state.spec.topic == "functions"
    assert state.is_complete is False
    assert state.missing_slots == ["format", "count"]
    assert state.next_question == C.SLOT_QUESTIONS["format"]
    assert [t.role for t in state.conversation] == ["user", "assistant"]


def test_out_of_range_count_is_rejected_and_restated() -> None:
    state = _engine().step(PipelineState(), "15問お願いします")
    assert state.spec.count is None
    assert [(e.field, e.message) for e in state.validation_errors] == [
        ("count", C.VALIDATION_MESSAGES["count"])
    ]
    assert "1〜10" in state.validation_errors[0].message
    assert state.next_question is not None
    assert state.next_question.startswith(C.VALIDATION_MESSAGES["count"])


def test_full_spec_in_one_turn_completes() -> None:
    state = _engine().step(PipelineState(), "中学生向けの図形の記述式問題を3問")
    assert (state.spec.topic, state.spec.difficulty, state.spec.format, state.spec.count) == (
        "geometry",
        "middle",
        "free-response",
        3,
    )
    assert state.is_complete
    assert state.next_question is None
    assert state.conversation[-1].text == C.COMPLETE_MESSAGE


def test_turns_accumulate_and_keep_valid_slots() -> None:
    engine = _engine()
    state = engine.step(PipelineState(), "確率の問題を作って")
    state = engine.step(state, "小学生")
    state = engine.step(state, "20問")
    assert state.spec.topic == "probability_statistics"
    assert state.spec.difficulty == "elementary"
    assert state.spec.count is None
    state = engine.step(state, "選択式で5問")
    assert state.spec.format == "multiple-choice"
    assert state.spec.count == 5
    assert state.is_complete
    assert state.spec.details == "確率の問題を作って 小学生 20問 選択式で5問"


def test_deferral_fills_only_the_asked_slot() -> None:
    engine = _engine()
    state = engine.step(PipelineState(), "何でもいいです")
    assert state.spec.topic == C.DEFAULTS["topic"]
    assert state.spec.difficulty is None
    assert state.next_question == C.SLOT_QUESTIONS["difficulty"]
    state = engine.step(state, "おまかせ")
    assert state.spec.difficulty == C.DEFAULTS["difficulty"]


def test_unsupported_grade_records_error() -> None:
    state = _engine().step(PipelineState(), "大学生向けの微分")
    assert state.spec.topic == "calculus"
    assert state.spec.difficulty is None
    assert [e.field for e in state.validation_errors] == ["difficulty"]
    assert state.next_question == C.VALIDATION_MESSAGES["difficulty"] + C.SLOT_QUESTIONS["difficulty"]


@pytest.mark.parametrize(
    "text, expected",
    [
        ("3問", (3, True)),
        ("３問ください", (3, True)),
        ("問題数は4", (4, True)),
        ("五問", (5, True)),
        ("十問", (10, True)),
        ("十五問", (15, True)),
        ("three problems", (3, True)),
        ("2 questions", (2, True)),
        ("7", (7, True)),
        ("2.5問", (2.5, True)),
        ("二次関数の問題", (None, False)),
        ("関数", (None, False)),
        ("二つの円の問題", (None, False)),
        ("1つ目の問題を易しく", (None, False)),
        ("2問目", (None, False)),
        ("3つ作って", (3, True)),
        ("三つの問題", (3, True)),
        ("5個", (5, True)),
    ],
)
def test_parse_count(text: str, expected: tuple[Any, bool]) -> None:
    assert parse_count(text) == expected


def test_kanji_to_int() -> None:
    assert kanji_to_int("三") == 3
    assert kanji_to_int("十") == 10
    assert kanji_to_int("二十") == 20
    assert kanji_to_int("百") == 100


@pytest.mark.parametrize("value", [0, 11, 2.5, -1, True, "many"])
def test_count_domain(value: Any) -> None:
    with pytest.raises(ValidationError):
        validate_slot("count", value)


def test_validate_slot_canonicalizes() -> None:
    assert validate_slot("count", "3") == 3
    assert validate_slot("count", 4.0) == 4
    assert validate_slot("difficulty", "高校生") == "high"
    assert validate_slot("format", "multiple choice") == "multiple-choice"
    assert validate_slot("topic", "三角関数") == "trigonometry"
    with pytest.raises(ValidationError):
        validate_slot("difficulty", "大学生")


def test_keyword_matching() -> None:
    assert match_topic("三角関数のグラフ") == "trigonometry"
    assert match_topic("highlight the area") == "geometry"
    assert match_difficulty("highlight") is None
    assert is_deferral("any is fine")
    assert not is_deferral("many problems")


def test_model_fills_remaining_slots(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []

    def mock_run_sync(agent: Any, input: Any, **kwargs: Any) -> SimpleNamespace:
        calls.append(agent.name)
        return SimpleNamespace(
            final_output=(
                '{"problem_spec": {"topic": "sequences", "difficulty": "大学生", '
                '"format": "計算問題", "count": 2, "details": ""}, "chat_history": []}'
            )
        )

    monkeypatch.setattr(pipeline.AgentsRunner, "run_sync", mock_run_sync)
    engine = SlotFillingEngine(PipelineConfig(), use_model=True)
    state = engine.step(PipelineState(), "高校生向けに何か作って")
    assert calls == ["SlotFillingAgent"]
    # local value kept, invalid model value ignored
    assert state.spec.difficulty == "high"
    assert state.spec.topic == "sequences"
    assert state.spec.format == "computation"
    assert state.spec.count == 2
    assert state.is_complete


def test_model_not_called_when_local_extraction_completes(monkeypatch: pytest.MonkeyPatch) -> None:
    def mock_run_sync(agent: Any, input: Any, **kwargs: Any) -> SimpleNamespace:
        raise AssertionError("model should not be consulted")

    monkeypatch.setattr(pipeline.AgentsRunner, "run_sync", mock_run_sync)
    state = SlotFillingEngine(PipelineConfig(), use_model=True).step(
        PipelineState(), "高校生 数列 計算問題 2問"
    )
    assert state.is_complete


def test_unparseable_model_output_uses_fallback_question(monkeypatch: pytest.MonkeyPatch) -> None:
    def mock_run_sync(agent: Any, input: Any, **kwargs: Any) -> SimpleNamespace:
        return SimpleNamespace(final_output="Sorry, I cannot help with that.")

    monkeypatch.setattr(pipeline.AgentsRunner, "run_sync", mock_run_sync)
    state = SlotFillingEngine(PipelineConfig(json_max_retries=2), use_model=True).step(
        PipelineState(), "こんにちは"
    )
    assert state.next_question == C.FALLBACK_QUESTION
    assert state.is_complete is False


def test_service_error_propagates(monkeypatch: pytest.MonkeyPatch) -> None:
    def mock_run_sync(agent: Any, input: Any, **kwargs: Any) -> SimpleNamespace:
        raise GenerationServiceError("timeout", "too slow")

    monkeypatch.setattr(pipeline.AgentsRunner, "run_sync", mock_run_sync)
    with pytest.raises(GenerationServiceError) as exc:
        SlotFillingEngine(PipelineConfig(), use_model=True).step(PipelineState(), "こんにちは")
    assert exc.value.kind == "timeout"

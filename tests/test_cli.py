import json
import logging
from pathlib import Path
from typing import Any

import pytest

from mathgen import cli
from mathgen.pipeline_state import PipelineState, Status


@pytest.fixture(autouse=True)
def _restore_pkg_logger() -> Any:
    pkg_logger = logging.getLogger("mathgen")
    handlers = pkg_logger.handlers[:]
    level = pkg_logger.level
    propagate = pkg_logger.propagate
    yield
    for h in pkg_logger.handlers[len(handlers):]:
        pkg_logger.removeHandler(h)
    pkg_logger.setLevel(level)
    pkg_logger.propagate = propagate


def test_figure_demo_needs_no_api_key(monkeypatch: pytest.MonkeyPatch, capsys: Any) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    cli.main(["--figure-demo"])
    out = capsys.readouterr().out
    assert "\\begin{tikzpicture}" in out
    assert "\\begin{axis}" in out


def test_missing_api_key_exits(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(SystemExit):
        cli.main(["--demo"])


def test_conflicting_modes_exit(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "test")
    with pytest.raises(SystemExit):
        cli.main(["--demo", "高校生向けの関数"])


def test_no_mode_exits(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "test")
    with pytest.raises(SystemExit) as exc:
        cli.main([])
    assert "provide --spec" in str(exc.value.code)


def test_spec_file_and_outputs(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "test")
    spec_path = tmp_path / "spec.json"
    spec_path.write_text(json.dumps({"topic": "geometry", "difficulty": "middle"}), "utf-8")
    seen: dict[str, Any] = {}

    def fake_generate_problem(spec: Any, **kwargs: Any) -> PipelineState:
        seen["spec"] = spec
        seen["config"] = kwargs["config"]
        return PipelineState(status=Status.DONE, markup="\\documentclass{article}")

    monkeypatch.setattr(cli, "generate_problem", fake_generate_problem)
    tex_out = tmp_path / "out.tex"
    json_out = tmp_path / "out.json"
    cli.main(
        ["--spec", str(spec_path), "--max-revisions", "5", "--tex-out", str(tex_out), "--out", str(json_out)]
    )
    assert seen["spec"] == {"topic": "geometry", "difficulty": "middle"}
    assert seen["config"].max_revisions == 5
    assert tex_out.read_text("utf-8") == "\\documentclass{article}"
    assert json.loads(json_out.read_text("utf-8"))["status"] == "done"


def test_failed_run_exits_nonzero(monkeypatch: pytest.MonkeyPatch, capsys: Any) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "test")

    def fake_generate_problem(*args: Any, **kwargs: Any) -> PipelineState:
        return PipelineState(status=Status.FAILED, error="timeout: slow", error_kind="timeout")

    monkeypatch.setattr(cli, "generate_problem", fake_generate_problem)
    with pytest.raises(SystemExit) as exc:
        cli.main(["--demo"])
    assert exc.value.code == 1
    assert "Generation failed (timeout)" in capsys.readouterr().err


def test_chat_loop_until_complete(monkeypatch: pytest.MonkeyPatch, capsys: Any) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "test")
    answers = iter(["高校生向けの関数の問題", "記述式で2問"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
    turns: list[str] = []

    def fake_continue(state: Any, text: str, **kwargs: Any) -> PipelineState:
        turns.append(text)
        if len(turns) == 1:
            return PipelineState(next_question="形式は？")
        return PipelineState(status=Status.DONE, markup="doc")

    monkeypatch.setattr(cli, "continue_conversation", fake_continue)
    cli.main(["--chat"])
    out = capsys.readouterr().out
    assert turns == ["高校生向けの関数の問題", "記述式で2問"]
    assert "形式は？" in out
    assert '"status":"done"' in out

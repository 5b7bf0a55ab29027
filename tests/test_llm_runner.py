from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import httpx
import openai
import pytest

from mathgen import llm
from mathgen.errors import GenerationServiceError

AGENT = llm.Agent(name="EchoAgent", instructions="echo", model="test-model", temperature=0.1)


class DummyClient:
    def __init__(self, resp: Any = None, exc: Exception | None = None) -> None:
        self.calls: list[dict[str, Any]] = []
        self._resp = resp
        self._exc = exc
        self.responses = SimpleNamespace(create=self._create)

    def _create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self._exc is not None:
            raise self._exc
        return self._resp


def _install(monkeypatch: pytest.MonkeyPatch, client: DummyClient) -> None:
    monkeypatch.setattr(llm.openai, "OpenAI", lambda **kwargs: client)


def test_run_sync_returns_output_text(monkeypatch: pytest.MonkeyPatch) -> None:
    client = DummyClient(SimpleNamespace(output_text='{"ok": true}'))
    _install(monkeypatch, client)
    res = llm.Runner.run_sync(AGENT, "hello", timeout=5)
    assert res.final_output == '{"ok": true}'
    call = client.calls[0]
    assert call["model"] == "test-model"
    assert call["temperature"] == 0.1
    assert call["input"][0] == {"role": "system", "content": "echo"}
    assert call["input"][1] == {"role": "user", "content": "hello"}


def test_model_override(monkeypatch: pytest.MonkeyPatch) -> None:
    client = DummyClient(SimpleNamespace(output_text="x"))
    _install(monkeypatch, client)
    llm.Runner.run_sync(AGENT, "hello", model="other-model")
    assert client.calls[0]["model"] == "other-model"


def test_walks_nested_output() -> None:
    resp = SimpleNamespace(
        output_text="",
        output=[SimpleNamespace(content=[SimpleNamespace(text="first"), {"text": "second"}])],
    )
    assert llm.Runner._extract_output_text(resp) == "first\nsecond"
    assert llm.Runner._extract_output_text(SimpleNamespace()) == ""


def test_empty_output_is_service_error(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, DummyClient(SimpleNamespace(output_text="  ", output=[])))
    with pytest.raises(GenerationServiceError) as exc:
        llm.Runner.run_sync(AGENT, "hello")
    assert exc.value.kind == "empty"


@pytest.mark.parametrize(
    "error, kind",
    [
        (openai.APITimeoutError(request=httpx.Request("POST", "https://api.openai.com/v1/responses")), "timeout"),
        (openai.OpenAIError("boom"), "service"),
    ],
)
def test_errors_are_classified(monkeypatch: pytest.MonkeyPatch, error: Exception, kind: str) -> None:
    _install(monkeypatch, DummyClient(exc=error))
    with pytest.raises(GenerationServiceError) as exc:
        llm.Runner.run_sync(AGENT, "hello")
    assert exc.value.kind == kind
    assert "EchoAgent" in str(exc.value)


def test_unknown_kind_becomes_service() -> None:
    assert GenerationServiceError("weird", "x").kind == "service"

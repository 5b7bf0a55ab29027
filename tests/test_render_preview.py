from pathlib import Path
from typing import Any

import pytest

from mathgen.tools.graph import render_preview
from mathgen.tools.normalize import normalize


def test_render_preview_headless_uses_agg(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DISPLAY", raising=False)
    monkeypatch.delenv("MPLBACKEND", raising=False)

    ir = normalize({"type": "function_graph", "functions": ["x^2"], "highlight_points": [[0, 0]]})
    path = render_preview(ir)
    try:
        assert Path(path).is_file()
        import matplotlib
        assert matplotlib.get_backend().lower() == "agg"
    finally:
        Path(path).unlink(missing_ok=True)


def test_render_preview_geometry(tmp_path: Path) -> None:
    ir = normalize(
        {
            "type": "geometric",
            "elements": [
                {"type": "triangle", "points": [[0, 0], [4, 0], [0, 3]]},
                {"type": "circle", "center": [1, 1], "radius": 1},
            ],
            "labels": [{"position": [2, 2], "text": "S"}],
        }
    )
    out = render_preview(ir, str(tmp_path / "fig.png"))
    assert Path(out).read_bytes()[:4] == b"\x89PNG"


def test_missing_gui_backend_warns(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MPLBACKEND", "tkagg")
    monkeypatch.delenv("DISPLAY", raising=False)

    import matplotlib
    original_use = matplotlib.use

    def fail_use(backend: str, *args: Any, **kwargs: Any) -> Any:
        if backend == "TkAgg":
            raise ImportError("TkAgg not available")
        return original_use(backend, *args, **kwargs)

    original_use("pdf")
    monkeypatch.setattr(matplotlib, "use", fail_use)
    with pytest.warns(RuntimeWarning):
        path = render_preview(normalize({"type": "function_graph", "functions": ["x"]}))

    assert matplotlib.get_backend().lower() == "agg"
    Path(path).unlink(missing_ok=True)


def test_render_preview_rejects_none() -> None:
    with pytest.raises(ValueError):
        render_preview(None)  # type: ignore[arg-type]

"""Command-line interface wrapper around :pyfunc:`mathgen.generate_problem`."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from . import constants as C
from .config import PipelineConfig
from .pipeline import continue_conversation, generate_problem
from .pipeline_state import PipelineState, Status
from .tools.graph import render_preview
from .tools.normalize import normalize
from .tools.tikz import emit

__all__ = ["main"]


def _load_spec(value: str) -> dict[str, Any]:
    """Read ``--spec`` as inline JSON or as a path to a JSON file."""
    text = value
    if not value.lstrip().startswith("{"):
        try:
            text = Path(value).read_text("utf-8")
        except OSError as exc:
            sys.exit(f"Error reading --spec: {exc}")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        sys.exit(f"Error: --spec is not valid JSON: {exc}")
    if not isinstance(data, dict):
        sys.exit("Error: --spec must be a JSON object.")
    return data


def _preview_graph(path: str) -> None:
    """Display the rendered figure PNG in a Matplotlib window (best-effort)."""
    try:
        import numpy as np  # type: ignore
        from PIL import Image  # type: ignore
        import matplotlib.pyplot as plt  # imported lazily to avoid GUI deps
    except ImportError as exc:
        print(f"⚠️ Could not preview figure; missing dependency: {exc}", file=sys.stderr)
        return

    try:
        img = Image.open(path).convert("RGBA")
        arr = np.array(img)
        fig, ax = plt.subplots()
        ax.imshow(arr)
        ax.axis("off")
        plt.show()
    except Exception as exc:
        print(f"⚠️ Could not preview figure: {exc}", file=sys.stderr)


def _preview(raw: Any) -> None:
    ir = normalize(raw)
    if ir is None:
        print("⚠️ No figure to preview.", file=sys.stderr)
        return
    try:
        path = render_preview(ir)
    except Exception as exc:
        print(f"⚠️ Could not render figure: {exc}", file=sys.stderr)
        return
    print(f"✔ Figure preview written to {path}", file=sys.stderr)
    _preview_graph(path)


def _chat(state: PipelineState | None, config: PipelineConfig, verbose: bool) -> PipelineState:
    if state is None:
        print(C.SLOT_QUESTIONS["topic"])
    while state is None or state.status is Status.COLLECTING_SPEC:
        try:
            text = input("> ")
        except EOFError:
            sys.exit("Error: conversation ended before the specification was complete.")
        state = continue_conversation(state, text, config=config, verbose=verbose)
        if state.next_question:
            print(state.next_question)
    return state


def _parse_cli(argv: list[str] | None = None) -> argparse.Namespace:  # noqa: D401 – imperative mood
    parser = argparse.ArgumentParser(description="Generate verified math problem documents ✔")
    parser.add_argument("--spec", help="Problem specification as inline JSON or a path to a JSON file")
    parser.add_argument("--chat", action="store_true", help="Collect the specification interactively")
    parser.add_argument("--demo", action="store_true", help="Run with a built-in specification")
    parser.add_argument(
        "--figure-demo",
        action="store_true",
        help="Print the TikZ code of a built-in figure without calling the model",
    )
    parser.add_argument("--out", help="Write the final state as JSON to file")
    parser.add_argument("--tex-out", help="Write the LaTeX document to file")
    parser.add_argument("--preview", action="store_true", help="Preview the figure as a PNG if one was generated")
    parser.add_argument("--max-revisions", type=int, help="Override the verify/revise budget")
    parser.add_argument(
        "--log-level",
        choices=["WARNING", "INFO", "DEBUG"],
        default="WARNING",
        help="Logging level for mathgen",
    )
    parser.add_argument(
        "prompt",
        nargs="?",
        help="Free-text request used as the first conversation turn, e.g. '高校生向けの二次関数の記述式を2問'",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:  # noqa: D401 – imperative mood
    ns = _parse_cli(argv)

    logging.basicConfig(level=logging.WARNING)
    level = getattr(logging, ns.log_level)
    pkg_logger = logging.getLogger("mathgen")
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(logging.BASIC_FORMAT))
    handler.setLevel(level)
    pkg_logger.addHandler(handler)
    pkg_logger.propagate = False
    pkg_logger.setLevel(level)
    verbose = ns.log_level in {"INFO", "DEBUG"}

    if ns.figure_demo:
        print(emit(normalize(C.DEMO_VISUALIZATION)))
        if ns.preview:
            _preview(C.DEMO_VISUALIZATION)
        return

    if "OPENAI_API_KEY" not in os.environ:
        sys.exit("Error: Set OPENAI_API_KEY before running.")

    modes = [bool(ns.spec), ns.demo, ns.prompt is not None]
    if sum(modes) > 1:
        sys.exit("Error: use only one of --spec, --demo or a prompt.")

    config = PipelineConfig.from_env()
    if ns.max_revisions is not None:
        if ns.max_revisions < 0:
            sys.exit("Error: --max-revisions must be >= 0.")
        config.max_revisions = ns.max_revisions

    state: PipelineState | None = None
    if ns.spec:
        state = generate_problem(_load_spec(ns.spec), config=config, verbose=verbose)
    elif ns.demo:
        state = generate_problem(C.DEMO_SPEC, config=config, verbose=verbose)
    elif ns.prompt is not None:
        state = continue_conversation(None, ns.prompt, config=config, verbose=verbose)

    if ns.chat and (state is None or state.status is Status.COLLECTING_SPEC):
        if state is not None and state.next_question:
            print(state.next_question)
        state = _chat(state, config, verbose)
    if state is None:
        sys.exit("Error: provide --spec, --demo, a prompt or --chat.")

    if state.status is Status.COLLECTING_SPEC:
        print(state.next_question or "", file=sys.stderr)
    if state.status is Status.FAILED:
        print(f"⚠️ Generation failed ({state.error_kind}): {state.error}", file=sys.stderr)
    for warning in state.warnings:
        print(f"⚠️ {warning}", file=sys.stderr)

    if ns.preview and state.draft is not None and state.draft.visualization:
        _preview(state.draft.visualization)

    if ns.tex_out and state.markup:
        Path(ns.tex_out).write_text(state.markup, "utf-8")
        print(f"✔ LaTeX document written to {ns.tex_out}")

    json_out = json.dumps(state.to_dict(), ensure_ascii=False, separators=(",", ":"))
    if ns.out:
        Path(ns.out).write_text(json_out, "utf-8")
        print(f"✔ State JSON written to {ns.out}")
    elif not ns.tex_out:
        print(json_out)

    if state.status is Status.FAILED:
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    main()

"""PNG previews of figure IR."""
from __future__ import annotations

import math
import os
import tempfile
import warnings
from pathlib import Path

import numpy as np

from .expression import compile_expression
from .geometry import dimension_offset
from .ir import (
    AngleElement,
    ArcElement,
    CircleElement,
    FunctionGraph,
    Geometric,
    LineElement,
    PointElement,
    PolygonElement,
    TextElement,
    Visualization,
)

__all__ = ["render_preview"]

_SAMPLES = 400


def _select_backend() -> None:
    import matplotlib  # type: ignore

    try:
        backend = matplotlib.get_backend().lower()
    except Exception:
        backend = ""
    if backend in {"agg", "tkagg"}:
        return
    env_backend = os.environ.get("MPLBACKEND", "").lower()
    prefer_tk = bool(os.environ.get("DISPLAY")) or env_backend == "tkagg"
    if prefer_tk:
        try:
            matplotlib.use("TkAgg")
        except Exception as exc:  # pragma: no cover - depends on system backend
            warnings.warn(
                f"Preferred GUI backend 'TkAgg' unavailable; falling back to 'Agg': {exc}",
                RuntimeWarning,
            )
            matplotlib.use("Agg")
    else:
        matplotlib.use("Agg")


def _color(style: str, default: str) -> str:
    for token in (t.strip() for t in style.split(",")):
        name = token.split("=", 1)[-1].split("!", 1)[0]
        if name in {"blue", "red", "green", "orange", "violet", "black", "gray", "purple"}:
            return name
    return default


def _sample(expr: str, lo: float, hi: float) -> tuple[np.ndarray, np.ndarray]:
    func = compile_expression(expr)
    xs = np.linspace(lo, hi, _SAMPLES)
    ys = np.array([func(float(x)) for x in xs])
    return xs, ys


def _draw_function_graph(ax, graph: FunctionGraph) -> None:  # noqa: ANN001 - matplotlib axes
    for idx, func in enumerate(graph.functions):
        xs, ys = _sample(func.expression, *func.domain)
        ax.plot(xs, ys, color=_color(func.style, "C%d" % idx), label=func.label or func.expression)
    fill = graph.fill_area
    if fill is not None:
        lo, hi = fill.domain
        curves = []
        for expr in fill.between:
            if expr == "x":
                xs = np.linspace(lo, hi, _SAMPLES)
                curves.append((xs, np.zeros_like(xs)))
            else:
                curves.append(_sample(expr, lo, hi))
        (xs, y1), (_, y2) = curves
        ax.fill_between(xs, y1, y2, alpha=0.3, color="tab:blue")
    for point in graph.highlight_points:
        x, y = point.coordinates
        ax.scatter([x], [y], color="red", zorder=3)
        if point.label:
            ax.annotate(point.label.strip("$"), (x, y), textcoords="offset points", xytext=(4, 4))
    ax.set_xlim(*graph.axes.x_range)
    ax.set_ylim(*graph.axes.y_range)
    ax.grid(True)
    ax.axhline(0, color="black", linewidth=1.5)
    ax.axvline(0, color="black", linewidth=1.5)
    if graph.functions:
        ax.legend(loc="best")


def _draw_geometric(ax, fig: Geometric) -> None:  # noqa: ANN001 - matplotlib axes
    from matplotlib import patches  # type: ignore

    for el in fig.elements:
        if isinstance(el, PolygonElement):
            ax.add_patch(patches.Polygon(el.points, closed=True, fill=False, color=_color(el.style, "blue")))
        elif isinstance(el, CircleElement):
            ax.add_patch(patches.Circle(el.center, el.radius, fill=False, color=_color(el.style, "blue")))
        elif isinstance(el, ArcElement):
            ax.add_patch(
                patches.Arc(el.center, 2 * el.radius, 2 * el.radius, theta1=el.start_angle, theta2=el.end_angle)
            )
        elif isinstance(el, LineElement):
            ax.plot([el.start[0], el.end[0]], [el.start[1], el.end[1]], color=_color(el.style, "black"))
        elif isinstance(el, PointElement):
            ax.scatter([el.position[0]], [el.position[1]], color="black", zorder=3)
            if el.label:
                ax.annotate(el.label, el.position, textcoords="offset points", xytext=(4, 4))
        elif isinstance(el, AngleElement):
            start = math.degrees(math.atan2(el.from_point[1] - el.vertex[1], el.from_point[0] - el.vertex[0]))
            end = math.degrees(math.atan2(el.to_point[1] - el.vertex[1], el.to_point[0] - el.vertex[0]))
            ax.add_patch(patches.Arc(el.vertex, 2 * el.radius, 2 * el.radius, theta1=start, theta2=end))
        elif isinstance(el, TextElement):
            ax.text(el.position[0], el.position[1], el.text, ha="center", va="center")
    for label in fig.labels:
        ax.text(label.position[0], label.position[1], label.text.strip("$"), ha="center", va="center")
    for dim in fig.dimensions:
        a, b = dimension_offset(dim.start, dim.end, dim.offset)
        ax.annotate("", xy=b, xytext=a, arrowprops={"arrowstyle": "<->"})
        ax.text((a[0] + b[0]) / 2, (a[1] + b[1]) / 2, dim.text.strip("$"), ha="center", va="center")
    ax.set_aspect("equal", adjustable="datalim")
    ax.autoscale_view()
    if fig.options.grid:
        ax.grid(True)


def render_preview(ir: Visualization, path: str | None = None) -> str:
    """Render *ir* to a PNG file and return its path."""
    try:
        import matplotlib.pyplot as plt  # type: ignore
    except Exception as exc:  # pragma: no cover - environment-dependent
        raise RuntimeError(
            "matplotlib is required to render previews. Install it or run without --preview."
        ) from exc
    _select_backend()

    fig, ax = plt.subplots(figsize=(6, 6))
    try:
        if isinstance(ir, FunctionGraph):
            _draw_function_graph(ax, ir)
        elif isinstance(ir, Geometric):
            _draw_geometric(ax, ir)
        else:
            raise ValueError(f"cannot preview {type(ir).__name__}")

        if path is None:
            fd, path = tempfile.mkstemp(suffix=".png")
            os.close(fd)
        png_path = Path(path)
        fig.savefig(png_path, format="png")
    finally:
        plt.close(fig)
    return str(png_path)

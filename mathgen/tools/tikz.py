"""Compile figure IR into TikZ / pgfplots drawing instructions."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Sequence

import sympy as sp

from ..errors import RenderingError
from .expression import quadratic_coefficients, to_pgfplots, to_sympy
from .geometry import (
    angle_arc,
    anchor_for,
    dimension_offset,
    display_range,
    distance,
    intersection_window,
    is_axis_aligned_rectangle,
    quadratic_roots,
    quadratic_vertex,
    highlight_mismatches,
    quadratic_window,
)
from .ir import (
    AngleElement,
    ArcElement,
    CircleElement,
    Dimension,
    Element,
    FunctionGraph,
    FunctionSpec,
    Geometric,
    HighlightPoint,
    Label,
    LineElement,
    Point,
    PointElement,
    PolygonElement,
    Range,
    TextElement,
    Visualization,
)
from .markup import escape_tex

__all__ = ["emit", "num"]

logger = logging.getLogger(__name__)

_AXIS_OPTIONS = (
    "axis lines=middle",
    "grid=both",
    "grid style={line width=.1pt, draw=gray!10}",
    "major grid style={line width=.2pt, draw=gray!50}",
    "minor tick num=5",
    "enlargelimits={abs=0.5}",
    "axis line style={latex-latex}",
    "ticklabel style={font=\\tiny, fill=white}",
    "samples=100",
)

_CURVE_COLORS = ("blue", "red", "green!60!black", "orange", "violet")
_SHAPE_STYLE = "thick, draw=blue, fill=blue!10"


def num(value: float) -> str:
    """Compact decimal rendering used in coordinates."""
    text = f"{round(float(value), 4):.4f}".rstrip("0").rstrip(".")
    return "0" if text in {"-0", ""} else text


def _pt(p: Point) -> str:
    return f"({num(p[0])},{num(p[1])})"


def _latex(expr: str) -> str:
    try:
        return sp.latex(to_sympy(expr))
    except (ValueError, TypeError, AttributeError):
        return expr


def _figure(body: list[str], env: str, options: str = "") -> str:
    opening = f"\\begin{{{env}}}[{options}]" if options else f"\\begin{{{env}}}"
    lines = ["\\begin{figure}[H]", "  \\centering", f"  {opening}"]
    lines.extend(f"    {line}" for line in body)
    lines.append(f"  \\end{{{env}}}")
    lines.append("\\end{figure}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Function graphs
# ---------------------------------------------------------------------------


def _axis(
    body: list[str],
    x_range: Range,
    y_range: Range,
    x_label: str = "x",
    y_label: str = "y",
    title: str | None = None,
) -> str:
    opts = [
        *_AXIS_OPTIONS,
        f"xlabel=${x_label}$",
        f"ylabel=${y_label}$",
        f"xmin={num(x_range[0])}, xmax={num(x_range[1])}",
        f"ymin={num(y_range[0])}, ymax={num(y_range[1])}",
    ]
    if title:
        opts.append(f"title={{{title}}}")
    axis = ["\\begin{axis}[", *(f"  {o}," for o in opts), "]"]
    axis.extend(f"  {line}" for line in body)
    axis.append("\\end{axis}")
    return _figure(axis, "tikzpicture")


def _curve_style(func: FunctionSpec, idx: int) -> str:
    style = func.style
    if style == "blue" and idx > 0:
        style = _CURVE_COLORS[idx % len(_CURVE_COLORS)]
    return style if "thick" in style else f"thick, {style}"


def _plot_lines(functions: Sequence[FunctionSpec], domain_override: Range | None = None) -> list[str]:
    lines: list[str] = []
    for idx, func in enumerate(functions):
        lo, hi = domain_override or func.domain
        lines.append(
            f"\\addplot[{_curve_style(func, idx)}, domain={num(lo)}:{num(hi)}, name path=f{idx + 1}] "
            f"{{{to_pgfplots(func.expression)}}};"
        )
        label = func.label or f"$y = {_latex(func.expression)}$"
        lines.append(f"\\addlegendentry{{{escape_tex(label)}}}")
    return lines


def _point_lines(points: Sequence[HighlightPoint], style: str = "mark=*, mark size=2pt, color=red") -> list[str]:
    lines: list[str] = []
    for point in points:
        x, y = point.coordinates
        lines.append(f"\\addplot[only marks, {style}] coordinates {{({num(x)},{num(y)})}};")
        if point.label:
            lines.append(f"\\node[anchor=south west] at (axis cs:{num(x)},{num(y)}) {{{escape_tex(point.label)}}};")
    return lines


def _fill_lines(graph: FunctionGraph) -> list[str]:
    fill = graph.fill_area
    if fill is None:
        return []
    lo, hi = fill.domain
    lines: list[str] = []
    names: list[str] = []
    for pos, expr in enumerate(fill.between):
        if expr == "x":
            lines.append(f"\\path[name path=xaxis] (axis cs:{num(lo)},0) -- (axis cs:{num(hi)},0);")
            names.append("xaxis")
            continue
        match = next(
            (i for i, f in enumerate(graph.functions) if f.expression.replace(" ", "") == expr.replace(" ", "")),
            None,
        )
        if match is not None:
            names.append(f"f{match + 1}")
        else:
            name = f"fill{pos + 1}"
            lines.append(
                f"\\addplot[draw=none, domain={num(lo)}:{num(hi)}, name path={name}] {{{to_pgfplots(expr)}}};"
            )
            names.append(name)
    lines.append(
        f"\\addplot[{fill.style}] fill between[of={names[0]} and {names[1]}, "
        f"soft clip={{domain={num(lo)}:{num(hi)}}}];"
    )
    return lines


def _quadratic(graph: FunctionGraph, coeffs: tuple[float, float, float]) -> str:
    a, b, c = coeffs
    h, k = quadratic_vertex(a, b, c)
    x_range, y_range = quadratic_window(a, b, c)
    points = [HighlightPoint((h, k), f"頂点 $({num(h)}, {num(k)})$")]
    points.extend(HighlightPoint((r, 0.0), f"$x = {num(r)}$") for r in quadratic_roots(a, b, c))
    points.append(HighlightPoint((0.0, c), f"$y = {num(c)}$"))
    func = graph.functions[0]
    body = _plot_lines([func], domain_override=x_range)
    body.extend(_point_lines(points[:1], "mark=*, mark size=3pt, color=red"))
    body.extend(_point_lines(points[1:-1], "mark=*, mark size=2pt, color=blue"))
    body.extend(_point_lines(points[-1:], "mark=*, mark size=2pt, color=green!60!black"))
    body.extend(_point_lines(graph.highlight_points))
    title = f"二次関数 $y = {_latex(func.expression)}$"
    return _axis(body, x_range, y_range, graph.axes.x_label, graph.axes.y_label, title)


def _intersection(graph: FunctionGraph) -> str:
    f, g = graph.functions
    coords = [p.coordinates for p in graph.highlight_points]
    if coords:
        highlight_mismatches(f.expression, g.expression, coords)
        x_range, y_range = intersection_window(coords)
    else:
        x_range, y_range = graph.axes.x_range, graph.axes.y_range
    labelled = [
        p if p.label else replace(p, label=f"交点{i + 1} $({p.coordinates[0]:.2f}, {p.coordinates[1]:.2f})$")
        for i, p in enumerate(graph.highlight_points)
    ]
    body = _plot_lines(graph.functions)
    body.extend(_fill_lines(graph))
    body.extend(_point_lines(labelled, "mark=*, mark size=3pt, color=violet"))
    return _axis(body, x_range, y_range, graph.axes.x_label, graph.axes.y_label)


def _function_graph(graph: FunctionGraph) -> str:
    if len(graph.functions) == 1 and graph.fill_area is None:
        coeffs = quadratic_coefficients(graph.functions[0].expression)
        if coeffs is not None:
            return _quadratic(graph, coeffs)
    if len(graph.functions) == 2 and (graph.highlight_points or graph.fill_area is not None):
        return _intersection(graph)
    body = _plot_lines(graph.functions)
    body.extend(_fill_lines(graph))
    body.extend(_point_lines(graph.highlight_points))
    return _axis(body, graph.axes.x_range, graph.axes.y_range, graph.axes.x_label, graph.axes.y_label)


# ---------------------------------------------------------------------------
# Geometric figures
# ---------------------------------------------------------------------------


def _interior_arc(vertex: Point, p1: Point, p2: Point) -> tuple[float, float]:
    start, end = angle_arc(vertex, p1, p2)
    if end - start > 180.0:
        start, end = angle_arc(vertex, p2, p1)
    return start, end


def _element_lines(el: Element) -> list[str]:
    if isinstance(el, PointElement):
        lines = [f"\\filldraw[{el.style or 'fill=black'}] {_pt(el.position)} circle (1.5pt);"]
        if el.label:
            lines.append(f"\\node[anchor=south west] at {_pt(el.position)} {{{escape_tex(el.label)}}};")
        return lines
    if isinstance(el, LineElement):
        return [f"\\draw[{el.style or 'thick'}] {_pt(el.start)} -- {_pt(el.end)};"]
    if isinstance(el, PolygonElement):
        if is_axis_aligned_rectangle(el.points):
            xs = [p[0] for p in el.points]
            ys = [p[1] for p in el.points]
            return [
                f"\\draw[{el.style or 'thick'}] {_pt((min(xs), min(ys)))} rectangle {_pt((max(xs), max(ys)))};"
            ]
        path = " -- ".join(_pt(p) for p in el.points)
        return [f"\\draw[{el.style or 'thick'}] {path} -- cycle;"]
    if isinstance(el, CircleElement):
        return [f"\\draw[{el.style or 'thick'}] {_pt(el.center)} circle ({num(el.radius)});"]
    if isinstance(el, ArcElement):
        return [
            f"\\draw[{el.style or 'thick'}] {_pt(el.center)} ++({num(el.start_angle)}:{num(el.radius)}) "
            f"arc ({num(el.start_angle)}:{num(el.end_angle)}:{num(el.radius)});"
        ]
    if isinstance(el, AngleElement):
        start, end = _interior_arc(el.vertex, el.from_point, el.to_point)
        style = el.style or "draw=black, fill=gray!20, opacity=0.5"
        lines = [
            f"\\draw[{style}] {_pt(el.vertex)} -- ++({num(start)}:{num(el.radius)}) "
            f"arc ({num(start)}:{num(end)}:{num(el.radius)}) -- cycle;"
        ]
        if el.label:
            mid = (start + end) / 2
            lines.append(
                f"\\node at ($ {_pt(el.vertex)} + ({num(mid)}:{num(el.radius * 1.6)}) $) {{{escape_tex(el.label)}}};"
            )
        return lines
    if isinstance(el, TextElement):
        return [f"\\node[{el.style}] at {_pt(el.position)} {{{escape_tex(el.text)}}};"]
    raise RenderingError(f"unsupported element {type(el).__name__}")


def _geometric_picture(
    elements: Sequence[Element],
    labels: Sequence[Label],
    dimensions: Sequence[Dimension],
    grid: bool = False,
) -> str:
    (x0, x1), (y0, y1) = display_range(elements, labels, dimensions)
    body = [f"\\useasboundingbox ({num(x0)},{num(y0)}) rectangle ({num(x1)},{num(y1)});"]
    if grid:
        body.append(f"\\draw[gray!30, step=1] ({num(x0)},{num(y0)}) grid ({num(x1)},{num(y1)});")
        body.append(f"\\draw[->] ({num(x0)},0) -- ({num(x1)},0) node[right] {{$x$}};")
        body.append(f"\\draw[->] (0,{num(y0)}) -- (0,{num(y1)}) node[above] {{$y$}};")
    for el in elements:
        body.extend(_element_lines(el))
    for label in labels:
        body.append(f"\\node[anchor={label.anchor or 'center'}] at {_pt(label.position)} {{{escape_tex(label.text)}}};")
    if dimensions:
        body.append("% dimensions")
    for dim in dimensions:
        a, b = dimension_offset(dim.start, dim.end, dim.offset)
        body.append(
            f"\\draw[|<->|] {_pt(a)} -- {_pt(b)} node[midway, fill=white, font=\\footnotesize] {{{escape_tex(dim.text)}}};"
        )
    return _figure(body, "tikzpicture", "scale=1")


def _vertex_labels(poly: PolygonElement, show: bool) -> list[Label]:
    names = list(poly.vertex_labels)
    if not names and show:
        names = [chr(ord("A") + i) for i in range(len(poly.points))]
    return [
        Label(position=p, text=f"${name}$", anchor=anchor_for(p, poly.points))
        for p, name in zip(poly.points, names)
    ]


def _circle(fig: Geometric, circle: CircleElement) -> str:
    cx, cy = circle.center
    r = circle.radius
    elements: list[Element] = [replace(circle, style=circle.style or _SHAPE_STYLE)]
    dimensions = list(fig.dimensions)
    if circle.show_radius:
        elements.append(LineElement((cx, cy), (cx + r, cy), "dashed, gray"))
        dimensions.append(Dimension((cx, cy), (cx + r, cy), f"$r = {num(r)}$", 0.2))
    if circle.show_diameter:
        elements.append(LineElement((cx - r, cy), (cx + r, cy), "dashed, gray"))
        dimensions.append(Dimension((cx - r, cy), (cx + r, cy), f"$d = {num(2 * r)}$", 0.2))
    return _geometric_picture(elements, fig.labels, dimensions, fig.options.grid)


def _polygon(fig: Geometric, poly: PolygonElement) -> str:
    opts = fig.options
    elements: list[Element] = [replace(poly, style=poly.style or _SHAPE_STYLE)]
    labels = list(fig.labels) + _vertex_labels(poly, opts.show_vertex_labels)
    dimensions = list(fig.dimensions)
    pts = poly.points
    n = len(pts)
    if opts.show_side_lengths:
        sides = range(2) if n == 4 and is_axis_aligned_rectangle(pts) else range(n)
        for i in sides:
            p, q = pts[i], pts[(i + 1) % n]
            dimensions.append(Dimension(p, q, f"${distance(p, q):.2f}$", -0.3))
    if opts.show_angles:
        for i in range(n):
            elements.append(AngleElement(pts[i], pts[i - 1], pts[(i + 1) % n]))
    return _geometric_picture(elements, labels, dimensions, opts.grid)


def _geometric(fig: Geometric) -> str:
    if len(fig.elements) == 1:
        only = fig.elements[0]
        if isinstance(only, CircleElement):
            return _circle(fig, only)
        if isinstance(only, PolygonElement) and (
            len(only.points) == 3 or is_axis_aligned_rectangle(only.points)
        ):
            return _polygon(fig, only)
    return _geometric_picture(fig.elements, fig.labels, fig.dimensions, fig.options.grid)


def emit(ir: Visualization | None) -> str:
    """Return drawing instructions for *ir*.

    Failures never propagate: they come back as a TeX comment so the
    surrounding document still assembles.
    """
    if ir is None:
        return ""
    try:
        if isinstance(ir, FunctionGraph):
            return _function_graph(ir)
        if isinstance(ir, Geometric):
            return _geometric(ir)
        raise RenderingError(f"unsupported visualization {type(ir).__name__}")
    except Exception as exc:
        err = exc if isinstance(exc, RenderingError) else RenderingError(str(exc))
        logger.warning("figure emission failed: %s", err)
        return f"% Error: figure could not be generated ({str(err).splitlines()[0] if str(err) else type(exc).__name__})"

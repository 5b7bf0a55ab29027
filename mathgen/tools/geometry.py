"""Pure geometry used to lay out figures."""
from __future__ import annotations

import logging
import math
from typing import Iterable, Sequence

import numpy as np

from .expression import compile_expression
from .ir import (
    AngleElement,
    ArcElement,
    CircleElement,
    Dimension,
    Element,
    Label,
    LineElement,
    Point,
    PointElement,
    PolygonElement,
    Range,
    TextElement,
)

__all__ = [
    "quadratic_vertex",
    "quadratic_roots",
    "y_intercept",
    "distance",
    "linear_regression",
    "anchor_for",
    "element_points",
    "display_range",
    "quadratic_window",
    "intersection_window",
    "dimension_offset",
    "angle_arc",
    "is_axis_aligned_rectangle",
    "highlight_mismatches",
]

logger = logging.getLogger(__name__)

_EPS = 1e-9
RECTANGLE_TOLERANCE = 0.001
FALLBACK_RANGE: Range = (-5.0, 5.0)


def quadratic_vertex(a: float, b: float, c: float) -> Point:
    """Vertex ``(h, k)`` of ``a x^2 + b x + c``."""
    if abs(a) < _EPS:
        raise ValueError("leading coefficient must be non-zero")
    h = -b / (2 * a)
    k = c - (b * b) / (4 * a)
    return h, k


def quadratic_roots(a: float, b: float, c: float) -> list[float]:
    """Real roots in ascending order; a double root is reported once."""
    if abs(a) < _EPS:
        raise ValueError("leading coefficient must be non-zero")
    disc = b * b - 4 * a * c
    if disc < -_EPS:
        return []
    if abs(disc) <= _EPS:
        return [-b / (2 * a)]
    root = math.sqrt(disc)
    return sorted([(-b - root) / (2 * a), (-b + root) / (2 * a)])


def y_intercept(c: float) -> Point:
    return 0.0, c


def distance(p1: Point, p2: Point) -> float:
    return math.hypot(p2[0] - p1[0], p2[1] - p1[1])


def linear_regression(points: Sequence[Point]) -> tuple[float, float]:
    """Least-squares ``(slope, intercept)`` for *points*."""
    if len(points) < 2:
        raise ValueError("at least two points are required")
    arr = np.asarray(points, dtype=float)
    xs, ys = arr[:, 0], arr[:, 1]
    n = len(arr)
    sum_x = xs.sum()
    sum_y = ys.sum()
    denom = n * (xs * xs).sum() - sum_x * sum_x
    if abs(denom) < _EPS:
        raise ValueError("x values must not all be equal")
    slope = (n * (xs * ys).sum() - sum_x * sum_y) / denom
    intercept = (sum_y - slope * sum_x) / n
    return float(slope), float(intercept)


def anchor_for(point: Point, points: Sequence[Point]) -> str:
    """TikZ anchor that places a label outside the shape spanned by *points*.

    The lowest point gets ``north`` (label below), the highest ``south``, the
    leftmost ``east`` and the rightmost ``west``; corners combine both.
    """
    if not points:
        return "center"
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    min_x, max_x, min_y, max_y = min(xs), max(xs), min(ys), max(ys)
    vertical = ""
    horizontal = ""
    if max_y - min_y > _EPS:
        if abs(point[1] - min_y) <= _EPS:
            vertical = "north"
        elif abs(point[1] - max_y) <= _EPS:
            vertical = "south"
    if max_x - min_x > _EPS:
        if abs(point[0] - min_x) <= _EPS:
            horizontal = "east"
        elif abs(point[0] - max_x) <= _EPS:
            horizontal = "west"
    anchor = " ".join(part for part in (vertical, horizontal) if part)
    return anchor or "center"


def element_points(element: Element) -> list[Point]:
    """Points that bound *element*, circle and arc extents included."""
    if isinstance(element, PointElement):
        return [element.position]
    if isinstance(element, LineElement):
        return [element.start, element.end]
    if isinstance(element, PolygonElement):
        return list(element.points)
    if isinstance(element, (CircleElement, ArcElement)):
        cx, cy = element.center
        r = element.radius
        return [(cx - r, cy - r), (cx + r, cy + r)]
    if isinstance(element, AngleElement):
        return [element.vertex, element.from_point, element.to_point]
    if isinstance(element, TextElement):
        return [element.position]
    return []


def display_range(
    elements: Iterable[Element],
    labels: Iterable[Label] = (),
    dimensions: Iterable[Dimension] = (),
    margin: float = 1.0,
) -> tuple[Range, Range]:
    """Bounding window of everything drawn, padded by *margin*."""
    pts: list[Point] = []
    for el in elements:
        pts.extend(element_points(el))
    pts.extend(label.position for label in labels)
    for dim in dimensions:
        pts.extend((dim.start, dim.end))
    if not pts:
        return FALLBACK_RANGE, FALLBACK_RANGE
    xs = [p[0] for p in pts]
    ys = [p[1] for p in pts]
    return (
        (min(xs) - margin, max(xs) + margin),
        (min(ys) - margin, max(ys) + margin),
    )


def quadratic_window(a: float, b: float, c: float) -> tuple[Range, Range]:
    """Plot window that keeps the vertex and the opening of the parabola visible."""
    h, k = quadratic_vertex(a, b, c)
    x_half = max(5.0, abs(h) * 2 + 2)
    if a > 0:
        y_min = min(k - 1, -2.0)
        y_max = max(y_min + x_half * x_half * abs(a), 10.0)
    else:
        y_min = min(k - x_half * x_half * abs(a) / 2, -2.0)
        y_max = max(k + 2, 10.0)
    return (-x_half, x_half), (y_min, y_max)


def intersection_window(points: Sequence[Point]) -> tuple[Range, Range]:
    """Integer window three units around *points*, never narrower than ±5."""
    if not points:
        return FALLBACK_RANGE, FALLBACK_RANGE
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    x_min = min(math.floor(min(xs) - 3), -5)
    x_max = max(math.ceil(max(xs) + 3), 5)
    y_min = min(math.floor(min(ys) - 3), -5)
    y_max = max(math.ceil(max(ys) + 3), 5)
    return (float(x_min), float(x_max)), (float(y_min), float(y_max))


def dimension_offset(p1: Point, p2: Point, offset: float) -> tuple[Point, Point]:
    """Shift the segment ``p1``-``p2`` perpendicular by *offset*."""
    dx = p2[0] - p1[0]
    dy = p2[1] - p1[1]
    length = math.hypot(dx, dy)
    if length < _EPS:
        return p1, p2
    nx = -dy / length * offset
    ny = dx / length * offset
    return (p1[0] + nx, p1[1] + ny), (p2[0] + nx, p2[1] + ny)


def angle_arc(vertex: Point, p1: Point, p2: Point) -> tuple[float, float]:
    """Start and end angles in degrees of the arc from ray ``vertex->p1`` to ``vertex->p2``.

    The end angle is adjusted so the sweep is counter-clockwise and below 360.
    """
    start = math.degrees(math.atan2(p1[1] - vertex[1], p1[0] - vertex[0]))
    end = math.degrees(math.atan2(p2[1] - vertex[1], p2[0] - vertex[0]))
    if end < start:
        end += 360.0
    return start, end


def is_axis_aligned_rectangle(points: Sequence[Point]) -> bool:
    if len(points) != 4:
        return False
    (x1, y1), (x2, y2), (x3, y3), (x4, y4) = points
    tol = RECTANGLE_TOLERANCE
    vertical_first = (
        abs(x1 - x2) < tol and abs(x3 - x4) < tol and abs(y1 - y4) < tol and abs(y2 - y3) < tol
    )
    horizontal_first = (
        abs(y1 - y2) < tol and abs(y3 - y4) < tol and abs(x1 - x4) < tol and abs(x2 - x3) < tol
    )
    return vertical_first or horizontal_first


def highlight_mismatches(
    expr1: str, expr2: str, points: Sequence[Point], tol: float = 1e-2
) -> list[Point]:
    """Return the declared intersection points that do not lie on both curves.

    Declared points are kept as-is; mismatches are only logged.
    """
    try:
        f = compile_expression(expr1)
        g = compile_expression(expr2)
    except ValueError as exc:
        logger.warning("cannot check intersection points: %s", exc)
        return []
    bad: list[Point] = []
    for x, y in points:
        fy = f(x)
        gy = g(x)
        scale = max(1.0, abs(y))
        if not (
            math.isfinite(fy)
            and math.isfinite(gy)
            and abs(fy - y) <= tol * scale
            and abs(gy - y) <= tol * scale
        ):
            bad.append((x, y))
    if bad:
        logger.warning(
            "declared intersection points not on both curves %s / %s: %s",
            expr1,
            expr2,
            bad,
        )
    return bad

from __future__ import annotations

import math

import pytest

from mathgen.tools.geometry import (
    angle_arc,
    anchor_for,
    dimension_offset,
    display_range,
    distance,
    highlight_mismatches,
    intersection_window,
    is_axis_aligned_rectangle,
    linear_regression,
    quadratic_roots,
    quadratic_vertex,
    quadratic_window,
    y_intercept,
)
from mathgen.tools.ir import CircleElement, Label, PolygonElement


def test_quadratic_vertex() -> None:
    assert quadratic_vertex(1, -4, 3) == (2.0, -1.0)
    with pytest.raises(ValueError):
        quadratic_vertex(0, 1, 1)


def test_quadratic_roots() -> None:
    roots = quadratic_roots(1, -6, 4)
    assert roots == pytest.approx([3 - math.sqrt(5), 3 + math.sqrt(5)])
    assert quadratic_roots(-1, 0, 4) == pytest.approx([-2.0, 2.0])
    assert quadratic_roots(1, -2, 1) == [1.0]
    assert quadratic_roots(1, 0, 1) == []


def test_y_intercept_and_distance() -> None:
    assert y_intercept(3) == (0.0, 3)
    assert distance((0, 0), (3, 4)) == 5.0


def test_linear_regression() -> None:
    slope, intercept = linear_regression([(0, 1), (1, 3), (2, 5)])
    assert slope == pytest.approx(2.0)
    assert intercept == pytest.approx(1.0)
    with pytest.raises(ValueError):
        linear_regression([(1, 1), (1, 2)])


def test_anchor_for_triangle() -> None:
    pts = [(0.0, 0.0), (4.0, 0.0), (2.0, 3.0)]
    assert anchor_for(pts[0], pts) == "north east"
    assert anchor_for(pts[1], pts) == "north west"
    assert anchor_for(pts[2], pts) == "south"
    assert anchor_for((2.0, 1.0), pts) == "center"


def test_anchor_for_degenerate_axis() -> None:
    segment = [(0.0, 1.0), (3.0, 1.0)]
    assert anchor_for(segment[0], segment) == "east"
    assert anchor_for(segment[1], segment) == "west"
    assert anchor_for((1.0, 1.0), [(1.0, 1.0)]) == "center"
    assert anchor_for((0.0, 0.0), []) == "center"


def test_display_range() -> None:
    tri = PolygonElement(points=((0.0, 0.0), (4.0, 0.0), (4.0, 3.0)))
    assert display_range([tri]) == ((-1.0, 5.0), (-1.0, 4.0))
    circle = CircleElement(center=(0.0, 0.0), radius=2.0)
    label = Label(position=(5.0, 0.0), text="P")
    assert display_range([circle], [label], margin=0.5) == ((-2.5, 5.5), (-2.5, 2.5))
    assert display_range([]) == ((-5.0, 5.0), (-5.0, 5.0))


def test_quadratic_window_keeps_vertex_visible() -> None:
    (x0, x1), (y0, y1) = quadratic_window(1, -4, 3)
    assert (x0, x1) == (-6.0, 6.0)
    assert y0 <= -1 <= y1


def test_intersection_window() -> None:
    assert intersection_window([(1, 1), (2, 4)]) == ((-5.0, 5.0), (-5.0, 7.0))
    assert intersection_window([(10, -10)]) == ((-5.0, 13.0), (-13.0, 5.0))


def test_dimension_offset() -> None:
    a, b = dimension_offset((0, 0), (4, 0), 0.5)
    assert a == pytest.approx((0.0, 0.5))
    assert b == pytest.approx((4.0, 0.5))


def test_angle_arc() -> None:
    assert angle_arc((0, 0), (1, 0), (0, 1)) == pytest.approx((0.0, 90.0))
    assert angle_arc((0, 0), (0, 1), (1, 0)) == pytest.approx((90.0, 360.0))


def test_is_axis_aligned_rectangle() -> None:
    assert is_axis_aligned_rectangle([(0, 0), (4, 0), (4, 3), (0, 3)])
    assert is_axis_aligned_rectangle([(0, 0), (0, 3), (4, 3), (4, 0)])
    assert not is_axis_aligned_rectangle([(0, 1), (1, 0), (2, 1), (1, 2)])
    assert not is_axis_aligned_rectangle([(0, 0), (4, 0), (4, 3)])


def test_highlight_mismatches_only_reports() -> None:
    bad = highlight_mismatches("x^2", "x+2", [(2, 4), (-1, 1), (0, 0)])
    assert bad == [(0, 0)]

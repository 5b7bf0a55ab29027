from __future__ import annotations

import math

import pytest

from mathgen.tools.ir import (
    ArcElement,
    Axes,
    FillArea,
    FunctionGraph,
    FunctionSpec,
    Geometric,
    PointElement,
    PolygonElement,
)
from mathgen.tools.normalize import DEFAULT_FILL_STYLE, normalize, normalize_point, normalize_style


def test_point_record_and_list_are_equivalent() -> None:
    as_records = {
        "type": "geometric",
        "elements": [
            {"type": "triangle", "points": [{"x": 0, "y": 0}, {"x": 4, "y": 0}, {"x": 0, "y": "3"}]}
        ],
        "labels": [{"position": {"x": 1, "y": 1}, "text": "S"}],
    }
    as_lists = {
        "type": "geometric",
        "elements": [{"type": "triangle", "points": [[0, 0], [4, 0], [0, 3]]}],
        "labels": [{"position": [1, 1], "text": "S"}],
    }
    assert normalize(as_records) == normalize(as_lists)


def test_normalize_point_forms() -> None:
    assert normalize_point([1, 2]) == (1.0, 2.0)
    assert normalize_point((1, 2)) == (1.0, 2.0)
    assert normalize_point({"x": "1", "y": 2}) == (1.0, 2.0)
    assert normalize_point({"coordinates": [3, 4]}) == (3.0, 4.0)
    x, y = normalize_point(["sqrt(3)", "pi/4"])
    assert x == pytest.approx(math.sqrt(3))
    assert y == pytest.approx(math.pi / 4)
    with pytest.raises(ValueError):
        normalize_point([1])


def test_function_graph_defaults() -> None:
    out = normalize({"type": "function_graph", "functions": ["x^2"]})
    assert out == FunctionGraph(functions=(FunctionSpec("x^2", (-10.0, 10.0), "blue"),), axes=Axes())


def test_function_field_synonyms() -> None:
    out = normalize(
        {
            "type": "function_graph",
            "functions": [{"formula": "2x+1", "range": [0, 5], "color": "red", "name": "g"}],
            "axes": {"xrange": [-2, 6]},
        }
    )
    assert isinstance(out, FunctionGraph)
    assert out.functions[0] == FunctionSpec("2x+1", (0.0, 5.0), "red", "g")
    assert out.axes.x_range == (-2.0, 6.0)
    assert out.axes.y_range == (-10.0, 10.0)


def test_fill_area_string_pairs_with_axis() -> None:
    out = normalize(
        {
            "functions": [{"expression": "x^2", "domain": [0, 2]}],
            "fill_area": {"between": "x^2"},
        }
    )
    assert isinstance(out, FunctionGraph)
    assert out.fill_area == FillArea(("x^2", "x"), (0.0, 2.0), DEFAULT_FILL_STYLE)


def test_unsafe_function_dropped() -> None:
    out = normalize({"type": "function_graph", "functions": ["__import__('os')", "x"]})
    assert isinstance(out, FunctionGraph)
    assert [f.expression for f in out.functions] == ["x"]
    assert normalize({"type": "function_graph", "functions": ["import os"]}) is None


def test_normalize_style() -> None:
    assert normalize_style({"fill": "#f0f0f0", "stroke": "#000", "thickness": 2}) == (
        "fill=blue!20,draw=black,line width=2pt"
    )
    assert normalize_style("solid") == "draw=black"
    assert normalize_style({}) == "draw=black"
    assert normalize_style(None) == ""


def test_polygon_aliases_and_rectangle_size() -> None:
    out = normalize(
        {
            "type": "geometric",
            "elements": [
                {"type": "rectangle", "width": 4, "height": 2},
                {"type": "quadrilateral", "points": [[0, 0], [1, 0], [1, 1], [0, 1]]},
            ],
        }
    )
    assert isinstance(out, Geometric)
    assert all(isinstance(el, PolygonElement) for el in out.elements)
    assert out.elements[0].points == ((0.0, 0.0), (4.0, 0.0), (4.0, 2.0), (0.0, 2.0))


def test_invalid_coordinate_drops_only_its_element() -> None:
    out = normalize(
        {
            "type": "geometric",
            "elements": [
                {"type": "circle", "center": [0, "abc"], "radius": 1},
                {"type": "point", "position": [1, 1], "label": "P"},
                {"type": "hexagram", "points": [[0, 0]]},
            ],
        }
    )
    assert isinstance(out, Geometric)
    assert out.elements == (PointElement((1.0, 1.0), "P"),)


def test_nothing_drawable_is_none() -> None:
    assert normalize(None) is None
    assert normalize({}) is None
    assert normalize({"type": "none"}) is None
    assert normalize({"type": "geometric", "elements": [{"type": "circle", "radius": -1, "center": [0, 0]}]}) is None
    assert normalize({"type": "pie_chart"}) is None


def test_arc_from_points() -> None:
    out = normalize(
        {"type": "geometric", "elements": [{"type": "arc", "center": [0, 0], "start": [1, 0], "end": [0, 1]}]}
    )
    assert isinstance(out, Geometric)
    arc = out.elements[0]
    assert isinstance(arc, ArcElement)
    assert arc.radius == pytest.approx(1.0)
    assert arc.start_angle == pytest.approx(0.0)
    assert arc.end_angle == pytest.approx(90.0)


def test_missing_type_is_inferred() -> None:
    out = normalize({"elements": [{"center": [0, 0], "radius": 2}, {"points": [[0, 0], [1, 1]]}]})
    assert isinstance(out, Geometric)
    assert [type(el).__name__ for el in out.elements] == ["CircleElement", "LineElement"]


def test_dimension_default_text() -> None:
    out = normalize(
        {
            "type": "geometric",
            "elements": [{"type": "line", "start": [0, 0], "end": [3, 4]}],
            "dimensions": [{"from": [0, 0], "to": [3, 4]}, {"start": [0, 0], "end": [3, 0], "label": "3cm"}],
        }
    )
    assert isinstance(out, Geometric)
    assert [d.text for d in out.dimensions] == ["5cm", "3cm"]

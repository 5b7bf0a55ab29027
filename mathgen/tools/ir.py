"""Closed intermediate representation for problem figures.

Every coordinate is a 2-tuple of finite floats. Raw generation output is only
ever inspected by :mod:`mathgen.tools.normalize`; everything downstream works
on these types.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

Point = tuple[float, float]
Range = tuple[float, float]

DEFAULT_RANGE: Range = (-10.0, 10.0)


@dataclass(frozen=True)
class FunctionSpec:
    expression: str
    domain: Range = DEFAULT_RANGE
    style: str = "blue"
    label: str | None = None


@dataclass(frozen=True)
class HighlightPoint:
    coordinates: Point
    label: str | None = None


@dataclass(frozen=True)
class FillArea:
    between: tuple[str, str]
    domain: Range
    style: str = "fill=blue!20, opacity=0.3"


@dataclass(frozen=True)
class Axes:
    x_range: Range = DEFAULT_RANGE
    y_range: Range = DEFAULT_RANGE
    x_label: str = "x"
    y_label: str = "y"


@dataclass(frozen=True)
class FunctionGraph:
    functions: tuple[FunctionSpec, ...]
    highlight_points: tuple[HighlightPoint, ...] = ()
    fill_area: FillArea | None = None
    axes: Axes = field(default_factory=Axes)


@dataclass(frozen=True)
class PointElement:
    position: Point
    label: str | None = None
    style: str = ""


@dataclass(frozen=True)
class LineElement:
    start: Point
    end: Point
    style: str = ""


@dataclass(frozen=True)
class PolygonElement:
    points: tuple[Point, ...]
    style: str = ""
    vertex_labels: tuple[str, ...] = ()


@dataclass(frozen=True)
class CircleElement:
    center: Point
    radius: float
    style: str = ""
    show_radius: bool = False
    show_diameter: bool = False


@dataclass(frozen=True)
class ArcElement:
    center: Point
    radius: float
    start_angle: float
    end_angle: float
    style: str = ""


@dataclass(frozen=True)
class AngleElement:
    vertex: Point
    from_point: Point
    to_point: Point
    label: str | None = None
    radius: float = 0.5
    style: str = ""


@dataclass(frozen=True)
class TextElement:
    position: Point
    text: str
    style: str = ""


Element = Union[
    PointElement,
    LineElement,
    PolygonElement,
    CircleElement,
    ArcElement,
    AngleElement,
    TextElement,
]


@dataclass(frozen=True)
class Label:
    position: Point
    text: str
    anchor: str | None = None


@dataclass(frozen=True)
class Dimension:
    start: Point
    end: Point
    text: str
    offset: float = 0.3


@dataclass(frozen=True)
class GeometricOptions:
    show_side_lengths: bool = False
    show_angles: bool = False
    show_vertex_labels: bool = True
    grid: bool = False


@dataclass(frozen=True)
class Geometric:
    elements: tuple[Element, ...]
    labels: tuple[Label, ...] = ()
    dimensions: tuple[Dimension, ...] = ()
    options: GeometricOptions = field(default_factory=GeometricOptions)


Visualization = Union[FunctionGraph, Geometric]

__all__ = [
    "Point",
    "Range",
    "DEFAULT_RANGE",
    "FunctionSpec",
    "HighlightPoint",
    "FillArea",
    "Axes",
    "FunctionGraph",
    "PointElement",
    "LineElement",
    "PolygonElement",
    "CircleElement",
    "ArcElement",
    "AngleElement",
    "TextElement",
    "Element",
    "Label",
    "Dimension",
    "GeometricOptions",
    "Geometric",
    "Visualization",
]

"""Turn loosely structured visualization records into the closed IR.

Generation output describes figures in many shapes: bare expression strings,
``{x, y}`` records, numeric strings, CSS-like style objects, synonyms for
field names. This module is the only place that inspects those raw fields;
elements that cannot be repaired are dropped with a warning.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Iterable

from .. import constants as C
from .expression import parse_expression, to_number
from .geometry import distance
from .ir import (
    DEFAULT_RANGE,
    AngleElement,
    ArcElement,
    Axes,
    CircleElement,
    Dimension,
    Element,
    FillArea,
    FunctionGraph,
    FunctionSpec,
    Geometric,
    GeometricOptions,
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

__all__ = ["normalize", "normalize_point", "normalize_style"]

logger = logging.getLogger(__name__)

_FUNCTION_GRAPH_TYPES = {"function_graph", "function", "functions", "graph", "plot"}
_GEOMETRIC_TYPES = {"geometric", "geometry", "figure", "shape", "shapes"}
_POLYGON_TYPES = {"polygon", "triangle", "rectangle", "quadrilateral", "square"}
_ANCHORS = {
    "center", "north", "south", "east", "west",
    "north east", "north west", "south east", "south west", "base", "mid",
}
# placement words name the opposite anchor
_PLACEMENT_ANCHORS = {
    "above": "south", "below": "north", "left": "east", "right": "west",
    "above left": "south east", "above right": "south west",
    "below left": "north east", "below right": "north west",
}

DEFAULT_FILL_STYLE = "fill=blue!20, opacity=0.3"


def _first(record: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value is not None and value != "":
            return value
    return None


def normalize_point(value: Any) -> Point:
    """Coerce ``[x, y]``, ``(x, y)`` or ``{x, y}`` to a tuple of finite floats."""
    if isinstance(value, dict):
        if "x" in value and "y" in value:
            return to_number(value["x"]), to_number(value["y"])
        coords = _first(value, "coordinates", "position", "point")
        if coords is not None:
            return normalize_point(coords)
        raise ValueError(f"point record without x/y: {value!r}")
    if isinstance(value, (list, tuple)) and len(value) >= 2:
        return to_number(value[0]), to_number(value[1])
    raise ValueError(f"not a point: {value!r}")


def _range(value: Any, default: Range = DEFAULT_RANGE) -> Range:
    if value is None:
        return default
    try:
        if isinstance(value, dict):
            lo, hi = to_number(_first(value, "min", "from")), to_number(_first(value, "max", "to"))
        else:
            lo, hi = to_number(value[0]), to_number(value[1])
    except (ValueError, TypeError, IndexError, KeyError):
        logger.warning("invalid range %r; using %s", value, default)
        return default
    if lo > hi:
        lo, hi = hi, lo
    if lo == hi:
        logger.warning("empty range %r; using %s", value, default)
        return default
    return lo, hi


def _fmt(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def normalize_style(value: Any) -> str:
    """Map a style record or keyword to a TikZ option string."""
    if value is None:
        return ""
    if isinstance(value, dict):
        parts: list[str] = []
        fill = value.get("fill")
        if fill:
            parts.append(f"fill={C.FILL_COLOR_SUBSTITUTIONS.get(str(fill).lower(), fill)}")
        stroke = value.get("stroke")
        if stroke:
            parts.append(f"draw={C.STROKE_COLOR_SUBSTITUTIONS.get(str(stroke).lower(), stroke)}")
        thickness = value.get("thickness")
        if thickness:
            parts.append(f"line width={_fmt(thickness)}pt")
        return ",".join(parts) or "draw=black"
    text = str(value).strip()
    if text == "solid":
        return "draw=black"
    return text


# ---------------------------------------------------------------------------
# Function graphs
# ---------------------------------------------------------------------------


def _function(entry: Any) -> FunctionSpec | None:
    if isinstance(entry, str):
        raw: dict[str, Any] = {"expression": entry}
    elif isinstance(entry, dict):
        raw = entry
    else:
        logger.warning("dropping function entry %r", entry)
        return None
    expression = _first(raw, "expression", "formula", "function")
    if expression is None:
        logger.warning("dropping function without expression: %r", entry)
        return None
    expression = str(expression)
    try:
        parse_expression(expression)
    except ValueError as exc:
        logger.warning("dropping function %r: %s", expression, exc)
        return None
    label = _first(raw, "label", "name")
    return FunctionSpec(
        expression=expression,
        domain=_range(_first(raw, "domain", "range")),
        style=str(_first(raw, "style", "color") or "blue"),
        label=str(label) if label is not None else None,
    )


def _highlight(entry: Any) -> HighlightPoint | None:
    try:
        coords = normalize_point(entry)
    except (ValueError, TypeError) as exc:
        logger.warning("dropping highlight point %r: %s", entry, exc)
        return None
    label = entry.get("label") if isinstance(entry, dict) else None
    return HighlightPoint(coordinates=coords, label=str(label) if label else None)


def _axes(raw: Any) -> Axes:
    if not isinstance(raw, dict):
        return Axes()
    return Axes(
        x_range=_range(_first(raw, "xrange", "x_range", "x")),
        y_range=_range(_first(raw, "yrange", "y_range", "y")),
        x_label=str(_first(raw, "xlabel", "x_label") or "x"),
        y_label=str(_first(raw, "ylabel", "y_label") or "y"),
    )


def _fill(raw: Any, functions: tuple[FunctionSpec, ...]) -> FillArea | None:
    if not isinstance(raw, dict):
        return None
    between = raw.get("between")
    if between is None and raw.get("under"):
        between = raw["under"]
    if isinstance(between, str):
        pair = (between, "x")
    elif isinstance(between, (list, tuple)) and len(between) == 1:
        pair = (str(between[0]), "x")
    elif isinstance(between, (list, tuple)) and len(between) >= 2:
        pair = (str(between[0]), str(between[1]))
    else:
        logger.warning("dropping fill area without curves: %r", raw)
        return None
    for expr in pair:
        if expr == "x":
            continue
        try:
            parse_expression(expr)
        except ValueError as exc:
            logger.warning("dropping fill area %r: %s", raw, exc)
            return None
    default_domain = functions[0].domain if functions else DEFAULT_RANGE
    style = raw.get("style")
    return FillArea(
        between=pair,
        domain=_range(raw.get("domain"), default_domain),
        style=normalize_style(style) if style else DEFAULT_FILL_STYLE,
    )


def _function_graph(raw: dict[str, Any]) -> FunctionGraph | None:
    entries = raw.get("functions") or []
    if isinstance(entries, (str, dict)):
        entries = [entries]
    functions = tuple(f for f in (_function(e) for e in entries) if f is not None)
    if not functions:
        logger.warning("function graph has no usable functions")
        return None
    points = tuple(
        p
        for p in (_highlight(e) for e in raw.get("highlight_points") or raw.get("points") or [])
        if p is not None
    )
    return FunctionGraph(
        functions=functions,
        highlight_points=points,
        fill_area=_fill(raw.get("fill_area"), functions),
        axes=_axes(raw.get("axes")),
    )


# ---------------------------------------------------------------------------
# Geometric figures
# ---------------------------------------------------------------------------


def _infer_element_type(raw: dict[str, Any]) -> str:
    if "vertex" in raw:
        return "angle"
    if "center" in raw and ("start_angle" in raw or "startAngle" in raw or "start" in raw):
        return "arc"
    if "center" in raw:
        return "circle"
    if "points" in raw:
        return "polygon" if len(raw["points"] or []) > 2 else "line"
    if "start" in raw or "from" in raw:
        return "line"
    if "text" in raw:
        return "text"
    return "point"


def _rectangle_points(raw: dict[str, Any]) -> list[Point]:
    origin = normalize_point(_first(raw, "origin", "corner", "position") or [0, 0])
    width = to_number(raw["width"])
    height = to_number(raw["height"])
    x, y = origin
    return [(x, y), (x + width, y), (x + width, y + height), (x, y + height)]


def _element(raw: Any) -> Element | None:
    if not isinstance(raw, dict):
        logger.warning("dropping element %r", raw)
        return None
    kind = str(raw.get("type") or _infer_element_type(raw)).lower()
    style = normalize_style(raw.get("style"))
    try:
        if kind in _POLYGON_TYPES:
            if raw.get("points"):
                points = [normalize_point(p) for p in raw["points"]]
            elif "width" in raw and "height" in raw:
                points = _rectangle_points(raw)
            else:
                raise ValueError("polygon without points")
            if len(points) < 3:
                raise ValueError("polygon needs at least three points")
            labels = raw.get("vertex_labels") or raw.get("labels") or ()
            return PolygonElement(
                points=tuple(points),
                style=style,
                vertex_labels=tuple(str(v) for v in labels if isinstance(v, (str, int))),
            )
        if kind == "circle":
            radius = to_number(raw.get("radius"))
            if radius <= 0:
                raise ValueError("radius must be positive")
            return CircleElement(
                center=normalize_point(raw.get("center")),
                radius=radius,
                style=style,
                show_radius=bool(raw.get("show_radius", False)),
                show_diameter=bool(raw.get("show_diameter", False)),
            )
        if kind == "arc":
            center = normalize_point(raw.get("center"))
            start_angle = _first(raw, "start_angle", "startAngle")
            end_angle = _first(raw, "end_angle", "endAngle")
            radius_raw = raw.get("radius")
            if start_angle is None or end_angle is None:
                start = normalize_point(raw.get("start"))
                end = normalize_point(raw.get("end"))
                start_deg = math.degrees(math.atan2(start[1] - center[1], start[0] - center[0]))
                end_deg = math.degrees(math.atan2(end[1] - center[1], end[0] - center[0]))
                radius = to_number(radius_raw) if radius_raw is not None else distance(center, start)
            else:
                start_deg = to_number(start_angle)
                end_deg = to_number(end_angle)
                radius = to_number(radius_raw)
            if radius <= 0:
                raise ValueError("radius must be positive")
            return ArcElement(
                center=center,
                radius=radius,
                start_angle=start_deg,
                end_angle=end_deg,
                style=style,
            )
        if kind == "angle":
            vertex = normalize_point(raw.get("vertex"))
            if raw.get("points") and len(raw["points"]) == 3:
                p1, _, p2 = (normalize_point(p) for p in raw["points"])
            else:
                p1 = normalize_point(_first(raw, "from", "start", "p1"))
                p2 = normalize_point(_first(raw, "to", "end", "p2"))
            label = raw.get("label")
            return AngleElement(
                vertex=vertex,
                from_point=p1,
                to_point=p2,
                label=str(label) if label else None,
                radius=to_number(raw.get("radius", 0.5)),
                style=style,
            )
        if kind in {"line", "segment"}:
            if raw.get("points") and len(raw["points"]) >= 2:
                start = normalize_point(raw["points"][0])
                end = normalize_point(raw["points"][1])
            else:
                start = normalize_point(_first(raw, "start", "from"))
                end = normalize_point(_first(raw, "end", "to"))
            return LineElement(start=start, end=end, style=style)
        if kind == "point":
            label = raw.get("label")
            return PointElement(
                position=normalize_point(_first(raw, "position", "at", "coordinates", "point") or raw),
                label=str(label) if label else None,
                style=style,
            )
        if kind == "text":
            return TextElement(
                position=normalize_point(_first(raw, "position", "at")),
                text=str(raw.get("text", "")),
                style=style,
            )
    except (ValueError, TypeError, KeyError) as exc:
        logger.warning("dropping %s element: %s", kind, exc)
        return None
    logger.warning("dropping element of unknown type %r", kind)
    return None


def _label(raw: Any) -> Label | None:
    if not isinstance(raw, dict) or raw.get("text") in (None, ""):
        logger.warning("dropping label %r", raw)
        return None
    try:
        position = normalize_point(raw.get("position"))
    except (ValueError, TypeError) as exc:
        logger.warning("dropping label %r: %s", raw, exc)
        return None
    anchor = " ".join(str(raw.get("anchor") or "").lower().split()) or None
    anchor = _PLACEMENT_ANCHORS.get(anchor or "", anchor)
    if anchor is not None and anchor not in _ANCHORS:
        logger.warning("unknown label anchor %r, using center", anchor)
        anchor = None
    return Label(position=position, text=str(raw["text"]), anchor=anchor)


def _dimension(raw: Any) -> Dimension | None:
    if not isinstance(raw, dict):
        logger.warning("dropping dimension %r", raw)
        return None
    try:
        start = normalize_point(_first(raw, "from", "start"))
        end = normalize_point(_first(raw, "to", "end"))
        offset = to_number(raw.get("offset", 0.3))
    except (ValueError, TypeError) as exc:
        logger.warning("dropping dimension %r: %s", raw, exc)
        return None
    text = _first(raw, "text", "dimension", "label")
    if text is None:
        text = f"{math.floor(distance(start, end) + 0.5)}cm"
    return Dimension(start=start, end=end, text=str(text), offset=offset)


def _collect(items: Any, convert: Any) -> tuple[Any, ...]:
    if not isinstance(items, (list, tuple)):
        return ()
    converted: Iterable[Any] = (convert(item) for item in items)
    return tuple(item for item in converted if item is not None)


def _geometric(raw: dict[str, Any]) -> Geometric | None:
    elements = _collect(raw.get("elements"), _element)
    if not elements:
        logger.warning("geometric figure has no usable elements")
        return None
    opts = raw.get("options") if isinstance(raw.get("options"), dict) else {}
    return Geometric(
        elements=elements,
        labels=_collect(raw.get("labels"), _label),
        dimensions=_collect(raw.get("dimensions"), _dimension),
        options=GeometricOptions(
            show_side_lengths=bool(opts.get("show_side_lengths", False)),
            show_angles=bool(opts.get("show_angles", False)),
            show_vertex_labels=bool(opts.get("show_vertex_labels", True)),
            grid=bool(opts.get("grid", False)),
        ),
    )


def normalize(raw: Any) -> Visualization | None:
    """Return the IR for *raw*, or ``None`` when nothing drawable remains."""
    if not isinstance(raw, dict) or not raw:
        return None
    kind = str(raw.get("type") or "").lower()
    if not kind:
        if "functions" in raw:
            kind = "function_graph"
        elif "elements" in raw:
            kind = "geometric"
    if kind in _FUNCTION_GRAPH_TYPES:
        return _function_graph(raw)
    if kind in _GEOMETRIC_TYPES:
        return _geometric(raw)
    if kind in {"none", "null"}:
        return None
    logger.warning("unsupported visualization type %r", kind)
    return None

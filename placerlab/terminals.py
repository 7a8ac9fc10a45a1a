"""
terminals.py
============

Leaf symbols. Each one turns the bounds it is given into exactly one shape
per pass: `has_finished()` becomes true after the first `next` following a
reset, and further calls return None.

Sizes come in two forms: ratio terminals (`rectangle`, `circle`) scale with
the bounds, absolute terminals (`rectangle-absolute`, `circle-absolute`)
keep a fixed size and only take the bounds' center.
"""

from typing import List

from .bounds import Bounds
from .geometry import POINT_NAMES, Point, Rect, Shape
from .symbols import Symbol, register_symbol
from .validation import Field, as_int, as_list, as_number, as_str, require


class Terminal(Symbol):

    def __init__(self, parameters, tree, index):
        super().__init__(parameters, tree, index)
        self.emitted = False

    def make_shape(self, bounds: Bounds) -> Shape:
        raise NotImplementedError

    def next(self, bounds, container, positions=()):
        if self.emitted:
            return None
        self.emitted = True
        return self.emit(self.make_shape(bounds), positions, container)

    def has_finished(self):
        return self.emitted

    def reset(self, bounds):
        self.emitted = False


@register_symbol("bounds")
class BoundsShape(Terminal):
    """The bounds themselves: the attached shape if any, else the rectangle."""

    def make_shape(self, bounds):
        return bounds.get_shape()


# ---------------------------- Rectangles -------------------------------------

@register_symbol("rectangle", "shape-rectangle")
class Rectangle(Terminal):
    default_parameters = {"width": 1, "height": 1}
    fields = (
        Field("width", "Width", minimum=0, step=0.01),
        Field("height", "Height", minimum=0, step=0.01),
    )

    def size(self, rect: Rect):
        return self.parameters["width"] * rect.width, self.parameters["height"] * rect.height

    def make_shape(self, bounds):
        cx, cy = bounds.rectangle.center
        width, height = self.size(bounds.rectangle)
        return Shape.rectangle(Rect(cx - width / 2, cy - height / 2, width, height))


@register_symbol("rectangle-absolute", "shape-rectangle-absolute")
class RectangleAbsolute(Rectangle):
    default_parameters = {"width": 100, "height": 100}
    fields = (
        Field("width", "Width", minimum=0),
        Field("height", "Height", minimum=0),
    )

    def size(self, rect):
        return self.parameters["width"], self.parameters["height"]


# ---------------------------- Circles ----------------------------------------

@register_symbol("circle", "shape-circle")
class Circle(Terminal):
    """Circle, or a closed pie slice when the angles do not cover a full turn.

    Angles are degrees turning clockwise on screen from the positive x axis.
    """
    default_parameters = {"radius": 1, "startAngle": 0, "endAngle": 360}
    fields = (
        Field("radius", "Radius", minimum=0, step=0.01),
        Field("startAngle", "Start angle", minimum=0, maximum=360, step=1),
        Field("endAngle", "End angle", minimum=0, maximum=360, step=1),
    )

    def radius(self, rect: Rect) -> float:
        return self.parameters["radius"] * min(rect.width, rect.height) / 2

    def make_shape(self, bounds):
        center = bounds.rectangle.center
        radius = self.radius(bounds.rectangle)
        start, end = self.parameters["startAngle"], self.parameters["endAngle"]
        if start == 0 and end == 360:
            return Shape.circle(center, radius)
        return Shape.arc(center, radius, start, end)


@register_symbol("circle-absolute", "shape-circle-absolute")
class CircleAbsolute(Circle):
    default_parameters = {"radius": 100, "startAngle": 0, "endAngle": 360}
    fields = (
        Field("radius", "Radius", minimum=0),
        Field("startAngle", "Start angle", minimum=0, maximum=360, step=1),
        Field("endAngle", "End angle", minimum=0, maximum=360, step=1),
    )

    def radius(self, rect):
        return self.parameters["radius"]


# ---------------------------- Polygons ---------------------------------------

# drawn when neither vertexIndices nor vertexNames is given
DEFAULT_TRIANGLE = ("topCenter", "bottomLeft", "bottomRight")


@register_symbol("polygon-on-box", "shape-polygon-on-box")
class PolygonOnBox(Terminal):
    """Polygon through some of the nine reference points of the bounds.

    Points are picked by `vertexIndices` (0..8, in `POINT_NAMES` order) or by
    `vertexNames`; indices win when both are present.
    """
    default_parameters = {"closed": True}
    fields = (
        Field("vertexIndices", "Vertex indices", "json"),
        Field("vertexNames", "Vertex names", "json"),
        Field("closed", "Closed", "bool"),
    )

    def __init__(self, parameters, tree, index):
        super().__init__(parameters, tree, index)
        self.names = self.vertex_names()

    def vertex_names(self) -> List[str]:
        p = self.parameters
        if p.get("vertexIndices") is not None:
            names = []
            for i, value in enumerate(as_list(p["vertexIndices"], "polygon-on-box.vertexIndices")):
                value = as_int(value, f"polygon-on-box.vertexIndices[{i}]")
                require(0 <= value < len(POINT_NAMES),
                        f"polygon-on-box.vertexIndices[{i}] must be in 0..{len(POINT_NAMES) - 1}")
                names.append(POINT_NAMES[value])
            return names
        if p.get("vertexNames") is not None:
            names = []
            for i, value in enumerate(as_list(p["vertexNames"], "polygon-on-box.vertexNames")):
                value = as_str(value, f"polygon-on-box.vertexNames[{i}]")
                require(value in POINT_NAMES, f"polygon-on-box.vertexNames[{i}]: unknown point {value!r}")
                names.append(value)
            return names
        return list(DEFAULT_TRIANGLE)

    def parameter_changed(self, name):
        self.names = self.vertex_names()

    def make_shape(self, bounds):
        rect = bounds.rectangle
        return Shape.polygon([rect.point(name) for name in self.names], self.parameters["closed"])


@register_symbol("polygon", "shape-polygon")
class Polygon(Terminal):
    """Polygon from vertices normalized to the bounds ([0, 0] is top-left)."""
    default_parameters = {"vertices": [[0, 0], [1, 0], [0.5, 0.5]], "closed": True}
    fields = (
        Field("vertices", "Vertices", "json"),
        Field("closed", "Closed", "bool"),
    )

    def __init__(self, parameters, tree, index):
        super().__init__(parameters, tree, index)
        self.vertices = self.read_vertices()

    def read_vertices(self) -> List[Point]:
        vertices = []
        for i, vertex in enumerate(as_list(self.parameters["vertices"], "polygon.vertices")):
            vertex = as_list(vertex, f"polygon.vertices[{i}]")
            require(len(vertex) == 2, f"polygon.vertices[{i}] must be an [x, y] pair")
            vertices.append((as_number(vertex[0], f"polygon.vertices[{i}][0]"),
                             as_number(vertex[1], f"polygon.vertices[{i}][1]")))
        return vertices

    def parameter_changed(self, name):
        if name == "vertices":
            self.vertices = self.read_vertices()

    def make_shape(self, bounds):
        r = bounds.rectangle
        points = [(r.x + r.width * u, r.y + r.height * v) for u, v in self.vertices]
        return Shape.polygon(points, self.parameters["closed"])

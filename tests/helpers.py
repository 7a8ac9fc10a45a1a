"""Shared helpers for driving symbols in tests."""

from typing import List, Optional

from placerlab.bounds import Bounds
from placerlab.geometry import Shape
from placerlab.symbols import Symbol, SymbolTree


def leaf(type_name="rectangle", **parameters):
    return {"type": type_name, "parameters": parameters}


def drain(symbol: Symbol, bounds: Bounds, container: Optional[Bounds] = None, limit: int = 10000) -> List[Shape]:
    """Call next until the symbol reports finished; return the non-null shapes."""
    container = container if container is not None else bounds
    shapes = []
    for _ in range(limit):
        shape = symbol.next(bounds, container)
        if shape is not None:
            shapes.append(shape)
        if symbol.has_finished():
            return shapes
    raise AssertionError(f"{symbol} did not finish after {limit} calls")


def record_positions(tree: SymbolTree) -> List[List[float]]:
    """Collect the positions vector of every emitted shape."""
    seen = []
    apply_effects = tree.apply_effects

    def apply(index, positions, shape, container):
        seen.append(list(positions))
        apply_effects(index, positions, shape, container)

    tree.apply_effects = apply
    return seen


def box(shape: Shape):
    r = shape.bounding_box()
    return (round(r.x, 6), round(r.y, 6), round(r.width, 6), round(r.height, 6))


def polygon_area(points) -> float:
    area = 0.0
    for (x0, y0), (x1, y1) in zip(points, points[1:] + points[:1]):
        area += x0 * y1 - x1 * y0
    return abs(area) / 2

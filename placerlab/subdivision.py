"""
subdivision.py
==============

Placers that divide space recursively or along a perturbed lattice.

`quadtree` and `recursive` never call themselves. They keep an explicit
stack of `SuspendedState(bounds, cursor)` snapshots: `bounds` is a region
that was divided, `cursor` the cell of it being worked on. Descending pushes
a snapshot, finishing a cell advances the cursor of the top snapshot, and a
fully visited region is popped. Depth is capped by `maxDepth`, so the stack
stays small whatever the division probability.

`noise-grid` walks a jittered lattice and hands its child one triangle at a
time, as bounds carrying the triangle shape.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from .bounds import Bounds
from .geometry import Rect, Shape
from .symbols import Symbol, numpy_generator, register_symbol
from .validation import Field

logger = logging.getLogger(__name__)


@dataclass
class SuspendedState:
    bounds: Bounds
    cursor: int = 0


class StackPlacer(Symbol):
    """Shared walk of quadtree and recursive; subclasses decide the cells."""
    default_parameters = {"probabilityToDivide": 0.5, "maxDepth": 4, "symbol": {"type": "rectangle", "parameters": {}}}

    def __init__(self, parameters, tree, index):
        super().__init__(parameters, tree, index)
        self.symbol_index = self.create_child(self.parameters.pop("symbol"), f"{self.type}.symbol")
        self.stack: List[SuspendedState] = []
        self.region: Optional[Bounds] = None
        self.current: Optional[Bounds] = None
        self.done = False

    @property
    def symbol(self) -> Symbol:
        return self.tree.node(self.symbol_index)

    def children(self):
        return [self.symbol_index]

    def get_json(self):
        json = super().get_json()
        json["parameters"]["symbol"] = self.symbol.get_json()
        return json

    # -- cells

    @property
    def columns(self) -> int:
        return 2

    @property
    def rows(self) -> int:
        return 2

    @property
    def n_cells(self) -> int:
        return self.columns * self.rows

    def cell(self, region: Bounds, i: int) -> Bounds:
        r = region.rectangle
        width, height = r.width / self.columns, r.height / self.rows
        row, column = divmod(i, self.columns)
        return Bounds(Rect(r.x + column * width, r.y + row * height, width, height))

    def should_divide(self, depth: int) -> bool:
        raise NotImplementedError

    # -- walk

    def settle(self, region: Bounds) -> None:
        """Divide `region` while the dice say so, then start the leaf on the last cell."""
        while self.n_cells > 0 and self.should_divide(len(self.stack)):
            self.stack.append(SuspendedState(region, 0))
            region = self.cell(region, 0)
        self.current = region
        self.symbol.reset(region)

    def advance(self) -> None:
        """Move to the next unvisited cell, popping every exhausted region."""
        while self.stack:
            top = self.stack[-1]
            top.cursor += 1
            if top.cursor < self.n_cells:
                self.settle(self.cell(top.bounds, top.cursor))
                return
            self.stack.pop()
        self.current = None
        self.done = True
        logger.debug("%s #%d finished its pass", self.type, self.index)

    def next(self, bounds, container, positions=()):
        if self.done:
            return None
        if self.current is None:
            if self.region is None:
                self.region = Bounds(bounds.rectangle)
            self.settle(self.region)
        positions = list(positions) + [s.cursor / self.n_cells for s in self.stack]
        symbol = self.symbol
        result = symbol.next(self.current, container, positions)
        if symbol.has_finished():
            self.advance()
        return result

    def has_finished(self):
        return self.done

    def reset(self, bounds):
        self.stack = []
        self.current = None
        self.done = False
        self.region = Bounds(bounds.rectangle) if bounds is not None else None
        self.symbol.reset(self.region)


@register_symbol("quadtree")
class Quadtree(StackPlacer):
    """2x2 division; each level divides with `probabilityToDivide`."""
    fields = (
        Field("probabilityToDivide", "Probability to divide", minimum=0, maximum=1, step=0.01),
        Field("maxDepth", "Max depth", "int", minimum=0, maximum=12, step=1),
    )

    def should_divide(self, depth):
        p = self.parameters
        return depth < p["maxDepth"] and self.rng.random() < p["probabilityToDivide"]


@register_symbol("recursive")
class Recursive(StackPlacer):
    """`width` x `height` division.

    The whole region is always divided; a cell at depth k divides again with
    probability `probabilityToDivide / k`, so `probabilityToDivide` is roughly
    the expected number of recursions.
    """
    default_parameters = {
        "width": 2,
        "height": 2,
        "probabilityToDivide": 1,
        "maxDepth": 5,
        "symbol": {"type": "rectangle", "parameters": {}},
    }
    fields = (
        Field("width", "Width", "int", minimum=1, step=1),
        Field("height", "Height", "int", minimum=1, step=1),
        Field("probabilityToDivide", "Recursions", minimum=0, step=0.1),
        Field("maxDepth", "Max depth", "int", minimum=0, maximum=12, step=1),
    )

    @property
    def columns(self):
        return self.parameters["width"]

    @property
    def rows(self):
        return self.parameters["height"]

    def should_divide(self, depth):
        p = self.parameters
        if depth >= p["maxDepth"]:
            return False
        if depth == 0:
            return True
        return self.rng.random() < p["probabilityToDivide"] / depth


# ---------------------------- Noise grid -------------------------------------

def jittered_lattice(rect: Rect, columns: int, rows: int, noise: float,
                     generator: np.random.Generator) -> np.ndarray:
    """(rows+1, columns+1, 2) lattice over `rect`; interior points move by up to noise*cell."""
    xs = rect.x + np.arange(columns + 1) * (rect.width / columns)
    ys = rect.y + np.arange(rows + 1) * (rect.height / rows)
    gx, gy = np.meshgrid(xs, ys)
    lattice = np.stack([gx, gy], axis=-1)
    if rows > 1 and columns > 1 and noise:
        cell = np.array([rect.width / columns, rect.height / rows])
        lattice[1:-1, 1:-1] += generator.uniform(-1, 1, (rows - 1, columns - 1, 2)) * noise * cell
    return lattice


@register_symbol("noise-grid")
class NoiseGrid(Symbol):
    """Two triangles per lattice cell (upper, then lower), cells row-major.

    Positions: row, column and triangle fractions.
    """
    default_parameters = {"width": 10, "height": 10, "noise": 0.25, "symbol": {"type": "bounds", "parameters": {}}}
    fields = (
        Field("width", "Width", "int", minimum=0, step=1),
        Field("height", "Height", "int", minimum=0, step=1),
        Field("noise", "Noise", minimum=0, maximum=1, step=0.01),
    )

    def __init__(self, parameters, tree, index):
        super().__init__(parameters, tree, index)
        self.symbol_index = self.create_child(self.parameters.pop("symbol"), "noise-grid.symbol")
        self.lattice: Optional[np.ndarray] = None
        self.cursor = 0
        self.current: Optional[Bounds] = None

    @property
    def symbol(self) -> Symbol:
        return self.tree.node(self.symbol_index)

    def children(self):
        return [self.symbol_index]

    def get_json(self):
        json = super().get_json()
        json["parameters"]["symbol"] = self.symbol.get_json()
        return json

    @property
    def n_triangles(self) -> int:
        return 2 * self.parameters["width"] * self.parameters["height"]

    def build_lattice(self, rect: Rect) -> None:
        p = self.parameters
        if self.n_triangles == 0:
            self.lattice = np.zeros((0, 0, 2))
            return
        self.lattice = jittered_lattice(rect, p["width"], p["height"], p["noise"], numpy_generator(self.rng))

    def triangle(self, i: int) -> Bounds:
        cell, lower = divmod(i, 2)
        row, column = divmod(cell, self.parameters["width"])
        L = self.lattice
        tl, tr = tuple(L[row, column]), tuple(L[row, column + 1])
        bl, br = tuple(L[row + 1, column]), tuple(L[row + 1, column + 1])
        points = [tr, br, bl] if lower else [tl, tr, bl]
        return Bounds(Shape.polygon(points))

    def next(self, bounds, container, positions=()):
        if self.has_finished():
            return None
        if self.lattice is None:
            self.build_lattice(bounds.rectangle)
        if self.current is None:
            self.current = self.triangle(self.cursor)
            self.symbol.reset(self.current)
        cell, lower = divmod(self.cursor, 2)
        row, column = divmod(cell, self.parameters["width"])
        positions = list(positions) + [row / self.parameters["height"], column / self.parameters["width"], lower / 2]
        symbol = self.symbol
        result = symbol.next(self.current, container, positions)
        if symbol.has_finished():
            self.cursor += 1
            self.current = None
        return result

    def has_finished(self):
        return self.cursor >= self.n_triangles

    def parameter_changed(self, name):
        # the lattice shape depends on every parameter
        self.lattice = None
        self.cursor = 0
        self.current = None

    def reset(self, bounds):
        self.cursor = 0
        self.current = None
        self.lattice = None
        if bounds is not None:
            self.build_lattice(bounds.rectangle)
        self.symbol.reset(None)

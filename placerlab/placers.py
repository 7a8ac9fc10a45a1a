"""
placers.py
==========

Placers split the bounds they receive into a sequence of working bounds and
hand each one to a single child symbol, one child pass per slot.

State machine shared by every placer:

    EMPTY   no working bounds yet; the first `next` derives them
    ACTIVE  the child is drawing in the current slot
    DONE    n_created == n_to_create; `next` returns None until `reset`

While ACTIVE, `next` appends `n_created / n_to_create` to the positions,
delegates to the child, and when the child reports finished it advances:
counter + 1, geometric step (subclass `transform`), child reset against the
new working bounds. A count of 0 is finished from the start.

Tags:
    placer                       same bounds for every pass of the child
    placer-x / line              equal columns, left to right
    placer-y / column            equal rows, top to bottom
    placer-z / scaler            concentric, shrinking toward the center
    placer-xyz / grid            rows of columns of concentric stacks
    random-line / random-column  like line/column with a random count
    irregular-line / -column     random count and unequal slot sizes
"""

import logging
from typing import Any, Optional

import numpy as np

from .bounds import Bounds
from .geometry import Rect
from .symbols import Symbol, numpy_generator, register_symbol
from .validation import Field, require

logger = logging.getLogger(__name__)

DEFAULT_CHILD = {"type": "rectangle", "parameters": {}}


@register_symbol("placer")
class Placer(Symbol):
    default_parameters = {"nSymbolsToCreate": 1, "symbol": DEFAULT_CHILD}
    fields = (Field("nSymbolsToCreate", "Num. symbols", "int", minimum=0, step=1),)

    def __init__(self, parameters, tree, index):
        super().__init__(parameters, tree, index)
        self.symbol_index = self.create_child(self.child_spec(), f"{self.type}.symbol")
        self.bounds: Optional[Bounds] = None
        self.n_created = 0
        self.n_to_create = self.initial_count()

    def upgrade_parameters(self, parameters):
        if "count" in parameters and "nSymbolsToCreate" not in parameters:
            parameters["nSymbolsToCreate"] = parameters.pop("count")

    def child_spec(self) -> Any:
        return self.parameters.pop("symbol")

    def initial_count(self) -> int:
        return self.parameters["nSymbolsToCreate"]

    @property
    def symbol(self) -> Symbol:
        return self.tree.node(self.symbol_index)

    def children(self):
        return [self.symbol_index]

    def get_json(self):
        json = super().get_json()
        json["parameters"]["symbol"] = self.symbol.get_json()
        return json

    def parameter_changed(self, name):
        if name == "nSymbolsToCreate":
            self.n_to_create = self.initial_count()

    # -- geometry

    def initialize_bounds(self, bounds: Bounds) -> None:
        self.bounds = Bounds(bounds.rectangle)

    def transform(self) -> None:
        self.n_created += 1

    # -- protocol

    def next(self, bounds, container, positions=()):
        if self.has_finished():
            return None
        if self.bounds is None:
            self.initialize_bounds(bounds)
        positions = list(positions) + [self.n_created / self.n_to_create]
        symbol = self.symbol
        result = symbol.next(self.bounds, container, positions)
        if symbol.has_finished():
            self.transform()
            symbol.reset(self.bounds)
        return result

    def has_finished(self):
        return self.n_created >= self.n_to_create

    def reset(self, bounds):
        self.n_created = 0
        self.bounds = None
        if bounds is not None:
            self.initialize_bounds(bounds)
        self.symbol.reset(self.bounds)


# ---------------------------- Linear -----------------------------------------

def extent(rect: Rect, axis: str) -> float:
    return rect.width if axis == "x" else rect.height


def set_extent(bounds: Bounds, axis: str, value: float) -> None:
    if axis == "x":
        bounds.set_width(value)
    else:
        bounds.set_height(value)


def shift(bounds: Bounds, axis: str, offset: float) -> None:
    if axis == "x":
        bounds.set_x(bounds.rectangle.x + offset)
    else:
        bounds.set_y(bounds.rectangle.y + offset)


class LinearPlacer(Placer):
    """Slots laid side by side along `axis`, filling the incoming extent."""
    axis = "x"

    def slot_size(self, i: int) -> float:
        return self.span / self.n_to_create

    def initialize_bounds(self, bounds):
        super().initialize_bounds(bounds)
        self.span = extent(bounds.rectangle, self.axis)
        if self.n_to_create > 0:
            set_extent(self.bounds, self.axis, self.slot_size(0))

    def transform(self):
        offset = extent(self.bounds.rectangle, self.axis)
        super().transform()
        shift(self.bounds, self.axis, offset)
        if self.n_created < self.n_to_create:
            set_extent(self.bounds, self.axis, self.slot_size(self.n_created))


@register_symbol("placer-x", "line")
class PlacerX(LinearPlacer):
    axis = "x"
    fields = (Field("nSymbolsToCreate", "Width", "int", minimum=0, step=1),)


@register_symbol("placer-y", "column")
class PlacerY(LinearPlacer):
    axis = "y"
    fields = (Field("nSymbolsToCreate", "Height", "int", minimum=0, step=1),)


# ---------------------------- Depth ------------------------------------------

@register_symbol("placer-z", "scaler")
class PlacerZ(Placer):
    """Concentric slots: every step keeps `1 - scale` of the size.

    With `margin` the first step is taken at initialization without being
    counted, so the first shape is already inset.
    """
    default_parameters = {"nSymbolsToCreate": 1, "scale": 0.5, "margin": False, "symbol": DEFAULT_CHILD}
    fields = (
        Field("nSymbolsToCreate", "Depth", "int", minimum=0, step=1),
        Field("margin", "Margin", "bool"),
        Field("scale", "Scale", minimum=0, maximum=1, step=0.01),
    )

    def initialize_bounds(self, bounds):
        super().initialize_bounds(bounds)
        if self.parameters["margin"]:
            self.transform()
            self.n_created -= 1

    def transform(self):
        super().transform()
        keep = 1 - self.parameters["scale"]
        center = self.bounds.rectangle.center
        self.bounds.set_wh(self.bounds.rectangle.width * keep, self.bounds.rectangle.height * keep)
        self.bounds.set_center(center)


# ---------------------------- Grid -------------------------------------------

@register_symbol("placer-xyz", "grid")
class PlacerXYZ(PlacerY):
    """`height` rows of `width` columns, each cell a `placer-z` stack.

    The document keeps the flat parameters; internally the node is a
    placer-y holding a placer-x holding a placer-z holding the leaf.
    """
    default_parameters = {
        "width": 10,
        "height": 10,
        "nSymbolsToCreate": 1,
        "margin": False,
        "scale": 0.5,
        "symbol": DEFAULT_CHILD,
    }
    fields = (
        Field("width", "Width", "int", minimum=0, step=1),
        Field("height", "Height", "int", minimum=0, step=1),
        Field("nSymbolsToCreate", "Depth", "int", minimum=0, step=1),
        Field("margin", "Margin", "bool"),
        Field("scale", "Scale", minimum=0, maximum=1, step=0.01),
    )

    def child_spec(self):
        p = self.parameters
        return {
            "type": "placer-x",
            "parameters": {
                "nSymbolsToCreate": p["width"],
                "symbol": {
                    "type": "placer-z",
                    "parameters": {
                        "nSymbolsToCreate": p["nSymbolsToCreate"],
                        "margin": p["margin"],
                        "scale": p["scale"],
                        "symbol": p.pop("symbol"),
                    },
                },
            },
        }

    def initial_count(self):
        return self.parameters["height"]

    @property
    def row(self) -> Placer:
        return self.symbol

    @property
    def stack(self) -> Placer:
        return self.row.symbol

    @property
    def leaf(self) -> Symbol:
        return self.stack.symbol

    def parameter_changed(self, name):
        if name == "height":
            self.n_to_create = self.initial_count()
        elif name == "width":
            self.row.set_parameter("nSymbolsToCreate", self.parameters["width"])
        else:
            self.stack.set_parameter(name, self.parameters[name])

    def get_json(self):
        json = Symbol.get_json(self)
        parameters = json["parameters"]
        parameters["width"] = self.row.parameters["nSymbolsToCreate"]
        parameters["height"] = self.n_to_create
        for name in ("nSymbolsToCreate", "margin", "scale"):
            parameters[name] = self.stack.parameters[name]
        parameters["symbol"] = self.leaf.get_json()
        return json


# ---------------------------- Random counts ----------------------------------

class RandomCountPlacer(LinearPlacer):
    """Linear placer whose count is drawn from [min, max] at every reset."""
    default_parameters = {"min": 1, "max": 10, "symbol": DEFAULT_CHILD}
    fields = (
        Field("min", "Min", "int", minimum=0, step=1),
        Field("max", "Max", "int", minimum=0, step=1),
    )

    def upgrade_parameters(self, parameters):
        pass

    def initial_count(self):
        low, high = self.parameters["min"], self.parameters["max"]
        require(low <= high, f"{self.type}: min ({low}) must not exceed max ({high})")
        n = self.rng.randint(low, high)
        logger.debug("%s drew %d slots", self.type, n)
        return n

    def parameter_changed(self, name):
        self.n_to_create = self.initial_count()

    def reset(self, bounds):
        self.n_to_create = self.initial_count()
        super().reset(bounds)


@register_symbol("random-line")
class RandomLine(RandomCountPlacer):
    axis = "x"


@register_symbol("random-column")
class RandomColumn(RandomCountPlacer):
    axis = "y"


def irregular_fractions(n: int, irregularity: float, generator: np.random.Generator) -> np.ndarray:
    """n slot fractions summing to 1, each raw weight drawn from U(1-irregularity, 1)."""
    if n <= 0:
        return np.zeros(0)
    weights = generator.uniform(1 - irregularity, 1, n)
    total = weights.sum()
    if total <= 0:
        return np.full(n, 1 / n)
    return weights / total


class IrregularPlacer(RandomCountPlacer):
    default_parameters = {"min": 1, "max": 10, "irregularity": 0.5, "symbol": DEFAULT_CHILD}
    fields = RandomCountPlacer.fields + (
        Field("irregularity", "Irregularity", minimum=0, maximum=1, step=0.01),
    )

    def initial_count(self):
        n = super().initial_count()
        self.fractions = irregular_fractions(n, self.parameters["irregularity"], numpy_generator(self.rng))
        return n

    def slot_size(self, i):
        return self.span * float(self.fractions[i])


@register_symbol("irregular-line")
class IrregularLine(IrregularPlacer):
    axis = "x"


@register_symbol("irregular-column")
class IrregularColumn(IrregularPlacer):
    axis = "y"

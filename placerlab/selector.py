"""
selector.py
===========

`random-shape` (alias `random`): picks one child per pass by weight.

The table is an ordered list of `ShapeProbability(weight, symbol)` entries;
`total_weight` is recomputed from the weights after every table edit. A draw takes
`u ~ U(0, total_weight)` and selects the first entry whose running sum is
strictly greater than `u`, so a zero weight is never picked. The chosen
child is checked out until it finishes; `has_finished()` is true exactly
when nothing is checked out, so seen from a placer every call is one pass.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .symbols import Symbol, child_spec, register_symbol
from .validation import as_dict, as_list, as_number, require

logger = logging.getLogger(__name__)


@dataclass
class ShapeProbability:
    weight: float
    symbol: int


def check_weight(value: Any, path: str) -> float:
    value = as_number(value, path)
    require(value >= 0, f"{path} must be >= 0")
    return value


@register_symbol("random-shape", "random")
class RandomShape(Symbol):
    default_parameters = {
        "shapeProbabilities": [
            {"weight": 1, "type": "rectangle", "parameters": {}},
            {"weight": 1, "type": "circle", "parameters": {}},
        ]
    }

    def __init__(self, parameters, tree, index):
        super().__init__(parameters, tree, index)
        self.entries: List[ShapeProbability] = []
        self.total_weight = 0.0
        self.current: Optional[int] = None
        table = as_list(self.parameters.pop("shapeProbabilities"), "random-shape.shapeProbabilities")
        for i, item in enumerate(table):
            path = f"random-shape.shapeProbabilities[{i}]"
            item = as_dict(item, path)
            weight = check_weight(item.get("weight", 1), f"{path}.weight")
            spec = child_spec(item, path)
            self.add_entry(spec["type"], spec["parameters"], weight)

    def children(self):
        return [e.symbol for e in self.entries]

    def get_json(self):
        json = super().get_json()
        table = []
        for entry in self.entries:
            item: Dict[str, Any] = {"weight": entry.weight}
            item.update(self.tree.node(entry.symbol).get_json())
            table.append(item)
        json["parameters"]["shapeProbabilities"] = table
        return json

    # -- table edits

    def add_entry(self, type_name: str = "rectangle", parameters: Optional[Dict[str, Any]] = None,
                  weight: float = 1) -> ShapeProbability:
        weight = check_weight(weight, "random-shape.weight")
        entry = ShapeProbability(weight, self.tree.create(type_name, parameters, parent=self.index))
        self.entries.append(entry)
        self.compute_weight()
        return entry

    def remove_entry(self, position: int) -> None:
        entry = self.entries.pop(position)
        self.compute_weight()
        if self.current == entry.symbol:
            self.current = None
        self.tree.release(entry.symbol)

    def set_weight(self, position: int, weight: float) -> None:
        weight = check_weight(weight, "random-shape.weight")
        self.entries[position].weight = weight
        self.compute_weight()

    def change_child(self, position: int, type_name: str) -> Symbol:
        entry = self.entries[position]
        if self.current == entry.symbol:
            self.current = None
        return self.tree.change_type(entry.symbol, type_name)

    def compute_weight(self) -> float:
        self.total_weight = sum(e.weight for e in self.entries)
        return self.total_weight

    # -- protocol

    def draw(self) -> Optional[int]:
        if not self.entries or self.total_weight <= 0:
            return None
        u = self.rng.random() * self.total_weight
        cumulative = 0.0
        for entry in self.entries:
            cumulative += entry.weight
            if cumulative > u:
                return entry.symbol
        # rounding can leave u just past the last running sum
        return next(e.symbol for e in reversed(self.entries) if e.weight > 0)

    def next(self, bounds, container, positions=()):
        if self.current is None:
            self.current = self.draw()
            if self.current is None:
                logger.debug("random-shape #%d has no weight to draw from", self.index)
                return None
            self.tree.node(self.current).reset(bounds)
        symbol = self.tree.node(self.current)
        result = symbol.next(bounds, container, positions)
        if symbol.has_finished():
            symbol.reset(bounds)
            self.current = None
        return result

    def has_finished(self):
        return self.current is None

    def reset(self, bounds):
        if self.current is not None:
            self.tree.node(self.current).reset(bounds)
            self.current = None

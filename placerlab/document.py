"""
document.py
===========

The root pattern document and the loop that drives it.

A document is the JSON object the app edits:

    {
      "generation": "animation" | "static",
      "speed": 500,                 # ms to wait before restarting a finished pass
      "nSymbolsPerFrame": 100,
      "size": {"width": 1000, "height": 1000},
      "optimizeWithRaster": false,
      "seed": 7,                    # optional
      "symbol": {"type": ..., "parameters": {...}}
    }

A bare `{type, parameters}` object is accepted as a document with default
settings. `PatternRunner` owns the symbol tree built from it and calls
`next` on the root a bounded number of times per frame.
"""

import copy
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .bounds import Bounds
from .effects import RasterSampler
from .geometry import Shape
from .symbols import SymbolTree, child_spec, rng_from_seed
from .validation import ConfigError, as_bool, as_dict, as_int, as_number, as_str, require

logger = logging.getLogger(__name__)

GENERATIONS = ("animation", "static")

DEFAULT_SYMBOL = {
    "type": "placer-xyz",
    "parameters": {
        "width": 10,
        "height": 10,
        "nSymbolsToCreate": 1,
        "scale": 0.2,
        "margin": True,
        "symbol": {
            "type": "random-shape",
            "parameters": {
                "shapeProbabilities": [
                    {"weight": 1, "type": "circle", "parameters": {"radius": 1}},
                    {"weight": 1, "type": "rectangle", "parameters": {"width": 1, "height": 1}},
                ],
                "effects": [
                    {"type": "random-palette", "parameters": {"palette": ["red", "blue", "green", "black"]}},
                ],
            },
        },
    },
}

# run_pass stops here when the root never reports finished
MAX_CALLS_PER_PASS = 200_000


@dataclass
class PatternDocument:
    symbol: Dict[str, Any] = field(default_factory=lambda: copy.deepcopy(DEFAULT_SYMBOL))
    generation: str = "animation"
    speed: float = 500
    n_symbols_per_frame: int = 100
    width: float = 1000
    height: float = 1000
    optimize_with_raster: bool = False
    seed: Optional[int] = None

    def to_json(self) -> Dict[str, Any]:
        obj: Dict[str, Any] = {
            "generation": self.generation,
            "speed": self.speed,
            "nSymbolsPerFrame": self.n_symbols_per_frame,
            "size": {"width": self.width, "height": self.height},
            "optimizeWithRaster": self.optimize_with_raster,
        }
        if self.seed is not None:
            obj["seed"] = self.seed
        obj["symbol"] = copy.deepcopy(self.symbol)
        return obj


def parse_document(obj: Any) -> PatternDocument:
    """Validate a decoded JSON document. Raises ConfigError."""
    obj = as_dict(obj, "document")
    if "symbol" not in obj and "type" in obj:
        return PatternDocument(symbol=child_spec(obj, "document"))
    doc = PatternDocument()
    if "symbol" in obj:
        doc.symbol = child_spec(obj["symbol"], "symbol")
    if "generation" in obj:
        doc.generation = as_str(obj["generation"], "generation")
        require(doc.generation in GENERATIONS, f"generation must be one of {list(GENERATIONS)}")
    if "speed" in obj:
        doc.speed = as_number(obj["speed"], "speed")
        require(doc.speed >= 0, "speed must be >= 0")
    if "nSymbolsPerFrame" in obj:
        doc.n_symbols_per_frame = as_int(obj["nSymbolsPerFrame"], "nSymbolsPerFrame")
        require(doc.n_symbols_per_frame >= 1, "nSymbolsPerFrame must be >= 1")
    if "size" in obj:
        size = as_dict(obj["size"], "size")
        doc.width = as_number(size.get("width", doc.width), "size.width")
        doc.height = as_number(size.get("height", doc.height), "size.height")
        require(doc.width > 0 and doc.height > 0, "size must be positive")
    if "optimizeWithRaster" in obj:
        doc.optimize_with_raster = as_bool(obj["optimizeWithRaster"], "optimizeWithRaster")
    if obj.get("seed") is not None:
        doc.seed = as_int(obj["seed"], "seed")
    return doc


def loads_document(text: str) -> PatternDocument:
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"malformed JSON: {e}") from e
    return parse_document(obj)


def load_document(path: str) -> PatternDocument:
    with open(path, "r", encoding="utf-8") as f:
        return loads_document(f.read())


def dump_document(doc: PatternDocument, path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(doc.to_json(), f, indent=2)
        f.write("\n")


# ---------------------------- Runner -----------------------------------------

class PatternRunner:
    """Drives the root symbol of a document, a few shapes per frame."""

    def __init__(self, document: PatternDocument, raster_sampler: Optional[RasterSampler] = None):
        self.document = document
        self.raster_sampler = raster_sampler
        self.tree = SymbolTree.from_json(document.symbol, rng_from_seed(document.seed), raster_sampler)
        self.container = self.make_container()
        self.reset_at: Optional[float] = None
        self.finished = False
        self.passes = 0
        self.reset()

    def make_container(self) -> Bounds:
        return Bounds.from_xywh(0, 0, self.document.width, self.document.height)

    def reset(self) -> None:
        """Start a new pass over the full document area."""
        self.container = self.make_container()
        self.reset_at = None
        self.finished = False
        self.tree.root_node.reset(self.container)

    def step(self) -> Optional[Shape]:
        return self.tree.root_node.next(self.container, self.container)

    def frame(self, now_ms: float) -> List[Shape]:
        """Shapes produced during one animation frame at time `now_ms`."""
        if self.reset_at is not None:
            if now_ms < self.reset_at:
                return []
            self.reset()
        if self.finished:
            return []
        root = self.tree.root_node
        shapes = []
        for _ in range(self.document.n_symbols_per_frame):
            shape = self.step()
            if shape is not None:
                shapes.append(shape)
            if root.has_finished():
                self.pass_finished(now_ms)
                break
        return shapes

    def pass_finished(self, now_ms: float) -> None:
        self.finished = True
        self.passes += 1
        logger.info("pass %d finished", self.passes)
        if self.document.generation == "animation":
            self.reset_at = now_ms + self.document.speed

    def run_pass(self, max_shapes: Optional[int] = None) -> List[Shape]:
        """Reset, then drain the root until it finishes or `max_shapes` calls were made."""
        self.reset()
        limit = max_shapes if max_shapes is not None else MAX_CALLS_PER_PASS
        root = self.tree.root_node
        shapes = []
        for _ in range(limit):
            shape = self.step()
            if shape is not None:
                shapes.append(shape)
            if root.has_finished():
                self.finished = True
                self.passes += 1
                break
        else:
            logger.warning("stopped after %d calls before the pattern finished", limit)
        logger.info("pass produced %d shapes", len(shapes))
        return shapes

    # -- editing

    def apply_source(self, text: str) -> bool:
        """Replace the pattern with edited JSON; keep the current one if it is invalid."""
        try:
            document = loads_document(text)
            tree = SymbolTree.from_json(document.symbol, rng_from_seed(document.seed), self.raster_sampler)
        except ConfigError as e:
            logger.warning("ignoring edited source: %s", e)
            return False
        self.document = document
        self.tree = tree
        self.reset()
        return True

    def change_root_type(self, type_name: str) -> None:
        self.tree.change_type(self.tree.root, type_name)
        self.document.symbol = self.tree.get_json()
        self.reset()

    def to_document(self) -> PatternDocument:
        """The current document, with the symbol serialized from the live tree."""
        doc = copy.deepcopy(self.document)
        doc.symbol = self.tree.get_json()
        return doc

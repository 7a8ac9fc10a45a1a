"""
placerlab
=========

Procedural patterns from a tree of composable symbols.

>>> from placerlab import PatternDocument, PatternRunner
>>> runner = PatternRunner(PatternDocument(seed=42))
>>> shapes = runner.run_pass()

Importing the package registers every symbol and effect type.
"""

from .bounds import Bounds
from .document import PatternDocument, PatternRunner, dump_document, load_document, loads_document, parse_document
from .effects import EFFECTS, Effect, create_effect, register_effect
from .geometry import Color, Rect, Shape
from .symbols import SYMBOLS, Symbol, SymbolTree, register_symbol, resolve_type, rng_from_seed
from .validation import ConfigError

from . import placers, selector, subdivision, terminals  # noqa: F401  (registration)

__version__ = "0.1.0"

__all__ = [
    "Bounds",
    "Color",
    "ConfigError",
    "EFFECTS",
    "Effect",
    "PatternDocument",
    "PatternRunner",
    "Rect",
    "SYMBOLS",
    "Shape",
    "Symbol",
    "SymbolTree",
    "create_effect",
    "dump_document",
    "load_document",
    "loads_document",
    "parse_document",
    "register_effect",
    "register_symbol",
    "resolve_type",
    "rng_from_seed",
]

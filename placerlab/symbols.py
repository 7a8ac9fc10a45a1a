"""
symbols.py
==========

The symbol protocol and the arena that owns every symbol of a pattern.

A pattern is a tree of symbols described by nested `{type, parameters}`
objects. Every symbol implements the same small iterator protocol:

    next(bounds, container, positions)  -> Shape or None
    has_finished()                      -> bool, pure query
    reset(bounds)                       -> start a new generation pass
    get_json()                          -> {type, parameters}

Symbols live in a `SymbolTree`, addressed by integer index. A symbol refers
to its children by index and finds its parent through the tree, so swapping
a node for another type (`SymbolTree.change_type`) reuses the same slot and
no reference goes stale. The tree also resolves effect chains and owns the
random source every node draws from.
"""

import copy
import heapq
import logging
import random
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Optional, Sequence, Type

import numpy as np

from .bounds import Bounds
from .effects import DEFAULT_EFFECT, Effect, RasterSampler, create_effect, effects_from_json
from .geometry import Shape
from .validation import ConfigError, Field, as_dict, as_str, merge_defaults, require

logger = logging.getLogger(__name__)

_SYMBOLS: Dict[str, Type["Symbol"]] = {}
_ALIASES: Dict[str, str] = {}
SYMBOLS = MappingProxyType(_SYMBOLS)


def register_symbol(name: str, *aliases: str):
    """Class decorator: register a symbol under `name` (canonical) and aliases."""
    def decorator(cls):
        for tag in (name,) + aliases:
            if tag in _SYMBOLS or tag in _ALIASES:
                raise ValueError(f"Symbol type {tag!r} registered twice")
        cls.type = name
        _SYMBOLS[name] = cls
        for alias in aliases:
            _ALIASES[alias] = name
        return cls
    return decorator


def resolve_type(type_name: str) -> str:
    """Canonical tag for a type name or alias."""
    if type_name in _SYMBOLS:
        return type_name
    if type_name in _ALIASES:
        return _ALIASES[type_name]
    raise ConfigError(f"Unknown symbol type: {type_name!r}. Choose from {symbol_names()}")


def symbol_names() -> List[str]:
    return sorted(list(_SYMBOLS) + list(_ALIASES))


def child_spec(value: Any, path: str) -> Dict[str, Any]:
    """Validate a nested `{type, parameters}` object."""
    value = as_dict(value, path)
    as_str(value.get("type"), f"{path}.type")
    parameters = value.get("parameters")
    if parameters is None:
        parameters = {}
    return {"type": value["type"], "parameters": as_dict(parameters, f"{path}.parameters")}


# ---------------------------- Symbol -----------------------------------------

class Symbol:
    """Base of every node. Subclasses override the protocol methods.

    `default_parameters` is merged into the supplied parameters at
    construction; `fields` lists the parameters a property panel may edit.
    """
    type: str = ""
    default_parameters: Dict[str, Any] = {}
    fields: Sequence[Field] = ()

    def __init__(self, parameters: Optional[Dict[str, Any]], tree: "SymbolTree", index: int):
        self.tree = tree
        self.index = index
        parameters = copy.deepcopy(as_dict(parameters if parameters is not None else {}, f"{self.type}.parameters"))
        self.effects: List[Effect] = self._read_effects(parameters)
        self.upgrade_parameters(parameters)
        self.parameters = merge_defaults(type(self).default_parameters, parameters, tree.rng)
        for f in self.fields:
            if f.kind != "json" and f.name in self.parameters:
                self.parameters[f.name] = f.coerce(self.parameters[f.name], f"{self.type}.{f.name}")

    def upgrade_parameters(self, parameters: Dict[str, Any]) -> None:
        """Rename keys written by older documents, in place."""

    @property
    def rng(self) -> random.Random:
        return self.tree.rng

    def _read_effects(self, parameters: Dict[str, Any]) -> List[Effect]:
        effects = parameters.pop("effects", None)
        colors = parameters.pop("colors", None)
        if effects is not None:
            return effects_from_json(effects, self.tree, f"{self.type}.effects")
        if colors is not None:
            # single color generator, the older form of an effect list
            return effects_from_json([colors], self.tree, f"{self.type}.colors")
        return []

    # -- tree

    @property
    def parent(self) -> Optional["Symbol"]:
        return self.tree.parent_node(self.index)

    def children(self) -> List[int]:
        return []

    def create_child(self, spec: Any, path: str) -> int:
        spec = child_spec(spec, path)
        return self.tree.create(spec["type"], spec["parameters"], parent=self.index)

    # -- protocol

    def next(self, bounds: Bounds, container: Bounds, positions: Sequence[float] = ()) -> Optional[Shape]:
        return None

    def has_finished(self) -> bool:
        return True

    def reset(self, bounds: Optional[Bounds]) -> None:
        pass

    def get_json(self) -> Dict[str, Any]:
        parameters = copy.deepcopy(self.parameters)
        if self.effects:
            parameters["effects"] = [e.get_json() for e in self.effects]
        return {"type": self.type, "parameters": parameters}

    def emit(self, shape: Shape, positions: Sequence[float], container: Bounds) -> Shape:
        self.tree.apply_effects(self.index, positions, shape, container)
        return shape

    # -- editing

    def set_parameter(self, name: str, value: Any) -> None:
        field = next((f for f in self.fields if f.name == name), None)
        require(field is not None, f"{self.type} has no parameter {name!r}")
        value = field.coerce(value, f"{self.type}.{name}")
        missing = name not in self.parameters
        previous = self.parameters.get(name)
        self.parameters[name] = value
        try:
            self.parameter_changed(name)
        except ConfigError:
            if missing:
                del self.parameters[name]
            else:
                self.parameters[name] = previous
            raise

    def parameter_changed(self, name: str) -> None:
        """Hook run after an edit; raise ConfigError to reject the new value."""

    def add_effect(self, type_name: str, parameters: Optional[Dict[str, Any]] = None,
                   position: Optional[int] = None) -> Effect:
        effect = create_effect(type_name, parameters, self.tree)
        self.effects.insert(len(self.effects) if position is None else position, effect)
        self.tree.invalidate_effects()
        return effect

    def remove_effect(self, effect: Effect) -> None:
        self.effects.remove(effect)
        self.tree.invalidate_effects()

    def change_effect(self, effect: Effect, type_name: str) -> Effect:
        position = self.effects.index(effect)
        replacement = create_effect(type_name, {}, self.tree)
        self.effects[position] = replacement
        self.tree.invalidate_effects()
        return replacement

    def __repr__(self) -> str:
        return f"<{type(self).__name__} #{self.index} {self.type}>"


# ---------------------------- Arena ------------------------------------------

def rng_from_seed(seed: Optional[int]) -> random.Random:
    """Return a Random instance from seed (or system)."""
    r = random.Random()
    if seed is not None:
        r.seed(int(seed))
    else:
        r.seed()
    return r


def numpy_generator(rng: random.Random) -> np.random.Generator:
    """numpy generator drawn from the tree's Random so one seed fixes both."""
    return np.random.default_rng(rng.getrandbits(64))


class SymbolTree:
    """Arena of symbols. Children are addressed by index, parents by index."""

    def __init__(self, rng: Optional[random.Random] = None, raster_sampler: Optional[RasterSampler] = None):
        self.rng = rng if rng is not None else rng_from_seed(None)
        self.raster_sampler = raster_sampler
        self.root: Optional[int] = None
        self._nodes: List[Optional[Symbol]] = []
        self._parents: List[Optional[int]] = []
        self._free: List[int] = []
        self._pending: List[int] = []
        self._building = 0
        self._effect_cache: Dict[int, List[Effect]] = {}
        self._default_effects: Optional[List[Effect]] = None

    @classmethod
    def from_json(cls, obj: Any, rng: Optional[random.Random] = None,
                  raster_sampler: Optional[RasterSampler] = None) -> "SymbolTree":
        tree = cls(rng, raster_sampler)
        spec = child_spec(obj, "symbol")
        tree.root = tree.create(spec["type"], spec["parameters"])
        return tree

    def get_json(self) -> Dict[str, Any]:
        require(self.root is not None, "tree has no root symbol")
        return self.node(self.root).get_json()

    # -- nodes

    def create(self, type_name: str, parameters: Optional[Dict[str, Any]] = None,
               parent: Optional[int] = None) -> int:
        cls = _SYMBOLS[resolve_type(type_name)]
        index = self._allocate(parent)
        mark = len(self._pending)
        self._pending.append(index)
        self._building += 1
        try:
            self._nodes[index] = cls(parameters, self, index)
        except Exception:
            # every slot taken since `mark` belongs to the failed subtree
            for i in self._pending[mark:]:
                self._free_slot(i)
            del self._pending[mark:]
            raise
        finally:
            self._building -= 1
            if not self._building:
                self._pending.clear()
        logger.debug("created %s #%d (parent %s)", cls.type, index, parent)
        return index

    def node(self, index: int) -> Symbol:
        node = self._nodes[index]
        if node is None:
            raise KeyError(f"symbol #{index} was released")
        return node

    def __getitem__(self, index: int) -> Symbol:
        return self.node(index)

    @property
    def root_node(self) -> Symbol:
        require(self.root is not None, "tree has no root symbol")
        return self.node(self.root)

    def parent_of(self, index: int) -> Optional[int]:
        return self._parents[index]

    def parent_node(self, index: int) -> Optional[Symbol]:
        parent = self._parents[index]
        return None if parent is None else self.node(parent)

    def __iter__(self) -> Iterator[Symbol]:
        return (n for n in self._nodes if n is not None)

    def __len__(self) -> int:
        return sum(1 for n in self._nodes if n is not None)

    def change_type(self, index: int, type_name: str, parameters: Optional[Dict[str, Any]] = None,
                    keep_effects: bool = True) -> Symbol:
        """Replace the symbol at `index` by a fresh one of another type.

        The new symbol takes the same slot, so its parent keeps pointing at
        it. The old subtree is released. If building the new symbol fails the
        old one is left untouched.
        """
        old = self.node(index)
        parameters = copy.deepcopy(parameters) if parameters else {}
        if keep_effects and old.effects and "effects" not in parameters and "colors" not in parameters:
            parameters["effects"] = [e.get_json() for e in old.effects]
        temp = self.create(type_name, parameters, parent=self._parents[index])
        new = self.node(temp)
        for child in old.children():
            self._release(child)
        self._nodes[index] = new
        self._free_slot(temp)
        new.index = index
        for child in new.children():
            self._parents[child] = index
        self.invalidate_effects()
        logger.debug("changed #%d from %s to %s", index, old.type, new.type)
        return new

    def release(self, index: int) -> None:
        """Drop a detached subtree (used when a parent removes a child)."""
        self._release(index)
        self.invalidate_effects()

    def _release(self, index: int) -> None:
        stack = [index]
        while stack:
            i = stack.pop()
            node = self._nodes[i]
            if node is None:
                continue
            stack.extend(node.children())
            self._free_slot(i)

    def _allocate(self, parent: Optional[int]) -> int:
        """Lowest released slot, else a new one at the end."""
        if self._free:
            index = heapq.heappop(self._free)
            self._parents[index] = parent
            return index
        self._nodes.append(None)
        self._parents.append(parent)
        return len(self._nodes) - 1

    def _free_slot(self, index: int) -> None:
        self._nodes[index] = None
        self._parents[index] = None
        heapq.heappush(self._free, index)

    # -- effects

    def invalidate_effects(self) -> None:
        self._effect_cache.clear()

    def effects_for(self, index: int) -> List[Effect]:
        """Own effects, else the nearest ancestor's, else the tree default."""
        cached = self._effect_cache.get(index)
        if cached is not None:
            return cached
        visited = []
        resolved = None
        current: Optional[int] = index
        while current is not None:
            visited.append(current)
            effects = self.node(current).effects
            if effects:
                resolved = effects
                break
            current = self._parents[current]
        if resolved is None:
            if self._default_effects is None:
                self._default_effects = [create_effect(DEFAULT_EFFECT, {}, self)]
                logger.debug("no effect configured, using default %s", self._default_effects[0])
            resolved = self._default_effects
        for i in visited:
            self._effect_cache[i] = resolved
        return resolved

    def apply_effects(self, index: int, positions: Sequence[float], shape: Shape, container: Bounds) -> None:
        for effect in self.effects_for(index):
            effect.apply(positions, shape, container)

"""
effects.py
==========

Appearance effects applied to every shape a terminal emits. A symbol holds an
ordered list of effects; when it has none it borrows the list of its nearest
ancestor that does (see `SymbolTree.effects_for`). Effects run in list order
on the freshly created shape, so a later effect overrides an earlier one.

Effects are registered by tag in `EFFECTS`:

    random-hue      hue jitter around a base hue (the default effect)
    random-palette  uniform pick from a list of colors
    three-stripes   color from the first three position fractions
    noise           hashed per-vertex displacement
    transform       translate / scale / rotate about the shape center
    smooth          Chaikin corner cutting
    raster-scale    scale by the brightness of a sampled image
"""

import copy
import logging
import math
import random
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Optional, Sequence, Type

import numpy as np

from .bounds import Bounds
from .geometry import BLACK, Color, Point, Shape
from .validation import ConfigError, Field, as_dict, as_list, as_str, merge_defaults, require

logger = logging.getLogger(__name__)

RasterSampler = Callable[[Point], Optional[Color]]

_EFFECTS: Dict[str, Type["Effect"]] = {}
EFFECTS = MappingProxyType(_EFFECTS)

DEFAULT_EFFECT = "random-hue"


def register_effect(name: str):
    def decorator(cls):
        if name in _EFFECTS:
            raise ValueError(f"Effect {name!r} registered twice")
        cls.type = name
        _EFFECTS[name] = cls
        return cls
    return decorator


def create_effect(type_name: str, parameters: Optional[Dict[str, Any]], tree: Any) -> "Effect":
    cls = _EFFECTS.get(type_name)
    if cls is None:
        raise ConfigError(f"Unknown effect type: {type_name!r}. Choose from {sorted(_EFFECTS)}")
    return cls(parameters, tree)


def effects_from_json(items: Any, tree: Any, path: str = "effects") -> List["Effect"]:
    effects = []
    for i, item in enumerate(as_list(items, path)):
        item = as_dict(item, f"{path}[{i}]")
        type_name = as_str(item.get("type"), f"{path}[{i}].type")
        effects.append(create_effect(type_name, item.get("parameters"), tree))
    return effects


# ---------------------------- Base -------------------------------------------

class Effect:
    type: str = ""
    default_parameters: Dict[str, Any] = {}
    fields: Sequence[Field] = ()

    def __init__(self, parameters: Optional[Dict[str, Any]] = None, tree: Any = None):
        self.tree = tree
        parameters = copy.deepcopy(as_dict(parameters if parameters is not None else {}, f"{self.type}.parameters"))
        self.parameters = merge_defaults(type(self).default_parameters, parameters, self.rng)
        self.validate()

    @property
    def rng(self) -> random.Random:
        return self.tree.rng if self.tree is not None else random

    def validate(self) -> None:
        for f in self.fields:
            if f.kind != "json":
                self.parameters[f.name] = f.coerce(self.parameters[f.name], f"{self.type}.{f.name}")

    def set_parameter(self, name: str, value: Any) -> None:
        field = next((f for f in self.fields if f.name == name), None)
        require(field is not None, f"{self.type} has no parameter {name!r}")
        self.parameters[name] = field.coerce(value, f"{self.type}.{name}")

    def get_json(self) -> Dict[str, Any]:
        return {"type": self.type, "parameters": copy.deepcopy(self.parameters)}

    def apply(self, positions: Sequence[float], shape: Shape, container: Bounds) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.parameters!r})"


def _paint(shape: Shape, color: Color, target: str, stroke_width: float) -> None:
    if target in ("fill", "fillStroke"):
        shape.fill = color
    if target in ("stroke", "fillStroke"):
        shape.stroke = color
        shape.stroke_width = stroke_width


# ---------------------------- Colors -----------------------------------------

TARGETS = ("fill", "stroke", "fillStroke")


@register_effect("random-hue")
class RandomHue(Effect):
    default_parameters = {
        "target": "fill",
        "strokeWidth": 1,
        "hue": lambda rng: 360 * rng.random(),
        "hueRange": lambda rng: 100 * rng.random(),
        "saturation": lambda rng: 0.3 + 0.4 * rng.random(),
        "brightness": 1,
        "alpha": 1,
    }
    fields = (
        Field("target", "Target", "choice", options=TARGETS),
        Field("strokeWidth", "Stroke width", minimum=0, maximum=10, step=0.1),
        Field("hue", "Hue", minimum=0, maximum=360, step=1),
        Field("hueRange", "Hue range", minimum=0, maximum=360, step=1),
        Field("saturation", "Saturation", minimum=0, maximum=1, step=0.01),
        Field("brightness", "Brightness", minimum=0, maximum=1, step=0.01),
        Field("alpha", "Alpha", minimum=0, maximum=1, step=0.01),
    )

    def apply(self, positions, shape, container):
        p = self.parameters
        hue = p["hue"] + (self.rng.random() - 0.5) * p["hueRange"]
        color = Color.from_hsb(hue, p["saturation"], p["brightness"], p["alpha"])
        _paint(shape, color, p["target"], p["strokeWidth"])


@register_effect("random-palette")
class RandomPalette(Effect):
    default_parameters = {"alpha": 1, "palette": ["black"]}
    fields = (
        Field("alpha", "Alpha", minimum=0, maximum=1, step=0.01),
        Field("palette", "Palette", "json"),
    )

    def validate(self) -> None:
        super().validate()
        palette = as_list(self.parameters["palette"], "random-palette.palette")
        self.colors = [self._parse(c, i) for i, c in enumerate(palette)]

    @staticmethod
    def _parse(value: Any, i: int) -> Color:
        value = as_str(value, f"random-palette.palette[{i}]")
        try:
            return Color.parse(value)
        except ValueError as e:
            raise ConfigError(f"random-palette.palette[{i}]: unknown color {value!r}") from e

    def set_parameter(self, name, value):
        super().set_parameter(name, value)
        if name == "palette":
            self.validate()

    def apply(self, positions, shape, container):
        color = self.rng.choice(self.colors) if self.colors else BLACK
        shape.fill = color.with_alpha(color.alpha * self.parameters["alpha"])

    def add_color(self) -> str:
        """Append a random fully saturated color and return it."""
        color = Color.from_hsb(self.rng.random() * 360, 1, 1)
        self.parameters["palette"].append(color.to_hex())
        self.colors.append(color)
        logger.debug("palette grew to %d colors", len(self.colors))
        return color.to_hex()

    def remove_last_color(self) -> None:
        if self.parameters["palette"]:
            self.parameters["palette"].pop()
            self.colors.pop()


@register_effect("three-stripes")
class ThreeStripes(Effect):

    def apply(self, positions, shape, container):
        hue = positions[0] * 255 if len(positions) > 0 else 0
        saturation = 0.75 + positions[1] * 0.25 if len(positions) > 1 else 0
        brightness = 0.75 + positions[2] * 0.25 if len(positions) > 2 else 0
        shape.fill = Color.from_hsb(hue, saturation, brightness)


# ---------------------------- Geometry ---------------------------------------

def _to_int32(v: int) -> int:
    v &= 0xFFFFFFFF
    return v - 0x100000000 if v >= 0x80000000 else v


def hashed_angle(x: int, y: int) -> int:
    """Direction in degrees for a quantized position; sign follows the hash."""
    h = _to_int32(x * 73856093) ^ _to_int32(y * 19349663)
    r = abs(h) % 10000
    return -r if h < 0 else r


@register_effect("noise")
class Noise(Effect):
    default_parameters = {"amount": 10}
    fields = (Field("amount", "Amount"),)

    def apply(self, positions, shape, container):
        shape.flatten()
        rect = container.rectangle
        amount = self.parameters["amount"]
        moved = []
        for px, py in shape.points:
            x = math.floor(1000 * (px - rect.x) / rect.width) if rect.width else 0
            y = math.floor(1000 * (py - rect.y) / rect.height) if rect.height else 0
            angle = math.radians(hashed_angle(x, y))
            moved.append((px + amount * math.cos(angle), py + amount * math.sin(angle)))
        shape.points = moved


@register_effect("transform")
class Transform(Effect):
    default_parameters = {
        "translationX": 0,
        "translationY": 0,
        "scaleX": 1,
        "scaleY": 1,
        "rotation": 0,
    }
    fields = (
        Field("translationX", "Translation X"),
        Field("translationY", "Translation Y"),
        Field("scaleX", "Scale X"),
        Field("scaleY", "Scale Y"),
        Field("rotation", "Rotation"),
    )

    def apply(self, positions, shape, container):
        p = self.parameters
        shape.translate(p["translationX"], p["translationY"])
        center = shape.bounding_box().center
        if p["scaleX"] != 1 or p["scaleY"] != 1:
            shape.scale(p["scaleX"], p["scaleY"], center)
        if p["rotation"]:
            shape.rotate(p["rotation"], center)


def chaikin(points: np.ndarray, closed: bool, iterations: int) -> np.ndarray:
    """Chaikin corner cutting; open outlines keep their end points."""
    for _ in range(iterations):
        if len(points) < 3:
            break
        nxt = np.roll(points, -1, axis=0)
        q = 0.75 * points + 0.25 * nxt
        r = 0.25 * points + 0.75 * nxt
        cut = np.empty((2 * len(points), 2))
        cut[0::2] = q
        cut[1::2] = r
        if closed:
            points = cut
        else:
            points = np.vstack([points[:1], cut[:-2], points[-1:]])
    return points


@register_effect("smooth")
class Smooth(Effect):
    default_parameters = {"iterations": 2}
    fields = (Field("iterations", "Iterations", "int", minimum=0, maximum=6, step=1),)

    def apply(self, positions, shape, container):
        if not shape.is_path:
            return
        pts = chaikin(np.asarray(shape.points, dtype=float), shape.closed, self.parameters["iterations"])
        shape.kind = "polygon"
        shape.points = [(float(x), float(y)) for x, y in pts]


@register_effect("raster-scale")
class RasterScale(Effect):
    default_parameters = {"invert": True, "amount": 1}
    fields = (
        Field("invert", "Invert", "bool"),
        Field("amount", "Amount", minimum=0, maximum=10, step=0.1),
    )

    def apply(self, positions, shape, container):
        sampler = getattr(self.tree, "raster_sampler", None)
        if sampler is None:
            return
        center = shape.bounding_box().center
        color = sampler(center)
        brightness = color.brightness if color is not None else 1
        if self.parameters["invert"]:
            brightness = 1 - brightness
        brightness *= self.parameters["amount"]
        shape.scale(brightness, brightness, center)

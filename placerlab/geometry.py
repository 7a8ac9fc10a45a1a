"""
geometry.py
===========

Value types shared by every node: axis-aligned rectangles, colors, and the
concrete `Shape` primitive handed to the rendering side.

Coordinates are screen coordinates (y grows downward), so positive angles
turn clockwise on screen. Angles are in degrees everywhere except the point
helpers, which take radians.
"""

import colorsys
import math
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple

from PIL import ImageColor

Point = Tuple[float, float]


# ---------------------------- Point helpers ----------------------------------

def rotate_points(points: Sequence[Point], angle_rad: float, origin: Point = (0.0, 0.0)) -> List[Point]:
    ca, sa = math.cos(angle_rad), math.sin(angle_rad)
    ox, oy = origin
    return [(ox + (x-ox)*ca - (y-oy)*sa, oy + (x-ox)*sa + (y-oy)*ca) for (x, y) in points]


def translate_points(points: Sequence[Point], dx: float, dy: float) -> List[Point]:
    return [(x+dx, y+dy) for (x, y) in points]


def scale_points(points: Sequence[Point], sx: float, sy: Optional[float] = None,
                 origin: Point = (0.0, 0.0)) -> List[Point]:
    if sy is None:
        sy = sx
    ox, oy = origin
    return [(ox + (x-ox)*sx, oy + (y-oy)*sy) for (x, y) in points]


# ---------------------------- Rect -------------------------------------------

# Index order of the nine reference points used by polygon-on-box.
POINT_NAMES = [
    "topLeft", "topCenter", "topRight", "rightCenter", "bottomRight",
    "bottomCenter", "bottomLeft", "leftCenter", "center",
]


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


@dataclass
class Rect:
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def size(self) -> Tuple[float, float]:
        return (self.width, self.height)

    def named_points(self) -> Dict[str, Point]:
        cx, cy = self.center
        return {
            "topLeft": (self.x, self.y),
            "topCenter": (cx, self.y),
            "topRight": (self.right, self.y),
            "rightCenter": (self.right, cy),
            "bottomRight": (self.right, self.bottom),
            "bottomCenter": (cx, self.bottom),
            "bottomLeft": (self.x, self.bottom),
            "leftCenter": (self.x, cy),
            "center": (cx, cy),
        }

    def point(self, name: str) -> Point:
        """Named reference point; `top_left` and `topLeft` are the same point."""
        points = self.named_points()
        key = camel_case(name)
        if key not in points:
            raise KeyError(name)
        return points[key]

    def corners(self) -> List[Point]:
        return [(self.x, self.y), (self.right, self.y), (self.right, self.bottom), (self.x, self.bottom)]

    def contains(self, p: Point) -> bool:
        return self.x <= p[0] <= self.right and self.y <= p[1] <= self.bottom

    def copy(self) -> "Rect":
        return Rect(self.x, self.y, self.width, self.height)

    @classmethod
    def from_points(cls, points: Sequence[Point]) -> "Rect":
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        return cls(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))


# ---------------------------- Color ------------------------------------------

@dataclass(frozen=True)
class Color:
    """RGBA color with 0..1 components."""
    r: float
    g: float
    b: float
    alpha: float = 1.0

    @classmethod
    def parse(cls, value: str, alpha: float = 1.0) -> "Color":
        """Parse a CSS-like color ('red', '#f00', 'rgb(...)', 'hsl(...)')."""
        rgb = ImageColor.getrgb(value.strip())
        if len(rgb) == 4:
            alpha = alpha * rgb[3] / 255
        return cls(rgb[0] / 255, rgb[1] / 255, rgb[2] / 255, alpha)

    @classmethod
    def from_hsb(cls, hue: float, saturation: float, brightness: float, alpha: float = 1.0) -> "Color":
        h = (hue % 360) / 360
        s = min(max(saturation, 0.0), 1.0)
        v = min(max(brightness, 0.0), 1.0)
        r, g, b = colorsys.hsv_to_rgb(h, s, v)
        return cls(r, g, b, alpha)

    @property
    def brightness(self) -> float:
        return max(self.r, self.g, self.b)

    def with_alpha(self, alpha: float) -> "Color":
        return replace(self, alpha=alpha)

    def to_rgba8(self) -> Tuple[int, int, int, int]:
        return tuple(int(round(min(max(c, 0.0), 1.0) * 255)) for c in (self.r, self.g, self.b, self.alpha))

    def to_hex(self) -> str:
        r, g, b, _ = self.to_rgba8()
        return f"#{r:02x}{g:02x}{b:02x}"


BLACK = Color(0.0, 0.0, 0.0)


# ---------------------------- Shape ------------------------------------------

@dataclass
class Shape:
    """A concrete primitive emitted by a terminal symbol.

    kind is one of:
      - "rectangle" / "polygon": `points` + `closed`
      - "circle": ellipse around `center` with `radius_x`, `radius_y`
      - "arc": closed pie slice from `start_angle` to `end_angle`
    `rotation` (degrees) turns circles and arcs about their center; polygon
    vertices are rotated directly.
    """
    kind: str
    points: List[Point] = field(default_factory=list)
    closed: bool = True
    center: Point = (0.0, 0.0)
    radius_x: float = 0.0
    radius_y: float = 0.0
    start_angle: float = 0.0
    end_angle: float = 360.0
    rotation: float = 0.0
    fill: Optional[Color] = None
    stroke: Optional[Color] = None
    stroke_width: float = 1.0

    @classmethod
    def rectangle(cls, rect: Rect) -> "Shape":
        return cls("rectangle", points=rect.corners(), closed=True)

    @classmethod
    def polygon(cls, points: Sequence[Point], closed: bool = True) -> "Shape":
        return cls("polygon", points=[(float(x), float(y)) for (x, y) in points], closed=closed)

    @classmethod
    def circle(cls, center: Point, radius: float) -> "Shape":
        return cls("circle", center=center, radius_x=radius, radius_y=radius)

    @classmethod
    def arc(cls, center: Point, radius: float, start_angle: float, end_angle: float) -> "Shape":
        return cls("arc", center=center, radius_x=radius, radius_y=radius,
                   start_angle=start_angle, end_angle=end_angle)

    @property
    def is_path(self) -> bool:
        return self.kind in ("rectangle", "polygon")

    def clone(self) -> "Shape":
        return replace(self, points=list(self.points))

    def to_polygon(self, segments: int = 64) -> "Shape":
        """Return a polygon approximation (a copy when already a path)."""
        if self.is_path:
            return self.clone()
        cx, cy = self.center
        if self.kind == "circle":
            angles = [2 * math.pi * i / segments for i in range(segments)]
            pts = [(cx + self.radius_x * math.cos(a), cy + self.radius_y * math.sin(a)) for a in angles]
        else:
            span = self.end_angle - self.start_angle
            n = max(2, int(math.ceil(segments * abs(span) / 360)) + 1)
            angles = [math.radians(self.start_angle + span * i / (n - 1)) for i in range(n)]
            pts = [(cx + self.radius_x * math.cos(a), cy + self.radius_y * math.sin(a)) for a in angles]
            pts.append((cx, cy))
        if self.rotation:
            pts = rotate_points(pts, math.radians(self.rotation), self.center)
        return replace(self, kind="polygon", points=pts, closed=True, rotation=0.0)

    def flatten(self, segments: int = 64) -> "Shape":
        """Turn a circle or arc into a polygon in place."""
        if not self.is_path:
            poly = self.to_polygon(segments)
            self.kind, self.points, self.closed, self.rotation = "polygon", poly.points, True, 0.0
        return self

    def vertices(self) -> List[Point]:
        return list(self.points) if self.is_path else self.to_polygon().points

    def bounding_box(self) -> Rect:
        if self.kind == "circle":
            t = math.radians(self.rotation)
            hw = math.hypot(self.radius_x * math.cos(t), self.radius_y * math.sin(t))
            hh = math.hypot(self.radius_x * math.sin(t), self.radius_y * math.cos(t))
            cx, cy = self.center
            return Rect(cx - hw, cy - hh, 2 * hw, 2 * hh)
        return Rect.from_points(self.vertices())

    def translate(self, dx: float, dy: float) -> "Shape":
        self.points = translate_points(self.points, dx, dy)
        self.center = (self.center[0] + dx, self.center[1] + dy)
        return self

    def scale(self, sx: float, sy: Optional[float] = None, origin: Optional[Point] = None) -> "Shape":
        if sy is None:
            sy = sx
        if origin is None:
            origin = self.bounding_box().center
        if not self.is_path and self.rotation % 180 and sx != sy:
            # a rotated ellipse does not stay an ellipse under this scale
            self.flatten()
        self.points = scale_points(self.points, sx, sy, origin)
        self.center = scale_points([self.center], sx, sy, origin)[0]
        self.radius_x *= abs(sx)
        self.radius_y *= abs(sy)
        return self

    def rotate(self, degrees: float, origin: Optional[Point] = None) -> "Shape":
        if origin is None:
            origin = self.bounding_box().center
        rad = math.radians(degrees)
        self.points = rotate_points(self.points, rad, origin)
        self.center = rotate_points([self.center], rad, origin)[0]
        if not self.is_path:
            self.rotation += degrees
        return self

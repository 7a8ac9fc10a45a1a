"""
bounds.py
=========

`Bounds` is the unit of spatial delegation between symbols: an axis-aligned
rectangle, optionally mirrored by a concrete shape (a noise-grid triangle for
instance). The rectangle is authoritative; every move or resize is replayed
on the attached shape so the two never drift apart.
"""

from typing import Optional, Tuple, Union

from .geometry import Point, Rect, Shape


class Bounds:

    def __init__(self, source: Union[Rect, Shape], rotation: float = 0.0):
        self.rectangle: Rect = Rect()
        self.shape: Optional[Shape] = None
        self.rotation = rotation
        self.set(source, rotation)

    def set(self, source: Union[Rect, Shape], rotation: float = 0.0) -> None:
        if isinstance(source, Shape):
            self.shape = source
            self.rectangle = source.bounding_box()
        else:
            self.shape = None
            self.rectangle = source.copy()
        self.rotation = rotation

    @classmethod
    def from_xywh(cls, x: float, y: float, width: float, height: float) -> "Bounds":
        return cls(Rect(x, y, width, height))

    # -- position

    def set_position(self, position: Point) -> None:
        """Move the top-left corner to `position`."""
        if self.shape is not None:
            self.shape.translate(position[0] - self.rectangle.x, position[1] - self.rectangle.y)
        self.rectangle.x, self.rectangle.y = position

    def set_x(self, x: float) -> None:
        self.set_xy(x, self.rectangle.y)

    def set_y(self, y: float) -> None:
        self.set_xy(self.rectangle.x, y)

    def set_xy(self, x: float, y: float) -> None:
        self.set_position((x, y))

    def set_center(self, center: Point) -> None:
        self.set_position((center[0] - self.rectangle.width / 2, center[1] - self.rectangle.height / 2))

    # -- size (top-left corner stays put)

    def set_size(self, size: Tuple[float, float]) -> None:
        """Resize the region; the attached shape is scaled to match.

        A shape that is flat along an axis cannot be stretched back out, so
        growing that axis from zero drops the shape and the region becomes
        its rectangle.
        """
        width, height = size
        r = self.rectangle
        if self.shape is not None and ((not r.width and width) or (not r.height and height)):
            self.shape = None
        if self.shape is not None:
            sx = width / r.width if r.width else 1.0
            sy = height / r.height if r.height else 1.0
            self.shape.scale(sx, sy, origin=(r.x, r.y))
        self.rectangle.width = width
        self.rectangle.height = height

    def set_width(self, width: float) -> None:
        self.set_wh(width, self.rectangle.height)

    def set_height(self, height: float) -> None:
        self.set_wh(self.rectangle.width, height)

    def set_wh(self, width: float, height: float) -> None:
        self.set_size((width, height))

    # -- access

    def get_rectangle(self) -> Rect:
        return self.rectangle.copy()

    def get_shape(self) -> Shape:
        """A fresh shape for this region: the attached one, or its rectangle."""
        if self.shape is None:
            return Shape.rectangle(self.rectangle)
        return self.shape.clone()

    def clone(self) -> "Bounds":
        copy = Bounds(self.rectangle, self.rotation)
        if self.shape is not None:
            copy.shape = self.shape.clone()
        return copy

    def __repr__(self) -> str:
        r = self.rectangle
        return f"Bounds(x={r.x:g}, y={r.y:g}, width={r.width:g}, height={r.height:g})"

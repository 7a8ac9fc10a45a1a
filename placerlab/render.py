"""
render.py
=========

Pillow rendering of the shapes a pattern emits, plus the raster sampler the
`raster-scale` effect reads from.

Only the drawing boundary lives here: the symbols never import Pillow's
drawing side. A `Canvas` either keeps the emitted shapes and draws them on
demand, or, with `optimize_with_raster`, flattens them into the image as
they arrive so long animations do not accumulate shape lists.
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw

from .geometry import Color, Point, Shape

logger = logging.getLogger(__name__)

RGBA = Tuple[int, int, int, int]


@dataclass
class DrawParams:
    fill: Optional[RGBA] = None
    outline: Optional[RGBA] = None
    width: int = 1  # stroke width in pixels

    @classmethod
    def for_shape(cls, shape: Shape) -> "DrawParams":
        fill = shape.fill.to_rgba8() if shape.fill is not None else None
        outline = shape.stroke.to_rgba8() if shape.stroke is not None else None
        width = max(1, int(round(shape.stroke_width))) if outline is not None else 1
        return cls(fill, outline, width)


def draw_shape(draw: ImageDraw.ImageDraw, shape: Shape, offset: Point = (0.0, 0.0)) -> None:
    """Draw one emitted shape; `offset` is subtracted from every coordinate."""
    params = DrawParams.for_shape(shape)
    if params.fill is None and params.outline is None:
        return
    ox, oy = offset
    if shape.kind == "circle" and not shape.rotation % 180:
        cx, cy = shape.center
        box = [cx - shape.radius_x - ox, cy - shape.radius_y - oy, cx + shape.radius_x - ox, cy + shape.radius_y - oy]
        draw.ellipse(box, fill=params.fill, outline=params.outline, width=params.width)
        return
    if shape.kind == "arc" and not shape.rotation and shape.radius_x == shape.radius_y:
        cx, cy = shape.center
        r = shape.radius_x
        draw.pieslice([cx - r - ox, cy - r - oy, cx + r - ox, cy + r - oy], shape.start_angle, shape.end_angle,
                      fill=params.fill, outline=params.outline, width=params.width)
        return
    pts = [(x - ox, y - oy) for (x, y) in shape.vertices()]
    if len(pts) < 2:
        return
    if shape.closed and len(pts) > 2:
        draw.polygon(pts, fill=params.fill, outline=params.outline)
        if params.outline and params.width > 1:
            # Pillow polygon outline width support is limited; approximate by drawing polyline.
            draw.line(pts + [pts[0]], fill=params.outline, width=params.width, joint="curve")
        return
    draw.line(pts, fill=params.outline or params.fill, width=params.width)


def is_opaque(shape: Shape) -> bool:
    return all(c is None or c.alpha >= 1 for c in (shape.fill, shape.stroke))


class Canvas:
    """RGBA image of the document size, `scale` pixels per unit."""

    def __init__(self, width: float, height: float, background: str = "white",
                 scale: float = 1.0, optimize_with_raster: bool = False):
        self.size = (max(1, int(round(width * scale))), max(1, int(round(height * scale))))
        self.scale = scale
        self.background = Color.parse(background).to_rgba8()
        self.optimize_with_raster = optimize_with_raster
        self.shapes: List[Shape] = []
        self.raster = Image.new("RGBA", self.size, color=self.background)

    def clear(self) -> None:
        self.shapes = []
        self.raster = Image.new("RGBA", self.size, color=self.background)

    def add(self, shapes: Iterable[Shape]) -> None:
        if self.optimize_with_raster:
            self.draw_into(self.raster, shapes)
        else:
            self.shapes.extend(shapes)

    def draw_into(self, image: Image.Image, shapes: Iterable[Shape]) -> None:
        draw = ImageDraw.Draw(image)
        for shape in shapes:
            if self.scale != 1:
                shape = shape.clone().scale(self.scale, self.scale, (0.0, 0.0))
            if is_opaque(shape):
                draw_shape(draw, shape)
                continue
            # translucent shapes go through a layer so alpha blends with what is below
            layer = Image.new("RGBA", image.size, (0, 0, 0, 0))
            draw_shape(ImageDraw.Draw(layer), shape)
            image.alpha_composite(layer)

    def image(self) -> Image.Image:
        im = self.raster.copy()
        self.draw_into(im, self.shapes)
        return im


def raster_sampler(image: Image.Image, width: float, height: float, radius: int = 2):
    """Return `(point) -> Color | None` averaging a small window of `image`.

    The image is stretched over a `width` x `height` document; points outside
    it give None.
    """
    pixels = np.asarray(image.convert("RGBA"), dtype=float) / 255
    rows, columns = pixels.shape[:2]
    sx, sy = columns / width, rows / height

    def sample(point: Point) -> Optional[Color]:
        x, y = math.floor(point[0] * sx), math.floor(point[1] * sy)
        if not (0 <= x < columns and 0 <= y < rows):
            return None
        window = pixels[max(0, y - radius):y + radius + 1, max(0, x - radius):x + radius + 1]
        r, g, b, a = window.reshape(-1, 4).mean(axis=0)
        return Color(float(r), float(g), float(b), float(a))

    logger.debug("raster sampler over %dx%d pixels", columns, rows)
    return sample

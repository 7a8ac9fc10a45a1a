"""Tests for the Pillow canvas and the raster sampler."""

import pytest
from PIL import Image

from placerlab.geometry import Color, Rect, Shape
from placerlab.render import Canvas, DrawParams, raster_sampler

RED = Color(1.0, 0.0, 0.0)
WHITE = (255, 255, 255, 255)


def red_square(x=2, y=2, size=6):
    shape = Shape.rectangle(Rect(x, y, size, size))
    shape.fill = RED
    return shape


class TestCanvas:

    def test_filled_rectangle(self):
        canvas = Canvas(10, 10)
        canvas.add([red_square()])
        im = canvas.image()
        assert im.size == (10, 10)
        assert im.getpixel((5, 5)) == (255, 0, 0, 255)
        assert im.getpixel((0, 0)) == WHITE

    def test_shape_without_paint_is_skipped(self):
        canvas = Canvas(10, 10)
        canvas.add([Shape.rectangle(Rect(0, 0, 10, 10))])
        assert canvas.image().getpixel((5, 5)) == WHITE

    def test_circle(self):
        circle = Shape.circle((10, 10), 6)
        circle.fill = Color(0.0, 0.0, 1.0)
        canvas = Canvas(20, 20, background="black")
        canvas.add([circle])
        im = canvas.image()
        assert im.getpixel((10, 10)) == (0, 0, 255, 255)
        assert im.getpixel((1, 1)) == (0, 0, 0, 255)

    def test_scale(self):
        canvas = Canvas(10, 10, scale=2)
        canvas.add([red_square()])
        im = canvas.image()
        assert im.size == (20, 20)
        assert im.getpixel((10, 10)) == (255, 0, 0, 255)
        assert im.getpixel((3, 3)) == WHITE

    def test_translucent_fill_blends(self):
        shape = red_square()
        shape.fill = RED.with_alpha(0.5)
        canvas = Canvas(10, 10)
        canvas.add([shape])
        r, g, b, a = canvas.image().getpixel((5, 5))
        assert (r, a) == (255, 255)
        assert 120 <= g <= 135

    def test_raster_mode_flattens(self):
        canvas = Canvas(10, 10, optimize_with_raster=True)
        canvas.add([red_square()])
        assert canvas.shapes == []
        assert canvas.raster.getpixel((5, 5)) == (255, 0, 0, 255)
        canvas.clear()
        assert canvas.image().getpixel((5, 5)) == WHITE

    def test_vector_mode_keeps_shapes(self):
        canvas = Canvas(10, 10)
        canvas.add([red_square(), red_square(0, 0, 2)])
        assert len(canvas.shapes) == 2
        assert canvas.raster.getpixel((5, 5)) == WHITE

    def test_stroke_params(self):
        shape = red_square()
        shape.fill = None
        shape.stroke = RED
        shape.stroke_width = 2.6
        assert DrawParams.for_shape(shape) == DrawParams(None, (255, 0, 0, 255), 3)


class TestRasterSampler:

    @pytest.fixture
    def half_white(self):
        im = Image.new("RGB", (20, 10), "black")
        im.paste((255, 255, 255), (10, 0, 20, 10))
        return im

    def test_samples_stretched_image(self, half_white):
        sample = raster_sampler(half_white, 200, 100, radius=1)
        assert sample((20, 50)).brightness == 0
        assert sample((180, 50)).brightness == 1

    def test_edge_is_averaged(self, half_white):
        sample = raster_sampler(half_white, 20, 10, radius=1)
        assert 0 < sample((10, 5)).brightness < 1

    def test_outside_is_none(self, half_white):
        sample = raster_sampler(half_white, 200, 100)
        assert sample((250, 50)) is None
        assert sample((-1, 50)) is None

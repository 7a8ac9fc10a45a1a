"""Tests for the effect registry and each effect."""

import math

import numpy as np
import pytest

from placerlab.bounds import Bounds
from placerlab.effects import EFFECTS, chaikin, create_effect, hashed_angle
from placerlab.geometry import BLACK, Color, Rect, Shape
from placerlab.validation import ConfigError

from tests.helpers import box


@pytest.fixture
def container():
    return Bounds.from_xywh(0, 0, 100, 100)


def square(size=10):
    return Shape.rectangle(Rect(0, 0, size, size))


class TestRegistry:

    def test_known_tags(self):
        assert {"random-hue", "random-palette", "three-stripes", "noise", "transform",
                "smooth", "raster-scale"} <= set(EFFECTS)

    def test_registry_is_read_only(self):
        with pytest.raises(TypeError):
            EFFECTS["mine"] = object

    def test_unknown_tag(self, tree):
        with pytest.raises(ConfigError, match="Unknown effect type"):
            create_effect("sparkle", {}, tree)

    def test_set_parameter_validates(self, tree):
        effect = create_effect("random-hue", {}, tree)
        with pytest.raises(ConfigError):
            effect.set_parameter("saturation", 3)
        with pytest.raises(ConfigError):
            effect.set_parameter("glow", 1)


class TestRandomHue:

    def test_randomized_defaults_are_kept(self, tree):
        effect = create_effect("random-hue", {}, tree)
        params = effect.get_json()["parameters"]
        assert 0 <= params["hue"] < 360
        assert 0.3 <= params["saturation"] <= 0.7
        again = create_effect("random-hue", params, tree)
        assert again.get_json() == effect.get_json()

    def test_fixed_hue(self, tree, container):
        effect = create_effect("random-hue", {"hue": 120, "hueRange": 0, "saturation": 1, "brightness": 0.5}, tree)
        shape = square()
        effect.apply([], shape, container)
        assert shape.fill == Color.from_hsb(120, 1, 0.5, 1)
        assert shape.stroke is None

    def test_stroke_target(self, tree, container):
        effect = create_effect("random-hue", {"target": "stroke", "strokeWidth": 3}, tree)
        shape = square()
        effect.apply([], shape, container)
        assert shape.fill is None
        assert shape.stroke is not None
        assert shape.stroke_width == 3

    def test_bad_target(self, tree):
        with pytest.raises(ConfigError):
            create_effect("random-hue", {"target": "shadow"}, tree)


class TestRandomPalette:

    def test_single_color_with_alpha(self, tree, container):
        effect = create_effect("random-palette", {"palette": ["red"], "alpha": 0.5}, tree)
        shape = square()
        effect.apply([], shape, container)
        assert shape.fill == Color(1.0, 0.0, 0.0, 0.5)

    def test_picks_from_palette(self, tree, container):
        effect = create_effect("random-palette", {"palette": ["red", "blue"]}, tree)
        seen = set()
        for _ in range(50):
            shape = square()
            effect.apply([], shape, container)
            seen.add(shape.fill.to_hex())
        assert seen == {"#ff0000", "#0000ff"}

    def test_empty_palette_is_black(self, tree, container):
        effect = create_effect("random-palette", {"palette": []}, tree)
        shape = square()
        effect.apply([], shape, container)
        assert shape.fill == BLACK

    def test_unknown_color(self, tree):
        with pytest.raises(ConfigError, match="unknown color"):
            create_effect("random-palette", {"palette": ["red", "blurple"]}, tree)

    def test_grow_and_shrink(self, tree):
        effect = create_effect("random-palette", {"palette": ["red"]}, tree)
        added = effect.add_color()
        assert added.startswith("#")
        assert effect.get_json()["parameters"]["palette"] == ["red", added]
        effect.remove_last_color()
        effect.remove_last_color()
        effect.remove_last_color()
        assert effect.get_json()["parameters"]["palette"] == []


class TestThreeStripes:

    def test_color_from_positions(self, tree, container):
        effect = create_effect("three-stripes", {}, tree)
        shape = square()
        effect.apply([0.5, 1.0, 0.0], shape, container)
        assert shape.fill == Color.from_hsb(127.5, 1.0, 0.75)

    def test_missing_positions_are_zero(self, tree, container):
        effect = create_effect("three-stripes", {}, tree)
        shape = square()
        effect.apply([], shape, container)
        assert shape.fill == Color.from_hsb(0, 0, 0)


class TestNoise:

    def test_hashed_angle(self):
        assert hashed_angle(0, 0) == 0
        assert hashed_angle(1, 0) == 6093
        # 30 * 73856093 overflows 32 bits and turns negative; the sign is kept
        assert hashed_angle(30, 0) == -4506

    def test_every_vertex_moves_by_amount(self, tree, container):
        effect = create_effect("noise", {"amount": 10}, tree)
        shape = square(100)
        before = list(shape.points)
        effect.apply([], shape, container)
        for (x0, y0), (x1, y1) in zip(before, shape.points):
            assert math.hypot(x1 - x0, y1 - y0) == pytest.approx(10)
        assert shape.points[0] == pytest.approx((10, 0))

    def test_circle_becomes_polygon(self, tree, container):
        effect = create_effect("noise", {"amount": 1}, tree)
        shape = Shape.circle((50, 50), 20)
        effect.apply([], shape, container)
        assert shape.kind == "polygon"


class TestTransform:

    def test_translation_y_moves_y(self, tree, container):
        effect = create_effect("transform", {"translationY": 5}, tree)
        shape = square()
        effect.apply([], shape, container)
        assert box(shape) == (0, 5, 10, 10)

    def test_scale_about_center(self, tree, container):
        effect = create_effect("transform", {"translationY": 5, "scaleX": 2}, tree)
        shape = square()
        effect.apply([], shape, container)
        assert box(shape) == (-5, 5, 20, 10)

    def test_rotation(self, tree, container):
        effect = create_effect("transform", {"rotation": 45}, tree)
        shape = square()
        effect.apply([], shape, container)
        side = 10 * math.sqrt(2)
        assert shape.bounding_box().width == pytest.approx(side)
        assert shape.bounding_box().center == pytest.approx((5, 5))


class TestSmooth:

    def test_closed_square_doubles_vertices(self, tree, container):
        effect = create_effect("smooth", {"iterations": 1}, tree)
        shape = square()
        effect.apply([], shape, container)
        assert len(shape.points) == 8
        assert shape.points[0] == pytest.approx((2.5, 0))

    def test_open_outline_keeps_ends(self):
        points = np.array([[0.0, 0.0], [10.0, 0.0], [10.0, 10.0]])
        out = chaikin(points, closed=False, iterations=1)
        assert len(out) == 6
        assert tuple(out[0]) == (0, 0)
        assert tuple(out[-1]) == (10, 10)

    def test_circle_untouched(self, tree, container):
        effect = create_effect("smooth", {}, tree)
        shape = Shape.circle((0, 0), 5)
        effect.apply([], shape, container)
        assert shape.kind == "circle"


class TestRasterScale:

    def test_without_sampler_nothing_changes(self, tree, container):
        effect = create_effect("raster-scale", {}, tree)
        shape = square()
        effect.apply([], shape, container)
        assert box(shape) == (0, 0, 10, 10)

    def test_white_inverted_collapses(self, tree, container):
        tree.raster_sampler = lambda point: Color(1.0, 1.0, 1.0)
        effect = create_effect("raster-scale", {"invert": True}, tree)
        shape = square()
        effect.apply([], shape, container)
        assert box(shape) == (5, 5, 0, 0)

    def test_white_not_inverted_keeps_size(self, tree, container):
        tree.raster_sampler = lambda point: Color(1.0, 1.0, 1.0)
        effect = create_effect("raster-scale", {"invert": False}, tree)
        shape = square()
        effect.apply([], shape, container)
        assert box(shape) == (0, 0, 10, 10)

    def test_outside_raster_counts_as_white(self, tree, container):
        tree.raster_sampler = lambda point: None
        effect = create_effect("raster-scale", {"invert": False, "amount": 0.5}, tree)
        shape = square()
        effect.apply([], shape, container)
        assert box(shape) == (2.5, 2.5, 5, 5)

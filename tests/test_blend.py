import numpy as np
import pytest

from quadwarp.compositing.blend import (
    BLEND_MODES,
    SurfaceCompositor,
    blend_pixels,
    downscale,
)
from quadwarp.errors import InvalidInput
from quadwarp.geometry.quad import BoundingBox


def _px(*rgba):
    return np.array([[rgba]], dtype=np.uint8)


def test_opaque_source_over_replaces_backdrop():
    out = blend_pixels(_px(10, 20, 30, 255), _px(200, 100, 50, 255))
    assert tuple(out[0, 0]) == (200, 100, 50, 255)


def test_transparent_source_leaves_backdrop():
    for mode in BLEND_MODES:
        out = blend_pixels(_px(10, 20, 30, 255), _px(200, 100, 50, 0), mode)
        assert tuple(out[0, 0]) == (10, 20, 30, 255)


def test_half_transparent_source_over():
    out = blend_pixels(_px(0, 0, 255, 255), _px(255, 0, 0, 128))
    assert tuple(out[0, 0]) == (128, 0, 127, 255)


@pytest.mark.parametrize("mode, backdrop, source, expected", [
    ("multiply",   (255, 255, 255), (200, 100, 50), (200, 100, 50)),
    ("multiply",   (0, 0, 0),       (200, 100, 50), (0, 0, 0)),
    ("screen",     (0, 0, 0),       (200, 100, 50), (200, 100, 50)),
    ("screen",     (255, 255, 255), (200, 100, 50), (255, 255, 255)),
    ("darken",     (120, 120, 120), (200, 100, 50), (120, 100, 50)),
    ("lighten",    (120, 120, 120), (200, 100, 50), (200, 120, 120)),
    ("difference", (200, 200, 200), (50, 200, 255), (150, 0, 55)),
    ("exclusion",  (0, 0, 0),       (200, 100, 50), (200, 100, 50)),
])
def test_blend_modes_on_opaque_pixels(mode, backdrop, source, expected):
    out = blend_pixels(_px(*backdrop, 255), _px(*source, 255), mode)
    assert tuple(out[0, 0]) == expected + (255,)


@pytest.mark.parametrize("mode", sorted(BLEND_MODES))
def test_every_mode_draws_source_on_empty_backdrop(mode):
    out = blend_pixels(_px(0, 0, 0, 0), _px(200, 100, 50, 255), mode)
    assert tuple(out[0, 0]) == (200, 100, 50, 255)


@pytest.mark.parametrize("mode", sorted(BLEND_MODES))
def test_every_mode_stays_in_range(mode):
    rng = np.random.default_rng(5)
    backdrop = rng.integers(0, 256, size=(8, 8, 4), dtype=np.uint8)
    source = rng.integers(0, 256, size=(8, 8, 4), dtype=np.uint8)
    backdrop[0, 0] = (0, 255, 0, 255)
    source[0, 0] = (255, 0, 255, 255)
    out = blend_pixels(backdrop, source, mode)
    assert out.shape == (8, 8, 4)
    assert out.dtype == np.uint8


def test_unknown_mode_raises():
    with pytest.raises(InvalidInput):
        blend_pixels(_px(0, 0, 0, 0), _px(0, 0, 0, 0), "plus-darker")


def test_using_restores_previous_mode_on_error():
    compositor = SurfaceCompositor.blank(4, 4)
    compositor.blend_mode = "screen"
    with pytest.raises(RuntimeError):
        with compositor.using("multiply"):
            assert compositor.blend_mode == "multiply"
            raise RuntimeError("boom")
    assert compositor.blend_mode == "screen"


def test_composite_clips_to_surface():
    compositor = SurfaceCompositor.blank(10, 10)
    red = np.zeros((4, 4, 4), dtype=np.uint8)
    red[...] = (255, 0, 0, 255)
    compositor.composite(red, BoundingBox(-2, 8, 4, 4))

    assert (compositor.surface[8:10, 0:2] == (255, 0, 0, 255)).all()
    assert compositor.surface[:8].sum() == 0
    assert compositor.surface[:, 2:].sum() == 0


def test_composite_outside_surface_is_a_no_op():
    compositor = SurfaceCompositor.blank(10, 10)
    buffer = np.full((4, 4, 4), 255, dtype=np.uint8)
    compositor.composite(buffer, BoundingBox(20, 20, 4, 4))
    assert compositor.surface.sum() == 0


def test_downscale_is_a_box_filter():
    buffer = np.zeros((4, 4, 4), dtype=np.uint8)
    buffer[..., 3] = 255
    buffer[0::2, 0::2, :3] = 255
    out = downscale(buffer, 2, 2)
    assert out.shape == (2, 2, 4)
    assert np.abs(out[..., :3].astype(int) - 64).max() <= 1
    assert (out[..., 3] == 255).all()


def test_downscale_same_size_is_untouched():
    buffer = np.zeros((3, 5, 4), dtype=np.uint8)
    assert downscale(buffer, 5, 3) is buffer


def test_surface_promotes_rgb():
    compositor = SurfaceCompositor(np.zeros((3, 5, 3), dtype=np.uint8))
    assert compositor.surface.shape == (3, 5, 4)
    assert compositor.size == (5, 3)
    assert (compositor.surface[..., 3] == 255).all()

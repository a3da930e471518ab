import numpy as np
import pytest

from quadwarp.errors import InvalidInput
from quadwarp.geometry.homography import compute_homography, invert_homography
from quadwarp.sampling.bilinear import (
    bilinear_sample,
    inside_source,
    sample_points,
    sub_pixel_offsets,
    supersample,
    supersample_grid,
)


def _ramp():
    # 2 x 2 RGBA: left column 0, right column 100
    img = np.zeros((2, 2, 4), dtype=np.uint8)
    img[:, 1, :3] = 100
    img[..., 3] = 255
    return img


def test_integer_positions_return_exact_pixels():
    rng = np.random.default_rng(1)
    img = rng.integers(0, 256, size=(5, 7, 4), dtype=np.uint8)
    for y in range(5):
        for x in range(7):
            assert bilinear_sample(img, x, y) == tuple(int(v) for v in img[y, x])


def test_horizontal_interpolation():
    img = _ramp()
    assert bilinear_sample(img, 0.5, 0)[:3] == (50, 50, 50)
    assert bilinear_sample(img, 0.25, 0.75)[:3] == (25, 25, 25)


def test_rounds_half_up():
    img = np.zeros((1, 2, 4), dtype=np.uint8)
    img[0, 1] = 1
    assert bilinear_sample(img, 0.5, 0) == (1, 1, 1, 1)


def test_edges_are_clamped():
    img = _ramp()
    img[1, 0, 0] = 7
    assert bilinear_sample(img, -3, 10) == tuple(int(v) for v in img[1, 0])
    assert bilinear_sample(img, 1.5, 0)[:3] == (100, 100, 100)
    assert bilinear_sample(img, 50.0, -50.0)[:3] == (100, 100, 100)


def test_vectorised_sampling_matches_scalar():
    rng = np.random.default_rng(2)
    img = rng.integers(0, 256, size=(6, 9, 4), dtype=np.uint8)
    xs = rng.uniform(-3, 12, size=200)
    ys = rng.uniform(-3, 9, size=200)
    values = sample_points(xs, ys, img)
    for x, y, v in zip(xs, ys, values):
        assert tuple(int(c) for c in v) == bilinear_sample(img, x, y)


def test_inside_source_rejects_nan_and_far_edges():
    xs = np.array([0.0, 8.999, 9.0, -0.5, np.nan])
    ys = np.array([0.0, 5.5, 1.0, 1.0, 1.0])
    np.testing.assert_array_equal(inside_source(xs, ys, (6, 9)),
                                  [True, True, False, False, False])


def test_sub_pixel_grid():
    assert sub_pixel_offsets(1) == [(0.0, 0.0)]
    assert sub_pixel_offsets(2) == [(0.0, 0.0), (0.5, 0.0), (0.0, 0.5), (0.5, 0.5)]


@pytest.mark.parametrize("n", [0, -1])
def test_non_positive_sample_count_is_rejected(n):
    with pytest.raises(InvalidInput):
        sub_pixel_offsets(n)
    with pytest.raises(InvalidInput):
        supersample(np.eye(3), 0, 0, n, _ramp())
    with pytest.raises(InvalidInput):
        supersample_grid(np.eye(3), np.zeros(1), np.zeros(1), n, _ramp())


def test_supersample_leaves_hole_when_nothing_hits():
    assert supersample(np.eye(3), -5, -5, 2, _ramp()) is None


def test_supersample_averages_only_in_bounds_samples():
    # x = 1.6 hits the right column, x = 2.1 falls off the image
    assert supersample(np.eye(3), 1.6, 0, 2, _ramp())[:3] == (100, 100, 100)


def test_grid_matches_per_pixel_supersample():
    rng = np.random.default_rng(3)
    src = rng.integers(0, 256, size=(8, 10, 4), dtype=np.uint8)
    rect = [[0, 0], [10, 0], [10, 8], [0, 8]]
    quad = [[2, 1], [21, 4], [19, 17], [0, 14]]
    h_inv = invert_homography(compute_homography(rect, quad))

    ys, xs = np.mgrid[0:18, 0:22]
    values, hit = supersample_grid(h_inv, xs.ravel().astype(float),
                                   ys.ravel().astype(float), 2, src)
    for x, y, v, h in zip(xs.ravel(), ys.ravel(), values, hit):
        expected = supersample(h_inv, float(x), float(y), 2, src)
        if expected is None:
            assert not h
        else:
            assert h
            assert tuple(int(c) for c in v) == expected

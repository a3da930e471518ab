import numpy as np
import pytest

from quadwarp.errors import SingularMatrix, WarpError
from quadwarp.geometry.homography import (
    apply_homography,
    compute_homography,
    invert_homography,
    map_points,
)

RECT = np.array([[0, 0], [200, 0], [200, 100], [0, 100]], dtype=float)
SKEWED = np.array([[31, 12], [240, 40], [225, 190], [18, 160]], dtype=float)


def test_identity_correspondence_gives_identity():
    H = compute_homography(RECT, RECT)
    np.testing.assert_allclose(H, np.eye(3), atol=1e-12)


def test_corners_map_onto_destination():
    H = compute_homography(RECT, SKEWED)
    assert H[2, 2] == 1.0
    for (sx, sy), (tx, ty) in zip(RECT, SKEWED):
        x, y = apply_homography(H, sx, sy)
        assert x == pytest.approx(tx, abs=1e-9)
        assert y == pytest.approx(ty, abs=1e-9)


def test_inverse_matches_numpy():
    H = compute_homography(RECT, SKEWED)
    np.testing.assert_allclose(invert_homography(H), np.linalg.inv(H),
                               rtol=1e-9, atol=1e-12)


def test_round_trip_through_inverse():
    H = compute_homography(RECT, SKEWED)
    H_inv = invert_homography(H)
    ys, xs = np.mgrid[0:101:5, 0:201:5]
    for x, y in zip(xs.ravel(), ys.ravel()):
        fx, fy = apply_homography(H, x, y)
        bx, by = apply_homography(H_inv, fx, fy)
        assert bx == pytest.approx(x, abs=1e-6)
        assert by == pytest.approx(y, abs=1e-6)


def test_map_points_agrees_with_scalar_apply():
    H = compute_homography(RECT, SKEWED)
    xs = np.array([0.0, 13.5, 199.9, 77.25])
    ys = np.array([0.0, 99.0, 50.5, 3.75])
    mx, my = map_points(H, xs, ys)
    for x, y, ex, ey in zip(xs, ys, mx, my):
        assert (ex, ey) == apply_homography(H, x, y)


def test_point_at_infinity():
    H = np.array([[1.0, 0, 0], [0, 1, 0], [1, 0, 0]])
    assert apply_homography(H, 0.0, 5.0) is None
    mx, my = map_points(H, np.array([0.0, 2.0]), np.array([5.0, 5.0]))
    assert np.isnan(mx[0]) and np.isnan(my[0])
    assert mx[1] == pytest.approx(1.0)


def test_coincident_destination_corners_are_rejected():
    dst = np.array([[0, 0], [0, 0], [10, 10], [0, 10]], dtype=float)
    with pytest.raises(WarpError):
        invert_homography(compute_homography(RECT, dst))


def test_collinear_destination_corners_are_rejected():
    dst = np.array([[0, 0], [10, 0], [20, 0], [30, 0]], dtype=float)
    with pytest.raises(WarpError):
        invert_homography(compute_homography(RECT, dst))


def test_singular_matrix_raises():
    with pytest.raises(SingularMatrix):
        invert_homography(np.zeros((3, 3)))
    with pytest.raises(SingularMatrix):
        invert_homography([[1, 2, 3], [2, 4, 6], [0, 0, 1]])


def test_strong_shrink_still_inverts():
    big = np.array([[0, 0], [4000, 0], [4000, 4000], [0, 4000]], dtype=float)
    small = np.array([[0, 0], [40, 0], [40, 40], [0, 40]], dtype=float)
    H_inv = invert_homography(compute_homography(big, small))
    bx, by = apply_homography(H_inv, 40, 40)
    assert bx == pytest.approx(4000, rel=1e-9)
    assert by == pytest.approx(4000, rel=1e-9)


def test_sub_pixel_shrink_hits_determinant_floor():
    # 4000 px squeezed into 0.001 px: det ~6e-14 is below the 1e-12 floor
    scale = 0.001 / 4000
    with pytest.raises(SingularMatrix):
        invert_homography(np.diag([scale, scale, 1.0]))

import numpy as np
import pytest

from quadwarp.errors import InvalidInput
from quadwarp.geometry.animation import (
    corner_frames,
    ease_in_out_cubic,
    interpolate_corners,
)

START = [(0, 0), (10, 0), (10, 10), (0, 10)]
END = [(20, 5), (40, 0), (45, 30), (15, 25)]


def test_easing_endpoints_and_midpoint():
    assert ease_in_out_cubic(0) == 0
    assert ease_in_out_cubic(1) == 1
    assert ease_in_out_cubic(0.5) == pytest.approx(0.5)
    assert ease_in_out_cubic(-1) == 0
    assert ease_in_out_cubic(2) == 1


def test_easing_is_monotonic():
    values = [ease_in_out_cubic(t) for t in np.linspace(0, 1, 101)]
    assert all(b >= a for a, b in zip(values, values[1:]))


def test_interpolation_halfway():
    mid = interpolate_corners(START, END, 0.5)
    np.testing.assert_allclose(mid, (np.array(START) + np.array(END)) / 2)


def test_frames_include_both_ends():
    frames = list(corner_frames(START, END, 5))
    assert len(frames) == 5
    np.testing.assert_allclose(frames[0], START)
    np.testing.assert_allclose(frames[-1], END)


def test_too_few_frames():
    with pytest.raises(InvalidInput):
        list(corner_frames(START, END, 1))

import math

import numpy as np
import pytest

from compositor import (
    TWO_PI,
    ClockTime,
    Pivot,
    composite,
    hand_rotations,
    hour_angle,
    minute_angle,
    second_angle,
)
from masks import hand_mask_from_points


def test_hour_angle_in_range_and_monotonic_within_hour():
    for hour in range(12):
        angles = [hour_angle(hour, minute) for minute in range(60)]
        assert all(0 <= a < TWO_PI for a in angles)
        assert angles == sorted(angles)
        # wraps onto the next hour's angle
        assert hour_angle(hour, 59) < hour_angle((hour + 1) % 12, 0) or hour == 11
    assert hour_angle(11, 59) > hour_angle(0, 0)


def test_hour_angle_reduces_modulo_twelve():
    assert hour_angle(15, 0) == pytest.approx(hour_angle(3, 0))
    assert hour_angle(3, 0) == pytest.approx(math.pi / 2)


def test_zero_angles_and_periodicity():
    assert hour_angle(0, 0) == 0
    assert minute_angle(0, 0) == 0
    assert second_angle(0) == 0
    assert minute_angle(60, 0) == pytest.approx(TWO_PI)
    assert second_angle(60) == pytest.approx(TWO_PI)
    assert minute_angle(30, 0) == pytest.approx(math.pi)
    assert second_angle(15) == pytest.approx(math.pi / 2)


def test_hand_rotations_are_target_minus_reference():
    ref = ClockTime(10, 10, 0)
    assert hand_rotations(ref, ref) == (0.0, 0.0, 0.0)

    rot = hand_rotations(ClockTime(0, 0, 0), ClockTime(3, 15, 30))
    assert rot.hour == pytest.approx(hour_angle(3, 15))
    assert rot.minute == pytest.approx(minute_angle(15, 30))
    assert rot.second == pytest.approx(math.pi)


def _vertical_stroke(size=101, width=5):
    mask = np.zeros((size, size), dtype=np.uint8)
    c = size // 2
    mask[10:c, c - width // 2 : c + width // 2 + 1] = 255
    return mask


def test_quarter_turn_moves_twelve_oclock_stroke_to_three():
    background = np.zeros((101, 101, 3), dtype=np.uint8)
    hand = _vertical_stroke()
    empty = np.zeros_like(hand)

    out = composite(background, hand, empty, None, Pivot(0.5, 0.5), math.pi / 2, 0.0, 0.0)

    assert out.shape == background.shape
    assert out[50, 75].min() > 200  # now pointing right
    assert out[25, 50].max() == 0  # old position is clear
    assert out[50, 25].max() == 0  # not rotated the wrong way


def test_masks_are_drawn_in_order_over_untouched_background():
    background = np.full((40, 40, 4), 100, dtype=np.uint8)
    before = background.copy()
    hour = np.zeros((40, 40, 4), dtype=np.uint8)
    hour[5:10, 5:10] = (255, 0, 0, 255)
    minute = np.zeros((40, 40, 4), dtype=np.uint8)
    minute[8:12, 8:12] = (0, 0, 255, 255)

    out = composite(background, hour, minute, None, Pivot(0.5, 0.5), 0.0, 0.0, 0.0)

    np.testing.assert_array_equal(background, before)
    assert tuple(out[6, 6]) == (255, 0, 0, 255)
    assert tuple(out[9, 9]) == (0, 0, 255, 255)  # minute hand drawn on top
    assert tuple(out[30, 30]) == (100, 100, 100, 100)


def test_second_mask_is_optional_and_drawn_last():
    background = np.zeros((30, 30, 3), dtype=np.uint8)
    empty = np.zeros((30, 30), dtype=np.uint8)
    second = np.zeros((30, 30, 4), dtype=np.uint8)
    second[2:4, 2:4] = (0, 255, 0, 255)

    without = composite(background, empty, empty, None, Pivot(0.5, 0.5), 0.0, 0.0, 0.0)
    with_second = composite(background, empty, empty, second, Pivot(0.5, 0.5), 0.0, 0.0, 0.0)

    assert without.max() == 0
    assert tuple(with_second[3, 3]) == (0, 255, 0)


def test_mismatched_mask_size_is_rejected():
    background = np.zeros((30, 30, 3), dtype=np.uint8)
    with pytest.raises(ValueError):
        composite(background, np.zeros((20, 20), np.uint8), np.zeros((30, 30), np.uint8), None, (0.5, 0.5), 0, 0, 0)


def test_antialiased_white_hand_never_darkens_light_plate():
    background = np.full((120, 120, 3), 200, dtype=np.uint8)
    hand = hand_mask_from_points(120, 120, (0.5, 0.5), [(0.5, 0.15)], "hour")
    empty = np.zeros((120, 120), dtype=np.uint8)

    for rotation in (0.0, 0.3, 2.1):
        out = composite(background, hand, empty, None, Pivot(0.5, 0.5), rotation, 0.0, 0.0)
        assert out.min() >= 200
        assert out.max() == 255


def test_rotated_rgba_edges_blend_toward_hand_color():
    background = np.full((101, 101, 3), 60, dtype=np.uint8)
    hand = np.zeros((101, 101, 4), dtype=np.uint8)
    hand[10:50, 48:53] = (240, 240, 240, 255)
    empty = np.zeros((101, 101), dtype=np.uint8)

    out = composite(background, hand, empty, None, Pivot(0.5, 0.5), 0.7, 0.0, 0.0)

    assert out.min() >= 60
    assert out.max() <= 240

import math

import cv2
import numpy as np
import pytest

from compositor import ClockTime, Pivot, composite, hour_angle, minute_angle
from masks import hand_mask_from_points

WATCH_SIZE = 160
DIAL_GRAY = 30


def hand_tip(angle, length, center=(0.5, 0.5)):
    """Normalized tip position for a hand at ``angle`` (0 = 12 o'clock, clockwise)."""
    return (center[0] + length * math.sin(angle), center[1] - length * math.cos(angle))


def make_dial(size=WATCH_SIZE):
    """Dark watch face with a bezel ring and twelve tick marks."""
    dial = np.full((size, size, 3), DIAL_GRAY, dtype=np.uint8)
    c = size // 2
    radius = int(size * 0.46)
    cv2.circle(dial, (c, c), radius, (200, 200, 200), 2)
    for i in range(12):
        a = i * math.pi / 6
        x1, y1 = c + radius * 0.88 * math.sin(a), c - radius * 0.88 * math.cos(a)
        x2, y2 = c + radius * 0.97 * math.sin(a), c - radius * 0.97 * math.cos(a)
        cv2.line(dial, (int(x1), int(y1)), (int(x2), int(y2)), (180, 180, 180), 2)
    return dial


def make_watch(size=WATCH_SIZE, time=ClockTime(10, 10, 0)):
    pivot = Pivot(0.5, 0.5)
    hour_mask = hand_mask_from_points(
        size, size, pivot, [hand_tip(hour_angle(time.hour, time.minute), 0.25)], "hour"
    )
    minute_mask = hand_mask_from_points(
        size, size, pivot, [hand_tip(minute_angle(time.minute, time.second), 0.38)], "minute"
    )
    dial = make_dial(size)
    photo = composite(dial, hour_mask, minute_mask, None, pivot, 0.0, 0.0, 0.0)
    return {
        "dial": dial,
        "photo": photo,
        "hour_mask": hour_mask,
        "minute_mask": minute_mask,
        "pivot": pivot,
        "time": time,
    }


@pytest.fixture
def watch():
    return make_watch()

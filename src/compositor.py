"""Clock-hand geometry and compositing of rotated hand masks onto a dial plate.

Angles are radians, 0 at 12 o'clock, increasing clockwise.
"""

import math
from typing import NamedTuple, Optional, Tuple

import numpy as np

from imaging import coverage, paint_color, pivot_to_pixels, rotate_about

TWO_PI = 2 * math.pi


class ClockTime(NamedTuple):
    hour: int  # 0-11
    minute: int  # 0-59
    second: int = 0  # 0-59


class Pivot(NamedTuple):
    """Watch-face center, normalized to [0, 1] against image width/height."""

    x: float
    y: float


class HandRotations(NamedTuple):
    hour: float
    minute: float
    second: float


def hour_angle(hour, minute):
    return ((hour % 12) + minute / 60.0) / 12.0 * TWO_PI


def minute_angle(minute, second):
    return (minute + second / 60.0) / 60.0 * TWO_PI


def second_angle(second):
    return second / 60.0 * TWO_PI


def hand_rotations(reference: ClockTime, target: ClockTime) -> HandRotations:
    """Rotation that moves each hand from its pose in the reference photo to ``target``."""
    return HandRotations(
        hour=hour_angle(target.hour, target.minute) - hour_angle(reference.hour, reference.minute),
        minute=minute_angle(target.minute, target.second) - minute_angle(reference.minute, reference.second),
        second=second_angle(target.second) - second_angle(reference.second),
    )


def _draw_hand(canvas, mask, center_px, rotation):
    # Resample premultiplied color so edges never pick up the transparent black around the hand.
    alpha = coverage(mask).astype(np.float32) / 255.0
    premultiplied = paint_color(mask).astype(np.float32) * alpha[:, :, None]
    layer = np.dstack([premultiplied, alpha * 255.0])
    rotated = rotate_about(layer, center_px, rotation)

    rotated_alpha = np.clip(rotated[:, :, 3:] / 255.0, 0.0, 1.0)
    canvas[:, :, :3] = canvas[:, :, :3] * (1.0 - rotated_alpha) + rotated[:, :, :3]
    if canvas.shape[2] == 4:
        canvas[:, :, 3] = np.maximum(canvas[:, :, 3], rotated_alpha[:, :, 0] * 255.0)


def composite(
    background: np.ndarray,
    hour_mask: np.ndarray,
    minute_mask: np.ndarray,
    second_mask: Optional[np.ndarray],
    pivot: Tuple[float, float],
    hour_rotation: float,
    minute_rotation: float,
    second_rotation: float,
) -> np.ndarray:
    """Draw the hour, minute and (optional) second masks over ``background``.

    Each mask is rotated about the pivot by its own angle before being
    alpha-blended; the background itself is never rotated or modified.
    Returns a new image with the background's size and channel count.
    """
    if background.ndim != 3 or background.shape[2] not in (3, 4):
        raise ValueError(f"background must be RGB or RGBA, got shape {background.shape}")
    h, w = background.shape[:2]

    layers = [(hour_mask, hour_rotation), (minute_mask, minute_rotation)]
    if second_mask is not None:
        layers.append((second_mask, second_rotation))
    for mask, _ in layers:
        if mask.shape[:2] != (h, w):
            raise ValueError(f"mask size {mask.shape[1]}x{mask.shape[0]} does not match background {w}x{h}")

    center_px = pivot_to_pixels(pivot, w, h)
    canvas = background.astype(np.float32)
    for mask, rotation in layers:
        _draw_hand(canvas, mask, center_px, rotation)
    return np.clip(np.rint(canvas), 0, 255).astype(np.uint8)

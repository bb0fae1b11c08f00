import math

import cv2
import numpy as np

# stroke width as a fraction of image width
HAND_THICKNESS = {
    "hour": 0.025,    # thicker for hour hand
    "minute": 0.015,
    "second": 0.005,  # thin for second hand
}


def hand_mask_from_points(width, height, center, points, hand):
    """Draw an RGBA hand mask from a few taps along the hand.

    ``center`` and ``points`` are normalized (x, y) with y pointing down. The
    hand is a round-capped white line from the pivot to the tap farthest from
    it, with a dot at every tap for better coverage; the rest is transparent.
    Antialiasing only softens the alpha channel, so the color stays white
    wherever the hand has any coverage (straight alpha, as stored in PNG).
    """
    if hand not in HAND_THICKNESS:
        raise ValueError(f"unknown hand: {hand!r}")
    if not points:
        raise ValueError("at least one point along the hand is required")

    thickness = max(1, int(round(width * HAND_THICKNESS[hand])))
    cx, cy = center[0] * width, center[1] * height
    pts = [(x * width, y * height) for x, y in points]
    tip = max(pts, key=lambda p: math.hypot(p[0] - cx, p[1] - cy))

    alpha = np.zeros((height, width), dtype=np.uint8)
    cv2.line(
        alpha,
        (int(round(cx)), int(round(cy))),
        (int(round(tip[0])), int(round(tip[1]))),
        255,
        thickness,
        lineType=cv2.LINE_AA,
    )
    radius = max(1, thickness // 2)
    for x, y in pts:
        cv2.circle(alpha, (int(round(x)), int(round(y))), radius, 255, -1, lineType=cv2.LINE_AA)

    mask = np.zeros((height, width, 4), dtype=np.uint8)
    mask[alpha > 0, :3] = 255
    mask[:, :, 3] = alpha
    return mask

import numpy as np

from config import BRIGHTNESS_RANGE, ROTATION_JITTER
from imaging import rotate_about, size_of


def adjust_brightness(image, factor):
    out = image.astype(np.float32)
    if out.ndim == 3:
        out[:, :, :3] *= factor
    else:
        out *= factor
    return np.clip(np.rint(out), 0, 255).astype(np.uint8)


def rotate_image(image, angle):
    w, h = size_of(image)
    return rotate_about(image, (w / 2.0, h / 2.0), angle)


def augment(image, rng=None):
    """Randomly jitter brightness and camera roll; either effect may be skipped.

    Each effect is applied with probability 0.5. Returns a new image.
    """
    rng = rng if rng is not None else np.random.default_rng()
    result = image

    # Random brightness adjustment (+-10%)
    if rng.random() < 0.5:
        factor = rng.uniform(1.0 - BRIGHTNESS_RANGE, 1.0 + BRIGHTNESS_RANGE)
        result = adjust_brightness(result, factor)

    # Random slight rotation to simulate imperfect camera alignment
    if rng.random() < 0.5:
        angle = rng.uniform(-ROTATION_JITTER, ROTATION_JITTER)
        result = rotate_image(result, angle)

    return result if result is not image else image.copy()

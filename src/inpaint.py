"""Remove the hands from a reference photo to obtain a clean dial plate."""

import logging
import time
from functools import lru_cache

import cv2
import numpy as np

from config import INPAINT_MAX_DIMENSION, INPAINT_MAX_RADIUS, MASK_THRESHOLD
from errors import ImageDecodeError, InpaintError
from imaging import coverage, fit_within, load_image, resize, size_of

logger = logging.getLogger(__name__)


@lru_cache(maxsize=None)
def ring_offsets(radius):
    """(dy, dx) offsets on the square ring at Chebyshev distance ``radius``, raster order."""
    offsets = []
    for dy in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            if abs(dx) != radius and abs(dy) != radius:
                continue
            offsets.append((dy, dx))
    return tuple(offsets)


def combine_masks(masks, threshold=MASK_THRESHOLD):
    """Union of all hand masks (brightest coverage wins) as a boolean array."""
    combined = None
    for mask in masks:
        if mask is None:
            continue
        cov = coverage(mask)
        combined = cov.copy() if combined is None else np.maximum(combined, cov)
    if combined is None:
        raise ValueError("at least one mask is required")
    return combined > threshold


def fill_from_nearest(image, masked, max_radius=INPAINT_MAX_RADIUS):
    """Copy into every masked pixel the color of its nearest unmasked pixel.

    Nearest means the smallest square ring that contains an unmasked pixel;
    within that ring the first hit in raster order wins. Every ring offset is
    applied to all still-pending pixels at once, which gives the same result
    as scanning pixel by pixel because sources are never masked pixels.

    Returns ``(filled_image, unfilled_count)``.
    """
    h, w = masked.shape
    out = image.copy()
    source = ~masked
    ys, xs = np.nonzero(masked)
    pending = np.ones(ys.size, dtype=bool)

    for radius in range(1, max_radius + 1):
        idx = np.flatnonzero(pending)
        if idx.size == 0:
            break
        py, px = ys[idx], xs[idx]
        found = np.zeros(idx.size, dtype=bool)
        for dy, dx in ring_offsets(radius):
            ny, nx = py + dy, px + dx
            cand = np.flatnonzero(~found & (ny >= 0) & (ny < h) & (nx >= 0) & (nx < w))
            if cand.size == 0:
                continue
            hit = cand[source[ny[cand], nx[cand]]]
            if hit.size == 0:
                continue
            out[py[hit], px[hit], :3] = image[ny[hit], nx[hit], :3]
            found[hit] = True
        pending[idx[found]] = False

    return out, int(pending.sum())


def inpaint_dial(reference, hour_mask, minute_mask, second_mask=None):
    """Return a hand-free dial plate at the bounded working resolution.

    Inputs may be arrays, encoded bytes or paths; anything that fails to
    decode or resize raises ``InpaintError``.
    """
    start = time.monotonic()
    try:
        ref = load_image(reference)
        if ref.ndim == 2:
            ref = cv2.cvtColor(ref, cv2.COLOR_GRAY2RGB)
        logger.info("[Inpaint] Starting with image: %dx%d", *size_of(ref))
        ref = fit_within(ref, INPAINT_MAX_DIMENSION)
        target = size_of(ref)
        logger.info("[Inpaint] Processing at %dx%d", *target)

        masks = [resize(load_image(m), target) for m in (hour_mask, minute_mask)]
        if second_mask is not None:
            masks.append(resize(load_image(second_mask), target))
    except (ImageDecodeError, ValueError, cv2.error) as e:
        logger.error("[Inpaint] Failed to prepare inputs: %s", e)
        raise InpaintError(f"Failed to remove hands from dial image: {e}") from e

    masked = combine_masks(masks)
    filled, unfilled = fill_from_nearest(ref, masked)

    masked_count = int(masked.sum())
    if unfilled:
        logger.warning(
            "[Inpaint] %d of %d masked pixels had no unmasked pixel within %d px",
            unfilled, masked_count, INPAINT_MAX_RADIUS,
        )
    logger.info(
        "[Inpaint] Completed: %d masked pixels, %d filled, took %.2fs",
        masked_count, masked_count - unfilled, time.monotonic() - start,
    )
    return filled

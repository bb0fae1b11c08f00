import numpy as np
import pytest

from errors import ErrorKind, InpaintError
from imaging import encode_png
from inpaint import combine_masks, fill_from_nearest, inpaint_dial, ring_offsets


def _scan_fill(image, masked, max_radius):
    """Straightforward per-pixel version of the nearest-ring fill."""
    h, w = masked.shape
    out = image.copy()
    for y in range(h):
        for x in range(w):
            if not masked[y, x]:
                continue
            for radius in range(1, max_radius + 1):
                hit = None
                for dy, dx in ring_offsets(radius):
                    ny, nx = y + dy, x + dx
                    if 0 <= ny < h and 0 <= nx < w and not masked[ny, nx]:
                        hit = (ny, nx)
                        break
                if hit is not None:
                    out[y, x, :3] = image[hit[0], hit[1], :3]
                    break
    return out


def _patterned_image(h=24, w=30):
    rng = np.random.default_rng(7)
    return rng.integers(0, 255, size=(h, w, 3), dtype=np.uint8)


def _blob_mask(h=24, w=30):
    masked = np.zeros((h, w), dtype=bool)
    masked[5:14, 8:11] = True  # thick stroke
    masked[18, 2:25] = True  # thin stroke
    masked[0:3, 27:30] = True  # against the border
    return masked


def test_ring_offsets_raster_order():
    assert ring_offsets(1) == (
        (-1, -1), (-1, 0), (-1, 1),
        (0, -1), (0, 1),
        (1, -1), (1, 0), (1, 1),
    )
    assert len(ring_offsets(3)) == 8 * 3


def test_combine_masks_is_union_of_bright_pixels():
    a = np.zeros((4, 4), dtype=np.uint8)
    a[0, 0] = 255
    b = np.zeros((4, 4, 4), dtype=np.uint8)
    b[1, 1, 3] = 200
    b[2, 2, 3] = 128  # at threshold, not set
    combined = combine_masks([a, b, None])
    assert combined[0, 0] and combined[1, 1]
    assert not combined[2, 2]
    assert combined.sum() == 2


def test_fill_matches_per_pixel_scan():
    image = _patterned_image()
    masked = _blob_mask()

    filled, unfilled = fill_from_nearest(image, masked, max_radius=10)

    assert unfilled == 0
    np.testing.assert_array_equal(filled, _scan_fill(image, masked, 10))


def test_fill_leaves_unmasked_pixels_unchanged():
    image = _patterned_image()
    masked = _blob_mask()
    original = image.copy()

    filled, _ = fill_from_nearest(image, masked)

    np.testing.assert_array_equal(filled[~masked], original[~masked])
    np.testing.assert_array_equal(image, original)


def test_every_masked_pixel_takes_an_unmasked_color():
    image = np.zeros((20, 20, 3), dtype=np.uint8)
    image[:, :, 0] = np.arange(20, dtype=np.uint8)[None, :] * 10
    image[:, :, 1] = np.arange(20, dtype=np.uint8)[:, None] * 10
    masked = np.zeros((20, 20), dtype=bool)
    masked[6:12, 4:16] = True
    image[masked] = (255, 0, 255)  # hand color, absent elsewhere

    filled, unfilled = fill_from_nearest(image, masked)

    assert unfilled == 0
    sources = {tuple(c) for c in image[~masked]}
    assert all(tuple(c) in sources for c in filled[masked])
    assert not np.any(np.all(filled == (255, 0, 255), axis=2))


def test_pixels_beyond_max_radius_stay_unfilled():
    image = _patterned_image(10, 10)
    masked = np.ones((10, 10), dtype=bool)
    masked[0, 0] = False

    filled, unfilled = fill_from_nearest(image, masked, max_radius=3)

    # everything within Chebyshev distance 3 of (0, 0) is filled
    assert unfilled == 100 - 16
    np.testing.assert_array_equal(filled[5, 5], image[5, 5])
    np.testing.assert_array_equal(filled[3, 3], image[0, 0])


def test_inpaint_dial_removes_hands(watch):
    plate = inpaint_dial(watch["photo"], watch["hour_mask"], watch["minute_mask"])

    masked = combine_masks([watch["hour_mask"], watch["minute_mask"]])
    assert plate.shape == watch["photo"].shape
    dial = watch["dial"].astype(int)
    residual = np.abs(plate.astype(int) - dial)[masked].mean()
    hands = np.abs(watch["photo"].astype(int) - dial)[masked].mean()
    assert residual < 0.6 * hands
    # fill sources are dial pixels or the antialiased fringe (coverage <= 128), never the white core
    assert plate[masked].max() <= 200
    np.testing.assert_array_equal(plate[~masked], watch["photo"][~masked])


def test_inpaint_dial_downscales_large_inputs():
    photo = np.full((500, 1000, 3), 50, dtype=np.uint8)
    mask = np.zeros((500, 1000), dtype=np.uint8)
    mask[240:260, 400:600] = 255

    plate = inpaint_dial(photo, mask, mask)

    assert plate.shape == (400, 800, 3)


def test_inpaint_dial_accepts_encoded_inputs(watch):
    from_arrays = inpaint_dial(watch["photo"], watch["hour_mask"], watch["minute_mask"])
    from_bytes = inpaint_dial(
        encode_png(watch["photo"]), encode_png(watch["hour_mask"]), encode_png(watch["minute_mask"])
    )
    np.testing.assert_array_equal(from_arrays, from_bytes)


def test_undecodable_input_raises_inpaint_error(watch):
    with pytest.raises(InpaintError) as info:
        inpaint_dial(b"not an image", watch["hour_mask"], watch["minute_mask"])
    assert info.value.kind is ErrorKind.INPAINTING_FAILED

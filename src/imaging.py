"""Pixel-buffer helpers shared by every stage.

Images are uint8 numpy arrays shaped (H, W) or (H, W, C) with C in {3, 4},
channels ordered RGB(A). OpenCV's BGR order only appears inside
``load_image`` and ``encode_png``. Coordinates are pixels with the origin at
the top-left corner and y pointing down.
"""

import math
import os

import cv2
import numpy as np

from errors import ImageDecodeError


def _to_rgb_order(img):
    if img.ndim == 3 and img.shape[2] == 1:
        img = img[:, :, 0]
    if img.ndim == 2:
        return img
    if img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
    return cv2.cvtColor(img, cv2.COLOR_BGR2RGB)


def decode_image(data):
    """Decode PNG/JPEG bytes, keeping an alpha channel when present."""
    if not data:
        raise ImageDecodeError("empty image data")
    buf = np.frombuffer(data, dtype=np.uint8)
    img = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED)
    if img is None:
        raise ImageDecodeError("could not decode image data")
    if img.dtype == np.uint16:
        img = (img // 257).astype(np.uint8)
    return _to_rgb_order(img)


def load_image(source):
    """Return a pixel buffer from an array, encoded bytes or a file path."""
    if source is None:
        raise ImageDecodeError("no image supplied")
    if isinstance(source, np.ndarray):
        if source.dtype != np.uint8 or source.ndim not in (2, 3) or source.size == 0:
            raise ImageDecodeError(f"unsupported pixel buffer: dtype={source.dtype}, shape={source.shape}")
        if source.ndim == 3 and source.shape[2] not in (1, 3, 4):
            raise ImageDecodeError(f"unsupported channel count: {source.shape[2]}")
        if source.ndim == 3 and source.shape[2] == 1:
            return source[:, :, 0]
        return source
    if isinstance(source, (bytes, bytearray, memoryview)):
        return decode_image(bytes(source))
    if isinstance(source, (str, os.PathLike)):
        try:
            data = np.fromfile(os.fspath(source), dtype=np.uint8)
        except OSError as e:
            raise ImageDecodeError(f"failed to read image: {source} ({e})") from e
        return decode_image(data.tobytes())
    raise ImageDecodeError(f"unsupported image source: {type(source).__name__}")


def encode_png(image):
    if image.ndim == 3 and image.shape[2] == 4:
        bgr = cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA)
    elif image.ndim == 3:
        bgr = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
    else:
        bgr = image
    ok, buffer = cv2.imencode(".png", bgr)
    if not ok:
        raise ValueError("PNG encoding failed")
    return buffer.tobytes()


def size_of(image):
    """(width, height) of a pixel buffer."""
    return image.shape[1], image.shape[0]


def resize(image, size, interpolation=cv2.INTER_AREA):
    w, h = int(size[0]), int(size[1])
    if w <= 0 or h <= 0:
        raise ValueError(f"invalid target size: {w}x{h}")
    if size_of(image) == (w, h):
        return image.copy()
    return cv2.resize(image, (w, h), interpolation=interpolation)


def fit_within(image, max_dimension):
    """Downscale so the longest side is at most ``max_dimension``; never upscale."""
    w, h = size_of(image)
    scale = min(max_dimension / w, max_dimension / h, 1.0)
    target = (max(1, int(round(w * scale))), max(1, int(round(h * scale))))
    return resize(image, target)


def rotate_about(image, center, angle):
    """Rotate ``image`` clockwise (as displayed) by ``angle`` radians about ``center``.

    The output keeps the input size; uncovered pixels are zero.
    """
    h, w = image.shape[:2]
    # cv2 treats positive angles as counter-clockwise on screen
    M = cv2.getRotationMatrix2D((float(center[0]), float(center[1])), -math.degrees(angle), 1.0)
    return cv2.warpAffine(
        image,
        M,
        (w, h),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=0,
    )


def coverage(mask):
    """Per-pixel hand coverage in [0, 255] for a mask of any supported layout."""
    if mask.ndim == 2:
        return mask
    if mask.shape[2] == 4:
        return mask[:, :, 3]
    return cv2.cvtColor(mask, cv2.COLOR_RGB2GRAY)


def paint_color(mask):
    """RGB color a mask layer is drawn with; single-channel masks draw white."""
    if mask.ndim == 2:
        return np.full(mask.shape + (3,), 255, dtype=np.uint8)
    return mask[:, :, :3]


def pivot_to_pixels(pivot, width, height):
    return pivot[0] * width, pivot[1] * height

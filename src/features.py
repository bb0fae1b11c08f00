import cv2
import numpy as np

from config import FEATURE_SIZE
from errors import ExtractionError, ImageDecodeError
from imaging import load_image

# number of values per image (grayscale thumbnail, row-major)
FEATURE_VECTOR_LENGTH = FEATURE_SIZE * FEATURE_SIZE

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float32)


def extract_features(image, size=FEATURE_SIZE):
    """Downscale to ``size`` x ``size`` and flatten the luminance into a vector.

    Training samples and query photos must go through this same function.
    """
    try:
        img = load_image(image)
    except ImageDecodeError as e:
        raise ExtractionError(f"Failed to extract features from image: {e}") from e

    small = cv2.resize(img, (size, size), interpolation=cv2.INTER_AREA)
    pixels = small.astype(np.float32) / 255.0
    if pixels.ndim == 2:
        gray = pixels
    else:
        # alpha, when present, is ignored
        gray = pixels[:, :, :3] @ LUMA_WEIGHTS
    return gray.reshape(-1).astype(np.float32)

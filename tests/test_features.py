import numpy as np
import pytest

from errors import ErrorKind, ExtractionError
from features import FEATURE_VECTOR_LENGTH, extract_features
from imaging import encode_png


def test_vector_length_and_dtype():
    image = np.zeros((224, 224, 3), dtype=np.uint8)
    vec = extract_features(image)
    assert vec.shape == (FEATURE_VECTOR_LENGTH,) == (1024,)
    assert vec.dtype == np.float32


def test_luminance_weights():
    red = np.zeros((64, 64, 3), dtype=np.uint8)
    red[:, :, 0] = 255
    assert np.allclose(extract_features(red), 0.299, atol=1e-6)

    white = np.full((64, 64, 4), 255, dtype=np.uint8)
    white[:, :, 3] = 0  # alpha ignored
    assert np.allclose(extract_features(white), 1.0, atol=1e-5)


def test_row_major_layout():
    image = np.zeros((32, 32, 3), dtype=np.uint8)
    image[0, 1] = 255
    vec = extract_features(image)
    assert vec[1] == pytest.approx(1.0, abs=1e-5)
    assert vec[32] == 0.0


def test_grayscale_input():
    gray = np.full((50, 40), 51, dtype=np.uint8)
    assert np.allclose(extract_features(gray), 0.2, atol=1e-6)


def test_same_vector_from_array_and_encoded_bytes():
    rng = np.random.default_rng(3)
    image = rng.integers(0, 255, (100, 80, 3), dtype=np.uint8)
    np.testing.assert_array_equal(extract_features(image), extract_features(encode_png(image)))
    np.testing.assert_array_equal(extract_features(image), extract_features(image))


def test_undecodable_image_raises_extraction_error():
    with pytest.raises(ExtractionError) as info:
        extract_features(b"\x00\x01garbage")
    assert info.value.kind is ErrorKind.FEATURE_EXTRACTION_FAILED

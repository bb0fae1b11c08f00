"""Failure kinds raised by the training and prediction pipeline.

Callers branch on ``error.kind`` rather than on the message text.
"""

from enum import Enum


class ErrorKind(str, Enum):
    MISSING_INPUT_DATA = "missing_input_data"
    INPAINTING_FAILED = "inpainting_failed"
    NO_TRAINING_SAMPLES = "no_training_samples"
    MODEL_NOT_FOUND = "model_not_found"
    FEATURE_EXTRACTION_FAILED = "feature_extraction_failed"
    PREDICTION_FAILED = "prediction_failed"
    TRAINING_CANCELLED = "training_cancelled"


class ImageDecodeError(ValueError):
    """Raised when bytes or a path cannot be turned into a pixel buffer."""


class WatchMLError(Exception):
    kind = None
    default_message = "Watch model operation failed"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)

    @property
    def message(self):
        return str(self)


class MissingInputDataError(WatchMLError):
    kind = ErrorKind.MISSING_INPUT_DATA
    default_message = "Watch is missing required data (reference photo, hand masks, or center point)"


class InpaintError(WatchMLError):
    kind = ErrorKind.INPAINTING_FAILED
    default_message = "Failed to remove hands from dial image"


class NoTrainingSamplesError(WatchMLError):
    kind = ErrorKind.NO_TRAINING_SAMPLES
    default_message = "Failed to generate training data"


class ModelNotFoundError(WatchMLError):
    kind = ErrorKind.MODEL_NOT_FOUND
    default_message = "Trained model not found"


class ExtractionError(WatchMLError):
    kind = ErrorKind.FEATURE_EXTRACTION_FAILED
    default_message = "Failed to extract features from image"


class PredictionFailedError(WatchMLError):
    kind = ErrorKind.PREDICTION_FAILED
    default_message = "Failed to make prediction"


class TrainingCancelledError(WatchMLError):
    kind = ErrorKind.TRAINING_CANCELLED
    default_message = "Training was cancelled"

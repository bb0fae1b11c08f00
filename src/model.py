# src/model.py
import logging
import os
from collections import Counter
from dataclasses import dataclass

import numpy as np
import torch
import torch.nn as nn

from config import DEVICE, K_NEIGHBORS, MINUTE_BUCKET
from errors import ModelNotFoundError, PredictionFailedError, TrainingCancelledError
from features import FEATURE_VECTOR_LENGTH, extract_features

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Prediction:
    hour: int
    minute: int
    second: int
    confidence: float

    @property
    def time_string(self):
        return f"{self.hour}:{self.minute:02d}:{self.second:02d}"


def minute_bucket(minute, width=MINUTE_BUCKET):
    return (minute // width) * width


class WatchKNN(nn.Module):
    """Flat k-nearest-neighbour store of (feature vector, hour, minute bucket).

    Everything lives in registered buffers, so the module's ``state_dict`` is
    the complete model artifact. Lookup is an exhaustive linear scan.
    """

    def __init__(self, vectors=None, hours=None, minute_buckets=None, feature_length=FEATURE_VECTOR_LENGTH):
        super(WatchKNN, self).__init__()
        if vectors is None:
            vectors = torch.zeros((0, feature_length), dtype=torch.float32)
            hours = torch.zeros(0, dtype=torch.long)
            minute_buckets = torch.zeros(0, dtype=torch.long)

        vectors = torch.as_tensor(vectors, dtype=torch.float32)
        hours = torch.as_tensor(hours, dtype=torch.long)
        minute_buckets = torch.as_tensor(minute_buckets, dtype=torch.long)
        if vectors.dim() != 2 or hours.shape != (vectors.size(0),) or minute_buckets.shape != hours.shape:
            raise ValueError(
                f"inconsistent model tensors: vectors {tuple(vectors.shape)}, "
                f"hours {tuple(hours.shape)}, minute_buckets {tuple(minute_buckets.shape)}"
            )

        self.register_buffer("vectors", vectors)
        self.register_buffer("hours", hours)
        self.register_buffer("minute_buckets", minute_buckets)

    @property
    def num_entries(self):
        return self.vectors.size(0)

    @property
    def feature_length(self):
        return self.vectors.size(1)

    def labels(self):
        return list(zip(self.hours.tolist(), self.minute_buckets.tolist()))

    def forward(self, x):
        # x: [feature_length] or [batch, feature_length] -> [batch, num_entries]
        if x.dim() == 1:
            x = x.unsqueeze(0)
        diff = x[:, None, :] - self.vectors[None, :, :]
        return diff.pow(2).sum(dim=2).sqrt()


def from_labeled(vectors, hours, minute_buckets):
    return WatchKNN(
        torch.as_tensor(np.asarray(vectors, dtype=np.float32)),
        torch.as_tensor(list(hours), dtype=torch.long),
        torch.as_tensor(list(minute_buckets), dtype=torch.long),
    )


def train(samples, bucket_width=MINUTE_BUCKET, on_sample=None, cancel=None):
    """Extract a feature vector per sample and store it with (hour, minute bucket)."""
    vectors, hours, buckets = [], [], []
    total = len(samples)
    for done, sample in enumerate(samples, start=1):
        if cancel is not None and cancel.is_set():
            raise TrainingCancelledError()
        vectors.append(extract_features(sample.image))
        hours.append(sample.hour)
        buckets.append(minute_bucket(sample.minute, bucket_width))
        if on_sample is not None:
            on_sample(done, total)

    if not vectors:
        return WatchKNN()
    return from_labeled(np.stack(vectors), hours, buckets)


def predict(query, model, k=K_NEIGHBORS):
    """Majority vote over the ``k`` stored vectors closest to ``query``.

    Ties in distance keep storage order; ties in votes go to the label seen
    first among the sorted neighbours. ``confidence`` is votes / k.
    """
    if k < 1:
        raise ValueError("k must be at least 1")
    if model.num_entries == 0:
        raise PredictionFailedError("Failed to make prediction: model has no entries")

    features = extract_features(query)
    if features.shape[0] != model.feature_length:
        raise PredictionFailedError(
            f"Failed to make prediction: feature length {features.shape[0]} != model {model.feature_length}"
        )

    with torch.no_grad():
        q = torch.from_numpy(features).to(model.vectors.device)
        distances = model(q)[0]
        order = torch.sort(distances, stable=True).indices[:k].tolist()

    labels = model.labels()
    nearest = [labels[i] for i in order]
    # most_common keeps first-encountered order among equal counts
    (hour, minute), votes = Counter(nearest).most_common(1)[0]
    return Prediction(hour=hour, minute=minute, second=0, confidence=votes / k)


def save_model(model, path):
    """Persist the artifact, replacing any previous one only once fully written."""
    path = os.fspath(path)
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    tmp = path + ".tmp"
    try:
        torch.save(model.state_dict(), tmp)
        os.replace(tmp, path)
    except Exception:
        if os.path.exists(tmp):
            os.remove(tmp)
        raise
    logger.info("Saved %d entries to %s", model.num_entries, path)
    return path


def load_model(path, device=DEVICE):
    path = os.fspath(path)
    if not os.path.isfile(path):
        raise ModelNotFoundError(f"Trained model not found: {path}")
    try:
        state = torch.load(path, map_location=device, weights_only=True)
        model = WatchKNN(state["vectors"], state["hours"], state["minute_buckets"])
        model.load_state_dict(state)
    except Exception as e:
        raise ModelNotFoundError(f"Trained model could not be loaded: {path} ({e})") from e
    model.eval()
    return model

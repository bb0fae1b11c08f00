# src/dataset.py
import logging
from dataclasses import dataclass

import cv2
import numpy as np

from augment import augment as augment_image
from compositor import ClockTime, composite, hand_rotations
from config import AUGMENT, INCLUDE_SECONDS, OUTPUT_SIZE, SAMPLES_PER_HOUR
from errors import TrainingCancelledError
from imaging import resize, size_of

logger = logging.getLogger(__name__)

HOURS = 12


@dataclass
class TrainingSample:
    image: np.ndarray
    hour: int  # 0-11
    minute: int  # 0-59
    second: int  # 0-59


def sample_times(samples_per_hour, include_seconds, rng):
    """Yield the (hour, minute, second) grid; minutes are fixed buckets, seconds random."""
    for hour in range(HOURS):
        for sample_idx in range(samples_per_hour):
            minute = (sample_idx * 60) // samples_per_hour
            second = int(rng.integers(0, 60)) if include_seconds else 0
            yield ClockTime(hour, minute, second)


def _as_color(image):
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
    return image


def generate_training_data(
    dial,
    hour_mask,
    minute_mask,
    second_mask,
    pivot,
    reference_time,
    samples_per_hour=SAMPLES_PER_HOUR,
    output_size=(OUTPUT_SIZE, OUTPUT_SIZE),
    include_seconds=INCLUDE_SECONDS,
    augment=AUGMENT,
    rng=None,
    on_sample=None,
    cancel=None,
):
    """Synthesize ``12 * samples_per_hour`` labeled watch images from a dial plate.

    Hand masks are rescaled to the plate and rotated from their pose at
    ``reference_time`` to every target time. A sample whose compositing or
    resizing fails is dropped; the rest of the corpus is still produced.

    ``on_sample(done, total)`` is called after every attempted sample and
    ``cancel`` (a ``threading.Event``) is checked before each one.
    """
    if samples_per_hour < 1:
        raise ValueError("samples_per_hour must be positive")
    rng = rng if rng is not None else np.random.default_rng()
    reference_time = ClockTime(*reference_time)

    dial = _as_color(dial)
    plate_size = size_of(dial)
    hour_mask = resize(hour_mask, plate_size)
    minute_mask = resize(minute_mask, plate_size)
    if second_mask is not None:
        second_mask = resize(second_mask, plate_size)

    total = HOURS * samples_per_hour
    samples = []
    dropped = 0
    for done, target in enumerate(sample_times(samples_per_hour, include_seconds, rng), start=1):
        if cancel is not None and cancel.is_set():
            raise TrainingCancelledError()

        rotations = hand_rotations(reference_time, target)
        try:
            image = composite(
                dial,
                hour_mask,
                minute_mask,
                second_mask,
                pivot,
                rotations.hour,
                rotations.minute,
                rotations.second,
            )
            if augment:
                image = augment_image(image, rng)
            image = resize(image, output_size, interpolation=cv2.INTER_CUBIC)
        except (cv2.error, ValueError) as e:
            dropped += 1
            logger.debug("Dropping sample %02d:%02d:%02d: %s", *target, e)
        else:
            samples.append(TrainingSample(image, target.hour, target.minute, target.second))

        if on_sample is not None:
            on_sample(done, total)

    if dropped:
        logger.info("Generated %d samples, dropped %d", len(samples), dropped)
    return samples

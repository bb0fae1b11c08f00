# src/train.py
import argparse
import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

import model as knn
from compositor import ClockTime, Pivot
from config import (
    AUGMENT,
    INCLUDE_SECONDS,
    LOG_LEVEL,
    MINUTE_BUCKET,
    MODEL_PATH,
    OUTPUT_SIZE,
    SAMPLES_PER_HOUR,
    SEED,
)
from dataset import generate_training_data
from errors import ImageDecodeError, InpaintError, MissingInputDataError, NoTrainingSamplesError, WatchMLError
from imaging import load_image
from inpaint import inpaint_dial

logger = logging.getLogger(__name__)

EVENT_BACKLOG = 100


@dataclass
class WatchReference:
    """Everything the setup screens collect for one watch."""

    reference: Any = None  # photo: array, encoded bytes or path
    hour_mask: Any = None
    minute_mask: Any = None
    second_mask: Any = None  # optional
    pivot: Optional[Pivot] = None
    reference_time: Optional[ClockTime] = None

    def validate(self):
        missing = [
            name
            for name in ("reference", "hour_mask", "minute_mask", "pivot", "reference_time")
            if getattr(self, name) is None
        ]
        if missing:
            raise MissingInputDataError(
                f"Watch is missing required data: {', '.join(missing)}"
            )

        invalid = []
        x, y = self.pivot
        if not (0.0 <= x <= 1.0 and 0.0 <= y <= 1.0):
            invalid.append(f"pivot {tuple(self.pivot)} (normalized x and y must be in 0-1)")
        hour, minute, second = ClockTime(*self.reference_time)
        if not 0 <= hour <= 11:
            invalid.append(f"hour {hour} (0-11)")
        if not 0 <= minute <= 59:
            invalid.append(f"minute {minute} (0-59)")
        if not 0 <= second <= 59:
            invalid.append(f"second {second} (0-59)")
        if invalid:
            raise MissingInputDataError(
                f"Watch has invalid reference data: {', '.join(invalid)}"
            )


@dataclass(frozen=True)
class ProgressEvent:
    fraction: float
    message: str
    done: bool = False


class _Progress:
    """Clamp reported fractions so they never go backwards."""

    def __init__(self, callback):
        self.callback = callback
        self.fraction = 0.0

    def __call__(self, fraction, message):
        self.fraction = max(self.fraction, min(1.0, fraction))
        logger.debug("%.0f%% %s", self.fraction * 100, message)
        if self.callback is not None:
            self.callback(self.fraction, message)


def train_watch_model(
    reference: WatchReference,
    model_path=MODEL_PATH,
    samples_per_hour=SAMPLES_PER_HOUR,
    output_size=(OUTPUT_SIZE, OUTPUT_SIZE),
    include_seconds=INCLUDE_SECONDS,
    augment=AUGMENT,
    bucket_width=MINUTE_BUCKET,
    seed=SEED,
    progress=None,
    cancel=None,
):
    """Inpaint, synthesize, extract and persist; returns the saved model path.

    ``progress(fraction, message)`` receives monotonically increasing
    fractions; ``cancel`` (a ``threading.Event``) is honoured between samples.
    """
    report = _Progress(progress)
    started = time.monotonic()

    # Step 1: validate the watch has the required data
    report(0.05, "Validating watch data...")
    reference.validate()
    try:
        photo = load_image(reference.reference)
        hour_mask = load_image(reference.hour_mask)
        minute_mask = load_image(reference.minute_mask)
        second_mask = load_image(reference.second_mask) if reference.second_mask is not None else None
    except ImageDecodeError as e:
        raise InpaintError(f"Failed to remove hands from dial image: {e}") from e
    pivot = Pivot(*reference.pivot)
    reference_time = ClockTime(*reference.reference_time)

    # Step 2: remove the hands from the dial
    report(0.1, "Preparing dial image...")
    dial = inpaint_dial(photo, hour_mask, minute_mask, second_mask)

    # Step 3: synthesize the labelled corpus
    report(0.2, "Generating training data...")
    rng = np.random.default_rng(seed)
    samples = generate_training_data(
        dial,
        hour_mask,
        minute_mask,
        second_mask,
        pivot,
        reference_time,
        samples_per_hour=samples_per_hour,
        output_size=output_size,
        include_seconds=include_seconds,
        augment=augment,
        rng=rng,
        on_sample=lambda done, total: report(0.2 + 0.2 * done / total, "Generating training data..."),
        cancel=cancel,
    )
    if not samples:
        raise NoTrainingSamplesError()
    report(0.4, f"Generated {len(samples)} training samples")

    # Step 4: extract features and build the classifier
    classifier = knn.train(
        samples,
        bucket_width=bucket_width,
        on_sample=lambda done, total: report(0.4 + 0.5 * done / total, "Training classifier..."),
        cancel=cancel,
    )

    report(0.95, "Finalizing model...")
    path = knn.save_model(classifier, model_path)

    logger.info(
        "Trained %d entries from %d samples in %.1fs",
        classifier.num_entries, len(samples), time.monotonic() - started,
    )
    report(1.0, "Training complete!")
    return path


class TrainingJob:
    """Run ``train_watch_model`` on a background thread.

    Progress is published as ``ProgressEvent`` items on ``events``; the last
    event has ``done=True``. Only the newest ``event_backlog`` events are kept,
    so a caller that only polls ``latest`` never grows the queue. ``cancel()``
    stops the run before the next sample.
    """

    def __init__(self, reference, model_path=MODEL_PATH, event_backlog=EVENT_BACKLOG, **options):
        self.reference = reference
        self.model_path = model_path
        self.options = options
        self.events = queue.Queue(maxsize=event_backlog)
        self.cancel_event = threading.Event()
        self.result = None
        self.error = None
        self.latest = ProgressEvent(0.0, "Waiting to start...")
        self._lock = threading.Lock()
        self._thread = threading.Thread(target=self._run, name="watch-training", daemon=True)

    def start(self):
        self._thread.start()
        return self

    @property
    def running(self):
        return self._thread.is_alive()

    def cancel(self):
        self.cancel_event.set()

    def join(self, timeout=None):
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _publish(self, event):
        with self._lock:
            self.latest = event
            # keep the newest events when nobody is draining the queue
            while True:
                try:
                    self.events.put_nowait(event)
                    break
                except queue.Full:
                    try:
                        self.events.get_nowait()
                    except queue.Empty:
                        pass

    def _report(self, fraction, message):
        self._publish(ProgressEvent(fraction, message))

    def _run(self):
        try:
            self.result = train_watch_model(
                self.reference,
                self.model_path,
                progress=self._report,
                cancel=self.cancel_event,
                **self.options,
            )
        except WatchMLError as e:
            logger.warning("Training failed (%s): %s", e.kind.value, e)
            self.error = e
        except Exception as e:
            logger.exception("Training crashed")
            self.error = e

        if self.error is None:
            self._publish(ProgressEvent(1.0, "Training complete!", done=True))
        else:
            self._publish(ProgressEvent(self.latest.fraction, f"Training failed: {self.error}", done=True))


def _parse_time(value):
    parts = [int(p) for p in value.split(":")]
    if not 2 <= len(parts) <= 3:
        raise argparse.ArgumentTypeError("time must be H:MM or H:MM:SS")
    hour, minute = parts[0], parts[1]
    second = parts[2] if len(parts) == 3 else 0
    return ClockTime(dial_hour(hour), minute, second)


def dial_hour(hour):
    """12 on the dial is hour 0; anything else is left for ``validate`` to check."""
    return 0 if hour == 12 else hour


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Train a k-NN time reader for one watch.")
    parser.add_argument("--reference", required=True, help="Reference photo of the watch.")
    parser.add_argument("--hour-mask", required=True, help="PNG mask of the hour hand.")
    parser.add_argument("--minute-mask", required=True, help="PNG mask of the minute hand.")
    parser.add_argument("--second-mask", help="PNG mask of the second hand (optional).")
    parser.add_argument(
        "--pivot",
        nargs=2,
        type=float,
        required=True,
        metavar=("X", "Y"),
        help="Watch-face center, normalized to 0-1.",
    )
    parser.add_argument("--time", type=_parse_time, required=True, help="Time in the reference photo, H:MM[:SS].")
    parser.add_argument("--samples-per-hour", type=int, default=SAMPLES_PER_HOUR)
    parser.add_argument("--output-size", type=int, default=OUTPUT_SIZE)
    parser.add_argument("--no-seconds", action="store_true", help="Keep the second hand at 0.")
    parser.add_argument("--no-augment", action="store_true", help="Disable brightness/rotation jitter.")
    parser.add_argument("--seed", type=int, default=SEED)
    parser.add_argument("--model-path", default=MODEL_PATH)
    return parser.parse_args(argv)


def main(argv=None):
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = parse_args(argv)

    reference = WatchReference(
        reference=args.reference,
        hour_mask=args.hour_mask,
        minute_mask=args.minute_mask,
        second_mask=args.second_mask,
        pivot=Pivot(*args.pivot),
        reference_time=args.time,
    )

    last_message = None

    def show(fraction, message):
        nonlocal last_message
        if message != last_message:
            print(f"[{fraction * 100:5.1f}%] {message}")
            last_message = message

    try:
        path = train_watch_model(
            reference,
            args.model_path,
            samples_per_hour=args.samples_per_hour,
            output_size=(args.output_size, args.output_size),
            include_seconds=not args.no_seconds,
            augment=not args.no_augment,
            seed=args.seed,
            progress=show,
        )
    except WatchMLError as exc:
        print(f"Training failed [{exc.kind.value}]: {exc}")
        return 1

    print(f"Training complete. Model saved to {path}.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

import json
import logging
import os
import sys
import threading
from pathlib import Path

from flask import Flask, jsonify, request

# Paths
ROOT_DIR = Path(__file__).resolve().parent
SRC_DIR = ROOT_DIR / "src"
# Ensure local src/ modules (config, model, etc.) are importable when running from repo root.
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from compositor import ClockTime, Pivot
from config import K_NEIGHBORS, LOG_LEVEL, MODEL_PATH
from errors import ErrorKind, ImageDecodeError, InpaintError, MissingInputDataError, WatchMLError
from imaging import load_image, size_of
from infer import predict_time
from masks import hand_mask_from_points
from train import TrainingJob, WatchReference, dial_hour

logger = logging.getLogger(__name__)

# Backend-only Flask app.
app = Flask(__name__)
app.config.setdefault("MODEL_PATH", MODEL_PATH)
app.config.setdefault("TRAINING_OPTIONS", {})

HTTP_STATUS = {
    ErrorKind.MISSING_INPUT_DATA: 400,
    ErrorKind.INPAINTING_FAILED: 422,
    ErrorKind.NO_TRAINING_SAMPLES: 422,
    ErrorKind.MODEL_NOT_FOUND: 404,
    ErrorKind.FEATURE_EXTRACTION_FAILED: 400,
    ErrorKind.PREDICTION_FAILED: 422,
    ErrorKind.TRAINING_CANCELLED: 409,
}

# ------------------------ TRAINING STATE ------------------------
JOB_LOCK = threading.Lock()
current_job = None


@app.errorhandler(WatchMLError)
def handle_watch_error(exc):
    return jsonify({"error": exc.kind.value, "message": str(exc)}), HTTP_STATUS.get(exc.kind, 500)


def _upload_bytes(field):
    up = request.files.get(field)
    if up is None:
        return None
    raw = up.read()
    return raw or None


def _form_number(name, cast, default=None):
    value = request.form.get(name)
    if value is None or value == "":
        return default
    try:
        return cast(value)
    except ValueError:
        raise MissingInputDataError(f"Invalid value for '{name}': {value!r}") from None


def _points(field):
    value = request.form.get(field)
    if not value:
        return None
    try:
        points = [(float(x), float(y)) for x, y in json.loads(value)]
    except (ValueError, TypeError) as e:
        raise MissingInputDataError(f"Invalid value for '{field}': expected a JSON list of [x, y] pairs") from e
    return points or None


def _hand_mask(hand, photo, pivot):
    """Uploaded ``<hand>_mask`` file, or a mask drawn from ``<hand>_points`` taps."""
    raw = _upload_bytes(f"{hand}_mask")
    if raw is not None:
        return raw
    points = _points(f"{hand}_points")
    if points is None or photo is None or pivot is None:
        return None
    try:
        width, height = size_of(load_image(photo))
    except ImageDecodeError as e:
        raise InpaintError(f"Failed to remove hands from dial image: {e}") from e
    return hand_mask_from_points(width, height, pivot, points, hand)


def _reference_from_request():
    pivot_x = _form_number("pivot_x", float)
    pivot_y = _form_number("pivot_y", float)
    hour = _form_number("hour", int)
    minute = _form_number("minute", int)
    second = _form_number("second", int, default=0)
    photo = _upload_bytes("reference")
    pivot = Pivot(pivot_x, pivot_y) if pivot_x is not None and pivot_y is not None else None
    return WatchReference(
        reference=photo,
        hour_mask=_hand_mask("hour", photo, pivot),
        minute_mask=_hand_mask("minute", photo, pivot),
        second_mask=_hand_mask("second", photo, pivot),
        pivot=pivot,
        reference_time=ClockTime(dial_hour(hour), minute, second) if hour is not None and minute is not None else None,
    )


def _job_status(job):
    event = job.latest
    return {
        "fraction": event.fraction,
        "message": event.message,
        "done": event.done,
        "running": job.running,
        "error": job.error.kind.value if isinstance(job.error, WatchMLError) else (str(job.error) if job.error else None),
        "model_path": job.result,
    }


@app.route("/")
def index():
    return (
        "Backend is running. POST /train to build a watch model, poll /progress, "
        "POST /cancel to stop it and POST /predict to read a photo.",
        200,
    )


@app.route("/train", methods=["POST"])
def start_training():
    global current_job
    reference = _reference_from_request()
    reference.validate()

    with JOB_LOCK:
        if current_job is not None and current_job.running:
            return jsonify({"error": "training_in_progress", "message": "A training run is already in progress."}), 409
        current_job = TrainingJob(
            reference,
            app.config["MODEL_PATH"],
            **app.config["TRAINING_OPTIONS"],
        ).start()
        logger.info("Training started, model will be written to %s", app.config["MODEL_PATH"])
        return jsonify(_job_status(current_job)), 202


@app.route("/progress")
def progress():
    with JOB_LOCK:
        job = current_job
    if job is None:
        return jsonify({"error": "no_training_job", "message": "No training run has been started."}), 404
    return jsonify(_job_status(job)), 200


@app.route("/cancel", methods=["POST"])
def cancel_training():
    with JOB_LOCK:
        job = current_job
    if job is None or not job.running:
        return jsonify({"error": "no_training_job", "message": "No training run is in progress."}), 404
    job.cancel()
    return jsonify({"status": "cancelling"}), 200


@app.route("/predict", methods=["POST"])
def predict():
    raw = _upload_bytes("image") or _upload_bytes("file")
    if raw is None:
        raise MissingInputDataError("No image provided. Send multipart field 'image'.")
    k = _form_number("k", int, default=K_NEIGHBORS)
    if k < 1:
        raise MissingInputDataError("k must be at least 1")

    prediction = predict_time(raw, app.config["MODEL_PATH"], k=k)
    return jsonify(
        {
            "hour": prediction.hour,
            "minute": prediction.minute,
            "second": prediction.second,
            "confidence": prediction.confidence,
            "time": prediction.time_string,
        }
    ), 200


if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL)
    port = int(os.getenv("PORT", "5000"))
    app.run(host="0.0.0.0", port=port, debug=False)

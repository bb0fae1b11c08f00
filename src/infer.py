# src/infer.py
import argparse
import logging

from config import K_NEIGHBORS, LOG_LEVEL, MODEL_PATH
from errors import WatchMLError
from model import load_model, predict

logger = logging.getLogger(__name__)


def predict_time(image, model_path=MODEL_PATH, k=K_NEIGHBORS):
    """Read the time off ``image`` (array, bytes or path) with a saved model."""
    model = load_model(model_path)
    prediction = predict(image, model, k=k)
    logger.info(
        "Predicted %s (confidence %.2f) from %d entries",
        prediction.time_string, prediction.confidence, model.num_entries,
    )
    return prediction


def main(argv=None):
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    parser = argparse.ArgumentParser(description="Read the time from a watch photo.")
    parser.add_argument("image", help="Photo of the watch to read.")
    parser.add_argument("--model-path", default=MODEL_PATH)
    parser.add_argument("-k", type=int, default=K_NEIGHBORS, help="Number of neighbours that vote.")
    args = parser.parse_args(argv)

    try:
        prediction = predict_time(args.image, args.model_path, k=args.k)
    except WatchMLError as exc:
        print(f"Prediction failed [{exc.kind.value}]: {exc}")
        return 1

    print(f"{prediction.time_string} (confidence {prediction.confidence:.0%})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

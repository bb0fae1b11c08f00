"""Central configuration for corpus synthesis, training and inference."""

import os

import torch
from dotenv import load_dotenv

# Load environment variables from a .env file if available.
load_dotenv()


def _env_flag(name, default):
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# ------------------------ MODEL / INFERENCE ------------------------
# Override these with environment variables if you need different values.
MODEL_PATH = os.getenv("MODEL_PATH", "models/watch_knn.pt")
K_NEIGHBORS = int(os.getenv("K_NEIGHBORS", "5"))
FEATURE_SIZE = int(os.getenv("FEATURE_SIZE", "32"))  # side of the grayscale thumbnail
MINUTE_BUCKET = int(os.getenv("MINUTE_BUCKET", "5"))  # minutes per class
DEVICE = torch.device("cuda" if torch.cuda.is_available() else "cpu")

# ------------------------ SYNTHETIC CORPUS ------------------------
OUTPUT_SIZE = int(os.getenv("OUTPUT_SIZE", "224"))
SAMPLES_PER_HOUR = int(os.getenv("SAMPLES_PER_HOUR", "60"))  # 60 x 12 = 720 samples
INCLUDE_SECONDS = _env_flag("INCLUDE_SECONDS", "1")
AUGMENT = _env_flag("AUGMENT", "1")
BRIGHTNESS_RANGE = float(os.getenv("BRIGHTNESS_RANGE", "0.1"))  # +-10%
ROTATION_JITTER = float(os.getenv("ROTATION_JITTER", "0.05"))  # radians, ~3 degrees
SEED = int(os.environ["SEED"]) if os.getenv("SEED") else None

# ------------------------ INPAINTING ------------------------
INPAINT_MAX_DIMENSION = int(os.getenv("INPAINT_MAX_DIMENSION", "800"))
INPAINT_MAX_RADIUS = int(os.getenv("INPAINT_MAX_RADIUS", "49"))
MASK_THRESHOLD = int(os.getenv("MASK_THRESHOLD", "128"))  # coverage above this = hand

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# roster/config.py
import os
from pathlib import Path


DATA_DIR = Path(os.getenv("ROSTER_DATA_DIR", "data"))
LOG_LEVEL = os.getenv("ROSTER_LOG_LEVEL", "INFO").upper()

# One year for assets, one day for CORS preflight
ASSET_MAX_AGE = int(os.getenv("ROSTER_ASSET_MAX_AGE", "31536000"))
CORS_MAX_AGE = int(os.getenv("ROSTER_CORS_MAX_AGE", "86400"))

DEFAULT_IMAGE_TYPE = "image/jpeg"

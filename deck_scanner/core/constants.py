from typing import Final, List, Tuple

CSV_HEADER: Final[List[str]] = [
    "Deck Name", "Manufacturer", "Casino", "Buy Price", "Sell Price",
    "Profit", "Margin %", "Confidence", "Timestamp",
]

# Classifier input geometry (h, w) and [-1, 1] normalisation
MODEL_INPUT_SIZE: Final[Tuple[int, int]] = (224, 224)
PIXEL_SCALE: Final[float] = 127.5
PIXEL_OFFSET: Final[float] = 1.0

# Frames strictly above this confidence are accepted into a session
CONFIDENCE_ACCEPT: Final[float] = 0.75

# Text verification scores
VERIFY_FULL: Final[float] = 1.0
VERIFY_MANUFACTURER_ONLY: Final[float] = 0.7
VERIFY_NONE: Final[float] = 0.3

# Pricing freshness window
PRICING_STALE_HOURS: Final[float] = 24.0
DEFAULT_DATA_SOURCE: Final[str] = "default"

# Fingerprint hash grid (w, h) for a 64-bit dHash
FINGERPRINT_GRID: Final[Tuple[int, int]] = (9, 8)

BACKOFF_S = [0.2, 1.0, 3.0]

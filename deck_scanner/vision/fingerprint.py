"""Visual fingerprints for catalog reference images."""

from pathlib import Path
from typing import Union

import cv2
import numpy as np

from ..core.constants import FINGERPRINT_GRID


def compute_fingerprint(image: np.ndarray) -> str:
    """64-bit difference hash of a deck back image, as 16 hex characters."""
    if image is None or image.size == 0:
        raise ValueError("Cannot fingerprint an empty image")
    if image.ndim == 3:
        code = cv2.COLOR_BGRA2GRAY if image.shape[2] == 4 else cv2.COLOR_BGR2GRAY
        gray = cv2.cvtColor(image, code)
    else:
        gray = image
    small = cv2.resize(gray, FINGERPRINT_GRID, interpolation=cv2.INTER_AREA)
    diff = small[:, 1:] > small[:, :-1]
    value = sum(1 << i for i, bit in enumerate(diff.flatten()) if bit)
    return f"{value:016x}"


def fingerprint_file(path: Union[str, Path]) -> str:
    image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if image is None:
        raise ValueError(f"Could not read reference image: {path}")
    return compute_fingerprint(image)

"""Frame preprocessing for the deck classifier.

The classifier expects a single-image batch of shape (1, 224, 224, 3), RGB,
float32, with pixel intensities mapped from [0, 255] to [-1, 1]. This is a
fixed contract with the trained model and is not configurable per call.
"""

from typing import List

import cv2
import numpy as np

from ..core.constants import MODEL_INPUT_SIZE, PIXEL_OFFSET, PIXEL_SCALE


class BufferScope:
    """Tracks intermediate arrays and drops every reference on exit.

    Used as a context manager around preprocessing and inference so that
    large frame copies do not outlive a single evaluation, whether it
    succeeds or raises.
    """

    def __init__(self):
        self._buffers: List[np.ndarray] = []
        self.released = False

    def track(self, array: np.ndarray) -> np.ndarray:
        self._buffers.append(array)
        return array

    @property
    def live(self) -> int:
        return len(self._buffers)

    def release(self) -> None:
        self._buffers.clear()
        self.released = True

    def __enter__(self) -> "BufferScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


def to_rgb(frame: np.ndarray) -> np.ndarray:
    """Convert a BGR, BGRA or grayscale frame to 3-channel RGB."""
    if frame.ndim == 2:
        return cv2.cvtColor(frame, cv2.COLOR_GRAY2RGB)
    channels = frame.shape[2]
    if channels == 4:
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2RGB)
    if channels == 3:
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
    if channels == 1:
        return cv2.cvtColor(frame[:, :, 0], cv2.COLOR_GRAY2RGB)
    raise ValueError(f"Unsupported channel count: {channels}")


def preprocess_frame(frame: np.ndarray, scope: BufferScope) -> np.ndarray:
    """Resize and normalise a frame into the classifier's input batch."""
    if frame is None or frame.size == 0:
        raise ValueError("Empty frame")

    height, width = MODEL_INPUT_SIZE
    rgb = scope.track(to_rgb(frame))
    resized = scope.track(cv2.resize(rgb, (width, height), interpolation=cv2.INTER_LINEAR))
    normalized = scope.track(resized.astype(np.float32) / PIXEL_SCALE - PIXEL_OFFSET)
    return scope.track(np.expand_dims(normalized, axis=0))

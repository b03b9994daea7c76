"""Camera capture source for the scan loop."""

import cv2
import numpy as np
from typing import Optional

from ..utils.log import LoggerMixin
from ..utils.config import settings
from ..utils.error_handler import CaptureError


class CameraCapture(LoggerMixin):
    """Supplies frames on demand from an OpenCV video device."""

    def __init__(self, camera_index: Optional[int] = None):
        self.cap = None
        self.camera_index = settings.CAMERA_INDEX if camera_index is None else camera_index
        self.is_initialized = False

    def initialize(self) -> None:
        """Open the camera and verify it delivers a frame."""
        self.cap = cv2.VideoCapture(self.camera_index)
        if not self.cap.isOpened():
            self.logger.error("Failed to open camera", camera_index=self.camera_index)
            raise CaptureError("Failed to open camera", details={"camera_index": self.camera_index})

        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, 1280)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, 720)

        ret, frame = self.cap.read()
        if not ret:
            self.release()
            raise CaptureError("Failed to capture test frame", details={"camera_index": self.camera_index})

        self.is_initialized = True
        self.logger.info("Camera initialized",
                         camera_index=self.camera_index,
                         frame_size=f"{frame.shape[1]}x{frame.shape[0]}")

    def read_frame(self) -> Optional[np.ndarray]:
        """Latest frame, or None if the device returned nothing."""
        if not self.is_initialized:
            raise CaptureError("Camera not initialized")
        ret, frame = self.cap.read()
        return frame if ret else None

    def release(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None
        self.is_initialized = False
        self.logger.debug("Camera released", camera_index=self.camera_index)

    def __enter__(self) -> "CameraCapture":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

"""Tests for camera capture with OpenCV mocked."""

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from deck_scanner.capture.camera import CameraCapture
from deck_scanner.utils.error_handler import CaptureError


@pytest.fixture
def mock_video_capture():
    with patch('deck_scanner.capture.camera.cv2.VideoCapture') as mock_cls:
        device = MagicMock()
        device.isOpened.return_value = True
        device.read.return_value = (True, np.zeros((720, 1280, 3), dtype=np.uint8))
        mock_cls.return_value = device
        yield device


class TestCameraCapture:
    """Test the capture device wrapper."""

    def test_initialize_and_read(self, mock_video_capture):
        camera = CameraCapture(camera_index=2)

        camera.initialize()
        frame = camera.read_frame()

        assert camera.is_initialized
        assert frame.shape == (720, 1280, 3)

    def test_open_failure(self, mock_video_capture):
        mock_video_capture.isOpened.return_value = False

        with pytest.raises(CaptureError):
            CameraCapture().initialize()

    def test_test_frame_failure_releases_device(self, mock_video_capture):
        mock_video_capture.read.return_value = (False, None)
        camera = CameraCapture()

        with pytest.raises(CaptureError):
            camera.initialize()

        mock_video_capture.release.assert_called_once()
        assert not camera.is_initialized

    def test_read_before_initialize(self):
        with pytest.raises(CaptureError):
            CameraCapture().read_frame()

    def test_dropped_frame_returns_none(self, mock_video_capture):
        camera = CameraCapture()
        camera.initialize()
        mock_video_capture.read.return_value = (False, None)

        assert camera.read_frame() is None

    def test_context_manager_releases(self, mock_video_capture):
        with CameraCapture() as camera:
            assert camera.is_initialized

        mock_video_capture.release.assert_called_once()
        assert camera.cap is None

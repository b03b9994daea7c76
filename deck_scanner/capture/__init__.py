"""Capture package for camera frames."""

from .camera import CameraCapture

__all__ = ["CameraCapture"]

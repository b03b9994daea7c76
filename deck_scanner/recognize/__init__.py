"""Recognition package."""

from .engine import RecognitionEngine

__all__ = ["RecognitionEngine"]

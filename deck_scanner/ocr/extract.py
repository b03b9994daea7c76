"""OCR text extraction for deck boxes."""

import re
from typing import Optional, Protocol

import cv2
import numpy as np
import pytesseract

from ..utils.config import resolve_tesseract_path
from ..utils.log import LoggerMixin


class TextRecognizer(Protocol):
    def recognize_text(self, image: np.ndarray) -> str:
        """Best-effort text found in the image; may be empty."""
        ...


class TesseractTextRecognizer(LoggerMixin):
    """Recognizes free text on a frame with Tesseract."""

    def __init__(self, tesseract_path: Optional[str] = None, psm: int = 11):
        self.tesseract_path = tesseract_path or resolve_tesseract_path()
        pytesseract.pytesseract.tesseract_cmd = self.tesseract_path
        # psm 11: sparse text, logos and box printing are scattered
        self.config = f"--psm {psm}"

        self.logger.info(
            "OCR recognizer initialized",
            tesseract_path=self.tesseract_path,
            config=self.config,
        )

    def recognize_text(self, image: np.ndarray) -> str:
        """Run OCR on a full frame. Errors from Tesseract propagate."""
        preprocessed = self._preprocess(image)
        text = pytesseract.image_to_string(preprocessed, config=self.config)
        cleaned = self._clean_text(text)
        self.logger.debug("Text recognized", chars=len(cleaned))
        return cleaned

    def _preprocess(self, image: np.ndarray) -> np.ndarray:
        """Grayscale, light denoise and adaptive threshold for text contrast."""
        if image.ndim == 3:
            code = cv2.COLOR_BGRA2GRAY if image.shape[2] == 4 else cv2.COLOR_BGR2GRAY
            gray = cv2.cvtColor(image, code)
        else:
            gray = image

        filtered = cv2.bilateralFilter(gray, 9, 75, 75)
        return cv2.adaptiveThreshold(
            filtered, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C, cv2.THRESH_BINARY, 11, 2
        )

    def _clean_text(self, text: str) -> str:
        if not text:
            return ""
        return re.sub(r"\s+", " ", text).strip()

"""OCR package for text extraction and verification."""

from .extract import TesseractTextRecognizer, TextRecognizer
from .verify import verify_text

__all__ = [
    "TextRecognizer",
    "TesseractTextRecognizer",
    "verify_text",
]

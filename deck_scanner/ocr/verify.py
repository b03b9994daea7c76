"""
Cross-check of classifier output against OCR text.
"""

from typing import Optional

from ..core.constants import VERIFY_FULL, VERIFY_MANUFACTURER_ONLY, VERIFY_NONE
from ..core.types import TextVerification


def verify_text(text: Optional[str], manufacturer: str, casino: Optional[str]) -> TextVerification:
    """Score how well recognized text corroborates the classified deck.

    Manufacturer identity carries the score; a casino match only counts on
    top of a manufacturer match and never lifts a manufacturer miss.

    Args:
        text: OCR output (may be empty)
        manufacturer: Expected manufacturer name
        casino: Expected casino name, if the deck has one

    Returns:
        TextVerification with a score of 1.0, 0.7 or 0.3
    """
    haystack = (text or "").lower()
    manufacturer_found = bool(manufacturer) and manufacturer.lower() in haystack
    casino_found = bool(casino) and casino.lower() in haystack

    if manufacturer_found:
        score = VERIFY_FULL if casino_found else VERIFY_MANUFACTURER_ONLY
    else:
        score = VERIFY_NONE

    return TextVerification(
        manufacturer_verified=manufacturer_found,
        casino_verified=casino_found,
        verification_score=score,
    )

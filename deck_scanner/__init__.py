"""Deck Scanner - identify, price and tally playing-card decks from a camera feed, offline first."""

__version__ = "1.0.0"
__author__ = "Deck Scanner Team"
__description__ = "Recognition, session accounting and offline-first persistence for a playing-card deck scanner"

from .core.types import (
    CatalogEntry,
    PricingRecord,
    PricingSnapshot,
    RecognitionResult,
    ScanRecord,
    SessionSummary,
    SyncTask,
)
from .recognize.engine import RecognitionEngine
from .session.aggregator import ScanSession
from .store.db import DeckStore
from .sync.processor import SyncQueueProcessor
from .utils.config import settings
from .utils.log import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__description__",
    # Core components
    "configure_logging",
    "get_logger",
    "settings",
    "DeckStore",
    "RecognitionEngine",
    "ScanSession",
    "SyncQueueProcessor",
    # Data types
    "CatalogEntry",
    "PricingRecord",
    "PricingSnapshot",
    "RecognitionResult",
    "ScanRecord",
    "SessionSummary",
    "SyncTask",
]

"""Pytest configuration and shared fixtures for Deck Scanner tests."""

import pytest
import tempfile
import shutil
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import numpy as np

from deck_scanner.core.types import CatalogEntry, DeckLabel, PricingRecord
from deck_scanner.recognize.engine import RecognitionEngine
from deck_scanner.store.db import DeckStore

FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class StubClassifier:
    """Returns a fixed probability vector, or raises a configured error."""

    def __init__(self, probabilities=None, error=None):
        self.probabilities = probabilities
        self.error = error
        self.calls = 0
        self.last_batch = None

    def classify(self, batch):
        self.calls += 1
        self.last_batch = batch
        if self.error is not None:
            raise self.error
        return list(self.probabilities)


class StubTextRecognizer:
    """Returns fixed text, or raises a configured error."""

    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.calls = 0

    def recognize_text(self, image):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture(scope="function")
def temp_dirs():
    """Create temporary directories for each test function."""
    temp_dir = Path(tempfile.mkdtemp())
    output_dir = temp_dir / "output"
    cache_dir = temp_dir / "cache"
    output_dir.mkdir()
    cache_dir.mkdir()

    yield {
        'temp_dir': temp_dir,
        'output_dir': output_dir,
        'cache_dir': cache_dir
    }

    # Cleanup
    shutil.rmtree(temp_dir)


@pytest.fixture(scope="function")
def fixed_now():
    """Clock value shared by engine, pricing and session tests."""
    return FIXED_NOW


@pytest.fixture(scope="function")
def store(temp_dirs):
    """Empty store in a temporary directory."""
    return DeckStore(db_path=temp_dirs['cache_dir'] / "test.db")


@pytest.fixture(scope="function")
def labels():
    """Classifier label set; index 0 is the Bellagio deck."""
    return [
        DeckLabel(id="bellagio-88", name="Bellagio Red", manufacturer="Bee", casino="Bellagio"),
        DeckLabel(id="bicycle-std", name="Bicycle Standard", manufacturer="Bicycle", casino=None),
        DeckLabel(id="aria-12", name="Aria Blue", manufacturer="Gemaco", casino="Aria"),
    ]


@pytest.fixture(scope="function")
def seeded_store(store, labels):
    """Store holding every labelled deck, with fresh pricing for two of them."""
    for idx, label in enumerate(labels):
        store.upsert_catalog_entry(CatalogEntry(
            id=label.id,
            name=label.name,
            manufacturer=label.manufacturer,
            casino=label.casino,
            visual_fingerprint=f"{idx:016x}",
        ))
    store.upsert_pricing(PricingRecord(
        id="pricing_bellagio-88",
        catalog_id="bellagio-88",
        buy_price=2.00,
        sell_price=12.00,
        last_updated=FIXED_NOW - timedelta(hours=1),
        confidence_score=0.9,
        data_source="catalog",
    ))
    store.upsert_pricing(PricingRecord(
        id="pricing_bicycle-std",
        catalog_id="bicycle-std",
        buy_price=1.50,
        sell_price=3.00,
        last_updated=FIXED_NOW - timedelta(hours=2),
        confidence_score=0.8,
        data_source="catalog",
    ))
    return store


@pytest.fixture(scope="function")
def frame():
    """Plain BGR camera frame."""
    return np.full((480, 640, 3), 128, dtype=np.uint8)


@pytest.fixture(scope="function")
def make_engine(seeded_store, labels):
    """Factory for an engine over stub backends and a fixed clock."""
    def _make(probabilities=None, text="bee bellagio", classifier_error=None, ocr_error=None, **kwargs):
        classifier = StubClassifier(
            probabilities if probabilities is not None else [0.91, 0.05, 0.04],
            error=classifier_error,
        )
        recognizer = StubTextRecognizer(text, error=ocr_error)
        kwargs.setdefault("clock", lambda: FIXED_NOW)
        return RecognitionEngine(classifier, recognizer, labels, seeded_store, **kwargs)
    return _make


@pytest.fixture(scope="function")
def stub_backends():
    """Stub classifier and text recognizer classes for hand-built engines."""
    return StubClassifier, StubTextRecognizer


@pytest.fixture(scope="function")
def mock_cv2():
    """Mock OpenCV window functionality for tests."""
    with patch('cv2.imshow') as mock_imshow, \
         patch('cv2.waitKey') as mock_waitkey, \
         patch('cv2.destroyAllWindows') as mock_destroy, \
         patch('cv2.putText') as mock_puttext:

        # Mock key presses (ESC to exit immediately)
        mock_waitkey.return_value = 27  # ESC key

        yield {
            'imshow': mock_imshow,
            'waitKey': mock_waitkey,
            'destroyAllWindows': mock_destroy,
            'putText': mock_puttext
        }


@pytest.fixture(scope="function")
def sample_initial_data():
    """initial_data.json document in its nested-metadata form."""
    return {
        "decks": [
            {
                "id": "bellagio-88",
                "name": "Bellagio Red",
                "manufacturer": "Bee",
                "casino": "Bellagio",
                "visualData": {"backImageHash": "a1b2c3d4e5f60718"},
            },
            {
                "deckId": "bicycle-std",
                "name": "Bicycle Standard",
                "manufacturer": "Bicycle",
                "visualFingerprint": "0f0f0f0f0f0f0f0f",
            },
        ],
        "pricing": [
            {
                "id": "price-1",
                "catalogId": "bellagio-88",
                "buyPrice": 2.0,
                "sellPrice": 12.0,
                "metadata": {
                    "lastUpdated": "2024-06-01T10:00:00Z",
                    "confidenceScore": 0.9,
                    "dataSource": "market_survey",
                },
            },
            {
                "deckId": "bicycle-std",
                "buyPrice": 1.5,
                "sellPrice": 3.0,
                "lastUpdated": "2024-06-01T09:00:00+00:00",
            },
        ],
    }


# Configure pytest options
def pytest_configure(config):
    """Configure pytest with custom options."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow running"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        # Mark integration tests
        if "integration" in item.name.lower() or "TestEndToEnd" in str(item.cls):
            item.add_marker(pytest.mark.integration)

        # Mark slow tests
        if any(slow_indicator in item.name.lower() for slow_indicator in ['performance', 'bulk', 'concurrent']):
            item.add_marker(pytest.mark.slow)

        # Mark unit tests (default)
        if not item.get_closest_marker('integration') and not item.get_closest_marker('slow'):
            item.add_marker(pytest.mark.unit)

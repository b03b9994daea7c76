"""Tests for catalog import from initial_data.json."""

import json
from datetime import datetime, timezone

import cv2
import numpy as np
import pytest

from deck_scanner.store.catalog import load_initial_data, parse_catalog_entry, parse_pricing_record
from deck_scanner.utils.error_handler import ConfigurationError, ConstraintViolation
from deck_scanner.vision.fingerprint import fingerprint_file


class TestParsing:
    """Test per-item parsing."""

    def test_parse_nested_pricing_metadata(self, sample_initial_data):
        record = parse_pricing_record(sample_initial_data["pricing"][0])

        assert record.id == "price-1"
        assert record.catalog_id == "bellagio-88"
        assert record.buy_price == 2.0
        assert record.sell_price == 12.0
        assert record.last_updated == datetime(2024, 6, 1, 10, tzinfo=timezone.utc)
        assert record.confidence_score == 0.9
        assert record.data_source == "market_survey"

    def test_parse_flat_pricing_defaults(self, sample_initial_data):
        record = parse_pricing_record(sample_initial_data["pricing"][1])

        assert record.id == "pricing_bicycle-std"
        assert record.catalog_id == "bicycle-std"
        assert record.data_source == "catalog"
        assert record.confidence_score == 0.0

    def test_negative_price_is_rejected(self):
        with pytest.raises(ConfigurationError):
            parse_pricing_record({"catalogId": "d1", "buyPrice": -1, "sellPrice": 2})

    def test_missing_fields_are_rejected(self, tmp_path):
        with pytest.raises(ConfigurationError):
            parse_pricing_record({"catalogId": "d1", "buyPrice": 1})
        with pytest.raises(ConfigurationError):
            parse_catalog_entry({"id": "d1", "name": "No maker", "visualFingerprint": "00"}, tmp_path)

    def test_deck_without_fingerprint_or_image_is_rejected(self, tmp_path):
        with pytest.raises(ConfigurationError):
            parse_catalog_entry({"id": "d1", "name": "Deck", "manufacturer": "Bee"}, tmp_path)

    def test_fingerprint_computed_from_reference_image(self, tmp_path):
        image = np.zeros((80, 90, 3), dtype=np.uint8)
        image[:, 45:] = 255
        cv2.imwrite(str(tmp_path / "back.png"), image)

        entry = parse_catalog_entry(
            {"id": "d1", "name": "Deck", "manufacturer": "Bee", "referenceImage": "back.png"},
            tmp_path,
        )

        assert entry.visual_fingerprint == fingerprint_file(tmp_path / "back.png")
        assert len(entry.visual_fingerprint) == 16


class TestLoadInitialData:
    """Test bulk import."""

    def test_load_from_file(self, store, tmp_path, sample_initial_data):
        path = tmp_path / "initial_data.json"
        path.write_text(json.dumps(sample_initial_data))

        counts = load_initial_data(store, path)

        assert counts == {"decks": 2, "pricing": 2}
        bellagio = store.get_catalog_entry("bellagio-88")
        assert bellagio.casino == "Bellagio"
        assert bellagio.visual_fingerprint == "a1b2c3d4e5f60718"
        assert store.get_catalog_entry("bicycle-std").casino is None
        assert store.get_pricing_by_catalog_id("bicycle-std").sell_price == 3.0

    def test_reimport_is_idempotent(self, store, sample_initial_data):
        load_initial_data(store, sample_initial_data)
        load_initial_data(store, sample_initial_data)

        assert len(store.list_catalog_entries()) == 2
        assert store.get_pricing("price-1").buy_price == 2.0

    def test_pricing_for_unknown_deck_fails(self, store):
        data = {"decks": [], "pricing": [{"catalogId": "ghost", "buyPrice": 1, "sellPrice": 2}]}

        with pytest.raises(ConstraintViolation):
            load_initial_data(store, data)

    def test_invalid_json_file(self, store, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError):
            load_initial_data(store, path)

    def test_missing_file(self, store, tmp_path):
        with pytest.raises(ConfigurationError):
            load_initial_data(store, tmp_path / "nope.json")

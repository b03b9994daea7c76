"""Bulk import of the deck catalog and its initial pricing."""

import json
from pathlib import Path
from typing import Any, Dict, Union

from ..core.types import CatalogEntry, PricingRecord, parse_timestamp, utc_now
from ..utils.error_handler import ConfigurationError, ErrorContext, validate_required_fields
from ..utils.log import get_logger
from ..utils.validation import validate_file_path, validate_numeric_range
from ..vision.fingerprint import fingerprint_file
from .db import DeckStore

logger = get_logger(__name__)


def _first(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def parse_catalog_entry(raw: Dict[str, Any], base_dir: Path) -> CatalogEntry:
    """Build a CatalogEntry from one `decks` item.

    The fingerprint is taken from `visualFingerprint` (or the nested
    `visualData.backImageHash`) when present, otherwise computed from the
    `referenceImage` path, resolved relative to the document.
    """
    context = ErrorContext(operation="parse deck", module=__name__, function="parse_catalog_entry")
    normalized = {
        "id": _first(raw, "id", "deckId"),
        "name": raw.get("name"),
        "manufacturer": raw.get("manufacturer"),
    }
    validate_required_fields(normalized, ["id", "name", "manufacturer"], context)

    fingerprint = _first(raw, "visualFingerprint") or (raw.get("visualData") or {}).get("backImageHash")
    if not fingerprint:
        image = raw.get("referenceImage")
        if not image:
            raise ConfigurationError(
                "Deck needs a visualFingerprint or referenceImage",
                details={"deck_id": normalized["id"]},
            )
        image_path = validate_file_path(base_dir / image, must_exist=True)
        fingerprint = fingerprint_file(image_path)

    return CatalogEntry(
        id=str(normalized["id"]),
        name=normalized["name"],
        manufacturer=normalized["manufacturer"],
        casino=raw.get("casino") or None,
        visual_fingerprint=str(fingerprint),
    )


def parse_pricing_record(raw: Dict[str, Any]) -> PricingRecord:
    """Build a PricingRecord from one `pricing` item (nested `metadata` or flat keys)."""
    context = ErrorContext(operation="parse pricing", module=__name__, function="parse_pricing_record")
    metadata = raw.get("metadata") or {}
    catalog_id = _first(raw, "catalogId", "deckId")
    normalized = {
        "catalogId": catalog_id,
        "buyPrice": raw.get("buyPrice"),
        "sellPrice": raw.get("sellPrice"),
    }
    validate_required_fields(normalized, ["catalogId", "buyPrice", "sellPrice"], context)

    last_updated = _first(metadata, "lastUpdated") or raw.get("lastUpdated")
    return PricingRecord(
        id=str(raw.get("id") or f"pricing_{catalog_id}"),
        catalog_id=str(catalog_id),
        buy_price=validate_numeric_range(raw["buyPrice"], min_value=0, field_name="buyPrice"),
        sell_price=validate_numeric_range(raw["sellPrice"], min_value=0, field_name="sellPrice"),
        last_updated=parse_timestamp(last_updated) if last_updated else utc_now(),
        confidence_score=float(_first(metadata, "confidenceScore") or raw.get("confidenceScore") or 0.0),
        data_source=_first(metadata, "dataSource") or raw.get("dataSource") or "catalog",
    )


def load_initial_data(store: DeckStore, source: Union[str, Path, Dict[str, Any]]) -> Dict[str, int]:
    """Import `{"decks": [...], "pricing": [...]}` into the store.

    Decks are written before pricing so every pricing record references an
    existing deck. Constraint violations propagate to the caller.

    Returns:
        Counts of imported decks and pricing records
    """
    if isinstance(source, dict):
        data, base_dir = source, Path.cwd()
    else:
        path = validate_file_path(source, must_exist=True)
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(
                    "Initial data is not valid JSON", details={"path": str(path), "error": str(e)}
                ) from e
        base_dir = path.parent

    decks = [parse_catalog_entry(raw, base_dir) for raw in data.get("decks", [])]
    pricing = [parse_pricing_record(raw) for raw in data.get("pricing", [])]

    for entry in decks:
        store.upsert_catalog_entry(entry)
    for record in pricing:
        store.upsert_pricing(record)

    logger.info("Catalog imported", decks=len(decks), pricing=len(pricing))
    return {"decks": len(decks), "pricing": len(pricing)}

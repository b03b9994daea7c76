"""Pricing lookup with a 24-hour staleness policy."""

from datetime import datetime, timedelta
from typing import Optional

from ..core.constants import DEFAULT_DATA_SOURCE, PRICING_STALE_HOURS
from ..core.types import PricingRecord, SyncTaskKind, utc_now
from ..store.db import DeckStore
from ..utils.log import get_logger

logger = get_logger(__name__)


def default_pricing(catalog_id: str, now: Optional[datetime] = None) -> PricingRecord:
    """Zero-priced stand-in used when a deck has no pricing record."""
    return PricingRecord(
        id=f"default_{catalog_id}",
        catalog_id=catalog_id,
        buy_price=0.0,
        sell_price=0.0,
        last_updated=now or utc_now(),
        confidence_score=0.0,
        data_source=DEFAULT_DATA_SOURCE,
    )


def is_stale(record: PricingRecord, now: Optional[datetime] = None,
             max_age_hours: float = PRICING_STALE_HOURS) -> bool:
    now = now or utc_now()
    return now - record.last_updated > timedelta(hours=max_age_hours)


def lookup_pricing(store: DeckStore, catalog_id: str, now: Optional[datetime] = None) -> PricingRecord:
    """Return the pricing record for a deck, never failing on a miss.

    A record older than the freshness window queues a PricingRefresh task
    on every call; repeated lookups queue repeated tasks. Queueing is
    best-effort and never fails the lookup.
    """
    now = now or utc_now()
    record = store.get_pricing_by_catalog_id(catalog_id)

    if record is None:
        logger.debug("Pricing miss, using default", catalog_id=catalog_id)
        return default_pricing(catalog_id, now)

    if is_stale(record, now):
        age_hours = (now - record.last_updated).total_seconds() / 3600
        try:
            task_id = store.enqueue_sync_task(SyncTaskKind.PRICING_REFRESH, catalog_id, now)
            logger.info("Stale pricing queued for refresh", catalog_id=catalog_id,
                        task_id=task_id, age_hours=round(age_hours, 1))
        except Exception as e:
            logger.warning("Could not queue pricing refresh", catalog_id=catalog_id, error=str(e))

    return record

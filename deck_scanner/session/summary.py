"""Session summary economics.

The fold is pure and order-independent for every total: sums use
math.fsum, so permuting the accepted items cannot change a rounded figure.
Only the most-profitable pick looks at order, and only to break exact ties
in favour of the item seen first.
"""

import math
from typing import Optional, Protocol, Sequence

from ..core.types import PricingSnapshot, ScanRecord, SessionSummary


class Priced(Protocol):
    pricing: PricingSnapshot


def format_money(value: float) -> str:
    return f"{value:.2f}"


def format_margin(items: Sequence[Priced]) -> str:
    if not items:
        return "0%"
    average = math.fsum(item.pricing.margin_pct for item in items) / len(items)
    return f"{average:.1f}%"


def most_profitable(items: Sequence[Priced]) -> Optional[Priced]:
    best = None
    for item in items:
        if best is None or item.pricing.profit > best.pricing.profit:
            best = item
    return best


def summarize(session_id: str, items: Sequence[Priced]) -> SessionSummary:
    """Fold accepted items (in acceptance order) into a SessionSummary."""
    items = list(items)
    return SessionSummary(
        session_id=session_id,
        total_decks=len(items),
        total_buy_value=format_money(math.fsum(i.pricing.buy_price for i in items)),
        total_sell_value=format_money(math.fsum(i.pricing.sell_price for i in items)),
        total_profit=format_money(math.fsum(i.pricing.profit for i in items)),
        average_margin=format_margin(items),
        most_profitable=most_profitable(items),
        results=items,
    )


def summarize_records(session_id: str, records: Sequence[ScanRecord]) -> SessionSummary:
    """Rebuild a session summary from persisted scan records."""
    ordered = sorted(records, key=lambda r: r.observed_at)
    return summarize(session_id, ordered)

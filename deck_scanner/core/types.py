from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 string (or pass through a datetime) as an aware UTC datetime."""
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class SyncTaskKind(str, Enum):
    PRICING_REFRESH = "PricingRefresh"
    HISTORY_UPLOAD = "HistoryUpload"


class SyncTaskStatus(str, Enum):
    PENDING = "Pending"
    DONE = "Done"


class SessionState(str, Enum):
    IDLE = "Idle"
    ACTIVE = "Active"
    CLOSED = "Closed"


@dataclass(frozen=True)
class CatalogEntry:
    id: str
    name: str
    manufacturer: str
    visual_fingerprint: str
    casino: Optional[str] = None


@dataclass(frozen=True)
class DeckLabel:
    """One classifier output slot; index-aligned with the probability vector."""
    id: str
    name: str
    manufacturer: str
    casino: Optional[str] = None


@dataclass
class PricingRecord:
    id: str
    catalog_id: str
    buy_price: float
    sell_price: float
    last_updated: datetime
    confidence_score: float = 0.0
    data_source: str = "catalog"

    @property
    def is_default(self) -> bool:
        return self.data_source == "default"

    def snapshot(self) -> "PricingSnapshot":
        return PricingSnapshot(buy_price=self.buy_price, sell_price=self.sell_price)


@dataclass(frozen=True)
class PricingSnapshot:
    buy_price: float
    sell_price: float

    @property
    def profit(self) -> float:
        return self.sell_price - self.buy_price

    @property
    def margin_pct(self) -> float:
        # A zero buy price (default pricing) has no defined margin
        if self.buy_price == 0:
            return 0.0
        return (self.sell_price - self.buy_price) / self.buy_price * 100

    def to_dict(self) -> Dict[str, float]:
        return {"buyPrice": self.buy_price, "sellPrice": self.sell_price}


@dataclass(frozen=True)
class TextVerification:
    manufacturer_verified: bool
    casino_verified: bool
    verification_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "manufacturerVerified": self.manufacturer_verified,
            "casinoVerified": self.casino_verified,
            "verificationScore": self.verification_score,
        }


@dataclass(frozen=True)
class RecognitionResult:
    catalog_id: str
    name: str
    manufacturer: str
    casino: Optional[str]
    classification_confidence: float
    text_verification: TextVerification
    pricing: PricingSnapshot
    observed_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "catalogId": self.catalog_id,
            "name": self.name,
            "manufacturer": self.manufacturer,
            "casino": self.casino,
            "classificationConfidence": self.classification_confidence,
            "textVerification": self.text_verification.to_dict(),
            "pricingSnapshot": self.pricing.to_dict(),
            "observedAt": self.observed_at.isoformat(),
        }


@dataclass(frozen=True)
class ScanRecord:
    id: str
    session_id: str
    catalog_id: str
    observed_at: datetime
    classification_confidence: float
    pricing: PricingSnapshot

    def to_dict(self) -> Dict[str, Any]:
        """Also the body sent to the remote history endpoint."""
        return {
            "id": self.id,
            "sessionId": self.session_id,
            "catalogId": self.catalog_id,
            "observedAt": self.observed_at.isoformat(),
            "classificationConfidence": self.classification_confidence,
            "pricingSnapshot": self.pricing.to_dict(),
        }


@dataclass(frozen=True)
class SyncTask:
    id: int
    kind: SyncTaskKind
    payload_key: str
    enqueued_at: datetime
    status: SyncTaskStatus = SyncTaskStatus.PENDING


@dataclass
class SessionSummary:
    session_id: str
    total_decks: int
    total_buy_value: str
    total_sell_value: str
    total_profit: str
    average_margin: str
    # RecognitionResult for a live session, ScanRecord for a replayed one
    most_profitable: Optional[Any]
    results: List[Any] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "totalDecks": self.total_decks,
            "totalBuyValue": self.total_buy_value,
            "totalSellValue": self.total_sell_value,
            "totalProfit": self.total_profit,
            "averageMargin": self.average_margin,
            "mostProfitable": (
                self.most_profitable.to_dict() if self.most_profitable else None
            ),
        }

"""Data models for receipt text understanding."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

PRODUCT_CATEGORIES: tuple[str, ...] = (
    "Groceries",
    "Dairy & Eggs",
    "Meat & Seafood",
    "Fresh Produce",
    "Bakery",
    "Frozen Foods",
    "Pantry & Dry Goods",
    "Snacks & Candy",
    "Beverages",
    "Health & Beauty",
    "Personal Care",
    "Household & Cleaning",
    "Baby & Kids",
    "Pet Supplies",
    "Pharmacy",
    "Electronics",
    "Clothing",
    "Home & Garden",
    "Automotive",
    "Office Supplies",
    "Other",
)

MIN_ITEM_PRICE = Decimal("0.01")
MAX_ITEM_PRICE = Decimal("999.99")
UNKNOWN_STORE = "Unknown Store"

SuggestedAction = Literal["hide", "review", "keep"]
StoreSource = Literal["keyword", "address", "online"]
NonFoodCategory = Literal[
    "tax",
    "fee",
    "coupon",
    "discount",
    "payment",
    "service",
    "personal_care",
    "household",
    "pharmacy",
    "baby_pet",
    "non_edible",
    "other",
]
CorrectionType = Literal["user_edit", "ai_correction", "pattern_update", "item_hidden"]
UserFeedback = Literal["correct", "incorrect"]
ParseSource = Literal["ai", "rules", "synthetic"]
RecoveryStrategy = Literal["fingerprint", "generic"]


class InvalidReceiptInput(ValueError):
    """Raised when parse input is not text or exceeds the configured size cap."""


def clamp01(value: float) -> float:
    """Clamp a confidence value into [0, 1]."""
    return max(0.0, min(1.0, value))


@dataclass(frozen=True)
class ExtractedLineItem:
    """A candidate (name, price) pair pulled from one receipt line."""

    raw_name: str
    price: Decimal
    line_index: int


@dataclass(frozen=True)
class ClassifiedItem:
    """An extracted item after name enhancement and non-food classification."""

    raw_name: str
    price: Decimal
    line_index: int
    enhanced_name: str
    category: str
    confidence: float
    is_non_food: bool = False
    suggested_action: SuggestedAction = "keep"
    non_food_confidence: float = 0.0
    non_food_category: NonFoodCategory = "other"
    non_food_reason: str = ""
    should_hide: bool = False
    was_learned: bool = False
    applied_corrections: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidence", clamp01(self.confidence))
        object.__setattr__(self, "non_food_confidence", clamp01(self.non_food_confidence))

    def with_override(self, **changes: Any) -> ClassifiedItem:
        return replace(self, **changes)


@dataclass(frozen=True)
class StoreIdentity:
    """Store detected from receipt text."""

    name: str
    confidence: float
    source: StoreSource

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidence", clamp01(self.confidence))


@dataclass(frozen=True)
class ExtractedAddress:
    """Address fragments pulled out of receipt header/footer text."""

    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    phone: str | None = None
    store_number: str | None = None

    def is_empty(self) -> bool:
        return not any((self.street, self.city, self.state, self.zip_code, self.phone, self.store_number))

    def query_string(self) -> str:
        """Free-text address used for online lookups."""
        parts = [part for part in (self.street, self.city, self.state, self.zip_code) if part]
        return ", ".join(parts)


@dataclass(frozen=True)
class StoreLocation:
    """A registry entry for one known store location."""

    store_name: str
    address: str
    city: str
    state: str
    zip_code: str
    store_number: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class GeocodeHint:
    """Low-confidence store guess returned by an online address lookup."""

    store_name: str
    formatted_address: str


@dataclass(frozen=True)
class GarbledTextReport:
    """Verdict and counters produced by garbled-text detection."""

    is_garbled: bool
    total_lines: int
    valid_lines: int
    garbled_lines: int
    extreme_indicators: int


@dataclass(frozen=True)
class RecoveredText:
    """Placeholder receipt text substituted for unusable OCR output."""

    text: str
    strategy: RecoveryStrategy
    store_name: str
    reason: str


@dataclass(frozen=True)
class ReceiptMetadata:
    date: str | None
    location: str | None
    store_format: str
    item_count: int


@dataclass(frozen=True)
class ParsedReceipt:
    """Structured receipt returned by the parsing pipeline."""

    store_name: str
    items: tuple[ClassifiedItem, ...]
    total: Decimal
    metadata: ReceiptMetadata
    hidden_items: tuple[ClassifiedItem, ...] = ()
    store_identity: StoreIdentity | None = None
    source: ParseSource = "rules"
    is_synthetic: bool = False
    recovery: RecoveredText | None = None
    garbled_report: GarbledTextReport | None = None


@dataclass(frozen=True)
class LearningRecord:
    """One entry in the bounded feedback log."""

    original_text: str
    store_name: str
    correction_type: CorrectionType
    timestamp: datetime
    user_feedback: UserFeedback | None = None
    previous_name: str | None = None
    corrected_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "original_text": self.original_text,
            "store_name": self.store_name,
            "correction_type": self.correction_type,
            "timestamp": self.timestamp.isoformat(),
            "user_feedback": self.user_feedback,
            "previous_name": self.previous_name,
            "corrected_name": self.corrected_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LearningRecord:
        return cls(
            original_text=str(data["original_text"]),
            store_name=str(data["store_name"]),
            correction_type=data["correction_type"],
            timestamp=datetime.fromisoformat(str(data["timestamp"])),
            user_feedback=data.get("user_feedback"),
            previous_name=data.get("previous_name"),
            corrected_name=data.get("corrected_name"),
        )


@dataclass(frozen=True)
class LearningStats:
    """Aggregates derived on demand from the feedback log and pattern table."""

    total_feedback: int
    accuracy: float
    stores_learned: int
    patterns_learned: int
    hidden_items_learned: int
    recent_corrections: int
    top_stores: tuple[tuple[str, int], ...] = ()
    corrections_by_type: dict[str, int] = field(default_factory=dict)
    common_misclassifications: tuple[tuple[str, int], ...] = ()

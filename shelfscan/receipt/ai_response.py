"""Prompt construction and response validation for AI-assisted extraction.

The HTTP call itself lives in `shelfscan.runtime.ai_extraction`; everything
here is pure so responses can be validated without a network.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from shelfscan.domain.receipt import MAX_ITEM_PRICE, PRODUCT_CATEGORIES, clamp01

DEFAULT_ITEM_CONFIDENCE = 0.7
_CENT = Decimal("0.01")


@dataclass(frozen=True)
class AIItem:
    name: str
    enhanced_name: str
    category: str
    price: Decimal
    confidence: float


@dataclass(frozen=True)
class TrustedExtraction:
    """An AI response that passed validation and carries at least one item."""

    store_name: str | None
    items: tuple[AIItem, ...]
    total: Decimal | None
    date: str | None = None
    location: str | None = None
    store_format: str | None = None
    dropped_items: int = 0


@dataclass(frozen=True)
class UntrustedResponse:
    """An AI response that must not be used; reason says why."""

    reason: str


def build_extraction_prompt(text: str) -> str:
    """User prompt sent with the receipt text."""
    categories = ", ".join(PRODUCT_CATEGORIES)
    return f"""Analyze this receipt OCR text and extract structured information:

\"\"\"
{text}
\"\"\"

Instructions:
1. Identify the store name from the header, address or footer. Use null if unclear.
2. Extract every purchased item. Handle "NAME  PRICE" lines, names with the
   price on the next line, weight pricing and trailing tax codes.
3. Expand abbreviations into a clean readable enhancedName
   (for example GV -> Great Value, CHKN -> Chicken, OZ -> Ounce).
4. Assign each item one category from: {categories}
5. Skip addresses, phone numbers, subtotal, tax, total, payment, change,
   staff names and promotional lines.
6. Prices are positive with two decimals and at most 999.99.
7. Give each item a confidence: 0.9+ for clear text, 0.7+ for abbreviated,
   0.5+ for unclear.

Return ONLY valid JSON in this format:
{{
  "storeName": "Store Name",
  "items": [
    {{"name": "original receipt text", "enhancedName": "Clean Readable Name",
      "category": "Category", "price": 0.00, "confidence": 0.95}}
  ],
  "total": 0.00,
  "metadata": {{"date": "MM/DD/YYYY or null", "location": "City, State or null",
                "storeFormat": "detected format description"}}
}}
"""


def _coerce_decimal(value: Any) -> Decimal | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        value = str(value)
    if not isinstance(value, str):
        return None
    try:
        amount = Decimal(value.strip().replace("$", "").replace(",", ""))
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount.quantize(_CENT)


def _coerce_confidence(value: Any) -> float | None:
    """Missing confidence gets the default; anything non-numeric or NaN is rejected."""
    if value is None:
        return DEFAULT_ITEM_CONFIDENCE
    if isinstance(value, bool):
        return None
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(confidence):
        return None
    return clamp01(confidence)


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() == "null":
        return None
    return text


def _validate_item(raw: Any) -> AIItem | None:
    if not isinstance(raw, Mapping):
        return None
    name = _optional_text(raw.get("name"))
    enhanced_name = _optional_text(raw.get("enhancedName"))
    if not name or not enhanced_name:
        return None

    price = _coerce_decimal(raw.get("price"))
    if price is None or price <= 0 or price > MAX_ITEM_PRICE:
        return None

    confidence = _coerce_confidence(raw.get("confidence"))
    if confidence is None:
        return None

    category = str(raw.get("category") or "").strip()
    if category not in PRODUCT_CATEGORIES:
        category = "Other"

    return AIItem(
        name=name,
        enhanced_name=enhanced_name,
        category=category,
        price=price,
        confidence=confidence,
    )


def validate_ai_payload(payload: Any) -> TrustedExtraction | UntrustedResponse:
    """
    Validate a decoded AI response field by field.

    Items missing a name or enhancedName, with a non-positive, oversized or
    non-numeric price, or with a NaN confidence are dropped. A payload with no
    surviving items is untrusted.
    """
    if not isinstance(payload, Mapping):
        return UntrustedResponse(reason=f"payload is {type(payload).__name__}, not an object")

    raw_items = payload.get("items")
    if not isinstance(raw_items, list):
        return UntrustedResponse(reason="payload has no items list")

    items = tuple(item for item in (_validate_item(raw) for raw in raw_items) if item is not None)
    if not items:
        return UntrustedResponse(reason=f"no valid items among {len(raw_items)} returned")

    metadata = payload.get("metadata")
    if not isinstance(metadata, Mapping):
        metadata = {}

    total = _coerce_decimal(payload.get("total"))
    return TrustedExtraction(
        store_name=_optional_text(payload.get("storeName")),
        items=items,
        total=total if total is not None and total > 0 else None,
        date=_optional_text(metadata.get("date")),
        location=_optional_text(metadata.get("location")),
        store_format=_optional_text(metadata.get("storeFormat")),
        dropped_items=len(raw_items) - len(items),
    )

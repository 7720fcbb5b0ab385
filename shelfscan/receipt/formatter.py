"""Format ParsedReceipt values as plain text or a JSON-ready dict."""

from decimal import Decimal
from typing import Any

from shelfscan.domain.receipt import ClassifiedItem, ParsedReceipt
from shelfscan.receipt.review import ReceiptReview


def _format_amount(amount: Decimal) -> str:
    return f"{amount:.2f}"


def _format_item_lines(
    items: tuple[ClassifiedItem, ...],
    indent: str = "  ",
) -> list[str]:
    """
    Format items with aligned names and prices.

    Args:
        items: Items to format, in receipt order
        indent: Indentation prefix for each line

    Returns:
        One line per item: name, right-aligned price, then category and flags
    """
    if not items:
        return []

    names = [item.enhanced_name or item.raw_name for item in items]
    prices = [_format_amount(item.price) for item in items]
    max_name_len = max(len(name) for name in names)
    max_price_len = max(len(price) for price in prices)

    lines = []
    for item, name, price in zip(items, names, prices):
        notes = [item.category]
        if item.was_learned:
            notes.append("learned")
        if item.suggested_action == "review":
            notes.append(f"review: {item.non_food_category}")
        base = f"{indent}{name.ljust(max_name_len)}  {price.rjust(max_price_len)}"
        lines.append(f"{base}  ; {', '.join(notes)}")
    return lines


def format_parsed_receipt(receipt: ParsedReceipt) -> str:
    """Human-readable summary used by the CLI."""
    header = receipt.store_name
    if receipt.metadata.date:
        header = f"{receipt.metadata.date} {header}"
    if receipt.metadata.location:
        header = f"{header} ({receipt.metadata.location})"

    lines = [header]
    if receipt.is_synthetic:
        reason = receipt.recovery.reason if receipt.recovery else "unreadable text"
        lines.append(f"; WARNING: placeholder data, OCR text was not usable ({reason})")

    lines.extend(_format_item_lines(receipt.items))

    if receipt.hidden_items:
        lines.append(f"; hidden ({len(receipt.hidden_items)}):")
        lines.extend(f";   {item.raw_name}  {_format_amount(item.price)}" for item in receipt.hidden_items)

    lines.append(f"TOTAL {_format_amount(receipt.total)}  ({receipt.metadata.item_count} items, source={receipt.source})")
    return "\n".join(lines) + "\n"


def format_receipt_review(review: ReceiptReview) -> str:
    """Review block printed under the CLI summary."""
    detections = review.detections
    lines = [
        f"REVIEW {detections.total_detections} items: "
        f"{detections.action_counts.get('hide', 0)} hide, {detections.action_counts.get('review', 0)} review"
    ]
    for flagged in review.flagged:
        lines.append(f"  [{flagged.action}] {flagged.raw_name}: {flagged.explanation.title}")
        lines.append(f"      {flagged.explanation.description}")
    lines.extend(f"  hint: {suggestion.message}" for suggestion in review.suggestions)
    return "\n".join(lines) + "\n"


def classified_item_to_dict(item: ClassifiedItem) -> dict[str, Any]:
    return {
        "name": item.raw_name,
        "enhancedName": item.enhanced_name,
        "category": item.category,
        "price": float(item.price),
        "confidence": round(item.confidence, 4),
        "lineIndex": item.line_index,
        "isNonFood": item.is_non_food,
        "nonFoodCategory": item.non_food_category,
        "nonFoodConfidence": round(item.non_food_confidence, 4),
        "suggestedAction": item.suggested_action,
        "shouldHide": item.should_hide,
        "wasLearned": item.was_learned,
        "appliedCorrections": list(item.applied_corrections),
    }


def parsed_receipt_to_dict(receipt: ParsedReceipt) -> dict[str, Any]:
    """JSON shape: {storeName, items, total, metadata, ...}."""
    data: dict[str, Any] = {
        "storeName": receipt.store_name,
        "items": [classified_item_to_dict(item) for item in receipt.items],
        "total": float(receipt.total),
        "metadata": {
            "date": receipt.metadata.date,
            "location": receipt.metadata.location,
            "storeFormat": receipt.metadata.store_format,
            "itemCount": receipt.metadata.item_count,
        },
        "hiddenItems": [classified_item_to_dict(item) for item in receipt.hidden_items],
        "source": receipt.source,
        "isSynthetic": receipt.is_synthetic,
        "storeIdentity": None,
        "recovery": None,
    }
    if receipt.store_identity is not None:
        data["storeIdentity"] = {
            "name": receipt.store_identity.name,
            "confidence": round(receipt.store_identity.confidence, 4),
            "source": receipt.store_identity.source,
        }
    if receipt.recovery is not None:
        data["recovery"] = {
            "strategy": receipt.recovery.strategy,
            "storeName": receipt.recovery.store_name,
            "reason": receipt.recovery.reason,
        }
    return data


def receipt_review_to_dict(review: ReceiptReview) -> dict[str, Any]:
    detections = review.detections
    return {
        "detections": {
            "total": detections.total_detections,
            "byCategory": dict(detections.category_counts),
            "byAction": dict(detections.action_counts),
            "confidence": {
                "high": detections.high_confidence,
                "medium": detections.medium_confidence,
                "low": detections.low_confidence,
            },
        },
        "flagged": [
            {
                "name": flagged.raw_name,
                "action": flagged.action,
                "title": flagged.explanation.title,
                "description": flagged.explanation.description,
                "actionText": flagged.explanation.action_text,
            }
            for flagged in review.flagged
        ],
        "suggestions": [
            {"type": suggestion.kind, "message": suggestion.message, "items": list(suggestion.items)}
            for suggestion in review.suggestions
        ],
    }

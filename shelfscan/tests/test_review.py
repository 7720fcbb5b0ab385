"""Tests for post-parse review hints."""

from __future__ import annotations

from shelfscan.application.receipts.parse import ReceiptParser
from shelfscan.receipt.formatter import format_receipt_review, receipt_review_to_dict
from shelfscan.receipt.learning import LearningStore
from shelfscan.receipt.review import item_verdict, review_receipt

LAUNDRY_RECEIPT = "LAUNDRY DETERGENT 11.99\nMILK WHOLE GALLON 3.99\nTOTAL 15.98"


def test_hidden_non_food_item_is_flagged_with_explanation() -> None:
    receipt = ReceiptParser().parse(LAUNDRY_RECEIPT)

    review = review_receipt(receipt)

    assert review.detections.total_detections == 2
    assert review.detections.category_counts["household"] == 1
    assert review.detections.action_counts["hide"] == 1
    assert [(flagged.raw_name, flagged.action) for flagged in review.flagged] == [("LAUNDRY DETERGENT", "hide")]
    explanation = review.flagged[0].explanation
    assert explanation.title == "Household Item"
    assert "% confidence" in explanation.description
    assert review.suggestions == ()


def test_item_verdict_keeps_classifier_reason() -> None:
    receipt = ReceiptParser().parse(LAUNDRY_RECEIPT)

    verdict = item_verdict(receipt.hidden_items[0])

    assert verdict.category == "household"
    assert verdict.reason
    assert verdict.reason in review_receipt(receipt).flagged[0].explanation.description


def test_learning_suggestions_are_attached() -> None:
    learning = LearningStore()
    for index in range(11):
        learning.save_correction(f"ITEM {index}", f"Item {index}", "SAFEWAY")
    receipt = ReceiptParser(learning=learning).parse(LAUNDRY_RECEIPT, store_hint="SAFEWAY")

    review = review_receipt(receipt, learning)

    assert "pattern_learning" in [suggestion.kind for suggestion in review.suggestions]


def test_review_output_shapes() -> None:
    review = review_receipt(ReceiptParser().parse(LAUNDRY_RECEIPT))

    data = receipt_review_to_dict(review)
    text = format_receipt_review(review)

    assert data["detections"]["total"] == 2
    assert data["flagged"][0]["name"] == "LAUNDRY DETERGENT"
    assert data["flagged"][0]["actionText"] == "Review - may not be groceries"
    assert text.startswith("REVIEW 2 items: 1 hide")
    assert "  [hide] LAUNDRY DETERGENT: Household Item\n" in text

"""Review hints for a parsed receipt.

Rebuilds the non-food verdicts carried on each item, groups the ones worth a
second look, explains them, and adds the learning store's suggestions.
"""

from __future__ import annotations

from dataclasses import dataclass

from shelfscan.domain.receipt import ClassifiedItem, ParsedReceipt, SuggestedAction

from .learning import LearningStore, LearningSuggestion
from .non_food import (
    CategoryExplanation,
    DetectionSummary,
    NonFoodVerdict,
    explain_category,
    suggest_actions,
    summarize_detections,
)


@dataclass(frozen=True)
class FlaggedItem:
    raw_name: str
    action: SuggestedAction
    explanation: CategoryExplanation


@dataclass(frozen=True)
class ReceiptReview:
    detections: DetectionSummary
    flagged: tuple[FlaggedItem, ...] = ()
    suggestions: tuple[LearningSuggestion, ...] = ()


def item_verdict(item: ClassifiedItem) -> NonFoodVerdict:
    return NonFoodVerdict(
        is_non_food=item.is_non_food,
        confidence=item.non_food_confidence,
        category=item.non_food_category,
        reason=item.non_food_reason,
        suggested_action=item.suggested_action,
    )


def review_receipt(receipt: ParsedReceipt, learning: LearningStore | None = None) -> ReceiptReview:
    """Summarize detections over kept and hidden items, in receipt order."""
    items = sorted((*receipt.items, *receipt.hidden_items), key=lambda item: item.line_index)
    verdicts = [item_verdict(item) for item in items]
    actions = suggest_actions(verdicts)

    flagged = tuple(
        FlaggedItem(
            raw_name=items[index].raw_name,
            action="hide" if index in actions.hide else "review",
            explanation=explain_category(verdicts[index].category, verdicts[index]),
        )
        for index in sorted(actions.hide | actions.review)
    )
    suggestions = tuple(learning.suggestions(receipt.items)) if learning is not None else ()
    return ReceiptReview(detections=summarize_detections(verdicts), flagged=flagged, suggestions=suggestions)

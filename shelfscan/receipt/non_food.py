"""Non-food detection for receipt line items.

Each rule layer is a pure function over a `NonFoodContext` returning a
`LayerOutcome` or None. `RULE_LAYERS` holds them in evaluation order together
with how their outcome combines with the running confidence:

- "short_circuit": the outcome is returned immediately
- "max": confidence becomes max(running, outcome)
- "additive": outcome is added onto the running confidence
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Literal

from shelfscan.domain.receipt import NonFoodCategory, SuggestedAction, clamp01

HIDE_THRESHOLD = 0.85
REVIEW_THRESHOLD = 0.6
DEFINITE_CONFIDENCE = 0.95
SERVICE_CONFIDENCE = 0.9
LIKELY_CONFIDENCE = 0.85
BRAND_CONFIDENCE = 0.8
SHORT_NAME_CONFIDENCE = 0.7
PRODUCT_CODE_CONFIDENCE = 0.8

DEFINITE_PATTERNS: dict[NonFoodCategory, tuple[re.Pattern[str], ...]] = {
    "tax": (
        re.compile(r"\b(sales?|state|city|local|county)\s*tax\b"),
        re.compile(r"\btax\s*(\d+\.\d{2}|\d+%)"),
        re.compile(r"\b(hst|gst|pst|vat)\b"),
        re.compile(r"\btotal\s*tax"),
        re.compile(r"tax\s*total"),
    ),
    "payment": (
        re.compile(r"\b(amex|visa|mastercard|discover|card)\s*(tend|tender|payment|transaction)"),
        re.compile(r"\b(cash|credit|debit)\s*(tend|tender|payment)"),
        re.compile(r"\b(payment|tender)\s*(amount|method)"),
        re.compile(r"\bchange\s*(due|given)"),
        re.compile(r"\b(subtotal|total|balance)\s*\d+\.\d{2}$"),
        re.compile(r"\b(cashback|cash\s*back)\b"),
        re.compile(r"\bgift\s*card"),
    ),
    "fee": (
        re.compile(r"\b(bag|bottle|container|recycling|environmental)\s*(fee|charge|deposit)"),
        re.compile(r"\bcrv\b"),
        re.compile(r"\b(service|handling|processing|delivery|convenience)\s*(fee|charge)"),
        re.compile(r"\b(plastic|paper|shopping)\s*bag"),
        re.compile(r"\bdeposit\s*(fee|charge)"),
    ),
    "coupon": (
        re.compile(r"\b(manufacturer|store|digital|mobile|app)\s*(coupon|discount)"),
        re.compile(r"\bscanned\s*coupon"),
        re.compile(r"\bmfr\s*coupon"),
        re.compile(r"\b(member|club|card)\s*(savings|discount|price)"),
        re.compile(r"\btotal\s*savings"),
        re.compile(r"\byou\s*saved"),
        re.compile(r"^\d+\.\d{2}-$"),
        re.compile(r"-\s*\$?\d+\.\d{2}$"),
        re.compile(r"\b(promo|promotion|deal|offer|rebate)\b"),
    ),
}

STORE_SERVICE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\bstore\s*\d+"),
    re.compile(r"\b(manager|employee|staff|cashier)\b"),
    re.compile(r"\b(receipt|transaction)\s*(number|id|#)"),
    re.compile(r"\byour\s*cashier\s*today\s*was"),
    re.compile(r"\bthank\s*you\s*for\s*shopping"),
    re.compile(r"\b(date|time|address|phone)\s*[:=]"),
    re.compile(r"\b\d{1,2}/\d{1,2}/\d{2,4}\b"),
    re.compile(r"\b\d{3}-\d{3}-\d{4}\b"),
    re.compile(r"\b\d+\s*(first|main|state|road|street|ave|blvd)\b"),
)

LIKELY_NON_FOOD_PATTERNS: dict[NonFoodCategory, tuple[re.Pattern[str], ...]] = {
    "personal_care": (
        re.compile(r"\b(shampoo|conditioner|soap|lotion|deodorant|toothpaste|mouthwash)\b"),
        re.compile(r"\b(razor|shaving|cologne|perfume|makeup|lipstick|foundation)\b"),
        re.compile(r"\b(bandaid|first\s*aid|medicine|vitamin|supplement|aspirin|tylenol|advil)\b"),
        re.compile(r"\b(feminine|tampons|pads|pregnancy|test)\b"),
    ),
    "household": (
        re.compile(r"\b(detergent|fabric\s*softener|bleach|cleaner|disinfectant|windex|lysol)\b"),
        re.compile(r"\b(toilet\s*paper|paper\s*towel|tissue|napkin|kleenex|charmin|bounty)\b"),
        re.compile(r"\b(trash\s*bag|garbage\s*bag|storage\s*bag|aluminum\s*foil|plastic\s*wrap)\b"),
        re.compile(r"\b(light\s*bulb|battery|batteries|extension\s*cord|air\s*freshener)\b"),
    ),
    "pharmacy": (
        re.compile(r"\b(prescription|rx|pharmacy|medication|pills|tablets|capsules)\b"),
        re.compile(r"\b(cough|cold|flu|allergy|pain\s*relief|antacid|laxative)\b"),
        re.compile(r"\b(blood\s*pressure|diabetes|insulin|heart|cholesterol)\b"),
    ),
    "baby_pet": (
        re.compile(r"\b(diaper|wipe|baby\s*(food|formula|oil|powder|lotion))\b"),
        re.compile(r"\b(cat|dog|pet)\s*(food|treat|toy|litter|collar|leash)\b"),
        re.compile(r"\b(purina|pedigree|friskies|meow\s*mix|iams|whiskas)\b"),
    ),
    "non_edible": (
        re.compile(r"\b(magazine|newspaper|book|greeting\s*card|gift\s*card|phone\s*card)\b"),
        re.compile(r"\b(lottery|scratch|ticket|cigarette|tobacco|vape|electronic)\b"),
        re.compile(r"\b(flower|plant|garden|fertilizer|mulch|seeds)\b"),
    ),
}

# Substring matches, lowercase
NON_FOOD_BRANDS: dict[NonFoodCategory, tuple[str, ...]] = {
    "personal_care": (
        "dove", "olay", "head shoulders", "pantene", "herbal essences", "aussie", "tresemme",
        "colgate", "crest", "oral-b", "listerine", "scope", "aquafresh",
        "gillette", "schick", "venus", "old spice", "axe", "degree", "secret",
        "covergirl", "maybelline", "revlon", "loreal", "neutrogena", "cetaphil",
    ),
    "household": (
        "tide", "downy", "gain", "cascade", "finish", "dawn", "joy",
        "lysol", "clorox", "windex", "febreze", "glade", "air wick",
        "charmin", "bounty", "scott", "kleenex", "puffs", "angel soft",
        "glad", "hefty", "ziploc", "reynolds", "saran",
    ),
    "pharmacy": (
        "tylenol", "advil", "aleve", "motrin", "bayer", "excedrin",
        "benadryl", "claritin", "zyrtec", "allegra", "sudafed",
        "robitussin", "mucinex", "dayquil", "nyquil", "pepto", "tums",
        "centrum", "nature made", "one a day", "flintstones",
    ),
    "baby_pet": (
        "pampers", "huggies", "luvs", "honest", "seventh generation",
        "similac", "enfamil", "gerber", "earth best",
        "purina", "pedigree", "friskies", "meow mix", "iams", "whiskas",
        "blue buffalo", "hills", "royal canin", "wellness",
    ),
}

PHARMACY_STORE_MARKERS = ("PHARMACY", "CVS", "WALGREENS")
_PRODUCT_CODE = re.compile(r"^\d+[a-z]*\d*$", re.IGNORECASE)

LayerMode = Literal["short_circuit", "max", "additive"]


@dataclass(frozen=True)
class PricedName:
    name: str
    price: Decimal | None = None


@dataclass(frozen=True)
class NonFoodContext:
    """Everything a rule layer may look at for one item."""

    name: str
    price: Decimal | None = None
    all_items: tuple[PricedName, ...] = ()
    index: int | None = None
    store_name: str = ""


@dataclass(frozen=True)
class LayerOutcome:
    confidence: float
    reason: str
    # None keeps the category chosen by an earlier layer
    category: NonFoodCategory | None = None


@dataclass(frozen=True)
class RuleLayer:
    name: str
    mode: LayerMode
    evaluate: Callable[[NonFoodContext], LayerOutcome | None]


@dataclass(frozen=True)
class NonFoodVerdict:
    is_non_food: bool
    confidence: float
    category: NonFoodCategory
    reason: str
    suggested_action: SuggestedAction


@dataclass(frozen=True)
class SuggestedActions:
    """Item indexes grouped by the action their confidence calls for."""

    hide: frozenset[int] = frozenset()
    review: frozenset[int] = frozenset()


@dataclass(frozen=True)
class CategoryExplanation:
    title: str
    description: str
    action_text: str


@dataclass(frozen=True)
class DetectionSummary:
    total_detections: int
    category_counts: dict[str, int] = field(default_factory=dict)
    high_confidence: int = 0
    medium_confidence: int = 0
    low_confidence: int = 0
    action_counts: dict[str, int] = field(default_factory=dict)


def _definite_layer(ctx: NonFoodContext) -> LayerOutcome | None:
    if ctx.price is not None and ctx.price < 0:
        return LayerOutcome(DEFINITE_CONFIDENCE, "Negative price indicates discount/refund", "discount")
    for category, patterns in DEFINITE_PATTERNS.items():
        if any(pattern.search(ctx.name) for pattern in patterns):
            return LayerOutcome(DEFINITE_CONFIDENCE, f"Definite non-food: matches {category} pattern", category)
    return None


def _store_service_layer(ctx: NonFoodContext) -> LayerOutcome | None:
    if any(pattern.search(ctx.name) for pattern in STORE_SERVICE_PATTERNS):
        return LayerOutcome(SERVICE_CONFIDENCE, "Store service or metadata", "service")
    return None


def _likely_non_food_layer(ctx: NonFoodContext) -> LayerOutcome | None:
    # Later groups win the category, as with successive pattern hits
    outcome: LayerOutcome | None = None
    for category, patterns in LIKELY_NON_FOOD_PATTERNS.items():
        if any(pattern.search(ctx.name) for pattern in patterns):
            outcome = LayerOutcome(LIKELY_CONFIDENCE, f"Likely non-food: matches {category} pattern", category)
    return outcome


def _brand_layer(ctx: NonFoodContext) -> LayerOutcome | None:
    outcome: LayerOutcome | None = None
    for category, brands in NON_FOOD_BRANDS.items():
        for brand in brands:
            if brand in ctx.name:
                outcome = LayerOutcome(BRAND_CONFIDENCE, f"Non-food brand detected: {brand}", category)
    return outcome


def _context_layer(ctx: NonFoodContext) -> LayerOutcome | None:
    score = 0.0
    price = ctx.price
    if price is not None:
        if price > 100:
            score += 0.8
        elif price > 50:
            score += 0.4
        if price < 0:
            score += 0.9
        if price >= 20 and price == price.to_integral_value():
            score += 0.3
        if ctx.all_items and ctx.index is not None:
            if len(ctx.all_items) - ctx.index <= 3 and price > 20:
                score += 0.2
    store_upper = ctx.store_name.upper()
    if any(marker in store_upper for marker in PHARMACY_STORE_MARKERS):
        score += 0.1
    if score <= 0:
        return None
    return LayerOutcome(score, f"Context analysis suggests non-food ({round(score * 100)}% context score)")


def _anomaly_layer(ctx: NonFoodContext) -> LayerOutcome | None:
    if _PRODUCT_CODE.match(ctx.name):
        return LayerOutcome(PRODUCT_CODE_CONFIDENCE, "Appears to be a product code or UPC")
    if len(ctx.name) < 3:
        return LayerOutcome(SHORT_NAME_CONFIDENCE, "Very short name, likely not a food item")
    return None


RULE_LAYERS: tuple[RuleLayer, ...] = (
    RuleLayer("definite", "short_circuit", _definite_layer),
    RuleLayer("store_service", "short_circuit", _store_service_layer),
    RuleLayer("likely_non_food", "max", _likely_non_food_layer),
    RuleLayer("brand", "max", _brand_layer),
    RuleLayer("context", "additive", _context_layer),
    RuleLayer("anomaly", "max", _anomaly_layer),
)


def suggested_action_for(
    confidence: float,
    hide_threshold: float = HIDE_THRESHOLD,
    review_threshold: float = REVIEW_THRESHOLD,
) -> SuggestedAction:
    if confidence >= hide_threshold:
        return "hide"
    if confidence >= review_threshold:
        return "review"
    return "keep"


def _verdict(confidence: float, category: NonFoodCategory, reason: str) -> NonFoodVerdict:
    confidence = clamp01(confidence)
    is_non_food = confidence >= REVIEW_THRESHOLD
    return NonFoodVerdict(
        is_non_food=is_non_food,
        confidence=confidence,
        category=category if is_non_food else "other",
        reason=reason or "No non-food indicators detected",
        suggested_action=suggested_action_for(confidence),
    )


def _to_decimal(price: Decimal | float | int | None) -> Decimal | None:
    if price is None or isinstance(price, Decimal):
        return price
    return Decimal(str(price))


def classify_non_food(
    name: str,
    price: Decimal | float | None = None,
    *,
    all_items: Sequence[tuple[str, Decimal | float | None]] | None = None,
    index: int | None = None,
    store_name: str = "",
    layers: Sequence[RuleLayer] = RULE_LAYERS,
) -> NonFoodVerdict:
    """
    Decide whether one receipt item is something other than food.

    Args:
        name: Raw item name
        price: Item price; negative prices are always treated as discounts
        all_items: (name, price) for every item on the receipt, for context scoring
        index: Position of this item in all_items
        store_name: Detected store, used for pharmacy context
        layers: Rule layers in evaluation order

    Returns:
        NonFoodVerdict with a clamped confidence and suggested action
    """
    ctx = NonFoodContext(
        name=name.lower().strip(),
        price=_to_decimal(price),
        all_items=tuple(PricedName(n, _to_decimal(p)) for n, p in all_items or ()),
        index=index,
        store_name=store_name,
    )

    confidence = 0.0
    category: NonFoodCategory = "other"
    reason = ""
    for layer in layers:
        outcome = layer.evaluate(ctx)
        if outcome is None:
            continue
        if layer.mode == "short_circuit":
            return _verdict(outcome.confidence, outcome.category or "other", outcome.reason)
        if layer.mode == "additive":
            confidence += outcome.confidence
            if outcome.confidence > 0.5 and not reason:
                reason = outcome.reason
            continue
        confidence = max(confidence, outcome.confidence)
        if outcome.category is not None:
            category = outcome.category
            reason = outcome.reason
        elif not reason:
            reason = outcome.reason

    return _verdict(confidence, category, reason)


def classify_non_food_batch(
    items: Sequence[tuple[str, Decimal | float | None]],
    store_name: str = "",
) -> list[NonFoodVerdict]:
    """Classify every item with the whole list available as context."""
    all_items = list(items)
    return [
        classify_non_food(name, price, all_items=all_items, index=index, store_name=store_name)
        for index, (name, price) in enumerate(all_items)
    ]


def suggest_actions(
    verdicts: Sequence[NonFoodVerdict],
    hide_threshold: float = HIDE_THRESHOLD,
    review_threshold: float = REVIEW_THRESHOLD,
) -> SuggestedActions:
    hide: set[int] = set()
    review: set[int] = set()
    for index, verdict in enumerate(verdicts):
        if verdict.confidence >= hide_threshold:
            hide.add(index)
        elif verdict.confidence >= review_threshold:
            review.add(index)
    return SuggestedActions(hide=frozenset(hide), review=frozenset(review))


CATEGORY_EXPLANATIONS: Mapping[str, CategoryExplanation] = {
    "tax": CategoryExplanation("Tax/Government Fee", "Government-imposed taxes and fees", "Hide from food spending"),
    "fee": CategoryExplanation("Store Fee/Charge", "Store-imposed fees (bags, deposits, etc.)", "Hide from food spending"),
    "coupon": CategoryExplanation("Coupon/Discount", "Savings from coupons or promotions", "Hide (already reduces total)"),
    "discount": CategoryExplanation(
        "Discount/Savings", "Member savings or promotional discounts", "Hide (already reduces total)"
    ),
    "payment": CategoryExplanation("Payment Method", "Payment processing or tender information", "Hide from items list"),
    "service": CategoryExplanation("Store Service", "Store services or receipt metadata", "Hide from items list"),
    "personal_care": CategoryExplanation(
        "Personal Care", "Health, beauty, and personal hygiene items", "Review - may not be groceries"
    ),
    "household": CategoryExplanation(
        "Household Item", "Cleaning supplies, paper products, etc.", "Review - may not be groceries"
    ),
    "pharmacy": CategoryExplanation(
        "Pharmacy/Health", "Medications, vitamins, and health products", "Review - may not be groceries"
    ),
    "baby_pet": CategoryExplanation("Baby & Pet", "Baby care and pet supplies", "Review - may not be groceries"),
    "non_edible": CategoryExplanation(
        "Non-Edible Item", "Magazines, tickets, plants and other non-edibles", "Review - may not be groceries"
    ),
    "other": CategoryExplanation("Non-Food Item", "Item that doesn't appear to be food", "Review classification"),
}


def explain_category(category: str, verdict: NonFoodVerdict | None = None) -> CategoryExplanation:
    """User-facing explanation for a non-food category, optionally with the verdict's reason."""
    info = CATEGORY_EXPLANATIONS.get(category, CATEGORY_EXPLANATIONS["other"])
    if verdict is None:
        return info
    return CategoryExplanation(
        title=info.title,
        description=f"{info.description}. {verdict.reason} ({round(verdict.confidence * 100)}% confidence)",
        action_text=info.action_text,
    )


def summarize_detections(verdicts: Sequence[NonFoodVerdict]) -> DetectionSummary:
    """Confidence distribution (>=0.9 / >=0.7 / >=0.5) and counts by category and action."""
    high = medium = low = 0
    for verdict in verdicts:
        if verdict.confidence >= 0.9:
            high += 1
        elif verdict.confidence >= 0.7:
            medium += 1
        elif verdict.confidence >= 0.5:
            low += 1
    actions = Counter({"hide": 0, "review": 0, "keep": 0})
    actions.update(verdict.suggested_action for verdict in verdicts)
    return DetectionSummary(
        total_detections=len(verdicts),
        category_counts=dict(Counter(verdict.category for verdict in verdicts)),
        high_confidence=high,
        medium_confidence=medium,
        low_confidence=low,
        action_counts=dict(actions),
    )

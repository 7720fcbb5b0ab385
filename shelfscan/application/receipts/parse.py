"""Receipt text parsing workflow orchestration.

Flow for one receipt text:
    validate input -> AI extraction (optional, one attempt) -> validation
    otherwise: garbled check -> (recovery) -> line items -> store -> names +
    non-food verdicts -> learned overrides -> total reconciliation
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Literal

from shelfscan.domain.receipt import (
    PRODUCT_CATEGORIES,
    UNKNOWN_STORE,
    ClassifiedItem,
    ExtractedLineItem,
    GarbledTextReport,
    InvalidReceiptInput,
    ParseSource,
    ParsedReceipt,
    ReceiptMetadata,
    RecoveredText,
    StoreIdentity,
    StoreLocation,
)
from shelfscan.receipt.ai_response import TrustedExtraction, UntrustedResponse, validate_ai_payload
from shelfscan.receipt.garbled_text import detect_garbled_text
from shelfscan.receipt.item_categories import ItemCategoryRuleLayers
from shelfscan.receipt.learning import LearningStore
from shelfscan.receipt.name_dictionaries import NameDictionaries
from shelfscan.receipt.name_enhancer import enhance_name, title_case
from shelfscan.receipt.non_food import NonFoodVerdict, classify_non_food_batch
from shelfscan.receipt.ocr_parser import extract_address, extract_date, extract_line_items, format_location
from shelfscan.receipt.recovery import recover_receipt_text
from shelfscan.receipt.store_identifier import (
    DEFAULT_STORE_KEYWORDS,
    DEFAULT_STORE_LOCATIONS,
    Geocoder,
    identify_store,
)
from shelfscan.runtime.ai_extraction import AIExtractionUnavailable
from shelfscan.runtime.logging import get_logger
from shelfscan.runtime.settings import DEFAULT_MAX_INPUT_CHARS, PipelineSettings

logger = get_logger(__name__)

AIExtractor = Callable[[str], Mapping[str, Any]]

MIN_TEXT_LENGTH = 10
PIPELINE_BASE_CONFIDENCE = 0.8
TOTAL_DEVIATION_RATIO = Decimal("0.5")

# Product category used when only the non-food classifier has an opinion
NON_FOOD_PRODUCT_CATEGORIES: dict[str, str] = {
    "personal_care": "Personal Care",
    "household": "Household & Cleaning",
    "pharmacy": "Pharmacy",
    "baby_pet": "Baby & Kids",
}


def reconcile_total(declared: Decimal | None, items: Iterable[ClassifiedItem]) -> Decimal:
    """Declared total, unless absent, zero, or more than 50% away from the item sum."""
    computed = sum((item.price for item in items), Decimal("0.00"))
    if declared is None or declared == 0:
        return computed
    if abs(declared - computed) > computed * TOTAL_DEVIATION_RATIO:
        logger.debug("Replacing declared total %s with item sum %s", declared, computed)
        return computed
    return declared


def _product_category(enhancer_category: str | None, verdict: NonFoodVerdict) -> str:
    if enhancer_category:
        return enhancer_category
    if verdict.is_non_food:
        return NON_FOOD_PRODUCT_CATEGORIES.get(verdict.category, "Other")
    return "Groceries"


class ReceiptParser:
    """Turns OCR text into a ParsedReceipt using injected collaborators.

    Every collaborator is optional: without an AI extractor the rule-based
    path runs directly, without a geocoder store identification stops at the
    local registry, and without a learning store no overrides are applied.
    """

    def __init__(
        self,
        *,
        learning: LearningStore | None = None,
        ai_extractor: AIExtractor | None = None,
        geocoder: Geocoder | None = None,
        store_keywords: Iterable[tuple[str, str]] = DEFAULT_STORE_KEYWORDS,
        store_registry: Iterable[StoreLocation] = DEFAULT_STORE_LOCATIONS,
        name_dictionaries: NameDictionaries | None = None,
        category_rules: ItemCategoryRuleLayers | None = None,
        max_input_chars: int = DEFAULT_MAX_INPUT_CHARS,
        base_confidence: float = PIPELINE_BASE_CONFIDENCE,
    ) -> None:
        self.learning = learning
        self.ai_extractor = ai_extractor
        self.geocoder = geocoder
        self.store_keywords = tuple(store_keywords)
        self.store_registry = tuple(store_registry)
        self.name_dictionaries = name_dictionaries
        self.category_rules = category_rules
        self.max_input_chars = max_input_chars
        self.base_confidence = base_confidence

    def parse(self, text: Any, store_hint: str | None = None) -> ParsedReceipt:
        """
        Parse OCR receipt text.

        Raises:
            InvalidReceiptInput: text is not a string or exceeds max_input_chars.
        """
        if not isinstance(text, str):
            raise InvalidReceiptInput(f"Receipt text must be a string, got {type(text).__name__}")
        if len(text) > self.max_input_chars:
            raise InvalidReceiptInput(
                f"Receipt text is {len(text)} characters; the limit is {self.max_input_chars}"
            )
        hint = store_hint.strip() if store_hint and store_hint.strip() else None

        if self.ai_extractor is not None:
            extraction = self._try_ai(self.ai_extractor, text)
            if extraction is not None:
                return self._from_ai(extraction, hint)

        return self._parse_rules(text, hint)

    # --- AI path ---
    def _try_ai(self, extractor: AIExtractor, text: str) -> TrustedExtraction | None:
        try:
            payload = extractor(text)
        except AIExtractionUnavailable as exc:
            logger.warning("AI extraction unavailable, using rule-based parsing: %s", exc)
            return None

        result = validate_ai_payload(payload)
        if isinstance(result, UntrustedResponse):
            logger.warning("Rejected AI extraction response: %s", result.reason)
            return None
        if result.dropped_items:
            logger.info("Dropped %d invalid AI items", result.dropped_items)
        return result

    def _from_ai(self, extraction: TrustedExtraction, hint: str | None) -> ParsedReceipt:
        store_name = hint or extraction.store_name or UNKNOWN_STORE
        items = tuple(
            ClassifiedItem(
                raw_name=item.name,
                price=item.price,
                line_index=index,
                enhanced_name=item.enhanced_name,
                category=item.category,
                confidence=item.confidence,
            )
            for index, item in enumerate(extraction.items)
        )
        return self._finish(
            store_name=store_name,
            items=items,
            declared_total=extraction.total,
            date=extraction.date,
            location=extraction.location,
            store_format=extraction.store_format or "ai",
            source="ai",
        )

    # --- Rule-based path ---
    def _parse_rules(self, text: str, hint: str | None) -> ParsedReceipt:
        cleaned = text.strip()
        report = detect_garbled_text(cleaned)

        recovery: RecoveredText | None = None
        if len(cleaned) < MIN_TEXT_LENGTH:
            recovery = recover_receipt_text(cleaned, "text too short")
        elif report.is_garbled:
            recovery = recover_receipt_text(cleaned, "garbled text")

        working = recovery.text if recovery else cleaned
        extraction = extract_line_items(working)
        if not extraction.items and recovery is None:
            recovery = recover_receipt_text(cleaned, "no items extracted")
            working = recovery.text
            extraction = extract_line_items(working)

        if recovery is not None:
            logger.warning(
                "OCR text unusable (%s); substituted %s placeholder receipt",
                recovery.reason,
                recovery.strategy,
            )

        address = extract_address(working)
        identity = identify_store(
            working,
            keywords=self.store_keywords,
            registry=self.store_registry,
            geocoder=self.geocoder,
            address=address,
        )
        store_name = self._resolve_store_name(hint, identity, recovery)
        items = self._classify_items(extraction.items, store_name)

        receipt_date = extract_date(working)
        if recovery is not None:
            store_format = f"recovered ({recovery.strategy})"
        else:
            store_format = "text"
        return self._finish(
            store_name=store_name,
            items=items,
            declared_total=extraction.total,
            date=receipt_date.isoformat() if receipt_date else None,
            location=format_location(address),
            store_format=store_format,
            source="synthetic" if recovery is not None else "rules",
            store_identity=identity,
            recovery=recovery,
            garbled_report=report,
        )

    @staticmethod
    def _resolve_store_name(
        hint: str | None, identity: StoreIdentity | None, recovery: RecoveredText | None
    ) -> str:
        if hint:
            return hint
        if identity is not None:
            return identity.name
        if recovery is not None:
            return recovery.store_name
        return UNKNOWN_STORE

    def _classify_items(self, extracted: tuple[ExtractedLineItem, ...], store_name: str) -> tuple[ClassifiedItem, ...]:
        verdicts = classify_non_food_batch([(item.raw_name, item.price) for item in extracted], store_name=store_name)

        classified: list[ClassifiedItem] = []
        for item, verdict in zip(extracted, verdicts):
            enhancement = enhance_name(
                item.raw_name,
                store_name,
                self.base_confidence,
                dictionaries=self.name_dictionaries,
                rule_layers=self.category_rules,
            )
            enhanced_name = enhancement.enhanced_name or title_case(item.raw_name)
            category = _product_category(enhancement.category, verdict)
            if category not in PRODUCT_CATEGORIES:
                category = "Other"

            classified.append(
                ClassifiedItem(
                    raw_name=item.raw_name,
                    price=item.price,
                    line_index=item.line_index,
                    enhanced_name=enhanced_name,
                    category=category,
                    confidence=enhancement.confidence,
                    is_non_food=verdict.is_non_food,
                    suggested_action=verdict.suggested_action,
                    non_food_confidence=verdict.confidence,
                    non_food_category=verdict.category,
                    non_food_reason=verdict.reason,
                    should_hide=verdict.suggested_action == "hide",
                    applied_corrections=enhancement.applied_corrections,
                )
            )
        return tuple(classified)

    # --- Shared tail ---
    def _finish(
        self,
        *,
        store_name: str,
        items: tuple[ClassifiedItem, ...],
        declared_total: Decimal | None,
        date: str | None,
        location: str | None,
        store_format: str,
        source: ParseSource,
        store_identity: StoreIdentity | None = None,
        recovery: RecoveredText | None = None,
        garbled_report: GarbledTextReport | None = None,
    ) -> ParsedReceipt:
        if self.learning is not None:
            items = self.learning.apply(items, store_name)

        kept = tuple(item for item in items if not item.should_hide)
        hidden = tuple(item for item in items if item.should_hide)
        total = reconcile_total(declared_total, kept)

        logger.info(
            "Parsed receipt from %s: %d items kept, %d hidden, total %s (source=%s)",
            store_name,
            len(kept),
            len(hidden),
            total,
            source,
        )
        return ParsedReceipt(
            store_name=store_name,
            items=kept,
            total=total,
            metadata=ReceiptMetadata(date=date, location=location, store_format=store_format, item_count=len(kept)),
            hidden_items=hidden,
            store_identity=store_identity,
            source=source,
            is_synthetic=recovery is not None,
            recovery=recovery,
            garbled_report=garbled_report,
        )


def build_default_parser(
    settings: PipelineSettings | None = None,
    *,
    use_ai: bool = True,
    learning: LearningStore | None = None,
) -> ReceiptParser:
    """Wire a ReceiptParser from environment settings and the user's config files."""
    from shelfscan.runtime.ai_extraction import AIReceiptExtractor
    from shelfscan.runtime.geocoding import PlacesGeocoder
    from shelfscan.runtime.item_category_rules import load_item_category_rule_layers
    from shelfscan.runtime.learning_storage import JsonFileLearningBackend
    from shelfscan.runtime.name_rules import load_name_dictionaries
    from shelfscan.runtime.store_rules import load_known_store_keywords, load_store_locations

    settings = settings or PipelineSettings.from_env()
    if learning is None:
        learning = LearningStore(JsonFileLearningBackend(), max_records=settings.learning_max_records)

    ai_extractor = AIReceiptExtractor.from_settings(settings) if use_ai and settings.ai_enabled else None
    geocoder = PlacesGeocoder.from_settings(settings) if settings.geocoding_enabled else None

    return ReceiptParser(
        learning=learning,
        ai_extractor=ai_extractor,
        geocoder=geocoder,
        store_keywords=load_known_store_keywords(),
        store_registry=load_store_locations(),
        name_dictionaries=load_name_dictionaries(),
        category_rules=load_item_category_rule_layers(),
        max_input_chars=settings.max_input_chars,
    )


def parse(text: Any, store_hint: str | None = None, *, parser: ReceiptParser | None = None) -> ParsedReceipt:
    """Parse OCR text with the given parser, or one built from runtime settings."""
    return (parser or build_default_parser()).parse(text, store_hint)


ParseStatus = Literal["parsed", "synthetic", "invalid_input"]


@dataclass(frozen=True)
class ReceiptParseRequest:
    """Inputs for running the receipt parse workflow."""

    text: Any
    store_hint: str | None = None
    use_ai: bool = True
    parser: ReceiptParser | None = None


@dataclass(frozen=True)
class ReceiptParseResult:
    """Outcome from the receipt parse workflow."""

    status: ParseStatus
    receipt: ParsedReceipt | None = None
    error: str | None = None


def run_receipt_parse(request: ReceiptParseRequest) -> ReceiptParseResult:
    """Run parse flow and report placeholder results as their own status."""
    parser = request.parser or build_default_parser(use_ai=request.use_ai)
    try:
        receipt = parser.parse(request.text, request.store_hint)
    except InvalidReceiptInput as exc:
        return ReceiptParseResult(status="invalid_input", error=str(exc))

    return ReceiptParseResult(
        status="synthetic" if receipt.is_synthetic else "parsed",
        receipt=receipt,
    )

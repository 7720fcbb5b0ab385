"""Tests for the receipt parsing workflow and its runtime collaborators."""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any

import httpx
import pytest
from shelfscan.application.receipts.parse import (
    ReceiptParser,
    ReceiptParseRequest,
    build_default_parser,
    reconcile_total,
    run_receipt_parse,
)
from shelfscan.domain.receipt import ClassifiedItem, InvalidReceiptInput
from shelfscan.receipt.learning import LearningStore
from shelfscan.runtime.ai_extraction import AIExtractionUnavailable, AIReceiptExtractor
from shelfscan.runtime.geocoding import PlacesGeocoder
from shelfscan.runtime.settings import PipelineSettings

SIMPLE_RECEIPT = "MILK WHOLE GALLON 3.99\nBREAD WHEAT LOAF 2.50\nTOTAL 6.49"
GARBLED_RECEIPT = "QWRTP ZXCVB MNBVC\nHello there\nLKJHG FDSAP ZXCVN"

AI_PAYLOAD = {
    "storeName": "SAFEWAY",
    "items": [
        {"name": "G-P MUSTARD", "enhancedName": "Grey Poupon Mustard", "category": "Pantry & Dry Goods",
         "price": 6.49, "confidence": 0.93},
        {"name": "???", "enhancedName": "", "price": 1.00},
    ],
    "total": 6.49,
    "metadata": {"date": "12/08/2022", "location": "LIVERMORE, CA", "storeFormat": "Safeway"},
}


def _chat_transport(status_code: int = 200, content: Any = AI_PAYLOAD, seen: list[httpx.Request] | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if status_code != 200:
            return httpx.Response(status_code, json={"error": "boom"})
        body = content if isinstance(content, str) else json.dumps(content)
        return httpx.Response(200, json={"choices": [{"message": {"content": body}}]})

    return httpx.MockTransport(handler)


def _extractor(**kwargs: Any) -> AIReceiptExtractor:
    return AIReceiptExtractor("test-key", client=httpx.Client(transport=_chat_transport(**kwargs)))


def test_simple_receipt_parses_with_rules() -> None:
    receipt = ReceiptParser().parse(SIMPLE_RECEIPT)

    assert [(item.raw_name, item.price) for item in receipt.items] == [
        ("MILK WHOLE GALLON", Decimal("3.99")),
        ("BREAD WHEAT LOAF", Decimal("2.50")),
    ]
    assert receipt.total == Decimal("6.49")
    assert receipt.source == "rules"
    assert receipt.is_synthetic is False
    assert receipt.recovery is None
    assert receipt.metadata.item_count == 2
    assert receipt.metadata.store_format == "text"


def test_store_hint_overrides_detection() -> None:
    receipt = ReceiptParser().parse("WALMART\n" + SIMPLE_RECEIPT, store_hint="  SAFEWAY ")

    assert receipt.store_name == "SAFEWAY"


def test_missing_total_is_item_sum() -> None:
    receipt = ReceiptParser().parse("MILK WHOLE GALLON 3.99\nBREAD WHEAT LOAF 2.50")

    assert receipt.total == Decimal("6.49")


def test_garbled_text_yields_synthetic_receipt() -> None:
    receipt = ReceiptParser().parse(GARBLED_RECEIPT)

    assert receipt.garbled_report is not None
    assert receipt.garbled_report.is_garbled is True
    assert receipt.is_synthetic is True
    assert receipt.source == "synthetic"
    assert receipt.items
    assert receipt.recovery is not None
    assert receipt.recovery.reason == "garbled text"
    assert receipt.metadata.store_format.startswith("recovered")


def test_garbled_text_recovery_is_deterministic() -> None:
    first = ReceiptParser().parse(GARBLED_RECEIPT)
    second = ReceiptParser().parse(GARBLED_RECEIPT)

    assert first.items == second.items
    assert first.total == second.total


def test_short_text_is_recovered() -> None:
    receipt = ReceiptParser().parse("MILK")

    assert receipt.is_synthetic is True
    assert receipt.recovery is not None
    assert receipt.recovery.reason == "text too short"


def test_learned_hide_moves_item_to_hidden() -> None:
    learning = LearningStore()
    learning.hide_item("LND O LKS BUTTER", "SAFEWAY")
    parser = ReceiptParser(learning=learning)

    receipt = parser.parse("LND O LKS BUTTER 4.99\nMILK WHOLE GALLON 3.99\nTOTAL 8.98", store_hint="SAFEWAY")

    assert [item.raw_name for item in receipt.hidden_items] == ["LND O LKS BUTTER"]
    assert receipt.hidden_items[0].was_learned is True
    assert [item.raw_name for item in receipt.items] == ["MILK WHOLE GALLON"]
    assert receipt.total == Decimal("3.99")


def test_learned_correction_renames_item() -> None:
    learning = LearningStore()
    learning.save_correction("MILK WHOLE GALLON", "Organic Whole Milk", "SAFEWAY")

    receipt = ReceiptParser(learning=learning).parse(SIMPLE_RECEIPT, store_hint="safeway")

    assert receipt.items[0].enhanced_name == "Organic Whole Milk"
    assert receipt.items[0].was_learned is True


def test_non_food_lines_are_hidden() -> None:
    receipt = ReceiptParser().parse("LAUNDRY DETERGENT 11.99\nMILK WHOLE GALLON 3.99\nTOTAL 15.98")

    assert [item.raw_name for item in receipt.hidden_items] == ["LAUNDRY DETERGENT"]
    assert receipt.hidden_items[0].non_food_category == "household"
    assert receipt.hidden_items[0].category == "Household & Cleaning"
    assert receipt.total == Decimal("3.99")


@pytest.mark.parametrize("text", [None, 42, b"MILK 3.99", ["MILK 3.99"]])
def test_non_string_input_is_rejected(text: Any) -> None:
    with pytest.raises(InvalidReceiptInput):
        ReceiptParser().parse(text)


def test_oversized_input_is_rejected() -> None:
    parser = ReceiptParser(max_input_chars=20)

    parser.parse("MILK WHOLE 3.99\nX 1")
    with pytest.raises(InvalidReceiptInput, match="limit is 20"):
        parser.parse("M" * 21)


def test_ai_extraction_is_used_when_trusted() -> None:
    seen: list[httpx.Request] = []
    extractor = AIReceiptExtractor("test-key", client=httpx.Client(transport=_chat_transport(seen=seen)))

    receipt = ReceiptParser(ai_extractor=extractor).parse("G-P MUSTARD 6.49")

    assert receipt.source == "ai"
    assert receipt.store_name == "SAFEWAY"
    assert [item.enhanced_name for item in receipt.items] == ["Grey Poupon Mustard"]
    assert receipt.total == Decimal("6.49")
    assert receipt.metadata.date == "12/08/2022"
    assert receipt.metadata.store_format == "Safeway"

    (request,) = seen
    assert request.url == "https://api.openai.com/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer test-key"
    body = json.loads(request.content)
    assert body["response_format"] == {"type": "json_object"}
    assert "G-P MUSTARD 6.49" in body["messages"][1]["content"]


@pytest.mark.parametrize(
    "extractor_kwargs",
    [
        {"status_code": 500},
        {"content": {"items": []}},
        {"content": "not json"},
        {"content": ["a", "list"]},
    ],
)
def test_ai_failure_falls_back_to_rules(extractor_kwargs: dict[str, Any]) -> None:
    receipt = ReceiptParser(ai_extractor=_extractor(**extractor_kwargs)).parse(SIMPLE_RECEIPT)

    assert receipt.source == "rules"
    assert receipt.total == Decimal("6.49")


def test_ai_extractor_raises_unavailable_on_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    extractor = AIReceiptExtractor("test-key", client=httpx.Client(transport=httpx.MockTransport(handler)))

    with pytest.raises(AIExtractionUnavailable):
        extractor("MILK 3.99")


def test_ai_extractor_requires_key() -> None:
    with pytest.raises(ValueError):
        AIReceiptExtractor("")
    with pytest.raises(ValueError):
        AIReceiptExtractor.from_settings(PipelineSettings())


def _places_client(results: list[dict[str, Any]], status_code: int = 200, seen: list[httpx.Request] | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json={"results": results})

    return httpx.Client(transport=httpx.MockTransport(handler))


def test_places_geocoder_returns_chain_hint() -> None:
    seen: list[httpx.Request] = []
    geocoder = PlacesGeocoder(
        "places-key",
        client=_places_client([{"name": "Safeway Livermore", "formatted_address": "1554 First St"}], seen=seen),
    )

    hint = geocoder("1554 FIRST STREET, LIVERMORE, CA")

    assert hint is not None
    assert hint.store_name == "SAFEWAY"
    assert hint.formatted_address == "1554 First St"
    assert seen[0].url.params["key"] == "places-key"
    assert seen[0].url.params["query"] == "1554 FIRST STREET, LIVERMORE, CA"


def test_places_geocoder_skips_calls_inside_min_interval() -> None:
    seen: list[httpx.Request] = []
    now = [100.0]
    geocoder = PlacesGeocoder(
        "places-key",
        min_interval=1.0,
        client=_places_client([{"name": "Target"}], seen=seen),
        clock=lambda: now[0],
    )

    assert geocoder("1 MAIN ST") is not None
    assert geocoder("1 MAIN ST") is None
    now[0] += 1.5
    assert geocoder("1 MAIN ST") is not None
    assert len(seen) == 2


@pytest.mark.parametrize(
    ("results", "status_code"),
    [([], 200), ([{"name": "Joe's Corner Deli"}], 200), ([{"name": "Safeway"}], 500)],
)
def test_places_geocoder_failures_are_no_hint(results: list[dict[str, Any]], status_code: int) -> None:
    geocoder = PlacesGeocoder("places-key", client=_places_client(results, status_code))

    assert geocoder("1 MAIN ST") is None


def test_geocoder_wired_into_parser_for_weak_addresses() -> None:
    geocoder = PlacesGeocoder("places-key", client=_places_client([{"name": "Target Springfield"}]))
    parser = ReceiptParser(geocoder=geocoder)

    receipt = parser.parse("400 Oak Avenue\nSpringfield IL 62701\nMILK WHOLE GALLON 3.99\nTOTAL 3.99")

    assert receipt.store_name == "TARGET"
    assert receipt.store_identity is not None
    assert receipt.store_identity.source == "online"


def test_run_receipt_parse_statuses() -> None:
    parser = ReceiptParser()

    parsed = run_receipt_parse(ReceiptParseRequest(text=SIMPLE_RECEIPT, parser=parser))
    synthetic = run_receipt_parse(ReceiptParseRequest(text=GARBLED_RECEIPT, parser=parser))
    invalid = run_receipt_parse(ReceiptParseRequest(text=42, parser=parser))

    assert parsed.status == "parsed"
    assert parsed.receipt is not None
    assert synthetic.status == "synthetic"
    assert invalid.status == "invalid_input"
    assert invalid.receipt is None
    assert invalid.error


def test_build_default_parser_without_api_keys() -> None:
    parser = build_default_parser(PipelineSettings(max_input_chars=500))

    assert parser.ai_extractor is None
    assert parser.geocoder is None
    assert parser.learning is not None
    assert parser.max_input_chars == 500


def test_build_default_parser_respects_use_ai_flag() -> None:
    settings = PipelineSettings(ai_api_key="test-key")

    assert isinstance(build_default_parser(settings).ai_extractor, AIReceiptExtractor)
    assert build_default_parser(settings, use_ai=False).ai_extractor is None


def test_settings_from_env() -> None:
    settings = PipelineSettings.from_env(
        {
            "SHELFSCAN_AI_API_KEY": " sk-test ",
            "SHELFSCAN_AI_BASE_URL": "http://localhost:8000/v1/",
            "SHELFSCAN_MAX_INPUT_CHARS": "2048",
        }
    )

    assert settings.ai_enabled is True
    assert settings.ai_api_key == "sk-test"
    assert settings.ai_base_url == "http://localhost:8000/v1"
    assert settings.max_input_chars == 2048
    assert settings.geocoding_enabled is False


def test_settings_reject_bad_numbers() -> None:
    with pytest.raises(ValueError, match="SHELFSCAN_AI_TIMEOUT"):
        PipelineSettings.from_env({"SHELFSCAN_AI_TIMEOUT": "soon"})


def _classified(price: str) -> ClassifiedItem:
    return ClassifiedItem("ITEM", Decimal(price), 0, "Item", "Groceries", 0.8)


@pytest.mark.parametrize(
    ("declared", "expected"),
    [
        (None, Decimal("10.00")),
        (Decimal("0"), Decimal("10.00")),
        (Decimal("12.00"), Decimal("12.00")),
        (Decimal("15.00"), Decimal("15.00")),
        (Decimal("15.01"), Decimal("10.00")),
        (Decimal("4.99"), Decimal("10.00")),
    ],
)
def test_reconcile_total(declared: Decimal | None, expected: Decimal) -> None:
    assert reconcile_total(declared, [_classified("6.00"), _classified("4.00")]) == expected

"""Tests for receipt date, address and OCR payload helpers."""

from __future__ import annotations

from datetime import date

import pytest
from shelfscan.domain.receipt import ExtractedAddress
from shelfscan.receipt.ocr_parser import extract_address, extract_date, format_location
from shelfscan.receipt.ocr_text import ocr_payload_to_text
from shelfscan.receipt.text_similarity import levenshtein_distance, string_similarity

SAFEWAY_HEADER = """SAFEWAY
Store 910 Dir Chris Bay
Main: (925) 371-6969
1554 First Street
LIVERMORE CA 94550
"""


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Credit Purchase        12/08/22 15:15", date(2022, 12, 8)),
        ("DATE 2024-03-15", date(2024, 3, 15)),
        ("03/15/2024 10:22 AM", date(2024, 3, 15)),
        ("Mar 5, 2024", date(2024, 3, 5)),
        ("13/45/2024 then 01/02/2024", date(2024, 1, 2)),
        ("no date here", None),
    ],
)
def test_extract_date(text: str, expected: date | None) -> None:
    assert extract_date(text) == expected


def test_extract_address_from_header() -> None:
    address = extract_address(SAFEWAY_HEADER)

    assert address.street == "1554 FIRST STREET"
    assert address.city == "LIVERMORE"
    assert address.state == "CA"
    assert address.zip_code == "94550"
    assert address.phone == "925-371-6969"
    assert address.store_number == "910"
    assert format_location(address) == "LIVERMORE, CA"


def test_extract_address_canadian_postal_code() -> None:
    address = extract_address("9455 Mississauga Road\nBRAMPTON ON L6X 0Z8")

    assert address.street == "9455 MISSISSAUGA ROAD"
    assert address.city == "BRAMPTON"
    assert address.state == "ON"
    assert address.zip_code == "L6X 0Z8"


def test_extract_address_empty_text() -> None:
    address = extract_address("MILK WHOLE GALLON 3.99")

    assert address.is_empty()
    assert format_location(address) is None


def test_address_query_string_skips_missing_parts() -> None:
    address = ExtractedAddress(street="1554 FIRST STREET", city="LIVERMORE", zip_code="94550")

    assert address.query_string() == "1554 FIRST STREET, LIVERMORE, 94550"


def test_ocr_payload_text_passthrough() -> None:
    assert ocr_payload_to_text("MILK 3.99") == "MILK 3.99"
    assert ocr_payload_to_text({"full_text": "MILK 3.99"}) == "MILK 3.99"


def test_ocr_payload_detections_grouped_into_rows() -> None:
    payload = {
        "detections": [
            [[[200, 10], [260, 10], [260, 30], [200, 30]], ["3.99", 0.98]],
            [[[10, 12], [150, 12], [150, 32], [10, 32]], ["MILK WHOLE", 0.95]],
            [[[10, 50], [150, 50], [150, 70], [10, 70]], ["TOTAL", 0.97]],
            [[[200, 50], [260, 50], [260, 70], [200, 70]], ["3.99", 0.99]],
            [[[10, 90], [150, 90], [150, 110], [10, 110]], ["noise", 0.2]],
        ]
    }

    assert ocr_payload_to_text(payload) == "MILK WHOLE 3.99\nTOTAL 3.99"


def test_ocr_payload_rejects_unknown_types() -> None:
    with pytest.raises(TypeError):
        ocr_payload_to_text(42)


@pytest.mark.parametrize(
    "detections",
    [
        "MILK 3.99",
        [["MILK", 0.9]],
        [[[[10, 12], [150, 12]], ["MILK", "high"]]],
        [[[[10], [150]], ["MILK", 0.9]]],
        [[[], ["MILK", 0.9]]],
    ],
)
def test_ocr_payload_rejects_malformed_detections(detections: object) -> None:
    with pytest.raises(ValueError, match="OCR detection"):
        ocr_payload_to_text({"detections": detections})


@pytest.mark.parametrize(
    ("left", "right", "distance"),
    [
        ("", "", 0),
        ("abc", "", 3),
        ("kitten", "sitting", 3),
        ("FIRST", "FIRST", 0),
    ],
)
def test_levenshtein_distance(left: str, right: str, distance: int) -> None:
    assert levenshtein_distance(left, right) == distance
    assert levenshtein_distance(right, left) == distance


def test_string_similarity_bounds() -> None:
    assert string_similarity("", "") == 1.0
    assert string_similarity("1554 FIRST", "1554 FIRST") == 1.0
    assert string_similarity("abc", "xyz") == 0.0
    assert string_similarity("1554 FIRST", "1604 FIRST") == pytest.approx(0.8)

"""Tests for the FastAPI receipt server."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from shelfscan.application.receipts.parse import ReceiptParser
from shelfscan.receipt.learning import HIDE_SENTINEL, LearningStore
from shelfscan.runtime.receipt_server import create_app

SIMPLE_RECEIPT = "MILK WHOLE GALLON 3.99\nBREAD WHEAT LOAF 2.50\nTOTAL 6.49"


@pytest.fixture
def learning() -> LearningStore:
    return LearningStore()


@pytest.fixture
def client(learning: LearningStore) -> TestClient:
    parser = ReceiptParser(learning=learning, max_input_chars=200)
    return TestClient(create_app(parser, learning))


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_parse_returns_receipt(client: TestClient) -> None:
    response = client.post("/parse", json={"text": SIMPLE_RECEIPT, "storeName": "SAFEWAY"})

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "success"
    receipt = data["receipt"]
    assert receipt["storeName"] == "SAFEWAY"
    assert receipt["total"] == 6.49
    assert [item["name"] for item in receipt["items"]] == ["MILK WHOLE GALLON", "BREAD WHEAT LOAF"]
    assert receipt["metadata"]["itemCount"] == 2
    assert receipt["isSynthetic"] is False
    assert receipt["source"] == "rules"


def test_parse_marks_placeholder_results(client: TestClient) -> None:
    response = client.post("/parse", json={"text": "MILK"})

    assert response.status_code == 200
    receipt = response.json()["receipt"]
    assert receipt["isSynthetic"] is True
    assert receipt["source"] == "synthetic"
    assert receipt["recovery"]["reason"] == "text too short"


@pytest.mark.parametrize(
    "body",
    [{}, {"text": 42}, {"text": None}, {"text": ["MILK 3.99"]}],
)
def test_parse_rejects_non_string_text(client: TestClient, body: dict[str, object]) -> None:
    response = client.post("/parse", json=body)

    assert response.status_code == 400
    assert response.json()["status"] == "error"


def test_parse_rejects_invalid_json(client: TestClient) -> None:
    response = client.post("/parse", content=b"{not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 400


def test_parse_rejects_non_object_body(client: TestClient) -> None:
    response = client.post("/parse", json=["MILK 3.99"])

    assert response.status_code == 400


def test_parse_rejects_oversized_text(client: TestClient) -> None:
    response = client.post("/parse", json={"text": "M" * 201})

    assert response.status_code == 413
    assert "200" in response.json()["message"]


def test_correction_applies_to_next_parse(client: TestClient, learning: LearningStore) -> None:
    response = client.post(
        "/learning/corrections",
        json={"originalText": "MILK WHOLE GALLON", "correctedName": "Organic Whole Milk", "storeName": "SAFEWAY"},
    )

    assert response.status_code == 200
    assert response.json()["record"]["correction_type"] == "user_edit"
    assert learning.lookup("SAFEWAY", "MILK WHOLE GALLON") == "Organic Whole Milk"

    receipt = client.post("/parse", json={"text": SIMPLE_RECEIPT, "storeName": "SAFEWAY"}).json()["receipt"]
    assert receipt["items"][0]["enhancedName"] == "Organic Whole Milk"
    assert receipt["items"][0]["wasLearned"] is True


def test_hidden_item_moves_out_of_items(client: TestClient, learning: LearningStore) -> None:
    response = client.post("/learning/hidden", json={"originalText": "BREAD WHEAT LOAF", "storeName": "SAFEWAY"})

    assert response.status_code == 200
    assert learning.lookup("SAFEWAY", "BREAD WHEAT LOAF") == HIDE_SENTINEL

    receipt = client.post("/parse", json={"text": SIMPLE_RECEIPT, "storeName": "SAFEWAY"}).json()["receipt"]
    assert [item["name"] for item in receipt["hiddenItems"]] == ["BREAD WHEAT LOAF"]
    assert receipt["total"] == 3.99


@pytest.mark.parametrize(
    ("path", "body"),
    [
        ("/learning/corrections", {"originalText": "", "correctedName": "Milk", "storeName": "SAFEWAY"}),
        ("/learning/corrections", {"originalText": "MLK", "storeName": "SAFEWAY"}),
        ("/learning/hidden", {"storeName": "SAFEWAY"}),
        ("/learning/feedback", {"originalText": "MLK", "storeName": "SAFEWAY", "feedback": "maybe"}),
        ("/learning/feedback", {"originalText": "MLK", "storeName": "SAFEWAY"}),
    ],
)
def test_learning_endpoints_reject_invalid_requests(client: TestClient, path: str, body: dict[str, str]) -> None:
    response = client.post(path, json=body)

    assert response.status_code == 400
    assert response.json()["status"] == "error"


def test_feedback_stats_and_reset(client: TestClient) -> None:
    client.post("/learning/feedback", json={"originalText": "MILK", "storeName": "SAFEWAY", "feedback": "correct"})
    client.post("/learning/feedback", json={"originalText": "BREAD", "storeName": "SAFEWAY", "feedback": "incorrect"})

    stats = client.get("/learning/stats").json()
    assert stats["totalFeedback"] == 2
    assert stats["accuracy"] == 0.5
    assert stats["commonMisclassifications"] == [{"text": "BREAD", "count": 1}]

    response = client.delete("/learning")
    assert response.json() == {"status": "success"}
    assert client.get("/learning/stats").json()["totalFeedback"] == 0


def test_oversized_body_rejected_before_parsing(client: TestClient) -> None:
    body = b'{"text": "' + b"M" * 5000 + b'"}'
    response = client.post("/parse", content=body, headers={"Content-Type": "application/json"})

    assert response.status_code == 413
    assert "bytes" in response.json()["message"]


def test_parse_accepts_ocr_detections(client: TestClient) -> None:
    ocr = {
        "detections": [
            [[[200, 10], [260, 10], [260, 30], [200, 30]], ["3.99", 0.98]],
            [[[10, 12], [150, 12], [150, 32], [10, 32]], ["MILK WHOLE GALLON", 0.95]],
            [[[10, 50], [150, 50], [150, 70], [10, 70]], ["TOTAL", 0.97]],
            [[[200, 50], [260, 50], [260, 70], [200, 70]], ["3.99", 0.99]],
        ]
    }

    response = client.post("/parse", json={"ocr": ocr, "storeName": "SAFEWAY"})

    assert response.status_code == 200
    receipt = response.json()["receipt"]
    assert [item["name"] for item in receipt["items"]] == ["MILK WHOLE GALLON"]
    assert receipt["total"] == 3.99


@pytest.mark.parametrize("ocr", [42, {"detections": [["MILK", 0.9]]}, {"detections": "MILK 3.99"}])
def test_parse_rejects_malformed_ocr_payload(client: TestClient, ocr: object) -> None:
    response = client.post("/parse", json={"ocr": ocr})

    assert response.status_code == 400
    assert response.json()["message"].startswith("Invalid OCR payload")


def test_parse_attaches_review_on_request(client: TestClient) -> None:
    text = "LAUNDRY DETERGENT 11.99\nMILK WHOLE GALLON 3.99\nTOTAL 15.98"

    plain = client.post("/parse", json={"text": text}).json()
    reviewed = client.post("/parse", json={"text": text, "review": True}).json()

    assert "review" not in plain
    assert reviewed["review"]["detections"]["byAction"]["hide"] == 1
    assert [flagged["name"] for flagged in reviewed["review"]["flagged"]] == ["LAUNDRY DETERGENT"]

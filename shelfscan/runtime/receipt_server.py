"""FastAPI server exposing receipt parsing and the learning loop over HTTP."""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from shelfscan.domain.receipt import InvalidReceiptInput, ParsedReceipt
from shelfscan.receipt.formatter import parsed_receipt_to_dict, receipt_review_to_dict
from shelfscan.receipt.learning import LearningStore, stats_to_dict
from shelfscan.receipt.ocr_text import ocr_payload_to_text
from shelfscan.receipt.review import review_receipt
from shelfscan.runtime.logging import get_logger

logger = get_logger(__name__)

# UTF-8 worst case per character plus room for the JSON envelope
BYTES_PER_CHAR = 4
ENVELOPE_BYTES = 4096


class ReceiptParsing(Protocol):
    max_input_chars: int

    def parse(self, text: Any, store_hint: str | None = None) -> ParsedReceipt: ...


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"status": "error", "message": message}, status_code=status_code)


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests whose declared Content-Length exceeds max_bytes before the body is read."""

    def __init__(self, app: ASGIApp, max_bytes: int) -> None:
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        content_length = request.headers.get("content-length", "")
        if content_length.isdigit() and int(content_length) > self.max_bytes:
            logger.warning("Rejected %s %s: body of %s bytes", request.method, request.url.path, content_length)
            return _error(f"Request body exceeds {self.max_bytes} bytes", 413)
        return await call_next(request)


async def _json_body(request: Request) -> dict[str, Any] | JSONResponse:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error("Request body must be valid JSON", 400)
    if not isinstance(body, dict):
        return _error("Request body must be a JSON object", 400)
    return body


def _optional_str(body: dict[str, Any], key: str) -> str | None:
    value = body.get(key)
    return value if isinstance(value, str) and value.strip() else None


def create_app(parser: ReceiptParsing, learning: LearningStore) -> FastAPI:
    """Build the HTTP app around an injected parser and learning store."""
    app = FastAPI(title="shelfscan")
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=parser.max_input_chars * BYTES_PER_CHAR + ENVELOPE_BYTES)

    @app.post("/parse")
    async def parse_receipt(request: Request) -> JSONResponse:
        """Parse OCR output.

        Body: {"text": ...} or {"ocr": OCR payload}, plus optional "storeName"
        hint and "review": true to attach non-food review hints.
        """
        body = await _json_body(request)
        if isinstance(body, JSONResponse):
            return body

        if "text" not in body and "ocr" in body:
            try:
                text = ocr_payload_to_text(body["ocr"])
            except (TypeError, ValueError) as e:
                return _error(f"Invalid OCR payload: {e}", 400)
        else:
            text = body.get("text")
        if not isinstance(text, str):
            return _error("Field 'text' must be a string", 400)
        if len(text) > parser.max_input_chars:
            return _error(f"Receipt text exceeds {parser.max_input_chars} characters", 413)

        try:
            receipt = parser.parse(text, _optional_str(body, "storeName"))
        except InvalidReceiptInput as e:
            return _error(str(e), 400)

        data: dict[str, Any] = {"status": "success", "receipt": parsed_receipt_to_dict(receipt)}
        if body.get("review") is True:
            data["review"] = receipt_review_to_dict(review_receipt(receipt, learning))
        return JSONResponse(data)

    @app.post("/learning/corrections")
    async def save_correction(request: Request) -> JSONResponse:
        body = await _json_body(request)
        if isinstance(body, JSONResponse):
            return body
        try:
            record = learning.save_correction(
                str(body.get("originalText") or ""),
                str(body.get("correctedName") or ""),
                str(body.get("storeName") or ""),
                previous_name=_optional_str(body, "previousName"),
            )
        except ValueError as e:
            return _error(str(e), 400)
        logger.info("Saved correction for store %s", record.store_name)
        return JSONResponse({"status": "success", "record": record.to_dict()})

    @app.post("/learning/hidden")
    async def hide_item(request: Request) -> JSONResponse:
        body = await _json_body(request)
        if isinstance(body, JSONResponse):
            return body
        try:
            record = learning.hide_item(
                str(body.get("originalText") or ""),
                str(body.get("storeName") or ""),
                previous_name=_optional_str(body, "previousName"),
            )
        except ValueError as e:
            return _error(str(e), 400)
        logger.info("Hid item for store %s", record.store_name)
        return JSONResponse({"status": "success", "record": record.to_dict()})

    @app.post("/learning/feedback")
    async def record_feedback(request: Request) -> JSONResponse:
        body = await _json_body(request)
        if isinstance(body, JSONResponse):
            return body
        try:
            record = learning.record_feedback(
                str(body.get("originalText") or ""),
                str(body.get("storeName") or ""),
                body.get("feedback"),  # type: ignore[arg-type]
            )
        except ValueError as e:
            return _error(str(e), 400)
        return JSONResponse({"status": "success", "record": record.to_dict()})

    @app.get("/learning/stats")
    async def learning_stats() -> dict[str, Any]:
        return stats_to_dict(learning.stats())

    @app.delete("/learning")
    async def reset_learning() -> dict[str, str]:
        learning.reset()
        logger.warning("Learning data reset over HTTP")
        return {"status": "success"}

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok"}

    return app

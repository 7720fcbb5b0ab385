"""Receipt and learning command handlers used by the unified CLI."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from shelfscan.runtime import get_logger

if TYPE_CHECKING:
    from shelfscan.application.receipts.feedback import LearningFeedbackRequest

logger = get_logger(__name__)


def _read_receipt_text(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _ocr_json_to_text(raw: str) -> str:
    from shelfscan.receipt.ocr_text import ocr_payload_to_text

    try:
        return ocr_payload_to_text(json.loads(raw))
    except (json.JSONDecodeError, TypeError, ValueError) as e:
        print(f"Error: invalid OCR JSON: {e}")
        sys.exit(1)


def cmd_parse(args: argparse.Namespace) -> None:
    """Parse an OCR text file (or stdin) and print the structured receipt."""
    from shelfscan.application.receipts.feedback import build_default_learning_store
    from shelfscan.application.receipts.parse import ReceiptParseRequest, build_default_parser, run_receipt_parse
    from shelfscan.receipt.formatter import (
        format_parsed_receipt,
        format_receipt_review,
        parsed_receipt_to_dict,
        receipt_review_to_dict,
    )
    from shelfscan.receipt.review import review_receipt

    try:
        text = _read_receipt_text(args.file)
    except FileNotFoundError:
        print(f"Error: file not found: {args.file}")
        sys.exit(1)
    except (OSError, UnicodeDecodeError) as e:
        logger.error("Failed to read %s: %s", args.file, e)
        print(f"Error: could not read {args.file}")
        sys.exit(1)
    if args.ocr_json:
        text = _ocr_json_to_text(text)

    learning = build_default_learning_store()
    parser = build_default_parser(use_ai=not args.no_ai, learning=learning)
    result = run_receipt_parse(ReceiptParseRequest(text=text, store_hint=args.store, parser=parser))
    if result.status == "invalid_input" or result.receipt is None:
        print(f"Error: {result.error}")
        sys.exit(1)

    if result.status == "synthetic":
        print("Warning: OCR text was unusable; output contains placeholder data.", file=sys.stderr)

    review = review_receipt(result.receipt, learning) if args.review else None
    if args.json:
        data = parsed_receipt_to_dict(result.receipt)
        if review is not None:
            data["review"] = receipt_review_to_dict(review)
        print(json.dumps(data, indent=2))
    else:
        print(format_parsed_receipt(result.receipt), end="")
        if review is not None:
            print(format_receipt_review(review), end="")


def _run_feedback(request: LearningFeedbackRequest) -> None:
    from shelfscan.application.receipts.feedback import build_default_learning_store, run_learning_feedback

    result = run_learning_feedback(request, build_default_learning_store())
    if result.status != "saved":
        print(f"Error: {result.error}")
        sys.exit(1)


def cmd_correct(args: argparse.Namespace) -> None:
    """Remember a corrected product name for one store."""
    from shelfscan.application.receipts.feedback import LearningFeedbackRequest

    _run_feedback(
        LearningFeedbackRequest(
            action="correct",
            store_name=args.store,
            original_text=args.original,
            corrected_name=args.corrected,
        )
    )
    print(f"Saved: {args.original} -> {args.corrected} ({args.store})")


def cmd_hide(args: argparse.Namespace) -> None:
    """Always hide an item on future receipts from one store."""
    from shelfscan.application.receipts.feedback import LearningFeedbackRequest

    _run_feedback(LearningFeedbackRequest(action="hide", store_name=args.store, original_text=args.original))
    print(f"Hidden: {args.original} ({args.store})")


def cmd_feedback(args: argparse.Namespace) -> None:
    """Rate an automatic decision as correct or incorrect."""
    from shelfscan.application.receipts.feedback import LearningFeedbackRequest

    _run_feedback(
        LearningFeedbackRequest(
            action="rate",
            store_name=args.store,
            original_text=args.original,
            feedback=args.verdict,
        )
    )
    print(f"Recorded {args.verdict} for {args.original} ({args.store})")


def cmd_stats(args: argparse.Namespace) -> None:
    """Print learning statistics, or a full export with --export."""
    from shelfscan.application.receipts.feedback import build_default_learning_store
    from shelfscan.receipt.learning import stats_to_dict

    store = build_default_learning_store()
    data = store.export() if args.export else stats_to_dict(store.stats())
    print(json.dumps(data, indent=2))


def cmd_reset_learning(args: argparse.Namespace) -> None:
    """Delete all learned patterns and the feedback log."""
    from shelfscan.application.receipts.feedback import build_default_learning_store

    if not args.yes:
        print("Refusing to delete learning data without --yes.")
        sys.exit(1)

    build_default_learning_store().reset()
    print("Learning data cleared.")


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the FastAPI server for parsing and learning requests."""
    import uvicorn

    from shelfscan.application.receipts.feedback import build_default_learning_store
    from shelfscan.application.receipts.parse import build_default_parser
    from shelfscan.runtime.receipt_server import create_app

    learning = build_default_learning_store()
    app = create_app(build_default_parser(learning=learning), learning)

    print(f"Starting receipt server on {args.host}:{args.port}")
    print(f"Parse endpoint: http://{args.host}:{args.port}/parse")
    print("Press Ctrl+C to stop")

    uvicorn.run(app, host=args.host, port=args.port)

"""Receipt workflows."""

from shelfscan.application.receipts.feedback import (
    LearningFeedbackRequest,
    LearningFeedbackResult,
    build_default_learning_store,
    run_learning_feedback,
)
from shelfscan.application.receipts.parse import (
    ReceiptParser,
    ReceiptParseRequest,
    ReceiptParseResult,
    build_default_parser,
    parse,
    run_receipt_parse,
)

__all__ = [
    "ReceiptParser",
    "build_default_parser",
    "parse",
    "ReceiptParseRequest",
    "ReceiptParseResult",
    "run_receipt_parse",
    "LearningFeedbackRequest",
    "LearningFeedbackResult",
    "build_default_learning_store",
    "run_learning_feedback",
]

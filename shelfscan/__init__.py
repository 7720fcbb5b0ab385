"""shelfscan: structured receipts from noisy OCR text."""

__version__ = "0.1.0"

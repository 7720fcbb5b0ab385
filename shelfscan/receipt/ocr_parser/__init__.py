"""Composable OCR receipt text parser components."""

from .fields_parser import extract_address, extract_date, format_location
from .items_text_parser import LineItemExtraction, clean_receipt_lines, extract_line_items

__all__ = [
    "LineItemExtraction",
    "clean_receipt_lines",
    "extract_address",
    "extract_date",
    "extract_line_items",
    "format_location",
]

"""Text-based line item extraction (no bounding boxes)."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from shelfscan.domain.receipt import ExtractedLineItem

from .common import (
    ADDRESS_FRAGMENT,
    ANY_PRICE,
    DECIMAL_AMOUNT,
    NAME_THEN_PRICE,
    PRICE_ONLY,
    PRICE_THEN_NAME,
    SUBTOTAL_LINE,
    TOTAL_LINE,
    _clean_name,
    _is_acceptable_name,
    _is_non_item_line,
    _is_price_in_range,
    _parse_amount,
)


@dataclass(frozen=True)
class LineItemExtraction:
    """Items in receipt order plus the provisional total, if one was printed."""

    items: tuple[ExtractedLineItem, ...]
    total: Decimal | None
    lines: tuple[str, ...]


def clean_receipt_lines(text: str) -> list[str]:
    """Split text into trimmed, non-empty lines."""
    return [line.strip() for line in text.split("\n") if line.strip()]


def _match_candidate(lines: list[str], i: int) -> tuple[str, str, int] | None:
    """Try the item shapes in order; returns (name, amount, lines_consumed)."""
    line = lines[i]

    match = NAME_THEN_PRICE.match(line)
    if match:
        return match.group(1), match.group(2), 1

    if i + 1 < len(lines):
        next_match = PRICE_ONLY.match(lines[i + 1])
        if next_match:
            return line, next_match.group(1), 2

    match = PRICE_THEN_NAME.match(line)
    if match:
        return match.group(2), match.group(1), 1

    if not ADDRESS_FRAGMENT.search(line):
        match = ANY_PRICE.search(line)
        if match:
            return match.group(1), match.group(2), 1

    return None


def extract_line_items(text: str) -> LineItemExtraction:
    """Extract ordered (name, price) candidates and the printed total.

    Summary, tender, staff, footer and address lines are skipped. A
    TOTAL/BALANCE line sets the provisional total; SUBTOTAL is used only when
    no TOTAL/BALANCE line exists.
    """
    lines = clean_receipt_lines(text)
    items: list[ExtractedLineItem] = []
    total: Decimal | None = None
    subtotal: Decimal | None = None

    i = 0
    while i < len(lines):
        line = lines[i]

        amounts = DECIMAL_AMOUNT.findall(line)
        if amounts:
            if SUBTOTAL_LINE.search(line):
                subtotal = _parse_amount(amounts[-1])
            elif TOTAL_LINE.search(line):
                total = _parse_amount(amounts[-1])

        if _is_non_item_line(line):
            i += 1
            continue

        candidate = _match_candidate(lines, i)
        if candidate is None:
            i += 1
            continue

        raw_name, raw_amount, consumed = candidate
        name = _clean_name(raw_name)
        price = _parse_amount(raw_amount)
        if price is not None and _is_price_in_range(price) and _is_acceptable_name(name):
            items.append(ExtractedLineItem(raw_name=name, price=price, line_index=i))
        i += consumed

    return LineItemExtraction(
        items=tuple(items),
        total=total if total is not None else subtotal,
        lines=tuple(lines),
    )

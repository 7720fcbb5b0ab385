"""Shared constants and helpers for OCR receipt text parsing."""

import re
from decimal import Decimal, InvalidOperation

from shelfscan.domain.receipt import MAX_ITEM_PRICE, MIN_ITEM_PRICE

# Lines that are never items
PHONE_LINE = re.compile(r"^\(?\d{3}\)?[-.\s]?\d{3}-\d{4}")
STREET_LINE = re.compile(r"^\d+\s+\w+\s+(st|ave|rd|blvd)", re.IGNORECASE)
CITY_STATE_ZIP_LINE = re.compile(r"^[a-z\s]+,\s*[a-z]{2}\s*\d{5}", re.IGNORECASE)
SUMMARY_LINE = re.compile(r"^(sub\s*)?total|\b(tax|balance|change|tender|payment)\b", re.IGNORECASE)
TENDER_LINE = re.compile(r"^card\b|\b(cash|credit|debit)\b", re.IGNORECASE)
STAFF_LINE = re.compile(r"^(cashier|manager|associate)\b", re.IGNORECASE)
FOOTER_LINE = re.compile(r"^thank you|visit us|store hours", re.IGNORECASE)
PROMOTION_LINE = re.compile(r"^(regular\s+price|member\s+savings|you\s+saved)\b", re.IGNORECASE)

NON_ITEM_LINE_PATTERNS = (
    PHONE_LINE,
    STREET_LINE,
    CITY_STATE_ZIP_LINE,
    SUMMARY_LINE,
    TENDER_LINE,
    STAFF_LINE,
    FOOTER_LINE,
    PROMOTION_LINE,
)

# Lines carrying the receipt total. SUBTOTAL only counts when nothing better exists.
TOTAL_LINE = re.compile(r"^[\W_]*(grand\s+|order\s+)?total\b|^[\W_]*balance\b", re.IGNORECASE)
SUBTOTAL_LINE = re.compile(r"^[\W_]*sub\s*total\b", re.IGNORECASE)
DECIMAL_AMOUNT = re.compile(r"\d+\.\d{2}")

# Item line shapes, tried in order
NAME_THEN_PRICE = re.compile(r"^(.+?)\s+\$?(\d+\.\d{2})(?:\s+[A-Za-z]{1,2})?$")
PRICE_ONLY = re.compile(r"^\s*\$?(\d+\.\d{2})\s*$")
PRICE_THEN_NAME = re.compile(r"^\$?(\d+\.\d{2})\s+(.+)$")
ANY_PRICE = re.compile(r"(.+?)\s*\$?(\d+\.\d{2})")
ADDRESS_FRAGMENT = re.compile(r"phone|address|zip", re.IGNORECASE)

# Names that are receipt vocabulary rather than products
NON_ITEM_VOCABULARY = re.compile(
    r"\b(subtotal|tax|total|balance|change|tender|cashier|manager|card|cash|credit|debit|"
    r"thank you|visit|store|hours|phone|address|city|state|zip)\b",
    re.IGNORECASE,
)

MIN_LINE_LENGTH = 3
MIN_NAME_LENGTH = 2
SHORT_WORD_RATIO = 0.6


def _parse_amount(raw: str) -> Decimal | None:
    try:
        return Decimal(raw.replace("$", "").replace(",", "")).quantize(Decimal("0.01"))
    except InvalidOperation:
        return None


def _is_price_in_range(price: Decimal | None) -> bool:
    return price is not None and MIN_ITEM_PRICE <= price <= MAX_ITEM_PRICE


def _is_non_item_line(line: str) -> bool:
    """Return True for phone/address/summary/staff/footer lines."""
    if len(line) < MIN_LINE_LENGTH:
        return True
    return any(pattern.search(line) for pattern in NON_ITEM_LINE_PATTERNS)


def _clean_name(name: str) -> str:
    """Collapse whitespace and drop stray separators around a candidate name."""
    cleaned = re.sub(r"\s+", " ", name).strip()
    return cleaned.strip(" .:*-$")


def _is_garbled_name(name: str) -> bool:
    """Heuristic check for OCR noise masquerading as an item name.

    Garbled when most words are 1-2 letters, when vowel or consonant runs are
    implausibly long, when a letter repeats 4+ times, or when the name lacks
    either vowels or consonants entirely.
    """
    letters = re.sub(r"[^a-z\s]", "", name.lower())
    words = letters.split()
    if not words:
        return True

    short_words = sum(1 for word in words if len(word) <= 2)
    if short_words / len(words) > SHORT_WORD_RATIO:
        return True

    # y stays out of the consonant run so LAUNDRY or PANTRY are not flagged
    if re.search(r"[aeiou]{4,}", letters) or re.search(r"[bcdfghjklmnpqrstvwxz]{4,}", letters):
        return True
    if re.search(r"(.)\1{3,}", letters):
        return True

    has_vowel = re.search(r"[aeiouy]", letters) is not None
    has_consonant = re.search(r"[bcdfghjklmnpqrstvwxyz]", letters) is not None
    return not (has_vowel and has_consonant)


def _is_acceptable_name(name: str) -> bool:
    if len(name) < MIN_NAME_LENGTH:
        return False
    if NON_ITEM_VOCABULARY.search(name):
        return False
    return not _is_garbled_name(name)

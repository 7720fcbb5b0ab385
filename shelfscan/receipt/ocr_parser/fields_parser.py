"""Receipt field extraction helpers (date, address fragments)."""

from __future__ import annotations

import re
from datetime import date

from shelfscan.domain.receipt import ExtractedAddress

STREET_PATTERN = re.compile(
    r"(\d+\s+(?:N\.?|S\.?|E\.?|W\.?)?\s*[A-Z][A-Z\s.\-]+?"
    r"\b(?:STREET|ST|ROAD|RD|AVENUE|AVE|BOULEVARD|BLVD|DRIVE|DR|LANE|LN|CIRCLE|CIR|COURT|CT|PLACE|PL|WAY)\b)",
    re.IGNORECASE,
)
CANADIAN_POSTAL_PATTERN = re.compile(r"\b([A-Z]\d[A-Z])\s*(\d[A-Z]\d)\b", re.IGNORECASE)
US_ZIP_PATTERN = re.compile(r"\b(\d{5}(?:-\d{4})?)\b")
PHONE_PATTERN = re.compile(r"\(?(\d{3})\)?[-.\s]?(\d{3})[-.\s]?(\d{4})\b")
STORE_NUMBER_PATTERN = re.compile(r"STORE\s*#?\s*(\d{3,5})", re.IGNORECASE)
US_CITY_STATE_PATTERN = re.compile(r"^([A-Z][A-Z\s.]*?),?\s+([A-Z]{2})\s+\d{5}(?:-\d{4})?\b", re.IGNORECASE)
CANADIAN_CITY_PROVINCE_PATTERN = re.compile(
    r"^([A-Z][A-Z\s.]*?),?\s+(ON|QC|BC|AB|MB|SK|NS|NB|NL|PE|YT|NT|NU)\s+[A-Z]\d[A-Z]\s*\d[A-Z]\d\b",
    re.IGNORECASE,
)

_MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}


def extract_date(text: str) -> date | None:
    """Extract the purchase date (returns None if unknown)."""
    patterns = [
        # YYYY-MM-DD or YYYY/MM/DD or YYYY.MM.DD
        r"\b(\d{4})[./-](\d{2})[./-](\d{2})\b",
        # MM/DD/YYYY
        r"\b(\d{1,2})[/-](\d{1,2})[/-](\d{4})\b",
        # MM/DD/YY
        r"\b(\d{1,2})[/-](\d{1,2})[/-](\d{2})\b",
        # Month DD, YYYY
        r"\b(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\w*\s+(\d{1,2}),?\s+(\d{4})\b",
    ]

    for pattern in patterns:
        for match in re.finditer(pattern, text, re.IGNORECASE):
            first, second, third = match.groups()
            try:
                if first.isalpha():
                    month = _MONTHS[first[:3].lower()]
                    day = int(second)
                    year = int(third)
                elif len(first) == 4:
                    year, month, day = int(first), int(second), int(third)
                else:
                    # North American order
                    month, day, year = int(first), int(second), int(third)
                    if year < 100:
                        year = 2000 + year if year <= 69 else 1900 + year
                return date(year, month, day)
            except (ValueError, KeyError):
                continue

    return None


def _normalize_phone(match: re.Match[str]) -> str:
    return "-".join(match.groups())


def extract_address(text: str) -> ExtractedAddress:
    """Pull street, city, state, postal code, phone and store number from text.

    Each component is taken from the first line that carries it.
    """
    street = city = state = zip_code = phone = store_number = None
    loose_zip: str | None = None

    for raw_line in text.split("\n"):
        line = raw_line.strip()
        if not line:
            continue

        if street is None:
            street_match = STREET_PATTERN.search(line)
            if street_match:
                street = re.sub(r"\s+", " ", street_match.group(1)).strip().upper()

        city_match: re.Match[str] | None = None
        if city is None:
            city_match = CANADIAN_CITY_PROVINCE_PATTERN.search(line) or US_CITY_STATE_PATTERN.search(line)
            if city_match:
                city = re.sub(r"\s+", " ", city_match.group(1)).strip(" .,").upper()
                state = city_match.group(2).upper()

        if zip_code is None:
            postal_match = CANADIAN_POSTAL_PATTERN.search(line)
            zip_match = US_ZIP_PATTERN.search(line)
            if postal_match:
                zip_code = f"{postal_match.group(1)} {postal_match.group(2)}".upper()
            elif zip_match and (city_match or loose_zip is None) and not PHONE_PATTERN.search(line):
                # Prefer the zip printed on the city/state line over stray 5-digit runs.
                if city_match:
                    zip_code = zip_match.group(1)
                else:
                    loose_zip = zip_match.group(1)

        if phone is None:
            phone_match = PHONE_PATTERN.search(line)
            if phone_match:
                phone = _normalize_phone(phone_match)

        if store_number is None:
            store_match = STORE_NUMBER_PATTERN.search(line)
            if store_match:
                store_number = store_match.group(1)

    return ExtractedAddress(
        street=street,
        city=city,
        state=state,
        zip_code=zip_code or loose_zip,
        phone=phone,
        store_number=store_number,
    )


def format_location(address: ExtractedAddress) -> str | None:
    """Render "CITY, ST" for receipt metadata."""
    if address.city and address.state:
        return f"{address.city}, {address.state}"
    return address.city or None

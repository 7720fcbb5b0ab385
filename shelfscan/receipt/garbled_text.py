"""Detect OCR text that is too corrupted for line-item extraction."""

from __future__ import annotations

import re

from shelfscan.domain.receipt import GarbledTextReport

# Shapes of lines that real receipts contain. A line matching any of these is
# valid and never counted as garbled.
VALID_LINE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\d+\.\d{2}$"),
    re.compile(r"^[A-Z\s]+\s+\d+\.\d{2}$"),
    re.compile(r"^(SUBTOTAL|TAX|TOTAL|Order|Sales|Grand)\s+\d+\.\d{2}"),
    re.compile(r"^(Credit|Cash|Change|Payment)\s"),
    re.compile(r"^\d+\.\d{2}\s+lb\s+@"),
    re.compile(r"^Store\s+#?\d+"),
    re.compile(r"^\d{3,}[\s\-]+[A-Za-z\s]+"),
    re.compile(r"^Thank\s+you", re.IGNORECASE),
    re.compile(r"^Items:\s+\d+"),
    re.compile(r"^(SAFEWAY|PUBLIX|KROGER|TARGET|WALMART|WHOLE\s+FOODS|TRADER|COSTCO|SPROUTS)", re.IGNORECASE),
    re.compile(r"^[A-Z\s]{5,}\s+\d+\.\d{2}\s*[ST]?$"),
    re.compile(r"^(GROCERY|PRODUCE|REFRIG|FROZEN|BAKED\s+GOODS|GEN\s+MERCHANDISE)", re.IGNORECASE),
    re.compile(r"^\w+\s+\w+\s+\w+\s+\d+\.\d{2}$"),
)

GARBLED_LINE_PATTERNS: tuple[re.Pattern[str], ...] = (
    # Long uppercase run glued to uppercase words
    re.compile(r"^[A-Z\s]+[A-Z]{6,}"),
    # Dense short tokens
    re.compile(r"\b[a-zA-Z]{1,2}\b.*\b[a-zA-Z]{1,2}\b.*\b[a-zA-Z]{1,2}\b.*\b[a-zA-Z]{1,2}\b"),
    # Punctuation cluster glued to letters
    re.compile(r"[A-Z]+[^A-Za-z\s\d]{2,}"),
    # Mixed-case fragments
    re.compile(r"\b[A-Z][a-z]{1,2}\s+[A-Z][a-z]{1,2}\s+[A-Z][a-z]{1,2}"),
    # Consonant clusters
    re.compile(r"[BCDFGHJKLMNPQRSTVWXYZ]{4,}"),
    # Repeated-letter triplets at line start
    re.compile(r"^(LLL|RRR|NNN|DDD|TTT|SSS|MMM|PPP)\s"),
)

_VOWEL_FREE_WORD = re.compile(r"\b[B-DF-HJ-NP-TV-Zb-df-hj-np-tv-z]{4,}\b")

EXTREME_GARBLING_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"[A-Z]{3,}\s+[A-Z]{3,}\s+[A-Z]{3,}"),
    re.compile(r"\b[A-Z][a-z]{1,2}\s+[A-Z][a-z]{1,2}\s+[A-Z][a-z]{1,2}\s+[A-Z][a-z]{1,2}"),
    re.compile(r"^[A-Z\s]+[A-Z]{10,}"),
    re.compile(r"[A-Z]+[^A-Za-z\s\d]{3,}[A-Z]"),
    re.compile(r"\b[BCDFGHJKLMNPQRSTVWXYZ]{5,}\b"),
    re.compile(r"^(LLL|RRR|NNN|DDD|TTT|SSS)\s"),
    re.compile(r"[A-Z]{2,}\s+[A-Z]{2,}\s+[A-Z]{2,}\s+[A-Z]{2,}\s+[A-Z]{2,}"),
)

MIN_CLASSIFIED_LINE_LENGTH = 3
EXTREME_IMMEDIATE_THRESHOLD = 5
EXTREME_THRESHOLD = 2
GARBLED_LINE_RATIO = 0.15
VALID_LINE_RATIO = 0.10


def _is_valid_line(line: str) -> bool:
    return any(pattern.search(line) for pattern in VALID_LINE_PATTERNS)


def _is_garbled_line(line: str) -> bool:
    if any(pattern.search(line) for pattern in GARBLED_LINE_PATTERNS):
        return True
    # Vowel-free words only count on lines that do not lead with a number.
    return not line[0].isdigit() and _VOWEL_FREE_WORD.search(line) is not None


def count_extreme_indicators(text: str) -> int:
    """Count extreme-garbling matches over the newline-flattened text."""
    flattened = re.sub(r"\n+", " ", text)
    return sum(len(pattern.findall(flattened)) for pattern in EXTREME_GARBLING_PATTERNS)


def detect_garbled_text(text: str) -> GarbledTextReport:
    """Classify OCR text as garbled or parseable.

    The verdict is garbled when the flattened text carries more than five
    extreme indicators, or when more than 15% of lines look garbled, fewer than
    10% look like receipt lines, or more than two extreme indicators exist.
    """
    lines = [line.strip() for line in text.split("\n") if line.strip()]
    total_lines = len(lines)
    extreme = count_extreme_indicators(text)

    if extreme > EXTREME_IMMEDIATE_THRESHOLD:
        return GarbledTextReport(
            is_garbled=True,
            total_lines=total_lines,
            valid_lines=0,
            garbled_lines=0,
            extreme_indicators=extreme,
        )

    valid = 0
    garbled = 0
    for line in lines:
        if len(line) < MIN_CLASSIFIED_LINE_LENGTH:
            continue
        if _is_valid_line(line):
            valid += 1
        elif _is_garbled_line(line):
            garbled += 1

    is_garbled = (
        garbled > total_lines * GARBLED_LINE_RATIO
        or valid < total_lines * VALID_LINE_RATIO
        or extreme > EXTREME_THRESHOLD
    )
    return GarbledTextReport(
        is_garbled=is_garbled,
        total_lines=total_lines,
        valid_lines=valid,
        garbled_lines=garbled,
        extreme_indicators=extreme,
    )

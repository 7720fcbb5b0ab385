"""Correction dictionaries used by the product name enhancer.

Keys are matched as whole words, case-insensitively. Values are written in
upper case; final casing happens after all substitutions.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

# Brand abbreviations specific to one chain's receipt printer
STORE_BRAND_TERMS: dict[str, dict[str, str]] = {
    "SAFEWAY": {
        "G-P": "GREY POUPON",
        "TATES": "TATE'S",
        "LND O LKS": "LAND O LAKES",
        "AMYS": "AMY'S",
        "SIG": "SIGNATURE",
        "CRV": "CALIFORNIA REDEMPTION VALUE",
        "CK": "COOKIES",
        "RSP": "RASPBERRY",
    },
    "WALMART": {
        "GV": "GREAT VALUE",
        "MM": "MARKETSIDE",
        "EQ": "EQUATE",
        "MV": "MEMBER'S MARK",
        "HRI": "HORMEL",
        "CHS": "CHEESE",
        "PEP": "PEPPERONI",
        "BCN": "BACON",
        "CHDDR": "CHEDDAR",
        "THINBRST": "THIN CRUST",
        "DV": "DOVE",
        "SWT": "SWEET",
        "BUTTR": "BUTTER",
        "AVO": "AVOCADO",
        "HNY": "HONEY",
        "PAL ORI": "PALMOLIVE ORIGINAL",
        "TIDEHEORG": "TIDE HE ORIGINAL",
        "CHRMNSF": "CHARMIN SOFT",
        "WHT GRAN SUG": "WHITE GRANULATED SUGAR",
        "ZPR SANDW": "ZIPPER SANDWICH",
        "FUSILL": "FUSILLI",
        "ELD-HARV": "ELDORADO HARVEST",
        "CHK BST BNLS": "CHICKEN BREAST BONELESS",
        "MIX VEG": "MIXED VEGETABLES",
    },
    "TARGET": {
        "UP&UP": "UP & UP",
        "GH": "GOOD & GATHER",
        "MP": "MARKET PANTRY",
    },
}

# Common OCR misreads and abbreviations for food words
FOOD_TERMS: dict[str, str] = {
    # Proteins
    "CHIKEN": "CHICKEN",
    "CHICEN": "CHICKEN",
    "CHIKN": "CHICKEN",
    "CHICK": "CHICKEN",
    "CHCKN": "CHICKEN",
    "BNLS": "BONELESS",
    "SKLSS": "SKINLESS",
    "GRND": "GROUND",
    "BRST": "BREAST",
    "THGH": "THIGH",
    "WGNS": "WINGS",
    "IMPOSS": "IMPOSSIBLE",
    "BURG": "BURGER",
    # Produce
    "TOMATOE": "TOMATO",
    "POTATOE": "POTATO",
    "TOM": "TOMATO",
    "BROCOLI": "BROCCOLI",
    "BROCOLLI": "BROCCOLI",
    "CRROT": "CARROT",
    "AVACADO": "AVOCADO",
    "AVACODO": "AVOCADO",
    "ACOCADO": "AVOCADO",
    "SHLLOTS": "SHALLOTS",
    "SHALOTS": "SHALLOTS",
    "PERSTN": "PERSIAN",
    "PERSTAN": "PERSIAN",
    "LMN": "LEMON",
    "ORNG": "ORANGE",
    "APL": "APPLE",
    "GRN": "GREEN",
    "YLW": "YELLOW",
    # Dairy
    "MLK": "MILK",
    "CHZ": "CHEESE",
    "CHSE": "CHEESE",
    "CHEES": "CHEESE",
    "YOGRT": "YOGURT",
    "YOQRT": "YOGURT",
    "YOUGURT": "YOGURT",
    "BTR": "BUTTER",
    "CRM": "CREAM",
    "CREM": "CREAM",
    "LF": "LOW FAT",
    "VANIL": "VANILLA",
    "VANILA": "VANILLA",
    # Condiments & sauces
    "SCE": "SAUCE",
    "SAUGE": "SAUCE",
    "SAUSE": "SAUCE",
    "SACE": "SAUCE",
    "KETCHP": "KETCHUP",
    "KETCHU": "KETCHUP",
    "MUSTRD": "MUSTARD",
    "MAYO": "MAYONNAISE",
    "MAYON": "MAYONNAISE",
    "PAST": "PASTE",
    # Grains
    "BRD": "BREAD",
    "BRED": "BREAD",
    "RCE": "RICE",
    "RYCE": "RICE",
    "PST": "PASTA",
    "PSTA": "PASTA",
    "FLR": "FLOUR",
    "FLUR": "FLOUR",
    "WG": "WHOLE GRAIN",
    # Descriptors
    "ORGN": "ORGANIC",
    "ORGNC": "ORGANIC",
    "ORG": "ORGANIC",
    "ORGNIC": "ORGANIC",
    "FRZ": "FROZEN",
    "FRZN": "FROZEN",
    "FR0Z": "FROZEN",
    "WHL": "WHOLE",
    "WH": "WHITE",
    "WHT": "WHITE",
    "WHTE": "WHITE",
    "FNCY": "FANCY",
    "PARM": "PARMESAN",
    "SHRD": "SHREDDED",
    "LS": "LOW SODIUM",
    "LRG": "LARGE",
    "UNSLTD": "UNSALTED",
    "SLTD": "SALTED",
    "UNSWT": "UNSWEETENED",
    "CHOC": "CHOCOLATE",
    "CONC": "CONCENTRATE",
    "PWD": "POWDER",
    # Brand shorthands
    "PAC": "PACIFIC",
    "HZ": "HEINZ",
}

# Store-brand prefixes; an empty value removes the prefix.
STORE_BRAND_PREFIXES: dict[str, str] = {
    "PUB": "",
    "PBX": "",
    "PUBLIX": "",
    "PF": "",
    "GV": "GREAT VALUE",
    "SIG": "SIGNATURE",
    "MM": "MARKETSIDE",
    "EQ": "EQUATE",
    "PV": "PARENT'S CHOICE",
    "KS": "KIRKLAND SIGNATURE",
    "TJ": "TRADER JOE'S",
}

NATIONAL_BRANDS: dict[str, str] = {
    "MAHATHA": "MAHATMA",
    "MAHATAMA": "MAHATMA",
    "JASN": "JASMINE",
    "JASH": "JASMINE",
    "JASMIN": "JASMINE",
    "HDISIN": "HOISIN",
    "HOSIN": "HOISIN",
    "HOYSIN": "HOISIN",
    "SIRACHA": "SRIRACHA",
    "SIRRACH": "SRIRACHA",
    "HUNTS": "HUNT'S",
    "LAYS": "LAY'S",
    "CAMPBELLS": "CAMPBELL'S",
    "KELLOGS": "KELLOGG'S",
}

UNIT_TERMS: dict[str, str] = {
    "LB": "POUND",
    "LBS": "POUNDS",
    "OZ": "OUNCE",
    "OUNCS": "OUNCES",
    "FL": "FLUID",
    "PT": "PINT",
    "QT": "QUART",
    "GAL": "GALLON",
    "ML": "MILLILITER",
    "PK": "PACK",
    "PKG": "PACKAGE",
    "CT": "COUNT",
    "PC": "PIECE",
    "BX": "BOX",
    "BG": "BAG",
    "BTL": "BOTTLE",
}

# Literal compound abbreviations rewritten after word-level substitution
PHRASE_REWRITES: tuple[tuple[str, str], ...] = (
    (r"\bTOM(?:ATO)?/PASTE\b", "TOMATO PASTE"),
    (r"\bRD FT\b", "REDUCED FAT"),
    (r"\bFF LT\b", "FAT FREE LIGHT"),
    (r"\bW/G WHEAT\b", "WHOLE GRAIN WHEAT"),
)


@dataclass(frozen=True)
class NameDictionaries:
    """All substitution tables, in the order the enhancer applies them."""

    store_brands: Mapping[str, Mapping[str, str]] = field(default_factory=dict)
    food_terms: Mapping[str, str] = field(default_factory=dict)
    store_brand_prefixes: Mapping[str, str] = field(default_factory=dict)
    national_brands: Mapping[str, str] = field(default_factory=dict)
    units: Mapping[str, str] = field(default_factory=dict)
    phrases: tuple[tuple[str, str], ...] = ()

    def store_terms(self, store_name: str) -> Mapping[str, str]:
        """Brand table for a store, matching "SAFEWAY #910" to SAFEWAY."""
        store_upper = store_name.strip().upper()
        if not store_upper:
            return {}
        if store_upper in self.store_brands:
            return self.store_brands[store_upper]
        for store, terms in self.store_brands.items():
            if re.search(r"\b" + re.escape(store) + r"\b", store_upper):
                return terms
        return {}


def _string_table(raw: Any) -> dict[str, str]:
    if not isinstance(raw, Mapping):
        return {}
    table: dict[str, str] = {}
    for key, value in raw.items():
        key_str = str(key).strip().upper()
        if key_str:
            table[key_str] = str(value).strip().upper()
    return table


def build_name_dictionaries(configs: Sequence[Mapping[str, Any]] | None = None) -> NameDictionaries:
    """Merge built-in dictionaries with overrides from config files.

    Config shape::

        [food_terms]
        BNNA = "BANANA"

        [store_brands.COSTCO]
        KS = "KIRKLAND SIGNATURE"
    """
    store_brands = {store: dict(terms) for store, terms in STORE_BRAND_TERMS.items()}
    food_terms = dict(FOOD_TERMS)
    prefixes = dict(STORE_BRAND_PREFIXES)
    national = dict(NATIONAL_BRANDS)
    units = dict(UNIT_TERMS)

    for config in configs or ():
        raw_stores = config.get("store_brands", {})
        if isinstance(raw_stores, Mapping):
            for store, terms in raw_stores.items():
                store_brands.setdefault(str(store).strip().upper(), {}).update(_string_table(terms))
        food_terms.update(_string_table(config.get("food_terms")))
        prefixes.update(_string_table(config.get("store_brand_prefixes")))
        national.update(_string_table(config.get("national_brands")))
        units.update(_string_table(config.get("units")))

    return NameDictionaries(
        store_brands=store_brands,
        food_terms=food_terms,
        store_brand_prefixes=prefixes,
        national_brands=national,
        units=units,
        phrases=PHRASE_REWRITES,
    )


@lru_cache(maxsize=1)
def default_name_dictionaries() -> NameDictionaries:
    """Built-in dictionaries only (no file I/O)."""
    return build_name_dictionaries()

"""String similarity helpers for fuzzy address matching."""

from __future__ import annotations

from rapidfuzz.distance import Levenshtein


def levenshtein_distance(s1: str, s2: str) -> int:
    """Edit distance between two strings (insert/delete/substitute cost 1)."""
    return Levenshtein.distance(s1, s2)


def string_similarity(s1: str, s2: str) -> float:
    """Return 1 - distance / longer length, so identical strings score 1.0."""
    return Levenshtein.normalized_similarity(s1, s2)

"""
Text matching helpers shared by company search, niche resolution and
product offer search. Accents are folded so "Açaí" matches "acai".
"""

import math
import re
import unicodedata
from typing import Optional

STOPWORDS = frozenset({
    "a", "o", "as", "os", "em", "na", "no", "nas", "nos",
    "de", "da", "do", "das", "dos", "para", "pra", "por",
    "perto", "agora", "saindo", "mim", "minha", "meu", "e",
})

MIN_TOKEN_LENGTH = 2

_NON_WORD = re.compile(r"[^a-z0-9]+")


def normalize_for_match(value: str) -> str:
    """Lowercase and strip diacritics."""
    decomposed = unicodedata.normalize("NFD", value or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.lower()


def tokenize_search(value: str) -> list[str]:
    """Split free text into meaningful tokens (accent-free, no stopwords)."""
    cleaned = _NON_WORD.sub(" ", normalize_for_match(value)).strip()
    if not cleaned:
        return []
    return [
        token for token in cleaned.split(" ")
        if len(token) >= MIN_TOKEN_LENGTH and token not in STOPWORDS
    ]


def minimum_token_matches(token_count: int) -> int:
    """
    How many query tokens a candidate must contain.
    Single-token queries need that token; longer queries need 60%, at least 2.
    """
    if token_count <= 1:
        return token_count
    return max(2, math.ceil(token_count * 0.6))


def count_token_matches(tokens: list[str], *fields: Optional[str]) -> int:
    haystack = " ".join(normalize_for_match(f) for f in fields if f)
    return sum(1 for token in tokens if token in haystack)

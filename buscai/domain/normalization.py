"""
Company data normalization and quality scoring.
Used by admin company curation, SerpAPI import and claims.
"""

import re
from typing import Optional

ACTIVE_QUALITY_THRESHOLD = 70

_NON_DIGIT = re.compile(r"\D")
_SPACES = re.compile(r"\s+")


def to_digits(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    digits = _NON_DIGIT.sub("", value)
    return digits or None


def normalize_phone_e164_br(value: Optional[str]) -> Optional[str]:
    """'(11) 99999-0000' -> '+5511999990000'."""
    digits = to_digits(value)
    if not digits:
        return None
    if digits.startswith("55"):
        return f"+{digits}"
    return f"+55{digits}"


def normalize_website(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    trimmed = value.strip().lower()
    if not trimmed:
        return None
    return trimmed.rstrip("/")


def normalize_name(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    collapsed = _SPACES.sub(" ", value.strip()).lower()
    return collapsed or None


def normalize_address(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    collapsed = _SPACES.sub(" ", value.strip())
    return collapsed or None


def compute_quality_score(
    name: Optional[str] = None,
    address: Optional[str] = None,
    city_id=None,
    niche_id=None,
    phone: Optional[str] = None,
    whatsapp: Optional[str] = None,
) -> int:
    """Completeness score in [0, 100]; whatsapp weighs the most."""
    score = 0
    if name:
        score += 20
    if address:
        score += 10
    if city_id and niche_id:
        score += 20
    if phone:
        score += 20
    if whatsapp:
        score += 30
    return max(0, min(100, score))


def mask_phone(value: Optional[str]) -> Optional[str]:
    """Keep only the last four digits visible."""
    digits = to_digits(value)
    if not digits:
        return None
    if len(digits) <= 4:
        return "*" * len(digits)
    return "*" * (len(digits) - 4) + digits[-4:]


def phones_match(left: Optional[str], right: Optional[str]) -> bool:
    """Compare phone numbers ignoring formatting and the +55 country code."""
    a = to_digits(left)
    b = to_digits(right)
    if not a or not b:
        return False
    if a.startswith("55") and len(a) > 11:
        a = a[2:]
    if b.startswith("55") and len(b) > 11:
        b = b[2:]
    return a == b

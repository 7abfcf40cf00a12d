from __future__ import annotations

import re
import unicodedata
from typing import Optional

_WHITESPACE = re.compile(r"\s+")


def normalize_city(city: Optional[str]) -> str:
    """
    Canonical form used for city allow/deny list comparisons:
      - "  São   Paulo " => "sao paulo"
      - "MÜNCHEN"        => "munchen"
    """
    if not city:
        return ""

    decomposed = unicodedata.normalize("NFD", city)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE.sub(" ", stripped.lower()).strip()


def cities_match(a: Optional[str], b: Optional[str]) -> bool:
    """
    Exact match on normalized names. A blank side never matches anything.
    """
    left = normalize_city(a)
    right = normalize_city(b)
    if not left or not right:
        return False
    return left == right

from __future__ import annotations

import logging
import math
from typing import Any, List, Optional

from pydantic import ValidationError

from wishlist_api.schemas.offers import CandidateOffer

logger = logging.getLogger(__name__)

DEFAULT_ITEM_LIMIT = 5

REQUIRED_TEXT_FIELDS = ("storeName", "domain", "currency", "url")


def _is_positive_number(v: Any) -> bool:
    # bool is an int subclass; "true" is not a price
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return False
    try:
        return math.isfinite(v) and v > 0
    except OverflowError:
        # int literal too long for a float
        return False


def is_well_formed(raw: Any) -> bool:
    """
    A raw candidate needs storeName, domain, currency and url as non-empty
    strings plus a positive numeric price.
    """
    if not isinstance(raw, dict):
        return False
    for k in REQUIRED_TEXT_FIELDS:
        v = raw.get(k)
        if not isinstance(v, str) or not v.strip():
            return False
    return _is_positive_number(raw.get("price"))


def collect(raw_offers: Any, limit: Optional[int] = DEFAULT_ITEM_LIMIT) -> List[CandidateOffer]:
    """
    Drop malformed candidates and cap the result at `limit`.
    Same-domain offers are kept as separate entries.
    """
    if not isinstance(raw_offers, list):
        logger.debug("Offer payload is not a list (%s); nothing collected", type(raw_offers).__name__)
        return []

    out: List[CandidateOffer] = []
    dropped = 0
    for raw in raw_offers:
        if limit is not None and len(out) >= limit:
            break
        if not is_well_formed(raw):
            dropped += 1
            continue
        try:
            out.append(CandidateOffer.model_validate(raw))
        except ValidationError:
            dropped += 1

    if dropped:
        logger.debug("Dropped %d malformed candidate offers", dropped)
    return out

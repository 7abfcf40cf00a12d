from __future__ import annotations

import logging
from typing import Dict, List, Optional

from wishlist_api.schemas.offers import CandidateOffer

logger = logging.getLogger(__name__)

# Static sample table; swap for a rates provider when one is wired in
SAMPLE_RATES: Dict[str, Dict[str, float]] = {
    "USD": {
        "EUR": 0.92, "GBP": 0.79, "JPY": 149.5, "AUD": 1.53, "CAD": 1.36,
        "CHF": 0.88, "CNY": 7.25, "INR": 83.12, "MXN": 17.05, "SGD": 1.35,
    },
    "EUR": {
        "USD": 1.09, "GBP": 0.86, "JPY": 162.59, "AUD": 1.66, "CAD": 1.48,
        "CHF": 0.96, "CNY": 7.88, "INR": 90.36, "MXN": 18.54, "SGD": 1.47,
    },
    "GBP": {
        "USD": 1.27, "EUR": 1.16, "JPY": 189.08, "AUD": 1.93, "CAD": 1.72,
        "CHF": 1.12, "CNY": 9.16, "INR": 105.06, "MXN": 21.54, "SGD": 1.71,
    },
}


def get_rate(from_code: str, to_code: str) -> Optional[float]:
    src = (from_code or "").strip().upper()
    dst = (to_code or "").strip().upper()
    if not src or not dst:
        return None
    if src == dst:
        return 1.0

    direct = SAMPLE_RATES.get(src, {}).get(dst)
    if direct:
        return direct

    inverse = SAMPLE_RATES.get(dst, {}).get(src)
    if inverse:
        return 1.0 / inverse

    return None


def convert_amount(amount: float, from_code: str, to_code: str) -> Optional[float]:
    """
    Returns None when the pair is unknown; callers fall back to the raw price.
    """
    rate = get_rate(from_code, to_code)
    if rate is None:
        return None
    return round(amount * rate, 2)


def normalize_prices(offers: List[CandidateOffer], target_currency: Optional[str]) -> List[CandidateOffer]:
    if not target_currency:
        return offers

    target = target_currency.strip().upper()
    out: List[CandidateOffer] = []
    missing = 0
    for o in offers:
        converted = convert_amount(o.price, o.currency, target)
        if converted is None:
            missing += 1
            out.append(o)
            continue
        out.append(o.model_copy(update={"normalized_price": converted, "normalized_currency": target}))

    if missing:
        logger.info("No exchange rate for %d offers into %s; ranking those by raw price", missing, target)
    return out

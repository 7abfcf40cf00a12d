import logging
import re
from typing import Any, Dict, List, Optional, Tuple

import httpx

from wishlist_api.core.config import settings
from wishlist_api.core.offer_source import OfferSourceError, OfferSourceRateLimitError
from wishlist_api.core.retailers import domain_from_url, store_name_from_domain

logger = logging.getLogger(__name__)

SERPAPI_BASE = "https://serpapi.com/search.json"

# Prefixed dollar signs, longest first so "US$" wins over "S$"
DOLLAR_PREFIXES = [
    ("CA$", "CAD"),
    ("AU$", "AUD"),
    ("NZ$", "NZD"),
    ("HK$", "HKD"),
    ("MX$", "MXN"),
    ("US$", "USD"),
    ("C$", "CAD"),
    ("A$", "AUD"),
    ("S$", "SGD"),
    ("R$", "BRL"),
]
DOLLAR_CURRENCIES = {code for _, code in DOLLAR_PREFIXES}
CURRENCY_SYMBOLS = {"€": "EUR", "£": "GBP", "¥": "JPY", "₹": "INR"}

GOOGLE_HOST_RE = re.compile(r"(^|\.)google\.[a-z.]+$")


def _parse_price_value(price: Optional[str]) -> Optional[float]:
    """
    Converts strings like "$599.99", "From $499.99", "$1,402.58" to float.
    Returns None if not parseable.
    """
    if not price:
        return None
    m = re.search(r"(\d[\d,]*\.?\d*)", str(price))
    if not m:
        return None
    try:
        return float(m.group(1).replace(",", ""))
    except ValueError:
        return None


def _extract_price_fields(r: dict) -> Tuple[Optional[str], Optional[float]]:
    """
    Best-effort: use any numeric extracted price SerpApi provides, otherwise parse price string.
    """
    price_str = r.get("price")
    for k in ("extracted_price", "price_extracted"):
        v = r.get(k)
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return price_str, float(v)
    return price_str, _parse_price_value(price_str)


def _currency_from_price(price_str: Optional[str], default: str) -> str:
    """
    "CA$25.00" => "CAD". A bare "$" is the default currency when that is a
    dollar currency (gl=ca shows CAD as "$25.00"), otherwise USD.
    """
    if not price_str:
        return default
    text = price_str.upper()
    for prefix, code in DOLLAR_PREFIXES:
        if prefix in text:
            return code
    for symbol, code in CURRENCY_SYMBOLS.items():
        if symbol in text:
            return code
    if "$" in text:
        return default if default in DOLLAR_CURRENCIES else "USD"
    return default


def _is_google_link(url: str) -> bool:
    domain = domain_from_url(url)
    return bool(domain) and bool(GOOGLE_HOST_RE.search(domain))


def _extract_link(r: dict) -> Optional[str]:
    """
    First merchant link. Google Shopping product pages are skipped so the
    domain is the seller's.
    """
    for k in ("link", "product_link", "productLink", "merchant_link"):
        v = r.get(k)
        if isinstance(v, str) and v.strip() and not _is_google_link(v.strip()):
            return v.strip()
    return None


def _extract_source(r: dict) -> Optional[str]:
    for k in ("source", "merchant", "seller", "store"):
        v = r.get(k)
        if isinstance(v, str) and v.strip():
            return v.strip()
    return None


def shopping_result_to_candidate(r: dict, default_currency: str = "USD") -> Dict[str, Any]:
    """
    Map one SerpApi shopping result to a raw candidate dict.
    Missing pieces stay None and get dropped later by the collector.
    """
    price_str, price_val = _extract_price_fields(r)
    link = _extract_link(r)
    domain = domain_from_url(link)
    return {
        "storeName": _extract_source(r) or (store_name_from_domain(domain) if domain else None),
        "domain": domain,
        "price": price_val,
        "currency": _currency_from_price(price_str, default_currency),
        "url": link,
        "deliveryTime": r.get("delivery"),
    }


async def shopping_search(
    q: str,
    api_key: str,
    gl: str = "us",
    hl: str = "en",
    num: int = 10,
) -> Dict[str, Any]:
    """
    Calls SerpAPI Google Shopping and returns the raw JSON response.
    """
    params: Dict[str, Any] = {
        "engine": "google_shopping",
        "q": q,
        "api_key": api_key,
        "gl": gl,
        "hl": hl,
        "num": max(1, min(int(num), 100)),
    }

    async with httpx.AsyncClient(timeout=60) as client:
        r = await client.get(SERPAPI_BASE, params=params)

    if r.status_code == 429:
        raise OfferSourceRateLimitError("SerpAPI rate limit exceeded")
    if r.status_code >= 400:
        raise OfferSourceError(f"SerpAPI request failed: {r.status_code}", status_code=r.status_code, body=r.text[:2000])

    data = r.json()

    # Normalize: if the engine returns an error payload, surface it clearly
    if isinstance(data, dict) and data.get("error"):
        raise OfferSourceError(f"SerpAPI error: {data.get('error')}")

    return data


class SerpApiOfferSource:
    """OfferSource backed by SerpApi's Google Shopping engine."""

    def __init__(self, api_key: Optional[str] = None, hl: str = "en"):
        self.api_key = (api_key if api_key is not None else settings.SERPAPI_API_KEY or "").strip()
        self.hl = hl

    async def generate_candidates(self, title: str, context: Dict[str, Any]) -> List[Any]:
        if not self.api_key:
            raise OfferSourceError("SERPAPI_API_KEY is not set")

        gl = (context.get("country_code") or "us").lower()
        limit = int(context.get("limit") or 10)
        default_currency = (context.get("currency") or "USD").upper()

        raw = await shopping_search(q=title, api_key=self.api_key, gl=gl, hl=self.hl, num=max(20, limit * 3))
        results = raw.get("shopping_results", []) or []
        logger.info("SerpAPI returned %d shopping results for %r", len(results), title)

        return [shopping_result_to_candidate(r, default_currency) for r in results if isinstance(r, dict)]

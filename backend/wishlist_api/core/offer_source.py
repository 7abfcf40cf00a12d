from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional, Protocol


class OfferSourceError(Exception):
    """Upstream offer generation failed (bad config, bad response, bad JSON)."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body


class OfferSourceRateLimitError(OfferSourceError):
    """Upstream kept returning 429 after retries."""

    def __init__(self, message: str, retry_after_seconds: Optional[int] = None):
        super().__init__(message, status_code=429)
        self.retry_after_seconds = retry_after_seconds


class OfferSource(Protocol):
    """
    Anything that can propose candidate offers for a product title.

    Returns raw dicts (storeName, domain, price, currency, url, ...);
    validation happens afterwards in core.offers.collect.
    """

    async def generate_candidates(self, title: str, context: Dict[str, Any]) -> List[Any]:
        ...


def extract_json_array(text: str) -> List[Any]:
    """
    Robustly extract a JSON array from model output.
    Handles:
    - ```json ... ``` fenced blocks
    - extra text before/after
    - an object wrapping the list ({"stores": [...]})
    """
    text = (text or "").strip()
    if not text:
        raise OfferSourceError("Empty model output")

    candidates = []
    fenced = re.search(r"```(?:json)?\s*(.*?)\s*```", text, re.DOTALL | re.IGNORECASE)
    if fenced:
        candidates.append(fenced.group(1))
    candidates.append(text)
    greedy = re.search(r"\[.*\]", text, re.DOTALL)
    if greedy:
        candidates.append(greedy.group(0))

    for c in candidates:
        try:
            obj = json.loads(c)
        except ValueError:
            continue
        if isinstance(obj, list):
            return obj
        if isinstance(obj, dict):
            for v in obj.values():
                if isinstance(v, list):
                    return v

    raise OfferSourceError("No JSON array found in model output", body=text[:2000])

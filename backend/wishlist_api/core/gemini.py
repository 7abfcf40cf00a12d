import asyncio
import json
import logging
import os
import random
import re
from typing import Any, Dict, List, Optional

import httpx

from wishlist_api.core.config import settings
from wishlist_api.core.offer_source import OfferSourceError, OfferSourceRateLimitError, extract_json_array

logger = logging.getLogger(__name__)

# Service endpoint for Gemini API (v1beta)
API_BASE = "https://generativelanguage.googleapis.com/v1beta"

# Retry behavior for 429/503
MAX_RETRIES = int(os.environ.get("GEMINI_MAX_RETRIES", "5"))
MAX_BACKOFF_SECONDS = float(os.environ.get("GEMINI_MAX_BACKOFF_SECONDS", "20"))


def _redact_key(s: str) -> str:
    """
    Redact 'key=...' in URLs or text so we never leak API keys in logs/responses.
    """
    if not s:
        return s
    return re.sub(r"(key=)([^&\s]+)", r"\1REDACTED", s)


def _offers_schema() -> Dict[str, Any]:
    """
    JSON Schema for the candidate list (matches CandidateOffer's wire shape).
    Used by Gemini Structured Output.
    """
    offer = {
        "type": "object",
        "properties": {
            "storeName": {"type": "string"},
            "domain": {"type": "string"},
            "price": {"type": "number"},
            "currency": {"type": "string"},
            "url": {"type": "string"},
            "deliveryTime": {"type": ["string", "null"]},
        },
        "required": ["storeName", "domain", "price", "currency", "url"],
        "additionalProperties": False,
    }
    return {"type": "array", "items": offer}


def _build_prompt(title: str, context: Dict[str, Any]) -> str:
    limit = int(context.get("limit") or 5)
    lines = [
        "You are helping a user find the same product on other online stores for price comparison.",
        "",
        f'Product Title: "{title}"',
    ]
    if context.get("current_price") is not None:
        lines.append(f"Current Price: {context['current_price']} {context.get('currency') or ''}".rstrip())
    if context.get("source_domain"):
        lines.append(f"Current Store: {context['source_domain']}")
    if context.get("country_code"):
        lines.append(f"Shopper country: {context['country_code']}")
    lines += [
        "",
        f"Return a JSON array of up to {limit} realistic online stores that would likely sell this product.",
        "For each store give storeName, domain (e.g. amazon.com), price (number), currency (ISO code), url,",
        "and deliveryTime when known.",
        "Return ONLY valid JSON matching the provided schema. No markdown. No extra text.",
    ]
    return "\n".join(lines)


def _retry_after_seconds(resp: httpx.Response) -> Optional[int]:
    raw = resp.headers.get("retry-after")
    if not raw:
        return None
    try:
        return max(0, int(float(raw)))
    except ValueError:
        return None


async def _sleep_for_retry(resp: httpx.Response, attempt: int) -> None:
    """
    Respect Retry-After header when present; otherwise exponential backoff with jitter.
    """
    retry_after = _retry_after_seconds(resp)
    if retry_after is not None:
        await asyncio.sleep(max(0.5, min(float(retry_after), MAX_BACKOFF_SECONDS)))
        return

    base = min(MAX_BACKOFF_SECONDS, (2 ** attempt))
    jitter = random.uniform(0.0, 0.5)
    await asyncio.sleep(base + jitter)


async def _post_with_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: Dict[str, Any],
    json_payload: Dict[str, Any],
    max_retries: int = MAX_RETRIES,
) -> httpx.Response:
    """
    POST with retries for 429/503.
    """
    resp: Optional[httpx.Response] = None

    for attempt in range(max_retries + 1):
        resp = await client.post(url, params=params, json=json_payload)

        if resp.status_code in (429, 503) and attempt < max_retries:
            logger.info("Gemini returned %s; retry %d/%d", resp.status_code, attempt + 1, max_retries)
            await _sleep_for_retry(resp, attempt)
            continue

        return resp

    return resp  # type: ignore[return-value]


async def _get_with_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: Dict[str, Any],
    max_retries: int = MAX_RETRIES,
) -> httpx.Response:
    """
    GET with retries for 429/503.
    """
    resp: Optional[httpx.Response] = None

    for attempt in range(max_retries + 1):
        resp = await client.get(url, params=params)

        if resp.status_code in (429, 503) and attempt < max_retries:
            await _sleep_for_retry(resp, attempt)
            continue

        return resp

    return resp  # type: ignore[return-value]


def _pick_model_from_list(models_payload: Dict[str, Any]) -> str:
    """
    Picks a model name (e.g. 'models/xxx') that supports generateContent.
    Preference:
      1) Flash models (contains 'flash')
      2) Any model that supports generateContent
    """
    models = models_payload.get("models", []) or []

    def supports_generate(m: Dict[str, Any]) -> bool:
        methods = m.get("supportedGenerationMethods") or []
        return any(str(x).lower() == "generatecontent" for x in methods)

    candidates = [m for m in models if supports_generate(m)]
    if not candidates:
        raise OfferSourceError("No Gemini models support generateContent (ListModels returned none)")

    flash = [m for m in candidates if "flash" in (m.get("name", "").lower())]
    chosen = (flash[0] if flash else candidates[0]).get("name")
    if not chosen:
        raise OfferSourceError("ListModels returned a model entry without a name")
    return chosen


def _normalize_model_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        return ""
    return name if name.startswith("models/") else f"models/{name}"


class GeminiOfferSource:
    """
    OfferSource backed by Gemini generateContent with structured JSON output.

    - Uses the configured GEMINI_MODEL, or picks a flash model via ListModels
    - Retries 429/503 with backoff
    - Redacts the API key from any raised errors
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, timeout: float = 60):
        self.api_key = (api_key if api_key is not None else settings.GEMINI_API_KEY or "").strip()
        self.model = _normalize_model_name(model if model is not None else settings.GEMINI_MODEL)
        self.timeout = timeout

    async def _resolve_model_name(self, client: httpx.AsyncClient) -> str:
        if self.model:
            return self.model

        r = await _get_with_retry(client, f"{API_BASE}/models", params={"key": self.api_key})
        if r.status_code >= 400:
            raise OfferSourceError(
                f"Gemini ListModels failed: {r.status_code}",
                status_code=r.status_code,
                body=_redact_key(r.text)[:2000],
            )
        self.model = _pick_model_from_list(r.json())
        logger.info("Resolved Gemini model %s", self.model)
        return self.model

    async def generate_candidates(self, title: str, context: Dict[str, Any]) -> List[Any]:
        if not self.api_key:
            raise OfferSourceError("GEMINI_API_KEY is not set")

        payload = {
            "contents": [{"role": "user", "parts": [{"text": _build_prompt(title, context)}]}],
            "generationConfig": {
                "response_mime_type": "application/json",
                "response_json_schema": _offers_schema(),
                "temperature": 0.2,
            },
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            model_name = await self._resolve_model_name(client)
            url = f"{API_BASE}/{model_name}:generateContent"
            r = await _post_with_retry(client, url, params={"key": self.api_key}, json_payload=payload)

            # Configured model vanished: fall back to ListModels once
            if r.status_code == 404:
                self.model = ""
                model_name = await self._resolve_model_name(client)
                url = f"{API_BASE}/{model_name}:generateContent"
                r = await _post_with_retry(client, url, params={"key": self.api_key}, json_payload=payload)

            if r.status_code == 429:
                raise OfferSourceRateLimitError(
                    "Gemini rate limit exceeded",
                    retry_after_seconds=_retry_after_seconds(r),
                )

            if r.status_code >= 400:
                raise OfferSourceError(
                    f"Gemini request failed: {r.status_code}",
                    status_code=r.status_code,
                    body=_redact_key(r.text)[:2000],
                )

            data = r.json()

        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            raise OfferSourceError(f"Unexpected Gemini response shape; raw={json.dumps(data)[:2000]}")

        return extract_json_array(text)

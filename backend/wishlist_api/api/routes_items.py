import logging
from typing import Any, Dict, List, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wishlist_api.api.deps import get_current_user_id, get_database, get_offer_source, get_session_factory
from wishlist_api.core.availability import check_offer, filter_and_rank, resolve_stores, sort_offers
from wishlist_api.core.config import settings
from wishlist_api.core.exchange_rates import normalize_prices
from wishlist_api.core.offer_source import OfferSource, OfferSourceError, OfferSourceRateLimitError
from wishlist_api.core.offers import collect
from wishlist_api.core.retailers import normalize_domain
from wishlist_api.db import repository
from wishlist_api.db.models import WishlistItemRow
from wishlist_api.schemas.offers import (
    AlternativeOffer,
    CandidateOffer,
    FilteredStoresResponse,
    FindAlternativesRequest,
    SortKey,
    UserLocationSummary,
)
from wishlist_api.schemas.stores import Location

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/items", tags=["items"])

NO_LOCATION_MESSAGE = "Set your shopping location to see available stores"
CITY_NEEDED_MESSAGE = "Add your city to see available stores"
NOTHING_AVAILABLE_MESSAGE = "No available stores found for your location"


async def _generate_candidates(source: OfferSource, title: str, context: Dict[str, Any]) -> List[Any]:
    """
    Runs the offer source and turns its failures into HTTP errors.
    """
    try:
        return await source.generate_candidates(title, context)

    except OfferSourceRateLimitError as e:
        # Return 429 (NOT 422), and include Retry-After when we have it.
        headers = {}
        if e.retry_after_seconds is not None:
            headers["Retry-After"] = str(e.retry_after_seconds)
        raise HTTPException(
            status_code=429,
            detail={
                "error": "rate_limited",
                "message": e.message,
                "retry_after_seconds": e.retry_after_seconds,
            },
            headers=headers,
        )

    except OfferSourceError as e:
        logger.warning("Offer source failed for %r: %s", title, e.message)
        raise HTTPException(
            status_code=422,
            detail={
                "error": "offer_source_error",
                "message": e.message,
                "status_code": e.status_code,
                "body": e.body,
            },
        )

    except httpx.HTTPError as e:
        logger.warning("Offer source transport error for %r: %s", title, e)
        raise HTTPException(
            status_code=422,
            detail={"error": "offer_source_error", "message": str(e)},
        )


def _original_store(item: WishlistItemRow) -> List[CandidateOffer]:
    """The item's own store as an offer, when it has enough data to be one."""
    raw = {
        "storeName": item.source_domain or "Unknown",
        "domain": item.source_domain or "",
        "price": float(item.current_price) if item.current_price is not None else None,
        "currency": item.currency,
        "url": item.original_url or "",
    }
    return collect([raw], limit=1)


@router.post("/{item_id}/find-other-stores-filtered", response_model=FilteredStoresResponse)
async def find_other_stores_filtered(
    item_id: str,
    sort_by: SortKey = Query(SortKey.LOWEST_PRICE, alias="sortBy"),
    currency: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_database),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    source: OfferSource = Depends(get_offer_source),
):
    """
    Other stores selling this item, split into the ones that deliver to the
    user's saved location and the ones that don't (with reasons).
    """
    logger.info("Finding alternative stores filtered by location: item=%s user=%s", item_id, user_id)

    item = await repository.get_item(session, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")

    location = await repository.get_location(session, user_id)
    if location is None:
        logger.info("User %s has no location; returning original store only", user_id)
        return FilteredStoresResponse(
            stores=_original_store(item),
            user_location=None,
            has_location=False,
            message=NO_LOCATION_MESSAGE,
        )

    context = {
        "current_price": float(item.current_price) if item.current_price is not None else None,
        "currency": item.currency,
        "source_domain": item.source_domain,
        "country_code": location.country_code,
        "limit": settings.FILTERED_STORES_LIMIT,
    }
    raw = await _generate_candidates(source, item.title, context)

    offers = collect(raw, limit=settings.FILTERED_STORES_LIMIT)
    offers = normalize_prices(offers, currency or item.currency)
    stores = await resolve_stores(offers, repository.make_store_lookup(session_factory))
    result = filter_and_rank(offers, location, sort_by, stores)

    logger.info(
        "Alternative stores found: item=%s available=%d unavailable=%d country=%s",
        item_id,
        len(result.available),
        len(result.unavailable),
        location.country_code,
    )

    message = None
    if not result.available:
        message = CITY_NEEDED_MESSAGE if result.city_required else NOTHING_AVAILABLE_MESSAGE

    return FilteredStoresResponse(
        stores=result.available,
        unavailable_stores=result.unavailable,
        user_location=UserLocationSummary(country_code=location.country_code, city=location.city),
        city_required=result.city_required,
        has_location=True,
        message=message,
    )


@router.post("/find-alternatives", response_model=List[AlternativeOffer])
async def find_alternatives(
    body: FindAlternativesRequest,
    session_factory: async_sessionmaker = Depends(get_session_factory),
    source: OfferSource = Depends(get_offer_source),
):
    """
    Sellers for a product title, each annotated with availability for the
    location given in the body. No location means no filtering.
    Available offers come first (ranked), then unavailable ones.
    """
    location = Location(country_code=body.country_code, city=body.city)
    if not location.country_code:
        location = None

    logger.info(
        "Finding alternative sellers: title=%r country=%s city=%s",
        body.title,
        location.country_code if location else None,
        location.city if location else None,
    )

    context = {
        "original_url": body.original_url,
        "country_code": location.country_code if location else None,
        "currency": body.currency,
        "limit": settings.ALTERNATIVES_LIMIT,
    }
    raw = await _generate_candidates(source, body.title, context)

    offers = collect(raw, limit=settings.ALTERNATIVES_LIMIT)
    offers = normalize_prices(offers, body.currency)

    stores = {}
    if location is not None:
        stores = await resolve_stores(offers, repository.make_store_lookup(session_factory))

    available: List[CandidateOffer] = []
    unavailable: List[AlternativeOffer] = []
    for offer in offers:
        verdict = check_offer(offer, location, stores.get(normalize_domain(offer.domain)))
        if verdict.available:
            available.append(offer)
        else:
            unavailable.append(
                AlternativeOffer(
                    **offer.model_dump(),
                    availability="unavailable",
                    reason_code=verdict.reason,
                    reason=verdict.message,
                )
            )

    ranked = [
        AlternativeOffer(**o.model_dump(), availability="available")
        for o in sort_offers(available, body.sort_by)
    ]

    logger.info(
        "Alternative sellers found: title=%r total=%d available=%d",
        body.title,
        len(offers),
        len(ranked),
    )
    return ranked + unavailable

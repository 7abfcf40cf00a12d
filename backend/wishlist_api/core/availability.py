"""
Availability filter & ranker.

Given already-collected candidate offers, the user's location and the store
records for the offers' domains, split offers into available / unavailable
and rank the available ones. Nothing here does I/O except `resolve_stores`,
which only fans out the caller-supplied lookup.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Union

from wishlist_api.core.retailers import normalize_domain
from wishlist_api.core.shipping import AVAILABLE, Availability, ReasonCode, evaluate
from wishlist_api.schemas.offers import AvailabilityResult, CandidateOffer, SortKey, UnavailableOffer
from wishlist_api.schemas.stores import Location, Store

logger = logging.getLogger(__name__)

StoreLookup = Callable[[str], Awaitable[Optional[Store]]]
StoreMap = Mapping[str, Optional[Store]]


async def resolve_stores(offers: Iterable[CandidateOffer], lookup: StoreLookup) -> Dict[str, Optional[Store]]:
    """
    One lookup per distinct domain, issued concurrently.
    Results are keyed by normalized domain so offers can find theirs again.
    """
    domains: List[str] = []
    for o in offers:
        d = normalize_domain(o.domain)
        if d and d not in domains:
            domains.append(d)

    if not domains:
        return {}

    found = await asyncio.gather(*(lookup(d) for d in domains))
    return dict(zip(domains, found))


def _has_country(location: Optional[Location]) -> bool:
    return location is not None and bool(location.country_code)


def check_offer(offer: CandidateOffer, location: Optional[Location], store: Optional[Store]) -> Availability:
    """
    Per-offer verdict. Missing location or an unknown store both fail open.
    """
    if not _has_country(location) or store is None:
        return AVAILABLE
    return evaluate(store, location)


def _coerce_sort_key(sort_key: Union[SortKey, str, None]) -> SortKey:
    if sort_key is None:
        return SortKey.LOWEST_PRICE
    try:
        return SortKey(sort_key)
    except ValueError:
        logger.warning("Unknown sort key %r; using %s", sort_key, SortKey.LOWEST_PRICE.value)
        return SortKey.LOWEST_PRICE


def _timestamp(dt: datetime) -> float:
    # Naive timestamps are taken as UTC so mixed inputs stay comparable
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def sort_offers(offers: List[CandidateOffer], sort_key: Union[SortKey, str, None] = SortKey.LOWEST_PRICE) -> List[CandidateOffer]:
    """
    Stable sort; offers missing the sort attribute go last in input order.
    """
    key = _coerce_sort_key(sort_key)

    if key is SortKey.FASTEST_SHIPPING:
        known = [o for o in offers if o.delivery_time]
        unknown = [o for o in offers if not o.delivery_time]
        return sorted(known, key=lambda o: o.delivery_time) + unknown

    if key is SortKey.NEWEST:
        known = [o for o in offers if o.created_at is not None]
        unknown = [o for o in offers if o.created_at is None]
        # reverse=True keeps equal elements in their original order
        return sorted(known, key=lambda o: _timestamp(o.created_at), reverse=True) + unknown

    return sorted(
        offers,
        key=lambda o: o.normalized_price if o.normalized_price is not None else o.price,
    )


def filter_and_rank(
    offers: List[CandidateOffer],
    location: Optional[Location],
    sort_key: Union[SortKey, str, None] = SortKey.LOWEST_PRICE,
    stores: Optional[StoreMap] = None,
) -> AvailabilityResult:
    """
    Partition offers by store availability for `location`, then rank.

    - No location (or no country code): everything is available.
    - Domain with no store record: available.
    - city_required is set when any offer was held back only for lack of a city.
    """
    stores = stores or {}

    if not _has_country(location):
        return AvailabilityResult(available=sort_offers(list(offers), sort_key))

    available: List[CandidateOffer] = []
    unavailable: List[UnavailableOffer] = []
    city_required = False

    for offer in offers:
        store = stores.get(normalize_domain(offer.domain))
        verdict = check_offer(offer, location, store)

        if verdict.available:
            available.append(offer)
            continue

        if verdict.reason is ReasonCode.CITY_REQUIRED:
            city_required = True

        unavailable.append(
            UnavailableOffer(
                store_name=offer.store_name,
                domain=offer.domain,
                reason_code=verdict.reason,
                reason_message=verdict.message,
            )
        )

    logger.debug(
        "Availability for %s/%s: %d available, %d unavailable",
        location.country_code,
        location.city,
        len(available),
        len(unavailable),
    )

    return AvailabilityResult(
        available=sort_offers(available, sort_key),
        unavailable=unavailable,
        city_required=city_required,
    )

"""
Data access for stores, shipping rules, user locations and items.

Country and city lists are stored as JSON text. They are decoded here, once,
so nothing above this module ever sees raw JSON.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wishlist_api.core.retailers import normalize_domain
from wishlist_api.db.models import ShippingRuleRow, StoreRow, UserLocationRow, WishlistItemRow
from wishlist_api.schemas.stores import (
    Location,
    ShippingRule,
    ShippingRuleCreate,
    Store,
    StoreCreate,
    UserLocationIn,
    UserLocationOut,
)

logger = logging.getLogger(__name__)


class StoreNotFoundError(Exception):
    """Raised when a store id does not exist."""


class DuplicateStoreError(Exception):
    """Raised when a store domain is already registered."""


class DuplicateShippingRuleError(Exception):
    """Raised when a store already has a rule for that country."""


def _decode_list(raw: Optional[str], field: str, owner: str) -> List[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except ValueError:
        logger.warning("Corrupt JSON in %s for %s; treating as empty", field, owner)
        return []
    if not isinstance(value, list):
        logger.warning("Expected a JSON list in %s for %s, got %s", field, owner, type(value).__name__)
        return []
    return [str(v) for v in value if isinstance(v, str) and v.strip()]


def _encode_list(values: Optional[List[str]]) -> Optional[str]:
    if values is None:
        return None
    return json.dumps([v for v in values if v and v.strip()], ensure_ascii=False)


def _rule_from_row(row: ShippingRuleRow, owner: str) -> ShippingRule:
    return ShippingRule(
        id=row.id,
        country_code=row.country_code,
        ships_to_country=row.ships_to_country,
        ships_to_city=row.ships_to_city,
        city_whitelist=_decode_list(row.city_whitelist, "city_whitelist", owner),
        city_blacklist=_decode_list(row.city_blacklist, "city_blacklist", owner),
        delivery_methods=_decode_list(row.delivery_methods, "delivery_methods", owner),
    )


def _store_from_row(row: StoreRow) -> Store:
    return Store(
        id=row.id,
        name=row.name,
        domain=row.domain,
        type=row.type,
        countries_supported=_decode_list(row.countries_supported, "countries_supported", row.domain),
        requires_city=row.requires_city,
        notes=row.notes,
        shipping_rules=[_rule_from_row(r, row.domain) for r in row.shipping_rules],
    )


# --- stores ---

async def get_store_by_domain(session: AsyncSession, domain: str) -> Optional[Store]:
    key = normalize_domain(domain)
    if not key:
        return None
    row = (await session.execute(select(StoreRow).where(StoreRow.domain == key))).scalar_one_or_none()
    return _store_from_row(row) if row else None


async def get_store(session: AsyncSession, store_id: str) -> Optional[Store]:
    row = await session.get(StoreRow, store_id)
    return _store_from_row(row) if row else None


async def create_store(session: AsyncSession, data: StoreCreate) -> Store:
    domain = normalize_domain(data.domain)
    existing = (await session.execute(select(StoreRow.id).where(StoreRow.domain == domain))).first()
    if existing:
        raise DuplicateStoreError(domain)

    row = StoreRow(
        name=data.name,
        domain=domain,
        type=data.type,
        countries_supported=_encode_list([c.strip().upper() for c in data.countries_supported]),
        requires_city=data.requires_city,
        notes=data.notes,
        shipping_rules=[],
    )
    session.add(row)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise DuplicateStoreError(domain)

    logger.info("Store created: %s (%s)", row.domain, row.id)
    return await get_store(session, row.id)


async def add_shipping_rule(session: AsyncSession, store_id: str, data: ShippingRuleCreate) -> ShippingRule:
    store = await session.get(StoreRow, store_id)
    if store is None:
        raise StoreNotFoundError(store_id)

    row = ShippingRuleRow(
        country_code=data.country_code.strip().upper(),
        city_whitelist=_encode_list(data.city_whitelist),
        city_blacklist=_encode_list(data.city_blacklist),
        ships_to_country=data.ships_to_country,
        ships_to_city=data.ships_to_city,
        delivery_methods=_encode_list(data.delivery_methods),
    )
    store.shipping_rules.append(row)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise DuplicateShippingRuleError(f"{store_id}/{row.country_code}")

    logger.info("Shipping rule created: store=%s country=%s", store_id, row.country_code)
    return _rule_from_row(row, store.domain)


def make_store_lookup(session_factory: async_sessionmaker) -> Callable[[str], Any]:
    """
    Store lookup for core.availability.resolve_stores.
    Each call gets its own session so lookups can run concurrently.
    """

    async def lookup(domain: str) -> Optional[Store]:
        async with session_factory() as session:
            return await get_store_by_domain(session, domain)

    return lookup


# --- user location ---

def _location_out(row: UserLocationRow) -> UserLocationOut:
    return UserLocationOut(
        user_id=row.user_id,
        country_code=row.country_code,
        country_name=row.country_name,
        city=row.city or None,
        region=row.region or None,
        postal_code=row.postal_code or None,
        updated_at=row.updated_at.isoformat() if row.updated_at else None,
    )


async def _location_row(session: AsyncSession, user_id: str) -> Optional[UserLocationRow]:
    stmt = select(UserLocationRow).where(UserLocationRow.user_id == user_id)
    return (await session.execute(stmt)).scalar_one_or_none()


async def get_user_location(session: AsyncSession, user_id: str) -> Optional[UserLocationOut]:
    row = await _location_row(session, user_id)
    return _location_out(row) if row else None


async def get_location(session: AsyncSession, user_id: str) -> Optional[Location]:
    """The two fields the availability engine needs, or None when unset."""
    row = await _location_row(session, user_id)
    if row is None:
        return None
    return Location(country_code=row.country_code, city=row.city)


async def upsert_user_location(session: AsyncSession, user_id: str, data: UserLocationIn) -> UserLocationOut:
    row = await _location_row(session, user_id)
    if row is None:
        row = UserLocationRow(user_id=user_id)
        session.add(row)

    row.country_code = data.country_code.strip().upper()
    row.country_name = data.country_name
    row.city = (data.city or "").strip() or None
    row.region = data.region
    row.postal_code = data.postal_code

    await session.commit()
    await session.refresh(row)
    logger.info("User location saved: user=%s country=%s", user_id, row.country_code)
    return _location_out(row)


async def delete_user_location(session: AsyncSession, user_id: str) -> bool:
    row = await _location_row(session, user_id)
    if row is None:
        return False
    await session.delete(row)
    await session.commit()
    return True


# --- items ---

async def get_item(session: AsyncSession, item_id: str) -> Optional[WishlistItemRow]:
    return await session.get(WishlistItemRow, item_id)


async def add_item(
    session: AsyncSession,
    title: str,
    original_url: Optional[str] = None,
    current_price: Optional[float] = None,
    currency: str = "USD",
    source_domain: Optional[str] = None,
) -> WishlistItemRow:
    row = WishlistItemRow(
        title=title,
        original_url=original_url,
        source_domain=normalize_domain(source_domain or original_url) or None,
        current_price=current_price,
        currency=currency,
    )
    session.add(row)
    await session.commit()
    await session.refresh(row)
    return row

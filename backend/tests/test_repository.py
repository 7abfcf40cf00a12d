"""Tests for the database repository."""

import pytest

from wishlist_api.db import repository
from wishlist_api.db.models import ShippingRuleRow, StoreRow
from wishlist_api.db.repository import DuplicateShippingRuleError, DuplicateStoreError, StoreNotFoundError
from wishlist_api.schemas.stores import ShippingRuleCreate, StoreCreate, UserLocationIn


async def test_create_store_and_rules(session):
    store = await repository.create_store(
        session,
        StoreCreate(name="Talabat", domain="www.Talabat.com", type="marketplace", countries_supported=["jo", "AE"], requires_city=True),
    )
    assert store.domain == "talabat.com"
    assert store.countries_supported == ["JO", "AE"]
    assert store.shipping_rules == []

    rule = await repository.add_shipping_rule(
        session,
        store.id,
        ShippingRuleCreate(country_code="jo", city_whitelist=["Amman", "Irbid"], city_blacklist=["Aqaba"], ships_to_city=True),
    )
    assert rule.country_code == "JO"
    assert rule.city_whitelist == ["Amman", "Irbid"]
    assert rule.city_blacklist == ["Aqaba"]


async def test_get_store_by_domain_decodes_lists(session_factory):
    async with session_factory() as s:
        store = await repository.create_store(s, StoreCreate(name="Noon", domain="noon.com", countries_supported=["AE"]))
        await repository.add_shipping_rule(s, store.id, ShippingRuleCreate(country_code="AE", city_whitelist=["Dubai"]))

    async with session_factory() as s:
        found = await repository.get_store_by_domain(s, "https://www.noon.com/uae-en/")
        assert found is not None
        assert found.countries_supported == ["AE"]
        assert found.rule_for("ae").city_whitelist == ["Dubai"]

        assert await repository.get_store_by_domain(s, "unknown.com") is None


async def test_corrupt_json_is_treated_as_empty(session):
    row = StoreRow(name="Broken", domain="broken.com", countries_supported="not json", requires_city=True, shipping_rules=[])
    row.shipping_rules.append(ShippingRuleRow(country_code="US", city_blacklist='{"a": 1}', city_whitelist="[1, \"Austin\"]"))
    session.add(row)
    await session.commit()

    store = await repository.get_store(session, row.id)
    assert store.countries_supported == []
    rule = store.rule_for("US")
    assert rule.city_blacklist == []
    assert rule.city_whitelist == ["Austin"]


async def test_duplicate_store(session):
    await repository.create_store(session, StoreCreate(name="Amazon", domain="amazon.com", countries_supported=["US"]))
    with pytest.raises(DuplicateStoreError):
        await repository.create_store(session, StoreCreate(name="Amazon", domain="WWW.amazon.com", countries_supported=["US"]))


async def test_shipping_rule_errors(session):
    with pytest.raises(StoreNotFoundError):
        await repository.add_shipping_rule(session, "missing", ShippingRuleCreate(country_code="US"))

    store = await repository.create_store(session, StoreCreate(name="Ikea", domain="ikea.com", countries_supported=["JO"]))
    await repository.add_shipping_rule(session, store.id, ShippingRuleCreate(country_code="JO"))
    with pytest.raises(DuplicateShippingRuleError):
        await repository.add_shipping_rule(session, store.id, ShippingRuleCreate(country_code="jo"))


async def test_make_store_lookup(session_factory):
    async with session_factory() as s:
        await repository.create_store(s, StoreCreate(name="Amazon", domain="amazon.com", countries_supported=["US"]))

    lookup = repository.make_store_lookup(session_factory)
    store = await lookup("amazon.com")
    assert store.name == "Amazon"
    assert await lookup("ebay.com") is None


async def test_user_location_lifecycle(session):
    assert await repository.get_location(session, "u1") is None

    saved = await repository.upsert_user_location(
        session, "u1", UserLocationIn(country_code="jo", country_name="Jordan", city="  Amman ")
    )
    assert saved.country_code == "JO"
    assert saved.city == "Amman"

    updated = await repository.upsert_user_location(session, "u1", UserLocationIn(country_code="JO", country_name="Jordan"))
    assert updated.city is None

    location = await repository.get_location(session, "u1")
    assert location.country_code == "JO"
    assert location.city is None

    assert await repository.delete_user_location(session, "u1") is True
    assert await repository.delete_user_location(session, "u1") is False


async def test_add_item_derives_source_domain(session):
    item = await repository.add_item(session, "Headphones", original_url="https://www.amazon.com/dp/B0", current_price=299.99)
    assert item.source_domain == "amazon.com"
    fetched = await repository.get_item(session, item.id)
    assert fetched.title == "Headphones"

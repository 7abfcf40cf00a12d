"""Tests for the availability filter & ranker."""

from datetime import datetime, timezone

from wishlist_api.core.availability import check_offer, filter_and_rank, resolve_stores, sort_offers
from wishlist_api.core.shipping import ReasonCode
from wishlist_api.schemas.offers import CandidateOffer, SortKey
from wishlist_api.schemas.stores import Location, ShippingRule, Store


def _offer(name, price=10.0, domain=None, **extra):
    return CandidateOffer(
        store_name=name,
        domain=domain or f"{name.lower()}.com",
        price=price,
        currency="USD",
        url=f"https://{name.lower()}.com/p/1",
        **extra,
    )


US_ONLY = Store(domain="usonly.com", countries_supported=["US"])
NEEDS_CITY = Store(
    domain="needscity.com",
    countries_supported=["JO"],
    requires_city=True,
    shipping_rules=[ShippingRule(country_code="JO", city_whitelist=["Amman"])],
)


def test_no_location_returns_everything():
    offers = [_offer("B", 20), _offer("UsOnly", 5), _offer("A", 10)]
    result = filter_and_rank(offers, None, SortKey.LOWEST_PRICE, {"usonly.com": US_ONLY})
    assert [o.store_name for o in result.available] == ["UsOnly", "A", "B"]
    assert result.unavailable == []
    assert result.city_required is False


def test_location_without_country_is_treated_as_missing():
    result = filter_and_rank([_offer("UsOnly")], Location(city="Amman"), stores={"usonly.com": US_ONLY})
    assert len(result.available) == 1


def test_unknown_store_is_available():
    result = filter_and_rank([_offer("Mystery")], Location(country_code="JO"), stores={})
    assert [o.store_name for o in result.available] == ["Mystery"]


def test_partitions_with_reasons():
    offers = [_offer("UsOnly", 5), _offer("Mystery", 7), _offer("NeedsCity", 3)]
    stores = {"usonly.com": US_ONLY, "needscity.com": NEEDS_CITY}

    result = filter_and_rank(offers, Location(country_code="JO"), SortKey.LOWEST_PRICE, stores)

    assert [o.store_name for o in result.available] == ["Mystery"]
    assert [(u.store_name, u.reason_code) for u in result.unavailable] == [
        ("UsOnly", ReasonCode.NO_COUNTRY_MATCH),
        ("NeedsCity", ReasonCode.CITY_REQUIRED),
    ]
    assert result.unavailable[0].reason_message == "Doesn't ship to your country"
    assert result.city_required is True


def test_city_required_only_for_missing_city():
    stores = {"needscity.com": NEEDS_CITY}
    result = filter_and_rank([_offer("NeedsCity")], Location(country_code="JO", city="Irbid"), stores=stores)
    assert result.unavailable[0].reason_code is ReasonCode.NO_CITY_MATCH
    assert result.city_required is False

    result = filter_and_rank([_offer("NeedsCity")], Location(country_code="JO", city="amman"), stores=stores)
    assert len(result.available) == 1


def test_store_lookup_uses_normalized_domain():
    offer = _offer("UsOnly", domain="WWW.UsOnly.com")
    result = filter_and_rank([offer], Location(country_code="JO"), stores={"usonly.com": US_ONLY})
    assert result.unavailable[0].reason_code is ReasonCode.NO_COUNTRY_MATCH


def test_lowest_price_is_stable():
    offers = [_offer("A", 10), _offer("B", 10), _offer("C", 5)]
    ranked = sort_offers(offers, SortKey.LOWEST_PRICE)
    assert [o.store_name for o in ranked] == ["C", "A", "B"]


def test_lowest_price_prefers_normalized_price():
    offers = [
        _offer("Euro", 100, normalized_price=109.0),
        _offer("Dollar", 105),
    ]
    ranked = sort_offers(offers, SortKey.LOWEST_PRICE)
    assert [o.store_name for o in ranked] == ["Dollar", "Euro"]


def test_fastest_shipping_missing_last():
    offers = [
        _offer("None1"),
        _offer("Slow", delivery_time="5-7 days"),
        _offer("Fast", delivery_time="1-2 days"),
        _offer("None2"),
        _offer("Fast2", delivery_time="1-2 days"),
    ]
    ranked = sort_offers(offers, SortKey.FASTEST_SHIPPING)
    assert [o.store_name for o in ranked] == ["Fast", "Fast2", "Slow", "None1", "None2"]


def test_newest_descending_and_stable():
    t1 = datetime(2026, 1, 1, tzinfo=timezone.utc)
    t2 = datetime(2026, 2, 1, tzinfo=timezone.utc)
    offers = [
        _offer("Old", created_at=t1),
        _offer("Undated"),
        _offer("New", created_at=t2),
        _offer("New2", created_at=datetime(2026, 2, 1)),  # naive, read as UTC
    ]
    ranked = sort_offers(offers, SortKey.NEWEST)
    assert [o.store_name for o in ranked] == ["New", "New2", "Old", "Undated"]


def test_unknown_sort_key_falls_back_to_price():
    offers = [_offer("A", 10), _offer("B", 1)]
    assert [o.store_name for o in sort_offers(offers, "cheapest-ish")] == ["B", "A"]
    assert [o.store_name for o in sort_offers(offers, "fastest_shipping")] == ["A", "B"]


def test_check_offer_fails_open():
    offer = _offer("UsOnly")
    assert check_offer(offer, None, US_ONLY).available
    assert check_offer(offer, Location(country_code="JO"), None).available
    assert not check_offer(offer, Location(country_code="JO"), US_ONLY).available


async def test_resolve_stores_one_lookup_per_domain():
    calls = []

    async def lookup(domain):
        calls.append(domain)
        return US_ONLY if domain == "usonly.com" else None

    offers = [_offer("UsOnly"), _offer("UsOnly", domain="www.usonly.com"), _offer("Other")]
    stores = await resolve_stores(offers, lookup)

    assert sorted(calls) == ["other.com", "usonly.com"]
    assert stores == {"usonly.com": US_ONLY, "other.com": None}


async def test_resolve_stores_empty():
    async def lookup(domain):
        raise AssertionError("should not be called")

    assert await resolve_stores([], lookup) == {}

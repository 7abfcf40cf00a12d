"""Tests for store domain helpers."""

from wishlist_api.core.retailers import domain_from_url, normalize_domain, store_name_from_domain


def test_normalize_domain():
    assert normalize_domain("WWW.Amazon.com") == "amazon.com"
    assert normalize_domain("https://www.ebay.com/itm/123") == "ebay.com"
    assert normalize_domain("walmart.com.") == "walmart.com"
    assert normalize_domain("m.aliexpress.com") == "aliexpress.com"
    assert normalize_domain("bestbuy.com/site/x") == "bestbuy.com"
    assert normalize_domain("") == ""
    assert normalize_domain(None) == ""


def test_domain_from_url():
    assert domain_from_url("https://www.target.com/p/abc") == "target.com"
    assert domain_from_url("not a url") is None
    assert domain_from_url(None) is None


def test_store_name_from_domain():
    assert store_name_from_domain("www.bestbuy.com") == "Bestbuy"
    assert store_name_from_domain("") == "Unknown"

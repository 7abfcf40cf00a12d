"""Tests for currency normalization."""

import pytest

from wishlist_api.core.exchange_rates import convert_amount, get_rate, normalize_prices
from wishlist_api.schemas.offers import CandidateOffer


def _offer(price, currency):
    return CandidateOffer(store_name="S", domain="s.com", price=price, currency=currency, url="https://s.com/1")


def test_same_currency():
    assert get_rate("usd", "USD") == 1.0
    assert convert_amount(12.5, "EUR", "eur") == 12.5


def test_direct_and_inverse_rates():
    assert convert_amount(100, "USD", "EUR") == 92.0
    # JPY -> USD only exists as USD -> JPY
    assert get_rate("JPY", "USD") == pytest.approx(1 / 149.5)


def test_unknown_pair():
    assert get_rate("USD", "JOD") is None
    assert convert_amount(10, "XXX", "USD") is None


def test_normalize_prices_fills_converted_values():
    offers = normalize_prices([_offer(100, "EUR"), _offer(50, "JOD")], "usd")
    assert offers[0].normalized_price == 109.0
    assert offers[0].normalized_currency == "USD"
    assert offers[1].normalized_price is None


def test_normalize_prices_without_target():
    offers = [_offer(100, "EUR")]
    assert normalize_prices(offers, None) is offers

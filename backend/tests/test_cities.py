"""Tests for the cities module."""

from wishlist_api.core.cities import cities_match, normalize_city


def test_normalize_strips_diacritics_case_and_whitespace():
    assert normalize_city("  São   Paulo ") == "sao paulo"
    assert normalize_city("MÜNCHEN") == "munchen"
    assert normalize_city("Zürich\t") == "zurich"


def test_normalize_empty():
    assert normalize_city("") == ""
    assert normalize_city(None) == ""
    assert normalize_city("   ") == ""


def test_cities_match():
    assert cities_match("São Paulo", "sao paulo")
    assert cities_match("amman", "Amman")
    assert cities_match("New  York", "new york")


def test_cities_do_not_match():
    assert not cities_match("Amman", "Irbid")
    # No substring matching
    assert not cities_match("York", "New York")


def test_blank_never_matches():
    assert not cities_match("", "")
    assert not cities_match(None, "Amman")
    assert not cities_match("Amman", "  ")

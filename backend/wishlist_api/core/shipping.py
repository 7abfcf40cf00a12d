"""
Shipping rule evaluation for one (store, location) pair.

The checks run in a fixed order and the first one that reaches a verdict
wins. A check returns None to hand over to the next one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, ClassVar, List, Optional, Tuple, Union

from wishlist_api.core.cities import cities_match
from wishlist_api.schemas.stores import Location, ShippingRule, Store

logger = logging.getLogger(__name__)


class ReasonCode(str, Enum):
    NO_COUNTRY_MATCH = "no_country_match"
    NO_CITY_MATCH = "no_city_match"
    CITY_REQUIRED = "city_required"


REASON_MESSAGES = {
    ReasonCode.NO_COUNTRY_MATCH: "Doesn't ship to your country",
    ReasonCode.NO_CITY_MATCH: "Doesn't deliver to your city",
    ReasonCode.CITY_REQUIRED: "Add your city to see if this store delivers to you",
}


def reason_message(code: ReasonCode) -> str:
    return REASON_MESSAGES[ReasonCode(code)]


@dataclass(frozen=True)
class Available:
    available: ClassVar[bool] = True


@dataclass(frozen=True)
class Unavailable:
    reason: ReasonCode
    available: ClassVar[bool] = False

    @property
    def message(self) -> str:
        return reason_message(self.reason)


Availability = Union[Available, Unavailable]

AVAILABLE = Available()

Check = Callable[[Store, Location, Optional[ShippingRule]], Optional[Availability]]


def _country_supported(store: Store, location: Location, rule: Optional[ShippingRule]) -> Optional[Availability]:
    if location.country_code not in store.countries_supported:
        return Unavailable(ReasonCode.NO_COUNTRY_MATCH)
    return None


def _rule_exists(store: Store, location: Location, rule: Optional[ShippingRule]) -> Optional[Availability]:
    # No fine-grained rule for this country: countries_supported is enough
    if rule is None:
        return AVAILABLE
    return None


def _ships_to_country(store: Store, location: Location, rule: Optional[ShippingRule]) -> Optional[Availability]:
    if not rule.ships_to_country:
        return Unavailable(ReasonCode.NO_COUNTRY_MATCH)
    return None


def _city_present(store: Store, location: Location, rule: Optional[ShippingRule]) -> Optional[Availability]:
    if store.requires_city and not location.city:
        return Unavailable(ReasonCode.CITY_REQUIRED)
    return None


def _city_not_blacklisted(store: Store, location: Location, rule: Optional[ShippingRule]) -> Optional[Availability]:
    if not store.requires_city:
        return None
    if any(cities_match(location.city, c) for c in rule.city_blacklist):
        return Unavailable(ReasonCode.NO_CITY_MATCH)
    return None


def _city_whitelisted(store: Store, location: Location, rule: Optional[ShippingRule]) -> Optional[Availability]:
    if not store.requires_city or not rule.city_whitelist:
        return None
    if not any(cities_match(location.city, c) for c in rule.city_whitelist):
        return Unavailable(ReasonCode.NO_CITY_MATCH)
    return None


def _ships_to_city(store: Store, location: Location, rule: Optional[ShippingRule]) -> Optional[Availability]:
    if store.requires_city and not rule.ships_to_city:
        return Unavailable(ReasonCode.NO_CITY_MATCH)
    return None


CHECKS: List[Tuple[str, Check]] = [
    ("country_supported", _country_supported),
    ("rule_exists", _rule_exists),
    ("ships_to_country", _ships_to_country),
    ("city_present", _city_present),
    ("city_not_blacklisted", _city_not_blacklisted),
    ("city_whitelisted", _city_whitelisted),
    ("ships_to_city", _ships_to_city),
]


def evaluate(store: Store, location: Location) -> Availability:
    """
    Decide whether `store` can deliver to `location`.

    Blacklist runs before whitelist, so a city listed on both is rejected.
    """
    rule = store.rule_for(location.country_code)

    for name, check in CHECKS:
        verdict = check(store, location, rule)
        if verdict is None:
            continue
        if not verdict.available:
            logger.debug(
                "Store %s unavailable for %s/%s: %s (%s)",
                store.domain,
                location.country_code,
                location.city,
                verdict.reason.value,
                name,
            )
        return verdict

    return AVAILABLE

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _upper_code(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip().upper()
    return v or None


class Location(CamelModel):
    country_code: Optional[str] = None   # ISO-3166 alpha-2
    city: Optional[str] = None

    @field_validator("country_code")
    @classmethod
    def _country(cls, v: Optional[str]) -> Optional[str]:
        return _upper_code(v)

    @field_validator("city")
    @classmethod
    def _city(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class ShippingRule(CamelModel):
    id: Optional[str] = None
    country_code: str
    ships_to_country: bool = True
    ships_to_city: bool = True
    city_whitelist: List[str] = Field(default_factory=list)
    city_blacklist: List[str] = Field(default_factory=list)
    delivery_methods: List[str] = Field(default_factory=list)

    @field_validator("country_code")
    @classmethod
    def _country(cls, v: str) -> str:
        return v.strip().upper()


class Store(CamelModel):
    id: Optional[str] = None
    name: str = ""
    domain: str
    type: str = "website"                # "website" | "marketplace"
    countries_supported: List[str] = Field(default_factory=list)
    requires_city: bool = False
    notes: Optional[str] = None
    shipping_rules: List[ShippingRule] = Field(default_factory=list)

    @field_validator("countries_supported")
    @classmethod
    def _countries(cls, v: List[str]) -> List[str]:
        return [c.strip().upper() for c in v if c and c.strip()]

    def rule_for(self, country_code: Optional[str]) -> Optional[ShippingRule]:
        if not country_code:
            return None
        code = country_code.upper()
        for rule in self.shipping_rules:
            if rule.country_code == code:
                return rule
        return None


# --- request / response bodies ---

class StoreCreate(CamelModel):
    name: str
    domain: str
    type: str = Field("website", pattern="^(website|marketplace)$")
    countries_supported: List[str]
    requires_city: bool = False
    notes: Optional[str] = None


class ShippingRuleCreate(CamelModel):
    country_code: str = Field(..., min_length=2, max_length=2)
    city_whitelist: Optional[List[str]] = None
    city_blacklist: Optional[List[str]] = None
    ships_to_country: bool = True
    ships_to_city: bool = True
    delivery_methods: Optional[List[str]] = None


class UserLocationIn(CamelModel):
    country_code: str = Field(..., min_length=2, max_length=2)
    country_name: str
    city: Optional[str] = None
    region: Optional[str] = None
    postal_code: Optional[str] = None


class UserLocationOut(CamelModel):
    user_id: str
    country_code: str
    country_name: str
    city: Optional[str] = None
    region: Optional[str] = None
    postal_code: Optional[str] = None
    updated_at: Optional[str] = None

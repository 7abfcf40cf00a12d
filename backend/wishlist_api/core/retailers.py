from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlparse


def normalize_domain(domain: Optional[str]) -> str:
    """
    Normalize store domains so lookups hit the stores table:
      - "WWW.Amazon.com"           => "amazon.com"
      - "https://www.ebay.com/itm" => "ebay.com"
      - "walmart.com."             => "walmart.com"
    """
    if not domain:
        return ""

    s = domain.strip().lower()

    # Accept full URLs as well as bare hosts
    if "://" in s:
        s = urlparse(s).hostname or ""
    else:
        s = s.split("/", 1)[0]

    s = s.split(":", 1)[0].rstrip(".")
    s = re.sub(r"^(www\d*|m)\.", "", s)
    return s


def domain_from_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    try:
        host = urlparse(url.strip()).hostname
    except ValueError:
        return None
    if not host:
        return None
    return normalize_domain(host)


def store_name_from_domain(domain: Optional[str]) -> str:
    """
    "bestbuy.com" => "Bestbuy". Used when the only thing we know is the host.
    """
    d = normalize_domain(domain)
    if not d:
        return "Unknown"
    return d.split(".", 1)[0].capitalize()

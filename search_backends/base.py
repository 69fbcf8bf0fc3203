"""
Abstract base for all price search backends.
Every backend must return the same PriceQuote list — callers don't care
which provider is active.
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional
from urllib.parse import urlsplit, urlunsplit

from price_parser import is_plausible_price


@dataclass(frozen=True)
class PriceQuote:
    """One retailer's observed price for a product."""
    retailer: str
    price: Decimal
    currency: str               # ISO-4217
    product_url: str
    product_title: str
    image_url: Optional[str] = None
    in_stock: bool = True

    @property
    def is_valid(self) -> bool:
        return is_plausible_price(self.price)

    def to_dict(self) -> dict:
        return {
            "retailer":      self.retailer,
            "price":         float(self.price),
            "currency":      self.currency,
            "product_url":   self.product_url,
            "product_title": self.product_title,
            "image_url":     self.image_url,
            "in_stock":      self.in_stock,
        }


def finalize_quotes(quotes: Iterable[PriceQuote], max_results: int) -> list[PriceQuote]:
    """
    Apply the output contract shared by every backend:
      1. drop quotes failing the plausibility filter
      2. de-duplicate by product_url — the LAST quote seen for a URL wins
      3. sort ascending by price (stable, so ties keep processing order)
      4. truncate to max_results
    """
    by_url: dict[str, PriceQuote] = {}
    for quote in quotes:
        if not quote.is_valid:
            continue
        # pop first so a re-seen URL moves to its latest processing position
        by_url.pop(quote.product_url, None)
        by_url[quote.product_url] = quote
    result = sorted(by_url.values(), key=lambda q: q.price)
    return result[:max(max_results, 0)]


def canonical_url(url: str) -> str:
    """Key for de-duplication: lower-case scheme/host, no fragment, no trailing slash."""
    try:
        parts = urlsplit((url or "").strip())
    except ValueError:
        return url or ""
    path = parts.path.rstrip("/")
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, parts.query, ""))


_TLD_RE = re.compile(r"\.(com|co\.uk|org\.uk|ca|com\.au|au|de|fr|ie|net)$")


def retailer_from_domain(domain: str) -> str:
    """'www.argos.co.uk' → 'Argos'."""
    cleaned = (domain or "").strip().lower()
    cleaned = re.sub(r"^www\d?\.", "", cleaned)
    cleaned = _TLD_RE.sub("", cleaned)
    if not cleaned:
        return "Unknown"
    return cleaned[0].upper() + cleaned[1:]


class PriceSearchBackend(ABC):
    """All backends must implement this interface."""

    @abstractmethod
    async def search(self, query: str, max_results: int) -> list[PriceQuote]:
        """
        Search retailers for products matching `query`.
        Returns up to max_results PriceQuote objects, cheapest first.
        Raises RuntimeError when the provider itself cannot be reached.
        """
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable backend name for logs/display."""
        ...

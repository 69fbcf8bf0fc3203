"""
SerpAPI Google Shopping backend — the preferred price source.

Sign up at: https://serpapi.com/  (engine=google_shopping)

One request per search. Shopping results carry a display price string such as
"£52.95" or "$1,299.00"; that format is constrained enough that a symbol sniff
plus a digits-only parse is more reliable than the free-text parser.
"""
from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Optional

import aiohttp

from price_parser import is_plausible_price
from search_backends.base import PriceQuote, PriceSearchBackend, finalize_quotes

logger = logging.getLogger(__name__)

SEARCH_URL = "https://serpapi.com/search"

_SYMBOL_CURRENCY = [("£", "GBP"), ("€", "EUR"), ("$", "USD")]


class SerpAPIShoppingBackend(PriceSearchBackend):

    def __init__(self, api_key: str, default_currency: str = "GBP", timeout: float = 15.0) -> None:
        self._key = api_key
        self._default_currency = default_currency
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "SerpAPI / Google Shopping"

    async def search(self, query: str, max_results: int = 10) -> list[PriceQuote]:
        params = {
            "engine":  "google_shopping",
            "q":       query,
            "api_key": self._key,
            "num":     "10",
        }
        raw_results = await self._fetch(params)
        logger.info("SerpAPI returned %d shopping results for '%s'", len(raw_results), query)

        quotes: list[PriceQuote] = []
        for raw in raw_results:
            quote = self._parse_result(raw)
            if quote:
                quotes.append(quote)
        return finalize_quotes(quotes, max_results)

    # ── HTTP helper ───────────────────────────────────────────────────────────

    async def _fetch(self, params: dict) -> list:
        """Single HTTP call. Raises RuntimeError on non-200."""
        async with aiohttp.ClientSession() as session:
            async with session.get(
                SEARCH_URL,
                params=params,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise RuntimeError(f"SerpAPI error {resp.status}: {text[:200]}")
                data = await resp.json()
        if data.get("error"):
            # SerpAPI reports "no results" as an error string on a 200
            logger.warning("SerpAPI: %s", data["error"])
        return data.get("shopping_results") or []

    # ── Parser ────────────────────────────────────────────────────────────────

    def _parse_result(self, raw: dict) -> Optional[PriceQuote]:
        if not raw or not isinstance(raw, dict):
            return None
        price_str = raw.get("price")
        link = raw.get("link") or raw.get("product_link")
        if not link or (not price_str and raw.get("extracted_price") is None):
            return None

        price = _parse_price(price_str)
        if price is None and raw.get("extracted_price") is not None:
            try:
                price = Decimal(str(raw["extracted_price"]))
            except (InvalidOperation, ValueError):
                price = None
        if not is_plausible_price(price):
            return None

        currency = _sniff_currency(str(price_str or "")) or raw.get("currency") or self._default_currency

        return PriceQuote(
            retailer=raw.get("source") or "Unknown",
            price=price,
            currency=currency,
            product_url=link,
            product_title=(raw.get("title") or "").strip(),
            image_url=raw.get("thumbnail"),
            in_stock=raw.get("in_stock") is not False,
        )


# ── Helpers ────────────────────────────────────────────────────────────────────

def _parse_price(price_str) -> Optional[Decimal]:
    """Extract numeric value from strings like '£29.99', '29.99', '$1,299.00'."""
    if price_str is None:
        return None
    cleaned = re.sub(r"[^\d.]", "", str(price_str).replace(",", ""))
    if not cleaned:
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None


def _sniff_currency(price_str: str) -> Optional[str]:
    for symbol, code in _SYMBOL_CURRENCY:
        if symbol in price_str:
            return code
    return None

"""
Google Custom Search backend — generic web search, used when no shopping
search key is configured.

Setup:
  1. https://console.cloud.google.com/ → enable "Custom Search API" → API key
  2. https://cse.google.com/ → create a search engine over the entire web
  3. Set GOOGLE_API_KEY and GOOGLE_SEARCH_ENGINE_ID

Web results have no structured price, so each result goes through:
  1. skip known non-commerce hosts (encyclopedia, social, video)
  2. price from title + snippet via price_parser
  3. if none, and the snippet smells like a shop listing, fetch the page
     itself via page_price (slower, so only for likely candidates)

Free tier is 100 queries/day, so at most MAX_QUERY_VARIANTS requests are
made per search.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiohttp

from page_price import fetch_price_from_page
from price_parser import ParsedPrice, extract_price
from search_backends.base import (
    PriceQuote, PriceSearchBackend, canonical_url, finalize_quotes, retailer_from_domain,
)

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.googleapis.com/customsearch/v1"

# Variants in priority order; only the first MAX_QUERY_VARIANTS are sent
QUERY_SUFFIXES = ("", " buy", " price", " for sale")
MAX_QUERY_VARIANTS = 2

SKIP_DOMAINS = (
    "wikipedia.org",
    "reddit.com",
    "youtube.com",
    "facebook.com",
    "twitter.com",
    "instagram.com",
    "pinterest.com",
)

SHOPPING_INTENT_KEYWORDS = ("price", "buy", "£", "$", "€", "add to basket", "add to cart", "in stock")


def query_variants(query: str) -> list[str]:
    return [f"{query}{suffix}" for suffix in QUERY_SUFFIXES[:MAX_QUERY_VARIANTS]]


def is_skipped_domain(display_link: str) -> bool:
    host = (display_link or "").lower()
    return any(domain in host for domain in SKIP_DOMAINS)


def has_shopping_intent(snippet: str) -> bool:
    text = (snippet or "").lower()
    return any(keyword in text for keyword in SHOPPING_INTENT_KEYWORDS)


class GoogleSearchBackend(PriceSearchBackend):

    def __init__(
        self,
        api_key: str,
        search_engine_id: str,
        default_currency: str = "GBP",
        timeout: float = 15.0,
        page_fetch_timeout: float = 10.0,
    ) -> None:
        self._key = api_key
        self._cx = search_engine_id
        self._default_currency = default_currency
        self._timeout = timeout
        self._page_fetch_timeout = page_fetch_timeout

    @property
    def name(self) -> str:
        return "Google Custom Search"

    async def search(self, query: str, max_results: int = 10) -> list[PriceQuote]:
        """
        Send the query variants concurrently and merge them in variant order.
        A failed variant is logged and skipped; if every variant fails the
        provider is considered unreachable and RuntimeError is raised.
        """
        variants = query_variants(query)
        outcomes = await asyncio.gather(
            *[self._fetch(v) for v in variants],
            return_exceptions=True,
        )

        items: list[dict] = []
        failures = 0
        for variant, outcome in zip(variants, outcomes):
            if isinstance(outcome, BaseException):
                failures += 1
                logger.warning("Google search failed for query '%s': %s", variant, outcome)
                continue
            items.extend(outcome)

        if failures == len(variants):
            raise RuntimeError(f"Google Custom Search unavailable ({failures} queries failed)")

        candidates = self._select_candidates(items)
        quotes = await self._price_candidates(candidates)
        logger.info(
            "Google search '%s' → %d results, %d candidates, %d priced",
            query, len(items), len(candidates), len(quotes),
        )
        return finalize_quotes(quotes, max_results)

    # ── HTTP helper ───────────────────────────────────────────────────────────

    async def _fetch(self, search_query: str) -> list[dict]:
        """One Custom Search request. Raises RuntimeError on non-200."""
        params = {
            "key":  self._key,
            "cx":   self._cx,
            "q":    search_query,
            "num":  "10",
            "safe": "active",
        }
        async with aiohttp.ClientSession() as session:
            async with session.get(
                SEARCH_URL,
                params=params,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise RuntimeError(f"Google API error {resp.status}: {text[:200]}")
                data = await resp.json()
        return data.get("items") or []

    # ── Candidate selection and pricing ───────────────────────────────────────

    def _select_candidates(self, items: list[dict]) -> list[dict]:
        """De-duplicate by link (first variant wins) and drop non-commerce hosts."""
        seen: set[str] = set()
        candidates: list[dict] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            link = item.get("link")
            if not link:
                continue
            key = canonical_url(link)
            if key in seen:
                continue
            seen.add(key)
            if is_skipped_domain(item.get("displayLink", "")):
                continue
            candidates.append(item)
        return candidates

    async def _price_candidates(self, candidates: list[dict]) -> list[PriceQuote]:
        """
        Snippet price first; page fetch for the rest that show shopping intent.
        Page fetches run concurrently but results are assembled in candidate
        order, so the output does not depend on completion order.
        """
        prices: list[Optional[ParsedPrice]] = []
        to_fetch: list[int] = []
        for index, item in enumerate(candidates):
            title = item.get("title") or ""
            snippet = item.get("snippet") or ""
            price = extract_price(f"{title} {snippet}", self._default_currency)
            prices.append(price)
            if price is None and has_shopping_intent(snippet):
                to_fetch.append(index)

        if to_fetch:
            fetched = await asyncio.gather(
                *[
                    fetch_price_from_page(
                        candidates[i]["link"],
                        default_currency=self._default_currency,
                        timeout=self._page_fetch_timeout,
                    )
                    for i in to_fetch
                ],
                return_exceptions=True,
            )
            for index, outcome in zip(to_fetch, fetched):
                if isinstance(outcome, ParsedPrice):
                    prices[index] = outcome
                elif isinstance(outcome, BaseException):
                    logger.warning("Page price lookup crashed for %s: %s", candidates[index]["link"], outcome)

        quotes: list[PriceQuote] = []
        for item, price in zip(candidates, prices):
            if price is None:
                continue
            quotes.append(self._to_quote(item, price))
        return quotes

    def _to_quote(self, item: dict, price: ParsedPrice) -> PriceQuote:
        pagemap = item.get("pagemap") or {}
        image_url = None
        for key in ("cse_image", "cse_thumbnail"):
            images = pagemap.get(key) or []
            if images and isinstance(images[0], dict) and images[0].get("src"):
                image_url = images[0]["src"]
                break

        return PriceQuote(
            retailer=retailer_from_domain(item.get("displayLink", "")),
            price=price.amount,
            currency=price.currency,
            product_url=item["link"],
            product_title=(item.get("title") or "").strip(),
            image_url=image_url,
            in_stock=True,
        )

"""
Tests for price_search.py.

Covers:
  - backend selection priority (shopping search before web search)
  - ConfigurationMissingError with nothing configured
  - provider failures degrade to an empty list
  - final plausibility / de-dup / ordering / limit contract
"""
from __future__ import annotations

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from price_search import search_prices, select_backend
from provider_config import ConfigurationMissingError, PriceSearchConfig, ProviderConfig
from search_backends.base import PriceQuote
from search_backends.google_search_backend import GoogleSearchBackend
from search_backends.serpapi_backend import SerpAPIShoppingBackend

BOTH = PriceSearchConfig(serpapi_key="serp", google_api_key="gkey", google_search_engine_id="cx")
WEB_ONLY = PriceSearchConfig(google_api_key="gkey", google_search_engine_id="cx")
NOTHING = PriceSearchConfig()


def quote(price: str, url: str, title: str = "Item") -> PriceQuote:
    return PriceQuote(
        retailer="Shop",
        price=Decimal(price),
        currency="GBP",
        product_url=url,
        product_title=title,
    )


class TestSelectBackend:
    def test_shopping_search_preferred(self):
        assert isinstance(select_backend(BOTH), SerpAPIShoppingBackend)

    def test_web_search_when_no_shopping_key(self):
        assert isinstance(select_backend(WEB_ONLY), GoogleSearchBackend)

    def test_web_search_needs_engine_id(self):
        with pytest.raises(ConfigurationMissingError):
            select_backend(PriceSearchConfig(google_api_key="gkey"))

    def test_nothing_configured(self):
        with pytest.raises(ConfigurationMissingError):
            select_backend(NOTHING)


@pytest.mark.asyncio
class TestSearchPrices:
    async def test_not_configured_raises(self):
        with pytest.raises(ConfigurationMissingError):
            await search_prices("oak desk", ProviderConfig(price_search=NOTHING))

    async def test_provider_failure_returns_empty(self):
        with patch.object(SerpAPIShoppingBackend, "search", AsyncMock(side_effect=RuntimeError("SerpAPI error 500: boom"))):
            result = await search_prices("oak desk", ProviderConfig(price_search=BOTH))
        assert result == []

    async def test_blank_query_returns_empty(self):
        with patch.object(SerpAPIShoppingBackend, "search", AsyncMock()) as search:
            assert await search_prices("   ", ProviderConfig(price_search=BOTH)) == []
        search.assert_not_awaited()

    async def test_results_filtered_deduped_sorted_and_truncated(self):
        raw = [
            quote("50.00", "https://a.example.com/1", "first"),
            quote("999999", "https://b.example.com/1"),
            quote("20.00", "https://c.example.com/1"),
            quote("45.00", "https://a.example.com/1", "second"),
            quote("30.00", "https://d.example.com/1"),
        ]
        with patch.object(SerpAPIShoppingBackend, "search", AsyncMock(return_value=raw)):
            result = await search_prices("oak desk", ProviderConfig(price_search=BOTH), max_results=2)

        assert [q.price for q in result] == [Decimal("20.00"), Decimal("30.00")]

    async def test_last_write_wins_on_duplicate_url(self):
        raw = [
            quote("50.00", "https://a.example.com/1", "first snippet"),
            quote("55.00", "https://a.example.com/1", "second snippet"),
        ]
        with patch.object(SerpAPIShoppingBackend, "search", AsyncMock(return_value=raw)):
            result = await search_prices("oak desk", ProviderConfig(price_search=BOTH))

        assert len(result) == 1
        assert result[0].product_title == "second snippet"

    async def test_every_returned_price_is_plausible(self):
        raw = [
            quote("0.00", "https://a.example.com/1"),
            quote("100000.01", "https://b.example.com/1"),
            quote("999999.00", "https://c.example.com/1"),
            quote("100000", "https://d.example.com/1"),
            quote("0.01", "https://e.example.com/1"),
        ]
        with patch.object(SerpAPIShoppingBackend, "search", AsyncMock(return_value=raw)):
            result = await search_prices("oak desk", ProviderConfig(price_search=BOTH))

        assert [q.price for q in result] == [Decimal("0.01"), Decimal("100000")]
        for q in result:
            assert Decimal("0.01") <= q.price <= Decimal("100000")
            assert q.price != Decimal("999999")

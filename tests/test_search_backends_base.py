"""
Tests for search_backends/base.py.

Covers:
  - PriceQuote.is_valid / to_dict
  - finalize_quotes ordering, last-write-wins and truncation
  - canonical_url / retailer_from_domain
"""
from __future__ import annotations

from decimal import Decimal

import pytest

from search_backends.base import PriceQuote, canonical_url, finalize_quotes, retailer_from_domain


def quote(price: str, url: str, title: str = "Item") -> PriceQuote:
    return PriceQuote(
        retailer="Shop",
        price=Decimal(price),
        currency="GBP",
        product_url=url,
        product_title=title,
    )


class TestPriceQuote:
    def test_valid(self):
        assert quote("19.99", "https://x.example.com").is_valid

    def test_placeholder_invalid(self):
        assert not quote("999999", "https://x.example.com").is_valid

    def test_to_dict(self):
        data = quote("19.99", "https://x.example.com").to_dict()
        assert data["price"] == 19.99
        assert data["currency"] == "GBP"
        assert data["in_stock"] is True
        assert data["image_url"] is None


class TestFinalizeQuotes:
    def test_sorted_ascending(self):
        result = finalize_quotes(
            [quote("3", "https://a.example.com"), quote("1", "https://b.example.com"), quote("2", "https://c.example.com")],
            10,
        )
        assert [q.price for q in result] == [Decimal("1"), Decimal("2"), Decimal("3")]

    def test_last_write_wins(self):
        result = finalize_quotes(
            [quote("5", "https://a.example.com", "old"), quote("9", "https://a.example.com", "new")],
            10,
        )
        assert len(result) == 1
        assert result[0].product_title == "new"

    def test_ties_keep_processing_order(self):
        result = finalize_quotes(
            [quote("5", "https://a.example.com", "a"), quote("5", "https://b.example.com", "b")],
            10,
        )
        assert [q.product_title for q in result] == ["a", "b"]

    def test_invalid_dropped(self):
        assert finalize_quotes([quote("0", "https://a.example.com")], 10) == []

    def test_truncated(self):
        quotes = [quote(str(i + 1), f"https://{i}.example.com") for i in range(8)]
        assert len(finalize_quotes(quotes, 3)) == 3

    def test_zero_limit(self):
        assert finalize_quotes([quote("1", "https://a.example.com")], 0) == []


class TestCanonicalUrl:
    def test_trailing_slash_and_fragment(self):
        assert canonical_url("https://Shop.Example.com/p/1/#reviews") == "https://shop.example.com/p/1"

    def test_query_kept(self):
        assert canonical_url("https://shop.example.com/p?id=2") == "https://shop.example.com/p?id=2"


class TestRetailerFromDomain:
    @pytest.mark.parametrize("domain, expected", [
        ("www.argos.co.uk", "Argos"),
        ("johnlewis.com", "Johnlewis"),
        ("www.amazon.de", "Amazon"),
        ("", "Unknown"),
    ])
    def test_names(self, domain, expected):
        assert retailer_from_domain(domain) == expected

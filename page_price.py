"""
page_price.py — read a price straight off a product page.

Secondary, more expensive recovery path for search results whose snippet had
no price. Best effort: every failure (bad URL, non-2xx, timeout, DNS, no
match) returns None and never raises.

Pattern sets are chosen by hostname. Within a set the patterns are tried in
order and the first plausible match wins: a page body is far noisier than a
snippet, so the most specific markup is trusted over "lowest on the page".
"""
from __future__ import annotations

import logging
import re
from typing import Optional

import config
from fetcher import FetchError, fetch_html, hostname_of, is_valid_url
from price_parser import AMOUNT, DEFAULT_CURRENCY, ParsedPrice, detect_currency, is_plausible_price, to_decimal

logger = logging.getLogger(__name__)

_FLAGS = re.IGNORECASE | re.DOTALL

# "price": "12.99" / "price":12.99 in embedded JSON or JSON-LD offers
_JSON_PRICE = re.compile(r'"price"\s*:\s*"?' + AMOUNT + r'"?', _FLAGS)
_POUND_PRICE = re.compile(r"£\s*" + AMOUNT)
_ANY_SYMBOL_PRICE = re.compile(r"[£$€]\s*" + AMOUNT)

_PRICE_CURRENCY = re.compile(r'"priceCurrency"\s*:\s*"([A-Z]{3})"', re.IGNORECASE)

PATTERN_SETS: dict[str, list[re.Pattern]] = {
    "manomano": [
        re.compile(r'<span[^>]*class="[^"]*price[^"]*"[^>]*>[^<]*?£\s*' + AMOUNT, _FLAGS),
        _JSON_PRICE,
        _POUND_PRICE,
    ],
    "amazon": [
        re.compile(r'<span[^>]*id="priceblock_[^"]*"[^>]*>[^<]*?[£$€]\s*' + AMOUNT, _FLAGS),
        re.compile(r'<span[^>]*class="[^"]*a-offscreen[^"]*"[^>]*>\s*[£$€]\s*' + AMOUNT, _FLAGS),
        _JSON_PRICE,
        _POUND_PRICE,
    ],
    "ebay": [
        re.compile(r'<span[^>]*id="prcIsum"[^>]*>[^<]*?[£$€]\s*' + AMOUNT, _FLAGS),
        re.compile(r'<div[^>]*class="[^"]*x-price-primary[^"]*"[^>]*>[^£$€]{0,300}?[£$€]\s*' + AMOUNT, _FLAGS),
        _JSON_PRICE,
        _POUND_PRICE,
    ],
    "generic": [
        _POUND_PRICE,
        _JSON_PRICE,
        re.compile(r"price[:\s]*[£$€]\s*" + AMOUNT, _FLAGS),
        _ANY_SYMBOL_PRICE,
    ],
}


def classify_retailer(hostname: str) -> str:
    host = (hostname or "").lower()
    for key in ("manomano", "amazon", "ebay"):
        if f"{key}." in host:
            return key
    return "generic"


def parse_page_price(
    html: str,
    hostname: str,
    default_currency: str = DEFAULT_CURRENCY,
) -> Optional[ParsedPrice]:
    """Apply the hostname's pattern set to raw HTML. Pure."""
    if not html:
        return None

    page_currency: Optional[str] = None
    m = _PRICE_CURRENCY.search(html)
    if m:
        page_currency = m.group(1).upper()

    for pattern in PATTERN_SETS[classify_retailer(hostname)]:
        for match in pattern.finditer(html):
            amount = to_decimal(match.group(1))
            if amount is None or not is_plausible_price(amount):
                continue
            currency = detect_currency(match.group(0)) or page_currency or default_currency
            return ParsedPrice(amount=amount, currency=currency)
    return None


async def fetch_price_from_page(
    url: str,
    default_currency: str = DEFAULT_CURRENCY,
    timeout: float = config.PAGE_FETCH_TIMEOUT_SECONDS,
) -> Optional[ParsedPrice]:
    """Fetch url and parse a price from it. None means "no price found"."""
    if not is_valid_url(url):
        return None
    try:
        html = await fetch_html(url, timeout=timeout)
    except FetchError as exc:
        logger.info("Page price fetch failed for %s: %s", url, exc)
        return None

    price = parse_page_price(html, hostname_of(url), default_currency)
    if price:
        logger.debug("Page price for %s: %s %s", url, price.amount, price.currency)
    return price

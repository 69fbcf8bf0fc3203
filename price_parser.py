"""
price_parser.py — pull a monetary amount out of free text.

Used on search-engine snippets, provider price strings and raw page HTML.
Pure and deterministic: no network, no config reads.

Heuristic:
  • every pattern below is applied and ALL matches are collected
  • amounts outside the plausibility bounds are dropped (incl. the 999999
    placeholder some scraped sources use)
  • the LOWEST surviving amount wins — noisy pages usually show a crossed-out
    "was" price above the real "now" price

Known weakness: a shipping fee or accessory price in the same text can win.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

logger = logging.getLogger(__name__)

MIN_PRICE = Decimal("0.01")
MAX_PRICE = Decimal("100000")
PLACEHOLDER_PRICE = Decimal("999999")

DEFAULT_CURRENCY = "GBP"


@dataclass(frozen=True)
class ParsedPrice:
    amount: Decimal
    currency: str       # ISO-4217


def is_plausible_price(amount) -> bool:
    """Plausibility filter shared by every component that emits a price."""
    if amount is None:
        return False
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError):
        return False
    if not value.is_finite():
        return False
    return MIN_PRICE <= value <= MAX_PRICE and value != PLACEHOLDER_PRICE


def to_decimal(raw: str) -> Optional[Decimal]:
    """'1,299.00' → Decimal('1299.00'); None if not numeric."""
    try:
        return Decimal(raw.replace(",", ""))
    except (InvalidOperation, ValueError, AttributeError):
        return None


# ── Patterns ───────────────────────────────────────────────────────────────────
# An amount never starts or ends inside a longer run of digits, so
# "£999999.00" yields 999999 (rejected later) rather than 999.
AMOUNT = r"(?<![\d.,])(\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?)(?![\d.,]*\d)"

_GBP_WORDS = r"(?:GBP\b|pounds?\b|£)"
_USD_WORDS = r"(?:USD\b|dollars?\b|\$)"
_EUR_WORDS = r"(?:EUR\b|euros?\b|€)"

PRICE_PATTERNS: list[re.Pattern] = [
    # UK
    re.compile(r"£\s*" + AMOUNT),
    re.compile(AMOUNT + r"\s*" + _GBP_WORDS, re.IGNORECASE),
    # US
    re.compile(r"\$\s*" + AMOUNT),
    re.compile(AMOUNT + r"\s*" + _USD_WORDS, re.IGNORECASE),
    # Euro
    re.compile(r"€\s*" + AMOUNT),
    re.compile(AMOUNT + r"\s*" + _EUR_WORDS, re.IGNORECASE),
    # Contextual keywords: "Price: £29.99", "now 29.99", "was 59.99" …
    re.compile(r"\bprice[:\s]*[£$€]?\s*" + AMOUNT, re.IGNORECASE),
    re.compile(r"\bnow[:\s]*[£$€]?\s*" + AMOUNT, re.IGNORECASE),
    re.compile(r"\bwas[:\s]*[£$€]?\s*" + AMOUNT, re.IGNORECASE),
    re.compile(r"\bfrom[:\s]*[£$€]?\s*" + AMOUNT, re.IGNORECASE),
    re.compile(r"\bonly[:\s]*[£$€]?\s*" + AMOUNT, re.IGNORECASE),
    # Any currency symbol
    re.compile(r"[£$€]\s*" + AMOUNT),
]

# Last resort when nothing above matched: a bare "29.99"
BARE_AMOUNT_PATTERN = re.compile(r"(?<![\d.,])(\d{1,3}(?:,\d{3})*\.\d{2})(?![\d.,]*\d)")

_GBP_RE = re.compile(r"£|\bGBP\b|\bpounds?\b", re.IGNORECASE)
_EUR_RE = re.compile(r"€|\bEUR\b|\beuros?\b", re.IGNORECASE)
_USD_RE = re.compile(r"\$|\bUSD\b|\bdollars?\b", re.IGNORECASE)

_CURRENCY_MARKERS = [("GBP", _GBP_RE), ("EUR", _EUR_RE), ("USD", _USD_RE)]


def detect_currency(text: str) -> Optional[str]:
    """Currency named by a symbol or code word in text; GBP > EUR > USD when mixed."""
    for code, pattern in _CURRENCY_MARKERS:
        if pattern.search(text):
            return code
    return None


def find_price_candidates(text: str, default_currency: str = DEFAULT_CURRENCY) -> list[ParsedPrice]:
    """Every plausible amount any pattern finds, in pattern then position order."""
    if not text:
        return []

    text_currency = detect_currency(text) or default_currency
    found: list[ParsedPrice] = []

    def _collect(patterns) -> None:
        for pattern in patterns:
            for match in pattern.finditer(text):
                amount = to_decimal(match.group(1))
                if amount is None or not is_plausible_price(amount):
                    continue
                currency = detect_currency(match.group(0)) or text_currency
                found.append(ParsedPrice(amount=amount, currency=currency))

    _collect(PRICE_PATTERNS)
    if not found:
        _collect([BARE_AMOUNT_PATTERN])
    return found


def extract_price(text: str, default_currency: str = DEFAULT_CURRENCY) -> Optional[ParsedPrice]:
    """
    Return the lowest plausible price found in text, or None.

    >>> extract_price("Was £59.99 now £39.99")
    ParsedPrice(amount=Decimal('39.99'), currency='GBP')
    """
    candidates = find_price_candidates(text, default_currency)
    if not candidates:
        return None
    # min() keeps the first of equal amounts → stable on identical input
    return min(candidates, key=lambda p: p.amount)

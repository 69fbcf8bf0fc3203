"""
title_extractor.py — recover a product title from a product page.

Public interface:
  extract_title(html, source_domain)  → ExtractedTitle   (pure)
  extract_product_title(url)          → ExtractedTitle   (fetch + extract)

Each domain class (amazon / ebay / generic) has an ordered rule chain:
  1. retailer-specific title element (amazon, ebay only)
  2. Open Graph og:title
  3. JSON-LD name / title / description
  4. first <h1>, 10–200 characters
  5. <title>, minus retailer suffixes
The first rule whose cleaned candidate is longer than 10 characters wins.

Nothing here raises on a page that simply has no usable title; only fetch
failures are reported (as fetch_failed with the HTTP status when known).
"""
from __future__ import annotations

import html as html_lib
import json
import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

import config
from fetcher import FetchError, fetch_html, hostname_of, is_valid_url

logger = logging.getLogger(__name__)

MIN_TITLE_LENGTH = 10        # strictly greater than this
MAX_HEADING_LENGTH = 200

# Error reasons
EXTRACTION_FAILED = "extraction_failed"
INVALID_URL = "invalid_url"
FETCH_FAILED = "fetch_failed"


@dataclass(frozen=True)
class ExtractedTitle:
    title: Optional[str]
    description: Optional[str] = None
    error_reason: Optional[str] = None
    http_status: Optional[int] = None       # set with fetch_failed when the server answered

    @property
    def ok(self) -> bool:
        return self.error_reason is None and bool(self.title)

    def to_dict(self) -> dict:
        return {"title": self.title, "description": self.description}


# ── Normalisation ─────────────────────────────────────────────────────────────

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def clean_html(text: Optional[str]) -> str:
    """Strip tags, unescape entities, collapse whitespace."""
    if not text:
        return ""
    text = _TAG_RE.sub("", str(text))
    text = html_lib.unescape(text).replace("\xa0", " ")
    return _WS_RE.sub(" ", text).strip()


def _is_valid(title: str) -> bool:
    return len(title) > MIN_TITLE_LENGTH


# ── Domain classification ─────────────────────────────────────────────────────

def classify_domain(source_domain: str) -> str:
    domain = (source_domain or "").lower()
    if "amazon." in domain:
        return "amazon"
    if "ebay." in domain:
        return "ebay"
    return "generic"


# ── Rules ─────────────────────────────────────────────────────────────────────
# Each rule: html → (title, description) or None

Rule = Callable[[str], Optional[tuple[str, Optional[str]]]]

_FLAGS = re.IGNORECASE | re.DOTALL


def _first_match_rule(*patterns: str) -> Rule:
    compiled = [re.compile(p, _FLAGS) for p in patterns]

    def rule(html: str) -> Optional[tuple[str, Optional[str]]]:
        for pattern in compiled:
            m = pattern.search(html)
            if m:
                title = clean_html(m.group("v"))
                if _is_valid(title):
                    return title, None
        return None

    return rule


_amazon_markers = _first_match_rule(
    r'<span[^>]*id="productTitle"[^>]*>(?P<v>.*?)</span>',
    r'<h1[^>]*class="[^"]*product-title[^"]*"[^>]*>(?P<v>.*?)</h1>',
    r'<h1[^>]*data-automation-id="title"[^>]*>(?P<v>.*?)</h1>',
)

_ebay_markers = _first_match_rule(
    r'<h1[^>]*id="x-item-title-label"[^>]*>(?P<v>.*?)</h1>',
    r'<h1[^>]*class="[^"]*\bit-ttl\b[^"]*"[^>]*>(?P<v>.*?)</h1>',
    r'<h1[^>]*class="[^"]*x-item-title__mainTitle[^"]*"[^>]*>(?P<v>.*?)</h1>',
)

_og_title = _first_match_rule(
    r'<meta[^>]*property=["\']og:title["\'][^>]*content=(["\'])(?P<v>.*?)\1',
    r'<meta[^>]*content=(["\'])(?P<v>.*?)\1[^>]*property=["\']og:title["\']',
)

_JSON_LD_RE = re.compile(
    r'<script[^>]*type=["\']application/ld\+json["\'][^>]*>(.*?)</script>', _FLAGS
)


def _walk_json_ld(node) -> Iterator[dict]:
    """Yield every object in a JSON-LD document: lists and @graph are flattened."""
    if isinstance(node, list):
        for item in node:
            yield from _walk_json_ld(item)
    elif isinstance(node, dict):
        yield node
        if "@graph" in node:
            yield from _walk_json_ld(node["@graph"])


def _is_product(obj: dict) -> bool:
    kind = obj.get("@type")
    kinds = kind if isinstance(kind, list) else [kind]
    return any(isinstance(k, str) and k.lower() == "product" for k in kinds)


def _json_ld(html: str) -> Optional[tuple[str, Optional[str]]]:
    found: list[dict] = []
    for block in _JSON_LD_RE.finditer(html):
        try:
            data = json.loads(block.group(1).strip())
        except ValueError as exc:
            logger.debug("Skipping malformed JSON-LD block: %s", exc)
            continue
        found.extend(_walk_json_ld(data))

    # Product objects first across all blocks, otherwise document order (sort is stable)
    for obj in sorted(found, key=lambda o: not _is_product(o)):
        raw_title = obj.get("name") or obj.get("title")
        if not isinstance(raw_title, str):
            continue
        title = clean_html(raw_title)
        if not _is_valid(title):
            continue
        raw_desc = obj.get("description")
        description = clean_html(raw_desc) if isinstance(raw_desc, str) else ""
        return title, description or None
    return None


_H1_RE = re.compile(r"<h1[^>]*>(.*?)</h1>", _FLAGS)


def _first_heading(html: str) -> Optional[tuple[str, Optional[str]]]:
    m = _H1_RE.search(html)
    if not m:
        return None
    title = clean_html(m.group(1))
    # Reject logo / nav text and whole-page blobs
    if _is_valid(title) and len(title) < MAX_HEADING_LENGTH:
        return title, None
    return None


_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", _FLAGS)
_RETAILER_SUFFIX_RE = re.compile(
    r"\s*[-|:]\s*(?:Amazon|eBay|Argos|Currys|John Lewis)\b.*$", re.IGNORECASE
)


def _document_title(html: str) -> Optional[tuple[str, Optional[str]]]:
    m = _TITLE_RE.search(html)
    if not m:
        return None
    title = _RETAILER_SUFFIX_RE.sub("", clean_html(m.group(1))).strip()
    if _is_valid(title):
        return title, None
    return None


_GENERIC_RULES: list[Rule] = [_og_title, _json_ld, _first_heading, _document_title]

RULES: dict[str, list[Rule]] = {
    "amazon":  [_amazon_markers] + _GENERIC_RULES,
    "ebay":    [_ebay_markers] + _GENERIC_RULES,
    "generic": _GENERIC_RULES,
}


# ── Public API ────────────────────────────────────────────────────────────────

def extract_title(html: str, source_domain: str) -> ExtractedTitle:
    """Run the rule chain for the domain class; first valid candidate wins."""
    if html:
        for rule in RULES[classify_domain(source_domain)]:
            found = rule(html)
            if found:
                title, description = found
                return ExtractedTitle(title=title, description=description)

    logger.info("No title found for %s", source_domain or "unknown domain")
    return ExtractedTitle(title=None, description=None, error_reason=EXTRACTION_FAILED)


async def extract_product_title(
    url: str,
    timeout: float = config.PAGE_FETCH_TIMEOUT_SECONDS,
) -> ExtractedTitle:
    """Fetch url and extract its product title."""
    if not is_valid_url(url):
        return ExtractedTitle(title=None, error_reason=INVALID_URL)

    try:
        html = await fetch_html(url, timeout=timeout)
    except FetchError as exc:
        logger.warning("Title fetch failed for %s: %s", url, exc)
        return ExtractedTitle(title=None, error_reason=FETCH_FAILED, http_status=exc.status)

    return extract_title(html, hostname_of(url))

"""
price_search.py — retailer price search behind one interface.

Backends, in priority order:
  serpapi   SerpAPI Google Shopping (structured prices)
  google    Google Custom Search web results (snippet / page prices)

The first configured backend is used; there is no cross-backend fallback.
"""
from __future__ import annotations

import logging
from typing import Callable

import config
from provider_config import ConfigurationMissingError, PriceSearchConfig, ProviderConfig
from search_backends.base import PriceQuote, PriceSearchBackend, finalize_quotes

logger = logging.getLogger(__name__)


def _make_serpapi(cfg: PriceSearchConfig) -> PriceSearchBackend:
    from search_backends.serpapi_backend import SerpAPIShoppingBackend
    return SerpAPIShoppingBackend(
        cfg.serpapi_key,
        default_currency=cfg.default_currency,
        timeout=cfg.timeout_seconds,
    )


def _make_google(cfg: PriceSearchConfig) -> PriceSearchBackend:
    from search_backends.google_search_backend import GoogleSearchBackend
    return GoogleSearchBackend(
        cfg.google_api_key,
        cfg.google_search_engine_id,
        default_currency=cfg.default_currency,
        timeout=cfg.timeout_seconds,
        page_fetch_timeout=cfg.page_fetch_timeout_seconds,
    )


# (is configured?, factory) in priority order
BACKENDS: list[tuple[Callable[[PriceSearchConfig], bool], Callable[[PriceSearchConfig], PriceSearchBackend]]] = [
    (lambda cfg: cfg.has_shopping_search, _make_serpapi),
    (lambda cfg: cfg.has_web_search, _make_google),
]


def select_backend(cfg: PriceSearchConfig) -> PriceSearchBackend:
    """Return the highest-priority configured backend."""
    for is_configured, factory in BACKENDS:
        if is_configured(cfg):
            return factory(cfg)
    raise ConfigurationMissingError(
        "No price search provider configured. "
        "Set SERPAPI_KEY, or GOOGLE_API_KEY and GOOGLE_SEARCH_ENGINE_ID."
    )


async def search_prices(
    query: str,
    provider_config: ProviderConfig,
    max_results: int = config.MAX_PRICE_RESULTS,
) -> list[PriceQuote]:
    """
    Search retailers for `query` and return plausible quotes, cheapest first.

    Raises ConfigurationMissingError when no backend has credentials.
    Any other failure (provider down, bad response) is logged and yields [],
    the same as a search that found nothing.
    """
    backend = select_backend(provider_config.price_search)
    query = (query or "").strip()
    if not query:
        return []

    try:
        quotes = await backend.search(query, max_results=max_results)
    except Exception as exc:
        logger.error("[%s] Price search failed for '%s': %s", backend.name, query, exc)
        return []

    quotes = finalize_quotes(quotes, max_results)
    logger.info("[%s] %d price(s) for '%s'", backend.name, len(quotes), query)
    return quotes

"""
server.py — JSON API for title extraction, image recognition and price search.

Endpoints:
  POST /api/extract-product-title   {url}                → {title, description}
  POST /api/analyze-image           {imageBase64}        → recognition result
  POST /api/search-prices           {itemId, query?, title?, description?, linkUrl?}
                                                         → {prices, cached}
  GET  /api/check-price-config                           → active price provider
  GET  /health                                           → plain-text health check

Provider credentials are resolved on every request, so a changed .env value
picked up by config takes effect without rebuilding the app.

Nginx minimal config:
  server {
      listen 80;
      server_name api.yourdomain.com;
      location / {
          proxy_pass http://127.0.0.1:8080;
          proxy_set_header Host $host;
          proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;
      }
  }
"""
from __future__ import annotations

import json
import logging
from typing import Callable

import aiosqlite
from aiohttp import web

import config
import database as db
from price_search import search_prices
from provider_config import ConfigurationMissingError, ProviderConfig, resolve_provider_config
from providers.base import NOT_CONFIGURED
from providers.manager import analyze_image
from title_extractor import extract_product_title

logger = logging.getLogger(__name__)

CONFIG_RESOLVER = web.AppKey("config_resolver", Callable[[], ProviderConfig])

# Titles shorter than this are worth replacing with one read off the product page
SHORT_TITLE_LENGTH = 20
SEARCH_SUFFIX = "buy price"

_PROVIDER_LABELS = {"serpapi": "SerpAPI", "google": "Google Custom Search"}


# ── Helpers ────────────────────────────────────────────────────────────────────

async def _read_json(request: web.Request) -> dict:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise web.HTTPBadRequest(
            text=json.dumps({"error": "Request body must be JSON"}),
            content_type="application/json",
        )
    if not isinstance(body, dict):
        raise web.HTTPBadRequest(
            text=json.dumps({"error": "Request body must be a JSON object"}),
            content_type="application/json",
        )
    return body


def _provider_config(request: web.Request) -> ProviderConfig:
    return request.app[CONFIG_RESOLVER]()


def _text(value) -> str:
    return value.strip() if isinstance(value, str) else ""


# ── Request handlers ───────────────────────────────────────────────────────────

async def handle_extract_title(request: web.Request) -> web.Response:
    body = await _read_json(request)
    url = body.get("url")
    if not url or not isinstance(url, str):
        return web.json_response({"error": "URL is required"}, status=400)

    result = await extract_product_title(url)
    if result.error_reason:
        payload = {"error": result.error_reason, "title": None}
        if result.http_status is not None:
            payload["status"] = result.http_status
        return web.json_response(payload, status=400)
    return web.json_response(result.to_dict())


async def handle_analyze_image(request: web.Request) -> web.Response:
    body = await _read_json(request)
    image_base64 = body.get("imageBase64")
    if not image_base64 or not isinstance(image_base64, str):
        return web.json_response({"error": "imageBase64 is required"}, status=400)

    result = await analyze_image(image_base64, _provider_config(request).vision)
    payload = result.to_dict()
    if result.error_reason == NOT_CONFIGURED:
        payload["hint"] = "Add OPENAI_API_KEY, GOOGLE_GENAI_API_KEY or GOOGLE_VISION_API_KEY to .env"
        return web.json_response(payload, status=500)
    if result.error_reason:
        return web.json_response(payload, status=400)
    return web.json_response(payload)


async def handle_search_prices(request: web.Request) -> web.Response:
    """
    Serve fresh cached quotes for the item if there are any; otherwise build a
    shopping query, search, cache the plausible results and return them.
    """
    body = await _read_json(request)
    item_id = body.get("itemId")
    if item_id is None or item_id == "":
        return web.json_response({"error": "itemId is required"}, status=400)
    item_id = str(item_id)

    try:
        cached = await db.get_cached_prices(item_id)
    except aiosqlite.Error as exc:
        logger.warning("Price cache read failed for item %s, searching live: %s", item_id, exc)
        cached = []
    if cached:
        return web.json_response({"prices": [q.to_dict() for q in cached], "cached": True})

    title = _text(body.get("title"))
    link_url = _text(body.get("linkUrl"))
    if link_url and len(title) < SHORT_TITLE_LENGTH:
        extracted = await extract_product_title(link_url)
        if extracted.ok and len(extracted.title) > len(title):
            logger.info("Using page title for item %s: %s", item_id, extracted.title)
            title = extracted.title

    base_query = _text(body.get("query")) or f"{title} {_text(body.get('description'))}".strip()
    if not base_query:
        return web.json_response({"error": "query or title is required"}, status=400)
    search_query = f"{base_query} {SEARCH_SUFFIX}"

    try:
        quotes = await search_prices(search_query, _provider_config(request), max_results=config.MAX_PRICE_RESULTS)
    except ConfigurationMissingError as exc:
        return web.json_response(
            {"error": "Price comparison API not configured", "hint": str(exc)},
            status=500,
        )

    if not quotes:
        return web.json_response({"prices": [], "message": "No prices found for this product"})

    # The quotes go back to the caller even when caching them fails
    try:
        await db.store_prices(item_id, quotes)
        await db.purge_invalid_prices(item_id)
        logger.info("Item %s has %d cached price(s)", item_id, await db.count_prices(item_id))
    except aiosqlite.Error as exc:
        logger.warning("Could not cache prices for item %s: %s", item_id, exc)
    return web.json_response({"prices": [q.to_dict() for q in quotes], "cached": False})


async def handle_check_price_config(request: web.Request) -> web.Response:
    search_cfg = _provider_config(request).price_search
    providers = {
        "serpapi": search_cfg.has_shopping_search,
        "google":  search_cfg.has_web_search,
    }
    provider = search_cfg.provider_name
    if provider is None:
        return web.json_response({
            "configured": False,
            "message": "No price comparison API configured",
            "providers": providers,
        })
    return web.json_response({
        "configured": True,
        "provider": provider,
        "message": f"Using {_PROVIDER_LABELS[provider]}",
        "providers": providers,
    })


async def handle_health(request: web.Request) -> web.Response:
    """Health check — returns 200 OK. Use with uptime monitors."""
    return web.Response(text="OK", content_type="text/plain")


# ── App factory ────────────────────────────────────────────────────────────────

def build_web_app(
    resolve_config: Callable[[], ProviderConfig] = resolve_provider_config,
) -> web.Application:
    app = web.Application()
    app[CONFIG_RESOLVER] = resolve_config
    app.router.add_post("/api/extract-product-title", handle_extract_title)
    app.router.add_post("/api/analyze-image",         handle_analyze_image)
    app.router.add_post("/api/search-prices",         handle_search_prices)
    app.router.add_get("/api/check-price-config",     handle_check_price_config)
    app.router.add_get("/health",                     handle_health)
    return app


async def start_server() -> web.AppRunner:
    """Start the web server. Returns runner so caller can shut it down cleanly."""
    app    = build_web_app()
    runner = web.AppRunner(app, access_log=logger)
    await runner.setup()
    site = web.TCPSite(runner, config.SERVER_HOST, config.SERVER_PORT)
    await site.start()
    logger.info("API listening on %s:%d", config.SERVER_HOST, config.SERVER_PORT)
    return runner

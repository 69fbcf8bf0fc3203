"""
main.py — Single entry point.

Serves the enrichment API (page titles, image recognition, retailer prices)
from one asyncio event loop until SIGINT / SIGTERM.

Architecture:
  asyncio event loop
    └── aiohttp web server  (JSON API + /health)
         ├── outbound calls to search / vision providers (aiohttp, SDKs)
         └── aiosqlite price cache (data/enrichment.db)
"""
import asyncio
import logging
import signal
import sys

import config

logger = logging.getLogger(__name__)

_QUIET_LOGGERS = ("httpx", "httpcore", "aiohttp.access", "openai", "google_genai")


def setup_logging() -> None:
    """stdout + data/enrichment.log, next to the DB so one volume mount keeps both."""
    config.DATA_DIR.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        level=logging.INFO,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(str(config.DATA_DIR / "enrichment.log"), encoding="utf-8"),
        ],
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _log_provider_summary() -> None:
    from provider_config import resolve_provider_config
    cfg = resolve_provider_config()

    if cfg.vision.is_configured:
        logger.info(
            "Image recognition: vision model=%s, label detection=%s",
            "on" if cfg.vision.has_vision_model else "off",
            "on" if cfg.vision.has_label_detection else "off",
        )
    else:
        logger.warning("Image recognition disabled: no vision credentials in .env")

    provider = cfg.price_search.provider_name
    if provider:
        logger.info("Price search via %s (currency %s)", provider, cfg.price_search.default_currency)
    else:
        logger.warning("Price search disabled: set SERPAPI_KEY or GOOGLE_API_KEY + GOOGLE_SEARCH_ENGINE_ID")


async def run() -> None:
    # ── Price cache first, so a broken DB stops us before we take traffic ─────
    import database as _db
    try:
        await _db.init_db()
    except Exception as exc:
        logger.critical("FATAL: database init failed: %s", exc, exc_info=True)
        raise
    logger.info("Price cache ready at %s", _db.DB_PATH)

    _log_provider_summary()

    from server import start_server
    web_runner = await start_server()

    stopping = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stopping.set)
        except (NotImplementedError, RuntimeError):
            # add_signal_handler is unavailable on Windows event loops
            pass

    logger.info("✅ Enrichment API up on http://%s:%d", config.SERVER_HOST, config.SERVER_PORT)
    try:
        await stopping.wait()
    finally:
        logger.info("Stopping API…")
        await web_runner.cleanup()
    logger.info("Stopped.")


def main() -> None:
    setup_logging()
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()

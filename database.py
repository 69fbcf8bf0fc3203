"""
database.py — async SQLite price cache via aiosqlite.

Tables:
  price_comparisons — one row per (item, retailer, product URL) quote

Rows older than the freshness horizon (PRICE_CACHE_HOURS, default 24) are
ignored on read and overwritten on the next search for the same item. Prices
are stored as decimal strings so a cached quote reads back exactly.

The DB file is created automatically on first run.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable

import aiosqlite

import config
from price_parser import MAX_PRICE, MIN_PRICE, PLACEHOLDER_PRICE, is_plausible_price, to_decimal
from search_backends.base import PriceQuote

logger = logging.getLogger(__name__)

# Dedicated data/ directory so Docker volume mounts work (./data:/app/data)
_DATA_DIR = config.DATA_DIR
_DATA_DIR.mkdir(parents=True, exist_ok=True)

DB_PATH = str(_DATA_DIR / "enrichment.db")
_lock = asyncio.Lock()          # serialise schema creation


# ── Schema ────────────────────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS price_comparisons (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    item_id       TEXT    NOT NULL,
    retailer      TEXT    NOT NULL,
    price         TEXT    NOT NULL,           -- Decimal as string
    currency      TEXT    NOT NULL DEFAULT 'GBP',
    product_url   TEXT    NOT NULL,
    product_title TEXT    NOT NULL DEFAULT '',
    image_url     TEXT,
    in_stock      INTEGER NOT NULL DEFAULT 1,
    last_updated  TEXT    NOT NULL,
    UNIQUE (item_id, retailer, product_url)
);
CREATE INDEX IF NOT EXISTS idx_price_comparisons_item ON price_comparisons (item_id, last_updated);
"""

# Same bounds as price_parser.is_plausible_price, for use inside SQL
_PLAUSIBLE_SQL = (
    "CAST(price AS REAL) >= ? AND CAST(price AS REAL) <= ? AND CAST(price AS REAL) != ?"
)
_PLAUSIBLE_ARGS = (float(MIN_PRICE), float(MAX_PRICE), float(PLACEHOLDER_PRICE))


async def init_db() -> None:
    """Create tables if they don't exist. Safe to call multiple times."""
    async with _lock:
        async with aiosqlite.connect(DB_PATH) as db:
            await db.executescript(_SCHEMA)
            await db.commit()
    logger.info("Database initialised at %s", DB_PATH)


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ── Price cache ───────────────────────────────────────────────────────────────

async def get_cached_prices(
    item_id: str,
    max_age_hours: float = config.PRICE_CACHE_HOURS,
    limit: int = config.MAX_PRICE_RESULTS,
) -> list[PriceQuote]:
    """Return fresh, plausible cached quotes for item_id, cheapest first."""
    cutoff = (_now() - timedelta(hours=max_age_hours)).isoformat(timespec="microseconds")
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute(
            f"""SELECT * FROM price_comparisons
                WHERE item_id = ? AND last_updated >= ? AND {_PLAUSIBLE_SQL}
                ORDER BY CAST(price AS REAL) ASC, id ASC
                LIMIT ?""",
            (item_id, cutoff, *_PLAUSIBLE_ARGS, limit),
        ) as cursor:
            rows = await cursor.fetchall()

    quotes: list[PriceQuote] = []
    for r in rows:
        price = to_decimal(r["price"])
        if not is_plausible_price(price):
            continue
        quotes.append(
            PriceQuote(
                retailer=r["retailer"],
                price=price,
                currency=r["currency"],
                product_url=r["product_url"],
                product_title=r["product_title"],
                image_url=r["image_url"],
                in_stock=bool(r["in_stock"]),
            )
        )
    return quotes


async def store_prices(item_id: str, quotes: Iterable[PriceQuote]) -> int:
    """
    Upsert quotes for item_id, refreshing last_updated.
    Implausible quotes are skipped. Returns the number of rows written.
    """
    now = _now().isoformat(timespec="microseconds")
    rows = [
        (
            item_id,
            q.retailer,
            str(q.price),
            q.currency,
            q.product_url,
            q.product_title,
            q.image_url,
            int(q.in_stock),
            now,
        )
        for q in quotes
        if q.is_valid
    ]
    if not rows:
        return 0

    async with aiosqlite.connect(DB_PATH) as db:
        await db.executemany(
            """INSERT INTO price_comparisons
                   (item_id, retailer, price, currency, product_url,
                    product_title, image_url, in_stock, last_updated)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT (item_id, retailer, product_url) DO UPDATE SET
                   price         = excluded.price,
                   currency      = excluded.currency,
                   product_title = excluded.product_title,
                   image_url     = excluded.image_url,
                   in_stock      = excluded.in_stock,
                   last_updated  = excluded.last_updated""",
            rows,
        )
        await db.commit()
    logger.debug("Stored %d price(s) for item %s", len(rows), item_id)
    return len(rows)


async def purge_invalid_prices(item_id: str) -> int:
    """Delete cached rows for item_id that fail the plausibility bounds."""
    async with aiosqlite.connect(DB_PATH) as db:
        cur = await db.execute(
            f"DELETE FROM price_comparisons WHERE item_id = ? AND NOT ({_PLAUSIBLE_SQL})",
            (item_id, *_PLAUSIBLE_ARGS),
        )
        await db.commit()
        deleted = cur.rowcount
    if deleted:
        logger.info("Purged %d invalid cached price(s) for item %s", deleted, item_id)
    return deleted


async def count_prices(item_id: str) -> int:
    """Number of cached rows for item_id, fresh or not."""
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute(
            "SELECT COUNT(*) FROM price_comparisons WHERE item_id = ?", (item_id,)
        ) as cur:
            row = await cur.fetchone()
            return row[0] if row else 0

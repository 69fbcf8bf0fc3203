"""
fetcher.py — fetch product pages with a browser-like identity.

Several retailers reject requests without a realistic User-Agent, so every
page fetch in the project goes through fetch_html().
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional
from urllib.parse import urlparse

import aiohttp

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,*/*;q=0.8"
    ),
    "Accept-Language": "en-GB,en;q=0.9",
}

DEFAULT_TIMEOUT_SECONDS = 10.0


class FetchError(RuntimeError):
    """Transport failure or non-2xx answer. status is None when no response arrived."""

    def __init__(self, url: str, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


def is_valid_url(url: str) -> bool:
    """True for absolute http(s) URLs with a hostname."""
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


def hostname_of(url: str) -> str:
    """Lower-cased hostname, '' when the URL cannot be parsed."""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


async def fetch_html(url: str, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> str:
    """
    GET url and return the body as text.
    Raises FetchError on any transport failure or non-2xx status.
    """
    try:
        async with aiohttp.ClientSession(headers=BROWSER_HEADERS) as session:
            async with session.get(
                url,
                timeout=aiohttp.ClientTimeout(total=timeout),
                allow_redirects=True,
            ) as resp:
                if not 200 <= resp.status < 300:
                    raise FetchError(url, f"Failed to fetch: {resp.status}", status=resp.status)
                return await resp.text(errors="replace")
    except FetchError:
        raise
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
        logger.debug("Fetch failed for %s: %s", url, exc)
        raise FetchError(url, f"Failed to fetch: {exc.__class__.__name__}") from exc

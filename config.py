"""
Central configuration — reads from .env file.

Every value here is read once at import time. Credentials are NOT consumed
directly by the extraction / search / recognition modules: the web layer calls
provider_config.resolve_provider_config() on each request, which snapshots the
attributes below into an immutable ProviderConfig that is passed down.

Tests monkeypatch the module attributes directly (config.SERPAPI_KEY = ...).
"""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# ── Image recognition: PRIMARY (vision-language model) ────────────────────────
# Any OpenAI-compatible chat endpoint works. Leave VISION_BASE_URL blank for
# api.openai.com, or point it at e.g. https://openrouter.ai/api/v1
OPENAI_API_KEY: str | None  = os.getenv("OPENAI_API_KEY") or None
VISION_MODEL: str           = os.getenv("VISION_MODEL", "gpt-4o-mini")
VISION_BASE_URL: str | None = os.getenv("VISION_BASE_URL", "").strip() or None

# Gemini is used as PRIMARY only when no OpenAI-compatible key is set
GOOGLE_GENAI_API_KEY: str | None = os.getenv("GOOGLE_GENAI_API_KEY") or None
GEMINI_MODEL: str                = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")

# ── Image recognition: FALLBACK (Google Cloud Vision label detection) ─────────
# https://console.cloud.google.com/ → enable "Cloud Vision API" → API key
GOOGLE_VISION_API_KEY: str | None = os.getenv("GOOGLE_VISION_API_KEY") or None

# ── Price search ──────────────────────────────────────────────────────────────
# Shopping search (preferred): https://serpapi.com/ — google_shopping engine
SERPAPI_KEY: str | None = os.getenv("SERPAPI_KEY") or None

# Generic web search: Google Custom Search JSON API
#   1. Enable "Custom Search API" and create an API key
#   2. Create a search engine at https://cse.google.com/ that searches the whole web
GOOGLE_API_KEY: str | None          = os.getenv("GOOGLE_API_KEY") or None
GOOGLE_SEARCH_ENGINE_ID: str | None = os.getenv("GOOGLE_SEARCH_ENGINE_ID") or None

# ── Behaviour ─────────────────────────────────────────────────────────────────
# Currency assumed when a price string carries no symbol or currency word
DEFAULT_CURRENCY: str  = os.getenv("DEFAULT_CURRENCY", "GBP").upper()
MAX_PRICE_RESULTS: int = int(os.getenv("MAX_PRICE_RESULTS", "10"))
PRICE_CACHE_HOURS: int = int(os.getenv("PRICE_CACHE_HOURS", "24"))

# Outbound HTTP bounds (seconds). Page fetches are best-effort so they get less.
HTTP_TIMEOUT_SECONDS: float       = float(os.getenv("HTTP_TIMEOUT_SECONDS", "15"))
PAGE_FETCH_TIMEOUT_SECONDS: float = float(os.getenv("PAGE_FETCH_TIMEOUT_SECONDS", "10"))

# ── Web server ────────────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8080"))

# ── Storage ───────────────────────────────────────────────────────────────────
# SQLite price cache and log file live here (mount ./data:/app/data in Docker)
DATA_DIR: Path = Path(os.getenv("DATA_DIR", "data"))

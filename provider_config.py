"""
provider_config.py — immutable provider selection, resolved at the boundary.

resolve_provider_config() is the only function that looks at credentials.
Everything downstream (recognizers, search backends) receives the resulting
ProviderConfig by value, so tests build one directly instead of patching env.

Selection priority:
  image recognition  → vision-language model (OpenAI-compatible, then Gemini)
                       first, Cloud Vision label detection as fallback
  price search       → SerpAPI shopping search, then Google Custom Search
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import config


class ConfigurationMissingError(RuntimeError):
    """Raised when a feature is used without credentials for any provider."""


@dataclass(frozen=True)
class VisionConfig:
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_base_url: Optional[str] = None
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"
    label_detection_api_key: Optional[str] = None
    timeout_seconds: float = 15.0

    @property
    def has_vision_model(self) -> bool:
        return bool(self.openai_api_key or self.gemini_api_key)

    @property
    def has_label_detection(self) -> bool:
        return bool(self.label_detection_api_key)

    @property
    def is_configured(self) -> bool:
        return self.has_vision_model or self.has_label_detection


@dataclass(frozen=True)
class PriceSearchConfig:
    serpapi_key: Optional[str] = None
    google_api_key: Optional[str] = None
    google_search_engine_id: Optional[str] = None
    default_currency: str = "GBP"
    timeout_seconds: float = 15.0
    page_fetch_timeout_seconds: float = 10.0

    @property
    def has_shopping_search(self) -> bool:
        return bool(self.serpapi_key)

    @property
    def has_web_search(self) -> bool:
        return bool(self.google_api_key and self.google_search_engine_id)

    @property
    def provider_name(self) -> Optional[str]:
        """'serpapi' | 'google' | None, in selection priority order."""
        if self.has_shopping_search:
            return "serpapi"
        if self.has_web_search:
            return "google"
        return None


@dataclass(frozen=True)
class ProviderConfig:
    vision: VisionConfig = field(default_factory=VisionConfig)
    price_search: PriceSearchConfig = field(default_factory=PriceSearchConfig)
    default_currency: str = "GBP"


def resolve_provider_config() -> ProviderConfig:
    """Snapshot the current config module values into a ProviderConfig."""
    vision = VisionConfig(
        openai_api_key=config.OPENAI_API_KEY,
        openai_model=config.VISION_MODEL,
        openai_base_url=config.VISION_BASE_URL,
        gemini_api_key=config.GOOGLE_GENAI_API_KEY,
        gemini_model=config.GEMINI_MODEL,
        label_detection_api_key=config.GOOGLE_VISION_API_KEY,
        timeout_seconds=config.HTTP_TIMEOUT_SECONDS,
    )
    price_search = PriceSearchConfig(
        serpapi_key=config.SERPAPI_KEY,
        google_api_key=config.GOOGLE_API_KEY,
        google_search_engine_id=config.GOOGLE_SEARCH_ENGINE_ID,
        default_currency=config.DEFAULT_CURRENCY,
        timeout_seconds=config.HTTP_TIMEOUT_SECONDS,
        page_fetch_timeout_seconds=config.PAGE_FETCH_TIMEOUT_SECONDS,
    )
    return ProviderConfig(
        vision=vision,
        price_search=price_search,
        default_currency=config.DEFAULT_CURRENCY,
    )

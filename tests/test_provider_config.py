"""
Tests for provider_config.py.

Covers:
  - VisionConfig / PriceSearchConfig capability flags
  - provider_name priority: serpapi > google > None
  - resolve_provider_config() snapshots the config module
"""
from __future__ import annotations

import dataclasses

import pytest

import config
from provider_config import PriceSearchConfig, VisionConfig, resolve_provider_config


class TestVisionConfig:
    def test_empty(self):
        cfg = VisionConfig()
        assert not cfg.has_vision_model
        assert not cfg.has_label_detection
        assert not cfg.is_configured

    def test_gemini_counts_as_vision_model(self):
        assert VisionConfig(gemini_api_key="g").has_vision_model

    def test_label_detection_alone_is_configured(self):
        cfg = VisionConfig(label_detection_api_key="v")
        assert cfg.is_configured
        assert not cfg.has_vision_model

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            VisionConfig().openai_api_key = "sk"


class TestPriceSearchConfig:
    def test_nothing_configured(self):
        assert PriceSearchConfig().provider_name is None

    def test_serpapi_preferred(self):
        cfg = PriceSearchConfig(serpapi_key="s", google_api_key="k", google_search_engine_id="cx")
        assert cfg.provider_name == "serpapi"

    def test_google_needs_both_values(self):
        assert not PriceSearchConfig(google_api_key="k").has_web_search
        assert not PriceSearchConfig(google_search_engine_id="cx").has_web_search
        assert PriceSearchConfig(google_api_key="k", google_search_engine_id="cx").provider_name == "google"

    def test_empty_string_is_unset(self):
        assert not PriceSearchConfig(serpapi_key="").has_shopping_search


class TestResolveProviderConfig:
    def test_reads_config_module(self, monkeypatch):
        monkeypatch.setattr(config, "OPENAI_API_KEY", "sk-live")
        monkeypatch.setattr(config, "VISION_MODEL", "gpt-4o")
        monkeypatch.setattr(config, "GOOGLE_VISION_API_KEY", None)
        monkeypatch.setattr(config, "SERPAPI_KEY", None)
        monkeypatch.setattr(config, "GOOGLE_API_KEY", "gk")
        monkeypatch.setattr(config, "GOOGLE_SEARCH_ENGINE_ID", "cx")
        monkeypatch.setattr(config, "DEFAULT_CURRENCY", "EUR")

        cfg = resolve_provider_config()

        assert cfg.vision.openai_api_key == "sk-live"
        assert cfg.vision.openai_model == "gpt-4o"
        assert not cfg.vision.has_label_detection
        assert cfg.price_search.provider_name == "google"
        assert cfg.price_search.default_currency == "EUR"
        assert cfg.default_currency == "EUR"

    def test_picks_up_changes_between_calls(self, monkeypatch):
        monkeypatch.setattr(config, "SERPAPI_KEY", None)
        monkeypatch.setattr(config, "GOOGLE_API_KEY", None)
        assert resolve_provider_config().price_search.provider_name is None

        monkeypatch.setattr(config, "SERPAPI_KEY", "serp")
        assert resolve_provider_config().price_search.provider_name == "serpapi"

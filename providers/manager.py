"""
Recognizer chain — runs the configured image recognizers in priority order.

  PRIMARY   vision-language model (OpenAI-compatible, else Gemini)
  FALLBACK  Google Cloud Vision label / text / object detection

The first node that returns a product name wins. If PRIMARY fails for any
reason FALLBACK is tried and its result is returned whether it succeeds or
not. Only configured nodes take part; with nothing configured the result is
not_configured.

Recognizers are built per call from the VisionConfig passed in, so a key
change takes effect on the next request without a restart.
"""
from __future__ import annotations

import logging
from typing import Callable

from provider_config import VisionConfig
from providers.base import (
    NOT_CONFIGURED, PROVIDER_ERROR,
    ImageRecognitionResult, ImageRecognizer, RecognitionMethod,
)

logger = logging.getLogger(__name__)


def _make_primary(cfg: VisionConfig) -> ImageRecognizer:
    if cfg.openai_api_key:
        from providers.openai_provider import OpenAIRecognizer
        return OpenAIRecognizer(
            cfg.openai_api_key,
            model=cfg.openai_model,
            base_url=cfg.openai_base_url,
            timeout=cfg.timeout_seconds,
        )
    from providers.gemini_provider import GeminiRecognizer
    return GeminiRecognizer(cfg.gemini_api_key, model=cfg.gemini_model, timeout=cfg.timeout_seconds)


def _make_fallback(cfg: VisionConfig) -> ImageRecognizer:
    from providers.cloud_vision_provider import CloudVisionRecognizer
    return CloudVisionRecognizer(cfg.label_detection_api_key, timeout=cfg.timeout_seconds)


# (is configured?, factory) in priority order
RECOGNIZER_CHAIN: list[tuple[Callable[[VisionConfig], bool], Callable[[VisionConfig], ImageRecognizer]]] = [
    (lambda cfg: cfg.has_vision_model, _make_primary),
    (lambda cfg: cfg.has_label_detection, _make_fallback),
]


def build_recognizers(cfg: VisionConfig) -> list[ImageRecognizer]:
    return [factory(cfg) for is_configured, factory in RECOGNIZER_CHAIN if is_configured(cfg)]


async def _safe_run(recognizer: ImageRecognizer, image_base64: str) -> ImageRecognitionResult:
    try:
        return await recognizer.analyse(image_base64)
    except Exception as exc:
        logger.error("[%s] Failed: %s", recognizer.name, exc)
        return ImageRecognitionResult.failure(PROVIDER_ERROR, recognizer.method, str(exc))


async def analyze_image(image_base64: str, vision_config: VisionConfig) -> ImageRecognitionResult:
    """Recognise the product in a base64 image. Never raises."""
    recognizers = build_recognizers(vision_config)
    if not recognizers:
        logger.warning("Image recognition requested but no vision provider is configured")
        return ImageRecognitionResult.failure(
            NOT_CONFIGURED,
            RecognitionMethod.FALLBACK,
            "Set OPENAI_API_KEY, GOOGLE_GENAI_API_KEY or GOOGLE_VISION_API_KEY",
        )

    result: ImageRecognitionResult
    for recognizer in recognizers:
        result = await _safe_run(recognizer, image_base64)
        if result.ok:
            logger.info("[%s] OK — method=%s", recognizer.name, result.method_used.value)
            return result
        logger.warning(
            "[%s] No product (%s: %s)",
            recognizer.name, result.error_reason, result.error_detail,
        )
    return result

"""
Google Cloud Vision — the FALLBACK recogniser.

Setup:
  1. https://console.cloud.google.com/ → enable "Cloud Vision API"
  2. Create an API key and set GOOGLE_VISION_API_KEY

One images:annotate request asks for labels, on-image text and localised
objects. There is no model reply to parse, so the product name is built from
the annotations, most specific first:
  detected text (first non-empty line) > object names > top 3 labels
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiohttp

from providers.base import (
    NO_RESULTS, PROVIDER_ERROR,
    ImageRecognitionResult, ImageRecognizer, RecognitionMethod, strip_data_uri,
)

logger = logging.getLogger(__name__)

ANNOTATE_URL = "https://vision.googleapis.com/v1/images:annotate"

FEATURES = ("LABEL_DETECTION", "TEXT_DETECTION", "OBJECT_LOCALIZATION")
MAX_RESULTS_PER_FEATURE = 10

NAME_LABEL_COUNT = 3
DESCRIPTION_LABEL_COUNT = 5
MAX_LABELS = 10


class CloudVisionRecognizer(ImageRecognizer):

    method = RecognitionMethod.FALLBACK

    def __init__(self, api_key: str, timeout: float = 15.0):
        self.name = "google/cloud-vision"
        self._key = api_key
        self._timeout = timeout

    async def analyse(self, image_base64: str) -> ImageRecognitionResult:
        body = {
            "requests": [
                {
                    "image": {"content": strip_data_uri(image_base64)},
                    "features": [
                        {"type": feature, "maxResults": MAX_RESULTS_PER_FEATURE}
                        for feature in FEATURES
                    ],
                }
            ]
        }

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    ANNOTATE_URL,
                    params={"key": self._key},
                    json=body,
                    timeout=aiohttp.ClientTimeout(total=self._timeout),
                ) as resp:
                    if resp.status < 200 or resp.status >= 300:
                        text = await resp.text()
                        logger.warning("[%s] HTTP %d: %s", self.name, resp.status, text[:300])
                        return ImageRecognitionResult.failure(PROVIDER_ERROR, self.method, text)
                    data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("[%s] Request failed: %s", self.name, exc)
            return ImageRecognitionResult.failure(PROVIDER_ERROR, self.method, str(exc) or type(exc).__name__)

        return self._parse(data)

    def _parse(self, data) -> ImageRecognitionResult:
        responses = data.get("responses") if isinstance(data, dict) else None
        if not isinstance(responses, list) or not responses or not isinstance(responses[0], dict):
            return ImageRecognitionResult.failure(NO_RESULTS, self.method)

        annotation = responses[0]
        if annotation.get("error"):
            message = annotation["error"].get("message") or str(annotation["error"])
            logger.warning("[%s] Annotation error: %s", self.name, message)
            return ImageRecognitionResult.failure(PROVIDER_ERROR, self.method, message)

        labels = _descriptions(annotation.get("labelAnnotations"), "description")
        objects = _descriptions(annotation.get("localizedObjectAnnotations"), "name")
        text_annotations = annotation.get("textAnnotations") or []
        full_text = ""
        if text_annotations and isinstance(text_annotations[0], dict):
            full_text = text_annotations[0].get("description") or ""

        name = _synthesise_name(full_text, objects, labels)
        if name is None:
            return ImageRecognitionResult.failure(NO_RESULTS, self.method)

        logger.info("[%s] Recognised '%s' (%d labels)", self.name, name, len(labels))
        return ImageRecognitionResult(
            product_name=name,
            description=", ".join(labels[:DESCRIPTION_LABEL_COUNT]) or None,
            labels=labels[:MAX_LABELS],
            method_used=self.method,
        )


# ── Helpers ────────────────────────────────────────────────────────────────────

def _descriptions(annotations, key: str) -> list[str]:
    out: list[str] = []
    for item in annotations or []:
        if isinstance(item, dict) and isinstance(item.get(key), str) and item[key].strip():
            out.append(item[key].strip())
    return out


def _synthesise_name(full_text: str, objects: list[str], labels: list[str]) -> Optional[str]:
    for line in full_text.splitlines():
        if line.strip():
            return line.strip()
    if objects:
        return " ".join(objects)
    if labels:
        return " ".join(labels[:NAME_LABEL_COUNT])
    return None

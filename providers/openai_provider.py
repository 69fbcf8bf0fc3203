"""
OpenAI-compatible vision-language model — the PRIMARY recogniser.

Works against api.openai.com (gpt-4o-mini, gpt-4o) or any endpoint that
speaks the chat completions API with image_url content parts, e.g.
OpenRouter via VISION_BASE_URL=https://openrouter.ai/api/v1.
"""
from __future__ import annotations

import logging
from typing import Optional

import openai
from openai import AsyncOpenAI

from providers.base import (
    NO_RESULTS, PRODUCT_PROMPT, PROVIDER_ERROR,
    ImageRecognitionResult, ImageRecognizer, RecognitionMethod,
    parse_product_description, sniff_mime_type, strip_data_uri,
)

logger = logging.getLogger(__name__)


class OpenAIRecognizer(ImageRecognizer):

    method = RecognitionMethod.PRIMARY

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        timeout: float = 15.0,
    ):
        self.model_id = model
        self.name = f"openai/{model}"
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)

    async def analyse(self, image_base64: str) -> ImageRecognitionResult:
        mime = sniff_mime_type(image_base64)
        b64 = strip_data_uri(image_base64)

        try:
            response = await self._client.chat.completions.create(
                model=self.model_id,
                max_tokens=300,
                temperature=0,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": PRODUCT_PROMPT},
                            {
                                "type": "image_url",
                                "image_url": {"url": f"data:{mime};base64,{b64}"},
                            },
                        ],
                    },
                ],
            )
        except openai.APIStatusError as exc:
            logger.warning("[%s] HTTP %s: %s", self.name, exc.status_code, exc.message)
            return ImageRecognitionResult.failure(PROVIDER_ERROR, self.method, exc.message)
        except openai.APIError as exc:
            logger.warning("[%s] Request failed: %s", self.name, exc)
            return ImageRecognitionResult.failure(PROVIDER_ERROR, self.method, str(exc))

        raw = response.choices[0].message.content if response.choices else None
        name, description, labels = parse_product_description(raw)
        if not name:
            logger.info("[%s] Empty response", self.name)
            return ImageRecognitionResult.failure(NO_RESULTS, self.method)

        logger.info("[%s] Recognised '%s'", self.name, name)
        return ImageRecognitionResult(
            product_name=name,
            description=description,
            labels=labels,
            method_used=self.method,
        )

"""
Google Gemini vision-language model — PRIMARY recogniser when no
OpenAI-compatible key is configured. Uses the google-genai SDK.
"""
from __future__ import annotations

import base64
import binascii
import logging

from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from providers.base import (
    NO_RESULTS, PRODUCT_PROMPT, PROVIDER_ERROR,
    ImageRecognitionResult, ImageRecognizer, RecognitionMethod,
    parse_product_description, sniff_mime_type, strip_data_uri,
)

logger = logging.getLogger(__name__)


class GeminiRecognizer(ImageRecognizer):

    method = RecognitionMethod.PRIMARY

    def __init__(self, api_key: str, model: str = "gemini-2.0-flash", timeout: float = 15.0):
        self.model_id = model
        self.name = f"google/{model}"
        # HttpOptions.timeout is in milliseconds
        self._client = genai.Client(
            api_key=api_key,
            http_options=genai_types.HttpOptions(timeout=int(timeout * 1000)),
        )

    async def analyse(self, image_base64: str) -> ImageRecognitionResult:
        mime = sniff_mime_type(image_base64)
        try:
            image_bytes = base64.b64decode(strip_data_uri(image_base64), validate=False)
        except (binascii.Error, ValueError) as exc:
            return ImageRecognitionResult.failure(PROVIDER_ERROR, self.method, f"Invalid base64 image: {exc}")

        gen_config = genai_types.GenerateContentConfig(
            temperature=0,
            max_output_tokens=300,
        )

        try:
            response = await self._client.aio.models.generate_content(
                model=self.model_id,
                contents=[
                    genai_types.Part.from_bytes(data=image_bytes, mime_type=mime),
                    PRODUCT_PROMPT,
                ],
                config=gen_config,
            )
        except genai_errors.APIError as exc:
            logger.warning("[%s] HTTP %s: %s", self.name, exc.code, exc.message)
            return ImageRecognitionResult.failure(PROVIDER_ERROR, self.method, exc.message or str(exc))

        name, description, labels = parse_product_description(response.text)
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

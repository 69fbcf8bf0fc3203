"""
Tests for providers/openai_provider.py and providers/gemini_provider.py.

Covers:
  - image sent as a data URI with the sniffed MIME type
  - structured / free-form replies parsed into a result
  - API errors become provider_error with the provider message
  - empty replies become no_results
"""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from providers.base import NO_RESULTS, PROVIDER_ERROR, RecognitionMethod
from providers.gemini_provider import GeminiRecognizer
from providers.openai_provider import OpenAIRecognizer

PNG_DATA_URI = "data:image/png;base64,aGVsbG8="


def chat_completion(content) -> MagicMock:
    response = MagicMock()
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response.choices = [choice]
    return response


def openai_recognizer(create: AsyncMock) -> OpenAIRecognizer:
    client = MagicMock()
    client.chat.completions.create = create
    with patch("providers.openai_provider.AsyncOpenAI", return_value=client):
        return OpenAIRecognizer(api_key="sk-test", model="gpt-4o-mini")


def gemini_recognizer(generate: AsyncMock) -> GeminiRecognizer:
    client = MagicMock()
    client.aio.models.generate_content = generate
    with patch("providers.gemini_provider.genai.Client", return_value=client):
        return GeminiRecognizer(api_key="g-test", model="gemini-2.0-flash")


# ── OpenAI-compatible ─────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestOpenAIRecognizer:
    async def test_structured_reply(self):
        create = AsyncMock(return_value=chat_completion(
            "Product: Stanley Classic Flask 1L\nDescription: Steel vacuum flask\nFeatures: green, 1L"
        ))
        result = await openai_recognizer(create).analyse(PNG_DATA_URI)

        assert result.product_name == "Stanley Classic Flask 1L"
        assert result.description == "Steel vacuum flask"
        assert result.labels == ["green", "1L"]
        assert result.method_used == RecognitionMethod.PRIMARY
        assert result.ok

    async def test_image_sent_as_data_uri(self):
        create = AsyncMock(return_value=chat_completion("Product: Mug with handle"))
        await openai_recognizer(create).analyse(PNG_DATA_URI)

        kwargs = create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        parts = kwargs["messages"][0]["content"]
        image_part = next(p for p in parts if p["type"] == "image_url")
        assert image_part["image_url"]["url"] == "data:image/png;base64,aGVsbG8="

    async def test_bare_base64_defaults_to_jpeg(self):
        create = AsyncMock(return_value=chat_completion("Product: Mug with handle"))
        await openai_recognizer(create).analyse("aGVsbG8=")

        parts = create.await_args.kwargs["messages"][0]["content"]
        image_part = next(p for p in parts if p["type"] == "image_url")
        assert image_part["image_url"]["url"].startswith("data:image/jpeg;base64,")

    async def test_empty_reply_is_no_results(self):
        create = AsyncMock(return_value=chat_completion(""))
        result = await openai_recognizer(create).analyse(PNG_DATA_URI)
        assert result.error_reason == NO_RESULTS

    async def test_status_error_is_provider_error(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        response = httpx.Response(401, request=request)
        error = openai.APIStatusError("Incorrect API key provided", response=response, body=None)
        result = await openai_recognizer(AsyncMock(side_effect=error)).analyse(PNG_DATA_URI)

        assert result.error_reason == PROVIDER_ERROR
        assert result.error_detail == "Incorrect API key provided"
        assert result.method_used == RecognitionMethod.PRIMARY

    async def test_connection_error_is_provider_error(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        error = openai.APIConnectionError(request=request)
        result = await openai_recognizer(AsyncMock(side_effect=error)).analyse(PNG_DATA_URI)

        assert result.error_reason == PROVIDER_ERROR


# ── Gemini ─────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestGeminiRecognizer:
    async def test_free_form_reply(self):
        reply = MagicMock()
        reply.text = "A Lego Technic Porsche 911\nBox set, sealed."
        generate = AsyncMock(return_value=reply)
        result = await gemini_recognizer(generate).analyse(PNG_DATA_URI)

        assert result.product_name == "A Lego Technic Porsche 911"
        assert result.description == "Box set, sealed."
        assert result.method_used == RecognitionMethod.PRIMARY
        assert generate.await_args.kwargs["model"] == "gemini-2.0-flash"

    async def test_empty_reply_is_no_results(self):
        reply = MagicMock()
        reply.text = None
        result = await gemini_recognizer(AsyncMock(return_value=reply)).analyse(PNG_DATA_URI)
        assert result.error_reason == NO_RESULTS

    async def test_api_error_is_provider_error(self):
        from google.genai import errors as genai_errors
        error = genai_errors.ClientError(
            400, {"error": {"code": 400, "message": "Image too large", "status": "INVALID_ARGUMENT"}}
        )
        result = await gemini_recognizer(AsyncMock(side_effect=error)).analyse(PNG_DATA_URI)

        assert result.error_reason == PROVIDER_ERROR
        assert result.method_used == RecognitionMethod.PRIMARY

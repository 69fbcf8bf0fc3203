"""
Shared types and base class for the image product recognizers.
"""
from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

# Error reasons exposed to the caller. All are non-fatal.
NOT_CONFIGURED = "not_configured"
PROVIDER_ERROR = "provider_error"
NO_RESULTS = "no_results"


class RecognitionMethod(str, Enum):
    PRIMARY = "primary"      # vision-language model
    FALLBACK = "fallback"    # label / text / object detection


# ── Prompt (shared by every vision-language model) ────────────────────────────

PRODUCT_PROMPT = """Identify the product in this photo for a shopping wish list.
Reply in exactly this format, one field per line:

Product: <brand and model if visible, otherwise a concise product name>
Description: <one sentence describing the product>
Features: <comma-separated distinctive features>

If you cannot identify a product, describe the main object instead."""


# ── Shared result type ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ImageRecognitionResult:
    product_name: Optional[str]
    description: Optional[str]
    labels: list[str] = field(default_factory=list)
    error_reason: Optional[str] = None      # not_configured | provider_error | no_results
    error_detail: Optional[str] = None      # provider message, verbatim
    method_used: RecognitionMethod = RecognitionMethod.PRIMARY

    @property
    def ok(self) -> bool:
        return self.error_reason is None and bool(self.product_name)

    @classmethod
    def failure(
        cls,
        reason: str,
        method: RecognitionMethod,
        detail: Optional[str] = None,
    ) -> "ImageRecognitionResult":
        return cls(
            product_name=None,
            description=None,
            labels=[],
            error_reason=reason,
            error_detail=detail,
            method_used=method,
        )

    def to_dict(self) -> dict:
        data = {
            "productName": self.product_name,
            "description": self.description,
            "labels":      list(self.labels),
            "methodUsed":  self.method_used.value,
        }
        if self.error_reason:
            data["error"] = self.error_reason
            data["errorDetail"] = self.error_detail
        return data


# ── Input normalisation ───────────────────────────────────────────────────────

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w/+.-]*)(?:;[\w=-]+)*;base64,", re.IGNORECASE)

_KNOWN_MIME_TYPES = {
    "image/png":  "image/png",
    "image/jpeg": "image/jpeg",
    "image/jpg":  "image/jpeg",
    "image/webp": "image/webp",
    "image/gif":  "image/gif",
}


def strip_data_uri(image_base64: str) -> str:
    """'data:image/png;base64,AAAA' → 'AAAA'. Bare base64 is returned unchanged."""
    text = (image_base64 or "").strip()
    m = _DATA_URI_RE.match(text)
    return text[m.end():] if m else text


def sniff_mime_type(image_base64: str) -> str:
    """MIME type from a data-URI prefix; image/jpeg when absent or unknown."""
    m = _DATA_URI_RE.match((image_base64 or "").strip())
    if m:
        return _KNOWN_MIME_TYPES.get(m.group("mime").lower(), "image/jpeg")
    return "image/jpeg"


# ── Response parsing ──────────────────────────────────────────────────────────

# "Product:", "**Product:**", "- Product name:" ...
_MARKER_RE = re.compile(
    r"^\s*(?:[-*•]\s*)?\**\s*(?P<key>product(?:\s+name)?|description|features?)\s*\**\s*:\s*\**\s*(?P<value>.*)$",
    re.IGNORECASE,
)


def _strip_markup(text: str) -> str:
    return text.strip().strip("*").strip()


def parse_product_description(raw: Optional[str]) -> tuple[Optional[str], Optional[str], list[str]]:
    """
    Parse a "Product: / Description: / Features:" reply into
    (product_name, description, labels).

    Tolerant by design of the model's formatting: markers may be bold,
    bulleted or in any case. If no marker is present the first non-empty line
    is the product name and the remaining lines the description.
    """
    lines = [line for line in (raw or "").splitlines() if line.strip()]
    if not lines:
        return None, None, []

    fields: dict[str, str] = {}
    for line in lines:
        m = _MARKER_RE.match(line)
        if not m:
            continue
        key = m.group("key").lower()
        if key.startswith("product"):
            key = "product"
        elif key.startswith("feature"):
            key = "features"
        # first occurrence of each marker wins
        fields.setdefault(key, _strip_markup(m.group("value")))

    if fields:
        name = fields.get("product") or None
        description = fields.get("description") or None
        labels = [
            _strip_markup(part)
            for part in re.split(r"[,;]", fields.get("features", ""))
            if _strip_markup(part)
        ]
        # markers present but all empty: fall through to free-form
        if name or description or labels:
            return name, description, labels

    name = _strip_markup(lines[0]) or None
    rest = " ".join(_strip_markup(line) for line in lines[1:]).strip()
    return name, rest or None, []


# ── Abstract base ──────────────────────────────────────────────────────────────

class ImageRecognizer(ABC):
    """One node of the recognition chain."""

    name: str                       # e.g. "openai/gpt-4o-mini"
    method: RecognitionMethod

    @abstractmethod
    async def analyse(self, image_base64: str) -> ImageRecognitionResult:
        """
        Recognise the product in a base64 image (data-URI prefix allowed).
        Provider failures are returned as error results, not raised.
        """
        ...

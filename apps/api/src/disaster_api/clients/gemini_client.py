from __future__ import annotations

import base64
import json
import logging
import re
from typing import Any

from disaster_api.cache import IMAGE_VERIFY_NAMESPACE, LOCATION_NAMESPACE, TTLCache
from disaster_api.clients.http import ClientFactory, default_client_factory, fetch_bytes, request_json
from disaster_api.errors import ApiError

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

EXTRACT_LOCATION_PROMPT = (
    "Extract the primary location mentioned in the following text. "
    'Return only the location name in plain text, nothing else. If no location is found, return "null".\n'
    'Text: "{text}"'
)

VERIFY_IMAGE_PROMPT = (
    "Analyze this disaster-related image and determine if it appears to be authentic. "
    "Consider signs of digital manipulation, contextual consistency and the likelihood "
    "of it being related to a real disaster.{context}\n"
    "Return a JSON object with these fields: "
    '{{"is_authentic": boolean, "confidence": number between 0 and 1, '
    '"analysis": "brief explanation", "concerns": ["list", "of", "concerns"]}}'
)

_WHITESPACE = re.compile(r"\s+")
_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


def location_cache_key(text: str) -> str:
    return f"{LOCATION_NAMESPACE}{_WHITESPACE.sub('_', text[:100])}"


def image_verify_cache_key(image_url: str) -> str:
    return f"{IMAGE_VERIFY_NAMESPACE}{image_url}"


class GeminiClient:
    """Thin REST client for the Gemini ``generateContent`` endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-1.5-flash",
        *,
        cache: TTLCache | None = None,
        timeout_seconds: float = 5.0,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._cache = cache
        self._client_factory = client_factory or default_client_factory(timeout_seconds)

    async def extract_location(self, text: str) -> str | None:
        if not text or not text.strip():
            return None
        cache_key = location_cache_key(text)
        if self._cache is not None:
            cached = await self._cache.get(cache_key)
            if isinstance(cached, str) and cached:
                return cached

        answer = await self._generate([{"text": EXTRACT_LOCATION_PROMPT.format(text=text)}])
        location = answer.strip().strip('"').strip()
        if not location or location.lower() == "null":
            return None
        if self._cache is not None:
            await self._cache.set(cache_key, location)
        return location

    async def verify_image(self, image_url: str, context: str | None = None) -> dict[str, Any]:
        cache_key = image_verify_cache_key(image_url)
        if self._cache is not None:
            cached = await self._cache.get(cache_key)
            if isinstance(cached, dict):
                return cached

        content, content_type = await fetch_bytes(self._client_factory, image_url)
        mime_type = (content_type or "image/jpeg").split(";", 1)[0].strip()
        if not mime_type.startswith("image/"):
            raise ApiError("VALIDATION_ERROR", "image_url: URL does not point to an image", 400)
        prompt = VERIFY_IMAGE_PROMPT.format(context=f" Reporter context: {context}" if context else "")
        answer = await self._generate(
            [
                {"text": prompt},
                {"inline_data": {"mime_type": mime_type, "data": base64.b64encode(content).decode("ascii")}},
            ],
            response_mime_type="application/json",
        )
        result = self._parse_verification(answer)
        if self._cache is not None:
            await self._cache.set(cache_key, result)
        return result

    async def _generate(self, parts: list[dict[str, Any]], response_mime_type: str | None = None) -> str:
        body: dict[str, Any] = {"contents": [{"parts": parts}]}
        if response_mime_type:
            body["generationConfig"] = {"responseMimeType": response_mime_type}
        payload = await request_json(
            self._client_factory,
            "POST",
            f"{GEMINI_BASE_URL}/{self._model}:generateContent",
            params={"key": self._api_key},
            json=body,
        )
        try:
            return str(payload["candidates"][0]["content"]["parts"][0]["text"])
        except (KeyError, IndexError, TypeError) as exc:
            logger.warning("gemini_unexpected_payload", extra={"component": "gemini", "model": self._model})
            raise ApiError("UPSTREAM_BAD_PAYLOAD", "LLM returned no content", 502) from exc

    @staticmethod
    def _parse_verification(answer: str) -> dict[str, Any]:
        try:
            raw = json.loads(_CODE_FENCE.sub("", answer.strip()))
        except ValueError as exc:
            raise ApiError("UPSTREAM_BAD_PAYLOAD", "LLM returned non-JSON verification", 502) from exc
        if not isinstance(raw, dict):
            raise ApiError("UPSTREAM_BAD_PAYLOAD", "LLM returned non-object verification", 502)
        confidence = raw.get("confidence", 0.0)
        try:
            confidence = min(max(float(confidence), 0.0), 1.0)
        except (TypeError, ValueError):
            confidence = 0.0
        concerns = raw.get("concerns", raw.get("potential_concerns", []))
        return {
            "is_authentic": bool(raw.get("is_authentic", False)),
            "confidence": confidence,
            "analysis": str(raw.get("analysis", "")),
            "concerns": [str(item) for item in concerns] if isinstance(concerns, list) else [],
        }

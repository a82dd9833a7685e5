"""Google Translate client used by the translation stage."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import Settings
from ..pipeline.errors import TranslationError

logger = logging.getLogger(__name__)


def _join_segments(data: Any) -> str:
    """Combine the translated segments of a translate_a/single response.

    The payload is a nested list whose first element holds one
    [translated, original, ...] entry per sentence segment.
    """
    if not isinstance(data, list) or not data or not isinstance(data[0], list):
        raise TranslationError("Malformed translation payload")

    parts: list[str] = []
    for segment in data[0]:
        if not isinstance(segment, list) or not segment:
            raise TranslationError("Malformed translation segment")
        if isinstance(segment[0], str):
            parts.append(segment[0])

    translation = "".join(parts).strip()
    if not translation:
        raise TranslationError("Translation response was empty")
    return translation


class GoogleTranslateService:
    """
    Translate text through the public translate_a/single endpoint.

    Every non-success outcome (HTTP error, timeout, network error, invalid
    JSON, unexpected payload shape) raises TranslationError.
    """

    def __init__(self, base_url: str, timeout: float = 10.0):
        self.base_url = base_url
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "GoogleTranslateService":
        return cls(str(settings.translate_base_url), timeout=settings.translate_timeout)

    async def translate(self, text: str, source_language: str, target_language: str) -> str:
        params = {
            "client": "gtx",
            "sl": source_language,
            "tl": target_language,
            "dt": "t",
            "q": text,
        }
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=5.0)
            ) as client:
                resp = await client.get(self.base_url, params=params)
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException as exc:
            raise TranslationError(f"Translation request timed out: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            raise TranslationError(
                f"Translation failed ({exc.response.status_code})"
            ) from exc
        except httpx.RequestError as exc:
            raise TranslationError(f"Network error contacting translator: {exc}") from exc
        except ValueError as exc:
            raise TranslationError("Translation response was not valid JSON") from exc

        return _join_segments(data)


__all__ = ["GoogleTranslateService"]

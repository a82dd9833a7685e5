"""Single-use token provider for Scribe realtime transcription."""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import SecretStr

from ..config import Settings
from ..pipeline.errors import AuthenticationError

logger = logging.getLogger(__name__)


class ScribeTokenProvider:
    """
    Exchange the shared secret for a single-use realtime token.

    Tokens are never cached: a token authorises exactly one connection.
    """

    def __init__(self, api_key: Optional[SecretStr], token_url: str, timeout: float = 15.0):
        self.api_key = api_key
        self.token_url = token_url
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScribeTokenProvider":
        return cls(settings.elevenlabs_api_key, str(settings.scribe_token_url))

    async def fetch_token(self) -> str:
        if self.api_key is None or not self.api_key.get_secret_value():
            raise AuthenticationError("ELEVENLABS_API_KEY is not configured")

        headers = {
            "xi-api-key": self.api_key.get_secret_value(),
            "Accept": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                logger.debug("Requesting Scribe single-use token")
                resp = await client.post(self.token_url, headers=headers)
        except httpx.TimeoutException as exc:
            raise AuthenticationError("Token request timed out") from exc
        except httpx.RequestError as exc:
            raise AuthenticationError(f"Network error requesting token: {exc}") from exc

        if resp.status_code != 200:
            detail = None
            try:
                body = resp.json()
                detail = body.get("detail") if isinstance(body, dict) else None
                if isinstance(detail, dict):
                    detail = detail.get("message") or detail.get("status")
            except ValueError:
                pass

            if resp.status_code == 401:
                msg = "Scribe API key is invalid or unauthorized"
            elif resp.status_code == 403:
                msg = "Scribe API key lacks permission to create realtime tokens"
            else:
                msg = detail or f"Token request failed ({resp.status_code})"
            raise AuthenticationError(str(msg))

        try:
            token = resp.json().get("token")
        except (ValueError, AttributeError) as exc:
            raise AuthenticationError("Token response was not valid JSON") from exc
        if not token:
            raise AuthenticationError("Token not found in response")
        return token


__all__ = ["ScribeTokenProvider"]

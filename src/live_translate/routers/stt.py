from __future__ import annotations

import logging
import secrets

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from ..config import get_settings
from ..pipeline.errors import AuthenticationError
from ..services.token_provider import ScribeTokenProvider

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/stt", tags=["stt"])


class ScribeToken(BaseModel):
    token: str


@router.post("/scribe/token", response_model=ScribeToken)
async def get_scribe_token(password: str = Query(default="")) -> ScribeToken:
    """Mint a single-use Scribe token for a browser client."""
    logger.info("Scribe token request received")
    settings = get_settings()
    expected = (
        settings.scribe_access_password.get_secret_value()
        if settings.scribe_access_password else ""
    )
    if not expected:
        logger.error("Scribe access password not configured")
        raise HTTPException(status_code=503, detail="Scribe is not configured on server")

    if not secrets.compare_digest(password.encode(), expected.encode()):
        logger.warning("Scribe token request rejected: wrong password")
        raise HTTPException(status_code=401, detail="Invalid password")

    provider = ScribeTokenProvider.from_settings(settings)
    try:
        token = await provider.fetch_token()
    except AuthenticationError as exc:
        logger.error(f"Scribe token request failed: {exc}")
        raise HTTPException(status_code=502, detail=str(exc))
    return ScribeToken(token=token)

"""Authentication for the scheduler-triggered endpoints (ingest, analyze)."""

from __future__ import annotations

import hmac

from fastapi import Depends, HTTPException, Request

from ..config import Settings
from ..logging_config import get_logger
from .deps import get_app_settings

logger = get_logger(__name__)


def _matches_secret(candidate: str | None, secret: str | None) -> bool:
    if not secret or candidate is None:
        return False
    return hmac.compare_digest(candidate.encode(), secret.encode())


def is_authorized(request: Request, settings: Settings) -> bool:
    """Accept the trusted scheduler header, the shared secret, or development mode."""
    if request.headers.get(settings.trusted_scheduler_header) == "1":
        return True

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer ") and _matches_secret(auth_header[len("Bearer ") :], settings.cron_secret):
        return True

    if _matches_secret(request.query_params.get("secret"), settings.cron_secret):
        return True

    return settings.is_development


async def require_scheduler_auth(request: Request, settings: Settings = Depends(get_app_settings)) -> None:
    """Reject the request with 401 before any side effect unless authorized."""
    if not is_authorized(request, settings):
        logger.warning("unauthorized_trigger", path=request.url.path)
        raise HTTPException(status_code=401, detail="Unauthorized")

"""Shared-secret authorization for cron trigger endpoints."""

import logging
import secrets
from typing import NamedTuple

from fastapi import Header, HTTPException

from src.core.config import settings


logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


class CronAuthResult(NamedTuple):
    """Result of cron authorization."""

    is_valid: bool
    error_message: str | None
    http_status_code: int | None


def check_cron_authorization(authorization: str | None) -> CronAuthResult:
    """Check an Authorization header against the configured CRON_SECRET.

    Args:
        authorization: Raw Authorization header value

    Returns:
        CronAuthResult; 500 when no secret is configured, 401 on a missing or wrong token
    """
    if not settings.cron_secret:
        logger.error("Cron endpoint called but CRON_SECRET is not configured")
        return CronAuthResult(is_valid=False, error_message="Cron job is not configured", http_status_code=500)

    if not authorization or not authorization.startswith(BEARER_PREFIX):
        logger.warning("Cron request without bearer token")
        return CronAuthResult(is_valid=False, error_message="Unauthorized", http_status_code=401)

    token = authorization.removeprefix(BEARER_PREFIX)
    if not secrets.compare_digest(token.encode(), settings.cron_secret.encode()):
        logger.warning("Cron request with invalid token")
        return CronAuthResult(is_valid=False, error_message="Unauthorized", http_status_code=401)

    return CronAuthResult(is_valid=True, error_message=None, http_status_code=None)


async def verify_cron_secret(authorization: str | None = Header(default=None)) -> None:
    """FastAPI dependency guarding cron endpoints.

    Raises:
        HTTPException: If the request is not authorized
    """
    result = check_cron_authorization(authorization)
    if not result.is_valid:
        raise HTTPException(status_code=result.http_status_code or 401, detail=result.error_message)

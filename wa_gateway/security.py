"""
Security utilities.
- API key authentication for operator routes (instances, bookings, sends)
"""

from fastapi import HTTPException, Security
from fastapi.security import APIKeyHeader
from wa_gateway.config import config
from wa_gateway.logging_config import get_logger

logger = get_logger(__name__)

# API Key authentication scheme
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(api_key: str = Security(api_key_header)) -> str:
    """
    Verify API key for protected endpoints.

    Usage:
        @router.get("/bookings")
        async def list_bookings(api_key: str = Depends(verify_api_key)):
            ...
    """
    if not config.API_KEY:
        # No API key configured: open access (development mode)
        return "development"

    if api_key != config.API_KEY:
        logger.warning("api_key_authentication_failed", provided_key=api_key[:8] if api_key else None)
        raise HTTPException(
            status_code=403,
            detail="Invalid or missing API key"
        )

    return api_key

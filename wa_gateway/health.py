"""
Health check and monitoring endpoints.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from wa_gateway.config import config
from wa_gateway.database import ping
from wa_gateway.logging_config import logger
from wa_gateway.wiring import Services, get_services

router = APIRouter(tags=["Health & Monitoring"])

SERVICE_NAME = "wa-gateway"
VERSION = "1.0.0"


# GET /health
# Gets: nothing
# Returns: {status, service, version}
# Example:
#   curl http://localhost:8000/health
@router.get("/health")
async def health_check():
    """
    Basic health check - returns 200 if service is running.
    Use this for basic liveness probes.
    """
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": VERSION,
    }


# GET /health/ready
# Gets: nothing
# Returns: dependency readiness checks; 200 when ready, 503 otherwise
# Example:
#   curl http://localhost:8000/health/ready
@router.get("/health/ready")
async def readiness_check(services: Services = Depends(get_services)):
    """
    Readiness check - verifies the dependencies needed to handle messages.

    Checks:
    - Database (required)
    - Evolution API and OpenAI configuration (informational)
    """
    checks = {
        "database": False,
        "evolution": "configured" if config.has_evolution_config() else "not_configured",
        "openai": "configured" if config.has_openai_key() else "not_configured",
        "ready": False,
    }

    try:
        checks["database"] = ping(services.engine)
        logger.debug("readiness_check_database", status="ok")
    except Exception as e:
        logger.warning("readiness_check_database", status="error", error=str(e))

    checks["ready"] = checks["database"] is True

    status_code = 200 if checks["ready"] else 503
    return JSONResponse(content=checks, status_code=status_code)


# GET /health/info
# Gets: nothing
# Returns: service configuration summary
# Example:
#   curl http://localhost:8000/health/info
@router.get("/health/info")
async def system_info():
    """
    System information and configuration status.
    """
    return {
        "service": SERVICE_NAME,
        "version": VERSION,
        "configuration": {
            "default_tenant": config.DEFAULT_TENANT_ID,
            "default_bot": config.DEFAULT_BOT,
            "instance_name": config.INSTANCE_NAME,
            "state_backend": config.STATE_BACKEND,
            "openai_configured": config.has_openai_key(),
            "openai_model": config.OPENAI_MODEL if config.has_openai_key() else None,
            "evolution_configured": config.has_evolution_config(),
            "debug_mode": config.DEBUG,
        },
        "features": {
            "reservations": True,
            "ai_assistant": config.has_openai_key(),
            "dry_run_sends": config.EVOLUTION_DRY_RUN or not config.has_evolution_config(),
        },
    }
